from __future__ import annotations

import unicodedata


def collation_key(text: str) -> tuple[str, str, str]:
    """Sort key approximating German collation without a system locale.

    Letters compare by base letter first (``Ä`` next to ``A``, ``ß`` as
    ``ss``), then unaccented before accented, then lowercase before
    uppercase.
    """

    decomposed = unicodedata.normalize("NFKD", text)
    primary = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    secondary = unicodedata.normalize("NFKD", text.casefold())
    return primary, secondary, text.swapcase()
