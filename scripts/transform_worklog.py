#!/usr/bin/env python
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from timesheet_backend.application import get_transform_service
from timesheet_backend.core.logging_config import setup_logging
from timesheet_backend.core.validation import TransformError


def main() -> int:
    parser = argparse.ArgumentParser(description="Convert a worklog CSV into XLSX and DOCX timesheets")
    parser.add_argument("--worklog", required=True, help="Worklog CSV (User, Worklog, Key, Logged, Date)")
    parser.add_argument("--areas", help="Optional work area CSV (Key, Name, Alias)")
    parser.add_argument("--weekly", action="store_true", help="Aggregate rows per work week and user")
    parser.add_argument("--legend", action="store_true", help="Append the legend of referenced work areas")
    parser.add_argument("--docx-template", help="DOCX template containing the placeholder paragraph")
    parser.add_argument("--output-dir", default=".", help="Directory for the generated documents")
    args = parser.parse_args()

    setup_logging("timesheet-cli")
    service = get_transform_service()
    worklog = Path(args.worklog)
    output = Path(args.output_dir)
    output.mkdir(parents=True, exist_ok=True)

    try:
        areas_text = Path(args.areas).read_text(encoding="utf-8-sig") if args.areas else None
        processed = service.process(worklog.read_text(encoding="utf-8-sig"), worklog.name, areas_text)
        documents = [service.export_xlsx(processed, weekly=args.weekly, include_legend=args.legend)]
        if args.docx_template:
            template = Path(args.docx_template).read_bytes()
            documents.append(
                service.export_docx(processed, template, weekly=args.weekly, include_legend=args.legend)
            )
    except TransformError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for line in processed.log:
        print(line)
    for document in documents:
        target = output / document.filename
        target.write_bytes(document.content)
        print(f"Written: {target}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
