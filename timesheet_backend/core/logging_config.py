import logging
import logging.handlers
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_HANDLER_PREFIX = "timesheet-"


def setup_logging(app_name: str = "timesheet-transformer") -> None:
    """Configure application logging

    Args:
        app_name: Name to use for log files

    Console output is always enabled; rotating log files are written only
    when ``LOG_DIR`` is set.
    """
    root_logger = logging.getLogger()
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root_logger.setLevel(level)

    # Repeated app creation (tests, reloads) must not stack handlers
    if any((handler.get_name() or "").startswith(_HANDLER_PREFIX) for handler in root_logger.handlers):
        return

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.set_name(f"{_HANDLER_PREFIX}console")
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_dir_env = os.getenv("LOG_DIR")
    if not log_dir_env:
        return

    log_dir = Path(log_dir_env)
    os.makedirs(log_dir, exist_ok=True)

    # File handler with rotation
    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / f"{app_name}.log",
        maxBytes=10_000_000,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.set_name(f"{_HANDLER_PREFIX}file")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    error_handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / f"{app_name}-error.log",
        maxBytes=10_000_000,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    error_handler.set_name(f"{_HANDLER_PREFIX}error")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    root_logger.addHandler(error_handler)
