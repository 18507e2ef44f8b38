"""Logging configuration for the decision wizard"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from decision_wizard.core.config import Settings, settings as default_settings

LOG_FILE_NAME = "decision_wizard.log"

# Libraries that log every request at INFO
NOISY_LOGGERS = ("uvicorn.access", "openai", "httpx", "httpcore")


def resolve_log_level(current: Settings) -> str:
    """Explicit LOG_LEVEL wins; otherwise DEBUG mode decides."""
    if current.LOG_LEVEL:
        return current.LOG_LEVEL.upper()
    return "DEBUG" if current.DEBUG else "INFO"


def setup_logging(current: Optional[Settings] = None) -> logging.Logger:
    """Configure the root logger from settings. Safe to call more than once."""
    current = current or default_settings
    log_dir = Path(current.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolve_log_level(current))

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    log_file = (log_dir / LOG_FILE_NAME).resolve()
    if not any(
        isinstance(h, RotatingFileHandler) and h.baseFilename == str(log_file)
        for h in root_logger.handlers
    ):
        file_handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=current.LOG_MAX_BYTES,
            backupCount=current.LOG_BACKUP_COUNT,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Library chatter stays quiet unless DEBUG is on
    library_level = logging.DEBUG if current.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return root_logger
