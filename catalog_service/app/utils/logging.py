"""
Catalog Service Logging Module
==============================
One JSON object per line. Request context passed through ``extra=``
(correlation_id, product_id, topic, ...) becomes top-level keys.
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

_LOG_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


class CatalogJSONFormatter(logging.Formatter):
    """JSON formatter for Catalog Service structured logging"""

    def __init__(self, exclude_fields: Optional[Iterable[str]] = None):
        super().__init__()
        self.exclude_fields = frozenset(exclude_fields or ())

    def _context(self, record: logging.LogRecord) -> Dict[str, Any]:
        return {
            key: value
            for key, value in vars(record).items()
            if key not in _LOG_RECORD_ATTRS
            and key not in self.exclude_fields
            and value is not None
        }

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": "catalog_service",
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(self._context(record))

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
            entry["error_type"] = record.exc_info[0].__name__

        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_catalog_logging(
    service_name: str = "catalog_service",
    log_level: str = "INFO",
    enable_file_logging: bool = False,
    log_dir: Optional[str] = None,
    max_file_size: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 5,
    exclude_fields: Optional[Iterable[str]] = None,
) -> logging.Logger:
    """
    Get a JSON logger for a Catalog Service component.

    Calling it again for the same name replaces the handlers, so modules can
    set up their logger at import time without duplicating output.
    """
    level = logging.getLevelName(log_level.upper())
    formatter = CatalogJSONFormatter(exclude_fields=exclude_fields)

    logger = logging.getLogger(service_name)
    logger.setLevel(level)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if enable_file_logging:
        directory = Path(log_dir) if log_dir else Path(__file__).parents[1] / "logs"
        directory.mkdir(parents=True, exist_ok=True)
        for suffix, handler_level in (("", level), ("_errors", logging.ERROR)):
            handler = RotatingFileHandler(
                directory / f"{service_name}{suffix}.log",
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            handler.setLevel(handler_level)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    return logger
