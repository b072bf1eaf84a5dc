"""
Search Service Logging Module
=============================
Structured JSON logging for the Search Service API and its event pipeline.
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "taskName"}


class SearchJSONFormatter(logging.Formatter):
    """JSON formatter for Search Service structured logging"""

    def __init__(self, exclude_fields: Optional[List[str]] = None):
        super().__init__()
        self.exclude_fields = set(exclude_fields or [])

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": "search_service",
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Pipeline context passed through extra= (product_id, topic, offset, ...)
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key in self.exclude_fields:
                continue
            log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def _rotating_handler(
    path: Path, level: int, max_file_size: int, backup_count: int
) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_file_size, backupCount=backup_count)
    handler.setLevel(level)
    return handler


def setup_search_logging(
    service_name: str = "search_service",
    log_level: str = "INFO",
    enable_file_logging: bool = False,
    log_dir: Optional[str] = None,
    max_file_size: int = 100 * 1024 * 1024,  # 100MB
    backup_count: int = 5,
    exclude_fields: Optional[List[str]] = None,
) -> logging.Logger:
    """Setup logging for a Search Service component."""
    level = getattr(logging, log_level.upper())
    logger = logging.getLogger(service_name)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = SearchJSONFormatter(exclude_fields=exclude_fields)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    handlers[0].setLevel(level)

    if enable_file_logging:
        log_dir_path = (
            Path(log_dir) if log_dir else Path(__file__).parent.parent / "logs"
        )
        log_dir_path.mkdir(exist_ok=True)
        handlers.append(
            _rotating_handler(
                log_dir_path / f"{service_name}.log", level, max_file_size, backup_count
            )
        )
        handlers.append(
            _rotating_handler(
                log_dir_path / f"{service_name}_errors.log",
                logging.ERROR,
                max_file_size,
                backup_count,
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
