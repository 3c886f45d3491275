"""Logging configuration for ManaLedger."""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from pathlib import Path

from flask import Flask, current_app, has_app_context

# LogRecord attributes that are not user-supplied ``extra`` fields.
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Structured JSON formatter for better log parsing."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Fields passed through ``extra=``
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in log_data or key.startswith('_'):
                continue
            if isinstance(value, (str, int, float, bool, list, dict)) or value is None:
                log_data[key] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


def configure_logging(app: Flask) -> None:
    """Attach console and rotating-file handlers to the root logger."""

    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    logs_dir = None
    if app.config.get('LOG_TO_FILE', True):
        try:
            logs_dir = Path(app.instance_path) / 'logs'
            logs_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                logs_dir / 'analysis.log',
                maxBytes=20 * 1024 * 1024,  # 20MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(StructuredFormatter())
            root_logger.addHandler(file_handler)

            error_handler = logging.handlers.RotatingFileHandler(
                logs_dir / 'errors.log',
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(StructuredFormatter())
            root_logger.addHandler(error_handler)
        except OSError as exc:
            logs_dir = None
            root_logger.warning("Falling back to stream-only logging (file handler unavailable): %s", exc)

    configure_specific_loggers()

    app.logger.info('Logging configuration completed', extra={
        'log_level': logging.getLevelName(log_level),
        'logs_directory': str(logs_dir) if logs_dir else None,
    })


def configure_specific_loggers() -> None:
    """Quiet noisy third-party loggers."""

    # Only log warnings and errors from SQL execution by default
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('alembic').setLevel(logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return the Flask app logger inside an app context, else a module logger."""
    if has_app_context() and current_app:
        return current_app.logger
    return logging.getLogger(name)


__all__ = [
    "StructuredFormatter",
    "configure_logging",
    "configure_specific_loggers",
    "get_logger",
]
