"""
Logging Configuration System.

This module provides logging for the income flywheel with support for
file rotation, different log levels, and structured (JSON) logging.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Dict, Optional

from income_flywheel.core.config import LoggingConfig

_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info', 'exc_text', 'stack_info',
    'taskName', 'message', 'asctime',
])


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        # Fields passed through ``extra=``
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class FlywheelLogger:
    """Factory and cache for configured flywheel loggers."""

    _loggers: Dict[str, logging.Logger] = {}

    @classmethod
    def get_logger(cls, name: str, level: str = "INFO",
                   file_path: Optional[str] = None,
                   max_file_size: int = 10485760,  # 10MB
                   backup_count: int = 5,
                   console: bool = True,
                   structured: bool = False) -> logging.Logger:
        """Get or create a logger with the specified configuration."""
        if name in cls._loggers:
            return cls._loggers[name]

        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper()))
        cls._close_handlers(logger)

        if structured:
            formatter: logging.Formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s'
            )

        if console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        if file_path:
            directory = os.path.dirname(file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                file_path, maxBytes=max_file_size, backupCount=backup_count
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        cls._loggers[name] = logger
        return logger

    @staticmethod
    def _close_handlers(logger: logging.Logger) -> None:
        """Close and detach every handler, releasing open log files."""
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

    @classmethod
    def reset(cls) -> None:
        """Forget cached loggers so the next call reconfigures them."""
        for logger in cls._loggers.values():
            cls._close_handlers(logger)
            logger.setLevel(logging.NOTSET)
        cls._loggers.clear()


def get_flywheel_logger(name: str = "income_flywheel", **kwargs) -> logging.Logger:
    """Get a flywheel logger with default settings.

    Args:
        name: Logger name
        **kwargs: Additional arguments for logger configuration

    Returns:
        Configured logger
    """
    return FlywheelLogger.get_logger(name, **kwargs)


def configure_logging(config: LoggingConfig, name: str = "income_flywheel") -> logging.Logger:
    """Configure the package root logger from a LoggingConfig.

    Module loggers are children of the root (``income_flywheel.*``) and
    propagate to it, so configuring the root once is enough.
    """
    FlywheelLogger._loggers.pop(name, None)
    return FlywheelLogger.get_logger(
        name,
        level=config.level,
        file_path=config.file_path,
        structured=config.structured,
    )
