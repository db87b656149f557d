import json
import logging
import os
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

from app.core.config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Attach the current request id to every record"""
    def filter(self, record):
        if not hasattr(record, 'request_id'):
            record.request_id = request_id_var.get() or "-"
        return True


class CustomJsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging"""
    def __init__(self, **kwargs):
        super().__init__()
        self.kwargs = kwargs

    def format(self, record):
        json_record = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if getattr(record, 'request_id', None) not in (None, "-"):
            json_record['request_id'] = record.request_id

        if record.exc_info:
            json_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if hasattr(record, 'duration'):
            json_record['duration_ms'] = record.duration

        for field in self.kwargs.get('extra_fields', []):
            if hasattr(record, field):
                json_record[field] = getattr(record, field)

        return json.dumps(json_record, default=str)


class LoggerFactory:
    """Factory class for creating and configuring loggers"""

    @staticmethod
    def create_logger(
        name: str,
        log_dir: Optional[str] = None,
        level: str = "INFO",
        to_file: bool = True
    ) -> logging.Logger:
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level))
        logger.propagate = False

        if logger.handlers:
            logger.handlers.clear()

        handlers = {'console': logging.StreamHandler()}

        if to_file:
            if log_dir is None:
                log_dir = settings.LOG_DIR
            os.makedirs(log_dir, exist_ok=True)
            handlers['app'] = RotatingFileHandler(
                os.path.join(log_dir, 'app.log'),
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5
            )
            handlers['error'] = RotatingFileHandler(
                os.path.join(log_dir, 'error.log'),
                maxBytes=10 * 1024 * 1024,
                backupCount=5
            )

        request_filter = RequestIdFilter()
        for handler_name, handler in handlers.items():
            if handler_name == 'error':
                handler.setLevel(logging.ERROR)
            else:
                handler.setLevel(getattr(logging, level))

            handler.addFilter(request_filter)

            # JSON for files, plain text for the console
            if isinstance(handler, RotatingFileHandler):
                handler.setFormatter(CustomJsonFormatter(
                    extra_fields=['user_id', 'school_id', 'device_id', 'enrollment_id']
                ))
            else:
                handler.setFormatter(logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s'
                ))

            logger.addHandler(handler)

        return logger


# Create default logger instance
logger = LoggerFactory.create_logger(
    "SchoolDeviceLogger",
    level=settings.LOG_LEVEL,
    to_file=settings.LOG_TO_FILE
)
