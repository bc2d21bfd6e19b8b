import sys
from logging.config import dictConfig

from app.core.config import LOG_LEVEL, LOG_SQL


class AccessDefaultsFilter:
    """Access records missing request fields still render instead of raising."""

    FIELDS = ("client_addr", "actor", "request_id", "method", "path", "status_code", "process_time_ms")

    def filter(self, record):
        for field in self.FIELDS:
            if not hasattr(record, field):
                setattr(record, field, "-")
        return True


def setup_logging():
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,

            "filters": {
                "access_defaults": {"()": AccessDefaultsFilter},
            },

            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                },
                "access": {
                    "format": (
                        "%(asctime)s | ACCESS | %(request_id)s | "
                        "%(client_addr)s | %(actor)s | %(method)s %(path)s | "
                        "%(status_code)s | %(process_time_ms)sms"
                    ),
                },
            },

            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
                "access_console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "access",
                    "filters": ["access_defaults"],
                },
            },

            "loggers": {
                # request_logging_middleware
                "access": {
                    "handlers": ["access_console"],
                    "level": "INFO",
                    "propagate": False,
                },
                # replaced by the access logger above
                "uvicorn.access": {
                    "level": "WARNING",
                },
                # per-movement lines are DEBUG; transitions are INFO
                "app.services": {
                    "level": LOG_LEVEL,
                },
                "sqlalchemy.engine": {
                    "level": "INFO" if LOG_SQL else "WARNING",
                },
            },

            "root": {
                "level": LOG_LEVEL,
                "handlers": ["console"],
            },
        }
    )
