"""Uvicorn logging configuration sharing the application's structlog renderer."""

import logging
import os

import structlog


def get_uvicorn_log_level() -> int:
    level = os.getenv("UVICORN_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level, logging.INFO)


def get_log_format() -> str:
    return os.getenv("LOG_FORMAT", "pretty").lower()


def get_log_colors() -> bool:
    return os.getenv("LOG_COLORS", "true").lower() in ("true", "1", "yes", "on")


class RenameLoggerProcessor:
    """Give uvicorn's loggers names that say what they log."""

    _RENAMES = {"uvicorn.error": "uvicorn.server", "uvicorn.access": "uvicorn.http"}

    def __call__(self, logger, name, event_dict):
        logger_name = event_dict.get("logger")
        if logger_name in self._RENAMES:
            event_dict["logger"] = self._RENAMES[logger_name]
        return event_dict


def get_logging_config() -> dict:
    if get_log_format() == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=get_log_colors())

    level = get_uvicorn_log_level()
    uvicorn_logger = {"handlers": ["default"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": renderer,
                "foreign_pre_chain": [
                    structlog.stdlib.add_logger_name,
                    structlog.stdlib.add_log_level,
                    RenameLoggerProcessor(),
                    structlog.stdlib.PositionalArgumentsFormatter(),
                    structlog.processors.TimeStamper(fmt="iso"),
                    structlog.processors.StackInfoRenderer(),
                    structlog.processors.UnicodeDecoder(),
                ],
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "uvicorn": dict(uvicorn_logger),
            "uvicorn.access": dict(uvicorn_logger),
            "uvicorn.error": dict(uvicorn_logger),
        },
    }
