import logging
import logging.config
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from app.environment import EnvironmentName
from settings import settings

JSON_FORMAT = (
    "%(asctime)s %(levelname)s %(process)d %(taskName)s %(name)s %(funcName)s %(filename)s %(lineno)d %(message)s"
)

# Chatty third-party loggers, capped at WARNING in every configuration.
QUIET_LOGGERS = ("aiohttp", "asyncio", "python_multipart", "sqlalchemy.engine", "urllib3", "uvicorn.access")


def _quiet_loggers(handler: str) -> dict[str, dict[str, Any]]:
    return {name: {"handlers": [handler], "level": logging.WARNING, "propagate": False} for name in QUIET_LOGGERS}


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "jsonFormat": {
            "format": JSON_FORMAT,
            "class": "logging_config.CustomJsonFormatter",
        },
    },
    "handlers": {
        "jsonStreamHandler": {
            "formatter": "jsonFormat",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",  # Default is stderr
        },
    },
    "loggers": {
        "": {"handlers": ["jsonStreamHandler"], "level": settings.logging.level, "propagate": False},
        **_quiet_loggers("jsonStreamHandler"),
    },
}
LOCAL_LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
    },
    "handlers": {
        "default": {
            "formatter": "standard",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",  # Default is stderr
        },
    },
    "loggers": {
        "": {"handlers": ["default"], "level": settings.logging.level, "propagate": False},
        **_quiet_loggers("default"),
    },
}


# Pretty-printed JSON for local development.
class CustomJsonFormatter(JsonFormatter):
    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._pretty_format = (
            settings.environment == EnvironmentName.DEVELOPMENT and settings.logging.use_pretty_json
        )
        if self._pretty_format:
            self.json_indent = 2

    def format(self, record: logging.LogRecord) -> str:
        result = super().format(record)
        if self._pretty_format:
            result = result.replace("\\n", "\n\t\t")
        return result


def setup_logging() -> None:
    """Configure the root logger: JSON lines when ``LOGGING_USE_CONFIG`` is set, plain text otherwise."""
    logging.config.dictConfig(LOGGING_CONFIG if settings.logging.use_config is True else LOCAL_LOGGING_CONFIG)
    logging.captureWarnings(True)
    logging.disable(logging.NOTSET)
