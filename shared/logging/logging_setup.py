"""Logging for the bridge: a colored console, a rotating log file and pytz timestamps.

setup_logging() configures the root logger once per process and returns the
application logger wrapped in a ColorLogger, whose methods accept an
optional ``color=`` keyword.
"""

import logging
import logging.config
import os
from datetime import datetime
from logging import Logger

from pytz import timezone

LOGGER_NAME = "ontology_rag_bridge"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_TIMEZONE = "Europe/Berlin"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_ANSI_RESET = "\033[0m"
_ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}
_LEVEL_PREFIXES = {
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
    logging.WARNING: "⚠️ ",
}

# only interesting when debugging
_NOISY_LOGGERS = ("httpx", "httpcore", "chromadb", "uvicorn.access")


def _is_debug() -> bool:
    return os.getenv("LOG_LEVEL", "info").lower() == "debug"


class TimezoneFormatter(logging.Formatter):
    """Renders timestamps in a pytz timezone and prefixes warnings and errors."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # malformed third party message, keep the raw template
            message = str(record.msg)
        # other handlers must still see the untouched record
        record = logging.makeLogRecord(record.__dict__)
        record.msg = _LEVEL_PREFIXES.get(record.levelno, "") + message
        record.args = ()
        return super().format(record)


class ConsoleFormatter(TimezoneFormatter):
    """Wraps the line in an ANSI color when the record carries a ``color`` attribute."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _ANSI_COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger:
    """Logger wrapper whose log methods take an optional ``color=`` keyword.

        logger.info("Indexing complete", color="green")

    The color only shows on the console; the log file stays plain.
    Everything else (setLevel, handlers, ...) is delegated to the wrapped logger.
    """

    _METHODS = ("debug", "info", "warning", "error", "critical", "exception")

    def __init__(self, logger: Logger):
        self._logger = logger

    @staticmethod
    def _inject_color(kwargs: dict, color: str | None) -> dict:
        if color is None:
            return kwargs
        return {**kwargs, "extra": {**(kwargs.get("extra") or {}), "color": color}}

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._logger.log(level, msg, *args, **self._inject_color(kwargs, color))

    def __getattr__(self, name):
        target = getattr(self._logger, name)
        if name not in self._METHODS:
            return target

        def emit(msg, *args, color: str | None = None, **kwargs):
            kwargs.setdefault("stacklevel", 2)
            target(msg, *args, **self._inject_color(kwargs, color))

        return emit


def setup_logging() -> ColorLogger:
    """Configure console and file logging from LOG_LEVEL, TIMEZONE and ROOT_DIR."""
    level = logging.DEBUG if _is_debug() else logging.INFO
    tz_name = os.getenv("TIMEZONE", DEFAULT_TIMEZONE)
    log_dir = os.path.join(os.getenv("ROOT_DIR") or os.getcwd(), "logs")
    os.makedirs(log_dir, exist_ok=True)

    formatter_args = {"format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"()": TimezoneFormatter, **formatter_args},
            "console": {"()": ConsoleFormatter, **formatter_args},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "plain",
                "level": level,
                "filename": os.path.join(log_dir, "app.log"),
                "maxBytes": LOG_FILE_MAX_BYTES,
                "backupCount": LOG_FILE_BACKUPS,
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    })

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if _is_debug() else logging.WARNING)

    return ColorLogger(logging.getLogger(LOGGER_NAME))
