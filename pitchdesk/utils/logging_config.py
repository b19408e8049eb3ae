"""Logging setup for the PitchDesk API functions.

Each serverless invocation writes one JSON object per line to stdout, tagged
with the service name so the Vercel log drain can be filtered per project.
Settings come from the environment; ``LoggingConfig.reload()`` re-reads them.
"""

import os
import logging
import sys
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "pitchdesk-api"

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "urllib3", "supabase", "postgrest", "stripe")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw.isdigit():
        return default
    return int(raw)


class LoggingConfig:
    """Process-wide logging settings read from the environment."""

    LOG_LEVEL = "INFO"
    LOG_FORMAT = "json"
    LOG_MASK_SENSITIVE = True
    LOG_CORRELATION_ID_HEADER = "X-Correlation-ID"
    LOG_SLOW_OPERATION_THRESHOLD_MS = 1000

    _configured = False

    @classmethod
    def reload(cls) -> None:
        """Re-read settings from the environment."""
        cls.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
        cls.LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").strip().lower() or "json"
        cls.LOG_MASK_SENSITIVE = _env_flag("LOG_MASK_SENSITIVE", True)
        cls.LOG_CORRELATION_ID_HEADER = os.environ.get("LOG_CORRELATION_ID_HEADER") or "X-Correlation-ID"
        cls.LOG_SLOW_OPERATION_THRESHOLD_MS = _env_int("LOG_SLOW_OPERATION_THRESHOLD_MS", 1000)

    @classmethod
    def level(cls) -> int:
        return getattr(logging, cls.LOG_LEVEL, logging.INFO)

    @classmethod
    def build_formatter(cls) -> logging.Formatter:
        if cls.LOG_FORMAT == "json":
            return jsonlogger.JsonFormatter(
                "%(timestamp)s %(levelname)s %(name)s %(message)s",
                timestamp=True,
                static_fields={"service": SERVICE_NAME},
            )
        return logging.Formatter(f"%(asctime)s {SERVICE_NAME} %(name)s %(levelname)s %(message)s")

    @classmethod
    def setup_logging(cls, force: bool = False) -> None:
        """Attach a single stdout handler to the root logger once per process."""
        if cls._configured and not force:
            return

        root_logger = logging.getLogger()
        root_logger.setLevel(cls.level())
        root_logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(cls.level())
        handler.setFormatter(cls.build_formatter())
        root_logger.addHandler(handler)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        cls._configured = True


LoggingConfig.reload()


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)
