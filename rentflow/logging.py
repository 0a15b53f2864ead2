import logging
import sys

from rentflow.settings import Settings, settings

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Per-request chatter from the server, provider clients and the S3 SDK.
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "botocore", "boto3", "s3transfer")

_active: Settings | None = None


def _formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        from pythonjsonlogger.json import JsonFormatter

        return JsonFormatter(fmt=JSON_FIELDS, rename_fields={"asctime": "timestamp", "levelname": "level"})
    return logging.Formatter(TEXT_FORMAT)


def configure_logging(config: Settings | None = None) -> None:
    """Install a single stderr handler on the root logger.

    ``config`` defaults to the process settings. Unknown levels fall back to INFO.
    """
    global _active
    _active = config or settings
    level = getattr(logging, _active.log_level.upper(), None)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_formatter(_active.log_json))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def reconfigure() -> None:
    """Re-apply the last configuration, after Alembic's fileConfig replaced it."""
    configure_logging(_active)
