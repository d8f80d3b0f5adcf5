"""Loguru setup shared by the HTTP app and the CLI."""

import logging
import sys
from pathlib import Path

from loguru import logger

from src.sso_bridge.runtime.config.config_data import ConfigData
from src.sso_bridge.runtime.context import get_config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "[<cyan>{extra[request_id]}</cyan>] | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# Third-party loggers kept above DEBUG regardless of the app level
_QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "passlib": logging.WARNING,
    "httpx": logging.WARNING,
    "uvicorn": logging.INFO,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.CRITICAL,
}


class InterceptHandler(logging.Handler):
    """Forward stdlib ``logging`` records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Access lines and server tracebacks are logged by the request middleware
        if record.name == "uvicorn.access":
            return
        if record.name == "uvicorn.error" and record.levelno >= logging.ERROR:
            return

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(depth=2, exception=record.exc_info).bind(
            logger_name=record.name
        ).log(level, record.getMessage())


def configure_logging(config: ConfigData | None = None) -> None:
    """Install the console sink, the optional file sink and the stdlib bridge."""
    config = config or get_config()
    log_config = config.logging
    environment = config.app.environment

    # diagnose renders local variables, which may hold tokens and secrets
    sink_options = {
        "level": log_config.level,
        "backtrace": environment != "production",
        "diagnose": environment == "development",
    }

    logger.remove()
    logger.configure(
        extra={"request_id": "-"},
        patcher=lambda record: record["extra"].setdefault("request_id", "-"),
    )
    logger.add(sys.stderr, format=CONSOLE_FORMAT, colorize=True, **sink_options)

    if log_config.file:
        path = Path(log_config.file)
        path.parent.mkdir(parents=True, exist_ok=True)
        as_json = log_config.format == "json"
        logger.add(
            str(path),
            format="{message}" if as_json else CONSOLE_FORMAT,
            serialize=as_json,
            rotation=f"{log_config.max_size_mb} MB",
            retention=log_config.backup_count,
            compression="zip",
            enqueue=True,
            **sink_options,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict):
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = []
        stdlib_logger.propagate = True
    for name, level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logger.bind(
        app_level=log_config.level,
        app_format=log_config.format,
        app_file=log_config.file,
        environment=environment,
    ).info("Logging configured")
