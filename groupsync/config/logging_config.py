# groupsync/config/logging_config.py
# =============================================================================
# File: groupsync/config/logging_config.py
# Description: Root logger setup (Rich console, JSON or plain) for GroupSync
# =============================================================================
# Environment:
#   LOG_LEVEL                 root level (default INFO)
#   LOG_FILE                  extra rotating file output, always plain text
#   LOG_JSON_FORMAT           one JSON object per line on stdout
#   FORCE_COLOR               use Rich even when stdout is not a terminal
#   LOGLEVEL_<LOGGER_NAME>    per-logger level, dots become underscores
# =============================================================================

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Dict, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

NULL_LOGGER_NAME = "groupsync.null"

PLAIN_FORMAT = "[%(asctime)s] [%(levelname)-8s] [%(name)-32s] %(message)s"
PLAIN_DATEFMT = "%Y-%m-%d %H:%M:%S"

CONSOLE_THEME = Theme({
    "logging.level.debug": "magenta dim",
    "logging.level.info": "green",
    "logging.level.warning": "dark_goldenrod",
    "logging.level.error": "red",
    "logging.level.critical": "bold red",
})

# Levels applied to chatty loggers unless LOGLEVEL_<NAME> says otherwise
LOGGER_LEVELS: Dict[str, int] = {
    "asyncio": logging.WARNING,
    "groupsync.replay": logging.INFO,
    "groupsync.replay.drainer": logging.INFO,
    "groupsync.replay.lifecycle": logging.INFO,
    "groupsync.messenger.projectors": logging.INFO,
    "groupsync.protocol.local": logging.WARNING,
}

# LogRecord attributes copied into JSON output when present
JSON_EXTRAS = ("group_pk", "account_pk", "event_id")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("true", "1", "yes", "on")


class ProductionFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update({name: getattr(record, name) for name in JSON_EXTRAS if hasattr(record, name)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def get_logger_level_from_env(logger_name: str, default_level: int) -> int:
    """Level from LOGLEVEL_<LOGGER_NAME>, e.g. LOGLEVEL_GROUPSYNC_REPLAY."""
    value = os.getenv(f"LOGLEVEL_{logger_name.replace('.', '_').upper()}", "").upper()
    level = logging.getLevelName(value) if value else None
    return level if isinstance(level, int) else default_level


def setup_logging(
        service_name: str = "groupsync",
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
        enable_json: Optional[bool] = None,
        rich_tracebacks: bool = True,
) -> None:
    """
    Replace the root handlers with the console/JSON/file setup.

    Args:
        service_name: Prefix of the startup logger
        log_level: Root level, LOG_LEVEL when omitted
        log_file: Rotating file output, LOG_FILE when omitted
        enable_json: JSON output, LOG_JSON_FORMAT when omitted
        rich_tracebacks: Pretty exceptions on the Rich console
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE")
    if enable_json is None:
        enable_json = _env_flag("LOG_JSON_FORMAT")
    force_color = _env_flag("FORCE_COLOR")

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if enable_json:
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ProductionFormatter())
    elif force_color or sys.stdout.isatty():
        handler = RichHandler(
            console=Console(theme=CONSOLE_THEME, force_terminal=force_color or None),
            rich_tracebacks=rich_tracebacks,
            show_path=False,
            markup=False,
        )
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATEFMT))
    root.addHandler(handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=50 * 1024 * 1024, backupCount=3, encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATEFMT))
        root.addHandler(file_handler)

    for logger_name, default_level in LOGGER_LEVELS.items():
        logging.getLogger(logger_name).setLevel(get_logger_level_from_env(logger_name, default_level))

    logging.getLogger(f"{service_name}.startup").info(f"Logging configured for {service_name}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_null_logger() -> logging.Logger:
    """
    Disabled, non-propagating logger.

    Handed to projection handlers that run non-interactively (log replay).
    """
    logger = logging.getLogger(NULL_LOGGER_NAME)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    logger.propagate = False
    logger.disabled = True
    return logger
