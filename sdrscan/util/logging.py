"""Structured logging configuration for sdrscan.

Provides a centralized logging setup with:
- Console handler (stderr) with configurable level
- Optional file handler (JSON lines for machine parsing)
- Contextual formatters (human-readable or JSON)
- Environment-based configuration

Usage:
    from sdrscan.util.logging import get_logger, configure_logging

    configure_logging(level="DEBUG", json_file="/var/log/sdrscan.log")
    logger = get_logger(__name__)
    logger.info("Locked signal", extra={"freq_hz": 100_001_000})

Library modules never configure logging themselves; the CLI does it once and
hands the resulting logger around inside a ScanContext.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional


ROOT_LOGGER_NAME = "sdrscan"

# Extra attributes copied into JSON log lines when present on a record.
STRUCTURED_FIELDS = ("freq_hz", "step_hz", "pass_no", "command", "error_type", "duration_ms", "decoder")


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        output: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in STRUCTURED_FIELDS:
            if hasattr(record, key):
                output[key] = getattr(record, key)
        if record.exc_info:
            output["traceback"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(output, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console format with optional color."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname
        if self.use_color:
            color = self.LEVEL_COLORS.get(level, "")
            level_str = f"{color}{level:8}{self.RESET}"
        else:
            level_str = f"{level:8}"
        name = record.name.replace("sdrscan.", "")
        msg = record.getMessage()
        base = f"[{ts}] {level_str} [{name}] {msg}"
        if record.exc_info:
            base += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return base


def resolve_level(level: Optional[str] = None) -> int:
    """Map an explicit level or the SDRSCAN_* environment to a logging level."""

    if level is None:
        if os.environ.get("SDRSCAN_DEBUG", "").strip() in ("1", "true", "yes"):
            level = "DEBUG"
        else:
            level = os.environ.get("SDRSCAN_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level.upper(), logging.INFO)


def configure_logging(
    *,
    level: Optional[str] = None,
    json_file: Optional[str] = None,
    use_color: bool = True,
) -> logging.Logger:
    """Configure the sdrscan logging subsystem and return its root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to INFO,
               or DEBUG if SDRSCAN_DEBUG=1 is set.
        json_file: Optional path to write JSON-formatted logs.
        use_color: Whether to colorize console output (auto-disabled if not a TTY).

    Calling it again replaces the handlers installed by the previous call.
    """
    numeric_level = resolve_level(level)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(numeric_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(ConsoleFormatter(use_color=use_color))
    logger.addHandler(console_handler)

    if json_file:
        try:
            file_handler = logging.FileHandler(json_file, mode="a", encoding="utf-8")
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(JSONFormatter())
            logger.addHandler(file_handler)
        except OSError as exc:
            logger.warning("Failed to open JSON log file %s: %s", json_file, exc)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the sdrscan namespace.

    Args:
        name: Usually __name__ of the calling module.
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        if name == "__main__":
            name = f"{ROOT_LOGGER_NAME}.main"
        else:
            name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger,
    message: str,
    *,
    error_type: Optional[str] = None,
    **extra: Any,
) -> None:
    """Log an exception with structured context.

    Call this inside an except block to capture the current exception.
    """
    extra_dict = dict(extra)
    if error_type:
        extra_dict["error_type"] = error_type
    logger.exception(message, extra=extra_dict)
