"""
Logging setup for tablecart.

Modules log through get_logger(__name__); the application root calls
configure_logging(settings) once (create_cart_store does it) to apply
LOG_LEVEL and the output format.
"""

import logging
import sys
from functools import cache
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tablecart.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# Handler installed by configure_logging; None until first call
_handler: Optional[logging.Handler] = None


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: "Settings") -> int:
    """
    Apply settings.log_level to the root logger and the tablecart handler.

    A stdout handler is added only when the host application has not set up
    its own. Kiosk builds (TABLECART_ENV=production) get the short format.
    Returns the numeric level applied.
    """
    global _handler

    level = _level_from_name(settings.log_level)
    root = logging.getLogger()
    root.setLevel(level)

    if _handler is None and not root.handlers:
        _handler = logging.StreamHandler(sys.stdout)
        root.addHandler(_handler)
    if _handler is not None:
        _handler.setLevel(level)
        fmt = LOG_FORMAT_SIMPLE if settings.environment == "production" else LOG_FORMAT
        _handler.setFormatter(logging.Formatter(fmt))

    # Redis REST calls go through httpx
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    logging.getLogger("httpcore").setLevel(max(level, logging.WARNING))
    return level


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _escape_log_injection(value: str) -> str:
    """Escape newlines and tabs so guest input cannot forge log lines."""
    return (
        value.replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """
    Make a guest-typed value (customer name, discount code) safe to log.

    Returns "N/A" for empty values; longer values are cut at max_length.
    """
    if not value:
        return "N/A"
    safe_value = _escape_log_injection(str(value))
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "configure_logging",
    "get_logger",
    "sanitize_string_for_logging",
]
