"""
Logging for the Easypay integration.

Loggers live under the "easypay" namespace. A stdout handler is attached
to that namespace only when neither it nor the root logger has one, so a
host platform with its own logging setup keeps full control.

Notification parameters and gateway messages come from outside the
process and go through the sanitizers below before being logged.
"""

import logging
import os
import sys
from functools import cache

NAMESPACE = "easypay"

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_FORMAT_PRODUCTION = "%(levelname)s - %(name)s - %(message)s"

_CONTROL_CHARS = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})


def _configure_namespace() -> None:
    package_logger = logging.getLogger(NAMESPACE)
    if package_logger.handlers or logging.getLogger().handlers:
        return

    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    package_logger.setLevel(getattr(logging, level_name, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    production = os.environ.get("EASYPAY_ENV", "").lower() == "production"
    handler.setFormatter(logging.Formatter(_FORMAT_PRODUCTION if production else _FORMAT))
    package_logger.addHandler(handler)

    # httpx logs every gateway round trip at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


_configure_namespace()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for a module of this package (pass __name__)."""
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: object | None, max_length: int = 12) -> str:
    """
    Identifier from a notification (ep_doc, t_key, store id) made safe to log.

    Control characters are escaped so a crafted value cannot forge log
    lines, and the value is cut to max_length characters.
    """
    if id_value is None or id_value == "":
        return "N/A"
    safe_value = str(id_value).translate(_CONTROL_CHARS)
    return safe_value[:max_length]


def sanitize_gateway_message(message: str | None, max_length: int = 200) -> str:
    """Free-text ep_message from a gateway response, escaped and truncated."""
    if not message:
        return "N/A"
    safe_value = message.translate(_CONTROL_CHARS)
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."
