"""Easypay settings resolution and validation.

Store-scoped settings are plain mappings keyed by the platform setting
names (see constants). Module-wide settings come from the environment.
"""
import os
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from easypay.errors import ValidationError
from .constants import (
    DEFAULT_CRON_EXPRESSION,
    SETTING_ACCOUNT_CLIENT_ID,
    SETTING_ACCOUNT_ENTITY_ID,
    SETTING_ACCOUNT_USERNAME,
    SETTING_AUTH_KEY,
    SETTING_CRON,
    SETTING_SANDBOX,
)

logger = logging.getLogger(__name__)

Settings = Mapping[str, Any]


# Setting name -> environment variable
MODULE_ENV_SETTINGS: Dict[str, str] = {
    SETTING_AUTH_KEY: "EASYPAY_AUTHENTICATION_KEY",
    SETTING_SANDBOX: "EASYPAY_SANDBOX",
    SETTING_CRON: "EASYPAY_CRON_EXPRESSION",
    SETTING_ACCOUNT_CLIENT_ID: "EASYPAY_ACCOUNT_CLIENT_ID",
    SETTING_ACCOUNT_USERNAME: "EASYPAY_ACCOUNT_USERNAME",
    SETTING_ACCOUNT_ENTITY_ID: "EASYPAY_ACCOUNT_ENTITY_ID",
}

# Settings required before a gateway client can be built
GATEWAY_REQUIREMENTS: Tuple[str, ...] = (SETTING_AUTH_KEY,)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def get_module_settings() -> Dict[str, Optional[str]]:
    """
    Read module-wide settings from the environment.

    Returns dict with setting names as keys and their values (or None if not set).
    """
    return {name: os.environ.get(env) for name, env in MODULE_ENV_SETTINGS.items()}


def get_setting_value(settings: Optional[Settings], name: str, default: Any = None) -> Any:
    """
    Get a typed setting value.

    The result is coerced to the type of ``default`` (int, bool or str);
    missing, empty or unparsable values yield ``default``.
    """
    if not settings:
        return default
    value = settings.get(name)
    if value is None or value == "":
        return default

    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUE_VALUES
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Setting %s has non-integer value, using default %s", name, default)
            return default
    if isinstance(value, str):
        return value
    return str(value)


def get_cron_expression(settings: Optional[Settings] = None) -> str:
    """Scan schedule, consumed by whatever runs the scanner job."""
    source = settings if settings is not None else get_module_settings()
    return get_setting_value(source, SETTING_CRON, DEFAULT_CRON_EXPRESSION)


def validate_gateway_config(settings: Optional[Settings]) -> Tuple[str, bool]:
    """
    Validate gateway settings.

    Args:
        settings: Store-scoped or module settings

    Returns:
        (authentication_key, sandbox)

    Raises:
        ValidationError: If a required setting is missing
    """
    missing = [name for name in GATEWAY_REQUIREMENTS if not get_setting_value(settings, name)]
    if missing:
        logger.error("Easypay gateway not configured. Missing: %s", missing)
        raise ValidationError(f"Easypay is not configured. Set: {', '.join(missing)}")

    return (
        get_setting_value(settings, SETTING_AUTH_KEY, ""),
        get_setting_value(settings, SETTING_SANDBOX, False),
    )


def is_gateway_configured(settings: Optional[Settings]) -> bool:
    """Check configuration without raising."""
    return all(get_setting_value(settings, name) for name in GATEWAY_REQUIREMENTS)
