"""Payment constants, settings and the Easypay payment method."""
from .constants import (
    GATEWAY_CODE,
    AddressType,
    Operation,
    PaymentStatus,
)
from .config import (
    get_module_settings,
    get_setting_value,
    validate_gateway_config,
)

__all__ = [
    "GATEWAY_CODE",
    "AddressType",
    "Operation",
    "PaymentStatus",
    "get_module_settings",
    "get_setting_value",
    "validate_gateway_config",
]
