"""
Error taxonomy and common error messages.

Messages are centralized to avoid string duplication; every exception
names the field or condition that failed.
"""

# Validation
ERROR_MISSING_BILLING_ADDRESS = "Order {order} is missing the billing address."
ERROR_MISSING_COST = "Order {order} is missing a cost value."
ERROR_MISSING_VENDOR = "Order {order} is missing a vendor."
ERROR_MISSING_ORDER_KEY = "Could not retrieve order identifier for payment request."
ERROR_INVALID_REGISTRATION = "Invalid registration parameters."
ERROR_MISSING_AUTH_KEY = "Easypay authentication key is not configured"

# Not found
ERROR_ORDER_NOT_FOUND = "Order {order} not found."
ERROR_STORE_NOT_FOUND = "Store {store} not found."
ERROR_METHOD_NOT_FOUND = "Easypay payment method not found on store {store}."
ERROR_PAYMENT_NOT_FOUND = "Order payment operation not found."

# Gateway
ERROR_MISSING_STATUS = "Response is missing ep_status"
ERROR_REFERENCE_FAILED = "Failed to generate reference for order {order}."
ERROR_GATEWAY_UNKNOWN = "Unknown gateway error"

# Unsupported
ERROR_UNSUPPORTED = "{operation} is not supported by the Easypay gateway"


class EasypayError(Exception):
    """Base class for all errors raised by the integration."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EasypayError):
    """Missing or invalid input data (addresses, costs, vendors, notifications)."""


class NotFoundError(EasypayError):
    """Order, store, payment method or matching payment is absent."""


class GatewayError(EasypayError):
    """Gateway returned a non-ok status, an unusable document, or was unreachable."""


class DecodeError(GatewayError):
    """A response field could not be decoded to its declared type."""

    def __init__(self, field: str, raw: str, reason: str):
        super().__init__(f"Cannot decode field {field}={raw!r}: {reason}")
        self.field = field
        self.raw = raw


class UnsupportedError(EasypayError):
    """Operation is not modeled by the prepared-form gateway flow."""

    def __init__(self, operation: str):
        super().__init__(ERROR_UNSUPPORTED.format(operation=operation))
        self.operation = operation


__all__ = [
    "EasypayError",
    "ValidationError",
    "NotFoundError",
    "GatewayError",
    "DecodeError",
    "UnsupportedError",
]
