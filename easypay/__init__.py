"""
Easypay payment-reference gateway integration.

This package contains:
- gateway: wire client, field codec and per-store client registry
- orders: split calculation and the reference/reconciliation orchestrator
- payments: constants, settings and the Easypay payment method
- routers: FastAPI endpoints called by the gateway
- jobs: polling scanner for missed notifications

Note: Imports are lazy so that importing a leaf module does not pull in
FastAPI or the orchestration layer.
"""

__all__ = [
    "EasypayOrchestrator",
    "EasypayPaymentMethod",
    "ClientRegistry",
    "GatewayClient",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "EasypayOrchestrator":
        from easypay.orders.orchestrator import EasypayOrchestrator
        return EasypayOrchestrator
    elif name == "EasypayPaymentMethod":
        from easypay.payments.method import EasypayPaymentMethod
        return EasypayPaymentMethod
    elif name == "ClientRegistry":
        from easypay.gateway.registry import ClientRegistry
        return ClientRegistry
    elif name == "GatewayClient":
        from easypay.gateway.client import GatewayClient
        return GatewayClient
    raise AttributeError(f"module 'easypay' has no attribute '{name}'")
