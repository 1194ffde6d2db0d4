"""Easypay wire client, field codec and client registry."""
from .client import GatewayClient, GatewayRequest, SplitEntry
from .registry import ClientRegistry

__all__ = ["GatewayClient", "GatewayRequest", "SplitEntry", "ClientRegistry"]
