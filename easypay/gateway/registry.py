"""Per-store gateway client cache."""

import asyncio
from typing import Callable, Optional

import httpx

from easypay.gateway.client import GatewayClient
from easypay.logging import get_logger, sanitize_id_for_logging
from easypay.payments.config import Settings, get_module_settings, validate_gateway_config
from easypay.payments.constants import GLOBAL_CLIENT_KEY

logger = get_logger(__name__)


class ClientRegistry:
    """
    Caches one GatewayClient per store.

    Clients are built once per key from the store settings (or the
    module settings when none are supplied) and kept for the lifetime of
    the registry; credentials are assumed stable, so there is no eviction.
    """

    def __init__(
        self,
        module_settings: Optional[Callable[[], Settings]] = None,
        http_client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self._module_settings = module_settings or get_module_settings
        self._http_client_factory = http_client_factory
        self._clients: dict[str, GatewayClient] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def key_for(store_id: Optional[str]) -> str:
        return store_id if store_id is not None else GLOBAL_CLIENT_KEY

    async def get(self, store_id: Optional[str] = None, settings: Optional[Settings] = None) -> GatewayClient:
        """
        Get the client for a store, constructing it on first access.

        Args:
            store_id: Store id, or None for the module-wide account
            settings: Store-scoped settings used only if the client is built now

        Raises:
            ValidationError: If the authentication key is not configured
        """
        key = self.key_for(store_id)
        client = self._clients.get(key)
        if client is not None:
            return client

        async with self._lock:
            # Double-check after acquiring lock
            client = self._clients.get(key)
            if client is None:
                client = self._create(key, settings)
                self._clients[key] = client
        return client

    def _create(self, key: str, settings: Optional[Settings]) -> GatewayClient:
        if settings is None:
            settings = self._module_settings()
        authentication_key, sandbox = validate_gateway_config(settings)
        http_client = self._http_client_factory() if self._http_client_factory else None

        logger.info(
            "Creating Easypay client for store %s (sandbox=%s)", sanitize_id_for_logging(key), sandbox
        )
        return GatewayClient(authentication_key, sandbox=sandbox, http_client=http_client)

    def __bool__(self) -> bool:
        # An empty registry is still a configured registry
        return True

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, store_id: Optional[str]) -> bool:
        return self.key_for(store_id) in self._clients

    async def aclose(self) -> None:
        """Close the HTTP clients of every cached gateway client (shutdown)."""
        async with self._lock:
            for client in self._clients.values():
                await client.aclose()
