import asyncio

import pytest

from easypay.errors import ValidationError
from easypay.gateway.registry import ClientRegistry
from easypay.payments.constants import PRODUCTION_URL, SANDBOX_URL, SETTING_AUTH_KEY, SETTING_SANDBOX

from conftest import MODULE_SETTINGS, STORE_SETTINGS


class _CountingSettings:
    def __init__(self, settings):
        self.settings = settings
        self.reads = 0

    def __call__(self):
        self.reads += 1
        return dict(self.settings)


@pytest.mark.asyncio
async def test_concurrent_first_access_constructs_once():
    settings = _CountingSettings(MODULE_SETTINGS)
    registry = ClientRegistry(module_settings=settings)

    clients = await asyncio.gather(*(registry.get("store1") for _ in range(20)))

    assert all(client is clients[0] for client in clients)
    assert settings.reads == 1
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_cached_client_ignores_later_settings():
    registry = ClientRegistry(module_settings=_CountingSettings(MODULE_SETTINGS))

    first = await registry.get("store1", STORE_SETTINGS)
    second = await registry.get("store1", {SETTING_AUTH_KEY: "other", SETTING_SANDBOX: "true"})

    assert first is second
    assert first.base_url == PRODUCTION_URL


@pytest.mark.asyncio
async def test_store_settings_take_precedence():
    settings = _CountingSettings(MODULE_SETTINGS)
    registry = ClientRegistry(module_settings=settings)

    client = await registry.get("store1", STORE_SETTINGS)

    assert client.base_url == PRODUCTION_URL
    assert settings.reads == 0


@pytest.mark.asyncio
async def test_global_key_uses_module_settings():
    registry = ClientRegistry(module_settings=_CountingSettings(MODULE_SETTINGS))

    global_client = await registry.get(None)
    store_client = await registry.get("store1", STORE_SETTINGS)

    assert global_client is not store_client
    assert global_client.base_url == SANDBOX_URL
    assert None in registry
    assert "store1" in registry


@pytest.mark.asyncio
async def test_missing_key_is_not_cached():
    registry = ClientRegistry(module_settings=_CountingSettings({}))

    with pytest.raises(ValidationError):
        await registry.get(None)
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_module_settings_from_environment(monkeypatch):
    monkeypatch.setenv("EASYPAY_AUTHENTICATION_KEY", "env-key")
    monkeypatch.setenv("EASYPAY_SANDBOX", "1")
    registry = ClientRegistry()

    client = await registry.get(None)

    assert client.base_url == SANDBOX_URL
    await registry.aclose()


def test_empty_registry_is_truthy():
    registry = ClientRegistry(module_settings=_CountingSettings(MODULE_SETTINGS))

    assert len(registry) == 0
    assert registry
