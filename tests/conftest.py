"""Pytest configuration and fixtures"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

import httpx
import pytest

from easypay.gateway.registry import ClientRegistry
from easypay.payments.constants import (
    GATEWAY_CODE,
    SETTING_ACCOUNT_CLIENT_ID,
    SETTING_ACCOUNT_ENTITY_ID,
    SETTING_ACCOUNT_USERNAME,
    SETTING_AUTH_KEY,
    SETTING_COUNTRY,
    SETTING_PAYMENT_CLIENT_ID,
    SETTING_PAYMENT_ENTITY_ID,
    SETTING_PAYMENT_USERNAME,
    SETTING_SANDBOX,
    AddressType,
    PaymentStatus,
)
from easypay.payments.method import EasypayPaymentMethod
from easypay.services.models import (
    Address,
    LineItem,
    Order,
    PaymentIn,
    Product,
    Store,
    Vendor,
    VendorAccount,
)
from easypay.services.repositories import (
    CatalogRepository,
    OrderRepository,
    StoreRepository,
    VendorRepository,
)

MODULE_SETTINGS = {
    SETTING_AUTH_KEY: "module-key",
    SETTING_SANDBOX: "true",
    SETTING_ACCOUNT_CLIENT_ID: "100",
    SETTING_ACCOUNT_USERNAME: "platform",
    SETTING_ACCOUNT_ENTITY_ID: "10611",
}

STORE_SETTINGS = {
    SETTING_AUTH_KEY: "store-key",
    SETTING_SANDBOX: "false",
    SETTING_PAYMENT_CLIENT_ID: "200",
    SETTING_PAYMENT_USERNAME: "merchant",
    SETTING_PAYMENT_ENTITY_ID: "10611",
    SETTING_COUNTRY: "PT",
}


def xml_document(root: str = "getautomb_key", records: Sequence[Dict[str, Any]] = (), **fields: Any) -> bytes:
    """Build a gateway response document."""
    parts = "".join(f"<{name}>{value}</{name}>" for name, value in fields.items())
    for record in records:
        inner = "".join(f"<{name}>{value}</{name}>" for name, value in record.items())
        parts += f"<ref_detail><ref>{inner}</ref></ref_detail>"
    return f"<?xml version='1.0' encoding='ISO-8859-1'?><{root}>{parts}</{root}>".encode("latin-1")


class GatewayStub:
    """Scripted gateway: returns queued bodies in order and records requests."""

    def __init__(self, *bodies: Any):
        self.bodies: List[Any] = list(bodies)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.bodies.pop(0)
        if isinstance(body, httpx.Response):
            return body
        if isinstance(body, type) and issubclass(body, httpx.TransportError):
            raise body("connection refused", request=request)
        return httpx.Response(200, content=body)

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class FakeOrderRepository(OrderRepository):
    def __init__(self, orders: Sequence[Order] = ()):
        self.orders = {order.number: order for order in orders}
        self.lookups: List[str] = []
        self.saved: List[Order] = []

    async def get_by_number(self, number: str) -> Optional[Order]:
        self.lookups.append(number)
        return self.orders.get(number)

    async def save(self, order: Order) -> None:
        self.saved.append(order)


class FakeStoreRepository(StoreRepository):
    def __init__(self, stores: Sequence[Store] = ()):
        self.stores = {store.id: store for store in stores}

    async def get_by_id(self, store_id: str) -> Optional[Store]:
        return self.stores.get(store_id)


class FakeCatalogRepository(CatalogRepository):
    def __init__(self, products: Sequence[Product] = ()):
        self.products = {product.id: product for product in products}

    async def get_products(self, product_ids: Sequence[str]) -> List[Product]:
        return [self.products[pid] for pid in product_ids if pid in self.products]


class FakeVendorRepository(VendorRepository):
    def __init__(self, vendors: Sequence[Vendor] = ()):
        self.vendors = {vendor.id: vendor for vendor in vendors}

    async def get_by_ids(self, vendor_ids: Sequence[str]) -> List[Vendor]:
        return [self.vendors[vid] for vid in vendor_ids if vid in self.vendors]


@pytest.fixture
def payment_method():
    """Easypay method configured with store settings"""
    return EasypayPaymentMethod(settings=dict(STORE_SETTINGS))


@pytest.fixture
def sample_order(payment_method):
    """Order with two vendors and one new Easypay payment of 100.00"""
    return Order(
        id="order-123",
        number="CO-1001",
        store_id="store1",
        addresses=[
            Address(
                address_type=AddressType.BILLING,
                first_name="Ana",
                last_name="Silva",
                email="ana@example.com",
                line1="Rua Augusta 1",
                city="Lisboa",
                postal_code="1100-048",
                country_name="Portugal",
            )
        ],
        items=[
            LineItem(id="li-1", product_id="p-1", name="Chair", quantity=2, price_with_tax="40.00",
                     cost="25.00", extended_cost_with_tax="60.00"),
            LineItem(id="li-2", product_id="p-2", name="Lamp", quantity=1, price_with_tax="20.00",
                     cost="24.39", extended_cost_with_tax="30.00"),
        ],
        in_payments=[
            PaymentIn(
                id="pay-1",
                gateway_code=GATEWAY_CODE,
                sum=Decimal("100.00"),
                payment_status=PaymentStatus.NEW,
                payment_method=payment_method,
            )
        ],
        tax_total="18.70",
        total="100.00",
    )


@pytest.fixture
def catalog():
    return FakeCatalogRepository([Product(id="p-1", vendor="vendor-a"), Product(id="p-2", vendor="vendor-b")])


@pytest.fixture
def vendors():
    return FakeVendorRepository(
        [
            Vendor(id="vendor-a", name="A", easypay=VendorAccount(client_id=301, username="vendor_a", entity_id=10611)),
            Vendor(id="vendor-b", name="B", easypay=VendorAccount(client_id=302, username="vendor_b", entity_id=10611)),
        ]
    )


@pytest.fixture
def store(payment_method):
    return Store(id="store1", name="Main Store", payment_methods=[payment_method])


@pytest.fixture
def gateway():
    """Scripted gateway shared by every client the registry builds"""
    return GatewayStub()


@pytest.fixture
def registry(gateway):
    return ClientRegistry(module_settings=lambda: dict(MODULE_SETTINGS), http_client_factory=gateway.http_client)
