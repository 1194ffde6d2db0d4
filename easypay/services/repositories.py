"""Platform repositories consumed by the Easypay orchestration.

The order, store, catalog and vendor data belong to the commerce
platform; the integration only depends on these async interfaces.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from easypay.services.models import Order, Product, Store, Vendor


class OrderRepository(ABC):
    """Customer order lookup and persistence."""

    @abstractmethod
    async def get_by_number(self, number: str) -> Optional[Order]:
        """Full order (addresses, items, payments) by order number."""

    @abstractmethod
    async def save(self, order: Order) -> None:
        """Persist changes made to an order and its payments."""


class StoreRepository(ABC):
    """Store lookup."""

    @abstractmethod
    async def get_by_id(self, store_id: str) -> Optional[Store]:
        """Store with its payment methods."""


class CatalogRepository(ABC):
    """Product lookup."""

    @abstractmethod
    async def get_products(self, product_ids: Sequence[str]) -> list[Product]:
        """Products for the given ids (missing ids are skipped)."""


class VendorRepository(ABC):
    """Vendor lookup."""

    @abstractmethod
    async def get_by_ids(self, vendor_ids: Sequence[str]) -> list[Vendor]:
        """Vendors with their Easypay account record populated."""
