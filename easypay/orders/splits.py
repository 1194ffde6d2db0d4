"""
Split payment calculation.

Distributes one payment across the platform account and the vendors of
the order's products. Vendor shares are rounded first; the platform gets
the remainder, so the shares always add up to the rounded payment sum.
"""
from decimal import Decimal
from typing import Callable, Optional

from easypay.errors import ERROR_MISSING_COST, ERROR_MISSING_VENDOR, ValidationError
from easypay.gateway.client import SplitEntry
from easypay.logging import get_logger
from easypay.payments.config import Settings, get_module_settings, get_setting_value
from easypay.payments.constants import (
    SETTING_ACCOUNT_CLIENT_ID,
    SETTING_ACCOUNT_ENTITY_ID,
    SETTING_ACCOUNT_USERNAME,
)
from easypay.services.models import Order, PaymentIn
from easypay.services.money import round_money, sum_money
from easypay.services.repositories import CatalogRepository, VendorRepository

logger = get_logger(__name__)


class SplitCalculator:
    """Computes the platform/vendor split of an order payment."""

    def __init__(
        self,
        catalog: CatalogRepository,
        vendors: VendorRepository,
        module_settings: Optional[Callable[[], Settings]] = None,
    ):
        self.catalog = catalog
        self.vendors = vendors
        self._module_settings = module_settings or get_module_settings

    async def vendor_costs(self, order: Order) -> dict[str, Decimal]:
        """
        Rounded extended cost (with tax) per vendor id.

        Vendors are keyed in order of first appearance in the order items.

        Raises:
            ValidationError: If an item has no cost or a product has no vendor
        """
        if any(item.cost is None or item.extended_cost_with_tax is None for item in order.items):
            raise ValidationError(ERROR_MISSING_COST.format(order=order.number))

        product_ids = list(dict.fromkeys(item.product_id for item in order.items))
        products = {p.id: p for p in await self.catalog.get_products(product_ids)}

        costs: dict[str, list[Decimal]] = {}
        for item in order.items:
            product = products.get(item.product_id)
            if product is None or not product.vendor:
                raise ValidationError(ERROR_MISSING_VENDOR.format(order=order.number))
            costs.setdefault(product.vendor, []).append(item.extended_cost_with_tax)

        return {vendor_id: round_money(sum_money(values)) for vendor_id, values in costs.items()}

    async def calculate(self, order: Order, payment: PaymentIn) -> list[SplitEntry]:
        """
        Split entries for a payment: the platform entry first, then one per vendor.

        Raises:
            ValidationError: On missing cost, vendor assignment or vendor record
        """
        vendor_costs = await self.vendor_costs(order)
        vendors = {v.id: v for v in await self.vendors.get_by_ids(list(vendor_costs))}

        vendor_splits = []
        for vendor_id, amount in vendor_costs.items():
            vendor = vendors.get(vendor_id)
            if vendor is None:
                raise ValidationError(f"Vendor {vendor_id} of order {order.number} not found.")
            account = vendor.easypay
            vendor_splits.append(
                SplitEntry(
                    client_id=account.client_id,
                    username=account.username,
                    entity_id=account.entity_id,
                    amount=amount,
                )
            )

        settings = self._module_settings()
        platform_amount = round_money(payment.sum) - sum_money(vendor_costs.values())
        if platform_amount < 0:
            logger.warning(
                "Vendor costs exceed payment sum on order %s (platform share %s)",
                order.number,
                platform_amount,
            )

        platform = SplitEntry(
            client_id=get_setting_value(settings, SETTING_ACCOUNT_CLIENT_ID, 0),
            username=get_setting_value(settings, SETTING_ACCOUNT_USERNAME, ""),
            entity_id=get_setting_value(settings, SETTING_ACCOUNT_ENTITY_ID, 0),
            amount=platform_amount,
        )
        return [platform, *vendor_splits]
