"""Platform Models - Pydantic models for the entities the integration reads.

Orders, stores, products and vendors are owned by the surrounding
platform; only the fields used by the Easypay flow are declared.
"""
from decimal import Decimal
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from easypay.payments.constants import AddressType, PaymentStatus
from easypay.services.money import to_decimal as _to_decimal


class Address(BaseModel):
    """Order address."""
    model_config = ConfigDict(extra="ignore")

    address_type: AddressType = AddressType.BILLING
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country_name: Optional[str] = None

    @property
    def name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def has_type(self, address_type: AddressType) -> bool:
        return (self.address_type & address_type) == address_type


class LineItem(BaseModel):
    """Order line item."""
    model_config = ConfigDict(extra="ignore")

    id: str
    product_id: str
    name: Optional[str] = None
    quantity: int = 1
    price_with_tax: Decimal = Decimal("0")
    cost: Optional[Decimal] = None  # Vendor cost per unit
    extended_cost_with_tax: Optional[Decimal] = None  # cost * quantity incl. tax

    @field_validator("price_with_tax", "cost", "extended_cost_with_tax", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return _to_decimal(v) if v is not None else None


class PaymentIn(BaseModel):
    """Incoming payment on an order."""
    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    id: str
    gateway_code: Optional[str] = None
    sum: Decimal
    payment_status: PaymentStatus = PaymentStatus.NEW
    outer_id: Optional[str] = None
    is_approved: bool = False
    authorized_date: Optional[datetime] = None
    # Payment method capability object resolved by the platform
    payment_method: Any = Field(default=None, exclude=True)

    @field_validator("sum", mode="before")
    @classmethod
    def convert_sum_to_decimal(cls, v):
        return _to_decimal(v)


class Order(BaseModel):
    """Customer order."""
    model_config = ConfigDict(extra="ignore")

    id: str
    number: str
    store_id: str
    addresses: list[Address] = []
    items: list[LineItem] = []
    in_payments: list[PaymentIn] = []
    tax_total: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    @field_validator("tax_total", "total", mode="before")
    @classmethod
    def convert_totals_to_decimal(cls, v):
        return _to_decimal(v)

    def find_address(self, address_type: AddressType) -> Optional[Address]:
        """First address carrying the given role."""
        return next((a for a in self.addresses if a.has_type(address_type)), None)

    @property
    def billing_address(self) -> Optional[Address]:
        return self.find_address(AddressType.BILLING)

    @property
    def shipping_address(self) -> Optional[Address]:
        return self.find_address(AddressType.SHIPPING)


class Store(BaseModel):
    """Store with its configured payment methods."""
    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    id: str
    name: str
    payment_methods: list[Any] = []

    def find_payment_method(self, code: str) -> Any:
        """First active payment method with the given code, or None."""
        return next(
            (m for m in self.payment_methods if getattr(m, "is_active", False) and getattr(m, "code", None) == code),
            None,
        )


class Product(BaseModel):
    """Catalog product (only vendor assignment is needed)."""
    model_config = ConfigDict(extra="ignore")

    id: str
    vendor: Optional[str] = None  # Vendor id


class VendorAccount(BaseModel):
    """Vendor identity on the gateway, populated when the vendor is loaded."""
    client_id: int = 0
    username: Optional[str] = None
    entity_id: int = 0


class Vendor(BaseModel):
    """Vendor member."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    easypay: VendorAccount = Field(default_factory=VendorAccount)
