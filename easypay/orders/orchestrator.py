"""
Easypay Orchestrator

Drives the two halves of the Easypay flow against order state:
- reference generation at checkout (New -> Pending is applied by the caller)
- reconciliation of gateway notifications (Pending -> Paid)

Errors are raised to the caller; nothing here retries a gateway call.
The periodic scanner is the retry mechanism for missed notifications.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from easypay.errors import (
    ERROR_INVALID_REGISTRATION,
    ERROR_METHOD_NOT_FOUND,
    ERROR_MISSING_BILLING_ADDRESS,
    ERROR_MISSING_ORDER_KEY,
    ERROR_ORDER_NOT_FOUND,
    ERROR_PAYMENT_NOT_FOUND,
    ERROR_REFERENCE_FAILED,
    ERROR_STORE_NOT_FOUND,
    GatewayError,
    NotFoundError,
    UnsupportedError,
    ValidationError,
)
from easypay.gateway.client import GatewayClient, GatewayRequest
from easypay.gateway.registry import ClientRegistry
from easypay.logging import get_logger, sanitize_id_for_logging
from easypay.orders.splits import SplitCalculator
from easypay.payments.constants import (
    FIELD_ORDER_KEY,
    FIELD_REFERENCE,
    FIELD_VALUE,
    GATEWAY_CODE,
)
from easypay.payments.method import EasypayPaymentMethod, PostProcessContext, PostProcessResult
from easypay.services.models import Order, PaymentIn, Store
from easypay.services.money import format_money, round_money
from easypay.services.repositories import (
    CatalogRepository,
    OrderRepository,
    StoreRepository,
    VendorRepository,
)

logger = get_logger(__name__)


def _param_text(value: Any) -> str:
    """Invariant text of a decoded response value for validation parameters."""
    if isinstance(value, Decimal):
        return format_money(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class EasypayOrchestrator:
    """Reference generation and payment reconciliation for Easypay."""

    def __init__(
        self,
        orders: OrderRepository,
        stores: StoreRepository,
        catalog: CatalogRepository,
        vendors: VendorRepository,
        registry: Optional[ClientRegistry] = None,
        splits: Optional[SplitCalculator] = None,
    ):
        self.orders = orders
        self.stores = stores
        self.registry = registry if registry is not None else ClientRegistry()
        self.splits = splits if splits is not None else SplitCalculator(catalog, vendors)

    # ==================== ORDER DETAIL ====================

    async def get_payment_order(self, order_number: str) -> Order:
        """Full order for the gateway detail page."""
        order = await self.orders.get_by_number(order_number)
        if order is None:
            raise NotFoundError(ERROR_ORDER_NOT_FOUND.format(order=order_number))
        return order

    # ==================== REFERENCE GENERATION ====================

    async def get_payment_reference(self, order: Order, payment: PaymentIn, split_payments: bool) -> int:
        """
        Request a payment reference for an order payment.

        The order and payment are not modified; recording the reference as
        the payment's outer id and moving it to Pending is up to the caller.

        Raises:
            ValidationError: Missing billing address, payment method, cost or vendor data
            GatewayError: Gateway failure or no ep_reference in the response
        """
        address = order.billing_address
        if address is None:
            raise ValidationError(ERROR_MISSING_BILLING_ADDRESS.format(order=order.number))

        method = payment.payment_method
        if not isinstance(method, EasypayPaymentMethod):
            raise ValidationError(f"Payment {payment.id} of order {order.number} is not an Easypay payment.")

        request = GatewayRequest(
            client_id=method.client_id,
            username=method.username,
            entity_id=method.entity_id,
            order_code=order.number,
            value=round_money(payment.sum),
            country=method.country,
            customer_name=" ".join([address.first_name or "", address.last_name or ""]).strip(),
            email=address.email,
        )

        if split_payments:
            request.splits.extend(await self.splits.calculate(order, payment))

        client = await self.registry.get(order.store_id, method.settings)
        response = await client.request_reference(request)

        reference = response.get(FIELD_REFERENCE)
        if not isinstance(reference, int):
            raise GatewayError(ERROR_REFERENCE_FAILED.format(order=order.number))

        logger.info(
            "Easypay reference issued for order %s (split=%s)", order.number, request.has_splits
        )
        return reference

    # ==================== RECONCILIATION ====================

    async def _resolve_store_method(self, store_id: str) -> tuple[Store, EasypayPaymentMethod]:
        store = await self.stores.get_by_id(store_id)
        if store is None:
            raise NotFoundError(ERROR_STORE_NOT_FOUND.format(store=store_id))

        method = store.find_payment_method(GATEWAY_CODE)
        if method is None:
            raise NotFoundError(ERROR_METHOD_NOT_FOUND.format(store=store.name))
        return store, method

    async def reconcile_notification(
        self,
        store_id: Optional[str],
        client_id: int,
        username: str,
        transaction_id: str,
        type: Optional[str] = None,
    ) -> PostProcessResult:
        """
        Reconcile a gateway notification with the matching order payment.

        The order is persisted only when the payment method accepted the
        Pending -> Paid transition.

        Raises:
            ValidationError: Bad notification parameters or gateway detail
            NotFoundError: Store, payment method, order or payment not found
            GatewayError: Gateway failure while fetching the payment detail
        """
        if not client_id or not username or not transaction_id:
            raise ValidationError("Notification requires ep_cin, ep_user and ep_doc.")

        store: Optional[Store] = None
        method: Optional[EasypayPaymentMethod] = None
        client: GatewayClient
        if store_id is not None:
            store, method = await self._resolve_store_method(store_id)
            client = await self.registry.get(store_id, method.settings)
        else:
            client = await self.registry.get(None)

        detail = await client.fetch_payment_detail(client_id, username, transaction_id, type)

        order_key = detail.get(FIELD_ORDER_KEY)
        if not order_key:
            raise ValidationError(ERROR_MISSING_ORDER_KEY)

        order = await self.orders.get_by_number(str(order_key))
        if order is None:
            raise NotFoundError(ERROR_ORDER_NOT_FOUND.format(order=order_key))

        if store is None:
            store, method = await self._resolve_store_method(order.store_id)

        parameters = {"OrderId": order.id}
        parameters.update({name: _param_text(value) for name, value in detail.items()})

        validation = method.validate_post_process(parameters)
        if not validation.is_success:
            raise ValidationError(ERROR_INVALID_REGISTRATION)

        payment = self._match_payment(order, detail.get(FIELD_VALUE))

        context = PostProcessContext(
            order=order,
            payment=payment,
            store=store,
            outer_id=validation.outer_id,
            parameters=parameters,
        )
        result = method.post_process(context)

        if result.is_success:
            await self.orders.save(order)
            logger.info(
                "Easypay payment %s registered on order %s",
                sanitize_id_for_logging(transaction_id),
                order.number,
            )
        else:
            logger.warning(
                "Easypay payment %s not registered on order %s: %s",
                sanitize_id_for_logging(transaction_id),
                order.number,
                result.error,
            )
        return result

    @staticmethod
    def _match_payment(order: Order, value: Any) -> PaymentIn:
        """
        Find the Easypay payment whose rounded sum equals the notified value.

        Known limitation: several payments with the same rounded sum cannot
        be told apart; the first one is used and a warning is logged.
        """
        if not isinstance(value, Decimal):
            raise ValidationError(f"Payment detail for order {order.number} has no {FIELD_VALUE}.")

        candidates = [
            p for p in order.in_payments
            if p.gateway_code == GATEWAY_CODE and round_money(p.sum) == value
        ]
        if not candidates:
            raise NotFoundError(ERROR_PAYMENT_NOT_FOUND)
        if len(candidates) > 1:
            logger.warning(
                "Order %s has %d Easypay payments of %s; using payment %s",
                order.number,
                len(candidates),
                value,
                candidates[0].id,
            )
        return candidates[0]

    async def register_payment_by_reference(
        self,
        order_code: str,
        entity_id: int,
        reference: int,
        value: Decimal,
        transaction_id: str,
    ) -> None:
        """Reference-based registration (entity/reference/value) is not offered by the gateway flow."""
        raise UnsupportedError("Registration by reference")
