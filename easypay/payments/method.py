"""
Easypay payment method.

Prepared-form method: checkout asks the gateway for a reference, the
payer pays it outside the platform, and the gateway notifies back.
Capture, void and refund do not exist in this flow.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Mapping, Optional

from easypay.errors import EasypayError, UnsupportedError
from easypay.logging import get_logger
from easypay.payments.config import Settings, get_setting_value
from easypay.payments.constants import (
    FIELD_TRANSACTION,
    GATEWAY_CODE,
    SETTING_COUNTRY,
    SETTING_PAYMENT_CLIENT_ID,
    SETTING_PAYMENT_ENTITY_ID,
    SETTING_PAYMENT_USERNAME,
    SETTING_SPLIT_PAYMENTS,
    PaymentStatus,
)
from easypay.services.money import format_money_grouped
from easypay.services.models import Order, PaymentIn, Store

if TYPE_CHECKING:
    from easypay.orders.orchestrator import EasypayOrchestrator

logger = get_logger(__name__)

NBSP = "\xa0"


@dataclass
class ProcessPaymentContext:
    order: Order
    payment: PaymentIn
    store: Optional[Store] = None


@dataclass
class ProcessPaymentResult:
    is_success: bool
    html_form: Optional[str] = None
    outer_id: Optional[str] = None
    new_payment_status: Optional[PaymentStatus] = None
    error: Optional[str] = None


@dataclass
class ValidationResult:
    is_success: bool
    outer_id: Optional[str] = None


@dataclass
class PostProcessContext:
    order: Order
    payment: PaymentIn
    store: Optional[Store]
    outer_id: Optional[str]
    parameters: Mapping[str, str] = field(default_factory=dict)


@dataclass
class PostProcessResult:
    is_success: bool
    order_id: Optional[str] = None
    outer_id: Optional[str] = None
    new_payment_status: Optional[PaymentStatus] = None
    error: Optional[str] = None


def format_reference(reference: int) -> str:
    """Reference as three groups of three digits ("000 123 456", non-breaking spaces)."""
    digits = f"{reference:09d}"
    return NBSP.join(digits[i:i + 3] for i in range(0, len(digits), 3))


class EasypayPaymentMethod:
    """Payment method capability object registered on stores."""

    code = GATEWAY_CODE
    name = "Easypay Payments"
    description = "Easypay payment gateway integration"

    def __init__(
        self,
        orchestrator: Optional["EasypayOrchestrator"] = None,
        settings: Optional[Settings] = None,
        is_active: bool = True,
    ):
        self.orchestrator = orchestrator
        self.settings: Settings = settings or {}
        self.is_active = is_active

    # ==================== SETTINGS ====================

    @property
    def client_id(self) -> int:
        return get_setting_value(self.settings, SETTING_PAYMENT_CLIENT_ID, 0)

    @property
    def username(self) -> Optional[str]:
        return get_setting_value(self.settings, SETTING_PAYMENT_USERNAME)

    @property
    def entity_id(self) -> int:
        return get_setting_value(self.settings, SETTING_PAYMENT_ENTITY_ID, 0)

    @property
    def country(self) -> Optional[str]:
        return get_setting_value(self.settings, SETTING_COUNTRY)

    @property
    def split_payments(self) -> bool:
        return get_setting_value(self.settings, SETTING_SPLIT_PAYMENTS, False)

    # ==================== CHECKOUT ====================

    async def process_payment(self, context: ProcessPaymentContext) -> ProcessPaymentResult:
        """
        Issue a reference for a new payment and render the payment form.

        Errors never escape: a failed reference request is returned as an
        unsuccessful result and leaves the payment untouched.
        """
        payment = context.payment

        if payment.payment_status == PaymentStatus.NEW:
            if self.orchestrator is None:
                raise RuntimeError("EasypayPaymentMethod has no orchestrator")
            try:
                reference = await self.orchestrator.get_payment_reference(
                    context.order, payment, self.split_payments
                )
            except EasypayError as e:
                logger.warning("Easypay reference failed for order %s: %s", context.order.number, e)
                return ProcessPaymentResult(is_success=False, error=str(e))

            payment.outer_id = str(reference)
            payment.payment_status = PaymentStatus.PENDING

        return ProcessPaymentResult(
            is_success=True,
            html_form=self.render_form(payment),
            outer_id=payment.outer_id,
            new_payment_status=payment.payment_status,
        )

    def render_form(self, payment: PaymentIn) -> str:
        rows = [
            f'<tr><td class="easypay-label-entity"></td><td class="easypay-value">{self.entity_id}</td></tr>'
        ]
        if payment.outer_id and payment.outer_id.isdigit():
            rows.append(
                '<tr><td class="easypay-label-reference"></td>'
                f'<td class="easypay-value">{format_reference(int(payment.outer_id))}</td></tr>'
            )
        rows.append(
            '<tr><td class="easypay-label-value"></td>'
            f'<td class="easypay-value">{format_money_grouped(payment.sum)}</td></tr>'
        )
        return f'<form method="POST"><table class="easypay">{"".join(rows)}</table></form>'

    # ==================== NOTIFICATION ====================

    def validate_post_process(self, parameters: Mapping[str, Any]) -> ValidationResult:
        """A notification is valid when it carries the gateway transaction id."""
        transaction_id = parameters.get(FIELD_TRANSACTION)
        return ValidationResult(is_success=bool(transaction_id), outer_id=transaction_id or None)

    def post_process(self, context: PostProcessContext) -> PostProcessResult:
        """Mark a pending payment as paid; anything else is reported as a failure."""
        payment = context.payment
        if payment.payment_status != PaymentStatus.PENDING:
            return PostProcessResult(
                is_success=False,
                order_id=context.order.id,
                outer_id=payment.outer_id,
                new_payment_status=payment.payment_status,
                error=f"Post process payment failed: payment status is {payment.payment_status.value}",
            )

        payment.outer_id = context.outer_id  # transaction identifier
        payment.payment_status = PaymentStatus.PAID
        payment.authorized_date = datetime.now(timezone.utc)
        payment.is_approved = True

        return PostProcessResult(
            is_success=True,
            order_id=context.order.id,
            outer_id=payment.outer_id,
            new_payment_status=payment.payment_status,
        )

    # ==================== UNSUPPORTED ====================

    def capture(self, context: Any) -> None:
        raise UnsupportedError("Capture")

    def void(self, context: Any) -> None:
        raise UnsupportedError("Void")

    def refund(self, context: Any) -> None:
        raise UnsupportedError("Refund")
