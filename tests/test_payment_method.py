"""
Tests for the Easypay payment method
"""
from decimal import Decimal

import pytest

from easypay.errors import UnsupportedError
from easypay.orders.orchestrator import EasypayOrchestrator
from easypay.payments.constants import PaymentStatus
from easypay.payments.method import (
    EasypayPaymentMethod,
    PostProcessContext,
    ProcessPaymentContext,
    format_reference,
)

from conftest import FakeOrderRepository, FakeStoreRepository, xml_document


@pytest.fixture
def orchestrator(sample_order, store, catalog, vendors, registry, payment_method):
    instance = EasypayOrchestrator(
        FakeOrderRepository([sample_order]), FakeStoreRepository([store]), catalog, vendors, registry=registry
    )
    payment_method.orchestrator = instance
    return instance


class TestSettings:

    def test_typed_settings(self, payment_method):
        assert payment_method.client_id == 200
        assert payment_method.username == "merchant"
        assert payment_method.entity_id == 10611
        assert payment_method.country == "PT"
        assert payment_method.split_payments is False

    def test_defaults_without_settings(self):
        method = EasypayPaymentMethod()
        assert method.client_id == 0
        assert method.username is None
        assert method.code == "Easypay"


class TestProcessPayment:

    @pytest.mark.asyncio
    async def test_new_payment_gets_reference(self, orchestrator, payment_method, sample_order, gateway):
        gateway.bodies.append(xml_document(ep_status="ok", ep_message="ok", ep_reference="12345"))
        payment = sample_order.in_payments[0]

        result = await payment_method.process_payment(ProcessPaymentContext(order=sample_order, payment=payment))

        assert result.is_success is True
        assert payment.outer_id == "12345"
        assert payment.payment_status == PaymentStatus.PENDING
        assert result.new_payment_status == PaymentStatus.PENDING
        assert "000\xa0012\xa0345" in result.html_form
        assert "100.00" in result.html_form
        assert "10611" in result.html_form

    @pytest.mark.asyncio
    async def test_failure_is_returned_not_raised(self, orchestrator, payment_method, sample_order, gateway):
        gateway.bodies.append(xml_document(ep_status="err", ep_message="Invalid key"))
        payment = sample_order.in_payments[0]

        result = await payment_method.process_payment(ProcessPaymentContext(order=sample_order, payment=payment))

        assert result.is_success is False
        assert result.error == "Invalid key"
        assert payment.payment_status == PaymentStatus.NEW
        assert payment.outer_id is None

    @pytest.mark.asyncio
    async def test_pending_payment_renders_existing_reference(self, orchestrator, payment_method, sample_order, gateway):
        payment = sample_order.in_payments[0]
        payment.payment_status = PaymentStatus.PENDING
        payment.outer_id = "987654321"

        result = await payment_method.process_payment(ProcessPaymentContext(order=sample_order, payment=payment))

        assert result.is_success is True
        assert "987\xa0654\xa0321" in result.html_form
        assert gateway.requests == []


class TestPostProcess:

    def test_validate_requires_transaction(self, payment_method):
        assert payment_method.validate_post_process({"ep_doc": "TX-1"}).outer_id == "TX-1"
        assert payment_method.validate_post_process({"ep_doc": ""}).is_success is False
        assert payment_method.validate_post_process({}).is_success is False

    def test_post_process_marks_paid(self, payment_method, sample_order):
        payment = sample_order.in_payments[0]
        payment.payment_status = PaymentStatus.PENDING

        result = payment_method.post_process(
            PostProcessContext(order=sample_order, payment=payment, store=None, outer_id="TX-1")
        )

        assert result.is_success is True
        assert payment.payment_status == PaymentStatus.PAID
        assert payment.outer_id == "TX-1"
        assert payment.is_approved is True

    def test_post_process_rejects_new_payment(self, payment_method, sample_order):
        payment = sample_order.in_payments[0]

        result = payment_method.post_process(
            PostProcessContext(order=sample_order, payment=payment, store=None, outer_id="TX-1")
        )

        assert result.is_success is False
        assert payment.payment_status == PaymentStatus.NEW
        assert payment.outer_id is None


@pytest.mark.parametrize("operation", ["capture", "void", "refund"])
def test_unsupported_operations(payment_method, operation):
    with pytest.raises(UnsupportedError):
        getattr(payment_method, operation)(None)


def test_format_reference():
    assert format_reference(123456789) == "123\xa0456\xa0789"
    assert format_reference(7) == "000\xa0000\xa0007"


def test_form_groups_thousands(payment_method, sample_order):
    payment = sample_order.in_payments[0]
    payment.sum = Decimal("1234.5")
    assert "1,234.50" in payment_method.render_form(payment)
