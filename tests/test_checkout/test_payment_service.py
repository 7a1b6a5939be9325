"""Tests for the PaymentService in storefront.checkout.services.payment."""

from decimal import Decimal

import pytest
from django.test import override_settings

from storefront.checkout.models import Order, Payment
from storefront.checkout.services.payment import COD_REFERENCE, PaymentService, parse_payment_type
from storefront.errors import InvalidRequest


@pytest.fixture
def order():
    return Order.objects.create(
        reference="ORD-PAY00001",
        billing_full_name="Alice Smith",
        billing_email="alice@example.com",
        billing_phone="+977 9800000000",
        billing_address="1 Main Street",
        status=Order.Status.PAID,
        total=Decimal("250.00"),
    )


@pytest.fixture
def service():
    return PaymentService()


class TestParsePaymentType:
    @pytest.mark.parametrize("value", ["cod", "gateway", "manual"])
    def test_accepts_known_methods(self, value):
        assert parse_payment_type(value) == value

    @pytest.mark.parametrize("value", ["", "COD", "card", None])
    def test_rejects_unknown_methods(self, value):
        with pytest.raises(InvalidRequest, match="Unsupported payment method"):
            parse_payment_type(value)


@pytest.mark.django_db
class TestRecordSettled:
    def test_cod_payment(self, service, order):
        payment = service.record_settled(order, Payment.Type.COD)

        assert payment.status == Payment.Status.SETTLED
        assert payment.amount == Decimal("250.00")
        assert payment.reference == COD_REFERENCE
        assert payment.gateway == ""
        assert payment.paid_at is not None

    def test_gateway_payment_uses_configured_name(self, service, order):
        with override_settings(STOREFRONT={"gateway_name": "khalti"}):
            payment = service.record_settled(order, "gateway", reference="TXN-42")

        assert payment.gateway == "khalti"
        assert payment.reference == "TXN-42"

    def test_manual_payment(self, service, order):
        payment = service.record_settled(order, "manual", reference="Receipt 17")

        assert payment.payment_type == Payment.Type.MANUAL
        assert payment.reference == "Receipt 17"

    def test_refuses_unpaid_order(self, service, order):
        order.status = Order.Status.PENDING
        order.save()

        with pytest.raises(InvalidRequest, match="paid orders"):
            service.record_settled(order, "cod")

        assert not Payment.objects.exists()

    def test_refuses_second_settled_payment(self, service, order):
        service.record_settled(order, "cod")

        with pytest.raises(InvalidRequest, match="already has a settled payment"):
            service.record_settled(order, "gateway")

        assert Payment.objects.count() == 1

    def test_logs_payment(self, service, order, caplog):
        with caplog.at_level("INFO", logger="storefront.checkout.services.payment"):
            service.record_settled(order, "cod")

        assert "Recorded cod payment of 250.00 for order ORD-PAY00001" in caplog.text
