"""Tests for the order confirmation email receiver."""

from decimal import Decimal
from unittest.mock import patch

import pytest
from django.core import mail
from django.test import override_settings

from storefront.catalog.models import CartridgeProduct
from storefront.checkout.models import Order
from storefront.checkout.notifications import build_confirmation_message, send_order_confirmation
from storefront.checkout.services.checkout import CheckoutService
from storefront.checkout.services.quantities import LineRequest

BILLING = {
    "full_name": "Alice Smith",
    "email": "alice@example.com",
    "phone": "9800000000",
    "address": "1 Main Street, Kathmandu",
}


@pytest.fixture
def toner():
    return CartridgeProduct.objects.create(
        product_name="Black Toner",
        model_number="TN-100",
        price=Decimal("100.00"),
        quantity=5,
    )


@pytest.fixture
def placed(toner):
    # Without capturing, on_commit callbacks never run inside a test transaction.
    return CheckoutService().checkout_direct(None, BILLING, [LineRequest("cartridge", toner.pk, 2)], "cod")


@pytest.mark.django_db
class TestConfirmationMessage:
    def test_subject_and_body(self, placed):
        subject, body = build_confirmation_message(placed.order, placed.payment)

        assert subject == f"Order {placed.order.reference} confirmed"
        assert "Hello Alice Smith," in body
        assert "2 x Black Toner (TN-100) @ 100.00 NPR" in body
        assert "Total: 200.00 NPR" in body
        assert "Payment: Cash on Delivery" in body
        for serial in placed.order.items.get().serial_codes.all():
            assert serial.code in body


@pytest.mark.django_db
class TestSendOrderConfirmation:
    def test_sent_after_checkout_commits(self, toner, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            result = CheckoutService().checkout_direct(None, BILLING, [LineRequest("cartridge", toner.pk, 1)], "cod")

        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.to == ["alice@example.com"]
        assert message.subject == f"Order {result.order.reference} confirmed"
        assert message.from_email == "store@example.com"

    def test_not_sent_before_commit(self, placed):
        assert mail.outbox == []

    def test_disabled_by_config(self, placed):
        with override_settings(STOREFRONT={"send_confirmation_email": False}):
            send_order_confirmation(sender=Order, order=placed.order, payment=placed.payment)

        assert mail.outbox == []

    def test_configured_from_address(self, placed):
        with override_settings(STOREFRONT={"confirmation_from_email": "orders@example.com"}):
            send_order_confirmation(sender=Order, order=placed.order, payment=placed.payment)

        assert mail.outbox[0].from_email == "orders@example.com"

    def test_failure_is_logged_not_raised(self, placed, caplog):
        with patch("storefront.checkout.notifications.send_mail", side_effect=OSError("smtp down")):
            send_order_confirmation(sender=Order, order=placed.order, payment=placed.payment)

        assert f"Failed to send confirmation email for order {placed.order.reference}" in caplog.text
        assert Order.objects.filter(pk=placed.order.pk).exists()
