"""Tests for the OrderQueryService in storefront.checkout.services.orders."""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from storefront.catalog.models import CartridgeProduct
from storefront.checkout.services.checkout import CheckoutService
from storefront.checkout.services.orders import OrderQueryService
from storefront.checkout.services.quantities import LineRequest
from storefront.errors import InvalidRequest, OrderNotFound
from storefront.identity import Identity

User = get_user_model()

BILLING = {
    "full_name": "Alice Smith",
    "email": "Alice@Example.com",
    "phone": "9800000000",
    "address": "1 Main Street, Kathmandu",
}


@pytest.fixture
def user():
    return User.objects.create_user(username="orderuser", email="orders@example.com", password="testpass123")


@pytest.fixture
def other_user():
    return User.objects.create_user(username="otherorderuser", email="other@example.com", password="testpass123")


@pytest.fixture
def toner():
    return CartridgeProduct.objects.create(
        product_name="Black Toner",
        model_number="TN-100",
        price=Decimal("100.00"),
        quantity=50,
    )


@pytest.fixture
def place_order(toner):
    def _place(identity=None, quantity=1):
        return CheckoutService().checkout_direct(
            identity,
            BILLING,
            [LineRequest("cartridge", toner.pk, quantity)],
            "cod",
        )

    return _place


@pytest.fixture
def service():
    return OrderQueryService()


@pytest.mark.django_db
class TestGetOrder:
    def test_owner_can_read(self, service, user, place_order):
        placed = place_order(Identity(user.pk)).order

        order = service.get_order(placed.pk, Identity(user.pk))

        assert order.pk == placed.pk
        assert order.items.count() == 1
        assert order.payments.count() == 1

    def test_other_user_gets_not_found(self, service, user, other_user, place_order):
        placed = place_order(Identity(user.pk)).order

        with pytest.raises(OrderNotFound) as exc_info:
            service.get_order(placed.pk, Identity(other_user.pk))

        assert exc_info.value.status_code == 404

    def test_list_orders_newest_first(self, service, user, other_user, place_order):
        first = place_order(Identity(user.pk)).order
        second = place_order(Identity(user.pk)).order
        place_order(Identity(other_user.pk))

        orders = service.list_orders(Identity(user.pk))

        assert [o.pk for o in orders] == [second.pk, first.pk]


@pytest.mark.django_db
class TestGuestOrder:
    def test_lookup_by_reference_and_email(self, service, place_order):
        placed = place_order().order

        order = service.get_guest_order(placed.reference, "alice@example.com")

        assert order.pk == placed.pk

    def test_wrong_email(self, service, place_order):
        placed = place_order().order

        with pytest.raises(OrderNotFound):
            service.get_guest_order(placed.reference, "mallory@example.com")

    def test_member_orders_not_exposed(self, service, user, place_order):
        placed = place_order(Identity(user.pk)).order

        with pytest.raises(OrderNotFound):
            service.get_guest_order(placed.reference, "alice@example.com")

    def test_requires_both_fields(self, service):
        with pytest.raises(InvalidRequest):
            service.get_guest_order("", "alice@example.com")


@pytest.mark.django_db
class TestLookupSerial:
    def test_resolves_purchase(self, service, place_order):
        result = place_order(quantity=2)
        code = result.order.items.get().serial_codes.first().code

        found = service.lookup_serial(code.lower())

        assert found.serial.code == code
        assert found.order == result.order
        assert found.order_item.quantity == 2
        assert found.payment == result.payment

    def test_unknown_code(self, service):
        with pytest.raises(OrderNotFound, match="Serial code not found"):
            service.lookup_serial("CT-NOPE-NOPE-NOPE-NOPE")
