"""Read-only order queries for buyers, guests, and serial verification."""

from dataclasses import dataclass

from django.db import DEFAULT_DB_ALIAS, models

from storefront.checkout.models import Order, OrderItem, Payment, SerialCode
from storefront.errors import InvalidRequest, OrderNotFound
from storefront.identity import Identity


@dataclass(frozen=True, slots=True)
class SerialLookup:
    """What a serial code was issued for."""

    serial: SerialCode
    order_item: OrderItem
    order: Order
    payment: Payment | None


class OrderQueryService:
    """Service for reading placed orders.

    Lookups never reveal whether an order exists to a caller who does not own
    it: every miss raises :class:`OrderNotFound`.

    Args:
        using: Database alias every query runs against.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        self.using = using

    def _orders(self) -> models.QuerySet[Order]:
        return Order.objects.using(self.using).prefetch_related("items__serial_codes", "payments")

    def get_order(self, order_id: int, identity: Identity) -> Order:
        """Return the caller's order with its items, serials, and payments.

        Raises:
            OrderNotFound: If the order does not exist or belongs to someone else.
        """
        order = self._orders().filter(pk=order_id, buyer_id=identity.user_id).first()
        if order is None:
            raise OrderNotFound("Order not found.")
        return order

    def get_guest_order(self, reference: str, email: str) -> Order:
        """Return a guest order matched by reference and billing email.

        The email comparison is case-insensitive.  Orders placed by a
        registered buyer are never returned here.
        """
        if not reference or not email:
            raise InvalidRequest("Order reference and email are required.")
        order = (
            self._orders()
            .filter(reference=reference.strip(), billing_email__iexact=email.strip(), buyer__isnull=True)
            .first()
        )
        if order is None:
            raise OrderNotFound("Order not found.")
        return order

    def list_orders(self, identity: Identity) -> list[Order]:
        """Return the caller's orders, newest first."""
        return list(self._orders().filter(buyer_id=identity.user_id).order_by("-created_at", "-id"))

    def lookup_serial(self, code: str) -> SerialLookup:
        """Resolve a serial code to the purchase it was issued for.

        Raises:
            OrderNotFound: If no serial code matches.
        """
        serial = (
            SerialCode.objects.using(self.using)
            .select_related("order_item__order")
            .filter(code=code.strip().upper())
            .first()
        )
        if serial is None:
            raise OrderNotFound("Serial code not found.")

        order = serial.order_item.order
        payment = (
            Payment.objects.using(self.using)
            .filter(order=order, status=Payment.Status.SETTLED)
            .order_by("-created_at")
            .first()
        )
        return SerialLookup(serial=serial, order_item=serial.order_item, order=order, payment=payment)
