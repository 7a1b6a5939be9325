"""Payment recording for placed orders.

Payments settle synchronously when the order is created: a cash-on-delivery
or gateway payment is written directly in its terminal ``SETTLED`` state.
There is no pending phase and no gateway callback handling.
"""

import logging

from django.db import DEFAULT_DB_ALIAS
from django.utils import timezone

from storefront.checkout.models import Order, Payment
from storefront.errors import InvalidRequest
from storefront.settings import get_config

logger = logging.getLogger(__name__)

COD_REFERENCE = "Cash on Delivery"


def parse_payment_type(value: object) -> str:
    """Return ``value`` as a :class:`Payment.Type` value.

    Raises:
        InvalidRequest: If ``value`` is not one of the supported methods.
    """
    if value not in Payment.Type.values:
        allowed = ", ".join(Payment.Type.values)
        raise InvalidRequest(f"Unsupported payment method '{value}'. Choose one of: {allowed}.")
    return Payment.Type(value)


class PaymentService:
    """Service for writing payment records.

    Args:
        using: Database alias every query runs against.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        self.using = using

    def record_settled(self, order: Order, payment_type: str, *, reference: str = "") -> Payment:
        """Record a settled payment for the full order total.

        Must run inside the transaction that created ``order``.

        Args:
            order: A ``PAID`` order without a settled payment.
            payment_type: One of :class:`Payment.Type`.
            reference: Optional external reference (e.g. a receipt number).

        Returns:
            The created Payment with ``SETTLED`` status.

        Raises:
            InvalidRequest: If the payment type is unsupported, the order is
                not paid, or it already has a settled payment.
        """
        payment_type = parse_payment_type(payment_type)
        if order.status != Order.Status.PAID:
            raise InvalidRequest("Settled payments can only be recorded for paid orders.")

        already_settled = Payment.objects.using(self.using).filter(order=order, status=Payment.Status.SETTLED).exists()
        if already_settled:
            raise InvalidRequest(f"Order {order.reference} already has a settled payment.")

        gateway = ""
        if payment_type == Payment.Type.COD:
            reference = reference or COD_REFERENCE
        elif payment_type == Payment.Type.GATEWAY:
            gateway = get_config().gateway_name

        payment = Payment.objects.using(self.using).create(
            order=order,
            payment_type=payment_type,
            status=Payment.Status.SETTLED,
            amount=order.total,
            gateway=gateway,
            reference=reference,
            paid_at=timezone.now(),
        )
        logger.info(
            "Recorded %s payment of %s for order %s",
            payment_type,
            payment.amount,
            order.reference,
        )
        return payment
