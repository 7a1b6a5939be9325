"""License activation: email a plan's activation key to its buyer.

A buyer proves ownership of a software license with the serial code issued
at checkout plus the billing phone captured on the order.  The key itself
is never returned to the caller; it only goes to the order's billing email.
"""

import logging
from dataclasses import dataclass

from django.core.mail import send_mail
from django.db import DEFAULT_DB_ALIAS
from django.utils import timezone

from storefront.checkout.models import SerialCode
from storefront.errors import ActivationFailed, InvalidRequest, OrderNotFound, PlanExpired
from storefront.settings import get_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActivationResult:
    """Where the key was sent and how long the license has left.

    ``days_remaining`` is ``None`` for plans without an expiry date.
    """

    email: str
    days_remaining: int | None


def build_activation_message(serial: SerialCode, days_remaining: int | None) -> tuple[str, str]:
    """Return the ``(subject, body)`` of the activation key email."""
    order = serial.order_item.order
    plan = serial.order_item.software_plan
    lines = [
        f"Hello {order.billing_full_name},",
        "",
        f"Here is the activation key for {plan}.",
        "",
        f"Serial number: {serial.code}",
        f"Activation key: {plan.activation_key}",
    ]
    if plan.start_date is not None:
        lines.append(f"Valid from: {plan.start_date.isoformat()}")
    if plan.expiry_date is not None:
        lines.append(f"Valid until: {plan.expiry_date.isoformat()} ({days_remaining} days remaining)")
    return f"Activation key for {plan.product.name}", "\n".join(lines)


class ActivationService:
    """Service that verifies a license and sends its activation key.

    Args:
        using: Database alias every query runs against.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        self.using = using

    def send_activation_key(self, serial: str, phone: str) -> ActivationResult:
        """Email the activation key for the license identified by ``serial``.

        The serial must belong to a software order line whose order was
        billed to ``phone``.

        Raises:
            InvalidRequest: If either value is missing, or the plan has no key.
            OrderNotFound: If no license matches the serial and phone.
            PlanExpired: If the plan's expiry date has passed.
            ActivationFailed: If the email could not be sent.
        """
        serial = (serial or "").strip().upper()
        phone = (phone or "").strip()
        if not serial or not phone:
            raise InvalidRequest("Serial number and phone number are required.")

        match = (
            SerialCode.objects.using(self.using)
            .select_related("order_item__order", "order_item__software_plan__product")
            .filter(
                code=serial,
                order_item__software_plan__isnull=False,
                order_item__order__billing_phone=phone,
            )
            .first()
        )
        if match is None:
            raise OrderNotFound("Invalid serial number or phone number. Please check your details.")

        plan = match.order_item.software_plan
        if not plan.activation_key:
            raise InvalidRequest("Activation key not available for this license. Please contact support.")

        days_remaining = None
        if plan.expiry_date is not None:
            days_remaining = (plan.expiry_date - timezone.localdate()).days
            if days_remaining < 0:
                raise PlanExpired("This license has expired.")

        order = match.order_item.order
        subject, body = build_activation_message(match, days_remaining)
        try:
            send_mail(subject, body, get_config().confirmation_from_email, [order.billing_email])
        except Exception:
            logger.exception("Failed to send activation key for serial %s", match.code)
            raise ActivationFailed from None

        logger.info("Sent activation key for serial %s (order %s)", match.code, order.reference)
        return ActivationResult(email=order.billing_email, days_remaining=days_remaining)
