"""Order confirmation email, sent after checkout commits.

Connected to :data:`storefront.checkout.signals.order_placed`.  Delivery is
best effort: failures are logged and never propagate, because the order is
already committed and remains valid without the email.
"""

import logging

from django.core.mail import send_mail

from storefront.checkout.models import Order, Payment
from storefront.checkout.signals import order_placed
from storefront.settings import get_config

logger = logging.getLogger(__name__)


def build_confirmation_message(order: Order, payment: Payment | None) -> tuple[str, str]:
    """Return the ``(subject, body)`` of the confirmation email for ``order``."""
    config = get_config()
    lines = [
        f"Hello {order.billing_full_name},",
        "",
        f"Thank you for your order {order.reference}.",
        "",
    ]
    for item in order.items.prefetch_related("serial_codes"):
        lines.append(f"{item.quantity} x {item.description} @ {item.unit_price} {config.currency}")
        lines.extend(f"    {serial.code}" for serial in item.serial_codes.all())
    lines.append("")
    lines.append(f"Total: {order.total} {config.currency}")
    if payment is not None:
        lines.append(f"Payment: {payment.get_payment_type_display()}")
    return f"Order {order.reference} confirmed", "\n".join(lines)


def send_order_confirmation(
    sender: object,  # noqa: ARG001
    order: Order,
    payment: Payment | None = None,
    **kwargs: object,  # noqa: ARG001
) -> None:
    """Email the billing contact a summary of the placed order.

    Args:
        sender: The model class that sent the signal.
        order: The committed order.
        payment: The payment recorded with it, if any.
        **kwargs: Additional keyword arguments passed by the signal.
    """
    config = get_config()
    if not config.send_confirmation_email:
        return

    try:
        subject, body = build_confirmation_message(order, payment)
        send_mail(
            subject,
            body,
            config.confirmation_from_email,
            [order.billing_email],
        )
    except Exception:
        logger.exception("Failed to send confirmation email for order %s", order.reference)
        return

    logger.info("Sent confirmation email for order %s", order.reference)


order_placed.connect(send_order_confirmation, sender=Order, dispatch_uid="storefront.send_order_confirmation")
