"""Checkout service for converting carts or item lists into orders.

The whole checkout runs in one transaction: cart lock, catalog lock and
validation, pricing, stock decrement, order and item inserts, serial codes,
payment, and cart retirement.  Any failure rolls all of it back.  Prices and
quantities are always taken from the locked catalog rows, never from the
request.
"""

import logging
import secrets
import string
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from decimal import Decimal

from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, transaction

from storefront.catalog.items import CatalogSnapshot, get_adapter
from storefront.checkout.forms import BillingForm
from storefront.checkout.models import Order, OrderItem, Payment, SerialCode
from storefront.checkout.services.cart import CartService
from storefront.checkout.services.inventory import lock_and_fetch, reserve_stock
from storefront.checkout.services.payment import PaymentService, parse_payment_type
from storefront.checkout.services.pricing import unit_price
from storefront.checkout.services.quantities import LineRequest, NormalizedLine, normalize_lines
from storefront.checkout.services.serials import generate_serial_codes
from storefront.checkout.signals import order_placed
from storefront.errors import CartNotFound, CheckoutFailed, EmptyCart, InvalidRequest, StoreError
from storefront.identity import Identity
from storefront.settings import get_config

logger = logging.getLogger(__name__)

_REFERENCE_ATTEMPTS = 5


@dataclass(frozen=True, slots=True)
class BillingInfo:
    """Billing snapshot copied onto the order."""

    full_name: str
    email: str
    phone: str
    address: str


@dataclass(frozen=True, slots=True)
class CheckoutResult:
    """The committed order and its settled payment."""

    order: Order
    payment: Payment


@dataclass(frozen=True, slots=True)
class PricedLine:
    """A normalized line priced from its locked snapshot."""

    line: NormalizedLine
    snapshot: CatalogSnapshot
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.line.quantity


def clean_billing(billing: BillingInfo | Mapping[str, object]) -> BillingInfo:
    """Validate billing fields and return the cleaned snapshot.

    Raises:
        InvalidRequest: If any field is missing or malformed.
    """
    if isinstance(billing, BillingInfo):
        data = asdict(billing)
    elif isinstance(billing, Mapping):
        data = dict(billing)
    else:
        raise InvalidRequest("Billing information is required.")

    form = BillingForm(data=data)
    if not form.is_valid():
        problems = "; ".join(f"{name}: {' '.join(messages)}" for name, messages in form.errors.items())
        raise InvalidRequest(f"Invalid billing information. {problems}")
    return BillingInfo(**form.cleaned_data)


def _generate_reference() -> str:
    """Generate an order reference using the configured prefix.

    The prefix is set via ``STOREFRONT["order_reference_prefix"]``
    (default ``"ORD"``), producing references like ``ORD-A1B2C3D4``.
    """
    config = get_config()
    chars = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(chars) for _ in range(8))
    return f"{config.order_reference_prefix}-{suffix}"


class CheckoutService:
    """Service that places orders.

    Args:
        using: Database alias every query and transaction runs against.
        cart_service: Cart collaborator; defaults to one on the same alias.
        payment_service: Payment collaborator; defaults to one on the same
            alias.
    """

    def __init__(
        self,
        using: str = DEFAULT_DB_ALIAS,
        *,
        cart_service: CartService | None = None,
        payment_service: PaymentService | None = None,
    ) -> None:
        self.using = using
        self.carts = cart_service or CartService(using)
        self.payments = payment_service or PaymentService(using)

    def checkout(
        self,
        identity: Identity | None,
        billing: BillingInfo | Mapping[str, object],
        payment_method: str,
        items: list[LineRequest | Mapping[str, object]] | None = None,
    ) -> CheckoutResult:
        """Place an order from the caller's cart or from an explicit item list.

        Without ``items`` the caller's persisted cart is checked out, which
        requires an identity.  With ``items`` a direct checkout is performed
        and the cart, if any, is left untouched.
        """
        if items is not None:
            return self.checkout_direct(identity, billing, items, payment_method)
        if identity is None:
            raise InvalidRequest("Guest checkout requires an item list.")
        return self.checkout_from_cart(identity, billing, payment_method)

    def checkout_from_cart(
        self,
        identity: Identity,
        billing: BillingInfo | Mapping[str, object],
        payment_method: str,
    ) -> CheckoutResult:
        """Convert the caller's active cart into a paid order.

        Args:
            identity: The calling user.
            billing: Billing snapshot for the order.
            payment_method: One of :class:`Payment.Type`.

        Returns:
            The committed order and payment.

        Raises:
            InvalidRequest: If billing or payment method are malformed.
            CartNotFound: If the caller has no active cart.
            EmptyCart: If the active cart has no lines.
            CatalogItemNotFound, CatalogItemInactive, InsufficientStock,
                PlanExpired: If the catalog no longer supports the cart.
            CheckoutFailed: On unexpected database failure.
        """
        cleaned = clean_billing(billing)
        payment_type = parse_payment_type(payment_method)
        return self._run(identity, cleaned, payment_type, lines=None)

    def checkout_direct(
        self,
        identity: Identity | None,
        billing: BillingInfo | Mapping[str, object],
        items: list[LineRequest | Mapping[str, object]],
        payment_method: str,
    ) -> CheckoutResult:
        """Place an order from an explicit item list (guest or direct buy).

        Duplicate lines are merged before any stock or price check.  Prices
        in ``items``, if a client sent any, are ignored.

        Args:
            identity: The calling user, or ``None`` for a guest.
            billing: Billing snapshot for the order.
            items: Requested lines.
            payment_method: One of :class:`Payment.Type`.

        Returns:
            The committed order and payment.
        """
        cleaned = clean_billing(billing)
        payment_type = parse_payment_type(payment_method)
        lines = normalize_lines(items)
        return self._run(identity, cleaned, payment_type, lines=lines)

    def _run(
        self,
        identity: Identity | None,
        billing: BillingInfo,
        payment_type: str,
        *,
        lines: list[NormalizedLine] | None,
    ) -> CheckoutResult:
        buyer = f"user {identity.user_id}" if identity is not None else "guest"
        try:
            with transaction.atomic(using=self.using):
                result = self._place_order(identity, billing, payment_type, lines)
        except StoreError as exc:
            logger.warning("Checkout rejected for %s: %s", buyer, exc.detail)
            raise
        except DatabaseError:
            logger.exception("Checkout failed for %s", buyer)
            raise CheckoutFailed from None

        logger.info(
            "Placed order %s for %s (total %s, %s payment)",
            result.order.reference,
            buyer,
            result.order.total,
            payment_type,
        )
        return result

    def _place_order(
        self,
        identity: Identity | None,
        billing: BillingInfo,
        payment_type: str,
        lines: list[NormalizedLine] | None,
    ) -> CheckoutResult:
        cart = None
        if lines is None:
            cart, cart_items = self.carts.lock_for_checkout(identity)
            if cart is None:
                raise CartNotFound("No active cart found.")
            if not cart_items:
                raise EmptyCart("Cart is empty.")
            lines = normalize_lines(
                [LineRequest(i.catalog_key.product_line, i.catalog_key.item_id, i.quantity) for i in cart_items]
            )

        snapshots = lock_and_fetch(lines, using=self.using)
        role = identity.role if identity is not None else None
        priced = [PricedLine(line, snapshots[line.key], unit_price(snapshots[line.key], role)) for line in lines]
        reserve_stock(lines, snapshots, using=self.using)

        total = sum((p.line_total for p in priced), Decimal("0.00"))
        order = self._create_order(identity, billing, total)
        for p in priced:
            self._create_item(order, p)

        payment = self.payments.record_settled(order, payment_type)

        if cart is not None:
            self.carts.finalize(cart)

        transaction.on_commit(lambda: self._announce(order, payment), using=self.using, robust=True)
        return CheckoutResult(order=order, payment=payment)

    def _create_order(self, identity: Identity | None, billing: BillingInfo, total: Decimal) -> Order:
        for _ in range(_REFERENCE_ATTEMPTS):
            try:
                with transaction.atomic(using=self.using):
                    return Order.objects.using(self.using).create(
                        buyer_id=identity.user_id if identity is not None else None,
                        reference=_generate_reference(),
                        billing_full_name=billing.full_name,
                        billing_email=billing.email,
                        billing_phone=billing.phone,
                        billing_address=billing.address,
                        status=Order.Status.PAID,
                        total=total,
                    )
            except IntegrityError:
                continue
        msg = "Could not allocate a unique order reference"
        raise IntegrityError(msg)

    def _create_item(self, order: Order, priced: PricedLine) -> OrderItem:
        key = priced.line.key
        adapter = get_adapter(key.product_line)
        item = OrderItem.objects.using(self.using).create(
            order=order,
            product_line=key.product_line,
            description=priced.snapshot.name[:300],
            quantity=priced.line.quantity,
            unit_price=priced.unit_price,
            line_total=priced.line_total,
            **{f"{adapter.cart_field}_id": key.item_id},
        )
        codes = generate_serial_codes(key.product_line, priced.line.quantity)
        SerialCode.objects.using(self.using).bulk_create([SerialCode(order_item=item, code=code) for code in codes])
        return item

    def _announce(self, order: Order, payment: Payment) -> None:
        # send_robust logs each failing receiver with its traceback.
        responses = order_placed.send_robust(sender=Order, order=order, payment=payment)
        failed = sum(isinstance(response, Exception) for _, response in responses)
        if failed:
            logger.warning("%d order_placed receiver(s) failed for order %s", failed, order.reference)
