"""Cart management service for the storefront.

Handles the single-active-cart lifecycle, line mutations, and the cart view
shown before checkout.  Every mutation runs in one transaction and locks
rows in the same order as checkout (cart, then cart lines, then catalog
rows) so concurrent requests for the same user serialize instead of
corrupting quantities.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import DEFAULT_DB_ALIAS, IntegrityError, models, transaction
from django.utils import timezone

from storefront.catalog.items import CatalogAdapter, CatalogKey, CatalogSnapshot, get_adapter
from storefront.checkout.models import Cart, CartItem
from storefront.checkout.services.inventory import check_available, lock_snapshot
from storefront.checkout.services.pricing import unit_price
from storefront.checkout.services.quantities import (
    LineRequest,
    normalize_lines,
    validate_quantity,
)
from storefront.errors import CartItemNotFound, InvalidRequest, PlanExpired
from storefront.identity import Identity
from storefront.settings import get_config

logger = logging.getLogger(__name__)


@dataclass
class CartLineView:
    """One cart line annotated with live catalog state.

    ``price_changed`` and ``stock_sufficient`` are informational; checkout
    re-prices and re-validates regardless.
    """

    item_id: int
    catalog_key: CatalogKey
    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    current_price: Decimal | None
    price_changed: bool
    is_available: bool
    available_stock: int | None
    stock_sufficient: bool


@dataclass
class CartView:
    """The caller's cart with its lines and snapshot totals.

    ``cart`` is ``None`` when the caller has no active cart.
    """

    cart: Cart | None
    items: list[CartLineView] = field(default_factory=list)
    total: Decimal = Decimal("0.00")
    item_count: int = 0


class CartService:
    """Service for cart reads and mutations.

    Args:
        using: Database alias every query and transaction runs against.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        self.using = using

    # -- Queries -----------------------------------------------------------

    def get_cart_with_items(self, identity: Identity) -> CartView:
        """Return the caller's active cart with live price and stock flags.

        Never creates a cart; returns an empty :class:`CartView` with
        ``cart=None`` when none exists.
        """
        cart = Cart.objects.using(self.using).filter(user_id=identity.user_id, status=Cart.Status.ACTIVE).first()
        if cart is None:
            return CartView(cart=None)

        items = list(
            CartItem.objects.using(self.using)
            .filter(cart=cart)
            .select_related("software_plan__product", "cartridge_product")
        )
        lines = [self._line_view(item, identity.role) for item in items]
        return CartView(
            cart=cart,
            items=lines,
            total=sum((line.line_total for line in lines), Decimal("0.00")),
            item_count=sum(line.quantity for line in lines),
        )

    # -- Commands ----------------------------------------------------------

    def get_or_create_cart(self, identity: Identity) -> Cart:
        """Return the caller's active cart, creating one if none exists.

        Safe under concurrent calls: the loser of an insert race re-reads the
        winner's cart instead of failing.
        """
        with transaction.atomic(using=self.using):
            return self._lock_or_create_cart(identity.user_id)

    def add_item(self, identity: Identity, product_line: str, item_id: int, quantity: int) -> CartItem:
        """Add a catalog item to the cart or increase its quantity.

        The merged quantity (already held plus ``quantity``) is validated
        against stock, and the line's price snapshot is refreshed.

        Args:
            identity: The calling user.
            product_line: Product line of the catalog item.
            item_id: Primary key of the catalog item.
            quantity: Units to add (at least 1).

        Returns:
            The created or updated CartItem.

        Raises:
            InvalidRequest: If the quantity or identifiers are malformed.
            CatalogItemNotFound: If the item does not exist.
            CatalogItemInactive: If the item is not active.
            InsufficientStock: If the merged quantity exceeds stock.
            PlanExpired: If the plan's validity window has ended.
        """
        lines = normalize_lines([LineRequest(product_line, item_id, quantity)])
        with transaction.atomic(using=self.using):
            return self._add_locked(identity, lines[0].key, lines[0].quantity)

    def update_item(self, identity: Identity, cart_item_id: int, quantity: int) -> CartItem:
        """Set the absolute quantity of a line in the caller's active cart.

        Raises:
            InvalidRequest: If the quantity is out of bounds.
            CartItemNotFound: If the line is not in the caller's active cart.
            CatalogItemInactive: If the item is no longer active.
            InsufficientStock: If stock does not cover the new quantity.
        """
        validate_quantity(quantity)
        with transaction.atomic(using=self.using):
            item = self._owned_items(identity, cart_item_id).select_for_update().first()
            if item is None:
                raise CartItemNotFound("Cart item not found.")

            snapshot = lock_snapshot(item.catalog_key, using=self.using)
            check_available(snapshot, quantity)
            price = unit_price(snapshot, identity.role)

            updated = self._owned_items(identity, cart_item_id).update(
                quantity=quantity,
                unit_price=price,
                updated_at=timezone.now(),
            )
            if updated != 1:
                raise CartItemNotFound("Cart item not found.")
            item.refresh_from_db(fields=["quantity", "unit_price", "updated_at"])
            return item

    def remove_item(self, identity: Identity, cart_item_id: int) -> None:
        """Remove a line from the caller's active cart.

        Raises:
            CartItemNotFound: If the line is not in the caller's active cart.
        """
        with transaction.atomic(using=self.using):
            deleted, _ = self._owned_items(identity, cart_item_id).delete()
            if not deleted:
                raise CartItemNotFound("Cart item not found.")

    def clear(self, identity: Identity) -> int:
        """Delete every line in the caller's active cart.

        Returns:
            The number of lines removed (0 when there is no cart).
        """
        with transaction.atomic(using=self.using):
            cart = self._lock_active_cart(identity.user_id)
            if cart is None:
                return 0
            deleted, _ = CartItem.objects.using(self.using).filter(cart=cart).delete()
            return deleted

    def sync(self, identity: Identity, items: list[LineRequest | dict]) -> CartView:
        """Merge a client-held item list into the caller's cart.

        The list is normalized first, then each merged line is applied as an
        :meth:`add_item`.  Either every line applies or none does.

        Returns:
            The resulting cart view.
        """
        lines = normalize_lines(items)
        with transaction.atomic(using=self.using):
            for line in sorted(lines, key=lambda ln: ln.key):
                self._add_locked(identity, line.key, line.quantity)
        return self.get_cart_with_items(identity)

    # -- Checkout support --------------------------------------------------

    def lock_for_checkout(self, identity: Identity) -> tuple[Cart | None, list[CartItem]]:
        """Lock the caller's active cart and all its lines.

        Must run inside the checkout transaction.  A second concurrent
        checkout for the same user blocks here until the first finishes,
        then finds the cart already checked out.
        """
        cart = self._lock_active_cart(identity.user_id)
        if cart is None:
            return None, []
        items = list(CartItem.objects.using(self.using).select_for_update().filter(cart=cart).order_by("pk"))
        return cart, items

    def finalize(self, cart: Cart) -> None:
        """Empty and retire a cart consumed by a checkout.

        Must run inside the checkout transaction.
        """
        CartItem.objects.using(self.using).filter(cart=cart).delete()
        cart.status = Cart.Status.CHECKED_OUT
        cart.save(using=self.using, update_fields=["status", "updated_at"])
        logger.info("Cart %s checked out", cart.pk)

    # -- Internals ---------------------------------------------------------

    def _lock_active_cart(self, user_id: int) -> Cart | None:
        return (
            Cart.objects.using(self.using)
            .select_for_update()
            .filter(user_id=user_id, status=Cart.Status.ACTIVE)
            .first()
        )

    def _lock_or_create_cart(self, user_id: int) -> Cart:
        cart = self._lock_active_cart(user_id)
        if cart is not None:
            return cart

        try:
            with transaction.atomic(using=self.using):
                cart = Cart.objects.using(self.using).create(user_id=user_id, status=Cart.Status.ACTIVE)
        except IntegrityError:
            cart = self._lock_active_cart(user_id)
            if cart is None:
                raise
            return cart

        logger.info("Created cart %s for user %s", cart.pk, user_id)
        return cart

    def _owned_items(self, identity: Identity, cart_item_id: int) -> models.QuerySet[CartItem]:
        return CartItem.objects.using(self.using).filter(
            pk=cart_item_id,
            cart__user_id=identity.user_id,
            cart__status=Cart.Status.ACTIVE,
        )

    def _add_locked(self, identity: Identity, key: CatalogKey, quantity: int) -> CartItem:
        """Add ``quantity`` of ``key`` to the cart; caller holds the transaction."""
        cart = self._lock_or_create_cart(identity.user_id)
        adapter = get_adapter(key.product_line)
        existing = self._cart_line(cart, adapter, key).select_for_update().first()
        snapshot = lock_snapshot(key, using=self.using)

        held = existing.quantity if existing is not None else 0
        self._validate_merged(snapshot, held + quantity)
        price = unit_price(snapshot, identity.role)

        if existing is not None:
            return self._increment(existing, quantity, price)

        max_lines = get_config().max_line_items
        if CartItem.objects.using(self.using).filter(cart=cart).count() >= max_lines:
            raise InvalidRequest(f"Cart cannot contain more than {max_lines} different items.")

        try:
            with transaction.atomic(using=self.using):
                return CartItem.objects.using(self.using).create(
                    cart=cart,
                    unit_price=price,
                    quantity=quantity,
                    **{f"{adapter.cart_field}_id": key.item_id},
                )
        except IntegrityError:
            existing = self._cart_line(cart, adapter, key).select_for_update().first()
            if existing is None:
                raise
            self._validate_merged(snapshot, existing.quantity + quantity)
            return self._increment(existing, quantity, price)

    def _cart_line(self, cart: Cart, adapter: CatalogAdapter, key: CatalogKey) -> models.QuerySet[CartItem]:
        return CartItem.objects.using(self.using).filter(cart=cart, **{f"{adapter.cart_field}_id": key.item_id})

    def _validate_merged(self, snapshot: CatalogSnapshot, merged: int) -> None:
        limit = get_config().max_quantity_per_line
        if merged > limit:
            raise InvalidRequest(f"Quantity cannot exceed {limit} per item.")
        check_available(snapshot, merged)

    def _increment(self, item: CartItem, quantity: int, price: Decimal) -> CartItem:
        CartItem.objects.using(self.using).filter(pk=item.pk).update(
            quantity=models.F("quantity") + quantity,
            unit_price=price,
            updated_at=timezone.now(),
        )
        item.refresh_from_db(fields=["quantity", "unit_price", "updated_at"])
        return item

    def _line_view(self, item: CartItem, role: str) -> CartLineView:
        adapter = get_adapter(item.catalog_key.product_line)
        snapshot = adapter.snapshot(getattr(item, adapter.cart_field))
        try:
            current = unit_price(snapshot, role)
        except PlanExpired:
            current = None

        stock_sufficient = not snapshot.is_stock_bound or snapshot.stock >= item.quantity
        return CartLineView(
            item_id=item.pk,
            catalog_key=item.catalog_key,
            description=snapshot.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
            current_price=current,
            price_changed=current != item.unit_price,
            is_available=snapshot.is_active and current is not None,
            available_stock=snapshot.stock,
            stock_sufficient=stock_sufficient,
        )
