"""Vertical-agnostic view of catalog items.

Checkout, pricing, and stock reservation never touch ``SoftwarePlan`` or
``CartridgeProduct`` directly.  They work with :class:`CatalogKey`
identifiers and immutable :class:`CatalogSnapshot` values produced by a
per-product-line :class:`CatalogAdapter`, looked up through the module
level ``registry``.

Usage::

    from storefront.catalog.items import get_adapter

    adapter = get_adapter("cartridge")
    rows = adapter.lock([1, 2, 3])
    snapshot = adapter.snapshot(rows[1])
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db import DEFAULT_DB_ALIAS, models

from storefront.catalog.models import CartridgeProduct, ProductLine, SoftwarePlan
from storefront.errors import InvalidRequest
from storefront.settings import get_config


@dataclass(frozen=True, slots=True, order=True)
class CatalogKey:
    """Identifies one catalog row across product lines."""

    product_line: str
    item_id: int

    def __post_init__(self) -> None:
        # Enum members hash by name; keys must hash like the plain value.
        object.__setattr__(self, "product_line", str(self.product_line))

    def __str__(self) -> str:
        return f"{self.product_line}:{self.item_id}"


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    """Pricing and availability of a catalog item, read under lock.

    Attributes:
        key: The catalog identifier.
        name: Human-readable description used in error messages and orders.
        price: Regular unit price.
        special_price: Preferred-buyer unit price, if any.
        is_active: Whether the item may currently be sold.
        stock: Units available for stock-bound items, ``None`` otherwise.
        valid_from: Start of the validity window for time-bound plans.
        valid_until: End of the validity window for time-bound plans.
    """

    key: CatalogKey
    name: str
    price: Decimal
    special_price: Decimal | None
    is_active: bool
    stock: int | None = None
    valid_from: date | None = None
    valid_until: date | None = None

    @property
    def is_stock_bound(self) -> bool:
        """Return True when this item draws from finite stock."""
        return self.stock is not None


class CatalogAdapter:
    """Base adapter mapping one product line onto the catalog abstraction.

    Subclasses set ``product_line``, ``model`` and ``cart_field`` and
    implement ``snapshot()``.  Stock-bound lines also set ``stock_field``.

    Attributes:
        product_line: The :class:`ProductLine` value handled.
        model: The concrete catalog model class.
        cart_field: Name of the foreign key on cart and order items.
        stock_field: Name of the stock column, or ``None`` if unlimited.
    """

    product_line: str = ""
    model: type[models.Model]
    cart_field: str = ""
    stock_field: str | None = None

    @property
    def is_stock_bound(self) -> bool:
        """Return True when items of this line have finite stock."""
        return self.stock_field is not None

    def key(self, item_id: int) -> CatalogKey:
        """Return the catalog key for a row of this line."""
        return CatalogKey(self.product_line, item_id)

    def lock(self, item_ids: list[int], *, using: str = DEFAULT_DB_ALIAS) -> dict[int, models.Model]:
        """Lock and load the given rows, in primary key order.

        Must run inside ``transaction.atomic``.  Ordering the lock
        acquisition keeps two multi-line checkouts from deadlocking.
        Missing ids are simply absent from the result.
        """
        rows = self.get_queryset(using).select_for_update().filter(pk__in=item_ids).order_by("pk")
        return {row.pk: row for row in rows}

    def get_queryset(self, using: str = DEFAULT_DB_ALIAS) -> models.QuerySet:
        """Return the base queryset rows are locked from.

        Override to join in whatever ``snapshot()`` reads beyond the row.
        """
        return self.model.objects.using(using)

    def decrement(self, item_id: int, quantity: int, *, using: str = DEFAULT_DB_ALIAS) -> bool:
        """Decrement stock for a locked row if enough remains.

        Returns:
            ``True`` if exactly one row was updated.
        """
        if self.stock_field is None:
            return True
        updated = (
            self.model.objects.using(using)
            .filter(pk=item_id, **{f"{self.stock_field}__gte": quantity})
            .update(**{self.stock_field: models.F(self.stock_field) - quantity})
        )
        return updated == 1

    def serial_prefix(self) -> str:
        """Return the configured serial code prefix for this line."""
        raise NotImplementedError

    def snapshot(self, obj: models.Model) -> CatalogSnapshot:
        """Build a snapshot from a loaded row."""
        raise NotImplementedError


class SoftwarePlanAdapter(CatalogAdapter):
    """Software plans: unlimited, optionally bounded by a validity window."""

    product_line = ProductLine.SOFTWARE
    model = SoftwarePlan
    cart_field = "software_plan"

    def serial_prefix(self) -> str:
        return get_config().serials.software_prefix

    def get_queryset(self, using: str = DEFAULT_DB_ALIAS) -> models.QuerySet:
        # The parent product row is locked alongside the plan.
        return super().get_queryset(using).select_related("product")

    def snapshot(self, obj: SoftwarePlan) -> CatalogSnapshot:
        return CatalogSnapshot(
            key=self.key(obj.pk),
            name=str(obj),
            price=obj.price,
            special_price=obj.special_price,
            is_active=obj.is_active and obj.product.is_active,
            valid_from=obj.start_date,
            valid_until=obj.expiry_date,
        )


class CartridgeAdapter(CatalogAdapter):
    """Cartridge products: sold from finite stock."""

    product_line = ProductLine.CARTRIDGE
    model = CartridgeProduct
    cart_field = "cartridge_product"
    stock_field = "quantity"

    def serial_prefix(self) -> str:
        return get_config().serials.cartridge_prefix

    def snapshot(self, obj: CartridgeProduct) -> CatalogSnapshot:
        return CatalogSnapshot(
            key=self.key(obj.pk),
            name=str(obj),
            price=obj.price,
            special_price=obj.special_price,
            is_active=obj.is_active,
            stock=obj.quantity,
        )


class CatalogRegistry:
    """Registry mapping product lines to their adapters."""

    def __init__(self) -> None:
        """Initialize an empty adapter registry."""
        self._registry: dict[str, CatalogAdapter] = {}

    def register(self, adapter: CatalogAdapter) -> None:
        """Register an adapter under its product line."""
        self._registry[str(adapter.product_line)] = adapter

    def get(self, product_line: str) -> CatalogAdapter | None:
        """Return the adapter for a product line, or ``None``."""
        return self._registry.get(str(product_line))

    def keys(self) -> list[str]:
        """Return all registered product lines."""
        return list(self._registry.keys())


registry = CatalogRegistry()
registry.register(SoftwarePlanAdapter())
registry.register(CartridgeAdapter())


def get_adapter(product_line: str) -> CatalogAdapter:
    """Return the adapter for a product line.

    Raises:
        InvalidRequest: If the product line is unknown.
    """
    adapter = registry.get(product_line)
    if adapter is None:
        raise InvalidRequest(f"Unknown product line '{product_line}'.")
    return adapter
