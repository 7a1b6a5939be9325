"""Validation and merging of requested item lines.

Every checkout and cart sync passes its lines through
:func:`normalize_lines` so that stock and price checks always see exactly
one entry per catalog item.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from storefront.catalog.items import CatalogKey, registry
from storefront.errors import InvalidRequest
from storefront.settings import get_config


@dataclass(frozen=True, slots=True)
class LineRequest:
    """A requested ``{product_line, item_id, quantity}`` line.

    Any price supplied by a client is deliberately not part of this type.
    """

    product_line: str
    item_id: int
    quantity: int


@dataclass(frozen=True, slots=True)
class NormalizedLine:
    """A validated line, unique per catalog item."""

    key: CatalogKey
    quantity: int


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce(item: LineRequest | Mapping[str, object]) -> LineRequest:
    if isinstance(item, LineRequest):
        return item
    if isinstance(item, Mapping):
        missing = [name for name in ("product_line", "item_id", "quantity") if name not in item]
        if missing:
            raise InvalidRequest(f"Item line is missing: {', '.join(missing)}.")
        return LineRequest(
            product_line=item["product_line"],
            item_id=item["item_id"],
            quantity=item["quantity"],
        )
    raise InvalidRequest("Each item line must be an object.")


def validate_quantity(quantity: object) -> int:
    """Return ``quantity`` if it is an integer within the configured bounds.

    Raises:
        InvalidRequest: If the quantity is not an integer, is below 1, or
            exceeds ``max_quantity_per_line``.
    """
    if not _is_int(quantity):
        raise InvalidRequest("Quantity must be a whole number.")
    if quantity < 1:
        raise InvalidRequest("Quantity must be at least 1.")
    limit = get_config().max_quantity_per_line
    if quantity > limit:
        raise InvalidRequest(f"Quantity cannot exceed {limit} per item.")
    return quantity


def normalize_lines(items: Iterable[LineRequest | Mapping[str, object]] | None) -> list[NormalizedLine]:
    """Validate item lines and merge duplicates of the same catalog item.

    Lines are returned in first-seen order.  Each merged quantity must still
    fit within ``max_quantity_per_line``.

    Args:
        items: Requested lines, as :class:`LineRequest` instances or mappings
            with ``product_line``, ``item_id`` and ``quantity`` keys.

    Returns:
        One :class:`NormalizedLine` per distinct catalog item.

    Raises:
        InvalidRequest: If the list is empty, too long, or any line is
            malformed.
    """
    if items is None or isinstance(items, (str, bytes, Mapping)):
        raise InvalidRequest("Items must be a list of item lines.")

    config = get_config()
    known_lines = set(registry.keys())
    merged: dict[CatalogKey, int] = {}

    for raw in items:
        line = _coerce(raw)
        if str(line.product_line) not in known_lines:
            raise InvalidRequest(f"Unknown product line '{line.product_line}'.")
        if not _is_int(line.item_id) or line.item_id < 1:
            raise InvalidRequest("Item id must be a positive integer.")
        quantity = validate_quantity(line.quantity)

        key = CatalogKey(line.product_line, line.item_id)
        merged[key] = merged.get(key, 0) + quantity

    if not merged:
        raise InvalidRequest("Order must have at least one item.")
    if len(merged) > config.max_line_items:
        raise InvalidRequest(f"Order cannot contain more than {config.max_line_items} different items.")

    for key, quantity in merged.items():
        if quantity > config.max_quantity_per_line:
            raise InvalidRequest(
                f"Combined quantity for {key} cannot exceed {config.max_quantity_per_line}.",
            )

    return [NormalizedLine(key=key, quantity=quantity) for key, quantity in merged.items()]
