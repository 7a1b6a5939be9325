"""Catalog locking, validation, and stock decrement.

Both functions must run inside the caller's ``transaction.atomic`` block.
:func:`lock_and_fetch` acquires ``SELECT ... FOR UPDATE`` locks on every
referenced catalog row before reading it, and :func:`reserve_stock`
decrements stock while those locks are still held, so no other transaction
can change price or stock between the check and the write.
"""

import logging
from collections import defaultdict

from django.db import DEFAULT_DB_ALIAS

from storefront.catalog.items import CatalogKey, CatalogSnapshot, get_adapter
from storefront.checkout.services.quantities import NormalizedLine
from storefront.errors import CatalogItemInactive, CatalogItemNotFound, InsufficientStock

logger = logging.getLogger(__name__)


def check_available(snapshot: CatalogSnapshot, quantity: int) -> None:
    """Raise if ``snapshot`` cannot be sold in ``quantity`` units.

    Raises:
        CatalogItemInactive: If the item is not active.
        InsufficientStock: If the item is stock-bound and ``quantity``
            exceeds the available stock.
    """
    if not snapshot.is_active:
        raise CatalogItemInactive(f"'{snapshot.name}' is no longer available.")
    if snapshot.is_stock_bound and snapshot.stock < quantity:
        raise InsufficientStock(snapshot.name, available=snapshot.stock, requested=quantity)


def lock_snapshot(key: CatalogKey, *, using: str = DEFAULT_DB_ALIAS) -> CatalogSnapshot:
    """Lock a single catalog row and return its snapshot.

    Raises:
        CatalogItemNotFound: If no such row exists.
    """
    adapter = get_adapter(key.product_line)
    row = adapter.lock([key.item_id], using=using).get(key.item_id)
    if row is None:
        raise CatalogItemNotFound(f"Catalog item {key} not found.")
    return adapter.snapshot(row)


def lock_and_fetch(lines: list[NormalizedLine], *, using: str = DEFAULT_DB_ALIAS) -> dict[CatalogKey, CatalogSnapshot]:
    """Lock every catalog row referenced by ``lines`` and validate it.

    Rows are locked grouped by product line and in primary key order so
    concurrent multi-line checkouts acquire locks in the same sequence.

    Args:
        lines: Normalized lines, one per catalog item.
        using: Database alias to run against.

    Returns:
        A mapping of catalog key to the snapshot read under lock.

    Raises:
        CatalogItemNotFound: If any referenced item does not exist.
        CatalogItemInactive: If any referenced item is inactive.
        InsufficientStock: If any stock-bound item has fewer units than
            requested.
    """
    ids_by_line: dict[str, list[int]] = defaultdict(list)
    for line in lines:
        ids_by_line[line.key.product_line].append(line.key.item_id)

    snapshots: dict[CatalogKey, CatalogSnapshot] = {}
    for product_line in sorted(ids_by_line):
        adapter = get_adapter(product_line)
        rows = adapter.lock(sorted(ids_by_line[product_line]), using=using)
        for pk, row in rows.items():
            snapshots[adapter.key(pk)] = adapter.snapshot(row)

    for line in lines:
        snapshot = snapshots.get(line.key)
        if snapshot is None:
            raise CatalogItemNotFound(f"Catalog item {line.key} not found.")
        check_available(snapshot, line.quantity)

    return snapshots


def reserve_stock(
    lines: list[NormalizedLine],
    snapshots: dict[CatalogKey, CatalogSnapshot],
    *,
    using: str = DEFAULT_DB_ALIAS,
) -> None:
    """Decrement stock for every stock-bound line.

    Each decrement is a conditional ``UPDATE`` that only succeeds while
    enough stock remains, so stock can never go negative even if a caller
    skipped :func:`lock_and_fetch`.

    Raises:
        InsufficientStock: If a conditional decrement matched no row.
    """
    for line in sorted(lines, key=lambda ln: ln.key):
        snapshot = snapshots[line.key]
        if not snapshot.is_stock_bound:
            continue
        adapter = get_adapter(line.key.product_line)
        if not adapter.decrement(line.key.item_id, line.quantity, using=using):
            raise InsufficientStock(snapshot.name, available=snapshot.stock, requested=line.quantity)
        logger.info("Reserved %s unit(s) of %s", line.quantity, line.key)
