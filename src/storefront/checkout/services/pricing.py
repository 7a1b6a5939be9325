"""Unit price derivation from catalog snapshots.

All functions here are pure: they read nothing but their arguments and the
cached configuration, so checkout and cart code can price a locked snapshot
without further queries.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone

from storefront.catalog.items import CatalogSnapshot
from storefront.errors import PlanExpired
from storefront.settings import get_config

CENTS = Decimal("0.01")


def is_preferred(role: str | None) -> bool:
    """Return True when ``role`` is entitled to special (wholesale) pricing."""
    return bool(role) and role in get_config().preferred_roles


def base_price(snapshot: CatalogSnapshot, role: str | None) -> Decimal:
    """Return the undiscounted price for the caller's role.

    Preferred callers receive ``special_price`` when one is set; every other
    caller always receives ``price``.
    """
    if is_preferred(role) and snapshot.special_price is not None:
        return snapshot.special_price
    return snapshot.price


def prorate(amount: Decimal, *, valid_from: date | None, valid_until: date, today: date) -> Decimal:
    """Scale ``amount`` by the days remaining in a validity window.

    The window runs from ``valid_from`` (or ``today`` when unset) to
    ``valid_until``.  Days are counted from ``max(today, valid_from)``.  The
    full amount is charged unless ``0 < remaining < total``.

    Raises:
        PlanExpired: If ``valid_until`` is not after ``today``.
    """
    if valid_until <= today:
        raise PlanExpired("This plan has expired and cannot be purchased.")

    start = valid_from or today
    total_days = (valid_until - start).days
    reference = max(today, start)
    remaining_days = (valid_until - reference).days

    if 0 < remaining_days < total_days:
        return (amount * remaining_days / total_days).quantize(CENTS, rounding=ROUND_HALF_UP)
    return amount


def unit_price(snapshot: CatalogSnapshot, role: str | None, *, today: date | None = None) -> Decimal:
    """Return the unit price actually charged for ``snapshot``.

    Args:
        snapshot: The catalog state, normally read under lock.
        role: The caller's role, or ``None`` for guests.
        today: Reference date for proration; defaults to the local date.

    Returns:
        The price to charge per unit, quantized to cents.

    Raises:
        PlanExpired: If the item has a validity window that has ended.
    """
    amount = base_price(snapshot, role)
    if snapshot.valid_until is not None:
        amount = prorate(
            amount,
            valid_from=snapshot.valid_from,
            valid_until=snapshot.valid_until,
            today=today or timezone.localdate(),
        )
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
