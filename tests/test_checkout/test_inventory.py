"""Tests for catalog locking and stock reservation."""

from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import transaction

from storefront.catalog.items import CatalogAdapter, CatalogKey
from storefront.catalog.models import CartridgeProduct, SoftwarePlan, SoftwareProduct
from storefront.checkout.services.inventory import (
    check_available,
    lock_and_fetch,
    lock_snapshot,
    reserve_stock,
)
from storefront.checkout.services.quantities import NormalizedLine
from storefront.errors import CatalogItemInactive, CatalogItemNotFound, InsufficientStock

# -- Fixtures -----------------------------------------------------------------


@pytest.fixture
def toner():
    return CartridgeProduct.objects.create(
        product_name="Black Toner",
        model_number="TN-100",
        price=Decimal("100.00"),
        quantity=5,
    )


@pytest.fixture
def drum():
    return CartridgeProduct.objects.create(
        product_name="Drum Unit",
        model_number="DR-200",
        price=Decimal("40.00"),
        quantity=2,
    )


@pytest.fixture
def plan():
    product = SoftwareProduct.objects.create(name="Office Suite")
    return SoftwarePlan.objects.create(product=product, plan_name="Monthly", price=Decimal("15.00"))


def _line(obj, quantity):
    line = "software" if isinstance(obj, SoftwarePlan) else "cartridge"
    return NormalizedLine(CatalogKey(line, obj.pk), quantity)


# =============================================================================
# lock_and_fetch
# =============================================================================


@pytest.mark.django_db
class TestLockAndFetch:
    def test_returns_snapshot_per_line(self, toner, plan):
        lines = [_line(toner, 2), _line(plan, 3)]

        with transaction.atomic():
            snapshots = lock_and_fetch(lines)

        assert set(snapshots) == {line.key for line in lines}
        assert snapshots[lines[0].key].stock == 5
        assert snapshots[lines[1].key].stock is None

    def test_missing_item_raises_not_found(self, toner):
        lines = [NormalizedLine(CatalogKey("cartridge", toner.pk + 999), 1)]

        with transaction.atomic(), pytest.raises(CatalogItemNotFound) as exc_info:
            lock_and_fetch(lines)

        assert exc_info.value.status_code == 404

    def test_inactive_item_raises_conflict(self, toner):
        toner.is_active = False
        toner.save()

        with transaction.atomic(), pytest.raises(CatalogItemInactive, match="no longer available") as exc_info:
            lock_and_fetch([_line(toner, 1)])

        assert exc_info.value.status_code == 409

    def test_insufficient_stock_reports_available_and_requested(self, drum):
        with transaction.atomic(), pytest.raises(InsufficientStock) as exc_info:
            lock_and_fetch([_line(drum, 3)])

        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3
        assert "Only 2 of 'Drum Unit (DR-200)' available, but 3 requested." in exc_info.value.messages

    def test_software_is_never_stock_limited(self, plan):
        with transaction.atomic():
            snapshots = lock_and_fetch([_line(plan, 100)])

        assert len(snapshots) == 1

    def test_locks_rows_in_key_order(self, toner, drum, plan):
        lines = [_line(plan, 1), _line(drum, 1), _line(toner, 1)]
        locked = []
        real_lock = CatalogAdapter.lock

        def spy(self, item_ids, *, using):
            locked.append((str(self.product_line), list(item_ids)))
            return real_lock(self, item_ids, using=using)

        with patch.object(CatalogAdapter, "lock", spy), transaction.atomic():
            lock_and_fetch(lines)

        assert locked == [
            ("cartridge", sorted([toner.pk, drum.pk])),
            ("software", [plan.pk]),
        ]


# =============================================================================
# lock_snapshot / check_available
# =============================================================================


@pytest.mark.django_db
class TestLockSnapshot:
    def test_returns_snapshot(self, toner):
        with transaction.atomic():
            snap = lock_snapshot(CatalogKey("cartridge", toner.pk))

        assert snap.name == "Black Toner (TN-100)"

    def test_missing_row(self):
        with transaction.atomic(), pytest.raises(CatalogItemNotFound, match="cartridge:12345"):
            lock_snapshot(CatalogKey("cartridge", 12345))

    def test_check_available_allows_exact_stock(self, toner):
        with transaction.atomic():
            snap = lock_snapshot(CatalogKey("cartridge", toner.pk))

        check_available(snap, 5)


# =============================================================================
# reserve_stock
# =============================================================================


@pytest.mark.django_db
class TestReserveStock:
    def test_decrements_stock_bound_lines_only(self, toner, plan):
        lines = [_line(toner, 2), _line(plan, 4)]

        with transaction.atomic():
            snapshots = lock_and_fetch(lines)
            reserve_stock(lines, snapshots)

        toner.refresh_from_db()
        assert toner.quantity == 3

    def test_failed_decrement_raises(self, toner):
        lines = [_line(toner, 4)]

        with transaction.atomic():
            snapshots = lock_and_fetch(lines)
            CartridgeProduct.objects.filter(pk=toner.pk).update(quantity=1)
            with pytest.raises(InsufficientStock):
                reserve_stock(lines, snapshots)

        toner.refresh_from_db()
        assert toner.quantity == 1

    def test_logs_reservation(self, toner, caplog):
        lines = [_line(toner, 1)]

        with caplog.at_level("INFO", logger="storefront.checkout.services.inventory"), transaction.atomic():
            reserve_stock(lines, lock_and_fetch(lines))

        assert f"Reserved 1 unit(s) of cartridge:{toner.pk}" in caplog.text
