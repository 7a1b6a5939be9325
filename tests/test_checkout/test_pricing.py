"""Tests for unit price derivation in storefront.checkout.services.pricing."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.test import override_settings

from storefront.catalog.items import CatalogKey, CatalogSnapshot
from storefront.checkout.services.pricing import base_price, is_preferred, prorate, unit_price
from storefront.errors import PlanExpired

TODAY = date(2026, 7, 1)


def _snapshot(**overrides):
    values = {
        "key": CatalogKey("cartridge", 1),
        "name": "Black Toner (TN-100)",
        "price": Decimal("100.00"),
        "special_price": Decimal("70.00"),
        "is_active": True,
        "stock": 5,
    }
    values.update(overrides)
    return CatalogSnapshot(**values)


class TestRolePricing:
    def test_regular_user_pays_price(self):
        assert unit_price(_snapshot(), "user") == Decimal("100.00")

    def test_guest_pays_price(self):
        assert unit_price(_snapshot(), None) == Decimal("100.00")

    def test_distributor_pays_special_price(self):
        assert unit_price(_snapshot(), "distributor") == Decimal("70.00")

    def test_distributor_falls_back_to_price_without_special(self):
        assert unit_price(_snapshot(special_price=None), "distributor") == Decimal("100.00")

    def test_preferred_roles_are_configurable(self):
        with override_settings(STOREFRONT={"preferred_roles": ["reseller"]}):
            assert is_preferred("reseller") is True
            assert is_preferred("distributor") is False
            assert base_price(_snapshot(), "distributor") == Decimal("100.00")

    def test_result_is_quantized(self):
        assert unit_price(_snapshot(price=Decimal("19.9")), "user") == Decimal("19.90")


class TestProrate:
    def test_full_price_before_window_starts(self):
        amount = prorate(
            Decimal("365.00"),
            valid_from=date(2026, 8, 1),
            valid_until=date(2027, 8, 1),
            today=TODAY,
        )

        assert amount == Decimal("365.00")

    def test_prorated_by_remaining_days(self):
        # 2026-01-01 .. 2027-01-01 is 365 days; 184 remain from 2026-07-01.
        amount = prorate(
            Decimal("365.00"),
            valid_from=date(2026, 1, 1),
            valid_until=date(2027, 1, 1),
            today=TODAY,
        )

        assert amount == Decimal("184.00")

    def test_rounds_half_up(self):
        # 1 of 3 days remaining: 10 / 3 = 3.333...
        amount = prorate(
            Decimal("10.00"),
            valid_from=date(2026, 6, 29),
            valid_until=date(2026, 7, 2),
            today=TODAY,
        )

        assert amount == Decimal("3.33")

    def test_window_without_start_charges_full_price(self):
        amount = prorate(Decimal("50.00"), valid_from=None, valid_until=date(2026, 12, 31), today=TODAY)

        assert amount == Decimal("50.00")

    @pytest.mark.parametrize("until", [TODAY, date(2026, 6, 30)])
    def test_expired_plan_raises(self, until):
        with pytest.raises(PlanExpired, match="expired") as exc_info:
            prorate(Decimal("10.00"), valid_from=date(2026, 1, 1), valid_until=until, today=TODAY)

        assert exc_info.value.status_code == 400


class TestUnitPriceWithWindow:
    def test_prorates_special_price_for_distributor(self):
        snap = _snapshot(
            key=CatalogKey("software", 1),
            stock=None,
            price=Decimal("730.00"),
            special_price=Decimal("365.00"),
            valid_from=date(2026, 1, 1),
            valid_until=date(2027, 1, 1),
        )

        assert unit_price(snap, "distributor", today=TODAY) == Decimal("184.00")

    def test_defaults_to_local_date(self):
        snap = _snapshot(stock=None, valid_from=date(2026, 1, 1), valid_until=date(2026, 7, 1))

        with patch("storefront.checkout.services.pricing.timezone.localdate", return_value=TODAY):
            with pytest.raises(PlanExpired):
                unit_price(snap, "user")

    def test_no_window_means_no_proration(self):
        assert unit_price(_snapshot(), "user", today=TODAY) == Decimal("100.00")
