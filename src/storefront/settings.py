"""Typed configuration for django-storefront.

Reads a single ``STOREFRONT`` dict from Django settings and exposes it as
composed, frozen dataclasses with sensible defaults.

Usage::

    from storefront.settings import get_config

    config = get_config()
    config.max_line_items
    config.serials.software_prefix
    config.preferred_roles
"""

import functools
from collections.abc import Mapping
from dataclasses import dataclass, field

from django.conf import settings
from django.test.signals import setting_changed


@dataclass(frozen=True, slots=True)
class SerialConfig:
    """Serial code generation settings, one prefix per product line."""

    software_prefix: str = "SW"
    cartridge_prefix: str = "CT"
    length: int = 16


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """Top-level django-storefront configuration."""

    serials: SerialConfig = field(default_factory=SerialConfig)
    max_line_items: int = 50
    max_quantity_per_line: int = 100
    preferred_roles: tuple[str, ...] = ("distributor",)
    order_reference_prefix: str = "ORD"
    currency: str = "NPR"
    gateway_name: str = "gateway"
    send_confirmation_email: bool = True
    confirmation_from_email: str | None = None


@functools.lru_cache(maxsize=1)
def get_config() -> StoreConfig:
    """Build and return the storefront configuration.

    Reads ``settings.STOREFRONT`` (a plain dict) and returns a frozen
    :class:`StoreConfig`.  The result is cached; the cache is cleared
    automatically when Django's ``setting_changed`` signal fires (e.g. inside
    ``override_settings``).
    """
    raw = getattr(settings, "STOREFRONT", {})
    if not isinstance(raw, Mapping):
        msg = "STOREFRONT must be a mapping (dict-like object)"
        raise TypeError(msg)
    raw_data = dict(raw)

    serials_data = raw_data.pop("serials", {})
    if not isinstance(serials_data, Mapping):
        msg = "STOREFRONT['serials'] must be a mapping (dict-like object)"
        raise TypeError(msg)

    if "preferred_roles" in raw_data:
        roles = raw_data["preferred_roles"]
        if isinstance(roles, str) or not isinstance(roles, (list, tuple, set, frozenset)):
            msg = "STOREFRONT['preferred_roles'] must be a sequence of role names"
            raise TypeError(msg)
        raw_data["preferred_roles"] = tuple(roles)

    config = StoreConfig(
        serials=SerialConfig(**dict(serials_data)),
        **raw_data,
    )
    _validate_store_config(config)
    return config


def _validate_store_config(config: StoreConfig) -> None:
    """Validate high-impact configuration values with clear error messages."""
    for key in ("max_line_items", "max_quantity_per_line"):
        value = getattr(config, key)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            msg = f"STOREFRONT['{key}'] must be a positive integer"
            raise ValueError(msg)
    if not isinstance(config.order_reference_prefix, str) or not config.order_reference_prefix.strip():
        msg = "STOREFRONT['order_reference_prefix'] must be a non-empty string"
        raise ValueError(msg)
    if not isinstance(config.currency, str) or not config.currency.strip():
        msg = "STOREFRONT['currency'] must be a non-empty string"
        raise ValueError(msg)
    if not isinstance(config.send_confirmation_email, bool):
        msg = "STOREFRONT['send_confirmation_email'] must be a boolean"
        raise TypeError(msg)
    for key in ("software_prefix", "cartridge_prefix"):
        value = getattr(config.serials, key)
        if not isinstance(value, str) or not value.strip():
            msg = f"STOREFRONT['serials']['{key}'] must be a non-empty string"
            raise ValueError(msg)
    length = config.serials.length
    if not isinstance(length, int) or isinstance(length, bool) or length < 8 or length % 4:
        msg = "STOREFRONT['serials']['length'] must be a multiple of 4, at least 8"
        raise ValueError(msg)


def _clear_config_cache(*, setting: str, **kwargs: object) -> None:  # noqa: ARG001
    """Clear the cached config when Django settings change during tests."""
    if setting == "STOREFRONT":
        get_config.cache_clear()


setting_changed.connect(_clear_config_cache, dispatch_uid="storefront.settings.clear_config_cache")
