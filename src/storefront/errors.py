"""Typed domain errors raised by the storefront services.

Every error is a Django ``ValidationError`` carrying an HTTP-like
``status_code`` and a stable machine ``code`` so a boundary layer can map
it to a response without the services knowing about transport.
"""

from django.core.exceptions import ValidationError


class StoreError(ValidationError):
    """Base class for all storefront domain errors."""

    status_code: int = 400
    default_code: str = "store_error"

    def __init__(self, message: str, *, code: str | None = None, params: dict | None = None) -> None:
        super().__init__(message, code=code or self.default_code, params=params)

    @property
    def detail(self) -> str:
        """Return the human-readable message."""
        return self.messages[0]

    def as_dict(self) -> dict[str, object]:
        """Return a serialisable representation for the HTTP layer."""
        return {"status": self.status_code, "code": self.code, "message": self.detail}


# -- Request shape ------------------------------------------------------------


class InvalidRequest(StoreError):
    """Malformed billing fields, quantities, or item lists."""

    status_code = 400
    default_code = "invalid_request"


# -- Catalog state ------------------------------------------------------------


class CatalogItemNotFound(StoreError):
    status_code = 404
    default_code = "catalog_item_not_found"


class CatalogItemInactive(StoreError):
    status_code = 409
    default_code = "catalog_item_inactive"


class InsufficientStock(StoreError):
    """Requested quantity exceeds the stock read under lock."""

    status_code = 409
    default_code = "insufficient_stock"

    def __init__(self, name: str, *, available: int, requested: int) -> None:
        self.available = available
        self.requested = requested
        super().__init__(f"Only {available} of '{name}' available, but {requested} requested.")


class PlanExpired(StoreError):
    status_code = 400
    default_code = "plan_expired"


# -- Conflicts ----------------------------------------------------------------


class CartNotFound(StoreError):
    status_code = 404
    default_code = "cart_not_found"


class CartItemNotFound(StoreError):
    status_code = 404
    default_code = "cart_item_not_found"


class EmptyCart(StoreError):
    status_code = 409
    default_code = "empty_cart"


class OrderNotFound(StoreError):
    status_code = 404
    default_code = "order_not_found"


# -- Infrastructure -----------------------------------------------------------


class CheckoutFailed(StoreError):
    """Unexpected failure; details are logged, never surfaced."""

    status_code = 500
    default_code = "checkout_failed"

    def __init__(self, message: str = "Checkout could not be completed. Please try again.") -> None:
        super().__init__(message)


class ActivationFailed(StoreError):
    """The activation key email could not be delivered."""

    status_code = 500
    default_code = "activation_failed"

    def __init__(self, message: str = "Failed to send activation key email. Please try again.") -> None:
        super().__init__(message)
