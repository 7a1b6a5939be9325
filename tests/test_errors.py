from types import SimpleNamespace

from django.core.exceptions import ValidationError

from storefront.errors import ActivationFailed, CheckoutFailed, InsufficientStock, InvalidRequest, StoreError
from storefront.identity import Identity


def test_store_errors_are_validation_errors() -> None:
    err = InvalidRequest("Quantity must be at least 1.")

    assert isinstance(err, StoreError)
    assert isinstance(err, ValidationError)
    assert err.as_dict() == {"status": 400, "code": "invalid_request", "message": "Quantity must be at least 1."}


def test_insufficient_stock_message() -> None:
    err = InsufficientStock("Black Toner (TN-100)", available=2, requested=3)

    assert err.detail == "Only 2 of 'Black Toner (TN-100)' available, but 3 requested."
    assert err.as_dict()["status"] == 409


def test_checkout_failed_hides_details() -> None:
    assert CheckoutFailed().as_dict() == {
        "status": 500,
        "code": "checkout_failed",
        "message": "Checkout could not be completed. Please try again.",
    }


def test_activation_failed_is_a_server_error() -> None:
    assert ActivationFailed().as_dict() == {
        "status": 500,
        "code": "activation_failed",
        "message": "Failed to send activation key email. Please try again.",
    }


def test_identity_from_user() -> None:
    assert Identity.from_user(SimpleNamespace(pk=3)) == Identity(user_id=3, role="user")
    assert Identity.from_user(SimpleNamespace(pk=3, role="distributor")).role == "distributor"
    assert Identity.from_user(SimpleNamespace(pk=3, role="distributor"), role="user").role == "user"
