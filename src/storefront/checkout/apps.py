"""Django app configuration for the checkout app."""

from django.apps import AppConfig


class StorefrontCheckoutConfig(AppConfig):
    """Configuration for the checkout app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "storefront.checkout"
    label = "store_checkout"
    verbose_name = "Checkout"

    def ready(self) -> None:
        """Import signal handlers on app startup."""
        import storefront.checkout.notifications  # noqa: F401, PLC0415
