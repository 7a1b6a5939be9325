"""Django app configuration for the catalog app."""

from django.apps import AppConfig


class StorefrontCatalogConfig(AppConfig):
    """Configuration for the catalog app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "storefront.catalog"
    label = "store_catalog"
    verbose_name = "Catalog"
