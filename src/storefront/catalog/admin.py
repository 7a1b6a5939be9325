"""Django admin configuration for the catalog app."""

from django.contrib import admin

from storefront.catalog.models import CartridgeProduct, SoftwarePlan, SoftwareProduct


class SoftwarePlanInline(admin.TabularInline):
    """Inline editing of plans within a software product."""

    model = SoftwarePlan
    extra = 0
    fields = ("plan_name", "duration_type", "price", "special_price", "start_date", "expiry_date", "is_active")


@admin.register(SoftwareProduct)
class SoftwareProductAdmin(admin.ModelAdmin):
    """Admin interface for software products and their plans."""

    list_display = ("name", "brand", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "brand")
    inlines = [SoftwarePlanInline]


@admin.register(SoftwarePlan)
class SoftwarePlanAdmin(admin.ModelAdmin):
    """Admin interface for managing software plans.

    The activation key is sensitive, so it is excluded from the list view
    and only editable on the change form.
    """

    list_display = ("plan_name", "product", "duration_type", "price", "special_price", "expiry_date", "is_active")
    list_filter = ("duration_type", "is_active")
    search_fields = ("plan_name", "product__name")


@admin.register(CartridgeProduct)
class CartridgeProductAdmin(admin.ModelAdmin):
    """Admin interface for cartridge products and their stock."""

    list_display = ("product_name", "model_number", "brand", "price", "special_price", "quantity", "is_active")
    list_filter = ("brand", "is_active")
    search_fields = ("product_name", "model_number")
