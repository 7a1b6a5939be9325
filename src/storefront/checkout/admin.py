"""Django admin configuration for the checkout app."""

from typing import TYPE_CHECKING

from django.contrib import admin

if TYPE_CHECKING:
    from django.http import HttpRequest

from storefront.checkout.models import Cart, CartItem, Order, OrderItem, Payment, SerialCode


class CartItemInline(admin.TabularInline):
    """Inline display of cart items within the cart admin.

    Items are shown as read-only since they are managed through the
    cart service, not directly in the admin.
    """

    model = CartItem
    extra = 0
    readonly_fields = ("software_plan", "cartridge_product", "unit_price", "quantity")


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    """Read-oriented admin for shopping carts with inline items."""

    list_display = ("user", "status", "created_at", "updated_at")
    list_filter = ("status",)
    search_fields = ("user__username", "user__email")
    inlines = (CartItemInline,)


class OrderItemInline(admin.TabularInline):
    """Inline display of order items within the order admin.

    Items are immutable snapshots from checkout and are shown read-only.
    """

    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "product_line",
        "description",
        "quantity",
        "unit_price",
        "line_total",
        "software_plan",
        "cartridge_product",
    )

    def has_add_permission(self, request: "HttpRequest", obj: Order | None = None) -> bool:  # noqa: ARG002, D102
        return False


class PaymentInline(admin.TabularInline):
    """Inline display of payments within the order admin."""

    model = Payment
    extra = 0
    can_delete = False
    readonly_fields = ("payment_type", "status", "amount", "gateway", "reference", "paid_at", "created_at")

    def has_add_permission(self, request: "HttpRequest", obj: Order | None = None) -> bool:  # noqa: ARG002, D102
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin interface for placed orders.

    Everything except ``status`` is read-only: totals, billing details and
    lines are the record of what was sold.
    """

    list_display = ("reference", "buyer", "billing_email", "status", "total", "created_at")
    list_filter = ("status",)
    search_fields = ("reference", "billing_email", "billing_full_name")
    readonly_fields = (
        "reference",
        "buyer",
        "billing_full_name",
        "billing_email",
        "billing_phone",
        "billing_address",
        "total",
        "created_at",
        "updated_at",
    )
    inlines = (OrderItemInline, PaymentInline)

    def has_add_permission(self, request: "HttpRequest") -> bool:  # noqa: ARG002, D102
        return False


@admin.register(SerialCode)
class SerialCodeAdmin(admin.ModelAdmin):
    """Read-only admin for issued serial codes."""

    list_display = ("code", "order_item", "created_at")
    search_fields = ("code", "order_item__order__reference")
    readonly_fields = ("code", "order_item", "created_at")

    def has_add_permission(self, request: "HttpRequest") -> bool:  # noqa: ARG002, D102
        return False

    def has_change_permission(self, request: "HttpRequest", obj: SerialCode | None = None) -> bool:  # noqa: ARG002, D102
        return False

    def has_delete_permission(self, request: "HttpRequest", obj: SerialCode | None = None) -> bool:  # noqa: ARG002, D102
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Read-only admin for payment records."""

    list_display = ("order", "payment_type", "status", "amount", "paid_at")
    list_filter = ("payment_type", "status")
    search_fields = ("order__reference", "reference")
    readonly_fields = ("order", "payment_type", "status", "amount", "gateway", "reference", "paid_at", "created_at")

    def has_add_permission(self, request: "HttpRequest") -> bool:  # noqa: ARG002, D102
        return False

    def has_change_permission(self, request: "HttpRequest", obj: Payment | None = None) -> bool:  # noqa: ARG002, D102
        return False
