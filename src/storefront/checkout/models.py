"""Cart, order, serial code, and payment models for django-storefront."""

from decimal import Decimal

from django.conf import settings
from django.db import models

from storefront.catalog.items import CatalogKey
from storefront.catalog.models import CartridgeProduct, ProductLine, SoftwarePlan

_EXACTLY_ONE_CATALOG_ITEM = models.Q(software_plan__isnull=False, cartridge_product__isnull=True) | models.Q(
    software_plan__isnull=True, cartridge_product__isnull=False
)


class Cart(models.Model):
    """A user's shopping cart.

    A user has at most one ``ACTIVE`` cart, enforced by a partial unique
    constraint.  The cart transitions to ``CHECKED_OUT`` when a checkout
    sourced from it commits; the next mutation lazily creates a fresh one.
    """

    class Status(models.TextChoices):
        """Lifecycle states for a shopping cart."""

        ACTIVE = "active", "Active"
        CHECKED_OUT = "checked_out", "Checked Out"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="store_carts",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(status="active"),
                name="checkout_cart_one_active_per_user",
            ),
        ]

    def __str__(self) -> str:
        return f"Cart {self.pk} ({self.user}, {self.status})"


class CartItem(models.Model):
    """A single catalog item held in a cart.

    ``unit_price`` is a snapshot taken when the line was added or updated;
    checkout always re-prices from the catalog.  Exactly one of
    ``software_plan`` or ``cartridge_product`` is set, and each catalog item
    appears at most once per cart.
    """

    cart = models.ForeignKey(
        Cart,
        on_delete=models.CASCADE,
        related_name="items",
    )
    software_plan = models.ForeignKey(
        SoftwarePlan,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="cart_items",
    )
    cartridge_product = models.ForeignKey(
        CartridgeProduct,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="cart_items",
    )
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=_EXACTLY_ONE_CATALOG_ITEM,
                name="checkout_cartitem_exactly_one_item",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="checkout_cartitem_quantity_positive",
            ),
            models.UniqueConstraint(
                fields=["cart", "software_plan"],
                condition=models.Q(software_plan__isnull=False),
                name="checkout_cartitem_unique_plan",
            ),
            models.UniqueConstraint(
                fields=["cart", "cartridge_product"],
                condition=models.Q(cartridge_product__isnull=False),
                name="checkout_cartitem_unique_cartridge",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.quantity}x {self.catalog_key}"

    @property
    def catalog_key(self) -> CatalogKey:
        """Return the key of the catalog item this line refers to."""
        if self.software_plan_id is not None:
            return CatalogKey(ProductLine.SOFTWARE, self.software_plan_id)
        return CatalogKey(ProductLine.CARTRIDGE, self.cartridge_product_id)

    @property
    def line_total(self) -> Decimal:
        """Return the snapshot total for this line (unit_price * quantity)."""
        return self.unit_price * self.quantity


class Order(models.Model):
    """A placed order with its billing snapshot.

    Billing fields are captured at checkout and never re-derived from the
    buyer's profile.  ``buyer`` is ``None`` for guest orders.  Orders are
    immutable after creation apart from administrative status changes.
    """

    class Status(models.TextChoices):
        """Lifecycle states for an order."""

        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        FAILED = "failed", "Failed"
        CANCELLED = "cancelled", "Cancelled"

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="store_orders",
    )
    reference = models.CharField(
        max_length=100,
        unique=True,
        help_text='Unique order reference, e.g. "ORD-A1B2C3D4".',
    )
    billing_full_name = models.CharField(max_length=200)
    billing_email = models.EmailField()
    billing_phone = models.CharField(max_length=32)
    billing_address = models.CharField(max_length=500)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.reference} ({self.status})"


class OrderItem(models.Model):
    """A purchased line with its authoritative, server-computed price.

    The catalog links are kept for traceability but may be nulled if the
    catalog row is deleted; ``description`` and ``product_line`` preserve
    what was bought.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_line = models.CharField(max_length=20, choices=ProductLine.choices)
    software_plan = models.ForeignKey(
        SoftwarePlan,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    cartridge_product = models.ForeignKey(
        CartridgeProduct,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    description = models.CharField(max_length=300)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    line_total = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(software_plan__isnull=True) | models.Q(cartridge_product__isnull=True),
                name="checkout_orderitem_at_most_one_item",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="checkout_orderitem_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.quantity}x {self.description}"


class SerialCode(models.Model):
    """One globally unique code per purchased unit."""

    order_item = models.ForeignKey(
        OrderItem,
        on_delete=models.CASCADE,
        related_name="serial_codes",
    )
    code = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return self.code


class Payment(models.Model):
    """A payment record against an order.

    Payments are created already ``SETTLED`` at checkout time; there is no
    pending-then-confirmed phase in this system.
    """

    class Type(models.TextChoices):
        """Supported payment methods."""

        COD = "cod", "Cash on Delivery"
        GATEWAY = "gateway", "Payment Gateway"
        MANUAL = "manual", "Manual"

    class Status(models.TextChoices):
        """Terminal payment states."""

        SETTLED = "settled", "Settled"
        FAILED = "failed", "Failed"

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    payment_type = models.CharField(max_length=20, choices=Type.choices)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.SETTLED,
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    gateway = models.CharField(max_length=100, blank=True, default="")
    reference = models.CharField(max_length=200, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.payment_type} {self.amount} for {self.order.reference}"
