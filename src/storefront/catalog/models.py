"""Catalog models for the two storefront product lines.

Software plans are time-bound licenses that are never stock-limited;
cartridge products are physical goods with a finite, decrementing stock.
Both expose the same pricing fields so checkout can treat them uniformly
through :mod:`storefront.catalog.items`.
"""

from django.db import models


class ProductLine(models.TextChoices):
    """The product verticals sold by the storefront."""

    SOFTWARE = "software", "Software"
    CARTRIDGE = "cartridge", "Cartridge"


class SoftwareProduct(models.Model):
    """A software title grouping one or more purchasable plans."""

    name = models.CharField(max_length=200)
    brand = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class SoftwarePlan(models.Model):
    """A purchasable license plan for a software product.

    When ``expiry_date`` is set the plan is sold against a fixed validity
    window and its price is prorated by the days remaining in that window.
    """

    class DurationType(models.TextChoices):
        """Billing period advertised for the plan."""

        MONTHLY = "monthly", "Monthly"
        YEARLY = "yearly", "Yearly"

    product = models.ForeignKey(
        SoftwareProduct,
        on_delete=models.CASCADE,
        related_name="plans",
    )
    plan_name = models.CharField(max_length=200)
    duration_type = models.CharField(
        max_length=20,
        choices=DurationType.choices,
        default=DurationType.YEARLY,
    )
    price = models.DecimalField(max_digits=10, decimal_places=2)
    special_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Price offered to preferred (distributor) buyers.",
    )
    features = models.TextField(blank=True, default="")
    activation_key = models.CharField(max_length=500, blank=True, default="")
    start_date = models.DateField(null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["price", "plan_name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(special_price__isnull=True) | models.Q(special_price__lte=models.F("price")),
                name="catalog_softwareplan_special_price_lte_price",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product.name} - {self.plan_name}"


class CartridgeProduct(models.Model):
    """A physical cartridge sold from finite stock."""

    product_name = models.CharField(max_length=200)
    model_number = models.CharField(max_length=100)
    brand = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2)
    special_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Price offered to preferred (distributor) buyers.",
    )
    quantity = models.PositiveIntegerField(default=0, help_text="Units currently in stock.")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["product_name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(special_price__isnull=True) | models.Q(special_price__lte=models.F("price")),
                name="catalog_cartridge_special_price_lte_price",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name="catalog_cartridge_quantity_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product_name} ({self.model_number})"
