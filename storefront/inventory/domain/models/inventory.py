from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator
from django.db import models
from django.utils import timezone

from storefront.catalog.domain.models.catalog import ProductVariant
from storefront.domain.exceptions import InvalidInput
from storefront.inventory.domain import packs


class InventoryQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def low_stock(self):
        return self.filter(min_stock_level__gt=0, stock_quantity__lte=models.F("min_stock_level"))

    def out_of_stock(self):
        return self.filter(stock_quantity__lte=0)

    def in_stock(self):
        return self.filter(stock_quantity__gt=0)


class Inventory(models.Model):
    """
    Physical stock for a base unit variant.

    Pack variants never own a row here; their stock is derived from the base
    unit's row by the pack resolver.
    """

    product_variant = models.OneToOneField(ProductVariant, on_delete=models.CASCADE, related_name="inventory")
    stock_quantity = models.PositiveIntegerField(default=0)
    min_stock_level = models.PositiveIntegerField(default=0, validators=[MaxValueValidator(10000)])
    location = models.CharField(max_length=200, blank=True, null=True)
    notes = models.TextField(max_length=1000, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    last_restock_date = models.DateTimeField(null=True, blank=True)
    last_sold_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = InventoryQuerySet.as_manager()

    class Meta:
        verbose_name_plural = "Inventory"
        ordering = ["-created_at"]
        app_label = "storefront"
        indexes = [
            models.Index(fields=["is_active", "stock_quantity"], name="inventory_active_stock_idx"),
            models.Index(fields=["stock_quantity", "min_stock_level"], name="inventory_stock_min_idx"),
            models.Index(fields=["-last_restock_date"], name="inventory_restock_idx"),
        ]

    def clean(self):
        if not self.product_variant_id:
            return
        try:
            details = packs.classify(packs.build_option_map(self.product_variant.option_pairs()))
        except InvalidInput as e:
            raise ValidationError({"product_variant": str(e)}) from None
        if not details.is_base_unit:
            raise ValidationError(
                {
                    "product_variant": "Inventory can only be kept for base unit variants; "
                    f"this variant is a pack of {details.pack_multiplier}"
                }
            )

    @property
    def stock_status(self):
        if self.stock_quantity <= 0:
            return "Out of Stock"
        if self.stock_quantity <= self.min_stock_level:
            return "Low Stock"
        if self.stock_quantity <= self.min_stock_level * 2:
            return "Medium Stock"
        return "High Stock"

    @property
    def is_low_stock(self):
        return self.min_stock_level > 0 and self.stock_quantity <= self.min_stock_level

    @property
    def is_out_of_stock(self):
        return self.stock_quantity <= 0

    @property
    def days_since_restock(self):
        if not self.last_restock_date:
            return None
        return (timezone.now() - self.last_restock_date).days

    def __str__(self):
        return f"Inventory for {self.product_variant_id}: {self.stock_quantity}"
