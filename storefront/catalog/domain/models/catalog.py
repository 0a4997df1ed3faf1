import uuid

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.text import slugify

from .category import Category


class Product(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    slug = models.SlugField(unique=True, blank=True)
    description = models.TextField(blank=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, related_name="products")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "storefront"
        indexes = [
            models.Index(fields=["category", "is_active"], name="product_category_active_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(f"{self.name}-{str(self.id)[:8]}")
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Option(models.Model):
    """A single option type/value pair, e.g. ``pack = 6`` or ``color = red``."""

    option_type = models.CharField(max_length=50, db_index=True)
    option_value = models.CharField(max_length=100)
    display_name = models.CharField(max_length=100, blank=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["option_type", "sort_order", "option_value"]
        app_label = "storefront"
        constraints = [
            models.UniqueConstraint(fields=["option_type", "option_value"], name="unique_option_type_value"),
        ]

    def __str__(self):
        return f"{self.option_type}: {self.option_value}"


class ProductVariant(models.Model):
    """Stock keeping unit defined by a combination of option values."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="variants")
    option_values = models.ManyToManyField(Option, blank=True, related_name="variants")
    sku_code = models.CharField(max_length=50, unique=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sort_order", "created_at", "id"]
        app_label = "storefront"
        indexes = [
            models.Index(fields=["product", "is_active"], name="variant_product_active_idx"),
        ]

    def save(self, *args, **kwargs):
        self.sku_code = self.sku_code.strip().upper()
        super().save(*args, **kwargs)

    def option_pairs(self):
        """Return ``(option_type, option_value)`` tuples, using prefetched rows when present."""
        return [(option.option_type, option.option_value) for option in self.option_values.all()]

    def __str__(self):
        return self.sku_code
