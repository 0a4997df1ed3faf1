from django.conf import settings
from rest_framework import serializers

from storefront.catalog.domain.models.catalog import Option, ProductVariant
from storefront.inventory.domain.models.inventory import Inventory
from storefront.inventory.domain.services.inventory_service import SORTABLE_FIELDS, STOCK_OPERATIONS

MAX_MIN_STOCK_LEVEL = getattr(settings, "INVENTORY_MAX_MIN_STOCK_LEVEL", 10000)


class OptionValueSerializer(serializers.ModelSerializer):
    class Meta:
        model = Option
        fields = ["option_type", "option_value", "display_name"]


class ProductVariantSummarySerializer(serializers.ModelSerializer):
    option_values = OptionValueSerializer(many=True, read_only=True)

    class Meta:
        model = ProductVariant
        fields = ["id", "sku_code", "product_id", "price", "option_values"]


class InventorySerializer(serializers.ModelSerializer):
    product_variant_id = serializers.UUIDField(read_only=True)
    sku_code = serializers.CharField(source="product_variant.sku_code", read_only=True)
    stock_status = serializers.CharField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_out_of_stock = serializers.BooleanField(read_only=True)
    days_since_restock = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Inventory
        fields = [
            "id",
            "product_variant_id",
            "sku_code",
            "stock_quantity",
            "min_stock_level",
            "location",
            "notes",
            "is_active",
            "stock_status",
            "is_low_stock",
            "is_out_of_stock",
            "last_restock_date",
            "last_sold_date",
            "days_since_restock",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComputedPackRowSerializer(serializers.Serializer):
    """Derived stock row for a pack variant; never stored."""

    id = serializers.CharField()
    product_variant = ProductVariantSummarySerializer()
    computed_stock_quantity = serializers.IntegerField()
    pack_multiplier = serializers.IntegerField()
    base_inventory_id = serializers.IntegerField()
    is_computed = serializers.BooleanField()
    stock_status = serializers.CharField()


class InventoryCreateSerializer(serializers.Serializer):
    product_variant_id = serializers.UUIDField(help_text="Base unit variant that owns the stock")
    stock_quantity = serializers.IntegerField(min_value=0, default=0)
    min_stock_level = serializers.IntegerField(min_value=0, max_value=MAX_MIN_STOCK_LEVEL, default=0)
    location = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)


class InventoryUpdateSerializer(serializers.Serializer):
    stock_quantity = serializers.IntegerField(min_value=0, required=False)
    min_stock_level = serializers.IntegerField(min_value=0, max_value=MAX_MIN_STOCK_LEVEL, required=False)
    location = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)
    is_active = serializers.BooleanField(required=False)
    last_sold_date = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        if "product_variant_id" in self.initial_data or "product_variant" in self.initial_data:
            raise serializers.ValidationError(
                {"product_variant_id": "The product variant of an inventory record cannot be changed"}
            )
        if not attrs:
            raise serializers.ValidationError("At least one field must be provided")
        return attrs


class StockAdjustmentSerializer(serializers.Serializer):
    operation = serializers.ChoiceField(choices=STOCK_OPERATIONS)
    quantity = serializers.IntegerField(min_value=0)

    def validate(self, attrs):
        if attrs["operation"] != "set" and attrs["quantity"] == 0:
            raise serializers.ValidationError({"quantity": "Quantity must be positive for add and remove"})
        return attrs


class InventoryListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=10)
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
    stock_status = serializers.ChoiceField(choices=["out_of_stock", "low_stock", "in_stock"], required=False)
    location = serializers.CharField(required=False)
    product_id = serializers.UUIDField(required=False)
    search = serializers.CharField(required=False)
    sort_by = serializers.ChoiceField(choices=SORTABLE_FIELDS, default="created_at")
    sort_order = serializers.ChoiceField(choices=["asc", "desc"], default="desc")
    include_computed_packs = serializers.BooleanField(default=False)


class VariantStockSerializer(serializers.Serializer):
    """Stock view of any variant: the base unit record plus the computed quantity."""

    inventory = InventorySerializer()
    computed_stock_quantity = serializers.IntegerField()
    pack_details = serializers.DictField()
    requested_variant = ProductVariantSummarySerializer()
