"""
Response Serializers for Storefront API Documentation

These serializers define the structure of API responses for OpenAPI schema generation.
They are NOT used for data validation, only for documentation in Swagger/ReDoc.
"""

from rest_framework import serializers

# ===== Common Response Serializers =====


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    detail = serializers.CharField(help_text="Human-readable error message")
    error = serializers.CharField(help_text="Error code identifier", required=False)


class PaginationSerializer(serializers.Serializer):
    current_page = serializers.IntegerField()
    total_pages = serializers.IntegerField()
    total_items = serializers.IntegerField()
    items_per_page = serializers.IntegerField()
    has_next_page = serializers.BooleanField()
    has_prev_page = serializers.BooleanField()


# ===== Inventory Response Serializers =====


class InventoryListResponseSerializer(serializers.Serializer):
    """Paginated inventory list"""

    results = serializers.ListField(child=serializers.DictField(), help_text="Inventory records")
    computed_packs = serializers.ListField(
        child=serializers.DictField(), help_text="Derived pack rows (only when include_computed_packs=true)"
    )
    pagination = PaginationSerializer()


class InventoryUpdateResponseSerializer(serializers.Serializer):
    inventory = serializers.DictField()
    updated_fields = serializers.ListField(child=serializers.CharField())
    stock_change = serializers.IntegerField(help_text="New stock minus old stock")


class StockAdjustmentResponseSerializer(serializers.Serializer):
    inventory = serializers.DictField()
    operation = serializers.CharField()
    quantity = serializers.IntegerField()
    old_stock = serializers.IntegerField()
    new_stock = serializers.IntegerField()


# ===== Coupon Response Serializers =====


class CouponListResponseSerializer(serializers.Serializer):
    results = serializers.ListField(child=serializers.DictField(), help_text="User coupons")
    pagination = PaginationSerializer()


class ApplyCouponResponseSerializer(serializers.Serializer):
    """Successful coupon evaluation"""

    coupon_code = serializers.CharField()
    campaign_name = serializers.CharField()
    discount_type = serializers.CharField()
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    applicable_items = serializers.IntegerField()
    applicable_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    cart_total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    final_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    savings = serializers.DecimalField(max_digits=12, decimal_places=2)


class CouponRejectionResponseSerializer(serializers.Serializer):
    """Coupon could not be applied"""

    detail = serializers.CharField(help_text="Why the coupon was rejected")
    error = serializers.CharField(help_text="Rejection code, e.g. NOT_ELIGIBLE")


class RedeemCouponResponseSerializer(serializers.Serializer):
    coupon_code = serializers.CharField()
    already_redeemed = serializers.BooleanField()
    redeemed_at = serializers.DateTimeField()
    discount_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, allow_null=True, help_text="Discount granted; null when already redeemed"
    )


class GenerateCodesResponseSerializer(serializers.Serializer):
    campaign_id = serializers.IntegerField()
    generated = serializers.ListField(child=serializers.DictField())
    failed = serializers.ListField(child=serializers.DictField())
    total_requested = serializers.IntegerField()
    total_generated = serializers.IntegerField()


class UsageStatisticsResponseSerializer(serializers.Serializer):
    total_coupons = serializers.IntegerField()
    redeemed_coupons = serializers.IntegerField()
    active_coupons = serializers.IntegerField()
    expired_coupons = serializers.IntegerField()
    total_usage = serializers.IntegerField()


# ===== Admin Response Serializers =====


class CampaignListResponseSerializer(serializers.Serializer):
    results = serializers.ListField(child=serializers.DictField(), help_text="Coupon campaigns")
    pagination = PaginationSerializer()


class CampaignDetailResponseSerializer(serializers.Serializer):
    campaign = serializers.DictField()
    statistics = serializers.DictField(
        help_text="total_user_coupons_generated, total_redeemed_coupons and redemption_rate (percent)"
    )


class CampaignDeactivateResponseSerializer(serializers.Serializer):
    campaign = serializers.DictField()
    deactivated_coupons = serializers.IntegerField(help_text="User coupons switched to inactive")


class AdminCouponListResponseSerializer(serializers.Serializer):
    results = serializers.ListField(child=serializers.DictField(), help_text="User coupons across all users")
    pagination = PaginationSerializer()
