from rest_framework import serializers

from storefront.promotions.domain.models.coupon import CouponCampaign, UserCoupon
from storefront.promotions.domain.services.campaign_service import CAMPAIGN_SORTABLE_FIELDS
from storefront.promotions.domain.services.coupon_service import ADMIN_SORTABLE_FIELDS, COUPON_STATUSES


class CampaignSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = CouponCampaign
        fields = [
            "id",
            "name",
            "description",
            "discount_type",
            "discount_value",
            "min_purchase_amount",
            "max_coupon_discount",
            "valid_from",
            "valid_until",
            "max_usage_per_user",
            "eligibility_criteria",
        ]
        read_only_fields = fields


class UserCouponSerializer(serializers.ModelSerializer):
    campaign = CampaignSummarySerializer(read_only=True)
    status = serializers.CharField(read_only=True)
    is_expired = serializers.SerializerMethodField()
    is_currently_valid = serializers.SerializerMethodField()
    days_until_expiry = serializers.IntegerField(read_only=True)
    remaining_usage = serializers.SerializerMethodField()

    class Meta:
        model = UserCoupon
        fields = [
            "id",
            "coupon_code",
            "campaign",
            "status",
            "is_active",
            "is_redeemed",
            "redeemed_at",
            "current_usage_count",
            "expires_at",
            "is_expired",
            "is_currently_valid",
            "days_until_expiry",
            "remaining_usage",
            "created_at",
        ]
        read_only_fields = fields

    def get_is_expired(self, obj) -> bool:
        return obj.is_expired()

    def get_is_currently_valid(self, obj) -> bool:
        return obj.is_usable() and obj.campaign.is_currently_valid()

    def get_remaining_usage(self, obj) -> int:
        return max(obj.campaign.max_usage_per_user - obj.current_usage_count, 0)


class CouponListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=COUPON_STATUSES, default="active")
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=20)


class CartItemInputSerializer(serializers.Serializer):
    product_variant_id = serializers.UUIDField()
    category_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1, default=1)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class ApplyCouponRequestSerializer(serializers.Serializer):
    coupon_code = serializers.CharField(max_length=50)
    cart_total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    items = CartItemInputSerializer(many=True, required=False, default=list)

    def validate_coupon_code(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError("Coupon code is required")
        return value


class RedeemCouponRequestSerializer(serializers.Serializer):
    coupon_code = serializers.CharField(max_length=50)
    user_id = serializers.UUIDField()
    order_id = serializers.UUIDField(required=False, allow_null=True)
    cart_total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    items = CartItemInputSerializer(many=True, required=False, default=list)

    def validate_coupon_code(self, value):
        return value.strip().upper()


class GenerateCodesRequestSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.CharField(max_length=64), allow_empty=False, max_length=1000)
    code_length = serializers.IntegerField(min_value=4, max_value=20, required=False)


# ===== Admin: campaigns =====


class CampaignSerializer(serializers.ModelSerializer):
    category_ids = serializers.PrimaryKeyRelatedField(source="applicable_categories", many=True, read_only=True)
    variant_ids = serializers.PrimaryKeyRelatedField(source="applicable_variants", many=True, read_only=True)

    class Meta:
        model = CouponCampaign
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "code_prefix",
            "discount_type",
            "discount_value",
            "min_purchase_amount",
            "max_coupon_discount",
            "valid_from",
            "valid_until",
            "max_global_usage",
            "current_global_usage",
            "max_usage_per_user",
            "is_unique_per_user",
            "eligibility_criteria",
            "category_ids",
            "variant_ids",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CampaignStatisticsSerializer(serializers.Serializer):
    total_user_coupons_generated = serializers.IntegerField()
    total_redeemed_coupons = serializers.IntegerField()
    redemption_rate = serializers.FloatField()


class CampaignListQuerySerializer(serializers.Serializer):
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
    discount_type = serializers.ChoiceField(choices=CouponCampaign.DISCOUNT_TYPE_CHOICES, required=False)
    search = serializers.CharField(max_length=100, required=False, allow_blank=True)
    sort_by = serializers.ChoiceField(choices=CAMPAIGN_SORTABLE_FIELDS, default="created_at")
    sort_order = serializers.ChoiceField(choices=["asc", "desc"], default="desc")
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=20)


class CampaignWriteSerializer(serializers.Serializer):
    """Field-level checks only; cross-field rules live on the model."""

    name = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    code_prefix = serializers.CharField(max_length=20, required=False, allow_blank=True)
    discount_type = serializers.ChoiceField(choices=CouponCampaign.DISCOUNT_TYPE_CHOICES)
    discount_value = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    min_purchase_amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    max_coupon_discount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    valid_from = serializers.DateTimeField()
    valid_until = serializers.DateTimeField()
    max_global_usage = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    max_usage_per_user = serializers.IntegerField(min_value=1, required=False)
    is_unique_per_user = serializers.BooleanField(required=False)
    eligibility_criteria = serializers.ListField(
        child=serializers.ChoiceField(choices=CouponCampaign.ELIGIBILITY_CHOICES), required=False
    )
    category_ids = serializers.ListField(child=serializers.IntegerField(), required=False)
    variant_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    is_active = serializers.BooleanField(required=False)

    def validate_code_prefix(self, value):
        return value.strip().upper()


class CampaignCreateSerializer(CampaignWriteSerializer):
    pass


class CampaignUpdateSerializer(CampaignWriteSerializer):
    """Partial update; ``slug`` and ``current_global_usage`` are rejected outright."""

    def validate(self, attrs):
        blocked = sorted(field for field in ("slug", "current_global_usage") if field in self.initial_data)
        if blocked:
            raise serializers.ValidationError({field: "This field cannot be updated" for field in blocked})
        if not attrs:
            raise serializers.ValidationError("No fields to update")
        return attrs


# ===== Admin: user coupons =====


class AdminUserCouponSerializer(UserCouponSerializer):
    user_id = serializers.UUIDField(read_only=True)
    campaign_id = serializers.IntegerField(read_only=True)

    class Meta(UserCouponSerializer.Meta):
        fields = ["user_id", "campaign_id", *UserCouponSerializer.Meta.fields, "updated_at"]
        read_only_fields = fields


class AdminCouponListQuerySerializer(serializers.Serializer):
    user_id = serializers.UUIDField(required=False)
    campaign_id = serializers.IntegerField(min_value=1, required=False)
    coupon_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    is_redeemed = serializers.BooleanField(required=False, allow_null=True, default=None)
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
    sort_by = serializers.ChoiceField(choices=ADMIN_SORTABLE_FIELDS, default="created_at")
    sort_order = serializers.ChoiceField(choices=["asc", "desc"], default="desc")
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=20)


class UserCouponUpdateSerializer(serializers.Serializer):
    is_active = serializers.BooleanField(required=False)
    expires_at = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        blocked = sorted(set(self.initial_data) - set(self.fields))
        if blocked:
            raise serializers.ValidationError({field: "This field cannot be updated" for field in blocked})
        if not attrs:
            raise serializers.ValidationError("No fields to update")
        return attrs
