from django.contrib import admin

from infrastructure.container import container
from storefront.audit.logger import AuditContext

from .models import (
    AdminAuditLog,
    Category,
    CouponCampaign,
    Inventory,
    Option,
    Order,
    Product,
    ProductVariant,
    UserCoupon,
)


class AuditedModelAdmin(admin.ModelAdmin):
    """Writes an admin audit entry for every save made through the Django admin."""

    audit_resource_type = ""

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        action = "updated" if change else "created"
        container.audit_logger().log_admin_activity(
            AuditContext.from_request(request),
            action_type=f"{self.audit_resource_type.lower()}_{action}",
            resource_type=self.audit_resource_type,
            resource_id=obj.pk,
            changes={"changed_fields": list(form.changed_data), "source": "django_admin"},
        )


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "parent", "is_active", "created_at")
    list_filter = ("is_active", "parent")
    search_fields = ("name", "description")
    prepopulated_fields = {"slug": ("name",)}


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ("sku_code", "price", "sort_order", "is_active")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "is_active", "created_at")
    list_filter = ("is_active", "category")
    search_fields = ("name", "description")
    readonly_fields = ("id", "created_at", "updated_at")
    inlines = [ProductVariantInline]


@admin.register(Option)
class OptionAdmin(admin.ModelAdmin):
    list_display = ("option_type", "option_value", "display_name", "sort_order")
    list_filter = ("option_type",)
    search_fields = ("option_type", "option_value", "display_name")


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ("sku_code", "product", "price", "sort_order", "is_active")
    list_filter = ("is_active",)
    search_fields = ("sku_code", "product__name")
    filter_horizontal = ("option_values",)
    readonly_fields = ("id", "created_at", "updated_at")


@admin.register(Inventory)
class InventoryAdmin(AuditedModelAdmin):
    audit_resource_type = "INVENTORY"
    list_display = (
        "product_variant",
        "stock_quantity",
        "min_stock_level",
        "stock_status",
        "location",
        "is_active",
        "last_restock_date",
    )
    list_filter = ("is_active",)
    search_fields = ("product_variant__sku_code", "location", "notes")
    readonly_fields = ("stock_status", "created_at", "updated_at")
    raw_id_fields = ("product_variant",)

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return self.readonly_fields + ("product_variant",)
        return self.readonly_fields

    def has_delete_permission(self, request, obj=None):
        # Inventory is soft deleted through the API so the audit trail stays complete
        return False


@admin.register(CouponCampaign)
class CouponCampaignAdmin(AuditedModelAdmin):
    audit_resource_type = "COUPON_CAMPAIGN"
    list_display = (
        "name",
        "discount_type",
        "discount_value",
        "valid_from",
        "valid_until",
        "current_global_usage",
        "max_global_usage",
        "is_active",
    )
    list_filter = ("discount_type", "is_active")
    search_fields = ("name", "slug", "code_prefix")
    readonly_fields = ("slug", "current_global_usage", "created_at", "updated_at")
    filter_horizontal = ("applicable_categories", "applicable_variants")

    fieldsets = (
        (None, {"fields": ("name", "slug", "description", "code_prefix", "is_active")}),
        ("Discount", {"fields": ("discount_type", "discount_value", "min_purchase_amount", "max_coupon_discount")}),
        ("Validity", {"fields": ("valid_from", "valid_until")}),
        (
            "Usage",
            {"fields": ("max_global_usage", "current_global_usage", "max_usage_per_user", "is_unique_per_user")},
        ),
        ("Targeting", {"fields": ("eligibility_criteria", "applicable_categories", "applicable_variants")}),
    )


@admin.register(UserCoupon)
class UserCouponAdmin(AuditedModelAdmin):
    audit_resource_type = "USER_COUPON"
    list_display = ("coupon_code", "user", "campaign", "status", "expires_at", "redeemed_at")
    list_filter = ("is_active", "is_redeemed", "campaign")
    search_fields = ("coupon_code", "user__email")
    readonly_fields = ("status", "redeemed_at", "current_usage_count", "created_at", "updated_at")
    raw_id_fields = ("user",)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "buyer", "status", "total_amount", "coupon_code", "created_at")
    list_filter = ("status",)
    search_fields = ("id", "buyer__email", "coupon_code")
    raw_id_fields = ("buyer",)


@admin.register(AdminAuditLog)
class AdminAuditLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "admin", "action_type", "resource_type", "resource_id", "status")
    list_filter = ("action_type", "resource_type", "status")
    search_fields = ("resource_id", "request_id", "admin__email")
    readonly_fields = [field.name for field in AdminAuditLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
