from storefront.audit.models import AdminAuditLog
from storefront.catalog.domain.models import Category, Option, Product, ProductVariant
from storefront.inventory.domain.models import Inventory
from storefront.ordering.domain.models import Order
from storefront.promotions.domain.models import CouponCampaign, UserCoupon

__all__ = [
    "AdminAuditLog",
    "Category",
    "CouponCampaign",
    "Inventory",
    "Option",
    "Order",
    "Product",
    "ProductVariant",
    "UserCoupon",
]
