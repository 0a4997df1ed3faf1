from .admin_coupon_views import UserCouponAdminViewSet
from .campaign_views import CampaignViewSet
from .coupon_views import CouponViewSet
from .inventory_views import InventoryViewSet

__all__ = ["CampaignViewSet", "CouponViewSet", "InventoryViewSet", "UserCouponAdminViewSet"]
