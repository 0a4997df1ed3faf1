from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api.views import CampaignViewSet, CouponViewSet, InventoryViewSet, UserCouponAdminViewSet, prometheus_metrics

# Create the main router
router = DefaultRouter()
router.register(r"inventory", InventoryViewSet, basename="inventory")
router.register(r"coupons", CouponViewSet, basename="coupon")
router.register(r"campaigns", CampaignViewSet, basename="campaign")
router.register(r"user-coupons", UserCouponAdminViewSet, basename="user-coupon")

app_name = "storefront"

urlpatterns = [
    # Prometheus metrics endpoint
    path("metrics/", prometheus_metrics.storefront_prometheus_metrics, name="storefront-metrics"),
    path("", include(router.urls)),
]
