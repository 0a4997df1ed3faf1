# Storefront API Serializers

from .coupon_serializers import (
    AdminCouponListQuerySerializer,
    AdminUserCouponSerializer,
    ApplyCouponRequestSerializer,
    CampaignCreateSerializer,
    CampaignListQuerySerializer,
    CampaignSerializer,
    CampaignStatisticsSerializer,
    CampaignSummarySerializer,
    CampaignUpdateSerializer,
    CartItemInputSerializer,
    CouponListQuerySerializer,
    GenerateCodesRequestSerializer,
    RedeemCouponRequestSerializer,
    UserCouponSerializer,
    UserCouponUpdateSerializer,
)
from .inventory_serializers import (
    ComputedPackRowSerializer,
    InventoryCreateSerializer,
    InventoryListQuerySerializer,
    InventorySerializer,
    InventoryUpdateSerializer,
    ProductVariantSummarySerializer,
    StockAdjustmentSerializer,
    VariantStockSerializer,
)

# Import response serializers for API documentation
from .response_serializers import (
    AdminCouponListResponseSerializer,
    ApplyCouponResponseSerializer,
    CampaignDeactivateResponseSerializer,
    CampaignDetailResponseSerializer,
    CampaignListResponseSerializer,
    CouponListResponseSerializer,
    CouponRejectionResponseSerializer,
    ErrorResponseSerializer,
    GenerateCodesResponseSerializer,
    InventoryListResponseSerializer,
    InventoryUpdateResponseSerializer,
    PaginationSerializer,
    RedeemCouponResponseSerializer,
    StockAdjustmentResponseSerializer,
    UsageStatisticsResponseSerializer,
)

__all__ = [
    "AdminCouponListQuerySerializer",
    "AdminCouponListResponseSerializer",
    "AdminUserCouponSerializer",
    "ApplyCouponRequestSerializer",
    "ApplyCouponResponseSerializer",
    "CampaignCreateSerializer",
    "CampaignDeactivateResponseSerializer",
    "CampaignDetailResponseSerializer",
    "CampaignListQuerySerializer",
    "CampaignListResponseSerializer",
    "CampaignSerializer",
    "CampaignStatisticsSerializer",
    "CampaignSummarySerializer",
    "CampaignUpdateSerializer",
    "CartItemInputSerializer",
    "ComputedPackRowSerializer",
    "CouponListQuerySerializer",
    "CouponListResponseSerializer",
    "CouponRejectionResponseSerializer",
    "ErrorResponseSerializer",
    "GenerateCodesRequestSerializer",
    "GenerateCodesResponseSerializer",
    "InventoryCreateSerializer",
    "InventoryListQuerySerializer",
    "InventoryListResponseSerializer",
    "InventorySerializer",
    "InventoryUpdateResponseSerializer",
    "InventoryUpdateSerializer",
    "PaginationSerializer",
    "ProductVariantSummarySerializer",
    "RedeemCouponRequestSerializer",
    "RedeemCouponResponseSerializer",
    "StockAdjustmentResponseSerializer",
    "StockAdjustmentSerializer",
    "UsageStatisticsResponseSerializer",
    "UserCouponSerializer",
    "UserCouponUpdateSerializer",
    "VariantStockSerializer",
]
