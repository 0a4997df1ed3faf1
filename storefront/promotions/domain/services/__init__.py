from .campaign_service import CampaignService
from .coupon_evaluator import CartLine, CartSnapshot, CouponEvaluation, CouponEvaluator, CouponRejection
from .coupon_service import CouponService

__all__ = [
    "CampaignService",
    "CartLine",
    "CartSnapshot",
    "CouponEvaluation",
    "CouponEvaluator",
    "CouponRejection",
    "CouponService",
]
