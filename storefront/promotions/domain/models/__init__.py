from .coupon import CouponCampaign, UserCoupon

__all__ = [
    "CouponCampaign",
    "UserCoupon",
]
