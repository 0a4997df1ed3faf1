from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, Mock, patch

import pytest
from django.utils import timezone

from storefront.promotions.domain.eligibility import UserHistoryLookup, UserProfile
from storefront.promotions.domain.models.coupon import CouponCampaign, UserCoupon
from storefront.promotions.domain.services.coupon_evaluator import (
    CartSnapshot,
    CouponEvaluator,
    CouponRejection,
    applicable_scope,
    usability_failure,
)


def make_cart(total, *lines):
    return CartSnapshot.from_payload(
        total,
        [
            {"product_variant_id": variant, "category_id": category, "quantity": quantity, "price": price}
            for variant, category, quantity, price in lines
        ],
    )


@pytest.mark.unit
class TestCartSnapshot:
    def test_from_payload(self):
        cart = make_cart("1000.00", ("v1", "c1", 2, "200.00"))
        assert cart.cart_total_amount == Decimal("1000.00")
        assert cart.items[0].line_total == Decimal("400.00")
        assert cart.items[0].category_id == "c1"

    def test_invalid_payload(self):
        with pytest.raises(ValueError):
            CartSnapshot.from_payload("abc", [])
        with pytest.raises(ValueError):
            CartSnapshot.from_payload("10", [{"quantity": 1, "price": "5"}])


@pytest.mark.unit
class TestApplicableScope:
    def setup_method(self):
        self.cart = make_cart(
            "1000.00",
            ("v1", "c1", 2, "200.00"),
            ("v2", "c2", 1, "600.00"),
        )

    def test_no_allow_lists_covers_whole_cart(self):
        assert applicable_scope(self.cart, set(), set()) == (2, Decimal("1000.00"))

    def test_category_allow_list(self):
        assert applicable_scope(self.cart, set(), {"c1"}) == (1, Decimal("400.00"))

    def test_variant_allow_list(self):
        assert applicable_scope(self.cart, {"v2"}, {"c9"}) == (1, Decimal("600.00"))

    def test_line_counted_once_when_variant_and_category_match(self):
        assert applicable_scope(self.cart, {"v1"}, {"c1"}) == (1, Decimal("400.00"))

    def test_nothing_covered(self):
        assert applicable_scope(self.cart, {"v9"}, set()) == (0, Decimal("0"))


@pytest.mark.unit
class TestUsabilityFailure:
    def setup_method(self):
        self.now = timezone.now()
        self.campaign = Mock(spec=CouponCampaign)
        self.campaign.is_active = True
        self.campaign.is_within_validity.return_value = True
        self.campaign.has_global_capacity.return_value = True
        self.campaign.max_usage_per_user = 1

        self.user_coupon = Mock(spec=UserCoupon)
        self.user_coupon.campaign = self.campaign
        self.user_coupon.is_usable.return_value = True
        self.user_coupon.current_usage_count = 0

    def test_usable(self):
        assert usability_failure(self.user_coupon, self.now) is None

    def test_redeemed_or_expired_coupon(self):
        self.user_coupon.is_usable.return_value = False
        assert usability_failure(self.user_coupon, self.now) == "Coupon is not valid or has expired"

    def test_inactive_campaign(self):
        self.campaign.is_active = False
        assert usability_failure(self.user_coupon, self.now) == "Associated campaign is not valid or active"

    def test_per_user_limit(self):
        self.user_coupon.current_usage_count = 1
        assert usability_failure(self.user_coupon, self.now) == "Maximum usage limit reached for this user"

    def test_global_limit(self):
        self.campaign.has_global_capacity.return_value = False
        assert usability_failure(self.user_coupon, self.now) == "Campaign has reached maximum global usage limit"


@pytest.mark.unit
class TestUserCouponExpiry:
    def setup_method(self):
        self.expires_at = timezone.now()
        self.user_coupon = UserCoupon(coupon_code="SAVE-EXPIRY01", expires_at=self.expires_at)

    def test_expired_at_the_expiry_instant(self):
        assert self.user_coupon.is_expired(self.expires_at)
        assert not self.user_coupon.is_usable(self.expires_at)

    def test_usable_just_before_expiry(self):
        just_before = self.expires_at - timedelta(microseconds=1)
        assert not self.user_coupon.is_expired(just_before)
        assert self.user_coupon.is_usable(just_before)


@pytest.mark.unit
class TestCouponEvaluatorUnit:
    def setup_method(self):
        self.now = timezone.now()
        self.lookup = Mock(spec=UserHistoryLookup)
        self.lookup.get_user.return_value = UserProfile(user_id="u1", date_joined=self.now - timedelta(days=400))
        self.lookup.count_completed_orders.return_value = 0
        self.evaluator = CouponEvaluator(user_lookup=self.lookup)

        self.campaign = MagicMock(spec=CouponCampaign)
        self.campaign.PERCENTAGE = CouponCampaign.PERCENTAGE
        self.campaign.AMOUNT = CouponCampaign.AMOUNT
        self.campaign.name = "Monsoon Sale"
        self.campaign.is_active = True
        self.campaign.is_within_validity.return_value = True
        self.campaign.has_global_capacity.return_value = True
        self.campaign.max_usage_per_user = 1
        self.campaign.min_purchase_amount = Decimal("0.00")
        self.campaign.discount_type = CouponCampaign.PERCENTAGE
        self.campaign.discount_value = Decimal("10.00")
        self.campaign.max_coupon_discount = None
        self.campaign.eligibility_criteria = ["NONE"]
        self.campaign.applicable_variants.values_list.return_value = []
        self.campaign.applicable_categories.values_list.return_value = []

        self.user_coupon = Mock(spec=UserCoupon)
        self.user_coupon.campaign = self.campaign
        self.user_coupon.is_usable.return_value = True
        self.user_coupon.current_usage_count = 0

        self.cart = make_cart("1000.00", ("v1", "c1", 2, "200.00"), ("v2", "c2", 1, "600.00"))

    def evaluate(self, code="save-1234"):
        with patch.object(self.evaluator, "find_user_coupon", return_value=self.user_coupon):
            return self.evaluator.can_apply(code, "u1", self.cart, now=self.now)

    def test_category_scoped_percentage_discount(self):
        self.campaign.applicable_categories.values_list.return_value = ["c1"]

        evaluation = self.evaluate()

        assert evaluation.applicable
        assert evaluation.coupon_code == "SAVE-1234"
        assert evaluation.applicable_items == 1
        assert evaluation.applicable_amount == Decimal("400.00")
        assert evaluation.discount_amount == Decimal("40.00")
        assert evaluation.final_amount == Decimal("960.00")
        assert evaluation.to_dict()["savings"] == Decimal("40.00")

    def test_unknown_coupon(self):
        with patch.object(self.evaluator, "find_user_coupon", return_value=None):
            evaluation = self.evaluator.can_apply("NOPE-0000", "u1", self.cart, now=self.now)

        assert not evaluation.applicable
        assert evaluation.rejection == CouponRejection.NOT_FOUND
        assert evaluation.reason == "Coupon not found or does not belong to you"

    def test_below_minimum(self):
        self.campaign.min_purchase_amount = Decimal("1500.00")

        evaluation = self.evaluate()

        assert evaluation.rejection == CouponRejection.BELOW_MINIMUM
        assert evaluation.reason == "Minimum purchase amount of ₹1500.00 required"

    def test_no_covered_items(self):
        self.campaign.applicable_variants.values_list.return_value = ["v9"]

        evaluation = self.evaluate()

        assert evaluation.rejection == CouponRejection.NOT_APPLICABLE
        assert evaluation.reason == "This coupon is not applicable to any items in your cart"

    def test_not_eligible(self):
        self.campaign.eligibility_criteria = ["FIRST_ORDER"]
        self.lookup.count_completed_orders.return_value = 3

        evaluation = self.evaluate()

        assert evaluation.rejection == CouponRejection.NOT_ELIGIBLE
        assert evaluation.reason == "This coupon is only for first-time buyers"
        assert evaluation.details["failed_criterion"] == "FIRST_ORDER"

    def test_usability_checked_before_minimum(self):
        self.user_coupon.is_usable.return_value = False
        self.campaign.min_purchase_amount = Decimal("1500.00")

        evaluation = self.evaluate()

        assert evaluation.rejection == CouponRejection.NOT_USABLE

    def test_fixed_amount_capped_at_cart_total(self):
        self.campaign.discount_type = CouponCampaign.AMOUNT
        self.campaign.discount_value = Decimal("5000.00")

        evaluation = self.evaluate()

        assert evaluation.discount_amount == Decimal("1000.00")
        assert evaluation.final_amount == Decimal("0.00")
