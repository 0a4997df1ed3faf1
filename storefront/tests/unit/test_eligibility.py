from datetime import timedelta
from unittest.mock import Mock

import pytest
from django.test import override_settings
from django.utils import timezone

from storefront.promotions.domain.eligibility import (
    FIRST_ORDER,
    NEW_USER,
    REFERRAL,
    SPECIFIC_USER_GROUP,
    UserHistoryLookup,
    UserProfile,
    evaluate_eligibility,
)


@pytest.mark.unit
class TestEvaluateEligibility:
    def setup_method(self):
        self.now = timezone.now()
        self.lookup = Mock(spec=UserHistoryLookup)
        self.lookup.get_user.return_value = UserProfile(
            user_id="user-1", date_joined=self.now - timedelta(days=3)
        )
        self.lookup.count_completed_orders.return_value = 0

    def test_open_criteria_skip_user_lookup(self):
        for criteria in ([], None, ["NONE"]):
            result = evaluate_eligibility(criteria, "user-1", self.lookup, now=self.now)
            assert result.eligible
        self.lookup.get_user.assert_not_called()

    def test_first_order_rejects_returning_buyer(self):
        self.lookup.count_completed_orders.return_value = 1

        result = evaluate_eligibility([FIRST_ORDER], "user-1", self.lookup, now=self.now)

        assert not result.eligible
        assert result.reason == "This coupon is only for first-time buyers"
        assert result.failed_criterion == FIRST_ORDER

    def test_first_order_accepts_user_without_orders(self):
        result = evaluate_eligibility([FIRST_ORDER], "user-1", self.lookup, now=self.now)
        assert result.eligible
        self.lookup.count_completed_orders.assert_called_once_with("user-1")

    @override_settings(COUPON_NEW_USER_DAYS=30)
    def test_new_user_window(self):
        assert evaluate_eligibility([NEW_USER], "user-1", self.lookup, now=self.now).eligible

        self.lookup.get_user.return_value = UserProfile(user_id="user-1", date_joined=self.now - timedelta(days=31))
        result = evaluate_eligibility([NEW_USER], "user-1", self.lookup, now=self.now)
        assert not result.eligible
        assert result.reason == "This coupon is only for new users"

    def test_referral_requires_referrer(self):
        result = evaluate_eligibility([REFERRAL], "user-1", self.lookup, now=self.now)
        assert not result.eligible
        assert result.reason == "This coupon is only for referred users"

        self.lookup.get_user.return_value = UserProfile(
            user_id="user-1", date_joined=self.now, referred_by_id="user-0"
        )
        assert evaluate_eligibility([REFERRAL], "user-1", self.lookup, now=self.now).eligible

    @override_settings(COUPON_ALLOWED_USER_GROUPS=["PREMIUM", "VIP"])
    def test_specific_user_group(self):
        result = evaluate_eligibility([SPECIFIC_USER_GROUP], "user-1", self.lookup, now=self.now)
        assert not result.eligible
        assert result.reason == "This coupon is only for premium users"

        self.lookup.get_user.return_value = UserProfile(user_id="user-1", date_joined=self.now, user_group="vip")
        assert evaluate_eligibility([SPECIFIC_USER_GROUP], "user-1", self.lookup, now=self.now).eligible

    @override_settings(COUPON_ALLOWED_USER_GROUPS=["gold"])
    def test_specific_user_group_follows_configured_groups(self):
        self.lookup.get_user.return_value = UserProfile(user_id="user-1", date_joined=self.now, user_group="VIP")
        result = evaluate_eligibility([SPECIFIC_USER_GROUP], "user-1", self.lookup, now=self.now)
        assert not result.eligible
        assert result.failed_criterion == SPECIFIC_USER_GROUP

        self.lookup.get_user.return_value = UserProfile(user_id="user-1", date_joined=self.now, user_group="Gold")
        assert evaluate_eligibility([SPECIFIC_USER_GROUP], "user-1", self.lookup, now=self.now).eligible

    def test_first_failing_criterion_is_reported(self):
        self.lookup.count_completed_orders.return_value = 2

        result = evaluate_eligibility([REFERRAL, FIRST_ORDER], "user-1", self.lookup, now=self.now)

        assert result.failed_criterion == REFERRAL
        self.lookup.count_completed_orders.assert_not_called()

    def test_unknown_user(self):
        self.lookup.get_user.return_value = None

        result = evaluate_eligibility([FIRST_ORDER], "missing", self.lookup, now=self.now)

        assert not result.eligible
        assert result.reason == "User not found"

    def test_unknown_criterion_raises(self):
        with pytest.raises(ValueError):
            evaluate_eligibility(["BIRTHDAY"], "user-1", self.lookup, now=self.now)
