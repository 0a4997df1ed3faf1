"""
User eligibility rules for coupon campaigns.

Campaigns carry an ordered list of criteria. The first criterion a user fails
is reported; an empty list, or a list holding only ``NONE``, is open to all.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.utils import timezone

from storefront.ordering.domain.models.order import Order

NEW_USER = "NEW_USER"
FIRST_ORDER = "FIRST_ORDER"
REFERRAL = "REFERRAL"
SPECIFIC_USER_GROUP = "SPECIFIC_USER_GROUP"
ALL_USERS = "ALL_USERS"
NONE = "NONE"

MESSAGES = {
    NEW_USER: "This coupon is only for new users",
    FIRST_ORDER: "This coupon is only for first-time buyers",
    REFERRAL: "This coupon is only for referred users",
    SPECIFIC_USER_GROUP: "This coupon is only for premium users",
}
USER_NOT_FOUND = "User not found"


@dataclass(frozen=True)
class UserProfile:
    """The user facts eligibility rules look at."""

    user_id: str
    date_joined: datetime
    referred_by_id: Optional[str] = None
    user_group: str = ""


class UserHistoryLookup(ABC):
    """
    Read access to user facts and order history.

    Concrete implementations:
        - DjangoUserHistoryLookup: ORM backed, used in production
        - test doubles built with unittest.mock
    """

    @abstractmethod
    def get_user(self, user_id) -> Optional[UserProfile]:
        """Return the user's profile, or None when the user does not exist."""
        pass

    @abstractmethod
    def count_completed_orders(self, user_id) -> int:
        pass


class DjangoUserHistoryLookup(UserHistoryLookup):
    """Reads users and their completed orders through the ORM."""

    def get_user(self, user_id) -> Optional[UserProfile]:
        User = get_user_model()
        try:
            user = User.objects.filter(pk=user_id).only("id", "date_joined", "referred_by", "user_group").first()
        except (ValidationError, ValueError):
            return None
        if user is None:
            return None
        return UserProfile(
            user_id=str(user.pk),
            date_joined=user.date_joined,
            referred_by_id=str(user.referred_by_id) if user.referred_by_id else None,
            user_group=user.user_group or "",
        )

    def count_completed_orders(self, user_id) -> int:
        return Order.objects.filter(buyer_id=user_id, status__in=Order.COMPLETED_STATUSES).count()


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: str = ""
    failed_criterion: Optional[str] = None


def is_open(criteria: Optional[Iterable[str]]) -> bool:
    criteria = list(criteria or [])
    return not criteria or criteria == [NONE]


def evaluate_eligibility(criteria, user_id, lookup: UserHistoryLookup, now=None) -> EligibilityResult:
    if is_open(criteria):
        return EligibilityResult(eligible=True)

    user = lookup.get_user(user_id)
    if user is None:
        return EligibilityResult(eligible=False, reason=USER_NOT_FOUND)

    now = now or timezone.now()
    new_user_days = getattr(settings, "COUPON_NEW_USER_DAYS", 30)
    allowed_groups = {group.upper() for group in getattr(settings, "COUPON_ALLOWED_USER_GROUPS", ["PREMIUM", "VIP"])}

    for criterion in criteria:
        if criterion == NEW_USER:
            passed = user.date_joined >= now - timedelta(days=new_user_days)
        elif criterion == FIRST_ORDER:
            passed = lookup.count_completed_orders(user_id) == 0
        elif criterion == REFERRAL:
            passed = bool(user.referred_by_id)
        elif criterion == SPECIFIC_USER_GROUP:
            passed = bool(user.user_group) and user.user_group.upper() in allowed_groups
        elif criterion in (ALL_USERS, NONE):
            passed = True
        else:
            # Unknown criteria are rejected at campaign validation time
            raise ValueError(f"Unknown eligibility criterion {criterion!r}")

        if not passed:
            return EligibilityResult(eligible=False, reason=MESSAGES[criterion], failed_criterion=criterion)

    return EligibilityResult(eligible=True)
