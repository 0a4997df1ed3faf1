"""
CouponService - User Coupons and Redemption

Listing and lookup of a user's coupons, admin coupon management, campaign code
generation, usage statistics and redemption. Redemption is the only write on
the order path: it re-runs the full coupon evaluation against the order's cart
and then uses a conditional update so a coupon is redeemed at most once under
concurrent requests.
"""

import secrets
import string
from typing import Any, Dict, Iterable, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from storefront.infra.observability.metrics import coupon_redemptions_total, coupons_generated_total
from storefront.promotions.domain.models.coupon import CouponCampaign, UserCoupon
from storefront.promotions.domain.services.coupon_evaluator import CartSnapshot, CouponEvaluator, CouponRejection
from storefront.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from utils.logging_utils import mask_value

CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_CODE_PREFIX = "COUPON"
MAX_CODE_ATTEMPTS = 10
COUPON_STATUSES = ("active", "expired", "redeemed", "all")
ADMIN_UPDATABLE_FIELDS = ("is_active", "expires_at")
ADMIN_SORTABLE_FIELDS = ("created_at", "updated_at", "expires_at", "redeemed_at", "coupon_code")

REJECTION_ERRORS = {
    CouponRejection.NOT_FOUND: ErrorCodes.COUPON_NOT_FOUND,
    CouponRejection.NOT_USABLE: ErrorCodes.COUPON_NOT_USABLE,
    CouponRejection.BELOW_MINIMUM: ErrorCodes.COUPON_BELOW_MINIMUM,
    CouponRejection.NOT_APPLICABLE: ErrorCodes.COUPON_NOT_APPLICABLE,
    CouponRejection.NOT_ELIGIBLE: ErrorCodes.COUPON_NOT_ELIGIBLE,
}


def paginate(queryset, page: int, limit: int) -> Dict[str, Any]:
    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    return {
        "results": list(page_obj.object_list),
        "pagination": {
            "current_page": page_obj.number,
            "total_pages": paginator.num_pages if paginator.count else 0,
            "total_items": paginator.count,
            "items_per_page": limit,
            "has_next_page": page_obj.has_next(),
            "has_prev_page": page_obj.has_previous(),
        },
    }


class CouponService(BaseService):
    """
    Service for user coupons and campaign code management.
    """

    def __init__(self, evaluator: Optional[CouponEvaluator] = None):
        super().__init__()
        self.evaluator = evaluator or CouponEvaluator()
        self.code_length = getattr(settings, "COUPON_CODE_LENGTH", 8)

    @BaseService.log_performance
    def get_user_coupons(
        self, user, status: str = "active", page: int = 1, limit: int = 20
    ) -> ServiceResult[Dict[str, Any]]:
        """
        List a user's coupons, newest first.

        Args:
            user: Owner of the coupons
            status: 'active', 'expired', 'redeemed' or 'all'
            page: Page number (1-indexed)
            limit: Items per page
        """
        if status not in COUPON_STATUSES:
            return service_err(ErrorCodes.INVALID_INPUT, f"Status must be one of: {', '.join(COUPON_STATUSES)}")

        now = timezone.now()
        queryset = UserCoupon.objects.select_related("campaign").filter(user=user)
        if status == "active":
            queryset = queryset.filter(is_active=True, is_redeemed=False, expires_at__gt=now)
        elif status == "expired":
            queryset = queryset.filter(expires_at__lte=now)
        elif status == "redeemed":
            queryset = queryset.filter(is_redeemed=True)

        return service_ok(paginate(queryset.order_by("-created_at", "-id"), page, limit))

    def get_coupon_by_code(self, user, coupon_code: str) -> ServiceResult[UserCoupon]:
        code = (coupon_code or "").strip().upper()
        user_coupon = UserCoupon.objects.select_related("campaign").filter(coupon_code=code, user=user).first()
        if user_coupon is None:
            return service_err(ErrorCodes.COUPON_NOT_FOUND, "Coupon not found or does not belong to you")
        return service_ok(user_coupon)

    @BaseService.log_performance
    @transaction.atomic
    def redeem(self, coupon_code: str, user_id, cart: CartSnapshot) -> ServiceResult[Dict[str, Any]]:
        """
        Redeem a coupon at order finalization.

        The coupon is evaluated against the order's cart exactly as ``can_apply``
        would, and a rejection is returned with the matching coupon error code.
        Redeeming an already redeemed coupon returns the existing redemption
        with ``already_redeemed=True`` and changes nothing.

        Returns:
            ServiceResult with ``user_coupon``, ``already_redeemed``, ``redeemed_at``
            and ``discount_amount``
        """
        user_coupon = self.evaluator.find_user_coupon(coupon_code, user_id)
        if user_coupon is None:
            return service_err(ErrorCodes.COUPON_NOT_FOUND, "Coupon not found or does not belong to you")

        if user_coupon.is_redeemed:
            coupon_redemptions_total.labels(result="already_redeemed").inc()
            return service_ok(self._redemption(user_coupon, already_redeemed=True))

        now = timezone.now()
        evaluation = self.evaluator.can_apply(user_coupon.coupon_code, user_id, cart, now=now)
        if not evaluation.applicable:
            coupon_redemptions_total.labels(result="rejected").inc()
            return service_err(REJECTION_ERRORS[evaluation.rejection], evaluation.reason)

        updated = UserCoupon.objects.filter(pk=user_coupon.pk, is_redeemed=False).update(
            is_redeemed=True,
            redeemed_at=now,
            current_usage_count=F("current_usage_count") + 1,
            updated_at=now,
        )
        if updated == 0:
            # Lost the race to a concurrent redemption of the same coupon
            user_coupon.refresh_from_db()
            coupon_redemptions_total.labels(result="already_redeemed").inc()
            return service_ok(self._redemption(user_coupon, already_redeemed=True))

        campaign_updated = (
            CouponCampaign.objects.filter(pk=user_coupon.campaign_id)
            .filter(Q(max_global_usage__isnull=True) | Q(current_global_usage__lt=F("max_global_usage")))
            .update(current_global_usage=F("current_global_usage") + 1, updated_at=now)
        )
        if campaign_updated == 0:
            transaction.set_rollback(True)
            coupon_redemptions_total.labels(result="rejected").inc()
            return service_err(ErrorCodes.COUPON_NOT_USABLE, "Campaign has reached maximum global usage limit")

        user_coupon.refresh_from_db()
        coupon_redemptions_total.labels(result="redeemed").inc()
        self.logger.info(
            f"Coupon {mask_value(user_coupon.coupon_code)} redeemed by user {user_id} "
            f"(campaign={user_coupon.campaign_id}, discount={evaluation.discount_amount})"
        )
        return service_ok(
            self._redemption(user_coupon, already_redeemed=False, discount_amount=evaluation.discount_amount)
        )

    def _redemption(self, user_coupon: UserCoupon, already_redeemed: bool, discount_amount=None) -> Dict[str, Any]:
        return {
            "user_coupon": user_coupon,
            "already_redeemed": already_redeemed,
            "redeemed_at": user_coupon.redeemed_at,
            "discount_amount": discount_amount,
        }

    def generate_code(self, prefix: str = "", length: Optional[int] = None) -> str:
        """``PREFIX-XXXXXXXX`` with a cryptographically random suffix."""
        suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length or self.code_length))
        prefix = (prefix or DEFAULT_CODE_PREFIX).upper().rstrip("-")
        return f"{prefix}-{suffix}"

    def _unique_code(self, prefix: str, length: int) -> Optional[str]:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self.generate_code(prefix, length)
            if not UserCoupon.objects.filter(coupon_code=code).exists():
                return code
        return None

    @BaseService.log_performance
    @transaction.atomic
    def generate_user_coupons(
        self, campaign_id, user_ids: Iterable, length: Optional[int] = None
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Issue one coupon code per user for a campaign.

        Users that already hold a coupon for a unique-per-user campaign, and
        unknown users, are reported in ``failed`` instead of aborting the batch.

        Returns:
            ServiceResult with ``campaign``, ``generated`` (UserCoupon list),
            ``failed`` ({user_id, error} list) and ``total_requested``
        """
        try:
            campaign = CouponCampaign.objects.select_for_update().get(pk=campaign_id)
        except (CouponCampaign.DoesNotExist, ValueError, ValidationError):
            return service_err(ErrorCodes.CAMPAIGN_NOT_FOUND, f"Coupon campaign {campaign_id} not found")

        if not campaign.is_active or campaign.valid_until < timezone.now():
            return service_err(ErrorCodes.CAMPAIGN_INACTIVE, "Cannot generate codes for inactive campaign")
        if not campaign.has_global_capacity():
            return service_err(ErrorCodes.CAMPAIGN_EXHAUSTED, "Campaign has reached maximum global usage limit")

        length = length or self.code_length
        user_ids = list(dict.fromkeys(str(user_id) for user_id in user_ids))
        User = get_user_model()
        valid_ids = []
        for user_id in user_ids:
            try:
                valid_ids.append(User._meta.pk.to_python(user_id))
            except ValidationError:
                continue
        known_users = {str(user.pk): user for user in User.objects.filter(pk__in=valid_ids)}
        holders = set()
        if campaign.is_unique_per_user:
            holders = {
                str(user_id)
                for user_id in UserCoupon.objects.filter(campaign=campaign, user_id__in=known_users).values_list(
                    "user_id", flat=True
                )
            }

        generated = []
        failed = []
        for user_id in user_ids:
            user = known_users.get(user_id)
            if user is None:
                failed.append({"user_id": user_id, "error": "User not found"})
                continue
            if user_id in holders:
                failed.append({"user_id": user_id, "error": "User already has a coupon for this campaign"})
                continue

            code = self._unique_code(campaign.code_prefix, length)
            if code is None:
                failed.append(
                    {"user_id": user_id, "error": "Failed to generate unique coupon code after multiple attempts"}
                )
                continue

            generated.append(
                UserCoupon.objects.create(
                    campaign=campaign, user=user, coupon_code=code, expires_at=campaign.valid_until
                )
            )

        coupons_generated_total.inc(len(generated))
        self.logger.info(
            f"Generated {len(generated)} coupons for campaign {campaign.pk} "
            f"({len(failed)} failed of {len(user_ids)} requested)"
        )
        return service_ok(
            {
                "campaign": campaign,
                "generated": generated,
                "failed": failed,
                "total_requested": len(user_ids),
            }
        )

    def get_usage_statistics(self, campaign_id) -> ServiceResult[Dict[str, int]]:
        try:
            exists = CouponCampaign.objects.filter(pk=campaign_id).exists()
        except (ValueError, ValidationError):
            exists = False
        if not exists:
            return service_err(ErrorCodes.CAMPAIGN_NOT_FOUND, f"Coupon campaign {campaign_id} not found")

        stats = UserCoupon.objects.filter(campaign_id=campaign_id).aggregate(
            total_coupons=Count("id"),
            redeemed_coupons=Count("id", filter=Q(is_redeemed=True)),
            active_coupons=Count("id", filter=Q(is_active=True)),
            expired_coupons=Count("id", filter=Q(expires_at__lte=timezone.now())),
            total_usage=Sum("current_usage_count"),
        )
        stats["total_usage"] = stats["total_usage"] or 0
        return service_ok(stats)

    @BaseService.log_performance
    def list_coupons(self, filters: Optional[Dict[str, Any]] = None) -> ServiceResult[Dict[str, Any]]:
        """
        Admin listing of user coupons across all users.

        Args:
            filters: ``user_id``, ``campaign_id``, ``coupon_code`` (substring),
                ``is_redeemed``, ``is_active``, ``sort_by``, ``sort_order``,
                ``page`` and ``limit``
        """
        filters = filters or {}
        queryset = UserCoupon.objects.select_related("campaign", "user")

        if filters.get("user_id"):
            queryset = queryset.filter(user_id=filters["user_id"])
        if filters.get("campaign_id"):
            queryset = queryset.filter(campaign_id=filters["campaign_id"])
        if filters.get("coupon_code"):
            queryset = queryset.filter(coupon_code__icontains=filters["coupon_code"].strip())
        if filters.get("is_redeemed") is not None:
            queryset = queryset.filter(is_redeemed=filters["is_redeemed"])
        if filters.get("is_active") is not None:
            queryset = queryset.filter(is_active=filters["is_active"])

        sort_by = filters.get("sort_by") or "created_at"
        if sort_by not in ADMIN_SORTABLE_FIELDS:
            return service_err(
                ErrorCodes.INVALID_INPUT, f"sort_by must be one of: {', '.join(ADMIN_SORTABLE_FIELDS)}"
            )
        direction = "" if filters.get("sort_order") == "asc" else "-"
        queryset = queryset.order_by(f"{direction}{sort_by}", "-id")

        return service_ok(paginate(queryset, filters.get("page", 1), filters.get("limit", 20)))

    def _admin_coupon(self, coupon_id) -> Optional[UserCoupon]:
        try:
            return UserCoupon.objects.select_related("campaign", "user").filter(pk=coupon_id).first()
        except (ValueError, ValidationError):
            return None

    @BaseService.log_performance
    @transaction.atomic
    def update_user_coupon(self, coupon_id, updates: Dict[str, Any]) -> ServiceResult[Dict[str, Any]]:
        """
        Change the administrative fields of one user coupon.

        Only ``is_active`` and ``expires_at`` may change; the owner, campaign,
        code and redemption state stay fixed once issued.

        Returns:
            ServiceResult with ``user_coupon``, ``old_values`` and ``new_values``
        """
        user_coupon = self._admin_coupon(coupon_id)
        if user_coupon is None:
            return service_err(ErrorCodes.COUPON_NOT_FOUND, f"User coupon {coupon_id} not found")

        blocked = sorted(set(updates) - set(ADMIN_UPDATABLE_FIELDS))
        if blocked:
            return service_err(ErrorCodes.INVALID_INPUT, f"Cannot update fields: {', '.join(blocked)}")

        old_values = {}
        new_values = {}
        for field_name, value in updates.items():
            old_values[field_name] = getattr(user_coupon, field_name)
            setattr(user_coupon, field_name, value)
            new_values[field_name] = value
        user_coupon.save(update_fields=[*updates, "updated_at"])

        self.logger.info(f"User coupon {user_coupon.pk} updated: {', '.join(updates) or 'no changes'}")
        return service_ok({"user_coupon": user_coupon, "old_values": old_values, "new_values": new_values})

    @BaseService.log_performance
    def deactivate_user_coupon(self, coupon_id) -> ServiceResult[UserCoupon]:
        """Soft delete: the coupon stays on record but can no longer be applied."""
        user_coupon = self._admin_coupon(coupon_id)
        if user_coupon is None:
            return service_err(ErrorCodes.COUPON_NOT_FOUND, f"User coupon {coupon_id} not found")

        user_coupon.is_active = False
        user_coupon.save(update_fields=["is_active", "updated_at"])
        self.logger.info(f"User coupon {mask_value(user_coupon.coupon_code)} deactivated")
        return service_ok(user_coupon)
