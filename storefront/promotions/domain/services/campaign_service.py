"""
Coupon Campaign Service
=======================

Administrative management of coupon campaigns: listing, lookup with
redemption statistics, creation, partial updates and soft deactivation.

Deactivating a campaign also deactivates every coupon issued from it, so no
outstanding code can be applied afterwards. Campaign rows are never deleted.
"""

from typing import Any, Dict, Iterable, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q

from storefront.catalog.domain.models.catalog import ProductVariant
from storefront.catalog.domain.models.category import Category
from storefront.promotions.domain.models.coupon import CouponCampaign, UserCoupon
from storefront.promotions.domain.services.coupon_service import paginate
from storefront.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

CAMPAIGN_SORTABLE_FIELDS = ("created_at", "updated_at", "name", "valid_from", "valid_until", "discount_value")
IMMUTABLE_FIELDS = ("current_global_usage", "slug")
TARGET_FIELDS = {"category_ids": "applicable_categories", "variant_ids": "applicable_variants"}


class CampaignService(BaseService):
    """
    Service for coupon campaign administration.
    """

    @BaseService.log_performance
    def list_campaigns(self, filters: Optional[Dict[str, Any]] = None) -> ServiceResult[Dict[str, Any]]:
        """
        List campaigns with optional filters.

        Args:
            filters: ``is_active``, ``discount_type``, ``search`` (name,
                description or slug), ``sort_by``, ``sort_order``, ``page``
                and ``limit``
        """
        filters = filters or {}
        queryset = CouponCampaign.objects.prefetch_related("applicable_categories", "applicable_variants")

        if filters.get("is_active") is not None:
            queryset = queryset.filter(is_active=filters["is_active"])
        if filters.get("discount_type"):
            queryset = queryset.filter(discount_type=filters["discount_type"])
        if filters.get("search"):
            term = filters["search"].strip()
            queryset = queryset.filter(
                Q(name__icontains=term) | Q(description__icontains=term) | Q(slug__icontains=term)
            )

        sort_by = filters.get("sort_by") or "created_at"
        if sort_by not in CAMPAIGN_SORTABLE_FIELDS:
            return service_err(
                ErrorCodes.INVALID_INPUT, f"sort_by must be one of: {', '.join(CAMPAIGN_SORTABLE_FIELDS)}"
            )
        direction = "" if filters.get("sort_order") == "asc" else "-"
        queryset = queryset.order_by(f"{direction}{sort_by}", "-id")

        return service_ok(paginate(queryset, filters.get("page", 1), filters.get("limit", 20)))

    def _find(self, identifier) -> Optional[CouponCampaign]:
        queryset = CouponCampaign.objects.prefetch_related("applicable_categories", "applicable_variants")
        identifier = str(identifier).strip()
        if identifier.isdigit():
            return queryset.filter(pk=int(identifier)).first()
        return queryset.filter(slug=identifier).first()

    @BaseService.log_performance
    def get_campaign(self, identifier) -> ServiceResult[Dict[str, Any]]:
        """
        Fetch a campaign by numeric id or slug, with its redemption statistics.

        Returns:
            ServiceResult with ``campaign`` and ``statistics``
            (``total_user_coupons_generated``, ``total_redeemed_coupons``,
            ``redemption_rate`` as a percentage rounded to two places)
        """
        campaign = self._find(identifier)
        if campaign is None:
            return service_err(ErrorCodes.CAMPAIGN_NOT_FOUND, f"Coupon campaign {identifier} not found")

        counts = UserCoupon.objects.filter(campaign=campaign).aggregate(
            generated=Count("id"), redeemed=Count("id", filter=Q(is_redeemed=True))
        )
        generated = counts["generated"]
        redeemed = counts["redeemed"]
        statistics = {
            "total_user_coupons_generated": generated,
            "total_redeemed_coupons": redeemed,
            "redemption_rate": round(redeemed * 100 / generated, 2) if generated else 0.0,
        }
        return service_ok({"campaign": campaign, "statistics": statistics})

    def _targets(self, data: Dict[str, Any]) -> Dict[str, list]:
        """Resolve ``category_ids``/``variant_ids`` into model instances; unknown ids raise ValidationError."""
        resolved = {}
        for key, model in (("category_ids", Category), ("variant_ids", ProductVariant)):
            if key not in data:
                continue
            ids = list(dict.fromkeys(str(pk) for pk in data[key] or ()))
            try:
                found = list(model.objects.filter(pk__in=ids))
            except (ValueError, ValidationError):
                found = []
            missing = sorted(set(ids) - {str(obj.pk) for obj in found})
            if missing:
                raise ValidationError({key: f"Unknown ids: {', '.join(missing)}"})
            resolved[TARGET_FIELDS[key]] = found
        return resolved

    def _apply_targets(self, campaign: CouponCampaign, targets: Dict[str, Iterable]):
        for relation, objects in targets.items():
            getattr(campaign, relation).set(objects)

    @BaseService.log_performance
    @transaction.atomic
    def create_campaign(self, data: Dict[str, Any]) -> ServiceResult[CouponCampaign]:
        """
        Create a campaign from validated request data.

        Model-level rules (percentage range, validity window, prefix charset,
        eligibility names, unique name) are enforced through ``full_clean``.
        """
        data = dict(data)
        try:
            targets = self._targets(data)
            fields = {key: value for key, value in data.items() if key not in TARGET_FIELDS}
            campaign = CouponCampaign(**fields)
            campaign.full_clean(exclude=["slug"])
        except ValidationError as e:
            return service_err(ErrorCodes.VALIDATION_ERROR, _validation_message(e))

        campaign.save()
        self._apply_targets(campaign, targets)
        self.logger.info(f"Coupon campaign {campaign.pk} ({campaign.slug}) created")
        return service_ok(campaign)

    @BaseService.log_performance
    @transaction.atomic
    def update_campaign(self, identifier, updates: Dict[str, Any]) -> ServiceResult[Dict[str, Any]]:
        """
        Apply a partial update to a campaign.

        ``current_global_usage`` and ``slug`` cannot be set; the slug is
        regenerated when the name changes.

        Returns:
            ServiceResult with ``campaign``, ``old_values`` and ``new_values``
        """
        campaign = self._find(identifier)
        if campaign is None:
            return service_err(ErrorCodes.CAMPAIGN_NOT_FOUND, f"Coupon campaign {identifier} not found")

        blocked = sorted(set(updates) & set(IMMUTABLE_FIELDS))
        if blocked:
            return service_err(ErrorCodes.INVALID_INPUT, f"Cannot update fields: {', '.join(blocked)}")

        old_values = {}
        new_values = {}
        try:
            targets = self._targets(updates)
            for field_name, value in updates.items():
                if field_name in TARGET_FIELDS:
                    relation = TARGET_FIELDS[field_name]
                    current = getattr(campaign, relation).values_list("pk", flat=True)
                    old_values[field_name] = [str(pk) for pk in current]
                    new_values[field_name] = [str(obj.pk) for obj in targets[relation]]
                    continue
                old_values[field_name] = getattr(campaign, field_name)
                setattr(campaign, field_name, value)
                new_values[field_name] = value
            if "name" in updates and updates["name"] != old_values["name"]:
                campaign.slug = campaign._unique_slug()
            campaign.full_clean()
        except ValidationError as e:
            return service_err(ErrorCodes.VALIDATION_ERROR, _validation_message(e))

        campaign.save()
        self._apply_targets(campaign, targets)
        self.logger.info(f"Coupon campaign {campaign.pk} updated: {', '.join(updates) or 'no changes'}")
        return service_ok({"campaign": campaign, "old_values": old_values, "new_values": new_values})

    @BaseService.log_performance
    @transaction.atomic
    def deactivate_campaign(self, identifier) -> ServiceResult[Dict[str, Any]]:
        """
        Soft delete a campaign and every coupon issued from it.

        Returns:
            ServiceResult with ``campaign`` and ``deactivated_coupons``
        """
        campaign = self._find(identifier)
        if campaign is None:
            return service_err(ErrorCodes.CAMPAIGN_NOT_FOUND, f"Coupon campaign {identifier} not found")

        campaign.is_active = False
        campaign.save(update_fields=["is_active", "updated_at"])
        deactivated = UserCoupon.objects.filter(campaign=campaign, is_active=True).update(is_active=False)

        self.logger.info(f"Coupon campaign {campaign.pk} deactivated with {deactivated} user coupons")
        return service_ok({"campaign": campaign, "deactivated_coupons": deactivated})


def _validation_message(error: ValidationError) -> str:
    if hasattr(error, "message_dict"):
        return "; ".join(f"{field}: {' '.join(messages)}" for field, messages in error.message_dict.items())
    return " ".join(error.messages)
