"""
CouponEvaluator - Can This Coupon Be Applied?

Runs a user's coupon code against a cart snapshot:

    1. lookup       coupon bound to this user          -> NOT_FOUND
    2. usability    coupon and campaign still usable   -> NOT_USABLE
    3. minimum      cart total reaches the minimum     -> BELOW_MINIMUM
    4. scope        cart lines the campaign covers     -> NOT_APPLICABLE
    5. eligibility  user meets the campaign criteria   -> NOT_ELIGIBLE
    6. discount     amount granted, capped at the cart total

The first failing stage decides the outcome. Rejections are ordinary business
results: they are returned, logged at info and counted, never raised. Nothing
here writes to the database.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional, Set, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone

from storefront.infra.observability.metrics import (
    coupon_discount_amount,
    coupon_evaluations_total,
    coupon_rejections_total,
)
from storefront.infra.observability.tracing import tracer
from storefront.promotions.domain.discounts import ZERO, compute_discount, discount_rule_for, quantize_money
from storefront.promotions.domain.eligibility import DjangoUserHistoryLookup, UserHistoryLookup, evaluate_eligibility
from storefront.promotions.domain.models.coupon import UserCoupon
from storefront.services.base import BaseService
from utils.logging_utils import mask_value


class CouponRejection:
    NOT_FOUND = "NOT_FOUND"
    NOT_USABLE = "NOT_USABLE"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    NOT_APPLICABLE = "NOT_APPLICABLE"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"


COUPON_NOT_FOUND_MESSAGE = "Coupon not found or does not belong to you"
NOT_APPLICABLE_MESSAGE = "This coupon is not applicable to any items in your cart"


@dataclass(frozen=True)
class CartLine:
    product_variant_id: str
    quantity: int
    price: Decimal
    category_id: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    cart_total_amount: Decimal
    items: Tuple[CartLine, ...] = ()

    @classmethod
    def from_payload(cls, cart_total_amount, items: Iterable[Dict[str, Any]] = ()) -> "CartSnapshot":
        """
        Build a snapshot from request data.

        Raises:
            ValueError: amounts or quantities are not valid numbers
        """
        try:
            lines = tuple(
                CartLine(
                    product_variant_id=str(item["product_variant_id"]),
                    category_id=str(item["category_id"]) if item.get("category_id") else None,
                    quantity=int(item.get("quantity", 1)),
                    price=Decimal(str(item["price"])),
                )
                for item in items or ()
            )
            total = Decimal(str(cart_total_amount))
        except (KeyError, TypeError, InvalidOperation) as e:
            raise ValueError(f"Invalid cart payload: {e}") from None
        return cls(cart_total_amount=total, items=lines)


@dataclass(frozen=True)
class CouponEvaluation:
    applicable: bool
    coupon_code: str
    rejection: Optional[str] = None
    reason: str = ""
    campaign_name: str = ""
    discount_type: str = ""
    discount_amount: Decimal = ZERO
    applicable_items: int = 0
    applicable_amount: Decimal = ZERO
    cart_total_amount: Decimal = ZERO
    final_amount: Decimal = ZERO
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def rejected(cls, coupon_code: str, rejection: str, reason: str, **details) -> "CouponEvaluation":
        return cls(applicable=False, coupon_code=coupon_code, rejection=rejection, reason=reason, details=details)

    def to_dict(self) -> Dict[str, Any]:
        if not self.applicable:
            return {"coupon_code": self.coupon_code, "rejection": self.rejection, "reason": self.reason}
        return {
            "coupon_code": self.coupon_code,
            "campaign_name": self.campaign_name,
            "discount_type": self.discount_type,
            "discount_amount": self.discount_amount,
            "applicable_items": self.applicable_items,
            "applicable_amount": self.applicable_amount,
            "cart_total_amount": self.cart_total_amount,
            "final_amount": self.final_amount,
            "savings": self.discount_amount,
        }


def usability_failure(user_coupon: UserCoupon, now=None) -> Optional[str]:
    """Reason ``user_coupon`` cannot be used right now, or None when it can."""
    now = now or timezone.now()
    campaign = user_coupon.campaign

    if not user_coupon.is_usable(now):
        return "Coupon is not valid or has expired"
    if not campaign.is_active or not campaign.is_within_validity(now):
        return "Associated campaign is not valid or active"
    if user_coupon.current_usage_count >= campaign.max_usage_per_user:
        return "Maximum usage limit reached for this user"
    if not campaign.has_global_capacity():
        return "Campaign has reached maximum global usage limit"
    return None


def applicable_scope(
    cart: CartSnapshot, variant_ids: Set[str], category_ids: Set[str]
) -> Tuple[int, Decimal]:
    """
    Count and value of the cart lines a campaign covers.

    Without allow-lists the whole cart is covered. Otherwise a line is covered
    when its variant is listed, or failing that, when its category is.
    """
    if not variant_ids and not category_ids:
        return len(cart.items), cart.cart_total_amount

    count = 0
    amount = ZERO
    for line in cart.items:
        covered = line.product_variant_id in variant_ids or (
            line.category_id is not None and line.category_id in category_ids
        )
        if covered:
            count += 1
            amount += line.line_total
    return count, amount


class CouponEvaluator(BaseService):
    """
    Decides whether a coupon applies to a cart and for how much.
    """

    def __init__(self, user_lookup: Optional[UserHistoryLookup] = None):
        super().__init__()
        self.user_lookup = user_lookup or DjangoUserHistoryLookup()
        self.currency_symbol = getattr(settings, "COUPON_CURRENCY_SYMBOL", "₹")

    def find_user_coupon(self, coupon_code: str, user_id) -> Optional[UserCoupon]:
        code = (coupon_code or "").strip().upper()
        if not code:
            return None
        try:
            return (
                UserCoupon.objects.select_related("campaign")
                .filter(coupon_code=code, user_id=user_id)
                .first()
            )
        except (ValidationError, ValueError):
            return None

    @BaseService.log_performance
    def can_apply(self, coupon_code: str, user_id, cart: CartSnapshot, now=None) -> CouponEvaluation:
        """
        Evaluate ``coupon_code`` for ``user_id`` against ``cart``.

        Example:
            >>> cart = CartSnapshot.from_payload("1000.00", [
            ...     {"product_variant_id": variant_id, "category_id": category_id, "quantity": 2, "price": "500.00"},
            ... ])
            >>> evaluation = coupon_evaluator.can_apply("WELCOME-8K2M4Q7Z", user.id, cart)
            >>> if evaluation.applicable:
            ...     print(evaluation.discount_amount)
        """
        with tracer.start_as_current_span("coupon_can_apply") as span:
            evaluation = self._evaluate(coupon_code, user_id, cart, now or timezone.now())
            span.set_attribute("coupon.applicable", evaluation.applicable)
            if evaluation.rejection:
                span.set_attribute("coupon.rejection", evaluation.rejection)

        if evaluation.applicable:
            coupon_evaluations_total.labels(outcome="applied").inc()
            coupon_discount_amount.observe(float(evaluation.discount_amount))
            self.logger.info(
                f"Coupon {mask_value(evaluation.coupon_code)} applicable for user {user_id}: "
                f"discount={evaluation.discount_amount}, applicable_items={evaluation.applicable_items}"
            )
        else:
            coupon_evaluations_total.labels(outcome="rejected").inc()
            coupon_rejections_total.labels(reason=evaluation.rejection).inc()
            self.logger.info(
                f"Coupon {mask_value(evaluation.coupon_code)} rejected for user {user_id}: "
                f"{evaluation.rejection} ({evaluation.reason})"
            )
        return evaluation

    def _evaluate(self, coupon_code: str, user_id, cart: CartSnapshot, now) -> CouponEvaluation:
        code = (coupon_code or "").strip().upper()

        user_coupon = self.find_user_coupon(code, user_id)
        if user_coupon is None:
            return CouponEvaluation.rejected(code, CouponRejection.NOT_FOUND, COUPON_NOT_FOUND_MESSAGE)

        reason = usability_failure(user_coupon, now)
        if reason:
            return CouponEvaluation.rejected(code, CouponRejection.NOT_USABLE, reason)

        campaign = user_coupon.campaign
        if cart.cart_total_amount < campaign.min_purchase_amount:
            return CouponEvaluation.rejected(
                code,
                CouponRejection.BELOW_MINIMUM,
                f"Minimum purchase amount of {self.currency_symbol}{campaign.min_purchase_amount} required",
                min_purchase_amount=campaign.min_purchase_amount,
            )

        variant_ids = {str(pk) for pk in campaign.applicable_variants.values_list("id", flat=True)}
        category_ids = {str(pk) for pk in campaign.applicable_categories.values_list("id", flat=True)}
        applicable_items, applicable_amount = applicable_scope(cart, variant_ids, category_ids)
        if (variant_ids or category_ids) and applicable_items == 0:
            return CouponEvaluation.rejected(code, CouponRejection.NOT_APPLICABLE, NOT_APPLICABLE_MESSAGE)

        eligibility = evaluate_eligibility(campaign.eligibility_criteria, user_id, self.user_lookup, now=now)
        if not eligibility.eligible:
            return CouponEvaluation.rejected(
                code,
                CouponRejection.NOT_ELIGIBLE,
                eligibility.reason,
                failed_criterion=eligibility.failed_criterion,
            )

        discount = compute_discount(discount_rule_for(campaign), applicable_amount, cart.cart_total_amount)
        return CouponEvaluation(
            applicable=True,
            coupon_code=code,
            campaign_name=campaign.name,
            discount_type=campaign.discount_type,
            discount_amount=discount,
            applicable_items=applicable_items,
            applicable_amount=quantize_money(applicable_amount),
            cart_total_amount=cart.cart_total_amount,
            final_amount=cart.cart_total_amount - discount,
        )
