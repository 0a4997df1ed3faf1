"""Discount rules attached to coupon campaigns."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from django.conf import settings

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PercentageDiscount:
    value: Decimal
    max_discount: Optional[Decimal] = None


@dataclass(frozen=True)
class FixedAmountDiscount:
    value: Decimal


DiscountRule = Union[PercentageDiscount, FixedAmountDiscount]


def quantize_money(amount: Decimal) -> Decimal:
    quantum = getattr(settings, "MONEY_QUANTUM", Decimal("0.01"))
    return Decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)


def discount_rule_for(campaign) -> DiscountRule:
    """Build the discount rule described by a ``CouponCampaign`` row."""
    if campaign.discount_type == campaign.PERCENTAGE:
        return PercentageDiscount(value=Decimal(campaign.discount_value), max_discount=campaign.max_coupon_discount)
    if campaign.discount_type == campaign.AMOUNT:
        return FixedAmountDiscount(value=Decimal(campaign.discount_value))
    raise ValueError(f"Unknown discount type {campaign.discount_type!r} on campaign {campaign.pk}")


def compute_discount(rule: DiscountRule, applicable_amount: Decimal, cart_total: Decimal) -> Decimal:
    """
    Discount granted by ``rule`` on ``applicable_amount``.

    The result never exceeds ``cart_total`` and is rounded half up to the
    money quantum.
    """
    applicable_amount = max(Decimal(applicable_amount), ZERO)

    if isinstance(rule, PercentageDiscount):
        discount = applicable_amount * rule.value / HUNDRED
        if rule.max_discount is not None and rule.max_discount > 0:
            discount = min(discount, Decimal(rule.max_discount))
    elif isinstance(rule, FixedAmountDiscount):
        discount = min(rule.value, applicable_amount)
    else:
        raise TypeError(f"Unsupported discount rule {type(rule).__name__}")

    discount = min(discount, max(Decimal(cart_total), ZERO))
    return quantize_money(max(discount, ZERO))
