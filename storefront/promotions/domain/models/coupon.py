import math
import re
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator, MinLengthValidator, MinValueValidator, RegexValidator
from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from storefront.catalog.domain.models.catalog import ProductVariant
from storefront.catalog.domain.models.category import Category


class CouponCampaign(models.Model):
    """Template and rules for a family of user coupons."""

    PERCENTAGE = "PERCENTAGE"
    AMOUNT = "AMOUNT"
    DISCOUNT_TYPE_CHOICES = [
        (PERCENTAGE, "Percentage"),
        (AMOUNT, "Fixed Amount"),
    ]

    ELIGIBILITY_CHOICES = [
        ("NEW_USER", "New User"),
        ("REFERRAL", "Referral"),
        ("FIRST_ORDER", "First Order"),
        ("SPECIFIC_USER_GROUP", "Specific User Group"),
        ("ALL_USERS", "All Users"),
        ("NONE", "None"),
    ]

    # Basic Campaign Information
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    description = models.CharField(max_length=500, blank=True)
    code_prefix = models.CharField(max_length=20, blank=True)

    # Discount Configuration
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    min_purchase_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0"), validators=[MinValueValidator(0)]
    )
    max_coupon_discount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )

    # Validity Period
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()

    # Usage Limits
    max_global_usage = models.PositiveIntegerField(null=True, blank=True, help_text="Leave empty for unlimited")
    current_global_usage = models.PositiveIntegerField(default=0)
    max_usage_per_user = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    is_unique_per_user = models.BooleanField(default=True)

    # Eligibility and Targeting
    eligibility_criteria = models.JSONField(default=list, blank=True)
    applicable_categories = models.ManyToManyField(Category, blank=True, related_name="coupon_campaigns")
    applicable_variants = models.ManyToManyField(ProductVariant, blank=True, related_name="coupon_campaigns")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "storefront"
        indexes = [
            models.Index(fields=["is_active", "valid_from", "valid_until"], name="campaign_active_validity_idx"),
            models.Index(fields=["is_active", "discount_type"], name="campaign_active_type_idx"),
        ]

    def clean(self):
        errors = {}
        if self.discount_type == self.PERCENTAGE and self.discount_value is not None:
            if not (Decimal("0") < self.discount_value <= Decimal("100")):
                errors["discount_value"] = "Percentage discounts must be greater than 0 and at most 100"
        if self.discount_type == self.PERCENTAGE and self.max_coupon_discount is not None:
            if self.max_coupon_discount <= 0:
                errors["max_coupon_discount"] = "Maximum coupon discount must be positive for percentage discounts"
        if self.code_prefix and not re.fullmatch(r"[A-Za-z0-9\-]+", self.code_prefix):
            errors["code_prefix"] = "Code prefix can only contain letters, numbers, and hyphens"
        if self.valid_from and self.valid_until and self.valid_until <= self.valid_from:
            errors["valid_until"] = "Valid until date must be after valid from date"
        allowed = {choice for choice, _ in self.ELIGIBILITY_CHOICES}
        unknown = [criterion for criterion in self.eligibility_criteria or [] if criterion not in allowed]
        if unknown:
            errors["eligibility_criteria"] = f"Invalid eligibility criteria: {', '.join(unknown)}"
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = self._unique_slug()
        if not self.eligibility_criteria:
            self.eligibility_criteria = ["NONE"]
        self.code_prefix = (self.code_prefix or "").strip().upper()
        super().save(*args, **kwargs)

    def _unique_slug(self):
        base_slug = slugify(self.name) or "campaign"
        slug = base_slug
        counter = 1
        while CouponCampaign.objects.filter(slug=slug).exclude(pk=self.pk).exists():
            slug = f"{base_slug}-{counter}"
            counter += 1
        return slug

    def is_within_validity(self, now=None):
        now = now or timezone.now()
        return self.valid_from <= now <= self.valid_until

    def has_global_capacity(self):
        return self.max_global_usage is None or self.current_global_usage < self.max_global_usage

    def is_currently_valid(self, now=None):
        return self.is_active and self.is_within_validity(now) and self.has_global_capacity()

    def __str__(self):
        return self.name


coupon_code_validators = [
    MinLengthValidator(4),
    MaxLengthValidator(50),
    RegexValidator(r"^[A-Z0-9\-]+$", "Coupon code can only contain uppercase letters, numbers, and hyphens"),
]


class UserCoupon(models.Model):
    """An individual coupon code issued to one user for one campaign."""

    campaign = models.ForeignKey(CouponCampaign, on_delete=models.CASCADE, related_name="user_coupons")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="coupons")
    coupon_code = models.CharField(max_length=50, unique=True, validators=coupon_code_validators)

    current_usage_count = models.PositiveIntegerField(default=0)
    expires_at = models.DateTimeField(blank=True)

    is_redeemed = models.BooleanField(default=False)
    redeemed_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "storefront"
        indexes = [
            models.Index(fields=["user", "is_active", "expires_at"], name="coupon_user_active_exp_idx"),
            models.Index(fields=["user", "campaign"], name="coupon_user_campaign_idx"),
            models.Index(fields=["is_active", "expires_at", "is_redeemed"], name="coupon_active_exp_redeem_idx"),
        ]

    def save(self, *args, **kwargs):
        self.coupon_code = self.coupon_code.strip().upper()
        if self.expires_at is None:
            self.expires_at = self.campaign.valid_until
        super().save(*args, **kwargs)

    def is_expired(self, now=None):
        return (now or timezone.now()) >= self.expires_at

    def is_usable(self, now=None):
        return self.is_active and not self.is_redeemed and not self.is_expired(now)

    @property
    def status(self):
        if not self.is_active:
            return "INACTIVE"
        if self.is_redeemed:
            return "REDEEMED"
        if self.is_expired():
            return "EXPIRED"
        return "ACTIVE"

    @property
    def days_until_expiry(self):
        return math.ceil((self.expires_at - timezone.now()).total_seconds() / 86400)

    def __str__(self):
        return f"{self.coupon_code} ({self.status})"
