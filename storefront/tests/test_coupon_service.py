from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from storefront.models import CouponCampaign, UserCoupon
from storefront.promotions.domain.services import (
    CampaignService,
    CartSnapshot,
    CouponEvaluator,
    CouponRejection,
    CouponService,
)
from storefront.services.base import ErrorCodes
from storefront.tests.factories import (
    CategoryFactory,
    CouponCampaignFactory,
    OrderFactory,
    ProductFactory,
    ProductVariantFactory,
    UserCouponFactory,
    UserFactory,
)


class CouponEvaluatorIntegrationTest(TestCase):
    def setUp(self):
        self.evaluator = CouponEvaluator()
        self.user = UserFactory()
        self.shoes = CategoryFactory(name="Shoes")
        self.hats = CategoryFactory(name="Hats")
        self.sneaker = ProductVariantFactory(product=ProductFactory(category=self.shoes), price=Decimal("200.00"))
        self.cap = ProductVariantFactory(product=ProductFactory(category=self.hats), price=Decimal("600.00"))
        self.campaign = CouponCampaignFactory(
            discount_type=CouponCampaign.PERCENTAGE,
            discount_value=Decimal("10.00"),
            min_purchase_amount=Decimal("500.00"),
            categories=[self.shoes],
        )
        self.coupon = UserCouponFactory(campaign=self.campaign, user=self.user, coupon_code="SHOES-7K2M9Q4X")
        self.cart = CartSnapshot.from_payload(
            "1000.00",
            [
                {"product_variant_id": self.sneaker.id, "category_id": self.shoes.id, "quantity": 2, "price": "200.00"},
                {"product_variant_id": self.cap.id, "category_id": self.hats.id, "quantity": 1, "price": "600.00"},
            ],
        )

    def test_discount_on_category_items(self):
        evaluation = self.evaluator.can_apply("shoes-7k2m9q4x", self.user.id, self.cart)

        self.assertTrue(evaluation.applicable)
        self.assertEqual(evaluation.applicable_items, 1)
        self.assertEqual(evaluation.applicable_amount, Decimal("400.00"))
        self.assertEqual(evaluation.discount_amount, Decimal("40.00"))
        self.assertEqual(evaluation.final_amount, Decimal("960.00"))

    def test_evaluation_does_not_redeem(self):
        self.evaluator.can_apply(self.coupon.coupon_code, self.user.id, self.cart)

        self.coupon.refresh_from_db()
        self.campaign.refresh_from_db()
        self.assertFalse(self.coupon.is_redeemed)
        self.assertEqual(self.coupon.current_usage_count, 0)
        self.assertEqual(self.campaign.current_global_usage, 0)

    def test_coupon_of_another_user(self):
        evaluation = self.evaluator.can_apply(self.coupon.coupon_code, UserFactory().id, self.cart)

        self.assertEqual(evaluation.rejection, CouponRejection.NOT_FOUND)

    def test_expired_coupon(self):
        self.coupon.expires_at = timezone.now() - timedelta(minutes=1)
        self.coupon.save()

        evaluation = self.evaluator.can_apply(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertEqual(evaluation.rejection, CouponRejection.NOT_USABLE)
        self.assertEqual(evaluation.reason, "Coupon is not valid or has expired")

    def test_empty_cart_with_allow_list(self):
        empty = CartSnapshot.from_payload("600.00", [])

        evaluation = self.evaluator.can_apply(self.coupon.coupon_code, self.user.id, empty)

        self.assertEqual(evaluation.rejection, CouponRejection.NOT_APPLICABLE)

    def test_first_order_campaign_with_completed_order(self):
        self.campaign.eligibility_criteria = ["FIRST_ORDER"]
        self.campaign.save()
        OrderFactory(buyer=self.user, status="completed")

        evaluation = self.evaluator.can_apply(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertEqual(evaluation.rejection, CouponRejection.NOT_ELIGIBLE)
        self.assertEqual(evaluation.reason, "This coupon is only for first-time buyers")

    def test_first_order_ignores_cancelled_orders(self):
        self.campaign.eligibility_criteria = ["FIRST_ORDER"]
        self.campaign.save()
        OrderFactory(buyer=self.user, status="cancelled")

        evaluation = self.evaluator.can_apply(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertTrue(evaluation.applicable)


class CouponRedemptionTest(TestCase):
    def setUp(self):
        self.service = CouponService()
        self.user = UserFactory()
        self.campaign = CouponCampaignFactory(max_global_usage=2)
        self.coupon = UserCouponFactory(campaign=self.campaign, user=self.user)
        self.cart = CartSnapshot.from_payload("1000.00")

    def test_redeem(self):
        result = self.service.redeem(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertTrue(result.ok)
        self.assertFalse(result.value["already_redeemed"])
        self.assertEqual(result.value["discount_amount"], Decimal("100.00"))
        self.coupon.refresh_from_db()
        self.campaign.refresh_from_db()
        self.assertTrue(self.coupon.is_redeemed)
        self.assertIsNotNone(self.coupon.redeemed_at)
        self.assertEqual(self.coupon.current_usage_count, 1)
        self.assertEqual(self.campaign.current_global_usage, 1)

    def test_redeem_is_idempotent(self):
        first = self.service.redeem(self.coupon.coupon_code, self.user.id, self.cart)
        second = self.service.redeem(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertTrue(second.ok)
        self.assertTrue(second.value["already_redeemed"])
        self.assertEqual(second.value["redeemed_at"], first.value["redeemed_at"])
        self.campaign.refresh_from_db()
        self.assertEqual(self.campaign.current_global_usage, 1)

    def test_redeem_respects_global_limit(self):
        self.campaign.current_global_usage = 2
        self.campaign.save()

        result = self.service.redeem(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.COUPON_NOT_USABLE)
        self.coupon.refresh_from_db()
        self.assertFalse(self.coupon.is_redeemed)

    def test_redeem_refuses_ineligible_user(self):
        self.campaign.eligibility_criteria = ["FIRST_ORDER"]
        self.campaign.save()
        OrderFactory(buyer=self.user, status="completed")

        result = self.service.redeem(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.COUPON_NOT_ELIGIBLE)
        self.assertEqual(result.error_detail, "This coupon is only for first-time buyers")
        self.coupon.refresh_from_db()
        self.campaign.refresh_from_db()
        self.assertFalse(self.coupon.is_redeemed)
        self.assertEqual(self.campaign.current_global_usage, 0)

    def test_redeem_refuses_cart_below_minimum(self):
        self.campaign.min_purchase_amount = Decimal("5000.00")
        self.campaign.save()

        result = self.service.redeem(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertEqual(result.error, ErrorCodes.COUPON_BELOW_MINIMUM)
        self.coupon.refresh_from_db()
        self.assertFalse(self.coupon.is_redeemed)

    def test_redeem_refuses_cart_outside_campaign_scope(self):
        self.campaign.applicable_categories.add(CategoryFactory(name="Garden"))
        cart = CartSnapshot.from_payload(
            "1000.00",
            [{"product_variant_id": ProductVariantFactory().id, "quantity": 1, "price": "1000.00"}],
        )

        result = self.service.redeem(self.coupon.coupon_code, self.user.id, cart)

        self.assertEqual(result.error, ErrorCodes.COUPON_NOT_APPLICABLE)

    def test_redeem_expired_coupon(self):
        self.coupon.expires_at = timezone.now() - timedelta(seconds=1)
        self.coupon.save()

        result = self.service.redeem(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertEqual(result.error, ErrorCodes.COUPON_NOT_USABLE)

    def test_already_redeemed_skips_evaluation(self):
        self.service.redeem(self.coupon.coupon_code, self.user.id, self.cart)
        self.campaign.eligibility_criteria = ["FIRST_ORDER"]
        self.campaign.save()
        OrderFactory(buyer=self.user, status="completed")

        result = self.service.redeem(self.coupon.coupon_code, self.user.id, self.cart)

        self.assertTrue(result.ok)
        self.assertTrue(result.value["already_redeemed"])
        self.assertIsNone(result.value["discount_amount"])

    def test_redeem_unknown_coupon(self):
        result = self.service.redeem("NOPE-0000", self.user.id, self.cart)

        self.assertEqual(result.error, ErrorCodes.COUPON_NOT_FOUND)

    def test_user_coupon_listing(self):
        expired = UserCouponFactory(
            user=self.user, campaign=self.campaign, expires_at=timezone.now() - timedelta(days=1)
        )

        active = self.service.get_user_coupons(self.user, status="active")
        expired_only = self.service.get_user_coupons(self.user, status="expired")
        invalid = self.service.get_user_coupons(self.user, status="bogus")

        self.assertEqual([c.id for c in active.value["results"]], [self.coupon.id])
        self.assertEqual([c.id for c in expired_only.value["results"]], [expired.id])
        self.assertEqual(invalid.error, ErrorCodes.INVALID_INPUT)


class CouponGenerationTest(TestCase):
    def setUp(self):
        self.service = CouponService()
        self.campaign = CouponCampaignFactory(code_prefix="WELCOME")
        self.users = [UserFactory() for _ in range(3)]

    def test_generate_code_format(self):
        code = self.service.generate_code("vip-", 6)

        prefix, suffix = code.split("-")
        self.assertEqual(prefix, "VIP")
        self.assertEqual(len(suffix), 6)
        self.assertTrue(suffix.isalnum() and suffix.upper() == suffix)

    def test_generate_user_coupons(self):
        result = self.service.generate_user_coupons(self.campaign.id, [u.id for u in self.users])

        self.assertTrue(result.ok)
        self.assertEqual(len(result.value["generated"]), 3)
        self.assertEqual(result.value["failed"], [])
        codes = {c.coupon_code for c in result.value["generated"]}
        self.assertEqual(len(codes), 3)
        self.assertTrue(all(code.startswith("WELCOME-") for code in codes))

    def test_existing_holders_and_unknown_users_fail(self):
        UserCouponFactory(campaign=self.campaign, user=self.users[0])

        result = self.service.generate_user_coupons(
            self.campaign.id, [self.users[0].id, self.users[1].id, "not-a-user"]
        )

        self.assertEqual(len(result.value["generated"]), 1)
        errors = {entry["user_id"]: entry["error"] for entry in result.value["failed"]}
        self.assertEqual(errors[str(self.users[0].id)], "User already has a coupon for this campaign")
        self.assertEqual(errors["not-a-user"], "User not found")
        self.assertEqual(result.value["total_requested"], 3)

    def test_inactive_campaign(self):
        self.campaign.is_active = False
        self.campaign.save()

        result = self.service.generate_user_coupons(self.campaign.id, [self.users[0].id])

        self.assertEqual(result.error, ErrorCodes.CAMPAIGN_INACTIVE)

    def test_unknown_campaign(self):
        result = self.service.generate_user_coupons(999999, [self.users[0].id])

        self.assertEqual(result.error, ErrorCodes.CAMPAIGN_NOT_FOUND)

    def test_usage_statistics(self):
        UserCouponFactory(campaign=self.campaign, is_redeemed=True, current_usage_count=1, is_active=True)
        UserCouponFactory(campaign=self.campaign, expires_at=timezone.now() - timedelta(days=1))
        UserCouponFactory(campaign=self.campaign, is_active=False)

        stats = self.service.get_usage_statistics(self.campaign.id).value

        self.assertEqual(stats["total_coupons"], 3)
        self.assertEqual(stats["redeemed_coupons"], 1)
        self.assertEqual(stats["active_coupons"], 2)
        self.assertEqual(stats["expired_coupons"], 1)
        self.assertEqual(stats["total_usage"], 1)
        self.assertEqual(UserCoupon.objects.filter(campaign=self.campaign).count(), 3)


class AdminCouponManagementTest(TestCase):
    def setUp(self):
        self.service = CouponService()
        self.user = UserFactory()
        self.campaign = CouponCampaignFactory()
        self.coupon = UserCouponFactory(campaign=self.campaign, user=self.user, coupon_code="SAVE-ABCD1234")
        self.redeemed = UserCouponFactory(campaign=self.campaign, is_redeemed=True, coupon_code="SAVE-ZZZZ9999")
        self.other = UserCouponFactory(campaign=CouponCampaignFactory(), coupon_code="VIP-QQQQ0000")

    def test_list_filters(self):
        by_user = self.service.list_coupons({"user_id": self.user.id}).value
        by_campaign = self.service.list_coupons({"campaign_id": self.campaign.id}).value
        by_code = self.service.list_coupons({"coupon_code": "save-"}).value
        redeemed = self.service.list_coupons({"is_redeemed": True}).value

        self.assertEqual([c.id for c in by_user["results"]], [self.coupon.id])
        self.assertEqual({c.id for c in by_campaign["results"]}, {self.coupon.id, self.redeemed.id})
        self.assertEqual({c.id for c in by_code["results"]}, {self.coupon.id, self.redeemed.id})
        self.assertEqual([c.id for c in redeemed["results"]], [self.redeemed.id])
        self.assertEqual(by_campaign["pagination"]["total_items"], 2)

    def test_list_rejects_unknown_sort(self):
        result = self.service.list_coupons({"sort_by": "user__password"})

        self.assertEqual(result.error, ErrorCodes.INVALID_INPUT)

    def test_update_changes_expiry_and_reports_old_values(self):
        new_expiry = timezone.now() + timedelta(days=90)
        old_expiry = self.coupon.expires_at

        result = self.service.update_user_coupon(self.coupon.id, {"expires_at": new_expiry})

        self.assertTrue(result.ok)
        self.assertEqual(result.value["old_values"], {"expires_at": old_expiry})
        self.coupon.refresh_from_db()
        self.assertEqual(self.coupon.expires_at, new_expiry)

    def test_update_cannot_reassign_coupon(self):
        result = self.service.update_user_coupon(self.coupon.id, {"coupon_code": "SAVE-NEW00000"})

        self.assertEqual(result.error, ErrorCodes.INVALID_INPUT)
        self.coupon.refresh_from_db()
        self.assertEqual(self.coupon.coupon_code, "SAVE-ABCD1234")

    def test_deactivate(self):
        result = self.service.deactivate_user_coupon(self.coupon.id)

        self.assertTrue(result.ok)
        self.coupon.refresh_from_db()
        self.assertFalse(self.coupon.is_active)
        self.assertTrue(UserCoupon.objects.filter(pk=self.coupon.pk).exists())

    def test_unknown_coupon(self):
        self.assertEqual(self.service.deactivate_user_coupon(999999).error, ErrorCodes.COUPON_NOT_FOUND)
        result = self.service.update_user_coupon("abc", {"is_active": False})
        self.assertEqual(result.error, ErrorCodes.COUPON_NOT_FOUND)


class CampaignServiceTest(TestCase):
    def setUp(self):
        self.service = CampaignService()
        self.now = timezone.now()
        self.shoes = CategoryFactory(name="Shoes")
        self.payload = {
            "name": "Spring Sale",
            "description": "Ten percent off shoes",
            "code_prefix": "spring",
            "discount_type": CouponCampaign.PERCENTAGE,
            "discount_value": Decimal("10.00"),
            "valid_from": self.now,
            "valid_until": self.now + timedelta(days=30),
            "category_ids": [self.shoes.id],
        }

    def test_create(self):
        result = self.service.create_campaign(self.payload)

        self.assertTrue(result.ok)
        campaign = result.value
        self.assertEqual(campaign.slug, "spring-sale")
        self.assertEqual(campaign.code_prefix, "SPRING")
        self.assertEqual(campaign.eligibility_criteria, ["NONE"])
        self.assertEqual(list(campaign.applicable_categories.all()), [self.shoes])

    def test_create_enforces_model_rules(self):
        self.payload["discount_value"] = Decimal("150.00")

        result = self.service.create_campaign(self.payload)

        self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR)
        self.assertIn("discount_value", result.error_detail)
        self.assertFalse(CouponCampaign.objects.filter(name="Spring Sale").exists())

    def test_create_rejects_unknown_targets(self):
        self.payload["category_ids"] = [self.shoes.id, 987654]

        result = self.service.create_campaign(self.payload)

        self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR)
        self.assertIn("987654", result.error_detail)

    def test_get_by_id_or_slug_with_statistics(self):
        campaign = CouponCampaignFactory(name="Loyalty Rewards")
        UserCouponFactory(campaign=campaign, is_redeemed=True)
        UserCouponFactory(campaign=campaign)
        UserCouponFactory(campaign=campaign)

        by_id = self.service.get_campaign(campaign.id)
        by_slug = self.service.get_campaign("loyalty-rewards")

        self.assertEqual(by_id.value["campaign"], campaign)
        self.assertEqual(by_slug.value["campaign"], campaign)
        self.assertEqual(
            by_id.value["statistics"],
            {"total_user_coupons_generated": 3, "total_redeemed_coupons": 1, "redemption_rate": 33.33},
        )

    def test_get_unknown(self):
        self.assertEqual(self.service.get_campaign("no-such-campaign").error, ErrorCodes.CAMPAIGN_NOT_FOUND)

    def test_list_filters_and_search(self):
        CouponCampaignFactory(
            name="Summer Sale", description="", discount_type=CouponCampaign.AMOUNT, discount_value=Decimal("50")
        )
        CouponCampaignFactory(name="Winter Sale", description="", is_active=False)
        CouponCampaignFactory(name="Referral Bonus", description="Invite a friend")

        sales = self.service.list_campaigns({"search": "sale", "sort_by": "name", "sort_order": "asc"}).value
        active_sales = self.service.list_campaigns({"search": "sale", "is_active": True}).value
        amounts = self.service.list_campaigns({"discount_type": CouponCampaign.AMOUNT}).value

        self.assertEqual([c.name for c in sales["results"]], ["Summer Sale", "Winter Sale"])
        self.assertEqual([c.name for c in active_sales["results"]], ["Summer Sale"])
        self.assertEqual([c.name for c in amounts["results"]], ["Summer Sale"])

    def test_update_regenerates_slug_and_reports_changes(self):
        campaign = CouponCampaignFactory(name="Old Name", discount_value=Decimal("10.00"))

        result = self.service.update_campaign(campaign.slug, {"name": "New Name", "discount_value": Decimal("15.00")})

        self.assertTrue(result.ok)
        campaign.refresh_from_db()
        self.assertEqual(campaign.slug, "new-name")
        self.assertEqual(result.value["old_values"]["name"], "Old Name")
        self.assertEqual(result.value["new_values"]["discount_value"], Decimal("15.00"))

    def test_update_rejects_usage_counter_and_slug(self):
        campaign = CouponCampaignFactory()

        usage = self.service.update_campaign(campaign.id, {"current_global_usage": 0})
        slug = self.service.update_campaign(campaign.id, {"slug": "hand-picked"})

        self.assertEqual(usage.error, ErrorCodes.INVALID_INPUT)
        self.assertEqual(slug.error, ErrorCodes.INVALID_INPUT)

    def test_update_validates_window(self):
        campaign = CouponCampaignFactory()

        result = self.service.update_campaign(campaign.id, {"valid_until": campaign.valid_from - timedelta(days=1)})

        self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR)
        campaign.refresh_from_db()
        self.assertGreater(campaign.valid_until, campaign.valid_from)

    def test_deactivate_also_deactivates_user_coupons(self):
        campaign = CouponCampaignFactory()
        coupons = [UserCouponFactory(campaign=campaign) for _ in range(2)]
        untouched = UserCouponFactory()

        result = self.service.deactivate_campaign(campaign.id)

        self.assertTrue(result.ok)
        self.assertEqual(result.value["deactivated_coupons"], 2)
        campaign.refresh_from_db()
        self.assertFalse(campaign.is_active)
        for coupon in coupons:
            coupon.refresh_from_db()
            self.assertFalse(coupon.is_active)
        untouched.refresh_from_db()
        self.assertTrue(untouched.is_active)
