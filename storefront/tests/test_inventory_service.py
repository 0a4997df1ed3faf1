import uuid

from django.contrib.admin.sites import site
from django.core.exceptions import ValidationError
from django.test import RequestFactory, TestCase

from storefront.inventory.domain.services import InventoryService
from storefront.models import AdminAuditLog, Inventory
from storefront.services.base import ErrorCodes
from storefront.tests.factories import (
    AdminFactory,
    InventoryFactory,
    OptionFactory,
    ProductFactory,
    ProductVariantFactory,
)


class InventoryServiceTest(TestCase):
    def setUp(self):
        self.service = InventoryService()
        self.product = ProductFactory()
        self.base_unit = ProductVariantFactory(product=self.product, sku_code="TEE-RED", options={"color": "red"})
        self.pack = ProductVariantFactory(
            product=self.product, sku_code="TEE-RED-6", sort_order=1, options={"color": "red", "pack": "6"}
        )

    def test_create_inventory(self):
        result = self.service.create_inventory(self.base_unit.id, stock_quantity=30, min_stock_level=5)

        self.assertTrue(result.ok)
        self.assertEqual(result.value.stock_quantity, 30)

    def test_create_inventory_for_pack_is_rejected(self):
        result = self.service.create_inventory(self.pack.id, stock_quantity=30)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.INVALID_VARIANT_TYPE)

    def test_create_inventory_unknown_variant(self):
        result = self.service.create_inventory(uuid.uuid4())

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.VARIANT_NOT_FOUND)

    def test_create_inventory_rejects_negative_stock(self):
        result = self.service.create_inventory(self.base_unit.id, stock_quantity=-1)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.INVALID_QUANTITY)

    def test_create_inventory_twice(self):
        self.service.create_inventory(self.base_unit.id, stock_quantity=1)
        result = self.service.create_inventory(self.base_unit.id, stock_quantity=1)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.DUPLICATE_INVENTORY)

    def test_get_inventory_for_pack_variant(self):
        inventory = InventoryFactory(product_variant=self.base_unit, stock_quantity=50)

        result = self.service.get_inventory_for_variant(self.pack.id)

        self.assertTrue(result.ok)
        self.assertEqual(result.value["inventory"].id, inventory.id)
        self.assertEqual(result.value["computed_stock_quantity"], 8)
        self.assertEqual(result.value["pack_details"]["pack_multiplier"], 6)
        self.assertEqual(result.value["requested_variant"].id, self.pack.id)

    def test_get_inventory_for_variant_without_record(self):
        result = self.service.get_inventory_for_variant(self.pack.id)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.NO_INVENTORY_RECORD)

    def test_update_inventory(self):
        inventory = InventoryFactory(product_variant=self.base_unit, stock_quantity=10, last_restock_date=None)

        result = self.service.update_inventory(inventory.id, {"stock_quantity": 25, "location": "WH-9"})

        self.assertTrue(result.ok)
        self.assertEqual(result.value["stock_change"], 15)
        self.assertEqual(result.value["old_values"]["stock_quantity"], 10)
        self.assertEqual(result.value["updated_fields"], ["location", "stock_quantity"])
        inventory.refresh_from_db()
        self.assertEqual(inventory.stock_quantity, 25)
        self.assertIsNotNone(inventory.last_restock_date)

    def test_update_inventory_cannot_change_variant(self):
        inventory = InventoryFactory(product_variant=self.base_unit)

        result = self.service.update_inventory(inventory.id, {"product_variant_id": self.pack.id})

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.INVALID_INPUT)

    def test_update_inventory_of_variant_that_became_a_pack(self):
        other = ProductVariantFactory(product=self.product, options={"color": "blue"})
        inventory = InventoryFactory(product_variant=other, stock_quantity=10)
        other.option_values.add(OptionFactory(option_type="pack", option_value="3"))

        result = self.service.update_inventory(inventory.id, {"stock_quantity": 20})

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.INVALID_VARIANT_TYPE)
        self.assertEqual(
            result.error_detail, "Cannot update inventory for pack variant. Only base units track physical stock."
        )

    def test_delete_inventory_is_soft(self):
        inventory = InventoryFactory(product_variant=self.base_unit)

        result = self.service.delete_inventory(inventory.id)

        self.assertTrue(result.ok)
        inventory.refresh_from_db()
        self.assertFalse(inventory.is_active)
        self.assertEqual(self.service.delete_inventory(inventory.id).error, ErrorCodes.INVENTORY_NOT_FOUND)

    def test_adjust_stock(self):
        inventory = InventoryFactory(product_variant=self.base_unit, stock_quantity=10)

        added = self.service.adjust_stock(inventory.id, 5, "add")
        removed = self.service.adjust_stock(inventory.id, 12, "remove")
        overdrawn = self.service.adjust_stock(inventory.id, 4, "remove")
        reset = self.service.adjust_stock(inventory.id, 0, "set")

        self.assertEqual(added.value["new_stock"], 15)
        self.assertEqual(removed.value["new_stock"], 3)
        self.assertEqual(overdrawn.error, ErrorCodes.INSUFFICIENT_STOCK)
        self.assertEqual(reset.value["new_stock"], 0)
        inventory.refresh_from_db()
        self.assertEqual(inventory.stock_quantity, 0)
        self.assertIsNotNone(inventory.last_sold_date)

    def test_adjust_stock_invalid_operation(self):
        inventory = InventoryFactory(product_variant=self.base_unit)

        self.assertEqual(self.service.adjust_stock(inventory.id, 1, "multiply").error, ErrorCodes.INVALID_INPUT)
        self.assertEqual(self.service.adjust_stock(inventory.id, 0, "add").error, ErrorCodes.INVALID_QUANTITY)


class InventoryListTest(TestCase):
    def setUp(self):
        self.service = InventoryService()
        self.product = ProductFactory()
        self.base_unit = ProductVariantFactory(product=self.product, sku_code="MUG-WHITE", options={"color": "white"})
        self.pack = ProductVariantFactory(
            product=self.product, sku_code="MUG-WHITE-4", sort_order=1, options={"color": "white", "pack": "4"}
        )
        self.orphan_pack = ProductVariantFactory(
            product=self.product, sku_code="MUG-BLACK-4", sort_order=2, options={"color": "black", "pack": "4"}
        )
        self.inventory = InventoryFactory(
            product_variant=self.base_unit, stock_quantity=18, min_stock_level=2, location="Aisle 3"
        )

        other_variant = ProductVariantFactory(sku_code="PLATE-1")
        self.empty = InventoryFactory(product_variant=other_variant, stock_quantity=0, location="Backroom")

    def test_pagination(self):
        result = self.service.list_inventory(page=1, limit=1)

        pagination = result.value["pagination"]
        self.assertEqual(pagination["total_items"], 2)
        self.assertEqual(pagination["total_pages"], 2)
        self.assertTrue(pagination["has_next_page"])
        self.assertFalse(pagination["has_prev_page"])
        self.assertEqual(result.value["computed_packs"], [])

    def test_filters(self):
        out_of_stock = self.service.list_inventory(filters={"stock_status": "out_of_stock"})
        by_location = self.service.list_inventory(filters={"location": "aisle"})
        by_search = self.service.list_inventory(filters={"search": "plate"})

        self.assertEqual([i.id for i in out_of_stock.value["results"]], [self.empty.id])
        self.assertEqual([i.id for i in by_location.value["results"]], [self.inventory.id])
        self.assertEqual([i.id for i in by_search.value["results"]], [self.empty.id])

    def test_computed_pack_rows(self):
        result = self.service.list_inventory(filters={"product_id": self.product.id}, include_computed_packs=True)

        self.assertEqual(len(result.value["results"]), 1)
        rows = result.value["computed_packs"]
        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row["id"], f"computed_{self.pack.id}")
        self.assertEqual(row["computed_stock_quantity"], 4)
        self.assertEqual(row["pack_multiplier"], 4)
        self.assertEqual(row["base_inventory_id"], self.inventory.id)
        self.assertTrue(row["is_computed"])
        self.assertEqual(row["stock_status"], "Low Stock")
        self.assertFalse(Inventory.objects.filter(product_variant=self.pack).exists())

    def test_stock_status_querysets(self):
        low = InventoryFactory(stock_quantity=2, min_stock_level=5)

        self.assertEqual(set(Inventory.objects.out_of_stock()), {self.empty})
        self.assertEqual(set(Inventory.objects.low_stock()), {self.empty, low})
        self.assertEqual(set(Inventory.objects.in_stock()), {self.inventory, low})

        self.empty.is_active = False
        self.empty.save()
        self.assertEqual(set(Inventory.objects.active().low_stock()), {low})


class InventoryValidationTest(TestCase):
    """Pack variants never own an inventory row, whichever way it is written."""

    def setUp(self):
        self.product = ProductFactory()
        self.base_unit = ProductVariantFactory(product=self.product, options={"color": "green"})
        self.pack = ProductVariantFactory(product=self.product, sort_order=1, options={"color": "green", "pack": "12"})
        self.admin = AdminFactory()

    def admin_request(self):
        request = RequestFactory().post("/admin/storefront/inventory/add/")
        request.user = self.admin
        return request

    def admin_form(self, variant):
        request = self.admin_request()
        form_class = site._registry[Inventory].get_form(request)
        return form_class(data={"product_variant": str(variant.id), "stock_quantity": 10, "min_stock_level": 2})

    def test_base_unit_passes_model_validation(self):
        Inventory(product_variant=self.base_unit, stock_quantity=5).full_clean()

    def test_pack_variant_fails_model_validation(self):
        with self.assertRaises(ValidationError) as ctx:
            Inventory(product_variant=self.pack, stock_quantity=5).full_clean()

        self.assertEqual(
            ctx.exception.message_dict["product_variant"],
            ["Inventory can only be kept for base unit variants; this variant is a pack of 12"],
        )

    def test_malformed_pack_value_fails_model_validation(self):
        variant = ProductVariantFactory(product=self.product, options={"color": "green", "pack": "dozen"})

        with self.assertRaises(ValidationError) as ctx:
            Inventory(product_variant=variant).full_clean()

        self.assertIn("product_variant", ctx.exception.message_dict)

    def test_admin_form_rejects_pack_variant(self):
        form = self.admin_form(self.pack)

        self.assertFalse(form.is_valid())
        self.assertIn("product_variant", form.errors)
        self.assertFalse(Inventory.objects.filter(product_variant=self.pack).exists())

    def test_admin_save_is_audited(self):
        form = self.admin_form(self.base_unit)
        self.assertTrue(form.is_valid(), form.errors)

        inventory = form.save(commit=False)
        site._registry[Inventory].save_model(self.admin_request(), inventory, form, change=False)

        entry = AdminAuditLog.objects.get(action_type="inventory_created")
        self.assertEqual(entry.resource_id, str(inventory.pk))
        self.assertEqual(entry.changes["source"], "django_admin")
        self.assertEqual(entry.admin, self.admin)
