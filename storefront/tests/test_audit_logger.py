import json
from unittest.mock import patch

from django.test import RequestFactory, TestCase

from storefront.audit.logger import AdminAuditLogger, AuditContext
from storefront.models import AdminAuditLog
from storefront.tests.factories import AdminFactory


class AdminAuditLoggerTest(TestCase):
    def setUp(self):
        self.audit_logger = AdminAuditLogger()
        self.admin = AdminFactory()
        request = RequestFactory().post(
            "/api/storefront/inventory/", HTTP_X_FORWARDED_FOR="203.0.113.7, 10.0.0.1", HTTP_USER_AGENT="pytest"
        )
        request.user = self.admin
        request.correlation_id = "req-123"
        self.context = AuditContext.from_request(request)

    def test_context_from_request(self):
        self.assertEqual(self.context.admin, self.admin)
        self.assertEqual(self.context.ip_address, "203.0.113.7")
        self.assertEqual(self.context.user_agent, "pytest")
        self.assertEqual(self.context.request_id, "req-123")
        self.assertEqual(self.context.extra["method"], "POST")

    def test_update_records_only_changed_fields(self):
        with self.assertLogs("storefront.audit", level="INFO") as logs:
            entry = self.audit_logger.log_resource_update(
                self.context,
                "INVENTORY",
                42,
                {"stock_quantity": 10, "location": "WH-1"},
                {"stock_quantity": 25, "location": "WH-1"},
            )

        self.assertEqual(entry.action_type, "inventory_updated")
        self.assertEqual(entry.changes, {"stock_quantity": {"old_value": 10, "new_value": 25}})
        self.assertEqual(entry.resource_id, "42")
        self.assertEqual(entry.admin, self.admin)
        payload = json.loads(logs.records[0].getMessage())
        self.assertEqual(payload["admin_id"], str(self.admin.pk))
        self.assertEqual(payload["request_id"], "req-123")

    def test_failed_action_logged_as_warning(self):
        with self.assertLogs("storefront.audit", level="WARNING"):
            entry = self.audit_logger.log_failed_action(
                self.context, "stock_adjusted", "INVENTORY", 7, "Cannot remove 5 units from stock of 2"
            )

        self.assertEqual(entry.status, "failure")
        self.assertEqual(entry.error_message, "Cannot remove 5 units from stock of 2")

    def test_entries_are_immutable(self):
        entry = self.audit_logger.log_resource_creation(self.context, "INVENTORY", 1, {"stock_quantity": 3})

        with self.assertRaises(ValueError):
            entry.save()
        with self.assertRaises(ValueError):
            entry.delete()

    def test_persistence_failure_does_not_raise(self):
        with patch.object(AdminAuditLog.objects, "create", side_effect=RuntimeError("db down")):
            with self.assertLogs("storefront.audit.logger", level="ERROR"):
                entry = self.audit_logger.log_resource_deletion(self.context, "INVENTORY", 1, {})

        self.assertIsNone(entry)

    def test_system_context(self):
        entry = self.audit_logger.log_resource_creation(AuditContext.system(), "COUPON_CAMPAIGN", 3, {})

        self.assertIsNone(entry.admin)
        self.assertEqual(AdminAuditLog.objects.count(), 1)
