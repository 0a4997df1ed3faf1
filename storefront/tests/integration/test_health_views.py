from unittest.mock import patch

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient


class HealthEndpointTest(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_liveness(self):
        response = self.client.get(reverse("health-live"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_readiness(self):
        response = self.client.get(reverse("health-ready"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["checks"], {"database": True, "cache": True})

    @patch("authentication.api.views.health_views.check_cache", return_value=False)
    def test_readiness_cache_down(self, mock_check_cache):
        response = self.client.get(reverse("health-ready"))

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.json()["status"], "not_ready")

    def test_request_id_echoed(self):
        response = self.client.get(reverse("health-live"), HTTP_X_REQUEST_ID="req-123")

        self.assertEqual(response["X-Request-ID"], "req-123")

    def test_request_id_generated(self):
        response = self.client.get(reverse("health-live"))

        self.assertTrue(response["X-Request-ID"])
