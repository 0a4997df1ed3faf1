import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class StorefrontConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "storefront"

    def ready(self):
        if getattr(settings, "TRACING_ENABLED", False):
            from storefront.infra.observability.tracing import setup_tracing

            setup_tracing(
                service_name=getattr(settings, "TRACING_SERVICE_NAME", "storefront-service"),
                console_export=getattr(settings, "TRACING_CONSOLE_EXPORT", False),
            )
