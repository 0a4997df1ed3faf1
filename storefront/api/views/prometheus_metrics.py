from django.http import HttpResponse
from prometheus_client import generate_latest
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny

from infrastructure.container import container


@api_view(["GET"])
@permission_classes([AllowAny])
def storefront_prometheus_metrics(request):
    """
    Exposes Prometheus metrics for the storefront app.
    """
    # Gauge is otherwise only refreshed by stock writes
    container.inventory_service().refresh_low_stock_gauge()
    metrics_content = generate_latest()
    return HttpResponse(metrics_content, content_type="text/plain; version=0.0.4; charset=utf-8")
