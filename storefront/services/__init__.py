"""
Storefront Service Layer

Shared result type and base class for the storefront domain services:

- PackResolver, InventoryService (storefront.inventory.domain.services)
- CouponEvaluator, CouponService (storefront.promotions.domain.services)

Usage:
    from infrastructure.container import container

    result = container.inventory_service().get_inventory_for_variant(variant_id)

    if result.ok:
        stock = result.value["computed_stock_quantity"]
    else:
        error = result.error
"""

from .base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

__all__ = [
    "BaseService",
    "ServiceResult",
    "service_ok",
    "service_err",
    "ErrorCodes",
]
