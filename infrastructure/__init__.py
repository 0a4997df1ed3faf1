"""
Infrastructure Package
======================

Wiring between the API layer and the storefront domain services.

Modules:
    - container: lazily built, cached service instances (PackResolver,
      InventoryService, CouponEvaluator, CouponService, AdminAuditLogger)
"""
