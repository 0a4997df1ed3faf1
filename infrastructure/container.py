"""
Dependency Injection Container
================================

Simple service locator for the storefront domain services. Views ask the
container for a service instead of constructing one, so tests can swap in
doubles with ``container.override(...)`` and ``container.reset()``.

Usage:
    from infrastructure.container import container

    inventory_service = container.inventory_service()
    coupon_evaluator = container.coupon_evaluator()
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for domain services.

    Implements lazy initialization and caching of service instances.
    Singleton pattern.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize container (only once)."""
        if not self._initialized:
            self._user_history_lookup = None
            self._pack_resolver = None
            self._inventory_service = None
            self._coupon_evaluator = None
            self._coupon_service = None
            self._campaign_service = None
            self._audit_logger = None

            self._initialized = True
            logger.info("Service container initialized")

    def user_history_lookup(self):
        """Get the user/order history lookup used by coupon eligibility rules."""
        if self._user_history_lookup is None:
            from storefront.promotions.domain.eligibility import DjangoUserHistoryLookup

            self._user_history_lookup = DjangoUserHistoryLookup()
            logger.debug("Created DjangoUserHistoryLookup")
        return self._user_history_lookup

    def pack_resolver(self):
        """Get PackResolver instance."""
        if self._pack_resolver is None:
            from storefront.inventory.domain.services import PackResolver

            self._pack_resolver = PackResolver()
            logger.debug("Created PackResolver")
        return self._pack_resolver

    def inventory_service(self):
        """Get InventoryService instance."""
        if self._inventory_service is None:
            from storefront.inventory.domain.services import InventoryService

            # InventoryService depends on PackResolver
            self._inventory_service = InventoryService(pack_resolver=self.pack_resolver())
            logger.debug("Created InventoryService")
        return self._inventory_service

    def coupon_evaluator(self):
        """Get CouponEvaluator instance."""
        if self._coupon_evaluator is None:
            from storefront.promotions.domain.services import CouponEvaluator

            self._coupon_evaluator = CouponEvaluator(user_lookup=self.user_history_lookup())
            logger.debug("Created CouponEvaluator")
        return self._coupon_evaluator

    def coupon_service(self):
        """Get CouponService instance."""
        if self._coupon_service is None:
            from storefront.promotions.domain.services import CouponService

            # CouponService re-runs the evaluator at redemption
            self._coupon_service = CouponService(evaluator=self.coupon_evaluator())
            logger.debug("Created CouponService")
        return self._coupon_service

    def campaign_service(self):
        """Get CampaignService instance."""
        if self._campaign_service is None:
            from storefront.promotions.domain.services import CampaignService

            self._campaign_service = CampaignService()
            logger.debug("Created CampaignService")
        return self._campaign_service

    def audit_logger(self):
        """Get AdminAuditLogger instance."""
        if self._audit_logger is None:
            from storefront.audit.logger import AdminAuditLogger

            self._audit_logger = AdminAuditLogger()
            logger.debug("Created AdminAuditLogger")
        return self._audit_logger

    def override(self, **services):
        """
        Replace cached services, e.g. ``container.override(user_history_lookup=fake)``.

        Dependent services built afterwards pick up the override; call
        ``reset()`` first to drop ones already built.
        """
        for name, service in services.items():
            attribute = f"_{name}"
            if not hasattr(self, attribute):
                raise AttributeError(f"Unknown service: {name}")
            setattr(self, attribute, service)
            logger.debug(f"Overrode service {name} with {type(service).__name__}")

    def reset(self):
        """
        Reset all cached service instances.

        Useful for testing or when switching between environments.
        """
        self._user_history_lookup = None
        self._pack_resolver = None
        self._inventory_service = None
        self._coupon_evaluator = None
        self._coupon_service = None
        self._campaign_service = None
        self._audit_logger = None
        logger.info("Service container reset")


# Global singleton instance
container = ServiceContainer()
