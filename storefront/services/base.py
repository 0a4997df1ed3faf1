"""
Base classes and utilities for the service layer.

This module provides the ServiceResult pattern (inspired by Rust's Result type)
and BaseService class for all storefront services.
"""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    A result type that encapsulates success or failure from service operations.

    Expected failures (missing records, rejected input, business rules) travel
    as values instead of exceptions so views can map them to HTTP statuses.

    Attributes:
        ok: True if operation succeeded, False otherwise
        value: The success value (present if ok=True)
        error: Error code (present if ok=False)
        error_detail: Human-readable error message (present if ok=False)

    Examples:
        >>> result = service_ok(inventory)
        >>> if result.ok:
        ...     return Response({"data": result.value}, 200)

        >>> result = service_err("inventory_not_found", "Inventory record 42 does not exist")
        >>> print(result.error)  # "inventory_not_found"
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None


def service_ok(value: T) -> ServiceResult[T]:
    """
    Create a successful ServiceResult.

    Args:
        value: The success value

    Returns:
        ServiceResult with ok=True and the value
    """
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "") -> ServiceResult:
    """
    Create a failed ServiceResult.

    Args:
        error: Error code (e.g., "variant_not_found", "invalid_pack_value")
        error_detail: Human-readable error message

    Returns:
        ServiceResult with ok=False and error information
    """
    return ServiceResult(ok=False, error=error, error_detail=error_detail or error)


class BaseService:
    """
    Base class for all services providing common functionality.

    Provides:
    - Logging with class name
    - Performance timing decorator

    Usage:
        class InventoryService(BaseService):
            def __init__(self, pack_resolver):
                super().__init__()
                self.pack_resolver = pack_resolver

            @BaseService.log_performance
            def list_inventory(self, filters):
                self.logger.info(f"Listing inventory with filters: {filters}")
    """

    def __init__(self):
        """Initialize base service with logger."""
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log performance of service methods.

        Logs execution time and any errors that occur.

        Args:
            func: The service method to wrap

        Returns:
            Wrapped function with performance logging
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000  # Convert to ms

                # Log based on result type
                if isinstance(result, ServiceResult):
                    if result.ok:
                        self.logger.info(f"{method_name} completed successfully in {elapsed_time:.2f}ms")
                    else:
                        self.logger.warning(
                            f"{method_name} failed with error '{result.error}' in {elapsed_time:.2f}ms"
                        )
                else:
                    self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")

                return result

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper


# Common error codes for storefront services
class ErrorCodes:
    """Standard error codes used across storefront services."""

    # Catalog errors
    VARIANT_NOT_FOUND = "variant_not_found"
    INVALID_PACK_VALUE = "invalid_pack_value"
    AMBIGUOUS_OPTIONS = "ambiguous_options"

    # Inventory errors
    INVENTORY_NOT_FOUND = "inventory_not_found"
    NO_INVENTORY_RECORD = "no_inventory_record"
    DUPLICATE_INVENTORY = "duplicate_inventory"
    INVALID_VARIANT_TYPE = "invalid_variant_type"
    INVALID_QUANTITY = "invalid_quantity"
    INSUFFICIENT_STOCK = "insufficient_stock"

    # Data integrity errors (catalog authoring problems, alert on these)
    DATA_INTEGRITY_ERROR = "data_integrity_error"
    BASE_UNIT_NOT_FOUND = "base_unit_not_found"

    # Coupon errors
    COUPON_NOT_FOUND = "coupon_not_found"
    CAMPAIGN_NOT_FOUND = "campaign_not_found"
    CAMPAIGN_INACTIVE = "campaign_inactive"
    CAMPAIGN_EXHAUSTED = "campaign_exhausted"
    COUPON_NOT_USABLE = "coupon_not_usable"
    COUPON_BELOW_MINIMUM = "coupon_below_minimum"
    COUPON_NOT_APPLICABLE = "coupon_not_applicable"
    COUPON_NOT_ELIGIBLE = "coupon_not_eligible"

    # Validation errors
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    INVALID_INPUT = "invalid_input"

    # Internal errors
    INTERNAL_ERROR = "internal_error"
