"""
InventoryService - Base Unit Stock Management

Admin operations over inventory records. Only base unit variants own a
record; pack stock is always derived through the PackResolver. Stock writes
lock the inventory row so concurrent adjustments serialize.
"""

from typing import Any, Dict, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from storefront.catalog.domain.models.catalog import ProductVariant
from storefront.domain.exceptions import InvalidPackValue, StorefrontError
from storefront.infra.observability.metrics import (
    data_integrity_errors_total,
    inventory_low_stock,
    inventory_mutations_total,
)
from storefront.infra.observability.tracing import tracer
from storefront.inventory.domain import packs
from storefront.inventory.domain.models.inventory import Inventory
from storefront.inventory.domain.services.pack_resolver import PackResolver
from storefront.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

UPDATABLE_FIELDS = ("stock_quantity", "min_stock_level", "location", "notes", "is_active", "last_sold_date")
SORTABLE_FIELDS = (
    "created_at",
    "updated_at",
    "stock_quantity",
    "min_stock_level",
    "location",
    "last_restock_date",
    "last_sold_date",
)
STOCK_OPERATIONS = ("add", "remove", "set")


class InventoryService(BaseService):
    """
    Service for managing base unit inventory records.
    """

    def __init__(self, pack_resolver: Optional[PackResolver] = None):
        super().__init__()
        self.pack_resolver = pack_resolver or PackResolver()
        self.pack_low_stock_threshold = getattr(settings, "INVENTORY_PACK_LOW_STOCK_THRESHOLD", 5)
        self.max_min_stock_level = getattr(settings, "INVENTORY_MAX_MIN_STOCK_LEVEL", 10000)

    def _domain_error(self, exc: StorefrontError) -> ServiceResult:
        return service_err(exc.error_code, str(exc))

    def _validate_levels(self, stock_quantity=None, min_stock_level=None) -> Optional[ServiceResult]:
        if stock_quantity is not None and (not isinstance(stock_quantity, int) or stock_quantity < 0):
            return service_err(ErrorCodes.INVALID_QUANTITY, "Stock quantity must be a non-negative integer")
        if min_stock_level is not None:
            if not isinstance(min_stock_level, int) or min_stock_level < 0:
                return service_err(ErrorCodes.INVALID_QUANTITY, "Minimum stock level must be a non-negative integer")
            if min_stock_level > self.max_min_stock_level:
                return service_err(
                    ErrorCodes.INVALID_QUANTITY,
                    f"Minimum stock level cannot exceed {self.max_min_stock_level}",
                )
        return None

    def refresh_low_stock_gauge(self) -> None:
        inventory_low_stock.set(Inventory.objects.active().low_stock().count())

    @BaseService.log_performance
    def create_inventory(
        self,
        variant_id,
        stock_quantity: int = 0,
        min_stock_level: int = 0,
        location: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ServiceResult[Inventory]:
        """
        Create the inventory record for a base unit variant.

        Returns:
            ServiceResult with the Inventory instance, or one of
            variant_not_found / invalid_variant_type / invalid_pack_value /
            duplicate_inventory / invalid_quantity
        """
        invalid = self._validate_levels(stock_quantity, min_stock_level)
        if invalid:
            return invalid

        try:
            inventory = self.pack_resolver.create_inventory(
                variant_id,
                initial_stock=stock_quantity,
                min_stock_level=min_stock_level,
                location=location,
                notes=notes,
            )
        except StorefrontError as e:
            return self._domain_error(e)
        except Exception as e:
            self.logger.error(f"Error creating inventory for variant {variant_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

        self.refresh_low_stock_gauge()
        return service_ok(inventory)

    def get_inventory(self, inventory_id) -> ServiceResult[Inventory]:
        try:
            inventory = Inventory.objects.select_related("product_variant").get(id=inventory_id)
            return service_ok(inventory)
        except (Inventory.DoesNotExist, ValueError, ValidationError):
            return service_err(ErrorCodes.INVENTORY_NOT_FOUND, f"Inventory record {inventory_id} not found")
        except Exception as e:
            self.logger.error(f"Error retrieving inventory {inventory_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def get_inventory_for_variant(self, variant_id) -> ServiceResult[Dict[str, Any]]:
        """
        Stock view for any variant, base unit or pack.

        Returns:
            ServiceResult with:
            - inventory: the base unit's Inventory record
            - computed_stock_quantity: sellable units of the requested variant
            - pack_details: classification and resolved base unit id
            - requested_variant: the ProductVariant asked about
        """
        try:
            details, inventory, computed_stock = self.pack_resolver.stock_snapshot(variant_id)
            requested_variant = ProductVariant.objects.get(id=variant_id)
        except StorefrontError as e:
            return self._domain_error(e)
        except Exception as e:
            self.logger.error(f"Error retrieving inventory for variant {variant_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

        return service_ok(
            {
                "inventory": inventory,
                "computed_stock_quantity": computed_stock,
                "pack_details": details.to_dict(),
                "requested_variant": requested_variant,
            }
        )

    @BaseService.log_performance
    @transaction.atomic
    def update_inventory(self, inventory_id, updates: Dict[str, Any]) -> ServiceResult[Dict[str, Any]]:
        """
        Update mutable fields of an inventory record.

        The variant reference can never change. A stock increase stamps
        ``last_restock_date``.

        Returns:
            ServiceResult with ``inventory``, ``old_values``, ``new_values``,
            ``updated_fields`` and ``stock_change`` (None when stock untouched)
        """
        if "product_variant" in updates or "product_variant_id" in updates:
            return service_err(ErrorCodes.INVALID_INPUT, "The product variant of an inventory record cannot be changed")

        unknown = sorted(set(updates) - set(UPDATABLE_FIELDS))
        if unknown:
            return service_err(ErrorCodes.INVALID_INPUT, f"Fields cannot be updated: {', '.join(unknown)}")

        invalid = self._validate_levels(updates.get("stock_quantity"), updates.get("min_stock_level"))
        if invalid:
            return invalid

        try:
            inventory = Inventory.objects.select_for_update().select_related("product_variant").get(id=inventory_id)
        except (Inventory.DoesNotExist, ValueError, ValidationError):
            return service_err(ErrorCodes.INVENTORY_NOT_FOUND, f"Inventory record {inventory_id} not found")

        try:
            details = self.pack_resolver.classify(inventory.product_variant)
        except InvalidPackValue as e:
            return self._domain_error(e)
        if not details.is_base_unit:
            return service_err(
                ErrorCodes.INVALID_VARIANT_TYPE,
                "Cannot update inventory for pack variant. Only base units track physical stock.",
            )

        old_values = {field: getattr(inventory, field) for field in updates}
        old_stock = inventory.stock_quantity

        for field, value in updates.items():
            setattr(inventory, field, value)

        stock_change = None
        if "stock_quantity" in updates:
            stock_change = inventory.stock_quantity - old_stock
            if stock_change > 0:
                inventory.last_restock_date = timezone.now()

        inventory.save()
        inventory_mutations_total.labels(operation="update").inc()
        self.refresh_low_stock_gauge()

        self.logger.info(
            f"Inventory {inventory.id} updated: fields={sorted(updates)}, "
            f"stock: {old_stock} -> {inventory.stock_quantity}"
        )

        return service_ok(
            {
                "inventory": inventory,
                "old_values": old_values,
                "new_values": {field: getattr(inventory, field) for field in updates},
                "updated_fields": sorted(updates),
                "stock_change": stock_change,
            }
        )

    @BaseService.log_performance
    @transaction.atomic
    def delete_inventory(self, inventory_id) -> ServiceResult[Inventory]:
        """Soft delete: the record is deactivated, never removed."""
        try:
            inventory = Inventory.objects.select_for_update().get(id=inventory_id, is_active=True)
        except (Inventory.DoesNotExist, ValueError, ValidationError):
            return service_err(ErrorCodes.INVENTORY_NOT_FOUND, f"Inventory record {inventory_id} not found")

        inventory.is_active = False
        inventory.save(update_fields=["is_active", "updated_at"])
        inventory_mutations_total.labels(operation="delete").inc()
        self.refresh_low_stock_gauge()

        self.logger.info(f"Inventory {inventory.id} soft deleted (final stock {inventory.stock_quantity})")
        return service_ok(inventory)

    @BaseService.log_performance
    @transaction.atomic
    def adjust_stock(self, inventory_id, quantity: int, operation: str = "add") -> ServiceResult[Dict[str, Any]]:
        """
        Change the physical stock of a base unit.

        Args:
            inventory_id: Inventory record id
            quantity: Units to add, remove, or the new absolute level for 'set'
            operation: 'add', 'remove' or 'set'

        Example:
            >>> result = inventory_service.adjust_stock(inventory.id, 12, "add")
            >>> if result.ok:
            ...     print(result.value["new_stock"])
        """
        if operation not in STOCK_OPERATIONS:
            return service_err(ErrorCodes.INVALID_INPUT, "Operation must be 'add', 'remove', or 'set'")
        if not isinstance(quantity, int) or quantity < 0 or (operation != "set" and quantity == 0):
            return service_err(ErrorCodes.INVALID_QUANTITY, f"Invalid quantity {quantity!r} for '{operation}'")

        try:
            inventory = Inventory.objects.select_for_update().get(id=inventory_id, is_active=True)
        except (Inventory.DoesNotExist, ValueError, ValidationError):
            return service_err(ErrorCodes.INVENTORY_NOT_FOUND, f"Inventory record {inventory_id} not found")

        old_stock = inventory.stock_quantity
        now = timezone.now()

        if operation == "add":
            inventory.stock_quantity += quantity
            inventory.last_restock_date = now
        elif operation == "remove":
            if inventory.stock_quantity < quantity:
                return service_err(
                    ErrorCodes.INSUFFICIENT_STOCK,
                    f"Cannot remove {quantity} units from stock of {inventory.stock_quantity}",
                )
            inventory.stock_quantity -= quantity
            inventory.last_sold_date = now
        else:
            if quantity > old_stock:
                inventory.last_restock_date = now
            inventory.stock_quantity = quantity

        inventory.save()
        inventory_mutations_total.labels(operation=operation).inc()
        self.refresh_low_stock_gauge()

        self.logger.info(
            f"Stock adjusted: inventory={inventory.id}, operation={operation}, "
            f"quantity={quantity}, stock: {old_stock} -> {inventory.stock_quantity}"
        )

        return service_ok(
            {
                "inventory": inventory,
                "operation": operation,
                "quantity": quantity,
                "old_stock": old_stock,
                "new_stock": inventory.stock_quantity,
            }
        )

    @BaseService.log_performance
    def list_inventory(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        include_computed_packs: bool = False,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        List inventory records with filtering and pagination.

        Args:
            filters: is_active, stock_status (out_of_stock|low_stock|in_stock),
                location, product_id, search
            page: Page number (1-indexed)
            limit: Items per page
            sort_by: One of SORTABLE_FIELDS (falls back to created_at)
            sort_order: 'asc' or 'desc'
            include_computed_packs: Also return one derived row per pack whose
                base unit is on the page

        Returns:
            ServiceResult with ``results``, ``computed_packs`` and ``pagination``
        """
        filters = filters or {}
        with tracer.start_as_current_span("inventory_list") as span:
            span.set_attribute("filters.count", len(filters))
            span.set_attribute("page", page)

            try:
                queryset = Inventory.objects.select_related("product_variant", "product_variant__product")

                if filters.get("is_active") is not None:
                    queryset = queryset.filter(is_active=filters["is_active"])

                if filters.get("location"):
                    queryset = queryset.filter(location__icontains=filters["location"])

                stock_status = filters.get("stock_status")
                if stock_status == "out_of_stock":
                    queryset = queryset.out_of_stock()
                elif stock_status == "low_stock":
                    queryset = queryset.low_stock()
                elif stock_status == "in_stock":
                    queryset = queryset.in_stock()

                if filters.get("product_id"):
                    queryset = queryset.filter(product_variant__product_id=filters["product_id"])

                if filters.get("search"):
                    term = filters["search"]
                    queryset = queryset.filter(
                        Q(product_variant__sku_code__icontains=term)
                        | Q(location__icontains=term)
                        | Q(notes__icontains=term)
                    )

                field = sort_by if sort_by in SORTABLE_FIELDS else "created_at"
                prefix = "" if sort_order == "asc" else "-"
                queryset = queryset.order_by(f"{prefix}{field}", "id")

                paginator = Paginator(queryset, limit)
                page_obj = paginator.get_page(page)
                results = list(page_obj.object_list)

                computed_packs = self._computed_pack_rows(results) if include_computed_packs else []

                span.set_attribute("result.count", paginator.count)
                self.logger.info(
                    f"Listed inventory: count={paginator.count}, page={page_obj.number}/{paginator.num_pages}, "
                    f"computed_packs={len(computed_packs)}"
                )

                return service_ok(
                    {
                        "results": results,
                        "computed_packs": computed_packs,
                        "pagination": {
                            "current_page": page_obj.number,
                            "total_pages": paginator.num_pages if paginator.count else 0,
                            "total_items": paginator.count,
                            "items_per_page": limit,
                            "has_next_page": page_obj.has_next(),
                            "has_prev_page": page_obj.has_previous(),
                        },
                    }
                )

            except Exception as e:
                self.logger.error(f"Error listing inventory: {e}", exc_info=True)
                span.record_exception(e)
                return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    def _computed_pack_rows(self, inventories):
        """Derived stock rows for every pack built from a base unit in ``inventories``."""
        by_variant = {inventory.product_variant_id: inventory for inventory in inventories}
        product_ids = {inventory.product_variant.product_id for inventory in inventories}
        if not product_ids:
            return []

        variants = list(
            ProductVariant.objects.filter(product_id__in=product_ids)
            .prefetch_related("option_values")
            .order_by("sort_order", "created_at", "id")
        )
        option_maps = dict(packs.candidate_option_maps((variant.id, variant.option_pairs()) for variant in variants))

        rows = []
        for variant in variants:
            if variant.id not in option_maps:
                self.logger.warning(f"Skipping variant {variant.id} in computed packs: ambiguous options")
                continue
            try:
                details = packs.classify(option_maps[variant.id])
            except InvalidPackValue as e:
                self.logger.warning(f"Skipping variant {variant.id} in computed packs: {e}")
                continue
            if details.is_base_unit:
                continue

            siblings = (
                (sibling.id, option_maps[sibling.id])
                for sibling in variants
                if sibling.product_id == variant.product_id and sibling.id != variant.id and sibling.id in option_maps
            )
            base_unit_id = packs.find_base_unit(option_maps[variant.id], siblings)
            if base_unit_id is None:
                data_integrity_errors_total.labels(kind="base_unit_not_found").inc()
                self.logger.error(f"Data integrity error: base unit not found for pack variant {variant.id}")
                continue
            base_inventory = by_variant.get(base_unit_id)
            if base_inventory is None:
                continue

            computed_stock = packs.computed_quantity(base_inventory.stock_quantity, details.pack_multiplier)
            rows.append(
                {
                    "id": f"computed_{variant.id}",
                    "product_variant": variant,
                    "computed_stock_quantity": computed_stock,
                    "pack_multiplier": details.pack_multiplier,
                    "base_inventory_id": base_inventory.id,
                    "is_computed": True,
                    "stock_status": self._pack_stock_status(computed_stock),
                }
            )
        return rows

    def _pack_stock_status(self, computed_stock: int) -> str:
        if computed_stock <= 0:
            return "Out of Stock"
        if computed_stock <= self.pack_low_stock_threshold:
            return "Low Stock"
        return "In Stock"
