"""
PackResolver - Base Unit / Pack Resolution

Classifies variants as base units or packs, locates the base unit a pack is
built from and derives pack stock from the base unit's inventory record.

Failures are raised as ``storefront.domain.exceptions`` so that callers can
tell malformed input, missing records and catalog integrity problems apart.
"""

from typing import Optional, Tuple

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from storefront.catalog.domain.models.catalog import ProductVariant
from storefront.domain.exceptions import (
    BaseUnitNotFound,
    DuplicateInventory,
    InvalidVariantType,
    NoInventoryRecord,
    VariantNotFound,
)
from storefront.infra.observability.metrics import data_integrity_errors_total, inventory_mutations_total
from storefront.inventory.domain import packs
from storefront.inventory.domain.models.inventory import Inventory
from storefront.services.base import BaseService


class PackResolver(BaseService):
    def get_variant(self, variant_id) -> ProductVariant:
        try:
            return ProductVariant.objects.prefetch_related("option_values").get(id=variant_id)
        except (ProductVariant.DoesNotExist, ValidationError, ValueError):
            raise VariantNotFound(f"Variant {variant_id} not found") from None

    def classify(self, variant: ProductVariant) -> packs.PackDetails:
        """
        Determine whether ``variant`` is a base unit or a pack.

        Raises:
            InvalidPackValue: the pack option is not a positive integer
            AmbiguousOptions: an option type appears more than once
        """
        return packs.classify(packs.build_option_map(variant.option_pairs()))

    def resolve_base_unit(self, pack_variant: ProductVariant):
        """
        Find the id of the base unit variant ``pack_variant`` is built from.

        Siblings are scanned in ``sort_order, created_at, id`` order and the
        first one whose non-pack options equal the pack's wins.

        Raises:
            BaseUnitNotFound: no sibling qualifies (catalog data problem)
        """
        pack_options = packs.build_option_map(pack_variant.option_pairs())
        siblings = (
            ProductVariant.objects.filter(product_id=pack_variant.product_id)
            .exclude(id=pack_variant.id)
            .prefetch_related("option_values")
            .order_by("sort_order", "created_at", "id")
        )

        candidates = packs.candidate_option_maps((candidate.id, candidate.option_pairs()) for candidate in siblings)
        base_unit_id = packs.find_base_unit(pack_options, candidates)
        if base_unit_id is not None:
            return base_unit_id

        data_integrity_errors_total.labels(kind="base_unit_not_found").inc()
        self.logger.error(
            f"Data integrity error: base unit not found for pack variant {pack_variant.id} "
            f"(product={pack_variant.product_id}, options={pack_options})"
        )
        raise BaseUnitNotFound(pack_variant.id)

    def get_pack_details(self, variant_id) -> packs.PackDetails:
        """Classification plus the resolved base unit id. A base unit resolves to itself."""
        variant = self.get_variant(variant_id)
        details = self.classify(variant)
        if details.is_base_unit:
            return packs.PackDetails(is_base_unit=True, pack_multiplier=1, base_unit_variant_id=str(variant.id))
        base_unit_id = self.resolve_base_unit(variant)
        return packs.PackDetails(
            is_base_unit=False,
            pack_multiplier=details.pack_multiplier,
            base_unit_variant_id=str(base_unit_id),
        )

    def computed_stock(self, variant_id) -> int:
        """
        Units of ``variant_id`` that can be sold right now.

        Base units report their physical stock. Packs report
        ``floor(base stock / multiplier)``.

        Raises:
            VariantNotFound, NoInventoryRecord, BaseUnitNotFound, InvalidPackValue
        """
        return self.stock_snapshot(variant_id)[2]

    def stock_snapshot(self, variant_id) -> Tuple[packs.PackDetails, Inventory, int]:
        """Pack details, the base unit's active inventory record and the computed stock."""
        details = self.get_pack_details(variant_id)
        inventory = (
            Inventory.objects.select_related("product_variant")
            .filter(product_variant_id=details.base_unit_variant_id, is_active=True)
            .first()
        )
        if inventory is None:
            raise NoInventoryRecord(f"No inventory record for base unit {details.base_unit_variant_id}")

        if details.is_base_unit:
            return details, inventory, inventory.stock_quantity
        return details, inventory, packs.computed_quantity(inventory.stock_quantity, details.pack_multiplier)

    @transaction.atomic
    def create_inventory(
        self,
        variant_id,
        initial_stock: int = 0,
        min_stock_level: int = 0,
        location: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Inventory:
        """
        Create the inventory record for a base unit variant.

        A soft-deleted record for the same variant is reactivated with the new
        values, since the variant may only own one row.

        Raises:
            VariantNotFound, InvalidVariantType, DuplicateInventory, InvalidPackValue
        """
        variant = self.get_variant(variant_id)
        details = self.classify(variant)
        if not details.is_base_unit:
            raise InvalidVariantType(
                f"Inventory can only be created for base unit variants; "
                f"variant {variant.id} is a pack of {details.pack_multiplier}"
            )

        existing = Inventory.objects.select_for_update().filter(product_variant=variant).first()
        if existing is not None and existing.is_active:
            raise DuplicateInventory(f"Inventory already exists for variant {variant.id}")

        now = timezone.now()
        restock_date = now if initial_stock > 0 else None
        if existing is not None:
            existing.stock_quantity = initial_stock
            existing.min_stock_level = min_stock_level
            existing.location = location
            existing.notes = notes
            existing.is_active = True
            existing.last_restock_date = restock_date
            existing.save()
            inventory_mutations_total.labels(operation="reactivate").inc()
            self.logger.info(f"Reactivated inventory {existing.id} for variant {variant.id}")
            return existing

        try:
            inventory = Inventory.objects.create(
                product_variant=variant,
                stock_quantity=initial_stock,
                min_stock_level=min_stock_level,
                location=location,
                notes=notes,
                last_restock_date=restock_date,
            )
        except IntegrityError:
            raise DuplicateInventory(f"Inventory already exists for variant {variant.id}") from None

        inventory_mutations_total.labels(operation="create").inc()
        self.logger.info(f"Created inventory {inventory.id} for variant {variant.id} with stock {initial_stock}")
        return inventory
