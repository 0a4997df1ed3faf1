from storefront.services.base import ErrorCodes


class StorefrontError(Exception):
    """Base class for storefront domain exceptions."""

    error_code = ErrorCodes.INTERNAL_ERROR


class InvalidInput(StorefrontError):
    """Raised when caller supplied data is malformed."""

    error_code = ErrorCodes.INVALID_INPUT


class InvalidPackValue(InvalidInput):
    """Raised when a variant's pack option is not a positive integer."""

    error_code = ErrorCodes.INVALID_PACK_VALUE

    def __init__(self, raw_value):
        self.raw_value = raw_value
        super().__init__(f"Pack option value {raw_value!r} is not a positive integer")


class AmbiguousOptions(InvalidInput):
    """Raised when a variant carries more than one value for the same option type."""

    error_code = ErrorCodes.AMBIGUOUS_OPTIONS

    def __init__(self, option_type):
        self.option_type = option_type
        super().__init__(f"Variant has more than one value for option type {option_type!r}")


class InvalidVariantType(InvalidInput):
    """Raised when a pack variant is used where a base unit is required."""

    error_code = ErrorCodes.INVALID_VARIANT_TYPE


class NotFound(StorefrontError):
    """Base class for missing records."""

    error_code = ErrorCodes.NOT_FOUND


class VariantNotFound(NotFound):
    error_code = ErrorCodes.VARIANT_NOT_FOUND


class InventoryNotFound(NotFound):
    error_code = ErrorCodes.INVENTORY_NOT_FOUND


class NoInventoryRecord(NotFound):
    """Raised when a base unit has no active inventory record."""

    error_code = ErrorCodes.NO_INVENTORY_RECORD


class DuplicateInventory(StorefrontError):
    error_code = ErrorCodes.DUPLICATE_INVENTORY


class DataIntegrityError(StorefrontError):
    """Catalog data is inconsistent. Surfaced distinctly so operators can alert on it."""

    error_code = ErrorCodes.DATA_INTEGRITY_ERROR


class BaseUnitNotFound(DataIntegrityError):
    """Raised when a pack variant has no matching base unit sibling."""

    error_code = ErrorCodes.BASE_UNIT_NOT_FOUND

    def __init__(self, pack_variant_id):
        self.pack_variant_id = pack_variant_id
        super().__init__(f"Base unit variant not found for pack variant {pack_variant_id}")
