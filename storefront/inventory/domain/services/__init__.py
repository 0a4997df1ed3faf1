from .inventory_service import InventoryService
from .pack_resolver import PackResolver

__all__ = [
    "InventoryService",
    "PackResolver",
]
