from .catalog import Option, Product, ProductVariant
from .category import Category

__all__ = [
    "Category",
    "Option",
    "Product",
    "ProductVariant",
]
