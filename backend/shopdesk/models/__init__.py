from .catalog import Category, Product
from .sales import Sale

__all__ = [
    'Category', 'Product',
    'Sale',
]
