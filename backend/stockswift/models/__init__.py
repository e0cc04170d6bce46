from .inventory import Product
from .sales import Sale, SaleItem

__all__ = [
    'Product',
    'Sale', 'SaleItem',
]
