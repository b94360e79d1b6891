from .auth import User, SessionToken
from .inventory import Product
from .sales import Sale, SaleItem

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Sale', 'SaleItem',
]
