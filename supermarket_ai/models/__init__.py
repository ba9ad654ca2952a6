# supermarket_ai/models/__init__.py
from .profile import Profile
from .product import Product
from .sale import Sale, SaleItem
from .recommendation import Recommendation

__all__ = [
    "Profile",
    "Product",
    "Sale",
    "SaleItem",
    "Recommendation",
]
