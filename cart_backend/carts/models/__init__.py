"""
PATH: carts/models/__init__.py

Carts models export surface.
"""

from .cart import Cart
from .cart_item import CartItem
from .cart_metadata import CartMetadata

__all__ = ["Cart", "CartItem", "CartMetadata"]
