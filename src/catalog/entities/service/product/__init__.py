"""Entity package: Product."""

from .entity import Money, Product
from .repository import ProductRepository

__all__ = ["Money", "Product", "ProductRepository"]
