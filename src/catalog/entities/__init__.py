"""Entities module with entity-centric structure.

Each entity has its own package containing:
- entity.py: Domain model, defaults and validation rules
- repository.py: Data access layer over a record storage
"""

from .service.product import Money, Product, ProductRepository

__all__ = [
    "Money",
    "Product",
    "ProductRepository",
]
