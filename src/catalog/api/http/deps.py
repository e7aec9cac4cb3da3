"""FastAPI dependency implementations."""

from __future__ import annotations

from typing import Any

from fastapi import Body, HTTPException, Request, status

from src.catalog.api.http.app_data import ApplicationDependencies
from src.catalog.entities.service.product import Product, ProductRepository

# Attributes a client may set; ``id`` is always assigned by the store.
PERMITTED_PRODUCT_ATTRIBUTES = tuple(name for name in Product.model_fields if name != "id")


def get_product_repository(request: Request) -> ProductRepository:
    """Get the product repository instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.product_repository


def product_params(payload: Any = Body(default=None)) -> dict[str, Any]:
    """Extract the permitted attributes from a ``{"product": {...}}`` body.

    Raises 400 when the ``product`` key is missing, empty or not an object.
    Unknown attributes are dropped.
    """
    product = payload.get("product") if isinstance(payload, dict) else None
    if not isinstance(product, dict) or not product:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="param is missing or the value is empty: product",
        )
    return {name: value for name, value in product.items() if name in PERMITTED_PRODUCT_ATTRIBUTES}
