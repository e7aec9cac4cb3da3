"""Product API router with CRUD operations."""

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from src.catalog.api.http.deps import get_product_repository, product_params
from src.catalog.core.exceptions import ValidationFailed
from src.catalog.entities.service.product import Product, ProductRepository

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_products(
    repository: ProductRepository = Depends(get_product_repository),
) -> list[dict[str, Any]]:
    """List all products ordered by id."""
    return [product.as_json() for product in repository.all()]


@router.get("/{product_id}")
def get_product(
    product_id: str,
    repository: ProductRepository = Depends(get_product_repository),
) -> dict[str, Any]:
    """Get a product by ID."""
    return repository.find(product_id).as_json()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_product(
    response: Response,
    params: dict[str, Any] = Depends(product_params),
    repository: ProductRepository = Depends(get_product_repository),
) -> dict[str, Any]:
    """Create a new product."""
    product = Product()
    result = repository.save(product, params)
    if not result:
        raise ValidationFailed(result.errors)
    response.headers["Location"] = f"{router.prefix}/{product.id}"
    return product.as_json()


@router.api_route("/{product_id}", methods=["PATCH", "PUT"])
def update_product(
    product_id: str,
    params: dict[str, Any] = Depends(product_params),
    repository: ProductRepository = Depends(get_product_repository),
) -> dict[str, Any]:
    """Update a product."""
    product = repository.find(product_id)
    result = product.update(repository, params)
    if not result:
        raise ValidationFailed(result.errors)
    return product.as_json()


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: str,
    repository: ProductRepository = Depends(get_product_repository),
) -> Response:
    """Delete a product."""
    product = repository.find(product_id)
    product.destroy(repository)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
