from dataclasses import dataclass

from src.catalog.entities.service.product import ProductRepository


@dataclass
class ApplicationDependencies:
    product_repository: ProductRepository
