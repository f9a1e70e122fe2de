"""
Product catalog lookups.

The order engine only needs a read-only view of a product.
Lookups happen before the atomic transaction starts; the
result is a snapshot that gets copied onto the order.
"""

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from topup_store.errors import UpstreamFailureError
from topup_store.models.product import Product
from topup_store.schemas.product import ProductCreate


@dataclass(frozen=True)
class ProductInfo:
    id: str
    name: str
    price: int
    group: str | None
    available: bool


class ProductCatalog(Protocol):
    def fetch_product(self, product_id: str) -> ProductInfo | None:
        ...


class DatabaseProductCatalog:
    """Catalog backed by the products table."""

    def __init__(self, db: Session):
        self.db = db

    def fetch_product(self, product_id: str) -> ProductInfo | None:
        try:
            product = self.db.get(Product, product_id)
        except SQLAlchemyError as e:
            raise UpstreamFailureError(
                f"Product catalog lookup failed for {product_id}"
            ) from e
        if product is None:
            return None
        return ProductInfo(
            id=product.id,
            name=product.name,
            price=product.price,
            group=product.group,
            available=product.available,
        )

    def create_product(self, request: ProductCreate) -> Product:
        """
        Add a product to the catalog.

        Raises ValueError if the product id is already taken.
        """
        if self.db.get(Product, request.id) is not None:
            raise ValueError(f"Product '{request.id}' already exists")
        product = Product(
            id=request.id,
            name=request.name,
            group=request.group,
            price=request.price,
            available=request.available,
        )
        self.db.add(product)
        self.db.flush()
        return product
