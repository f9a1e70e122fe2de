"""
Pydantic schemas for catalog products.
"""

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)
    group: str | None = Field(default=None, max_length=100)
    price: int
    available: bool = True


class ProductResponse(BaseModel):
    id: str
    name: str
    group: str | None
    price: int
    available: bool

    model_config = {"from_attributes": True}
