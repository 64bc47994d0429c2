from datetime import datetime
from typing import Literal

from pydantic import AnyHttpUrl, Field, model_validator

from storefront.schemas.envelope import CamelModel


class ProductOut(CamelModel):
    id: int
    name: str
    price: float
    image_url: str | None = None
    created_at: datetime | None = None


# Inputs

class ProductCreate(CamelModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=1)
    image_url: AnyHttpUrl | None = None


class ProductId(CamelModel):
    id: int


class ProductUpdate(CamelModel):
    id: int
    name: str | None = Field(default=None, min_length=1)
    price: float | None = Field(default=None, ge=1)
    # An explicit null clears the image
    image_url: AnyHttpUrl | None = None

    @model_validator(mode="after")
    def check_has_changes(self):
        if not self.model_fields_set - {"id"}:
            raise ValueError("At least one field to update is required")
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("name cannot be null")
        if "price" in self.model_fields_set and self.price is None:
            raise ValueError("price cannot be null")
        return self

    def changes(self) -> dict:
        """Supplied fields only, keyed by column name."""
        return self.model_dump(include=self.model_fields_set - {"id"})


class ConfirmDeleteAll(CamelModel):
    confirm: Literal[True]


# Results

class ProductCreated(CamelModel):
    success: Literal[True] = True
    message: str
    id: int


class ProductList(CamelModel):
    success: Literal[True] = True
    products: list[ProductOut]


class ProductFound(CamelModel):
    success: Literal[True] = True
    product: ProductOut
