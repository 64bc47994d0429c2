from datetime import datetime
from typing import Literal

from pydantic import Field, model_validator

from storefront.schemas.envelope import CamelModel


class OrderOut(CamelModel):
    id: int
    product_id: int | None = None
    quantity: int
    created_at: datetime | None = None


class OrderCreate(CamelModel):
    product_id: int
    quantity: int = Field(ge=1)


class OrderId(CamelModel):
    id: int


class OrderUpdate(CamelModel):
    id: int
    quantity: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_has_changes(self):
        if self.quantity is None:
            raise ValueError("At least one field to update is required")
        return self


class OrderCreated(CamelModel):
    success: Literal[True] = True
    id: int


class OrderList(CamelModel):
    success: Literal[True] = True
    orders: list[OrderOut]


class OrderFound(CamelModel):
    success: Literal[True] = True
    order: OrderOut
