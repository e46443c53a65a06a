"""Order entities as returned by ``/api/seller/orders``."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: "str | OrderStatus") -> "OrderStatus":
        if isinstance(value, OrderStatus):
            return value
        return cls(value.strip().upper())


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class BookSummary(_WireModel):
    id: str
    title: str
    author: str
    image_url: Optional[str] = None
    price: float = Field(ge=0)


class OrderLine(_WireModel):
    id: str
    book_id: str
    book: Optional[BookSummary] = None
    quantity: int = Field(ge=1)
    price: float = Field(ge=0)


class OrderBuyer(_WireModel):
    id: str
    name: str
    email: str


class ShippingAddress(_WireModel):
    street: str
    city: str
    state: str
    zip_code: str
    country: str


class Order(_WireModel):
    id: str
    order_number: str
    status: OrderStatus
    total_amount: float = Field(ge=0)
    buyer: OrderBuyer = Field(alias="user")
    line_items: Tuple[OrderLine, ...] = Field(default=(), alias="items")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    shipping_address: Optional[ShippingAddress] = None
