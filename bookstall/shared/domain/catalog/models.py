"""Book entities for the seller catalog."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

UNKNOWN_CATEGORY_NAME = "Unknown Category"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class BookCategory(_WireModel):
    id: str
    name: str


class Book(_WireModel):
    id: str
    title: str
    author: str
    description: Optional[str] = None
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    category_id: str
    category: Optional[BookCategory] = None
    image_url: Optional[str] = None
    is_approved: bool = False
    rating: float = 0.0
    seller_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NewBook(BaseModel):
    """Seller input for a book that does not exist on the server yet."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(gt=0)
    stock: int = Field(ge=0)
    category_id: str = Field(min_length=1)
    image_url: Optional[str] = None

    @field_validator("description", "image_url")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    def to_payload(self, seller_id: str) -> Dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "price": self.price,
            "categoryId": self.category_id,
            "imageUrl": self.image_url,
            "stock": self.stock,
            "sellerId": seller_id,
        }
