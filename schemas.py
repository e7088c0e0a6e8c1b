"""
Database Schemas for the Storefront

Each Pydantic model describes a document in a MongoDB collection.
Attributes are snake_case in Python and camelCase on the wire and in
storage, so documents stay compatible with the existing storefront data:
- Product -> "products" collection
- Review -> "review" collection
- Order -> "orders" collection
- User -> "users" collection
"""

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self, **kwargs: Any) -> dict:
        return self.model_dump(by_alias=True, **kwargs)


class Product(Document):
    """Products collection schema. Price fields are free text."""
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[str] = Field(None, description="Display price, e.g. '₹499'")
    regular_price: Optional[str] = None
    discount: Optional[str] = None
    sold_out: Optional[bool] = None
    img: Optional[str] = Field(None, description="Image URL")

    @field_validator("name", "category", "price", "regular_price", "discount", "img", mode="before")
    @classmethod
    def coerce_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Review(Document):
    img: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None
    review: Optional[str] = None


class OrderItem(Document):
    product_id: Any = None
    name: Optional[str] = None
    price: float = 0
    quantity: Optional[int] = None


class Customer(Document):
    name: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None


class Order(Document):
    """Orders collection schema"""
    order_id: str
    items: List[OrderItem]
    total_amount: float
    payment_status: Literal["Pending", "Paid", "Failed"] = "Paid"
    payment_id: str
    customer: Customer
    order_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class User(Document):
    """Users collection schema (email unique)"""
    username: Optional[str] = None
    email: str = Field(..., min_length=1)
    password: Optional[str] = Field(None, description="Stored as supplied; never returned")
    google_auth: Optional[bool] = False

    @field_validator("google_auth")
    @classmethod
    def default_google_auth(cls, v):
        return bool(v)
