# storefront/domain/schemas.py
from pydantic import AliasChoices, BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from storefront.domain.enums import OrderStatus, PaymentMethod, PaymentStatus, Role


# ----- auth -----

class RegisterIn(BaseModel):
    """Schema for registering a user."""

    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)
    role: Role = Role.USER
    email: Optional[str] = Field(None, max_length=255)


class LoginIn(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenOut(BaseModel):
    token: str


class MessageOut(BaseModel):
    message: str


# ----- catalog -----

class CategoryIn(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)


class CategoryOut(BaseModel):
    id: int
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductIn(BaseModel):
    """Schema for creating or replacing a product (admin)."""

    name: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(..., ge=0)
    category_id: int = Field(..., gt=0, validation_alias=AliasChoices("category_id", "categoryId"))
    # raw image (data URI or base64); required on create, optional on update
    image: Optional[str] = None


class ProductOut(BaseModel):
    id: int
    name: str
    description: str
    price: Decimal
    stock: int
    image_url: Optional[str] = None
    category_id: int
    category: Optional[CategoryOut] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ----- cart -----

class CartItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0, validation_alias=AliasChoices("product_id", "productId"))
    quantity: int = Field(1, gt=0)


class CartItemUpdateIn(BaseModel):
    # below 1 removes the line
    quantity: int


class CartItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    quantity: int
    price: Decimal
    subtotal: Decimal


class CartOut(BaseModel):
    user_id: int
    items: List[CartItemOut]
    total: Decimal


# ----- orders / checkout -----

class CheckoutIn(BaseModel):
    """Schema for starting a checkout from the caller's cart."""

    shipping_address: str = Field(
        ...,
        min_length=5,
        max_length=500,
        validation_alias=AliasChoices("shipping_address", "shippingAddress"),
    )
    payment_method: PaymentMethod = Field(
        ...,
        validation_alias=AliasChoices("payment_method", "paymentMethod"),
    )


class OrderItemOut(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    shipping_address: str
    total: Decimal
    items: List[OrderItemOut]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CheckoutOut(BaseModel):
    order: OrderOut
    order_items: List[OrderItemOut]
    payment_status: PaymentStatus


class OrderStatusIn(BaseModel):
    status: OrderStatus


class PaymentCallbackIn(BaseModel):
    """Body the gateway posts once an asynchronous payment settles."""

    status: PaymentStatus
    reference: Optional[str] = Field(None, max_length=100)


# ----- reviews -----

class ReviewIn(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewOut(BaseModel):
    id: int
    product_id: int
    user_id: int
    username: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class ReviewPageOut(BaseModel):
    reviews: List[ReviewOut]
    total: int
    page: int
    limit: int
