"""Pydantic-схемы тел запросов."""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


# --- Orders ---


class OrderItemIn(BaseModel):
    product_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1)
    # цену присылает клиент, но считаем по БД
    unit_price: Optional[Decimal] = None
    size: Optional[str] = Field(default=None, max_length=20)
    color: Optional[str] = Field(default=None, max_length=40)


class OrderCreateRequest(BaseModel):
    """Request body for placing an order with pickup delivery."""

    delivery_location_id: int = Field(..., ge=1)
    payment_method: str = Field(default="cash_on_delivery", min_length=1, max_length=50)
    order_items: List[OrderItemIn] = Field(..., min_length=1)
    coupon_code: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = Field(default=None, max_length=500)
    # итоги с клиента игнорируются, сервер пересчитывает
    subtotal_amount: Optional[Decimal] = None
    shipping_amount: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None


class OrderStatusUpdateRequest(BaseModel):
    status: str
    notes: Optional[str] = Field(default=None, max_length=500)
    tracking_number: Optional[str] = Field(default=None, max_length=100)


# --- Delivery ---

LocationStatus = Literal["active", "inactive", "maintenance"]


class DeliveryLocationCreate(BaseModel):
    city_name: str = Field(..., min_length=2, max_length=100)
    shipping_amount: Decimal = Field(..., ge=0)
    pickup_location: str = Field(..., min_length=5, max_length=255)
    pickup_phone: str = Field(..., pattern=r"^\+?[0-9 ()-]{7,20}$")
    pickup_status: LocationStatus = "active"


class DeliveryLocationUpdate(BaseModel):
    city_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    shipping_amount: Optional[Decimal] = Field(default=None, ge=0)
    pickup_location: Optional[str] = Field(default=None, min_length=5, max_length=255)
    pickup_phone: Optional[str] = Field(default=None, pattern=r"^\+?[0-9 ()-]{7,20}$")
    pickup_status: Optional[LocationStatus] = None


# --- Products ---


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=120)
    category: Optional[str] = Field(default=None, max_length=120)
    image: Optional[str] = Field(default=None, max_length=255)
    price: Decimal = Field(..., gt=0)
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = True
    is_featured: bool = False


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=120)
    category: Optional[str] = Field(default=None, max_length=120)
    image: Optional[str] = Field(default=None, max_length=255)
    price: Optional[Decimal] = Field(default=None, gt=0)
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None


# --- Cart ---


class CartAddRequest(BaseModel):
    product_id: int = Field(..., ge=1)
    quantity: int = Field(default=1, ge=1)
    size: Optional[str] = Field(default=None, max_length=20)
    color: Optional[str] = Field(default=None, max_length=40)


class CartUpdateRequest(BaseModel):
    quantity: int


# --- Coupons ---


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=3, max_length=20, pattern=r"^[A-Za-z0-9]+$")
    description: str = Field(..., min_length=10, max_length=200)
    discount_type: Literal["percentage", "fixed"]
    discount_value: Decimal = Field(..., ge=Decimal("0.01"))
    minimum_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(default=None, ge=0)
    valid_until: datetime
    usage_limit: Optional[int] = Field(default=None, ge=1)
    is_single_use: bool = False
    is_active: bool = True


class CouponUpdate(BaseModel):
    # used_count менять нельзя, он считается заказами
    code: Optional[str] = Field(default=None, min_length=3, max_length=20, pattern=r"^[A-Za-z0-9]+$")
    description: Optional[str] = Field(default=None, min_length=10, max_length=200)
    discount_type: Optional[Literal["percentage", "fixed"]] = None
    discount_value: Optional[Decimal] = Field(default=None, ge=Decimal("0.01"))
    minimum_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(default=None, ge=0)
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = Field(default=None, ge=1)
    is_single_use: Optional[bool] = None
    is_active: Optional[bool] = None


# --- Auth ---


class RegisterRequest(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str


PHONE_PATTERN = r"^\+?[0-9 ()-]{7,20}$"
Gender = Literal["male", "female", "other"]


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def strong_enough(cls, v: str) -> str:
        if not (any(c.islower() for c in v) and any(c.isupper() for c in v) and any(c.isdigit() for c in v)):
            raise ValueError("must contain a lowercase letter, an uppercase letter and a digit")
        return v


# --- Users (админ) ---


class UserCreate(RegisterRequest):
    role: Literal["admin", "customer"] = "customer"
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)


class UserUpdate(ProfileUpdate):
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    role: Optional[Literal["admin", "customer"]] = None
    is_active: Optional[bool] = None


class UserStatusRequest(BaseModel):
    is_active: bool
