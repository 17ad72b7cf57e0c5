from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum

from coupon_app.exceptions import UnsupportedCouponTypeError


class CouponType(str, Enum):
    CART_WISE = "cart-wise"
    PRODUCT_WISE = "product-wise"
    BXGY = "bxgy"

    @classmethod
    def from_label(cls, label: str) -> "CouponType":
        """Resolve a kind label case-insensitively."""
        normalized = (label or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise UnsupportedCouponTypeError(label)


def stringify_details(details: Dict[str, Any]) -> Dict[str, str]:
    """Coupon config travels as a string map; lists become comma-separated ids."""
    out: Dict[str, str] = {}
    for key, value in (details or {}).items():
        if isinstance(value, (list, tuple, set)):
            out[str(key)] = ",".join(str(v) for v in value)
        else:
            out[str(key)] = str(value)
    return out


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Request schemas
class CouponCreate(BaseModel):
    type: str = Field(..., description="Type of coupon: 'cart-wise', 'product-wise', 'bxgy'")
    details: Dict[str, Any] = Field(..., description="Coupon-specific configuration")
    is_active: Optional[bool] = Field(default=True)
    expires_at: Optional[datetime] = None


class CouponUpdate(BaseModel):
    type: Optional[str] = Field(None, description="Type of coupon")
    details: Optional[Dict[str, Any]] = Field(None, description="Coupon-specific configuration")
    is_active: Optional[bool] = Field(None, description="Whether coupon is active")
    expires_at: Optional[datetime] = None


# Response schemas
class CouponResponse(BaseModel):
    id: int
    type: str
    details: Dict[str, str]
    is_active: bool = True
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Pydantic v2 style config (replaces class Config)
    model_config = ConfigDict(from_attributes=True, frozen=True)

    @field_validator("details", mode="before")
    @classmethod
    def _stringify(cls, value):
        return stringify_details(value)

    @field_validator("expires_at", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value):
        return as_utc(value)


# Response schemas for coupon evaluation
class ApplicableCoupon(BaseModel):
    coupon_id: int
    type: str
    discount: float


class ApplicableCouponsResponse(BaseModel):
    applicable_coupons: List[ApplicableCoupon]


class CartItemWithDiscount(BaseModel):
    product_id: int
    quantity: int
    price: float
    total_discount: float = Field(default=0.0)


class UpdatedCart(BaseModel):
    items: List[CartItemWithDiscount]
    total_price: float
    total_discount: float
    final_price: float


class ApplyCouponResponse(BaseModel):
    updated_cart: UpdatedCart
