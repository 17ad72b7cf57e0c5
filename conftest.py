"""Shared pytest fixtures for the coupon service."""
import os

# Keep the app's own engine off disk during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from coupon_app.schemas.cart import Cart, CartItem  # noqa: E402
from coupon_app.schemas.coupon import CouponResponse  # noqa: E402


def make_cart(*lines) -> Cart:
    """Build a cart from (product_id, quantity, price) tuples."""
    return Cart.from_items(
        CartItem(product_id=pid, quantity=qty, price=Decimal(str(price)))
        for pid, qty, price in lines
    )


def make_coupon(coupon_type: str, details: dict, coupon_id: int = 1, **fields) -> CouponResponse:
    now = datetime.now(timezone.utc)
    data = {"id": coupon_id, "type": coupon_type, "details": details,
            "is_active": True, "created_at": now, "updated_at": now}
    data.update(fields)
    return CouponResponse(**data)


@pytest.fixture
def cart_150():
    # subtotal 150
    return make_cart((1, 2, "50"), (2, 1, "50"))


@pytest.fixture
def cart_wise_coupon():
    return make_coupon("cart-wise", {"threshold": "100", "discount": "10"})


@pytest.fixture
def product_wise_coupon():
    return make_coupon("product-wise", {"product_id": "7", "discount": "20"}, coupon_id=2)


@pytest.fixture
def bxgy_coupon():
    return make_coupon(
        "bxgy",
        {"buy_quantity": "2", "get_quantity": "1", "buy_product_ids": "1", "get_product_ids": "2"},
        coupon_id=3,
    )
