"""
Cart values used by the discount strategies.

A ``Cart`` is built fresh per request and never persisted. Applying a coupon
returns a new ``Cart``; the input is left untouched.
"""
from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

getcontext().prec = 28

ZERO = Decimal("0")


def D(x) -> Decimal:
    return Decimal(str(x))


def round2(x: Decimal) -> Decimal:
    return x.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class CartItem(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0, description="Price per unit")
    total_discount: Decimal = Field(default=ZERO, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class Cart(BaseModel):
    items: Tuple[CartItem, ...] = ()
    total_price: Decimal = ZERO
    total_discount: Decimal = ZERO
    final_price: Decimal = ZERO

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_items(cls, items: Iterable[CartItem]) -> "Cart":
        """Fresh cart: item discounts cleared, totals computed from the items."""
        fresh = tuple(item.model_copy(update={"total_discount": ZERO}) for item in items)
        total = sum((item.line_total for item in fresh), ZERO)
        return cls(items=fresh, total_price=total, total_discount=ZERO, final_price=total)

    def calculate_total_price(self) -> Decimal:
        return sum((item.line_total for item in self.items), ZERO)

    def with_discount(self, total_discount: Decimal,
                      item_discounts: Optional[Dict[int, Decimal]] = None) -> "Cart":
        """Return a copy carrying the given discount.

        ``item_discounts`` maps item positions to their discount; every other
        item is reset to zero.
        """
        item_discounts = item_discounts or {}
        items = tuple(
            item.model_copy(update={"total_discount": item_discounts.get(idx, ZERO)})
            for idx, item in enumerate(self.items)
        )
        total_price = self.calculate_total_price()
        return Cart(
            items=items,
            total_price=total_price,
            total_discount=total_discount,
            final_price=total_price - total_discount,
        )


# Request schemas
class CartItemRequest(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0, description="Price per unit")


class CartRequest(BaseModel):
    items: List[CartItemRequest] = Field(..., min_length=1)

    def to_cart(self) -> Cart:
        return Cart.from_items(
            CartItem(product_id=it.product_id, quantity=it.quantity, price=D(it.price))
            for it in self.items
        )
