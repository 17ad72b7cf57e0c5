"""
Discount strategies, one per coupon type.

Every strategy answers three questions about a (cart, coupon) pair:

* ``is_applicable``      - may this coupon be used on this cart?
* ``calculate_discount`` - how much money does it take off (0 if not applicable)?
* ``apply``              - a new cart with the discount written into it.

Coupon details are stored as a string map and parsed lazily here, through the
``parse_*_config`` views. A missing or unparseable key raises
``ConfigurationError``.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, FrozenSet, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from coupon_app.exceptions import ConfigurationError, InsufficientCartValueError, CouponNotApplicableError
from coupon_app.schemas.cart import Cart, ZERO, round2
from coupon_app.schemas.coupon import CouponResponse, CouponType

HUNDRED = Decimal(100)


# Typed views over the stored details
class CartWiseConfig(BaseModel):
    threshold: Decimal = Field(..., ge=0, description="Cart subtotal must exceed this")
    discount: Decimal = Field(..., ge=0, le=100, description="Discount percentage")

    model_config = ConfigDict(frozen=True)


class ProductWiseConfig(BaseModel):
    product_id: int = Field(..., gt=0)
    discount: Decimal = Field(..., ge=0, le=100, description="Discount percentage")

    model_config = ConfigDict(frozen=True)


class BxGyConfig(BaseModel):
    buy_quantity: int = Field(..., gt=0)
    get_quantity: int = Field(..., gt=0)
    buy_product_ids: FrozenSet[int] = Field(..., min_length=1)
    get_product_ids: FrozenSet[int] = Field(..., min_length=1)
    repetition_limit: Optional[int] = Field(default=None, gt=0)

    model_config = ConfigDict(frozen=True)

    @field_validator("buy_product_ids", "get_product_ids", mode="before")
    @classmethod
    def _split_ids(cls, value):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


def _parse(model, coupon_type: CouponType, details: Mapping[str, str]):
    try:
        return model.model_validate(dict(details or {}))
    except ValidationError as exc:
        problems = ", ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'details'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(
            f"Invalid {coupon_type.value} coupon configuration ({problems})"
        ) from exc


def parse_cart_wise_config(details: Mapping[str, str]) -> CartWiseConfig:
    return _parse(CartWiseConfig, CouponType.CART_WISE, details)


def parse_product_wise_config(details: Mapping[str, str]) -> ProductWiseConfig:
    return _parse(ProductWiseConfig, CouponType.PRODUCT_WISE, details)


def parse_bxgy_config(details: Mapping[str, str]) -> BxGyConfig:
    """Parse BxGy details.

    ``buy_product_ids`` / ``get_product_ids`` are comma-separated product ids.
    Either side falls back to ``product_id`` when absent (buy N of a product,
    get M of the same product).
    """
    data = dict(details or {})
    if "product_id" in data:
        data.setdefault("buy_product_ids", data["product_id"])
        data.setdefault("get_product_ids", data["product_id"])
    return _parse(BxGyConfig, CouponType.BXGY, data)


class DiscountStrategy(ABC):
    """Applicability, discount and application rules for one coupon type."""

    coupon_type: CouponType

    @abstractmethod
    def is_applicable(self, cart: Cart, coupon: CouponResponse) -> bool:
        ...

    @abstractmethod
    def calculate_discount(self, cart: Cart, coupon: CouponResponse) -> Decimal:
        ...

    @abstractmethod
    def apply(self, cart: Cart, coupon: CouponResponse) -> Cart:
        """Return a new cart with the discount applied. Callers check applicability first."""

    def not_applicable_error(self, cart: Cart, coupon: CouponResponse) -> CouponNotApplicableError:
        return CouponNotApplicableError("Coupon is not applicable to this cart")


class CartWiseStrategy(DiscountStrategy):
    """Percentage off the whole cart once the subtotal exceeds a threshold."""

    coupon_type = CouponType.CART_WISE

    def is_applicable(self, cart: Cart, coupon: CouponResponse) -> bool:
        config = parse_cart_wise_config(coupon.details)
        return cart.calculate_total_price() > config.threshold

    def calculate_discount(self, cart: Cart, coupon: CouponResponse) -> Decimal:
        config = parse_cart_wise_config(coupon.details)
        cart_total = cart.calculate_total_price()
        if not cart_total > config.threshold:
            return ZERO
        return round2(cart_total * config.discount / HUNDRED)

    def apply(self, cart: Cart, coupon: CouponResponse) -> Cart:
        # Cart-level only, no per-item amounts
        return cart.with_discount(self.calculate_discount(cart, coupon))

    def not_applicable_error(self, cart: Cart, coupon: CouponResponse) -> CouponNotApplicableError:
        config = parse_cart_wise_config(coupon.details)
        return InsufficientCartValueError(
            f"Cart subtotal {round2(cart.calculate_total_price())} "
            f"does not exceed the threshold {config.threshold}"
        )


class ProductWiseStrategy(DiscountStrategy):
    """Percentage off every cart line holding the configured product."""

    coupon_type = CouponType.PRODUCT_WISE

    def is_applicable(self, cart: Cart, coupon: CouponResponse) -> bool:
        config = parse_product_wise_config(coupon.details)
        return any(item.product_id == config.product_id for item in cart.items)

    def _item_discounts(self, cart: Cart, config: ProductWiseConfig) -> Dict[int, Decimal]:
        return {
            idx: round2(item.line_total * config.discount / HUNDRED)
            for idx, item in enumerate(cart.items)
            if item.product_id == config.product_id
        }

    def calculate_discount(self, cart: Cart, coupon: CouponResponse) -> Decimal:
        config = parse_product_wise_config(coupon.details)
        return sum(self._item_discounts(cart, config).values(), ZERO)

    def apply(self, cart: Cart, coupon: CouponResponse) -> Cart:
        config = parse_product_wise_config(coupon.details)
        per_item = self._item_discounts(cart, config)
        return cart.with_discount(sum(per_item.values(), ZERO), per_item)

    def not_applicable_error(self, cart: Cart, coupon: CouponResponse) -> CouponNotApplicableError:
        config = parse_product_wise_config(coupon.details)
        return CouponNotApplicableError(f"Product {config.product_id} is not in the cart")


class BxGyStrategy(DiscountStrategy):
    """Buy X get Y: every ``buy_quantity`` qualifying units earn ``get_quantity`` free units.

    Free units are capped by the get-eligible units actually in the cart and are
    handed out cheapest item first (ties go to the earlier cart line), so the
    merchant gives away the least value. Only whole units are ever free.
    """

    coupon_type = CouponType.BXGY

    @staticmethod
    def _grants(cart: Cart, config: BxGyConfig) -> int:
        buy_units = sum(item.quantity for item in cart.items if item.product_id in config.buy_product_ids)
        grants = buy_units // config.buy_quantity
        if config.repetition_limit is not None:
            grants = min(grants, config.repetition_limit)
        return grants

    def free_units_by_item(self, cart: Cart, coupon: CouponResponse) -> Dict[int, int]:
        """Map cart item position -> number of free units granted on that line."""
        config = parse_bxgy_config(coupon.details)
        remaining = self._grants(cart, config) * config.get_quantity

        eligible = sorted(
            (idx for idx, item in enumerate(cart.items) if item.product_id in config.get_product_ids),
            key=lambda idx: (cart.items[idx].price, idx),
        )
        allocation: Dict[int, int] = {}
        for idx in eligible:
            if remaining <= 0:
                break
            units = min(remaining, cart.items[idx].quantity)
            allocation[idx] = units
            remaining -= units
        return allocation

    def _item_discounts(self, cart: Cart, coupon: CouponResponse) -> Dict[int, Decimal]:
        return {
            idx: round2(cart.items[idx].price * units)
            for idx, units in self.free_units_by_item(cart, coupon).items()
        }

    def is_applicable(self, cart: Cart, coupon: CouponResponse) -> bool:
        config = parse_bxgy_config(coupon.details)
        return self._grants(cart, config) >= 1

    def calculate_discount(self, cart: Cart, coupon: CouponResponse) -> Decimal:
        if not self.is_applicable(cart, coupon):
            return ZERO
        return sum(self._item_discounts(cart, coupon).values(), ZERO)

    def apply(self, cart: Cart, coupon: CouponResponse) -> Cart:
        per_item = self._item_discounts(cart, coupon)
        return cart.with_discount(sum(per_item.values(), ZERO), per_item)

    def not_applicable_error(self, cart: Cart, coupon: CouponResponse) -> CouponNotApplicableError:
        config = parse_bxgy_config(coupon.details)
        return CouponNotApplicableError(
            f"Cart needs at least {config.buy_quantity} qualifying units to earn free items"
        )
