"""Evaluates coupons against a cart: lists applicable ones and applies a single coupon."""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from coupon_app.exceptions import (
    ConfigurationError, CouponExpiredError, CouponNotFoundError,
)
from coupon_app.logger import get_logger
from coupon_app.schemas.cart import Cart
from coupon_app.schemas.coupon import ApplicableCoupon, CouponResponse, as_utc
from coupon_app.services.strategy_registry import StrategyRegistry, default_registry

logger = get_logger("engine")


def is_expired(coupon: CouponResponse, now: Optional[datetime] = None) -> bool:
    """Expiry is derived from ``expires_at``; a coupon without one never expires."""
    if coupon.expires_at is None:
        return False
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    return now > as_utc(coupon.expires_at)


class CouponEngine:
    """Evaluates coupons against a cart. Holds no state besides the registry."""

    def __init__(self, registry: Optional[StrategyRegistry] = None):
        self.registry = registry or default_registry

    def list_applicable(self, cart: Cart, coupons: Iterable[CouponResponse]) -> List[ApplicableCoupon]:
        """Coupons (already filtered to active, unexpired ones) that apply to the cart.

        Results keep the input order. Each coupon is judged against the original
        cart. Coupons with an unknown type or broken details are skipped.
        """
        applicable: List[ApplicableCoupon] = []
        for coupon in coupons:
            try:
                strategy = self.registry.get(coupon.type)
                if not strategy.is_applicable(cart, coupon):
                    continue
                discount = strategy.calculate_discount(cart, coupon)
            except ConfigurationError as exc:
                logger.warning("Skipping coupon %s: %s", coupon.id, exc.detail)
                continue
            applicable.append(ApplicableCoupon(coupon_id=coupon.id, type=coupon.type, discount=float(discount)))
        return applicable

    def apply_single(self, cart: Cart, coupon: Optional[CouponResponse],
                     now: Optional[datetime] = None) -> Cart:
        """Apply one coupon, returning the updated cart.

        Raises:
            CouponNotFoundError: coupon missing or inactive
            CouponExpiredError: expiry has passed
            ConfigurationError: unsupported type or malformed details
            CouponNotApplicableError: the cart does not qualify
        """
        if coupon is None or not coupon.is_active:
            coupon_id = coupon.id if coupon is not None else None
            raise CouponNotFoundError(f"Active coupon not found with id: {coupon_id}")
        if is_expired(coupon, now):
            raise CouponExpiredError(f"Coupon {coupon.id} has expired")

        strategy = self.registry.get(coupon.type)
        if not strategy.is_applicable(cart, coupon):
            raise strategy.not_applicable_error(cart, coupon)

        logger.info("Applying %s coupon %s to cart with %d items", coupon.type, coupon.id, len(cart.items))
        return strategy.apply(cart, coupon)
