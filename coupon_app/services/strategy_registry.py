"""Lookup from coupon type to the strategy that evaluates it."""
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Union

from coupon_app.exceptions import UnsupportedCouponTypeError
from coupon_app.schemas.coupon import CouponType
from coupon_app.services.discount_strategies import (
    BxGyStrategy, CartWiseStrategy, DiscountStrategy, ProductWiseStrategy,
)


class StrategyRegistry:
    """Read-only lookup from coupon type to its strategy, built once at startup."""

    def __init__(self, strategies: Iterable[DiscountStrategy]):
        self._strategies: Mapping[CouponType, DiscountStrategy] = MappingProxyType(
            {strategy.coupon_type: strategy for strategy in strategies}
        )

    @classmethod
    def default(cls) -> "StrategyRegistry":
        return cls([CartWiseStrategy(), ProductWiseStrategy(), BxGyStrategy()])

    def get(self, coupon_type: Union[str, CouponType]) -> DiscountStrategy:
        """Strategy for a type label. Raises UnsupportedCouponTypeError for unknown kinds."""
        kind = coupon_type if isinstance(coupon_type, CouponType) else CouponType.from_label(coupon_type)
        strategy: Optional[DiscountStrategy] = self._strategies.get(kind)
        if strategy is None:
            # Known label, but nothing registered for it
            raise UnsupportedCouponTypeError(kind.value)
        return strategy

    def supported_types(self) -> List[str]:
        return [kind.value for kind in self._strategies]


default_registry = StrategyRegistry.default()
