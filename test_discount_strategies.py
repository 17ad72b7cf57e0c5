"""Tests for the per-type discount strategies."""
from decimal import Decimal

import pytest

from conftest import make_cart, make_coupon
from coupon_app.exceptions import ConfigurationError
from coupon_app.services.discount_strategies import (
    BxGyStrategy, CartWiseStrategy, ProductWiseStrategy,
    parse_bxgy_config, parse_cart_wise_config, parse_product_wise_config,
)


# ---------------------------------------------------------------- cart-wise

def test_cart_wise_applies_above_threshold(cart_150, cart_wise_coupon):
    strategy = CartWiseStrategy()
    assert strategy.is_applicable(cart_150, cart_wise_coupon) is True
    assert strategy.calculate_discount(cart_150, cart_wise_coupon) == Decimal("15.00")

    updated = strategy.apply(cart_150, cart_wise_coupon)
    assert updated.total_price == Decimal("150")
    assert updated.total_discount == Decimal("15.00")
    assert updated.final_price == Decimal("135.00")
    # Cart-level only
    assert all(item.total_discount == 0 for item in updated.items)


def test_cart_wise_threshold_is_strict(cart_wise_coupon):
    cart = make_cart((1, 1, "100"))
    strategy = CartWiseStrategy()
    assert strategy.is_applicable(cart, cart_wise_coupon) is False
    assert strategy.calculate_discount(cart, cart_wise_coupon) == 0


def test_cart_wise_just_above_threshold(cart_wise_coupon):
    cart = make_cart((1, 1, "100.01"))
    assert CartWiseStrategy().is_applicable(cart, cart_wise_coupon) is True


def test_cart_wise_rounds_to_cents():
    coupon = make_coupon("cart-wise", {"threshold": "0", "discount": "15"})
    cart = make_cart((1, 3, "33.33"))  # 99.99 * 0.15 = 14.9985
    updated = CartWiseStrategy().apply(cart, coupon)
    assert updated.total_discount == Decimal("15.00")
    assert updated.final_price == updated.total_price - updated.total_discount


def test_cart_wise_not_applicable_reason(cart_wise_coupon):
    cart = make_cart((1, 1, "40"))
    err = CartWiseStrategy().not_applicable_error(cart, cart_wise_coupon)
    assert "threshold" in err.detail
    assert err.title == "Insufficient Cart Value"


# ------------------------------------------------------------- product-wise

def test_product_wise_discounts_matching_item_only(product_wise_coupon):
    cart = make_cart((7, 3, "50"), (8, 2, "10"))
    strategy = ProductWiseStrategy()

    assert strategy.is_applicable(cart, product_wise_coupon) is True
    assert strategy.calculate_discount(cart, product_wise_coupon) == Decimal("30.00")

    updated = strategy.apply(cart, product_wise_coupon)
    assert updated.items[0].total_discount == Decimal("30.00")
    assert updated.items[1].total_discount == 0
    assert updated.total_discount == Decimal("30.00")
    assert updated.final_price == Decimal("140.00")


def test_product_wise_sums_every_matching_line(product_wise_coupon):
    cart = make_cart((7, 1, "10"), (9, 1, "99"), (7, 2, "5"))
    updated = ProductWiseStrategy().apply(cart, product_wise_coupon)
    per_item = [item.total_discount for item in updated.items]
    assert per_item == [Decimal("2.00"), Decimal("0"), Decimal("2.00")]
    assert updated.total_discount == sum(per_item)


def test_product_wise_not_applicable_without_product(product_wise_coupon):
    cart = make_cart((8, 1, "10"))
    strategy = ProductWiseStrategy()
    assert strategy.is_applicable(cart, product_wise_coupon) is False
    assert strategy.calculate_discount(cart, product_wise_coupon) == 0


# --------------------------------------------------------------------- bxgy

def test_bxgy_grants_whole_repetitions_only(bxgy_coupon):
    # buy 2 get 1: five buy units earn floor(5/2) = 2 free units, never 3
    cart = make_cart((1, 5, "10"), (2, 10, "4"))
    strategy = BxGyStrategy()

    assert strategy.is_applicable(cart, bxgy_coupon) is True
    assert strategy.free_units_by_item(cart, bxgy_coupon) == {1: 2}
    assert strategy.calculate_discount(cart, bxgy_coupon) == Decimal("8.00")


def test_bxgy_free_units_capped_by_available_get_units(bxgy_coupon):
    cart = make_cart((1, 10, "10"), (2, 3, "4"))
    assert BxGyStrategy().free_units_by_item(cart, bxgy_coupon) == {1: 3}


def test_bxgy_not_applicable_below_buy_quantity(bxgy_coupon):
    cart = make_cart((1, 1, "10"), (2, 3, "4"))
    strategy = BxGyStrategy()
    assert strategy.is_applicable(cart, bxgy_coupon) is False
    assert strategy.calculate_discount(cart, bxgy_coupon) == 0


def test_bxgy_same_product_via_product_id():
    coupon = make_coupon("bxgy", {"buy_quantity": "2", "get_quantity": "1", "product_id": "5"})
    cart = make_cart((5, 5, "20"))
    updated = BxGyStrategy().apply(cart, coupon)
    assert updated.items[0].total_discount == Decimal("40.00")
    assert updated.final_price == Decimal("60.00")


def test_bxgy_allocates_cheapest_eligible_item_first():
    coupon = make_coupon("bxgy", {
        "buy_quantity": "3", "get_quantity": "2",
        "buy_product_ids": "1", "get_product_ids": "2,3,4",
    })
    # 6 buy units -> 2 grants -> 4 free units
    cart = make_cart((1, 6, "10"), (2, 5, "9"), (3, 1, "3"), (4, 2, "5"))
    strategy = BxGyStrategy()

    # product 3 (3.00) first, then product 4 (5.00), then one unit of product 2
    assert strategy.free_units_by_item(cart, coupon) == {2: 1, 3: 2, 1: 1}

    updated = strategy.apply(cart, coupon)
    assert [item.total_discount for item in updated.items] == [
        Decimal("0"), Decimal("9.00"), Decimal("3.00"), Decimal("10.00"),
    ]
    assert updated.total_discount == Decimal("22.00")


def test_bxgy_price_tie_goes_to_earlier_line():
    coupon = make_coupon("bxgy", {
        "buy_quantity": "1", "get_quantity": "1",
        "buy_product_ids": "1", "get_product_ids": "2,3",
    })
    cart = make_cart((1, 1, "10"), (3, 4, "2"), (2, 4, "2"))
    assert BxGyStrategy().free_units_by_item(cart, coupon) == {1: 1}


def test_bxgy_repetition_limit_caps_grants():
    coupon = make_coupon("bxgy", {
        "buy_quantity": "1", "get_quantity": "1",
        "buy_product_ids": "1", "get_product_ids": "2", "repetition_limit": "2",
    })
    cart = make_cart((1, 10, "10"), (2, 10, "1"))
    assert BxGyStrategy().calculate_discount(cart, coupon) == Decimal("2.00")


def test_bxgy_applicable_even_without_get_item_in_cart(bxgy_coupon):
    cart = make_cart((1, 4, "10"))
    strategy = BxGyStrategy()
    assert strategy.is_applicable(cart, bxgy_coupon) is True
    assert strategy.calculate_discount(cart, bxgy_coupon) == 0


# ------------------------------------------------------------ shared rules

@pytest.mark.parametrize("strategy_cls, coupon_fixture", [
    (CartWiseStrategy, "cart_wise_coupon"),
    (ProductWiseStrategy, "product_wise_coupon"),
    (BxGyStrategy, "bxgy_coupon"),
])
def test_apply_leaves_input_cart_untouched(request, strategy_cls, coupon_fixture):
    coupon = request.getfixturevalue(coupon_fixture)
    cart = make_cart((1, 4, "50"), (2, 2, "10"), (7, 1, "30"))
    before = cart.model_dump()

    strategy = strategy_cls()
    first = strategy.calculate_discount(cart, coupon)
    updated = strategy.apply(cart, coupon)

    assert cart.model_dump() == before
    assert strategy.calculate_discount(cart, coupon) == first
    assert updated.total_discount == first
    assert updated.final_price == updated.total_price - updated.total_discount


def test_parse_cart_wise_config_missing_key():
    with pytest.raises(ConfigurationError) as exc:
        parse_cart_wise_config({"discount": "10"})
    assert "threshold" in exc.value.detail


def test_parse_product_wise_config_bad_number():
    with pytest.raises(ConfigurationError):
        parse_product_wise_config({"product_id": "seven", "discount": "20"})


def test_parse_cart_wise_config_rejects_percentage_over_100():
    with pytest.raises(ConfigurationError):
        parse_cart_wise_config({"threshold": "10", "discount": "150"})


def test_parse_bxgy_config_splits_product_lists():
    config = parse_bxgy_config({
        "buy_quantity": "2", "get_quantity": "1",
        "buy_product_ids": "1, 2", "get_product_ids": "3",
    })
    assert config.buy_product_ids == frozenset({1, 2})
    assert config.get_product_ids == frozenset({3})
    assert config.repetition_limit is None


def test_parse_bxgy_config_requires_product_sets():
    with pytest.raises(ConfigurationError):
        parse_bxgy_config({"buy_quantity": "2", "get_quantity": "1"})


def test_strategy_raises_configuration_error_on_malformed_details(cart_150):
    coupon = make_coupon("cart-wise", {"threshold": "lots", "discount": "10"})
    with pytest.raises(ConfigurationError):
        CartWiseStrategy().is_applicable(cart_150, coupon)
