"""Property tests for exact-input / exact-output pricing.

Uses Hypothesis to check that the two pricing modes invert each other and
that no priced swap lowers the constant product.
"""

from __future__ import annotations

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

import hypothesis.strategies as st
from hypothesis import given, settings

from src.core.cpmm import MarketSnapshot, price_exact_input, price_exact_output


# Output units cheaper than input units (reserve_out >= 4 * reserve_in) and a
# trade no larger than the input reserve keep one unit of output rounding
# within one unit of input.
@st.composite
def _market_and_amount(draw):
    reserve_in = draw(st.integers(min_value=1, max_value=10**12))
    ratio = draw(st.integers(min_value=4, max_value=1000))
    amount = draw(st.integers(min_value=1, max_value=reserve_in))
    trade_fee_rate = draw(st.integers(min_value=0, max_value=100_000))
    market = MarketSnapshot(
        reserve_in=reserve_in,
        reserve_out=reserve_in * ratio,
        trade_fee_rate=trade_fee_rate,
    )
    return market, amount


@settings(max_examples=300, deadline=None)
@given(_market_and_amount())
def test_exact_output_recovers_exact_input_within_one(case) -> None:
    market, amount_in = case
    forward = price_exact_input(amount_in, market)
    back = price_exact_output(forward.output_amount, market)
    assert back.output_amount == forward.output_amount
    assert back.input_amount <= amount_in
    assert amount_in - back.input_amount <= 1


@settings(max_examples=300, deadline=None)
@given(
    st.integers(min_value=1, max_value=10**15),
    st.integers(min_value=1, max_value=10**15),
    st.lists(st.integers(min_value=0, max_value=10**12), min_size=1, max_size=8),
)
def test_constant_product_non_decreasing_over_swaps(reserve_in: int, reserve_out: int, amounts: list[int]) -> None:
    x, y = reserve_in, reserve_out
    for amount in amounts:
        r = price_exact_input(amount, MarketSnapshot(reserve_in=x, reserve_out=y))
        assert r.new_input_vault_amount * r.new_output_vault_amount >= x * y
        x, y = r.new_input_vault_amount, r.new_output_vault_amount
