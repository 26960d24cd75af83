"""
Market fee kernels (deterministic, integer-only).

Rates are numerators over `FEE_RATE_DENOMINATOR_VALUE` (1_000_000):
- trading and creator fees round up (the payer covers dust),
- protocol and fund fees are carved out of the trading fee and round down.

`calculate_pre_fee_amount` inverts a fee: it recovers the smallest gross
amount whose post-fee remainder covers the requested net amount.

All helpers raise `ArithmeticFailure` rather than clamping.
"""

from __future__ import annotations

from ..errors import ArithmeticFailure
from ..kernels.python.checked_u128 import checked_ceil_div, checked_div, checked_mul, checked_sub
from ..state.config import RATE_DENOMINATOR


FEE_RATE_DENOMINATOR_VALUE = RATE_DENOMINATOR


def _ceil_fee(amount: int, rate: int) -> int:
    return checked_ceil_div(checked_mul(amount, rate), FEE_RATE_DENOMINATOR_VALUE)


def _floor_fee(amount: int, rate: int) -> int:
    return checked_div(checked_mul(amount, rate), FEE_RATE_DENOMINATOR_VALUE)


def trading_fee(amount: int, trade_fee_rate: int) -> int:
    return _ceil_fee(amount, trade_fee_rate)


def protocol_fee(amount: int, protocol_fee_rate: int) -> int:
    return _floor_fee(amount, protocol_fee_rate)


def fund_fee(amount: int, fund_fee_rate: int) -> int:
    return _floor_fee(amount, fund_fee_rate)


def creator_fee(amount: int, creator_fee_rate: int) -> int:
    return _ceil_fee(amount, creator_fee_rate)


def calculate_pre_fee_amount(post_fee_amount: int, fee_rate: int) -> int:
    """
    gross = ceil(post_fee_amount * D / (D - fee_rate))
    """
    if fee_rate == 0:
        return post_fee_amount
    if fee_rate >= FEE_RATE_DENOMINATOR_VALUE:
        raise ArithmeticFailure(f"fee rate {fee_rate} leaves nothing after fees")
    numerator = checked_mul(post_fee_amount, FEE_RATE_DENOMINATOR_VALUE)
    denominator = checked_sub(FEE_RATE_DENOMINATOR_VALUE, fee_rate)
    return checked_ceil_div(numerator, denominator)


def split_creator_fee(total_fee: int, trade_fee_rate: int, creator_fee_rate: int) -> int:
    """Creator share of a combined trade+creator fee, proportional to the rates (floor)."""
    if total_fee == 0:
        return 0
    return checked_div(checked_mul(total_fee, creator_fee_rate), trade_fee_rate + creator_fee_rate)
