"""
Constant-product curve kernel (`x * y = k`), fee-free.

Pure integer functions with explicit rounding:
- exact input rounds the output down,
- exact output rounds the required input up,
- LP share conversion rounds down, or up only for non-dust components.

Fees are layered on top by `src.core.cpmm`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from ...errors import ArithmeticFailure, ZeroResult
from .checked_u128 import (
    checked_add,
    checked_ceil_div,
    checked_div,
    checked_mul,
    checked_rem,
    checked_sub,
)


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


@unique
class RoundDirection(Enum):
    FLOOR = "floor"
    CEILING = "ceiling"


@dataclass(frozen=True)
class TradingTokenResult:
    token_0_amount: int
    token_1_amount: int


def validate_supply(token_0_amount: int, token_1_amount: int) -> None:
    """Both reserves must be non-empty before pricing."""
    if token_0_amount == 0 or token_1_amount == 0:
        raise ZeroResult("empty reserve")


def swap_base_input_without_fees(input_amount: int, input_vault_amount: int, output_vault_amount: int) -> int:
    """
    delta_y = floor(delta_x * y / (x + delta_x))
    """
    for name, v in (
        ("input_amount", input_amount),
        ("input_vault_amount", input_vault_amount),
        ("output_vault_amount", output_vault_amount),
    ):
        _require_int(name, v)
    numerator = checked_mul(input_amount, output_vault_amount)
    denominator = checked_add(input_vault_amount, input_amount)
    return checked_div(numerator, denominator)


def swap_base_output_without_fees(output_amount: int, input_vault_amount: int, output_vault_amount: int) -> int:
    """
    delta_x = ceil(x * delta_y / (y - delta_y))

    Requesting the whole output reserve (or more) fails.
    """
    for name, v in (
        ("output_amount", output_amount),
        ("input_vault_amount", input_vault_amount),
        ("output_vault_amount", output_vault_amount),
    ):
        _require_int(name, v)
    if output_amount >= output_vault_amount:
        raise ArithmeticFailure(
            f"output_amount ({output_amount}) must be below output reserve ({output_vault_amount})"
        )
    numerator = checked_mul(input_vault_amount, output_amount)
    denominator = checked_sub(output_vault_amount, output_amount)
    return checked_ceil_div(numerator, denominator)


def lp_tokens_to_trading_tokens(
    lp_token_amount: int,
    lp_token_supply: int,
    token_0_vault_amount: int,
    token_1_vault_amount: int,
    round_direction: RoundDirection,
) -> TradingTokenResult:
    """
    Underlying reserve amounts for `lp_token_amount` of `lp_token_supply`.

    In ceiling mode a component is bumped by one only when the division left a
    remainder *and* the floored amount is nonzero, so a dust share never
    rounds up into a whole reserve unit.
    """
    token_0_amount = checked_div(checked_mul(lp_token_amount, token_0_vault_amount), lp_token_supply)
    token_1_amount = checked_div(checked_mul(lp_token_amount, token_1_vault_amount), lp_token_supply)

    if round_direction is RoundDirection.CEILING:
        token_0_remainder = checked_rem(checked_mul(lp_token_amount, token_0_vault_amount), lp_token_supply)
        if token_0_remainder > 0 and token_0_amount > 0:
            token_0_amount += 1
        token_1_remainder = checked_rem(checked_mul(lp_token_amount, token_1_vault_amount), lp_token_supply)
        if token_1_remainder > 0 and token_1_amount > 0:
            token_1_amount += 1

    return TradingTokenResult(token_0_amount=token_0_amount, token_1_amount=token_1_amount)
