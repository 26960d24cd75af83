"""
Constant Product Market Maker (CPMM) pricing with multi-party fee splitting.

This module composes the fee kernels (`fees.py`) with the fee-free curve
(`kernels/python/constant_product_v1.py`) into the two pricing modes used by
the purchase and buyback flows.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(1) per swap operation
- Invariant: new_reserve_in * new_reserve_out >= reserve_in * reserve_out

Fee routing:
- The trading fee is always charged on the input side; protocol and fund fees
  are carved out of it.
- The creator fee is charged on the input or on the output depending on the
  pool's `creator_fee_on_input` flag.

Reserves reported in `SwapResult` exclude every fee (fees are held outside the
curve by the external market).
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvariantViolation
from ..kernels.python.checked_u128 import checked_add, checked_mul, checked_sub
from ..kernels.python.constant_product_v1 import (
    swap_base_input_without_fees,
    swap_base_output_without_fees,
    validate_supply,
)
from .fees import (
    calculate_pre_fee_amount,
    creator_fee,
    fund_fee,
    protocol_fee,
    split_creator_fee,
    trading_fee,
)

# Fee schedule of the external market the protocol trades against.
DEFAULT_TRADE_FEE_RATE = 2500
DEFAULT_PROTOCOL_FEE_RATE = 120_000
DEFAULT_FUND_FEE_RATE = 40_000
DEFAULT_CREATOR_FEE_RATE = 500


@dataclass(frozen=True)
class SwapResult:
    new_input_vault_amount: int
    new_output_vault_amount: int
    input_amount: int
    output_amount: int
    trade_fee: int
    protocol_fee: int
    fund_fee: int
    creator_fee: int


@dataclass(frozen=True)
class MarketSnapshot:
    """Observed reserves and fee routing of the external market (SOL in, LXR out)."""

    reserve_in: int
    reserve_out: int
    creator_fee_on_input: bool = False
    creator_fee_rate: int = 0
    trade_fee_rate: int = DEFAULT_TRADE_FEE_RATE
    protocol_fee_rate: int = DEFAULT_PROTOCOL_FEE_RATE
    fund_fee_rate: int = DEFAULT_FUND_FEE_RATE

    def __post_init__(self) -> None:
        for name in (
            "reserve_in",
            "reserve_out",
            "creator_fee_rate",
            "trade_fee_rate",
            "protocol_fee_rate",
            "fund_fee_rate",
        ):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    @property
    def constant_product(self) -> int:
        return self.reserve_in * self.reserve_out


def swap_base_input(
    input_amount: int,
    input_vault_amount: int,
    output_vault_amount: int,
    trade_fee_rate: int,
    creator_fee_rate: int,
    protocol_fee_rate: int,
    fund_fee_rate: int,
    is_creator_fee_on_input: bool,
) -> SwapResult:
    """
    Price an exact-input swap.

        trade_fee = ceil(input * trade_rate / D)
        net_in    = input - trade_fee [- creator_fee if on input]
        swapped   = floor(net_in * y / (x + net_in))
        output    = swapped [- creator_fee if on output]
    """
    fee_creator = 0
    fee_trade = trading_fee(input_amount, trade_fee_rate)
    if is_creator_fee_on_input:
        fee_creator = creator_fee(input_amount, creator_fee_rate)
        input_amount_less_fees = checked_sub(checked_sub(input_amount, fee_trade), fee_creator)
    else:
        input_amount_less_fees = checked_sub(input_amount, fee_trade)

    fee_protocol = protocol_fee(fee_trade, protocol_fee_rate)
    fee_fund = fund_fee(fee_trade, fund_fee_rate)

    output_amount_swapped = swap_base_input_without_fees(
        input_amount_less_fees, input_vault_amount, output_vault_amount
    )

    if is_creator_fee_on_input:
        output_amount = output_amount_swapped
    else:
        fee_creator = creator_fee(output_amount_swapped, creator_fee_rate)
        output_amount = checked_sub(output_amount_swapped, fee_creator)

    return SwapResult(
        new_input_vault_amount=checked_add(input_vault_amount, input_amount_less_fees),
        new_output_vault_amount=checked_sub(output_vault_amount, output_amount_swapped),
        input_amount=input_amount,
        output_amount=output_amount,
        trade_fee=fee_trade,
        protocol_fee=fee_protocol,
        fund_fee=fee_fund,
        creator_fee=fee_creator,
    )


def swap_base_output(
    output_amount: int,
    input_vault_amount: int,
    output_vault_amount: int,
    trade_fee_rate: int,
    creator_fee_rate: int,
    protocol_fee_rate: int,
    fund_fee_rate: int,
    is_creator_fee_on_input: bool,
) -> SwapResult:
    """
    Price an exact-output swap.

    If the creator fee is on the output, the requested output is first grossed
    up by the creator rate. The curve is then run in reverse, and the required
    input is grossed up by the trade rate (or jointly by trade+creator rate,
    with the combined fee split back proportionally).
    """
    fee_creator = 0
    if is_creator_fee_on_input:
        actual_output_amount = output_amount
    else:
        actual_output_amount = calculate_pre_fee_amount(output_amount, creator_fee_rate)
        fee_creator = checked_sub(actual_output_amount, output_amount)

    input_amount_swapped = swap_base_output_without_fees(
        actual_output_amount, input_vault_amount, output_vault_amount
    )

    if is_creator_fee_on_input:
        input_amount = calculate_pre_fee_amount(input_amount_swapped, trade_fee_rate + creator_fee_rate)
        total_fee = checked_sub(input_amount, input_amount_swapped)
        fee_creator = split_creator_fee(total_fee, trade_fee_rate, creator_fee_rate)
        fee_trade = checked_sub(total_fee, fee_creator)
    else:
        input_amount = calculate_pre_fee_amount(input_amount_swapped, trade_fee_rate)
        fee_trade = checked_sub(input_amount, input_amount_swapped)

    return SwapResult(
        new_input_vault_amount=checked_add(input_vault_amount, input_amount_swapped),
        new_output_vault_amount=checked_sub(output_vault_amount, actual_output_amount),
        input_amount=input_amount,
        output_amount=output_amount,
        trade_fee=fee_trade,
        protocol_fee=protocol_fee(fee_trade, protocol_fee_rate),
        fund_fee=fund_fee(fee_trade, fund_fee_rate),
        creator_fee=fee_creator,
    )


def check_swap_invariants(
    result: SwapResult,
    reserve_in: int,
    reserve_out: int,
    *,
    expected_input: int | None = None,
    expected_output: int | None = None,
) -> None:
    """
    Caller-side checks after pricing.

    Raises:
        InvariantViolation: constant product decreased, or the fixed side of the
            trade differs from what the caller asked for.
    """
    violations: list[str] = []
    constant_before = checked_mul(reserve_in, reserve_out)
    constant_after = checked_mul(result.new_input_vault_amount, result.new_output_vault_amount)
    if constant_after < constant_before:
        violations.append("constant_product_decreased")
    if expected_input is not None and result.input_amount != expected_input:
        violations.append("input_mismatch")
    if expected_output is not None and result.output_amount != expected_output:
        violations.append("output_mismatch")
    if violations:
        raise InvariantViolation(violations)


def price_exact_input(amount_in: int, market: MarketSnapshot) -> SwapResult:
    """Exact-input quote against `market`, with invariant and exact-match checks."""
    validate_supply(market.reserve_in, market.reserve_out)
    result = swap_base_input(
        amount_in,
        market.reserve_in,
        market.reserve_out,
        market.trade_fee_rate,
        market.creator_fee_rate,
        market.protocol_fee_rate,
        market.fund_fee_rate,
        market.creator_fee_on_input,
    )
    check_swap_invariants(result, market.reserve_in, market.reserve_out, expected_input=amount_in)
    return result


def price_exact_output(amount_out: int, market: MarketSnapshot) -> SwapResult:
    """Exact-output quote against `market`, with invariant and exact-match checks."""
    validate_supply(market.reserve_in, market.reserve_out)
    result = swap_base_output(
        amount_out,
        market.reserve_in,
        market.reserve_out,
        market.trade_fee_rate,
        market.creator_fee_rate,
        market.protocol_fee_rate,
        market.fund_fee_rate,
        market.creator_fee_on_input,
    )
    check_swap_invariants(result, market.reserve_in, market.reserve_out, expected_output=amount_out)
    return result
