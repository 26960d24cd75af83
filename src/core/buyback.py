"""
Two-phase buyback of LXR with accrued SOL staking rewards.

Stake cannot be withdrawn while delegated, so the rewards are first split into
an ephemeral sub-account and deactivated (request). Once deactivation has
taken effect the sub-account is withdrawn and swapped for LXR (settle):

    Idle --request_buyback--> Requested(split_index, amount, requested_at)
    Requested --settle_buyback--> Idle

`buyback` is the single-entry form that picks the transition from the
current phase.
"""

from __future__ import annotations

from dataclasses import replace

from ..errors import BuybackAlreadyRequested, NoBuybackRequested, ZeroResult
from ..kernels.python.checked_u128 import U64_MAX, checked_add, checked_div, checked_mul, checked_sub, to_u64
from ..state.stake_info import BuybackIdle, BuybackRequested
from .admin import require_admin
from .cpmm import SwapResult, price_exact_input
from .effects import (
    LXR_REWARD_VAULT,
    MARKET,
    SOL_TREASURY_VAULT,
    STAKE_ACCOUNT,
    EmittedEvent,
    Event,
    ExternalOp,
    OpKind,
    stake_split_account,
)
from .fees import FEE_RATE_DENOMINATOR_VALUE
from .purchase import require_market
from .rewards import accrue_lxr_buyback, observe_sol_rewards, realize_sol_rewards
from .types import ActionParams, Observations, Outcome, ProtocolSnapshot


def treasury_fee(withdrawn: int, fee_treasury_rate: int) -> int:
    return to_u64(checked_div(checked_mul(withdrawn, fee_treasury_rate), FEE_RATE_DENOMINATOR_VALUE))


def quote_buyback(withdrawn: int, fee_treasury_rate: int, obs: Observations) -> tuple[int, SwapResult]:
    """
    Price the swap leg of a settlement.

    Returns `(fee, swap)` where `swap.input_amount == withdrawn - fee`.
    """
    fee = treasury_fee(withdrawn, fee_treasury_rate)
    if fee == 0:
        raise ZeroResult("treasury fee is zero")
    swap = price_exact_input(checked_sub(withdrawn, fee), require_market(obs))
    return fee, swap


def request_buyback(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    require_admin(snapshot.params, params.caller)
    stake = snapshot.stake
    if isinstance(stake.buyback, BuybackRequested):
        raise BuybackAlreadyRequested()

    stake, _ = observe_sol_rewards(stake, obs.stake_account_balance)
    available = checked_sub(stake.total_sol_rewards_accrued, stake.total_sol_used_for_buyback)
    if available == 0:
        raise ZeroResult("no SOL rewards available for buyback")
    if treasury_fee(available, snapshot.params.fee_treasury_rate) == 0:
        raise ZeroResult("treasury fee on available rewards is zero")
    split_index = stake.buyback_count
    split_account = stake_split_account(split_index)

    stake = replace(
        stake,
        last_tracked_sol_balance=checked_sub(obs.stake_account_balance, available),
        last_update_timestamp=obs.now,
        buyback=BuybackRequested(split_index=split_index, amount=available, requested_at=obs.now),
    )
    return Outcome(
        snapshot=replace(snapshot, stake=stake),
        ops=(
            ExternalOp(OpKind.STAKE_SPLIT, available, STAKE_ACCOUNT, split_account),
            ExternalOp(OpKind.STAKE_DEACTIVATE, 0, split_account, ""),
        ),
        events=(
            EmittedEvent(
                Event.BUYBACK_REQUESTED,
                {"split_index": split_index, "sol_amount": available, "requested_at": obs.now},
            ),
        ),
    )


def settle_buyback(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    config = snapshot.params
    require_admin(config, params.caller)
    stake = snapshot.stake
    phase = stake.buyback
    if not isinstance(phase, BuybackRequested):
        raise NoBuybackRequested()

    split_account = stake_split_account(phase.split_index)
    withdrawn = checked_sub(obs.split_account_balance, obs.split_rent_reserve)
    fee, swap = quote_buyback(withdrawn, config.fee_treasury_rate, obs)
    sol_swapped = swap.input_amount
    lxr_bought = to_u64(swap.output_amount)

    # The sub-account keeps earning until deactivation completes.
    stake = realize_sol_rewards(stake, withdrawn - phase.amount if withdrawn > phase.amount else 0)
    stake = accrue_lxr_buyback(stake, lxr_bought)
    stake = replace(
        stake,
        total_sol_used_for_buyback=checked_add(stake.total_sol_used_for_buyback, sol_swapped, bound=U64_MAX),
        last_buyback_timestamp=obs.now,
        buyback_count=checked_add(stake.buyback_count, 1, bound=U64_MAX),
        buyback=BuybackIdle(),
    )

    return Outcome(
        snapshot=replace(snapshot, stake=stake),
        ops=(
            ExternalOp(OpKind.STAKE_WITHDRAW, obs.split_account_balance, split_account, params.caller),
            ExternalOp(OpKind.MARKET_SWAP, sol_swapped, params.caller, MARKET, min_amount_out=0),
            ExternalOp(OpKind.TOKEN_TRANSFER, lxr_bought, params.caller, LXR_REWARD_VAULT),
            ExternalOp(OpKind.TOKEN_TRANSFER, fee, params.caller, SOL_TREASURY_VAULT),
        ),
        events=(
            EmittedEvent(
                Event.BUYBACK_EXECUTED,
                {"sol_amount": withdrawn, "lxr_bought": lxr_bought, "fee_to_treasury": fee},
            ),
        ),
    )


def buyback(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    phase = snapshot.stake.buyback
    if isinstance(phase, BuybackIdle):
        return request_buyback(snapshot, params, obs)
    if isinstance(phase, BuybackRequested):
        return settle_buyback(snapshot, params, obs)
    raise TypeError(f"unknown buyback phase: {phase!r}")
