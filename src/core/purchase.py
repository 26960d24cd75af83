"""
Purchase pricing policy and the purchase operations.

A purchase buys an exact LXR amount from the treasury. The SOL price is the
external market's exact-output quote, then adjusted by the protocol policy:

- bonus tier: while `total_stake_count + 1 <= max_stake_count_to_get_bonus`
  the price is discounted by `bonus_rate / 1e6` (the stake that brings the
  count exactly to the ceiling still gets the bonus),
- afterwards: the price scales with remaining treasury inventory,
  `price * treasury_balance / initial_lxr_allocation_vault`.

The SOL paid is staked on behalf of the buyer.
"""

from __future__ import annotations

from dataclasses import replace

from ..errors import LimitExceeded, PolicyDisabled, ZeroResult
from ..kernels.python.checked_u128 import U64_MAX, checked_add, checked_div, checked_mul, checked_sub, to_u64
from ..state.config import GlobalParameters
from ..state.principals import check_principal_identity
from .admin import require_admin
from .cpmm import price_exact_output
from .effects import (
    LXR_TREASURY_VAULT,
    STAKE_ACCOUNT,
    VOTE_ACCOUNT,
    EmittedEvent,
    Event,
    ExternalOp,
    OpKind,
)
from .fees import FEE_RATE_DENOMINATOR_VALUE
from .rewards import accrue_all, observe_sol_rewards
from .types import ActionParams, Observations, Outcome, ProtocolSnapshot


def bonus_applies(total_stake_count: int, params: GlobalParameters) -> bool:
    return total_stake_count + 1 <= params.max_stake_count_to_get_bonus


def apply_purchase_pricing(
    required_sol: int,
    total_stake_count: int,
    params: GlobalParameters,
    treasury_lxr_balance: int,
) -> int:
    """Adjust the market quote `required_sol` by the bonus / inventory policy."""
    if bonus_applies(total_stake_count, params):
        discount = checked_div(checked_mul(required_sol, params.bonus_rate), FEE_RATE_DENOMINATOR_VALUE)
        return checked_sub(required_sol, discount)
    scaled = checked_div(
        checked_mul(required_sol, treasury_lxr_balance),
        params.initial_lxr_allocation_vault,
    )
    return to_u64(scaled)


def require_market(obs: Observations):
    if obs.market is None:
        raise ValueError("market snapshot is required for pricing")
    return obs.market


def _check_swap_bounds(lxr_amount: int, params: GlobalParameters) -> None:
    if params.min_swap_amount and lxr_amount < params.min_swap_amount:
        raise LimitExceeded(f"lxr amount {lxr_amount} below minimum {params.min_swap_amount}")
    if params.max_swap_amount and lxr_amount > params.max_swap_amount:
        raise LimitExceeded(f"lxr amount {lxr_amount} above maximum {params.max_swap_amount}")


def quote_purchase(snapshot: ProtocolSnapshot, lxr_amount: int, obs: Observations) -> int:
    """SOL the next buyer would pay for `lxr_amount`, policy included."""
    result = price_exact_output(lxr_amount, require_market(obs))
    required = to_u64(result.input_amount)
    return apply_purchase_pricing(
        required, snapshot.stake.total_stake_count, snapshot.params, obs.lxr_treasury_balance
    )


def purchase(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    config = snapshot.params
    buyer = params.caller
    lxr_amount = params.lxr_amount

    if not config.purchase_enabled:
        raise PolicyDisabled("purchase is disabled")
    if not buyer:
        raise ValueError("caller is required")
    check_principal_identity(buyer)
    if lxr_amount <= 0:
        raise ZeroResult("lxr amount must be positive")
    _check_swap_bounds(lxr_amount, config)
    if lxr_amount > obs.lxr_treasury_balance:
        raise LimitExceeded(f"treasury holds {obs.lxr_treasury_balance}, requested {lxr_amount}")

    total_sol_needed = quote_purchase(snapshot, lxr_amount, obs)
    if total_sol_needed == 0:
        raise ZeroResult("priced SOL amount is zero")
    if total_sol_needed > params.max_sol_amount:
        raise LimitExceeded(f"price {total_sol_needed} exceeds max_sol_amount {params.max_sol_amount}")

    stake, _ = observe_sol_rewards(snapshot.stake, obs.stake_account_balance)
    record = accrue_all(snapshot.principals.get_or_create(buyer, stake), stake)

    stake = replace(
        stake,
        total_staked_sol=checked_add(stake.total_staked_sol, total_sol_needed, bound=U64_MAX),
        total_stake_count=checked_add(stake.total_stake_count, 1, bound=U64_MAX),
        last_tracked_sol_balance=checked_add(obs.stake_account_balance, total_sol_needed, bound=U64_MAX),
        last_update_timestamp=obs.now,
    )
    record = replace(
        record,
        total_staked_sol=checked_add(record.total_staked_sol, total_sol_needed, bound=U64_MAX),
        base_lxr_holdings=checked_add(record.base_lxr_holdings, lxr_amount, bound=U64_MAX),
    )

    return Outcome(
        snapshot=replace(snapshot, stake=stake, principals=snapshot.principals.put(record)),
        ops=(
            ExternalOp(OpKind.SOL_TRANSFER, total_sol_needed, buyer, STAKE_ACCOUNT),
            ExternalOp(OpKind.STAKE_DELEGATE, 0, STAKE_ACCOUNT, VOTE_ACCOUNT),
            ExternalOp(OpKind.TOKEN_TRANSFER, lxr_amount, LXR_TREASURY_VAULT, buyer),
        ),
        events=(
            EmittedEvent(
                Event.LXR_PURCHASED,
                {"purchaser": buyer, "sol_amount": total_sol_needed, "lxr_amount": lxr_amount},
            ),
        ),
    )


def manual_purchase(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    """
    Record a purchase that was priced and settled outside the market path.

    The admin funds the stake with `sol_amount` on behalf of `target`, who is
    credited `lxr_amount` of base holdings. The stake count is left unchanged,
    so manual purchases never consume bonus-tier slots.
    """
    require_admin(snapshot.params, params.caller)
    beneficiary = params.target
    if not beneficiary:
        raise ValueError("target is required")
    check_principal_identity(beneficiary)
    if params.sol_amount <= 0:
        raise ZeroResult("sol amount must be positive")

    stake, _ = observe_sol_rewards(snapshot.stake, obs.stake_account_balance)
    record = accrue_all(snapshot.principals.get_or_create(beneficiary, stake), stake)

    stake = replace(
        stake,
        total_staked_sol=checked_add(stake.total_staked_sol, params.sol_amount, bound=U64_MAX),
        last_tracked_sol_balance=checked_add(obs.stake_account_balance, params.sol_amount, bound=U64_MAX),
        last_update_timestamp=obs.now,
    )
    record = replace(
        record,
        total_staked_sol=checked_add(record.total_staked_sol, params.sol_amount, bound=U64_MAX),
        base_lxr_holdings=checked_add(record.base_lxr_holdings, params.lxr_amount, bound=U64_MAX),
    )

    ops = [ExternalOp(OpKind.SOL_TRANSFER, params.sol_amount, params.caller, STAKE_ACCOUNT)]
    if not obs.stake_effective:
        ops.append(ExternalOp(OpKind.STAKE_DELEGATE, 0, STAKE_ACCOUNT, VOTE_ACCOUNT))

    return Outcome(
        snapshot=replace(snapshot, stake=stake, principals=snapshot.principals.put(record)),
        ops=tuple(ops),
        events=(
            EmittedEvent(
                Event.MANUAL_LXR_PURCHASED,
                {"purchaser": beneficiary, "sol_amount": params.sol_amount, "lxr_amount": params.lxr_amount},
            ),
        ),
    )
