"""
LXR reward redemption with pro-rata forfeiture.

A principal's claim is `staked * (global_lxr_index - checkpoint) / PRECISION^2`.
If its wallet now holds less LXR than the base holdings recorded at purchase
time, the claim is scaled by `current / base` and the shortfall is forfeited
to the treasury. Previously accrued-but-unpaid rewards are added on top and
are never forfeited here.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..errors import PolicyDisabled, ZeroResult
from ..kernels.python.checked_u128 import U64_MAX, checked_add, checked_div, checked_mul, checked_sub, to_u64
from ..state.principals import PrincipalStakeRecord, check_principal_identity
from .effects import LXR_REWARD_VAULT, LXR_TREASURY_VAULT, EmittedEvent, Event, ExternalOp, OpKind
from .rewards import RewardStream, pending_reward
from .types import ActionParams, Observations, Outcome, ProtocolSnapshot


@dataclass(frozen=True)
class RedemptionResult:
    claimable: int
    forfeited: int


def compute_redemption(
    record: PrincipalStakeRecord,
    global_lxr_index: int,
    current_lxr_balance: int,
) -> RedemptionResult:
    """
    Raises:
        ZeroResult: the index has not moved since the checkpoint, or the claim
            truncates to zero.
    """
    if global_lxr_index <= record.lxr_reward_per_token_completed:
        raise ZeroResult("no rewards to claim")

    claimable = pending_reward(
        record.total_staked_sol,
        global_lxr_index,
        record.lxr_reward_per_token_completed,
        RewardStream.LXR,
    )
    if claimable == 0:
        raise ZeroResult("no rewards to claim")

    forfeited = 0
    if current_lxr_balance < record.base_lxr_holdings:
        full_rewards = claimable
        claimable = to_u64(
            checked_div(checked_mul(current_lxr_balance, claimable), record.base_lxr_holdings)
        )
        forfeited = checked_sub(full_rewards, claimable)

    claimable = checked_add(claimable, record.lxr_rewards_pending, bound=U64_MAX)
    return RedemptionResult(claimable=claimable, forfeited=forfeited)


def redeem(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    if not snapshot.params.redeem_enabled:
        raise PolicyDisabled("redeem is disabled")

    owner = params.caller
    check_principal_identity(owner)
    record = snapshot.principals.require(owner)
    stake = snapshot.stake
    result = compute_redemption(record, stake.reward_per_token_lxr_stored, obs.principal_lxr_balance)

    record = replace(
        record,
        total_lxr_claimed=checked_add(record.total_lxr_claimed, result.claimable, bound=U64_MAX),
        total_lxr_forfeited=checked_add(record.total_lxr_forfeited, result.forfeited, bound=U64_MAX),
        lxr_reward_per_token_completed=stake.reward_per_token_lxr_stored,
        lxr_rewards_pending=0,
    )
    stake = replace(
        stake,
        total_lxr_claimed=checked_add(stake.total_lxr_claimed, result.claimable, bound=U64_MAX),
        total_lxr_forfeited=checked_add(stake.total_lxr_forfeited, result.forfeited, bound=U64_MAX),
    )

    ops = [ExternalOp(OpKind.TOKEN_TRANSFER, result.claimable, LXR_REWARD_VAULT, owner)]
    if result.forfeited > 0:
        ops.append(ExternalOp(OpKind.TOKEN_TRANSFER, result.forfeited, LXR_REWARD_VAULT, LXR_TREASURY_VAULT))

    return Outcome(
        snapshot=replace(snapshot, stake=stake, principals=snapshot.principals.put(record)),
        ops=tuple(ops),
        events=(
            EmittedEvent(
                Event.REWARDS_COLLECTED,
                {"collector": owner, "lxr_collected": result.claimable, "lxr_forfeited": result.forfeited},
            ),
        ),
    )
