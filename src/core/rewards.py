"""
Reward-per-stake index accounting for the SOL and LXR reward streams.

Both streams follow the same contract:

- a global index grows by `reward * PRECISION / total_staked` whenever new
  rewards are observed,
- each principal keeps a checkpoint of that index; what it is owed is
  `staked * (global - checkpoint)` scaled back down.

The two streams differ in the scale-down. SOL divides by PRECISION once.
LXR divides by PRECISION twice, even though the LXR index is accumulated with
a single PRECISION factor. The double division is load-bearing for every
persisted LXR index and is reproduced as-is: small stakes against small index
deltas truncate to zero (see tests/core/test_rewards.py).

A principal must be accrued (`accrue_to_principal`) before its stake changes,
otherwise rewards owed on the old stake are lost or misattributed.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum, unique

from ..errors import ArithmeticFailure
from ..kernels.python.checked_u128 import U64_MAX, checked_add, checked_div, checked_mul, checked_sub, to_u64
from ..state.principals import PrincipalStakeRecord
from ..state.stake_info import AggregateStakeState


PRECISION = 1_000_000_000


@unique
class RewardStream(Enum):
    SOL = "sol"
    LXR = "lxr"


def index_increment(reward: int, total_staked: int) -> int:
    """`reward * PRECISION / total_staked` (floor). Fails on zero stake."""
    if total_staked == 0:
        raise ArithmeticFailure("division by zero: no stake to distribute rewards over")
    return checked_div(checked_mul(reward, PRECISION), total_staked)


def observe_sol_rewards(stake: AggregateStakeState, custodial_balance: int) -> tuple[AggregateStakeState, int]:
    """
    Realize growth of the custodial stake balance as SOL rewards.

    Returns the updated state and the observed delta. When the balance has not
    grown, or nothing is staked yet, this is a no-op with a zero delta; the
    caller re-baselines `last_tracked_sol_balance` after its own transfers.
    """
    if custodial_balance <= stake.last_tracked_sol_balance or stake.total_staked_sol == 0:
        return stake, 0

    delta = custodial_balance - stake.last_tracked_sol_balance
    new_state = replace(realize_sol_rewards(stake, delta), last_tracked_sol_balance=custodial_balance)
    return new_state, delta


def realize_sol_rewards(stake: AggregateStakeState, reward: int) -> AggregateStakeState:
    """
    Count `reward` lamports as accrued SOL rewards without moving the tracked
    custodial balance. The index only grows while something is staked.
    """
    index = stake.reward_per_token_sol_stored
    if reward and stake.total_staked_sol:
        index = checked_add(index, index_increment(reward, stake.total_staked_sol))
    return replace(
        stake,
        total_sol_rewards_accrued=checked_add(stake.total_sol_rewards_accrued, reward, bound=U64_MAX),
        reward_per_token_sol_stored=index,
    )


def accrue_lxr_buyback(stake: AggregateStakeState, tokens_bought: int) -> AggregateStakeState:
    """Distribute LXR bought back from SOL rewards across the current stake."""
    return replace(
        stake,
        total_luxor_rewards_accrued=checked_add(stake.total_luxor_rewards_accrued, tokens_bought, bound=U64_MAX),
        reward_per_token_lxr_stored=checked_add(
            stake.reward_per_token_lxr_stored, index_increment(tokens_bought, stake.total_staked_sol)
        ),
    )


def pending_reward(staked: int, global_index: int, checkpoint: int, stream: RewardStream) -> int:
    """
    SOL: staked * (global - checkpoint) / PRECISION
    LXR: staked * (global - checkpoint) / PRECISION / PRECISION
    """
    if checkpoint > global_index:
        raise ArithmeticFailure(f"checkpoint {checkpoint} is ahead of global index {global_index}")
    owed = checked_div(checked_mul(staked, checked_sub(global_index, checkpoint)), PRECISION)
    if stream is RewardStream.LXR:
        owed = checked_div(owed, PRECISION)
    return to_u64(owed)


def accrue_to_principal(
    record: PrincipalStakeRecord,
    stake: AggregateStakeState,
    stream: RewardStream,
) -> tuple[PrincipalStakeRecord, int]:
    """Move what `record` is owed on `stream` into its pending balance and advance its checkpoint."""
    if stream is RewardStream.LXR:
        global_index = stake.reward_per_token_lxr_stored
        owed = pending_reward(record.total_staked_sol, global_index, record.lxr_reward_per_token_completed, stream)
        return (
            replace(
                record,
                lxr_rewards_pending=checked_add(record.lxr_rewards_pending, owed, bound=U64_MAX),
                lxr_reward_per_token_completed=global_index,
            ),
            owed,
        )

    global_index = stake.reward_per_token_sol_stored
    owed = pending_reward(record.total_staked_sol, global_index, record.sol_reward_per_token_completed, stream)
    return (
        replace(
            record,
            sol_rewards_pending=checked_add(record.sol_rewards_pending, owed, bound=U64_MAX),
            sol_reward_per_token_completed=global_index,
        ),
        owed,
    )


def accrue_all(record: PrincipalStakeRecord, stake: AggregateStakeState) -> PrincipalStakeRecord:
    """Accrue both streams; call before changing `record.total_staked_sol`."""
    record, _ = accrue_to_principal(record, stake, RewardStream.SOL)
    record, _ = accrue_to_principal(record, stake, RewardStream.LXR)
    return record
