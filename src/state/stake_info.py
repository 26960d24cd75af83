"""
Aggregate staking state (single instance).

Tracks global totals, both reward-per-stake indices and the buyback phase.

Invariant: `total_sol_rewards_accrued >= total_sol_used_for_buyback`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .fields import validate_fields


@dataclass(frozen=True)
class BuybackIdle:
    """No buyback in flight."""


@dataclass(frozen=True)
class BuybackRequested:
    """Rewards were split into the ephemeral sub-account `split_index` and are deactivating."""

    split_index: int
    amount: int
    requested_at: int


BuybackPhase = Union[BuybackIdle, BuybackRequested]


@dataclass(frozen=True)
class AggregateStakeState:
    total_staked_sol: int = 0
    total_stake_count: int = 0

    # SOL stream
    total_sol_rewards_accrued: int = 0
    last_tracked_sol_balance: int = 0
    reward_per_token_sol_stored: int = 0

    # LXR stream
    total_luxor_rewards_accrued: int = 0
    total_sol_used_for_buyback: int = 0
    reward_per_token_lxr_stored: int = 0
    total_lxr_claimed: int = 0
    total_lxr_forfeited: int = 0

    last_update_timestamp: int = 0
    last_buyback_timestamp: int = 0

    buyback_count: int = 0
    buyback: BuybackPhase = field(default_factory=BuybackIdle)

    def __post_init__(self) -> None:
        validate_fields(
            self,
            u64=(
                "total_staked_sol",
                "total_stake_count",
                "total_sol_rewards_accrued",
                "last_tracked_sol_balance",
                "total_luxor_rewards_accrued",
                "total_sol_used_for_buyback",
                "total_lxr_claimed",
                "total_lxr_forfeited",
                "last_update_timestamp",
                "last_buyback_timestamp",
                "buyback_count",
            ),
            u128=("reward_per_token_sol_stored", "reward_per_token_lxr_stored"),
        )
        if not isinstance(self.buyback, (BuybackIdle, BuybackRequested)):
            raise TypeError("buyback must be BuybackIdle or BuybackRequested")

    @property
    def buyback_requested(self) -> bool:
        return isinstance(self.buyback, BuybackRequested)

    @property
    def sol_available_for_buyback(self) -> int:
        return self.total_sol_rewards_accrued - self.total_sol_used_for_buyback
