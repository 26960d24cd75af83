"""
External operations and events produced by an accepted step.

The core never performs I/O. Each accepted operation returns the list of
`ExternalOp`s the caller must execute atomically with the state update, in
order, plus the `EmittedEvent`s for indexers.

Account names below are logical roles; the caller maps them to concrete
ledger addresses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from types import MappingProxyType
from typing import Mapping


STAKE_ACCOUNT = "stake_account"
VOTE_ACCOUNT = "vote_account"
LXR_TREASURY_VAULT = "lxr_treasury_vault"
LXR_REWARD_VAULT = "lxr_reward_vault"
SOL_TREASURY_VAULT = "sol_treasury_vault"
MARKET = "market"


def stake_split_account(split_index: int) -> str:
    """Ephemeral sub-account receiving the rewards of buyback cycle `split_index`."""
    return f"stake_split:{split_index}"


@unique
class OpKind(Enum):
    SOL_TRANSFER = "sol_transfer"
    STAKE_DELEGATE = "stake_delegate"
    STAKE_SPLIT = "stake_split"
    STAKE_DEACTIVATE = "stake_deactivate"
    STAKE_WITHDRAW = "stake_withdraw"
    MARKET_SWAP = "market_swap"
    TOKEN_TRANSFER = "token_transfer"


@dataclass(frozen=True)
class ExternalOp:
    kind: OpKind
    amount: int = 0
    source: str = ""
    destination: str = ""
    # MARKET_SWAP only: minimum acceptable output.
    min_amount_out: int = 0


@unique
class Event(Enum):
    GLOBAL_CONFIG_INITIALIZED = "GlobalConfigInitialized"
    CONFIG_UPDATED = "ConfigUpdated"
    LXR_PURCHASED = "LxrPurchased"
    MANUAL_LXR_PURCHASED = "ManualLxrPurchased"
    BUYBACK_REQUESTED = "BuybackRequested"
    BUYBACK_EXECUTED = "BuybackExecuted"
    REWARDS_COLLECTED = "RewardsCollected"
    USER_BLACKLISTED = "UserBlacklisted"
    EMERGENCY_WITHDRAWN = "EmergencyWithdrawn"


@dataclass(frozen=True)
class EmittedEvent:
    event: Event
    data: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def to_dict(self) -> dict[str, object]:
        return {"event": self.event.value, **self.data}
