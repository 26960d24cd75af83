"""
Data types for the protocol engine.

Units/conventions:
- SOL amounts are lamports, LXR amounts are token base units (both u64).
- `*_rate` values are numerators over FEE_RATE_DENOMINATOR_VALUE (1e6).
- Reward indices are u128 scaled by PRECISION (1e9).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique

from ..state.config import GlobalParameters
from ..state.fields import PubKey
from ..state.principals import PrincipalStore
from ..state.stake_info import AggregateStakeState
from .cpmm import MarketSnapshot
from .effects import EmittedEvent, ExternalOp


@unique
class Action(Enum):
    PURCHASE = "purchase"
    MANUAL_PURCHASE = "manual_purchase"
    REDEEM = "redeem"
    BUYBACK = "buyback"
    REQUEST_BUYBACK = "request_buyback"
    SETTLE_BUYBACK = "settle_buyback"
    BLACKLIST = "blacklist"
    UPDATE_CONFIG = "update_config"
    EMERGENCY_WITHDRAW = "emergency_withdraw"


@dataclass(frozen=True)
class ProtocolSnapshot:
    """Everything the core reads and writes in one invocation."""

    params: GlobalParameters
    stake: AggregateStakeState = field(default_factory=AggregateStakeState)
    principals: PrincipalStore = field(default_factory=PrincipalStore)


@dataclass(frozen=True)
class Observations:
    """External balances observed by the caller immediately before the step."""

    now: int = 0
    stake_account_balance: int = 0
    lxr_treasury_balance: int = 0
    lxr_reward_vault_balance: int = 0
    sol_treasury_balance: int = 0
    # Wallet LXR balance of the acting principal (REDEEM).
    principal_lxr_balance: int = 0
    # Ephemeral buyback sub-account (SETTLE_BUYBACK).
    split_account_balance: int = 0
    split_rent_reserve: int = 0
    # MANUAL_PURCHASE: whether the custodial stake already has effective delegation.
    stake_effective: bool = False
    market: MarketSnapshot | None = None


@dataclass(frozen=True)
class ActionParams:
    """Parameters for an action. Unused fields default to 0/empty."""

    action: Action
    caller: PubKey = ""
    lxr_amount: int = 0           # purchase / manual_purchase
    max_sol_amount: int = 0       # purchase
    sol_amount: int = 0           # manual_purchase
    target: PubKey = ""           # manual_purchase beneficiary / blacklist target
    selector: int = 0             # update_config / emergency_withdraw
    value: int = 0                # update_config / emergency_withdraw
    new_admin: PubKey | None = None  # update_config selector 0


@dataclass(frozen=True)
class Outcome:
    """Post-state plus the side effects the caller must carry out."""

    snapshot: ProtocolSnapshot
    ops: tuple[ExternalOp, ...] = ()
    events: tuple[EmittedEvent, ...] = ()


@dataclass(frozen=True)
class StepResult:
    """Result of a single engine step."""

    accepted: bool
    snapshot: ProtocolSnapshot | None = None
    ops: tuple[ExternalOp, ...] = ()
    events: tuple[EmittedEvent, ...] = ()
    rejection: str | None = None
