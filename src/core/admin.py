"""
Administrative operations: initialization, config updates, emergency withdrawals.

`update_config` and `emergency_withdraw` take a numeric selector, matching the
instruction encoding used by the ledger program:

    update_config                     emergency_withdraw
    0  admin (needs new_admin)        0  drain an LXR vault to the admin
    1  min_swap_amount                1  drain the SOL treasury to the admin
    2  max_swap_amount                2  flush the sink's pending LXR to the treasury
    3  fee_treasury_rate              3  deactivate the custodial stake
    4  purchase_enabled (value != 0)  4  withdraw `value` lamports from the stake
    5  redeem_enabled (value != 0)
    6  max_stake_count_to_get_bonus
"""

from __future__ import annotations

from dataclasses import replace

from ..errors import InvalidSelector, Unauthorized
from ..state.config import GlobalParameters
from ..state.fields import PubKey
from ..state.principals import PrincipalStore
from ..state.stake_info import AggregateStakeState
from .effects import (
    LXR_REWARD_VAULT,
    LXR_TREASURY_VAULT,
    SOL_TREASURY_VAULT,
    STAKE_ACCOUNT,
    EmittedEvent,
    Event,
    ExternalOp,
    OpKind,
)
from .rewards import accrue_all
from .types import ActionParams, Observations, Outcome, ProtocolSnapshot


def require_admin(params: GlobalParameters, caller: PubKey) -> None:
    if not params.is_admin(caller):
        raise Unauthorized(f"{caller!r} is not the protocol admin")


def initialise_configs(params: GlobalParameters) -> Outcome:
    """Genesis snapshot: the given parameters, empty aggregates, no principals."""
    snapshot = ProtocolSnapshot(params=params, stake=AggregateStakeState(), principals=PrincipalStore())
    return Outcome(
        snapshot=snapshot,
        events=(
            EmittedEvent(
                Event.GLOBAL_CONFIG_INITIALIZED,
                {
                    "admin": params.admin,
                    "bonus_rate": params.bonus_rate,
                    "max_stake_count_to_get_bonus": params.max_stake_count_to_get_bonus,
                    "min_swap_amount": params.min_swap_amount,
                    "max_swap_amount": params.max_swap_amount,
                    "fee_treasury_rate": params.fee_treasury_rate,
                    "purchase_enabled": params.purchase_enabled,
                    "redeem_enabled": params.redeem_enabled,
                    "initial_lxr_allocation_vault": params.initial_lxr_allocation_vault,
                },
            ),
        ),
    )


def apply_config_update(config: GlobalParameters, selector: int, value: int, new_admin: PubKey | None) -> GlobalParameters:
    if selector == 0:
        if not new_admin:
            raise ValueError("new_admin is required to change the admin")
        return replace(config, admin=new_admin)
    if selector == 1:
        return replace(config, min_swap_amount=value)
    if selector == 2:
        return replace(config, max_swap_amount=value)
    if selector == 3:
        return replace(config, fee_treasury_rate=value)
    if selector == 4:
        return replace(config, purchase_enabled=value != 0)
    if selector == 5:
        return replace(config, redeem_enabled=value != 0)
    if selector == 6:
        return replace(config, max_stake_count_to_get_bonus=value)
    raise InvalidSelector(f"unknown config selector {selector}")


def update_config(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    require_admin(snapshot.params, params.caller)
    config = apply_config_update(snapshot.params, params.selector, params.value, params.new_admin)
    return Outcome(
        snapshot=replace(snapshot, params=config),
        events=(
            EmittedEvent(
                Event.CONFIG_UPDATED,
                {
                    "admin": config.admin,
                    "min_swap_amount": config.min_swap_amount,
                    "max_swap_amount": config.max_swap_amount,
                    "fee_treasury_rate": config.fee_treasury_rate,
                    "purchase_enabled": config.purchase_enabled,
                    "redeem_enabled": config.redeem_enabled,
                },
            ),
        ),
    )


def emergency_withdraw(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    """
    Selector 0 drains the vault named by `value` (0 treasury, otherwise rewards).
    """
    config = snapshot.params
    require_admin(config, params.caller)
    admin = params.caller
    selector = params.selector

    if selector == 0:
        vault, balance = (
            (LXR_TREASURY_VAULT, obs.lxr_treasury_balance)
            if params.value == 0
            else (LXR_REWARD_VAULT, obs.lxr_reward_vault_balance)
        )
        outcome = Outcome(snapshot=snapshot, ops=(ExternalOp(OpKind.TOKEN_TRANSFER, balance, vault, admin),))
    elif selector == 1:
        outcome = Outcome(
            snapshot=snapshot,
            ops=(ExternalOp(OpKind.TOKEN_TRANSFER, obs.sol_treasury_balance, SOL_TREASURY_VAULT, admin),),
        )
    elif selector == 2:
        sink = snapshot.principals.admin_sink(config.admin, snapshot.stake)
        sink = accrue_all(sink, snapshot.stake)
        flushed = sink.lxr_rewards_pending
        sink = replace(sink, lxr_rewards_pending=0)
        outcome = Outcome(
            snapshot=replace(snapshot, principals=snapshot.principals.put_sink(sink)),
            ops=(ExternalOp(OpKind.TOKEN_TRANSFER, flushed, LXR_REWARD_VAULT, LXR_TREASURY_VAULT),),
        )
    elif selector == 3:
        outcome = Outcome(snapshot=snapshot, ops=(ExternalOp(OpKind.STAKE_DEACTIVATE, 0, STAKE_ACCOUNT, ""),))
    elif selector == 4:
        outcome = Outcome(
            snapshot=snapshot,
            ops=(ExternalOp(OpKind.STAKE_WITHDRAW, params.value, STAKE_ACCOUNT, admin),),
        )
    else:
        raise InvalidSelector(f"unknown emergency withdraw selector {selector}")

    event = EmittedEvent(Event.EMERGENCY_WITHDRAWN, {"admin": admin, "selector": selector, "value": params.value})
    return replace(outcome, events=(event,))
