"""
Blacklist: reassign a principal's stake and pending rewards to the admin sink.

Both records are accrued on both reward streams first. The target's whole
LXR pending balance (older pending plus what just accrued) is counted as
forfeited on the target's record, then handed to the sink together with the
stake and the SOL pending balance. The moved stake is kept in
`blacklisted_sol` for audit; the aggregate totals do not change because the
stake stays in the pool.
"""

from __future__ import annotations

from dataclasses import replace

from ..kernels.python.checked_u128 import U64_MAX, checked_add
from ..state.principals import check_principal_identity
from .admin import require_admin
from .effects import EmittedEvent, Event
from .rewards import accrue_all
from .types import ActionParams, Observations, Outcome, ProtocolSnapshot


def blacklist(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    config = snapshot.params
    stake = snapshot.stake
    require_admin(config, params.caller)
    check_principal_identity(params.target)

    target = accrue_all(snapshot.principals.require(params.target), stake)
    target = replace(
        target,
        total_lxr_forfeited=checked_add(target.total_lxr_forfeited, target.lxr_rewards_pending, bound=U64_MAX),
    )
    sol_blacklisted = target.total_staked_sol

    sink = accrue_all(snapshot.principals.admin_sink(params.caller, stake), stake)
    sink = replace(
        sink,
        total_staked_sol=checked_add(sink.total_staked_sol, target.total_staked_sol, bound=U64_MAX),
        lxr_rewards_pending=checked_add(sink.lxr_rewards_pending, target.lxr_rewards_pending, bound=U64_MAX),
        sol_rewards_pending=checked_add(sink.sol_rewards_pending, target.sol_rewards_pending, bound=U64_MAX),
    )
    target = replace(
        target,
        blacklisted_sol=checked_add(target.blacklisted_sol, sol_blacklisted, bound=U64_MAX),
        total_staked_sol=0,
        lxr_rewards_pending=0,
        sol_rewards_pending=0,
        base_lxr_holdings=0,
    )

    principals = snapshot.principals.put(target).put_sink(sink)
    return Outcome(
        snapshot=replace(snapshot, principals=principals),
        events=(
            EmittedEvent(Event.USER_BLACKLISTED, {"user": target.owner, "sol_blacklisted": sol_blacklisted}),
        ),
    )
