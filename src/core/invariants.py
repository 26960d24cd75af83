"""Post-state invariant checkers for the protocol snapshot.

Each function returns True when the invariant holds, and `check_all()` returns
the list of violated invariant IDs (empty = all pass).
"""

from __future__ import annotations

from typing import Callable

from ..state.stake_info import BuybackIdle, BuybackRequested
from .types import ProtocolSnapshot


def inv_buyback_within_accrued(s: ProtocolSnapshot) -> bool:
    return s.stake.total_sol_used_for_buyback <= s.stake.total_sol_rewards_accrued


def inv_lxr_checkpoints_not_ahead(s: ProtocolSnapshot) -> bool:
    index = s.stake.reward_per_token_lxr_stored
    return all(r.lxr_reward_per_token_completed <= index for _, r in s.principals.items())


def inv_sol_checkpoints_not_ahead(s: ProtocolSnapshot) -> bool:
    index = s.stake.reward_per_token_sol_stored
    return all(r.sol_reward_per_token_completed <= index for _, r in s.principals.items())


def inv_split_index_current(s: ProtocolSnapshot) -> bool:
    phase = s.stake.buyback
    if isinstance(phase, BuybackIdle):
        return True
    return isinstance(phase, BuybackRequested) and phase.split_index == s.stake.buyback_count


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[str, Callable[[ProtocolSnapshot], bool]] = {
    "inv_buyback_within_accrued": inv_buyback_within_accrued,
    "inv_lxr_checkpoints_not_ahead": inv_lxr_checkpoints_not_ahead,
    "inv_sol_checkpoints_not_ahead": inv_sol_checkpoints_not_ahead,
    "inv_split_index_current": inv_split_index_current,
}


def check_all(snapshot: ProtocolSnapshot) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(snapshot)
    ]
