"""Dispatch-table engine for the staking / purchase protocol.

``step(snapshot, params, obs)`` is the single entry point. It:

1. Dispatches the action to its operation.
2. Checks all invariants on the post-state.
3. Returns a ``StepResult`` (accepted with ops/events, or rejected with reason).

Operations are pure: a rejected step leaves the caller's snapshot untouched
and produces no ops, so the caller never has to undo a partial effect.
"""

from __future__ import annotations

import logging
from typing import Callable

from ..errors import InvariantViolation, LuxorError
from .admin import emergency_withdraw, update_config
from .blacklist import blacklist
from .buyback import buyback, request_buyback, settle_buyback
from .invariants import check_all
from .purchase import manual_purchase, purchase
from .redemption import redeem
from .types import Action, ActionParams, Observations, Outcome, ProtocolSnapshot, StepResult

logger = logging.getLogger(__name__)

OperationFn = Callable[[ProtocolSnapshot, ActionParams, Observations], Outcome]

_DISPATCH: dict[Action, OperationFn] = {
    Action.PURCHASE: purchase,
    Action.MANUAL_PURCHASE: manual_purchase,
    Action.REDEEM: redeem,
    Action.BUYBACK: buyback,
    Action.REQUEST_BUYBACK: request_buyback,
    Action.SETTLE_BUYBACK: settle_buyback,
    Action.BLACKLIST: blacklist,
    Action.UPDATE_CONFIG: update_config,
    Action.EMERGENCY_WITHDRAW: emergency_withdraw,
}


def execute(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations) -> Outcome:
    """Run one action and check the post-state.

    Raises:
        LuxorError: the operation failed (subclass names the failure).
        InvariantViolation: the post-state breaks a snapshot invariant.
        KeyError: the action references an unknown principal.
        ValueError, TypeError: malformed parameters.
    """
    fn = _DISPATCH.get(params.action)
    if fn is None:
        raise ValueError(f"unknown action: {params.action!r}")
    outcome = fn(snapshot, params, obs)
    violations = check_all(outcome.snapshot)
    if violations:
        raise InvariantViolation(violations)
    return outcome


def step(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations | None = None) -> StepResult:
    """Execute one action against the given snapshot.

    Returns ``StepResult`` with ``accepted=True`` on success,
    or ``accepted=False`` with a ``rejection`` reason string.
    """
    obs = obs if obs is not None else Observations()
    try:
        outcome = execute(snapshot, params, obs)
    except LuxorError as exc:
        rejection = exc.reason()
    except KeyError as exc:
        rejection = f"unknown_principal:{exc.args[0] if exc.args else ''}"
    except (ValueError, TypeError) as exc:
        rejection = f"param_domain:{exc}"
    else:
        logger.info(
            "accepted %s caller=%s ops=%d events=%d",
            params.action.value, params.caller, len(outcome.ops), len(outcome.events),
        )
        return StepResult(
            accepted=True,
            snapshot=outcome.snapshot,
            ops=outcome.ops,
            events=outcome.events,
        )

    logger.warning("rejected %s caller=%s: %s", params.action, params.caller, rejection)
    return StepResult(accepted=False, rejection=rejection)


def step_or_raise(snapshot: ProtocolSnapshot, params: ActionParams, obs: Observations | None = None) -> StepResult:
    """Like ``step()`` but raises the underlying exception instead of rejecting."""
    outcome = execute(snapshot, params, obs if obs is not None else Observations())
    return StepResult(accepted=True, snapshot=outcome.snapshot, ops=outcome.ops, events=outcome.events)
