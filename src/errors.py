"""Exception taxonomy for the staking/purchase engine.

Every failure carries a stable ``code`` string. ``protocol.step()`` uses it as
the rejection reason; ``protocol.step_or_raise()`` re-raises the original
exception.
"""

from __future__ import annotations


class LuxorError(Exception):
    """Base class for all engine failures."""

    code = "error"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.code
        super().__init__(self.message)

    def reason(self) -> str:
        return f"{self.code}:{self.message}" if self.message != self.code else self.code


class ArithmeticFailure(LuxorError):
    """Overflow, underflow or division by zero in a checked operation."""

    code = "arithmetic"


class InvariantViolation(LuxorError):
    """Constant product decreased, or a priced amount differs from the requested side."""

    code = "invariant"

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(",".join(violations))


class PolicyDisabled(LuxorError):
    """Purchase or redemption is globally disabled."""

    code = "policy_disabled"


class LimitExceeded(LuxorError):
    """A caller-supplied bound (slippage ceiling, swap size bound) was breached."""

    code = "limit_exceeded"


class ZeroResult(LuxorError):
    """A priced or claimable amount resolved to zero where a positive one is required."""

    code = "zero_result"


class StateConflict(LuxorError):
    """The operation is not valid in the current buyback phase."""

    code = "state_conflict"


class BuybackAlreadyRequested(StateConflict):
    def __init__(self) -> None:
        super().__init__("buyback already requested")


class NoBuybackRequested(StateConflict):
    def __init__(self) -> None:
        super().__init__("no buyback requested")


class InvalidSelector(LuxorError):
    """An update/withdraw selector outside the recognized set."""

    code = "invalid_selector"


class Unauthorized(LuxorError):
    """Caller is not the protocol admin."""

    code = "unauthorized"
