"""
Protocol-wide configuration (single instance).

Created once by `core.admin.initialise_configs` and changed only through
`core.admin.update_config`.
"""

from __future__ import annotations

from dataclasses import dataclass

from .fields import PubKey, validate_fields


# Denominator for every rate numerator in the protocol.
RATE_DENOMINATOR = 1_000_000


@dataclass(frozen=True)
class GlobalParameters:
    admin: PubKey
    # Numerator over RATE_DENOMINATOR; discount while the bonus tier is open.
    bonus_rate: int = 0
    # Stake count up to which (inclusive) purchases receive the bonus.
    max_stake_count_to_get_bonus: int = 0
    # 0 disables the corresponding bound.
    min_swap_amount: int = 0
    max_swap_amount: int = 0
    # Share of each settlement sent to the SOL treasury, over RATE_DENOMINATOR.
    fee_treasury_rate: int = 0
    purchase_enabled: bool = True
    redeem_enabled: bool = True
    # Treasury LXR inventory at launch; post-bonus prices scale by current/initial.
    initial_lxr_allocation_vault: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.admin, str) or not self.admin:
            raise ValueError("admin must be a non-empty identity")
        validate_fields(
            self,
            u64=(
                "bonus_rate",
                "max_stake_count_to_get_bonus",
                "min_swap_amount",
                "max_swap_amount",
                "fee_treasury_rate",
                "initial_lxr_allocation_vault",
            ),
            flags=("purchase_enabled", "redeem_enabled"),
        )
        for name in ("bonus_rate", "fee_treasury_rate"):
            if getattr(self, name) > RATE_DENOMINATOR:
                raise ValueError(f"{name} exceeds {RATE_DENOMINATOR}: {getattr(self, name)}")

    def is_admin(self, caller: PubKey) -> bool:
        return caller == self.admin
