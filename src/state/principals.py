"""
Per-principal stake records and the store that holds them.

Each staker has one `PrincipalStakeRecord`, created lazily on first purchase.
One extra record, stored under `ADMIN_SINK_KEY`, collects the stake and
pending rewards of blacklisted principals.

`PrincipalStore` is an immutable mapping keyed by owner identity. The caller
injects it into every operation; `put()` returns a new store, so a rejected
operation leaves the caller's store untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping

from .fields import PubKey, validate_fields
from .stake_info import AggregateStakeState


ADMIN_SINK_KEY: PubKey = "admin_stake_info"


def check_principal_identity(owner: PubKey) -> None:
    """Principals can never be addressed by the sink key."""
    if owner == ADMIN_SINK_KEY:
        raise ValueError(f"{ADMIN_SINK_KEY!r} is reserved for the admin sink")


@dataclass(frozen=True)
class PrincipalStakeRecord:
    owner: PubKey
    total_staked_sol: int = 0
    total_lxr_claimed: int = 0
    total_lxr_forfeited: int = 0
    # LXR bought through purchases; redemption pro-rates against it.
    base_lxr_holdings: int = 0
    # Checkpoint of AggregateStakeState.reward_per_token_lxr_stored.
    lxr_reward_per_token_completed: int = 0
    lxr_rewards_pending: int = 0
    blacklisted_sol: int = 0
    # Checkpoint of AggregateStakeState.reward_per_token_sol_stored.
    sol_reward_per_token_completed: int = 0
    sol_rewards_pending: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.owner, str) or not self.owner:
            raise ValueError("owner must be a non-empty identity")
        check_principal_identity(self.owner)
        validate_fields(
            self,
            u64=(
                "total_staked_sol",
                "total_lxr_claimed",
                "total_lxr_forfeited",
                "base_lxr_holdings",
                "lxr_rewards_pending",
                "blacklisted_sol",
                "sol_rewards_pending",
            ),
            u128=("lxr_reward_per_token_completed", "sol_reward_per_token_completed"),
        )


def new_record(owner: PubKey, stake: AggregateStakeState) -> PrincipalStakeRecord:
    """Fresh record checkpointed at the current global indices (no retroactive rewards)."""
    return PrincipalStakeRecord(
        owner=owner,
        lxr_reward_per_token_completed=stake.reward_per_token_lxr_stored,
        sol_reward_per_token_completed=stake.reward_per_token_sol_stored,
    )


class PrincipalStore:
    """Immutable identity -> record repository."""

    __slots__ = ("_records",)

    def __init__(self, records: Mapping[PubKey, PrincipalStakeRecord] | None = None) -> None:
        data = dict(records or {})
        for key, record in data.items():
            if record.owner != key and key != ADMIN_SINK_KEY:
                raise ValueError(f"record owner {record.owner!r} stored under key {key!r}")
        self._records = MappingProxyType(data)

    def __contains__(self, owner: object) -> bool:
        return owner in self._records

    def __iter__(self) -> Iterator[PubKey]:
        return iter(sorted(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrincipalStore):
            return NotImplemented
        return dict(self._records) == dict(other._records)

    def __repr__(self) -> str:
        return f"PrincipalStore({len(self._records)} records)"

    def get(self, owner: PubKey) -> PrincipalStakeRecord | None:
        return self._records.get(owner)

    def require(self, owner: PubKey) -> PrincipalStakeRecord:
        record = self._records.get(owner)
        if record is None:
            raise KeyError(f"no stake record for {owner!r}")
        return record

    def get_or_create(self, owner: PubKey, stake: AggregateStakeState) -> PrincipalStakeRecord:
        check_principal_identity(owner)
        record = self._records.get(owner)
        return record if record is not None else new_record(owner, stake)

    def admin_sink(self, admin: PubKey, stake: AggregateStakeState) -> PrincipalStakeRecord:
        """The reassignment sink; created on first use, owned by the current admin."""
        record = self._records.get(ADMIN_SINK_KEY)
        return record if record is not None else new_record(admin, stake)

    def put(self, record: PrincipalStakeRecord, *, key: PubKey | None = None) -> "PrincipalStore":
        data = dict(self._records)
        data[key if key is not None else record.owner] = record
        return PrincipalStore(data)

    def put_sink(self, record: PrincipalStakeRecord) -> "PrincipalStore":
        return self.put(record, key=ADMIN_SINK_KEY)

    def items(self) -> list[tuple[PubKey, PrincipalStakeRecord]]:
        return [(k, self._records[k]) for k in sorted(self._records)]
