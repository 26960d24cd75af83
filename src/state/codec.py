"""
Fixed-width record serialization.

Each persisted record packs into a fixed-size little-endian layout:

- u64 / u128: unsigned little-endian integers,
- bool: one byte, 0 or 1 (any other value is rejected on decode),
- identity: 32 bytes, UTF-8 padded with NUL.

The buyback phase packs as a bool tag followed by `split_index`, `amount`
and `requested_at` (all zero while idle).

`snapshot_to_dict` / `snapshot_from_dict` give a JSON-safe view of a whole
protocol snapshot for fixtures and audit dumps.
"""

from __future__ import annotations

from typing import Any, Mapping

from .config import GlobalParameters
from .principals import PrincipalStakeRecord, PrincipalStore
from .stake_info import AggregateStakeState, BuybackIdle, BuybackPhase, BuybackRequested


IDENTITY_LEN = 32

_WIDTH = {"u64": 8, "u128": 16, "bool": 1, "id": IDENTITY_LEN}

_PARAMS_LAYOUT: tuple[tuple[str, str], ...] = (
    ("admin", "id"),
    ("bonus_rate", "u64"),
    ("max_stake_count_to_get_bonus", "u64"),
    ("min_swap_amount", "u64"),
    ("max_swap_amount", "u64"),
    ("fee_treasury_rate", "u64"),
    ("purchase_enabled", "bool"),
    ("redeem_enabled", "bool"),
    ("initial_lxr_allocation_vault", "u64"),
)

_STAKE_LAYOUT: tuple[tuple[str, str], ...] = (
    ("total_staked_sol", "u64"),
    ("total_stake_count", "u64"),
    ("total_sol_rewards_accrued", "u64"),
    ("last_tracked_sol_balance", "u64"),
    ("reward_per_token_sol_stored", "u128"),
    ("total_luxor_rewards_accrued", "u64"),
    ("total_sol_used_for_buyback", "u64"),
    ("reward_per_token_lxr_stored", "u128"),
    ("total_lxr_claimed", "u64"),
    ("total_lxr_forfeited", "u64"),
    ("last_update_timestamp", "u64"),
    ("last_buyback_timestamp", "u64"),
    ("buyback_count", "u64"),
)

_PHASE_LAYOUT: tuple[tuple[str, str], ...] = (
    ("requested", "bool"),
    ("split_index", "u64"),
    ("amount", "u64"),
    ("requested_at", "u64"),
)

_PRINCIPAL_LAYOUT: tuple[tuple[str, str], ...] = (
    ("owner", "id"),
    ("total_staked_sol", "u64"),
    ("total_lxr_claimed", "u64"),
    ("total_lxr_forfeited", "u64"),
    ("base_lxr_holdings", "u64"),
    ("lxr_reward_per_token_completed", "u128"),
    ("lxr_rewards_pending", "u64"),
    ("blacklisted_sol", "u64"),
    ("sol_reward_per_token_completed", "u128"),
    ("sol_rewards_pending", "u64"),
)


def _layout_len(layout: tuple[tuple[str, str], ...]) -> int:
    return sum(_WIDTH[kind] for _, kind in layout)


GLOBAL_PARAMETERS_LEN = _layout_len(_PARAMS_LAYOUT)
AGGREGATE_STAKE_LEN = _layout_len(_STAKE_LAYOUT) + _layout_len(_PHASE_LAYOUT)
PRINCIPAL_RECORD_LEN = _layout_len(_PRINCIPAL_LAYOUT)


def _encode_identity(value: str) -> bytes:
    raw = value.encode("utf-8")
    if len(raw) > IDENTITY_LEN:
        raise ValueError(f"identity longer than {IDENTITY_LEN} bytes: {value!r}")
    if b"\x00" in raw:
        raise ValueError("identity must not contain NUL")
    return raw.ljust(IDENTITY_LEN, b"\x00")


def _decode_identity(raw: bytes) -> str:
    return raw.rstrip(b"\x00").decode("utf-8")


def _pack(values: Mapping[str, Any], layout: tuple[tuple[str, str], ...]) -> bytes:
    out = bytearray()
    for name, kind in layout:
        v = values[name]
        if kind == "id":
            out += _encode_identity(v)
        elif kind == "bool":
            out.append(1 if v else 0)
        else:
            out += int(v).to_bytes(_WIDTH[kind], "little", signed=False)
    return bytes(out)


def _unpack(data: bytes, layout: tuple[tuple[str, str], ...], offset: int = 0) -> tuple[dict[str, Any], int]:
    values: dict[str, Any] = {}
    for name, kind in layout:
        width = _WIDTH[kind]
        chunk = data[offset : offset + width]
        if kind == "id":
            values[name] = _decode_identity(chunk)
        elif kind == "bool":
            if chunk[0] not in (0, 1):
                raise ValueError(f"{name}: invalid bool byte {chunk[0]}")
            values[name] = chunk[0] == 1
        else:
            values[name] = int.from_bytes(chunk, "little", signed=False)
        offset += width
    return values, offset


def _require_len(data: bytes, expected: int, what: str) -> None:
    if len(data) != expected:
        raise ValueError(f"{what} must be {expected} bytes, got {len(data)}")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def encode_parameters(params: GlobalParameters) -> bytes:
    return _pack(vars(params), _PARAMS_LAYOUT)


def decode_parameters(data: bytes) -> GlobalParameters:
    _require_len(data, GLOBAL_PARAMETERS_LEN, "GlobalParameters")
    values, _ = _unpack(data, _PARAMS_LAYOUT)
    return GlobalParameters(**values)


def _phase_values(phase: BuybackPhase) -> dict[str, Any]:
    if isinstance(phase, BuybackRequested):
        return {
            "requested": True,
            "split_index": phase.split_index,
            "amount": phase.amount,
            "requested_at": phase.requested_at,
        }
    return {"requested": False, "split_index": 0, "amount": 0, "requested_at": 0}


def _phase_from_values(values: Mapping[str, Any]) -> BuybackPhase:
    if values["requested"]:
        return BuybackRequested(
            split_index=values["split_index"],
            amount=values["amount"],
            requested_at=values["requested_at"],
        )
    if values["split_index"] or values["amount"] or values["requested_at"]:
        raise ValueError("idle buyback phase must have zeroed fields")
    return BuybackIdle()


def encode_stake_state(stake: AggregateStakeState) -> bytes:
    return _pack(vars(stake), _STAKE_LAYOUT) + _pack(_phase_values(stake.buyback), _PHASE_LAYOUT)


def decode_stake_state(data: bytes) -> AggregateStakeState:
    _require_len(data, AGGREGATE_STAKE_LEN, "AggregateStakeState")
    values, offset = _unpack(data, _STAKE_LAYOUT)
    phase, _ = _unpack(data, _PHASE_LAYOUT, offset)
    return AggregateStakeState(**values, buyback=_phase_from_values(phase))


def encode_principal(record: PrincipalStakeRecord) -> bytes:
    return _pack(vars(record), _PRINCIPAL_LAYOUT)


def decode_principal(data: bytes) -> PrincipalStakeRecord:
    _require_len(data, PRINCIPAL_RECORD_LEN, "PrincipalStakeRecord")
    values, _ = _unpack(data, _PRINCIPAL_LAYOUT)
    return PrincipalStakeRecord(**values)


# ---------------------------------------------------------------------------
# Dict view
# ---------------------------------------------------------------------------


def stake_to_dict(stake: AggregateStakeState) -> dict[str, Any]:
    out = {name: getattr(stake, name) for name, _ in _STAKE_LAYOUT}
    phase = _phase_values(stake.buyback)
    out["buyback"] = phase if phase["requested"] else {"requested": False}
    return out


def stake_from_dict(d: Mapping[str, Any]) -> AggregateStakeState:
    values = {name: d[name] for name, _ in _STAKE_LAYOUT}
    raw_phase = d.get("buyback") or {"requested": False}
    phase = {"requested": False, "split_index": 0, "amount": 0, "requested_at": 0, **raw_phase}
    return AggregateStakeState(**values, buyback=_phase_from_values(phase))


def snapshot_to_dict(params: GlobalParameters, stake: AggregateStakeState, principals: PrincipalStore) -> dict[str, Any]:
    return {
        "params": {name: getattr(params, name) for name, _ in _PARAMS_LAYOUT},
        "stake": stake_to_dict(stake),
        "principals": {
            key: {name: getattr(record, name) for name, _ in _PRINCIPAL_LAYOUT}
            for key, record in principals.items()
        },
    }


def snapshot_from_dict(d: Mapping[str, Any]) -> tuple[GlobalParameters, AggregateStakeState, PrincipalStore]:
    params = GlobalParameters(**d["params"])
    stake = stake_from_dict(d["stake"])
    principals = PrincipalStore(
        {key: PrincipalStakeRecord(**record) for key, record in (d.get("principals") or {}).items()}
    )
    return params, stake, principals
