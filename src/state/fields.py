"""
Field validation shared by the persisted records.

Records model fixed-width ledger fields: amounts and counters are u64,
reward indices are u128. Values are validated on construction so an
out-of-range record can never be built.
"""

from __future__ import annotations

from typing import Iterable

from ..kernels.python.checked_u128 import U64_MAX, U128_MAX

# Identities are opaque strings (base58 / hex public keys supplied by the caller).
PubKey = str


def require_uint(name: str, value: object, bound: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")
    if value > bound:
        raise ValueError(f"{name} exceeds its field width: {value}")


def require_bool(name: str, value: object) -> None:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be a bool")


def validate_fields(obj: object, *, u64: Iterable[str] = (), u128: Iterable[str] = (), flags: Iterable[str] = ()) -> None:
    for name in u64:
        require_uint(name, getattr(obj, name), U64_MAX)
    for name in u128:
        require_uint(name, getattr(obj, name), U128_MAX)
    for name in flags:
        require_bool(name, getattr(obj, name))
