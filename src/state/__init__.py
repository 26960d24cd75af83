"""
Persisted protocol records
"""

from .config import GlobalParameters
from .principals import ADMIN_SINK_KEY, PrincipalStakeRecord, PrincipalStore
from .stake_info import AggregateStakeState, BuybackIdle, BuybackPhase, BuybackRequested

__all__ = [
    "GlobalParameters",
    "ADMIN_SINK_KEY",
    "PrincipalStakeRecord",
    "PrincipalStore",
    "AggregateStakeState",
    "BuybackIdle",
    "BuybackPhase",
    "BuybackRequested",
]
