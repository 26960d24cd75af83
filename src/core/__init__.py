"""
Core protocol algorithms: pricing, reward indices, purchase/redeem/buyback.
"""

from .admin import emergency_withdraw, initialise_configs, update_config
from .blacklist import blacklist
from .buyback import buyback, request_buyback, settle_buyback
from .cpmm import MarketSnapshot, SwapResult, price_exact_input, price_exact_output
from .effects import EmittedEvent, Event, ExternalOp, OpKind
from .protocol import step, step_or_raise
from .purchase import manual_purchase, purchase, quote_purchase
from .redemption import compute_redemption, redeem
from .rewards import PRECISION, RewardStream
from .types import Action, ActionParams, Observations, Outcome, ProtocolSnapshot, StepResult

__all__ = [
    "emergency_withdraw",
    "initialise_configs",
    "update_config",
    "blacklist",
    "buyback",
    "request_buyback",
    "settle_buyback",
    "MarketSnapshot",
    "SwapResult",
    "price_exact_input",
    "price_exact_output",
    "EmittedEvent",
    "Event",
    "ExternalOp",
    "OpKind",
    "step",
    "step_or_raise",
    "manual_purchase",
    "purchase",
    "quote_purchase",
    "compute_redemption",
    "redeem",
    "PRECISION",
    "RewardStream",
    "Action",
    "ActionParams",
    "Observations",
    "Outcome",
    "ProtocolSnapshot",
    "StepResult",
]
