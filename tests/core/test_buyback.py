"""Tests for src/core/buyback.py: Idle -> Requested -> Idle lifecycle."""

from __future__ import annotations

from dataclasses import replace

import pytest

from src.core.buyback import buyback, quote_buyback, request_buyback, settle_buyback, treasury_fee
from src.core.cpmm import MarketSnapshot, price_exact_input
from src.core.invariants import check_all
from src.core.protocol import step
from src.core.effects import LXR_REWARD_VAULT, MARKET, SOL_TREASURY_VAULT, STAKE_ACCOUNT, Event, OpKind
from src.core.rewards import PRECISION
from src.core.types import Action, ActionParams, Observations, ProtocolSnapshot
from src.errors import BuybackAlreadyRequested, NoBuybackRequested, StateConflict, Unauthorized, ZeroResult
from src.state.config import GlobalParameters
from src.state.stake_info import AggregateStakeState, BuybackIdle, BuybackRequested

ADMIN = "admin"
ONE_SOL = 1_000_000_000
RENT = 2_282_880
REWARDS = 50_000_000

MARKET_SNAPSHOT = MarketSnapshot(reserve_in=1_000 * ONE_SOL, reserve_out=50_000 * ONE_SOL)


def _snapshot(**params) -> ProtocolSnapshot:
    params.setdefault("fee_treasury_rate", 50_000)
    return ProtocolSnapshot(
        params=GlobalParameters(admin=ADMIN, **params),
        stake=AggregateStakeState(total_staked_sol=ONE_SOL, total_stake_count=3, last_tracked_sol_balance=ONE_SOL),
    )


def _params(action: Action = Action.BUYBACK, caller: str = ADMIN) -> ActionParams:
    return ActionParams(action=action, caller=caller)


def _request_obs() -> Observations:
    return Observations(now=100, stake_account_balance=ONE_SOL + REWARDS)


def _settle_obs(**kwargs) -> Observations:
    base = dict(
        now=200,
        split_account_balance=REWARDS + RENT,
        split_rent_reserve=RENT,
        market=MARKET_SNAPSHOT,
    )
    base.update(kwargs)
    return Observations(**base)


def _requested() -> ProtocolSnapshot:
    return request_buyback(_snapshot(), _params(Action.REQUEST_BUYBACK), _request_obs()).snapshot


# ---------------------------------------------------------------------------
# request
# ---------------------------------------------------------------------------

class TestRequest:
    def test_splits_available_rewards(self):
        out = request_buyback(_snapshot(), _params(Action.REQUEST_BUYBACK), _request_obs())
        stake = out.snapshot.stake
        assert stake.total_sol_rewards_accrued == REWARDS
        assert stake.reward_per_token_sol_stored == REWARDS * PRECISION // ONE_SOL
        assert stake.last_tracked_sol_balance == ONE_SOL
        assert stake.last_update_timestamp == 100
        assert stake.buyback == BuybackRequested(split_index=0, amount=REWARDS, requested_at=100)

        assert [(op.kind, op.source, op.destination, op.amount) for op in out.ops] == [
            (OpKind.STAKE_SPLIT, STAKE_ACCOUNT, "stake_split:0", REWARDS),
            (OpKind.STAKE_DEACTIVATE, "stake_split:0", "", 0),
        ]
        assert out.events[0].event == Event.BUYBACK_REQUESTED

    def test_split_account_follows_buyback_count(self):
        snap = _snapshot()
        snap = replace(snap, stake=replace(snap.stake, buyback_count=4))
        out = request_buyback(snap, _params(), _request_obs())
        assert out.ops[0].destination == "stake_split:4"
        assert out.snapshot.stake.buyback.split_index == 4

    def test_twice_in_a_row_conflicts(self):
        with pytest.raises(BuybackAlreadyRequested):
            request_buyback(_requested(), _params(Action.REQUEST_BUYBACK), _request_obs())

    def test_admin_only(self):
        with pytest.raises(Unauthorized):
            request_buyback(_snapshot(), _params(caller="mallory"), _request_obs())

    def test_nothing_available_rejected(self):
        snap = _snapshot()
        with pytest.raises(ZeroResult):
            request_buyback(snap, _params(), Observations(now=100, stake_account_balance=ONE_SOL))
        r = step(snap, _params(), Observations(now=100, stake_account_balance=ONE_SOL))
        assert r.rejection == "zero_result:no SOL rewards available for buyback"

    def test_fee_rounding_to_zero_rejected(self):
        # 19 lamports * 5% rounds down to no treasury fee.
        with pytest.raises(ZeroResult):
            request_buyback(_snapshot(), _params(), Observations(now=100, stake_account_balance=ONE_SOL + 19))
        assert request_buyback(
            _snapshot(), _params(), Observations(now=100, stake_account_balance=ONE_SOL + 20)
        ).snapshot.stake.buyback.amount == 20


# ---------------------------------------------------------------------------
# settle
# ---------------------------------------------------------------------------

class TestSettle:
    def test_swaps_rewards_net_of_treasury_fee(self):
        fee = REWARDS * 50_000 // 1_000_000
        expected = price_exact_input(REWARDS - fee, MARKET_SNAPSHOT)

        out = settle_buyback(_requested(), _params(Action.SETTLE_BUYBACK), _settle_obs())
        stake = out.snapshot.stake
        assert stake.buyback == BuybackIdle()
        assert stake.buyback_count == 1
        assert stake.last_buyback_timestamp == 200
        assert stake.total_sol_used_for_buyback == REWARDS - fee
        assert stake.total_luxor_rewards_accrued == expected.output_amount
        assert stake.reward_per_token_lxr_stored == expected.output_amount * PRECISION // ONE_SOL
        assert stake.sol_available_for_buyback == fee

        assert [(op.kind, op.destination, op.amount) for op in out.ops] == [
            (OpKind.STAKE_WITHDRAW, ADMIN, REWARDS + RENT),
            (OpKind.MARKET_SWAP, MARKET, REWARDS - fee),
            (OpKind.TOKEN_TRANSFER, LXR_REWARD_VAULT, expected.output_amount),
            (OpKind.TOKEN_TRANSFER, SOL_TREASURY_VAULT, fee),
        ]
        assert out.ops[0].source == "stake_split:0"
        assert out.events[0].to_dict() == {
            "event": "BuybackExecuted",
            "sol_amount": REWARDS,
            "lxr_bought": expected.output_amount,
            "fee_to_treasury": fee,
        }

    def test_rewards_earned_while_deactivating(self):
        late = 100_000
        snap = request_buyback(_snapshot(fee_treasury_rate=1_000), _params(), _request_obs()).snapshot
        r = step(snap, _params(), _settle_obs(split_account_balance=REWARDS + late + RENT))
        assert r.accepted, r.rejection

        stake = r.snapshot.stake
        fee = (REWARDS + late) * 1_000 // 1_000_000
        assert stake.total_sol_rewards_accrued == REWARDS + late
        assert stake.total_sol_used_for_buyback == REWARDS + late - fee
        assert stake.reward_per_token_sol_stored == (REWARDS + late) * PRECISION // ONE_SOL
        assert stake.last_tracked_sol_balance == ONE_SOL
        assert stake.buyback == BuybackIdle()
        assert r.ops[0].amount == REWARDS + late + RENT
        assert check_all(r.snapshot) == []

    def test_short_split_balance_settles(self):
        out = settle_buyback(_requested(), _params(), _settle_obs(split_account_balance=REWARDS // 2 + RENT))
        stake = out.snapshot.stake
        assert stake.total_sol_rewards_accrued == REWARDS
        assert stake.total_sol_used_for_buyback < REWARDS // 2
        assert check_all(out.snapshot) == []

    def test_zero_treasury_fee_rejected(self):
        snap = _requested()
        snap = replace(snap, params=replace(snap.params, fee_treasury_rate=0))
        with pytest.raises(ZeroResult):
            settle_buyback(snap, _params(), _settle_obs())

    def test_without_request_conflicts(self):
        with pytest.raises(NoBuybackRequested):
            settle_buyback(_snapshot(), _params(), _settle_obs())

    def test_requires_market(self):
        with pytest.raises(ValueError):
            settle_buyback(_requested(), _params(), _settle_obs(market=None))


# ---------------------------------------------------------------------------
# single-entry dispatch
# ---------------------------------------------------------------------------

class TestBuybackDispatch:
    def test_alternates_request_and_settle(self):
        requested = buyback(_snapshot(), _params(), _request_obs()).snapshot
        assert isinstance(requested.stake.buyback, BuybackRequested)
        settled = buyback(requested, _params(), _settle_obs()).snapshot
        assert isinstance(settled.stake.buyback, BuybackIdle)
        assert settled.stake.buyback_count == 1

    def test_conflicts_are_state_conflicts(self):
        assert issubclass(BuybackAlreadyRequested, StateConflict)
        assert issubclass(NoBuybackRequested, StateConflict)
        assert BuybackAlreadyRequested().reason() == "state_conflict:buyback already requested"


def test_quote_buyback_matches_settlement_pricing() -> None:
    fee, swap = quote_buyback(REWARDS, 50_000, Observations(market=MARKET_SNAPSHOT))
    assert fee == treasury_fee(REWARDS, 50_000) == 2_500_000
    assert swap.input_amount == REWARDS - fee
