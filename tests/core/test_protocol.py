"""Tests for src/core/protocol.py: dispatch table + step function.

Tests cover known action sequences end-to-end through the engine.
"""

from __future__ import annotations

import logging

import pytest

from src.core.admin import initialise_configs
from src.core.cpmm import MarketSnapshot
from src.core.effects import Event
from src.core.invariants import check_all
from src.core.protocol import step, step_or_raise
from src.core.types import Action, ActionParams, Observations, ProtocolSnapshot
from src.errors import BuybackAlreadyRequested, PolicyDisabled, StateConflict
from src.state.config import GlobalParameters
from src.state.principals import PrincipalStakeRecord, PrincipalStore
from src.state.stake_info import AggregateStakeState, BuybackRequested

ADMIN = "admin"
ONE_SOL = 1_000_000_000
MARKET = MarketSnapshot(reserve_in=1_000 * ONE_SOL, reserve_out=50_000 * ONE_SOL)
# LXR priced low enough that a buyback moves the LXR index past the
# PRECISION^2 payout scale for stakes of a few thousand lamports.
CHEAP_LXR = MarketSnapshot(reserve_in=ONE_SOL, reserve_out=10**19)


def _genesis(**kwargs) -> ProtocolSnapshot:
    base = dict(
        admin=ADMIN,
        bonus_rate=100_000,
        max_stake_count_to_get_bonus=2,
        fee_treasury_rate=50_000,
        initial_lxr_allocation_vault=1_000_000 * ONE_SOL,
    )
    base.update(kwargs)
    return initialise_configs(GlobalParameters(**base)).snapshot


def _obs(**kwargs) -> Observations:
    base = dict(now=1_000, lxr_treasury_balance=1_000_000 * ONE_SOL, market=MARKET)
    base.update(kwargs)
    return Observations(**base)


# ---------------------------------------------------------------------------
# single steps
# ---------------------------------------------------------------------------

class TestStep:
    def test_accepted_purchase(self):
        r = step(_genesis(), ActionParams(Action.PURCHASE, caller="alice", lxr_amount=ONE_SOL, max_sol_amount=ONE_SOL), _obs())
        assert r.accepted
        assert r.rejection is None
        assert r.snapshot is not None
        assert r.snapshot.stake.total_stake_count == 1
        assert r.events[0].event == Event.LXR_PURCHASED
        assert len(r.ops) == 3

    def test_rejection_reason_carries_error_code(self):
        r = step(_genesis(purchase_enabled=False), ActionParams(Action.PURCHASE, caller="alice", lxr_amount=1), _obs())
        assert not r.accepted
        assert r.snapshot is None
        assert r.ops == ()
        assert r.rejection == "policy_disabled:purchase is disabled"

    def test_unauthorized(self):
        r = step(_genesis(), ActionParams(Action.UPDATE_CONFIG, caller="mallory", selector=1, value=1))
        assert r.rejection is not None
        assert r.rejection.startswith("unauthorized:")

    def test_unknown_principal(self):
        r = step(_genesis(), ActionParams(Action.REDEEM, caller="nobody"))
        assert r.rejection is not None
        assert r.rejection.startswith("unknown_principal:")

    def test_malformed_params(self):
        r = step(_genesis(), ActionParams(Action.PURCHASE, caller="alice", lxr_amount=1), _obs(market=None))
        assert r.rejection is not None
        assert r.rejection.startswith("param_domain:")

    def test_invalid_selector(self):
        r = step(_genesis(), ActionParams(Action.UPDATE_CONFIG, caller=ADMIN, selector=99))
        assert r.rejection == "invalid_selector:unknown config selector 99"

    def test_invariant_violation_rejected(self):
        snap = _genesis()
        ahead = PrincipalStakeRecord(owner="alice", total_staked_sol=1, lxr_reward_per_token_completed=5)
        bad = ProtocolSnapshot(params=snap.params, stake=snap.stake, principals=PrincipalStore({"alice": ahead}))
        assert check_all(bad) == ["inv_lxr_checkpoints_not_ahead"]
        r = step(bad, ActionParams(Action.UPDATE_CONFIG, caller=ADMIN, selector=1, value=1))
        assert r.rejection == "invariant:inv_lxr_checkpoints_not_ahead"

    def test_logs_accept_and_reject(self, caplog):
        with caplog.at_level(logging.INFO, logger="src.core.protocol"):
            step(_genesis(), ActionParams(Action.UPDATE_CONFIG, caller=ADMIN, selector=1, value=1))
            step(_genesis(), ActionParams(Action.UPDATE_CONFIG, caller="mallory", selector=1, value=1))
        levels = [rec.levelno for rec in caplog.records]
        assert levels == [logging.INFO, logging.WARNING]


class TestStepOrRaise:
    def test_raises_original_exception(self):
        with pytest.raises(PolicyDisabled):
            step_or_raise(_genesis(redeem_enabled=False), ActionParams(Action.REDEEM, caller="alice"))

    def test_double_request_raises_state_conflict(self):
        snap = _genesis()
        snap = ProtocolSnapshot(
            params=snap.params,
            stake=AggregateStakeState(total_staked_sol=ONE_SOL, last_tracked_sol_balance=ONE_SOL),
        )
        first = step_or_raise(snap, ActionParams(Action.REQUEST_BUYBACK, caller=ADMIN), _obs(stake_account_balance=ONE_SOL + 1_000))
        with pytest.raises(StateConflict):
            step_or_raise(first.snapshot, ActionParams(Action.REQUEST_BUYBACK, caller=ADMIN), _obs())
        with pytest.raises(BuybackAlreadyRequested):
            step_or_raise(first.snapshot, ActionParams(Action.REQUEST_BUYBACK, caller=ADMIN), _obs())


# ---------------------------------------------------------------------------
# full lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    LXR_BOUGHT_PER_PURCHASE = 10**13

    def _obs(self, **kwargs) -> Observations:
        return _obs(market=CHEAP_LXR, **kwargs)

    def test_purchase_buyback_redeem(self):
        snap = _genesis()
        balance = 0

        # Two bonus-tier purchases, one post-bonus purchase.
        for buyer in ("alice", "bob", "carol"):
            r = step_or_raise(
                snap,
                ActionParams(
                    Action.PURCHASE,
                    caller=buyer,
                    lxr_amount=self.LXR_BOUGHT_PER_PURCHASE,
                    max_sol_amount=10_000,
                ),
                self._obs(stake_account_balance=balance),
            )
            snap = r.snapshot
            balance += r.ops[0].amount
        assert snap.stake.total_stake_count == 3
        assert snap.stake.total_staked_sol == balance
        prices = [snap.principals.require(b).total_staked_sol for b in ("alice", "bob", "carol")]
        # Market quote 1004 lamports; 10% bonus for the first two buyers.
        assert prices == [904, 904, 1004]

        # The stake earns 50_000 lamports; request and settle a buyback.
        rewards = 50_000
        r = step_or_raise(
            snap, ActionParams(Action.BUYBACK, caller=ADMIN), self._obs(stake_account_balance=balance + rewards)
        )
        snap = r.snapshot
        assert isinstance(snap.stake.buyback, BuybackRequested)
        assert snap.stake.last_tracked_sol_balance == balance

        r = step_or_raise(
            snap,
            ActionParams(Action.BUYBACK, caller=ADMIN),
            self._obs(split_account_balance=rewards + 2_282_880, split_rent_reserve=2_282_880),
        )
        snap = r.snapshot
        lxr_bought = r.events[0].data["lxr_bought"]
        assert r.events[0].data["fee_to_treasury"] == 2_500
        assert snap.stake.total_luxor_rewards_accrued == lxr_bought
        assert snap.stake.total_sol_used_for_buyback == 47_500
        assert snap.stake.buyback_count == 1

        # Alice still holds everything she bought, so nothing is forfeited.
        index = snap.stake.reward_per_token_lxr_stored
        r = step_or_raise(
            snap,
            ActionParams(Action.REDEEM, caller="alice"),
            self._obs(principal_lxr_balance=self.LXR_BOUGHT_PER_PURCHASE),
        )
        claimed = r.events[0].data["lxr_collected"]
        assert r.events[0].data["lxr_forfeited"] == 0
        assert claimed == 904 * index // 10**9 // 10**9
        assert claimed > 0

        # Bob sold half his LXR and forfeits half his claim.
        r = step_or_raise(
            r.snapshot,
            ActionParams(Action.REDEEM, caller="bob"),
            self._obs(principal_lxr_balance=self.LXR_BOUGHT_PER_PURCHASE // 2),
        )
        assert r.events[0].data["lxr_collected"] == claimed // 2
        assert r.events[0].data["lxr_forfeited"] == claimed - claimed // 2
        assert check_all(r.snapshot) == []
