#!/usr/bin/env python3
"""
Tests for per-session engines and the wager service

Validates:
1.  Each player session gets its own engine and cycle phase
2.  Closing a session drops its engine
3.  Launch debits, pays bet × multiplier and records the round
4.  Shoot pays bet × current multiplier on a jackpot, the small-win draw on a small win
5.  Bad bets, unknown players and short balances are rejected without side effects
6.  Engine contract violations propagate and leave the balance untouched
7.  History pagination, player stats, the house report and its daily breakdown
"""

import sys
import threading
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.game_schema import GameConfig
from sim_engine.flying_horse import CycleModulator, OutcomeContractError, OutcomeEngine
from tools.admin_config import AdminConfigService
from tools.session_registry import SessionRegistry
from tools.wager_service import (
    InsufficientBalanceError, InvalidBetError, UnknownPlayerError,
    WagerError, WagerService,
)

BETS = [0.2, 1.0, 2.0, 5.0, 10.0]


class ScriptedRNG:

    def __init__(self, *draws):
        self._draws = list(draws)

    def random(self):
        if not self._draws:
            raise AssertionError("RNG drawn more times than scripted")
        return self._draws.pop(0)


class PinnedModulator(CycleModulator):

    def __init__(self, luck=1.0):
        super().__init__(initial_phase=0.0)
        self.luck = luck

    def advance_and_sample(self):
        super().advance_and_sample()
        return self.luck


def _service(*draws, balance=100.0):
    """Wager service whose every session draws from one scripted RNG at luck 1.0."""
    rng = ScriptedRNG(*draws)
    registry = SessionRegistry(
        target_rtp=0.96,
        engine_factory=lambda rtp: OutcomeEngine(target_rtp=rtp, rng=rng,
                                                 modulator=PinnedModulator(1.0)),
    )
    admin = AdminConfigService(registry, GameConfig(target_rtp=0.96, bet_list=BETS))
    wagers = WagerService(registry, admin)
    wagers.register_player("p1", balance=balance)
    return wagers, registry


# ============================================================
# Session Registry
# ============================================================

class TestSessionRegistry(unittest.TestCase):

    def test_one_engine_per_session(self):
        registry = SessionRegistry()
        a = registry.open("alice")
        b = registry.open("bob")
        self.assertIsNot(a, b)
        self.assertIs(registry.open("alice"), a)
        self.assertEqual(registry.active_sessions(), ["alice", "bob"])

    def test_shots_do_not_advance_other_sessions(self):
        registry = SessionRegistry()
        a = registry.open("alice")
        b = registry.open("bob")
        b_phase = b.modulator.cycle_phase
        for _ in range(10):
            a.shoot_outcome(10, 0)
        self.assertEqual(a.modulator.call_count, 10)
        self.assertEqual(b.modulator.call_count, 0)
        self.assertEqual(b.modulator.cycle_phase, b_phase)

    def test_close(self):
        registry = SessionRegistry()
        registry.open("alice")
        self.assertTrue(registry.close("alice"))
        self.assertFalse(registry.close("alice"))
        self.assertIsNone(registry.get("alice"))
        self.assertEqual(registry.active_sessions(), [])

    def test_apply_target_rtp(self):
        registry = SessionRegistry(target_rtp=0.96)
        engines = [registry.open(f"p{i}") for i in range(3)]
        self.assertEqual(registry.apply_target_rtp(0.92), 3)
        self.assertTrue(all(e.target_rtp == 0.92 for e in engines))

    def test_concurrent_open_yields_single_engine(self):
        registry = SessionRegistry()
        seen = []

        def worker():
            seen.append(registry.open("shared"))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len({id(e) for e in seen}), 1)


# ============================================================
# Wager Service — launch
# ============================================================

class TestLaunch(unittest.TestCase):

    def test_launch_win(self):
        wagers, _ = _service(0.1, 0.5)            # win, 2.0x tier
        rec = wagers.launch("p1", 1.0)
        self.assertEqual(rec.result, "win")
        self.assertEqual(rec.multiplier, 2.0)
        self.assertEqual(rec.win_amount, 2.0)
        self.assertEqual(rec.bal_after, 101.0)
        self.assertEqual(rec.game_phase, "launch")
        self.assertEqual(len(rec.round_id), 8)
        self.assertEqual(wagers.balance("p1"), 101.0)

    def test_launch_loss(self):
        wagers, _ = _service(0.7)
        rec = wagers.launch("p1", 0.2)
        self.assertEqual(rec.result, "lose")
        self.assertEqual(rec.win_amount, 0.0)
        self.assertEqual(wagers.balance("p1"), 99.8)

    def test_invalid_bet_rejected(self):
        wagers, registry = _service()
        with self.assertRaises(InvalidBetError):
            wagers.launch("p1", 3.0)
        self.assertEqual(wagers.balance("p1"), 100.0)
        self.assertEqual(wagers.history("p1")["pagination"]["total"], 0)

    def test_insufficient_balance(self):
        wagers, _ = _service(balance=1.0)
        with self.assertRaises(InsufficientBalanceError):
            wagers.launch("p1", 2.0)
        self.assertEqual(wagers.balance("p1"), 1.0)

    def test_unknown_player_gets_no_session(self):
        wagers, registry = _service()
        with self.assertRaises(UnknownPlayerError):
            wagers.launch("ghost", 1.0)
        self.assertIsNone(registry.get("ghost"))

    def test_errors_are_wager_errors(self):
        for cls in (InvalidBetError, InsufficientBalanceError, UnknownPlayerError):
            self.assertTrue(issubclass(cls, WagerError))
        self.assertTrue(issubclass(WagerError, ValueError))


# ============================================================
# Wager Service — shoot
# ============================================================

class TestShoot(unittest.TestCase):

    def test_jackpot_pays_bet_times_current_multiplier(self):
        wagers, _ = _service(0.05)                # roll < 0.0735 at M=10
        rec = wagers.shoot("p1", 2.0, current_multiplier=10, pinata_hits=0, round_id="abcd1234")
        self.assertEqual(rec.result, "jackpot")
        self.assertEqual(rec.win_amount, 20.0)
        self.assertEqual(rec.round_id, "abcd1234")
        self.assertEqual(wagers.balance("p1"), 118.0)

    def test_small_win_uses_small_win_amount(self):
        wagers, _ = _service(0.5, 0.3, 0.5, 0.5)  # small win, then 0.5x payout
        rec = wagers.shoot("p1", 2.0, current_multiplier=10, pinata_hits=0)
        self.assertEqual(rec.result, "small_win")
        self.assertEqual(rec.win_amount, 1.0)
        self.assertEqual(wagers.balance("p1"), 99.0)

    def test_bad_explode_and_miss_pay_nothing(self):
        wagers, _ = _service(0.5, 0.01, 0.5, 0.9)
        first = wagers.shoot("p1", 1.0, current_multiplier=10, pinata_hits=0)
        second = wagers.shoot("p1", 1.0, current_multiplier=10, pinata_hits=1)
        self.assertEqual(first.result, "bad_explode")
        self.assertEqual(second.result, "miss")
        self.assertEqual(first.win_amount + second.win_amount, 0.0)
        self.assertEqual(wagers.balance("p1"), 98.0)

    def test_contract_violation_leaves_balance(self):
        wagers, _ = _service()
        with self.assertRaises(OutcomeContractError):
            wagers.shoot("p1", 1.0, current_multiplier=0, pinata_hits=0)
        with self.assertRaises(OutcomeContractError):
            wagers.shoot("p1", 1.0, current_multiplier=10, pinata_hits=-1)
        self.assertEqual(wagers.balance("p1"), 100.0)
        self.assertEqual(wagers.player_stats("p1")["total_bets"], 0)

    def test_shoot_uses_current_rtp(self):
        wagers, registry = _service(0.5, 0.9)
        registry.open("p1")
        wagers._admin.update_config(target_rtp=0.5)
        self.assertEqual(registry.get("p1").target_rtp, 0.5)
        self.assertEqual(wagers.shoot("p1", 1.0, 10, 0).result, "miss")


# ============================================================
# Wager Service — wallet & reporting
# ============================================================

class TestReporting(unittest.TestCase):

    def test_history_newest_first_with_pagination(self):
        wagers, _ = _service(0.7, 0.7, 0.7)
        ids = [wagers.launch("p1", 1.0).record_id for _ in range(3)]
        page1 = wagers.history("p1", page=1, limit=2)
        self.assertEqual([r["record_id"] for r in page1["records"]], ids[::-1][:2])
        self.assertEqual(page1["pagination"], {"page": 1, "limit": 2, "total": 3, "total_pages": 2})
        page2 = wagers.history("p1", page=2, limit=2)
        self.assertEqual([r["record_id"] for r in page2["records"]], [ids[0]])

    def test_player_stats_and_house_report(self):
        # launch win 2x on 1.0, then jackpot at 10x on 2.0, then a miss on 1.0
        wagers, _ = _service(0.1, 0.5, 0.05, 0.5, 0.9)
        rec = wagers.launch("p1", 1.0)
        wagers.shoot("p1", 2.0, 10, 0, round_id=rec.round_id)
        wagers.shoot("p1", 1.0, 10, 1, round_id=rec.round_id)

        stats = wagers.player_stats("p1")
        self.assertEqual(stats["total_bets"], 3)
        self.assertEqual(stats["total_wagered"], 4.0)
        self.assertEqual(stats["total_won"], 22.0)
        self.assertEqual(stats["net_profit"], 18.0)
        self.assertEqual(stats["jackpots"], 1)
        self.assertEqual(stats["biggest_win"], 20.0)
        self.assertEqual(stats["player_rtp"], 550.0)

        report = wagers.house_report()
        self.assertEqual(report["total_players"], 1)
        self.assertEqual(report["total_paid"], 22.0)
        self.assertEqual(report["house_profit"], -18.0)
        self.assertEqual(report["active_sessions"], 1)

    def test_daily_report_groups_last_week_by_utc_day(self):
        now = 1_700_000_000.0                       # 2023-11-14 22:13:20 UTC
        wagers, _ = _service(0.7, 0.7, 0.7, 0.1, 0.5)
        today, yesterday, stale = (wagers.launch("p1", 1.0) for _ in range(3))
        won = wagers.launch("p1", 2.0)              # 2x tier pays 4.00
        today.created_at = now - 100
        won.created_at = now - 50
        yesterday.created_at = now - 86400
        stale.created_at = now - 10 * 86400

        report = wagers.daily_report(now=now)
        self.assertEqual(report, [
            {"date": "2023-11-14", "bets": 2, "wagered": 3.0, "paid": 4.0, "profit": -1.0},
            {"date": "2023-11-13", "bets": 1, "wagered": 1.0, "paid": 0.0, "profit": 1.0},
        ])
        self.assertEqual(wagers.daily_report(days=0, now=now), [])
        self.assertIn("daily_report", wagers.house_report())

    def test_empty_stats(self):
        wagers, _ = _service()
        self.assertEqual(wagers.player_stats("p1")["player_rtp"], 0)
        self.assertEqual(wagers.house_report()["actual_rtp"], 0)

    def test_adjust_balance(self):
        wagers, _ = _service()
        out = wagers.adjust_balance("p1", -40.5, reason="chargeback")
        self.assertEqual(out["new_balance"], 59.5)
        with self.assertRaises(WagerError):
            wagers.adjust_balance("p1", -100)
        self.assertEqual(wagers.balance("p1"), 59.5)

    def test_register_player_is_idempotent(self):
        wagers, _ = _service()
        self.assertEqual(wagers.register_player("p1", balance=999), 100.0)
        with self.assertRaises(WagerError):
            wagers.register_player("p2", balance=-1)


if __name__ == "__main__":
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
