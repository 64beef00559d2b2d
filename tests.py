#!/usr/bin/env python3
"""
FLYING HORSE — Outcome Engine Test Suite

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestShotOdds    # run specific class

Test categories:
  TestLaunchPhase     — hit rate, multiplier ladder, boundary draws
  TestCycleModulator  — luck factor bounds, periodicity, determinism
  TestShotOdds        — jackpot / explode formulas, monotonicity
  TestClassifyShot    — reference scenarios, shared sub-roll, tie-breaks
  TestSmallWinAmount  — floor-to-cent payouts
  TestOutcomeEngine   — orchestration, state advance, contract errors, RTP hot-update
"""

import math
import random
import sys
import unittest
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sim_engine.flying_horse import (
    CycleModulator, OutcomeContractError, OutcomeEngine, ShotOutcome,
    classify_shot, launch_outcome, shot_odds, small_win_amount,
)
from sim_engine.flying_horse.probability import pick_launch_multiplier


class ScriptedRNG:
    """Returns the given draws in order; running out is a test failure."""

    def __init__(self, *draws):
        self._draws = list(draws)

    def random(self):
        if not self._draws:
            raise AssertionError("RNG drawn more times than scripted")
        return self._draws.pop(0)

    @property
    def remaining(self):
        return len(self._draws)


class PinnedModulator(CycleModulator):
    """Advances like the real modulator but always reports the same luck."""

    def __init__(self, luck=1.0):
        super().__init__(initial_phase=0.0)
        self.luck = luck

    def advance_and_sample(self):
        super().advance_and_sample()
        return self.luck


# ============================================================
# Launch Phase
# ============================================================

class TestLaunchPhase(unittest.TestCase):

    def test_draw_at_hit_rate_loses(self):
        """A win needs draw < 0.40 strictly."""
        rng = ScriptedRNG(0.40)
        res = launch_outcome(1.0, rng)
        self.assertFalse(res.is_win)
        self.assertEqual(res.win_amount, 0.0)
        self.assertEqual(res.multiplier, 0.0)
        self.assertEqual(rng.remaining, 0, "loss must not draw a multiplier")

    def test_ladder_tiers(self):
        self.assertEqual(pick_launch_multiplier(0.0), 1.5)
        self.assertEqual(pick_launch_multiplier(0.49), 1.5)
        self.assertEqual(pick_launch_multiplier(0.79), 2.0)
        self.assertEqual(pick_launch_multiplier(0.94), 3.0)
        self.assertEqual(pick_launch_multiplier(0.999), 5.0)

    def test_boundary_draw_falls_to_next_tier(self):
        self.assertEqual(pick_launch_multiplier(0.5), 2.0)
        self.assertEqual(pick_launch_multiplier(0.8), 3.0)
        self.assertEqual(pick_launch_multiplier(0.95), 5.0)

    def test_win_amount_is_bet_times_multiplier(self):
        res = launch_outcome(4.0, ScriptedRNG(0.1, 0.85))
        self.assertTrue(res.is_win)
        self.assertEqual(res.multiplier, 3.0)
        self.assertEqual(res.win_amount, 12.0)

    def test_win_amount_has_no_float_noise(self):
        """0.2 × 1.5 is 0.30000000000000004 in binary floating point."""
        res = launch_outcome(0.2, ScriptedRNG(0.0, 0.0))
        self.assertEqual(res.win_amount, 0.3)

    def test_hit_rate_converges(self):
        """Win fraction over 100k launches sits at 0.40."""
        rng = random.Random(1234)
        n = 100_000
        wins = sum(1 for _ in range(n) if launch_outcome(1.0, rng).is_win)
        # 0.01 is ~6 standard errors at n=100k
        self.assertAlmostEqual(wins / n, 0.40, delta=0.01)

    def test_multiplier_distribution_converges(self):
        rng = random.Random(99)
        counts = {1.5: 0, 2.0: 0, 3.0: 0, 5.0: 0}
        wins = 0
        for _ in range(100_000):
            res = launch_outcome(1.0, rng)
            if res.is_win:
                wins += 1
                counts[res.multiplier] += 1
        expected = {1.5: 0.50, 2.0: 0.30, 3.0: 0.15, 5.0: 0.05}
        for mult, share in expected.items():
            self.assertAlmostEqual(counts[mult] / wins, share, delta=0.015,
                                   msg=f"{mult}x share off")


# ============================================================
# Cycle Modulator
# ============================================================

class TestCycleModulator(unittest.TestCase):

    def test_advance_steps_phase_and_counts(self):
        mod = CycleModulator(initial_phase=0.0)
        luck = mod.advance_and_sample()
        self.assertAlmostEqual(mod.cycle_phase, 0.2)
        self.assertEqual(mod.call_count, 1)
        self.assertAlmostEqual(luck, 1.0 + math.sin(0.2) * 0.2)

    def test_random_initial_phase_in_range(self):
        self.assertAlmostEqual(CycleModulator(rng=ScriptedRNG(0.5)).cycle_phase, math.pi)
        for seed in range(20):
            phase = CycleModulator(rng=random.Random(seed)).cycle_phase
            self.assertGreaterEqual(phase, 0.0)
            self.assertLess(phase, 2 * math.pi)

    def test_luck_factor_bounded(self):
        mod = CycleModulator(initial_phase=1.234)
        for _ in range(2000):
            luck = mod.advance_and_sample()
            self.assertGreaterEqual(luck, 0.8)
            self.assertLessEqual(luck, 1.2)

    def test_luck_factor_averages_to_one_over_a_cycle(self):
        mod = CycleModulator(initial_phase=0.7)
        samples = [mod.advance_and_sample() for _ in range(3142)]   # ~100 full turns
        self.assertAlmostEqual(sum(samples) / len(samples), 1.0, delta=0.001)

        # any contiguous ~2π window is close to 1.0 as well
        for start in (0, 13, 500, 3000):
            window = samples[start:start + 31]
            self.assertAlmostEqual(sum(window) / len(window), 1.0, delta=0.01)

    def test_deterministic_given_phase(self):
        a = CycleModulator(initial_phase=2.5)
        b = CycleModulator(initial_phase=2.5)
        self.assertEqual([a.advance_and_sample() for _ in range(50)],
                         [b.advance_and_sample() for _ in range(50)])

    def test_peek_does_not_advance(self):
        mod = CycleModulator(initial_phase=1.0)
        mod.peek()
        self.assertEqual(mod.call_count, 0)
        self.assertEqual(mod.cycle_phase, 1.0)


# ============================================================
# Shot Odds
# ============================================================

class TestShotOdds(unittest.TestCase):

    def test_reference_scenario_quantities(self):
        """rtp=0.96, M=10, hits=0, luck=1.0."""
        odds = shot_odds(0.96, 10, 0, 1.0)
        self.assertAlmostEqual(odds.small_win_chance, 0.45)
        self.assertAlmostEqual(odds.jackpot_rtp_contribution, 0.735)
        self.assertAlmostEqual(odds.jackpot_chance, 0.0735)
        self.assertAlmostEqual(odds.explode_risk, 0.02)
        self.assertAlmostEqual(odds.explode_threshold, 0.02)

    def test_jackpot_chance_falls_as_multiplier_rises(self):
        for luck in (0.8, 1.0, 1.2):
            low = shot_odds(0.96, 10, 2, luck).jackpot_chance
            high = shot_odds(0.96, 100, 2, luck).jackpot_chance
            self.assertLess(high, low)

    def test_explode_risk_rises_with_each_hit(self):
        risks = [shot_odds(0.96, 10, hits, 1.0).explode_risk for hits in range(10)]
        for a, b in zip(risks, risks[1:]):
            self.assertGreater(b, a)
            self.assertAlmostEqual(b - a, 0.015)

    def test_high_multiplier_base_risk(self):
        self.assertAlmostEqual(shot_odds(0.96, 49.99, 0, 1.0).explode_risk, 0.02)
        self.assertAlmostEqual(shot_odds(0.96, 50, 0, 1.0).explode_risk, 0.04)
        self.assertAlmostEqual(shot_odds(0.96, 200, 3, 1.0).explode_risk, 0.04 + 3 * 0.015)

    def test_jackpot_clamped_then_scaled_by_luck(self):
        # 0.73 / 1.0 clamps to 0.5, then × 1.2
        self.assertAlmostEqual(shot_odds(1.0, 1.0, 0, 1.2).jackpot_chance, 0.6)
        # negative contribution clamps to the floor, then × luck
        odds = shot_odds(0.2, 10, 0, 1.2)
        self.assertLess(odds.jackpot_rtp_contribution, 0)
        self.assertAlmostEqual(odds.jackpot_chance, 0.000001 * 1.2)

    def test_explode_threshold_deflated_by_luck(self):
        lucky = shot_odds(0.96, 10, 0, 1.2)
        unlucky = shot_odds(0.96, 10, 0, 0.8)
        self.assertAlmostEqual(lucky.explode_threshold, 0.02 / 1.2)
        self.assertAlmostEqual(unlucky.explode_threshold, 0.025)


# ============================================================
# Shot Classification
# ============================================================

class TestClassifyShot(unittest.TestCase):

    def setUp(self):
        self.odds = shot_odds(0.96, 10, 0, 1.0)

    def test_scenario_a_jackpot(self):
        rng = ScriptedRNG(0.05)
        self.assertIs(classify_shot(self.odds, rng), ShotOutcome.JACKPOT)
        self.assertEqual(rng.remaining, 0, "jackpot must use a single draw")

    def test_scenario_b_bad_explode(self):
        self.assertIs(classify_shot(self.odds, ScriptedRNG(0.5, 0.01)), ShotOutcome.BAD_EXPLODE)

    def test_scenario_c_small_win(self):
        self.assertIs(classify_shot(self.odds, ScriptedRNG(0.5, 0.3)), ShotOutcome.SMALL_WIN)

    def test_scenario_d_miss(self):
        self.assertIs(classify_shot(self.odds, ScriptedRNG(0.5, 0.9)), ShotOutcome.MISS)

    def test_boundary_draws_fall_to_next_branch(self):
        jackpot_edge = self.odds.jackpot_chance
        self.assertIsNot(classify_shot(self.odds, ScriptedRNG(jackpot_edge, 0.9)),
                         ShotOutcome.JACKPOT)
        self.assertIs(classify_shot(self.odds, ScriptedRNG(0.5, self.odds.explode_threshold)),
                      ShotOutcome.SMALL_WIN)
        self.assertIs(classify_shot(self.odds, ScriptedRNG(0.5, self.odds.small_win_chance)),
                      ShotOutcome.MISS)

    def test_explode_and_small_win_share_one_draw(self):
        """Non-jackpot shots consume exactly two draws in total."""
        for sub in (0.01, 0.3, 0.9):
            rng = ScriptedRNG(0.5, sub, 0.123)
            classify_shot(self.odds, rng)
            self.assertEqual(rng.remaining, 1)

    def test_unlucky_phase_amplifies_explode(self):
        sub_roll = 0.022   # above 0.02, below 0.025
        normal = shot_odds(0.96, 10, 0, 1.0)
        unlucky = shot_odds(0.96, 10, 0, 0.8)
        self.assertIs(classify_shot(normal, ScriptedRNG(0.9, sub_roll)), ShotOutcome.SMALL_WIN)
        self.assertIs(classify_shot(unlucky, ScriptedRNG(0.9, sub_roll)), ShotOutcome.BAD_EXPLODE)


# ============================================================
# Small Win Amount
# ============================================================

class TestSmallWinAmount(unittest.TestCase):

    def test_midpoint_draw_floors_to_exact_cents(self):
        """Non-bonus branch with draw 0.5 → 0.5x of 10.0 = 5.00."""
        self.assertEqual(small_win_amount(10.0, ScriptedRNG(0.5, 0.5)), 5.00)

    def test_bonus_branch(self):
        rng = ScriptedRNG(0.05)
        self.assertEqual(small_win_amount(10.0, rng), 15.0)
        self.assertEqual(rng.remaining, 0)

    def test_bonus_floor_uses_decimal_product(self):
        """0.6 × 1.5 is 0.8999... in binary; the payout is still 0.90."""
        self.assertEqual(small_win_amount(0.6, ScriptedRNG(0.0)), 0.9)

    def test_floors_rather_than_rounds(self):
        # mult = 0.2 + 0.0665 × 0.6 ≈ 0.2399 → 0.2399 of 1.00 floors to 0.23
        self.assertEqual(small_win_amount(1.0, ScriptedRNG(0.5, 0.0665)), 0.23)

    def test_draw_at_bonus_boundary_is_not_bonus(self):
        self.assertEqual(small_win_amount(10.0, ScriptedRNG(0.1, 0.0)), 2.0)

    def test_payout_range(self):
        rng = random.Random(5)
        for _ in range(5000):
            amount = small_win_amount(10.0, rng)
            self.assertTrue(amount == 15.0 or 2.0 <= amount < 8.0, amount)
            self.assertEqual(amount, round(amount, 2))


# ============================================================
# Outcome Engine
# ============================================================

class TestOutcomeEngine(unittest.TestCase):

    def test_scenario_a_through_engine(self):
        """Phase −0.2 advances to 0.0, where the luck factor is exactly 1.0."""
        engine = OutcomeEngine(target_rtp=0.96, rng=ScriptedRNG(0.05),
                               modulator=CycleModulator(initial_phase=-0.2))
        shot = engine.shoot_outcome(10, 0)
        self.assertEqual(shot.luck_factor, 1.0)
        self.assertIs(shot.outcome, ShotOutcome.JACKPOT)
        self.assertAlmostEqual(shot.odds.jackpot_chance, 0.0735)

    def test_identical_inputs_identical_decisions(self):
        engine = OutcomeEngine(rng=ScriptedRNG(0.5, 0.3, 0.5, 0.3),
                               modulator=PinnedModulator(1.0))
        first = engine.shoot_outcome(25, 1)
        second = engine.shoot_outcome(25, 1)
        self.assertEqual(first.outcome, second.outcome)
        self.assertEqual(first.odds, second.odds)

    def test_shoot_always_advances_cycle(self):
        mod = CycleModulator(initial_phase=0.0)
        engine = OutcomeEngine(rng=random.Random(3), modulator=mod)
        for i in range(1, 6):
            engine.shoot_outcome(5, 0)
            self.assertEqual(mod.call_count, i)
            self.assertAlmostEqual(mod.cycle_phase, 0.2 * i)

    def test_launch_and_small_win_leave_cycle_alone(self):
        mod = CycleModulator(initial_phase=1.0)
        engine = OutcomeEngine(rng=random.Random(3), modulator=mod)
        for _ in range(10):
            engine.launch_outcome(1.0)
            engine.small_win_amount(1.0)
        self.assertEqual(mod.call_count, 0)
        self.assertEqual(mod.cycle_phase, 1.0)

    def test_set_target_rtp_applies_to_next_shot_only(self):
        engine = OutcomeEngine(target_rtp=0.96, rng=ScriptedRNG(0.9, 0.9, 0.9, 0.9),
                               modulator=PinnedModulator(1.0))
        before = engine.shoot_outcome(10, 0)
        engine.set_target_rtp(0.5)
        after = engine.shoot_outcome(10, 0)
        self.assertAlmostEqual(before.odds.jackpot_rtp_contribution, 0.735)
        self.assertAlmostEqual(after.odds.jackpot_rtp_contribution, 0.275)
        self.assertEqual(engine.target_rtp, 0.5)

    def test_rejects_bad_bets(self):
        engine = OutcomeEngine(rng=random.Random(1))
        for bad in (0, -1.0, float("nan"), float("inf"), "1.0", None, True):
            with self.assertRaises(OutcomeContractError, msg=repr(bad)):
                engine.launch_outcome(bad)
            with self.assertRaises(OutcomeContractError, msg=repr(bad)):
                engine.small_win_amount(bad)

    def test_rejects_bad_shot_inputs_without_advancing(self):
        mod = CycleModulator(initial_phase=0.0)
        engine = OutcomeEngine(rng=random.Random(1), modulator=mod)
        for mult in (0, 0.99, -5, float("nan")):
            with self.assertRaises(OutcomeContractError):
                engine.shoot_outcome(mult, 0)
        for hits in (-1, 1.5, True, "2"):
            with self.assertRaises(OutcomeContractError):
                engine.shoot_outcome(10, hits)
        self.assertEqual(mod.call_count, 0)

    def test_rejects_bad_rtp(self):
        with self.assertRaises(OutcomeContractError):
            OutcomeEngine(target_rtp=0)
        engine = OutcomeEngine(target_rtp=0.96)
        for bad in (0, -0.1, 1.01, float("nan")):
            with self.assertRaises(OutcomeContractError):
                engine.set_target_rtp(bad)
        self.assertEqual(engine.target_rtp, 0.96)

    def test_contract_error_is_value_error(self):
        self.assertTrue(issubclass(OutcomeContractError, ValueError))

    def test_default_rng_is_os_backed(self):
        engine = OutcomeEngine()
        self.assertIsInstance(engine._rng, random.SystemRandom)

    def test_snapshot(self):
        engine = OutcomeEngine(target_rtp=0.9, rng=random.Random(2),
                               modulator=CycleModulator(initial_phase=6.2))
        engine.shoot_outcome(3, 0)
        snap = engine.snapshot()
        self.assertEqual(snap["target_rtp"], 0.9)
        self.assertEqual(snap["call_count"], 1)
        self.assertAlmostEqual(snap["cycle_phase"], 6.4 - 2 * math.pi, delta=1e-5)

    def test_shot_result_to_dict(self):
        engine = OutcomeEngine(rng=ScriptedRNG(0.5, 0.9), modulator=PinnedModulator(1.0))
        data = engine.shoot_outcome(10, 0).to_dict()
        self.assertEqual(data["outcome"], "MISS")
        self.assertIn("jackpot_chance", data["odds"])


# ============================================================
# Main
# ============================================================

if __name__ == "__main__":
    # Configure logging to suppress noise during tests
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
