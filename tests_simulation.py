#!/usr/bin/env python3
"""
Tests for the RTP simulator and CLI

Validates:
1.  Analytic launch return is 0.82 and the true small-win mean is 0.6
2.  Exact per-shot outcome probabilities sum to 1
3.  FastRNG is deterministic and uniform
4.  Launch simulation converges on the analytic return
5.  Shoot simulation converges on the analytic return for the luck path it saw
6.  CLI config/launch/shoot commands
"""

import contextlib
import io
import json
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sim_engine.flying_horse import ShotOutcome, shot_odds
from tools.rtp_simulator import (
    FastRNG, RTPSimulator, TallyRNG, _analyze_streaks, _chi_squared_uniformity,
    expected_shot_return, mean_small_win_fraction, outcome_probabilities,
    theoretical_launch_rtp,
)


class TestAnalytic(unittest.TestCase):

    def test_launch_rtp(self):
        self.assertAlmostEqual(theoretical_launch_rtp(), 0.82)

    def test_small_win_mean(self):
        """Above the 0.5 the jackpot sizing assumes."""
        self.assertAlmostEqual(mean_small_win_fraction(), 0.6)

    def test_reference_scenario_probabilities(self):
        p = outcome_probabilities(shot_odds(0.96, 10, 0, 1.0))
        self.assertAlmostEqual(sum(p.values()), 1.0)
        self.assertAlmostEqual(p[ShotOutcome.JACKPOT], 0.0735)
        self.assertAlmostEqual(p[ShotOutcome.BAD_EXPLODE], 0.9265 * 0.02)
        self.assertAlmostEqual(p[ShotOutcome.SMALL_WIN], 0.9265 * 0.43)
        self.assertAlmostEqual(p[ShotOutcome.MISS], 0.9265 * 0.55)

    def test_explode_threshold_above_small_win_leaves_no_small_wins(self):
        p = outcome_probabilities(shot_odds(0.96, 100, 40, 0.8))
        self.assertEqual(p[ShotOutcome.SMALL_WIN], 0.0)
        self.assertAlmostEqual(sum(p.values()), 1.0)

    def test_expected_shot_return(self):
        odds = shot_odds(0.96, 10, 0, 1.0)
        self.assertAlmostEqual(expected_shot_return(odds, 10),
                               0.735 + 0.9265 * 0.43 * 0.6)


class TestFastRNG(unittest.TestCase):

    def test_deterministic(self):
        a, b = FastRNG(7), FastRNG(7)
        self.assertEqual([a.random() for _ in range(100)], [b.random() for _ in range(100)])
        self.assertNotEqual(FastRNG(7).random(), FastRNG(8).random())

    def test_range_and_uniformity(self):
        rng = FastRNG(123)
        for _ in range(10_000):
            x = rng.random()
            self.assertGreaterEqual(x, 0.0)
            self.assertLess(x, 1.0)
        tally = TallyRNG(FastRNG(1041))
        for _ in range(100_000):
            tally.random()
        self.assertEqual(tally.draws, 100_000)
        chi2, ok = _chi_squared_uniformity(tally.bins)
        self.assertTrue(ok, f"chi²={chi2}")

    def test_chi_squared_flags_skewed_draws(self):
        chi2, ok = _chi_squared_uniformity([1000] + [0] * 99)
        self.assertFalse(ok)
        self.assertEqual(_chi_squared_uniformity([0] * 100), (0.0, True))

    def test_streaks(self):
        s = _analyze_streaks([0, 0, 1.5, 2, 0, 0, 0, 3])
        self.assertEqual(s["max_loss_streak"], 3)
        self.assertEqual(s["max_win_streak"], 2)
        self.assertEqual(s["total_wins"], 3)
        self.assertEqual(_analyze_streaks([]), {})


class TestRTPSimulator(unittest.TestCase):

    def test_launch_converges(self):
        result = RTPSimulator(seed=42, tolerance=0.03).simulate_launch(n_rounds=100_000)
        self.assertTrue(result.rtp_pass, result.summary())
        self.assertAlmostEqual(result.measured_hit_frequency, 0.40, delta=0.01)
        self.assertEqual(set(result.distribution), {"0x", "1.5x", "2x", "3x", "5x"})
        self.assertAlmostEqual(result.distribution["0x"], 60.0, delta=1.0)

    def test_shoot_converges(self):
        result = RTPSimulator(seed=7, tolerance=0.06).simulate_shoot(
            current_multiplier=10, pinata_hits=0, n_rounds=100_000)
        self.assertTrue(result.rtp_pass, result.summary())
        self.assertEqual(result.target_rtp, 0.96)
        self.assertEqual(set(result.distribution),
                         {"JACKPOT", "SMALL_WIN", "BAD_EXPLODE", "MISS"})

    def test_uniformity_covers_the_draws_the_run_used(self):
        # one draw per launch, plus the tier draw on every win
        result = RTPSimulator(seed=3).simulate_launch(n_rounds=5_000)
        wins = round(result.measured_hit_frequency * result.n_rounds)
        self.assertEqual(result.rng_draws, 5_000 + wins)
        self.assertEqual(result.to_dict()["uniformity"]["draws"], result.rng_draws)

        longer = RTPSimulator(seed=3).simulate_launch(n_rounds=10_000)
        self.assertNotEqual(longer.chi_squared, result.chi_squared)

    def test_same_seed_same_result(self):
        a = RTPSimulator(seed=5).simulate_shoot(current_multiplier=25, n_rounds=2_000)
        b = RTPSimulator(seed=5).simulate_shoot(current_multiplier=25, n_rounds=2_000)
        self.assertEqual(a.measured_rtp, b.measured_rtp)
        self.assertEqual(a.distribution, b.distribution)

    def test_rejects_empty_runs(self):
        sim = RTPSimulator()
        with self.assertRaises(ValueError):
            sim.simulate_launch(n_rounds=0)
        with self.assertRaises(ValueError):
            sim.simulate_shoot(bet=0)

    def test_report_formats(self):
        result = RTPSimulator(seed=1).simulate_shoot(current_multiplier=5, n_rounds=1_000)
        self.assertIn("Monte Carlo: SHOOT", result.summary())
        self.assertIn("Target RTP", result.summary())
        data = result.to_dict()
        self.assertEqual(data["phase"], "shoot")
        self.assertEqual(data["parameters"]["current_multiplier"], 5)
        json.dumps(data)


class TestCLI(unittest.TestCase):

    def _run(self, *argv):
        from tools.horse_cli import main
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def test_config_dump(self):
        code, out = self._run("config")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["target_rtp"], 0.96)

    def test_launch_json(self):
        code, out = self._run("launch", "--rounds", "2000", "--json", "--tolerance", "1")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["phase"], "launch")

    def test_shoot_json(self):
        code, out = self._run("shoot", "--rounds", "500", "--multiplier", "50",
                              "--hits", "2", "--json", "--tolerance", "100")
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["parameters"]["pinata_hits"], 2)


if __name__ == "__main__":
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
