"""
FLYING HORSE — RTP Simulator

Monte Carlo audit of the outcome engine. Plays N launches or N shots
through the real engine code with a seeded RNG and reports:
  • Measured return per unit bet vs. the analytic expectation
  • Hit frequency and outcome distribution
  • Win/loss streaks
  • Chi-squared uniformity of the draws the run consumed

The shoot-phase model reserves 0.5 × bet per small win when sizing the
jackpot odds, while the true small-win mean is 0.6 × bet. The analytic
figures here use the true mean, so the gap to ``target_rtp`` is visible.

Usage:
    from tools.rtp_simulator import RTPSimulator
    sim = RTPSimulator(seed=42)
    print(sim.simulate_launch(n_rounds=200_000).summary())
    print(sim.simulate_shoot(current_multiplier=10, n_rounds=200_000).summary())
"""

from __future__ import annotations

import hashlib
import logging
import statistics
import time
from collections import Counter
from dataclasses import dataclass, field
from itertools import groupby

from sim_engine.flying_horse import CycleModulator, OutcomeEngine, ShotOdds, ShotOutcome
from sim_engine.flying_horse.cycle import FULL_CYCLE
from sim_engine.flying_horse.money import to_cents
from sim_engine.flying_horse.probability import (
    LAUNCH_HIT_RATE, LAUNCH_LADDER,
    SMALL_WIN_BONUS_CHANCE, SMALL_WIN_BONUS_MULT, SMALL_WIN_MIN_MULT, SMALL_WIN_MULT_SPAN,
)

logger = logging.getLogger("flyinghorse.sim")


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class SimulationResult:
    """Results from a Monte Carlo simulation run."""
    phase: str                        # "launch" | "shoot"
    n_rounds: int
    theoretical_rtp: float
    measured_rtp: float
    rtp_delta: float
    rtp_pass: bool
    tolerance: float = 0.01
    target_rtp: float = 0.0           # configured RTP (shoot phase only)

    measured_std_dev: float = 0.0
    measured_hit_frequency: float = 0.0
    measured_max_win: float = 0.0

    distribution: dict = field(default_factory=dict)
    streak_analysis: dict = field(default_factory=dict)
    # Over every RNG draw the run consumed
    rng_draws: int = 0
    chi_squared: float = 0.0
    chi_squared_pass: bool = True

    duration_seconds: float = 0.0
    parameters: dict = field(default_factory=dict)
    seed: str = ""

    def summary(self) -> str:
        rows = [("Rounds", f"{self.n_rounds:,}")]
        if self.target_rtp:
            rows.append(("Target RTP", f"{self.target_rtp*100:.2f}%"))
        rows += [
            ("Theoretical", f"{self.theoretical_rtp*100:.4f}%"),
            ("Measured", f"{self.measured_rtp*100:.4f}%"),
            ("Delta", f"{self.rtp_delta*100:.4f}%  (±{self.tolerance*100:.1f}%) "
                      f"{'✅ PASS' if self.rtp_pass else '❌ FAIL'}"),
            ("Std Dev", f"{self.measured_std_dev:.4f}"),
            ("Hit Freq", f"{self.measured_hit_frequency*100:.2f}%"),
            ("Max Win", f"{self.measured_max_win:.2f}x bet"),
            ("RNG Draws", f"{self.rng_draws:,}  chi²={self.chi_squared:.1f}"),
        ]
        if self.streak_analysis:
            rows.append(("Streaks", f"win {self.streak_analysis['max_win_streak']} / "
                                    f"loss {self.streak_analysis['max_loss_streak']}"))
        rows.append(("Duration", f"{self.duration_seconds:.2f}s"))
        body = [f"  {label + ':':<13}{value}" for label, value in rows]
        return "\n".join([f"═══ Monte Carlo: {self.phase.upper()} ═══", *body])

    def to_dict(self) -> dict:
        return {
            "phase": self.phase,
            "n_rounds": self.n_rounds,
            "target_rtp_pct": round(self.target_rtp * 100, 4),
            "theoretical_rtp_pct": round(self.theoretical_rtp * 100, 4),
            "measured_rtp_pct": round(self.measured_rtp * 100, 4),
            "rtp_delta_pct": round(self.rtp_delta * 100, 4),
            "rtp_pass": self.rtp_pass,
            "tolerance_pct": self.tolerance * 100,
            "volatility": {
                "std_dev": round(self.measured_std_dev, 4),
                "hit_frequency_pct": round(self.measured_hit_frequency * 100, 2),
                "max_win_mult": round(self.measured_max_win, 2),
            },
            "distribution": self.distribution,
            "streak_analysis": self.streak_analysis,
            "uniformity": {
                "draws": self.rng_draws,
                "chi_squared": round(self.chi_squared, 4),
                "pass": self.chi_squared_pass,
            },
            "duration_s": round(self.duration_seconds, 2),
            "parameters": self.parameters,
            "seed": self.seed,
        }


# ═══════════════════════════════════════════════════════════════
# Fast RNG
# ═══════════════════════════════════════════════════════════════
# Simulations need reproducibility, not unpredictability.

class FastRNG:
    """Splitmix64 PRNG — fast, deterministic, good distribution."""

    def __init__(self, seed: int = 0):
        self.state = seed & 0xFFFFFFFFFFFFFFFF

    def _next(self) -> int:
        self.state = (self.state + 0x9E3779B97F4A7C15) & 0xFFFFFFFFFFFFFFFF
        z = self.state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & 0xFFFFFFFFFFFFFFFF
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & 0xFFFFFFFFFFFFFFFF
        return (z ^ (z >> 31)) & 0xFFFFFFFFFFFFFFFF

    def random(self) -> float:
        """Float in [0, 1)."""
        return self._next() / (1 << 64)


# ═══════════════════════════════════════════════════════════════
# Analytic Expectations
# ═══════════════════════════════════════════════════════════════

def theoretical_launch_rtp() -> float:
    """Expected launch return per unit bet: 0.40 × Σ P(tier) × mult = 0.82."""
    total, lower = 0.0, 0.0
    for bound, mult in LAUNCH_LADDER:
        total += (bound - lower) * mult
        lower = bound
    return LAUNCH_HIT_RATE * total


def mean_small_win_fraction() -> float:
    """True mean small-win payout per unit bet (0.6), ignoring cent flooring."""
    uniform_mean = SMALL_WIN_MIN_MULT + SMALL_WIN_MULT_SPAN / 2
    return (SMALL_WIN_BONUS_CHANCE * SMALL_WIN_BONUS_MULT
            + (1 - SMALL_WIN_BONUS_CHANCE) * uniform_mean)


def outcome_probabilities(odds: ShotOdds) -> dict[ShotOutcome, float]:
    """Exact per-shot outcome probabilities for fixed odds."""
    p_jackpot = min(1.0, odds.jackpot_chance)
    explode_band = min(1.0, odds.explode_threshold)
    small_band = max(0.0, min(1.0, odds.small_win_chance) - explode_band)
    rest = 1.0 - p_jackpot
    return {
        ShotOutcome.JACKPOT: p_jackpot,
        ShotOutcome.BAD_EXPLODE: rest * explode_band,
        ShotOutcome.SMALL_WIN: rest * small_band,
        ShotOutcome.MISS: rest * (1.0 - explode_band - small_band),
    }


def expected_shot_return(odds: ShotOdds, current_multiplier: float) -> float:
    """Expected payout per unit bet for one shot at fixed luck."""
    p = outcome_probabilities(odds)
    return (p[ShotOutcome.JACKPOT] * current_multiplier
            + p[ShotOutcome.SMALL_WIN] * mean_small_win_fraction())


# ═══════════════════════════════════════════════════════════════
# Streak & Distribution Analysis
# ═══════════════════════════════════════════════════════════════

def _analyze_streaks(returns: list[float]) -> dict:
    """Longest paying and non-paying runs in a list of per-bet returns."""
    if not returns:
        return {}
    runs = [(paid, sum(1 for _ in run)) for paid, run in groupby(r > 0 for r in returns)]
    wins = sum(1 for r in returns if r > 0)
    return {
        "max_win_streak": max((n for paid, n in runs if paid), default=0),
        "max_loss_streak": max((n for paid, n in runs if not paid), default=0),
        "total_wins": wins,
        "total_losses": len(returns) - wins,
    }


UNIFORMITY_BINS = 100
CHI2_CRITICAL_99DF = 135.8      # α = 0.01


class TallyRNG:
    """Passes draws through from ``rng`` and bins every one it hands out."""

    def __init__(self, rng):
        self._rng = rng
        self.bins = [0] * UNIFORMITY_BINS

    @property
    def draws(self) -> int:
        return sum(self.bins)

    def random(self) -> float:
        x = self._rng.random()
        self.bins[min(int(x * UNIFORMITY_BINS), UNIFORMITY_BINS - 1)] += 1
        return x


def _chi_squared_uniformity(bins: list[int]) -> tuple[float, bool]:
    """Chi-squared statistic of binned draws against a flat distribution."""
    n = sum(bins)
    if not n:
        return 0.0, True
    expected = n / len(bins)
    chi2 = sum((obs - expected) ** 2 / expected for obs in bins)
    return chi2, chi2 < CHI2_CRITICAL_99DF


def _percentages(counts: Counter, n: int) -> dict:
    return {str(k): round(v / n * 100, 2) for k, v in sorted(counts.items(), key=lambda kv: str(kv[0]))}


# ═══════════════════════════════════════════════════════════════
# Simulator
# ═══════════════════════════════════════════════════════════════

class RTPSimulator:
    """Plays the outcome engine many times and measures its return."""

    def __init__(self, seed: int = 42, tolerance: float = 0.01):
        """
        Args:
            seed: Base seed for reproducibility
            tolerance: Maximum allowed |measured − theoretical| return per unit bet
        """
        self.base_seed = seed
        self.tolerance = tolerance

    def _rng(self, phase: str) -> TallyRNG:
        h = int(hashlib.md5(f"{self.base_seed}:{phase}".encode()).hexdigest()[:8], 16)
        return TallyRNG(FastRNG(h))

    def _result(self, phase: str, rng: TallyRNG, returns: list[float], theoretical: float,
                distribution: dict, duration: float, params: dict,
                target_rtp: float = 0.0) -> SimulationResult:
        n = len(returns)
        measured = sum(returns) / n if n else 0.0
        delta = abs(measured - theoretical)
        chi2, chi_pass = _chi_squared_uniformity(rng.bins)
        result = SimulationResult(
            phase=phase,
            n_rounds=n,
            theoretical_rtp=theoretical,
            measured_rtp=measured,
            rtp_delta=delta,
            rtp_pass=delta <= self.tolerance,
            tolerance=self.tolerance,
            target_rtp=target_rtp,
            measured_std_dev=statistics.pstdev(returns) if n > 1 else 0.0,
            measured_hit_frequency=sum(1 for r in returns if r > 0) / n if n else 0.0,
            measured_max_win=max(returns, default=0.0),
            distribution=distribution,
            streak_analysis=_analyze_streaks(returns),
            rng_draws=rng.draws,
            chi_squared=chi2,
            chi_squared_pass=chi_pass,
            duration_seconds=duration,
            parameters=params,
            seed=f"{self.base_seed}:{phase}",
        )
        logger.info(f"{phase} simulation: {n:,} rounds, measured={measured:.4f} "
                    f"theoretical={theoretical:.4f} pass={result.rtp_pass}")
        return result

    def simulate_launch(self, n_rounds: int = 100_000, bet: float = 1.0) -> SimulationResult:
        if n_rounds <= 0 or bet <= 0:
            raise ValueError("n_rounds and bet must be positive")
        rng = self._rng("launch")
        engine = OutcomeEngine(rng=rng, modulator=CycleModulator(initial_phase=0.0))

        t0 = time.time()
        returns = []
        tiers = Counter()
        for _ in range(n_rounds):
            res = engine.launch_outcome(bet)
            returns.append(res.win_amount / bet)
            tiers[f"{res.multiplier:g}x"] += 1
        duration = time.time() - t0

        return self._result("launch", rng, returns, theoretical_launch_rtp(),
                            _percentages(tiers, n_rounds), duration, {"bet": bet})

    def simulate_shoot(self, current_multiplier: float = 10.0, pinata_hits: int = 0,
                       n_rounds: int = 100_000, bet: float = 1.0,
                       target_rtp: float = 0.96) -> SimulationResult:
        """Fire ``n_rounds`` independent shots at a fixed multiplier and hit count."""
        if n_rounds <= 0 or bet <= 0:
            raise ValueError("n_rounds and bet must be positive")
        rng = self._rng("shoot")
        modulator = CycleModulator(initial_phase=rng.random() * FULL_CYCLE)
        engine = OutcomeEngine(target_rtp=target_rtp, rng=rng, modulator=modulator)

        t0 = time.time()
        returns = []
        expected = 0.0
        outcomes = Counter()
        for _ in range(n_rounds):
            shot = engine.shoot_outcome(current_multiplier, pinata_hits)
            expected += expected_shot_return(shot.odds, current_multiplier)
            outcomes[shot.outcome.value] += 1
            if shot.outcome is ShotOutcome.JACKPOT:
                win = to_cents(bet * current_multiplier)
            elif shot.outcome is ShotOutcome.SMALL_WIN:
                win = engine.small_win_amount(bet)
            else:
                win = 0.0
            returns.append(win / bet)
        duration = time.time() - t0

        params = {"current_multiplier": current_multiplier,
                  "pinata_hits": pinata_hits, "bet": bet}
        return self._result("shoot", rng, returns, expected / n_rounds,
                            _percentages(outcomes, n_rounds), duration, params,
                            target_rtp=target_rtp)
