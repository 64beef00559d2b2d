"""
FLYING HORSE — Probability Model

Pure outcome math for both round phases. Every function takes its
randomness from an injected ``rng`` exposing ``random() -> float in [0, 1)``
(``random.Random``, ``random.SystemRandom`` or ``tools.rtp_simulator.FastRNG``),
so tests can script the draws and simulations can seed them.

Launch phase:
    P(win) = 0.40, multiplier ladder 1.5x / 2x / 3x / 5x at 50 / 30 / 15 / 5 %.

Shoot phase (per shot, luck factor L from the cycle modulator):
    small_win_chance = 0.45 × L
    jackpot_chance   = clamp((rtp − small_win_chance × 0.5) / M, 1e-6, 0.5) × L
    explode_risk     = (0.04 if M ≥ 50 else 0.02) + hits × 0.015
    roll    < jackpot_chance            → JACKPOT
    subRoll < explode_risk / L          → BAD_EXPLODE
    subRoll < small_win_chance          → SMALL_WIN
    otherwise                           → MISS

The explode and small-win checks share ``subRoll``. Splitting them into
independent draws changes the payout distribution.

The 0.5 in the jackpot contribution term stands in for the mean small-win
payout, which is really 0.1 × 1.5 + 0.9 × 0.5 = 0.6 of the bet. The model is
tuned approximately, not RTP-exact; see ``tools.rtp_simulator``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sim_engine.flying_horse.money import floor_cents, to_cents


# ═══════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════

LAUNCH_HIT_RATE = 0.40

# (cumulative upper bound, multiplier) — first bound strictly above the draw wins
LAUNCH_LADDER: tuple[tuple[float, float], ...] = (
    (0.50, 1.5),
    (0.80, 2.0),
    (0.95, 3.0),
    (1.00, 5.0),
)

SMALL_WIN_BASE_CHANCE = 0.45
SMALL_WIN_PAYOUT_WEIGHT = 0.5      # assumed mean small-win payout per unit bet
JACKPOT_CHANCE_FLOOR = 0.000001
JACKPOT_CHANCE_CEILING = 0.5

BASE_EXPLODE_RISK = 0.02
HIGH_MULT_EXPLODE_RISK = 0.04
HIGH_MULT_THRESHOLD = 50
EXPLODE_RISK_PER_HIT = 0.015

SMALL_WIN_BONUS_CHANCE = 0.1
SMALL_WIN_BONUS_MULT = 1.5
SMALL_WIN_MIN_MULT = 0.2
SMALL_WIN_MULT_SPAN = 0.6


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

class ShotOutcome(str, Enum):
    JACKPOT = "JACKPOT"
    SMALL_WIN = "SMALL_WIN"
    BAD_EXPLODE = "BAD_EXPLODE"
    MISS = "MISS"


@dataclass(frozen=True)
class LaunchResult:
    is_win: bool
    win_amount: float
    multiplier: float      # 0.0 on a loss

    def to_dict(self) -> dict:
        return {
            "is_win": self.is_win,
            "win_amount": self.win_amount,
            "multiplier": self.multiplier,
        }


@dataclass(frozen=True)
class ShotOdds:
    """Intermediate quantities for one shot, before any draw."""
    luck_factor: float
    small_win_chance: float
    jackpot_rtp_contribution: float
    jackpot_chance: float
    explode_risk: float

    @property
    def explode_threshold(self) -> float:
        """Explode risk deflated by luck: suppressed when lucky, amplified when not."""
        return self.explode_risk / self.luck_factor

    def to_dict(self) -> dict:
        return {
            "luck_factor": round(self.luck_factor, 6),
            "small_win_chance": round(self.small_win_chance, 6),
            "jackpot_rtp_contribution": round(self.jackpot_rtp_contribution, 6),
            "jackpot_chance": round(self.jackpot_chance, 8),
            "explode_risk": round(self.explode_risk, 6),
            "explode_threshold": round(self.explode_threshold, 6),
        }


# ═══════════════════════════════════════════════════════════════
# Launch Phase
# ═══════════════════════════════════════════════════════════════

def pick_launch_multiplier(draw: float) -> float:
    """Map a uniform draw onto the launch ladder (a draw on a boundary falls to the next tier)."""
    for bound, mult in LAUNCH_LADDER:
        if draw < bound:
            return mult
    return LAUNCH_LADDER[-1][1]


def launch_outcome(bet_amount: float, rng) -> LaunchResult:
    """Decide a launch: one draw for win/lose, a second for the multiplier on a win."""
    if not rng.random() < LAUNCH_HIT_RATE:
        return LaunchResult(is_win=False, win_amount=0.0, multiplier=0.0)

    mult = pick_launch_multiplier(rng.random())
    return LaunchResult(is_win=True, win_amount=to_cents(bet_amount * mult), multiplier=mult)


# ═══════════════════════════════════════════════════════════════
# Shoot Phase
# ═══════════════════════════════════════════════════════════════

def base_explode_risk(current_multiplier: float) -> float:
    if current_multiplier >= HIGH_MULT_THRESHOLD:
        return HIGH_MULT_EXPLODE_RISK
    return BASE_EXPLODE_RISK


def shot_odds(target_rtp: float, current_multiplier: float,
              pinata_hits: int, luck_factor: float) -> ShotOdds:
    """Compute the per-shot probabilities for a given luck factor."""
    small_win_chance = SMALL_WIN_BASE_CHANCE * luck_factor
    contribution = target_rtp - small_win_chance * SMALL_WIN_PAYOUT_WEIGHT

    jackpot_chance = contribution / current_multiplier
    jackpot_chance = max(JACKPOT_CHANCE_FLOOR, min(JACKPOT_CHANCE_CEILING, jackpot_chance))
    jackpot_chance *= luck_factor

    explode_risk = base_explode_risk(current_multiplier) + pinata_hits * EXPLODE_RISK_PER_HIT

    return ShotOdds(
        luck_factor=luck_factor,
        small_win_chance=small_win_chance,
        jackpot_rtp_contribution=contribution,
        jackpot_chance=jackpot_chance,
        explode_risk=explode_risk,
    )


def classify_shot(odds: ShotOdds, rng) -> ShotOutcome:
    """Resolve a shot. Draws once for the jackpot, then at most once more."""
    roll = rng.random()
    if roll < odds.jackpot_chance:
        return ShotOutcome.JACKPOT

    sub_roll = rng.random()
    if sub_roll < odds.explode_threshold:
        return ShotOutcome.BAD_EXPLODE
    if sub_roll < odds.small_win_chance:
        return ShotOutcome.SMALL_WIN
    return ShotOutcome.MISS


# ═══════════════════════════════════════════════════════════════
# Small Win Payout
# ═══════════════════════════════════════════════════════════════

def small_win_amount(bet_amount: float, rng) -> float:
    """Small-win payout, floored to the cent.

    10% of the time 1.5x the bet, otherwise a uniform 0.2x–0.8x of it.

    The floor applies to the decimal product of the bet and multiplier
    (see ``money.floor_cents``), so a 0.60 bet on the 1.5x branch pays
    0.90. Flooring the binary float product ``0.6 * 1.5`` would give 0.89.
    """
    if rng.random() < SMALL_WIN_BONUS_CHANCE:
        return floor_cents(bet_amount, SMALL_WIN_BONUS_MULT)
    mult = SMALL_WIN_MIN_MULT + rng.random() * SMALL_WIN_MULT_SPAN
    return floor_cents(bet_amount, mult)
