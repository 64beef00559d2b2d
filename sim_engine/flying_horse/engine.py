"""
FLYING HORSE — Outcome Engine

The only object a wager service talks to. Owns the session's cycle
modulator and the active target RTP; performs no I/O and knows nothing
about rounds, balances or storage.

Usage:
    from sim_engine.flying_horse import OutcomeEngine, ShotOutcome

    engine = OutcomeEngine(target_rtp=0.96)
    launch = engine.launch_outcome(2.0)
    if launch.is_win:
        shot = engine.shoot_outcome(current_multiplier=10, pinata_hits=0)
        if shot.outcome is ShotOutcome.JACKPOT:
            payout = 2.0 * 10                    # caller computes jackpot payout
        elif shot.outcome is ShotOutcome.SMALL_WIN:
            payout = engine.small_win_amount(2.0)
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Optional

from sim_engine.flying_horse.cycle import CycleModulator
from sim_engine.flying_horse.errors import OutcomeContractError
from sim_engine.flying_horse.probability import (
    LaunchResult, ShotOdds, ShotOutcome,
    classify_shot, launch_outcome, shot_odds, small_win_amount,
)

logger = logging.getLogger("flyinghorse.engine")

DEFAULT_TARGET_RTP = 0.96


@dataclass(frozen=True)
class ShotResult:
    outcome: ShotOutcome
    luck_factor: float
    odds: ShotOdds

    def to_dict(self) -> dict:
        return {"outcome": self.outcome.value, "odds": self.odds.to_dict()}


def _require_finite(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise OutcomeContractError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise OutcomeContractError(f"{name} must be finite, got {value!r}")
    return float(value)


def _check_bet(bet_amount) -> float:
    bet = _require_finite("bet_amount", bet_amount)
    if bet <= 0:
        raise OutcomeContractError(f"bet_amount must be positive, got {bet_amount!r}")
    return bet


def _check_rtp(rtp) -> float:
    value = _require_finite("target_rtp", rtp)
    if not 0 < value <= 1:
        raise OutcomeContractError(f"target_rtp must be in (0, 1], got {rtp!r}")
    return value


class OutcomeEngine:
    """Server-side outcome engine for one player session."""

    def __init__(self, target_rtp: float = DEFAULT_TARGET_RTP, rng=None,
                 modulator: Optional[CycleModulator] = None):
        """
        Args:
            target_rtp: Long-run return fraction, in (0, 1].
            rng: Uniform [0, 1) source with ``random()``. Defaults to the OS CSPRNG.
            modulator: Pre-built cycle modulator; a fresh one with a random
                starting phase is created when omitted.
        """
        self._target_rtp = _check_rtp(target_rtp)
        self._rng = rng or random.SystemRandom()
        self._modulator = modulator or CycleModulator(rng=self._rng)

    @property
    def target_rtp(self) -> float:
        return self._target_rtp

    @property
    def modulator(self) -> CycleModulator:
        return self._modulator

    def set_target_rtp(self, rtp: float) -> None:
        """Hot-update the RTP; applies from the next shoot call on."""
        value = _check_rtp(rtp)
        old, self._target_rtp = self._target_rtp, value
        logger.info(f"Target RTP updated {old:.4f} -> {value:.4f}")

    # ── Round phases ─────────────────────────────────────────

    def launch_outcome(self, bet_amount: float) -> LaunchResult:
        return launch_outcome(_check_bet(bet_amount), self._rng)

    def shoot_outcome(self, current_multiplier: float, pinata_hits: int) -> ShotResult:
        """Classify one shot against the accrued multiplier.

        Always advances the cycle phase, even if the caller discards the result.
        """
        mult = _require_finite("current_multiplier", current_multiplier)
        if mult < 1:
            raise OutcomeContractError(
                f"current_multiplier must be >= 1, got {current_multiplier!r}")
        if isinstance(pinata_hits, bool) or not isinstance(pinata_hits, int) or pinata_hits < 0:
            raise OutcomeContractError(
                f"pinata_hits must be a non-negative integer, got {pinata_hits!r}")

        luck = self._modulator.advance_and_sample()
        odds = shot_odds(self._target_rtp, mult, pinata_hits, luck)
        outcome = classify_shot(odds, self._rng)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"shot #{self._modulator.call_count} mult={mult} hits={pinata_hits} "
                f"luck={luck:.4f} jackpot_p={odds.jackpot_chance:.6f} -> {outcome.value}"
            )
        return ShotResult(outcome=outcome, luck_factor=luck, odds=odds)

    def small_win_amount(self, bet_amount: float) -> float:
        return small_win_amount(_check_bet(bet_amount), self._rng)

    # ── Diagnostics ──────────────────────────────────────────

    def snapshot(self) -> dict:
        return {
            "target_rtp": self._target_rtp,
            "cycle_phase": round(self._modulator.cycle_phase % (2 * math.pi), 6),
            "call_count": self._modulator.call_count,
        }
