"""FLYING HORSE — Cycle Modulator.

Slow sine oscillator that perturbs shoot-phase odds between 0.8x and 1.2x.
Only the starting phase is random; every later value is fixed by the
number of shots taken. Averaged over a full turn the factor is 1.0.
"""
from __future__ import annotations

import math
import random
from typing import Optional

PHASE_STEP = 0.2
LUCK_AMPLITUDE = 0.2
FULL_CYCLE = 2 * math.pi


class CycleModulator:
    """Per-session luck oscillator. Not thread-safe: one instance per session."""

    def __init__(self, initial_phase: Optional[float] = None, rng=None):
        if initial_phase is None:
            rng = rng or random.SystemRandom()
            initial_phase = rng.random() * FULL_CYCLE
        self._phase = float(initial_phase)
        self._calls = 0

    @property
    def cycle_phase(self) -> float:
        return self._phase

    @property
    def call_count(self) -> int:
        return self._calls

    def peek(self) -> float:
        """Luck factor at the current phase, without advancing."""
        return 1.0 + math.sin(self._phase) * LUCK_AMPLITUDE

    def advance_and_sample(self) -> float:
        """Step the phase by 0.2 rad and return the luck factor there."""
        self._calls += 1
        # sine is periodic; no wraparound needed
        self._phase += PHASE_STEP
        return self.peek()
