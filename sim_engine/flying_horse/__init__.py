"""
FLYING HORSE — Server-side outcome engine

Two-phase wager math: a launch (win/lose plus multiplier) followed by
zero or more shots against the accrued multiplier, each ending in a
jackpot, small win, bad explode or miss.

Usage:
    from sim_engine.flying_horse import OutcomeEngine
    engine = OutcomeEngine(target_rtp=0.96)
    result = engine.launch_outcome(1.0)
    shot = engine.shoot_outcome(current_multiplier=result.multiplier or 1.5, pinata_hits=0)
"""

from sim_engine.flying_horse.cycle import CycleModulator
from sim_engine.flying_horse.engine import DEFAULT_TARGET_RTP, OutcomeEngine, ShotResult
from sim_engine.flying_horse.errors import OutcomeContractError
from sim_engine.flying_horse.probability import (
    LaunchResult, ShotOdds, ShotOutcome,
    classify_shot, launch_outcome, shot_odds, small_win_amount,
)

__all__ = [
    "CycleModulator",
    "DEFAULT_TARGET_RTP",
    "LaunchResult",
    "OutcomeContractError",
    "OutcomeEngine",
    "ShotOdds",
    "ShotOutcome",
    "ShotResult",
    "classify_shot",
    "launch_outcome",
    "shot_odds",
    "small_win_amount",
]
