"""
FLYING HORSE — Game Configuration Schema

Typed configuration shared by the engine, the admin service and the
wager service: target RTP, allowed bets and the shoot-phase multiplier
ladder.

Usage:
    from config.game_schema import GameConfig, default_config, validate_config
    config = default_config()
    config = config.model_copy(update={"target_rtp": 0.95})
    print(config.model_dump_json(indent=2))
"""

from __future__ import annotations

import hashlib
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from config.settings import GameDefaults


class ConfigError(ValueError):
    """Rejected configuration change at the admin boundary."""


# ═══════════════════════════════════════════════════════════════
# Main Config Model
# ═══════════════════════════════════════════════════════════════

class GameConfig(BaseModel):
    """Active game configuration."""
    target_rtp: float = Field(GameDefaults.TARGET_RTP, gt=0.0, le=1.0)
    bet_list: list[float] = Field(default_factory=lambda: list(GameDefaults.BET_LIST))
    multiplier_ladder: list[float] = Field(
        default_factory=lambda: list(GameDefaults.MULTIPLIER_LADDER)
    )
    default_bet: Optional[float] = None

    @field_validator("bet_list")
    @classmethod
    def sort_bets(cls, v: list[float]) -> list[float]:
        if not v:
            raise ValueError("bet_list must not be empty")
        if any(b <= 0 for b in v):
            raise ValueError(f"bet_list entries must be positive: {v}")
        return sorted(set(v))

    @field_validator("multiplier_ladder")
    @classmethod
    def check_ladder(cls, v: list[float]) -> list[float]:
        if any(m < 1 for m in v):
            raise ValueError(f"multiplier_ladder tiers must be >= 1: {v}")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError(f"multiplier_ladder must be strictly increasing: {v}")
        return v

    @property
    def config_hash(self) -> str:
        """Short SHA-256 of the math-relevant fields, for audit logs."""
        data = self.model_dump_json(include={"target_rtp", "bet_list"})
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    def allows_bet(self, amount: float) -> bool:
        return any(abs(amount - b) < 1e-9 for b in self.bet_list)


# ═══════════════════════════════════════════════════════════════
# Admin Boundary Validation
# ═══════════════════════════════════════════════════════════════

def validate_rtp_update(rtp) -> float:
    if isinstance(rtp, bool) or not isinstance(rtp, (int, float)):
        raise ConfigError(f"RTP must be a number, got {rtp!r}")
    if not GameDefaults.RTP_MIN <= rtp <= GameDefaults.RTP_MAX:
        raise ConfigError(
            f"RTP must be {GameDefaults.RTP_MIN}-{GameDefaults.RTP_MAX}, got {rtp}")
    return float(rtp)


def validate_bet_list(bets) -> list[float]:
    """Sorted, de-duplicated bet list with at least MIN_BET_OPTIONS distinct amounts."""
    if not isinstance(bets, (list, tuple)):
        raise ConfigError(f"betList must be a list, got {type(bets).__name__}")
    for b in bets:
        if isinstance(b, bool) or not isinstance(b, (int, float)) or b <= 0:
            raise ConfigError(f"betList entries must be positive numbers, got {b!r}")
    distinct = sorted({float(b) for b in bets})
    if len(distinct) < GameDefaults.MIN_BET_OPTIONS:
        raise ConfigError(
            f"betList must have at least {GameDefaults.MIN_BET_OPTIONS} distinct items, "
            f"got {len(distinct)}")
    return distinct


def ladder_range(config: GameConfig, lo: float, hi: float) -> list[float]:
    """Ladder tiers inside an auto-play range, inclusive."""
    if lo > hi:
        raise ConfigError(f"Empty ladder range: {lo} > {hi}")
    return [m for m in config.multiplier_ladder if lo <= m <= hi]


def default_config() -> GameConfig:
    return GameConfig()


def validate_config(config: GameConfig) -> list[str]:
    """Run sanity checks on a config and return list of warnings."""
    warnings = []

    if config.target_rtp < GameDefaults.RTP_MIN or config.target_rtp > GameDefaults.RTP_MAX:
        warnings.append(
            f"RTP {config.target_rtp} outside admin range "
            f"{GameDefaults.RTP_MIN}-{GameDefaults.RTP_MAX}")
    elif config.target_rtp > 0.98:
        warnings.append(f"RTP {config.target_rtp} leaves a house edge under 2%")

    if len(config.bet_list) < GameDefaults.MIN_BET_OPTIONS:
        warnings.append(
            f"Only {len(config.bet_list)} bet options; admin requires "
            f"{GameDefaults.MIN_BET_OPTIONS}")

    if config.default_bet is not None and not config.allows_bet(config.default_bet):
        warnings.append(f"Default bet {config.default_bet} not in bet_list {config.bet_list}")

    if not config.multiplier_ladder:
        warnings.append("multiplier_ladder is empty; auto-play ranges will match nothing")

    return warnings


if __name__ == "__main__":
    cfg = default_config()
    warnings = validate_config(cfg)

    print(cfg.model_dump_json(indent=2))
    if warnings:
        print("\n⚠️  Warnings:")
        for w in warnings:
            print(f"  - {w}")
    else:
        print(f"\n✅ Config valid | hash={cfg.config_hash}")
