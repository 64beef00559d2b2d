"""
FLYING HORSE — Wager Service

Reference caller of the outcome engine. Validates the bet, debits it,
asks the player's engine session for the outcome, turns the outcome kind
into a payout and keeps a round ledger. Balances and records live in
memory; a deployment swaps this ledger for its own storage.

Usage:
    from tools.session_registry import SessionRegistry
    from tools.admin_config import AdminConfigService
    from tools.wager_service import WagerService

    registry = SessionRegistry()
    admin = AdminConfigService(registry)
    wagers = WagerService(registry, admin)
    wagers.register_player("p1", balance=5000)
    rec = wagers.launch("p1", 1.0)
    if rec.result == "win":
        wagers.shoot("p1", 1.0, current_multiplier=rec.multiplier,
                     pinata_hits=0, round_id=rec.round_id)
"""

from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

from config.settings import GameDefaults
from sim_engine.flying_horse import ShotOutcome
from sim_engine.flying_horse.money import to_cents
from tools.admin_config import AdminConfigService
from tools.session_registry import SessionRegistry

logger = logging.getLogger("flyinghorse.wager")


class WagerError(ValueError):
    """Player-facing wager rejection (maps to HTTP 400/404 upstream)."""


class InvalidBetError(WagerError):
    pass


class InsufficientBalanceError(WagerError):
    pass


class UnknownPlayerError(WagerError):
    pass


@dataclass
class RoundRecord:
    record_id: int
    round_id: str
    player_id: str
    bet_amount: float
    multiplier: float
    win_amount: float
    bal_after: float
    game_phase: str         # "launch" | "shoot"
    result: str             # win | lose | jackpot | small_win | bad_explode | miss
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return asdict(self)


def _new_round_id() -> str:
    return uuid.uuid4().hex[:8]


def _rate_pct(won: float, wagered: float) -> float:
    return round(won / wagered * 100, 2) if wagered > 0 else 0


def _utc_day(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).date().isoformat()


class WagerService:

    def __init__(self, registry: SessionRegistry, admin: AdminConfigService):
        self._registry = registry
        self._admin = admin
        self._balances: dict[str, float] = {}
        self._records: list[RoundRecord] = []
        self._lock = threading.Lock()

    # ── Wallet ───────────────────────────────────────────────

    def register_player(self, player_id: str, balance: Optional[float] = None) -> float:
        start = GameDefaults.DEFAULT_BALANCE if balance is None else balance
        if start < 0:
            raise WagerError(f"Starting balance cannot be negative: {start}")
        with self._lock:
            self._balances.setdefault(player_id, to_cents(start))
            return self._balances[player_id]

    def balance(self, player_id: str) -> float:
        with self._lock:
            return self._balance_locked(player_id)

    def adjust_balance(self, player_id: str, amount: float, reason: str = "") -> dict:
        """Admin credit/debit. The balance can never go negative."""
        with self._lock:
            previous = self._balance_locked(player_id)
            new_balance = to_cents(previous + amount)
            if new_balance < 0:
                raise WagerError("Balance cannot be negative")
            self._balances[player_id] = new_balance
        logger.info(f"[Admin] Balance adjust: player={player_id} amount={amount} "
                    f"reason={reason or 'N/A'} newBal={new_balance}")
        return {"player_id": player_id, "previous_balance": previous,
                "adjustment": amount, "new_balance": new_balance}

    def _balance_locked(self, player_id: str) -> float:
        try:
            return self._balances[player_id]
        except KeyError:
            raise UnknownPlayerError(f"Player not found: {player_id}") from None

    def _check_bet_locked(self, player_id: str, bet_amount: float) -> float:
        if not self._admin.get_config().allows_bet(bet_amount):
            raise InvalidBetError(f"Invalid bet amount: {bet_amount}")
        balance = self._balance_locked(player_id)
        if balance < bet_amount:
            raise InsufficientBalanceError(
                f"Insufficient balance: {balance} < {bet_amount}")
        return balance

    def _record_locked(self, **fields) -> RoundRecord:
        rec = RoundRecord(record_id=len(self._records) + 1, **fields)
        self._records.append(rec)
        return rec

    # ── Round phases ─────────────────────────────────────────

    def launch(self, player_id: str, bet_amount: float) -> RoundRecord:
        self.balance(player_id)  # unknown players never get an engine session
        engine = self._registry.open(player_id)
        with self._lock:
            balance = self._check_bet_locked(player_id, bet_amount)
            result = engine.launch_outcome(bet_amount)
            final = to_cents(balance - bet_amount + result.win_amount)
            self._balances[player_id] = final
            rec = self._record_locked(
                round_id=_new_round_id(), player_id=player_id,
                bet_amount=bet_amount, multiplier=result.multiplier,
                win_amount=result.win_amount, bal_after=final,
                game_phase="launch", result="win" if result.is_win else "lose",
            )
        logger.debug(f"launch player={player_id} round={rec.round_id} "
                     f"bet={bet_amount} -> {rec.result} x{rec.multiplier}")
        return rec

    def shoot(self, player_id: str, bet_amount: float, current_multiplier: float,
              pinata_hits: int, round_id: Optional[str] = None) -> RoundRecord:
        self.balance(player_id)  # unknown players never get an engine session
        engine = self._registry.open(player_id)
        with self._lock:
            balance = self._check_bet_locked(player_id, bet_amount)
            shot = engine.shoot_outcome(current_multiplier, pinata_hits)

            win_amount = 0.0
            if shot.outcome is ShotOutcome.JACKPOT:
                win_amount = to_cents(bet_amount * current_multiplier)
            elif shot.outcome is ShotOutcome.SMALL_WIN:
                win_amount = engine.small_win_amount(bet_amount)

            final = to_cents(balance - bet_amount + win_amount)
            self._balances[player_id] = final
            rec = self._record_locked(
                round_id=round_id or _new_round_id(), player_id=player_id,
                bet_amount=bet_amount, multiplier=current_multiplier,
                win_amount=win_amount, bal_after=final,
                game_phase="shoot", result=shot.outcome.value.lower(),
            )
        if shot.outcome is ShotOutcome.JACKPOT:
            logger.info(f"JACKPOT player={player_id} round={rec.round_id} "
                        f"bet={bet_amount} x{current_multiplier} = {win_amount}")
        return rec

    # ── Reporting ────────────────────────────────────────────

    def history(self, player_id: str, page: int = 1, limit: int = 50) -> dict:
        page = max(1, page)
        limit = max(1, limit)
        with self._lock:
            mine = [r for r in reversed(self._records) if r.player_id == player_id]
        start = (page - 1) * limit
        return {
            "records": [r.to_dict() for r in mine[start:start + limit]],
            "pagination": {
                "page": page, "limit": limit, "total": len(mine),
                "total_pages": math.ceil(len(mine) / limit),
            },
        }

    def player_stats(self, player_id: str) -> dict:
        with self._lock:
            mine = [r for r in self._records if r.player_id == player_id]
        wagered = sum(r.bet_amount for r in mine)
        won = sum(r.win_amount for r in mine)
        return {
            "total_bets": len(mine),
            "total_wagered": round(wagered, 2),
            "total_won": round(won, 2),
            "net_profit": round(won - wagered, 2),
            "jackpots": sum(1 for r in mine if r.result == "jackpot"),
            "biggest_win": round(max((r.win_amount for r in mine), default=0), 2),
            "player_rtp": _rate_pct(won, wagered),
        }

    def house_report(self) -> dict:
        with self._lock:
            records = list(self._records)
            players = len(self._balances)
        wagered = sum(r.bet_amount for r in records)
        paid = sum(r.win_amount for r in records)
        return {
            "total_players": players,
            "total_bets": len(records),
            "total_wagered": round(wagered, 2),
            "total_paid": round(paid, 2),
            "house_profit": round(wagered - paid, 2),
            "actual_rtp": _rate_pct(paid, wagered),
            "jackpots": sum(1 for r in records if r.result == "jackpot"),
            "active_sessions": len(self._registry.active_sessions()),
            "daily_report": self.daily_report(),
        }

    def daily_report(self, days: int = 7, now: Optional[float] = None) -> list[dict]:
        """Per-day (UTC) totals for the last ``days`` days, newest first."""
        cutoff = (time.time() if now is None else now) - days * 86400
        with self._lock:
            recent = [r for r in self._records if r.created_at >= cutoff]

        by_day: dict[str, list[RoundRecord]] = defaultdict(list)
        for r in recent:
            by_day[_utc_day(r.created_at)].append(r)

        report = []
        for day in sorted(by_day, reverse=True):
            wagered = sum(r.bet_amount for r in by_day[day])
            paid = sum(r.win_amount for r in by_day[day])
            report.append({
                "date": day,
                "bets": len(by_day[day]),
                "wagered": round(wagered, 2),
                "paid": round(paid, 2),
                "profit": round(wagered - paid, 2),
            })
        return report
