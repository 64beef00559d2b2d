"""
FLYING HORSE — Session Registry

One OutcomeEngine per player session. Each engine owns its own cycle
phase, so one player's shots never advance another player's luck. The
registry lock only guards the session map; engines themselves are used
by a single request context at a time.

Usage:
    from tools.session_registry import SessionRegistry
    registry = SessionRegistry(target_rtp=0.96)
    engine = registry.open("player-1")
    ...
    registry.close("player-1")
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from sim_engine.flying_horse import DEFAULT_TARGET_RTP, OutcomeEngine

logger = logging.getLogger("flyinghorse.sessions")


class SessionRegistry:

    def __init__(self, target_rtp: float = DEFAULT_TARGET_RTP,
                 engine_factory: Optional[Callable[[float], OutcomeEngine]] = None):
        """
        Args:
            target_rtp: RTP handed to every new engine.
            engine_factory: Builds an engine for a given RTP (tests inject seeded RNGs here).
        """
        self._target_rtp = target_rtp
        self._factory = engine_factory or (lambda rtp: OutcomeEngine(target_rtp=rtp))
        self._engines: dict[str, OutcomeEngine] = {}
        self._lock = threading.Lock()

    @property
    def target_rtp(self) -> float:
        return self._target_rtp

    def open(self, session_id: str) -> OutcomeEngine:
        """Return the session's engine, creating it on first use."""
        with self._lock:
            engine = self._engines.get(session_id)
            if engine is None:
                engine = self._factory(self._target_rtp)
                self._engines[session_id] = engine
                logger.info(f"Opened engine session {session_id}")
            return engine

    def get(self, session_id: str) -> Optional[OutcomeEngine]:
        with self._lock:
            return self._engines.get(session_id)

    def close(self, session_id: str) -> bool:
        with self._lock:
            engine = self._engines.pop(session_id, None)
        if engine is None:
            return False
        logger.info(f"Closed engine session {session_id} after "
                    f"{engine.modulator.call_count} shots")
        return True

    def active_sessions(self) -> list[str]:
        with self._lock:
            return sorted(self._engines)

    def apply_target_rtp(self, rtp: float) -> int:
        """Push an RTP hot-update into every live engine. Returns the count updated."""
        with self._lock:
            self._target_rtp = rtp
            engines = list(self._engines.values())
        for engine in engines:
            engine.set_target_rtp(rtp)
        return len(engines)
