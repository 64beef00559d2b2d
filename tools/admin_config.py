"""
FLYING HORSE — Admin Config Service

Administrative side of the game configuration. Validates a change in
full before applying any of it, then fans an RTP change out to every
live engine session.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from config.game_schema import (
    GameConfig, default_config, validate_bet_list, validate_rtp_update,
)
from tools.session_registry import SessionRegistry

logger = logging.getLogger("flyinghorse.admin")


class AdminConfigService:

    def __init__(self, registry: SessionRegistry, config: Optional[GameConfig] = None):
        self._registry = registry
        self._config = config or default_config()
        self._lock = threading.Lock()
        if self._registry.target_rtp != self._config.target_rtp:
            self._registry.apply_target_rtp(self._config.target_rtp)

    def get_config(self) -> GameConfig:
        return self._config

    def update_config(self, bet_list: Optional[list] = None,
                      target_rtp: Optional[float] = None) -> GameConfig:
        """Apply a bet list and/or RTP change. Raises ConfigError, leaving config untouched."""
        update = {}
        if bet_list is not None:
            update["bet_list"] = validate_bet_list(bet_list)
        if target_rtp is not None:
            update["target_rtp"] = validate_rtp_update(target_rtp)
        if not update:
            return self._config

        # Live engines must end on the stored RTP: swap and fan-out share the lock.
        with self._lock:
            old = self._config
            new = GameConfig.model_validate({**old.model_dump(), **update})
            self._config = new
            if "target_rtp" in update and update["target_rtp"] != old.target_rtp:
                n = self._registry.apply_target_rtp(update["target_rtp"])
                logger.info(f"[Admin] RTP {old.target_rtp} -> {update['target_rtp']} "
                            f"({n} live sessions)")
        if "bet_list" in update:
            logger.info(f"[Admin] Bet list updated: {len(update['bet_list'])} options, "
                        f"{update['bet_list'][0]}-{update['bet_list'][-1]}")
        return new
