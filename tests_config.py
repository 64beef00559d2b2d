#!/usr/bin/env python3
"""
Tests for game configuration and the admin boundary

Validates:
1.  GameConfig defaults come from config.settings
2.  bet_list is sorted, de-duplicated and strictly positive
3.  multiplier_ladder is strictly increasing and ≥ 1
4.  target_rtp is bounded to (0, 1]
5.  Admin RTP updates limited to 0.5–1.0
6.  Admin bet lists need ≥ 5 distinct positive entries
7.  ladder_range filters auto-play tiers
8.  validate_config warnings
9.  AdminConfigService applies changes atomically and fans RTP out to sessions
"""

import sys
import threading
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from config.game_schema import (
    ConfigError, GameConfig, default_config, ladder_range,
    validate_bet_list, validate_config, validate_rtp_update,
)
from config.settings import GameDefaults, _float_list
from tools.admin_config import AdminConfigService
from tools.session_registry import SessionRegistry


class TestSettings(unittest.TestCase):

    def test_float_list_parsing(self):
        self.assertEqual(_float_list("1, 2.5,,3"), [1.0, 2.5, 3.0])
        self.assertEqual(_float_list(""), [])

    def test_defaults_match_shipped_game(self):
        self.assertEqual(GameDefaults.RTP_MIN, 0.5)
        self.assertEqual(GameDefaults.RTP_MAX, 1.0)
        self.assertEqual(GameDefaults.MIN_BET_OPTIONS, 5)
        self.assertGreaterEqual(len(GameDefaults.BET_LIST), 5)


class TestGameConfig(unittest.TestCase):

    def test_default_config(self):
        cfg = default_config()
        self.assertEqual(cfg.target_rtp, GameDefaults.TARGET_RTP)
        self.assertEqual(cfg.bet_list, sorted(GameDefaults.BET_LIST))
        self.assertEqual(cfg.multiplier_ladder, GameDefaults.MULTIPLIER_LADDER)

    def test_bet_list_sorted_and_deduplicated(self):
        cfg = GameConfig(bet_list=[5, 1, 2, 1, 10, 3])
        self.assertEqual(cfg.bet_list, [1, 2, 3, 5, 10])

    def test_bet_list_rejects_non_positive(self):
        with self.assertRaises(ValidationError):
            GameConfig(bet_list=[1, 2, 0, 4, 5])
        with self.assertRaises(ValidationError):
            GameConfig(bet_list=[])

    def test_ladder_must_increase(self):
        with self.assertRaises(ValidationError):
            GameConfig(multiplier_ladder=[2, 5, 5, 10])
        with self.assertRaises(ValidationError):
            GameConfig(multiplier_ladder=[0.5, 2, 5])

    def test_rtp_bounds(self):
        self.assertEqual(GameConfig(target_rtp=1.0).target_rtp, 1.0)
        for bad in (0, -0.5, 1.01):
            with self.assertRaises(ValidationError):
                GameConfig(target_rtp=bad)

    def test_validation_error_is_value_error(self):
        self.assertTrue(issubclass(ValidationError, ValueError))

    def test_allows_bet(self):
        cfg = GameConfig(bet_list=[0.2, 0.4, 1.0, 2.0, 5.0])
        self.assertTrue(cfg.allows_bet(0.2))
        self.assertTrue(cfg.allows_bet(0.1 + 0.1))
        self.assertFalse(cfg.allows_bet(0.3))

    def test_config_hash_tracks_math_fields(self):
        a = GameConfig()
        self.assertEqual(a.config_hash, GameConfig().config_hash)
        self.assertEqual(len(a.config_hash), 16)
        self.assertNotEqual(a.config_hash, GameConfig(target_rtp=0.9).config_hash)


class TestAdminValidation(unittest.TestCase):

    def test_rtp_update_range(self):
        self.assertEqual(validate_rtp_update(0.5), 0.5)
        self.assertEqual(validate_rtp_update(1), 1.0)
        for bad in (0.49, 1.01, "0.9", None, True):
            with self.assertRaises(ConfigError):
                validate_rtp_update(bad)

    def test_bet_list_update(self):
        self.assertEqual(validate_bet_list([5, 4, 3, 2, 1]), [1.0, 2.0, 3.0, 4.0, 5.0])
        with self.assertRaises(ConfigError):
            validate_bet_list([1, 2, 3, 4])
        with self.assertRaises(ConfigError):
            validate_bet_list([1, 2, 3, 4, -5])
        with self.assertRaises(ConfigError):
            validate_bet_list("1,2,3,4,5")

    def test_bet_list_counts_distinct_amounts(self):
        with self.assertRaises(ConfigError):
            validate_bet_list([1, 1, 1, 1, 1])
        with self.assertRaises(ConfigError):
            validate_bet_list([1, 2, 2.0, 3, 4])
        self.assertEqual(validate_bet_list([3, 1, 2, 1, 4, 5]), [1.0, 2.0, 3.0, 4.0, 5.0])

    def test_config_error_is_value_error(self):
        self.assertTrue(issubclass(ConfigError, ValueError))

    def test_ladder_range(self):
        cfg = default_config()
        self.assertEqual(ladder_range(cfg, 5, 100), [5, 10, 25, 50, 100])
        self.assertEqual(ladder_range(cfg, 3, 4), [])
        with self.assertRaises(ConfigError):
            ladder_range(cfg, 10, 5)

    def test_validate_config_warnings(self):
        self.assertEqual(validate_config(default_config()), [])
        warnings = validate_config(GameConfig(target_rtp=0.3, bet_list=[1, 2],
                                              default_bet=7.0, multiplier_ladder=[]))
        self.assertEqual(len(warnings), 4)
        self.assertTrue(any("RTP" in w for w in warnings))
        self.assertTrue(any("Default bet" in w for w in warnings))


class TestAdminConfigService(unittest.TestCase):

    def setUp(self):
        self.registry = SessionRegistry(target_rtp=0.96)
        self.admin = AdminConfigService(self.registry, GameConfig(target_rtp=0.96))

    def test_rtp_update_reaches_live_and_new_sessions(self):
        live = self.registry.open("p1")
        self.admin.update_config(target_rtp=0.9)
        self.assertEqual(self.admin.get_config().target_rtp, 0.9)
        self.assertEqual(live.target_rtp, 0.9)
        self.assertEqual(self.registry.open("p2").target_rtp, 0.9)

    def test_bet_list_update_sorted(self):
        cfg = self.admin.update_config(bet_list=[50, 10, 5, 2, 1])
        self.assertEqual(cfg.bet_list, [1, 2, 5, 10, 50])
        self.assertEqual(cfg.target_rtp, 0.96)

    def test_rejected_update_changes_nothing(self):
        live = self.registry.open("p1")
        before = self.admin.get_config()
        with self.assertRaises(ConfigError):
            self.admin.update_config(bet_list=[1, 2, 3, 4, 5], target_rtp=1.5)
        self.assertEqual(self.admin.get_config(), before)
        self.assertEqual(live.target_rtp, 0.96)

    def test_duplicate_bets_rejected_before_apply(self):
        before = self.admin.get_config()
        with self.assertRaises(ConfigError):
            self.admin.update_config(bet_list=[1, 1, 1, 1, 1])
        self.assertIs(self.admin.get_config(), before)
        self.assertGreaterEqual(len(self.admin.get_config().bet_list), 5)

    def test_concurrent_rtp_updates_leave_engines_on_stored_rtp(self):
        live = self.registry.open("p1")
        fan_out = self.registry.apply_target_rtp
        racers = []

        def fan_out_with_racer(rtp):
            # A second update starts while the first is about to fan out.
            if not racers:
                racer = threading.Thread(target=self.admin.update_config,
                                         kwargs={"target_rtp": 0.8})
                racers.append(racer)
                racer.start()
                racer.join(timeout=0.2)
            return fan_out(rtp)

        self.registry.apply_target_rtp = fan_out_with_racer
        self.admin.update_config(target_rtp=0.9)
        racers[0].join()

        self.assertEqual(self.admin.get_config().target_rtp, 0.8)
        self.assertEqual(live.target_rtp, self.admin.get_config().target_rtp)
        self.assertEqual(self.registry.target_rtp, 0.8)

    def test_empty_update_is_noop(self):
        before = self.admin.get_config()
        self.assertIs(self.admin.update_config(), before)

    def test_initial_config_rtp_pushed_to_registry(self):
        registry = SessionRegistry(target_rtp=0.96)
        AdminConfigService(registry, GameConfig(target_rtp=0.8))
        self.assertEqual(registry.target_rtp, 0.8)
        self.assertEqual(registry.open("x").target_rtp, 0.8)


if __name__ == "__main__":
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
