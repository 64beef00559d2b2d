"""
Flying Horse - Runtime Defaults

Values read once from the environment (``.env`` supported). The admin
service may replace RTP and bet list at runtime; these are only the
starting point and the bounds it enforces.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent


def _float_list(raw: str) -> list[float]:
    return [float(x) for x in raw.split(",") if x.strip()]


# ============================================================
# GAME DEFAULTS
#
#   FH_TARGET_RTP          starting RTP fraction (0.96)
#   FH_BET_LIST            comma-separated bet amounts
#   FH_MULTIPLIER_LADDER   comma-separated shoot-phase tiers
#   FH_DEFAULT_BALANCE     balance for newly registered players
#   FH_LOG_LEVEL           root log level for the CLI
# ============================================================

class GameDefaults:

    TARGET_RTP = float(os.getenv("FH_TARGET_RTP", "0.96"))

    BET_LIST = _float_list(os.getenv(
        "FH_BET_LIST",
        "0.20,0.40,0.60,0.80,1.00,1.20,1.40,1.60,1.80,2.00,"
        "3.00,4.00,5.00,6.00,7.00,8.00,9.00,10.00,"
        "15.00,20.00,25.00,30.00,35.00,40.00,45.00,50.00",
    ))

    MULTIPLIER_LADDER = _float_list(os.getenv(
        "FH_MULTIPLIER_LADDER", "2,5,10,25,50,100,200,500,1000,10000",
    ))

    DEFAULT_BALANCE = float(os.getenv("FH_DEFAULT_BALANCE", "5000"))

    LOG_LEVEL = os.getenv("FH_LOG_LEVEL", "INFO").upper()

    # --- Admin bounds ---
    RTP_MIN = 0.5
    RTP_MAX = 1.0
    MIN_BET_OPTIONS = 5
