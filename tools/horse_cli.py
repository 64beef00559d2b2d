#!/usr/bin/env python3
"""
FLYING HORSE — Outcome Engine CLI

Usage:
    python -m tools.horse_cli config
    python -m tools.horse_cli launch --rounds 200000
    python -m tools.horse_cli shoot --multiplier 10 --hits 0 --rtp 0.96
    python -m tools.horse_cli shoot --multiplier 100 --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.game_schema import default_config, validate_config
from config.settings import GameDefaults
from tools.rtp_simulator import RTPSimulator, SimulationResult

console = Console()


def _print_result(result: SimulationResult):
    status = "[green]PASS[/green]" if result.rtp_pass else "[red]FAIL[/red]"
    lines = [
        f"Rounds: {result.n_rounds:,}",
        f"Theoretical return: {result.theoretical_rtp*100:.4f}%",
        f"Measured return:    {result.measured_rtp*100:.4f}%",
        f"Delta: {result.rtp_delta*100:.4f}% (±{result.tolerance*100:.1f}%) {status}",
        f"Hit frequency: {result.measured_hit_frequency*100:.2f}%",
        f"RNG chi²: {result.chi_squared:.1f} "
        f"({'ok' if result.chi_squared_pass else 'suspicious'})",
    ]
    if result.target_rtp:
        lines.insert(1, f"Configured RTP: {result.target_rtp*100:.2f}%")
    console.print(Panel("\n".join(lines), title=f"{result.phase.upper()} simulation",
                        border_style="cyan"))

    table = Table()
    table.add_column("Outcome", style="cyan")
    table.add_column("Share %", justify="right")
    for name, pct in result.distribution.items():
        table.add_row(name, f"{pct:.2f}")
    console.print(table)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Flying Horse outcome engine tools")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("config", help="Dump the default game config")

    p_launch = sub.add_parser("launch", help="Simulate launch phase")
    p_shoot = sub.add_parser("shoot", help="Simulate shoot phase")
    for p in (p_launch, p_shoot):
        p.add_argument("--rounds", type=int, default=100_000)
        p.add_argument("--bet", type=float, default=1.0)
        p.add_argument("--seed", type=int, default=42)
        p.add_argument("--tolerance", type=float, default=0.01)
        p.add_argument("--json", action="store_true", help="Print raw JSON result")
    p_shoot.add_argument("--multiplier", type=float, default=10.0)
    p_shoot.add_argument("--hits", type=int, default=0)
    p_shoot.add_argument("--rtp", type=float, default=GameDefaults.TARGET_RTP)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, GameDefaults.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "config":
        cfg = default_config()
        print(cfg.model_dump_json(indent=2))
        warnings = validate_config(cfg)
        if warnings:
            print("\n⚠️  Warnings:")
            for w in warnings:
                print(f"  - {w}")
        return 0

    sim = RTPSimulator(seed=args.seed, tolerance=args.tolerance)
    if args.command == "launch":
        result = sim.simulate_launch(n_rounds=args.rounds, bet=args.bet)
    else:
        result = sim.simulate_shoot(current_multiplier=args.multiplier,
                                    pinata_hits=args.hits, n_rounds=args.rounds,
                                    bet=args.bet, target_rtp=args.rtp)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)
    return 0 if result.rtp_pass else 1


if __name__ == "__main__":
    sys.exit(main())
