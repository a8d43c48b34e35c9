#!/usr/bin/env python3
"""
Audit simulation for the reel engine.

Plays headless rounds through the same session engine the server uses
(spin, settle, evaluate, instant collect) under a simulated clock and
writes a one-row summary CSV.

Usage:
    python -m scripts.audit_sim --rounds 100000 --seed AUDIT_2025 --out out/audit.csv
    python -m scripts.audit_sim --rounds 20000 --seed AUDIT_2025 --stake 80 --manual-stop --out out/audit_80.csv
"""
import argparse
import csv
import hashlib
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from explosion_hot.config import settings
from explosion_hot.config_hash import get_config_hash
from explosion_hot.logic.engine import GameEngine, SessionObserver
from explosion_hot.logic.models import EvaluationResult, GamePhase, SoundCue
from explosion_hot.logic.rng import SeededRNG
from explosion_hot.telemetry import TelemetryService

# Simulated frame length; the tween runner catches up over large steps
TICK_MS = 250
# A round that has not settled after this many ticks is a stuck engine
MAX_TICKS_PER_ROUND = 1000


class NullTelemetrySink:
    """Drop telemetry; a simulation would otherwise log every round."""

    def emit(self, event_name, data) -> None:
        pass


class SimClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: float = 0.0):
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@dataclass
class SimulationStats:
    """Statistics accumulated during simulation."""
    total_wagered: int = 0
    total_won: int = 0
    rounds: int = 0
    wins: int = 0
    line_hits: int = 0
    jackpot_hits: int = 0
    bonus_sounds: int = 0
    faults: int = 0
    max_win: int = 0
    win_x_values: list[float] = field(default_factory=list)


class StatsObserver(SessionObserver):
    """Remember the most recent evaluation."""

    def __init__(self):
        self.last: EvaluationResult | None = None

    def on_win_resolved(self, result: EvaluationResult, cue: SoundCue | None) -> None:
        self.last = result


def get_timestamp_iso() -> str:
    """Get ISO 8601 UTC timestamp."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def seed_to_int(seed_str: str) -> int:
    """Convert string seed to integer deterministically."""
    return int(hashlib.sha256(seed_str.encode()).hexdigest(), 16) % (2**31)


def run_simulation(
    rounds: int,
    seed_str: str,
    stake: int,
    manual_stop: bool = False,
    verbose: bool = False,
) -> SimulationStats:
    """
    Play ``rounds`` spins at ``stake`` and collect every win instantly.

    With ``manual_stop`` each spin is stopped on its first frame.
    """
    stats = SimulationStats()
    observer = StatsObserver()
    clock = SimClock()
    engine = GameEngine(
        rng=SeededRNG(seed_to_int(seed_str)),
        clock=clock,
        session_id="audit",
        telemetry=TelemetryService(NullTelemetrySink()),
        observers=[observer],
        # Never run dry during an audit
        credits=10**15,
        stake=stake,
    )
    payout = engine.state.payout
    progress_step = max(rounds // 20, 1)

    for round_index in range(rounds):
        observer.last = None
        result = engine.request_spin()
        if not result.accepted:
            raise RuntimeError(f"Spin rejected in round {round_index}: {result.message}")
        stats.total_wagered += payout

        if manual_stop:
            clock.advance(TICK_MS)
            engine.tick()
            if engine.state.phase == GamePhase.SPINNING:
                engine.request_stop()

        ticks = 0
        while engine.state.phase == GamePhase.SPINNING:
            clock.advance(TICK_MS)
            engine.tick()
            ticks += 1
            if ticks > MAX_TICKS_PER_ROUND:
                raise RuntimeError(f"Round {round_index} did not settle")

        evaluation = observer.last
        stats.rounds += 1
        if evaluation is None:
            stats.faults += 1
            continue

        win = evaluation.total_win
        if engine.state.phase == GamePhase.WIN_PENDING:
            engine.request_collect()
            engine.request_collect()

        stats.total_won += win
        if win > 0:
            stats.wins += 1
            stats.win_x_values.append(win / payout)
        stats.max_win = max(stats.max_win, win)
        if evaluation.has_line_win:
            stats.line_hits += 1
        if evaluation.has_jackpot_win:
            stats.jackpot_hits += 1
        if evaluation.qualifies_bonus_sound:
            stats.bonus_sounds += 1

        if verbose and round_index % progress_step == 0:
            print(f"\rProgress: {round_index / rounds * 100:.1f}%", end="", flush=True)

    if verbose:
        print("\rProgress: 100.0%")

    return stats


def calculate_percentile(values: list[float], percentile: float) -> float:
    """Calculate percentile from sorted list."""
    if not values:
        return 0.0
    sorted_vals = sorted(values)
    idx = int(len(sorted_vals) * percentile / 100)
    idx = min(idx, len(sorted_vals) - 1)
    return sorted_vals[idx]


def summary_row(
    rounds: int,
    seed_str: str,
    stake: int,
    manual_stop: bool,
    stats: SimulationStats,
) -> dict[str, str | int]:
    """One CSV row summarising a run."""
    rtp = (stats.total_won / stats.total_wagered * 100) if stats.total_wagered > 0 else 0
    hit_freq = (stats.wins / stats.rounds * 100) if stats.rounds > 0 else 0
    line_rate = (stats.line_hits / stats.rounds * 100) if stats.rounds > 0 else 0
    jackpot_rate = (stats.jackpot_hits / stats.rounds * 100) if stats.rounds > 0 else 0
    bonus_rate = (stats.bonus_sounds / stats.rounds * 100) if stats.rounds > 0 else 0

    # Column order: timestamp, config_hash first
    return {
        "timestamp": get_timestamp_iso(),
        "config_hash": get_config_hash(),
        "rounds": rounds,
        "seed": seed_str,
        "stake": stake,
        "payout": settings.stake_to_payout[stake],
        "manual_stop": int(manual_stop),
        "rtp": f"{rtp:.4f}",
        "hit_freq": f"{hit_freq:.4f}",
        "line_hit_rate": f"{line_rate:.4f}",
        "jackpot_hit_rate": f"{jackpot_rate:.4f}",
        "bonus_sound_rate": f"{bonus_rate:.4f}",
        "p95_win_x": f"{calculate_percentile(stats.win_x_values, 95):.2f}",
        "p99_win_x": f"{calculate_percentile(stats.win_x_values, 99):.2f}",
        "max_win": stats.max_win,
        "faults": stats.faults,
    }


def write_csv(row: dict[str, str | int], output_path: str) -> None:
    """Write the summary row, creating the output directory if needed."""
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with open(output_file, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=row.keys())
        writer.writeheader()
        writer.writerow(row)

    print(f"CSV written to: {output_path}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Reel engine audit simulation")
    parser.add_argument(
        "--rounds",
        type=int,
        required=True,
        help="Number of rounds to simulate",
    )
    parser.add_argument(
        "--seed",
        type=str,
        required=True,
        help="Seed string for reproducibility",
    )
    parser.add_argument(
        "--stake",
        type=int,
        choices=settings.allowed_stakes,
        default=settings.initial_stake,
        help="Stake to play at",
    )
    parser.add_argument(
        "--manual-stop",
        action="store_true",
        help="Stop every spin on its first frame",
    )
    parser.add_argument(
        "--out",
        type=str,
        required=True,
        help="Output CSV path",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show progress",
    )

    args = parser.parse_args(argv)

    print(f"Running simulation: rounds={args.rounds}, seed={args.seed}, stake={args.stake}")
    print(f"Config hash: {get_config_hash()}")

    stats = run_simulation(
        rounds=args.rounds,
        seed_str=args.seed,
        stake=args.stake,
        manual_stop=args.manual_stop,
        verbose=args.verbose,
    )
    row = summary_row(args.rounds, args.seed, args.stake, args.manual_stop, stats)
    write_csv(row, args.out)

    # ASSERTION: evaluation faults mean the reel model produced a bad grid
    if stats.faults:
        print(f"ASSERTION FAILED: {stats.faults} evaluation faults")
        return 1

    print(f"\nSummary:")
    print(f"  Rounds: {stats.rounds}")
    print(f"  Total wagered: {stats.total_wagered}")
    print(f"  Total won: {stats.total_won}")
    print(f"  RTP: {row['rtp']}%")
    print(f"  Hit frequency: {row['hit_freq']}%")
    print(f"  Line hits: {stats.line_hits} ({row['line_hit_rate']}%)")
    print(f"  Jackpot hits: {stats.jackpot_hits} ({row['jackpot_hit_rate']}%)")
    print(f"  Max win: {stats.max_win}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
