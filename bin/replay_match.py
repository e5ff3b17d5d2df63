"""Replay a saved Guandan match and print a hand-by-hand summary.

Loads an exported match record, feeds every hand through a fresh
scorekeeper, and verifies that each hand reproduces the recorded state.

Usage:
    python bin/replay_match.py path/to/match.json
    python bin/replay_match.py path/to/match.json --stats
    python bin/replay_match.py --match-id table-3
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from guandan.logic.scorekeeper import Scorekeeper
from guandan.logic.types import Snapshot
from guandan.replay import (
    MatchLoadError,
    ReplayInvariantError,
    load_match_from_file,
    load_stored_match,
    replay_match,
)
from guandan.replay.models import MatchRecord, ReplayTrace
from guandan.session.settings import ScorekeeperSettings
from shared.logging import setup_logging
from shared.storage import LocalMatchStorage


def _format_snapshot(snapshot: Snapshot, record: MatchRecord) -> str:
    names = record.settings.team_names
    owner = names[snapshot.round_owner] if snapshot.round_owner else "-"
    parts = []
    for team, team_state in ((team, snapshot.team(team)) for team in names):
        fails = f" ({team_state.a_failures} fail)" if team_state.a_failures else ""
        parts.append(f"{names[team]} {team_state.level.label}{fails}")
    return f"{', '.join(parts)} | round {snapshot.round_level.label} ({owner})"


def _print_trace(record: MatchRecord, trace: ReplayTrace) -> None:
    names = record.settings.team_names
    print("=" * 60)
    print(f"{int(record.settings.mode)}-player match, {len(trace.steps)} hand(s)")
    print("=" * 60)
    for step in trace.steps:
        outcome = step.outcome
        advanced = " [manual advance]" if step.advanced_manually else ""
        ranks = ",".join(str(r) for r in outcome.winner_ranks)
        print(f"#{step.hand_number:<3} {names[outcome.winning_team]} ({ranks}) {outcome.label}{advanced}")
        print(f"     {_format_snapshot(step.after, record)}")
        if outcome.a_level_note:
            print(f"     {outcome.a_level_note}")
    final = trace.final_state
    if final.match_winner is not None:
        print(f"Winner: {names[final.match_winner]}")
    print()


def _print_stats(record: MatchRecord) -> None:
    stats = Scorekeeper.from_record(record).player_stats()
    if not stats:
        print("No player rankings recorded.")
        return
    print(f"{'player':<16} {'games':>5} {'wins':>5} {'avg':>6} {'best':>5} {'worst':>5} {'1st':>4} {'last':>5}")
    for player in sorted(stats.values(), key=lambda s: (s.average_rank, s.player_id)):
        print(
            f"{player.name:<16} {player.games:>5} {player.wins:>5} {player.average_rank:>6.2f} "
            f"{player.best_rank or '-':>5} {player.worst_rank or '-':>5} "
            f"{player.first_place_count:>4} {player.last_place_count:>5}",
        )


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay and verify a saved Guandan match")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("path", nargs="?", type=Path, help="Path to an exported match record")
    source.add_argument("--match-id", help="Id of a match stored under GUANDAN_MATCH_DIR")
    parser.add_argument("--stats", action="store_true", help="Print per-player rank statistics")
    parser.add_argument("--verbose", action="store_true", help="Show engine debug logging")
    args = parser.parse_args()

    settings = ScorekeeperSettings()
    setup_logging(log_dir=settings.log_dir, level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        if args.path is not None:
            record = load_match_from_file(args.path)
        else:
            record = load_stored_match(LocalMatchStorage(settings.match_dir), args.match_id)
        trace = replay_match(record)
    except MatchLoadError as exc:
        print(f"Cannot load match: {exc}", file=sys.stderr)
        sys.exit(1)
    except ReplayInvariantError as exc:
        print(f"Replay failed: {exc}", file=sys.stderr)
        sys.exit(2)

    _print_trace(record, trace)
    if args.stats:
        _print_stats(record)


if __name__ == "__main__":
    main()
