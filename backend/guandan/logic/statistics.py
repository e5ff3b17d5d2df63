"""Per-player rank statistics, recomputed from history on every call."""

from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field as dataclass_field

from guandan.logic.enums import Team
from guandan.logic.types import HistoryEntry, PlayerStats


@dataclass
class _Tally:
    player_id: str
    name: str
    team: Team
    wins: int = 0
    losses: int = 0
    first_place_count: int = 0
    last_place_count: int = 0
    rankings: list[int] = dataclass_field(default_factory=list)

    def freeze(self) -> PlayerStats:
        return PlayerStats(
            player_id=self.player_id,
            name=self.name,
            team=self.team,
            games=len(self.rankings),
            wins=self.wins,
            losses=self.losses,
            total_rank=sum(self.rankings),
            best_rank=min(self.rankings) if self.rankings else None,
            worst_rank=max(self.rankings) if self.rankings else None,
            first_place_count=self.first_place_count,
            last_place_count=self.last_place_count,
            rankings=tuple(self.rankings),
        )


def compute_player_stats(entries: Iterable[HistoryEntry]) -> dict[str, PlayerStats]:
    """
    Tally games, wins and finishing positions for every ranked player.

    Entries recorded from winner ranks alone carry no player ranking and are
    skipped. Last place is judged by each entry's own table size, so a
    history that spans a mode change is counted correctly.
    """
    tallies: dict[str, _Tally] = {}
    for entry in entries:
        last_rank = entry.mode.last_rank
        for index, player in enumerate(entry.ranking):
            rank = index + 1
            tally = tallies.get(player.player_id)
            if tally is None:
                tally = _Tally(player_id=player.player_id, name=player.display_name, team=player.team)
                tallies[player.player_id] = tally
            # name and seat follow the most recent hand
            tally.name = player.display_name
            tally.team = player.team
            tally.rankings.append(rank)
            if player.team is entry.winner:
                tally.wins += 1
            else:
                tally.losses += 1
            if rank == 1:
                tally.first_place_count += 1
            if rank == last_rank:
                tally.last_place_count += 1
    return {player_id: tally.freeze() for player_id, tally in tallies.items()}
