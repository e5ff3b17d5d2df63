"""Builders for players, rankings and seeded matches used across tests."""

from guandan.logic.enums import GameMode, Team
from guandan.logic.levels import Level
from guandan.logic.round_state import RoundState
from guandan.logic.scorekeeper import Scorekeeper
from guandan.logic.settings import GameSettings
from guandan.logic.types import Player, TeamState

_TEAM_BY_DIGIT = {"1": Team.T1, "2": Team.T2}


def make_player(team: Team, index: int) -> Player:
    return Player(player_id=f"{team.value}-p{index}", name=f"{team.value.upper()} player {index}", team=team)


def ranking_from_teams(order: str) -> dict[int, Player]:
    """
    Build a rank -> player mapping from a string of team digits in finishing order.

    ``"1212"`` means T1 finished first, T2 second, and so on. Players of a team
    are numbered in the order they appear, so ``t1-p1`` is always T1's best finisher.
    """
    counters = {Team.T1: 0, Team.T2: 0}
    ranking: dict[int, Player] = {}
    for rank, digit in enumerate(order, start=1):
        team = _TEAM_BY_DIGIT[digit]
        counters[team] += 1
        ranking[rank] = make_player(team, counters[team])
    return ranking


def ranking_from_players(*players: Player) -> dict[int, Player]:
    return {rank: player for rank, player in enumerate(players, start=1)}


def make_state(
    t1: Level = Level.TWO,
    t2: Level = Level.TWO,
    *,
    round_level: Level | None = None,
    owner: Team | None = None,
    t1_failures: int = 0,
    t2_failures: int = 0,
) -> RoundState:
    return RoundState(
        t1=TeamState(level=t1, a_failures=t1_failures),
        t2=TeamState(level=t2, a_failures=t2_failures),
        round_level=round_level if round_level is not None else Level.TWO,
        round_owner=owner,
        last_winner=owner,
    )


def make_keeper(
    state: RoundState | None = None,
    *,
    mode: GameMode = GameMode.FOUR,
    **settings: object,
) -> Scorekeeper:
    return Scorekeeper(settings=GameSettings(mode=mode, **settings), state=state)
