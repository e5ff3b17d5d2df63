import pytest

from guandan.logic.scorekeeper import Scorekeeper
from guandan.logic.settings import GameSettings


@pytest.fixture
def settings() -> GameSettings:
    return GameSettings()


@pytest.fixture
def keeper(settings: GameSettings) -> Scorekeeper:
    return Scorekeeper(settings=settings)
