"""Scorekeeper runtime configuration via environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from guandan.logic.enums import GameMode
from guandan.logic.settings import GameSettings


class ScorekeeperSettings(BaseSettings):
    model_config = {"env_prefix": "GUANDAN_"}

    log_dir: str = Field(default="backend/logs/guandan", min_length=1)
    match_dir: str = Field(default="backend/data/matches", min_length=1)

    # Defaults for newly created matches; a match keeps its own settings once created.
    mode: GameMode = GameMode.FOUR
    history_limit: int = Field(default=100, ge=1)
    strict_a: bool = True
    auto_next: bool = True
    must1: bool = True

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: object) -> object:
        # environment values arrive as strings such as "6"
        return int(value) if isinstance(value, str) else value

    def to_game_settings(self) -> GameSettings:
        return GameSettings(
            mode=self.mode,
            history_limit=self.history_limit,
            strict_a=self.strict_a,
            auto_next=self.auto_next,
            must1=self.must1,
        )
