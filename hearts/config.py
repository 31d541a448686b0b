from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Mapping, Optional

from .rules import GAME_END_SCORE
from .state import DIFFICULTIES, MEDIUM


@dataclass(frozen=True)
class Settings:
    """Host settings, read from HEARTS_* environment variables."""

    game_end_score: int = GAME_END_SCORE
    bot_delay: float = 0.8
    trick_pause: float = 2.0
    default_difficulty: str = MEDIUM
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    def __post_init__(self) -> None:
        if self.game_end_score <= 0:
            raise ValueError("HEARTS_GAME_END_SCORE must be positive")
        if self.bot_delay < 0 or self.trick_pause < 0:
            raise ValueError("Bot delays cannot be negative")
        if self.default_difficulty not in DIFFICULTIES:
            raise ValueError(f"HEARTS_DEFAULT_DIFFICULTY must be one of {DIFFICULTIES}")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log level: {self.log_level!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            game_end_score=int(env.get("HEARTS_GAME_END_SCORE", GAME_END_SCORE)),
            bot_delay=float(env.get("HEARTS_BOT_DELAY", 0.8)),
            trick_pause=float(env.get("HEARTS_TRICK_PAUSE", 2.0)),
            default_difficulty=env.get("HEARTS_DEFAULT_DIFFICULTY", MEDIUM),
            log_level=env.get("HEARTS_LOG_LEVEL", "INFO").upper(),
            host=env.get("HEARTS_HOST", "0.0.0.0"),
            port=int(env.get("PORT", 8000)),
        )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
