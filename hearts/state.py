"""
The shared game document.

Every value here is immutable: transitions build replacements with
``dataclasses.replace`` and never touch their input, so a caller can keep
the previous state around (or hand it back unchanged on error).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, NamedTuple, Optional, Tuple, Union

from .cards import Card, NUM_PLAYERS
from .rules import GAME_END_SCORE, Play

EASY = "easy"
MEDIUM = "medium"
HARD = "hard"
DIFFICULTIES = (EASY, MEDIUM, HARD)

Hand = Tuple[Card, ...]
Trick = Tuple[Play, ...]

ZERO_SCORES = (0,) * NUM_PLAYERS
NO_CARDS: Tuple[Hand, ...] = ((),) * NUM_PLAYERS


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    is_ai: bool = False
    difficulty: Optional[str] = None
    hand: Hand = ()
    score: int = 0

    def __post_init__(self) -> None:
        if self.difficulty is not None and self.difficulty not in DIFFICULTIES:
            raise ValueError(f"Unknown AI difficulty: {self.difficulty!r}")


@dataclass(frozen=True)
class RoundRecord:
    round_number: int
    points_taken: Tuple[int, ...]
    scores: Tuple[int, ...]
    shooter: Optional[int] = None


@dataclass(frozen=True)
class Dealing:
    pass


@dataclass(frozen=True)
class Passing:
    submissions: Dict[str, Hand] = field(default_factory=dict)


@dataclass(frozen=True)
class Revealing:
    received: Tuple[Hand, ...] = NO_CARDS
    ready: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Playing:
    pass


@dataclass(frozen=True)
class RoundComplete:
    shooter: Optional[int] = None


@dataclass(frozen=True)
class GameOver:
    winner: int
    shooter: Optional[int] = None


Phase = Union[Dealing, Passing, Revealing, Playing, RoundComplete, GameOver]
PHASES = (Dealing, Passing, Revealing, Playing, RoundComplete, GameOver)
PHASE_NAMES = {
    Dealing: "dealing",
    Passing: "passing",
    Revealing: "revealing",
    Playing: "playing",
    RoundComplete: "round_complete",
    GameOver: "game_over",
}


@dataclass(frozen=True)
class GameState:
    players: Tuple[Player, ...]
    phase: Phase = Dealing()
    scores: Tuple[int, ...] = ZERO_SCORES
    round_scores: Tuple[int, ...] = ZERO_SCORES
    points_cards_taken: Tuple[Hand, ...] = NO_CARDS
    hearts_broken: bool = False
    round_number: int = 1
    trick_number: int = 1
    pass_direction: str = "left"
    current_trick: Trick = ()
    current_player_index: Optional[int] = None
    trick_leader_index: Optional[int] = None
    last_completed_trick: Trick = ()
    last_trick_winner_index: Optional[int] = None
    tricks_played: Tuple[Trick, ...] = ()
    round_history: Tuple[RoundRecord, ...] = ()
    game_end_score: int = GAME_END_SCORE
    end_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.phase, PHASES):
            raise ValueError(f"Unknown phase: {self.phase!r}")

    @property
    def hands(self) -> Tuple[Hand, ...]:
        return tuple(p.hand for p in self.players)

    @property
    def phase_name(self) -> str:
        return PHASE_NAMES[type(self.phase)]

    @property
    def is_passing_phase(self) -> bool:
        return isinstance(self.phase, Passing)

    @property
    def is_reveal_phase(self) -> bool:
        return isinstance(self.phase, Revealing)

    @property
    def is_playing(self) -> bool:
        return isinstance(self.phase, Playing)

    @property
    def is_round_complete(self) -> bool:
        return isinstance(self.phase, (RoundComplete, GameOver))

    @property
    def is_game_over(self) -> bool:
        return isinstance(self.phase, GameOver)

    @property
    def winner_index(self) -> Optional[int]:
        if isinstance(self.phase, GameOver):
            return self.phase.winner
        return None

    @property
    def is_first_trick(self) -> bool:
        return self.trick_number == 1

    def seat_index(self, seat_id: str) -> Optional[int]:
        for i, player in enumerate(self.players):
            if player.id == seat_id:
                return i
        return None

    def human_seat_ids(self) -> FrozenSet[str]:
        return frozenset(p.id for p in self.players if not p.is_ai)


class TransitionResult(NamedTuple):
    state: GameState
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
