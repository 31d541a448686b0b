"""
Single-writer room store.

The engine only computes ``(state, input) -> state``; this module is the
collaborator that makes those computations safe under concurrent callers.
Each room owns the latest GameState, a version number bumped on every
accepted write, and an ``asyncio.Lock`` that serializes writes. Callers that
derived their input from an older snapshot can pass ``expected_version`` and
get a "Stale state version" error instead of clobbering newer state.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
import logging
import random
import secrets
import string
from typing import Any, Callable, Dict, Optional

from .ai import choose_ai_card, choose_ai_pass
from .game import play_card
from .passing import all_players_have_passed, execute_pass_phase, process_ai_passes
from .state import GameState, TransitionResult

log = logging.getLogger(__name__)

STALE_VERSION = "Stale state version"


def room_id() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(6))


@dataclass
class Room:
    id: str
    state: GameState
    version: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    connections: Dict[str, Any] = field(default_factory=dict)
    bot_task: Optional[asyncio.Task] = None
    rng: random.Random = field(default_factory=random.Random)

    async def apply(
        self,
        transition: Callable[..., Any],
        *args: Any,
        expected_version: Optional[int] = None,
    ) -> TransitionResult:
        async with self.lock:
            return self._apply_locked(transition, *args, expected_version=expected_version)

    def _apply_locked(
        self,
        transition: Callable[..., Any],
        *args: Any,
        expected_version: Optional[int] = None,
    ) -> TransitionResult:
        if expected_version is not None and expected_version != self.version:
            return TransitionResult(self.state, STALE_VERSION)

        result = transition(self.state, *args)
        if not isinstance(result, TransitionResult):
            result = TransitionResult(result)
        if result.error:
            log.debug("Room %s rejected %s: %s", self.id, transition.__name__, result.error)
            return result
        if result.state is not self.state:
            self.state = result.state
            self.version += 1
        return result

    async def play_ai_turn(
        self,
        seat_index: int,
        expected_version: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> TransitionResult:
        """Choose and play a card for an AI seat if it still holds the turn."""
        async with self.lock:
            return self._apply_locked(
                _ai_play(seat_index, rng or self.rng), expected_version=expected_version
            )

    async def run_ai_passes(self, rng: Optional[random.Random] = None) -> TransitionResult:
        """Submit passes for AI seats and run the exchange once everyone has passed."""

        def chooser(state: GameState, seat_index: int):
            return choose_ai_pass(state, seat_index, rng=rng or self.rng)

        def transition(state: GameState) -> TransitionResult:
            state = process_ai_passes(state, chooser)
            if all_players_have_passed(state):
                return execute_pass_phase(state)
            return TransitionResult(state)

        async with self.lock:
            return self._apply_locked(transition)

    async def end(self, reason: str) -> GameState:
        """Record an externally triggered termination, e.g. a seat leaving."""
        async with self.lock:
            if self.state.end_reason is None:
                self.state = replace(self.state, end_reason=reason)
                self.version += 1
                log.info("Room %s ended: %s", self.id, reason)
            return self.state


def _ai_play(seat_index: int, rng: Optional[random.Random]) -> Callable[[GameState], TransitionResult]:
    def transition(state: GameState) -> TransitionResult:
        if not state.is_playing or state.current_player_index != seat_index:
            return TransitionResult(state, "Not your turn")
        card = choose_ai_card(state, seat_index, rng=rng)
        return play_card(state, state.players[seat_index].id, card)

    transition.__name__ = "play_ai_turn"
    return transition


class RoomStore:
    def __init__(self) -> None:
        self.rooms: Dict[str, Room] = {}

    def create(self, state: GameState, rid: Optional[str] = None, rng: Optional[random.Random] = None) -> Room:
        if rid is None:
            rid = room_id()
            while rid in self.rooms:
                rid = room_id()
        elif rid in self.rooms:
            raise ValueError(f"Room {rid} already exists")
        room = Room(id=rid, state=state, rng=rng or random.Random())
        self.rooms[rid] = room
        log.info("Created room %s", rid)
        return room

    def get(self, rid: str) -> Optional[Room]:
        return self.rooms.get(rid)

    def remove(self, rid: str) -> None:
        self.rooms.pop(rid, None)
