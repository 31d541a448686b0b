"""
Card passing: round direction schedule, per-seat submissions, the atomic
three-card exchange and the reveal acknowledgement that follows it.
Pass direction rotates each round: left, right, across, then hold.
"""
from __future__ import annotations

from dataclasses import replace
import logging
from typing import Callable, List, Sequence
import warnings

from .cards import Card, NUM_PLAYERS, sort_hand
from .rules import Legality, find_player_with_two_of_clubs
from .state import GameState, Passing, Playing, Revealing, TransitionResult

log = logging.getLogger(__name__)

PASS_LEFT = "left"
PASS_RIGHT = "right"
PASS_ACROSS = "across"
PASS_NONE = "none"
PASS_DIRECTIONS = (PASS_LEFT, PASS_RIGHT, PASS_ACROSS, PASS_NONE)
PASS_COUNT = 3

PASS_LABELS = {
    PASS_LEFT: "Pass Left",
    PASS_RIGHT: "Pass Right",
    PASS_ACROSS: "Pass Across",
    PASS_NONE: "Hold (No Passing)",
}

_TARGET_OFFSETS = {PASS_LEFT: 1, PASS_RIGHT: 3, PASS_ACROSS: 2, PASS_NONE: 0}
_SOURCE_OFFSETS = {PASS_LEFT: 3, PASS_RIGHT: 1, PASS_ACROSS: 2}


def get_pass_direction(round_number: int) -> str:
    return PASS_DIRECTIONS[(round_number - 1) % len(PASS_DIRECTIONS)]


def get_pass_target_index(from_index: int, direction: str) -> int:
    return (from_index + _TARGET_OFFSETS[direction]) % NUM_PLAYERS


def get_pass_source_offset(direction: str) -> int:
    """Offset of the seat whose cards a player receives."""
    return _SOURCE_OFFSETS[direction]


def validate_pass_selection(selected: Sequence[Card], hand: Sequence[Card]) -> Legality:
    if len(selected) != PASS_COUNT:
        return Legality(False, "Must select exactly 3 cards to pass")
    if any(card not in hand for card in selected):
        return Legality(False, "Selected card not in hand")
    if len(set(selected)) != PASS_COUNT:
        return Legality(False, "Cannot pass duplicate cards")
    return Legality(True)


def has_player_submitted_pass(state: GameState, seat_id: str) -> bool:
    return isinstance(state.phase, Passing) and seat_id in state.phase.submissions


def all_players_have_passed(state: GameState) -> bool:
    if not isinstance(state.phase, Passing):
        return False
    return all(p.id in state.phase.submissions for p in state.players)


def submit_pass_selection(state: GameState, seat_id: str, cards: Sequence[Card]) -> TransitionResult:
    if not isinstance(state.phase, Passing):
        return TransitionResult(state, "Not in passing phase")
    if state.pass_direction == PASS_NONE:
        return TransitionResult(state, "No passing this round")

    index = state.seat_index(seat_id)
    if index is None:
        return TransitionResult(state, "Player not found")
    if has_player_submitted_pass(state, seat_id):
        return TransitionResult(state, "Already submitted pass selection")

    validation = validate_pass_selection(cards, state.players[index].hand)
    if not validation.valid:
        return TransitionResult(state, validation.reason)

    submissions = dict(state.phase.submissions)
    submissions[seat_id] = tuple(cards)
    log.debug("Seat %s submitted pass (%d/%d)", seat_id, len(submissions), NUM_PLAYERS)
    return TransitionResult(replace(state, phase=Passing(submissions)))


def execute_pass_phase(state: GameState) -> TransitionResult:
    if not all_players_have_passed(state):
        return TransitionResult(state, "Not all players have submitted passes")
    if state.pass_direction not in _SOURCE_OFFSETS:
        return TransitionResult(state, "Invalid pass direction")

    submissions = state.phase.submissions
    offset = get_pass_source_offset(state.pass_direction)
    players = []
    received = []
    for i, player in enumerate(state.players):
        outgoing = submissions[player.id]
        incoming = submissions[state.players[(i + offset) % NUM_PLAYERS].id]
        kept = [card for card in player.hand if card not in outgoing]
        players.append(replace(player, hand=tuple(sort_hand(kept + list(incoming)))))
        received.append(tuple(incoming))

    log.debug("Executed %s pass for round %d", state.pass_direction, state.round_number)
    revealed = replace(state, players=tuple(players), phase=Revealing(received=tuple(received)))
    if not revealed.human_seat_ids():
        return TransitionResult(start_playing(revealed))
    return TransitionResult(revealed)


def start_playing(state: GameState) -> GameState:
    """Enter play with the Two of Clubs holder on lead."""
    return replace(
        state,
        phase=Playing(),
        current_trick=(),
        current_player_index=find_player_with_two_of_clubs(state),
        trick_leader_index=None,
    )


def mark_player_ready_for_reveal(state: GameState, seat_id: str) -> GameState:
    if not isinstance(state.phase, Revealing) or state.seat_index(seat_id) is None:
        return state

    ready = state.phase.ready | {seat_id}
    if state.human_seat_ids() <= ready:
        log.debug("All human seats acknowledged reveal in round %d", state.round_number)
        return start_playing(state)
    return replace(state, phase=replace(state.phase, ready=ready))


def complete_reveal_phase(state: GameState) -> GameState:
    """Deprecated: skips per-seat acknowledgement. Use mark_player_ready_for_reveal."""
    warnings.warn(
        "complete_reveal_phase is deprecated; use mark_player_ready_for_reveal",
        DeprecationWarning,
        stacklevel=2,
    )
    if not isinstance(state.phase, Revealing):
        return state
    return start_playing(state)


def process_ai_passes(
    state: GameState,
    chooser: Callable[[GameState, int], List[Card]],
) -> GameState:
    """Submit a pass for every AI seat that hasn't passed yet.

    ``chooser(state, seat_index)`` returns the three cards that seat passes.
    """
    if not isinstance(state.phase, Passing) or state.pass_direction == PASS_NONE:
        return state

    for index, player in enumerate(state.players):
        if not player.is_ai or has_player_submitted_pass(state, player.id):
            continue
        result = submit_pass_selection(state, player.id, chooser(state, index))
        if result.error:
            log.warning("AI seat %s pass rejected: %s", player.id, result.error)
            continue
        state = result.state
    return state
