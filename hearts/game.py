from __future__ import annotations

from dataclasses import replace
import logging
from typing import List, Mapping, Optional, Sequence, Union

from .cards import Card, NUM_PLAYERS, sort_hand
from .passing import PASS_NONE, get_pass_direction, start_playing
from .rules import (
    GAME_END_SCORE,
    Play,
    apply_shooting_the_moon,
    can_play_card,
    check_shooting_the_moon,
    find_game_winner,
    find_player_with_two_of_clubs,
    get_next_player_index,
    get_trick_winner,
    is_game_over,
    is_penalty_card,
    legal_cards,
    should_break_hearts,
    trick_points,
)
from .state import (
    NO_CARDS,
    ZERO_SCORES,
    Dealing,
    GameOver,
    GameState,
    Passing,
    Player,
    Playing,
    Revealing,
    RoundComplete,
    RoundRecord,
    TransitionResult,
)

log = logging.getLogger(__name__)

Hands = Sequence[Sequence[Card]]


def new_game(
    players: Sequence[Union[Player, Mapping]],
    game_end_score: int = GAME_END_SCORE,
) -> GameState:
    seats = tuple(p if isinstance(p, Player) else _player_from_mapping(p) for p in players)
    if len(seats) != NUM_PLAYERS:
        raise ValueError(f"Hearts needs exactly {NUM_PLAYERS} players, got {len(seats)}")
    if len({p.id for p in seats}) != NUM_PLAYERS:
        raise ValueError("Player ids must be unique")
    return GameState(players=seats, game_end_score=game_end_score)


def _player_from_mapping(data: Mapping) -> Player:
    is_ai = bool(data.get("is_ai", False))
    return Player(
        id=str(data["id"]),
        name=str(data.get("name") or data["id"]),
        is_ai=is_ai,
        difficulty=data.get("difficulty") or ("easy" if is_ai else None),
    )


def _with_hands(state: GameState, hands: Hands) -> GameState:
    if len(hands) != len(state.players):
        raise ValueError(f"Expected {len(state.players)} hands, got {len(hands)}")
    players = tuple(
        replace(player, hand=tuple(sort_hand(hand)))
        for player, hand in zip(state.players, hands)
    )
    return replace(state, players=players)


def _reset_round(state: GameState) -> GameState:
    return replace(
        state,
        round_scores=ZERO_SCORES,
        points_cards_taken=NO_CARDS,
        hearts_broken=False,
        trick_number=1,
        current_trick=(),
        current_player_index=None,
        trick_leader_index=None,
        last_completed_trick=(),
        last_trick_winner_index=None,
        tricks_played=(),
    )


def initialize_round(state: GameState) -> GameState:
    """Reset per-round fields and put the Two of Clubs holder on lead."""
    return start_playing(_reset_round(state))


def start_round_with_passing_phase(state: GameState, hands: Hands) -> GameState:
    direction = get_pass_direction(state.round_number)
    state = replace(_reset_round(_with_hands(state, hands)), pass_direction=direction)
    log.debug("Round %d dealt, pass direction %s", state.round_number, direction)
    if direction == PASS_NONE:
        return start_playing(state)
    return replace(state, phase=Passing())


def prepare_new_round(state: GameState, hands: Hands) -> GameState:
    if not isinstance(state.phase, RoundComplete):
        log.debug("Ignoring new round request in phase %s", type(state.phase).__name__)
        return state
    return start_round_with_passing_phase(replace(state, round_number=state.round_number + 1), hands)


def reset_game_for_new_game(state: GameState, hands: Hands) -> GameState:
    players = tuple(replace(p, score=0) for p in state.players)
    state = replace(
        state,
        players=players,
        scores=ZERO_SCORES,
        round_number=1,
        round_history=(),
        end_reason=None,
        phase=Dealing(),
    )
    return start_round_with_passing_phase(state, hands)


def legal_moves(state: GameState, seat_index: int) -> List[Card]:
    if not isinstance(state.phase, Playing) or state.current_player_index != seat_index:
        return []
    return legal_cards(
        state.players[seat_index].hand,
        state.current_trick,
        state.hearts_broken,
        state.is_first_trick,
    )


def play_card(state: GameState, seat_id: str, card: Card) -> TransitionResult:
    if not isinstance(state.phase, Playing):
        return TransitionResult(state, "Not in playing phase")

    index = state.seat_index(seat_id)
    if index is None:
        return TransitionResult(state, "Player not found")
    if state.current_player_index != index:
        return TransitionResult(state, "Not your turn")

    player = state.players[index]
    validation = can_play_card(
        card, player.hand, state.current_trick, state.hearts_broken, state.is_first_trick
    )
    if not validation.valid:
        log.debug("Rejected %s from seat %s: %s", card, seat_id, validation.reason)
        return TransitionResult(state, validation.reason)

    players = list(state.players)
    players[index] = replace(player, hand=tuple(c for c in player.hand if c != card))
    trick = state.current_trick + (Play(seat_id, card),)
    state = replace(
        state,
        players=tuple(players),
        current_trick=trick,
        hearts_broken=should_break_hearts(card, state.hearts_broken),
    )

    if len(trick) < NUM_PLAYERS:
        return TransitionResult(
            replace(
                state,
                current_player_index=get_next_player_index(index, NUM_PLAYERS),
                trick_leader_index=index if len(trick) == 1 else state.trick_leader_index,
            )
        )
    return TransitionResult(_resolve_trick(state))


def _resolve_trick(state: GameState) -> GameState:
    trick = state.current_trick
    winner = state.seat_index(trick[get_trick_winner(trick)].seat_id)

    round_scores = list(state.round_scores)
    round_scores[winner] += trick_points(trick)
    taken = list(state.points_cards_taken)
    taken[winner] = taken[winner] + tuple(p.card for p in trick if is_penalty_card(p.card))

    log.debug("Trick %d won by seat %d", state.trick_number, winner)
    state = replace(
        state,
        current_trick=(),
        last_completed_trick=trick,
        last_trick_winner_index=winner,
        tricks_played=state.tricks_played + (trick,),
        round_scores=tuple(round_scores),
        points_cards_taken=tuple(taken),
        current_player_index=winner,
        trick_leader_index=winner,
    )
    if any(p.hand for p in state.players):
        return replace(state, trick_number=state.trick_number + 1)
    return _complete_round(state)


def _complete_round(state: GameState) -> GameState:
    points_taken = state.round_scores
    moon = check_shooting_the_moon(points_taken)
    round_scores = points_taken
    if moon.shot:
        log.info("Seat %d shot the moon in round %d", moon.seat_index, state.round_number)
        round_scores = tuple(apply_shooting_the_moon(points_taken, moon.seat_index))

    scores = tuple(total + gained for total, gained in zip(state.scores, round_scores))
    players = tuple(replace(p, score=s) for p, s in zip(state.players, scores))
    record = RoundRecord(
        round_number=state.round_number,
        points_taken=tuple(points_taken),
        scores=round_scores,
        shooter=moon.seat_index,
    )

    if is_game_over(scores, state.game_end_score):
        phase = GameOver(winner=find_game_winner(scores), shooter=moon.seat_index)
        log.info("Game over after round %d, winner seat %d", state.round_number, phase.winner)
    else:
        phase = RoundComplete(shooter=moon.seat_index)

    return replace(
        state,
        players=players,
        scores=scores,
        round_scores=round_scores,
        round_history=state.round_history + (record,),
        current_player_index=None,
        trick_leader_index=None,
        phase=phase,
    )


def is_accepting_input(state: GameState) -> bool:
    return isinstance(state.phase, (Passing, Revealing, Playing))


def find_leader(state: GameState, threshold: float = 0) -> Optional[int]:
    """Seat with the lowest cumulative score (first on a tie).

    Returns None unless the leader is at least ``threshold`` points clear of
    second place.
    """
    ordered = sorted(state.scores)
    if ordered[1] - ordered[0] < threshold:
        return None
    return find_game_winner(state.scores)


__all__ = [
    "new_game",
    "initialize_round",
    "start_round_with_passing_phase",
    "prepare_new_round",
    "reset_game_for_new_game",
    "legal_moves",
    "play_card",
    "find_player_with_two_of_clubs",
    "is_accepting_input",
    "find_leader",
]
