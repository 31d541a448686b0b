"""Tests for pass selection, the three-card exchange and the reveal step."""
from dataclasses import replace
import random

import pytest

from hearts.ai import choose_ai_pass
from hearts.cards import TWO_OF_CLUBS, generate_deck, deal, deal_new_hands
from hearts.game import new_game, start_round_with_passing_phase
from hearts.passing import (
    all_players_have_passed,
    complete_reveal_phase,
    execute_pass_phase,
    get_pass_direction,
    get_pass_target_index,
    has_player_submitted_pass,
    mark_player_ready_for_reveal,
    process_ai_passes,
    submit_pass_selection,
    validate_pass_selection,
)
from hearts.state import Passing, Playing, Revealing

SEATS = ["north", "east", "south", "west"]


def _passing_state(ai=False, round_number=1):
    players = [{"id": sid, "is_ai": ai} for sid in SEATS]
    state = replace(new_game(players), round_number=round_number)
    return start_round_with_passing_phase(state, deal(generate_deck()))


def _submit_all(state):
    for player in state.players:
        result = submit_pass_selection(state, player.id, player.hand[:3])
        assert result.ok, result.error
        state = result.state
    return state


def test_direction_schedule():
    assert [get_pass_direction(n) for n in range(1, 6)] == ["left", "right", "across", "none", "left"]


def test_target_index():
    assert get_pass_target_index(0, "left") == 1
    assert get_pass_target_index(0, "right") == 3
    assert get_pass_target_index(1, "across") == 3
    assert get_pass_target_index(2, "none") == 2


def test_round_one_starts_in_passing():
    state = _passing_state()
    assert isinstance(state.phase, Passing)
    assert state.pass_direction == "left"


def test_validate_pass_selection():
    hand = _passing_state().players[0].hand
    other = _passing_state().players[1].hand

    assert validate_pass_selection(hand[:2], hand).reason == "Must select exactly 3 cards to pass"
    assert validate_pass_selection(hand[:4], hand).reason == "Must select exactly 3 cards to pass"
    assert validate_pass_selection([hand[0], hand[1], other[0]], hand).reason == "Selected card not in hand"
    assert validate_pass_selection([hand[0], hand[0], hand[1]], hand).reason == "Cannot pass duplicate cards"
    assert validate_pass_selection(hand[:3], hand).valid


def test_submit_errors_leave_state_untouched():
    state = _passing_state()
    hand = state.players[0].hand

    result = submit_pass_selection(state, "nobody", hand[:3])
    assert result.error == "Player not found"
    assert result.state is state

    result = submit_pass_selection(state, "north", hand[:2])
    assert result.error == "Must select exactly 3 cards to pass"
    assert result.state is state

    submitted = submit_pass_selection(state, "north", hand[:3]).state
    result = submit_pass_selection(submitted, "north", hand[3:6])
    assert result.error == "Already submitted pass selection"
    assert result.state is submitted
    assert has_player_submitted_pass(submitted, "north")
    assert not has_player_submitted_pass(state, "north")


def test_submit_outside_passing():
    state = _passing_state()
    playing = replace(state, phase=Playing())
    assert submit_pass_selection(playing, "north", state.players[0].hand[:3]).error == "Not in passing phase"

    hold = replace(state, pass_direction="none")
    assert submit_pass_selection(hold, "north", state.players[0].hand[:3]).error == "No passing this round"


def test_execute_requires_all_submissions():
    state = submit_pass_selection(_passing_state(), "north", _passing_state().players[0].hand[:3]).state
    result = execute_pass_phase(state)
    assert result.error == "Not all players have submitted passes"
    assert result.state is state


@pytest.mark.parametrize(
    "round_number, direction, offset", [(1, "left", 3), (2, "right", 1), (3, "across", 2)]
)
def test_pass_round_trip(round_number, direction, offset):
    state = _submit_all(_passing_state(round_number=round_number))
    assert state.pass_direction == direction
    assert all_players_have_passed(state)
    before = state.hands
    sent = [hand[:3] for hand in before]

    result = execute_pass_phase(state)
    assert result.ok
    after = result.state.hands

    for i in range(4):
        source = (i + offset) % 4
        assert len(after[i]) == 13
        assert set(sent[source]) <= set(after[i])
        assert not set(sent[i]) & set(after[i])
        assert set(after[i]) == (set(before[i]) - set(sent[i])) | set(sent[source])
    assert isinstance(result.state.phase, Revealing)
    target = (4 - offset) % 4
    assert list(result.state.phase.received[target]) == list(sent[0])


def test_reveal_waits_for_every_human():
    state = execute_pass_phase(_submit_all(_passing_state())).state
    for sid in SEATS[:3]:
        state = mark_player_ready_for_reveal(state, sid)
        assert isinstance(state.phase, Revealing)
    assert state.phase.ready == frozenset(SEATS[:3])

    state = mark_player_ready_for_reveal(state, "west")
    assert isinstance(state.phase, Playing)
    assert TWO_OF_CLUBS in state.players[state.current_player_index].hand
    assert state.trick_leader_index is None


def test_ready_is_ignored_outside_reveal_and_for_strangers():
    passing = _passing_state()
    assert mark_player_ready_for_reveal(passing, "north") is passing

    revealing = execute_pass_phase(_submit_all(_passing_state())).state
    assert mark_player_ready_for_reveal(revealing, "nobody") is revealing


def test_complete_reveal_phase_is_deprecated():
    state = execute_pass_phase(_submit_all(_passing_state())).state
    with pytest.warns(DeprecationWarning):
        state = complete_reveal_phase(state)
    assert isinstance(state.phase, Playing)


def test_all_ai_pass_skips_reveal():
    rng = random.Random(5)
    players = [{"id": sid, "is_ai": True, "difficulty": "medium"} for sid in SEATS]
    state = start_round_with_passing_phase(new_game(players), deal_new_hands(rng))

    state = process_ai_passes(state, lambda s, i: choose_ai_pass(s, i, rng=rng))
    assert all_players_have_passed(state)

    result = execute_pass_phase(state)
    assert isinstance(result.state.phase, Playing)
    assert all(len(h) == 13 for h in result.state.hands)


def test_ai_passes_leave_human_seats_alone():
    players = [{"id": "north"}] + [{"id": sid, "is_ai": True} for sid in SEATS[1:]]
    state = start_round_with_passing_phase(new_game(players), deal(generate_deck()))
    state = process_ai_passes(state, lambda s, i: list(s.players[i].hand[:3]))
    assert set(state.phase.submissions) == set(SEATS[1:])
    assert not all_players_have_passed(state)
