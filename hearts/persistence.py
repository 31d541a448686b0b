"""
Game document serialization.

Converts a GameState to and from a JSON-compatible dict so a host can keep
it in a document store. Cards are written as wire codes ("QS", "TH"). The
tagged ``phase`` object is authoritative on read; the flat flags written
next to it are a convenience for readers that only want to branch on them.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

from .cards import Card, cards_from_codes, cards_to_codes
from .rules import GAME_END_SCORE, Play
from .state import (
    Dealing,
    GameOver,
    GameState,
    Passing,
    Phase,
    Player,
    Playing,
    Revealing,
    RoundComplete,
    RoundRecord,
)

SCHEMA_VERSION = 1


def _trick_to_list(trick: Iterable[Play]) -> List[Dict[str, str]]:
    return [{"player_id": play.seat_id, "card": play.card.code} for play in trick]


def _trick_from_list(items: Iterable[Dict[str, str]]) -> tuple:
    return tuple(Play(item["player_id"], Card.from_code(item["card"])) for item in items)


def _player_to_dict(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "is_ai": player.is_ai,
        "difficulty": player.difficulty,
        "hand": cards_to_codes(player.hand),
        "score": player.score,
    }


def _player_from_dict(d: Dict[str, Any]) -> Player:
    return Player(
        id=d["id"],
        name=d.get("name", d["id"]),
        is_ai=bool(d.get("is_ai", False)),
        difficulty=d.get("difficulty"),
        hand=tuple(cards_from_codes(d.get("hand", []))),
        score=int(d.get("score", 0)),
    )


def _record_to_dict(record: RoundRecord) -> Dict[str, Any]:
    return {
        "round_number": record.round_number,
        "points_taken": list(record.points_taken),
        "scores": list(record.scores),
        "shooter": record.shooter,
    }


def _record_from_dict(d: Dict[str, Any]) -> RoundRecord:
    return RoundRecord(
        round_number=int(d["round_number"]),
        points_taken=tuple(d["points_taken"]),
        scores=tuple(d["scores"]),
        shooter=d.get("shooter"),
    )


def _phase_to_dict(phase: Phase) -> Dict[str, Any]:
    if isinstance(phase, Dealing):
        return {"kind": "dealing"}
    if isinstance(phase, Passing):
        return {
            "kind": "passing",
            "submissions": {pid: cards_to_codes(cards) for pid, cards in phase.submissions.items()},
        }
    if isinstance(phase, Revealing):
        return {
            "kind": "revealing",
            "received": [cards_to_codes(cards) for cards in phase.received],
            "ready": sorted(phase.ready),
        }
    if isinstance(phase, Playing):
        return {"kind": "playing"}
    if isinstance(phase, RoundComplete):
        return {"kind": "round_complete", "shooter": phase.shooter}
    if isinstance(phase, GameOver):
        return {"kind": "game_over", "winner": phase.winner, "shooter": phase.shooter}
    raise ValueError(f"Unknown phase: {phase!r}")


def _phase_from_dict(d: Dict[str, Any]) -> Phase:
    kind = d.get("kind")
    if kind == "dealing":
        return Dealing()
    if kind == "passing":
        submissions = d.get("submissions", {})
        return Passing({pid: tuple(cards_from_codes(codes)) for pid, codes in submissions.items()})
    if kind == "revealing":
        return Revealing(
            received=tuple(tuple(cards_from_codes(codes)) for codes in d.get("received", [])),
            ready=frozenset(d.get("ready", [])),
        )
    if kind == "playing":
        return Playing()
    if kind == "round_complete":
        return RoundComplete(shooter=d.get("shooter"))
    if kind == "game_over":
        return GameOver(winner=int(d["winner"]), shooter=d.get("shooter"))
    raise ValueError(f"Unknown phase kind: {kind!r}")


def state_to_dict(state: GameState) -> Dict[str, Any]:
    """Serialize a GameState to a JSON-compatible dict."""
    return {
        "schema_version": SCHEMA_VERSION,
        "players": [_player_to_dict(p) for p in state.players],
        "hands": [cards_to_codes(hand) for hand in state.hands],
        "phase": _phase_to_dict(state.phase),
        "scores": list(state.scores),
        "round_scores": list(state.round_scores),
        "points_cards_taken": [cards_to_codes(cards) for cards in state.points_cards_taken],
        "hearts_broken": state.hearts_broken,
        "round_number": state.round_number,
        "trick_number": state.trick_number,
        "pass_direction": state.pass_direction,
        "current_trick": _trick_to_list(state.current_trick),
        "current_player_index": state.current_player_index,
        "trick_leader_index": state.trick_leader_index,
        "last_completed_trick": _trick_to_list(state.last_completed_trick),
        "last_trick_winner_index": state.last_trick_winner_index,
        "tricks_played": [_trick_to_list(trick) for trick in state.tricks_played],
        "round_history": [_record_to_dict(r) for r in state.round_history],
        "game_end_score": state.game_end_score,
        "end_reason": state.end_reason,
        "is_passing_phase": state.is_passing_phase,
        "is_reveal_phase": state.is_reveal_phase,
        "is_round_complete": state.is_round_complete,
        "is_game_over": state.is_game_over,
        "winner_index": state.winner_index,
    }


def state_from_dict(d: Dict[str, Any]) -> GameState:
    """Deserialize a GameState from a dict produced by state_to_dict."""
    version = d.get("schema_version", SCHEMA_VERSION)
    if version != SCHEMA_VERSION:
        raise ValueError(f"Unsupported schema version: {version}")
    return GameState(
        players=tuple(_player_from_dict(p) for p in d["players"]),
        phase=_phase_from_dict(d.get("phase", {"kind": "dealing"})),
        scores=tuple(d.get("scores", (0, 0, 0, 0))),
        round_scores=tuple(d.get("round_scores", (0, 0, 0, 0))),
        points_cards_taken=tuple(
            tuple(cards_from_codes(codes)) for codes in d.get("points_cards_taken", [[], [], [], []])
        ),
        hearts_broken=bool(d.get("hearts_broken", False)),
        round_number=int(d.get("round_number", 1)),
        trick_number=int(d.get("trick_number", 1)),
        pass_direction=d.get("pass_direction", "left"),
        current_trick=_trick_from_list(d.get("current_trick", [])),
        current_player_index=d.get("current_player_index"),
        trick_leader_index=d.get("trick_leader_index"),
        last_completed_trick=_trick_from_list(d.get("last_completed_trick", [])),
        last_trick_winner_index=d.get("last_trick_winner_index"),
        tricks_played=tuple(_trick_from_list(t) for t in d.get("tricks_played", [])),
        round_history=tuple(_record_from_dict(r) for r in d.get("round_history", [])),
        game_end_score=int(d.get("game_end_score", GAME_END_SCORE)),
        end_reason=d.get("end_reason"),
    )


def state_to_json(state: GameState) -> str:
    return json.dumps(state_to_dict(state))


def state_from_json(s: str) -> GameState:
    return state_from_dict(json.loads(s))


__all__ = [
    "SCHEMA_VERSION",
    "state_to_dict",
    "state_from_dict",
    "state_to_json",
    "state_from_json",
]
