from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
import uvicorn

from .cards import Card, NUM_PLAYERS, cards_to_codes, deal_new_hands
from .config import Settings, configure_logging
from .game import (
    is_accepting_input,
    legal_moves,
    new_game,
    play_card,
    prepare_new_round,
    reset_game_for_new_game,
    start_round_with_passing_phase,
)
from .passing import (
    PASS_LABELS,
    all_players_have_passed,
    execute_pass_phase,
    mark_player_ready_for_reveal,
    submit_pass_selection,
)
from .persistence import state_to_dict
from .state import TransitionResult
from .store import Room, RoomStore

settings = Settings.from_env()
configure_logging(settings)

log = logging.getLogger(__name__)

app = FastAPI(title="Hearts")

store = RoomStore()


def _seat_list(body: Dict[str, Any], difficulty: str) -> List[Dict[str, Any]]:
    seats = body.get("seats", [])
    if not isinstance(seats, list) or len(seats) > NUM_PLAYERS:
        raise HTTPException(400, f"seats must be a list of at most {NUM_PLAYERS} entries")

    result = []
    for seat in seats:
        if isinstance(seat, str):
            seat = {"id": seat}
        if not isinstance(seat, dict) or not seat.get("id"):
            raise HTTPException(400, f"Invalid seat: {seat!r}")
        result.append(dict(seat))

    bots = 0
    while len(result) < NUM_PLAYERS:
        bots += 1
        result.append(
            {"id": f"bot-{bots}", "name": f"Bot {bots}", "is_ai": True, "difficulty": difficulty}
        )
    return result


@app.post("/api/rooms")
async def create_room(body: Dict[str, Any] = {}) -> JSONResponse:
    """Create a room and deal round 1.

    Optional body fields:
      - ``seats``: list of seat ids or ``{id, name, is_ai, difficulty}`` objects
      - ``difficulty``: difficulty for the AI seats that fill empty chairs
      - ``game_end_score``: score that ends the game
      - ``seed``: int, makes the deals and AI choices reproducible
    """
    difficulty = body.get("difficulty") or settings.default_difficulty
    game_end_score = body.get("game_end_score") or settings.game_end_score
    seed = body.get("seed")
    rng = random.Random(seed) if seed is not None else random.Random()

    try:
        state = new_game(_seat_list(body, difficulty), game_end_score=int(game_end_score))
        state = start_round_with_passing_phase(state, deal_new_hands(rng))
    except ValueError as e:
        raise HTTPException(400, str(e))

    room = store.create(state, rng=rng)
    await room.run_ai_passes()
    schedule_bot_tick(room, settings.bot_delay)
    return JSONResponse({"room_id": room.id, "version": room.version, "state": seat_view(room)})


@app.get("/api/rooms/{room_id}")
async def get_room(room_id: str) -> JSONResponse:
    room = store.get(room_id)
    if not room:
        raise HTTPException(404, "Room not found")
    return JSONResponse({"room_id": room.id, "version": room.version, "state": seat_view(room)})


@app.websocket("/ws/{room_id}/{seat_id}")
async def room_socket(websocket: WebSocket, room_id: str, seat_id: str) -> None:
    room = store.get(room_id)
    if not room:
        await websocket.close(code=1008)
        return
    index = room.state.seat_index(seat_id)
    if index is None or room.state.players[index].is_ai:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    room.connections[seat_id] = websocket
    log.info("Seat %s connected to room %s", seat_id, room.id)
    await send_state(room, seat_id)

    try:
        while True:
            data = await websocket.receive_json()
            result = await handle_action(room, seat_id, data)
            if result.error:
                await websocket.send_json({"type": "error", "error": result.error, "version": room.version})
                continue
            await broadcast_state(room)
    except WebSocketDisconnect:
        room.connections.pop(seat_id, None)
        log.info("Seat %s left room %s", seat_id, room.id)
        if not room.state.is_game_over:
            await room.end("player_left")
        await broadcast_state(room)


async def handle_action(room: Room, seat_id: str, data: Dict[str, Any]) -> TransitionResult:
    if not isinstance(data, dict):
        return TransitionResult(room.state, "Invalid message")
    action = data.get("type")
    version = data.get("version")
    state = room.state

    if state.end_reason:
        return TransitionResult(state, "Game has ended")

    if action == "pass_cards":
        try:
            cards = [Card.from_code(code) for code in data.get("cards", [])]
        except ValueError as e:
            return TransitionResult(state, str(e))
        result = await room.apply(submit_pass_selection, seat_id, cards, expected_version=version)
        if result.ok and all_players_have_passed(room.state):
            result = await room.apply(execute_pass_phase)
        if result.ok and room.state.is_playing:
            schedule_bot_tick(room, settings.bot_delay)
        return result

    if action == "ready":
        result = await room.apply(mark_player_ready_for_reveal, seat_id, expected_version=version)
        if result.ok and room.state.is_playing:
            schedule_bot_tick(room, settings.bot_delay)
        return result

    if action == "play_card":
        try:
            card = Card.from_code(data.get("card") or "")
        except ValueError as e:
            return TransitionResult(state, str(e))
        result = await room.apply(play_card, seat_id, card, expected_version=version)
        if result.ok:
            schedule_bot_tick(room, _delay_after(result))
        return result

    if action == "next_round":
        if state.is_game_over:
            return TransitionResult(state, "Game is over")
        if not state.is_round_complete:
            return TransitionResult(state, "Round not complete")
        result = await room.apply(prepare_new_round, deal_new_hands(room.rng), expected_version=version)
        return await _after_deal(room, result)

    if action == "new_game":
        if not state.is_game_over:
            return TransitionResult(state, "Game is not over")
        result = await room.apply(reset_game_for_new_game, deal_new_hands(room.rng), expected_version=version)
        return await _after_deal(room, result)

    return TransitionResult(state, f"Unknown action: {action!r}")


async def _after_deal(room: Room, result: TransitionResult) -> TransitionResult:
    if result.ok:
        await room.run_ai_passes()
        schedule_bot_tick(room, settings.bot_delay)
    return result


def _delay_after(result: TransitionResult) -> float:
    if result.state.current_trick or not result.state.tricks_played:
        return settings.bot_delay
    return settings.trick_pause


def seat_view(room: Room, seat_id: Optional[str] = None) -> Dict[str, Any]:
    """Room document as seen from one seat: other hands and passes are hidden.

    Without a seat every hand is hidden, which is what the HTTP endpoints serve.
    """
    state = room.state
    index = state.seat_index(seat_id) if seat_id is not None else None
    doc = state_to_dict(state)

    for i, player in enumerate(doc["players"]):
        player["hand_size"] = len(player["hand"])
        if i != index:
            player["hand"] = []
            doc["hands"][i] = []

    phase = doc["phase"]
    if phase["kind"] == "passing":
        phase["submitted"] = sorted(phase["submissions"])
        phase["submissions"] = {k: v for k, v in phase["submissions"].items() if k == seat_id}
    elif phase["kind"] == "revealing":
        phase["received"] = [cards if i == index else [] for i, cards in enumerate(phase["received"])]

    doc.update(
        room_id=room.id,
        version=room.version,
        your_id=seat_id,
        pass_label=PASS_LABELS[state.pass_direction],
        legal_moves=cards_to_codes(legal_moves(state, index)) if index is not None else [],
    )
    return doc


async def send_state(room: Room, seat_id: str) -> None:
    ws = room.connections.get(seat_id)
    if not ws:
        return
    await ws.send_json({"type": "state", "state": seat_view(room, seat_id)})


async def broadcast_state(room: Room) -> None:
    for seat_id in list(room.connections.keys()):
        await send_state(room, seat_id)


def schedule_bot_tick(room: Room, delay: float) -> None:
    current = asyncio.current_task()
    if room.bot_task and not room.bot_task.done() and room.bot_task is not current:
        room.bot_task.cancel()

    async def _runner() -> None:
        await asyncio.sleep(max(0.0, delay))
        # Only the sleep is cancellable; a started step always finishes its broadcast.
        await asyncio.shield(bot_step(room))

    room.bot_task = asyncio.create_task(_runner())


async def bot_step(room: Room) -> None:
    if await advance_bots(room):
        await broadcast_state(room)


async def advance_bots(room: Room) -> bool:
    """Let the AI seat on turn act once. Returns True if the state changed."""
    state = room.state
    if state.end_reason or not is_accepting_input(state):
        return False

    if state.is_passing_phase:
        result = await room.run_ai_passes()
        if result.ok and room.state.is_playing:
            schedule_bot_tick(room, settings.bot_delay)
        return result.ok and result.state is not state

    if not state.is_playing or state.current_player_index is None:
        return False
    if not state.players[state.current_player_index].is_ai:
        return False

    result = await room.play_ai_turn(state.current_player_index)
    if result.error:
        log.warning("AI turn in room %s rejected: %s", room.id, result.error)
        return False
    if result.state.is_playing:
        schedule_bot_tick(room, _delay_after(result))
    return True


def run() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
