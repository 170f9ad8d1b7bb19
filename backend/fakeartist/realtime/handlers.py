from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.errors import GameError
from ..game.models import Room
from ..game.service import GameService, room_public_state


logger = logging.getLogger(__name__)


def broadcast_room_state(socketio: SocketIO, room: Room) -> None:
    socketio.emit("room:state", room_public_state(room), to=room.id)


def broadcast_room_closed(socketio: SocketIO, room_id: str) -> None:
    socketio.emit("room:closed", {"roomId": room_id}, to=room_id)
    socketio.close_room(room_id)


def register_socketio_handlers(socketio: SocketIO, service: GameService) -> None:
    @socketio.on("room:subscribe")
    def room_subscribe(data):
        payload = data or {}
        room_id = str(payload.get("roomId", "")).strip()
        viewer_id = str(payload.get("playerId", "")).strip() or None
        if not room_id:
            emit("room:error", {"error": "invalid_payload"})
            return {"ok": False, "error": "invalid_payload"}

        try:
            room = service.get_room(room_id)
        except GameError as exc:
            emit("room:error", {"error": exc.code})
            return {"ok": False, "error": exc.code}

        join_room(room_id)
        logger.debug("[subscribe] room=%s sid=%s player=%s", room_id, request.sid, viewer_id)
        return {"ok": True, "room": room_public_state(room, viewer_id=viewer_id)}

    @socketio.on("room:unsubscribe")
    def room_unsubscribe(data):
        payload = data or {}
        room_id = str(payload.get("roomId", "")).strip()
        if not room_id:
            return {"ok": False, "error": "invalid_payload"}
        leave_room(room_id)
        return {"ok": True}

    @socketio.on("player:heartbeat")
    def player_heartbeat(data):
        payload = data or {}
        room_id = str(payload.get("roomId", "")).strip()
        player_id = str(payload.get("playerId", "")).strip()
        if not room_id or not player_id:
            return {"ok": False, "error": "invalid_payload"}

        try:
            before = service.get_room(room_id)
            room = service.heartbeat(room_id, player_id)
        except GameError as exc:
            return {"ok": False, "error": exc.code}

        # A heartbeat can bring a disconnected host back.
        if room is not before:
            broadcast_room_state(socketio, room)
        return {"ok": True}


def _safe_broadcast(socketio: SocketIO, service: GameService, room_id: str) -> None:
    try:
        room = service.registry.find(room_id)
        if room is not None:
            broadcast_room_state(socketio, room)
    except Exception:
        logger.exception("[push-failed] room=%s", room_id)


def _safe_broadcast_closed(socketio: SocketIO, room_id: str) -> None:
    try:
        broadcast_room_closed(socketio, room_id)
    except Exception:
        logger.exception("[push-failed] room=%s", room_id)


def background_tick(
    socketio: SocketIO,
    service: GameService,
    now: int,
    sweep: bool = True,
    auto_advance_turns: bool = False,
) -> None:
    """One pass of the background loop. Never raises."""
    if auto_advance_turns:
        try:
            advanced = service.advance_expired_turns(now)
        except Exception:
            logger.exception("[turn-timeout-failed]")
            advanced = []
        for room_id in advanced:
            _safe_broadcast(socketio, service, room_id)

    if not sweep:
        return

    try:
        report = service.sweep(now)
    except GameError:
        return

    for room_id in report.closed_rooms:
        _safe_broadcast_closed(socketio, room_id)
    for room_id in report.updated_rooms:
        _safe_broadcast(socketio, service, room_id)


def start_background_loop(
    socketio: SocketIO,
    service: GameService,
    sweep_interval_sec: float = 30,
    auto_advance_turns: bool = False,
):
    """Run the presence sweep (and optionally turn timeouts) forever.

    Rooms touched by the sweep get a fresh ``room:state``; torn-down rooms get
    ``room:closed``.
    """
    tick = 1.0 if auto_advance_turns else float(sweep_interval_sec)
    sweep_every_ms = int(sweep_interval_sec * 1000)

    def _runner() -> None:
        last_sweep = service.clock()
        while True:
            socketio.sleep(tick)
            now = service.clock()
            due = now - last_sweep >= sweep_every_ms
            if due:
                last_sweep = now
            background_tick(socketio, service, now, sweep=due, auto_advance_turns=auto_advance_turns)

    logger.info(
        "[background-start] sweep_every=%ss auto_advance=%s", sweep_interval_sec, auto_advance_turns
    )
    return socketio.start_background_task(_runner)
