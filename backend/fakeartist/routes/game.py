from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..game.errors import GameError, InvalidState
from ..game.models import Room
from ..game.service import GameService, room_public_state
from ..realtime.handlers import broadcast_room_closed, broadcast_room_state

bp = Blueprint("game", __name__)


def _service() -> GameService:
    return current_app.extensions["fakeartist"]


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidState("invalid_payload", "JSON object expected")
    return data


def _push(room: Room) -> None:
    socketio = current_app.extensions.get("socketio")
    if socketio is None:
        return
    try:
        broadcast_room_state(socketio, room)
    except Exception:
        current_app.logger.exception("[push-failed] room=%s", room.id)


def _push_closed(room_id: str) -> None:
    socketio = current_app.extensions.get("socketio")
    if socketio is None:
        return
    try:
        broadcast_room_closed(socketio, room_id)
    except Exception:
        current_app.logger.exception("[push-failed] room=%s", room_id)


def _room_response(room: Room):
    _push(room)
    return jsonify(room_public_state(room))


@bp.errorhandler(GameError)
def handle_game_error(exc: GameError):
    return jsonify(exc.to_dict()), exc.status


@bp.post("/game/create")
def create_room():
    data = _payload()
    room = _service().create_room(
        host_id=data.get("hostId"),
        player_name=data.get("playerName"),
        category=data.get("category"),
        turns_per_player=data.get("turnsPerPlayer"),
        total_games=data.get("totalGames"),
        avatar=data.get("avatar", "😀"),
        color=data.get("color", "#FF6B6B"),
    )
    return jsonify(room_public_state(room))


@bp.post("/game/<room_id>/join")
def join_room(room_id: str):
    data = _payload()
    room = _service().join_room(
        room_id,
        player_id=data.get("playerId"),
        player_name=data.get("playerName"),
        avatar=data.get("avatar", "😀"),
        color=data.get("color", "#FF6B6B"),
    )
    return _room_response(room)


@bp.get("/game/<room_id>")
def get_room(room_id: str):
    room = _service().get_room(room_id)
    return jsonify(room_public_state(room, viewer_id=request.args.get("playerId")))


@bp.post("/game/<room_id>/heartbeat")
def heartbeat(room_id: str):
    data = _payload()
    service = _service()
    before = service.get_room(room_id)
    room = service.heartbeat(room_id, data.get("playerId"))
    if room is not before:
        _push(room)
    return jsonify({"success": True})


@bp.post("/game/<room_id>/leave")
def leave_room(room_id: str):
    data = _payload()
    room = _service().leave_room(room_id, data.get("playerId"))
    if room is None:
        _push_closed(room_id)
        return jsonify({"roomClosed": True, "message": "Room closed by host"})
    return _room_response(room)


@bp.post("/game/<room_id>/start")
def start_game(room_id: str):
    data = _payload()
    return _room_response(_service().start_game(room_id, data.get("playerId")))


@bp.post("/game/<room_id>/update-settings")
def update_settings(room_id: str):
    data = _payload()
    room = _service().update_settings(
        room_id,
        data.get("playerId"),
        category=data.get("category"),
        turns_per_player=data.get("turnsPerPlayer"),
        total_games=data.get("totalGames"),
    )
    return _room_response(room)


@bp.post("/game/<room_id>/draw")
def draw(room_id: str):
    data = _payload()
    return _room_response(_service().draw(room_id, data.get("playerId"), data.get("points")))


@bp.post("/game/<room_id>/next-turn")
def next_turn(room_id: str):
    data = _payload()
    return _room_response(_service().next_turn(room_id, data.get("playerId")))


@bp.post("/game/<room_id>/vote")
def vote(room_id: str):
    data = _payload()
    return _room_response(_service().vote(room_id, data.get("playerId"), data.get("voteFor")))


@bp.post("/game/<room_id>/guess-word")
def guess_word(room_id: str):
    data = _payload()
    return _room_response(_service().guess_word(room_id, data.get("playerId"), data.get("guess")))


@bp.post("/game/<room_id>/reset")
def reset_game(room_id: str):
    data = _payload()
    return _room_response(_service().reset_game(room_id, data.get("playerId")))


@bp.post("/game/<room_id>/kick-player")
def kick_player(room_id: str):
    data = _payload()
    room = _service().kick_player(room_id, data.get("hostId"), data.get("playerIdToKick"))
    return _room_response(room)
