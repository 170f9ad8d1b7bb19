from __future__ import annotations


class GameError(Exception):
    """Base class for every command failure.

    ``code`` is the machine-readable error string sent to clients
    (``{"error": code}``), ``status`` the HTTP status the routes use.
    """

    status = 500
    code = "error"

    def __init__(self, code: str | None = None, message: str = "") -> None:
        if code:
            self.code = code
        self.message = message or self.code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class NotFound(GameError):
    status = 404
    code = "not_found"


class Forbidden(GameError):
    status = 403
    code = "forbidden"


class InvalidState(GameError):
    status = 400
    code = "invalid_state"


class InternalError(GameError):
    status = 500
    code = "internal_error"


def room_not_found(room_id: str) -> NotFound:
    return NotFound("room_not_found", f"Room not found: {room_id}")


def player_not_found(player_id: str) -> NotFound:
    return NotFound("player_not_found", f"Player not found: {player_id}")
