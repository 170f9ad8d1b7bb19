from __future__ import annotations

import logging
import random
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping

from . import state
from .errors import GameError, InternalError, InvalidState, player_not_found
from .models import Player, Room
from .presence import PresenceTracker, SweepReport
from .registry import RoomRegistry
from .words import pick_word


logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def _require_text(value: Any, field: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise InvalidState("invalid_payload", f"{field} is required")
    return text


class GameService:
    """Command boundary for every room-affecting operation.

    Each command locates the room, runs one pure transition from
    ``state`` under the room lock, commits the new snapshot and returns it.
    ``GameError`` subclasses pass through untouched; anything else is logged
    and re-raised as ``InternalError`` with the committed state left as is.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
        presence_timeout_sec: int = 90,
        max_players: int = 12,
        min_players: int = 3,
        turn_time_limit: int = 15,
        default_turns_per_player: int = 2,
        default_total_games: int = 3,
    ) -> None:
        self.rng = rng or random.Random()
        self.clock = clock or now_ms
        self.registry = RoomRegistry(rng=self.rng)
        self.presence = PresenceTracker(timeout_ms=presence_timeout_sec * 1000)
        self.max_players = max_players
        self.min_players = min_players
        self.turn_time_limit = turn_time_limit
        self.default_turns_per_player = default_turns_per_player
        self.default_total_games = default_total_games

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs) -> "GameService":
        return cls(
            presence_timeout_sec=int(config.get("PRESENCE_TIMEOUT_SEC", 90)),
            max_players=int(config.get("MAX_PLAYERS", 12)),
            min_players=int(config.get("MIN_PLAYERS", 3)),
            turn_time_limit=int(config.get("TURN_TIME_LIMIT_SEC", 15)),
            default_turns_per_player=int(config.get("DEFAULT_TURNS_PER_PLAYER", 2)),
            default_total_games=int(config.get("DEFAULT_TOTAL_GAMES", 3)),
            **kwargs,
        )

    @contextmanager
    def _boundary(self, action: str, room_id: str | None) -> Iterator[None]:
        try:
            yield
        except GameError as exc:
            logger.info("[%s-rejected] room=%s error=%s", action, room_id, exc.code)
            raise
        except Exception as exc:
            logger.exception("[%s-failed] room=%s", action, room_id)
            raise InternalError("internal_error", f"Failed to {action.replace('-', ' ')}") from exc

    def _apply(self, action: str, room_id: str, transition: Callable[[Room], Room]) -> Room:
        with self._boundary(action, room_id):
            with self.registry.transact(room_id) as tx:
                before = tx.room
                tx.room = transition(before)
                self._log_phase_change(before, tx.room)
                return tx.room

    def _log_phase_change(self, before: Room, after: Room) -> None:
        if before.game_phase == after.game_phase:
            return
        logger.info(
            "[phase] room=%s %s -> %s game=%d/%d",
            after.id, before.game_phase, after.game_phase, after.current_game, after.total_games,
        )
        if after.game_phase == "results" and after.game_history:
            summary = after.game_history[-1]
            logger.info(
                "[game-results] room=%s word=%s caught=%s fake_won=%s awards=%s",
                after.id, summary["word"], summary["fakeArtistsCaught"], summary["fakeArtistsWon"], summary["awards"],
            )

    # -- room lifecycle ------------------------------------------------------

    def create_room(
        self,
        host_id: str,
        player_name: str,
        category: str,
        turns_per_player: int | None = None,
        total_games: int | None = None,
        avatar: str = "😀",
        color: str = "#FF6B6B",
    ) -> Room:
        with self._boundary("create-room", None):
            host_id = _require_text(host_id, "hostId")
            player_name = _require_text(player_name, "playerName")
            category = category if isinstance(category, str) else ""
            tpp = self.default_turns_per_player if turns_per_player is None else turns_per_player
            games = self.default_total_games if total_games is None else total_games
            state.validate_settings(category=category, turns_per_player=tpp, total_games=games)

            room = self.registry.create(
                host_id,
                category,
                tpp,
                games,
                word=pick_word(category, self.rng),
                setup=lambda r: state.join(r, host_id, player_name, avatar, color),
                max_players=self.max_players,
                turn_time_limit=self.turn_time_limit,
            )
            self.presence.touch(host_id, room.id, True, self.clock())
            logger.info(
                "[room-create] room=%s host=%s category=%s turns=%d games=%d",
                room.id, host_id, category, tpp, games,
            )
            return room

    def get_room(self, room_id: str) -> Room:
        return self.registry.get(room_id)

    def join_room(
        self,
        room_id: str,
        player_id: str,
        player_name: str,
        avatar: str = "😀",
        color: str = "#FF6B6B",
    ) -> Room:
        with self._boundary("join", room_id):
            player_id = _require_text(player_id, "playerId")
            player_name = _require_text(player_name, "playerName")
            with self.registry.transact(room_id) as tx:
                rejoin = tx.room.find_player(player_id) is not None
                tx.room = state.join(tx.room, player_id, player_name, avatar, color)
                player = tx.room.find_player(player_id)
                self.presence.touch(player_id, room_id, player.is_host, self.clock())
                logger.info(
                    "[%s] room=%s player=%s name=%s players=%d",
                    "rejoin" if rejoin else "join", room_id, player_id, player_name, len(tx.room.players),
                )
                return tx.room

    def heartbeat(self, room_id: str, player_id: str) -> Room:
        with self._boundary("heartbeat", room_id):
            with self.registry.transact(room_id) as tx:
                player = tx.room.find_player(player_id)
                if player is None:
                    raise player_not_found(player_id)
                if player.is_disconnected:
                    tx.room = state.set_disconnected(tx.room, player_id, False)
                    logger.info("[reconnect] room=%s player=%s", room_id, player_id)
                is_new = self.presence.touch(player_id, room_id, player.is_host, self.clock())
                if is_new:
                    logger.info("[heartbeat-start] room=%s player=%s host=%s", room_id, player_id, player.is_host)
                else:
                    logger.debug("[heartbeat] room=%s player=%s", room_id, player_id)
                return tx.room

    def leave_room(self, room_id: str, player_id: str) -> Room | None:
        """Returns the updated room, or ``None`` when the host left and closed it."""
        with self._boundary("leave", room_id):
            with self.registry.transact(room_id) as tx:
                updated = state.leave(tx.room, player_id, self.clock())
                if updated is None:
                    tx.delete()
                    self.presence.forget_room(room_id)
                    logger.info("[room-close] room=%s host=%s left", room_id, player_id)
                    return None
                self._log_phase_change(tx.room, updated)
                tx.room = updated
                self.presence.forget(player_id, room_id)
                logger.info("[leave] room=%s player=%s remaining=%d", room_id, player_id, len(updated.players))
                return updated

    def kick_player(self, room_id: str, host_id: str, target_id: str) -> Room:
        with self._boundary("kick", room_id):
            with self.registry.transact(room_id) as tx:
                updated = state.kick(tx.room, host_id, target_id, self.clock())
                self._log_phase_change(tx.room, updated)
                tx.room = updated
                self.presence.forget(target_id, room_id)
                logger.info("[kick] room=%s player=%s remaining=%d", room_id, target_id, len(updated.players))
                return updated

    def delete_room(self, room_id: str) -> bool:
        deleted = self.registry.delete(room_id)
        if deleted:
            self.presence.forget_room(room_id)
        return deleted

    # -- game flow -----------------------------------------------------------

    def update_settings(
        self,
        room_id: str,
        player_id: str,
        category: str | None = None,
        turns_per_player: int | None = None,
        total_games: int | None = None,
    ) -> Room:
        room = self._apply(
            "update-settings",
            room_id,
            lambda r: state.update_settings(
                r,
                player_id,
                self.rng,
                category=category,
                turns_per_player=turns_per_player,
                total_games=total_games,
            ),
        )
        logger.info(
            "[settings] room=%s category=%s turns=%d games=%d",
            room_id, room.category, room.turns_per_player, room.total_games,
        )
        return room

    def start_game(self, room_id: str, player_id: str) -> Room:
        return self._apply(
            "start",
            room_id,
            lambda r: state.start_game(r, player_id, self.rng, self.clock(), min_players=self.min_players),
        )

    def draw(self, room_id: str, player_id: str, points: list) -> Room:
        if not isinstance(points, list):
            raise InvalidState("invalid_payload", "points must be a list")
        return self._apply("draw", room_id, lambda r: state.draw(r, player_id, points))

    def next_turn(self, room_id: str, player_id: str) -> Room:
        room = self._apply("next-turn", room_id, lambda r: state.next_turn(r, player_id, self.clock()))
        logger.info(
            "[next-turn] room=%s turn=%d completed=%d/%d",
            room_id, room.current_turn, room.completed_turns, room.total_turns_needed,
        )
        return room

    def vote(self, room_id: str, player_id: str, vote_for: str) -> Room:
        return self._apply("vote", room_id, lambda r: state.vote(r, player_id, vote_for))

    def guess_word(self, room_id: str, player_id: str, guess: str) -> Room:
        if not isinstance(guess, str):
            raise InvalidState("invalid_payload", "guess must be a string")
        return self._apply("guess-word", room_id, lambda r: state.guess_word(r, player_id, guess))

    def reset_game(self, room_id: str, player_id: str) -> Room:
        return self._apply("reset", room_id, lambda r: state.reset(r, player_id, self.rng))

    # -- background ----------------------------------------------------------

    def sweep(self, now: int | None = None) -> SweepReport:
        with self._boundary("presence-sweep", None):
            return self.presence.sweep(self.registry, self.clock() if now is None else now)

    def advance_expired_turns(self, now: int | None = None) -> list[str]:
        """Advance every drawing turn whose time limit has elapsed."""
        now = self.clock() if now is None else now
        advanced = []
        for room in self.registry.list_rooms():
            if not state.turn_expired(room, now):
                continue
            try:
                with self.registry.transact(room.id) as tx:
                    current = tx.room.current_player
                    if current is None or not state.turn_expired(tx.room, now):
                        continue
                    before = tx.room
                    tx.room = state.next_turn(before, current.id, now)
                    self._log_phase_change(before, tx.room)
                    advanced.append(room.id)
                    logger.info("[turn-timeout] room=%s player=%s", room.id, current.id)
            except GameError as exc:
                logger.info("[turn-timeout-skipped] room=%s error=%s", room.id, exc.code)
        return advanced


def _player_public_state(p: Player) -> dict:
    result = None
    if p.guess_result is not None:
        result = {
            "isCorrect": p.guess_result.is_correct,
            "confidence": p.guess_result.confidence,
            "reason": p.guess_result.reason,
        }
    return {
        "id": p.id,
        "name": p.name,
        "avatar": p.avatar,
        "color": p.color,
        "isHost": p.is_host,
        "isFakeArtist": p.is_fake_artist,
        "hasVoted": p.has_voted,
        "hasGuessed": p.has_guessed,
        "wordGuess": p.word_guess,
        "guessResult": result,
        "score": p.score,
        "isDisconnected": p.is_disconnected,
    }


def room_public_state(room: Room, viewer_id: str | None = None) -> dict:
    """Full camelCase snapshot of a room.

    With ``viewer_id`` set to a fake artist, the secret word is withheld
    until results.
    """
    payload = {
        "id": room.id,
        "hostId": room.host_id,
        "players": [_player_public_state(p) for p in room.players],
        "category": room.category,
        "word": room.word,
        "currentTurn": room.current_turn,
        "gamePhase": room.game_phase,
        "drawingData": list(room.drawing_data),
        "maxPlayers": room.max_players,
        "turnTimeLimit": room.turn_time_limit,
        "currentTurnStartTime": room.current_turn_start_time,
        "votes": dict(room.votes),
        "turnsPerPlayer": room.turns_per_player,
        "completedTurns": room.completed_turns,
        "totalGames": room.total_games,
        "currentGame": room.current_game,
        "usedWords": list(room.used_words),
        "seriesScores": dict(room.series_scores),
        "gameHistory": list(room.game_history),
    }

    if viewer_id and room.game_phase in ("drawing", "voting"):
        viewer = room.find_player(viewer_id)
        if viewer is not None and viewer.is_fake_artist:
            payload["word"] = None

    return payload
