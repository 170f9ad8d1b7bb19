"""Room state machine: lobby -> drawing -> voting -> results -> lobby.

Every function here is a pure transition ``Room -> Room``. All precondition
checks run before any new state is built, so a raised ``GameError`` means
nothing changed. Callers (the service) hold the room lock around the call and
commit the returned snapshot.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any

from .errors import Forbidden, InvalidState, NotFound, player_not_found
from .matcher import check_word_guess
from .models import Player, Room
from .scoring import score_game
from .series import reset_for_next_game
from .words import is_valid_category, pick_word


SETTINGS_MIN = 1
SETTINGS_MAX = 20

# Oldest points are dropped past this many entries.
DRAWING_DATA_LIMIT = 10_000


def new_room(
    room_id: str,
    host_id: str,
    category: str,
    word: str,
    turns_per_player: int = 2,
    total_games: int = 3,
    max_players: int = 12,
    turn_time_limit: int = 15,
) -> Room:
    return Room(
        id=room_id,
        host_id=host_id,
        category=category,
        word=word,
        turns_per_player=turns_per_player,
        total_games=total_games,
        max_players=max_players,
        turn_time_limit=turn_time_limit,
        used_words=(word,),
    )


def validate_settings(
    category: str | None = None,
    turns_per_player: int | None = None,
    total_games: int | None = None,
) -> None:
    if category is not None and not is_valid_category(category):
        raise InvalidState("invalid_category", f"Unknown category: {category}")
    for name, value in (("turnsPerPlayer", turns_per_player), ("totalGames", total_games)):
        if value is None:
            continue
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidState("invalid_settings", f"{name} must be an integer")
        if value < SETTINGS_MIN or value > SETTINGS_MAX:
            raise InvalidState("invalid_settings", f"{name} must be between {SETTINGS_MIN} and {SETTINGS_MAX}")


def _with_player(room: Room, player: Player) -> Room:
    players = tuple(player if p.id == player.id else p for p in room.players)
    return replace(room, players=players)


def _require_player(room: Room, player_id: str) -> Player:
    player = room.find_player(player_id)
    if player is None:
        raise player_not_found(player_id)
    return player


def _require_host(room: Room, actor_id: str, action: str) -> Player:
    player = room.find_player(actor_id)
    if player is None or not player.is_host:
        raise Forbidden("only_host", f"Only host can {action}")
    return player


def _require_phase(room: Room, phase: str, code: str) -> None:
    if room.game_phase != phase:
        raise InvalidState(code, f"Room is in {room.game_phase} phase, expected {phase}")


# -- lobby ---------------------------------------------------------------


def join(room: Room, player_id: str, name: str, avatar: str, color: str) -> Room:
    if len(room.players) >= room.max_players:
        raise InvalidState("room_full", "Room is full")

    others = [p for p in room.players if p.id != player_id]
    if any(p.name == name for p in others):
        raise InvalidState("name_taken", "Name already taken")
    if any(p.avatar == avatar for p in others):
        raise InvalidState("avatar_taken", "Avatar already taken")
    if any(p.color == color for p in others):
        raise InvalidState("color_taken", "Color already taken")

    existing = room.find_player(player_id)
    if existing is not None:
        # Rejoin keeps role, score and host flag.
        updated = replace(existing, name=name, avatar=avatar, color=color, is_disconnected=False)
        return _with_player(room, updated)

    player = Player(
        id=player_id,
        name=name,
        avatar=avatar,
        color=color,
        is_host=room.host_id == player_id,
    )
    return replace(room, players=room.players + (player,))


def update_settings(
    room: Room,
    actor_id: str,
    rng: random.Random,
    category: str | None = None,
    turns_per_player: int | None = None,
    total_games: int | None = None,
) -> Room:
    _require_host(room, actor_id, "update settings")
    if room.current_game > 1:
        raise InvalidState("series_in_progress", "Cannot change settings during active series")
    _require_phase(room, "lobby", "settings_locked")
    validate_settings(category, turns_per_player, total_games)

    changes: dict[str, Any] = {}
    if category is not None:
        word = pick_word(category, rng)
        changes.update(category=category, word=word, used_words=(word,))
    if turns_per_player is not None:
        changes["turns_per_player"] = turns_per_player
    if total_games is not None:
        changes["total_games"] = total_games
    return replace(room, **changes)


def start_game(room: Room, actor_id: str, rng: random.Random, now: int, min_players: int = 3) -> Room:
    """Assign fake artists and open the drawing phase.

    Fake artists are the first 1 (2 with ten or more players) entries of a
    uniform random permutation of player indices.
    """
    _require_host(room, actor_id, "start game")
    _require_phase(room, "lobby", "not_in_lobby")
    if len(room.players) < min_players:
        raise InvalidState("not_enough_players", f"Need at least {min_players} players")

    num_fake = 2 if len(room.players) >= 10 else 1
    indices = list(range(len(room.players)))
    rng.shuffle(indices)
    chosen = set(indices[:num_fake])

    players = tuple(
        replace(
            p,
            is_fake_artist=i in chosen,
            has_voted=False,
            has_guessed=False,
            word_guess=None,
            guess_result=None,
        )
        for i, p in enumerate(room.players)
    )

    return replace(
        room,
        players=players,
        game_phase="drawing",
        current_turn=0,
        completed_turns=0,
        current_turn_start_time=now,
        votes={},
    )


# -- drawing -------------------------------------------------------------


def draw(room: Room, actor_id: str, points: list, limit: int = DRAWING_DATA_LIMIT) -> Room:
    _require_phase(room, "drawing", "not_in_drawing_phase")
    current = room.current_player
    if current is None or current.id != actor_id:
        raise Forbidden("not_your_turn", "Not your turn")
    data = room.drawing_data + tuple(points)
    if len(data) > limit:
        data = data[-limit:]
    return replace(room, drawing_data=data)


def next_turn(room: Room, actor_id: str, now: int) -> Room:
    _require_phase(room, "drawing", "not_in_drawing_phase")
    current = room.current_player
    actor = room.find_player(actor_id)
    is_current = current is not None and current.id == actor_id
    if not is_current and (actor is None or not actor.is_host):
        raise Forbidden("not_authorized", "Not authorized")

    completed = room.completed_turns + 1
    room = replace(
        room,
        completed_turns=completed,
        current_turn=(room.current_turn + 1) % len(room.players),
        current_turn_start_time=now,
    )
    if completed >= room.total_turns_needed:
        room = replace(room, game_phase="voting")
    return room


def turn_expired(room: Room, now: int) -> bool:
    if room.game_phase != "drawing" or not room.current_turn_start_time:
        return False
    return now - room.current_turn_start_time >= room.turn_time_limit * 1000


# -- voting --------------------------------------------------------------


def voting_complete(room: Room) -> bool:
    """All regular players have a vote in and every fake artist has guessed."""
    regular_ids = {p.id for p in room.regular_players}
    voters = {voter for voter in room.votes if voter in regular_ids}
    all_guessed = all(fa.has_guessed for fa in room.fake_artists)
    return len(voters) == len(regular_ids) and all_guessed


def resolve_voting(room: Room) -> Room:
    if room.game_phase != "voting" or not voting_complete(room):
        return room
    return replace(score_game(room), game_phase="results")


def vote(room: Room, voter_id: str, target_id: str) -> Room:
    _require_phase(room, "voting", "not_in_voting_phase")
    voter = _require_player(room, voter_id)
    if room.find_player(target_id) is None:
        raise NotFound("target_not_found", f"Player not found: {target_id}")

    votes = dict(room.votes)
    votes[voter_id] = target_id
    room = replace(_with_player(room, replace(voter, has_voted=True)), votes=votes)
    return resolve_voting(room)


def guess_word(room: Room, player_id: str, guess: str) -> Room:
    _require_phase(room, "voting", "not_in_voting_phase")
    player = _require_player(room, player_id)
    if not player.is_fake_artist:
        raise Forbidden("not_fake_artist", "Only fake artist can guess the word")

    result = check_word_guess(guess, room.word)
    updated = replace(player, has_guessed=True, word_guess=guess, guess_result=result)
    return resolve_voting(_with_player(room, updated))


# -- membership ----------------------------------------------------------


def remove_player(room: Room, player_id: str, now: int) -> Room:
    """Drop a player and repair everything that pointed at them.

    Votes cast by or for the player go away (voters who lose their target
    must vote again), the turn pointer stays inside the shorter rotation and
    a voting round that is now complete gets scored.
    """
    idx = room.index_of(player_id)
    if idx < 0:
        return room

    players = room.players[:idx] + room.players[idx + 1:]

    votes = {}
    revoked = set()
    for voter, target in room.votes.items():
        if voter == player_id:
            continue
        if target == player_id:
            revoked.add(voter)
            continue
        votes[voter] = target
    if revoked:
        players = tuple(replace(p, has_voted=False) if p.id in revoked else p for p in players)

    room = replace(room, players=players, votes=votes)

    if room.game_phase == "drawing":
        current_turn = room.current_turn
        turn_start = room.current_turn_start_time
        if not players:
            current_turn = 0
        elif idx < current_turn:
            current_turn -= 1
        elif idx == current_turn:
            current_turn = current_turn % len(players)
            turn_start = now
        room = replace(room, current_turn=current_turn, current_turn_start_time=turn_start)

    needed = room.total_turns_needed
    if room.completed_turns > needed:
        room = replace(room, completed_turns=needed)
    if room.game_phase == "drawing" and players and room.completed_turns >= needed:
        room = replace(room, game_phase="voting")

    return resolve_voting(room)


def kick(room: Room, actor_id: str, target_id: str, now: int) -> Room:
    _require_host(room, actor_id, "kick players")
    target = _require_player(room, target_id)
    if target.is_host:
        raise InvalidState("cannot_kick_host", "Cannot kick the host")
    return remove_player(room, target_id, now)


def leave(room: Room, player_id: str, now: int) -> Room | None:
    """Remove a leaving player; ``None`` means the host left and the room closes."""
    player = _require_player(room, player_id)
    if player.is_host:
        return None
    return remove_player(room, player_id, now)


def set_disconnected(room: Room, player_id: str, disconnected: bool) -> Room:
    player = room.find_player(player_id)
    if player is None or player.is_disconnected == disconnected:
        return room
    return _with_player(room, replace(player, is_disconnected=disconnected))


def reset(room: Room, actor_id: str, rng: random.Random) -> Room:
    _require_host(room, actor_id, "reset game")
    return reset_for_next_game(room, rng)
