from __future__ import annotations

import random
from dataclasses import replace

from .models import Room
from .words import pick_word


def _clear_game_fields(room: Room, zero_scores: bool) -> tuple:
    return tuple(
        replace(
            p,
            is_fake_artist=False,
            has_voted=False,
            has_guessed=False,
            word_guess=None,
            guess_result=None,
            score=0 if zero_scores else p.score,
        )
        for p in room.players
    )


def is_series_complete(room: Room) -> bool:
    return room.current_game >= room.total_games or room.total_games == 1


def reset_for_next_game(room: Room, rng: random.Random) -> Room:
    """Return the room to the lobby for the next game of the series.

    A finished series (or a single-game one) starts over: game counter back
    to 1, history and used words cleared, every score zeroed. Otherwise the
    counter moves on and scores carry over.
    """
    new_series = is_series_complete(room)

    if new_series:
        current_game = 1
        used_words: tuple[str, ...] = ()
        series_scores: dict[str, int] = {}
        history: tuple[dict, ...] = ()
    else:
        current_game = room.current_game + 1
        used_words = room.used_words
        series_scores = dict(room.series_scores)
        history = room.game_history

    word = pick_word(room.category, rng, avoid=used_words, current=room.word)
    if word not in used_words:
        used_words = used_words + (word,)

    return replace(
        room,
        players=_clear_game_fields(room, zero_scores=new_series),
        game_phase="lobby",
        current_turn=0,
        completed_turns=0,
        current_turn_start_time=0,
        drawing_data=(),
        votes={},
        word=word,
        current_game=current_game,
        used_words=used_words,
        series_scores=series_scores,
        game_history=history,
    )
