from __future__ import annotations

import math
from collections import Counter
from dataclasses import replace

from .models import Room


def fake_artists_caught(room: Room) -> bool:
    """True if a fake artist is among the most-voted players (ties count)."""
    tally = Counter(room.votes.values())
    if not tally:
        return False
    top = max(tally.values())
    leaders = {pid for pid, n in tally.items() if n == top}
    return any(fa.id in leaders for fa in room.fake_artists)


def regular_award(correct_voters: int, regular_count: int) -> int:
    if correct_voters == 1:
        return 5
    if correct_voters == 2:
        return 3
    if correct_voters <= math.ceil(regular_count / 2):
        return 2
    return 1


def score_game(room: Room) -> Room:
    """Apply the end-of-vote awards and record the game in the series history.

    Fake artists get 3 if they won (someone guessed the word, or nobody
    caught them by plurality). Regular players who voted for a fake artist
    get 5/3/2/1 depending on how many others also did, +1 if the fake artists
    lost. Awards add onto the cumulative score.
    """
    fake_ids = {fa.id for fa in room.fake_artists}
    any_guessed = any(fa.guess_result is not None and fa.guess_result.is_correct for fa in room.fake_artists)
    caught = fake_artists_caught(room)
    fakes_won = any_guessed or not caught

    regulars = room.regular_players
    correct_voters = [p.id for p in regulars if room.votes.get(p.id) in fake_ids]
    per_voter = regular_award(len(correct_voters), len(regulars)) if correct_voters else 0
    if correct_voters and not fakes_won:
        per_voter += 1

    awards: dict[str, int] = {}
    players = []
    for p in room.players:
        if p.is_fake_artist:
            gained = 3 if fakes_won else 0
        elif p.id in correct_voters:
            gained = per_voter
        else:
            gained = 0
        awards[p.id] = gained
        players.append(replace(p, score=p.score + gained))

    history = room.game_history + (
        {
            "game": room.current_game,
            "word": room.word,
            "fakeArtistIds": sorted(fake_ids),
            "votes": dict(room.votes),
            "fakeArtistsCaught": caught,
            "fakeArtistsWon": fakes_won,
            "awards": awards,
        },
    )
    series_scores = {p.id: p.score for p in players}

    return replace(
        room,
        players=tuple(players),
        game_history=history,
        series_scores=series_scores,
    )
