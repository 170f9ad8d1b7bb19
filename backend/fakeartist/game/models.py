from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


GamePhase = Literal["lobby", "drawing", "voting", "results"]


@dataclass(frozen=True)
class GuessResult:
    is_correct: bool
    confidence: float
    reason: str


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    avatar: str = "😀"
    color: str = "#FF6B6B"
    is_host: bool = False
    is_fake_artist: bool = False
    has_voted: bool = False
    has_guessed: bool = False
    word_guess: str | None = None
    guess_result: GuessResult | None = None
    score: int = 0
    is_disconnected: bool = False


@dataclass(frozen=True)
class Room:
    """Immutable room snapshot.

    Transitions never mutate a Room; they build a new one with
    ``dataclasses.replace`` and the registry swaps it in under the room lock.
    Container fields are treated as read-only by every caller.
    """

    id: str
    host_id: str
    category: str
    word: str
    players: tuple[Player, ...] = ()
    current_turn: int = 0
    game_phase: GamePhase = "lobby"
    drawing_data: tuple[Any, ...] = ()
    max_players: int = 12
    turn_time_limit: int = 15
    current_turn_start_time: int = 0
    votes: dict[str, str] = field(default_factory=dict)
    turns_per_player: int = 2
    completed_turns: int = 0
    total_games: int = 3
    current_game: int = 1
    used_words: tuple[str, ...] = ()
    series_scores: dict[str, int] = field(default_factory=dict)
    game_history: tuple[dict, ...] = ()

    def find_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def index_of(self, player_id: str) -> int:
        for i, p in enumerate(self.players):
            if p.id == player_id:
                return i
        return -1

    @property
    def current_player(self) -> Player | None:
        if 0 <= self.current_turn < len(self.players):
            return self.players[self.current_turn]
        return None

    @property
    def fake_artists(self) -> list[Player]:
        return [p for p in self.players if p.is_fake_artist]

    @property
    def regular_players(self) -> list[Player]:
        return [p for p in self.players if not p.is_fake_artist]

    @property
    def total_turns_needed(self) -> int:
        return len(self.players) * self.turns_per_player
