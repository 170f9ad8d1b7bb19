from __future__ import annotations

from .models import GuessResult


def _normalize_text(text: str) -> str:
    return (text or "").strip().lower()


def check_word_guess(guess: str, word: str) -> GuessResult:
    """Score a fake artist's guess against the secret word.

    Exact (case/whitespace-insensitive) matches score 1.0; when either string
    contains the other the guess still counts, at 0.8.
    """
    g = _normalize_text(guess)
    w = _normalize_text(word)

    if not g or not w:
        return GuessResult(is_correct=False, confidence=0.0, reason="No match")

    if g == w:
        return GuessResult(is_correct=True, confidence=1.0, reason="Exact match")

    if w in g or g in w:
        return GuessResult(is_correct=True, confidence=0.8, reason="Partial match")

    return GuessResult(is_correct=False, confidence=0.0, reason="No match")
