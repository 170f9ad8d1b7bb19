from __future__ import annotations

import random
from typing import Iterable


CATEGORIES: dict[str, list[str]] = {
    "animals": [
        "Cat", "Dog", "Elephant", "Lion", "Tiger", "Bear", "Monkey", "Giraffe",
        "Zebra", "Penguin", "Dolphin", "Shark", "Eagle", "Owl", "Butterfly",
        "Spider", "Ant", "Bee", "Rabbit", "Fox", "Wolf", "Deer", "Horse", "Cow",
    ],
    "famous-people": [
        "Einstein", "Leonardo da Vinci", "Napoleon", "Cleopatra", "Shakespeare",
        "Mozart", "Beethoven", "Picasso", "Gandhi", "Lincoln", "Washington",
        "Churchill", "Tesla", "Edison", "Jobs", "Gates", "Chaplin", "Monroe",
    ],
    "movies": [
        "Titanic", "Avatar", "Star Wars", "Batman", "Superman", "Spider-Man",
        "Iron Man", "Avengers", "Frozen", "Shrek", "Toy Story", "Finding Nemo",
        "The Lion King", "Jurassic Park", "E.T.", "Jaws", "Rocky", "Terminator",
    ],
    "countries": [
        "France", "Italy", "Japan", "Brazil", "Australia", "Canada", "Germany",
        "Russia", "India", "China", "Mexico", "Egypt", "Greece", "Spain",
        "Norway", "Sweden", "Netherlands", "Switzerland", "Argentina", "Chile",
    ],
    "food": [
        "Pizza", "Burger", "Sushi", "Pasta", "Sandwich", "Salad", "Cake",
        "Ice Cream", "Donut", "Cookie", "Apple", "Banana", "Orange", "Grape",
        "Strawberry", "Chocolate", "Cheese", "Bread", "Rice", "Chicken",
    ],
    "objects": [
        "Car", "House", "Tree", "Flower", "Sun", "Moon", "Star", "Cloud",
        "Mountain", "River", "Bridge", "Castle", "Tower", "Clock", "Phone",
        "Computer", "Book", "Pen", "Chair", "Table", "Cup", "Bottle", "Key",
    ],
}


def is_valid_category(category: str, categories: dict[str, list[str]] | None = None) -> bool:
    cats = CATEGORIES if categories is None else categories
    return bool(cats.get(category))


def pick_word(
    category: str,
    rng: random.Random,
    avoid: Iterable[str] = (),
    current: str | None = None,
    categories: dict[str, list[str]] | None = None,
) -> str:
    """Uniformly pick a word from ``category``.

    Prefers words outside ``avoid`` other than ``current``; when every word
    has been used, any word other than ``current``; a single-word category
    returns that word.
    """
    cats = CATEGORIES if categories is None else categories
    words = cats.get(category) or []
    if not words:
        raise KeyError(category)

    avoid_set = set(avoid)
    fresh = [w for w in words if w not in avoid_set and w != current]
    if fresh:
        return rng.choice(fresh)

    others = [w for w in words if w != current]
    if others:
        return rng.choice(others)

    return words[0]
