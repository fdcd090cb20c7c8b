from __future__ import annotations

import random
from typing import Sequence

from .constants import FALLBACK_WORD


DEFAULT_WORDS: tuple[str, ...] = (
    "Apple", "Anchor", "Balloon", "Bridge", "Candle", "Castle", "Cloud", "Compass",
    "Desert", "Dragon", "Engine", "Feather", "Forest", "Galaxy", "Garden", "Guitar",
    "Harbor", "Helmet", "Island", "Jungle", "Kettle", "Ladder", "Lantern", "Magnet",
    "Meadow", "Mirror", "Needle", "Ocean", "Orchard", "Painter", "Pepper", "Piano",
    "Pirate", "Planet", "Pyramid", "Rainbow", "Rocket", "Saddle", "Shadow", "Snow",
    "Spider", "Storm", "Sunrise", "Telescope", "Thunder", "Tiger", "Tower", "Tunnel",
    "Umbrella", "Valley", "Violin", "Volcano", "Wallet", "Whistle", "Window", "Winter",
    "Wizard", "Yacht", "Zebra", "Coffee", "Library", "Marathon", "Circus", "Honey",
)


def pick_word(words: Sequence[str] | None = None) -> str:
    pool = DEFAULT_WORDS if words is None else words
    if not pool:
        return FALLBACK_WORD
    return random.choice(pool)
