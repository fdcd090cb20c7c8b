from __future__ import annotations

import random
from typing import Collection

from ..game.errors import CodeGenerationError

# No I, O, 0 or 1: codes are read aloud and typed by hand.
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DEFAULT_LENGTH = 5
MAX_ATTEMPTS = 25


def generate_code(existing_codes: Collection[str] = (), length: int = DEFAULT_LENGTH) -> str:
    """Return a lobby code not present in ``existing_codes``.

    Raises CodeGenerationError after MAX_ATTEMPTS collisions.
    """
    for _ in range(MAX_ATTEMPTS):
        code = "".join(random.choices(ALPHABET, k=length))
        if code not in existing_codes:
            return code
    raise CodeGenerationError()
