# Area: Session
"""
traitor_sync._session.room_code — Room code generation
======================================================

Room codes are four characters drawn from an alphabet without the
glyphs people confuse when reading a code off another screen
(0/O and 1/I).
"""

import random
from typing import Optional

ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 4


def generate_room_code(rng: Optional[random.Random] = None) -> str:
    """Return a fresh random room code."""
    rng = rng or random.Random()
    return "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def normalize_room_code(code: str) -> str:
    """Uppercase and strip user input before a lookup."""
    return code.strip().upper()


def is_valid_room_code(code: str) -> bool:
    return len(code) == ROOM_CODE_LENGTH and all(c in ROOM_CODE_ALPHABET for c in code)
