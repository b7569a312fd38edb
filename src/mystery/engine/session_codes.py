"""Session code generation.

Codes are 6 characters from A-Z and 0-9: 36**6 (about 2.2 billion)
combinations. Uniqueness against existing sessions is checked by the
coordinator, which retries on collision.
"""

import random
import string
from typing import Optional

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def generate_session_code(rng: Optional[random.Random] = None) -> str:
    """Draw one code; does not check for collisions."""
    chooser = rng or random
    return "".join(chooser.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def is_valid_session_code(code: str) -> bool:
    return len(code) == CODE_LENGTH and all(ch in CODE_ALPHABET for ch in code)


class SessionCodeGenerator:
    """Callable code factory with its own RNG.

    Pass a seed for reproducible sequences.
    """

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def __call__(self) -> str:
        return generate_session_code(self._rng)
