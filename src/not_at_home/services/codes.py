"""Session join code generation."""

import random
import secrets

MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 6

_system_random = secrets.SystemRandom()


def generate_session_code(length: int = 4, rng: random.Random | None = None) -> str:
    """Return a numeric code of ``length`` digits without a leading zero.

    Uniqueness is not guaranteed here; the session store checks it.
    """
    if not MIN_CODE_LENGTH <= length <= MAX_CODE_LENGTH:
        raise ValueError(
            f"Code length must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH}"
        )
    source = rng or _system_random
    low = 10 ** (length - 1)
    high = 10**length - 1
    return str(source.randint(low, high))
