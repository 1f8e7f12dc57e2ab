"""
Bounded string builders.

Plates, tags and short identifiers used to be built by helpers that called
themselves once per character. These build into a pre-sized buffer instead;
the only bound is the requested length.
"""
import random
import string
from typing import Optional

DIGITS = string.digits
LETTERS = string.ascii_uppercase
ALPHANUMERIC = DIGITS + LETTERS

# Pattern placeholders for random_from_pattern
PATTERN_DIGIT = "1"
PATTERN_LETTER = "A"
PATTERN_ANY = "."


def random_string(
    length: int,
    alphabet: str = ALPHANUMERIC,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Build a random string of exactly ``length`` characters.

    Args:
        length: Number of characters to produce
        alphabet: Characters to draw from
        rng: Random source (module-level random if None)

    Returns:
        The generated string
    """
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")
    if length and not alphabet:
        raise ValueError("alphabet must not be empty")

    rng = rng or random
    buffer = [""] * length
    for i in range(length):
        buffer[i] = rng.choice(alphabet)
    return "".join(buffer)


def random_from_pattern(pattern: str, rng: Optional[random.Random] = None) -> str:
    """
    Fill a pattern such as ``"11AAA111"``.

    ``1`` becomes a digit, ``A`` a letter, ``.`` either; anything else is
    copied through unchanged.
    """
    rng = rng or random
    buffer = [""] * len(pattern)
    for i, ch in enumerate(pattern):
        if ch == PATTERN_DIGIT:
            buffer[i] = rng.choice(DIGITS)
        elif ch == PATTERN_LETTER:
            buffer[i] = rng.choice(LETTERS)
        elif ch == PATTERN_ANY:
            buffer[i] = rng.choice(ALPHANUMERIC)
        else:
            buffer[i] = ch
    return "".join(buffer)
