"""Random shortcode generation.

Codes are drawn uniformly from the 62-symbol alphanumeric alphabet with
nanoid. Uniqueness is checked against the record store; the retry loop is
bounded and falls back to longer codes before giving up.

Flow Diagram — generate_unique()
================================
::
    ┌──────────────────┐
    │ attempt at base  │◄──┐ collision
    │ length (6)       │───┘ (≤ max attempts)
    └────────┬─────────┘
             ▼ all collided
    ┌──────────────────┐
    │ attempt at       │◄──┐ collision
    │ fallback length  │───┘ (≤ max attempts)
    └────────┬─────────┘
             ▼ all collided
    ShortcodeExhaustedError
"""

__all__ = ["ALPHABET", "ShortcodeGenerator"]

import logging
import string

from nanoid import generate

from shortlink.exceptions import ShortcodeExhaustedError
from shortlink.store import URLRecordStore

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits

logger = logging.getLogger("shortlink.generator")


class ShortcodeGenerator:
    """Produces random fixed-length codes and finds unused ones."""

    def __init__(self, length: int = 6, fallback_length: int = 10, max_attempts: int = 5):
        assert length > 0, f"length must be positive, got {length!r}"
        assert fallback_length >= length, "fallback_length must not be shorter than length"
        assert max_attempts > 0, f"max_attempts must be positive, got {max_attempts!r}"
        self.length = length
        self.fallback_length = fallback_length
        self.max_attempts = max_attempts

    def generate(self, length: int | None = None) -> str:
        return generate(ALPHABET, length or self.length)

    def candidate_lengths(self) -> list[int]:
        """Lengths tried in order, each for up to ``max_attempts`` candidates."""
        if self.fallback_length == self.length:
            return [self.length]
        return [self.length, self.fallback_length]

    async def generate_unique(self, store: URLRecordStore) -> str:
        """Return a code that is not in the store at the time of the check.

        Raises:
            ShortcodeExhaustedError: If every candidate collided.
        """
        for length in self.candidate_lengths():
            for attempt in range(1, self.max_attempts + 1):
                shortcode = self.generate(length)
                if not await store.exists(shortcode):
                    return shortcode
                logger.debug(f"Shortcode collision on {shortcode} (length {length}, attempt {attempt})")
            logger.warning(f"Exhausted {self.max_attempts} attempts at length {length}")

        raise ShortcodeExhaustedError(
            f"Could not generate a unique shortcode after {self.max_attempts} attempts "
            f"at lengths {self.candidate_lengths()}"
        )
