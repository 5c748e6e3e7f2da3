# veilshift.py
# VeilBoard: rotating character substitution (typing-time obfuscation)
#
# Two flavours over the same generator:
#   RotatingMapper  one mapping for the whole text, replaced every 5..10 s
#   PerWordMapper   one mapping per finalized word, kept until released
#
# NOTE: This is NOT encryption. Mappings come from random.Random and only
# resist shoulder-surfing / casual memory inspection for a few seconds.

from __future__ import annotations

import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

log = logging.getLogger(__name__)


# ============================================================
# Alphabets
# ============================================================

PUNCT = ".,!?@#$%&*()-_=+[]{}:;\"'<>/\\|`~"

# Full keyboard set, whitespace included (global rotation)
ROTATING_ALPHABET = string.ascii_letters + string.digits + " " + PUNCT + "\n\t"

# Words never contain separators
WORD_ALPHABET = string.ascii_letters + string.digits + PUNCT

ROTATE_MIN_MS = 5000
ROTATE_MAX_MS = 10000  # inclusive


# ============================================================
# Substitution mapping generator
# ============================================================

# (lo, hi) half-open code point ranges; surrogates D800..DFFF never drawn
_BMP_LOW = (0x0020, 0xD800)
_BMP_HIGH = (0xE000, 0x10000)


def random_code_point(rng: random.Random) -> str:
    # 1 in 4 draws from the private-use/compat tail, the rest from the main BMP
    lo, hi = _BMP_HIGH if rng.randrange(4) == 1 else _BMP_LOW
    return chr(rng.randrange(lo, hi))


@dataclass(frozen=True)
class SubstitutionMapping:
    alphabet: str
    forward: Dict[str, str]
    reverse: Dict[str, str]

    @classmethod
    def generate(
        cls, alphabet: str, rng: Optional[random.Random] = None, exclude: Iterable[str] = ()
    ) -> "SubstitutionMapping":
        """
        Builds a random bijection alphabet -> replacement code points.
        Replacements are unique and never members of the alphabet itself
        or of `exclude` (characters that will pass through unmapped).
        """
        rng = rng or random.Random()
        members = set(alphabet) | set(exclude)
        forward: Dict[str, str] = {}
        reverse: Dict[str, str] = {}

        for ch in alphabet:
            if ch in forward:
                continue
            cand = random_code_point(rng)
            while cand in reverse or cand in members:
                cand = random_code_point(rng)
            forward[ch] = cand
            reverse[cand] = ch

        return cls(alphabet=alphabet, forward=forward, reverse=reverse)

    def encode(self, text: str) -> str:
        fwd = self.forward
        return "".join(fwd.get(c, c) for c in text)

    def decode(self, text: str) -> str:
        rev = self.reverse
        return "".join(rev.get(c, c) for c in text)


# ============================================================
# RotatingMapper: global, time-rotated
# ============================================================

def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class RotatingMapper:
    """
    Single substitution mapping that is thrown away and regenerated after a
    random 5..10 s interval. Anything encoded under an older generation no
    longer decodes through this instance.

    Rotation is cooperative: call check_and_rotate() on a steady tick
    (about once a second); encode() also checks before substituting.

    `clock` returns milliseconds; tests pass a fake one.
    """

    def __init__(
        self,
        alphabet: str = ROTATING_ALPHABET,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
        min_interval_ms: int = ROTATE_MIN_MS,
        max_interval_ms: int = ROTATE_MAX_MS,
    ):
        if min_interval_ms < 0 or max_interval_ms < min_interval_ms:
            raise ValueError("rotation interval bounds must satisfy 0 <= min <= max")
        self.alphabet = alphabet
        self._clock = clock or _monotonic_ms
        self._rng = rng or random.Random()
        self._min_ms = int(min_interval_ms)
        self._max_ms = int(max_interval_ms)

        self.generation = 0
        self.mapping: SubstitutionMapping
        self.last_rotation_ms = 0.0
        self.rotation_interval_ms = 0
        self._regenerate()

    def _regenerate(self) -> None:
        self.mapping = SubstitutionMapping.generate(self.alphabet, self._rng)
        self.last_rotation_ms = self._clock()
        self.rotation_interval_ms = self._rng.randrange(self._min_ms, self._max_ms + 1)
        self.generation += 1
        log.debug("rotating mapper: generation %d, next rotation in %d ms", self.generation, self.rotation_interval_ms)

    def check_and_rotate(self) -> bool:
        """Regenerates the mapping if the interval has elapsed. Returns True on rotation."""
        if self._clock() - self.last_rotation_ms >= self.rotation_interval_ms:
            self._regenerate()
            return True
        return False

    def time_until_rotation(self) -> float:
        elapsed = self._clock() - self.last_rotation_ms
        return max(0.0, self.rotation_interval_ms - elapsed)

    def encode(self, text: str) -> str:
        self.check_and_rotate()
        return self.mapping.encode(text)

    def decode(self, text: str) -> str:
        return self.mapping.decode(text)

    def get_display_text(self, text: str, cursor_position: int) -> str:
        """
        Decodes only the alphanumeric run touching the cursor, leaving the rest
        of `text` as given ("reveal the current word").
        """
        if not text:
            return text

        pos = max(0, min(int(cursor_position), len(text)))
        start = pos
        end = pos
        while start > 0 and text[start - 1].isalnum():
            start -= 1
        while end < len(text) and text[end].isalnum():
            end += 1

        return text[:start] + self.decode(text[start:end]) + text[end:]


# ============================================================
# PerWordMapper: one mapping per word index
# ============================================================

class PerWordMapper:
    """
    Index-keyed mapping arena. Entries are never renumbered; the buffer only
    ever releases the most recent index.
    """

    def __init__(self, alphabet: str = WORD_ALPHABET, rng: Optional[random.Random] = None):
        self.alphabet = alphabet
        self._rng = rng or random.Random()
        self._mappings: Dict[int, SubstitutionMapping] = {}

    def __len__(self) -> int:
        return len(self._mappings)

    def encode_word(self, index: int, word: str) -> str:
        mapping = SubstitutionMapping.generate(self.alphabet, self._rng, exclude=word)
        self._mappings[index] = mapping
        return mapping.encode(word)

    def decode_word(self, index: int, obfuscated: str) -> str:
        mapping = self._mappings.get(index)
        if mapping is None:
            return obfuscated
        return mapping.decode(obfuscated)

    def delete_mapping(self, index: int) -> None:
        self._mappings.pop(index, None)

    def has_mapping(self, index: int) -> bool:
        return index in self._mappings

    def clear(self) -> None:
        self._mappings.clear()
