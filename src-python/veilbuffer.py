# veilbuffer.py
# VeilBoard: dual-view message buffer (readable + per-word obfuscated)
#
# Finalized words are stored as WordSlot records (readable, obfuscated,
# trailing separator), each obfuscated with its own PerWordMapper mapping.
# The word being typed stays readable until a separator finalizes it.

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from veilshift import PerWordMapper

log = logging.getLogger(__name__)

SPACE = 0x20
NEWLINE = 0x0A
SEPARATOR_CODES = (SPACE, NEWLINE)
DELETE_CODES = (0x08, 0x7F)  # backspace, DEL


@dataclass(frozen=True)
class WordSlot:
    readable: str
    obfuscated: str
    separator: str = ""
    index: Optional[int] = None  # None => separator-only slot (no mapping)

    @property
    def is_word(self) -> bool:
        return self.index is not None


class TextBuffer:
    def __init__(self, mapper: Optional[PerWordMapper] = None):
        self.mapper = mapper or PerWordMapper()
        self._slots: List[WordSlot] = []
        self._current = ""

    # ---- inspection ----

    @property
    def slots(self) -> List[WordSlot]:
        return list(self._slots)

    @property
    def current_word(self) -> str:
        return self._current

    def is_empty(self) -> bool:
        return not self._slots and not self._current

    def length(self) -> int:
        return len(self.get_obfuscated_text())

    def __len__(self) -> int:
        return self.length()

    # ---- editing ----

    def add_character(self, ch: str) -> None:
        self._current += ch

    def finalize_word(self, separator: str = " ") -> None:
        if self._current:
            index = len(self._slots)
            obfuscated = self.mapper.encode_word(index, self._current)
            self._slots.append(WordSlot(self._current, obfuscated, separator, index))
            log.debug("finalized word %d (%d chars)", index, len(self._current))
            self._current = ""
            return

        if not separator:
            return
        # No word to close: merge runs of separators instead of hollow words
        if self._slots:
            last = self._slots[-1]
            self._slots[-1] = dataclasses.replace(last, separator=last.separator + separator)
        else:
            self._slots.append(WordSlot("", "", separator, None))

    def delete_character(self) -> None:
        if self._current:
            self._current = self._current[:-1]
            return
        if not self._slots:
            return
        last = self._slots.pop()
        if last.index is not None:
            self.mapper.delete_mapping(last.index)
            log.debug("released word %d", last.index)

    def clear(self) -> None:
        self._slots.clear()
        self._current = ""
        self.mapper.clear()

    # ---- host key events ----

    def handle_key(self, code: Union[int, str]) -> None:
        """Dispatches one host key code: space/newline finalize, backspace/DEL delete."""
        if isinstance(code, str):
            if len(code) != 1:
                raise ValueError(f"expected a single character, got {code!r}")
            code = ord(code)
        if code in SEPARATOR_CODES:
            self.finalize_word(chr(code))
        elif code in DELETE_CODES:
            self.delete_character()
        else:
            self.add_character(chr(code))

    def type_text(self, text: str) -> None:
        for ch in text:
            self.handle_key(ch)

    # ---- rendering ----

    def get_obfuscated_text(self) -> str:
        return "".join(s.obfuscated + s.separator for s in self._slots) + self._current

    def get_readable_text(self) -> str:
        return "".join(s.readable + s.separator for s in self._slots) + self._current

    def get_readable_word_at_position(self, offset: int) -> Optional[str]:
        """
        Maps an offset in the obfuscated rendering back to the readable word
        under it. None when the offset lands on a separator or past the end.
        """
        pos = 0
        for slot in self._slots:
            n = len(slot.obfuscated)
            if pos <= offset < pos + n:
                return slot.readable
            pos += n + len(slot.separator)

        if pos <= offset < pos + len(self._current):
            return self._current
        return None
