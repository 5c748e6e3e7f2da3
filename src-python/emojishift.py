# emojishift.py
# VeilBoard: emoji transport codec (EMOJI256)
#
# Re-encodes an opaque Base64 envelope as a run of emoji, one symbol per byte,
# so it survives channels that only carry human-readable glyphs.
#
#   emojify(b64)      Base64 -> bytes -> EMOJI256 symbols
#   unemojify(text)   greedy longest-first scan, unknown code points skipped
#   looks_emojified   same scan, stops after 5 matches
#
# The table order is part of the wire format. Never reorder it.

from __future__ import annotations

import base64
import binascii
import logging
from typing import Iterator, Optional

import veilcrypt
from veilcrypt import InputNotBase64

log = logging.getLogger(__name__)


# ============================================================
# EMOJI256 (fixed 256-symbol table): index = byte value
# Some entries are 2 code points (base + U+FE0F variation selector)
# ============================================================

EMOJI256 = (
    "😀", "😃", "😄", "😁", "😆", "😅", "🤣", "😂", "🙂", "🙃", "😉", "😊", "😇", "🥰", "😍", "🤩",
    "😘", "😗", "😚", "😙", "😋", "😛", "😜", "🤪", "😝", "🤑", "🤗", "🤭", "🤫", "🤔", "🤐", "🤨",
    "😐", "😑", "😶", "😏", "😒", "🙄", "😬", "🤥", "😌", "😔", "😪", "🤤", "😴", "😷", "🤒", "🤕",
    "🤢", "🤮", "🤧", "🥵", "🥶", "🥴", "😵", "🤯", "🤠", "🥳", "😎", "🤓", "🧐", "😕", "😟", "🙁",
    "☹️", "😮", "😯", "😲", "😳", "🥺", "😦", "😧", "😨", "😰", "😥", "😢", "😭", "😱", "😖", "😣",
    "😞", "😓", "😩", "😫", "🥱", "😤", "😡", "😠", "🤬", "😈", "👿", "💀", "☠️", "💩", "🤡", "👹",
    "👺", "👻", "👽", "👾", "🤖", "😺", "😸", "😹", "😻", "😼", "😽", "🙀", "😿", "😾", "🙈", "🙉",
    "🙊", "💋", "💌", "💘", "💝", "💖", "💗", "💓", "💞", "💕", "💟", "❣️", "💔", "❤️", "🧡", "💛",
    "💚", "💙", "💜", "🤎", "🖤", "🤍", "💯", "💢", "💥", "💫", "💦", "💨", "🕳️", "💣", "💬", "👁️",
    "🗨️", "🗯️", "💭", "💤", "👋", "🤚", "🖐️", "✋", "🖖", "👌", "🤏", "✌️", "🤞", "🤟", "🤘", "🤙",
    "👈", "👉", "👆", "🖕", "👇", "☝️", "👍", "👎", "✊", "👊", "🤛", "🤜", "👏", "🙌", "👐", "🤲",
    "🤝", "🙏", "✍️", "💅", "🤳", "💪", "🦾", "🦿", "🦵", "🦶", "👂", "🦻", "👃", "🧠", "🦷", "🦴",
    "👀", "🦊", "👅", "👄", "👶", "🧒", "👦", "👧", "🧑", "👱", "👨", "🧔", "👩", "🧓", "👴", "👵",
    "🙍", "🙎", "🙅", "🙆", "💁", "🙋", "🧏", "🙇", "🤦", "🤷", "👮", "🕵️", "💂", "👷", "🤴", "👸",
    "👳", "👲", "🧕", "🤵", "👰", "🤰", "🤱", "👼", "🎅", "🤶", "🦸", "🦹", "🧙", "🧚", "🧛", "🧜",
    "🧝", "🧞", "🧟", "💆", "💇", "🚶", "🧍", "🧎", "🏃", "💃", "🕺", "🕴️", "👯", "🧖", "🧗", "🤺",
)
if len(EMOJI256) != 256:
    raise RuntimeError(f"EMOJI256 must be exactly 256 symbols (got {len(EMOJI256)})")

_EMOJI256_INV = {sym: i for i, sym in enumerate(EMOJI256)}
if len(_EMOJI256_INV) != 256:
    raise RuntimeError("EMOJI256 symbols must be distinct.")

# Longest first, so "☹️" wins over a hypothetical "☹".
_SYMBOL_WIDTHS = tuple(sorted({len(sym) for sym in EMOJI256}, reverse=True))


def _check_prefix_free() -> None:
    for sym in EMOJI256:
        for width in range(1, len(sym)):
            if sym[:width] in _EMOJI256_INV:
                raise RuntimeError(f"EMOJI256 symbol {sym!r} has a table prefix {sym[:width]!r}")

_check_prefix_free()

DETECT_THRESHOLD = 5


def _scan_symbols(s: str) -> Iterator[int]:
    """Greedy left-to-right tokenizer; yields byte values, skips anything unknown."""
    i = 0
    n = len(s)
    while i < n:
        for width in _SYMBOL_WIDTHS:
            if i + width > n:
                continue
            v = _EMOJI256_INV.get(s[i : i + width])
            if v is not None:
                yield v
                i += width
                break
        else:
            i += 1


def emoji256_encode(data: bytes) -> str:
    """Encodes bytes to EMOJI256 (one symbol per byte, no separators)."""
    return "".join(EMOJI256[b] for b in data)


def emoji256_decode(s: str) -> bytes:
    """Decodes EMOJI256 text; whitespace and other stray code points are ignored."""
    return bytes(_scan_symbols(s))


# ============================================================
# Base64 <-> emoji transport
# ============================================================

def _b64decode_strict(text: str) -> bytes:
    compact = "".join(text.split())
    try:
        return base64.b64decode(compact.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise InputNotBase64(f"Input is not valid Base64: {e}") from e


def emojify(b64_text: str) -> str:
    raw = _b64decode_strict(b64_text)
    return emoji256_encode(raw)


def unemojify(text: str) -> Optional[str]:
    raw = emoji256_decode(text)
    if not raw:
        return None
    return base64.b64encode(raw).decode("ascii")


def looks_emojified(text: str, threshold: int = DETECT_THRESHOLD) -> bool:
    """
    Heuristic detector: True once `threshold` table symbols have been seen.
    Base64 ciphertext is pure ASCII and never matches.
    """
    count = 0
    for _ in _scan_symbols(text):
        count += 1
        if count >= threshold:
            return True
    return False


# ============================================================
# High-level helpers (compose -> send, clipboard -> read)
# ============================================================

def seal_message(plaintext: str, recipient_public_key: str, emojify_output: bool = False) -> str:
    """Encrypt for a recipient; optionally re-encode the envelope as emoji."""
    envelope = veilcrypt.encrypt(plaintext, recipient_public_key)
    if not emojify_output:
        return envelope
    out = emojify(envelope)
    log.debug("sealed message as %d emoji", len(out))
    return out


def open_message(text: str, private_key: str) -> str:
    """Decrypt a received message, emoji-encoded or plain Base64."""
    if looks_emojified(text):
        envelope = unemojify(text)
        if envelope is None:
            raise InputNotBase64("Invalid emoji-encoded message.")
    else:
        envelope = text.strip()
    return veilcrypt.decrypt(envelope, private_key)
