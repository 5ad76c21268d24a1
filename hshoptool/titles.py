"""Helpers for title ids and title metadata strings."""

from __future__ import annotations

import re
from typing import Optional, Sequence, Union

_ULLONG_MAX = 2**64 - 1
_HEX_NUMBER = re.compile(r"\s*([+-]?)(?:0[xX](?=[0-9a-fA-F]))?([0-9a-fA-F]*)")

# Number of localised titles held in an SMDH.
TITLE_COUNT = 12


def str_to_tid(text: str) -> int:
    """Parse a hexadecimal title id the way ``strtoull`` does; unparsable text gives 0."""
    match = _HEX_NUMBER.match(text)
    sign, digits = match.group(1), match.group(2)
    if not digits:
        return 0
    value = int(digits, 16)
    if value > _ULLONG_MAX:
        return _ULLONG_MAX
    if sign == "-":
        value = -value & _ULLONG_MAX
    return value


def tid_to_str(tid: int) -> str:
    """Format a title id as 16 upper-case hex digits; 0 gives an empty string."""
    if tid == 0:
        return ""
    return f"{tid:016X}"


def decode_utf16(data: Union[bytes, bytearray]) -> str:
    """Decode little-endian UTF-16 up to the first NUL code unit."""
    raw = bytes(data)
    raw = raw[: len(raw) - len(raw) % 2]
    for pos in range(0, len(raw), 2):
        if raw[pos] == 0 and raw[pos + 1] == 0:
            raw = raw[:pos]
            break
    try:
        return raw.decode("utf-16-le")
    except UnicodeDecodeError as exc:
        raise ValueError(f"Failed to decode utf16 sequence: {exc}") from exc


def _present(description: str) -> bool:
    return bool(description) and not description.startswith("\0")


def native_title_index(
    short_descriptions: Sequence[str],
    language: Optional[int],
) -> Optional[int]:
    """Pick which localised title to show.

    Uses the system ``language`` if that title is filled in, else the first
    filled-in title; None if all are empty.
    """
    if language is not None and 0 <= language < min(TITLE_COUNT, len(short_descriptions)):
        if _present(short_descriptions[language]):
            return language
    for index, description in enumerate(short_descriptions[:TITLE_COUNT]):
        if _present(description):
            return index
    return None