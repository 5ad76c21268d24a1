"""Minimal key/value tokenizer used by the file forwarder configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Tuple

KVBUF = 128


@dataclass(frozen=True)
class KeyValue:
    """One parsed token; ``failed`` marks a malformed token or the end of data."""

    key: str
    value: str
    failed: bool = False


class KVParser:
    """Splits text into key/value pairs on ``sepv`` and records on ``sepk``."""

    def __init__(self, data: str, sepv: str = "=", sepk: str = "\n", seek: int = 0) -> None:
        self.data = data
        self.sepv = sepv
        self.sepk = sepk
        self.pos = seek

    def next_token(self) -> KeyValue:
        """Parse the next record, advancing past it when it ends on a separator."""
        rest = self.data[self.pos:]
        key: List[str] = []
        value: List[str] = []
        seen_sepv = False
        for index, char in enumerate(rest):
            if char == self.sepk:
                self.pos += index + 1
                return KeyValue("".join(key), "".join(value), failed=not seen_sepv)
            if char == self.sepv:
                if seen_sepv:
                    return KeyValue("".join(key), "".join(value), failed=True)
                seen_sepv = True
                continue
            target = value if seen_sepv else key
            if len(target) >= KVBUF - 1:
                return KeyValue("".join(key), "".join(value), failed=True)
            target.append(char)
        self.pos += len(rest)
        return KeyValue("".join(key), "".join(value), failed=not seen_sepv)

    def __iter__(self) -> Iterator[KeyValue]:
        while True:
            token = self.next_token()
            if token.failed:
                return
            yield token


def parse_forwarder_config(text: str) -> Tuple[str, str]:
    """Return ``(source location, destination)`` from a forwarder config."""
    location = destination = None
    for token in KVParser(text):
        if token.key == "location":
            location = f"romfs:/{token.value}"
        if token.key == "destination":
            destination = f"sdmc:/{token.value}"
    if location is None or destination is None:
        raise ValueError("Bad romfs:/config.ini")
    return location, destination