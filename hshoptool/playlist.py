"""Playlists of audio files and a cursor that walks through them."""

from __future__ import annotations

import os
import random
from enum import IntFlag
from typing import Iterator, List, Optional


class PlaylistFlag(IntFlag):
    """Options controlling how a playlist is walked."""

    NONE = 0
    RANDOMISE = 1
    REPEAT = 2


class Playlist:
    """A named, ordered list of readable audio file paths without duplicates."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._items: List[str] = []

    def append(self, prefix: str, filename: str) -> bool:
        """Add ``prefix + filename`` if it is readable and not yet present.

        Returns whether the file was added.
        """
        path = prefix + filename
        if not os.access(path, os.R_OK):
            return False
        if path in self._items:
            return False
        self._items.append(path)
        return True

    def remove(self, filename: str) -> None:
        """Remove ``filename`` from the playlist."""
        try:
            self._items.remove(filename)
        except ValueError:
            raise ValueError(f"{filename!r} is not in playlist {self.name!r}") from None

    def swap(self, i1: int, i2: int) -> None:
        """Swap the items at positions ``i1`` and ``i2``; invalid positions are ignored."""
        if i1 == i2:
            return
        size = len(self._items)
        if not (0 <= i1 < size and 0 <= i2 < size):
            return
        self._items[i1], self._items[i2] = self._items[i2], self._items[i1]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"Playlist({self.name!r}, {self._items!r})"


class PlaylistCursor:
    """Walks a playlist forwards and backwards, optionally shuffled and repeating."""

    def __init__(
        self,
        playlist: Playlist,
        flags: PlaylistFlag = PlaylistFlag.NONE,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.playlist = playlist
        self.flags = PlaylistFlag(flags)
        self._rng = rng if rng is not None else random.Random()
        self._items: Optional[List[str]] = []
        self.pos = 0
        self._rearrange()

    def _rearrange(self) -> None:
        self.pos = 0
        self._items = list(self.playlist)
        if self.flags & PlaylistFlag.RANDOMISE:
            self._rng.shuffle(self._items)

    @property
    def finished(self) -> bool:
        """True once a non-repeating walk has run past the last item."""
        return self._items is None

    def next(self) -> Optional[str]:
        """Return the next item, or None when the walk is over."""
        if not self._items:
            return None
        if self.pos == len(self._items):
            if not self.flags & PlaylistFlag.REPEAT:
                self._items = None
                return None
            self._rearrange()
            if not self._items:
                return None
        item = self._items[self.pos]
        self.pos += 1
        return item

    def prev(self) -> Optional[str]:
        """Return the previous item; at the start, wrap (repeat) or replay the first."""
        if not self._items:
            return None
        if self.pos <= 1:
            self.pos = len(self._items) if self.flags & PlaylistFlag.REPEAT else 1
        else:
            self.pos -= 1
        return self._items[self.pos - 1]

    def is_single(self) -> bool:
        """True if the walk is active and covers exactly one item."""
        return self._items is not None and len(self._items) == 1