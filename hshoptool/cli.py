"""Command line front end: hLink remote control, theme and HWAV builders."""

from __future__ import annotations

import re
import sys
import time
from collections import deque
from typing import Deque, List, Optional, Sequence

from .hlink import WAIT_TIMEOUT, HLinkError, Link
from .hstx import ThemeError, make_hstx
from .hwav import HwavError, make_hwav

MAX_QUEUE_IDS = 10
_ULONG_MAX = 2**64 - 1

_HLINK_USAGE = (
    "Usage: hlink [address] [cmd [arg...]...]\n\n"
    "Options:\n"
    "  -s, --sleep           sleep the 3ds for 5 seconds\n"
    "  -a, --add-queue IDs   add IDs to the 3ds queue\n"
    "  -l, --launch TID      launch TID on the 3ds\n"
    "  -w, --wait MS         wait MS milliseconds\n"
)

_LONG_OPTIONS = {"--sleep": "s", "--wait": "w", "--add-queue": "a", "--launch": "l"}

_HEX_PREFIX = re.compile(r"[0-9a-fA-F]+")
_DECIMAL_PREFIX = re.compile(r"\s*\+?([0-9]+)")


def _err(message: str) -> None:
    print(message, file=sys.stderr)


def parse_title_id(text: str) -> int:
    """Parse a hexadecimal title id, which must start with ``0004``."""
    if not text.startswith("0004"):
        raise ValueError(f"not a title id: {text!r}")
    match = _HEX_PREFIX.match(text)
    value = int(match.group(0), 16)
    if value > _ULONG_MAX:
        raise ValueError(f"title id out of range: {text!r}")
    return value


def _parse_decimal(text: str) -> Optional[int]:
    match = _DECIMAL_PREFIX.match(text)
    if not match:
        return None
    value = int(match.group(1))
    return value if value <= _ULONG_MAX else None


class _Args:
    def __init__(self, items: Sequence[str]) -> None:
        self._items: Deque[str] = deque(items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def pop(self) -> str:
        return self._items.popleft()

    def take(self) -> Optional[str]:
        """Consume the next argument unless it is missing or an option."""
        if self._items and not self._items[0].startswith("-"):
            return self._items.popleft()
        return None


def _command(link: Link, option: str, args: _Args) -> bool:
    """Run one option; returns True if the rest of a short-option cluster is skipped."""
    if option == "s":
        try:
            link.sleep()
        except (HLinkError, OSError) as exc:
            _err(f"sleep: {exc}")
        return False
    if option == "w":
        while (arg := args.take()) is not None:
            millis = _parse_decimal(arg)
            if millis is not None:
                time.sleep(millis / 1000)
        return True
    if option == "a":
        ids: List[int] = []
        while len(ids) < MAX_QUEUE_IDS and (arg := args.take()) is not None:
            value = _parse_decimal(arg)
            if value is not None:
                ids.append(value)
        try:
            link.add_queue(ids)
        except (HLinkError, OSError) as exc:
            _err(f"add-queue: {exc}")
        return True
    if option == "l":
        arg = args.take()
        if arg is None:
            _err("launch: expected argument")
            return True
        try:
            tid = parse_title_id(arg)
        except ValueError:
            _err("launch: failed to parse title id")
            return True
        try:
            link.launch(tid)
        except (HLinkError, OSError) as exc:
            _err(f"launch: {exc}")
        return True
    _err(f"unknown option: '-{option}'")
    return False


def run_hlink(argv: Sequence[str]) -> int:
    """Connect to the device at ``argv[0]`` and run the commands that follow."""
    if not argv:
        _err(_HLINK_USAGE)
        return 1
    try:
        link = Link(argv[0])
    except HLinkError as exc:
        _err(f"link: {exc}")
        return 1
    with link:
        try:
            link.auth()
        except (HLinkError, OSError) as exc:
            _err(f"auth: {exc}")
            return 1

        args = _Args(argv[1:])
        while args:
            token = args.pop()
            time.sleep(WAIT_TIMEOUT)
            if token in _LONG_OPTIONS:
                _command(link, _LONG_OPTIONS[token], args)
            elif token.startswith("--"):
                _err(f"unknown option: '{token}'")
            elif token.startswith("-"):
                for option in token[1:]:
                    if _command(link, option, args):
                        break
            else:
                _err(f"unexpected argument: {token}")
    return 0


def run_maketheme(argv: Sequence[str]) -> int:
    """Build a theme: ``argv`` is ``[input-file, output-file]``."""
    if len(argv) < 2:
        _err("Usage: maketheme [input-file] [output-file]")
        return 1
    try:
        make_hstx(argv[1], argv[0])
    except ThemeError as exc:
        _err(str(exc))
        return 1
    return 0


def run_makehwav(argv: Sequence[str]) -> int:
    """Build an HWAV file: ``argv`` is ``[input-file, output-file, tag-edit...]``."""
    if len(argv) < 2:
        _err(
            "Usage: makehwav [input-file] [output-file] "
            "[tag-name=tag-value | - (remove all tags)]..."
        )
        return 1
    try:
        tags = make_hwav(argv[1], argv[0], argv[2:])
    except HwavError as exc:
        _err(str(exc))
        return 1
    listing = ",".join(f"{key}={value}" for key, value in tags.items())
    print(f"Inserting these tags into the HWAV: {listing or '(none)'}.")
    return 0


_COMMANDS = {"hlink": run_hlink, "maketheme": run_maketheme, "makehwav": run_makehwav}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Dispatch to a subcommand; returns the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] not in _COMMANDS:
        _err("Usage: hshoptool [hlink | maketheme | makehwav]")
        return 1
    return _COMMANDS[args[0]](args[1:])


if __name__ == "__main__":
    sys.exit(main())