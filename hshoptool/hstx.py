"""Writer for HSTX theme files built from a key = value configuration."""

from __future__ import annotations

import itertools
import string
import struct
from enum import IntEnum
from pathlib import Path
from typing import Iterator, Tuple, Union

from PIL import Image

DESCRIPTOR_MAX = 128
FORMAT_VERSION = 0
MAX_IMAGE_WIDTH = 400
MAX_IMAGE_HEIGHT = 360

_HEADER = struct.Struct(">4s6I20x")
_COLOR_DESCRIPTOR = struct.Struct(">II8x")
_IMAGE_DESCRIPTOR = struct.Struct(">IIHH4x")
_ULONG_MAX = 2**64 - 1


class ThemeError(ValueError):
    """The theme configuration or one of its images is invalid."""


class Ident(IntEnum):
    """Descriptor identifiers."""

    BG_CLR = 0x1001
    TEXT_CLR = 0x1002
    BTN_BG_CLR = 0x1003
    BTN_BORDER_CLR = 0x1004
    BATTERY_GREEN_CLR = 0x1005
    BATTERY_RED_CLR = 0x1006
    TOGGLE_GREEN_CLR = 0x1007
    TOGGLE_RED_CLR = 0x1008
    TOGGLE_SLID_CLR = 0x1009
    PROGBAR_FG_CLR = 0x1010
    PROGBAR_BG_CLR = 0x1011
    SCROLLBAR_CLR = 0x1012
    LED_GREEN_CLR = 0x1013
    LED_RED_CLR = 0x1014
    SMDH_BORDER_CLR = 0x1015
    CHKBX_BORDER_CLR = 0x1016
    CHKBX_CHK_CLR = 0x1017
    GRAPH_LINE_CLR = 0x1018
    WARN_CLR = 0x1019
    X_CLR = 0x101A

    MORE_IMG = 0x2001
    BATTERY_IMG = 0x2002
    SEARCH_IMG = 0x2003
    SETTINGS_IMG = 0x2004
    SPINNER_IMG = 0x2005
    RANDOM_IMG = 0x2006
    BG_TOP_IMG = 0x2007
    BG_BOT_IMG = 0x2008


_COLOR_KEYS = {
    "background_colour": Ident.BG_CLR,
    "text_colour": Ident.TEXT_CLR,
    "button_background_colour": Ident.BTN_BG_CLR,
    "button_border_colour": Ident.BTN_BORDER_CLR,
    "battery_good_colour": Ident.BATTERY_GREEN_CLR,
    "battery_bad_colour": Ident.BATTERY_RED_CLR,
    "toggle_enabled_colour": Ident.TOGGLE_GREEN_CLR,
    "toggle_disabled_colour": Ident.TOGGLE_RED_CLR,
    "toggle_slider_colour": Ident.TOGGLE_SLID_CLR,
    "progress_bar_foreground_colour": Ident.PROGBAR_FG_CLR,
    "progress_bar_background_colour": Ident.PROGBAR_BG_CLR,
    "scrollbar_colour": Ident.SCROLLBAR_CLR,
    "led_success": Ident.LED_GREEN_CLR,
    "led_failure": Ident.LED_RED_CLR,
    "checkbox_border_colour": Ident.CHKBX_BORDER_CLR,
    "checkbox_check_colour": Ident.CHKBX_CHK_CLR,
    "graph_line_colour": Ident.GRAPH_LINE_CLR,
    "warning_colour": Ident.WARN_CLR,
    "x_colour": Ident.X_CLR,
    "smdh_icon_border_colour": Ident.SMDH_BORDER_CLR,
}

_IMAGE_KEYS = {
    "more_image": Ident.MORE_IMG,
    "battery_image": Ident.BATTERY_IMG,
    "search_image": Ident.SEARCH_IMG,
    "settings_image": Ident.SETTINGS_IMG,
    "spinner_image": Ident.SPINNER_IMG,
    "random_image": Ident.RANDOM_IMG,
    "background_top_image": Ident.BG_TOP_IMG,
    "background_bottom_image": Ident.BG_BOT_IMG,
}

_DIGITS = {8: "01234567", 10: string.digits, 16: string.hexdigits}


def version_int(major: int, minor: int, patch: int) -> int:
    """Pack a version triple into the integer stored in the header."""
    return (major << 20) | (minor << 10) | patch


def parse_color(text: str) -> int:
    """Parse a colour: ``#hex``, or a C-style decimal, ``0x`` hex or ``0`` octal number."""
    base = 0
    body = text
    if body.startswith("#"):
        base = 16
        body = body[1:]
    if not body:
        return 0
    body = body.lstrip(" \t\n\v\f\r")
    negative = False
    if body and body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]
    if base in (0, 16) and body[:2].lower() == "0x" and len(body) > 2 and body[2] in string.hexdigits:
        body = body[2:]
        base = 16
    elif base == 0:
        base = 8 if body.startswith("0") else 10
    if not body or any(char not in _DIGITS[base] for char in body):
        raise ThemeError(f"invalid colour: {text!r}")
    value = int(body, base)
    if value > _ULONG_MAX:
        raise ThemeError(f"colour out of range: {text!r}")
    if negative:
        value = -value & _ULONG_MAX
    return value & 0xFFFFFFFF


def _entries(config_text: str) -> Iterator[Tuple[str, str]]:
    text = config_text.split("\0", 1)[0]
    lines = (line.lstrip(" ") for line in text.split("\n"))
    non_empty = (line for line in lines if line)
    for line in itertools.islice(non_empty, DESCRIPTOR_MAX):
        if line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            raise ThemeError("trailing data in configuration file!")
        yield key.strip(" "), value.strip(" ")


def _load_image(path: Path) -> Tuple[int, int, bytes]:
    try:
        with Image.open(path) as img:
            rgba = img.convert("RGBA")
    except (OSError, ValueError) as exc:
        raise ThemeError(f"failed to open image {path}: {exc}") from exc
    if rgba.width > MAX_IMAGE_WIDTH or rgba.height > MAX_IMAGE_HEIGHT:
        raise ThemeError(f"image too large {path}")
    return rgba.width, rgba.height, rgba.tobytes()


def build_hstx(
    config_text: str,
    base_dir: Union[str, Path] = ".",
    target_version: int = 0,
) -> bytes:
    """Build a complete HSTX file from configuration text.

    Relative image paths are resolved against ``base_dir``.
    """
    blob = bytearray(b"\0")
    name_offset = author_offset = 0
    descriptors = []

    for key, value in _entries(config_text):
        if key == "name":
            name_offset = len(blob)
            blob += value.encode("utf-8") + b"\0"
        elif key == "author":
            author_offset = len(blob)
            blob += value.encode("utf-8") + b"\0"
        elif key in _COLOR_KEYS:
            if len(descriptors) == DESCRIPTOR_MAX:
                raise ThemeError("too many descriptors!")
            try:
                color = parse_color(value)
            except ThemeError as exc:
                raise ThemeError(f"{key}: failed to parse color '{value}'") from exc
            descriptors.append(_COLOR_DESCRIPTOR.pack(_COLOR_KEYS[key], color))
        elif key in _IMAGE_KEYS:
            width, height, pixels = _load_image(Path(base_dir) / value)
            descriptors.append(_IMAGE_DESCRIPTOR.pack(_IMAGE_KEYS[key], len(blob), width, height))
            blob += pixels
        else:
            raise ThemeError(f"unrecognised key: {key} (`{value}')")

    header = _HEADER.pack(
        b"HSTX",
        FORMAT_VERSION,
        target_version,
        len(descriptors),
        len(blob),
        name_offset,
        author_offset,
    )
    return header + b"".join(descriptors) + bytes(blob)


def make_hstx(
    output: Union[str, Path],
    cfgfile: Union[str, Path],
    target_version: int = 0,
) -> None:
    """Read the configuration at ``cfgfile`` and write the theme to ``output``."""
    cfg_path = Path(cfgfile)
    try:
        text = cfg_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ThemeError(f"{cfgfile}: failed to open") from exc
    data = build_hstx(text, cfg_path.parent, target_version)
    try:
        Path(output).write_bytes(data)
    except OSError as exc:
        raise ThemeError(f"{output}: failed to open") from exc