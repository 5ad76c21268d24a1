"""Backwards LZSS decompression of code binaries and DSP firmware extraction."""

from __future__ import annotations

import struct
from typing import Optional

DSP1_MAGIC = b"DSP1"
SIGNATURE_SIZE = 0x100
FOOTER_SIZE = 8

_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


class LzssError(ValueError):
    """The compressed data is malformed."""


def decompress_buffer(compressed: bytes, decompressed_size: int) -> bytes:
    """Decompress a backwards-LZSS buffer into ``decompressed_size`` bytes.

    The data is decoded from its end towards its start; bytes before the
    compressed region are carried over unchanged.
    """
    compressed = bytes(compressed)
    size = len(compressed)
    if size < FOOTER_SIZE:
        raise LzssError("compressed data too short for a footer")
    if decompressed_size < size:
        raise LzssError("decompressed size smaller than compressed size")

    top_and_bottom = _U32.unpack_from(compressed, size - FOOTER_SIZE)[0]
    top = (top_and_bottom >> 24) & 0xFF
    bottom = top_and_bottom & 0xFFFFFF
    if top > size or bottom > size:
        raise LzssError("footer points outside the compressed data")

    index = size - top
    stop_index = size - bottom
    out = decompressed_size
    decompressed = bytearray(decompressed_size)
    decompressed[:size] = compressed

    while index > stop_index:
        index -= 1
        control = compressed[index]
        for _ in range(8):
            if index <= stop_index or index <= 0 or out <= 0:
                break
            if control & 0x80:
                if index < 2:
                    raise LzssError("truncated back reference")
                index -= 2
                segment_offset = compressed[index] | (compressed[index + 1] << 8)
                segment_size = ((segment_offset >> 12) & 15) + 3
                segment_offset = (segment_offset & 0x0FFF) + 2
                if out < segment_size:
                    raise LzssError("back reference runs past the start of the output")
                for _ in range(segment_size):
                    if out + segment_offset >= decompressed_size:
                        raise LzssError("back reference points past the end of the output")
                    value = decompressed[out + segment_offset]
                    out -= 1
                    decompressed[out] = value
            else:
                if out < 1:
                    raise LzssError("literal runs past the start of the output")
                out -= 1
                index -= 1
                decompressed[out] = compressed[index]
            control = (control << 1) & 0xFF

    return bytes(decompressed)


def decompress(data: bytes) -> bytes:
    """Decompress ``data`` whose last four bytes hold the size increase."""
    if len(data) < FOOTER_SIZE:
        raise LzssError("compressed data too short for a footer")
    increase = _U32.unpack_from(data, len(data) - 4)[0]
    return decompress_buffer(data, len(data) + increase)


def find_dsp_firmware(code: bytes) -> Optional[bytes]:
    """Locate the signed DSP firmware image in decompressed code.

    Returns the image including its 0x100-byte signature, or None if absent.
    """
    code = bytes(code)
    size = len(code)
    pos = code.find(DSP1_MAGIC)
    while pos != -1:
        if pos + 0x20 <= size:
            fw_size = _U32.unpack_from(code, pos + 4)[0]
            if (
                _U64.unpack_from(code, pos + 0x18)[0] == 0
                and 1 <= code[pos + 0xE] <= 10
                and code[pos + 0xD] <= 2
                and fw_size <= size - pos + SIGNATURE_SIZE
            ):
                start = pos - SIGNATURE_SIZE
                if start < 0:
                    raise LzssError("DSP firmware signature lies before the data")
                image = code[start:start + fw_size]
                if len(image) != fw_size:
                    raise LzssError("DSP firmware is truncated")
                return image
        pos = code.find(DSP1_MAGIC, pos + 1)
    return None