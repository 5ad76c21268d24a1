"""Reader for CWAV audio files, including the HWAV extension blocks."""

from __future__ import annotations

import struct
from enum import IntEnum
from pathlib import Path
from typing import List, Optional, Union

CWAV_MAGIC = b"CWAV"
HWAV_MAGIC = b"HWAV"
INFO_MAGIC = b"INFO"
VCOM_MAGIC = b"VCOM"
CWAV_VERSION = 0x02010000
CWAV_HEADER_SIZE = 0x40
# Largest info block accepted (two channels of ADPCM information).
INFO_MAX_SIZE = 0xC0

TYPEID_DSP_ADPCM_INFO = 0x0300
TYPEID_IMA_ADPCM_INFO = 0x0301
TYPEID_SAMPLE_DATA = 0x1F00
TYPEID_INFO_BLOCK = 0x7000
TYPEID_DATA_BLOCK = 0x7001
TYPEID_CHANNEL_INFO = 0x7100
TYPEID_VORBIS_COMMENT = 0x8000

LEFT = 0
RIGHT = 1

_HEADER = struct.Struct("<4sHHIIHHHHIIHHII")
_HWAV_HEADER = struct.Struct("<4sH")
_SIZED_REF = struct.Struct("<HHII")
_REF = struct.Struct("<HHI")
_INFO = struct.Struct("<4sIBBHIIIII")
_CHANNEL_INFO = struct.Struct("<HHIHHII")
_U32 = struct.Struct("<I")
# Channel references are relative to the ``nrefs`` field of the info block.
_NREFS_OFFSET = 0x1C


class Encoding(IntEnum):
    """Sample encodings a CWAV file may declare."""

    PCM8 = 0
    PCM16 = 1
    DSP_ADPCM = 2
    IMA_ADPCM = 3


_SUPPORTED = {Encoding.PCM8: 1, Encoding.PCM16: 2}


class CwavError(ValueError):
    """The file is not a CWAV file this reader can play."""


def _title_from_name(source_name: str) -> str:
    base = source_name.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    if dot > 0:
        base = base[:dot]
    return base.replace("-", " ").replace("_", " ")


class Cwav:
    """A parsed CWAV file with per-channel read positions."""

    def __init__(self, data: bytes, source_name: str = "") -> None:
        self._data = bytes(data)
        self.artist: Optional[str] = None
        self.title: Optional[str] = None
        self.frame_counters: List[int] = [0, 0]
        self._parse()
        if self.title is None:
            self.title = _title_from_name(source_name)

    @classmethod
    def open(cls, path: Union[str, Path]) -> "Cwav":
        """Load and parse the file at ``path``."""
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise CwavError(f"failed to open {path}: {exc}") from exc
        return cls(data, str(path))

    def _valid_sref(self, offset: int, size: int) -> bool:
        return len(self._data) >= offset + size

    def _parse(self) -> None:
        data = self._data
        if len(data) < _HEADER.size:
            raise CwavError("file too short for a CWAV header")
        (
            magic,
            endian,
            header_size,
            version,
            file_size,
            nblocks,
            _reserved,
            info_type,
            _pad1,
            info_offset,
            info_size,
            data_type,
            _pad2,
            data_offset,
            data_size,
        ) = _HEADER.unpack_from(data, 0)
        if magic != CWAV_MAGIC:
            raise CwavError("bad magic")
        if endian != 0xFEFF:
            raise CwavError("only little endian files are supported")
        if file_size != len(data):
            raise CwavError("file size mismatch")
        if header_size != CWAV_HEADER_SIZE:
            raise CwavError("bad header size")
        if version != CWAV_VERSION:
            raise CwavError("unsupported version")
        if nblocks != 2:
            raise CwavError("bad block count")
        if not self._valid_sref(info_offset, info_size) or info_type != TYPEID_INFO_BLOCK:
            raise CwavError("bad info reference")
        if not self._valid_sref(data_offset, data_size) or data_type != TYPEID_DATA_BLOCK:
            raise CwavError("bad data reference")

        if len(data) < CWAV_HEADER_SIZE + _HWAV_HEADER.size:
            raise CwavError("file too short")
        hwav_magic, block_count = _HWAV_HEADER.unpack_from(data, CWAV_HEADER_SIZE)
        if hwav_magic == HWAV_MAGIC:
            self._parse_extended_blocks(block_count)

        if info_size > INFO_MAX_SIZE or info_size < _INFO.size:
            raise CwavError("bad info block size")
        info = data[info_offset:info_offset + info_size]
        (
            imagic,
            isize,
            encoding,
            _loop,
            _pad3,
            sample_rate,
            loop_start,
            loop_end,
            _reserved2,
            nrefs,
        ) = _INFO.unpack_from(info, 0)
        if imagic != INFO_MAGIC:
            raise CwavError("bad info magic")
        if isize != info_size:
            raise CwavError("info size mismatch")
        if nrefs not in (1, 2):
            raise CwavError("only mono and stereo files are supported")
        if encoding not in _SUPPORTED:
            raise CwavError(f"unsupported encoding {encoding}")
        if data_size < loop_start * nrefs * 2:
            raise CwavError("data block too small")

        offsets: List[int] = []
        for index in range(nrefs):
            ref_pos = _INFO.size + _REF.size * index
            if ref_pos + _REF.size > len(info):
                raise CwavError("truncated channel references")
            type_id, _pad, offset = _REF.unpack_from(info, ref_pos)
            if offset + _CHANNEL_INFO.size > isize or type_id != TYPEID_CHANNEL_INFO:
                raise CwavError("bad channel reference")
            cinf_pos = _NREFS_OFFSET + offset
            if cinf_pos + _CHANNEL_INFO.size > len(info):
                raise CwavError("channel info outside the info block")
            samples_type, _p1, samples_offset, _t2, _p2, _o2, _r3 = _CHANNEL_INFO.unpack_from(
                info, cinf_pos
            )
            if samples_type != TYPEID_SAMPLE_DATA or samples_offset > data_size:
                raise CwavError("bad sample reference")
            offsets.append(samples_offset)

        self.samples_offsets = offsets
        self.data_offset = data_offset + 8
        self.nchannels = nrefs
        self.rate = float(sample_rate)
        self.encoding = Encoding(encoding)
        self.end_frame = loop_end
        self.loop_point = loop_start

    def _parse_extended_blocks(self, block_count: int) -> None:
        data = self._data
        for index in range(block_count):
            pos = CWAV_HEADER_SIZE + _HWAV_HEADER.size + _SIZED_REF.size * index
            if pos + _SIZED_REF.size > len(data):
                raise CwavError("truncated extended block table")
            type_id, _pad, offset, size = _SIZED_REF.unpack_from(data, pos)
            if type_id == TYPEID_VORBIS_COMMENT:
                self._parse_vorbis_comment(data[offset:offset + size], size)

    def _parse_vorbis_comment(self, block: bytes, size: int) -> None:
        if len(block) != size or size < 8:
            return
        if block[:4] != VCOM_MAGIC or _U32.unpack_from(block, 4)[0] != size:
            return
        body = block[8:]
        remaining = size - 8
        if len(body) < 4:
            return
        vendor_len = _U32.unpack_from(body, 0)[0]
        if vendor_len > remaining:
            return
        pos = 4 + vendor_len
        if pos + 4 > len(body):
            return
        count = _U32.unpack_from(body, pos)[0]
        pos += 4
        remaining -= vendor_len + 8
        consumed = 0
        for _ in range(count):
            if pos + 4 > len(body):
                return
            full_len = _U32.unpack_from(body, pos)[0]
            consumed += full_len
            if consumed > remaining:
                return
            pos += 4
            entry = body[pos:pos + full_len]
            key, sep, value = entry.partition(b"=")
            if not sep:
                return
            name = key.split(b"\0", 1)[0].decode("ascii", "replace").lower()
            if name == "artist":
                self.artist = value.decode("utf-8", "replace")
            elif name == "title":
                self.title = value.decode("utf-8", "replace")
            pos += full_len

    def read(self, channel: int, bytesize: int) -> bytes:
        """Read at most ``bytesize`` bytes of samples from ``channel`` and advance it."""
        sample_size = _SUPPORTED[self.encoding]
        samples_left = max(self.end_frame - self.frame_counters[channel], 0)
        wanted = min(bytesize // sample_size, samples_left)
        start = (
            self.data_offset
            + self.samples_offsets[channel]
            + self.frame_counters[channel] * sample_size
        )
        chunk = self._data[start:start + wanted * sample_size]
        count = len(chunk) // sample_size
        self.frame_counters[channel] += count
        return chunk[: count * sample_size]

    def can_read(self) -> bool:
        """True while every channel has frames left before the end frame."""
        return all(
            self.frame_counters[channel] < self.end_frame for channel in range(self.nchannels)
        )

    def to_loop_point(self) -> None:
        """Move both channels to the loop start."""
        self.frame_counters[LEFT] = self.frame_counters[RIGHT] = self.loop_point

    def rewind(self) -> None:
        """Move both channels back to the first frame."""
        self.frame_counters[LEFT] = self.frame_counters[RIGHT] = 0

    def samples_read(self, channel: int) -> int:
        """Number of frames consumed on ``channel``."""
        return self.frame_counters[channel]