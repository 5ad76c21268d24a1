"""Encoder for HWAV files: CWAV PCM audio with a vorbis comment block."""

from __future__ import annotations

import logging
import struct
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .cwav import (
    CWAV_HEADER_SIZE,
    CWAV_VERSION,
    TYPEID_CHANNEL_INFO,
    TYPEID_DATA_BLOCK,
    TYPEID_DSP_ADPCM_INFO,
    TYPEID_INFO_BLOCK,
    TYPEID_SAMPLE_DATA,
    TYPEID_VORBIS_COMMENT,
)

log = logging.getLogger(__name__)

VENDOR_STRING = b"HWAV Reference Encoder v1.0"
MAX_CHANNELS = 2

_CWAV_HEADER = struct.Struct("<4sHHIIHHHHIIHHII20x")
_HWAV_HEADER = struct.Struct("<4sH")
_SIZED_REF = struct.Struct("<HHII")
_BLOCK_HEAD = struct.Struct("<4sI")
_INFO = struct.Struct("<4sIBBHIIIII")
_REF = struct.Struct("<HHI")
_CHANNEL_INFO = struct.Struct("<HHIHHII")
_U32 = struct.Struct("<I")

_U8_TO_S8 = bytes((value - 128) & 0xFF for value in range(256))


class HwavError(ValueError):
    """The input audio cannot be encoded as HWAV."""


@dataclass(frozen=True)
class PcmAudio:
    """Signed little-endian PCM audio, one byte string per channel."""

    sample_rate: int
    sample_width: int
    channels: Sequence[bytes]

    def __post_init__(self) -> None:
        if self.sample_width not in (1, 2):
            raise HwavError(f"Unsupported sample width: {self.sample_width} bytes")
        if not 1 <= len(self.channels) <= MAX_CHANNELS:
            raise HwavError(
                f"At max 2 channels are supported. The file has {len(self.channels)} channels."
            )
        lengths = {len(channel) for channel in self.channels}
        if len(lengths) != 1:
            raise HwavError("all channels must hold the same number of samples")
        if lengths.pop() % self.sample_width:
            raise HwavError("channel data is not a whole number of samples")
        if not 0 < self.sample_rate <= 0xFFFFFFFF:
            raise HwavError(f"invalid sample rate: {self.sample_rate}")

    @property
    def frames(self) -> int:
        """Number of samples in each channel."""
        return len(self.channels[0]) // self.sample_width


def apply_tag_edits(tags: Mapping[str, str], edits: Iterable[str]) -> Dict[str, str]:
    """Apply ``key=value`` (set), ``key`` (unset) and ``-`` (clear all) edits.

    Keys match case-insensitively.
    """
    result = dict(tags)
    for edit in edits:
        if edit == "-":
            result = {}
            continue
        key, sep, value = edit.partition("=")
        if not sep:
            log.warning(
                'unsetting tag "%s" (if it exists--case insensitive). '
                "Was this really what you intended?",
                edit,
            )
        result = {k: v for k, v in result.items() if k.lower() != key.lower()}
        if sep:
            result[key] = value
    return result


def build_vorbis_comment(tags: Mapping[str, str]) -> bytes:
    """Encode ``tags`` as a vorbis comment payload (vendor string, then entries)."""
    parts = [_U32.pack(len(VENDOR_STRING)), VENDOR_STRING, _U32.pack(len(tags))]
    for key, value in tags.items():
        entry = key.encode("utf-8") + b"=" + value.encode("utf-8")
        parts.append(_U32.pack(len(entry)))
        parts.append(entry)
    return b"".join(parts)


def encode_hwav(audio: PcmAudio, tags: Optional[Mapping[str, str]] = None) -> bytes:
    """Build a complete HWAV file from ``audio`` and ``tags``."""
    comment = build_vorbis_comment(tags or {})
    nchannels = len(audio.channels)
    frames = audio.frames
    sample_block_size = audio.sample_width * frames

    vcom_ref = CWAV_HEADER_SIZE + _HWAV_HEADER.size + _SIZED_REF.size
    vcom_size = len(comment) + _BLOCK_HEAD.size
    info_ref = vcom_ref + vcom_size
    info_size = _INFO.size + (_REF.size + _CHANNEL_INFO.size) * nchannels
    data_ref = info_ref + info_size
    data_size = _BLOCK_HEAD.size + sample_block_size * nchannels
    file_size = data_ref + data_size

    parts: List[bytes] = [
        _CWAV_HEADER.pack(
            b"CWAV", 0xFEFF, CWAV_HEADER_SIZE, CWAV_VERSION, file_size, 2, 0,
            TYPEID_INFO_BLOCK, 0, info_ref, info_size,
            TYPEID_DATA_BLOCK, 0, data_ref, data_size,
        ),
        _HWAV_HEADER.pack(b"HWAV", 1),
        _SIZED_REF.pack(TYPEID_VORBIS_COMMENT, 0, vcom_ref, vcom_size),
        _BLOCK_HEAD.pack(b"VCOM", vcom_size),
        comment,
        _INFO.pack(
            b"INFO", info_size, audio.sample_width - 1, 0, 0,
            audio.sample_rate, 0, frames, 0, nchannels,
        ),
    ]
    # Channel info offsets are relative to the ``nrefs`` field.
    parts.extend(
        _REF.pack(
            TYPEID_CHANNEL_INFO, 0,
            _U32.size + _REF.size * nchannels + _CHANNEL_INFO.size * index,
        )
        for index in range(nchannels)
    )
    parts.extend(
        _CHANNEL_INFO.pack(
            TYPEID_SAMPLE_DATA, 0, _BLOCK_HEAD.size + sample_block_size * index,
            TYPEID_DSP_ADPCM_INFO, 0, 0xFFFFFFFF, 0,
        )
        for index in range(nchannels)
    )
    parts.append(_BLOCK_HEAD.pack(b"DATA", data_size))
    parts.extend(bytes(channel) for channel in audio.channels)

    data = b"".join(parts)
    if len(data) != file_size:
        raise HwavError(
            f"Internal error! computed file size is not actual file size ({len(data)})!"
        )
    return data


def _split_channels(raw: bytes, width: int, nchannels: int) -> List[bytes]:
    stride = width * nchannels
    return [
        b"".join(raw[pos:pos + width] for pos in range(channel * width, len(raw), stride))
        for channel in range(nchannels)
    ]


def read_wav(path: Union[str, Path]) -> PcmAudio:
    """Read an 8- or 16-bit PCM WAV file into planar signed samples."""
    try:
        with wave.open(str(path), "rb") as wav:
            nchannels = wav.getnchannels()
            width = wav.getsampwidth()
            rate = wav.getframerate()
            raw = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError, OSError) as exc:
        raise HwavError(f"Failed to open {path}: {exc}.") from exc
    if width not in (1, 2):
        raise HwavError(f"Unsupported sample format! {width * 8}-bit.")
    if not 1 <= nchannels <= MAX_CHANNELS:
        raise HwavError(
            f"At max 2 channels are supported. The file has {nchannels} channels."
        )
    raw = raw[: len(raw) - len(raw) % (width * nchannels)]
    if width == 1:
        raw = raw.translate(_U8_TO_S8)
    return PcmAudio(rate, width, _split_channels(raw, width, nchannels))


def make_hwav(
    output: Union[str, Path],
    input_path: Union[str, Path],
    tag_edits: Iterable[str] = (),
) -> Dict[str, str]:
    """Encode the WAV file at ``input_path`` to ``output``; returns the tags written."""
    audio = read_wav(input_path)
    tags = apply_tag_edits({}, tag_edits)
    data = encode_hwav(audio, tags)
    try:
        Path(output).write_bytes(data)
    except OSError as exc:
        raise HwavError(f"Failed to open output ({output}): {exc}.") from exc
    return tags