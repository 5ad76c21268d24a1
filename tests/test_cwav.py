import struct
from typing import Dict, List, Optional

import pytest

from hshoptool.cwav import LEFT, RIGHT, Cwav, CwavError, Encoding


def _vorbis_block(tags: Dict[str, str]) -> bytes:
    vendor = b"test vendor"
    body = struct.pack("<I", len(vendor)) + vendor + struct.pack("<I", len(tags))
    for key, value in tags.items():
        entry = f"{key}={value}".encode()
        body += struct.pack("<I", len(entry)) + entry
    return b"VCOM" + struct.pack("<I", len(body) + 8) + body


def build_cwav(
    channels: List[bytes],
    encoding: int = 1,
    rate: int = 22050,
    loop_start: int = 0,
    loop_end: Optional[int] = None,
    tags: Optional[Dict[str, str]] = None,
    endian: int = 0xFEFF,
    magic: bytes = b"CWAV",
    file_size_delta: int = 0,
) -> bytes:
    nch = len(channels)
    sample_size = 1 if encoding == 0 else 2
    if loop_end is None:
        loop_end = len(channels[0]) // sample_size

    prefix = b""
    pos = 0x40
    if tags is not None:
        vcom = _vorbis_block(tags)
        vcom_off = 0x40 + 6 + 12
        prefix = b"HWAV" + struct.pack("<H", 1) + struct.pack("<HHII", 0x8000, 0, vcom_off, len(vcom)) + vcom
        pos = vcom_off + len(vcom)

    info_off = pos
    info_size = 0x20 + (8 + 0x14) * nch
    info = b"INFO" + struct.pack(
        "<IBBHIIIII", info_size, encoding, 0, 0, rate, loop_start, loop_end, 0, nch
    )
    for i in range(nch):
        info += struct.pack("<HHI", 0x7100, 0, 4 + 8 * nch + 0x14 * i)
    sample_offset = 0
    for chan in channels:
        info += struct.pack("<HHIHHII", 0x1F00, 0, sample_offset, 0x300, 0, 0xFFFFFFFF, 0)
        sample_offset += len(chan)
    assert len(info) == info_size

    data_off = info_off + info_size
    samples = b"".join(channels)
    data_block = b"DATA" + struct.pack("<I", 8 + len(samples)) + samples
    total = data_off + len(data_block)

    header = b"" + magic + struct.pack(
        "<HHIIHH", endian, 0x40, 0x02010000, total + file_size_delta, 2, 0
    )
    header += struct.pack("<HHII", 0x7000, 0, info_off, info_size)
    header += struct.pack("<HHII", 0x7001, 0, data_off, len(data_block))
    header = header.ljust(0x40, b"\0")
    return header + prefix + info + data_block


def _pcm16(values: List[int]) -> bytes:
    return struct.pack(f"<{len(values)}h", *values)


def test_parses_mono_pcm16_header_fields():
    cw = Cwav(build_cwav([_pcm16([1, 2, 3, 4])], rate=32000), "/music/my-song_x.bcwav")
    assert cw.nchannels == 1
    assert cw.rate == 32000.0
    assert cw.encoding is Encoding.PCM16
    assert cw.end_frame == 4
    assert cw.artist is None
    assert cw.title == "my song x"


def test_title_without_extension_keeps_whole_name():
    cw = Cwav(build_cwav([_pcm16([0])]), "dir.d/plain_name")
    assert cw.title == "plain name"


def test_hwav_vorbis_comment_tags():
    data = build_cwav([_pcm16([5, 6])], tags={"ARTIST": "Someone", "title": "A Tune", "x": "y"})
    cw = Cwav(data, "file.bcwav")
    assert cw.artist == "Someone"
    assert cw.title == "A Tune"


def test_bad_vorbis_block_falls_back_to_filename():
    data = bytearray(build_cwav([_pcm16([5, 6])], tags={"artist": "Someone"}))
    vcom = data.index(b"VCOM")
    data[vcom + 4:vcom + 8] = struct.pack("<I", 3)
    cw = Cwav(bytes(data), "fallback-name.hwav")
    assert cw.artist is None
    assert cw.title == "fallback name"


def test_read_returns_samples_and_advances():
    values = [10, -20, 30, -40, 50]
    cw = Cwav(build_cwav([_pcm16(values)]), "a")
    first = cw.read(LEFT, 4)
    assert first == _pcm16(values[:2])
    assert cw.samples_read(LEFT) == 2
    rest = cw.read(LEFT, 1000)
    assert rest == _pcm16(values[2:])
    assert cw.samples_read(LEFT) == len(values)
    assert cw.read(LEFT, 1000) == b""


def test_read_stereo_channels_independent():
    left = _pcm16([1, 2, 3])
    right = _pcm16([7, 8, 9])
    cw = Cwav(build_cwav([left, right]), "s")
    assert cw.nchannels == 2
    assert cw.read(RIGHT, 100) == right
    assert cw.read(LEFT, 100) == left


def test_read_pcm8():
    samples = bytes([0x10, 0x80, 0xFF])
    cw = Cwav(build_cwav([samples], encoding=0), "p")
    assert cw.encoding is Encoding.PCM8
    assert cw.read(LEFT, 2) == samples[:2]
    assert cw.read(LEFT, 2) == samples[2:]


def test_read_stops_at_end_frame():
    values = [1, 2, 3, 4, 5, 6]
    cw = Cwav(build_cwav([_pcm16(values)], loop_end=3), "e")
    assert cw.read(LEFT, 100) == _pcm16(values[:3])
    assert not cw.can_read()


def test_can_read_rewind_and_loop_point():
    values = [1, 2, 3, 4]
    cw = Cwav(build_cwav([_pcm16(values)], loop_start=1), "l")
    assert cw.can_read()
    cw.read(LEFT, 100)
    assert not cw.can_read()
    cw.to_loop_point()
    assert cw.samples_read(LEFT) == 1
    assert cw.read(LEFT, 100) == _pcm16(values[1:])
    cw.rewind()
    assert cw.samples_read(LEFT) == 0
    assert cw.can_read()


def test_open_from_path(tmp_path):
    path = tmp_path / "some_track.bcwav"
    path.write_bytes(build_cwav([_pcm16([3, 4])]))
    cw = Cwav.open(path)
    assert cw.title == "some track"
    assert cw.read(LEFT, 4) == _pcm16([3, 4])


def test_open_missing_file(tmp_path):
    with pytest.raises(CwavError):
        Cwav.open(tmp_path / "missing.bcwav")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"magic": b"RIFF"},
        {"endian": 0xFFFE},
        {"file_size_delta": 1},
        {"encoding": 2},
        {"encoding": 3},
    ],
)
def test_invalid_files_rejected(kwargs):
    with pytest.raises(CwavError):
        Cwav(build_cwav([_pcm16([1, 2])], **kwargs), "bad")


def test_three_channels_rejected():
    with pytest.raises(CwavError):
        Cwav(build_cwav([_pcm16([1]), _pcm16([2]), _pcm16([3])]), "bad")


def test_truncated_data_rejected():
    with pytest.raises(CwavError):
        Cwav(b"CWAV" + b"\0" * 10, "bad")


def test_loop_start_beyond_data_rejected():
    with pytest.raises(CwavError):
        Cwav(build_cwav([_pcm16([1, 2])], loop_start=100), "bad")