import pytest

from hshoptool.titles import decode_utf16, native_title_index, str_to_tid, tid_to_str


def test_str_to_tid_parses_hex():
    assert str_to_tid("0004000000123400") == 0x0004000000123400


def test_str_to_tid_accepts_prefix_and_trailing_text():
    assert str_to_tid("0x1F") == 0x1F
    assert str_to_tid("  abcXYZ") == 0xABC


def test_str_to_tid_unparsable_is_zero():
    assert str_to_tid("zz") == 0
    assert str_to_tid("") == 0


def test_str_to_tid_saturates():
    assert str_to_tid("1" * 20) == 2**64 - 1


def test_tid_to_str_zero_is_empty():
    assert tid_to_str(0) == ""


def test_tid_to_str_pads_and_uppercases():
    assert tid_to_str(0xABC) == "0000000000000ABC"


@pytest.mark.parametrize("tid", [1, 0x0004000000123400, 2**64 - 1])
def test_tid_round_trip(tid):
    text = tid_to_str(tid)
    assert len(text) == 16
    assert str_to_tid(text) == tid


def test_decode_utf16_stops_at_nul():
    data = "Hello".encode("utf-16-le") + b"\x00\x00" + "junk".encode("utf-16-le")
    assert decode_utf16(data) == "Hello"


def test_decode_utf16_non_ascii_round_trip():
    text = "ゼルダ"
    assert decode_utf16(text.encode("utf-16-le")) == text


def test_decode_utf16_invalid_raises():
    with pytest.raises(ValueError):
        decode_utf16(b"\x00\xd8\x41\x00")


def test_native_title_prefers_language():
    titles = ["jp"] + ["en"] + [""] * 10
    assert native_title_index(titles, 1) == 1


def test_native_title_falls_back_to_first_present():
    titles = [""] * 3 + ["de"] + [""] * 4 + ["nl"] + [""] * 3
    assert native_title_index(titles, 1) == 3


def test_native_title_without_language():
    titles = [""] * 11 + ["tw"]
    assert native_title_index(titles, None) == 11


def test_native_title_none_when_all_empty():
    assert native_title_index([""] * 12, 0) is None


def test_native_title_ignores_nul_first_char():
    titles = ["\0x"] + ["fallback"] + [""] * 10
    assert native_title_index(titles, 0) == 1