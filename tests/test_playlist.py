import random

import pytest

from hshoptool.playlist import Playlist, PlaylistCursor, PlaylistFlag


@pytest.fixture
def files(tmp_path):
    paths = []
    for name in ("a.hwav", "b.hwav", "c.hwav"):
        path = tmp_path / name
        path.write_bytes(b"x")
        paths.append(str(path))
    return paths


@pytest.fixture
def playlist(files):
    pl = Playlist("mix")
    for path in files:
        pl.append("", path)
    return pl


def test_append_readable_files(playlist, files):
    assert list(playlist) == files
    assert len(playlist) == 3


def test_append_uses_prefix(tmp_path, files):
    pl = Playlist("p")
    assert pl.append(str(tmp_path) + "/", "a.hwav") is True
    assert list(pl) == [files[0]]


def test_append_skips_missing_file(tmp_path):
    pl = Playlist("p")
    assert pl.append(str(tmp_path) + "/", "missing.hwav") is False
    assert len(pl) == 0


def test_append_skips_duplicates(playlist, files):
    assert playlist.append("", files[1]) is False
    assert list(playlist) == files


def test_remove(playlist, files):
    playlist.remove(files[1])
    assert list(playlist) == [files[0], files[2]]


def test_remove_missing_raises(playlist):
    with pytest.raises(ValueError):
        playlist.remove("nope")


def test_swap_adjacent_and_far(playlist, files):
    playlist.swap(0, 1)
    assert list(playlist) == [files[1], files[0], files[2]]
    playlist.swap(2, 0)
    assert list(playlist) == [files[2], files[0], files[1]]


def test_swap_invalid_is_ignored(playlist, files):
    playlist.swap(1, 1)
    playlist.swap(0, 5)
    playlist.swap(-1, 0)
    assert list(playlist) == files


def test_cursor_walks_in_order_then_finishes(playlist, files):
    cursor = PlaylistCursor(playlist)
    assert [cursor.next() for _ in range(3)] == files
    assert cursor.next() is None
    assert cursor.finished
    assert cursor.next() is None
    assert cursor.prev() is None


def test_cursor_repeat_wraps(playlist, files):
    cursor = PlaylistCursor(playlist, PlaylistFlag.REPEAT)
    walked = [cursor.next() for _ in range(4)]
    assert walked == files + [files[0]]
    assert not cursor.finished


def test_cursor_prev_without_repeat_replays_first(playlist, files):
    cursor = PlaylistCursor(playlist)
    assert cursor.next() == files[0]
    assert cursor.prev() == files[0]
    assert cursor.next() == files[1]
    assert cursor.prev() == files[0]


def test_cursor_prev_with_repeat_wraps_to_last(playlist, files):
    cursor = PlaylistCursor(playlist, PlaylistFlag.REPEAT)
    cursor.next()
    assert cursor.prev() == files[-1]


def test_cursor_randomise_is_permutation(playlist, files):
    cursor = PlaylistCursor(playlist, PlaylistFlag.RANDOMISE, random.Random(3))
    walked = [cursor.next() for _ in range(3)]
    assert sorted(walked) == sorted(files)
    assert cursor.next() is None


def test_cursor_empty_playlist():
    cursor = PlaylistCursor(Playlist("empty"))
    assert cursor.next() is None
    assert cursor.prev() is None
    assert cursor.is_single() is False


def test_cursor_is_single(files):
    pl = Playlist("one")
    pl.append("", files[0])
    cursor = PlaylistCursor(pl)
    assert cursor.is_single() is True
    assert cursor.next() == files[0]
    assert cursor.next() is None
    assert cursor.is_single() is False