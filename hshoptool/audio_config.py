"""Loading and saving of the audio system configuration file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .playlist import Playlist, PlaylistFlag

DEFAULT_MUSIC_DIR = "/3ds/3hs/music/"
DEFAULT_CONFIG_PATH = "/3ds/3hs/audio.cfg"

DEFAULT_CONFIG = (
    "\n"
    "## This is the default 3hs Audio System configuration file\n"
    "## Everything following a pound (#) is ignored as a comment\n"
    "## You may specify options relating to the audio system here\n"
    "## Note that when you click on \"Save\" in the graphical manager all formatting will be discarded\n"
    "\n"
    "## A comma-seperated list of default playlist options, currently they may be:\n"
    "##   none       => no effect\n"
    "##   randomise  => randomise the order of songs in each playlist upon loading\n"
    "##   repeat     => repeat songs/playlists instead of remaining silent upon completion\n"
    "# playlist_options = none\n"
    "\n"
    "## Option to play every file as monostereo audio, even if it has multiple channels\n"
    "## Files sound significantly worse with this option\n"
    "# mono = no\n"
    "\n"
    "## Sets the name of the playlist to initially play when starting up 3hs\n"
    "## If this is not set, no audio is played when starting 3hs\n"
    "# default_playlist = playlist_name\n"
    "\n"
    "## You may have 0 or more of the following playlists, a list of songs associated with a name.\n"
    "## Note that playlist names may not contain spaces, if you wish for 3hs to display them anyway\n"
    "## replace the space with either a \"-\" or a \"_\" and 3hs will replace it with a space when displaying.\n"
    "# playlist_name [\n"
    "#   song_name_a.hwav        # path relative to /3ds/3hs/music\n"
    "#   /music/song_name_b.hwav # path relative to the root of the SD card\n"
    "# ]\n"
    "\n"
)

SAVED_HEADER = (
    "##===============================================##\n"
    "## This configuration file was generated by 3hs  ##\n"
    "##  edit at your own risk.                       ##\n"
    "##===============================================##\n"
    "\n"
)

_WS = " \t"
_ID_END = " \t=[#"


@dataclass
class AudioConfig:
    """Audio options and the configured playlists."""

    playlist_options: PlaylistFlag = PlaylistFlag.NONE
    default_playlist_name: Optional[str] = None
    always_mono: bool = False
    playlists: List[Playlist] = field(default_factory=list)

    def render(self, music_dir: str = DEFAULT_MUSIC_DIR) -> str:
        """Serialise the configuration in the saved-file format."""
        parts = [SAVED_HEADER, "playlist_options = "]
        names = []
        if self.playlist_options & PlaylistFlag.RANDOMISE:
            names.append("randomise")
        if self.playlist_options & PlaylistFlag.REPEAT:
            names.append("repeat")
        parts.append(", ".join(names) if names else "none")
        parts.append("\n")
        parts.append("mono = yes\n" if self.always_mono else "mono = no\n")
        parts.append("default_playlist = ")
        parts.append(self.default_playlist_name if self.default_playlist_name else "NULL")
        parts.append("\n\n")
        for playlist in self.playlists:
            parts.append(f"\n{playlist.name} [\n")
            for item in playlist:
                if item.startswith(music_dir):
                    item = item[len(music_dir):]
                parts.append(f"\t{item}\n")
            parts.append("]\n")
        return "".join(parts)

    def add_playlist(self, playlist: Playlist) -> None:
        """Append a playlist."""
        self.playlists.append(playlist)

    def delete_playlist(self, pos: int) -> Playlist:
        """Remove and return the playlist at position ``pos``."""
        return self.playlists.pop(pos)

    def find_playlist(self, name: Optional[str]) -> Optional[Playlist]:
        """Return the playlist called ``name``, or None."""
        if name is None:
            return None
        return next((pl for pl in self.playlists if pl.name == name), None)


def _parse_options(value: str) -> PlaylistFlag:
    flags = PlaylistFlag.NONE
    for token in value.split(","):
        token = token.lstrip(_WS).lower()
        if "none".startswith(token):
            continue
        if "randomise".startswith(token) or "randomize".startswith(token):
            flags |= PlaylistFlag.RANDOMISE
        elif "repeat".startswith(token):
            flags |= PlaylistFlag.REPEAT
    return flags


def _apply_key(config: AudioConfig, name: str, raw: str) -> None:
    value = raw.lstrip(_WS).split("#", 1)[0].rstrip(_WS)
    if name.startswith("playlist_options"):
        config.playlist_options = _parse_options(value)
    elif name.startswith("default_playlist"):
        config.default_playlist_name = value if value and value.lower() != "null" else None
    elif name.startswith("mono"):
        config.always_mono = value.lower() in ("yes", "on")


def _playlist_line(
    config: AudioConfig,
    playlist: Playlist,
    line: str,
    terminated: bool,
    music_dir: str,
) -> Optional[Playlist]:
    # A final line without a newline is not read inside a playlist.
    if not terminated:
        return playlist
    content = line.lstrip(_WS).split("#", 1)[0].rstrip(_WS)
    if not content:
        return playlist
    if content.startswith("]"):
        config.add_playlist(playlist)
        return None
    playlist.append("" if content.startswith("/") else music_dir, content)
    return playlist


def parse_config(text: str, music_dir: str = DEFAULT_MUSIC_DIR) -> AudioConfig:
    """Parse configuration text; relative playlist entries resolve against ``music_dir``."""
    config = AudioConfig()
    current: Optional[Playlist] = None
    lines = text.split("\n")
    last = len(lines) - 1
    for index, line in enumerate(lines):
        terminated = index < last
        if current is not None:
            current = _playlist_line(config, current, line, terminated, music_dir)
            continue
        stripped = line.lstrip(_WS)
        if not stripped or stripped.startswith("#"):
            continue
        cut = next((i for i, ch in enumerate(stripped) if ch in _ID_END), None)
        if cut is None:
            continue
        name = stripped[:cut].lower()
        rest = stripped[cut:].lstrip(_WS)
        if rest.startswith("["):
            current = _playlist_line(config, Playlist(name), rest[1:], terminated, music_dir)
        elif rest.startswith("="):
            _apply_key(config, name, rest[1:])
    if current is not None:
        config.add_playlist(current)
    return config


def load_config(
    path: Union[str, Path] = DEFAULT_CONFIG_PATH,
    music_dir: str = DEFAULT_MUSIC_DIR,
) -> AudioConfig:
    """Load the configuration, writing the default file if none exists."""
    cfg_path = Path(path)
    if not cfg_path.exists():
        try:
            cfg_path.write_text(DEFAULT_CONFIG, encoding="utf-8")
        except OSError:
            pass
        return AudioConfig()
    return parse_config(cfg_path.read_text(encoding="utf-8"), music_dir)


def save_config(
    config: AudioConfig,
    path: Union[str, Path] = DEFAULT_CONFIG_PATH,
    music_dir: str = DEFAULT_MUSIC_DIR,
) -> None:
    """Write ``config`` to ``path``."""
    Path(path).write_text(config.render(music_dir), encoding="utf-8")