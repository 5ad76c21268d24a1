# hshoptool

Command-line tools and a small library for the files and network protocol
used by the hShop on-device client: HSTX theme files, HWAV/CWAV audio,
the audio configuration file with its playlists, and the hLink remote
control protocol.

## Installation

```
pip install .
```

## Command line

```
hshoptool hlink ADDRESS [cmd [arg...]...]
hshoptool maketheme INPUT-CONFIG OUTPUT.hstx
hshoptool makehwav INPUT.wav OUTPUT.hwav [name=value | name | -]...
```

Each subcommand returns exit status 1 on a usage error or failure and
prints the reason to standard error.

### hlink

Connects to a device over IPv4 TCP port 37283, authenticates, then runs the
commands in the order given. Short options may be grouped (`-sw 100`).

- `-s`, `--sleep` – put the device to sleep
- `-a`, `--add-queue IDS...` – add up to 10 decimal hShop ids to the download queue
- `-l`, `--launch TID` – launch a title by its hexadecimal title id, which must start with `0004`
- `-w`, `--wait MS...` – wait the given number of milliseconds (each argument in turn)

Arguments to an option are taken until the next argument that starts with
`-`. A failing command is reported and the following commands still run.

### maketheme

Builds an HSTX theme file from a `key = value` configuration, one entry per
line; lines starting with `#` are comments. Recognised keys:

- `name`, `author` – stored as strings in the file
- colours such as `background_colour`, `text_colour`, `button_background_colour`,
  `scrollbar_colour`, `led_success`, `warning_colour`, `x_colour` and the rest of
  the colour keys in `hshoptool.hstx` – written as `#RRGGBBAA` hex, or as a
  decimal, `0x` hex or leading-`0` octal number
- images such as `background_top_image`, `background_bottom_image`,
  `more_image`, `spinner_image` – any image Pillow can open, at most 400x360,
  stored as RGBA; relative paths are resolved against the configuration
  file's directory

An unknown key, a bad colour or a line without `=` stops the build with an
error.

### makehwav

Encodes an 8- or 16-bit PCM WAV file with one or two channels into an HWAV
file (a CWAV file with an embedded Vorbis comment block). The trailing
arguments edit the tag set, in order: `name=value` sets a tag, `name` alone
removes it (with a warning), and `-` clears all tags collected so far. Tag
names match case-insensitively. The tags written are printed when done.

## Library

- `hshoptool.hlink` – `Link` (`auth`, `add_queue`, `launch`, `sleep`; usable as a
  context manager), `make_header`, `parse_response`, and the errors
  `HLinkError`, `NotAuthenticatedError`, `TryAgainError`, `TitleNotFoundError`,
  `ExtendedError`.
- `hshoptool.hstx` – `build_hstx`, `make_hstx`, `parse_color`, `version_int`,
  `Ident`, `ThemeError`.
- `hshoptool.hwav` – `PcmAudio`, `encode_hwav`, `read_wav`, `make_hwav`,
  `apply_tag_edits`, `build_vorbis_comment`, `HwavError`.
- `hshoptool.cwav` – `Cwav` reads PCM8/PCM16 CWAV and HWAV files, with title
  and artist from the Vorbis comment (the title falls back to the file name),
  per-channel `read`, `can_read`, `to_loop_point`, `rewind`, `samples_read`.
- `hshoptool.playlist` – `Playlist` (readable, de-duplicated paths; `append`,
  `remove`, `swap`) and `PlaylistCursor` (`next`, `prev`, `is_single`) with the
  `PlaylistFlag.RANDOMISE` and `PlaylistFlag.REPEAT` options.
- `hshoptool.audio_config` – `AudioConfig`, `parse_config`, `load_config`
  (writes a commented default file when none exists), `save_config`.
- `hshoptool.kvparser` – `KVParser` for `key=value` lines and
  `parse_forwarder_config`.
- `hshoptool.lzss` – `decompress`, `decompress_buffer` for backwards-LZSS code
  binaries, and `find_dsp_firmware` to locate the signed DSP firmware image.
- `hshoptool.titles` – `str_to_tid`, `tid_to_str`, `decode_utf16`,
  `native_title_index`.

## What it does not do

It does not play audio, provide the on-device client's screens, or install,
list or delete titles on a device. `makehwav` reads WAV input only and does
not resample or convert other formats. `maketheme` writes a target version
of 0 in the theme header.

## Tests

```
pip install .[test]
pytest
```