"""Tools for hShop HSTX themes, HWAV/CWAV audio, playlists, the audio configuration and the hLink protocol."""

__version__ = "0.1.0"