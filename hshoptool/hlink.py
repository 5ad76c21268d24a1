"""Client for the hLink remote-control protocol spoken by the handheld."""

from __future__ import annotations

import socket
import struct
from enum import IntEnum
from typing import Iterable, Tuple, Union

MAGIC = b"HLT"
DEFAULT_PORT = 37283
ERROR_MAXLEN = 100
# Pause the host should take between two commands so the device keeps up.
WAIT_TIMEOUT = 0.0005

_HEADER = struct.Struct(">3sBI")


class HAction(IntEnum):
    """Actions a transaction header can request."""

    add_queue = 0
    install_id = 1
    install_url = 2
    install_data = 3
    nothing = 4
    launch = 5
    sleep = 6


class HResponse(IntEnum):
    """Response codes sent back by the device."""

    accept = 0
    busy = 1
    untrusted = 2
    error = 3
    success = 4
    notfound = 5


class HLinkError(Exception):
    """Base class for every hLink failure."""

    default_message = "unknown"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.default_message if message is None else message)


class NotAuthenticatedError(HLinkError):
    """The link is not (or could not be) authenticated."""

    default_message = "not authenticated"


class TryAgainError(HLinkError):
    """The device is busy."""

    default_message = "server busy. try again"


class TitleNotFoundError(HLinkError):
    """The requested title is not installed on the device."""

    default_message = "title id not found on the host 3ds"


class ExtendedError(HLinkError):
    """An error message reported by the device itself."""


def make_header(action: int, size: int) -> bytes:
    """Build the 8-byte transaction header for ``action`` with a body of ``size`` bytes."""
    return _HEADER.pack(MAGIC, int(action), size)


def parse_response(data: bytes) -> Tuple[Union[HResponse, int], int]:
    """Decode an 8-byte response header into ``(response code, payload size)``."""
    if len(data) < _HEADER.size:
        raise HLinkError(f"short response: {len(data)} bytes")
    _magic, code, size = _HEADER.unpack(data[: _HEADER.size])
    try:
        code = HResponse(code)
    except ValueError:
        pass
    return code, size


def _recv_exact(sock: socket.socket, amount: int) -> bytes:
    chunks = bytearray()
    while len(chunks) < amount:
        chunk = sock.recv(amount - len(chunks))
        if not chunk:
            raise HLinkError("connection closed by the device")
        chunks += chunk
    return bytes(chunks)


def _check_response(code: Union[HResponse, int], size: int, sock: socket.socket) -> None:
    if code == HResponse.untrusted:
        raise NotAuthenticatedError()
    if code == HResponse.busy:
        raise TryAgainError()
    if code == HResponse.error:
        if size > ERROR_MAXLEN:
            raise ExtendedError("INTERNAL ERROR: error message from 3ds too long.")
        message = _recv_exact(sock, size).decode("utf-8", "replace")
        raise ExtendedError("3ds: " + message)
    if code == HResponse.notfound:
        raise TitleNotFoundError()


class Link:
    """A connection target on the device; every command opens its own socket."""

    def __init__(self, address: str, port: int = DEFAULT_PORT) -> None:
        try:
            infos = socket.getaddrinfo(address, port, socket.AF_INET, socket.SOCK_STREAM)
        except socket.gaierror as exc:
            raise HLinkError(str(exc)) from exc
        if not infos:
            raise HLinkError(f"no address found for {address}")
        self._host = infos[0]
        self.is_authed = False

    def _connect(self) -> socket.socket:
        family, type_, proto, _canon, sockaddr = self._host
        sock = socket.socket(family, type_, proto)
        try:
            sock.connect(sockaddr)
        except OSError:
            sock.close()
            raise
        return sock

    def _require_auth(self) -> None:
        if not self.is_authed:
            raise NotAuthenticatedError()

    def _transact(self, action: HAction, body: bytes = b"") -> None:
        self._require_auth()
        with self._connect() as sock:
            sock.sendall(make_header(action, len(body)))
            if body:
                sock.sendall(body)
            code, size = parse_response(_recv_exact(sock, _HEADER.size))
            _check_response(code, size, sock)

    def auth(self) -> None:
        """Authenticate with the device; does nothing if already authenticated."""
        if self.is_authed:
            return
        with self._connect() as sock:
            sock.sendall(make_header(HAction.nothing, 0))
            code, _size = parse_response(_recv_exact(sock, _HEADER.size))
        if code == HResponse.busy:
            raise TryAgainError()
        if code == HResponse.untrusted:
            raise NotAuthenticatedError()
        self.is_authed = True

    def add_queue(self, ids: Iterable[int]) -> None:
        """Add hShop ids to the device's download queue."""
        id_list = list(ids)
        self._transact(HAction.add_queue, struct.pack(f">{len(id_list)}Q", *id_list))

    def launch(self, tid: int) -> None:
        """Launch the title with title id ``tid`` on the device."""
        self._transact(HAction.launch, struct.pack(">Q", tid))

    def sleep(self) -> None:
        """Put the device to sleep for a few seconds."""
        self._transact(HAction.sleep)

    def __enter__(self) -> "Link":
        return self

    def __exit__(self, *args: object) -> None:
        self.is_authed = False