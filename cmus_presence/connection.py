# cmus_presence/connection.py
"""Connection to cmus's control socket."""
import os
import socket
import threading
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

import structlog

from .protocol import REQUEST

log = structlog.get_logger()


class ConnectionLost(ConnectionError):
    """The socket failed mid-request; the handle is gone."""


class ConnectCancelled(Exception):
    """connect() was interrupted by the stop event."""


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def resolve_socket_path(env: Optional[Mapping[str, str]] = None) -> Path:
    """Find the cmus socket the same way cmus itself does."""
    env = os.environ if env is None else env

    override = env.get("CMUS_SOCKET")
    if override:
        return Path(override)

    runtime_dir = env.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / "cmus-socket"

    config_home = env.get("XDG_CONFIG_HOME")
    if not config_home:
        home = env.get("HOME")
        config_home = str(Path(home) / ".config") if home else str(Path.home() / ".config")
    return Path(config_home) / "cmus" / "socket"


class ConnectionManager:
    """Owns the single connection to cmus and re-establishes it on demand."""

    def __init__(
        self,
        socket_path: Path,
        retry_interval: float,
        stop_event: Optional[threading.Event] = None,
    ):
        self.socket_path = socket_path
        self.retry_interval = retry_interval
        self.stop_event = stop_event or threading.Event()
        self.state = ConnectionState.DISCONNECTED
        self._sock: Optional[socket.socket] = None
        self._reader = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect_once(self) -> None:
        """Single connection attempt; raises OSError if cmus isn't listening."""
        self.close()
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(str(self.socket_path))
        except OSError:
            sock.close()
            raise
        self._sock = sock
        self._reader = sock.makefile("rb")
        self.state = ConnectionState.CONNECTED

    def connect(self) -> None:
        """Block until cmus accepts a connection, retrying every retry_interval.

        Raises ConnectCancelled if the stop event is set while waiting.
        """
        self.close()
        self.state = ConnectionState.CONNECTING
        attempt = 0
        while not self.stop_event.is_set():
            attempt += 1
            try:
                self.connect_once()
            except OSError as e:
                self.state = ConnectionState.CONNECTING
                log.debug(
                    "cmus_connect_failed",
                    path=str(self.socket_path),
                    attempt=attempt,
                    error=str(e),
                    retry_in_ms=int(self.retry_interval * 1000),
                )
                if self.stop_event.wait(self.retry_interval):
                    break
                continue

            log.debug("cmus_connected", path=str(self.socket_path), attempt=attempt)
            return

        self.state = ConnectionState.DISCONNECTED
        raise ConnectCancelled()

    def request_status(self) -> str:
        """Send `status` and return the reply up to its empty terminator line.

        Any failure drops the handle and raises ConnectionLost.
        """
        sock, reader = self._sock, self._reader
        if sock is None:
            raise ConnectionLost("not connected")

        try:
            sock.sendall(REQUEST)
            lines = []
            while True:
                line = reader.readline()
                if not line:
                    raise ConnectionLost("cmus closed the connection")
                if line in (b"\n", b"\r\n"):
                    break
                lines.append(line.decode("utf-8", errors="replace"))
        except ConnectionLost:
            self.close()
            raise
        except (OSError, ValueError) as e:
            # ValueError: reader was closed under us by close()/stop
            self.close()
            raise ConnectionLost(str(e)) from e

        return "".join(lines) + "\n"

    def close(self) -> None:
        reader, sock = self._reader, self._sock
        self._reader = None
        self._sock = None
        self.state = ConnectionState.DISCONNECTED
        # shutdown first so a readline blocked in another thread returns
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        if reader is not None:
            reader.close()
        if sock is not None:
            sock.close()
