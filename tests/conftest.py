"""Shared test fixtures for cmus-presence."""

import socket
import tempfile
import threading
from pathlib import Path

import pytest

PLAYING_BLOCK = (
    "status playing\n"
    "file /music/Artist/01 Song.flac\n"
    "duration 200\n"
    "position 50\n"
    "tag artist Artist\n"
    "tag title Song\n"
    "set shuffle false\n"
    "\n"
)

STOPPED_BLOCK = "status stopped\nset shuffle false\n\n"

# FakeCmus reply that reads the request but never answers
HANG = object()


@pytest.fixture
def short_tmp_path():
    """Create a short temporary path for Unix sockets.

    Unix socket paths are limited to ~104 characters and
    pytest's tmp_path can be too long, so we use /tmp directly.
    """
    with tempfile.TemporaryDirectory(dir="/tmp", prefix="cp_") as tmpdir:
        yield Path(tmpdir)


class FakeCmus:
    """Minimal cmus stand-in: answers each `status` line with the next reply.

    A reply of None closes the client connection instead of answering;
    HANG leaves the request unanswered.
    """

    def __init__(self, path: Path, replies):
        self.path = path
        self.replies = list(replies)
        self.requests = []
        self.connections = 0
        self._server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._server.bind(str(path))
        self._server.listen(4)
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while True:
            try:
                conn, _ = self._server.accept()
            except OSError:
                return
            self.connections += 1
            with conn, conn.makefile("rb") as reader:
                self._handle(conn, reader)

    def _handle(self, conn, reader):
        while True:
            line = reader.readline()
            if not line:
                return
            self.requests.append(line)
            reply = self.replies.pop(0) if self.replies else None
            if reply is None:
                return
            if reply is HANG:
                continue
            conn.sendall(reply.encode())

    def close(self):
        self._server.close()


@pytest.fixture
def fake_cmus(short_tmp_path):
    servers = []

    def start(replies):
        server = FakeCmus(short_tmp_path / "cmus.sock", replies)
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.close()


class FakeSink:
    """Records presence calls in order."""

    def __init__(self):
        self.calls = []
        self.started = False

    def start(self):
        self.started = True
        self.calls.append(("start",))

    def set_activity(self, payload):
        self.calls.append(("set", payload))

    def clear_activity(self):
        self.calls.append(("clear",))

    def close(self):
        self.calls.append(("close",))


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()
