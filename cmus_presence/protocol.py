# cmus_presence/protocol.py
"""Parsing for cmus's `status` reply.

cmus answers `status\n` on its control socket with lines such as::

    status playing
    file /music/Artist/01 Song.flac
    duration 200
    position 50
    tag artist Artist
    tag title Song
    set shuffle false

followed by one empty line.
"""
from typing import Dict, Iterable, Optional, Tuple

from .models import PlaybackStatus, StatusRecord

REQUEST = b"status\n"

# Keys under these prefixes are two words long ("tag artist", "set shuffle").
_COMPOUND_PREFIXES = ("tag", "set")

_STATUS_TOKENS = {s.value: s for s in PlaybackStatus}


class ProtocolError(ValueError):
    """A reply from cmus that doesn't match the expected shape."""


class UnknownStatus(ProtocolError):
    def __init__(self, token: str):
        super().__init__(f"unknown playback status: {token!r}")
        self.token = token


class MalformedNumber(ProtocolError):
    def __init__(self, field: str, value: str):
        super().__init__(f"field {field!r} is not a non-negative integer: {value!r}")
        self.field = field
        self.value = value


class MissingField(ProtocolError):
    def __init__(self, field: str):
        super().__init__(f"required field {field!r} is missing")
        self.field = field


def split_line(line: str) -> Optional[Tuple[str, str]]:
    """Split a reply line into (key, value), or None if it has no value part."""
    head, sep, rest = line.partition(" ")
    if not sep or not head:
        return None
    if head in _COMPOUND_PREFIXES:
        sub, sep, value = rest.partition(" ")
        if not sep or not sub:
            return None
        return f"{head} {sub}", value
    return head, rest


def block_lines(raw: str) -> Iterable[str]:
    """Yield the lines of one reply block, stopping at the empty terminator line."""
    for line in raw.split("\n"):
        line = line.rstrip("\r")
        if not line:
            return
        yield line


def _parse_fields(raw: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for line in block_lines(raw):
        kv = split_line(line)
        if kv is None:
            continue
        key, value = kv
        # first occurrence wins, like a regex search over the block
        fields.setdefault(key, value)
    return fields


def _parse_seconds(fields: Dict[str, str], key: str, required: bool) -> Optional[int]:
    value = fields.get(key)
    if value is None:
        if required:
            raise MissingField(key)
        return None
    if not value.isdigit() or not value.isascii():
        raise MalformedNumber(key, value)
    return int(value)


def parse_status(token: str) -> PlaybackStatus:
    try:
        return _STATUS_TOKENS[token]
    except KeyError:
        raise UnknownStatus(token) from None


def parse_block(raw: str) -> StatusRecord:
    """Parse one reply block into a StatusRecord.

    Raises ProtocolError (UnknownStatus, MalformedNumber or MissingField) on the
    first invalid field. A stopped player's reply is never validated beyond its
    status line.
    """
    fields = _parse_fields(raw)

    token = fields.get("status")
    if token is None:
        raise MissingField("status")
    status = parse_status(token)

    if status is PlaybackStatus.STOPPED:
        return StatusRecord(status=status, fields=fields)

    playing = status is PlaybackStatus.PLAYING
    duration = _parse_seconds(fields, "duration", required=playing)
    position = _parse_seconds(fields, "position", required=playing)
    return StatusRecord(status=status, fields=fields, duration=duration, position=position)


def filename_stem(path: Optional[str]) -> str:
    """Last path segment without its final extension; "" when there isn't one."""
    if not path:
        return ""
    segment = path.rsplit("/", 1)[-1]
    stem, dot, ext = segment.rpartition(".")
    if not dot or not stem or not ext:
        return ""
    return stem
