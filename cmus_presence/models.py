# cmus_presence/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

DISCORD_TEXT_LIMIT = 128
DISCORD_TEXT_MIN = 2


class PlaybackStatus(Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    def __str__(self) -> str:
        return self.display_name


@dataclass(frozen=True)
class StatusRecord:
    """One parsed `status` reply from cmus."""

    status: PlaybackStatus
    fields: Mapping[str, str] = field(default_factory=dict)
    duration: Optional[int] = None
    position: Optional[int] = None

    def get(self, key: str) -> Optional[str]:
        return self.fields.get(key)

    @property
    def artist(self) -> Optional[str]:
        return self.fields.get("tag artist")

    @property
    def title(self) -> Optional[str]:
        return self.fields.get("tag title")

    @property
    def file(self) -> Optional[str]:
        return self.fields.get("file")


@dataclass(frozen=True)
class ActivityPayload:
    details: str
    state: str = ""
    end: Optional[int] = None
    large_image: str = ""
    large_text: str = ""
    small_image: str = ""
    small_text: str = ""

    def to_presence_kwargs(self) -> dict:
        # Discord rejects empty strings, so unset fields are left out entirely
        payload = {
            "details": _fit(self.details),
            "state": _fit(self.state),
            "large_image": self.large_image,
            "large_text": self.large_text[:DISCORD_TEXT_LIMIT],
            "small_image": self.small_image,
            "small_text": self.small_text[:DISCORD_TEXT_LIMIT],
        }
        payload = {k: v for k, v in payload.items() if v}
        if self.end is not None:
            payload["end"] = self.end
        return payload


def _fit(text: str) -> str:
    """Clip to Discord's limit and pad short non-empty text up to its 2-char minimum."""
    if not text:
        return text
    return text[:DISCORD_TEXT_LIMIT].ljust(DISCORD_TEXT_MIN)
