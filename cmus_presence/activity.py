# cmus_presence/activity.py
from typing import Optional

from .config import PresenceConfig
from .models import ActivityPayload, PlaybackStatus, StatusRecord
from .protocol import filename_stem


def state_line(record: StatusRecord, presence: PresenceConfig) -> str:
    artist, title = record.artist, record.title
    if artist is not None and title is not None:
        return f"{artist} {presence.separator} {title}{presence.suffix}"

    stem = filename_stem(record.file)
    if not stem:
        return ""
    return stem + presence.suffix


def build_activity(
    record: StatusRecord,
    now: int,
    presence: PresenceConfig,
    artwork_url: Optional[str] = None,
) -> ActivityPayload:
    """Turn a parsed status into the activity published to Discord.

    Pure: the same record, `now` and config always give the same payload.
    """
    details = record.status.display_name
    if record.status is PlaybackStatus.STOPPED:
        return ActivityPayload(details=details)

    end = None
    if record.status is PlaybackStatus.PLAYING:
        end = now + record.duration - record.position

    return ActivityPayload(
        details=details,
        state=state_line(record, presence),
        end=end,
        large_image=artwork_url or presence.large_image,
        large_text=presence.large_text,
        small_image=presence.small_image,
        small_text=presence.small_text,
    )
