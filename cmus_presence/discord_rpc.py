# cmus_presence/discord_rpc.py
import time
from typing import Callable, Optional

import structlog
from pypresence import Presence
from pypresence.exceptions import PyPresenceException
from pypresence.types import ActivityType

from .models import ActivityPayload

log = structlog.get_logger()


class SinkError(RuntimeError):
    """Discord refused or lost the presence update."""


def display_name(user: Optional[dict]) -> str:
    user = user or {}
    name = user.get("username") or "Unknown"
    disc = user.get("discriminator", "")
    return f"{name}#{disc}" if disc and disc != "0" else name


class PresenceSink:
    """Publishes activities to the local Discord client over RPC."""

    def __init__(self, client_id: str, presence_factory: Callable[[str], Presence] = Presence):
        self.client_id = client_id
        self._presence_factory = presence_factory
        self._rpc: Optional[Presence] = None
        self.user_name = ""

    @property
    def started(self) -> bool:
        return self._rpc is not None

    def start(self) -> None:
        rpc = self._presence_factory(self.client_id)
        try:
            rpc.connect()
        except (PyPresenceException, OSError) as e:
            raise SinkError(f"Could not connect to Discord: {e}") from e
        self._rpc = rpc

        # Give Discord time to send READY payload
        time.sleep(0.3)
        self.user_name = display_name(getattr(rpc, "user", None))
        log.info("discord_connected", user=self.user_name, client_id=self.client_id)

    def _require(self) -> Presence:
        if self._rpc is None:
            raise SinkError("Presence sink used before start()")
        return self._rpc

    def set_activity(self, payload: ActivityPayload) -> None:
        rpc = self._require()
        try:
            rpc.update(activity_type=ActivityType.LISTENING, **payload.to_presence_kwargs())
        except (PyPresenceException, OSError) as e:
            raise SinkError(f"Failed to set presence: {e}") from e

    def clear_activity(self) -> None:
        rpc = self._require()
        try:
            rpc.clear()
        except (PyPresenceException, OSError) as e:
            raise SinkError(f"Failed to clear presence: {e}") from e

    def close(self) -> None:
        if self._rpc is None:
            return
        rpc, self._rpc = self._rpc, None
        try:
            rpc.close()
        except (PyPresenceException, OSError) as e:
            log.debug("discord_close_failed", error=str(e))
