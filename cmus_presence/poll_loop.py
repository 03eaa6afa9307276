# cmus_presence/poll_loop.py
"""The main poll cycle: ask cmus, build the activity, publish it, sleep."""
import time
from typing import Callable, Optional

import structlog

from .activity import build_activity
from .config import Config
from .connection import ConnectCancelled, ConnectionLost, ConnectionManager
from .models import ActivityPayload, StatusRecord
from .protocol import ProtocolError, parse_block

log = structlog.get_logger()


class PollLoop:
    def __init__(
        self,
        connection: ConnectionManager,
        sink,
        config: Config,
        clock: Callable[[], float] = time.time,
        artwork_lookup: Optional[Callable[[str, str], Optional[str]]] = None,
        on_status: Optional[Callable[[str], None]] = None,
        on_activity: Optional[Callable[[ActivityPayload], None]] = None,
    ):
        self.connection = connection
        self.sink = sink
        self.config = config
        self.clock = clock
        self.artwork_lookup = artwork_lookup
        self.on_status = on_status
        self.on_activity = on_activity
        self.stop_event = connection.stop_event
        self.counter = 0
        self._sink_started = False

    def _status(self, msg: str) -> None:
        if self.on_status:
            self.on_status(msg)

    def _ensure_ready(self) -> None:
        if not self.connection.connected:
            self._status("Waiting for cmus…")
            self.connection.connect()
            self._status("cmus connected")
        if not self._sink_started:
            self._status("Connecting to Discord…")
            self.sink.start()
            self._sink_started = True

    def _artwork_for(self, record: StatusRecord) -> Optional[str]:
        if self.artwork_lookup is None:
            return None
        if record.artist is None or record.title is None:
            return None
        return self.artwork_lookup(record.title, record.artist)

    def run_once(self) -> bool:
        """Run one cycle without sleeping.

        Returns False when the connection to cmus was lost (presence cleared,
        handle dropped), True otherwise. SinkError always propagates; a
        ProtocolError propagates only in strict mode.
        """
        self._ensure_ready()

        try:
            raw = self.connection.request_status()
        except ConnectionLost as e:
            log.info("cmus_connection_lost", error=str(e))
            self._status("cmus disconnected")
            self.sink.clear_activity()
            self.connection.close()
            return False

        log.debug("cmus_status_received", raw=raw)

        try:
            record = parse_block(raw)
        except ProtocolError as e:
            if self.config.strict:
                raise
            log.warning("cmus_status_invalid", error=str(e))
            return True

        payload = build_activity(
            record,
            int(self.clock()),
            self.config.presence,
            artwork_url=self._artwork_for(record),
        )
        self.sink.set_activity(payload)

        self.counter += 1
        log.info("presence_set", count=self.counter, details=payload.details, state=payload.state)
        self._status(f"{payload.details}: {payload.state}" if payload.state else payload.details)
        if self.on_activity:
            self.on_activity(payload)
        return True

    def run(self) -> None:
        """Poll until stop() is called. Connection errors are recovered here."""
        while not self.stop_event.is_set():
            try:
                polled = self.run_once()
            except ConnectCancelled:
                break
            if not polled:
                # reconnect straight away
                continue

            log.debug("poll_sleep", ms=self.config.poll_interval_ms)
            if self.stop_event.wait(self.config.poll_interval):
                break
        log.debug("poll_loop_stopped", cycles=self.counter)

    def stop(self) -> None:
        self.stop_event.set()
        self.connection.close()
