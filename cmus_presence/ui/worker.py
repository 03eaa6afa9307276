# cmus_presence/ui/worker.py
from dataclasses import asdict

import structlog
from PySide6.QtCore import QThread, Signal

from ..artwork import lookup_artwork
from ..config import Config
from ..connection import ConnectionManager, resolve_socket_path
from ..discord_rpc import PresenceSink, SinkError
from ..models import ActivityPayload
from ..poll_loop import PollLoop
from ..protocol import ProtocolError

log = structlog.get_logger()


class PresenceWorker(QThread):
    status = Signal(str)
    account = Signal(str)      # Discord display name
    activity = Signal(dict)    # ActivityPayload as dict

    def __init__(self, config: Config, parent=None):
        super().__init__(parent)
        self.config = config
        socket_path = config.socket_path or resolve_socket_path()
        self._connection = ConnectionManager(socket_path, config.retry_interval)
        self._sink = PresenceSink(config.presence.client_id)
        self._loop = PollLoop(
            self._connection,
            self._sink,
            config,
            artwork_lookup=lookup_artwork if config.artwork else None,
            on_status=self._on_status,
            on_activity=self._on_activity,
        )

    def _on_status(self, msg: str):
        self.status.emit(msg)

    def _on_activity(self, payload: ActivityPayload):
        self.account.emit(self._sink.user_name)
        self.activity.emit(asdict(payload))

    def stop(self):
        self._loop.stop()

    def run(self):
        try:
            self._loop.run()
        except (SinkError, ProtocolError) as e:
            log.error("worker_failed", error=str(e))
            self.status.emit(f"Stopped: {e}")
        finally:
            if self._sink.started:
                try:
                    self._sink.clear_activity()
                except SinkError as e:
                    log.debug("presence_clear_failed", error=str(e))
            self._connection.close()
            self._sink.close()
