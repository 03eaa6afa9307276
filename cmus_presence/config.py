# cmus_presence/config.py
"""Configuration for cmus-presence."""
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, Tuple

import tomlkit
from tomlkit.exceptions import TOMLKitError

DEFAULT_POLL_INTERVAL_MS = 5000
DEFAULT_RETRY_INTERVAL_MS = 15000
# Below this the end timestamp starts to jitter against Discord's own clock.
MIN_STABLE_POLL_INTERVAL_MS = 3000

APP_DIR_NAME = "cmus-presence"


class ConfigError(ValueError):
    """Config file that can't be read or has values of the wrong type."""


@dataclass
class PresenceConfig:
    """How the activity is decorated on Discord."""

    client_id: str = "1212098714341089433"
    separator: str = "|"  # between artist and title
    extras: Tuple[str, ...] = ("", "", "")  # appended after the song, in order
    large_image: str = "ignorance"
    large_text: str = "// to be ignorant is to be free //"
    small_image: str = "none"
    small_text: str = "wishes"

    @property
    def suffix(self) -> str:
        return "".join(self.extras)


@dataclass
class Config:
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    retry_interval_ms: int = DEFAULT_RETRY_INTERVAL_MS
    verbose: bool = False
    strict: bool = False
    artwork: bool = False
    socket_path: Optional[Path] = None
    presence: PresenceConfig = field(default_factory=PresenceConfig)

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000

    @property
    def retry_interval(self) -> float:
        return self.retry_interval_ms / 1000

    @staticmethod
    def default_path() -> Path:
        base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
        return Path(base) / APP_DIR_NAME / "config.toml"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load config from TOML, falling back to defaults when the file is absent."""
        path = path or cls.default_path()
        if not path.exists():
            return cls()

        try:
            doc = tomlkit.parse(path.read_text(encoding="utf-8")).unwrap()
        except (OSError, TOMLKitError) as e:
            raise ConfigError(f"Could not read {path}: {e}") from e

        config = cls()
        for key in ("poll_interval_ms", "retry_interval_ms"):
            if key in doc:
                setattr(config, key, _expect(doc, key, int, path))
        for key in ("verbose", "strict", "artwork"):
            if key in doc:
                setattr(config, key, _expect(doc, key, bool, path))
        if "socket_path" in doc:
            config.socket_path = Path(_expect(doc, "socket_path", str, path)).expanduser()

        presence = doc.get("presence", {})
        if not isinstance(presence, dict):
            raise ConfigError(f"{path}: [presence] must be a table")
        for f in fields(PresenceConfig):
            if f.name not in presence:
                continue
            if f.name == "extras":
                extras = presence["extras"]
                if not isinstance(extras, list) or not all(isinstance(x, str) for x in extras):
                    raise ConfigError(f"{path}: presence.extras must be a list of strings")
                config.presence.extras = tuple(extras)
            else:
                setattr(config.presence, f.name, _expect(presence, f.name, str, path))

        if config.poll_interval_ms <= 0 or config.retry_interval_ms <= 0:
            raise ConfigError(f"{path}: intervals must be positive")
        return config

    def to_toml(self) -> str:
        doc = tomlkit.document()
        doc.add(tomlkit.comment("cmus-presence configuration"))
        doc.add("poll_interval_ms", self.poll_interval_ms)
        doc.add("retry_interval_ms", self.retry_interval_ms)
        doc.add("verbose", self.verbose)
        doc.add("strict", self.strict)
        doc.add("artwork", self.artwork)
        if self.socket_path is not None:
            doc.add("socket_path", str(self.socket_path))

        presence = tomlkit.table()
        for f in fields(PresenceConfig):
            value = getattr(self.presence, f.name)
            presence.add(f.name, list(value) if f.name == "extras" else value)
        doc.add("presence", presence)
        return tomlkit.dumps(doc)

    def save(self, path: Optional[Path] = None) -> Path:
        path = path or self.default_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_toml(), encoding="utf-8")
        return path


def _expect(table: dict, key: str, kind: type, path: Path):
    value = table[key]
    # bool is a subclass of int; don't let `true` pass as an interval
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ConfigError(f"{path}: {key} must be of type {kind.__name__}")
    return value
