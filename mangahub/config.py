"""Client configuration stored in ``.mangahub/config.yaml``."""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .output import CommandError

_INTEGER = re.compile(r"[+-]?\d+")


@dataclass
class ServerSettings:
    host: str = ""
    http_port: int = 0
    tcp_port: int = 0
    udp_port: int = 0
    grpc_port: int = 0
    websocket_port: int = 0


@dataclass
class DatabaseSettings:
    path: str = ""


@dataclass
class UserSettings:
    username: str = ""
    token: str = ""


@dataclass
class SyncSettings:
    auto_sync: bool = False
    conflict_resolution: str = ""


@dataclass
class NotificationSettings:
    enabled: bool = False
    sound: bool = False


@dataclass
class LoggingSettings:
    level: str = ""
    path: str = ""


def _section(raw, kind):
    if raw is None:
        return kind()
    if not isinstance(raw, dict):
        raise ValueError(f"expected a mapping for {kind.__name__}, got {type(raw).__name__}")
    known = {f.name for f in fields(kind)}
    return kind(**{key: value for key, value in raw.items() if key in known and value is not None})


@dataclass
class Config:
    server: ServerSettings = field(default_factory=ServerSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    user: UserSettings = field(default_factory=UserSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def to_dict(self):
        """Return the configuration as nested plain dictionaries."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        """Build a configuration from nested dictionaries; missing keys keep zero values."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("configuration must be a mapping")
        return cls(**{f.name: _section(data.get(f.name), f.default_factory) for f in fields(cls)})


def load_env_port(key, default):
    """Read a port from the environment or a ``.env`` file, falling back to ``default``."""
    load_dotenv(Path.cwd() / ".env")
    value = os.environ.get(key, "")
    if not value or not _INTEGER.fullmatch(value):
        return default
    return int(value)


def get_config_dir():
    """Directory holding the client configuration, under the working directory."""
    return Path.cwd() / ".mangahub"


def get_config_path():
    """Path of the configuration file."""
    return get_config_dir() / "config.yaml"


def load():
    """Read the configuration file."""
    path = get_config_path()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CommandError(f"failed to read config file: {exc}") from exc
    try:
        return Config.from_dict(yaml.safe_load(text))
    except (yaml.YAMLError, ValueError, TypeError) as exc:
        raise CommandError(f"failed to parse config file: {exc}") from exc


def save(config):
    """Write the configuration file."""
    path = get_config_path()
    text = yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise CommandError(f"failed to write config file: {exc}") from exc


def init():
    """Create the configuration directories and a default configuration."""
    config_dir = get_config_dir()
    for directory, label in (
        (config_dir, "config"),
        (config_dir / "data", "data"),
        (config_dir / "logs", "logs"),
    ):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CommandError(f"failed to create {label} directory: {exc}") from exc

    config = Config(
        server=ServerSettings(
            host="localhost",
            http_port=load_env_port("API_PORT", 8080),
            tcp_port=load_env_port("TCP_PORT", 9090),
            udp_port=load_env_port("UDP_PORT", 9091),
            grpc_port=load_env_port("GRPC_PORT", 9092),
            websocket_port=load_env_port("WEBSOCKET_PORT", 9093),
        ),
        database=DatabaseSettings(path=str(config_dir / "data.db")),
        user=UserSettings(),
        sync=SyncSettings(auto_sync=True, conflict_resolution="last_write_wins"),
        notifications=NotificationSettings(enabled=True, sound=False),
        logging=LoggingSettings(level="info", path=str(config_dir / "logs")),
    )
    save(config)
    return config


def update_user_token(username, token):
    """Store the logged-in user's name and token."""
    config = load()
    config.user.username = username
    config.user.token = token
    save(config)


def clear_user_token():
    """Forget the logged-in user."""
    config = load()
    config.user.username = ""
    config.user.token = ""
    save(config)


def get_server_url():
    """Base URL of the HTTP API server."""
    config = load()
    return f"http://{config.server.host}:{config.server.http_port}"