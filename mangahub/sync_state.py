"""Persistent state of the TCP sync connection and the sync lock file."""

from __future__ import annotations

import os
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import yaml

from .config import get_config_dir
from .output import CommandError

_STALE_AFTER = timedelta(minutes=2)
_FRACTION = re.compile(r"\.(\d+)")

_state_lock = threading.Lock()
_lock_file = None


@dataclass
class ConnectionInfo:
    connected: bool = False
    session_id: str = ""
    server: str = ""
    connected_at: datetime | None = None
    device_type: str = ""
    device_name: str = ""
    last_heartbeat: datetime | None = None
    pid: int = 0


@dataclass
class SyncState:
    active_connection: ConnectionInfo | None = None


def _parse_time(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    return datetime.fromisoformat(text)


def _format_time(value):
    return value.isoformat() if value is not None else None


def _info_to_dict(info):
    return {
        "connected": info.connected,
        "session_id": info.session_id,
        "server": info.server,
        "connected_at": _format_time(info.connected_at),
        "device_type": info.device_type,
        "device_name": info.device_name,
        "last_heartbeat": _format_time(info.last_heartbeat),
        "pid": info.pid,
    }


def _info_from_dict(raw):
    if not isinstance(raw, dict):
        raise ValueError("active_connection must be a mapping")
    return ConnectionInfo(
        connected=bool(raw.get("connected") or False),
        session_id=str(raw.get("session_id") or ""),
        server=str(raw.get("server") or ""),
        connected_at=_parse_time(raw.get("connected_at")),
        device_type=str(raw.get("device_type") or ""),
        device_name=str(raw.get("device_name") or ""),
        last_heartbeat=_parse_time(raw.get("last_heartbeat")),
        pid=int(raw.get("pid") or 0),
    )


def _since(moment):
    if moment is None:
        return timedelta.max
    now = datetime.now(moment.tzinfo) if moment.tzinfo else datetime.now()
    return now - moment


def get_sync_state_path():
    """Path of the sync state file."""
    return get_config_dir() / "sync_state.yaml"


def get_sync_lock_path():
    """Path of the sync lock file."""
    return get_config_dir() / "sync.lock"


def load_sync_state():
    """Read the sync state; a missing file means no active connection."""
    with _state_lock:
        path = get_sync_state_path()
        if not path.exists():
            return SyncState()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CommandError(f"failed to read sync state: {exc}") from exc
        try:
            data = yaml.safe_load(text)
            if data is None:
                return SyncState()
            if not isinstance(data, dict):
                raise ValueError("sync state must be a mapping")
            raw = data.get("active_connection")
            return SyncState(None if raw is None else _info_from_dict(raw))
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            raise CommandError(f"failed to parse sync state: {exc}") from exc


def save_sync_state(state):
    """Write the sync state atomically through a temporary file."""
    with _state_lock:
        path = get_sync_state_path()
        data = {}
        if state.active_connection is not None:
            data["active_connection"] = _info_to_dict(state.active_connection)
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        temp_path = path.with_name(path.name + ".tmp")
        try:
            temp_path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise CommandError(f"failed to write sync state: {exc}") from exc
        try:
            os.replace(temp_path, path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise CommandError(f"failed to save sync state: {exc}") from exc


def set_active_connection(session_id, server, device_type, device_name):
    """Record a new active connection owned by this process."""
    now = datetime.now().astimezone()
    info = ConnectionInfo(
        connected=True,
        session_id=session_id,
        server=server,
        connected_at=now,
        device_type=device_type,
        device_name=device_name,
        last_heartbeat=now,
        pid=os.getpid(),
    )
    save_sync_state(SyncState(info))
    return info


def update_heartbeat():
    """Refresh the heartbeat time of the active connection."""
    state = load_sync_state()
    if state.active_connection is None:
        raise CommandError("no active connection to update")
    state.active_connection.last_heartbeat = datetime.now().astimezone()
    save_sync_state(state)


def clear_active_connection():
    """Forget the active connection."""
    save_sync_state(SyncState())


def is_connection_active():
    """Return ``(active, info)`` for the recorded connection.

    A connection whose owning process is gone is cleared. One whose heartbeat
    is older than two minutes is reported inactive but its details returned.
    """
    state = load_sync_state()
    info = state.active_connection
    if info is None or not info.connected:
        return False, None
    if not is_process_alive(info.pid):
        clear_active_connection()
        return False, None
    if _since(info.last_heartbeat) > _STALE_AFTER:
        return False, info
    return True, info


def acquire_sync_lock():
    """Create the lock file, failing if another sync process holds it."""
    global _lock_file
    path = get_sync_lock_path()
    try:
        handle = open(path, "x", encoding="utf-8")
    except FileExistsError as exc:
        raise CommandError("another sync process is already running") from exc
    except OSError as exc:
        raise CommandError(f"failed to acquire sync lock: {exc}") from exc
    handle.write(f"{os.getpid()}\n")
    handle.flush()
    _lock_file = handle


def release_sync_lock():
    """Remove the lock file if this process holds it."""
    global _lock_file
    if _lock_file is None:
        return
    _lock_file.close()
    _lock_file = None
    os.remove(get_sync_lock_path())


def is_process_alive(pid):
    """Whether a process with this id is running."""
    if pid <= 0:
        return False
    if pid == os.getpid():
        return True
    if os.name == "nt":
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True