"""Fan-out of HTTP-side events to connected TCP sync clients."""

from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .events import (
    BroadcastEvent,
    Event,
    EventType,
    LibraryUpdateEvent,
    ProgressUpdateEvent,
)

_QUEUE_SIZE = 100
_POLL_SECONDS = 0.05


def _remote_addr(conn):
    addr = getattr(conn, "remote_addr", None)
    if addr is not None:
        return str(addr)
    getpeername = getattr(conn, "getpeername", None)
    if getpeername is not None:
        try:
            peer = getpeername()
        except OSError:
            return ""
        if isinstance(peer, tuple) and len(peer) >= 2:
            return f"{peer[0]}:{peer[1]}"
        return str(peer)
    return repr(conn)


def _send(conn, payload):
    sendall = getattr(conn, "sendall", None)
    if sendall is not None:
        sendall(payload)
    else:
        conn.write(payload)


def _timestamp():
    return datetime.now().astimezone().isoformat(timespec="seconds")


@dataclass
class TCPClient:
    conn: Any
    user_id: str


@dataclass
class DeviceInfo:
    device_type: str
    device_name: str
    session_id: str = ""
    connected_at: datetime = field(default_factory=datetime.now)
    last_heartbeat: datetime = field(default_factory=datetime.now)
    is_online: bool = True


class Bridge:
    """Keeps the TCP connections of each user and delivers events to them.

    Events queued by the notify methods are delivered in order by a worker
    thread started with :meth:`start`.
    """

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger(__name__)
        self._clients: dict[str, list[TCPClient]] = {}
        self._lock = threading.RLock()
        self._udp_broadcaster = None
        self._session_manager = None
        self._events: queue.Queue[Event] = queue.Queue(maxsize=_QUEUE_SIZE)
        self._stopped = threading.Event()
        self._worker: threading.Thread | None = None

    def _log(self, level, name, **fields):
        details = " ".join(f"{key}={value}" for key, value in fields.items())
        self.logger.log(level, "%s %s", name, details)

    def start(self):
        """Start delivering queued events."""
        self._log(logging.INFO, "bridge_started")
        self._stopped.clear()
        self._worker = threading.Thread(target=self._process_events, name="bridge-events", daemon=True)
        self._worker.start()

    def stop(self):
        """Stop delivering queued events."""
        self._log(logging.INFO, "bridge_stopping")
        self._stopped.set()
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=1.0)

    def set_udp_broadcaster(self, broadcaster):
        with self._lock:
            self._udp_broadcaster = broadcaster
        self._log(logging.INFO, "udp_broadcaster_set")

    def set_session_manager(self, session_manager):
        with self._lock:
            self._session_manager = session_manager
        self._log(logging.INFO, "session_manager_set")

    def register_tcp_client(self, conn, user_id):
        with self._lock:
            clients = self._clients.setdefault(user_id, [])
            clients.append(TCPClient(conn, user_id))
            total = len(clients)
        self._log(
            logging.INFO,
            "tcp_client_registered",
            user_id=user_id,
            client_addr=_remote_addr(conn),
            total_clients=total,
        )

    def unregister_tcp_client(self, conn, user_id):
        with self._lock:
            clients = self._clients.get(user_id, [])
            for index, client in enumerate(clients):
                if client.conn is conn:
                    del clients[index]
                    break
            if not clients:
                self._clients.pop(user_id, None)
            remaining = len(clients)
        self._log(
            logging.INFO,
            "tcp_client_unregistered",
            user_id=user_id,
            client_addr=_remote_addr(conn),
            remaining_clients=remaining,
        )

    def notify_progress_update(self, event: ProgressUpdateEvent):
        """Queue a progress update for the user's clients and notify listeners."""
        data = {
            "manga_id": event.manga_id,
            "chapter_id": event.chapter_id,
            "status": event.status,
            "last_read_date": event.last_read_date,
        }
        self._events.put(Event(EventType.PROGRESS_UPDATE, event.user_id, data, event.last_read_date))
        self._log(
            logging.DEBUG,
            "progress_update_queued",
            user_id=event.user_id,
            manga_id=event.manga_id,
            chapter_id=event.chapter_id,
        )
        self._broadcast_update_event(event.user_id, "updated", event.manga_title, event.chapter_id, "outgoing")
        if self._udp_broadcaster is not None:
            self._udp_broadcaster.broadcast_to_user(
                event.user_id, BroadcastEvent(event_type="progress_update", data=data)
            )

    def notify_library_update(self, event: LibraryUpdateEvent):
        """Queue a library change for the user's clients and notify listeners."""
        data = {"manga_id": event.manga_id, "action": event.action}
        self._events.put(Event(EventType.LIBRARY_UPDATE, event.user_id, data))
        self._log(
            logging.DEBUG,
            "library_update_queued",
            user_id=event.user_id,
            manga_id=event.manga_id,
            action=event.action,
        )
        self._broadcast_update_event(event.user_id, event.action, event.manga_id, 0, "outgoing")
        if self._udp_broadcaster is not None:
            self._udp_broadcaster.broadcast_to_user(
                event.user_id, BroadcastEvent(event_type="library_update", data=data)
            )

    def _clients_of(self, user_id):
        with self._lock:
            return list(self._clients.get(user_id, ()))

    def _broadcast_update_event(self, user_id, action, manga_title, chapter, direction):
        manager = self._session_manager
        if manager is None:
            return
        subscribed = list(manager.get_subscribed_clients() or ())
        if not subscribed:
            return
        clients = self._clients_of(user_id)

        for client_id in subscribed:
            if not manager.is_subscribed(client_id):
                continue
            session = manager.get_session_by_client_id(client_id)
            if session is None:
                continue
            try:
                session_user = session.user_id
                device_type = session.device_type
                device_name = session.device_name
            except AttributeError:
                continue
            if session_user != user_id:
                continue

            update_event = {
                "type": "update_event",
                "payload": {
                    "timestamp": _timestamp(),
                    "direction": direction,
                    "action": action,
                    "manga_title": manga_title,
                    "chapter": chapter,
                    "device_type": device_type,
                    "device_name": device_name,
                },
            }
            try:
                message = (json.dumps(update_event) + "\n").encode("utf-8")
            except (TypeError, ValueError) as exc:
                self._log(logging.ERROR, "failed_to_marshal_update_event", error=exc)
                continue
            for client in clients:
                try:
                    _send(client.conn, message)
                except OSError as exc:
                    self._log(logging.WARNING, "failed_to_send_update_event", user_id=user_id, error=exc)

    def _encode(self, user_id, event):
        try:
            return (event.to_json() + "\n").encode("utf-8")
        except (TypeError, ValueError) as exc:
            self._log(logging.ERROR, "failed_to_marshal_event", user_id=user_id, error=exc)
            return None

    def broadcast_to_user(self, user_id, event: Event):
        """Write an event to every connection of a user."""
        clients = self._clients_of(user_id)
        if not clients:
            self._log(logging.DEBUG, "no_tcp_clients_for_user", user_id=user_id)
            return
        message = self._encode(user_id, event)
        if message is None:
            return

        success = failed = 0
        for client in clients:
            try:
                _send(client.conn, message)
            except OSError as exc:
                self._log(
                    logging.WARNING,
                    "failed_to_send_to_client",
                    user_id=user_id,
                    client_addr=_remote_addr(client.conn),
                    error=exc,
                )
                failed += 1
            else:
                success += 1

        self._log(
            logging.INFO,
            "event_broadcast_complete",
            user_id=user_id,
            event_type=getattr(event.type, "value", event.type),
            success_count=success,
            fail_count=failed,
        )

    def broadcast_to_user_except(self, user_id, event: Event, except_conn_addr):
        """Write an event to every connection of a user but the one at the given address."""
        clients = self._clients_of(user_id)
        if not clients:
            self._log(logging.DEBUG, "no_tcp_clients_for_user", user_id=user_id)
            return
        message = self._encode(user_id, event)
        if message is None:
            return

        sent = 0
        for client in clients:
            address = _remote_addr(client.conn)
            if address == except_conn_addr:
                continue
            try:
                _send(client.conn, message)
            except OSError as exc:
                self._log(
                    logging.WARNING,
                    "failed_to_send_to_client",
                    user_id=user_id,
                    client_addr=address,
                    error=exc,
                )
            else:
                sent += 1

        self._log(
            logging.DEBUG,
            "event_broadcast_to_devices",
            user_id=user_id,
            event_type=getattr(event.type, "value", event.type),
            devices_notified=sent,
        )

    def get_active_user_count(self):
        with self._lock:
            return len(self._clients)

    def get_total_connection_count(self):
        with self._lock:
            return sum(len(clients) for clients in self._clients.values())

    def get_user_devices(self, user_id):
        """Describe each connection of a user as a device."""
        with self._lock:
            return [
                DeviceInfo(device_type="unknown", device_name=_remote_addr(client.conn))
                for client in self._clients.get(user_id, ())
            ]

    def get_device_count(self, user_id):
        with self._lock:
            return len(self._clients.get(user_id, ()))

    def get_all_devices(self):
        with self._lock:
            return {user_id: self.get_user_devices(user_id) for user_id in list(self._clients)}

    def _process_events(self):
        while not self._stopped.is_set():
            try:
                event = self._events.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                continue
            self.broadcast_to_user(event.user_id, event)
        self._log(logging.INFO, "bridge_stopped")