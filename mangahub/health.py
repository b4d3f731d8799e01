"""Liveness and readiness checks for the API server."""

from __future__ import annotations

from http import HTTPStatus


def _ping(database):
    ping = getattr(database, "ping", None)
    if callable(ping):
        ping()
    else:
        database.execute("SELECT 1")


class HealthHandler:
    """Answers health probes with a status code and a JSON-ready body."""

    def __init__(self, bridge, database=None):
        self.bridge = bridge
        self.database = database

    def healthz(self):
        """The process is alive."""
        return int(HTTPStatus.OK), {"status": "alive"}

    def readyz(self):
        """The database answers and the bridge is running."""
        unavailable = int(HTTPStatus.SERVICE_UNAVAILABLE)
        if self.database is None:
            return unavailable, {"status": "not_ready", "reason": "database_not_initialized"}
        try:
            _ping(self.database)
        except Exception:
            return unavailable, {"status": "not_ready", "reason": "database_ping_failed"}
        if self.bridge.get_total_connection_count() < 0:
            return unavailable, {"status": "not_ready", "reason": "bridge_not_running"}
        return int(HTTPStatus.OK), {"status": "ready"}