"""Personal manga library commands backed by the HTTP API."""

from __future__ import annotations

from http import HTTPStatus

import requests

from . import config
from .output import CommandError, print_error, print_success

VALID_STATUSES = ("reading", "completed", "on_hold", "dropped", "plan_to_read")
DEFAULT_STATUS = "plan_to_read"


def _load_logged_in_config():
    try:
        cfg = config.load()
    except CommandError:
        print_error("Configuration not initialized")
        print("Run: mangahub init")
        raise
    if not cfg.user.token:
        print_error("Not logged in")
        print("Run: mangahub auth login --username <username>")
        raise CommandError("authentication required")
    return cfg


def _error_message(response):
    try:
        data = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict):
        return str(data.get("error", ""))
    return ""


def add_to_library(manga_id, status=DEFAULT_STATUS, favorite=False):
    """Add a manga to the library with a reading status; return the status used."""
    if not manga_id:
        raise CommandError("manga ID is required (--manga-id)")
    status = status or DEFAULT_STATUS
    if status not in VALID_STATUSES:
        raise CommandError(
            f"invalid status: {status} (use: reading, completed, on_hold, dropped, plan_to_read)"
        )

    cfg = _load_logged_in_config()
    server_url = config.get_server_url()

    try:
        response = requests.post(
            f"{server_url}/users/library",
            json={"manga_id": manga_id, "status": status, "is_favorite": bool(favorite)},
            headers={"Authorization": f"Bearer {cfg.user.token}"},
        )
    except requests.RequestException as exc:
        print_error("Failed to add to library: Server connection error")
        raise CommandError(str(exc)) from exc

    if response.status_code not in (HTTPStatus.CREATED, HTTPStatus.OK):
        print_error(f"Failed to add to library: {_error_message(response)}")
        raise CommandError("failed to add to library")

    print_success("Manga added to library!")
    print(f"Manga ID: {manga_id}")
    print(f"Status: {status}")
    if favorite:
        print("Marked as favorite: Yes")
    print("\nNext steps:")
    print("  View library: mangahub library list")
    print(f"  Update progress: mangahub progress update --manga-id {manga_id} --chapter <chapter>")
    return status


def list_library():
    """Show the library and return its entries."""
    cfg = _load_logged_in_config()
    server_url = config.get_server_url()

    try:
        response = requests.get(
            f"{server_url}/users/library",
            headers={"Authorization": f"Bearer {cfg.user.token}"},
        )
    except requests.RequestException as exc:
        print_error("Failed to get library: Server connection error")
        raise CommandError(str(exc)) from exc

    if response.status_code != HTTPStatus.OK:
        print_error(f"Failed to get library: {_error_message(response)}")
        raise CommandError("failed to get library")

    try:
        data = response.json()
    except ValueError:
        data = []
    entries = [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []

    if not entries:
        print("Your library is empty")
        print("\nAdd manga to library:")
        print('  mangahub manga search "one piece"')
        print("  mangahub library add --manga-id <manga-id> --status reading")
        return []

    print(f"Your Library ({len(entries)} manga):\n")
    for number, item in enumerate(entries, start=1):
        print(f"{number}. {item.get('title') or ''}")
        print(f"   ID: {item.get('manga_id') or ''}")
        print(f"   Status: {item.get('status') or ''}")
        if item.get("is_favorite"):
            print("   ⭐ Favorite")
        print()
    return entries