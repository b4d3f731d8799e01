"""Reading-progress commands backed by the HTTP API."""

from __future__ import annotations

from http import HTTPStatus

import requests

from . import config
from .output import CommandError, print_error, print_success


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


def update_progress(manga_id, chapter, volume=0):
    """Send the current chapter (and optional volume) for a manga."""
    if not manga_id:
        raise CommandError("manga ID is required (--manga-id)")
    cfg = _load_logged_in_config()
    server_url = config.get_server_url()

    body = {"manga_id": manga_id, "current_chapter": chapter}
    if volume > 0:
        body["current_volume"] = volume

    try:
        response = requests.post(
            f"{server_url}/users/progress",
            json=body,
            headers={"Authorization": f"Bearer {cfg.user.token}"},
        )
    except requests.RequestException as exc:
        print_error("Failed to update progress: Server connection error")
        raise CommandError(str(exc)) from exc

    if response.status_code not in (HTTPStatus.OK, HTTPStatus.CREATED):
        print_error(f"Failed to update progress: {_error_message(response)}")
        raise CommandError("failed to update progress")

    print_success("Reading progress updated!")
    print(f"Manga ID: {manga_id}")
    if volume > 0:
        print(f"Progress: Volume {volume}, Chapter {chapter}")
    else:
        print(f"Progress: Chapter {chapter}")
    print("\nView your library:")
    print("  mangahub library list")


def view_progress(manga_id):
    """Show and return the stored reading progress for a manga."""
    if not manga_id:
        raise CommandError("manga ID is required (--manga-id)")
    cfg = _load_logged_in_config()
    server_url = config.get_server_url()

    try:
        response = requests.get(
            f"{server_url}/users/progress/{manga_id}",
            headers={"Authorization": f"Bearer {cfg.user.token}"},
        )
    except requests.RequestException as exc:
        print_error("Failed to get progress: Server connection error")
        raise CommandError(str(exc)) from exc

    if response.status_code != HTTPStatus.OK:
        print_error(f"Failed to get progress: {_error_message(response)}")
        raise CommandError("failed to get progress")

    try:
        data = response.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    chapter = int(data.get("current_chapter") or 0)
    volume = int(data.get("current_volume") or 0)
    last_read = str(data.get("last_read_at") or "")

    print(f"Reading Progress for {manga_id}:")
    if volume > 0:
        print(f"  Volume: {volume}")
    print(f"  Chapter: {chapter}")
    if last_read:
        print(f"  Last read: {last_read}")
    return data