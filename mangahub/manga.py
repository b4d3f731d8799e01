"""Manga search, details, listing, featured and ranking commands."""

from __future__ import annotations

from http import HTTPStatus

import requests

from . import config
from .mangaview import (
    featured_row,
    filter_mangas,
    format_search_header,
    ranking_row,
    render_manga_info,
    render_table,
    render_title_box,
    truncate_string,
)
from .output import CommandError, print_error

MAX_LIMIT = 100
MIN_QUERY_LENGTH = 3

_RANKING_LABELS = {
    "all": "Top Ranked Manga",
    "bypopularity": "Most Popular Manga",
    "favorite": "Most Favorited Manga",
}


def _server_url():
    try:
        return config.get_server_url()
    except CommandError:
        print_error("Configuration not initialized")
        print("Run: mangahub init")
        raise


def _get(url, failure, params=None):
    try:
        return requests.get(url, params=params)
    except requests.RequestException as exc:
        print_error(f"{failure}: Server connection error")
        print("Check server status: mangahub server status")
        raise CommandError(str(exc)) from exc


def _json_body(response, empty):
    try:
        data = response.json()
    except ValueError:
        return empty
    return data if isinstance(data, type(empty)) else empty


def _error_message(response):
    return str(_json_body(response, {}).get("error", ""))


def _clamp_limit(limit):
    return MAX_LIMIT if limit <= 0 or limit > MAX_LIMIT else limit


def _int(value):
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _dicts(value):
    return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


def _print_too_short(query):
    print(f'\nSearching for "{query}"...')
    print("\n✗ Search query too short")
    print("\nRequirements:")
    print("  - Search query must be at least 3 characters")
    print("\nSuggestions:")
    print("  - Use more specific search terms")
    print("  - Try full manga title instead of abbreviations")


def _print_footer():
    print("\nUse 'mangahub manga info <id>' to view details")
    print("Use 'mangahub library add --manga-id <id>' to add to your library")


def search(query, genre="", status="", limit=MAX_LIMIT):
    """Search manga by title, filter by genre and status, and return the matches shown."""
    if len(query.strip()) < MIN_QUERY_LENGTH:
        _print_too_short(query)
        return []

    server_url = _server_url()
    response = _get(
        f"{server_url}/manga/search",
        "Search failed",
        params={"q": query, "limit": _clamp_limit(limit)},
    )

    if response.status_code != HTTPStatus.OK:
        message = _error_message(response)
        if "at least 3 characters" in message:
            _print_too_short(query)
            return []
        print_error(f"Search failed: {message}")
        raise CommandError("search failed")

    mangas = _dicts(_json_body(response, {}).get("mangas"))
    matches = filter_mangas(mangas, genre, status, limit)
    header = format_search_header(query, genre, status)

    if not matches:
        print(f"\n{header}")
        print("\nNo manga found matching your search criteria.")
        print("\nSuggestions:")
        print("  - Check spelling and try again")
        print("  - Use broader search terms")
        if genre or status:
            print("  - Try removing filters")
        print("  - Try different keywords")
        print("  - Browse by searching popular titles")
        return []

    print(f"\n{header}")
    print(f"\nFound {len(matches)} results:\n")
    rows = []
    for manga in matches:
        chapters = _int(manga.get("total_chapters"))
        rows.append(
            (
                truncate_string(str(manga.get("id") or ""), 19),
                truncate_string(str(manga.get("title") or ""), 20),
                truncate_string(str(manga.get("author") or ""), 20),
                truncate_string(str(manga.get("status") or ""), 8),
                str(chapters) if chapters else "Ongoing",
            )
        )
    print(render_table(rows))
    _print_footer()
    return matches


def info(manga_id):
    """Show and return the details of one manga."""
    server_url = _server_url()

    if not all("0" <= ch <= "9" for ch in manga_id):
        print_error(f"Invalid manga ID: {manga_id}")
        print("\nManga ID must be a numeric value.")
        print("\nTo find a manga ID:")
        print('  mangahub manga search "manga title"')
        raise CommandError("invalid manga ID")

    response = _get(f"{server_url}/manga/info/{manga_id}", "Failed to get manga info")

    if response.status_code == HTTPStatus.NOT_FOUND:
        print_error(f"Manga not found: {manga_id}")
        print("\nTry searching for manga:")
        print('  mangahub manga search "manga title"')
        raise CommandError("manga not found")

    if response.status_code != HTTPStatus.OK:
        print_error(f"Failed to get manga info: {_error_message(response)}")
        raise CommandError("failed to get manga info")

    manga = _json_body(response, {})
    print(render_manga_info(manga_id, manga))
    return manga


def list_all():
    """Show and return every manga in the database."""
    server_url = _server_url()
    response = _get(f"{server_url}/manga/all", "Failed to list manga")

    if response.status_code != HTTPStatus.OK:
        print_error(f"Failed to list manga: {_error_message(response)}")
        raise CommandError("failed to list manga")

    data = _json_body(response, {})
    count = _int(data.get("count"))
    mangas = _dicts(data.get("mangas"))

    if count == 0:
        print("\nNo manga found in the database.")
        print("\nThe database is empty. Manga can be added by administrators.")
        return []

    print(f"\nTotal manga available: {count}\n")
    for number, manga in enumerate(mangas, start=1):
        title = truncate_string(str(manga.get("title") or ""), 40)
        print(f"{number:3d}. {title:<40} [{manga.get('id') or ''}]")
        print(
            f"     Author: {str(manga.get('author') or ''):<20} "
            f"Status: {str(manga.get('status') or ''):<15} "
            f"Chapters: {_int(manga.get('total_chapters'))}"
        )

    print("\nUse 'mangahub manga info <id>' to view details")
    return mangas


def featured():
    """Show the featured sections and return those that hold manga."""
    server_url = _server_url()
    response = _get(f"{server_url}/manga/featured", "Failed to fetch featured manga")

    if response.status_code != HTTPStatus.OK:
        print_error(f"Failed to fetch featured manga: {_error_message(response)}")
        raise CommandError("failed to fetch featured manga")

    sections = _dicts(_json_body(response, {}).get("sections"))
    shown = []
    for section in sections:
        mangas = _dicts(section.get("mangas"))
        if not mangas:
            continue
        shown.append(section)
        print()
        print(render_title_box(str(section.get("label") or "")))
        print(render_table(featured_row(manga) for manga in mangas))

    _print_footer()
    print()
    return shown


def ranking(ranking_type="all", limit=MAX_LIMIT):
    """Show and return a manga ranking of the given type."""
    server_url = _server_url()
    response = _get(
        f"{server_url}/manga/ranking",
        "Failed to fetch ranking",
        params={"type": ranking_type, "limit": _clamp_limit(limit)},
    )

    if response.status_code != HTTPStatus.OK:
        print_error(f"Failed to fetch ranking: {_error_message(response)}")
        raise CommandError("failed to fetch ranking")

    data = _json_body(response, {})
    count = _int(data.get("count"))
    mangas = _dicts(data.get("mangas"))

    if count == 0:
        print(f"\nNo manga found for ranking type: {ranking_type}")
        print("\nAvailable ranking types:")
        print("  - all: Top ranked manga")
        print("  - bypopularity: Most popular manga")
        print("  - favorite: Most favorited manga")
        return []

    label = _RANKING_LABELS.get(str(data.get("type") or ""), "Manga Ranking")
    print()
    print(render_title_box(label))
    print(f"Found {count} results\n")
    print(render_table(ranking_row(manga) for manga in mangas))
    _print_footer()
    print()
    return mangas