"""Text rendering and filtering for the manga commands."""

from __future__ import annotations

from urllib.parse import quote_plus

_BOX_WIDTH = 69
_COLUMNS = (("ID", 19), ("Title", 20), ("Author", 20), ("Status", 8), ("Chapters", 11))


def _int(value):
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _float(value):
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _border(left, middle, right):
    return left + middle.join("─" * (width + 2) for _, width in _COLUMNS) + right


def _row(values):
    cells = (f" {str(value):<{width}} " for value, (_, width) in zip(values, _COLUMNS))
    return "│" + "│".join(cells) + "│"


def truncate_string(s, max_len):
    """Shorten ``s`` to ``max_len`` characters, ending in an ellipsis."""
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."


def wrap_text(text, width):
    """Wrap text on word boundaries so that lines stay within ``width``."""
    if len(text) <= width:
        return text
    parts = []
    line_len = 0
    for index, word in enumerate(text.split()):
        if index > 0:
            if line_len + len(word) + 1 > width:
                parts.append("\n")
                line_len = 0
            else:
                parts.append(" ")
                line_len += 1
        parts.append(word)
        line_len += len(word)
    return "".join(parts)


def render_title_box(label):
    """A three-line box with ``label`` centred in it."""
    left = max((_BOX_WIDTH - len(label)) // 2, 0)
    right = max(_BOX_WIDTH - len(label) - left, 0)
    return "\n".join(
        (
            "┌" + "─" * _BOX_WIDTH + "┐",
            "│" + " " * left + label + " " * right + "│",
            "└" + "─" * _BOX_WIDTH + "┘",
        )
    )


def render_table(rows):
    """Render rows of (id, title, author, status, chapters) as a boxed table."""
    lines = [
        _border("┌", "┬", "┐"),
        _row(name for name, _ in _COLUMNS),
        _border("├", "┼", "┤"),
    ]
    lines.extend(_row(row) for row in rows)
    lines.append(_border("└", "┴", "┘"))
    return "\n".join(lines)


def _genre_matches(manga, genre):
    if not genre:
        return True
    wanted = genre.casefold()
    return any(str(g).casefold() == wanted for g in manga.get("genres") or ())


def _status_matches(manga, status):
    if not status:
        return True
    actual = str(manga.get("status") or "").casefold()
    wanted = status.casefold()
    return actual == wanted or (wanted == "completed" and actual == "finished")


def filter_mangas(mangas, genre, status, limit):
    """Keep mangas matching the genre and status filters, at most ``limit`` of them."""
    mangas = list(mangas)
    if not genre and not status:
        return mangas[: max(limit, 0)] if len(mangas) > limit else mangas
    matched = []
    for manga in mangas:
        if _genre_matches(manga, genre) and _status_matches(manga, status):
            matched.append(manga)
            if len(matched) >= limit:
                break
    return matched


def format_search_header(query, genre, status):
    """The ``Searching for ...`` line, naming any active filters."""
    text = f'Searching for "{query}"'
    if genre or status:
        text += " (filters:"
        if genre:
            text += f" genre={genre}"
        if status:
            text += f" status={status}"
        text += ")"
    return text + "..."


def render_manga_info(manga_id, manga):
    """The detailed manga report, with a blank line before and after it."""
    title = str(manga.get("title") or "")
    lines = ["", render_title_box(title.upper()), "Basic Information:", f"ID: {manga_id}", f"Title: {title}"]

    alternative = manga.get("alternative_titles")
    if isinstance(alternative, dict):
        english = alternative.get("en")
        if isinstance(english, str) and english:
            lines.append(f"English: {english}")
        japanese = alternative.get("ja")
        if isinstance(japanese, str) and japanese:
            lines.append(f"Japanese: {japanese}")

    lines.append(f"Author: {manga.get('author') or '-'}")
    genres = [str(g) for g in manga.get("genres") or ()]
    lines.append(f"Genres: {', '.join(genres)}" if genres else "Genres: -")
    lines.append(f"Status: {manga.get('status') or '-'}")
    lines.append(f"Type: {manga.get('media_type') or '-'}")
    if manga.get("start_date"):
        lines.append(f"Start Date: {manga['start_date']}")
    if manga.get("end_date"):
        lines.append(f"End Date: {manga['end_date']}")

    lines += ["", "Statistics:"]
    mean = _float(manga.get("mean"))
    if mean > 0:
        lines.append(f"Score: {mean:.2f}")
    rank = _int(manga.get("rank"))
    if rank > 0:
        lines.append(f"Ranked: #{rank}")
    popularity = _int(manga.get("popularity"))
    if popularity > 0:
        lines.append(f"Popularity: #{popularity}")
    members = _int(manga.get("num_list_users"))
    if members > 0:
        lines.append(f"Members: {members}")

    lines += ["", "Publication:"]
    chapters = _int(manga.get("total_chapters"))
    lines.append(f"Chapters: {chapters}" if chapters > 0 else "Chapters: Unknown")
    volumes = _int(manga.get("num_volumes"))
    lines.append(f"Volumes: {volumes}" if volumes > 0 else "Volumes: Unknown")

    serialization = manga.get("serialization") or []
    if serialization and isinstance(serialization[0], dict):
        node = serialization[0].get("node")
        if isinstance(node, dict):
            name = node.get("name")
            if isinstance(name, str) and name:
                lines.append(f"Serialization: {name}")

    if manga.get("description"):
        lines += ["", "Synopsis:", wrap_text(str(manga["description"]), 80)]
    if manga.get("background"):
        lines += ["", "Background:", wrap_text(str(manga["background"]), 80)]

    lines += ["", "External Links:"]
    if manga.get("id"):
        lines.append(f"MyAnimeList: https://myanimelist.net/manga/{manga['id']}")
    lines.append(f"MangaDex (search): https://mangadex.org/titles?q={quote_plus(title)}")

    lines += [
        "",
        "Actions:",
        f"Add to Library: mangahub library add --manga-id {manga_id} --status reading",
        f"Update Progress: mangahub progress update --manga-id {manga_id} --chapter <num>",
        "",
    ]
    return "\n".join(lines)


def _first_author_node(manga):
    authors = manga.get("authors") or []
    if authors and isinstance(authors[0], dict):
        node = authors[0].get("node")
        if isinstance(node, dict):
            return node
    return None


def _common_cells(manga):
    title = truncate_string(str(manga.get("title") or ""), 20)
    status = truncate_string(str(manga.get("status") or "?"), 8)
    chapters = _int(manga.get("num_chapters"))
    return title, status, str(chapters) if chapters > 0 else "?"


def featured_row(manga):
    """Table cells for a featured manga; unknown values show as ``?``."""
    title, status, chapters = _common_cells(manga)
    author = "?"
    node = _first_author_node(manga)
    if node is not None:
        name = str(node.get("name") or "")
        if not name:
            name = f"{node.get('first_name') or ''} {node.get('last_name') or ''}".strip()
        if name:
            author = truncate_string(name, 20)
    return str(_int(manga.get("id"))), title, author, status, chapters


def ranking_row(manga):
    """Table cells for a ranked manga; the author comes from first and last name."""
    title, status, chapters = _common_cells(manga)
    author = ""
    node = _first_author_node(manga)
    if node is not None:
        full_name = f"{node.get('first_name') or ''} {node.get('last_name') or ''}".strip()
        if full_name:
            author = truncate_string(full_name, 20)
    return str(_int(manga.get("id"))), title, author, status, chapters