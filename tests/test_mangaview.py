import pytest

from mangahub.mangaview import (
    featured_row,
    filter_mangas,
    format_search_header,
    ranking_row,
    render_manga_info,
    render_table,
    render_title_box,
    truncate_string,
    wrap_text,
)

MANGAS = [
    {"id": "1", "title": "A", "genres": ["Action", "Drama"], "status": "ongoing"},
    {"id": "2", "title": "B", "genres": ["Romance"], "status": "finished"},
    {"id": "3", "title": "C", "genres": ["action"], "status": "completed"},
    {"id": "4", "title": "D", "genres": [], "status": "Ongoing"},
]


def ids(mangas):
    return [m["id"] for m in mangas]


def test_truncate_string_keeps_short_strings():
    assert truncate_string("Naruto", 20) == "Naruto"


def test_truncate_string_exact_length_unchanged():
    text = "x" * 8
    assert truncate_string(text, 8) == text


@pytest.mark.parametrize("text,limit", [("A very long manga title indeed", 20), ("finished_publishing", 8)])
def test_truncate_string_shortens(text, limit):
    out = truncate_string(text, limit)
    assert len(out) == limit
    assert out.endswith("...")
    assert text.startswith(out[:-3])


def test_wrap_text_short_text_unchanged():
    assert wrap_text("A pirate story.", 80) == "A pirate story."


def test_wrap_text_long_text_keeps_words_and_width():
    text = " ".join(f"word{i}" for i in range(40))
    out = wrap_text(text, 30)
    lines = out.split("\n")
    assert len(lines) > 1
    assert all(len(line) <= 30 for line in lines)
    assert out.split() == text.split()


def test_render_title_box_centres_label():
    top, middle, bottom = render_title_box("Top Ranked Manga").split("\n")
    assert top.startswith("┌") and top.endswith("┐")
    assert bottom.startswith("└") and bottom.endswith("┘")
    assert len(top) == len(middle) == len(bottom)
    inner = middle[1:-1]
    assert inner.strip() == "Top Ranked Manga"
    left = len(inner) - len(inner.lstrip())
    right = len(inner) - len(inner.rstrip())
    assert 0 <= right - left <= 1


def test_render_title_box_long_label_not_padded():
    label = "x" * 80
    assert render_title_box(label).split("\n")[1] == f"│{label}│"


def test_render_table_layout():
    rows = [
        ("13", "One Piece", "Eiichiro Oda", "ongoing", "Ongoing"),
        ("2", "Berserk", "Kentaro Miura", "finished", "380"),
    ]
    lines = render_table(rows).split("\n")
    assert len(lines) == len(rows) + 4
    assert lines[0] == "┌─────────────────────┬──────────────────────┬──────────────────────┬──────────┬─────────────┐"
    assert lines[1] == "│ ID                  │ Title                │ Author               │ Status   │ Chapters    │"
    assert lines[-1] == "└─────────────────────┴──────────────────────┴──────────────────────┴──────────┴─────────────┘"
    assert len({len(line) for line in lines}) == 1
    assert lines[3].split("│")[2].strip() == "One Piece"
    assert lines[4].split("│")[5].strip() == "380"


def test_filter_by_genre_ignores_case():
    assert ids(filter_mangas(MANGAS, "ACTION", "", 100)) == ["1", "3"]


def test_filter_completed_matches_finished():
    assert ids(filter_mangas(MANGAS, "", "completed", 100)) == ["2", "3"]


def test_filter_genre_and_status_combined():
    assert ids(filter_mangas(MANGAS, "action", "ongoing", 100)) == ["1"]


def test_filter_stops_at_limit():
    assert ids(filter_mangas(MANGAS, "", "ongoing", 1)) == ["1"]


def test_no_filter_truncates_to_limit():
    assert ids(filter_mangas(MANGAS, "", "", 2)) == ["1", "2"]
    assert ids(filter_mangas(MANGAS, "", "", 100)) == ids(MANGAS)


def test_search_header_without_filters():
    assert format_search_header("berserk", "", "") == 'Searching for "berserk"...'


def test_search_header_with_filters():
    assert (
        format_search_header("berserk", "Action", "completed")
        == 'Searching for "berserk" (filters: genre=Action status=completed)...'
    )
    assert format_search_header("berserk", "", "ongoing").endswith("(filters: status=ongoing)...")


def test_render_manga_info_defaults_and_fields():
    manga = {
        "id": "13",
        "title": "One Piece",
        "author": "",
        "genres": ["Action", "Adventure"],
        "status": "",
        "total_chapters": 0,
        "num_volumes": 0,
        "mean": 9.2,
        "rank": 1,
        "alternative_titles": {"en": "One Piece", "ja": ""},
        "serialization": [{"node": {"name": "Shounen Jump"}}],
        "description": "A pirate story.",
        "background": "",
    }
    lines = render_manga_info("13", manga).split("\n")
    assert lines[0] == "" and lines[-1] == ""
    assert "ONE PIECE" in lines[2]
    assert "ID: 13" in lines
    assert "Author: -" in lines
    assert "Status: -" in lines
    assert "Type: -" in lines
    assert "Chapters: Unknown" in lines
    assert "Volumes: Unknown" in lines
    assert "Genres: Action, Adventure" in lines
    assert "English: One Piece" in lines
    assert not any(line.startswith("Japanese:") for line in lines)
    assert "Serialization: Shounen Jump" in lines
    assert "Synopsis:" in lines and "Background:" not in lines
    assert "Ranked: #1" in lines
    assert not any(line.startswith("Popularity:") for line in lines)
    assert "Update Progress: mangahub progress update --manga-id 13 --chapter <num>" in lines


def test_render_manga_info_counts():
    lines = render_manga_info("2", {"title": "Berserk", "total_chapters": 380, "num_volumes": 41}).split("\n")
    assert "Chapters: 380" in lines
    assert "Volumes: 41" in lines
    assert "Genres: -" in lines


def test_featured_row_uses_first_and_last_name():
    row = featured_row(
        {
            "id": 2,
            "title": "Berserk",
            "status": "finished",
            "num_chapters": 380,
            "authors": [{"node": {"name": "", "first_name": "Kentaro", "last_name": "Miura"}}],
        }
    )
    assert row == ("2", "Berserk", "Kentaro Miura", "finished", "380")


def test_featured_row_unknowns():
    assert featured_row({"id": 5}) == ("5", "", "?", "?", "?")


def test_featured_row_truncates_long_status():
    status = featured_row({"id": 1, "status": "currently_publishing"})[3]
    assert len(status) == 8 and status.endswith("...")


def test_ranking_row_author_blank_without_names():
    assert ranking_row({"id": 7, "title": "T"})[2] == ""
    assert ranking_row({"id": 7, "authors": [{"node": {"name": "Only Name"}}]})[2] == ""
    assert ranking_row({"id": 7, "authors": [{"node": {"first_name": "Kentaro", "last_name": "Miura"}}]})[2] == "Kentaro Miura"