"""
Bulk import: file parsing, title matching with 429 backoff, and adding the
matches to the watchlist or a library.
"""
from __future__ import annotations

import pytest

from mediashelf.core.exceptions import TMDBError, ValidationError
from mediashelf.db.repositories import library as library_repo
from mediashelf.db.repositories import watchlist as watchlist_repo
from mediashelf.integrations import google_books, tmdb
from mediashelf.services import import_service
from tests.fakes.tmdb_stub import SEARCH_MULTI


class TestParse:
    def test_plain_text(self):
        content = "\ufeffFight Club\nBreaking Bad;fight club|2001\r\n\n2001: A Space Odyssey\n  "
        result = import_service.parse_import_data(content, "list.txt")

        assert result.titles == ["Fight Club", "Breaking Bad", "2001: A Space Odyssey"]
        assert result.errors == ['Skipped invalid title: "2001"', "Removed 1 duplicate titles"]

    def test_csv_takes_every_cell(self):
        content = 'Fight Club,"Heat, 1995"\nAlien,\n'
        result = import_service.parse_import_data(content, "films.CSV")

        assert result.titles == ["Fight Club", "Heat, 1995", "Alien"]
        assert result.errors == []

    def test_json(self):
        content = '["Dune", {"title": "Neuromancer"}, {"Name": "Hyperion"}, {"year": 1990}, 42]'
        result = import_service.parse_import_data(content, "books.json")

        assert result.titles == ["Dune", "Neuromancer", "Hyperion"]
        assert result.errors == ["Item 4 has no title", "Item 5 is not a title"]

        single = import_service.parse_import_data('{"name": "Dune"}', "one.json")
        assert single.titles == ["Dune"]

    def test_bad_or_empty_files(self):
        assert import_service.parse_import_data("\ufeff  \n", "empty.txt").errors == ["File is empty"]

        broken = import_service.parse_import_data("[oops", "broken.json")
        assert broken.titles == []
        assert broken.errors[0].startswith("Invalid JSON")
        assert broken.errors[-1] == "No valid titles found after parsing"

        numbers = import_service.parse_import_data("1\n2 - 3\n", "numbers.txt")
        assert numbers.titles == []
        assert numbers.errors[-1] == "No valid titles found after parsing"

    def test_validate_import_file(self):
        import_service.validate_import_file("list.txt", 10)
        with pytest.raises(ValidationError):
            import_service.validate_import_file("list.xlsx", 10)
        with pytest.raises(ValidationError) as exc_info:
            import_service.validate_import_file("list.csv", import_service.MAX_IMPORT_FILE_BYTES + 1)
        assert "5MB" in exc_info.value.user_message


class TestMatching:
    def test_normalize_title(self):
        assert import_service.normalize_title("  The Lord of the Rings: The Return  ") == "the lord of the rings the return"
        assert import_service.normalize_title("Schindler's List") == "schindlers list"

    def test_choose_match(self):
        results = [{"title": f"Result {n}"} for n in range(8)]

        exact = import_service.choose_match("result 3", results)
        assert (exact.status, exact.result["title"]) == ("exact", "Result 3")

        fuzzy = import_service.choose_match("Something else", results)
        assert fuzzy.status == "fuzzy"
        assert fuzzy.result["title"] == "Result 0"
        assert [r["title"] for r in fuzzy.alternatives] == [f"Result {n}" for n in range(1, 6)]

        assert import_service.choose_match("anything", []).status == "not_found"

    @pytest.mark.asyncio
    async def test_batch_search_reports_progress(self):
        progress = []
        matches = await import_service.batch_search(
            ["fight club", "Heat"], "movies-tv", on_progress=lambda done, total: progress.append((done, total))
        )

        assert [(m.query, m.status) for m in matches] == [("fight club", "exact"), ("Heat", "fuzzy")]
        assert matches[1].result["external_id"] == "550"
        assert progress == [(1, 2), (2, 2)]

    @pytest.mark.asyncio
    async def test_too_many_requests_is_retried(self, monkeypatch):
        calls = []

        async def flaky_tmdb_get(path, params=None):
            calls.append(path)
            if len(calls) <= 2:
                raise TMDBError("TMDB 429 Too Many Requests")
            return SEARCH_MULTI

        monkeypatch.setattr(tmdb, "_tmdb_get", flaky_tmdb_get)
        monkeypatch.setattr(import_service, "RETRY_BASE_DELAY_SECONDS", 0)

        match = await import_service.search_title("movies-tv", "Fight Club", max_retries=2)
        assert match.status == "exact"
        assert len(calls) == 3

        calls.clear()
        match = await import_service.search_title("movies-tv", "Fight Club", max_retries=1)
        assert match.status == "error"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_other_api_errors_are_not_retried(self, monkeypatch):
        calls = []

        async def broken_tmdb_get(path, params=None):
            calls.append(path)
            raise TMDBError("TMDB 503 Service Unavailable", user_message="TMDB is unavailable")

        monkeypatch.setattr(tmdb, "_tmdb_get", broken_tmdb_get)

        match = await import_service.search_title("movies-tv", "Fight Club")
        assert (match.status, match.error) == ("error", "TMDB is unavailable")
        assert len(calls) == 1


@pytest.mark.asyncio
async def test_import_into_watchlist(session, make_user, monkeypatch):
    user = await make_user()
    user_id = user.id

    report = await import_service.import_titles(session, user_id, "movies-tv", ["Fight Club", "Breaking Bad"])
    assert report.added == ["Fight Club", "Breaking Bad"]

    items = {i.external_id: i for i in await watchlist_repo.get_watchlist(session, user_id)}
    assert items["550"].media_type == "movie"
    assert items["550"].release_date == "1999-10-15"
    assert items["1396"].media_type == "tv"

    async def empty_for_unknown(path, params=None):
        if params and params.get("query") == "No Such Film":
            return {"results": []}
        return SEARCH_MULTI

    monkeypatch.setattr(tmdb, "_tmdb_get", empty_for_unknown)

    report = await import_service.import_titles(session, user_id, "movies-tv", ["Fight Club", "No Such Film"])
    assert report.added == []
    assert report.skipped == ["Fight Club"]
    assert report.not_found == ["No Such Film"]
    assert len(await watchlist_repo.get_watchlist(session, user_id)) == 2


@pytest.mark.asyncio
async def test_import_books_into_library(session, make_user, monkeypatch):
    user = await make_user()
    user_id = user.id

    async def fake_books_get(path, params):
        return {
            "items": [
                {
                    "id": "B00B7NPRY8",
                    "volumeInfo": {
                        "title": "Dune",
                        "authors": ["Frank Herbert"],
                        "publisher": "Ace",
                        "pageCount": 688,
                        "categories": ["Fiction"],
                        "industryIdentifiers": [{"type": "ISBN_13", "identifier": "9780441172719"}],
                    },
                }
            ]
        }

    monkeypatch.setattr(google_books, "_books_get", fake_books_get)

    report = await import_service.import_titles(session, user_id, "book", ["dune"])
    assert report.added == ["dune"]

    [entry] = await library_repo.list_entries(session, user_id, "book")
    assert (entry.title, entry.creator, entry.status) == ("Dune", "Frank Herbert", "to-read")
    assert entry.genres == ["Fiction"]
    assert entry.extra == {"isbn": "9780441172719", "page_count": 688, "publisher": "Ace"}


@pytest.mark.asyncio
async def test_failed_searches_and_bad_targets(session, make_user):
    user = await make_user()

    # RAWG has no key in tests
    report = await import_service.import_titles(session, user.id, "game", ["The Witcher 3"])
    assert report.failed == ["The Witcher 3"]
    assert report.added == []

    with pytest.raises(ValidationError):
        await import_service.import_titles(session, user.id, "podcasts", ["Serial"])
