import asyncio

import aiohttp

from html_fixtures import roster_html, roster_url
from roster_enrich.core.keys import KIND_PARSE_EMPTY, KIND_STATUS, KIND_TIMEOUT, KIND_TRANSPORT
from roster_enrich.workflows.roster_fetch import FetchConfig, RosterFetcher, parse_roster


def test_parse_roster_builds_records_and_skips_managers():
    html = roster_html(
        "Legacy Hockey Wolves",
        [
            ("9", "101", "Ann Lee", "F", "10"),
            ("MGR", "900", "Coach Bob", "", ""),
            ("31", "102", "Kim Park", "G", "11"),
            ("12", None, "No Link", "D", "9"),
        ],
    )

    records = parse_roster(html, "11")

    assert [r.id for r in records] == ["101", "102"]
    first = records[0]
    assert first.number == "9"
    assert first.role == "F"
    assert first.grade_level == "10"
    assert first.group_name == "Legacy Hockey Wolves"
    assert first.group_id == "11"


def test_parse_roster_ignores_short_rows():
    html = (
        "<table><tbody>"
        "<tr><td>9</td><td><a href='/roster_players/5'>A</a></td><td>F</td></tr>"
        "</tbody></table>"
    )
    assert parse_roster(html, "1") == []


def _fetcher_returning(monkeypatch, result=None, exc=None):
    fetcher = RosterFetcher(FetchConfig(timeout=0.5))
    calls = []

    async def fake_fetch_once(self, url):
        calls.append(url)
        if exc is not None:
            raise exc
        return result

    monkeypatch.setattr(RosterFetcher, "_fetch_once", fake_fetch_once, raising=False)
    return fetcher, calls


def test_fetch_detail_success(monkeypatch):
    html = roster_html("Bears", [("4", "201", "Sam", "D", "12")])
    fetcher, calls = _fetcher_returning(monkeypatch, result=(200, html))

    outcome = asyncio.run(fetcher.fetch_detail("22", "456"))

    assert calls == [roster_url("22")]
    assert outcome.ok
    assert outcome.kind is None
    assert [r.id for r in outcome.records] == ["201"]


def test_fetch_detail_non_2xx_is_empty_failure(monkeypatch):
    fetcher, _ = _fetcher_returning(monkeypatch, result=(404, "Not found"))

    outcome = asyncio.run(fetcher.fetch_detail("22", "456"))

    assert not outcome.ok
    assert outcome.kind == KIND_STATUS
    assert outcome.status == 404
    assert outcome.records == []


def test_fetch_detail_timeout_is_distinguished(monkeypatch):
    fetcher, _ = _fetcher_returning(monkeypatch, exc=asyncio.TimeoutError())

    outcome = asyncio.run(fetcher.fetch_detail("22", "456"))

    assert outcome.kind == KIND_TIMEOUT
    assert outcome.records == []


def test_fetch_detail_transport_failure(monkeypatch):
    fetcher, _ = _fetcher_returning(monkeypatch, exc=aiohttp.ClientConnectionError("refused"))

    outcome = asyncio.run(fetcher.fetch_detail("22", "456"))

    assert outcome.kind == KIND_TRANSPORT
    assert "refused" in (outcome.error or "")


def test_fetch_detail_without_rows_is_parse_empty(monkeypatch):
    fetcher, _ = _fetcher_returning(monkeypatch, result=(200, "<html><body>Maintenance</body></html>"))

    outcome = asyncio.run(fetcher.fetch_detail("22", "456"))

    assert outcome.kind == KIND_PARSE_EMPTY
    assert outcome.records == []
    assert outcome.status == 200


def test_timeout_in_one_request_leaves_siblings_alone(monkeypatch):
    fetcher = RosterFetcher(FetchConfig(timeout=0.05))

    async def slow_or_fast(self, url):
        if "/slow?" in url:
            await asyncio.wait_for(asyncio.sleep(1), timeout=self.config.timeout)
        return 200, roster_html("Hawks", [("1", "301", "Fast", "F", "9")])

    monkeypatch.setattr(RosterFetcher, "_fetch_once", slow_or_fast, raising=False)

    async def run():
        return await asyncio.gather(fetcher.fetch_detail("slow", "456"), fetcher.fetch_detail("fast", "456"))

    slow, fast = asyncio.run(run())

    assert slow.kind == KIND_TIMEOUT
    assert fast.ok
