import json
import os

import pytest
from typer.testing import CliRunner

from html_fixtures import PAGE_URL, SCOPE, roster_html, roster_url, stats_page, stats_table
from roster_enrich.cli import app
from roster_enrich.core.keys import scope_cache_key
from roster_enrich.workflows.cache_store import ExpiringCache, LocalStore
from roster_enrich.workflows.page_view import PageView, header_labels
from roster_enrich.workflows.roster_fetch import RosterFetcher

runner = CliRunner()

ROSTERS = {
    roster_url("11"): roster_html("Legacy Hockey Wolves", [("9", "101", "Ann", "F", "10")]),
    roster_url("12"): roster_html("Bears", [("4", "102", "Bo", "D", "12")]),
}


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith("ROSTER_ENRICH_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ROSTER_ENRICH_CACHE_PATH", str(tmp_path / "cache" / "store.json"))
    monkeypatch.setenv("ROSTER_ENRICH_PACING", "0")
    monkeypatch.chdir(tmp_path)


def _serve(monkeypatch, pages):
    async def fake_fetch_once(self, url):
        if url in pages:
            return 200, pages[url]
        return 503, ""

    monkeypatch.setattr(RosterFetcher, "_fetch_once", fake_fetch_once, raising=False)


def _saved_page(tmp_path):
    path = tmp_path / "stats.html"
    table = stats_table(
        [
            ("9", "101", "Ann", "11", "LHW"),
            ("4", "102", "Bo", "12", "Bears"),
        ]
    )
    path.write_text(stats_page(table), encoding="utf-8")
    return path


def test_enrich_writes_enhanced_html(monkeypatch, tmp_path):
    _serve(monkeypatch, ROSTERS)
    source = _saved_page(tmp_path)
    out = tmp_path / "out" / "enriched.html"

    result = runner.invoke(app, ["enrich", str(source), "--page-url", PAGE_URL, "--out", str(out)])

    assert result.exit_code == 0, result.output
    page = PageView.from_html(out.read_text(encoding="utf-8"), PAGE_URL)
    assert header_labels(page.candidate_tables()[0])[:4] == ["#", "Name", "Pos", "Grade"]
    assert (tmp_path / "cache" / "store.json").exists()


def test_enrich_json_report_and_sort(monkeypatch, tmp_path):
    _serve(monkeypatch, ROSTERS)
    source = _saved_page(tmp_path)

    result = runner.invoke(
        app,
        ["enrich", str(source), "--page-url", PAGE_URL, "--json", "--sort-column", "2"],
    )

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout.strip().splitlines()[-1])
    assert report["status"] == "enhanced"
    assert report["scope"] == SCOPE
    assert report["matched_rows"] == 2


def test_enrich_requires_page_url_for_files(tmp_path):
    source = _saved_page(tmp_path)

    result = runner.invoke(app, ["enrich", str(source)])

    assert result.exit_code == 2


def test_enrich_rejects_non_league_pages(monkeypatch, tmp_path):
    _serve(monkeypatch, ROSTERS)
    source = _saved_page(tmp_path)

    result = runner.invoke(app, ["enrich", str(source), "--page-url", "https://www.legacy.hockey/page/show/1"])

    assert result.exit_code == 2


def test_enrich_failure_exit_codes(monkeypatch, tmp_path):
    _serve(monkeypatch, {})
    source = _saved_page(tmp_path)
    out = tmp_path / "out.html"

    failed = runner.invoke(app, ["enrich", str(source), "--page-url", PAGE_URL, "--out", str(out)])
    soft = runner.invoke(app, ["enrich", str(source), "--page-url", PAGE_URL, "--out", str(out), "--soft-fail"])

    assert failed.exit_code == 1
    assert soft.exit_code == 0
    assert "Pos" not in header_labels(PageView.from_html(out.read_text(encoding="utf-8"), PAGE_URL).tables()[0])


def test_sort_command_toggles(tmp_path):
    source = tmp_path / "table.html"
    source.write_text(
        "<table><thead><tr><th>Name</th></tr></thead>"
        "<tbody><tr><td>B</td></tr><tr><td>A</td></tr><tr><td>C</td></tr></tbody></table>",
        encoding="utf-8",
    )
    out = tmp_path / "sorted.html"

    result = runner.invoke(app, ["sort", str(source), "--column", "0", "--times", "2", "--out", str(out)])

    assert result.exit_code == 0, result.output
    page = PageView.from_html(out.read_text(encoding="utf-8"), str(out))
    assert [td.get_text() for td in page.soup.find_all("td")] == ["C", "B", "A"]


def test_cache_show_and_clear(tmp_path):
    cache = ExpiringCache(LocalStore(tmp_path / "cache" / "store.json"))
    cache.set(scope_cache_key(SCOPE), {"101": {"id": "101", "number": "9", "role": "F", "grade_level": "10"}})

    shown = runner.invoke(app, ["cache", "show", "--json"])
    assert shown.exit_code == 0, shown.output
    rows = json.loads(shown.stdout.strip().splitlines()[-1])
    assert rows[0]["key"] == scope_cache_key(SCOPE)
    assert rows[0]["items"] == 1
    assert rows[0]["fresh"] is True

    missing = runner.invoke(app, ["cache", "clear", "--key", "league:999"])
    assert "no such key" in missing.output

    cleared = runner.invoke(app, ["cache", "clear"])
    assert cleared.exit_code == 0
    assert "removed 1 keys" in cleared.output
    assert LocalStore(tmp_path / "cache" / "store.json").keys() == []


def test_doctor_reports_checks():
    result = runner.invoke(app, ["doctor"])

    assert result.exit_code == 0, result.output
    assert "roster-enrich doctor" in result.output
    assert "html_parser: ok" in result.output
    assert "ROSTER_ENRICH_CACHE_PATH: ok" in result.output


def test_enrich_reads_saved_pages_in_legacy_encodings(monkeypatch, tmp_path):
    _serve(monkeypatch, ROSTERS)
    source = tmp_path / "stats-latin1.html"
    table = stats_table(
        [
            ("9", "101", "Émile Bégin", "11", "LHW"),
            ("4", "102", "Hélène Côté", "12", "Bears"),
        ]
    )
    source.write_bytes(stats_page(table).encode("latin-1"))
    out = tmp_path / "enriched.html"

    result = runner.invoke(app, ["enrich", str(source), "--page-url", PAGE_URL, "--no-cache", "--out", str(out)])

    assert result.exit_code == 0, result.output
    enriched = out.read_text(encoding="utf-8")
    assert "Émile Bégin" in enriched
    assert header_labels(PageView.from_html(enriched, PAGE_URL).candidate_tables()[0])[2:4] == ["Pos", "Grade"]
