from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Tuple

import requests
import typer

from .workflows.cache_store import ExpiringCache, LocalStore
from .workflows.controller import RUN_FAILED, RUN_NOT_APPLICABLE, EnrichmentController
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.html_normalize import decode_bytes_auto
from .workflows.page_view import PageView, static_loader
from .workflows.settings import EnrichSettings, load_settings, profile_names
from .workflows.table_sort import sort_by_column

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Fill in player positions and grades on league stats pages.")
cache_app = typer.Typer(no_args_is_help=True, help="Inspect or clear the roster cache.")
app.add_typer(cache_app, name="cache")

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 30


class EchoNotifier:
    """Writes progress and warnings to stderr so stdout stays clean for HTML/JSON."""

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet

    def progress(self, message: str) -> None:
        if not self.quiet:
            typer.echo(message, err=True)

    def error(self, message: str) -> None:
        typer.echo(f"warning: {message}", err=True)


def _load_source(source: str, page_url: Optional[str]) -> Tuple[str, str]:
    """Return (html, address) for a file path or an http(s) URL."""

    if source.startswith(("http://", "https://")):
        resp = requests.get(source, timeout=DOWNLOAD_TIMEOUT)
        resp.raise_for_status()
        return resp.text, page_url or source
    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"Page not found: {path}")
    if not page_url:
        raise ValueError("--page-url is required when the source is a file")
    return decode_bytes_auto(path.read_bytes()), page_url


def _resolve_settings(profile: Optional[str], no_cache: bool) -> EnrichSettings:
    try:
        settings = load_settings(profile)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--profile")
    if no_cache:
        settings = replace(settings, cache_path=None)
    return settings


def _write_output(html: str, out: Optional[Path]) -> None:
    if out is None:
        sys.stdout.write(html)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(html, encoding="utf-8")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details to stderr."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr,
    )


@app.command("enrich")
def enrich_cmd(
    source: str = typer.Argument(..., help="Saved league stats page (file) or its URL."),
    page_url: Optional[str] = typer.Option(None, "--page-url", help="Address of the page (required for files)."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the enriched HTML here (default: stdout)."),
    profile: Optional[str] = typer.Option(None, "--profile", help=f"Network profile: {', '.join(profile_names())}."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Skip the roster cache for this run."),
    sort_table: int = typer.Option(0, "--sort-table", help="Index of the enhanced table to sort."),
    sort_column: Optional[int] = typer.Option(None, "--sort-column", help="Column index to sort after enrichment."),
    json_out: bool = typer.Option(False, "--json", help="Print the run report as JSON instead of HTML."),
    soft_fail: bool = typer.Option(False, "--soft-fail", help="Exit 0 even when roster data is unavailable."),
) -> None:
    """Add Pos and Grade columns to the stats tables of a league page."""

    settings = _resolve_settings(profile, no_cache)
    try:
        html, address = _load_source(source, page_url)
    except (OSError, ValueError, requests.RequestException) as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)

    page = PageView.from_html(html, address)
    controller = EnrichmentController(
        static_loader(page),
        settings,
        notifier=EchoNotifier(quiet=json_out),
    )
    try:
        report = asyncio.run(controller.run())
    except Exception as exc:
        logger.debug("enrichment crashed", exc_info=True)
        typer.echo(f"fatal: {exc}", err=True)
        raise typer.Exit(code=3)

    if report.status == RUN_NOT_APPLICABLE:
        typer.echo(f"error: {address} is not a league stats page with a season", err=True)
        raise typer.Exit(code=2)

    if sort_column is not None:
        tables = page.candidate_tables()
        if 0 <= sort_table < len(tables):
            sort_by_column(tables[sort_table], sort_column)
        else:
            typer.echo(f"warning: no stats table #{sort_table} to sort", err=True)

    if json_out:
        sys.stdout.write(json.dumps(report.to_dict(), ensure_ascii=False) + "\n")
    else:
        _write_output(page.to_html(), out)
    if report.status == RUN_FAILED and not soft_fail:
        raise typer.Exit(code=1)


@app.command("sort")
def sort_cmd(
    html_path: Path = typer.Argument(..., help="Saved HTML page."),
    table: int = typer.Option(0, "--table", help="Index of the table on the page."),
    column: int = typer.Option(..., "--column", help="Column index to sort by."),
    times: int = typer.Option(1, "--times", min=1, help="Apply the toggle this many times (2 = descending)."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the sorted HTML here (default: stdout)."),
) -> None:
    """Sort one table of a saved page by a column, locally."""

    if not html_path.exists():
        typer.echo(f"error: Page not found: {html_path}", err=True)
        raise typer.Exit(code=2)
    page = PageView.from_html(decode_bytes_auto(html_path.read_bytes()), str(html_path))
    tables = page.tables()
    if not 0 <= table < len(tables):
        typer.echo(f"error: page has {len(tables)} tables; no table #{table}", err=True)
        raise typer.Exit(code=2)
    direction = ""
    for _ in range(times):
        direction = sort_by_column(tables[table], column)
    typer.echo(f"sorted table {table} on column {column} ({direction})", err=True)
    _write_output(page.to_html(), out)


def _open_cache() -> ExpiringCache:
    settings = load_settings()
    if settings.cache_path is None:
        typer.echo("error: cache is disabled (ROSTER_ENRICH_CACHE_DISABLE)", err=True)
        raise typer.Exit(code=2)
    return ExpiringCache(LocalStore(settings.cache_path, settings.cache_max_bytes), ttl_ms=settings.cache_ttl_ms)


@cache_app.command("show")
def cache_show(
    json_out: bool = typer.Option(False, "--json", help="Print as JSON."),
) -> None:
    """List cache keys with their age and freshness."""

    cache = _open_cache()
    now = cache.now_ms()
    rows = []
    for key in cache.store.keys():
        entry = cache.get(key)
        if entry is None:
            continue
        size = len(entry.data) if isinstance(entry.data, (dict, list)) else 0
        rows.append({
            "key": key,
            "items": size,
            "age_hours": round(entry.age_ms(now) / 3_600_000, 1),
            "fresh": cache.is_fresh(entry, now),
        })
    if json_out:
        sys.stdout.write(json.dumps(rows, ensure_ascii=False) + "\n")
        return
    if not rows:
        typer.echo("cache is empty")
        return
    for row in rows:
        state = "fresh" if row["fresh"] else "stale"
        typer.echo(f"{row['key']}: {row['items']} items, {row['age_hours']}h old ({state})")


@cache_app.command("clear")
def cache_clear(
    key: Optional[str] = typer.Option(None, "--key", help="Remove only this key."),
) -> None:
    """Remove one key or everything from the cache."""

    cache = _open_cache()
    if key:
        removed = cache.store.remove_item(key)
        typer.echo(f"removed {key}" if removed else f"no such key: {key}")
        return
    count = cache.store.clear()
    typer.echo(f"removed {count} keys")


@app.command("doctor")
def doctor_cmd() -> None:
    """Print environment and configuration diagnostics."""

    report = build_doctor_report()
    typer.echo(format_doctor_report(report))
    raise typer.Exit(code=0 if report.get("ok", True) else 2)
