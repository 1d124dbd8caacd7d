from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, FeatureNotFound

from .cache_store import LocalStore
from .html_normalize import HTML_PARSER
from .settings import EnrichSettings, load_settings


def _check_writable(path: Path) -> bool:
    try:
        if path.exists():
            return os.access(path, os.W_OK)
        parent = path.parent
        while not parent.exists() and parent != parent.parent:
            parent = parent.parent
        return os.access(parent, os.W_OK)
    except OSError:
        return False


def _check_parser() -> bool:
    try:
        BeautifulSoup("<p></p>", HTML_PARSER)
    except FeatureNotFound:
        return False
    return True


def build_doctor_report(settings: Optional[EnrichSettings] = None) -> Dict[str, Any]:
    settings = settings or load_settings()
    report: Dict[str, Any] = {
        "generated_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "ok": True,
        "profile": settings.profile,
        "checks": [],
    }

    def add_check(
        name: str,
        status: bool,
        *,
        detail: Optional[str] = None,
        remedy: Optional[str] = None,
        level: str = "warn",
    ) -> None:
        entry = {
            "name": name,
            "status": "ok" if status else "missing",
            "level": level,
            "detail": detail,
        }
        if remedy:
            entry["remedy"] = remedy
        report["checks"].append(entry)
        if not status and level == "warn":
            report["ok"] = False

    add_check(
        "html_parser",
        _check_parser(),
        detail=f"BeautifulSoup parser '{HTML_PARSER}'",
        remedy="Install lxml.",
    )

    if settings.cache_path is None:
        add_check("ROSTER_ENRICH_CACHE_DISABLE", True, detail="Roster cache disabled", level="info")
    else:
        writable = _check_writable(settings.cache_path)
        add_check(
            "ROSTER_ENRICH_CACHE_PATH",
            writable,
            detail=str(settings.cache_path),
            remedy="Create the cache directory or set ROSTER_ENRICH_CACHE_PATH to a writable location.",
        )
        if settings.cache_path.exists():
            store = LocalStore(settings.cache_path, settings.cache_max_bytes)
            used = store.size_bytes()
            limit = settings.cache_max_bytes
            within = limit <= 0 or used <= limit
            add_check(
                "cache_usage",
                within,
                detail=f"{used} of {limit or 'unlimited'} bytes, {len(store.keys())} keys",
                remedy="Run `roster-enrich cache clear` or raise ROSTER_ENRICH_CACHE_MAX_BYTES.",
            )

    add_check(
        "ROSTER_ENRICH_DIRECTORY_IDS",
        bool(settings.directory_ids),
        detail=(
            f"{len(settings.directory_ids)} directory pages configured"
            if settings.directory_ids
            else "Directory scan disabled; only teams linked from the page are fetched"
        ),
        level="info",
    )
    add_check(
        "network_profile",
        True,
        detail=(
            f"timeout={settings.timeout}s batch={settings.batch_size} "
            f"pacing={settings.pacing_delay}s min_success={settings.min_success_fraction}"
        ),
        level="info",
    )
    return report


def format_doctor_report(report: Dict[str, Any]) -> str:
    lines: List[str] = []
    lines.append("roster-enrich doctor")
    lines.append(f"Generated: {report.get('generated_at')}")
    lines.append(f"Profile: {report.get('profile')}")
    lines.append("")
    for check in report.get("checks", []):
        name = check.get("name", "check")
        status = check.get("status", "unknown")
        level = check.get("level", "info")
        detail = check.get("detail")
        lines.append(f"- [{level}] {name}: {status}")
        if detail:
            lines.append(f"  detail: {detail}")
        remedy = check.get("remedy")
        if remedy and status != "ok":
            lines.append(f"  remedy: {remedy}")
    return "\n".join(lines).rstrip() + "\n"
