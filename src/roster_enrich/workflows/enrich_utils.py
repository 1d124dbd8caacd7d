"""Shared helper functions used by the enrichment workflow."""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from .enrich_config import (
    LEAGUE_PAGE_MARKER,
    PLAYER_PATTERN,
    SCOPE_PATTERN,
    TEAM_LINK_FLAG,
    TEAM_PAGE_PATTERN,
)


def scope_from_url(url: str) -> Optional[str]:
    """Return the season token (``subseason=<digits>``) of a page address."""

    match = SCOPE_PATTERN.search(url or "")
    return match.group(1) if match else None


def is_league_page(url: str) -> bool:
    """Return True for league stats views that carry a season token."""

    raw = url or ""
    return LEAGUE_PAGE_MARKER in raw and scope_from_url(raw) is not None


def team_id_from_href(href: str) -> Optional[str]:
    match = TEAM_PAGE_PATTERN.search(href or "")
    return match.group(1) if match else None


def player_id_from_href(href: str) -> Optional[str]:
    match = PLAYER_PATTERN.search(href or "")
    return match.group(1) if match else None


def is_team_link(href: str, scope: str) -> bool:
    """True when ``href`` is an abbreviated team link for the given season."""

    raw = href or ""
    return (
        team_id_from_href(raw) is not None
        and references_scope(raw, scope)
        and TEAM_LINK_FLAG in raw
    )


def references_scope(href: str, scope: str) -> bool:
    match = SCOPE_PATTERN.search(href or "")
    return bool(match and match.group(1) == scope)


def ordered_unique(values: Iterable[str]) -> List[str]:
    """Drop empties and duplicates while keeping first-seen order."""

    seen: Set[str] = set()
    ordered: List[str] = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered


def sanity_check() -> None:
    assert scope_from_url("https://x/stats/league_instance/1?subseason=42") == "42"
    assert scope_from_url("https://x/stats") is None
    assert is_league_page("https://x/stats/league_instance/1?subseason=42")
    assert not is_league_page("https://x/page/show/9?subseason=42")
    assert player_id_from_href("/roster_players/31337?subseason=42") == "31337"
    assert is_team_link("/page/show/9?subseason=42&use_abbrev=true", "42")
    assert not is_team_link("/page/show/9?subseason=41&use_abbrev=true", "42")
    assert ordered_unique(["b", "a", "b", ""]) == ["b", "a"]


sanity_check()

__all__ = [
    "scope_from_url",
    "is_league_page",
    "team_id_from_href",
    "player_id_from_href",
    "is_team_link",
    "references_scope",
    "ordered_unique",
    "sanity_check",
]
