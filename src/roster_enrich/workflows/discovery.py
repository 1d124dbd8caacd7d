"""Find the team roster identifiers relevant to a season.

Two strategies: scan the team links already on the page (league stats views
link every team), or walk a fixed list of division "directory" pages and
collect the team pages they reference.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .enrich_config import MAX_IDENTIFIERS
from .enrich_utils import is_team_link, ordered_unique, references_scope, team_id_from_href
from .html_normalize import parse_html
from .page_view import PageView
from .roster_fetch import RosterFetcher

logger = logging.getLogger(__name__)


def discover_from_page(page: PageView, scope: str) -> List[str]:
    """Team ids linked from the current page for ``scope``, in page order."""

    ids = (team_id_from_href(href) or "" for href in page.links() if is_team_link(href, scope))
    return ordered_unique(ids)


def team_ids_in_directory(html: str, directory_id: str, scope: str) -> List[str]:
    """Team page ids a directory page links for ``scope``, minus its own id."""

    soup = parse_html(html)
    found: List[str] = []
    for link in soup.find_all("a", href=True):
        href = link["href"]
        if not references_scope(href, scope):
            continue
        team_id = team_id_from_href(href)
        if team_id and team_id != directory_id:
            found.append(team_id)
    return ordered_unique(found)


async def discover_from_directories(
    fetcher: RosterFetcher,
    directory_ids: Sequence[str],
    scope: str,
) -> List[str]:
    """Fetch every directory page and merge the team ids they reference.

    Directories are requested together and every outcome is awaited; an
    unreachable directory is logged and skipped.
    """
    directories = ordered_unique(directory_ids)
    if not directories:
        return []
    outcomes = await asyncio.gather(
        *(fetcher.fetch_page(fetcher.directory_url(d, scope)) for d in directories)
    )
    merged: List[str] = []
    directory_set: Set[str] = set(directories)
    for directory_id, outcome in zip(directories, outcomes):
        if not outcome.ok:
            logger.warning(
                "directory %s unreachable (%s: %s); skipping",
                directory_id,
                outcome.kind,
                outcome.error,
            )
            continue
        team_ids = team_ids_in_directory(outcome.text, directory_id, scope)
        logger.debug("directory %s lists %d teams", directory_id, len(team_ids))
        merged.extend(team_ids)
    # Other directories are listing pages, not teams
    return [team_id for team_id in ordered_unique(merged) if team_id not in directory_set]


def _cap(ids: Iterable[str], limit: Optional[int]) -> Tuple[str, ...]:
    values = tuple(ids)
    if limit is not None and limit > 0 and len(values) > limit:
        logger.info("capping %d teams to the first %d", len(values), limit)
        return values[:limit]
    return values


async def discover(
    page: PageView,
    scope: str,
    fetcher: Optional[RosterFetcher] = None,
    directory_ids: Sequence[str] = (),
    max_identifiers: Optional[int] = MAX_IDENTIFIERS,
) -> Tuple[str, ...]:
    """Direct scan first, directory scan when the page links no teams.

    An empty tuple means there is nothing to enrich; it is not an error here.
    """
    ids = discover_from_page(page, scope)
    if ids:
        logger.info("found %d teams linked from the page", len(ids))
        return _cap(ids, max_identifiers)
    if directory_ids and fetcher is not None:
        ids = await discover_from_directories(fetcher, directory_ids, scope)
        logger.info("found %d teams across %d directories", len(ids), len(directory_ids))
    return _cap(ids, max_identifiers)


__all__ = [
    "discover",
    "discover_from_directories",
    "discover_from_page",
    "team_ids_in_directory",
]
