"""Read/write surface over the host page's HTML document.

The enrichment core never renders anything itself; it only needs to list
tables, header cells, data rows and links, and to insert cells or re-order
rows. A :class:`PageView` wraps one parsed document plus the address it was
loaded from.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

from .enrich_config import CANDIDATE_HEADERS
from .enrich_utils import player_id_from_href
from .html_normalize import cell_text, parse_html

logger = logging.getLogger(__name__)


def header_row(table: Tag) -> Optional[Tag]:
    """``thead tr`` when present, otherwise the first row holding ``th`` cells."""

    thead = table.find("thead")
    if thead is not None:
        row = thead.find("tr")
        if row is not None:
            return row
    for row in table.find_all("tr"):
        if row.find("th", recursive=False) is not None:
            return row
    return None


def header_cells(table: Tag) -> List[Tag]:
    row = header_row(table)
    if row is None:
        return []
    return row.find_all("th", recursive=False)


def header_labels(table: Tag) -> List[str]:
    return [cell_text(th) for th in header_cells(table)]


def body_rows(table: Tag) -> List[Tag]:
    """Data rows: every ``tbody tr`` (or bare ``tr``) other than the header row."""

    head = header_row(table)
    tbody = table.find("tbody")
    container = tbody if tbody is not None else table
    rows = container.find_all("tr")
    return [row for row in rows if row is not head and row.find_parent("thead") is None]


def row_cells(row: Tag) -> List[Tag]:
    return row.find_all("td", recursive=False)


def is_candidate_table(table: Tag, required: Sequence[str] = CANDIDATE_HEADERS) -> bool:
    labels = set(header_labels(table))
    return all(label in labels for label in required)


@dataclass
class PageView:
    url: str
    soup: BeautifulSoup

    @classmethod
    def from_html(cls, html: str, url: str) -> "PageView":
        return cls(url=url, soup=parse_html(html))

    def tables(self) -> List[Tag]:
        return self.soup.find_all("table")

    def candidate_tables(self) -> List[Tag]:
        return [table for table in self.tables() if is_candidate_table(table)]

    def links(self) -> List[str]:
        return [a["href"] for a in self.soup.find_all("a", href=True)]

    def ready_row_count(self) -> int:
        """Rows in candidate tables whose cells link to a player page."""

        count = 0
        for table in self.candidate_tables():
            for row in body_rows(table):
                for link in row.find_all("a", href=True):
                    if player_id_from_href(link["href"]):
                        count += 1
                        break
        return count

    def to_html(self) -> str:
        return str(self.soup)


PageLoader = Callable[[], Awaitable[PageView]]


def static_loader(page: PageView) -> PageLoader:
    """Loader for a page that is already complete (saved files, tests)."""

    async def _load() -> PageView:
        return page

    return _load


async def wait_until_ready(
    loader: PageLoader,
    *,
    min_rows: int = 1,
    attempts: int = 10,
    interval: float = 0.5,
) -> PageView:
    """Poll ``loader`` until enough player rows exist or attempts run out.

    Returns the last snapshot either way; a sparse page is still enriched.
    """
    page = await loader()
    for attempt in range(1, max(1, attempts)):
        rows = page.ready_row_count()
        if rows >= min_rows:
            return page
        logger.debug("page not ready (%d/%d rows, attempt %d)", rows, min_rows, attempt)
        await asyncio.sleep(interval)
        page = await loader()
    if page.ready_row_count() < min_rows:
        logger.info("page still sparse after %d attempts; continuing", attempts)
    return page


__all__ = [
    "PageLoader",
    "PageView",
    "body_rows",
    "header_cells",
    "header_labels",
    "header_row",
    "is_candidate_table",
    "row_cells",
    "static_loader",
    "wait_until_ready",
]
