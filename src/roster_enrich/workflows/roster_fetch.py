from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import aiohttp
from bs4 import BeautifulSoup

from ..core.keys import KIND_PARSE_EMPTY, KIND_STATUS, KIND_TIMEOUT, KIND_TRANSPORT
from .enrich_config import (
    ACCEPT_LANGUAGE,
    DIRECTORY_URL_TEMPLATE,
    MANAGER_SENTINEL,
    ROSTER_GRADE_CELL,
    ROSTER_MIN_CELLS,
    ROSTER_NAME_CELL,
    ROSTER_NUMBER_CELL,
    ROSTER_ROLE_CELL,
    ROSTER_URL_TEMPLATE,
    TEAM_HEADING_SELECTORS,
    USER_AGENT,
)
from .enrich_utils import player_id_from_href
from .html_normalize import cell_text, decode_bytes_auto, parse_html
from .records import EntityRecord

logger = logging.getLogger(__name__)


@dataclass
class FetchConfig:
    """Configuration parameters for roster and directory requests."""

    timeout: float = 5.0
    connection_limit: int = 8
    user_agent: str = USER_AGENT
    accept_language: str = ACCEPT_LANGUAGE
    roster_url_template: str = ROSTER_URL_TEMPLATE
    directory_url_template: str = DIRECTORY_URL_TEMPLATE


@dataclass
class PageOutcome:
    """Raw result of one GET; ``kind`` is None on success."""

    url: str
    status: int
    text: str = ""
    kind: Optional[str] = None
    error: Optional[str] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.kind is None


@dataclass
class FetchOutcome:
    """Typed result of fetching one roster: records on success, a failure kind otherwise."""

    identifier: str
    url: str
    status: int
    records: List[EntityRecord] = field(default_factory=list)
    kind: Optional[str] = None
    error: Optional[str] = None
    elapsed_ms: int = 0
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.kind is None


def extract_team_name(soup: BeautifulSoup) -> Optional[str]:
    for selector in TEAM_HEADING_SELECTORS:
        node = soup.select_one(selector)
        text = cell_text(node)
        if text:
            return text
    return None


def parse_roster(html: str, identifier: str) -> List[EntityRecord]:
    """Parse roster rows into records.

    Rows with fewer than five cells, manager rows and rows without a player
    link are skipped.
    """
    soup = parse_html(html)
    team_name = extract_team_name(soup)
    records: List[EntityRecord] = []
    for row in soup.select("table tbody tr"):
        cells = row.find_all("td")
        if len(cells) < ROSTER_MIN_CELLS:
            continue
        number = cell_text(cells[ROSTER_NUMBER_CELL])
        if number == MANAGER_SENTINEL:
            continue
        link = cells[ROSTER_NAME_CELL].find("a", href=True)
        player_id = player_id_from_href(link["href"]) if link is not None else None
        if not player_id:
            continue
        records.append(
            EntityRecord(
                id=player_id,
                number=number,
                role=cell_text(cells[ROSTER_ROLE_CELL]),
                grade_level=cell_text(cells[ROSTER_GRADE_CELL]),
                group_name=team_name,
                group_id=identifier,
            )
        )
    return records


class RosterFetcher:
    """Async roster fetcher; one shared session, one timeout per request."""

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.config = config or FetchConfig()
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "RosterFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=self.config.connection_limit)
            headers = {
                "User-Agent": self.config.user_agent,
                "Accept-Language": self.config.accept_language,
                "Accept-Encoding": "gzip, deflate",
            }
            self._session = aiohttp.ClientSession(connector=connector, headers=headers)
            self._owns_session = True
        return self._session

    def roster_url(self, identifier: str, scope: str) -> str:
        return self.config.roster_url_template.format(identifier=identifier, scope=scope)

    def directory_url(self, identifier: str, scope: str) -> str:
        return self.config.directory_url_template.format(identifier=identifier, scope=scope)

    async def _fetch_once(self, url: str) -> Tuple[int, str]:
        session = self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        async with session.get(url, timeout=timeout) as resp:
            status = resp.status
            raw_bytes = await resp.read()
            headers = {"content-type": resp.headers.get("Content-Type", "")}
        text = decode_bytes_auto(raw_bytes, headers) if raw_bytes else ""
        return status, text

    async def fetch_page(self, url: str) -> PageOutcome:
        """GET ``url`` and classify the outcome; never raises for I/O failures."""

        start = time.perf_counter()

        def _elapsed() -> int:
            return int((time.perf_counter() - start) * 1000)

        try:
            status, text = await self._fetch_once(url)
        except asyncio.TimeoutError:
            logger.debug("timeout after %.1fs: %s", self.config.timeout, url)
            return PageOutcome(
                url=url,
                status=-1,
                kind=KIND_TIMEOUT,
                error=f"timed out after {self.config.timeout}s",
                elapsed_ms=_elapsed(),
            )
        except aiohttp.ClientError as exc:
            logger.debug("transport failure for %s: %s", url, exc)
            return PageOutcome(url=url, status=-1, kind=KIND_TRANSPORT, error=str(exc), elapsed_ms=_elapsed())
        if not 200 <= status < 300:
            return PageOutcome(
                url=url,
                status=status,
                kind=KIND_STATUS,
                error=f"HTTP {status}",
                elapsed_ms=_elapsed(),
            )
        return PageOutcome(url=url, status=status, text=text, elapsed_ms=_elapsed())

    async def fetch_detail(self, identifier: str, scope: str) -> FetchOutcome:
        """Fetch and parse one team's roster page."""

        url = self.roster_url(identifier, scope)
        page = await self.fetch_page(url)
        if not page.ok:
            return FetchOutcome(
                identifier=identifier,
                url=url,
                status=page.status,
                kind=page.kind,
                error=page.error,
                elapsed_ms=page.elapsed_ms,
            )
        records = parse_roster(page.text, identifier)
        if not records:
            return FetchOutcome(
                identifier=identifier,
                url=url,
                status=page.status,
                kind=KIND_PARSE_EMPTY,
                error="no roster rows found",
                elapsed_ms=page.elapsed_ms,
            )
        return FetchOutcome(
            identifier=identifier,
            url=url,
            status=page.status,
            records=records,
            elapsed_ms=page.elapsed_ms,
        )


__all__ = [
    "FetchConfig",
    "FetchOutcome",
    "PageOutcome",
    "RosterFetcher",
    "extract_team_name",
    "parse_roster",
]
