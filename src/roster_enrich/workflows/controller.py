"""Single entry point for enriching the current page.

One :class:`EnrichmentController` is built per page/session. Whoever watches
the page (a timer, a DOM-change observer, the CLI) just calls :meth:`run`;
the controller's own guards decide whether any work actually happens:

- ``_in_progress`` keeps two runs from overlapping;
- ``_last_scope`` turns repeated triggers for an already enriched season into
  no-ops until :meth:`reset` is called (new tables showed up).
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..core.keys import scope_cache_key
from ..exceptions import NoCandidatesError
from .aggregator import AggregateResult, BatchAggregator
from .cache_store import CacheEntry, ExpiringCache, LocalStore
from .discovery import discover
from .enrich_utils import is_league_page, scope_from_url
from .notify import LoggingNotifier, Notifier
from .page_view import PageLoader, PageView, wait_until_ready
from .records import EntityLookup, EntityRecord, lookup_from_json, lookup_to_json
from .roster_fetch import FetchConfig, RosterFetcher
from .settings import EnrichSettings
from .table_enhancer import EnhancementResult, TableEnhancer

logger = logging.getLogger(__name__)

RUN_BUSY = "busy"
RUN_NOT_APPLICABLE = "not_applicable"
RUN_UNCHANGED = "unchanged"
RUN_NO_TABLES = "no_tables"
RUN_FAILED = "failed"
RUN_ENHANCED = "enhanced"
RUN_NOTHING_TO_DO = "nothing_to_enhance"

_DAY_MS = 24 * 60 * 60 * 1000


@dataclass
class RunReport:
    status: str
    scope: Optional[str] = None
    tables_enhanced: int = 0
    tables_skipped: int = 0
    matched_rows: int = 0
    total_rows: int = 0
    teams_total: int = 0
    teams_failed: int = 0
    from_cache: bool = False
    stale: bool = False
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class _LookupLoad:
    lookup: EntityLookup
    from_cache: bool = False
    stale: bool = False
    aggregate: Optional[AggregateResult] = None


def build_cache(settings: EnrichSettings) -> Optional[ExpiringCache]:
    if not settings.cache_enabled:
        return None
    store = LocalStore(settings.cache_path, settings.cache_max_bytes)
    return ExpiringCache(store, ttl_ms=settings.cache_ttl_ms)


def fetch_config_for(settings: EnrichSettings) -> FetchConfig:
    return FetchConfig(
        timeout=settings.timeout,
        connection_limit=max(1, settings.batch_size),
        user_agent=settings.user_agent,
        accept_language=settings.accept_language,
    )


class EnrichmentController:
    def __init__(
        self,
        loader: PageLoader,
        settings: Optional[EnrichSettings] = None,
        *,
        notifier: Optional[Notifier] = None,
        cache: Optional[ExpiringCache] = None,
        fetcher: Optional[RosterFetcher] = None,
        enhancer: Optional[TableEnhancer] = None,
    ) -> None:
        self.settings = settings or EnrichSettings()
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.cache = cache if cache is not None else build_cache(self.settings)
        self.enhancer = enhancer or TableEnhancer()
        self._loader = loader
        self._fetcher = fetcher
        self._in_progress = False
        self._last_scope: Optional[str] = None
        self._reset_during_run = False
        self._lookup: EntityLookup = {}
        self.last_results: List[EnhancementResult] = []
        self.last_page: Optional[PageView] = None

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def last_scope(self) -> Optional[str]:
        return self._last_scope

    @property
    def lookup(self) -> Mapping[str, EntityRecord]:
        return dict(self._lookup)

    def reset(self) -> None:
        """Forget the last enriched season so the next trigger re-processes.

        Called when new candidate tables appear. A run already in flight is
        left alone but will not mark its season as done.
        """
        self._last_scope = None
        if self._in_progress:
            self._reset_during_run = True

    async def on_tables_changed(self) -> RunReport:
        self.reset()
        return await self.run()

    async def run(self) -> RunReport:
        """Enrich the current page if there is anything to do."""

        if self._in_progress:
            logger.debug("enrichment already running; trigger ignored")
            return RunReport(status=RUN_BUSY)
        self._in_progress = True
        self._reset_during_run = False
        try:
            return await self._run()
        finally:
            self._in_progress = False

    async def _run(self) -> RunReport:
        page = await self._loader()
        scope = scope_from_url(page.url)
        if not is_league_page(page.url) or scope is None:
            return RunReport(status=RUN_NOT_APPLICABLE)
        if scope == self._last_scope:
            return RunReport(status=RUN_UNCHANGED, scope=scope)

        page = await wait_until_ready(
            self._loader,
            min_rows=self.settings.min_ready_rows,
            attempts=self.settings.ready_attempts,
            interval=self.settings.ready_interval,
        )
        self.last_page = page
        tables = page.candidate_tables()
        if not tables:
            return RunReport(status=RUN_NO_TABLES, scope=scope)

        loaded = await self._load_lookup(page, scope)
        if loaded is None:
            return RunReport(status=RUN_FAILED, scope=scope, message="no roster data available")
        self._lookup = loaded.lookup

        report = RunReport(status=RUN_NOTHING_TO_DO, scope=scope, from_cache=loaded.from_cache, stale=loaded.stale)
        if loaded.aggregate is not None:
            report.teams_total = loaded.aggregate.total
            report.teams_failed = loaded.aggregate.error_count
        self.last_results = []
        for table in tables:
            result = self.enhancer.enhance(table, loaded.lookup)
            self.last_results.append(result)
            if result.enhanced:
                report.tables_enhanced += 1
                report.matched_rows += result.matched_rows
                report.total_rows += result.total_rows
            else:
                report.tables_skipped += 1
        if report.tables_enhanced:
            report.status = RUN_ENHANCED
        if not self._reset_during_run:
            self._last_scope = scope
        logger.info(
            "season %s: %d tables enhanced, %d/%d rows matched",
            scope,
            report.tables_enhanced,
            report.matched_rows,
            report.total_rows,
        )
        return report

    def _cached_lookup(self, key: str) -> Tuple[Optional[CacheEntry], Optional[EntityLookup]]:
        if self.cache is None:
            return None, None
        entry = self.cache.get(key)
        if entry is None:
            return None, None
        try:
            return entry, lookup_from_json(entry.data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("cached lookup %s unreadable (%s); evicting", key, exc)
            self.cache.evict(key)
            return None, None

    async def _load_lookup(self, page: PageView, scope: str) -> Optional[_LookupLoad]:
        key = scope_cache_key(scope)
        entry, cached = self._cached_lookup(key)
        if entry is not None and cached is not None and self.cache is not None and self.cache.is_fresh(entry):
            logger.info("using cached roster data for season %s", scope)
            return _LookupLoad(lookup=cached, from_cache=True)

        try:
            aggregate = await self._fetch_lookup(page, scope)
        except NoCandidatesError as exc:
            if entry is not None and cached:
                age_days = entry.age_ms(self.cache.now_ms()) // _DAY_MS if self.cache else 0
                self.notifier.error(
                    f"Could not refresh roster data ({exc}); using cached data from {age_days} day(s) ago."
                )
                return _LookupLoad(lookup=cached, from_cache=True, stale=True)
            self.notifier.error(f"Roster data unavailable: {exc}. Table left unchanged.")
            return None

        if self.cache is not None:
            self.cache.set(key, lookup_to_json(aggregate.lookup))
        if aggregate.low_confidence:
            self.notifier.error(
                f"Only {aggregate.success_count} of {aggregate.total} team rosters loaded; "
                "positions and grades may be incomplete."
            )
        return _LookupLoad(lookup=aggregate.lookup, aggregate=aggregate)

    async def _fetch_lookup(self, page: PageView, scope: str) -> AggregateResult:
        fetcher = self._fetcher or RosterFetcher(fetch_config_for(self.settings))
        try:
            ids = await discover(
                page,
                scope,
                fetcher,
                directory_ids=self.settings.directory_ids,
                max_identifiers=self.settings.max_identifiers,
            )
            if not ids:
                raise NoCandidatesError(f"no teams found for season {scope}")
            self.notifier.progress(f"Loading rosters for {len(ids)} teams...")
            aggregator = BatchAggregator(
                fetcher,
                batch_size=self.settings.batch_size,
                pacing_delay=self.settings.pacing_delay,
                min_success_fraction=self.settings.min_success_fraction,
                entity_cache=self.cache if self.settings.per_entity_cache else None,
                progress_hook=self._report_progress,
            )
            return await aggregator.aggregate(ids, scope)
        finally:
            if self._fetcher is None:
                await fetcher.close()

    def _report_progress(self, processed: int, total: int) -> None:
        self.notifier.progress(f"Loading rosters {processed}/{total}")


__all__ = [
    "EnrichmentController",
    "RUN_BUSY",
    "RUN_ENHANCED",
    "RUN_FAILED",
    "RUN_NOTHING_TO_DO",
    "RUN_NOT_APPLICABLE",
    "RUN_NO_TABLES",
    "RUN_UNCHANGED",
    "RunReport",
    "build_cache",
    "fetch_config_for",
]
