"""Drive roster fetches in paced batches and merge them into one lookup.

Within a batch every request is in flight at once and every outcome is
awaited, so one slow team never holds up its siblings. Batches run one after
another with a pacing sleep in between, which bounds the number of
concurrent requests the site sees.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from ..core.keys import KIND_UNEXPECTED, entity_cache_key
from ..exceptions import NoCandidatesError
from .cache_store import ExpiringCache
from .records import EntityLookup, EntityRecord, merge_records
from .roster_fetch import FetchOutcome, RosterFetcher
from .settings import MIN_SUCCESS_FRACTION

logger = logging.getLogger(__name__)

ProgressHook = Callable[[int, int], None]


@dataclass
class AggregateResult:
    lookup: EntityLookup
    total: int
    success_count: int
    error_count: int
    failure_kinds: Dict[str, int] = field(default_factory=dict)
    cache_hits: int = 0
    min_success_fraction: float = MIN_SUCCESS_FRACTION

    @property
    def success_fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.success_count / self.total

    @property
    def low_confidence(self) -> bool:
        return self.success_fraction < self.min_success_fraction


def partition(ids: Sequence[str], size: int) -> List[List[str]]:
    step = max(1, size)
    return [list(ids[i : i + step]) for i in range(0, len(ids), step)]


class BatchAggregator:
    def __init__(
        self,
        fetcher: RosterFetcher,
        *,
        batch_size: int = 5,
        pacing_delay: float = 0.1,
        min_success_fraction: float = MIN_SUCCESS_FRACTION,
        entity_cache: Optional[ExpiringCache] = None,
        progress_hook: Optional[ProgressHook] = None,
    ) -> None:
        self.fetcher = fetcher
        self.batch_size = max(1, batch_size)
        self.pacing_delay = max(0.0, pacing_delay)
        self.min_success_fraction = min_success_fraction
        self.entity_cache = entity_cache
        self.progress_hook = progress_hook

    async def _fetch_one(self, identifier: str, scope: str) -> FetchOutcome:
        if self.entity_cache is not None:
            key = entity_cache_key(identifier, scope)
            entry = self.entity_cache.get(key)
            if entry is not None and self.entity_cache.is_fresh(entry):
                try:
                    records = [EntityRecord.from_dict(raw) for raw in entry.data]
                except (KeyError, TypeError, ValueError) as exc:
                    logger.warning("dropping unreadable cached roster %s: %s", key, exc)
                    self.entity_cache.evict(key)
                else:
                    return FetchOutcome(
                        identifier=identifier,
                        url=self.fetcher.roster_url(identifier, scope),
                        status=200,
                        records=records,
                        from_cache=True,
                    )
        outcome = await self.fetcher.fetch_detail(identifier, scope)
        if outcome.ok and self.entity_cache is not None:
            self.entity_cache.set(
                entity_cache_key(identifier, scope),
                [record.to_dict() for record in outcome.records],
            )
        return outcome

    async def aggregate(self, ids: Sequence[str], scope: str) -> AggregateResult:
        """Fetch every roster in ``ids`` and merge the records by player id.

        Raises NoCandidatesError when ``ids`` is empty or nothing succeeded.
        """
        if not ids:
            raise NoCandidatesError(f"no teams to fetch for season {scope}")

        lookup: EntityLookup = {}
        total = len(ids)
        processed = 0
        successes = 0
        cache_hits = 0
        kinds: Counter = Counter()
        batches = partition(ids, self.batch_size)

        for index, batch in enumerate(batches):
            if index > 0 and self.pacing_delay:
                await asyncio.sleep(self.pacing_delay)
            results = await asyncio.gather(
                *(self._fetch_one(i, scope) for i in batch), return_exceptions=True
            )
            for identifier, outcome in zip(batch, results):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.error("team %s fetch crashed: %r", identifier, outcome)
                    outcome = FetchOutcome(
                        identifier=identifier,
                        url=self.fetcher.roster_url(identifier, scope),
                        status=-1,
                        kind=KIND_UNEXPECTED,
                        error=str(outcome),
                    )
                if outcome.ok:
                    successes += 1
                    cache_hits += int(outcome.from_cache)
                    merge_records(lookup, outcome.records)
                else:
                    kinds[outcome.kind or "unknown"] += 1
                    logger.debug("team %s failed: %s (%s)", outcome.identifier, outcome.kind, outcome.error)
            processed += len(batch)
            if self.progress_hook is not None:
                self.progress_hook(processed, total)

        errors = total - successes
        if successes == 0:
            raise NoCandidatesError(
                f"all {total} roster fetches failed for season {scope}",
                total=total,
                failures=errors,
            )
        result = AggregateResult(
            lookup=lookup,
            total=total,
            success_count=successes,
            error_count=errors,
            failure_kinds=dict(kinds),
            cache_hits=cache_hits,
            min_success_fraction=self.min_success_fraction,
        )
        logger.info(
            "fetched %d/%d rosters (%d players, %d failed)",
            successes,
            total,
            len(lookup),
            errors,
        )
        return result


__all__ = ["AggregateResult", "BatchAggregator", "ProgressHook", "partition"]
