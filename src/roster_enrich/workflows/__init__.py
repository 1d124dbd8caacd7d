"""High-level exports for the enrichment workflows."""

from .aggregator import AggregateResult, BatchAggregator
from .cache_store import CacheEntry, ExpiringCache, LocalStore
from .controller import EnrichmentController, RunReport
from .discovery import discover, discover_from_directories, discover_from_page
from .page_view import PageView, static_loader
from .records import EntityLookup, EntityRecord
from .roster_fetch import FetchConfig, FetchOutcome, RosterFetcher
from .settings import EnrichSettings, load_settings
from .table_enhancer import EnhancementResult, TableEnhancer, describe_table
from .table_sort import TableSorter, sort_by_column

__all__ = [
    "AggregateResult",
    "BatchAggregator",
    "CacheEntry",
    "EnhancementResult",
    "EnrichSettings",
    "EnrichmentController",
    "EntityLookup",
    "EntityRecord",
    "ExpiringCache",
    "FetchConfig",
    "FetchOutcome",
    "LocalStore",
    "PageView",
    "RosterFetcher",
    "RunReport",
    "TableEnhancer",
    "TableSorter",
    "describe_table",
    "discover",
    "discover_from_directories",
    "discover_from_page",
    "load_settings",
    "sort_by_column",
    "static_loader",
]
