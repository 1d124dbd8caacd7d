"""Core schema helpers for roster-enrich."""

from .keys import *  # noqa: F401,F403 re-export stable keys

__all__ = [name for name in globals() if name.startswith(("K_", "KIND_"))] + [
    "scope_cache_key",
    "entity_cache_key",
]
