"""Shared schema keys to avoid magic strings across the enrichment modules."""

from __future__ import annotations

# Record keys (JSON form of EntityRecord)
K_ID = "id"
K_NUMBER = "number"
K_ROLE = "role"
K_GRADE_LEVEL = "grade_level"
K_GROUP_NAME = "group_name"
K_GROUP_ID = "group_id"

# Cache entry keys
K_DATA = "data"
K_TIMESTAMP = "timestamp"

# Cache key prefixes
K_SCOPE_PREFIX = "league"
K_ENTITY_PREFIX = "entity"

# Fetch failure kinds
KIND_TIMEOUT = "timeout"
KIND_STATUS = "status"
KIND_TRANSPORT = "transport"
KIND_PARSE_EMPTY = "parse_empty"
KIND_UNEXPECTED = "unexpected"


def scope_cache_key(scope: str, prefix: str = K_SCOPE_PREFIX) -> str:
    """Key for the whole-scope lookup, e.g. ``league:12345``."""

    return f"{prefix}:{scope}"


def entity_cache_key(identifier: str, scope: str) -> str:
    """Key for a single roster's records, e.g. ``entity:777:12345``."""

    return f"{K_ENTITY_PREFIX}:{identifier}:{scope}"
