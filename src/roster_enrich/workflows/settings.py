"""Runtime settings for the enrichment pipeline.

Two network profiles are built in: ``desktop`` (default) and ``constrained``
for slow or metered connections (longer timeout, smaller batches, slower
pacing). Any field can be overridden through ``ROSTER_ENRICH_*`` variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from dotenv import load_dotenv

from .enrich_config import (
    ACCEPT_LANGUAGE,
    CACHE_DIR,
    CACHE_FILENAME,
    CACHE_MAX_BYTES,
    CACHE_TTL_MS,
    DIRECTORY_IDS,
    MAX_IDENTIFIERS,
    USER_AGENT,
)

PROFILE_DESKTOP = "desktop"
PROFILE_CONSTRAINED = "constrained"

# Accept partial results once half of the rosters came back.
MIN_SUCCESS_FRACTION = 0.5


def _split_env_list(value: str, *, lower: bool = False) -> Tuple[str, ...]:
    tokens: List[str] = []
    for token in value.split(","):
        cleaned = token.strip()
        if not cleaned:
            continue
        tokens.append(cleaned.lower() if lower else cleaned)
    # Preserve order but drop duplicates
    seen: Set[str] = set()
    ordered: List[str] = []
    for token in tokens:
        if token in seen:
            continue
        seen.add(token)
        ordered.append(token)
    return tuple(ordered)


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if not normalized:
        return default
    return normalized not in {"0", "false", "off", "no"}


def _safe_int(value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    if value is None:
        return default
    try:
        cleaned = value.strip()
        if not cleaned:
            return default
        return int(cleaned)
    except ValueError:
        return default


def _safe_float(value: Optional[str], default: Optional[float] = None) -> Optional[float]:
    if value is None:
        return default
    try:
        cleaned = value.strip()
        if not cleaned:
            return default
        return float(cleaned)
    except ValueError:
        return default


@dataclass(frozen=True)
class EnrichSettings:
    """Configuration parameters for one enrichment controller."""

    profile: str = PROFILE_DESKTOP
    timeout: float = 5.0
    batch_size: int = 5
    pacing_delay: float = 0.1
    min_success_fraction: float = MIN_SUCCESS_FRACTION
    max_identifiers: int = MAX_IDENTIFIERS
    directory_ids: Tuple[str, ...] = DIRECTORY_IDS
    cache_path: Optional[Path] = CACHE_DIR / CACHE_FILENAME
    cache_max_bytes: int = CACHE_MAX_BYTES
    cache_ttl_ms: int = CACHE_TTL_MS
    per_entity_cache: bool = False
    ready_attempts: int = 10
    ready_interval: float = 0.5
    min_ready_rows: int = 1
    user_agent: str = USER_AGENT
    accept_language: str = ACCEPT_LANGUAGE

    @property
    def cache_enabled(self) -> bool:
        return self.cache_path is not None


_PROFILES: Dict[str, EnrichSettings] = {
    PROFILE_DESKTOP: EnrichSettings(),
    PROFILE_CONSTRAINED: EnrichSettings(
        profile=PROFILE_CONSTRAINED,
        timeout=10.0,
        batch_size=3,
        pacing_delay=0.3,
        ready_attempts=15,
        ready_interval=1.0,
    ),
}


def profile_names() -> Tuple[str, ...]:
    return tuple(_PROFILES)


def settings_for_profile(name: str) -> EnrichSettings:
    key = (name or PROFILE_DESKTOP).strip().lower()
    if key not in _PROFILES:
        raise ValueError(f"Unknown profile {name!r}; expected one of {', '.join(_PROFILES)}")
    return _PROFILES[key]


def resolve_cache_path() -> Optional[Path]:
    if _as_bool(os.getenv("ROSTER_ENRICH_CACHE_DISABLE"), False):
        return None
    env_path = os.getenv("ROSTER_ENRICH_CACHE_PATH")
    if env_path:
        return Path(env_path)
    base = Path(os.getenv("ROSTER_ENRICH_CACHE_DIR", str(CACHE_DIR)))
    return base / CACHE_FILENAME


def load_settings(profile: Optional[str] = None, *, use_dotenv: bool = True) -> EnrichSettings:
    """Build settings from a profile plus ``ROSTER_ENRICH_*`` overrides.

    An explicit ``profile`` argument wins over ``ROSTER_ENRICH_PROFILE``.
    Unparseable values fall back to the profile default.
    """

    if use_dotenv:
        load_dotenv(override=False)
    base = settings_for_profile(profile or os.getenv("ROSTER_ENRICH_PROFILE", PROFILE_DESKTOP))

    directory_raw = os.getenv("ROSTER_ENRICH_DIRECTORY_IDS")
    directory_ids = _split_env_list(directory_raw) if directory_raw is not None else base.directory_ids

    batch_size = _safe_int(os.getenv("ROSTER_ENRICH_BATCH_SIZE"), base.batch_size) or base.batch_size
    max_ids = _safe_int(os.getenv("ROSTER_ENRICH_MAX_TEAMS"), base.max_identifiers)
    min_success = _safe_float(os.getenv("ROSTER_ENRICH_MIN_SUCCESS"), base.min_success_fraction)
    if min_success is None or not 0.0 <= min_success <= 1.0:
        min_success = base.min_success_fraction

    return replace(
        base,
        timeout=max(0.1, _safe_float(os.getenv("ROSTER_ENRICH_TIMEOUT"), base.timeout) or base.timeout),
        batch_size=max(1, batch_size),
        pacing_delay=max(0.0, _safe_float(os.getenv("ROSTER_ENRICH_PACING"), base.pacing_delay) or 0.0),
        min_success_fraction=min_success,
        max_identifiers=max(0, max_ids if max_ids is not None else base.max_identifiers),
        directory_ids=directory_ids,
        cache_path=resolve_cache_path(),
        cache_max_bytes=max(
            0,
            _safe_int(os.getenv("ROSTER_ENRICH_CACHE_MAX_BYTES"), base.cache_max_bytes) or 0,
        ),
        per_entity_cache=_as_bool(os.getenv("ROSTER_ENRICH_PER_TEAM_CACHE"), base.per_entity_cache),
    )


__all__ = [
    "EnrichSettings",
    "MIN_SUCCESS_FRACTION",
    "PROFILE_CONSTRAINED",
    "PROFILE_DESKTOP",
    "load_settings",
    "profile_names",
    "resolve_cache_path",
    "settings_for_profile",
]
