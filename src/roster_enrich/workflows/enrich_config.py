"""Enrichment defaults (endpoints, patterns, labels, markers, paths).

Centralizes static defaults so the workflow modules have no embedded magic
strings. These are baseline constants used to construct settings; callers can
inject their own EnrichSettings to override the tunable ones.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Tuple

# Endpoints
SITE_ROOT = "https://www.legacy.hockey"
ROSTER_URL_TEMPLATE = SITE_ROOT + "/roster/show/{identifier}?subseason={scope}"
DIRECTORY_URL_TEMPLATE = SITE_ROOT + "/page/show/{identifier}?subseason={scope}"

# URL patterns
LEAGUE_PAGE_MARKER = "league_instance"
SCOPE_PATTERN = re.compile(r"subseason=(\d+)")
TEAM_PAGE_PATTERN = re.compile(r"page/show/(\d+)")
PLAYER_PATTERN = re.compile(r"roster_players/(\d+)")
TEAM_LINK_FLAG = "use_abbrev=true"

# Roster page parsing
ROSTER_MIN_CELLS = 5
ROSTER_NUMBER_CELL = 0
ROSTER_NAME_CELL = 2
ROSTER_ROLE_CELL = 3
ROSTER_GRADE_CELL = 4
MANAGER_SENTINEL = "MGR"
TEAM_HEADING_SELECTORS = ("h1", ".teamName", "h2", "title")

# Stats table labels
NAME_HEADER = "Name"
TEAM_HEADER = "Team"
CANDIDATE_HEADERS = ("#", NAME_HEADER, TEAM_HEADER)
ROLE_LABEL = "Pos"
GRADE_LABEL = "Grade"
DERIVED_LABELS = (ROLE_LABEL, GRADE_LABEL)
# Both must be present for the goalie ("specialized role") layout
SPECIALIZED_MARKERS = ("GAA", "SV%")
SORT_TOOLTIP = (
    "Sorts the rows on this page only. Results are paginated; "
    "other pages are not refetched."
)
HEADER_STYLE = "text-align: center; font-weight: bold; cursor: pointer;"
ROLE_CELL_STYLE = "text-align: center; font-weight: 600;"
GRADE_CELL_STYLE = "text-align: center;"

# Cache
CACHE_TTL_MS = 7 * 24 * 60 * 60 * 1000
CACHE_MAX_BYTES = 5_000_000
# Relative to the working directory
CACHE_DIR = Path("run") / "enrich_cache"
CACHE_FILENAME = "cache_store.json"

# Discovery
MAX_IDENTIFIERS = 50
# Division listing pages scanned when the current view has no team links.
DIRECTORY_IDS: Tuple[str, ...] = ()

# Mascot words dropped from long team names when shortening labels
TEAM_MASCOTS = (
    "Wolves",
    "Bears",
    "Hawks",
    "Eagles",
    "Lightning",
    "Thunder",
    "Storm",
    "Knights",
    "Blades",
    "Flames",
)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
ACCEPT_LANGUAGE = "en-US,en;q=0.9"
