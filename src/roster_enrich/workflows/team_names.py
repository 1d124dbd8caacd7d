"""Team label heuristics for display only.

League tables show abbreviated team labels ("LHW"); roster pages carry the
full team name ("Legacy Hockey Wolves"). These helpers decide when to swap one
for the other. They are guesses:

- false positive: a real team whose name is five characters or fewer
  ("Storm") is treated as an abbreviation and replaced by its own full name,
  which is harmless when the roster heading matches but wrong when it does
  not;
- false negative: a long abbreviation ("LHWOLVES") is left as is;
- mascot stripping removes a trailing word only when it is in the known
  mascot list, so "Legacy Hockey Wolfpack" keeps its last word.

Nothing here takes part in matching players to rows.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .enrich_config import TEAM_MASCOTS

MAX_ABBREVIATION_LENGTH = 5


def looks_abbreviated(label: str, max_length: int = MAX_ABBREVIATION_LENGTH) -> bool:
    cleaned = (label or "").strip()
    return 0 < len(cleaned) <= max_length and " " not in cleaned


def strip_mascot(name: str, mascots: Iterable[str] = TEAM_MASCOTS) -> str:
    """Drop a trailing mascot word ("Legacy Hockey Wolves" -> "Legacy Hockey")."""

    words = (name or "").split()
    if len(words) < 2:
        return " ".join(words)
    known = {m.lower() for m in mascots}
    if words[-1].lower() in known:
        words = words[:-1]
    return " ".join(words)


def expand_team_label(
    current: str,
    full_name: Optional[str],
    *,
    max_length: int = MAX_ABBREVIATION_LENGTH,
    mascots: Iterable[str] = TEAM_MASCOTS,
) -> str:
    """Return the label to show in a team cell.

    ``current`` is returned unchanged unless it looks like an abbreviation and
    a full name is known.
    """
    cleaned = (current or "").strip()
    if not full_name or not looks_abbreviated(cleaned, max_length):
        return cleaned
    expanded = strip_mascot(full_name, mascots)
    return expanded or cleaned


__all__ = [
    "MAX_ABBREVIATION_LENGTH",
    "expand_team_label",
    "looks_abbreviated",
    "strip_mascot",
]
