"""Player records and the per-scope lookup built from roster pages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

from ..core.keys import K_GRADE_LEVEL, K_GROUP_ID, K_GROUP_NAME, K_ID, K_NUMBER, K_ROLE


@dataclass(frozen=True)
class EntityRecord:
    """One roster row: a player's jersey number, position and grade."""

    id: str
    number: str
    role: str
    grade_level: str
    group_name: Optional[str] = None
    group_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("EntityRecord.id must be non-empty")

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            K_ID: self.id,
            K_NUMBER: self.number,
            K_ROLE: self.role,
            K_GRADE_LEVEL: self.grade_level,
        }
        if self.group_name is not None:
            payload[K_GROUP_NAME] = self.group_name
        if self.group_id is not None:
            payload[K_GROUP_ID] = self.group_id
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "EntityRecord":
        group_name = payload.get(K_GROUP_NAME)
        group_id = payload.get(K_GROUP_ID)
        return cls(
            id=str(payload[K_ID]),
            number=str(payload.get(K_NUMBER) or ""),
            role=str(payload.get(K_ROLE) or ""),
            grade_level=str(payload.get(K_GRADE_LEVEL) or ""),
            group_name=str(group_name) if group_name is not None else None,
            group_id=str(group_id) if group_id is not None else None,
        )


EntityLookup = Dict[str, EntityRecord]


def merge_records(lookup: EntityLookup, records: Iterable[EntityRecord]) -> int:
    """Merge records into ``lookup`` by id (last write wins). Returns the count merged."""

    merged = 0
    for record in records:
        lookup[record.id] = record
        merged += 1
    return merged


def lookup_to_json(lookup: Mapping[str, EntityRecord]) -> Dict[str, Dict[str, Any]]:
    return {key: record.to_dict() for key, record in lookup.items()}


def lookup_from_json(payload: Any) -> EntityLookup:
    """Rebuild a lookup from its JSON form.

    Raises ValueError/KeyError/TypeError on malformed payloads so the cache
    layer can treat them as corrupt.
    """

    if not isinstance(payload, dict):
        raise TypeError("lookup payload must be an object")
    lookup: EntityLookup = {}
    for key, raw in payload.items():
        record = EntityRecord.from_dict(raw)
        lookup[str(key)] = record
    return lookup


__all__ = [
    "EntityRecord",
    "EntityLookup",
    "merge_records",
    "lookup_to_json",
    "lookup_from_json",
]
