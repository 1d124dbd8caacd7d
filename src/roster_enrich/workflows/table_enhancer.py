"""Add position and grade columns to league stats tables.

A table is eligible when its header has a ``Name`` column. Skater tables get
``Pos`` and ``Grade`` right after ``Name``; goalie tables (both ``GAA`` and
``SV%`` in the header) only get ``Grade`` because every row is a goalie.
The derived header labels double as the "already enhanced" marker, so a table
is never enhanced twice no matter how often the pipeline is triggered.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from .enrich_config import (
    DERIVED_LABELS,
    GRADE_CELL_STYLE,
    GRADE_LABEL,
    HEADER_STYLE,
    NAME_HEADER,
    ROLE_CELL_STYLE,
    ROLE_LABEL,
    SORT_TOOLTIP,
    SPECIALIZED_MARKERS,
    TEAM_HEADER,
)
from .enrich_utils import player_id_from_href
from .html_normalize import cell_text
from .page_view import body_rows, header_cells, header_row, row_cells
from .records import EntityRecord
from .table_sort import TableSorter
from .team_names import expand_team_label

logger = logging.getLogger(__name__)

STATUS_ENHANCED = "enhanced"
STATUS_ALREADY_ENHANCED = "already_enhanced"
STATUS_NOT_ELIGIBLE = "not_eligible"
STATUS_NO_ROWS = "no_rows"

# Detached factory for new cells; bs4 tags can move between documents.
_TAG_FACTORY = BeautifulSoup("", "html.parser")


@dataclass(frozen=True)
class TableDescriptor:
    name_column_index: int
    team_column_index: Optional[int]
    is_specialized_role_schema: bool

    @property
    def derived_labels(self) -> List[str]:
        if self.is_specialized_role_schema:
            return [GRADE_LABEL]
        return [ROLE_LABEL, GRADE_LABEL]


@dataclass
class EnhancementResult:
    status: str
    descriptor: Optional[TableDescriptor] = None
    added_labels: List[str] = field(default_factory=list)
    matched_rows: int = 0
    total_rows: int = 0
    sort_handlers: Dict[int, Callable[[], str]] = field(default_factory=dict)

    @property
    def enhanced(self) -> bool:
        return self.status == STATUS_ENHANCED

    @property
    def match_rate(self) -> float:
        if self.total_rows <= 0:
            return 0.0
        return self.matched_rows / self.total_rows


def _index_of(labels: List[str], wanted: str) -> Optional[int]:
    for index, label in enumerate(labels):
        if label == wanted:
            return index
    return None


def describe_table(table: Tag) -> Optional[TableDescriptor]:
    labels = [cell_text(th) for th in header_cells(table)]
    name_index = _index_of(labels, NAME_HEADER)
    if name_index is None:
        return None
    specialized = all(marker in labels for marker in SPECIALIZED_MARKERS)
    return TableDescriptor(
        name_column_index=name_index,
        team_column_index=_index_of(labels, TEAM_HEADER),
        is_specialized_role_schema=specialized,
    )


def is_enhanced(table: Tag) -> bool:
    labels = {cell_text(th) for th in header_cells(table)}
    return any(label in labels for label in DERIVED_LABELS)


def row_entity_id(row: Tag, name_index: int) -> Optional[str]:
    cells = row_cells(row)
    if name_index >= len(cells):
        return None
    link = cells[name_index].find("a", href=True)
    if link is None:
        return None
    return player_id_from_href(link["href"])


def _new_cell(name: str, text: str, classes: Optional[List[str]], style: str) -> Tag:
    cell = _TAG_FACTORY.new_tag(name)
    cell.string = text
    if classes:
        cell["class"] = list(classes)
    cell["style"] = style
    return cell


def _classes(tag: Tag) -> Optional[List[str]]:
    value = tag.get("class")
    if not value:
        return None
    if isinstance(value, str):
        return value.split()
    return list(value)


class TableEnhancer:
    def __init__(self, sorter: Optional[TableSorter] = None) -> None:
        self.sorter = sorter or TableSorter()

    def enhance(self, table: Tag, lookup: Mapping[str, EntityRecord]) -> EnhancementResult:
        """Insert derived columns and fill them from ``lookup``.

        Values are copied verbatim; rows without a known player get empty
        cells so every row keeps the same column count.
        """
        if header_row(table) is None:
            return EnhancementResult(status=STATUS_NO_ROWS)
        descriptor = describe_table(table)
        if descriptor is None:
            return EnhancementResult(status=STATUS_NOT_ELIGIBLE)
        if is_enhanced(table):
            return EnhancementResult(status=STATUS_ALREADY_ENHANCED, descriptor=descriptor)
        rows = [row for row in body_rows(table) if row_cells(row)]
        if not rows:
            return EnhancementResult(status=STATUS_NO_ROWS, descriptor=descriptor)

        labels = descriptor.derived_labels
        result = EnhancementResult(status=STATUS_ENHANCED, descriptor=descriptor, added_labels=list(labels))
        self._insert_headers(table, descriptor, labels, result)
        for row in rows:
            if self._populate_row(row, descriptor, lookup):
                result.matched_rows += 1
            result.total_rows += 1

        logger.info(
            "table enhanced with %s (%d/%d rows matched, %.0f%%)",
            " and ".join(labels),
            result.matched_rows,
            result.total_rows,
            result.match_rate * 100,
        )
        return result

    def _insert_headers(
        self,
        table: Tag,
        descriptor: TableDescriptor,
        labels: List[str],
        result: EnhancementResult,
    ) -> None:
        headers = header_cells(table)
        sample_classes = _classes(headers[0])
        anchor = headers[descriptor.name_column_index]
        for offset, label in enumerate(labels):
            column_index = descriptor.name_column_index + 1 + offset
            th = _new_cell("th", label, sample_classes, HEADER_STYLE)
            th["title"] = SORT_TOOLTIP
            th["data-sort-column"] = str(column_index)
            anchor.insert_after(th)
            anchor = th
            result.sort_handlers[column_index] = functools.partial(
                self.sorter.sort_by_column, table, column_index
            )

    def _populate_row(
        self,
        row: Tag,
        descriptor: TableDescriptor,
        lookup: Mapping[str, EntityRecord],
    ) -> bool:
        cells = row_cells(row)
        entity_id = row_entity_id(row, descriptor.name_column_index)
        record = lookup.get(entity_id) if entity_id else None

        team_index = descriptor.team_column_index
        if record is not None and record.group_name and team_index is not None and team_index < len(cells):
            team_cell = cells[team_index]
            current = cell_text(team_cell)
            label = expand_team_label(current, record.group_name)
            if label != current:
                self._replace_text(team_cell, label)

        role = record.role if record is not None else ""
        grade = record.grade_level if record is not None else ""
        cell_classes = _classes(cells[0])
        new_cells: List[Tag] = []
        if not descriptor.is_specialized_role_schema:
            new_cells.append(_new_cell("td", role, cell_classes, ROLE_CELL_STYLE))
        new_cells.append(_new_cell("td", grade, cell_classes, GRADE_CELL_STYLE))

        if descriptor.name_column_index < len(cells):
            anchor = cells[descriptor.name_column_index]
            for cell in new_cells:
                anchor.insert_after(cell)
                anchor = cell
        else:
            for cell in new_cells:
                row.append(cell)
        return record is not None

    @staticmethod
    def _replace_text(cell: Tag, text: str) -> None:
        # Keep the team link (if any) and only swap its label
        link = cell.find("a")
        target = link if link is not None else cell
        target.string = text


def enhance(table: Tag, lookup: Mapping[str, EntityRecord]) -> EnhancementResult:
    return TableEnhancer().enhance(table, lookup)


__all__ = [
    "EnhancementResult",
    "STATUS_ALREADY_ENHANCED",
    "STATUS_ENHANCED",
    "STATUS_NOT_ELIGIBLE",
    "STATUS_NO_ROWS",
    "TableDescriptor",
    "TableEnhancer",
    "describe_table",
    "enhance",
    "is_enhanced",
    "row_entity_id",
]
