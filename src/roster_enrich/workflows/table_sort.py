"""Local, single-page column sort for enhanced tables."""

from __future__ import annotations

import logging
import unicodedata
from typing import List, Tuple

from bs4.element import Tag

from .html_normalize import cell_text
from .page_view import body_rows, row_cells

logger = logging.getLogger(__name__)

ASCENDING = "asc"
DESCENDING = "desc"


def direction_attr(column_index: int) -> str:
    return f"data-sort-{column_index}"


def collation_key(text: str) -> Tuple[str, str]:
    """Accent- and case-insensitive key; ties fall back to the raw text so ordering is total."""

    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold(), text


def _cell_value(row: Tag, column_index: int) -> str:
    cells = row_cells(row)
    if column_index < 0 or column_index >= len(cells):
        return ""
    return cell_text(cells[column_index])


class TableSorter:
    """Toggling column sort.

    Direction state lives on the table tag itself (``data-sort-<index>``) so it
    follows the table rather than the sorter instance.
    """

    def next_direction(self, table: Tag, column_index: int) -> str:
        current = table.get(direction_attr(column_index))
        return DESCENDING if current == ASCENDING else ASCENDING

    def sort_by_column(self, table: Tag, column_index: int) -> str:
        direction = self.next_direction(table, column_index)
        table[direction_attr(column_index)] = direction

        rows = body_rows(table)
        if not rows:
            return direction
        parent = rows[0].parent
        keyed: List[Tuple[Tuple[str, str], Tag]] = [
            (collation_key(_cell_value(row, column_index)), row) for row in rows
        ]
        # list.sort is stable, so equal keys keep their current order
        keyed.sort(key=lambda item: item[0], reverse=direction == DESCENDING)
        for _, row in keyed:
            row.extract()
        for _, row in keyed:
            parent.append(row)
        logger.debug("sorted %d rows on column %d (%s)", len(rows), column_index, direction)
        return direction


def sort_by_column(table: Tag, column_index: int) -> str:
    return TableSorter().sort_by_column(table, column_index)


__all__ = [
    "ASCENDING",
    "DESCENDING",
    "TableSorter",
    "collation_key",
    "direction_attr",
    "sort_by_column",
]
