"""
Series Table and Hierarchy Resolver.

Turns the flat, denormalized rows of the series query into a tree with
paths of the form "phenomenon/procedure/series/sub-series", optionally
followed by the format of each leaf with its bands and categories.
"""

import logging
import math
from enum import Enum, IntEnum
from typing import List, NamedTuple, Optional, Sequence, Union

from coverage_catalog.sql import queries as q
from coverage_catalog.sql.entries import Entry, FormatEntry, SeriesEntry
from coverage_catalog.sql.exceptions import IllegalRecordError
from coverage_catalog.sql.formats import FormatTable
from coverage_catalog.sql.table import Table
from coverage_catalog.sql.tree import TreeNode

logger = logging.getLogger(__name__)

ROOT_LABEL = "Series"


class HierarchyLevel(IntEnum):
    """Levels of the series hierarchy, outermost first."""

    PHENOMENON = 1
    PROCEDURE = 2
    SERIES = 3
    SUBSERIES = 4


class LeafType(Enum):
    """Deepest level included in a series tree."""

    SERIES = "series"
    SUBSERIES = "subseries"
    CATEGORY = "category"  # Sub-series plus their format categories

    @property
    def depth(self) -> HierarchyLevel:
        """Deepest hierarchy level resolved from the rows."""
        if self is LeafType.SERIES:
            return HierarchyLevel.SERIES
        return HierarchyLevel.SUBSERIES


class _Branch(NamedTuple):
    level: HierarchyLevel
    table: str
    identifier: int
    remarks: int


TREE_STRUCTURE = (
    _Branch(HierarchyLevel.PHENOMENON, q.PHENOMENA, q.TREE_PHENOMENON_ID, q.TREE_PHENOMENON_REMARKS),
    _Branch(HierarchyLevel.PROCEDURE, q.PROCEDURES, q.TREE_PROCEDURE_ID, q.TREE_PROCEDURE_REMARKS),
    _Branch(HierarchyLevel.SERIES, q.SERIES, q.TREE_SERIES_ID, q.TREE_SERIES_REMARKS),
    _Branch(HierarchyLevel.SUBSERIES, q.SUBSERIES, q.TREE_SUBSERIES_ID, q.TREE_SUBSERIES_REMARKS),
)


def _period(value) -> float:
    return math.nan if value is None else float(value)


class SeriesTable(Table):
    """
    Connection to the series tables.

    Builds the series tree, lists and looks up series, and resolves the
    format of a series through a lazily created FormatTable.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._formats: Optional[FormatTable] = None

    def _get_formats(self) -> FormatTable:
        if self._formats is None:
            self._formats = FormatTable(self._executor, self._config, self._pool)
        return self._formats

    def get_tree(self, leaf_type: LeafType = LeafType.SERIES) -> TreeNode:
        """
        Build the series tree.

        Each row is walked from the root down to the deepest level of
        leaf_type. At each level the children of the current node are
        searched for the row's identifier; a missing child is created
        and appended in row order. Children are matched on identifier
        only, so the remarks of the first row seen are kept.

        Args:
            leaf_type: Deepest level to include

        Returns:
            Root node labelled "Series"

        Raises:
            IllegalRecordError: If a row lacks an identifier at an
                included level, or lacks the format of a category leaf
        """
        if not isinstance(leaf_type, LeafType):
            raise ValueError(f"Unknown leaf type: {leaf_type!r}")
        with self._lock:
            branches = TREE_STRUCTURE[: leaf_type.depth]
            root = TreeNode(ROOT_LABEL)
            rows = self._execute(q.SERIES_TREE)
            for row_number, row in enumerate(rows, 1):
                self._add_row(root, row, row_number, branches, leaf_type)
            logger.debug(f"Built {leaf_type.value} tree from {len(rows)} rows")
            return root

    def _add_row(
        self,
        root: TreeNode,
        row: Sequence,
        row_number: int,
        branches: Sequence[_Branch],
        leaf_type: LeafType,
    ) -> None:
        node = root
        for branch in branches:
            identifier = row[branch.identifier]
            if identifier is None:
                raise IllegalRecordError(
                    branch.table,
                    f"Missing {branch.level.name.lower()} identifier in row {row_number}",
                    {"row": row_number},
                )
            child = node.find_child(lambda c: c.user_object.identifier == identifier)
            if child is None:
                is_leaf = branch is branches[-1]
                with_categories = is_leaf and leaf_type is LeafType.CATEGORY
                child = node.add(
                    TreeNode(
                        self._make_entry(branch, row),
                        allows_children=not is_leaf or with_categories,
                    )
                )
                if with_categories:
                    format_key = row[q.TREE_FORMAT]
                    if format_key is None:
                        raise IllegalRecordError(
                            q.SERIES,
                            f"Missing format in row {row_number}",
                            {"row": row_number, "series": row[q.TREE_SERIES_ID]},
                        )
                    child.add(self._get_formats().get_entry(format_key).tree())
            node = child

    @staticmethod
    def _make_entry(branch: _Branch, row: Sequence) -> Entry:
        identifier = row[branch.identifier]
        remarks = row[branch.remarks]
        if branch.level is HierarchyLevel.SERIES:
            return SeriesEntry(
                branch.table,
                identifier,
                remarks,
                format=row[q.TREE_FORMAT],
                period=_period(row[q.TREE_PERIOD]),
                quicklook=row[q.TREE_QUICKLOOK],
            )
        return Entry(branch.table, identifier, remarks)

    def get_entries(self) -> List[SeriesEntry]:
        """
        List all visible series.

        Returns:
            Distinct series in query order
        """
        with self._lock:
            entries = {}
            for row_number, row in enumerate(self._execute(q.SERIES_TREE), 1):
                if row[q.TREE_SERIES_ID] is None:
                    raise IllegalRecordError(
                        q.SERIES, f"Missing series identifier in row {row_number}",
                        {"row": row_number},
                    )
                entry = self._make_entry(TREE_STRUCTURE[HierarchyLevel.SERIES - 1], row)
                entries.setdefault(entry, entry)
            return list(entries)

    def get_entry(self, name: str) -> Optional[SeriesEntry]:
        """
        Look up one series by name.

        Args:
            name: Series name

        Returns:
            The series, or None if no series has this name

        Raises:
            IllegalRecordError: If several rows disagree for this name
        """
        with self._lock:
            entry = None
            for row in self._execute(q.SERIES_BY_NAME, (name,)):
                candidate = SeriesEntry(
                    q.SERIES,
                    row[q.SERIES_NAME],
                    row[q.SERIES_REMARKS],
                    format=row[q.SERIES_FORMAT],
                    period=_period(row[q.SERIES_PERIOD]),
                    quicklook=row[q.SERIES_QUICKLOOK],
                )
                if entry is None:
                    entry = candidate
                elif entry != candidate:
                    raise IllegalRecordError(q.SERIES, f"Duplicated series '{name}'")
            if entry is None:
                return None
            return self._pool.canonicalize(entry)

    def get_format(self, series: Union[SeriesEntry, str]) -> FormatEntry:
        """
        Get the format of a series.

        Args:
            series: Series entry or series name

        Returns:
            Pooled FormatEntry

        Raises:
            IllegalRecordError: If the series is unknown or has no format
        """
        with self._lock:
            if not isinstance(series, SeriesEntry):
                name = series
                series = self.get_entry(name)
                if series is None:
                    raise IllegalRecordError(q.SERIES, f"No series named '{name}'")
            if series.format is None:
                raise IllegalRecordError(q.SERIES, f"Series '{series.name}' has no format")
            return self._get_formats().get_entry(series.format)

    def _close_sub_tables(self) -> None:
        if self._formats is not None:
            self._formats.close()
            self._formats = None
