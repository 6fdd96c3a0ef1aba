"""
Tests for catalog value objects and tree nodes.
"""

import math
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from coverage_catalog.sql.entries import (
    BoundingBox,
    CatalogExtent,
    Category,
    Entry,
    FormatEntry,
    GeographicArea,
    GridCoverageEntry,
    GridSize,
    SampleDimension,
    SeriesEntry,
    TimeRange,
)
from coverage_catalog.sql.temporal import MAX_INSTANT, MIN_INSTANT
from coverage_catalog.sql.tree import TreeNode


# ============================================================================
# Entry tests
# ============================================================================


class TestEntry:
    """Tests for Entry and SeriesEntry."""

    def test_requires_table_and_identifier(self):
        with pytest.raises(ValueError):
            Entry(None, "A")
        with pytest.raises(ValueError):
            Entry("Series", None)

    def test_remarks_optional(self):
        entry = Entry("Series", "A")
        assert entry.remarks is None
        assert entry.name == "A"
        assert str(entry) == "A"

    def test_numeric_identifier_name(self):
        assert Entry("GridGeometries", 42).name == "42"

    def test_immutable(self):
        entry = Entry("Series", "A")
        with pytest.raises(AttributeError):
            entry.identifier = "B"

    def test_value_equality(self):
        assert Entry("Series", "A", "x") == Entry("Series", "A", "x")
        assert hash(Entry("Series", "A", "x")) == hash(Entry("Series", "A", "x"))
        assert Entry("Series", "A", "x") != Entry("Series", "A", "y")
        assert Entry("Series", "A") != Entry("Procedures", "A")

    def test_series_entry_not_equal_to_entry(self):
        assert Entry("Series", "A") != SeriesEntry("Series", "A")

    def test_series_entry_fields_significant(self):
        base = SeriesEntry("Series", "A", format="png", period=1.0)
        assert base == SeriesEntry("Series", "A", format="png", period=1.0)
        assert base != SeriesEntry("Series", "A", format="tif", period=1.0)
        assert base != SeriesEntry("Series", "A", format="png", period=2.0)

    def test_series_entry_nan_period_equal(self):
        a = SeriesEntry("Series", "A", period=math.nan)
        b = SeriesEntry("Series", "A", period=float("nan"))
        assert a == b
        assert hash(a) == hash(b)

    def test_quicklook_defaults_to_self(self):
        assert SeriesEntry("Series", "A").quicklook_id == "A"
        assert SeriesEntry("Series", "A", quicklook="B").quicklook_id == "B"

    def test_period_delta(self):
        assert SeriesEntry("Series", "A", period=7.0).period_delta == timedelta(days=7)
        assert SeriesEntry("Series", "A").period_delta is None


# ============================================================================
# Format tests
# ============================================================================


class TestCategory:
    """Tests for Category."""

    def test_invalid_range(self):
        with pytest.raises(ValueError, match="lower"):
            Category("Bad", 10, 5)

    def test_qualitative(self):
        land = Category("Land", 0, 0, colors=["#D2C8A0"])
        assert not land.is_quantitative
        assert land.colors == ("#D2C8A0",)
        assert np.isnan(land.geophysics([0])).all()

    def test_linear_transfer(self):
        sst = Category("Temperature", 10, 255, c0=-2.85, c1=0.15)
        np.testing.assert_allclose(sst.geophysics([10, 20]), [-1.35, 0.15])

    def test_log_transfer(self):
        chl = Category("Chlorophyll", 1, 255, c0=-2.0, c1=0.01, log=True)
        np.testing.assert_allclose(chl.geophysics(100), 0.1)

    def test_contains(self):
        cloud = Category("Cloud", 1, 9)
        assert cloud.contains(1)
        assert cloud.contains(9)
        assert not cloud.contains(10)

    def test_label(self):
        assert str(Category("Cloud", 1, 9)) == "[001..009] Cloud"


class TestSampleDimension:
    """Tests for SampleDimension."""

    def test_categories_sorted(self):
        band = SampleDimension((Category("Sea", 1, 255, 0.0, 0.1), Category("Land", 0, 0)))
        assert [c.name for c in band.categories] == ["Land", "Sea"]

    def test_overlap_rejected(self):
        with pytest.raises(ValueError, match="overlapping"):
            SampleDimension((Category("A", 0, 10), Category("B", 10, 20)))

    def test_description_prefers_quantitative(self):
        band = SampleDimension(
            (Category("Land", 0, 0), Category("Temperature", 10, 255, -2.85, 0.15)), "°C"
        )
        assert band.description == "Temperature"
        assert str(band) == "Temperature (°C)"

    def test_category_of(self):
        band = SampleDimension((Category("Land", 0, 0), Category("Cloud", 1, 9)))
        assert band.category_of(5).name == "Cloud"
        assert band.category_of(100) is None

    def test_geophysics_masks_qualitative(self):
        band = SampleDimension(
            (Category("Land", 0, 0), Category("Temperature", 10, 255, -2.85, 0.15))
        )
        result = band.geophysics([0, 5, 10])
        assert np.isnan(result[0])
        assert np.isnan(result[1])
        assert result[2] == pytest.approx(-1.35)


class TestFormatEntry:
    """Tests for FormatEntry."""

    def _format(self):
        band = SampleDimension(
            (Category("Land", 0, 0), Category("Temperature", 10, 255, -2.85, 0.15)), "°C"
        )
        return FormatEntry("fmt-png", "fmt-png", "image/png", "png", False, [band])

    def test_bands_tuple(self):
        assert isinstance(self._format().bands, tuple)

    def test_equality(self):
        assert self._format() == self._format()
        assert hash(self._format()) == hash(self._format())

    def test_tree(self):
        """The tree runs format, band, categories."""
        fmt = self._format()
        root = fmt.tree()

        assert root.user_object is fmt
        assert str(root) == "fmt-png (image/png)"
        assert root.child_count == 1
        band_node = root.get_child_at(0)
        assert [str(c) for c in band_node.children] == [
            "[000..000] Land",
            "[010..255] Temperature",
        ]
        assert all(not c.allows_children for c in band_node.children)

    def test_tree_is_fresh(self):
        fmt = self._format()
        assert fmt.tree() is not fmt.tree()


# ============================================================================
# Geometry tests
# ============================================================================


class TestGeographicArea:
    """Tests for GeographicArea."""

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            GeographicArea(10, 0, 0, 10)
        with pytest.raises(ValueError):
            GeographicArea(0, 10, 10, 0)
        with pytest.raises(ValueError):
            GeographicArea(math.nan, 10, 0, 10)

    def test_properties(self):
        area = GeographicArea(-10, 30, -20, 20)
        assert area.width == 40
        assert area.height == 40
        assert area.center == (10, 0)

    def test_intersects_and_contains(self):
        area = GeographicArea(0, 10, 0, 10)
        assert area.intersects(GeographicArea(5, 15, 5, 15))
        assert not area.intersects(GeographicArea(11, 15, 0, 10))
        assert area.contains(GeographicArea(2, 8, 2, 8))
        assert not area.contains(GeographicArea(5, 15, 5, 15))


class TestBoundingBox:
    """Tests for BoundingBox and GridSize."""

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            GridSize(0, 10)

    def test_key(self):
        box = BoundingBox(GeographicArea(-180, 180, -90, 90), GridSize(720, 360))
        assert box.key == (-180, 180, -90, 90, 720, 360)


# ============================================================================
# Time range tests
# ============================================================================


class TestTimeRange:
    """Tests for TimeRange."""

    def test_naive_normalized_to_utc(self):
        tr = TimeRange(datetime(2020, 1, 1), datetime(2020, 1, 2))
        assert tr.start.tzinfo == timezone.utc
        assert tr.duration == timedelta(days=1)

    def test_invalid_order(self):
        with pytest.raises(ValueError):
            TimeRange(datetime(2020, 1, 2), datetime(2020, 1, 1))

    def test_unbounded(self):
        tr = TimeRange(MIN_INSTANT, MAX_INSTANT)
        assert not tr.is_bounded
        assert tr.to_day_numbers() == (-math.inf, math.inf)

    def test_overlaps_and_contains(self):
        january = TimeRange(datetime(2020, 1, 1), datetime(2020, 1, 31))
        mid = TimeRange(datetime(2020, 1, 10), datetime(2020, 1, 20))
        february = TimeRange(datetime(2020, 2, 1), datetime(2020, 2, 28))
        assert january.overlaps(mid)
        assert january.contains(mid)
        assert not january.overlaps(february)


class TestCatalogExtent:
    """Tests for CatalogExtent."""

    def test_envelope(self):
        extent = CatalogExtent(
            GeographicArea(0, 10, -5, 5),
            TimeRange(datetime(1950, 1, 2), datetime(1950, 1, 3, 12)),
        )
        assert extent.envelope() == (0, 10, -5, 5, 1.0, 2.5)

    def test_to_dict(self):
        extent = CatalogExtent(
            GeographicArea(0, 10, -5, 5),
            TimeRange(datetime(2020, 1, 1), datetime(2020, 1, 2)),
        )
        data = extent.to_dict()
        assert data["area"] == [0, 10, -5, 5]
        assert data["time_start"] == "2020-01-01T00:00:00+00:00"


class TestGridCoverageEntry:
    """Tests for GridCoverageEntry."""

    def _entry(self, **overrides):
        values = dict(
            series="SST Global",
            subseries="sub1",
            filename="a.png",
            start_time=datetime(1950, 1, 2, tzinfo=timezone.utc),
            end_time=datetime(1950, 1, 3, 12, tzinfo=timezone.utc),
            area=GeographicArea(0, 10, -5, 5),
            size=GridSize(100, 50),
        )
        values.update(overrides)
        return GridCoverageEntry(**values)

    def test_derived_values(self):
        entry = self._entry()
        assert entry.name == "a.png"
        assert entry.time_range.duration == timedelta(days=1, hours=12)
        assert entry.bounding_box.key == (0, 10, -5, 5, 100, 50)
        assert entry.envelope() == (0, 10, -5, 5, 1.0, 2.5)
        assert str(entry) == "a.png (sub1)"

    def test_all_fields_significant(self):
        assert self._entry() == self._entry()
        assert hash(self._entry()) == hash(self._entry())
        assert self._entry() != self._entry(size=GridSize(200, 100))
        assert self._entry() != self._entry(subseries="sub2")

    def test_unbounded_times(self):
        entry = self._entry(start_time=MIN_INSTANT, end_time=MAX_INSTANT)
        assert not entry.time_range.is_bounded
        assert entry.envelope()[4:] == (-math.inf, math.inf)

    def test_start_after_end_rejected(self):
        with pytest.raises(ValueError, match="a.png"):
            self._entry(end_time=datetime(1950, 1, 1, tzinfo=timezone.utc))


# ============================================================================
# Tree node tests
# ============================================================================


class TestTreeNode:
    """Tests for TreeNode."""

    def test_add_keeps_order(self):
        root = TreeNode("root")
        for label in ("b", "a", "c"):
            root.add(TreeNode(label))
        assert [str(c) for c in root.children] == ["b", "a", "c"]

    def test_leaf_rejects_children(self):
        leaf = TreeNode("leaf", allows_children=False)
        with pytest.raises(ValueError):
            leaf.add(TreeNode("child"))

    def test_reparent(self):
        first, second = TreeNode("first"), TreeNode("second")
        child = first.add(TreeNode("child"))
        second.add(child)
        assert first.is_leaf
        assert child.parent is second

    def test_path_and_walk(self):
        root = TreeNode("root")
        child = root.add(TreeNode("child"))
        grandchild = child.add(TreeNode("grandchild"))
        assert [str(n) for n in grandchild.path()] == ["root", "child", "grandchild"]
        assert [str(n) for n in root.walk()] == ["root", "child", "grandchild"]

    def test_text_override(self):
        assert str(TreeNode(Entry("Series", "A"), text="Label")) == "Label"

    def test_to_dict(self):
        root = TreeNode("root")
        root.add(TreeNode("child"))
        assert root.to_dict() == {
            "label": "root",
            "children": [{"label": "child", "children": []}],
        }
