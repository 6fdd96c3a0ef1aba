"""
Pytest configuration and fixtures for coverage_catalog tests.

Markers:
    @pytest.mark.temporal - Day-number and timezone conversion tests
    @pytest.mark.pool - Canonical pool tests
    @pytest.mark.hierarchy - Series tree tests
    @pytest.mark.geometry - Extent and bounding box tests
    @pytest.mark.slow - Tests that take longer to run
    @pytest.mark.integration - Tests going through CoverageDatabase

Usage:
    pytest -m hierarchy          # Run only series tree tests
    pytest -m "not slow"         # Skip slow tests
"""

import pytest
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence, Union

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from coverage_catalog.sql.config import CatalogConfig  # noqa: E402
from coverage_catalog.sql.executor import QueryExecutor, SQLiteQueryExecutor  # noqa: E402
from coverage_catalog.sql.pool import CanonicalPool  # noqa: E402
from coverage_catalog.sql.queries import DEFAULT_QUERIES  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "temporal: Temporal codec tests")
    config.addinivalue_line("markers", "pool: Canonical pool tests")
    config.addinivalue_line("markers", "hierarchy: Series tree tests")
    config.addinivalue_line("markers", "geometry: Extent and bounding box tests")
    config.addinivalue_line("markers", "slow: Slow-running tests")
    config.addinivalue_line("markers", "integration: Integration tests")


def pytest_collection_modifyitems(config, items):
    """Auto-apply markers based on test file names and test names."""
    for item in items:
        # Mark based on file name
        if "temporal" in item.fspath.basename:
            item.add_marker(pytest.mark.temporal)
        if "pool" in item.fspath.basename:
            item.add_marker(pytest.mark.pool)
        if "series" in item.fspath.basename:
            item.add_marker(pytest.mark.hierarchy)
        if "geometry" in item.fspath.basename:
            item.add_marker(pytest.mark.geometry)
        if "database" in item.fspath.basename:
            item.add_marker(pytest.mark.integration)

        # Mark slow tests
        test_name = item.name.lower()
        if "concurrent" in test_name or "stress" in test_name:
            item.add_marker(pytest.mark.slow)


class StubQueryExecutor(QueryExecutor):
    """
    Executor answering queries from canned rows.

    Responses are keyed by query name; a response is either a list of
    rows or a callable receiving the parameters. Inserts are recorded.
    """

    def __init__(
        self,
        responses: Dict[str, Union[List[Sequence[Any]], Callable[..., List[Sequence[Any]]]]],
        config: CatalogConfig = None,
    ):
        config = config or CatalogConfig()
        self._by_text = {config.query(name): name for name in DEFAULT_QUERIES}
        self.responses = responses
        self.executed: List[tuple] = []
        self.inserted: List[tuple] = []

    def execute(self, query, params=()):
        name = self._by_text[query]
        self.executed.append((name, tuple(params)))
        response = self.responses.get(name, [])
        if callable(response):
            return response(*params)
        return list(response)

    def insert(self, query, params=()):
        name = self._by_text[query]
        self.inserted.append((name, tuple(params)))
        return 1


@pytest.fixture
def stub_executor():
    """Factory of StubQueryExecutor instances."""
    return StubQueryExecutor


@pytest.fixture
def pool():
    """Provide a fresh canonical pool."""
    return CanonicalPool()


@pytest.fixture
def executor():
    """Provide an empty in-memory catalog."""
    executor = SQLiteQueryExecutor(db_path=None)
    executor.create_schema()
    yield executor
    executor.close()


@pytest.fixture
def catalog_executor(executor):
    """Provide an in-memory catalog with two phenomena, three series and two formats."""
    executor.insert_many(
        "INSERT INTO Phenomena (name, description) VALUES (?, ?)",
        [("SST", "Sea surface temperature"), ("CHL", "Chlorophyll-a concentration")],
    )
    executor.insert_many(
        "INSERT INTO Procedures (name, description) VALUES (?, ?)",
        [("AVHRR", "Advanced very high resolution radiometer"), ("SeaWiFS", None)],
    )
    executor.insert_many(
        "INSERT INTO Formats (name, mime, extension, geophysics) VALUES (?, ?, ?, ?)",
        [("fmt-png", "image/png", "png", 0), ("fmt-chl", "image/png", "png", 0)],
    )
    executor.insert_many(
        "INSERT INTO SampleDimensions (ID, format, band, units) VALUES (?, ?, ?, ?)",
        [(1, "fmt-png", 1, "°C"), (2, "fmt-chl", 1, "mg/m3")],
    )
    executor.insert_many(
        "INSERT INTO Categories (band, name, lower, upper, c0, c1, log, colors) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        [
            (1, "Land", 0, 0, None, None, 0, "#D2C8A0"),
            (1, "Cloud", 1, 9, None, None, 0, '"#FFFFFF"'),
            (1, "Temperature", 10, 255, -2.85, 0.15, 0, "colors/SST-Nasa.pal"),
            (2, "Missing", 0, 0, None, None, 0, None),
            (2, "Chlorophyll", 1, 255, -2.0, 0.015, 1, "0x00FF00"),
        ],
    )
    executor.insert_many(
        "INSERT INTO Series (name, description, phenomenon, procedure, format, period, "
        "quicklook, visible) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        [
            ("SST Global", "Weekly SST", "SST", "AVHRR", "fmt-png", 7.0, None, 1),
            ("SST Daily", None, "SST", "AVHRR", "fmt-png", 1.0, "SST Global", 1),
            ("CHL Monthly", None, "CHL", "SeaWiFS", "fmt-chl", 30.0, None, 1),
            ("SST Hidden", None, "SST", "AVHRR", "fmt-png", 0.5, None, 0),
        ],
    )
    executor.insert_many(
        "INSERT INTO SubSeries (name, series, description, visible) VALUES (?, ?, ?, ?)",
        [
            ("sub1", "SST Global", "Main", 1),
            ("sub2", "SST Global", None, 1),
            ("daily-a", "SST Daily", None, 1),
            ("chl-a", "CHL Monthly", None, 1),
        ],
    )
    return executor
