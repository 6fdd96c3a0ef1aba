"""
Query texts and column positions.

Column order within each query is a fixed contract: tables read their
results by position, never by name. Overridden query texts (see
CatalogConfig.queries) must keep the same column order.
"""

from typing import Dict

# Table names
PHENOMENA = "Phenomena"
PROCEDURES = "Procedures"
SERIES = "Series"
SUBSERIES = "SubSeries"
FORMATS = "Formats"
SAMPLE_DIMENSIONS = "SampleDimensions"
CATEGORIES = "Categories"
GRID_GEOMETRIES = "GridGeometries"
GRID_COVERAGES = "GridCoverages"

# Query names
SERIES_TREE = "series_tree"
SERIES_BY_NAME = "series_by_name"
FORMAT_BY_KEY = "format_by_key"
BANDS_BY_FORMAT = "bands_by_format"
CATEGORIES_BY_BAND = "categories_by_band"
EXTENT = "extent"
SELECT_BBOX = "select_bbox"
INSERT_BBOX = "insert_bbox"
INSERT_COVERAGE = "insert_coverage"
SELECT_COVERAGES = "select_coverages"
COVERAGE_BY_NAME = "coverage_by_name"

# series_tree columns
TREE_PHENOMENON_ID = 0
TREE_PHENOMENON_REMARKS = 1
TREE_PROCEDURE_ID = 2
TREE_PROCEDURE_REMARKS = 3
TREE_SERIES_ID = 4
TREE_SERIES_REMARKS = 5
TREE_SUBSERIES_ID = 6
TREE_SUBSERIES_REMARKS = 7
TREE_FORMAT = 8
TREE_PERIOD = 9
TREE_QUICKLOOK = 10

# series_by_name columns
SERIES_NAME = 0
SERIES_REMARKS = 1
SERIES_FORMAT = 2
SERIES_PERIOD = 3
SERIES_QUICKLOOK = 4

# format_by_key columns
FORMAT_NAME = 0
FORMAT_MIME = 1
FORMAT_EXTENSION = 2
FORMAT_GEOPHYSICS = 3

# bands_by_format columns
BAND_ID = 0
BAND_NUMBER = 1
BAND_UNITS = 2

# categories_by_band columns
CATEGORY_NAME = 0
CATEGORY_LOWER = 1
CATEGORY_UPPER = 2
CATEGORY_C0 = 3
CATEGORY_C1 = 4
CATEGORY_LOG = 5
CATEGORY_COLORS = 6

# extent columns
EXTENT_START_TIME = 0
EXTENT_END_TIME = 1
EXTENT_XMIN = 2
EXTENT_XMAX = 3
EXTENT_YMIN = 4
EXTENT_YMAX = 5
# Number of images with an unbounded start or end time (NULL in the store)
EXTENT_OPEN_STARTS = 6
EXTENT_OPEN_ENDS = 7

# select_coverages and coverage_by_name columns
COVERAGE_SERIES = 0
COVERAGE_SUBSERIES = 1
COVERAGE_FILENAME = 2
COVERAGE_START_TIME = 3
COVERAGE_END_TIME = 4
COVERAGE_XMIN = 5
COVERAGE_XMAX = 6
COVERAGE_YMIN = 7
COVERAGE_YMAX = 8
COVERAGE_WIDTH = 9
COVERAGE_HEIGHT = 10


DEFAULT_QUERIES: Dict[str, str] = {
    SERIES_TREE: f"""
        SELECT {PHENOMENA}.name, {PHENOMENA}.description,
               {PROCEDURES}.name, {PROCEDURES}.description,
               {SERIES}.name, {SERIES}.description,
               {SUBSERIES}.name, {SUBSERIES}.description,
               {SERIES}.format, {SERIES}.period, {SERIES}.quicklook
        FROM {SERIES}
        JOIN {PHENOMENA} ON {PHENOMENA}.name = {SERIES}.phenomenon
        JOIN {PROCEDURES} ON {PROCEDURES}.name = {SERIES}.procedure
        LEFT JOIN {SUBSERIES}
            ON {SUBSERIES}.series = {SERIES}.name AND {SUBSERIES}.visible <> 0
        WHERE {SERIES}.visible <> 0
        ORDER BY {PHENOMENA}.name, {PROCEDURES}.name, {SERIES}.name, {SUBSERIES}.name
    """,
    SERIES_BY_NAME: f"""
        SELECT name, description, format, period, quicklook
        FROM {SERIES} WHERE name = ?
    """,
    FORMAT_BY_KEY: f"""
        SELECT name, mime, extension, geophysics
        FROM {FORMATS} WHERE name = ?
    """,
    BANDS_BY_FORMAT: f"""
        SELECT ID, band, units
        FROM {SAMPLE_DIMENSIONS} WHERE format = ? ORDER BY band
    """,
    CATEGORIES_BY_BAND: f"""
        SELECT name, lower, upper, c0, c1, log, colors
        FROM {CATEGORIES} WHERE band = ? ORDER BY lower
    """,
    EXTENT: f"""
        SELECT MIN(c.start_time), MAX(c.end_time),
               MIN(g.x_min), MAX(g.x_max), MIN(g.y_min), MAX(g.y_max),
               COUNT(*) - COUNT(c.start_time), COUNT(*) - COUNT(c.end_time)
        FROM {GRID_COVERAGES} c
        JOIN {GRID_GEOMETRIES} g ON c.geometry = g.ID
        WHERE c.visible <> 0
    """,
    SELECT_BBOX: f"""
        SELECT ID FROM {GRID_GEOMETRIES}
        WHERE x_min = ? AND x_max = ? AND y_min = ? AND y_max = ?
        AND width = ? AND height = ?
    """,
    INSERT_BBOX: f"""
        INSERT INTO {GRID_GEOMETRIES} (x_min, x_max, y_min, y_max, width, height)
        VALUES (?, ?, ?, ?, ?, ?)
    """,
    INSERT_COVERAGE: f"""
        INSERT INTO {GRID_COVERAGES} (subseries, filename, start_time, end_time, geometry)
        VALUES (?, ?, ?, ?, ?)
    """,
    SELECT_COVERAGES: f"""
        SELECT s.series, c.subseries, c.filename, c.start_time, c.end_time,
               g.x_min, g.x_max, g.y_min, g.y_max, g.width, g.height
        FROM {GRID_COVERAGES} c
        JOIN {GRID_GEOMETRIES} g ON c.geometry = g.ID
        JOIN {SUBSERIES} s ON c.subseries = s.name
        WHERE c.visible <> 0 AND s.visible <> 0 AND s.series = ?
        AND g.x_max > ? AND g.x_min < ? AND g.y_max > ? AND g.y_min < ?
        AND (c.end_time IS NULL OR ? IS NULL OR c.end_time >= ?)
        AND (c.start_time IS NULL OR ? IS NULL OR c.start_time <= ?)
        ORDER BY c.end_time, c.subseries
    """,
    COVERAGE_BY_NAME: f"""
        SELECT s.series, c.subseries, c.filename, c.start_time, c.end_time,
               g.x_min, g.x_max, g.y_min, g.y_max, g.width, g.height
        FROM {GRID_COVERAGES} c
        JOIN {GRID_GEOMETRIES} g ON c.geometry = g.ID
        JOIN {SUBSERIES} s ON c.subseries = s.name
        WHERE c.filename = ?
    """,
}


SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {PHENOMENA} (
    name TEXT PRIMARY KEY,
    description TEXT
);
CREATE TABLE IF NOT EXISTS {PROCEDURES} (
    name TEXT PRIMARY KEY,
    description TEXT
);
CREATE TABLE IF NOT EXISTS {FORMATS} (
    name TEXT NOT NULL,
    mime TEXT,
    extension TEXT,
    geophysics INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS {SERIES} (
    name TEXT PRIMARY KEY,
    description TEXT,
    phenomenon TEXT NOT NULL,
    procedure TEXT NOT NULL,
    format TEXT,
    period REAL,
    quicklook TEXT,
    visible INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS {SUBSERIES} (
    name TEXT PRIMARY KEY,
    series TEXT NOT NULL,
    description TEXT,
    visible INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS {SAMPLE_DIMENSIONS} (
    ID INTEGER PRIMARY KEY AUTOINCREMENT,
    format TEXT NOT NULL,
    band INTEGER NOT NULL,
    units TEXT
);
CREATE TABLE IF NOT EXISTS {CATEGORIES} (
    band INTEGER NOT NULL,
    name TEXT NOT NULL,
    lower INTEGER NOT NULL,
    upper INTEGER NOT NULL,
    c0 REAL,
    c1 REAL,
    log INTEGER NOT NULL DEFAULT 0,
    colors TEXT
);
CREATE TABLE IF NOT EXISTS {GRID_GEOMETRIES} (
    ID INTEGER PRIMARY KEY AUTOINCREMENT,
    x_min REAL NOT NULL,
    x_max REAL NOT NULL,
    y_min REAL NOT NULL,
    y_max REAL NOT NULL,
    width INTEGER NOT NULL,
    height INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS {GRID_COVERAGES} (
    subseries TEXT NOT NULL,
    filename TEXT NOT NULL,
    start_time TEXT,
    end_time TEXT,
    geometry INTEGER NOT NULL,
    visible INTEGER NOT NULL DEFAULT 1
);
CREATE INDEX IF NOT EXISTS idx_bbox_key
    ON {GRID_GEOMETRIES}(x_min, x_max, y_min, y_max, width, height);
"""


def format_statement(query: str, values) -> str:
    """
    Substitute argument values for the '?' placeholders of a query.

    Used for logging only; missing placeholders end the substitution.
    """
    parts = []
    last = 0
    for value in values:
        stop = query.find("?", last)
        if stop < 0:
            break
        parts.append(query[last:stop])
        parts.append(f"'{value}'" if isinstance(value, str) else str(value))
        last = stop + 1
    parts.append(query[last:])
    return " ".join("".join(parts).split())
