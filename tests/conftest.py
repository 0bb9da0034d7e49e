# tests/conftest.py
from pathlib import Path

import pytest

from processors.gtfs.reader import FeedReader

DATA_DIR = Path(__file__).parent / "data"
EXTRACT_EXAMPLES = DATA_DIR / "extract_examples"
STATION_EXAMPLES = DATA_DIR / "station_examples"


@pytest.fixture
def extract_feed_path() -> Path:
    """Small two-agency feed used by the extraction scenarios."""
    return EXTRACT_EXAMPLES


@pytest.fixture
def station_feed_path() -> Path:
    """Feed with a station, its platforms, entrance, levels and fare zones."""
    return STATION_EXAMPLES


@pytest.fixture
def extract_reader(extract_feed_path):
    with FeedReader(extract_feed_path) as reader:
        yield reader


@pytest.fixture
def station_reader(station_feed_path):
    with FeedReader(station_feed_path) as reader:
        yield reader
