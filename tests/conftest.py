"""
pytest configuration for subscriber tests.

Adds src directory to Python path for imports and provides shared fixtures.
"""

import json
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


@pytest.fixture
def download_dir(tmp_path):
    """Empty download directory."""
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest.fixture
def make_notification():
    """Factory encoding a WIS2 notification with the given (href, rel) links."""

    def _make(*links, **extra) -> bytes:
        body = {
            "id": "urn:uuid:9d6d1c3e-2f5c-4c0b-9b54-1e4a5f0c0e11",
            "type": "Feature",
            "properties": {"data_id": "wis2/test", "pubtime": "2026-10-17T00:00:00Z"},
            "links": [
                {"href": href, "rel": rel, "type": "application/octet-stream"}
                for href, rel in links
            ],
        }
        body.update(extra)
        return json.dumps(body).encode("utf-8")

    return _make
