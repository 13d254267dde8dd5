"""Pytest configuration and shared fixtures for Kard tests."""

import json
from pathlib import Path

import cv2
import numpy as np
import pytest

from kard.core.types import Card
from kard.store.card_store import CardStore
from kard.store.palette import shared_palette
from kard.utils import config as kard_config


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the configured documents and export directories at tmp_path."""
    monkeypatch.setattr(kard_config.settings, "DOCUMENTS_DIR", str(tmp_path / "Documents"))
    monkeypatch.setattr(kard_config.settings, "CARDS_DIRNAME", "cards")
    monkeypatch.setattr(kard_config.settings, "EXPORT_DIR", str(tmp_path / "kard-export"))
    shared_palette.cache_clear()
    yield
    shared_palette.cache_clear()


@pytest.fixture
def storage_dir(tmp_path):
    """Storage directory for a store under test (not created up front)."""
    return tmp_path / "Documents" / "cards"


@pytest.fixture
def make_store(storage_dir):
    """Factory for stores over the shared storage directory."""
    def _make(**kwargs):
        kwargs.setdefault("directory", storage_dir)
        return CardStore(**kwargs)
    return _make


@pytest.fixture
def empty_store(make_store):
    """Store with no seed cards."""
    return make_store(seed=False)


@pytest.fixture
def png_bytes():
    """A small but real PNG image."""
    image = np.zeros((10, 16, 3), dtype=np.uint8)
    image[:, :8] = (255, 128, 0)
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def other_png_bytes():
    """A second PNG, different from ``png_bytes``."""
    image = np.full((10, 16, 3), 200, dtype=np.uint8)
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def sample_card():
    """A contact card without an image."""
    return Card.new(
        name="Ava",
        title="Product Manager",
        company="Nimbus Labs",
        phone="+1 (555) 741-2233",
        email="ava@nimbuslabs.com",
        notes="Met at WWDC",
    )


@pytest.fixture
def write_record():
    """Write a card (or a raw dict) as a record file and return its path."""
    def _write(path: Path, card, **overrides):
        data = card.to_dict() if isinstance(card, Card) else dict(card)
        data.update(overrides)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def read_record():
    """Decode a record file from disk."""
    def _read(path: Path) -> Card:
        return Card.from_json(path.read_bytes())
    return _read


# Configure pytest options
def pytest_configure(config):
    """Configure pytest with custom options."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Mark integration tests
        if "integration" in item.name.lower() or "scenario" in item.name.lower():
            item.add_marker(pytest.mark.integration)

        # Mark slow tests
        if any(slow_indicator in item.name.lower() for slow_indicator in ['performance', 'bulk']):
            item.add_marker(pytest.mark.slow)

        # Mark unit tests (default)
        if not item.get_closest_marker('integration') and not item.get_closest_marker('slow'):
            item.add_marker(pytest.mark.unit)
