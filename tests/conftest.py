"""Shared test fixtures for guardgen."""

from pathlib import Path

import pytest

from guardgen.languages import profile_for
from guardgen.manifest import load_manifest
from guardgen.model import load_model

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def ts():
    return profile_for("ts")


@pytest.fixture
def manifest():
    return load_manifest(FIXTURES / "manifest.yaml")


@pytest.fixture
def model_v1():
    return load_model(FIXTURES / "model-v1.yaml")


@pytest.fixture
def model_v2():
    return load_model(FIXTURES / "model-v2.yaml")


@pytest.fixture
def workspace(tmp_path):
    """A project root holding copies of the fixture sources and manifest."""
    for name in ("Panel.tsx", "styles.css", "manifest.yaml", "model-v1.yaml", "model-v2.yaml"):
        (tmp_path / name).write_text((FIXTURES / name).read_text())
    return tmp_path
