"""Shared fixtures for appboot tests."""

from pathlib import Path

import pytest

from appboot.testing import TestIO

pytest_plugins = ["appboot.testing.plugin"]

CONFIG_DIR = Path(__file__).parent / "fixtures" / "config"


@pytest.fixture
def config_dir() -> Path:
    """Directory holding the YAML documents used by the tests."""
    return CONFIG_DIR


@pytest.fixture
def test_io() -> TestIO:
    return TestIO.no_trace()
