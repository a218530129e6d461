"""Shared fixtures for sysgauge tests."""

import pytest

from sysgauge.runtime import ScriptRuntime
from sysgauge.sources import SourceRegistry


@pytest.fixture
def registry():
    """A fresh registry, independent of the process-wide one."""
    return SourceRegistry()


@pytest.fixture
def runtime():
    """A script runtime, closed after the test."""
    rt = ScriptRuntime("test")
    yield rt
    rt.close()
