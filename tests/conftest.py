"""pytest configuration and fixtures for triad tests."""

import pytest

from triad.core import ManualScheduler, set_config


@pytest.fixture(autouse=True)
def reset_config():
    """Reload config from the environment around every test."""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Scheduler that only runs callbacks when the test asks it to.

    Returns:
        Fresh ManualScheduler instance.
    """
    return ManualScheduler()
