"""Pytest fixtures shared by all test packages."""

import pytest

from tests.helpers import VirtualClock


@pytest.fixture
def virtual_clock() -> VirtualClock:
    return VirtualClock()
