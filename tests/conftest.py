"""Shared fixtures for the test-suite."""

import pytest

from yak_client.models.message import Location


@pytest.fixture
def location():
    return Location(40.7, -74.0)
