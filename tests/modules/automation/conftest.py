"""Shared fixtures for automation tests."""

import pytest

from home_automation.core import InMemoryDeviceRegistry, Light


class FaultyLight(Light):
    """A light whose driver fails on every command."""

    def turn_on(self) -> None:
        raise RuntimeError("driver timeout")

    def turn_off(self) -> None:
        raise RuntimeError("driver timeout")

    def set_numeric_parameter(self, name, value) -> None:
        raise RuntimeError("driver timeout")


@pytest.fixture
def registry():
    """Create an empty device registry."""
    return InMemoryDeviceRegistry()


@pytest.fixture
def faulty_light_cls():
    return FaultyLight
