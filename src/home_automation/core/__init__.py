"""
Core components of the home-automation kernel.

This package contains:
- bus: Event Bus implementation
- devices: Device handles and capability interfaces
- registry: Device registry interface and in-memory implementation
"""

from home_automation.core.bus import Event, EventBus, EventFilter
from home_automation.core.devices import (
    BooleanSensor,
    Device,
    Dimmable,
    Light,
    MotionSensor,
    TemperatureControl,
    TemperatureSensing,
    Thermostat,
    UnsupportedCapabilityError,
)
from home_automation.core.registry import DeviceRegistry, InMemoryDeviceRegistry

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "Device",
    "BooleanSensor",
    "Dimmable",
    "TemperatureSensing",
    "TemperatureControl",
    "Light",
    "Thermostat",
    "MotionSensor",
    "UnsupportedCapabilityError",
    "DeviceRegistry",
    "InMemoryDeviceRegistry",
]
