"""
home-automation: a rule-based home automation kernel.

This library provides:
- A device registry contract with capability-based device handles
- A synchronous Event Bus for notifications
- An automation engine that re-evaluates IF-THEN rules against live device state
"""

from home_automation.core.bus import Event, EventBus, EventFilter
from home_automation.core.registry import DeviceRegistry, InMemoryDeviceRegistry
from home_automation.modules.automation import AutomationEngine, AutomationModule, AutomationRule

__version__ = "0.1.0"

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "DeviceRegistry",
    "InMemoryDeviceRegistry",
    "AutomationEngine",
    "AutomationModule",
    "AutomationRule",
]
