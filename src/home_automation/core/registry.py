"""
Device registry interface.

The registry is the only way the automation engine reaches devices. The host
(room/home model, integration layer) provides a concrete implementation;
InMemoryDeviceRegistry covers tests and simple setups.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from home_automation.core.devices import Device

logger = logging.getLogger(__name__)


class DeviceRegistry(ABC):
    """
    Abstract lookup of live device handles.

    Intentionally minimal:
    - find_by_id: Resolve a single device
    - find_by_type: Resolve every device carrying a type tag
    """

    @abstractmethod
    def find_by_id(self, device_id: str) -> Optional[Device]:
        """
        Look up a device by identifier.

        Args:
            device_id: Device identifier

        Returns:
            The device, or None if not registered
        """
        pass

    @abstractmethod
    def find_by_type(self, device_type: str) -> List[Device]:
        """
        Look up all devices of a type (case-insensitive).

        Args:
            device_type: Type tag (e.g., "Light", "Thermostat")

        Returns:
            Matching devices, possibly empty
        """
        pass


class InMemoryDeviceRegistry(DeviceRegistry):
    """Dict-backed registry keyed by device id."""

    def __init__(self) -> None:
        self._devices: Dict[str, Device] = {}

    def add_device(self, device: Device) -> Device:
        """
        Register a device.

        Raises:
            ValueError: If a device with the same id is already registered
        """
        if device.id in self._devices:
            raise ValueError(f"Device {device.id} already registered")
        self._devices[device.id] = device
        logger.debug(f"Registered {device.device_type} {device.name} ({device.id})")
        return device

    def remove_device(self, device_id: str) -> bool:
        """Unregister a device. Returns False if it was not registered."""
        if self._devices.pop(device_id, None) is None:
            return False
        logger.debug(f"Unregistered device {device_id}")
        return True

    def all_devices(self) -> List[Device]:
        return list(self._devices.values())

    # DeviceRegistry implementation

    def find_by_id(self, device_id: str) -> Optional[Device]:
        return self._devices.get(device_id)

    def find_by_type(self, device_type: str) -> List[Device]:
        wanted = device_type.lower()
        return [d for d in self._devices.values() if d.device_type.lower() == wanted]

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices
