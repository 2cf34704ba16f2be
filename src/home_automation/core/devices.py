"""
Device handles and capability interfaces.

A device is reached only through its capability probes. Rules never ask
"is this a Thermostat?", they ask "does this device expose a temperature?".
"""

import logging
import math
import uuid
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class UnsupportedCapabilityError(Exception):
    """Raised when a device is asked for a parameter it does not have."""


def normalize_name(name: str) -> str:
    """Normalize a metric/parameter name ("Target Temperature" -> "target_temperature")."""
    return name.strip().lower().replace("-", "_").replace(" ", "_")


class Device(ABC):
    """
    Base class for controllable devices.

    Attributes:
        id: Stable unique identifier (uuid4 unless given)
        name: Human-readable name
        device_type: Type tag used for lookups (e.g., "Light")
    """

    def __init__(self, name: str, device_type: str, id: Optional[str] = None) -> None:
        if not name or not name.strip():
            raise ValueError("Device name cannot be empty")
        if not device_type or not device_type.strip():
            raise ValueError("Device type cannot be empty")

        self._id = id or str(uuid.uuid4())
        self.name = name
        self._device_type = device_type
        self._on = False

    @property
    def id(self) -> str:
        return self._id

    @property
    def device_type(self) -> str:
        return self._device_type

    @property
    def is_on(self) -> bool:
        return self._on

    def turn_on(self) -> None:
        self._on = True
        logger.debug(f"{self.name} turned ON")

    def turn_off(self) -> None:
        self._on = False
        logger.debug(f"{self.name} turned OFF")

    # =========================================================================
    # Capability probes
    # =========================================================================

    def get_numeric_metric(self, name: str) -> Optional[float]:
        """
        Read a numeric metric by name.

        Metrics come from the capability interfaces the device implements:
        "brightness" (Dimmable), "temperature"/"current_temperature"
        (TemperatureSensing), "target_temperature" (TemperatureControl).

        Returns:
            The value, or None if this device has no such metric
        """
        key = normalize_name(name)
        if key == "brightness" and isinstance(self, Dimmable):
            return float(self.brightness)
        if key in ("temperature", "current_temperature") and isinstance(self, TemperatureSensing):
            return float(self.current_temperature)
        if key == "target_temperature" and isinstance(self, TemperatureControl):
            return float(self.target_temperature)
        return None

    def supports_parameter(self, name: str) -> bool:
        """Check if set_numeric_parameter() accepts this parameter."""
        key = normalize_name(name)
        if key == "brightness":
            return isinstance(self, Dimmable)
        if key == "target_temperature":
            return isinstance(self, TemperatureControl)
        return False

    def set_numeric_parameter(self, name: str, value: float) -> None:
        """
        Set a numeric parameter (e.g., a set-point).

        Raises:
            UnsupportedCapabilityError: If the device has no such parameter
            ValueError: If the value is out of range
        """
        key = normalize_name(name)
        if key == "brightness" and isinstance(self, Dimmable):
            self.set_brightness(int(round(value)))
        elif key == "target_temperature" and isinstance(self, TemperatureControl):
            self.set_target_temperature(value)
        else:
            raise UnsupportedCapabilityError(f"{self.device_type} has no parameter '{name}'")

    @abstractmethod
    def status(self) -> str:
        """One-line human-readable status."""
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._id[:8]} {self.name!r} {'ON' if self._on else 'OFF'}>"


# =============================================================================
# Capability interfaces
# =============================================================================


class BooleanSensor(ABC):
    """Capability: exposes a boolean sensor reading."""

    @property
    @abstractmethod
    def sensor_state(self) -> bool:
        pass


class Dimmable(ABC):
    """Capability: brightness 0-100."""

    @property
    @abstractmethod
    def brightness(self) -> int:
        pass

    @abstractmethod
    def set_brightness(self, brightness: int) -> None:
        pass


class TemperatureSensing(ABC):
    """Capability: reports the current temperature."""

    @property
    @abstractmethod
    def current_temperature(self) -> float:
        pass


class TemperatureControl(ABC):
    """Capability: has a target temperature set-point."""

    @property
    @abstractmethod
    def target_temperature(self) -> float:
        pass

    @abstractmethod
    def set_target_temperature(self, value: float) -> None:
        pass


# =============================================================================
# Reference devices
# =============================================================================


class Light(Device, Dimmable):
    """Dimmable light. Brightness > 0 implies on."""

    def __init__(self, name: str, brightness: int = 0, id: Optional[str] = None) -> None:
        super().__init__(name, "Light", id=id)
        self._brightness = 0
        if brightness:
            self.set_brightness(brightness)

    @property
    def brightness(self) -> int:
        return self._brightness

    def set_brightness(self, brightness: int) -> None:
        if brightness < 0 or brightness > 100:
            raise ValueError("Brightness must be between 0 and 100")
        self._brightness = int(brightness)
        self._on = self._brightness > 0

    def turn_on(self) -> None:
        # A light switched on from zero comes up at half brightness
        if self._brightness == 0:
            self.set_brightness(50)
        else:
            super().turn_on()

    def turn_off(self) -> None:
        super().turn_off()
        self._brightness = 0

    def status(self) -> str:
        if self.is_on:
            return f"{self.name} [Light] is ON - Brightness: {self._brightness}%"
        return f"{self.name} [Light] is OFF"


class Thermostat(Device, TemperatureSensing, TemperatureControl):
    """Thermostat with a current reading and a 10-35 °C set-point."""

    MIN_TARGET = 10.0
    MAX_TARGET = 35.0

    def __init__(
        self,
        name: str,
        current_temperature: float = 20.0,
        target_temperature: float = 22.0,
        id: Optional[str] = None,
    ) -> None:
        super().__init__(name, "Thermostat", id=id)
        self._current = float(current_temperature)
        self._target = float(target_temperature)
        self.mode = "HEAT"

    @property
    def current_temperature(self) -> float:
        return self._current

    @current_temperature.setter
    def current_temperature(self, value: float) -> None:
        self._current = float(value)

    @property
    def target_temperature(self) -> float:
        return self._target

    def set_target_temperature(self, value: float) -> None:
        if math.isnan(value) or value < self.MIN_TARGET or value > self.MAX_TARGET:
            raise ValueError(
                f"Target temperature must be between {self.MIN_TARGET:g} and {self.MAX_TARGET:g}"
            )
        self._target = float(value)

    def status(self) -> str:
        return (
            f"{self.name} [Thermostat] is {'ON' if self.is_on else 'OFF'} | "
            f"Current: {self._current:.1f}°C | Target: {self._target:.1f}°C | Mode: {self.mode}"
        )


class MotionSensor(Device, BooleanSensor):
    """Motion sensor. Only registers motion while switched on."""

    def __init__(self, name: str, sensitivity: int = 5, id: Optional[str] = None) -> None:
        super().__init__(name, "MotionSensor", id=id)
        self._motion = False
        self._sensitivity = 5
        self.set_sensitivity(sensitivity)

    @property
    def sensor_state(self) -> bool:
        return self._motion

    @property
    def motion_detected(self) -> bool:
        return self._motion

    @property
    def sensitivity(self) -> int:
        return self._sensitivity

    def set_sensitivity(self, sensitivity: int) -> None:
        if sensitivity < 1 or sensitivity > 10:
            raise ValueError("Sensitivity must be between 1 and 10")
        self._sensitivity = sensitivity

    def detect_motion(self) -> bool:
        """Register motion. Returns False if the sensor is off."""
        if not self.is_on:
            logger.debug(f"{self.name} is OFF and cannot detect motion")
            return False
        self._motion = True
        return True

    def clear_motion(self) -> None:
        self._motion = False

    def turn_off(self) -> None:
        super().turn_off()
        self._motion = False

    def status(self) -> str:
        if not self.is_on:
            return f"{self.name} [MotionSensor] is OFF"
        state = "MOTION DETECTED" if self._motion else "No motion"
        return f"{self.name} [MotionSensor] is ON - {state} - Sensitivity: {self._sensitivity}/10"
