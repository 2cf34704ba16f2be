"""
Action executors for the Automation engine.

Targets are resolved against the registry at execution time. Each device is
handled on its own: a failure on one device is logged and recorded, and the
remaining devices still get the action.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Tuple

from .models import ActionConfig, SetParameter, SetPower

if TYPE_CHECKING:
    from home_automation.core.devices import Device
    from home_automation.core.registry import DeviceRegistry

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """Outcome of executing one action."""

    targets: int = 0  # Devices resolved
    affected: List[str] = field(default_factory=list)  # Device ids commanded
    skipped: List[str] = field(default_factory=list)  # Unsupported or already in state
    failures: List[Tuple[str, str]] = field(default_factory=list)  # (device_id, error)

    @property
    def success(self) -> bool:
        return not self.failures


class ActionExecutor:
    """
    Executes actions against a device registry.

    Args:
        trust_device_state: Skip power commands for devices already in the
            requested state (avoids redundant commands)
    """

    def __init__(self, trust_device_state: bool = False) -> None:
        self.trust_device_state = trust_device_state

    def execute(self, action: ActionConfig, registry: "DeviceRegistry") -> ActionResult:
        """
        Execute an action.

        Args:
            action: The action to execute
            registry: Device registry to resolve targets from

        Returns:
            ActionResult describing what happened per device
        """
        result = ActionResult()
        devices = self.resolve_targets(action, registry)
        result.targets = len(devices)

        if not devices:
            logger.debug(f"No devices matched {action.target!r}, nothing to do")
            return result

        for device in devices:
            try:
                if isinstance(action, SetPower):
                    applied = self._apply_power(action, device)
                elif isinstance(action, SetParameter):
                    applied = self._apply_parameter(action, device)
                else:
                    logger.warning(f"Unknown action type: {type(action)}")
                    return result
            except Exception as e:
                logger.error(
                    f"Action {action.action_type.value} failed on device {device.id}: {e}",
                    exc_info=True,
                )
                result.failures.append((device.id, str(e)))
                continue

            if applied:
                result.affected.append(device.id)
            else:
                result.skipped.append(device.id)

        return result

    def resolve_targets(self, action: ActionConfig, registry: "DeviceRegistry") -> List["Device"]:
        """Resolve an action's target against the registry as it is now."""
        if action.target_is_type:
            return list(registry.find_by_type(action.target))

        device = registry.find_by_id(action.target)
        return [device] if device is not None else []

    # =========================================================================
    # Action Implementations
    # =========================================================================

    def _apply_power(self, action: SetPower, device: "Device") -> bool:
        if self.trust_device_state and device.is_on == action.on:
            logger.debug(f"Skipping {device.id} (already {'on' if action.on else 'off'})")
            return False

        if action.on:
            device.turn_on()
        else:
            device.turn_off()
        return True

    def _apply_parameter(self, action: SetParameter, device: "Device") -> bool:
        if not device.supports_parameter(action.parameter):
            logger.debug(f"Skipping {device.id} (no parameter {action.parameter!r})")
            return False

        if isinstance(action.value, bool):
            raise ValueError(f"Invalid value for {action.parameter}: {action.value!r}")
        try:
            value = float(action.value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid value for {action.parameter}: {action.value!r}") from None

        device.set_numeric_parameter(action.parameter, value)
        return True


_default_executor = ActionExecutor()


def execute_action(action: ActionConfig, registry: "DeviceRegistry") -> ActionResult:
    """Execute a single action with the shared (non-skipping) executor."""
    return _default_executor.execute(action, registry)
