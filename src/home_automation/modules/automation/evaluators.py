"""
Condition evaluators for the Automation engine.

Each evaluator checks whether a specific condition type is met against the
registry passed in. Evaluators hold no state, so one instance can serve any
number of rules and registries.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from home_automation.core.devices import BooleanSensor

from .models import (
    EQUALITY_EPSILON,
    ConditionConfig,
    GroupMatch,
    Quantifier,
    SensorMatch,
    ThresholdMatch,
    TimeMatch,
)

if TYPE_CHECKING:
    from home_automation.core.registry import DeviceRegistry

logger = logging.getLogger(__name__)


def compare(value: float, operator: str, threshold: float) -> bool:
    """Apply a threshold operator. "==" tolerates EQUALITY_EPSILON."""
    if operator == "<":
        return value < threshold
    elif operator == ">":
        return value > threshold
    elif operator == "<=":
        return value <= threshold
    elif operator == ">=":
        return value >= threshold
    elif operator == "==":
        return abs(value - threshold) < EQUALITY_EPSILON
    return False


class ConditionEvaluator:
    """
    Evaluates conditions for automation rules.

    Device state is read from the registry given to each call; nothing is
    captured at construction.
    """

    def evaluate(
        self,
        condition: ConditionConfig,
        registry: "DeviceRegistry",
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Evaluate a condition.

        Args:
            condition: The condition to evaluate
            registry: Device registry to read from
            now: Evaluation instant (defaults to local wall-clock time)

        Returns:
            True if condition is met, False otherwise
        """
        if isinstance(condition, SensorMatch):
            return self._check_sensor(condition, registry)
        elif isinstance(condition, ThresholdMatch):
            return self._check_threshold(condition, registry)
        elif isinstance(condition, GroupMatch):
            return self._check_group(condition, registry)
        elif isinstance(condition, TimeMatch):
            return self._check_time(condition, now)
        else:
            logger.warning(f"Unknown condition type: {type(condition)}")
            return False

    # =========================================================================
    # Condition Implementations
    # =========================================================================

    def _check_sensor(self, condition: SensorMatch, registry: "DeviceRegistry") -> bool:
        """Any boolean sensor of the type reads the expected state."""
        for device in registry.find_by_type(condition.device_type):
            if not isinstance(device, BooleanSensor):
                continue
            if device.sensor_state == condition.expected_state:
                return True
        return False

    def _check_threshold(self, condition: ThresholdMatch, registry: "DeviceRegistry") -> bool:
        """Any device of the type with the metric satisfies the comparison."""
        for device in registry.find_by_type(condition.device_type):
            value = device.get_numeric_metric(condition.metric)
            if value is None:
                continue
            if compare(value, condition.operator, condition.threshold):
                return True
        return False

    def _check_group(self, condition: GroupMatch, registry: "DeviceRegistry") -> bool:
        """ALL/ANY devices of the type are in the required on/off state."""
        devices = registry.find_by_type(condition.device_type)
        if not devices:
            return False

        states = (device.is_on == condition.required_state for device in devices)
        if condition.quantifier == Quantifier.ALL:
            return all(states)
        return any(states)

    def _check_time(self, condition: TimeMatch, now: Optional[datetime]) -> bool:
        """Current hour and minute equal the target."""
        if now is None:
            now = datetime.now()
        return now.hour == condition.at.hour and now.minute == condition.at.minute


_default_evaluator = ConditionEvaluator()


def evaluate_condition(
    condition: ConditionConfig,
    registry: "DeviceRegistry",
    now: Optional[datetime] = None,
) -> bool:
    """Evaluate a single condition with the shared evaluator."""
    return _default_evaluator.evaluate(condition, registry, now)
