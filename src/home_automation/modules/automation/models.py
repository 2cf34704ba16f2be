"""
Data models for the Automation engine.

Defines conditions, actions, rules and execution records.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from home_automation.core.registry import DeviceRegistry
    from .evaluators import ConditionEvaluator
    from .executors import ActionExecutor, ActionResult

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class ConditionType(Enum):
    """Types of conditions a rule can check."""

    SENSOR = "sensor"  # Boolean sensor reading (e.g., motion detected)
    THRESHOLD = "threshold"  # Numeric metric compared to a threshold
    GROUP = "group"  # On/off state across all devices of a type
    TIME = "time"  # Hour and minute of day


class ActionType(Enum):
    """Types of actions a rule can execute."""

    SET_POWER = "set_power"  # Turn on/off
    SET_PARAMETER = "set_parameter"  # Numeric set-point (e.g., target_temperature)


class Quantifier(Enum):
    """How a group condition combines device states."""

    ALL = "all"
    ANY = "any"


OPERATORS = ("<", ">", "<=", ">=", "==")

# Absolute tolerance for "==" threshold comparisons
EQUALITY_EPSILON = 0.001


def _require_text(value: Any, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{what} cannot be empty")


# =============================================================================
# Condition Configs
# =============================================================================


@dataclass(frozen=True)
class SensorMatch:
    """Match if any device of the type reports the expected sensor state."""

    device_type: str  # e.g., "MotionSensor"
    expected_state: bool = True

    def __post_init__(self) -> None:
        _require_text(self.device_type, "Device type")

    @property
    def condition_type(self) -> ConditionType:
        return ConditionType.SENSOR


@dataclass(frozen=True)
class ThresholdMatch:
    """Match if any device of the type has `metric OP threshold`."""

    device_type: str  # e.g., "Thermostat"
    metric: str  # e.g., "Temperature"
    operator: str  # one of OPERATORS
    threshold: float

    def __post_init__(self) -> None:
        _require_text(self.device_type, "Device type")
        _require_text(self.metric, "Metric")
        if self.operator not in OPERATORS:
            raise ValueError(f"Unknown operator: {self.operator!r} (expected one of {OPERATORS})")
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, (int, float)):
            raise TypeError(f"Threshold must be a number, got {type(self.threshold).__name__}")
        if math.isnan(self.threshold):
            raise ValueError("Threshold cannot be NaN")
        object.__setattr__(self, "threshold", float(self.threshold))

    @property
    def condition_type(self) -> ConditionType:
        return ConditionType.THRESHOLD


@dataclass(frozen=True)
class GroupMatch:
    """Match on the on/off state of every device of a type.

    ALL: every device is in required_state.
    ANY: at least one device is in required_state.
    A type with no devices never matches.
    """

    device_type: str
    required_state: bool = True  # True = ON
    quantifier: Quantifier = Quantifier.ANY

    def __post_init__(self) -> None:
        _require_text(self.device_type, "Device type")
        if isinstance(self.quantifier, str):
            object.__setattr__(self, "quantifier", Quantifier(self.quantifier.lower()))
        elif not isinstance(self.quantifier, Quantifier):
            raise TypeError(f"Invalid quantifier: {self.quantifier!r}")

    @property
    def condition_type(self) -> ConditionType:
        return ConditionType.GROUP


@dataclass(frozen=True)
class TimeMatch:
    """Match during the minute of day given by `at`.

    Minute granularity: a rule with this condition fires on every
    evaluation pass within that minute.
    """

    at: time

    def __post_init__(self) -> None:
        if not isinstance(self.at, time):
            raise TypeError(f"TimeMatch needs a datetime.time, got {type(self.at).__name__}")

    @classmethod
    def parse(cls, value: str) -> "TimeMatch":
        """Build from an "HH:MM" (or "HH:MM:SS") string."""
        return cls(at=time.fromisoformat(value.strip()))

    @property
    def condition_type(self) -> ConditionType:
        return ConditionType.TIME


ConditionConfig = SensorMatch | ThresholdMatch | GroupMatch | TimeMatch

CONDITION_TYPES = (SensorMatch, ThresholdMatch, GroupMatch, TimeMatch)


# =============================================================================
# Action Configs
# =============================================================================


@dataclass(frozen=True)
class SetPower:
    """Turn a device (or every device of a type) on or off."""

    target: str  # Device id, or type tag if target_is_type
    on: bool
    target_is_type: bool = False

    def __post_init__(self) -> None:
        _require_text(self.target, "Action target")

    @property
    def action_type(self) -> ActionType:
        return ActionType.SET_POWER


@dataclass(frozen=True)
class SetParameter:
    """Set a numeric parameter on devices that support it.

    The value is kept as given and converted per device at execution time.
    """

    target: str
    parameter: str  # e.g., "target_temperature", "brightness"
    value: Any
    target_is_type: bool = False

    def __post_init__(self) -> None:
        _require_text(self.target, "Action target")
        _require_text(self.parameter, "Parameter")

    @property
    def action_type(self) -> ActionType:
        return ActionType.SET_PARAMETER


ActionConfig = SetPower | SetParameter

ACTION_TYPES = (SetPower, SetParameter)


# =============================================================================
# Automation Rule
# =============================================================================


class AutomationRule:
    """A named IF-THEN rule: one condition, one action, an active flag.

    Name, description, condition and action are fixed at construction.
    Only the active flag can change afterwards.
    """

    def __init__(
        self,
        name: str,
        condition: ConditionConfig,
        action: ActionConfig,
        description: str = "",
        active: bool = True,
    ) -> None:
        if name is None or not str(name).strip():
            raise ValueError("Rule name cannot be empty")
        if condition is None:
            raise ValueError("Condition cannot be None")
        if action is None:
            raise ValueError("Action cannot be None")
        if not isinstance(condition, CONDITION_TYPES):
            raise TypeError(f"Unknown condition type: {type(condition).__name__}")
        if not isinstance(action, ACTION_TYPES):
            raise TypeError(f"Unknown action type: {type(action).__name__}")

        self._name = name
        self._description = description or ""
        self._condition = condition
        self._action = action
        self._active = bool(active)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def condition(self) -> ConditionConfig:
        return self._condition

    @property
    def action(self) -> ActionConfig:
        return self._action

    @property
    def active(self) -> bool:
        return self._active

    @active.setter
    def active(self, value: bool) -> None:
        self._active = bool(value)

    def set_active(self, active: bool) -> None:
        self.active = active

    def evaluate_and_execute(
        self,
        registry: "DeviceRegistry",
        now: Optional[datetime] = None,
        evaluator: Optional["ConditionEvaluator"] = None,
        executor: Optional["ActionExecutor"] = None,
    ) -> Optional["ActionResult"]:
        """
        Check the condition and run the action if it holds.

        Args:
            registry: Device registry to read and mutate
            now: Evaluation instant (for time conditions)
            evaluator: Condition evaluator (default: shared stateless one)
            executor: Action executor (default: one that does not skip)

        Returns:
            The ActionResult if the rule triggered, None otherwise
        """
        if not self._active:
            return None

        # Imported here: evaluators/executors import this module
        from .evaluators import ConditionEvaluator
        from .executors import ActionExecutor

        evaluator = evaluator or ConditionEvaluator()
        executor = executor or ActionExecutor()

        if not evaluator.evaluate(self._condition, registry, now):
            return None

        logger.info(f"Rule triggered: {self._name}")
        return executor.execute(self._action, registry)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AutomationRule):
            return NotImplemented
        return (
            self._name == other._name
            and self._description == other._description
            and self._condition == other._condition
            and self._action == other._action
            and self._active == other._active
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"AutomationRule(name={self._name!r}, condition={self._condition!r}, "
            f"action={self._action!r}, active={self._active})"
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for transport."""
        return {
            "name": self._name,
            "description": self._description,
            "active": self._active,
            "condition": self._serialize_condition(self._condition),
            "action": self._serialize_action(self._action),
        }

    @staticmethod
    def _serialize_condition(c: ConditionConfig) -> Dict[str, Any]:
        """Serialize condition config."""
        if isinstance(c, SensorMatch):
            return {
                "type": "sensor",
                "device_type": c.device_type,
                "expected_state": c.expected_state,
            }
        elif isinstance(c, ThresholdMatch):
            return {
                "type": "threshold",
                "device_type": c.device_type,
                "metric": c.metric,
                "operator": c.operator,
                "threshold": c.threshold,
            }
        elif isinstance(c, GroupMatch):
            return {
                "type": "group",
                "device_type": c.device_type,
                "required_state": c.required_state,
                "quantifier": c.quantifier.value,
            }
        elif isinstance(c, TimeMatch):
            return {"type": "time", "at": c.at.strftime("%H:%M")}
        return {}

    @staticmethod
    def _serialize_action(a: ActionConfig) -> Dict[str, Any]:
        """Serialize action config."""
        if isinstance(a, SetPower):
            return {
                "type": "set_power",
                "target": a.target,
                "target_is_type": a.target_is_type,
                "on": a.on,
            }
        elif isinstance(a, SetParameter):
            return {
                "type": "set_parameter",
                "target": a.target,
                "target_is_type": a.target_is_type,
                "parameter": a.parameter,
                "value": a.value,
            }
        return {}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutomationRule":
        """Deserialize from dict."""
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            active=data.get("active", True),
            condition=cls._parse_condition(data["condition"]),
            action=cls._parse_action(data["action"]),
        )

    @staticmethod
    def _parse_condition(data: Dict[str, Any]) -> ConditionConfig:
        """Parse condition config from dict."""
        condition_type = data.get("type")

        if condition_type == "sensor":
            return SensorMatch(
                device_type=data["device_type"],
                expected_state=data.get("expected_state", True),
            )
        elif condition_type == "threshold":
            return ThresholdMatch(
                device_type=data["device_type"],
                metric=data["metric"],
                operator=data["operator"],
                threshold=data["threshold"],
            )
        elif condition_type == "group":
            return GroupMatch(
                device_type=data["device_type"],
                required_state=data.get("required_state", True),
                quantifier=data.get("quantifier", "any"),
            )
        elif condition_type == "time":
            return TimeMatch.parse(data["at"])
        else:
            raise ValueError(f"Unknown condition type: {condition_type}")

    @staticmethod
    def _parse_action(data: Dict[str, Any]) -> ActionConfig:
        """Parse action config from dict."""
        action_type = data.get("type")

        if action_type == "set_power":
            return SetPower(
                target=data["target"],
                on=data["on"],
                target_is_type=data.get("target_is_type", False),
            )
        elif action_type == "set_parameter":
            return SetParameter(
                target=data["target"],
                parameter=data["parameter"],
                value=data["value"],
                target_is_type=data.get("target_is_type", False),
            )
        else:
            raise ValueError(f"Unknown action type: {action_type}")


# =============================================================================
# Execution Records
# =============================================================================


@dataclass
class RuleExecution:
    """Record of a rule execution (for history/debugging)."""

    rule_name: str
    triggered: bool
    devices_affected: List[str]
    success: bool
    error: Optional[str]
    timestamp: datetime
    duration_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_name": self.rule_name,
            "triggered": self.triggered,
            "devices_affected": list(self.devices_affected),
            "success": self.success,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
            "duration_ms": self.duration_ms,
        }


# =============================================================================
# Module Config
# =============================================================================


@dataclass
class AutomationConfig:
    """Configuration for the automation module."""

    version: int = 1
    enabled: bool = True
    trust_device_state: bool = False  # Skip devices already in the requested power state
    history_size: int = 100
    rules: List[AutomationRule] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict."""
        return {
            "version": self.version,
            "enabled": self.enabled,
            "trust_device_state": self.trust_device_state,
            "history_size": self.history_size,
            "rules": [r.to_dict() for r in self.rules],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutomationConfig":
        """Deserialize from dict."""
        return cls(
            version=data.get("version", 1),
            enabled=data.get("enabled", True),
            trust_device_state=data.get("trust_device_state", False),
            history_size=data.get("history_size", 100),
            rules=[AutomationRule.from_dict(r) for r in data.get("rules", [])],
        )
