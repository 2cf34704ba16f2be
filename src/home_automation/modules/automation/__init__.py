"""
Automation engine for home-automation.

Provides rule-based automation: each rule pairs one condition with one
action and can be switched active/inactive.

Features:
- Sensor, threshold, group-state and time-of-day conditions
- Power and numeric-parameter actions, by device id or by device type
- Per-rule and per-device failure isolation
- Execution history for debugging
- Event bus notifications (rule added/removed/triggered/failed)

Architecture:
    ┌─────────────────────────────────────────────┐
    │   Host (scheduler tick, dashboard, tests)   │
    │                     │                       │
    │                     ▼                       │
    │          ┌─────────────────────┐            │
    │          │  AutomationModule   │            │
    │          │  AutomationEngine   │            │
    │          └─────────────────────┘            │
    │                     │                       │
    │                     ▼                       │
    │              DeviceRegistry                 │
    └─────────────────────────────────────────────┘
"""

from .module import AutomationModule
from .models import (
    # Enums
    ConditionType,
    ActionType,
    Quantifier,
    OPERATORS,
    EQUALITY_EPSILON,
    # Conditions
    SensorMatch,
    ThresholdMatch,
    GroupMatch,
    TimeMatch,
    ConditionConfig,
    # Actions
    SetPower,
    SetParameter,
    ActionConfig,
    # Rule
    AutomationRule,
    RuleExecution,
    AutomationConfig,
)
from .engine import AutomationEngine, EngineResult
from .evaluators import ConditionEvaluator, compare, evaluate_condition
from .executors import ActionExecutor, ActionResult, execute_action
from .presets import (
    motion_lights,
    auto_heat,
    auto_cool_off,
    scheduled_power,
    follow_device_state,
    set_target_temperature,
)

__all__ = [
    # Main module
    "AutomationModule",
    # Engine
    "AutomationEngine",
    "EngineResult",
    # Evaluators / executors
    "ConditionEvaluator",
    "compare",
    "evaluate_condition",
    "ActionExecutor",
    "ActionResult",
    "execute_action",
    # Enums
    "ConditionType",
    "ActionType",
    "Quantifier",
    "OPERATORS",
    "EQUALITY_EPSILON",
    # Conditions
    "SensorMatch",
    "ThresholdMatch",
    "GroupMatch",
    "TimeMatch",
    "ConditionConfig",
    # Actions
    "SetPower",
    "SetParameter",
    "ActionConfig",
    # Rule
    "AutomationRule",
    "RuleExecution",
    "AutomationConfig",
    # Presets
    "motion_lights",
    "auto_heat",
    "auto_cool_off",
    "scheduled_power",
    "follow_device_state",
    "set_target_temperature",
]
