"""
Automation engine - core rule processing logic.

Holds the rule set, runs evaluation passes and records execution history.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import TYPE_CHECKING, Any, Deque, Dict, List, Optional, Union

from home_automation.core.bus import Event, EventBus

from .evaluators import ConditionEvaluator
from .executors import ActionExecutor
from .models import AutomationRule, RuleExecution

if TYPE_CHECKING:
    from home_automation.core.registry import DeviceRegistry

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    """Result of one evaluation pass."""

    rules_evaluated: int = 0
    rules_skipped: int = 0  # Inactive rules
    rules_triggered: int = 0
    devices_affected: int = 0
    errors: List[str] = field(default_factory=list)


class AutomationEngine:
    """
    Core engine for automation rule processing.

    Responsibilities:
    - Keep rules keyed by name (adding a rule with a taken name replaces it)
    - Evaluate every active rule on each pass
    - Contain failures to the rule that raised them
    - Track execution history
    - Publish notifications on the event bus (if one is given)

    Rules are evaluated in no particular order. When two rules in one pass
    command the same device differently, the one evaluated last wins.

    No internal locking: the host must not run a pass concurrently with
    another pass or with add/remove (AutomationModule does this for you).
    """

    HISTORY_SIZE = 100  # Number of executions to keep in history

    def __init__(
        self,
        registry: "DeviceRegistry",
        bus: Optional[EventBus] = None,
        trust_device_state: bool = False,
        history_size: int = HISTORY_SIZE,
    ) -> None:
        self._registry = registry
        self._bus = bus
        self._evaluator = ConditionEvaluator()
        self._executor = ActionExecutor(trust_device_state=trust_device_state)

        self._rules: Dict[str, AutomationRule] = {}

        # Execution history (ring buffer)
        self._history: Deque[RuleExecution] = deque(maxlen=history_size)

    @property
    def registry(self) -> "DeviceRegistry":
        return self._registry

    @property
    def trust_device_state(self) -> bool:
        return self._executor.trust_device_state

    @property
    def history_size(self) -> int:
        return self._history.maxlen

    def set_registry(self, registry: "DeviceRegistry") -> None:
        """Point the engine at another registry. Rules and history are kept."""
        self._registry = registry

    def set_bus(self, bus: Optional[EventBus]) -> None:
        """Route notifications to another bus (None to stop publishing)."""
        self._bus = bus

    def configure(self, trust_device_state: bool, history_size: int) -> None:
        """Apply new settings. The newest history entries that still fit are kept."""
        self._executor.trust_device_state = trust_device_state
        if history_size != self._history.maxlen:
            self._history = deque(self._history, maxlen=history_size)

    # =========================================================================
    # Rule Management
    # =========================================================================

    def add_rule(self, rule: AutomationRule) -> None:
        """
        Add a rule, replacing any rule with the same name.

        Args:
            rule: The automation rule to add
        """
        replaced = rule.name in self._rules
        self._rules[rule.name] = rule
        logger.info(f"Rule {'replaced' if replaced else 'added'}: {rule.name}")
        self._publish("automation.rule_added", rule.name, {"replaced": replaced})

    def remove_rule(self, rule: Union[str, AutomationRule]) -> bool:
        """
        Remove a rule by name (or by passing the rule itself).

        Returns:
            True if a rule was removed, False if there was none by that name
        """
        name = rule.name if isinstance(rule, AutomationRule) else rule
        if self._rules.pop(name, None) is None:
            return False

        logger.info(f"Rule removed: {name}")
        self._publish("automation.rule_removed", name)
        return True

    def get_rule(self, name: str) -> Optional[AutomationRule]:
        """Get a rule by name."""
        return self._rules.get(name)

    def list_rules(self) -> List[AutomationRule]:
        """Snapshot of the current rules. Changing the list does not affect the engine."""
        return list(self._rules.values())

    def clear_rules(self) -> None:
        """Remove all rules, publishing a removal for each."""
        for name in list(self._rules):
            self.remove_rule(name)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate(self, now: Optional[datetime] = None) -> EngineResult:
        """
        Run one evaluation pass over every rule.

        A rule that raises is logged and reported in the result; the pass
        carries on with the remaining rules.

        Args:
            now: Evaluation instant (for testing). Defaults to local time.

        Returns:
            Result with counts of rules evaluated/triggered and any errors
        """
        if now is None:
            now = datetime.now()

        result = EngineResult()

        for rule in list(self._rules.values()):
            if not rule.active:
                result.rules_skipped += 1
                continue

            result.rules_evaluated += 1
            self._run_rule(rule, now, result)

        logger.debug(
            f"Evaluation pass: {result.rules_triggered}/{result.rules_evaluated} rules triggered, "
            f"{result.devices_affected} devices affected, {len(result.errors)} errors"
        )
        self._publish(
            "automation.evaluated",
            None,
            {
                "rules_evaluated": result.rules_evaluated,
                "rules_skipped": result.rules_skipped,
                "rules_triggered": result.rules_triggered,
                "devices_affected": result.devices_affected,
                "errors": list(result.errors),
            },
        )
        return result

    def _run_rule(self, rule: AutomationRule, now: datetime, result: EngineResult) -> None:
        """Evaluate and execute one rule, containing any failure."""
        started = datetime.now(UTC)

        try:
            action_result = rule.evaluate_and_execute(
                self._registry,
                now,
                evaluator=self._evaluator,
                executor=self._executor,
            )
        except Exception as e:
            error = f"{rule.name}: {e}"
            result.errors.append(error)
            logger.error(f"Error executing rule {rule.name}: {e}", exc_info=True)
            self._record_execution(rule.name, False, [], False, str(e), now, started)
            self._publish("automation.rule_failed", rule.name, {"error": str(e)})
            return

        if action_result is None:
            return

        result.rules_triggered += 1
        result.devices_affected += len(action_result.affected)

        error = None
        if action_result.failures:
            error = "; ".join(f"{device_id}: {msg}" for device_id, msg in action_result.failures)
            result.errors.append(f"{rule.name}: {error}")

        self._record_execution(
            rule.name,
            True,
            list(action_result.affected),
            action_result.success,
            error,
            now,
            started,
        )
        self._publish(
            "automation.rule_triggered",
            rule.name,
            {
                "devices_affected": list(action_result.affected),
                "devices_skipped": list(action_result.skipped),
                "failures": [list(f) for f in action_result.failures],
            },
        )

    # =========================================================================
    # History
    # =========================================================================

    def _record_execution(
        self,
        rule_name: str,
        triggered: bool,
        devices_affected: List[str],
        success: bool,
        error: Optional[str],
        timestamp: datetime,
        started: datetime,
    ) -> None:
        """Record an execution in history."""
        duration_ms = int((datetime.now(UTC) - started).total_seconds() * 1000)
        self._history.append(
            RuleExecution(
                rule_name=rule_name,
                triggered=triggered,
                devices_affected=devices_affected,
                success=success,
                error=error,
                timestamp=timestamp,
                duration_ms=duration_ms,
            )
        )

    def get_history(
        self,
        rule_name: Optional[str] = None,
        limit: int = 20,
    ) -> List[RuleExecution]:
        """
        Get execution history.

        Args:
            rule_name: Filter by rule (optional)
            limit: Maximum entries to return

        Returns:
            List of RuleExecution records (newest first)
        """
        result = []
        for execution in reversed(self._history):
            if rule_name and execution.rule_name != rule_name:
                continue
            result.append(execution)
            if len(result) >= limit:
                break
        return result

    def clear_history(self) -> None:
        """Drop all recorded executions."""
        self._history.clear()

    # =========================================================================
    # Notifications
    # =========================================================================

    def _publish(
        self,
        event_type: str,
        rule_name: Optional[str],
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self._bus is None:
            return
        self._bus.publish(
            Event(
                type=event_type,
                source="automation",
                rule_name=rule_name,
                payload=payload or {},
            )
        )
