"""
AutomationModule implementation.

Host-facing wrapper around the AutomationEngine: configuration, clock ticks
and serialized access.
"""

import logging
import threading
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from home_automation.core.bus import Event, EventBus, EventFilter
from home_automation.modules.base import HomeModule

from .engine import AutomationEngine, EngineResult
from .models import AutomationConfig, AutomationRule

if TYPE_CHECKING:
    from home_automation.core.registry import DeviceRegistry

logger = logging.getLogger(__name__)

TICK_EVENT = "clock.tick"


class AutomationModule(HomeModule):
    """
    Module that runs automation rules against a device registry.

    Evaluation is driven from outside: publish a "clock.tick" event on the
    bus, or call evaluate() directly (e.g. from a scheduler or a dashboard
    refresh).

    Every public method takes the same re-entrant lock, so an evaluation
    pass never overlaps another pass or a rule change made through this
    module.
    """

    def __init__(
        self,
        registry: Optional["DeviceRegistry"] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the automation module.

        Args:
            registry: Device registry. Required for evaluation. Can be set
                     later via set_registry().
            config: Module configuration dict (see default_config())
        """
        self._lock = threading.RLock()
        self._bus: Optional[EventBus] = None
        self._registry: Optional["DeviceRegistry"] = registry
        self._engine: Optional[AutomationEngine] = None
        self._config = self._parse_config(config or self.default_config())

        if registry is not None:
            self._create_engine()

    @property
    def id(self) -> str:
        return "automation"

    @property
    def CURRENT_CONFIG_VERSION(self) -> int:
        return 1

    @property
    def config(self) -> AutomationConfig:
        """Current configuration, including rules added or removed at runtime."""
        with self._lock:
            self._config.rules = self._current_rules()
            return self._config

    @property
    def engine(self) -> Optional[AutomationEngine]:
        return self._engine

    def set_registry(self, registry: "DeviceRegistry") -> None:
        """Set (or swap) the device registry. Rules and history are kept."""
        with self._lock:
            self._registry = registry
            if self._engine is None:
                self._create_engine()
            else:
                self._engine.set_registry(registry)

    def attach(self, bus: EventBus) -> None:
        """
        Attach the automation module to the kernel.

        Subscribes to clock ticks and routes engine notifications to the bus.
        """
        logger.info("Attaching AutomationModule")
        with self._lock:
            self._bus = bus
            if self._engine is not None:
                self._engine.set_bus(bus)

        bus.subscribe(self._on_tick, EventFilter(event_type=TICK_EVENT))

        if self._registry is None:
            logger.warning(
                "AutomationModule attached without a device registry. "
                "Rules will not run until set_registry() is called."
            )
            return

        logger.info("AutomationModule ready")

    def _current_rules(self) -> List[AutomationRule]:
        if self._engine is not None:
            return self._engine.list_rules()
        return list(self._config.rules)

    def _create_engine(self) -> None:
        """Create the engine and load the configured rules into it."""
        self._engine = AutomationEngine(
            self._registry,
            trust_device_state=self._config.trust_device_state,
            history_size=self._config.history_size,
        )
        # Configured rules are not new registrations, so load them before the bus is set
        for rule in self._config.rules:
            self._engine.add_rule(rule)
        self._engine.set_bus(self._bus)

    def _on_tick(self, event: Event) -> None:
        """Handle clock tick events."""
        now = event.timestamp
        if now.tzinfo is not None:
            # Time conditions are wall-clock times
            now = now.astimezone()
        result = self.evaluate(now)

        if result is not None and result.rules_triggered > 0:
            logger.info(
                f"Tick: {result.rules_triggered}/{result.rules_evaluated} rules triggered, "
                f"{result.devices_affected} devices affected"
            )

    # =========================================================================
    # Public API
    # =========================================================================

    def evaluate(self, now: Optional[datetime] = None) -> Optional[EngineResult]:
        """
        Run one evaluation pass.

        Returns:
            The pass result, or None if the module is disabled or has no registry
        """
        with self._lock:
            if not self._config.enabled:
                logger.debug("Automation disabled, skipping evaluation")
                return None
            if self._engine is None:
                logger.debug("No engine, skipping evaluation")
                return None
            return self._engine.evaluate(now)

    def add_rule(self, rule: AutomationRule) -> None:
        """
        Add a rule, replacing any rule with the same name.

        Raises:
            RuntimeError: If no registry has been set
        """
        with self._lock:
            if self._engine is None:
                raise RuntimeError("Engine not initialized")
            self._engine.add_rule(rule)

    def remove_rule(self, rule: Union[str, AutomationRule]) -> bool:
        """Remove a rule by name. Returns False if there was none."""
        with self._lock:
            if self._engine is None:
                return False
            return self._engine.remove_rule(rule)

    def list_rules(self) -> List[AutomationRule]:
        """Snapshot of the current rules."""
        with self._lock:
            return self._current_rules()

    def set_rule_active(self, name: str, active: bool) -> bool:
        """Activate or deactivate a rule. Returns False if not found."""
        with self._lock:
            rule = self._engine.get_rule(name) if self._engine is not None else None
            if rule is None:
                return False
            rule.set_active(active)
            logger.info(f"Rule {name} {'activated' if active else 'deactivated'}")
            return True

    def rules_as_dicts(self) -> List[Dict[str, Any]]:
        """Current rules serialized for transport (e.g. a dashboard listing)."""
        return [rule.to_dict() for rule in self.list_rules()]

    def get_history(
        self,
        rule_name: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict]:
        """
        Get automation execution history.

        Args:
            rule_name: Filter by rule (optional)
            limit: Maximum entries to return

        Returns:
            List of execution records, newest first
        """
        with self._lock:
            if self._engine is None:
                return []
            return [h.to_dict() for h in self._engine.get_history(rule_name, limit)]

    def clear_history(self) -> None:
        """Drop the execution history."""
        with self._lock:
            if self._engine is not None:
                self._engine.clear_history()

    # =========================================================================
    # HomeModule Interface
    # =========================================================================

    def default_config(self) -> Dict:
        """Get default automation configuration."""
        return {
            "version": self.CURRENT_CONFIG_VERSION,
            "enabled": True,
            "trust_device_state": False,
            "history_size": AutomationEngine.HISTORY_SIZE,
            "rules": [],
        }

    def config_schema(self) -> Dict:
        """
        Get configuration schema for automation module.

        Returns a JSON-schema-like structure for UI rendering.
        """
        return {
            "type": "object",
            "properties": {
                "version": {
                    "type": "integer",
                    "title": "Config Version",
                    "readOnly": True,
                },
                "enabled": {
                    "type": "boolean",
                    "title": "Enable Automation",
                    "description": "Run automation rules on each tick",
                    "default": True,
                },
                "trust_device_state": {
                    "type": "boolean",
                    "title": "Trust Device State",
                    "description": "Skip power commands for devices already in the requested state",
                    "default": False,
                },
                "history_size": {
                    "type": "integer",
                    "title": "History Size",
                    "description": "Number of rule executions kept for debugging",
                    "minimum": 1,
                    "default": AutomationEngine.HISTORY_SIZE,
                },
                "rules": {
                    "type": "array",
                    "title": "Automation Rules",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string", "title": "Rule Name"},
                            "description": {"type": "string", "title": "Description"},
                            "active": {"type": "boolean", "title": "Active", "default": True},
                            "condition": {
                                "type": "object",
                                "title": "Condition",
                                "properties": {
                                    "type": {
                                        "type": "string",
                                        "enum": ["sensor", "threshold", "group", "time"],
                                    },
                                },
                            },
                            "action": {
                                "type": "object",
                                "title": "Action",
                                "properties": {
                                    "type": {
                                        "type": "string",
                                        "enum": ["set_power", "set_parameter"],
                                    },
                                },
                            },
                        },
                        "required": ["name", "condition", "action"],
                    },
                },
            },
            "required": ["version", "enabled"],
        }

    def migrate_config(self, config: Dict) -> Dict:
        """Upgrade version 0 configs ("skip_redundant" became "trust_device_state")."""
        config = dict(config)
        if config.get("version", 0) < 1:
            if "skip_redundant" in config:
                config["trust_device_state"] = config.pop("skip_redundant")
            config["version"] = self.CURRENT_CONFIG_VERSION
        return config

    def on_config_changed(self, config: Dict) -> None:
        """Apply a new configuration. Rules are replaced by the config's rules."""
        with self._lock:
            self._config = self._parse_config(config)
            if self._engine is None:
                if self._registry is not None:
                    self._create_engine()
            else:
                self._engine.configure(self._config.trust_device_state, self._config.history_size)
                self._engine.clear_rules()
                for rule in self._config.rules:
                    self._engine.add_rule(rule)
            logger.info(f"Automation config applied: {len(self._config.rules)} rules")

    def _parse_config(self, config: Dict) -> AutomationConfig:
        merged = {**self.default_config(), **self.migrate_config(config)}
        return AutomationConfig.from_dict(merged)
