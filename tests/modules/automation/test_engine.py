"""Tests for the automation engine."""

from datetime import datetime, time
from unittest.mock import patch

import pytest

from home_automation.core import EventBus, EventFilter, Light, MotionSensor, Thermostat
from home_automation.modules.automation import (
    AutomationEngine,
    AutomationRule,
    ConditionEvaluator,
    SensorMatch,
    SetParameter,
    SetPower,
    ThresholdMatch,
    TimeMatch,
)


@pytest.fixture
def engine(registry):
    """Create an automation engine over the test registry."""
    return AutomationEngine(registry)


def always_rule(name, action):
    """A rule whose condition holds whenever any Light exists."""
    return AutomationRule(name, ThresholdMatch("Light", "Brightness", ">=", 0), action)


class TestRuleManagement:
    """Tests for add/remove/list."""

    def test_empty_engine(self, engine):
        """Test evaluating with no rules."""
        result = engine.evaluate()
        assert result.rules_evaluated == 0
        assert result.rules_triggered == 0
        assert engine.list_rules() == []

    def test_add_replaces_by_name(self, engine):
        """Test that a second rule with the same name replaces the first."""
        a = AutomationRule("Night", SensorMatch("MotionSensor"), SetPower("light-1", on=True))
        b = AutomationRule("Night", SensorMatch("MotionSensor"), SetPower("light-1", on=False))

        engine.add_rule(a)
        engine.add_rule(b)

        rules = engine.list_rules()
        assert len(rules) == 1
        assert rules[0] is b
        assert engine.get_rule("Night") is b

    def test_remove_by_name_and_by_rule(self, engine):
        """Test removing by name or by rule value."""
        a = AutomationRule("A", SensorMatch("MotionSensor"), SetPower("x", on=True))
        b = AutomationRule("B", SensorMatch("MotionSensor"), SetPower("x", on=True))
        engine.add_rule(a)
        engine.add_rule(b)

        assert engine.remove_rule("A") is True
        assert engine.remove_rule(b) is True
        assert len(engine) == 0

    def test_remove_missing_is_noop(self, engine):
        """Test that removing an unknown rule is not an error."""
        assert engine.remove_rule("missing") is False

    def test_list_rules_is_snapshot(self, engine):
        """Test that mutating the returned list leaves the engine alone."""
        engine.add_rule(AutomationRule("A", SensorMatch("MotionSensor"), SetPower("x", on=True)))

        rules = engine.list_rules()
        rules.clear()

        assert len(engine.list_rules()) == 1
        assert "A" in engine


class TestEvaluation:
    """Tests for evaluation passes."""

    def test_motion_lights_scenario(self, registry, engine):
        """Test the motion sensor turning a light on."""
        sensor = registry.add_device(MotionSensor("Main Motion Sensor"))
        light = registry.add_device(Light("Main Light"))
        sensor.turn_on()

        engine.add_rule(
            AutomationRule(
                "Motion Lights",
                SensorMatch("MotionSensor", True),
                SetPower(light.id, on=True, target_is_type=False),
            )
        )

        engine.evaluate()
        assert light.is_on is False

        sensor.detect_motion()
        result = engine.evaluate()

        assert light.is_on is True
        assert result.rules_triggered == 1
        assert result.devices_affected == 1

    def test_auto_heat_scenario(self, registry, engine):
        """Test the thermostat turning on below 18 °C and staying on."""
        thermo = registry.add_device(Thermostat("Smart Thermostat", current_temperature=15.0))
        engine.add_rule(
            AutomationRule(
                "Auto Heat",
                ThresholdMatch("Thermostat", "Temperature", "<", 18.0),
                SetPower(thermo.id, on=True),
            )
        )

        engine.evaluate()
        assert thermo.is_on is True

        thermo.current_temperature = 20.0
        result = engine.evaluate()

        assert thermo.is_on is True
        assert result.rules_triggered == 0

    def test_companion_off_rule(self, registry, engine):
        """Test that an off rule only fires once its own condition holds."""
        thermo = registry.add_device(Thermostat("Hall", current_temperature=15.0))
        engine.add_rule(
            AutomationRule(
                "Heat On",
                ThresholdMatch("Thermostat", "Temperature", "<", 18.0),
                SetPower(thermo.id, on=True),
            )
        )
        engine.add_rule(
            AutomationRule(
                "Heat Off",
                ThresholdMatch("Thermostat", "Temperature", ">", 24.0),
                SetPower(thermo.id, on=False),
            )
        )

        engine.evaluate()
        thermo.current_temperature = 20.0
        engine.evaluate()
        assert thermo.is_on is True

        thermo.current_temperature = 25.0
        engine.evaluate()
        assert thermo.is_on is False

    def test_inactive_rule_never_evaluated(self, registry, engine):
        """Test that a deactivated rule's condition and action never run."""
        light = registry.add_device(Light("Lamp"))
        rule = always_rule("Lamp On", SetPower(light.id, on=True))
        rule.set_active(False)
        engine.add_rule(rule)

        with patch.object(ConditionEvaluator, "evaluate") as evaluate:
            result = engine.evaluate()
            evaluate.assert_not_called()

        assert light.is_on is False
        assert result.rules_skipped == 1
        assert result.rules_evaluated == 0

        rule.set_active(True)
        engine.evaluate()
        assert light.is_on is True

    def test_time_rule_fires_all_minute(self, registry, engine):
        """Test that a time rule fires on every pass within its minute."""
        light = registry.add_device(Light("Porch"))
        engine.add_rule(AutomationRule("Porch On", TimeMatch(time(19, 0)), SetPower(light.id, on=True)))

        assert engine.evaluate(now=datetime(2025, 1, 15, 18, 59, 59)).rules_triggered == 0
        assert engine.evaluate(now=datetime(2025, 1, 15, 19, 0, 1)).rules_triggered == 1
        assert engine.evaluate(now=datetime(2025, 1, 15, 19, 0, 58)).rules_triggered == 1
        assert engine.evaluate(now=datetime(2025, 1, 15, 19, 1, 0)).rules_triggered == 0

    def test_action_by_type_targets_current_devices(self, registry, engine):
        """Test that devices added after rule registration are targeted."""
        registry.add_device(MotionSensor("Hall")).turn_on()
        engine.add_rule(
            AutomationRule(
                "All Lights",
                SensorMatch("MotionSensor", False),
                SetPower("Light", on=True, target_is_type=True),
            )
        )
        late = registry.add_device(Light("Late"))

        engine.evaluate()

        assert late.is_on is True


class TestFailureIsolation:
    """Tests for per-rule and per-device failure containment."""

    def test_device_failure_keeps_other_devices_and_rules(self, registry, engine, faulty_light_cls):
        """Test a by-type action over three lights with one broken."""
        good_a = registry.add_device(Light("A"))
        broken = registry.add_device(faulty_light_cls("Broken"))
        good_b = registry.add_device(Light("B"))
        thermo = registry.add_device(Thermostat("Hall", current_temperature=15.0))

        engine.add_rule(always_rule("All Lights", SetPower("Light", on=True, target_is_type=True)))
        engine.add_rule(
            AutomationRule(
                "Heat",
                ThresholdMatch("Thermostat", "Temperature", "<", 18.0),
                SetPower(thermo.id, on=True),
            )
        )

        result = engine.evaluate()

        assert good_a.is_on is True
        assert good_b.is_on is True
        assert thermo.is_on is True
        assert result.rules_triggered == 2
        assert len(result.errors) == 1
        assert result.errors[0].startswith("All Lights:")
        assert broken.id in result.errors[0]

    def test_rule_exception_does_not_stop_pass(self, registry, engine):
        """Test that a rule raising outright is reported and the pass continues."""
        light = registry.add_device(Light("Lamp"))
        engine.add_rule(
            AutomationRule("Broken", SensorMatch("MotionSensor", False), SetPower(light.id, on=False))
        )
        engine.add_rule(always_rule("Lamp On", SetPower(light.id, on=True)))

        original = ConditionEvaluator.evaluate

        def flaky(self, condition, reg, now=None):
            if isinstance(condition, SensorMatch):
                raise RuntimeError("registry unavailable")
            return original(self, condition, reg, now)

        with patch.object(ConditionEvaluator, "evaluate", flaky):
            result = engine.evaluate()

        assert result.rules_evaluated == 2
        assert result.rules_triggered == 1
        assert result.errors == ["Broken: registry unavailable"]
        assert light.is_on is True

        history = engine.get_history(rule_name="Broken")
        assert history[0].triggered is False
        assert history[0].success is False
        assert history[0].error == "registry unavailable"

    def test_malformed_parameter_reported(self, registry, engine):
        """Test that a malformed set-point is reported, not raised."""
        registry.add_device(Thermostat("A"))
        registry.add_device(Thermostat("B"))
        engine.add_rule(
            AutomationRule(
                "Setback",
                ThresholdMatch("Thermostat", "Temperature", ">", 0),
                SetParameter("Thermostat", "target_temperature", "cold", target_is_type=True),
            )
        )

        result = engine.evaluate()

        assert result.rules_triggered == 1
        assert len(result.errors) == 1
        assert "Invalid value" in result.errors[0]


class TestConflicts:
    """Two rules commanding one device in the same pass."""

    def test_last_evaluated_wins(self, registry):
        """Test that the final state matches whichever rule ran last."""
        seen = []
        bus = EventBus()
        bus.subscribe(lambda e: seen.append(e.rule_name), EventFilter("automation.rule_triggered"))
        engine = AutomationEngine(registry, bus=bus)

        light = registry.add_device(Light("Lamp"))
        engine.add_rule(always_rule("On", SetPower(light.id, on=True)))
        engine.add_rule(always_rule("Off", SetPower(light.id, on=False)))

        engine.evaluate()

        assert sorted(seen) == ["Off", "On"]
        assert light.is_on is (seen[-1] == "On")


class TestNotifications:
    """Tests for events published on the bus."""

    def test_events(self, registry):
        """Test add/trigger/remove/evaluated notifications."""
        bus = EventBus()
        events = []
        bus.subscribe(events.append, EventFilter(event_type="automation.*"))
        engine = AutomationEngine(registry, bus=bus)
        light = registry.add_device(Light("Lamp"))

        engine.add_rule(always_rule("Lamp On", SetPower(light.id, on=True)))
        engine.add_rule(always_rule("Lamp On", SetPower(light.id, on=True)))
        engine.evaluate()
        engine.remove_rule("Lamp On")
        engine.remove_rule("Lamp On")

        types = [e.type for e in events]
        assert types == [
            "automation.rule_added",
            "automation.rule_added",
            "automation.rule_triggered",
            "automation.evaluated",
            "automation.rule_removed",
        ]
        assert events[0].payload["replaced"] is False
        assert events[1].payload["replaced"] is True
        assert events[2].rule_name == "Lamp On"
        assert events[2].payload["devices_affected"] == [light.id]

    def test_clear_rules_publishes_removals(self, registry):
        """Test that clearing rules publishes one rule_removed per rule."""
        bus = EventBus()
        removed = []
        bus.subscribe(removed.append, EventFilter(event_type="automation.rule_removed"))
        engine = AutomationEngine(registry, bus=bus)
        engine.add_rule(always_rule("A", SetPower("x", on=True)))
        engine.add_rule(always_rule("B", SetPower("x", on=False)))

        engine.clear_rules()

        assert len(engine) == 0
        assert sorted(e.rule_name for e in removed) == ["A", "B"]

    def test_set_bus(self, registry, engine):
        """Test routing notifications to a bus given after construction."""
        bus = EventBus()
        events = []
        bus.subscribe(events.append, EventFilter(event_type="automation.*"))
        engine.add_rule(always_rule("Quiet", SetPower("x", on=True)))

        engine.set_bus(bus)
        engine.remove_rule("Quiet")

        assert [e.type for e in events] == ["automation.rule_removed"]

    def test_failure_event(self, registry):
        """Test that a failing rule publishes rule_failed."""
        bus = EventBus()
        failed = []
        bus.subscribe(failed.append, EventFilter(event_type="automation.rule_failed"))
        engine = AutomationEngine(registry, bus=bus)
        registry.add_device(Light("Lamp"))
        engine.add_rule(always_rule("Bad", SetPower("Light", on=True, target_is_type=True)))

        with patch.object(ConditionEvaluator, "evaluate", side_effect=KeyError("boom")):
            engine.evaluate()

        assert len(failed) == 1
        assert failed[0].rule_name == "Bad"


class TestTrustDeviceState:
    """Tests for skipping redundant commands."""

    def test_skips_device_already_on(self, registry):
        """Test that an already-on light is not commanded again."""
        engine = AutomationEngine(registry, trust_device_state=True)
        light = registry.add_device(Light("Lamp", brightness=80))
        engine.add_rule(always_rule("Lamp On", SetPower(light.id, on=True)))

        result = engine.evaluate()

        assert result.rules_triggered == 1
        assert result.devices_affected == 0
        assert light.brightness == 80


class TestHistory:
    """Tests for execution history."""

    def test_records_execution(self, registry, engine):
        """Test that triggered rules are recorded."""
        light = registry.add_device(Light("Lamp"))
        engine.add_rule(always_rule("Lamp On", SetPower(light.id, on=True)))

        engine.evaluate(now=datetime(2025, 1, 15, 20, 0, 0))

        history = engine.get_history()
        assert len(history) == 1
        assert history[0].rule_name == "Lamp On"
        assert history[0].triggered is True
        assert history[0].success is True
        assert history[0].devices_affected == [light.id]
        assert history[0].timestamp == datetime(2025, 1, 15, 20, 0, 0)

    def test_untriggered_rules_not_recorded(self, registry, engine):
        """Test that rules whose condition is false leave no record."""
        engine.add_rule(AutomationRule("Never", SensorMatch("MotionSensor"), SetPower("x", on=True)))
        engine.evaluate()
        assert engine.get_history() == []

    def test_history_limit_and_order(self, registry):
        """Test the ring buffer size and newest-first order."""
        engine = AutomationEngine(registry, history_size=3)
        light = registry.add_device(Light("Lamp"))
        engine.add_rule(always_rule("Lamp On", SetPower(light.id, on=True)))

        for minute in range(5):
            engine.evaluate(now=datetime(2025, 1, 15, 20, minute, 0))

        history = engine.get_history(limit=10)
        assert len(history) == 3
        assert [h.timestamp.minute for h in history] == [4, 3, 2]
        assert len(engine.get_history(limit=2)) == 2

    def test_clear_history(self, registry, engine):
        """Test dropping recorded executions."""
        light = registry.add_device(Light("Lamp"))
        engine.add_rule(always_rule("Lamp On", SetPower(light.id, on=True)))
        engine.evaluate()
        assert len(engine.get_history()) == 1

        engine.clear_history()

        assert engine.get_history() == []
        assert "Lamp On" in engine

    def test_configure_keeps_newest_entries(self, registry, engine):
        """Test shrinking the history size keeps the newest records."""
        light = registry.add_device(Light("Lamp"))
        engine.add_rule(always_rule("Lamp On", SetPower(light.id, on=True)))
        for minute in range(4):
            engine.evaluate(now=datetime(2025, 1, 15, 20, minute, 0))

        engine.configure(trust_device_state=True, history_size=2)

        assert engine.trust_device_state is True
        assert engine.history_size == 2
        assert [h.timestamp.minute for h in engine.get_history()] == [3, 2]
