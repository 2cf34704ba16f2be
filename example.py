#!/usr/bin/env python3
"""
Quick example demonstrating home-automation basic usage.

Run with: PYTHONPATH=src python3 example.py
"""

from datetime import datetime, UTC

from home_automation.core.bus import Event, EventBus, EventFilter
from home_automation.core.devices import Light, MotionSensor, Thermostat
from home_automation.core.registry import InMemoryDeviceRegistry
from home_automation.modules.automation import (
    AutomationModule,
    auto_cool_off,
    auto_heat,
    motion_lights,
    scheduled_power,
)

print("=" * 60)
print("home-automation Example")
print("=" * 60)

# 1. Devices
print("\n1. Registering devices...")
registry = InMemoryDeviceRegistry()
hall_light = registry.add_device(Light("Hall Light", id="hall_light"))
hall_sensor = registry.add_device(MotionSensor("Hall Sensor", id="hall_sensor"))
thermostat = registry.add_device(Thermostat("Living Room", current_temperature=16.5, id="living_thermo"))
hall_sensor.turn_on()
for device in registry.all_devices():
    print(f"   ✓ {device.name} ({device.device_type}): {device.status()}")

# 2. Kernel + module
print("\n2. Attaching Automation module...")
bus = EventBus()
automation = AutomationModule(registry)
automation.attach(bus)
print(f"   ✓ Module '{automation.id}' attached")

bus.subscribe(
    lambda e: print(f"   → {e.type}: {e.rule_name} {e.payload.get('devices_affected', '')}"),
    EventFilter(event_type="automation.rule_triggered"),
)

# 3. Rules
print("\n3. Adding rules...")
for rule in (
    motion_lights("Motion Lights", hall_light.id),
    auto_heat("Auto Heat", thermostat.id, below=18.0),
    auto_cool_off("Auto Heat Off", thermostat.id, above=24.0),
    scheduled_power("Lights Out", "Light", "23:30", target_is_type=True),
):
    automation.add_rule(rule)
    print(f"   ✓ {rule.name}: {rule.description}")

# 4. Motion + tick
print("\n4. Motion detected, publishing clock tick...")
hall_sensor.detect_motion()
bus.publish(Event(type="clock.tick", source="example", timestamp=datetime.now(UTC)))
print(f"   ✓ Hall light: {hall_light.status()}")
print(f"   ✓ Thermostat: {thermostat.status()}")

# 5. Warm up the room
print("\n5. Room warms up...")
thermostat.current_temperature = 24.5
automation.evaluate()
print(f"   ✓ Thermostat: {thermostat.status()}")

# 6. History
print("\n6. Execution history...")
for entry in automation.get_history():
    print(f"   ✓ {entry['rule_name']}: affected={entry['devices_affected']} success={entry['success']}")

print("\n" + "=" * 60)
print("Example complete!")
print("=" * 60)
