"""
Automation presets - rule templates for common patterns.

Each preset returns a ready-to-add AutomationRule.
"""

from datetime import time
from typing import Any, Union

from .models import (
    AutomationRule,
    ConditionConfig,
    GroupMatch,
    Quantifier,
    SensorMatch,
    SetParameter,
    SetPower,
    ThresholdMatch,
    TimeMatch,
)


def motion_lights(
    name: str,
    light_id: str,
    *,
    sensor_type: str = "MotionSensor",
    active: bool = True,
) -> AutomationRule:
    """
    Create a rule that turns a light on while any motion sensor sees motion.

    Args:
        name: Unique rule name
        light_id: Device id of the light
        sensor_type: Type tag of the sensors to watch
        active: Whether rule is active

    Returns:
        Configured AutomationRule

    Example:
        rule = motion_lights("Motion Lights", hallway_light.id)
    """
    return AutomationRule(
        name=name,
        description=f"If motion is detected by any {sensor_type} then turn ON {light_id}",
        condition=SensorMatch(device_type=sensor_type, expected_state=True),
        action=SetPower(target=light_id, on=True),
        active=active,
    )


def auto_heat(
    name: str,
    thermostat_id: str,
    *,
    below: float = 18.0,
    thermostat_type: str = "Thermostat",
    active: bool = True,
) -> AutomationRule:
    """
    Create a rule that turns a thermostat on when any thermostat reads below a temperature.

    Args:
        name: Unique rule name
        thermostat_id: Device id of the thermostat to switch on
        below: Temperature (°C) under which heating starts
        thermostat_type: Type tag of the thermostats to read
        active: Whether rule is active

    Returns:
        Configured AutomationRule
    """
    return AutomationRule(
        name=name,
        description=f"If temperature < {below:g}°C then turn ON {thermostat_id}",
        condition=ThresholdMatch(
            device_type=thermostat_type,
            metric="Temperature",
            operator="<",
            threshold=below,
        ),
        action=SetPower(target=thermostat_id, on=True),
        active=active,
    )


def auto_cool_off(
    name: str,
    thermostat_id: str,
    *,
    above: float = 24.0,
    thermostat_type: str = "Thermostat",
    active: bool = True,
) -> AutomationRule:
    """
    Companion to auto_heat: turn the thermostat off once it is warm enough.

    Args:
        name: Unique rule name
        thermostat_id: Device id of the thermostat to switch off
        above: Temperature (°C) over which heating stops
        thermostat_type: Type tag of the thermostats to read
        active: Whether rule is active

    Returns:
        Configured AutomationRule
    """
    return AutomationRule(
        name=name,
        description=f"If temperature > {above:g}°C then turn OFF {thermostat_id}",
        condition=ThresholdMatch(
            device_type=thermostat_type,
            metric="Temperature",
            operator=">",
            threshold=above,
        ),
        action=SetPower(target=thermostat_id, on=False),
        active=active,
    )


def scheduled_power(
    name: str,
    target: str,
    at: Union[time, str],
    *,
    on: bool = False,
    target_is_type: bool = False,
    active: bool = True,
) -> AutomationRule:
    """
    Create a rule that switches devices on/off at a time of day.

    Fires on every evaluation during that minute; switching is idempotent.

    Args:
        name: Unique rule name
        target: Device id, or type tag if target_is_type
        at: Time of day (datetime.time or "HH:MM")
        on: True to turn on, False to turn off
        target_is_type: Target every device of type `target`
        active: Whether rule is active

    Returns:
        Configured AutomationRule

    Example:
        rule = scheduled_power("Lights Out", "Light", "23:30", target_is_type=True)
    """
    condition = TimeMatch.parse(at) if isinstance(at, str) else TimeMatch(at=at)
    return AutomationRule(
        name=name,
        description=f"At {condition.at.strftime('%H:%M')} turn {'ON' if on else 'OFF'} {target}",
        condition=condition,
        action=SetPower(target=target, on=on, target_is_type=target_is_type),
        active=active,
    )


def follow_device_state(
    name: str,
    trigger_type: str,
    trigger_on: bool,
    target_id: str,
    turn_on: bool,
    *,
    trigger_name: str = "",
    target_name: str = "",
    active: bool = True,
) -> AutomationRule:
    """
    Create an "if any <type> is ON/OFF then turn <target> ON/OFF" rule.

    This is the shape of rule a dashboard's simple rule form produces.

    Args:
        name: Unique rule name
        trigger_type: Type tag of the devices to watch
        trigger_on: Required power state of the watched devices
        target_id: Device id to switch
        turn_on: True to turn the target on, False to turn it off
        trigger_name: Display name for the description (defaults to the type)
        target_name: Display name for the description (defaults to the id)
        active: Whether rule is active

    Returns:
        Configured AutomationRule
    """
    description = (
        f"If {trigger_name or trigger_type} is {'ON' if trigger_on else 'OFF'} "
        f"then Turn {'ON' if turn_on else 'OFF'} {target_name or target_id}"
    )
    return AutomationRule(
        name=name,
        description=description,
        condition=GroupMatch(
            device_type=trigger_type,
            required_state=trigger_on,
            quantifier=Quantifier.ANY,
        ),
        action=SetPower(target=target_id, on=turn_on),
        active=active,
    )


def set_target_temperature(
    name: str,
    condition: ConditionConfig,
    value: Any,
    *,
    thermostat_type: str = "Thermostat",
    active: bool = True,
) -> AutomationRule:
    """
    Create a rule that sets every thermostat's target temperature when a condition holds.

    Args:
        name: Unique rule name
        condition: When to apply the set-point
        value: Target temperature (°C)
        thermostat_type: Type tag of the thermostats to adjust
        active: Whether rule is active

    Returns:
        Configured AutomationRule

    Example:
        rule = set_target_temperature("Night Setback", TimeMatch.parse("22:00"), 17)
    """
    return AutomationRule(
        name=name,
        description=f"Set {thermostat_type} target temperature to {value}",
        condition=condition,
        action=SetParameter(
            target=thermostat_type,
            parameter="target_temperature",
            value=value,
            target_is_type=True,
        ),
        active=active,
    )
