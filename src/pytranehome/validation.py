"""Parameter validation and rounding for device commands."""

from __future__ import annotations

import math
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from pytranehome.const import (
    CELSIUS_MAX,
    CELSIUS_MIN,
    FAHRENHEIT_MAX,
    FAHRENHEIT_MIN,
    FAN_SPEED_MAX,
    FAN_SPEED_MIN,
    HUMIDITY_MAX,
    HUMIDITY_MIN,
    HUMIDITY_SETPOINT_VALUES,
    TemperatureUnit,
)
from pytranehome.exceptions import InvalidParameterError


if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "convert_temperature",
    "get_temperature_limits",
    "round_fan_speed",
    "round_humidity",
    "round_temperature",
    "validate_enum",
    "validate_humidity",
    "validate_humidity_config",
    "validate_sensor_selection",
    "validate_setpoints",
    "validate_temperature",
    "validate_temperature_config",
]

EnumT = TypeVar("EnumT", bound=Enum)


def _round_half_up(value: float) -> float:
    return math.floor(value + 0.5)


def _require_finite(value: float, parameter_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int | float) or not math.isfinite(value):
        msg = f"{parameter_name} must be a finite number"
        raise InvalidParameterError(msg, parameter_name=parameter_name, value=value)


# -----------------------------------------------------------------------------
# Temperature
# -----------------------------------------------------------------------------


def get_temperature_limits(unit: TemperatureUnit) -> tuple[float, float]:
    """Return the (min, max) setpoint range for a unit."""
    if unit is TemperatureUnit.CELSIUS:
        return CELSIUS_MIN, CELSIUS_MAX
    return FAHRENHEIT_MIN, FAHRENHEIT_MAX


def round_temperature(temperature: float, unit: TemperatureUnit) -> float:
    """Round to the unit's precision: half degrees Celsius, whole degrees Fahrenheit.

    Halves round up, so repeated rounding is stable.
    """
    _require_finite(temperature, "temperature")
    if unit is TemperatureUnit.CELSIUS:
        return _round_half_up(temperature * 2) / 2
    return _round_half_up(temperature)


def convert_temperature(temperature: float, from_unit: TemperatureUnit, to_unit: TemperatureUnit) -> float:
    """Convert between Celsius and Fahrenheit."""
    if from_unit is to_unit:
        return temperature
    if from_unit is TemperatureUnit.CELSIUS:
        return temperature * 9 / 5 + 32
    return (temperature - 32) * 5 / 9


def validate_temperature(temperature: float, unit: TemperatureUnit) -> None:
    """Check a temperature lies inside the unit's setpoint range.

    Raises:
        InvalidParameterError: If the temperature is not finite or out of range.
    """
    _require_finite(temperature, "temperature")
    minimum, maximum = get_temperature_limits(unit)
    if not minimum <= temperature <= maximum:
        msg = f"Temperature {temperature}°{unit.value} is outside the allowed range {minimum}-{maximum}°{unit.value}"
        raise InvalidParameterError(msg, parameter_name="temperature", value=temperature)


def validate_setpoints(heating: float, cooling: float, deadband: float, unit: TemperatureUnit) -> None:
    """Check both setpoints are in range and at least ``deadband`` apart.

    Raises:
        InvalidParameterError: If a setpoint is out of range or the spread is too small.
    """
    validate_temperature(heating, unit)
    validate_temperature(cooling, unit)
    if cooling - heating < deadband:
        msg = (
            f"Cooling setpoint {cooling}°{unit.value} must be at least {deadband}° "
            f"above heating setpoint {heating}°{unit.value}"
        )
        raise InvalidParameterError(msg, parameter_name="deadband", value=cooling - heating)


def validate_temperature_config(
    *,
    deadband: float,
    unit: TemperatureUnit,
    heating: float | None = None,
    cooling: float | None = None,
    set_temp: float | None = None,
) -> None:
    """Validate the arguments of a setpoint command.

    A single ``set_temp`` is checked on its own; a heating/cooling pair is
    checked together with the deadband; a lone heating or cooling value is
    range-checked.

    Raises:
        InvalidParameterError: If nothing is given or any check fails.
    """
    if set_temp is not None:
        validate_temperature(set_temp, unit)
    elif heating is not None and cooling is not None:
        validate_setpoints(heating, cooling, deadband, unit)
    elif heating is not None or cooling is not None:
        for value in (heating, cooling):
            if value is not None:
                validate_temperature(value, unit)
    else:
        msg = "At least one temperature setpoint must be provided"
        raise InvalidParameterError(msg, parameter_name="temperature")


# -----------------------------------------------------------------------------
# Humidity and fan speed
# -----------------------------------------------------------------------------


def validate_humidity(humidity: float) -> None:
    """Check a humidity fraction lies in the supported 10%-65% range."""
    _require_finite(humidity, "humidity")
    if not HUMIDITY_MIN <= humidity <= HUMIDITY_MAX:
        msg = f"Humidity must be between {HUMIDITY_MIN:.0%} and {HUMIDITY_MAX:.0%}"
        raise InvalidParameterError(msg, parameter_name="humidity", value=humidity)


def round_humidity(humidity: float) -> float:
    """Snap a humidity fraction to the nearest supported setpoint (5% steps)."""
    validate_humidity(humidity)
    return min(HUMIDITY_SETPOINT_VALUES, key=lambda value: abs(humidity - value))


def validate_humidity_config(*, humidify: float | None = None, dehumidify: float | None = None) -> None:
    """Validate a humidify/dehumidify pair.

    Raises:
        InvalidParameterError: If neither is given, either is out of range, or
            humidify is not below dehumidify.
    """
    if humidify is None and dehumidify is None:
        msg = "At least one humidity setpoint must be provided"
        raise InvalidParameterError(msg, parameter_name="humidity")
    for value in (humidify, dehumidify):
        if value is not None:
            validate_humidity(value)
    if humidify is not None and dehumidify is not None and humidify >= dehumidify:
        msg = "Humidify setpoint must be less than dehumidify setpoint"
        raise InvalidParameterError(msg, parameter_name="humidify", value=humidify)


def _validate_fan_speed(speed: float) -> None:
    """Check a fan speed lies in 0-1."""
    _require_finite(speed, "fan_speed")
    if not FAN_SPEED_MIN <= speed <= FAN_SPEED_MAX:
        msg = f"Fan speed must be between {FAN_SPEED_MIN} and {FAN_SPEED_MAX}"
        raise InvalidParameterError(msg, parameter_name="fan_speed", value=speed)


def round_fan_speed(speed: float) -> float:
    """Round a fan speed to the nearest 0.1."""
    _validate_fan_speed(speed)
    return _round_half_up(speed * 10) / 10


# -----------------------------------------------------------------------------
# Generic
# -----------------------------------------------------------------------------


def validate_enum(value: EnumT | str, enum_type: type[EnumT], parameter_name: str) -> EnumT:
    """Coerce a member or its value to ``enum_type``.

    Raises:
        InvalidParameterError: If the value is not a member of ``enum_type``.
    """
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(str(member.value) for member in enum_type)
        msg = f"{parameter_name} must be one of: {allowed}"
        raise InvalidParameterError(msg, parameter_name=parameter_name, value=value) from exc


def validate_sensor_selection(active_sensor_ids: Iterable[int], available_sensor_ids: Iterable[int]) -> list[int]:
    """Check a sensor selection is non-empty and only names known sensors.

    Returns:
        The selection as a list.

    Raises:
        InvalidParameterError: If the selection is empty or names an unknown sensor.
    """
    selected = list(active_sensor_ids)
    available = set(available_sensor_ids)
    if not selected:
        msg = "At least one sensor must be selected"
        raise InvalidParameterError(msg, parameter_name="active_sensor_ids", value=selected)
    for sensor_id in selected:
        if sensor_id not in available:
            choices = ", ".join(str(item) for item in sorted(available))
            msg = f"Sensor ID {sensor_id} is not available. Available sensors: {choices}"
            raise InvalidParameterError(msg, parameter_name="active_sensor_ids", value=sensor_id)
    return selected
