"""Normalization of Trane Home API payloads.

The vendor serves thermostats in two shapes:

* a **canonical** shape where ``settings`` and/or ``features`` are objects and
  zones are listed explicitly, and
* a **feature-array** shape where ``features`` is a list of named blocks
  (``advanced_info``, ``thermostat``, ``thermostat_mode``, ``room_iq_sensors``,
  ...), ``settings`` is a list of typed setting blocks and the single zone has
  to be synthesized from the ``thermostat`` block.

The shape is detected once per payload by :func:`detect_payload_format` and
both paths produce the same :class:`~pytranehome.models.CanonicalThermostat`,
so nothing downstream needs to know which shape the vendor used. All
functions here are pure.
"""

from __future__ import annotations

import logging
import re
from dataclasses import fields
from enum import Enum
from typing import Any

from pytranehome.const import (
    CONTENT_TYPE_LOCATION,
    DEFAULT_COOLING_SETPOINT,
    DEFAULT_DEADBAND,
    DEFAULT_HEATING_SETPOINT,
    FEATURE_ADVANCED_INFO,
    FEATURE_CONNECTION,
    FEATURE_ROOM_IQ_SENSORS,
    FEATURE_THERMOSTAT,
    FEATURE_THERMOSTAT_MODE,
    FEATURE_THERMOSTAT_RUN_MODE,
    SETTING_AIR_CLEANER_MODE,
    SETTING_DEHUMIDIFY,
    SETTING_EMERGENCY_HEAT,
    SETTING_FAN_MODE,
    SETTING_FAN_SPEED,
    SETTING_HUMIDIFY,
    SETTING_SCHEDULING_ENABLED,
    THERMOSTAT_FEATURE_NAMES,
    UNKNOWN,
    OperationMode,
    PresetMode,
    SensorType,
    TemperatureUnit,
)
from pytranehome.exceptions import ParseError
from pytranehome.models import (
    Automation,
    CanonicalSensor,
    CanonicalThermostat,
    CanonicalZone,
    HomeInfo,
    ThermostatFeatures,
)


__all__ = [
    "PayloadFormat",
    "detect_payload_format",
    "extract_zone_id",
    "find_labeled_value",
    "is_thermostat_item",
    "normalize_automation",
    "normalize_sensor",
    "normalize_thermostat",
    "normalize_zone",
    "parse_session_homes",
    "percent_to_fraction",
    "unwrap_result",
]

_LOGGER = logging.getLogger(__name__)

ZONE_IDENTIFIER_PATTERN = re.compile(r"XxlZone-(\d+)")


class PayloadFormat(Enum):
    """Shape of a thermostat payload."""

    CANONICAL = "canonical"
    FEATURE_ARRAY = "feature_array"


# -----------------------------------------------------------------------------
# Generic helpers
# -----------------------------------------------------------------------------


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _first_present(*values: Any) -> Any:
    """Return the first value that is not None."""
    return next((value for value in values if value is not None), None)


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _self_href(raw: dict[str, Any]) -> str | None:
    href = _as_dict(_as_dict(_as_dict(raw.get("_links")).get("self"))).get("href")
    return href if isinstance(href, str) and href else None


def _find_named(blocks: list[Any], name: str) -> dict[str, Any] | None:
    return next((block for block in blocks if isinstance(block, dict) and block.get("name") == name), None)


def _find_typed(blocks: list[Any], setting_type: str) -> dict[str, Any] | None:
    return next((block for block in blocks if isinstance(block, dict) and block.get("type") == setting_type), None)


def _parse_mode(value: Any) -> OperationMode | None:
    if not isinstance(value, str):
        return None
    try:
        return OperationMode(value.upper())
    except ValueError:
        return None


def _parse_preset(value: Any) -> PresetMode | None:
    try:
        return PresetMode(value)
    except (TypeError, ValueError):
        return None


def unwrap_result(payload: Any) -> Any:
    """Return ``payload["result"]`` for wrapped vendor responses, else the payload itself."""
    if isinstance(payload, dict) and isinstance(payload.get("result"), dict):
        return payload["result"]
    return payload


def percent_to_fraction(value: Any) -> float | None:
    """Convert a 0-100 percentage to a 0-1 fraction, or None when absent/invalid."""
    number = _to_float(value)
    return None if number is None else number / 100


def find_labeled_value(items: Any, label: str) -> Any:
    """Return ``value`` of the first ``{"label": ..., "value": ...}`` item matching ``label``."""
    for item in _as_list(items):
        if isinstance(item, dict) and item.get("label") == label:
            return item.get("value")
    return None


def extract_zone_id(identifier: Any, fallback: str) -> str:
    """Extract the numeric zone id from an ``XxlZone-<digits>`` identifier.

    Args:
        identifier: Device identifier from the thermostat feature block.
        fallback: Id to use when the identifier does not match.

    Returns:
        The digits following ``XxlZone-``, or ``fallback``.
    """
    if isinstance(identifier, str) and (match := ZONE_IDENTIFIER_PATTERN.search(identifier)):
        return match.group(1)
    return fallback


def is_thermostat_item(item: Any) -> bool:
    """Return True if a collection item carries thermostat feature blocks."""
    if not isinstance(item, dict):
        return False
    return any(
        isinstance(feature, dict) and feature.get("name") in THERMOSTAT_FEATURE_NAMES
        for feature in _as_list(item.get("features"))
    )


def detect_payload_format(raw: dict[str, Any]) -> PayloadFormat:
    """Classify a thermostat payload.

    A payload whose ``settings`` or ``features`` member is an object is
    canonical; anything else is treated as the feature-array shape.
    """
    if isinstance(raw.get("settings"), dict) or isinstance(raw.get("features"), dict):
        return PayloadFormat.CANONICAL
    return PayloadFormat.FEATURE_ARRAY


# -----------------------------------------------------------------------------
# Sensors, zones, automations
# -----------------------------------------------------------------------------


def _parse_sensor_type(value: Any) -> SensorType:
    if isinstance(value, str) and value.lower() == SensorType.THERMOSTAT.value.lower():
        return SensorType.THERMOSTAT
    return SensorType.ROOM_IQ


def normalize_sensor(raw: Any) -> CanonicalSensor:
    """Build a sensor record.

    Battery data is read from a nested ``battery`` object when present,
    otherwise from flat ``battery_*`` fields.

    Raises:
        ParseError: If the payload is not an object or has no integer id.
    """
    if not isinstance(raw, dict):
        msg = "Sensor payload must be an object"
        raise ParseError(msg, data=raw)
    try:
        sensor_id = int(raw["id"])
    except (KeyError, TypeError, ValueError) as exc:
        msg = "Sensor payload has no valid id"
        raise ParseError(msg, data=raw) from exc

    battery = _as_dict(raw.get("battery"))
    level = _first_present(battery.get("level"), raw.get("battery_level"))
    serial = _first_present(raw.get("serial_number"), raw.get("serialNumber"))

    return CanonicalSensor(
        sensor_id=sensor_id,
        name=raw.get("name") or "Unknown Sensor",
        sensor_type=_parse_sensor_type(raw.get("type")),
        serial_number=str(serial) if serial is not None else None,
        weight=_to_float(raw.get("weight")) or 0.0,
        temperature=_to_float(raw.get("temperature")),
        temperature_valid=bool(raw.get("temperature_valid")),
        humidity=_to_float(raw.get("humidity")),
        humidity_valid=bool(raw.get("humidity_valid")),
        connected=raw.get("connected") if isinstance(raw.get("connected"), bool) else None,
        has_online=bool(raw.get("has_online")),
        has_battery=bool(raw.get("has_battery")),
        battery_level=int(level) if isinstance(level, int | float) and not isinstance(level, bool) else None,
        battery_low=bool(_first_present(battery.get("low"), raw.get("battery_low"))),
        battery_valid=bool(_first_present(battery.get("valid"), raw.get("battery_valid"))),
    )


def _normalize_sensors(raw_sensors: Any) -> dict[int, CanonicalSensor]:
    sensors: dict[int, CanonicalSensor] = {}
    for raw_sensor in _as_list(raw_sensors):
        try:
            sensor = normalize_sensor(raw_sensor)
        except ParseError as err:
            _LOGGER.warning("Skipping sensor: %s", err)
            continue
        sensors[sensor.sensor_id] = sensor
    return sensors


def normalize_zone(raw: Any) -> CanonicalZone:
    """Build a zone record from a canonical zone payload.

    Fields are read with the vendor's fallbacks (top-level value, then
    ``settings``/``setpoints``/``features``). Missing setpoints default to
    70/75 and a missing setpoint status to "Unknown".

    Raises:
        ParseError: If the payload is not an object or has no id.
    """
    if not isinstance(raw, dict):
        msg = "Zone payload must be an object"
        raise ParseError(msg, data=raw)

    zone_id = _first_present(raw.get("zone_id"), raw.get("id"))
    if zone_id is None:
        msg = "Zone payload has no id"
        raise ParseError(msg, data=raw)

    settings = _as_dict(raw.get("settings"))
    features = _as_dict(raw.get("features"))
    setpoints = _as_dict(raw.get("setpoints"))

    heating = _first_present(raw.get("heating_setpoint"), setpoints.get("heat"), features.get("heating_setpoint"))
    cooling = _first_present(raw.get("cooling_setpoint"), setpoints.get("cool"), features.get("cooling_setpoint"))
    presets = tuple(
        preset for preset in (_parse_preset(item) for item in _as_list(settings.get("available_presets"))) if preset
    )

    return CanonicalZone(
        zone_id=str(zone_id),
        name=raw.get("name") or f"Zone {zone_id}",
        temperature=_to_float(_first_present(raw.get("temperature"), settings.get("temperature"))),
        heating_setpoint=_to_float(heating) if heating is not None else DEFAULT_HEATING_SETPOINT,
        cooling_setpoint=_to_float(cooling) if cooling is not None else DEFAULT_COOLING_SETPOINT,
        current_mode=_parse_mode(_first_present(raw.get("current_zone_mode"), features.get("current_mode"))),
        requested_mode=_parse_mode(features.get("requested_mode")),
        setpoint_status=features.get("setpoint_status") or UNKNOWN,
        preset=_parse_preset(features.get("preset") or features.get("preset_selected")),
        available_presets=presets,
        is_calling=bool(features.get("is_calling")),
        status=settings.get("status"),
        is_native_zone=bool(settings.get("native_zone")),
        sensors=_normalize_sensors(raw.get("sensors")),
        self_href=_self_href(raw),
        raw_data=raw,
    )


def normalize_automation(raw: Any) -> Automation:
    """Build an automation record.

    Raises:
        ParseError: If the payload is not an object or has no id.
    """
    if not isinstance(raw, dict) or raw.get("id") is None:
        msg = "Automation payload has no id"
        raise ParseError(msg, data=raw)
    return Automation(
        automation_id=str(raw["id"]),
        name=raw.get("name") or "Unknown Automation",
        description=raw.get("description") or "",
        enabled=bool(raw.get("enabled")),
        self_href=_self_href(raw),
        raw_data=raw,
    )


# -----------------------------------------------------------------------------
# Thermostats
# -----------------------------------------------------------------------------


def normalize_thermostat(raw: Any) -> CanonicalThermostat:
    """Build a thermostat record from either payload shape.

    Args:
        raw: Thermostat payload (optionally wrapped in ``{"result": ...}``).

    Returns:
        The canonical thermostat with its zones and sensors.

    Raises:
        ParseError: If the payload is not an object or has no id.
    """
    raw = unwrap_result(raw)
    if not isinstance(raw, dict):
        msg = "Thermostat payload must be an object"
        raise ParseError(msg, data=raw)
    if raw.get("id") is None:
        msg = "Thermostat payload has no id"
        raise ParseError(msg, data=raw)

    if detect_payload_format(raw) is PayloadFormat.CANONICAL:
        return _normalize_canonical(raw)
    return _normalize_feature_array(raw)


def _parse_unit(value: Any) -> TemperatureUnit:
    if isinstance(value, str) and value.upper() == TemperatureUnit.CELSIUS.value:
        return TemperatureUnit.CELSIUS
    return TemperatureUnit.FAHRENHEIT


def _normalize_canonical(raw: dict[str, Any]) -> CanonicalThermostat:
    thermostat_id = str(raw["id"])
    settings = _as_dict(raw.get("settings"))
    features = _as_dict(raw.get("features"))

    zones: dict[str, CanonicalZone] = {}
    for raw_zone in _as_list(raw.get("zones")):
        try:
            zone = normalize_zone(raw_zone)
        except ParseError as err:
            _LOGGER.warning("Skipping zone of thermostat %s: %s", thermostat_id, err)
            continue
        zones[zone.zone_id] = zone

    fan_modes = tuple(str(mode) for mode in _as_list(settings.get("fan_modes")))

    return CanonicalThermostat(
        thermostat_id=thermostat_id,
        name=raw.get("name") or f"Thermostat {thermostat_id}",
        model=raw.get("model") or UNKNOWN,
        firmware=raw.get("firmware") or UNKNOWN,
        is_online=raw.get("is_online") is not False,
        features=ThermostatFeatures(
            **{flag.name: bool(features.get(flag.name)) for flag in fields(ThermostatFeatures)}
        ),
        temperature_unit=_parse_unit(settings.get("temperature_unit")),
        deadband=_to_float(settings.get("deadband")) or DEFAULT_DEADBAND,
        system_status=settings.get("system_status"),
        relative_humidity=_to_float(settings.get("relative_humidity")),
        outdoor_temperature=_to_float(settings.get("outdoor_temperature")),
        fan_mode=settings.get("fan_mode"),
        fan_modes=fan_modes,
        fan_speed=_to_float(settings.get("fan_speed")),
        air_cleaner_mode=settings.get("air_cleaner_mode"),
        emergency_heat_active=bool(settings.get("emergency_heat_active")),
        scheduling_enabled=settings.get("scheduling_enabled"),
        compressor_speed=_to_float(settings.get("current_compressor_speed")),
        humidify_setpoint=_to_float(settings.get("humidify_setpoint")),
        dehumidify_setpoint=_to_float(settings.get("dehumidify_setpoint")),
        zones=zones,
        self_href=_self_href(raw),
        raw_data=raw,
    )


def _setting_options(block: dict[str, Any] | None) -> tuple[str, ...]:
    if block is None:
        return ()
    values = (option.get("value") for option in _as_list(block.get("values")) if isinstance(option, dict))
    return tuple(str(value) for value in values if value is not None)


def _synthesize_zone(thermostat_id: str, name: str | None, blocks: list[Any]) -> CanonicalZone | None:
    """Build the single zone of a feature-array thermostat from its feature blocks."""
    thermostat = _find_named(blocks, FEATURE_THERMOSTAT)
    if thermostat is None:
        return None

    mode = _find_named(blocks, FEATURE_THERMOSTAT_MODE) or {}
    run_mode = _find_named(blocks, FEATURE_THERMOSTAT_RUN_MODE) or {}
    room_sensors = _as_list(_as_dict(_find_named(blocks, FEATURE_ROOM_IQ_SENSORS)).get("sensors"))

    # A valid reading from the primary room sensor beats the thermostat's own.
    temperature = thermostat.get("temperature")
    if room_sensors and isinstance(room_sensors[0], dict) and room_sensors[0].get("temperature_valid"):
        temperature = room_sensors[0].get("temperature")

    operating_state = thermostat.get("operating_state")
    zone_payload = {
        "id": extract_zone_id(thermostat.get("device_identifier"), thermostat_id),
        "name": name or "Zone 1",
        "features": {
            "heating_setpoint": thermostat.get("setpoint_heat"),
            "cooling_setpoint": thermostat.get("setpoint_cool"),
            "current_mode": mode.get("value"),
            "setpoint_status": run_mode.get("value"),
            "is_calling": operating_state is not None and operating_state != "idle",
        },
        "settings": {
            "temperature": temperature,
            "status": operating_state or thermostat.get("status"),
        },
        "sensors": room_sensors,
    }
    return normalize_zone(zone_payload)


def _normalize_feature_array(raw: dict[str, Any]) -> CanonicalThermostat:
    thermostat_id = str(raw["id"])
    blocks = _as_list(raw.get("features"))
    settings = _as_list(raw.get("settings"))

    advanced_info = _find_named(blocks, FEATURE_ADVANCED_INFO) or {}
    thermostat = _find_named(blocks, FEATURE_THERMOSTAT) or {}
    connection = _find_named(blocks, FEATURE_CONNECTION) or {}

    humidify = _find_typed(settings, SETTING_HUMIDIFY)
    dehumidify = _find_typed(settings, SETTING_DEHUMIDIFY)
    air_cleaner = _find_typed(settings, SETTING_AIR_CLEANER_MODE)
    fan_mode = _find_typed(settings, SETTING_FAN_MODE)
    fan_speed = _find_typed(settings, SETTING_FAN_SPEED)
    emergency_heat = _find_typed(settings, SETTING_EMERGENCY_HEAT)
    scheduling = _find_typed(settings, SETTING_SCHEDULING_ENABLED)

    zones: dict[str, CanonicalZone] = {}
    if (zone := _synthesize_zone(thermostat_id, raw.get("name"), blocks)) is not None:
        zones[zone.zone_id] = zone

    is_connected = connection.get("is_connected")

    return CanonicalThermostat(
        thermostat_id=thermostat_id,
        name=raw.get("name") or f"Thermostat {thermostat_id}",
        model=find_labeled_value(advanced_info.get("items"), "Model") or UNKNOWN,
        firmware=find_labeled_value(advanced_info.get("items"), "Firmware Version") or UNKNOWN,
        is_online=is_connected is not False,
        features=ThermostatFeatures(
            has_outdoor_temperature=bool(raw.get("has_outdoor_temperature")),
            has_relative_humidity=bool(raw.get("has_indoor_humidity")),
            has_emergency_heat=emergency_heat is not None,
            has_variable_fan_speed=fan_speed is not None,
            has_dehumidify_support=dehumidify is not None,
            has_humidify_support=humidify is not None,
            has_air_cleaner=air_cleaner is not None,
        ),
        temperature_unit=_parse_unit(thermostat.get("scale")),
        deadband=_to_float(thermostat.get("setpoint_delta")) or DEFAULT_DEADBAND,
        system_status=thermostat.get("system_status") or thermostat.get("status"),
        relative_humidity=percent_to_fraction(raw.get("indoor_humidity")),
        outdoor_temperature=_to_float(raw.get("outdoor_temperature")),
        fan_mode=fan_mode.get("current_value") if fan_mode else None,
        fan_modes=_setting_options(fan_mode),
        fan_speed=_to_float(fan_speed.get("current_value")) if fan_speed else None,
        air_cleaner_mode=air_cleaner.get("current_value") if air_cleaner else None,
        emergency_heat_active=bool(emergency_heat.get("current_value")) if emergency_heat else False,
        scheduling_enabled=scheduling.get("current_value") if scheduling else None,
        humidify_setpoint=_to_float(humidify.get("current_value")) if humidify else None,
        dehumidify_setpoint=_to_float(dehumidify.get("current_value")) if dehumidify else None,
        zones=zones,
        self_href=_self_href(raw),
        raw_data=raw,
    )


# -----------------------------------------------------------------------------
# Session discovery
# -----------------------------------------------------------------------------


def parse_session_homes(result: Any) -> list[HomeInfo]:
    """Extract houses from a session discovery result.

    Location children under ``_links.child`` are preferred; the legacy
    ``homes`` list is used when there are none.
    """
    result = _as_dict(result)
    homes: list[HomeInfo] = []

    for child in _as_list(_as_dict(result.get("_links")).get("child")):
        if not isinstance(child, dict) or child.get("type") != CONTENT_TYPE_LOCATION:
            continue
        data = _as_dict(child.get("data"))
        if (house_id := _to_int(data.get("id"))) is None:
            continue
        homes.append(HomeInfo(house_id=house_id, name=data.get("name") or "Home"))

    if homes:
        return homes

    for home in _as_list(result.get("homes")):
        if not isinstance(home, dict):
            continue
        house_id = _to_int(_first_present(home.get("id"), home.get("house_id")))
        if house_id is None:
            continue
        homes.append(HomeInfo(house_id=house_id, name=home.get("name") or "Home"))

    return homes
