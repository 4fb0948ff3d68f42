"""Device objects for Trane Home thermostats, zones, sensors and automations.

Each object wraps an immutable canonical record produced by the normalizer.
Reads never touch the network. Commands post to the vendor, then ask the
client for a delayed refresh so the new state is read back once the
thermostat has had time to apply it. A refresh replaces every record and
device object wholesale; hold on to the client, not to a device object, when
you need current state after a command.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pytranehome.const import (
    BATTERY_CRITICAL,
    BATTERY_LOW,
    BLOWER_OFF_STATUSES,
    ENDPOINT_THERMOSTATS,
    ENDPOINT_ZONES,
    AirCleanerMode,
    BatteryStatus,
    FanMode,
    HoldMode,
    OperationMode,
    PresetMode,
    SensorType,
    SystemStatus,
    TemperatureUnit,
    ThermostatOperation,
    ZoneOperation,
    ZoneStatus,
)
from pytranehome.exceptions import (
    DeviceNotFoundError,
    FeatureNotSupportedError,
    InvalidParameterError,
    TraneError,
)
from pytranehome.validation import (
    get_temperature_limits,
    round_fan_speed,
    round_humidity,
    round_temperature,
    validate_enum,
    validate_humidity_config,
    validate_sensor_selection,
    validate_setpoints,
    validate_temperature_config,
)


if TYPE_CHECKING:
    from collections.abc import Iterable

    from pytranehome.client import TraneClient
    from pytranehome.models import (
        Automation,
        CanonicalSensor,
        CanonicalThermostat,
        CanonicalZone,
        ThermostatFeatures,
    )

_LOGGER = logging.getLogger(__name__)


class TraneSensor:
    """Read-only view of a room sensor."""

    def __init__(self, record: CanonicalSensor) -> None:
        """Initialize the sensor.

        Args:
            record: Normalized sensor record.
        """
        self._record = record

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"TraneSensor(id={self.sensor_id}, name={self.name!r}, active={self.is_active})"

    @property
    def record(self) -> CanonicalSensor:
        """Get the underlying record."""
        return self._record

    @property
    def sensor_id(self) -> int:
        """Get the sensor id."""
        return self._record.sensor_id

    @property
    def name(self) -> str:
        """Get the sensor name."""
        return self._record.name

    @property
    def sensor_type(self) -> SensorType:
        """Get the sensor type."""
        return self._record.sensor_type

    @property
    def serial_number(self) -> str | None:
        """Get the serial number."""
        return self._record.serial_number

    @property
    def weight(self) -> float:
        """Get the sensor's weight in the zone reading."""
        return self._record.weight

    @property
    def is_active(self) -> bool:
        """Return True if the sensor contributes to the zone temperature."""
        return self._record.is_active

    @property
    def is_connected(self) -> bool | None:
        """Return connectivity, or None when the sensor does not report it."""
        return self._record.connected

    @property
    def temperature(self) -> float | None:
        """Get the last reading, or None when it is not valid."""
        return self._record.temperature if self._record.temperature_valid else None

    @property
    def humidity(self) -> float | None:
        """Get the last humidity reading, or None when it is not valid."""
        return self._record.humidity if self._record.humidity_valid else None

    @property
    def battery_level(self) -> int | None:
        """Get the battery percentage."""
        return self._record.battery_level

    @property
    def battery_status(self) -> BatteryStatus:
        """Classify the battery level."""
        record = self._record
        if not record.has_battery or record.battery_level is None or not record.battery_valid:
            return BatteryStatus.UNKNOWN
        if record.battery_level <= BATTERY_CRITICAL:
            return BatteryStatus.CRITICAL
        if record.battery_level <= BATTERY_LOW:
            return BatteryStatus.LOW
        return BatteryStatus.GOOD


class TraneZone:
    """A heating/cooling zone of a thermostat.

    Example:
        ```python
        zone = client.get_thermostats()[0].zones[0]
        await zone.set_mode(OperationMode.AUTO)
        await zone.set_temperatures(heating_setpoint=68, cooling_setpoint=74)
        await zone.select_active_sensors([1, 2])
        ```
    """

    def __init__(self, client: TraneClient, thermostat: TraneThermostat, record: CanonicalZone) -> None:
        """Initialize the zone.

        Args:
            client: Client used to send commands and refresh state.
            thermostat: Owning thermostat (non-owning back-reference).
            record: Normalized zone record.
        """
        self._client = client
        self._thermostat = thermostat
        self._record = record
        self._sensors = {sensor_id: TraneSensor(sensor) for sensor_id, sensor in record.sensors.items()}

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"TraneZone(id={self.zone_id!r}, name={self.name!r})"

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def record(self) -> CanonicalZone:
        """Get the underlying record."""
        return self._record

    @property
    def thermostat(self) -> TraneThermostat:
        """Get the owning thermostat."""
        return self._thermostat

    @property
    def zone_id(self) -> str:
        """Get the zone id."""
        return self._record.zone_id

    @property
    def name(self) -> str:
        """Get the zone name."""
        return self._record.name

    @property
    def is_native_zone(self) -> bool:
        """Return True for the thermostat's own zone."""
        return self._record.is_native_zone

    @property
    def current_temperature(self) -> float | None:
        """Get the current temperature."""
        return self._record.temperature

    @property
    def heating_setpoint(self) -> float | None:
        """Get the heating setpoint."""
        return self._record.heating_setpoint

    @property
    def cooling_setpoint(self) -> float | None:
        """Get the cooling setpoint."""
        return self._record.cooling_setpoint

    @property
    def current_mode(self) -> OperationMode:
        """Get the operation mode (OFF when not reported)."""
        return self._record.current_mode or OperationMode.OFF

    @property
    def requested_mode(self) -> OperationMode:
        """Get the requested operation mode (OFF when not reported)."""
        return self._record.requested_mode or OperationMode.OFF

    @property
    def available_modes(self) -> list[OperationMode]:
        """Get the selectable operation modes."""
        return [OperationMode.AUTO, OperationMode.HEAT, OperationMode.COOL, OperationMode.OFF]

    @property
    def setpoint_status(self) -> str | None:
        """Get the hold/schedule status text."""
        return self._record.setpoint_status

    @property
    def is_in_permanent_hold(self) -> bool:
        """Return True if the zone ignores its schedule indefinitely."""
        status = (self._record.setpoint_status or "").lower()
        return "hold" in status and "schedule" not in status

    @property
    def is_calling(self) -> bool:
        """Return True if the zone is demanding heating or cooling."""
        return self._record.is_calling

    @property
    def zone_status(self) -> ZoneStatus:
        """Get the demand status."""
        return ZoneStatus.CALLING if self._record.is_calling else ZoneStatus.IDLE

    @property
    def current_preset(self) -> PresetMode | None:
        """Get the selected preset."""
        return self._record.preset

    @property
    def available_presets(self) -> list[PresetMode]:
        """Get the selectable presets."""
        return list(self._record.available_presets) or list(PresetMode)

    @property
    def sensors(self) -> list[TraneSensor]:
        """Get the zone's room sensors."""
        return list(self._sensors.values())

    @property
    def sensor_ids(self) -> list[int]:
        """Get the ids of the zone's room sensors."""
        return list(self._sensors)

    @property
    def active_sensor_ids(self) -> frozenset[int]:
        """Get the ids of sensors contributing to the zone reading."""
        return self._record.active_sensor_ids

    def get_sensor_by_id(self, sensor_id: int) -> TraneSensor | None:
        """Look up a sensor by id."""
        return self._sensors.get(sensor_id)

    def round_temperature(self, temperature: float) -> float:
        """Round a temperature to the thermostat's precision."""
        return round_temperature(temperature, self._thermostat.temperature_unit)

    def validate_temperature_setpoints(self, heating: float, cooling: float) -> bool:
        """Return True if the pair respects the limits and the deadband."""
        try:
            validate_setpoints(heating, cooling, self._thermostat.deadband, self._thermostat.temperature_unit)
        except InvalidParameterError:
            return False
        return True

    def is_at_desired_temperature(self) -> bool:
        """Return True if the current temperature lies within the active setpoints."""
        temperature = self.current_temperature
        if temperature is None:
            return False
        mode = self.current_mode
        if mode is OperationMode.HEAT:
            return self.heating_setpoint is not None and temperature >= self.heating_setpoint
        if mode is OperationMode.COOL:
            return self.cooling_setpoint is not None and temperature <= self.cooling_setpoint
        if mode is OperationMode.AUTO:
            return (
                self.heating_setpoint is not None
                and self.cooling_setpoint is not None
                and self.heating_setpoint <= temperature <= self.cooling_setpoint
            )
        return True

    # -------------------------------------------------------------------------
    # Control Methods
    # -------------------------------------------------------------------------

    def _endpoint(self, operation: ZoneOperation) -> str:
        if self._record.self_href:
            return f"{self._record.self_href}/{operation.value}"
        return f"{ENDPOINT_ZONES}/{self.zone_id}/{operation.value}"

    async def _send(self, operation: ZoneOperation, payload: dict[str, Any]) -> None:
        await self._client.post(self._endpoint(operation), payload)
        await self._client.delayed_update()

    def _setpoint_payload(
        self,
        heating_setpoint: float | None,
        cooling_setpoint: float | None,
        set_temp: float | None,
    ) -> dict[str, Any]:
        validate_temperature_config(
            deadband=self._thermostat.deadband,
            unit=self._thermostat.temperature_unit,
            heating=heating_setpoint,
            cooling=cooling_setpoint,
            set_temp=set_temp,
        )
        if set_temp is not None:
            return {"setpoint": self.round_temperature(set_temp)}

        payload: dict[str, Any] = {}
        if heating_setpoint is not None:
            payload["heating_setpoint"] = self.round_temperature(heating_setpoint)
        if cooling_setpoint is not None:
            payload["cooling_setpoint"] = self.round_temperature(cooling_setpoint)
        return payload

    async def set_mode(self, mode: OperationMode | str) -> None:
        """Change the operation mode.

        Args:
            mode: AUTO, COOL, HEAT or OFF.

        Raises:
            InvalidParameterError: If the mode is unknown or not available.
        """
        valid_mode = validate_enum(mode, OperationMode, "mode")
        if valid_mode not in self.available_modes:
            msg = f"Mode '{valid_mode.value}' is not available for zone {self.zone_id}"
            raise InvalidParameterError(msg, parameter_name="mode", value=valid_mode.value)
        await self._send(ZoneOperation.ZONE_MODE, {"zone_mode": valid_mode.value})

    async def set_temperatures(
        self,
        *,
        heating_setpoint: float | None = None,
        cooling_setpoint: float | None = None,
        set_temp: float | None = None,
    ) -> None:
        """Change the setpoints.

        ``set_temp`` sets a single setpoint; otherwise heating and/or cooling
        setpoints are sent. Values are rounded to the thermostat's precision.

        Raises:
            InvalidParameterError: If a value is out of range or the deadband is violated.
        """
        payload = self._setpoint_payload(heating_setpoint, cooling_setpoint, set_temp)
        await self._send(ZoneOperation.SETPOINTS, payload)

    async def set_heating_setpoint(self, temperature: float) -> None:
        """Change only the heating setpoint."""
        await self.set_temperatures(heating_setpoint=temperature)

    async def set_cooling_setpoint(self, temperature: float) -> None:
        """Change only the cooling setpoint."""
        await self.set_temperatures(cooling_setpoint=temperature)

    async def set_permanent_hold(
        self,
        *,
        heating_setpoint: float | None = None,
        cooling_setpoint: float | None = None,
        set_temp: float | None = None,
    ) -> None:
        """Hold the zone indefinitely, optionally at new setpoints."""
        payload: dict[str, Any] = {"run_mode": HoldMode.PERMANENT_HOLD.value}
        if heating_setpoint is not None or cooling_setpoint is not None or set_temp is not None:
            payload.update(self._setpoint_payload(heating_setpoint, cooling_setpoint, set_temp))
        await self._send(ZoneOperation.RUN_MODE, payload)

    async def return_to_schedule(self) -> None:
        """Resume the programmed schedule."""
        await self._send(ZoneOperation.RETURN_TO_SCHEDULE, {"run_mode": HoldMode.RUN_SCHEDULE.value})

    async def set_preset(self, preset: PresetMode | str) -> None:
        """Select a preset.

        Raises:
            InvalidParameterError: If the preset is unknown or not available.
        """
        valid_preset = validate_enum(preset, PresetMode, "preset")
        if valid_preset not in self.available_presets:
            available = ", ".join(item.value for item in self.available_presets)
            msg = f"Preset '{valid_preset.value}' is not available. Available presets: {available}"
            raise InvalidParameterError(msg, parameter_name="preset", value=valid_preset.value)
        await self._send(ZoneOperation.PRESET_SELECTED, {"preset": valid_preset.value})

    async def set_home(self) -> None:
        """Select the Home preset."""
        await self.set_preset(PresetMode.HOME)

    async def set_away(self) -> None:
        """Select the Away preset."""
        await self.set_preset(PresetMode.AWAY)

    async def set_sleep(self) -> None:
        """Select the Sleep preset."""
        await self.set_preset(PresetMode.SLEEP)

    async def load_current_sensor_state(self) -> None:
        """Ask the thermostat to report fresh sensor readings, then refresh."""
        await self._client.post(self._endpoint(ZoneOperation.REQUEST_CURRENT_SENSOR_STATE), {})
        await asyncio.sleep(self._client.sensor_state_delay)
        await self._thermostat.refresh()

    def _fresh_active_sensor_ids(self) -> frozenset[int]:
        """Read the active set from the zone the client holds after the last refresh."""
        thermostat = self._client.get_thermostat_by_id(self._thermostat.thermostat_id)
        zone = thermostat.get_zone_by_id(self.zone_id) if thermostat else None
        return zone.active_sensor_ids if zone else self.active_sensor_ids

    async def select_active_sensors(
        self,
        active_sensor_ids: Iterable[int],
        *,
        poll_interval: float | None = None,
        max_polls: int | None = None,
    ) -> bool:
        """Choose which room sensors drive the zone temperature.

        The selection is posted, then sensor state is polled until the vendor
        reports exactly the requested set or ``max_polls`` is reached.

        Args:
            active_sensor_ids: Sensors to activate; must be non-empty and known.
            poll_interval: Seconds between polls. Defaults to the client setting.
            max_polls: Maximum polls. Defaults to the client setting.

        Returns:
            True if the vendor confirmed the selection, False if polling gave up.

        Raises:
            InvalidParameterError: If the selection is empty or names an unknown sensor.
        """
        selected = validate_sensor_selection(active_sensor_ids, self.sensor_ids)
        expected = frozenset(selected)
        interval = self._client.sensor_poll_interval if poll_interval is None else poll_interval
        polls = self._client.sensor_max_polls if max_polls is None else max_polls

        await self._client.post(self._endpoint(ZoneOperation.UPDATE_ACTIVE_SENSORS), {"active_sensor_ids": selected})

        confirmed = False
        for attempt in range(1, polls + 1):
            await asyncio.sleep(interval)
            try:
                await self.load_current_sensor_state()
            except TraneError as err:
                _LOGGER.warning("Failed to load sensor state on poll %d for zone %s: %s", attempt, self.zone_id, err)
                continue
            if self._fresh_active_sensor_ids() == expected:
                _LOGGER.debug("Sensor selection for zone %s confirmed after %d polls", self.zone_id, attempt)
                confirmed = True
                break
        else:
            _LOGGER.warning("Sensor selection for zone %s not confirmed after %d polls", self.zone_id, polls)

        await self._client.delayed_update()
        return confirmed


class TraneThermostat:
    """A thermostat and its zones.

    Example:
        ```python
        thermostat = client.get_thermostat_by_id("123")
        print(thermostat.system_status, thermostat.relative_humidity)
        if thermostat.has_dehumidify_support:
            await thermostat.set_dehumidify_setpoint(0.5)
        await thermostat.set_fan_mode(FanMode.AUTO)
        ```
    """

    def __init__(self, client: TraneClient, record: CanonicalThermostat) -> None:
        """Initialize the thermostat.

        Args:
            client: Client used to send commands and refresh state.
            record: Normalized thermostat record.
        """
        self._client = client
        self._record = record
        self._zones = {zone_id: TraneZone(client, self, zone) for zone_id, zone in record.zones.items()}

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"TraneThermostat(id={self.thermostat_id!r}, name={self.name!r}, model={self.model!r})"

    # -------------------------------------------------------------------------
    # Device Info Properties
    # -------------------------------------------------------------------------

    @property
    def record(self) -> CanonicalThermostat:
        """Get the underlying record."""
        return self._record

    @property
    def raw_data(self) -> dict[str, Any]:
        """Get the payload the record was built from."""
        return self._record.raw_data

    @property
    def thermostat_id(self) -> str:
        """Get the thermostat id."""
        return self._record.thermostat_id

    @property
    def name(self) -> str:
        """Get the thermostat name."""
        return self._record.name

    @property
    def model(self) -> str:
        """Get the hardware model."""
        return self._record.model

    @property
    def firmware(self) -> str:
        """Get the firmware version."""
        return self._record.firmware

    @property
    def is_online(self) -> bool:
        """Return True if the thermostat is connected."""
        return self._record.is_online

    @property
    def temperature_unit(self) -> TemperatureUnit:
        """Get the display unit."""
        return self._record.temperature_unit

    @property
    def deadband(self) -> float:
        """Get the minimum heating/cooling setpoint spread."""
        return self._record.deadband

    @property
    def setpoint_limits(self) -> tuple[float, float]:
        """Get the (min, max) setpoint range for the display unit."""
        return get_temperature_limits(self.temperature_unit)

    # -------------------------------------------------------------------------
    # Capabilities
    # -------------------------------------------------------------------------

    @property
    def features(self) -> ThermostatFeatures:
        """Get the capability flags."""
        return self._record.features

    @property
    def has_zones(self) -> bool:
        """Return True for multi-zone systems."""
        return self._record.features.has_zones

    @property
    def has_outdoor_temperature(self) -> bool:
        """Return True if an outdoor sensor is reported."""
        return self._record.features.has_outdoor_temperature

    @property
    def has_relative_humidity(self) -> bool:
        """Return True if indoor humidity is reported."""
        return self._record.features.has_relative_humidity

    @property
    def has_variable_speed_compressor(self) -> bool:
        """Return True for variable speed compressors."""
        return self._record.features.has_variable_speed_compressor

    @property
    def has_emergency_heat(self) -> bool:
        """Return True if emergency heat can be controlled."""
        return self._record.features.has_emergency_heat

    @property
    def has_variable_fan_speed(self) -> bool:
        """Return True if the blower speed can be set."""
        return self._record.features.has_variable_fan_speed

    @property
    def has_dehumidify_support(self) -> bool:
        """Return True if a dehumidify setpoint can be set."""
        return self._record.features.has_dehumidify_support

    @property
    def has_humidify_support(self) -> bool:
        """Return True if a humidify setpoint can be set."""
        return self._record.features.has_humidify_support

    @property
    def has_air_cleaner(self) -> bool:
        """Return True if an air cleaner is installed."""
        return self._record.features.has_air_cleaner

    # -------------------------------------------------------------------------
    # Status Properties
    # -------------------------------------------------------------------------

    @property
    def system_status(self) -> SystemStatus:
        """Get the system status (OFF when unreported, IDLE when unrecognized)."""
        status = self._record.system_status
        if not status:
            return SystemStatus.OFF
        try:
            return SystemStatus(status)
        except ValueError:
            return SystemStatus.IDLE

    @property
    def is_blower_active(self) -> bool:
        """Return True while air is moving."""
        return self.system_status.value not in BLOWER_OFF_STATUSES

    @property
    def is_emergency_heat_active(self) -> bool:
        """Return True while emergency heat is on."""
        return self.has_emergency_heat and self._record.emergency_heat_active

    @property
    def compressor_speed(self) -> float:
        """Get the compressor speed (0 without a variable speed compressor)."""
        if not self.has_variable_speed_compressor:
            return 0.0
        return self._record.compressor_speed or 0.0

    @property
    def relative_humidity(self) -> float | None:
        """Get indoor humidity as a 0-1 fraction."""
        return self._record.relative_humidity if self.has_relative_humidity else None

    @property
    def outdoor_temperature(self) -> float | None:
        """Get the outdoor temperature."""
        return self._record.outdoor_temperature if self.has_outdoor_temperature else None

    @property
    def available_fan_modes(self) -> list[str]:
        """Get the selectable fan modes."""
        return list(self._record.fan_modes) or [mode.value for mode in FanMode]

    @property
    def fan_mode(self) -> str | None:
        """Get the current fan mode."""
        return self._record.fan_mode

    @property
    def fan_speed(self) -> float:
        """Get the blower speed (0 without a variable speed blower)."""
        if not self.has_variable_fan_speed:
            return 0.0
        return self._record.fan_speed or 0.0

    @property
    def humidify_setpoint(self) -> float | None:
        """Get the humidify setpoint as a 0-1 fraction."""
        return self._record.humidify_setpoint if self.has_humidify_support else None

    @property
    def dehumidify_setpoint(self) -> float | None:
        """Get the dehumidify setpoint as a 0-1 fraction."""
        return self._record.dehumidify_setpoint if self.has_dehumidify_support else None

    @property
    def air_cleaner_mode(self) -> str | None:
        """Get the air cleaner mode."""
        return self._record.air_cleaner_mode

    @property
    def scheduling_enabled(self) -> bool | None:
        """Return True if the thermostat follows its schedule."""
        return self._record.scheduling_enabled

    # -------------------------------------------------------------------------
    # Zones
    # -------------------------------------------------------------------------

    @property
    def zones(self) -> list[TraneZone]:
        """Get the thermostat's zones."""
        return list(self._zones.values())

    @property
    def zone_ids(self) -> list[str]:
        """Get the ids of the thermostat's zones."""
        return list(self._zones)

    def get_zone_by_id(self, zone_id: str) -> TraneZone | None:
        """Look up a zone by id."""
        return self._zones.get(str(zone_id))

    # -------------------------------------------------------------------------
    # Control Methods
    # -------------------------------------------------------------------------

    def _endpoint(self, operation: ThermostatOperation) -> str:
        if self._record.self_href:
            return f"{self._record.self_href}/{operation.value}"
        return f"{ENDPOINT_THERMOSTATS}/{self.thermostat_id}/{operation.value}"

    async def _send(self, operation: ThermostatOperation, payload: dict[str, Any]) -> None:
        await self._client.post(self._endpoint(operation), payload)
        await self._client.delayed_update()

    async def set_fan_mode(self, mode: FanMode | str) -> None:
        """Change the fan mode.

        Raises:
            InvalidParameterError: If the mode is not one the thermostat offers.
        """
        value = mode.value if isinstance(mode, FanMode) else str(mode).strip()
        if value not in self.available_fan_modes:
            available = ", ".join(self.available_fan_modes)
            msg = f"Invalid fan mode '{value}'. Available modes: {available}"
            raise InvalidParameterError(msg, parameter_name="fan_mode", value=value)
        await self._send(ThermostatOperation.FAN_MODE, {"fan_mode": value})

    async def set_fan_speed(self, speed: float) -> None:
        """Change the blower speed (0-1, rounded to 0.1).

        Raises:
            FeatureNotSupportedError: Without a variable speed blower.
            InvalidParameterError: If the speed is outside 0-1.
        """
        if not self.has_variable_fan_speed:
            raise FeatureNotSupportedError("variable fan speed", self.model)
        await self._send(ThermostatOperation.FAN_SPEED, {"fan_speed": round_fan_speed(speed)})

    async def set_fan_options(self, *, mode: FanMode | str | None = None, speed: float | None = None) -> None:
        """Change fan mode and/or speed."""
        if speed is not None:
            round_fan_speed(speed)
        if mode is not None:
            await self.set_fan_mode(mode)
        if speed is not None:
            await self.set_fan_speed(speed)

    async def set_humidify_setpoint(self, value: float) -> None:
        """Change the humidify setpoint (snapped to 5% steps).

        Raises:
            FeatureNotSupportedError: Without a humidifier.
        """
        if not self.has_humidify_support:
            raise FeatureNotSupportedError("humidify control", self.model)
        await self._send(ThermostatOperation.HUMIDIFY, {"humidify_setpoint": round_humidity(value)})

    async def set_dehumidify_setpoint(self, value: float) -> None:
        """Change the dehumidify setpoint (snapped to 5% steps).

        Raises:
            FeatureNotSupportedError: Without dehumidification.
        """
        if not self.has_dehumidify_support:
            raise FeatureNotSupportedError("dehumidify control", self.model)
        await self._send(ThermostatOperation.DEHUMIDIFY, {"dehumidify_setpoint": round_humidity(value)})

    async def set_humidity_setpoints(
        self,
        *,
        humidify: float | None = None,
        dehumidify: float | None = None,
    ) -> None:
        """Change humidify and/or dehumidify setpoints; humidify must stay below dehumidify."""
        validate_humidity_config(humidify=humidify, dehumidify=dehumidify)
        if humidify is not None:
            await self.set_humidify_setpoint(humidify)
        if dehumidify is not None:
            await self.set_dehumidify_setpoint(dehumidify)

    async def set_air_cleaner_mode(self, mode: AirCleanerMode | str) -> None:
        """Change the air cleaner mode.

        Raises:
            FeatureNotSupportedError: Without an air cleaner.
        """
        if not self.has_air_cleaner:
            raise FeatureNotSupportedError("air cleaner", self.model)
        valid_mode = validate_enum(mode, AirCleanerMode, "air_cleaner_mode")
        await self._send(ThermostatOperation.AIR_CLEANER_MODE, {"air_cleaner_mode": valid_mode.value})

    async def set_emergency_heat(self, enabled: bool) -> None:  # noqa: FBT001
        """Turn emergency heat on or off.

        Raises:
            FeatureNotSupportedError: Without emergency heat.
        """
        if not self.has_emergency_heat:
            raise FeatureNotSupportedError("emergency heat", self.model)
        await self._send(ThermostatOperation.EMERGENCY_HEAT, {"emergency_heat": bool(enabled)})

    async def set_follow_schedule(self, follow: bool) -> None:  # noqa: FBT001
        """Enable or disable the programmed schedule."""
        await self._send(ThermostatOperation.SCHEDULING_ENABLED, {"scheduling_enabled": bool(follow)})

    async def refresh(self) -> None:
        """Re-read the whole house, bypassing the ETag cache."""
        await self._client.update(force_update=True)


class TraneAutomation:
    """A vendor automation (scene)."""

    def __init__(self, client: TraneClient, record: Automation) -> None:
        """Initialize the automation.

        Args:
            client: Client used to send commands.
            record: Normalized automation record.
        """
        self._client = client
        self._record = record

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"TraneAutomation(id={self.automation_id!r}, name={self.name!r})"

    @property
    def record(self) -> Automation:
        """Get the underlying record."""
        return self._record

    @property
    def automation_id(self) -> str:
        """Get the automation id."""
        return self._record.automation_id

    @property
    def name(self) -> str:
        """Get the automation name."""
        return self._record.name

    @property
    def description(self) -> str:
        """Get the automation description."""
        return self._record.description

    @property
    def enabled(self) -> bool:
        """Return True if the automation is enabled."""
        return self._record.enabled

    def _self_href(self) -> str:
        if not self._record.self_href:
            msg = f"Automation {self.automation_id} has no self link"
            raise DeviceNotFoundError(msg, device_id=self.automation_id, device_type="automation")
        return self._record.self_href

    async def set_enabled(self, enabled: bool) -> None:  # noqa: FBT001
        """Enable or disable the automation.

        Raises:
            DeviceNotFoundError: If the automation cannot be addressed.
        """
        await self._client.put(self._self_href(), {"enabled": bool(enabled)})
        await self._client.delayed_update()

    async def activate(self) -> None:
        """Run the automation now.

        Raises:
            DeviceNotFoundError: If the automation cannot be addressed.
        """
        await self._client.post(f"{self._self_href()}/activate", {})
        await self._client.delayed_update()
