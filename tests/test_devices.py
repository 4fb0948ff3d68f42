"""Tests for thermostat, zone, sensor and automation objects."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from pytranehome.const import (
    BatteryStatus,
    FanMode,
    OperationMode,
    PresetMode,
    SystemStatus,
    TemperatureUnit,
    ZoneStatus,
)
from pytranehome.devices import TraneAutomation, TraneSensor, TraneThermostat, TraneZone
from pytranehome.exceptions import DeviceNotFoundError, FeatureNotSupportedError, InvalidParameterError
from pytranehome.models import CanonicalSensor
from pytranehome.normalizer import normalize_automation, normalize_thermostat, normalize_zone


if TYPE_CHECKING:
    from conftest import FakeVendor

    from pytranehome.client import TraneClient


ORIGIN = "https://www.tranehome.com"
THERMOSTAT_ID = "2059661"
ZONE_ID = "83261002"
THERMOSTAT_URL = f"{ORIGIN}/mobile/xxl_thermostats/{THERMOSTAT_ID}"
ZONE_PATH = f"/mobile/xxl_zones/{ZONE_ID}"


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock TraneClient."""
    client = MagicMock()
    client.post = AsyncMock(return_value={})
    client.put = AsyncMock(return_value={})
    client.update = AsyncMock(return_value=True)
    client.delayed_update = AsyncMock()
    client.sensor_poll_interval = 0
    client.sensor_max_polls = 3
    client.sensor_state_delay = 0
    return client


@pytest.fixture
def thermostat(mock_client: MagicMock, feature_array_payload: dict[str, Any]) -> TraneThermostat:
    """Thermostat built from the feature-array payload."""
    return TraneThermostat(mock_client, normalize_thermostat(feature_array_payload))


@pytest.fixture
def full_featured(mock_client: MagicMock, canonical_payload: dict[str, Any]) -> TraneThermostat:
    """Thermostat with every optional capability."""
    canonical_payload["features"].update(
        {
            "has_emergency_heat": True,
            "has_air_cleaner": True,
            "has_humidify_support": True,
            "has_variable_speed_compressor": True,
        }
    )
    canonical_payload["settings"].update(
        {"emergency_heat_active": True, "current_compressor_speed": 0.6, "humidify_setpoint": 0.35}
    )
    return TraneThermostat(mock_client, normalize_thermostat(canonical_payload))


@pytest.fixture
def zone(thermostat: TraneThermostat) -> TraneZone:
    """The thermostat's only zone."""
    return thermostat.zones[0]


class TestThermostatProperties:
    """Test thermostat read accessors."""

    def test_device_info(self, thermostat: TraneThermostat) -> None:
        """Test identity and info fields."""
        assert thermostat.thermostat_id == THERMOSTAT_ID
        assert thermostat.name == "Downstairs"
        assert thermostat.model == "XL850"
        assert thermostat.firmware == "5.9.1"
        assert thermostat.is_online is True
        assert thermostat.temperature_unit is TemperatureUnit.FAHRENHEIT
        assert thermostat.setpoint_limits == (45, 90)

    def test_status(self, thermostat: TraneThermostat) -> None:
        """Test system status and blower activity."""
        assert thermostat.system_status is SystemStatus.COOLING
        assert thermostat.is_blower_active is True

    def test_unknown_status_is_idle(self, mock_client: MagicMock) -> None:
        """Test unrecognized status text maps to idle and missing status to off."""
        unknown = TraneThermostat(mock_client, normalize_thermostat({"id": 1, "settings": {"system_status": "?"}}))
        missing = TraneThermostat(mock_client, normalize_thermostat({"id": 2, "settings": {}}))

        assert unknown.system_status is SystemStatus.IDLE
        assert unknown.is_blower_active is False
        assert missing.system_status is SystemStatus.OFF

    def test_readings_gated_by_features(self, thermostat: TraneThermostat, mock_client: MagicMock) -> None:
        """Test humidity and outdoor temperature need their capability flags."""
        assert thermostat.relative_humidity == 0.45
        assert thermostat.outdoor_temperature == 71

        bare = TraneThermostat(
            mock_client,
            normalize_thermostat({"id": 3, "settings": {"relative_humidity": 0.4, "outdoor_temperature": 60}}),
        )
        assert bare.relative_humidity is None
        assert bare.outdoor_temperature is None

    def test_optional_capabilities(self, thermostat: TraneThermostat, full_featured: TraneThermostat) -> None:
        """Test compressor, emergency heat and humidity accessors."""
        assert thermostat.compressor_speed == 0
        assert thermostat.is_emergency_heat_active is False
        assert thermostat.humidify_setpoint is None
        assert thermostat.dehumidify_setpoint == 0.5

        assert full_featured.compressor_speed == 0.6
        assert full_featured.is_emergency_heat_active is True
        assert full_featured.humidify_setpoint == 0.35

    def test_fan(self, thermostat: TraneThermostat) -> None:
        """Test fan accessors."""
        assert thermostat.fan_mode == "auto"
        assert thermostat.fan_speed == 0.35
        assert thermostat.available_fan_modes == ["auto", "on", "circulate"]

    def test_fan_modes_default(self, mock_client: MagicMock) -> None:
        """Test the default fan modes when none are reported."""
        bare = TraneThermostat(mock_client, normalize_thermostat({"id": 3, "settings": {}}))
        assert bare.available_fan_modes == ["auto", "on", "circulate"]

    def test_zones(self, thermostat: TraneThermostat) -> None:
        """Test zone lookup and back-reference."""
        assert thermostat.zone_ids == [ZONE_ID]
        assert thermostat.get_zone_by_id(ZONE_ID).thermostat is thermostat
        assert thermostat.get_zone_by_id("missing") is None


class TestThermostatCommands:
    """Test thermostat control methods."""

    async def test_set_fan_mode(self, thermostat: TraneThermostat, mock_client: MagicMock) -> None:
        """Test fan mode posts to the thermostat's self link, then refreshes."""
        await thermostat.set_fan_mode(FanMode.ON)

        mock_client.post.assert_awaited_once_with(f"{THERMOSTAT_URL}/fan_mode", {"fan_mode": "on"})
        mock_client.delayed_update.assert_awaited_once()

    async def test_set_fan_mode_rejects_unknown(self, thermostat: TraneThermostat, mock_client: MagicMock) -> None:
        """Test an unavailable fan mode is rejected locally."""
        with pytest.raises(InvalidParameterError, match="Available modes: auto, on, circulate"):
            await thermostat.set_fan_mode("turbo")

        mock_client.post.assert_not_awaited()

    async def test_endpoint_without_self_link(
        self, mock_client: MagicMock, feature_array_payload: dict[str, Any]
    ) -> None:
        """Test commands fall back to a path built from the id."""
        del feature_array_payload["_links"]
        thermostat = TraneThermostat(mock_client, normalize_thermostat(feature_array_payload))

        await thermostat.set_fan_mode("circulate")

        mock_client.post.assert_awaited_once_with(
            f"/mobile/xxl_thermostats/{THERMOSTAT_ID}/fan_mode", {"fan_mode": "circulate"}
        )

    async def test_set_fan_speed_rounds(self, thermostat: TraneThermostat, mock_client: MagicMock) -> None:
        """Test fan speed is rounded to one decimal."""
        await thermostat.set_fan_speed(0.44)

        mock_client.post.assert_awaited_once_with(f"{THERMOSTAT_URL}/fan_speed", {"fan_speed": 0.4})

    async def test_set_fan_options(self, thermostat: TraneThermostat, mock_client: MagicMock) -> None:
        """Test mode and speed are sent as two commands."""
        await thermostat.set_fan_options(mode="on", speed=0.7)

        assert [call.args for call in mock_client.post.await_args_list] == [
            (f"{THERMOSTAT_URL}/fan_mode", {"fan_mode": "on"}),
            (f"{THERMOSTAT_URL}/fan_speed", {"fan_speed": 0.7}),
        ]

    async def test_dehumidify_snaps_to_step(self, thermostat: TraneThermostat, mock_client: MagicMock) -> None:
        """Test dehumidify setpoints snap to 5% steps."""
        await thermostat.set_dehumidify_setpoint(0.52)

        mock_client.post.assert_awaited_once_with(f"{THERMOSTAT_URL}/dehumidify", {"dehumidify_setpoint": 0.5})

    @pytest.mark.parametrize(
        ("method", "args"),
        [
            ("set_humidify_setpoint", (0.4,)),
            ("set_air_cleaner_mode", ("quick",)),
            ("set_emergency_heat", (True,)),
        ],
    )
    async def test_unsupported_features(
        self, thermostat: TraneThermostat, mock_client: MagicMock, method: str, args: tuple[Any, ...]
    ) -> None:
        """Test commands needing a missing capability fail without a request."""
        with pytest.raises(FeatureNotSupportedError):
            await getattr(thermostat, method)(*args)

        mock_client.post.assert_not_awaited()

    async def test_fan_speed_needs_variable_blower(self, mock_client: MagicMock) -> None:
        """Test fan speed is refused on single-speed blowers."""
        bare = TraneThermostat(mock_client, normalize_thermostat({"id": 3, "model": "XL624", "settings": {}}))

        with pytest.raises(FeatureNotSupportedError, match="not supported on XL624"):
            await bare.set_fan_speed(0.5)

    async def test_supported_features(self, full_featured: TraneThermostat, mock_client: MagicMock) -> None:
        """Test capability-gated commands when the capability exists."""
        await full_featured.set_air_cleaner_mode("allergy")
        await full_featured.set_emergency_heat(True)
        await full_featured.set_humidify_setpoint(0.31)

        assert [call.args for call in mock_client.post.await_args_list] == [
            (f"{THERMOSTAT_URL}/air_cleaner_mode", {"air_cleaner_mode": "allergy"}),
            (f"{THERMOSTAT_URL}/emergency_heat", {"emergency_heat": True}),
            (f"{THERMOSTAT_URL}/humidify", {"humidify_setpoint": 0.3}),
        ]

    async def test_humidity_setpoints_order(self, full_featured: TraneThermostat, mock_client: MagicMock) -> None:
        """Test humidify must stay below dehumidify."""
        with pytest.raises(InvalidParameterError):
            await full_featured.set_humidity_setpoints(humidify=0.6, dehumidify=0.5)

        mock_client.post.assert_not_awaited()

    async def test_humidity_setpoints_pair(self, full_featured: TraneThermostat, mock_client: MagicMock) -> None:
        """Test a valid pair sends both setpoints."""
        await full_featured.set_humidity_setpoints(humidify=0.3, dehumidify=0.55)

        assert mock_client.post.await_count == 2

    async def test_set_follow_schedule(self, thermostat: TraneThermostat, mock_client: MagicMock) -> None:
        """Test the schedule toggle."""
        await thermostat.set_follow_schedule(False)

        mock_client.post.assert_awaited_once_with(
            f"{THERMOSTAT_URL}/scheduling_enabled", {"scheduling_enabled": False}
        )

    async def test_refresh_forces_update(self, thermostat: TraneThermostat, mock_client: MagicMock) -> None:
        """Test refresh bypasses the ETag cache."""
        await thermostat.refresh()

        mock_client.update.assert_awaited_once_with(force_update=True)


class TestZoneProperties:
    """Test zone read accessors."""

    def test_readings(self, zone: TraneZone) -> None:
        """Test temperature, setpoints and mode."""
        assert zone.zone_id == ZONE_ID
        assert zone.current_temperature == 73
        assert zone.heating_setpoint == 68
        assert zone.cooling_setpoint == 76
        assert zone.current_mode is OperationMode.AUTO
        assert zone.requested_mode is OperationMode.OFF

    def test_status(self, zone: TraneZone) -> None:
        """Test hold and demand status."""
        assert zone.is_in_permanent_hold is True
        assert zone.is_calling is True
        assert zone.zone_status is ZoneStatus.CALLING
        assert zone.is_at_desired_temperature() is True

    def test_schedule_hold_is_not_permanent(self, mock_client: MagicMock, thermostat: TraneThermostat) -> None:
        """Test a hold that ends with the schedule is not permanent."""
        record = normalize_zone({"id": 9, "features": {"setpoint_status": "Hold Until Next Schedule Event"}})

        assert TraneZone(mock_client, thermostat, record).is_in_permanent_hold is False

    def test_presets_default(self, zone: TraneZone) -> None:
        """Test all presets are offered when none are reported."""
        assert zone.current_preset is None
        assert zone.available_presets == [PresetMode.HOME, PresetMode.AWAY, PresetMode.SLEEP, PresetMode.NONE]

    def test_sensors(self, zone: TraneZone) -> None:
        """Test sensor lookup and active set."""
        assert zone.sensor_ids == [1, 2]
        assert zone.active_sensor_ids == frozenset({1})
        assert zone.get_sensor_by_id(2).name == "Bedroom"
        assert zone.get_sensor_by_id(3) is None

    def test_setpoint_helpers(self, zone: TraneZone) -> None:
        """Test rounding and deadband checks use the thermostat's settings."""
        assert zone.round_temperature(70.6) == 71
        assert zone.validate_temperature_setpoints(68, 72) is True
        assert zone.validate_temperature_setpoints(70, 71) is False


class TestZoneCommands:
    """Test zone control methods."""

    async def test_set_mode(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test the mode command and its fallback endpoint."""
        await zone.set_mode("HEAT")

        mock_client.post.assert_awaited_once_with(f"{ZONE_PATH}/zone_mode", {"zone_mode": "HEAT"})
        mock_client.delayed_update.assert_awaited_once()

    async def test_set_mode_rejects_unknown(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test an unknown mode is rejected locally."""
        with pytest.raises(InvalidParameterError):
            await zone.set_mode("DRY")

        mock_client.post.assert_not_awaited()

    async def test_set_temperatures_rounds(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test both setpoints are rounded to whole degrees."""
        await zone.set_temperatures(heating_setpoint=66.6, cooling_setpoint=75.2)

        mock_client.post.assert_awaited_once_with(
            f"{ZONE_PATH}/setpoints", {"heating_setpoint": 67, "cooling_setpoint": 75}
        )

    async def test_set_single_setpoint(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test a single set temperature."""
        await zone.set_temperatures(set_temp=71.4)

        mock_client.post.assert_awaited_once_with(f"{ZONE_PATH}/setpoints", {"setpoint": 71})

    async def test_deadband_violation(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test setpoints closer than the deadband are rejected without a request."""
        with pytest.raises(InvalidParameterError):
            await zone.set_temperatures(heating_setpoint=70, cooling_setpoint=71)

        mock_client.post.assert_not_awaited()

    async def test_heating_and_cooling_shortcuts(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test the single-setpoint shortcuts."""
        await zone.set_heating_setpoint(65)
        await zone.set_cooling_setpoint(78)

        assert [call.args[1] for call in mock_client.post.await_args_list] == [
            {"heating_setpoint": 65},
            {"cooling_setpoint": 78},
        ]

    async def test_permanent_hold(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test permanent hold with and without setpoints."""
        await zone.set_permanent_hold()
        await zone.set_permanent_hold(heating_setpoint=67)

        assert [call.args for call in mock_client.post.await_args_list] == [
            (f"{ZONE_PATH}/run_mode", {"run_mode": "permanent_hold"}),
            (f"{ZONE_PATH}/run_mode", {"run_mode": "permanent_hold", "heating_setpoint": 67}),
        ]

    async def test_return_to_schedule(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test resuming the schedule."""
        await zone.return_to_schedule()

        mock_client.post.assert_awaited_once_with(f"{ZONE_PATH}/return_to_schedule", {"run_mode": "run_schedule"})

    async def test_presets(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test preset selection and shortcuts."""
        await zone.set_preset("Away")
        await zone.set_home()
        await zone.set_sleep()

        assert [call.args[1] for call in mock_client.post.await_args_list] == [
            {"preset": "Away"},
            {"preset": "Home"},
            {"preset": "Sleep"},
        ]

    async def test_unavailable_preset(self, mock_client: MagicMock, thermostat: TraneThermostat) -> None:
        """Test presets the zone does not offer are rejected."""
        record = normalize_zone({"id": 9, "settings": {"available_presets": ["Home"]}})
        limited = TraneZone(mock_client, thermostat, record)

        with pytest.raises(InvalidParameterError, match="Available presets: Home"):
            await limited.set_away()

    async def test_self_link_is_preferred(self, mock_client: MagicMock, thermostat: TraneThermostat) -> None:
        """Test a zone self link addresses commands."""
        record = normalize_zone({"id": 9, "_links": {"self": {"href": f"{ORIGIN}/mobile/xxl_zones/9"}}})

        await TraneZone(mock_client, thermostat, record).return_to_schedule()

        assert mock_client.post.await_args.args[0] == f"{ORIGIN}/mobile/xxl_zones/9/return_to_schedule"

    async def test_load_current_sensor_state(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test requesting sensor state refreshes the house."""
        await zone.load_current_sensor_state()

        mock_client.post.assert_awaited_once_with(f"{ZONE_PATH}/request_current_sensor_state", {})
        mock_client.update.assert_awaited_once_with(force_update=True)

    async def test_select_unknown_sensor(self, zone: TraneZone, mock_client: MagicMock) -> None:
        """Test a selection naming an unknown sensor fails without a request."""
        with pytest.raises(InvalidParameterError):
            await zone.select_active_sensors([1, 5])

        mock_client.post.assert_not_awaited()


class TestSensorSelectionPolling:
    """Test active-sensor polling against the fake vendor."""

    @staticmethod
    def _zone(client: TraneClient) -> TraneZone:
        return client.get_thermostat_by_id(THERMOSTAT_ID).get_zone_by_id(ZONE_ID)

    async def test_stops_once_confirmed(
        self, trane_client: TraneClient, vendor: FakeVendor, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test polling ends on the poll that observes the requested set."""
        vendor.confirm_sensors_after = 3

        confirmed = await self._zone(trane_client).select_active_sensors([1, 2])

        assert confirmed is True
        assert vendor.sensor_state_requests == 3
        assert ("POST", f"{ZONE_PATH}/update_active_sensors", {"active_sensor_ids": [1, 2]}) in vendor.commands
        assert self._zone(trane_client).active_sensor_ids == frozenset({1, 2})
        assert "not confirmed" not in caplog.text

    async def test_gives_up_with_warning(
        self, trane_client: TraneClient, vendor: FakeVendor, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test an unconfirmed selection logs a warning instead of failing."""
        vendor.confirm_sensors_after = 99

        confirmed = await self._zone(trane_client).select_active_sensors([2], max_polls=2)

        assert confirmed is False
        assert vendor.sensor_state_requests == 2
        assert "not confirmed after 2 polls" in caplog.text


class TestSensor:
    """Test sensor accessors."""

    @pytest.mark.parametrize(
        ("fields", "expected"),
        [
            ({"has_battery": True, "battery_level": 80, "battery_valid": True}, BatteryStatus.GOOD),
            ({"has_battery": True, "battery_level": 20, "battery_valid": True}, BatteryStatus.LOW),
            ({"has_battery": True, "battery_level": 10, "battery_valid": True}, BatteryStatus.CRITICAL),
            ({"has_battery": True, "battery_level": 5, "battery_valid": False}, BatteryStatus.UNKNOWN),
            ({"has_battery": False, "battery_level": 5, "battery_valid": True}, BatteryStatus.UNKNOWN),
            ({"has_battery": True, "battery_valid": True}, BatteryStatus.UNKNOWN),
        ],
    )
    def test_battery_status(self, fields: dict[str, Any], expected: BatteryStatus) -> None:
        """Test battery classification thresholds."""
        sensor = TraneSensor(CanonicalSensor(sensor_id=1, name="Den", **fields))
        assert sensor.battery_status is expected

    def test_readings_require_validity(self) -> None:
        """Test invalid readings are hidden."""
        sensor = TraneSensor(
            CanonicalSensor(sensor_id=1, name="Den", temperature=70, temperature_valid=False, humidity=40)
        )

        assert sensor.temperature is None
        assert sensor.humidity is None
        assert sensor.is_active is False

    def test_zone_sensor(self, zone: TraneZone) -> None:
        """Test sensors built from the vendor payload."""
        bedroom = zone.get_sensor_by_id(2)

        assert bedroom.is_connected is True
        assert bedroom.battery_status is BatteryStatus.LOW
        assert bedroom.temperature == 70
        assert zone.get_sensor_by_id(1).battery_status is BatteryStatus.UNKNOWN


class TestAutomation:
    """Test automation commands."""

    @pytest.fixture
    def automation(self, mock_client: MagicMock) -> TraneAutomation:
        """Automation with a self link."""
        raw = {"id": 415, "name": "Away", "enabled": True, "_links": {"self": {"href": f"{ORIGIN}/mobile/automations/415"}}}
        record = normalize_automation(raw)
        return TraneAutomation(mock_client, record)

    async def test_set_enabled(self, automation: TraneAutomation, mock_client: MagicMock) -> None:
        """Test enabling is a PUT to the self link."""
        await automation.set_enabled(False)

        mock_client.put.assert_awaited_once_with(f"{ORIGIN}/mobile/automations/415", {"enabled": False})
        mock_client.delayed_update.assert_awaited_once()

    async def test_activate(self, automation: TraneAutomation, mock_client: MagicMock) -> None:
        """Test activation posts to the activate link."""
        await automation.activate()

        mock_client.post.assert_awaited_once_with(f"{ORIGIN}/mobile/automations/415/activate", {})

    async def test_without_self_link(self, mock_client: MagicMock) -> None:
        """Test an automation without a self link cannot be addressed."""
        automation = TraneAutomation(mock_client, normalize_automation({"id": 7, "name": "Orphan"}))

        with pytest.raises(DeviceNotFoundError):
            await automation.activate()

        mock_client.post.assert_not_awaited()
