"""Data models for Trane Home API requests and responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from multidict import CIMultiDict

from pytranehome.const import (
    APP_VERSION,
    BRAND_TRANE,
    HEADER_API_KEY,
    HEADER_APP_VERSION,
    HEADER_ASSOCIATED_BRAND,
    HEADER_MOBILE_ID,
    OperationMode,
    PresetMode,
    SensorType,
    TemperatureUnit,
)


__all__ = [
    "Automation",
    "CanonicalSensor",
    "CanonicalThermostat",
    "CanonicalZone",
    "Credentials",
    "ETagCacheEntry",
    "ETagResponse",
    "HomeInfo",
    "HttpResponse",
    "SessionState",
    "ThermostatFeatures",
]


@dataclass(frozen=True)
class Credentials:
    """Authenticated identity attached to every vendor request.

    Attributes:
        api_key: API key returned by sign-in.
        mobile_id: Mobile id returned by sign-in.
        brand: Associated brand header value.
        app_version: Mobile app version the vendor expects.
    """

    api_key: str
    mobile_id: str
    brand: str = BRAND_TRANE
    app_version: str = APP_VERSION

    def as_headers(self) -> dict[str, str]:
        """Return the vendor's authentication headers."""
        return {
            HEADER_API_KEY: self.api_key,
            HEADER_MOBILE_ID: self.mobile_id,
            HEADER_ASSOCIATED_BRAND: self.brand,
            HEADER_APP_VERSION: self.app_version,
        }


def _to_epoch_ms(value: datetime | None) -> int | None:
    return None if value is None else int(value.timestamp() * 1000)


def _from_epoch_ms(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"Invalid timestamp in state file: {value!r}"
        raise ValueError(msg)
    try:
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError) as exc:
        msg = f"Timestamp out of range in state file: {value!r}"
        raise ValueError(msg) from exc


@dataclass
class SessionState:
    """Persisted authentication state.

    Timestamps are kept as aware datetimes and written to disk as epoch
    milliseconds under camelCase keys.

    Attributes:
        device_uuid: Stable identity of this installation.
        api_key: API key of the current session.
        mobile_id: Mobile id of the current session.
        login_attempts: Failed/recent sign-in attempts inside the current window.
        last_login_attempt: Time of the most recent sign-in attempt.
        session_expiry: Time after which the session is considered dead.
    """

    device_uuid: str
    api_key: str | None = None
    mobile_id: str | None = None
    login_attempts: int = 0
    last_login_attempt: datetime | None = None
    session_expiry: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk JSON document, omitting unset fields."""
        data: dict[str, Any] = {
            "deviceUuid": self.device_uuid,
            "apiKey": self.api_key,
            "mobileId": self.mobile_id,
            "loginAttempts": self.login_attempts,
            "lastLoginAttempt": _to_epoch_ms(self.last_login_attempt),
            "sessionExpiry": _to_epoch_ms(self.session_expiry),
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Any) -> SessionState:
        """Build state from the on-disk JSON document.

        Raises:
            ValueError: If the document is not an object or lacks a device UUID.
        """
        if not isinstance(data, dict):
            msg = "State file does not contain a JSON object"
            raise ValueError(msg)  # noqa: TRY004

        device_uuid = data.get("deviceUuid")
        if not isinstance(device_uuid, str) or not device_uuid:
            msg = "State file is missing a valid deviceUuid"
            raise ValueError(msg)

        attempts = data.get("loginAttempts", 0)
        mobile_id = data.get("mobileId")
        return cls(
            device_uuid=device_uuid,
            api_key=data.get("apiKey") or None,
            mobile_id=str(mobile_id) if mobile_id is not None else None,
            login_attempts=attempts if isinstance(attempts, int) else 0,
            last_login_attempt=_from_epoch_ms(data.get("lastLoginAttempt")),
            session_expiry=_from_epoch_ms(data.get("sessionExpiry")),
        )


@dataclass
class ETagCacheEntry:
    """Last successful response for a URL together with its validator."""

    etag: str
    data: Any
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class HttpResponse:
    """Decoded HTTP response."""

    status: int
    data: Any
    headers: CIMultiDict[str] = field(default_factory=CIMultiDict)


@dataclass
class ETagResponse:
    """Result of a conditional GET.

    Attributes:
        status: HTTP status (304 when served from cache).
        data: Response body, or the cached body on a cache hit.
        from_cache: True when the server confirmed the cached copy is current.
    """

    status: int
    data: Any
    from_cache: bool


@dataclass(frozen=True)
class HomeInfo:
    """A house discovered during session setup."""

    house_id: int
    name: str


@dataclass(frozen=True)
class ThermostatFeatures:
    """Capability flags of a thermostat."""

    has_zones: bool = False
    has_outdoor_temperature: bool = False
    has_relative_humidity: bool = False
    has_variable_speed_compressor: bool = False
    has_emergency_heat: bool = False
    has_variable_fan_speed: bool = False
    has_dehumidify_support: bool = False
    has_humidify_support: bool = False
    has_air_cleaner: bool = False


@dataclass(frozen=True)
class CanonicalSensor:
    """Normalized room sensor.

    Attributes:
        sensor_id: Vendor sensor id.
        weight: Contribution to the zone reading; 0 means inactive.
        battery_level: Battery percentage when the sensor has a battery.
    """

    sensor_id: int
    name: str
    sensor_type: SensorType = SensorType.ROOM_IQ
    serial_number: str | None = None
    weight: float = 0.0
    temperature: float | None = None
    temperature_valid: bool = False
    humidity: float | None = None
    humidity_valid: bool = False
    connected: bool | None = None
    has_online: bool = False
    has_battery: bool = False
    battery_level: int | None = None
    battery_low: bool = False
    battery_valid: bool = False

    @property
    def is_active(self) -> bool:
        """Return True if the sensor participates in the zone reading."""
        return self.weight > 0


@dataclass(frozen=True)
class CanonicalZone:
    """Normalized zone.

    Attributes:
        zone_id: Vendor zone id (numeric part of the zone identifier).
        temperature: Current temperature, preferring a valid room sensor reading.
        current_mode: Operation mode, None when not reported.
        setpoint_status: Hold/schedule status text.
        sensors: Room sensors keyed by sensor id.
        self_href: Self link from the last payload, used to address commands.
    """

    zone_id: str
    name: str
    temperature: float | None = None
    heating_setpoint: float | None = None
    cooling_setpoint: float | None = None
    current_mode: OperationMode | None = None
    requested_mode: OperationMode | None = None
    setpoint_status: str | None = None
    preset: PresetMode | None = None
    available_presets: tuple[PresetMode, ...] = ()
    is_calling: bool = False
    status: str | None = None
    is_native_zone: bool = False
    sensors: dict[int, CanonicalSensor] = field(default_factory=dict)
    self_href: str | None = None
    raw_data: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def active_sensor_ids(self) -> frozenset[int]:
        """Ids of sensors currently contributing to the zone reading."""
        return frozenset(sensor_id for sensor_id, sensor in self.sensors.items() if sensor.is_active)


@dataclass(frozen=True)
class CanonicalThermostat:
    """Normalized thermostat, identical for both vendor payload shapes.

    Attributes:
        thermostat_id: Vendor thermostat id.
        model: Hardware model, "Unknown" when not reported.
        firmware: Firmware version, "Unknown" when not reported.
        deadband: Minimum spread between heating and cooling setpoints.
        relative_humidity: Indoor humidity as a 0-1 fraction.
        zones: Zones keyed by zone id.
    """

    thermostat_id: str
    name: str
    model: str
    firmware: str
    is_online: bool = True
    features: ThermostatFeatures = field(default_factory=ThermostatFeatures)
    temperature_unit: TemperatureUnit = TemperatureUnit.FAHRENHEIT
    deadband: float = 3
    system_status: str | None = None
    relative_humidity: float | None = None
    outdoor_temperature: float | None = None
    fan_mode: str | None = None
    fan_modes: tuple[str, ...] = ()
    fan_speed: float | None = None
    air_cleaner_mode: str | None = None
    emergency_heat_active: bool = False
    scheduling_enabled: bool | None = None
    compressor_speed: float | None = None
    humidify_setpoint: float | None = None
    dehumidify_setpoint: float | None = None
    zones: dict[str, CanonicalZone] = field(default_factory=dict)
    self_href: str | None = None
    raw_data: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class Automation:
    """Normalized automation (scene)."""

    automation_id: str
    name: str
    description: str = ""
    enabled: bool = False
    self_href: str | None = None
    raw_data: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
