"""Constants for pytranehome library."""

from __future__ import annotations

from enum import Enum


# API Configuration
DEFAULT_BASE_URL = "https://www.tranehome.com"
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY = 1.0  # seconds, doubled on every retry
DEFAULT_RETRY_JITTER = 1.0  # seconds of random spread added to each delay
MAX_RETRY_DELAY = 30.0  # seconds
USER_AGENT = "pytranehome/0.1.0"

# Vendor app identity sent with every authenticated request
APP_VERSION = "6.0.0"
BRAND_TRANE = "trane"
DEFAULT_DEVICE_NAME = "Home Automation"

# Endpoints (relative to base URL)
ENDPOINT_SIGN_IN = "/mobile/accounts/sign_in"
ENDPOINT_SESSION = "/mobile/session"
ENDPOINT_HOUSES = "/mobile/houses"
ENDPOINT_THERMOSTATS = "/mobile/xxl_thermostats"
ENDPOINT_ZONES = "/mobile/xxl_zones"

# Headers
HEADER_APP_VERSION = "X-AppVersion"
HEADER_ASSOCIATED_BRAND = "X-AssociatedBrand"
HEADER_MOBILE_ID = "X-MobileId"
HEADER_API_KEY = "X-ApiKey"
HEADER_IF_NONE_MATCH = "If-None-Match"
HEADER_ETAG = "ETag"

# Hypermedia content types found in `_links.child`
CONTENT_TYPE_LOCATION = "application/vnd.nexia.location+json"
CONTENT_TYPE_COLLECTION = "application/vnd.nexia.collection+json"

# Session
SESSION_LIFETIME_SECONDS = 24 * 60 * 60
MAX_LOGIN_ATTEMPTS = 4
LOGIN_ATTEMPT_WINDOW_SECONDS = 60 * 60
STATE_DIR_NAME = ".trane"
STATE_FILE_NAME = "auth-state.json"

# Device registry timing
UPDATE_DELAY_SECONDS = 7.0  # settle time before re-reading state after a command
DEFAULT_SENSOR_POLL_INTERVAL = 5.0
DEFAULT_SENSOR_MAX_POLLS = 8
SENSOR_STATE_REQUEST_DELAY = 1.0

# Parameter Validation
CELSIUS_MIN = 7
CELSIUS_MAX = 32
FAHRENHEIT_MIN = 45
FAHRENHEIT_MAX = 90
DEFAULT_DEADBAND = 3
DEFAULT_HEATING_SETPOINT = 70
DEFAULT_COOLING_SETPOINT = 75
HUMIDITY_MIN = 0.10
HUMIDITY_MAX = 0.65
HUMIDITY_SETPOINT_VALUES = (0.10, 0.15, 0.20, 0.25, 0.30, 0.35, 0.40, 0.45, 0.50, 0.55, 0.60, 0.65)
FAN_SPEED_MIN = 0.0
FAN_SPEED_MAX = 1.0

# Sensor battery thresholds (percent)
BATTERY_LOW = 20
BATTERY_CRITICAL = 10

# Feature block names in array-shaped thermostat payloads
FEATURE_ADVANCED_INFO = "advanced_info"
FEATURE_THERMOSTAT = "thermostat"
FEATURE_THERMOSTAT_MODE = "thermostat_mode"
FEATURE_THERMOSTAT_RUN_MODE = "thermostat_run_mode"
FEATURE_CONNECTION = "connection"
FEATURE_ROOM_IQ_SENSORS = "room_iq_sensors"
THERMOSTAT_FEATURE_NAMES = frozenset({FEATURE_THERMOSTAT, FEATURE_THERMOSTAT_MODE, FEATURE_ADVANCED_INFO})

# Setting block types in array-shaped thermostat payloads
SETTING_HUMIDIFY = "humidify"
SETTING_DEHUMIDIFY = "dehumidify"
SETTING_AIR_CLEANER_MODE = "air_cleaner_mode"
SETTING_FAN_MODE = "fan_mode"
SETTING_FAN_SPEED = "fan_speed"
SETTING_EMERGENCY_HEAT = "emergency_heat"
SETTING_SCHEDULING_ENABLED = "scheduling_enabled"

UNKNOWN = "Unknown"


class OperationMode(Enum):
    """Zone operation modes."""

    AUTO = "AUTO"
    COOL = "COOL"
    HEAT = "HEAT"
    OFF = "OFF"


class SystemStatus(Enum):
    """System status strings reported by the thermostat."""

    COOLING = "Cooling"
    HEATING = "Heating"
    WAITING = "Waiting..."
    IDLE = "System Idle"
    OFF = "System Off"


# Statuses where the blower is considered off
BLOWER_OFF_STATUSES = frozenset({SystemStatus.WAITING.value, SystemStatus.IDLE.value, SystemStatus.OFF.value})


class PresetMode(Enum):
    """Zone presets."""

    HOME = "Home"
    AWAY = "Away"
    SLEEP = "Sleep"
    NONE = "None"


class HoldMode(Enum):
    """Zone run modes."""

    PERMANENT_HOLD = "permanent_hold"
    RUN_SCHEDULE = "run_schedule"


class AirCleanerMode(Enum):
    """Air cleaner modes."""

    AUTO = "auto"
    QUICK = "quick"
    ALLERGY = "allergy"


class FanMode(Enum):
    """Blower fan modes."""

    AUTO = "auto"
    ON = "on"
    CIRCULATE = "circulate"


class TemperatureUnit(Enum):
    """Temperature units."""

    CELSIUS = "C"
    FAHRENHEIT = "F"


class ZoneStatus(Enum):
    """Zone demand status."""

    IDLE = "Idle"
    CALLING = "Calling"


class SensorType(Enum):
    """Room sensor types."""

    ROOM_IQ = "RoomIQ"
    THERMOSTAT = "Thermostat"


class BatteryStatus(Enum):
    """Sensor battery classification."""

    GOOD = "good"
    LOW = "low"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class ThermostatOperation(Enum):
    """Path suffixes for thermostat commands."""

    FAN_MODE = "fan_mode"
    FAN_SPEED = "fan_speed"
    AIR_CLEANER_MODE = "air_cleaner_mode"
    SCHEDULING_ENABLED = "scheduling_enabled"
    EMERGENCY_HEAT = "emergency_heat"
    DEHUMIDIFY = "dehumidify"
    HUMIDIFY = "humidify"


class ZoneOperation(Enum):
    """Path suffixes for zone commands."""

    ZONE_MODE = "zone_mode"
    SETPOINTS = "setpoints"
    RUN_MODE = "run_mode"
    PRESET_SELECTED = "preset_selected"
    RETURN_TO_SCHEDULE = "return_to_schedule"
    UPDATE_ACTIVE_SENSORS = "update_active_sensors"
    REQUEST_CURRENT_SENSOR_STATE = "request_current_sensor_state"
