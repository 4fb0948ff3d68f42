"""Python client library for Trane Home (Nexia) thermostats.

This package provides an async client for reading and controlling Trane Home
thermostats, zones and room sensors through the vendor's mobile cloud API.

The library is organized into layers:
1. **Transport** (pytranehome.transport): HTTP with ETag caching and retries
2. **Session** (pytranehome.auth): Sign-in, device identity and house discovery
3. **Normalizer** (pytranehome.normalizer): Both vendor payload shapes into one model
4. **Client** (pytranehome.client): Device registry and command routing
5. **Devices** (pytranehome.devices): Thermostat, zone, sensor and automation objects

Example:
    Basic usage:

    ```python
    from pytranehome import OperationMode, TraneClient

    async with TraneClient(username="user@example.com", password="password") as client:
        await client.login()

        for thermostat in client.get_thermostats():
            print(thermostat.name, thermostat.system_status)
            for zone in thermostat.zones:
                print(f"  {zone.name}: {zone.current_temperature}")

        zone = client.get_thermostats()[0].zones[0]
        await zone.set_mode(OperationMode.HEAT)
        await zone.set_temperatures(heating_setpoint=68)
    ```
"""

from __future__ import annotations

from pytranehome.auth import SessionManager, SessionStatus
from pytranehome.client import TraneClient
from pytranehome.const import (
    AirCleanerMode,
    BatteryStatus,
    FanMode,
    OperationMode,
    PresetMode,
    SystemStatus,
    TemperatureUnit,
    ZoneStatus,
)
from pytranehome.devices import TraneAutomation, TraneSensor, TraneThermostat, TraneZone
from pytranehome.exceptions import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    DeviceNotFoundError,
    ErrorKind,
    FeatureNotSupportedError,
    HttpClientError,
    HttpRedirectError,
    HttpServerError,
    InvalidParameterError,
    ParseError,
    RateLimitError,
    SessionExpiredError,
    TraneConnectionError,
    TraneError,
    TraneTimeoutError,
    UnauthorizedError,
)
from pytranehome.models import (
    Automation,
    CanonicalSensor,
    CanonicalThermostat,
    CanonicalZone,
    Credentials,
    HomeInfo,
    ThermostatFeatures,
)
from pytranehome.normalizer import PayloadFormat, detect_payload_format, normalize_thermostat
from pytranehome.resilience import ExponentialBackoff, LoginRateLimiter, retry_with_backoff
from pytranehome.transport import TraneTransport


__version__ = "0.1.0"

__all__ = [
    "AirCleanerMode",
    "ApiError",
    "AuthenticationError",
    "Automation",
    "BatteryStatus",
    "CanonicalSensor",
    "CanonicalThermostat",
    "CanonicalZone",
    "ConfigurationError",
    "Credentials",
    "DeviceNotFoundError",
    "ErrorKind",
    "ExponentialBackoff",
    "FanMode",
    "FeatureNotSupportedError",
    "HomeInfo",
    "HttpClientError",
    "HttpRedirectError",
    "HttpServerError",
    "InvalidParameterError",
    "LoginRateLimiter",
    "OperationMode",
    "ParseError",
    "PayloadFormat",
    "PresetMode",
    "RateLimitError",
    "SessionExpiredError",
    "SessionManager",
    "SessionStatus",
    "SystemStatus",
    "TemperatureUnit",
    "ThermostatFeatures",
    "TraneAutomation",
    "TraneClient",
    "TraneConnectionError",
    "TraneError",
    "TraneSensor",
    "TraneThermostat",
    "TraneTimeoutError",
    "TraneTransport",
    "TraneZone",
    "UnauthorizedError",
    "ZoneStatus",
    "__version__",
    "detect_payload_format",
    "normalize_thermostat",
    "retry_with_backoff",
]
