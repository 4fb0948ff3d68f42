"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from copy import deepcopy
from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientSession, web

from pytranehome.client import TraneClient
from pytranehome.const import CONTENT_TYPE_COLLECTION, CONTENT_TYPE_LOCATION
from pytranehome.resilience import ExponentialBackoff


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from pathlib import Path

    from aiohttp.test_utils import TestClient


VENDOR_ORIGIN = "https://www.tranehome.com"
THERMOSTAT_ID = "2059661"
ZONE_ID = "83261002"
AUTOMATION_ID = "415"


def room_sensors(active_sensor_ids: set[int] | frozenset[int] = frozenset({1})) -> list[dict[str, Any]]:
    """Room sensor list as the vendor reports it."""
    return [
        {
            "id": 1,
            "name": "Downstairs",
            "type": "thermostat",
            "serial_number": "NativeIDTStat",
            "weight": 1.0 if 1 in active_sensor_ids else 0.0,
            "temperature": 73,
            "temperature_valid": True,
            "humidity": 45,
            "humidity_valid": True,
            "has_online": False,
            "has_battery": False,
        },
        {
            "id": 2,
            "name": "Bedroom",
            "type": "930",
            "serial_number": "2410R5C53X",
            "weight": 1.0 if 2 in active_sensor_ids else 0.0,
            "temperature": 70,
            "temperature_valid": True,
            "humidity": 48,
            "humidity_valid": True,
            "connected": True,
            "has_online": True,
            "has_battery": True,
            "battery_level": 15,
            "battery_low": False,
            "battery_valid": True,
        },
    ]


def build_feature_array_thermostat(
    origin: str = VENDOR_ORIGIN,
    active_sensor_ids: set[int] | frozenset[int] = frozenset({1}),
) -> dict[str, Any]:
    """Thermostat in the feature-array shape (feature blocks and typed settings)."""
    return {
        "id": int(THERMOSTAT_ID),
        "name": "Downstairs",
        "type": "xxl_thermostat",
        "has_outdoor_temperature": True,
        "outdoor_temperature": "71",
        "has_indoor_humidity": True,
        "indoor_humidity": "45",
        "_links": {"self": {"href": f"{origin}/mobile/xxl_thermostats/{THERMOSTAT_ID}"}},
        "features": [
            {
                "name": "advanced_info",
                "items": [
                    {"label": "Model", "value": "XL850"},
                    {"label": "Firmware Version", "value": "5.9.1"},
                ],
            },
            {
                "name": "thermostat",
                "scale": "f",
                "temperature": 72,
                "setpoint_heat": 68,
                "setpoint_cool": 76,
                "setpoint_delta": 3,
                "system_status": "Cooling",
                "operating_state": "cooling",
                "device_identifier": f"XxlZone-{ZONE_ID}",
            },
            {"name": "thermostat_mode", "value": "AUTO"},
            {"name": "thermostat_run_mode", "value": "Permanent Hold"},
            {"name": "connection", "is_connected": True},
            {"name": "room_iq_sensors", "sensors": room_sensors(active_sensor_ids)},
        ],
        "settings": [
            {
                "type": "fan_mode",
                "current_value": "auto",
                "values": [{"value": "auto"}, {"value": "on"}, {"value": "circulate"}],
            },
            {"type": "fan_speed", "current_value": 0.35},
            {"type": "dehumidify", "current_value": 0.5},
            {"type": "scheduling_enabled", "current_value": True},
        ],
    }


def build_canonical_thermostat(origin: str = VENDOR_ORIGIN) -> dict[str, Any]:
    """The same thermostat in the canonical shape (settings/features objects, explicit zones)."""
    return {
        "id": int(THERMOSTAT_ID),
        "name": "Downstairs",
        "model": "XL850",
        "firmware": "5.9.1",
        "is_online": True,
        "_links": {"self": {"href": f"{origin}/mobile/xxl_thermostats/{THERMOSTAT_ID}"}},
        "features": {
            "has_outdoor_temperature": True,
            "has_relative_humidity": True,
            "has_variable_fan_speed": True,
            "has_dehumidify_support": True,
        },
        "settings": {
            "temperature_unit": "F",
            "deadband": 3,
            "system_status": "Cooling",
            "relative_humidity": 0.45,
            "outdoor_temperature": 71,
            "fan_mode": "auto",
            "fan_modes": ["auto", "on", "circulate"],
            "fan_speed": 0.35,
            "scheduling_enabled": True,
            "dehumidify_setpoint": 0.5,
        },
        "zones": [
            {
                "id": ZONE_ID,
                "name": "Downstairs",
                "settings": {"temperature": 73, "status": "cooling"},
                "features": {
                    "heating_setpoint": 68,
                    "cooling_setpoint": 76,
                    "current_mode": "AUTO",
                    "setpoint_status": "Permanent Hold",
                    "is_calling": True,
                },
                "sensors": room_sensors(),
            }
        ],
    }


def build_automation(origin: str = VENDOR_ORIGIN) -> dict[str, Any]:
    """Automation as listed in the house document."""
    return {
        "id": int(AUTOMATION_ID),
        "name": "Away",
        "description": "Set all zones to away",
        "enabled": True,
        "_links": {"self": {"href": f"{origin}/mobile/automations/{AUTOMATION_ID}"}},
    }


class FakeVendor:
    """In-memory stand-in for the vendor's mobile API.

    Keys issued by sign-in are valid until a test clears ``valid_keys``,
    which is how session expiry is simulated.
    """

    def __init__(self) -> None:
        self.house_id = 123
        self.house_name = "Lake House"
        self.valid_keys: set[str] = set()
        self.sign_in_count = 0
        self.sign_in_bodies: list[dict[str, Any]] = []
        self.reject_sign_in = False
        self.legacy_session = False
        self.session_requests = 0
        self.house_requests = 0
        self.house_status: int | None = None
        self.always_unauthorized = False
        self.etag = '"house-v1"'
        self.commands: list[tuple[str, str, Any]] = []
        self.active_sensor_ids: set[int] = {1}
        self.pending_sensor_ids: set[int] | None = None
        self.sensor_state_requests = 0
        self.confirm_sensors_after = 1

    def _authorized(self, request: web.Request) -> bool:
        return not self.always_unauthorized and request.headers.get("X-ApiKey") in self.valid_keys

    def house_document(self, origin: str) -> dict[str, Any]:
        """House document listing one thermostat and one automation."""
        return {
            "success": True,
            "result": {
                "id": self.house_id,
                "name": self.house_name,
                "_links": {
                    "child": [
                        {
                            "href": f"{origin}/mobile/houses/{self.house_id}/devices",
                            "type": CONTENT_TYPE_COLLECTION,
                            "data": {"items": [build_feature_array_thermostat(origin, self.active_sensor_ids)]},
                        },
                        {
                            "href": f"{origin}/mobile/houses/{self.house_id}/automations",
                            "type": CONTENT_TYPE_COLLECTION,
                            "data": {"items": [build_automation(origin)]},
                        },
                    ]
                },
            },
        }

    async def sign_in(self, request: web.Request) -> web.Response:
        """POST /mobile/accounts/sign_in."""
        self.sign_in_count += 1
        self.sign_in_bodies.append(await request.json())
        if self.reject_sign_in:
            return web.Response(status=HTTPStatus.FOUND, headers={"Location": "/login"})
        key = f"api-key-{self.sign_in_count}"
        self.valid_keys.add(key)
        return web.json_response({"success": True, "result": {"api_key": key, "mobile_id": 555}})

    async def session(self, request: web.Request) -> web.Response:
        """POST /mobile/session."""
        self.session_requests += 1
        if not self._authorized(request):
            return web.Response(status=HTTPStatus.UNAUTHORIZED)
        if self.legacy_session:
            return web.json_response(
                {"success": True, "result": {"homes": [{"id": self.house_id, "name": self.house_name}]}}
            )
        origin = str(request.url.origin())
        child = {
            "href": f"{origin}/mobile/houses/{self.house_id}",
            "type": CONTENT_TYPE_LOCATION,
            "data": {"id": self.house_id, "name": self.house_name},
        }
        return web.json_response({"success": True, "result": {"_links": {"child": [child]}}})

    async def house(self, request: web.Request) -> web.Response:
        """GET /mobile/houses/{house_id}."""
        if not self._authorized(request):
            return web.Response(status=HTTPStatus.UNAUTHORIZED)
        self.house_requests += 1
        if self.house_status is not None:
            return web.Response(status=self.house_status)
        if request.headers.get("If-None-Match") == self.etag:
            return web.Response(status=HTTPStatus.NOT_MODIFIED)
        document = self.house_document(str(request.url.origin()))
        return web.json_response(document, headers={"ETag": self.etag})

    async def command(self, request: web.Request) -> web.Response:
        """POST/PUT to any device operation."""
        if not self._authorized(request):
            return web.Response(status=HTTPStatus.UNAUTHORIZED)
        body = await request.json() if request.can_read_body else None
        self.commands.append((request.method, request.path, body))

        operation = request.path.rsplit("/", 1)[-1]
        if operation == "update_active_sensors":
            self.pending_sensor_ids = set(body["active_sensor_ids"])
        elif operation == "request_current_sensor_state":
            self.sensor_state_requests += 1
            if self.pending_sensor_ids is not None and self.sensor_state_requests >= self.confirm_sensors_after:
                self.active_sensor_ids = self.pending_sensor_ids
        return web.json_response({"success": True, "result": {}})

    def app(self) -> web.Application:
        """Build the aiohttp application serving this vendor."""
        app = web.Application()
        app.router.add_post("/mobile/accounts/sign_in", self.sign_in)
        app.router.add_post("/mobile/session", self.session)
        app.router.add_get("/mobile/houses/{house_id}", self.house)
        app.router.add_post("/mobile/xxl_thermostats/{device_id}/{operation}", self.command)
        app.router.add_post("/mobile/xxl_zones/{device_id}/{operation}", self.command)
        app.router.add_put("/mobile/automations/{automation_id}", self.command)
        app.router.add_post("/mobile/automations/{automation_id}/{operation}", self.command)
        return app


@pytest.fixture
async def mock_session() -> AsyncGenerator[ClientSession]:
    """Create a mock aiohttp ClientSession.

    Yields:
        Mock ClientSession for testing.
    """
    session = AsyncMock(spec=ClientSession)
    session.closed = False

    async def mock_close() -> None:
        session.closed = True

    session.close = mock_close

    yield session

    if not session.closed:
        await session.close()


@pytest.fixture
def mock_response() -> MagicMock:
    """Create a mock aiohttp ClientResponse.

    Returns:
        Mock ClientResponse for testing.
    """
    response = MagicMock()
    response.status = 200
    response.headers = {}
    response.text = AsyncMock(return_value="")
    return response


@pytest.fixture
def fast_backoff() -> ExponentialBackoff:
    """Retry policy without delays."""
    return ExponentialBackoff(base_delay=0, max_delay=0, max_retries=2, jitter=0)


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    """Path of a per-test session state file."""
    return tmp_path / ".trane" / "auth-state.json"


@pytest.fixture
def feature_array_payload() -> dict[str, Any]:
    """Feature-array thermostat payload."""
    return deepcopy(build_feature_array_thermostat())


@pytest.fixture
def canonical_payload() -> dict[str, Any]:
    """Canonical thermostat payload describing the same device."""
    return deepcopy(build_canonical_thermostat())


@pytest.fixture
def vendor() -> FakeVendor:
    """Fresh fake vendor state."""
    return FakeVendor()


@pytest.fixture
async def vendor_server(aiohttp_client: Callable[..., Any], vendor: FakeVendor) -> TestClient:
    """Test server running the fake vendor."""
    return await aiohttp_client(vendor.app())


@pytest.fixture
def make_client(
    vendor_server: TestClient,
    state_file: Path,
    fast_backoff: ExponentialBackoff,
) -> Callable[..., TraneClient]:
    """Factory for clients talking to the fake vendor without delays."""

    def factory(**kwargs: Any) -> TraneClient:
        options: dict[str, Any] = {
            "base_url": str(vendor_server.make_url("")),
            "session": vendor_server.session,
            "state_file": state_file,
            "backoff": fast_backoff,
            "settle_delay": 0,
            "sensor_poll_interval": 0,
            "sensor_state_delay": 0,
        }
        options.update(kwargs)
        return TraneClient("user@example.com", "secret", **options)

    return factory


@pytest.fixture
async def trane_client(make_client: Callable[..., TraneClient]) -> AsyncGenerator[TraneClient]:
    """Client signed in to the fake vendor with the house loaded."""
    client = make_client()
    async with client:
        await client.login()
        yield client
