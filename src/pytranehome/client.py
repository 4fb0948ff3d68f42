"""Device registry and coordinator for Trane Home thermostats.

This module ties the transport, the session manager and the normalizer
together: it keeps the account's house tree in memory, routes device commands
to the vendor and recovers transparently from an expired session.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pytranehome.auth import SessionManager
from pytranehome.const import (
    CONTENT_TYPE_COLLECTION,
    DEFAULT_BASE_URL,
    DEFAULT_DEVICE_NAME,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_SENSOR_MAX_POLLS,
    DEFAULT_SENSOR_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
    ENDPOINT_HOUSES,
    SENSOR_STATE_REQUEST_DELAY,
    UPDATE_DELAY_SECONDS,
)
from pytranehome.devices import TraneAutomation, TraneThermostat
from pytranehome.exceptions import (
    AuthenticationError,
    ConfigurationError,
    HttpClientError,
    HttpRedirectError,
    ParseError,
    SessionExpiredError,
    TraneError,
    UnauthorizedError,
)
from pytranehome.normalizer import is_thermostat_item, normalize_automation, normalize_thermostat
from pytranehome.resilience import ExponentialBackoff
from pytranehome.transport import TraneTransport


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from pathlib import Path
    from types import TracebackType

    from aiohttp import ClientSession

_LOGGER = logging.getLogger(__name__)

SESSION_EXPIRED_ERRORS = (SessionExpiredError, UnauthorizedError, HttpRedirectError)


class TraneClient:
    """Device registry and coordinator for a Trane Home account.

    The client signs in on demand, selects a house and keeps its thermostats
    and automations as device objects built from normalized records. Reads
    are served from memory; :meth:`update` refreshes them, using an ETag so an
    unchanged house costs no parsing. Commands issued on device objects are
    routed through :meth:`post`/:meth:`put` and followed by a delayed refresh
    once the vendor has had time to apply them.

    Example:
        Basic usage with automatic session management:

        ```python
        from pytranehome import TraneClient

        async with TraneClient(username="user@example.com", password="password") as client:
            await client.login()
            for thermostat in client.get_thermostats():
                for zone in thermostat.zones:
                    print(zone.name, zone.current_temperature)
            await client.update()
        ```

        With an injected session and a custom retry policy:

        ```python
        async with ClientSession() as session:
            client = TraneClient(
                username="user@example.com",
                password="password",
                session=session,
                backoff=ExponentialBackoff(max_retries=5),
                settle_delay=10,
            )
            async with client:
                await client.login()
        ```

    Attributes:
        transport: Low-level HTTP transport.
        session_manager: Owner of the vendor session.
    """

    def __init__(
        self,
        username: str,
        password: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        session: ClientSession | None = None,
        house_id: int | None = None,
        state_file: str | Path | None = None,
        device_name: str = DEFAULT_DEVICE_NAME,
        timeout: float = DEFAULT_TIMEOUT,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        backoff: ExponentialBackoff | None = None,
        settle_delay: float = UPDATE_DELAY_SECONDS,
        sensor_poll_interval: float = DEFAULT_SENSOR_POLL_INTERVAL,
        sensor_max_polls: int = DEFAULT_SENSOR_MAX_POLLS,
        sensor_state_delay: float = SENSOR_STATE_REQUEST_DELAY,
    ) -> None:
        """Initialize the Trane client.

        Args:
            username: Account login.
            password: Account password.
            base_url: Base URL for the API. Defaults to Trane Home production.
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager or on first request.
            house_id: House to use. Defaults to the first house of the account.
            state_file: Where to persist session state.
            device_name: Name this installation registers under.
            timeout: Total timeout per request in seconds.
            retry_attempts: Retries for transient failures. Ignored when
                ``backoff`` is given.
            backoff: Retry policy for transient failures.
            settle_delay: Seconds to wait after a command before refreshing.
            sensor_poll_interval: Seconds between sensor-selection polls.
            sensor_max_polls: Maximum sensor-selection polls.
            sensor_state_delay: Seconds to wait after requesting sensor state.

        Raises:
            ConfigurationError: If a credential is missing or a delay or count
                is out of range.
        """
        if timeout <= 0:
            msg = "Timeout must be positive"
            raise ConfigurationError(msg, config_field="timeout")
        if retry_attempts < 0:
            msg = "Retry attempts cannot be negative"
            raise ConfigurationError(msg, config_field="retry_attempts")
        for field_name, value in (
            ("settle_delay", settle_delay),
            ("sensor_poll_interval", sensor_poll_interval),
            ("sensor_state_delay", sensor_state_delay),
        ):
            if value < 0:
                msg = f"{field_name} cannot be negative"
                raise ConfigurationError(msg, config_field=field_name)
        if sensor_max_polls <= 0:
            msg = "sensor_max_polls must be positive"
            raise ConfigurationError(msg, config_field="sensor_max_polls")

        self.transport = TraneTransport(
            session=session,
            base_url=base_url,
            timeout=timeout,
            backoff=backoff or ExponentialBackoff(max_retries=retry_attempts),
        )
        self.session_manager = SessionManager(
            username,
            password,
            transport=self.transport,
            state_file=state_file,
            house_id=house_id,
            device_name=device_name,
        )

        self.settle_delay = settle_delay
        self.sensor_poll_interval = sensor_poll_interval
        self.sensor_max_polls = sensor_max_polls
        self.sensor_state_delay = sensor_state_delay

        self._house_id: int | None = house_id
        self._house_name: str | None = None
        self._initialized = False
        self._last_update: datetime | None = None
        self._thermostats: dict[str, TraneThermostat] = {}
        self._automations: dict[str, TraneAutomation] = {}
        self._pending_tasks: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> TraneClient:
        """Enter the context manager.

        Returns:
            Self for use in async with statements.
        """
        await self.transport.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, cancelling pending work and closing the transport."""
        await self.close()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def house_id(self) -> int | None:
        """Get the selected house id."""
        return self._house_id

    @property
    def house_name(self) -> str | None:
        """Get the selected house name."""
        return self._house_name

    @property
    def last_update(self) -> datetime | None:
        """Get the time of the last successful refresh."""
        return self._last_update

    @property
    def update_url(self) -> str:
        """Get the URL of the selected house."""
        return f"{ENDPOINT_HOUSES}/{self._house_id}"

    @property
    def thermostat_ids(self) -> list[str]:
        """Get the ids of known thermostats."""
        return list(self._thermostats)

    @property
    def automation_ids(self) -> list[str]:
        """Get the ids of known automations."""
        return list(self._automations)

    def is_authenticated(self) -> bool:
        """Return True if the session is valid."""
        return self.session_manager.is_session_valid()

    def get_thermostats(self) -> list[TraneThermostat]:
        """Get all thermostats from the last refresh."""
        return list(self._thermostats.values())

    def get_automations(self) -> list[TraneAutomation]:
        """Get all automations from the last refresh."""
        return list(self._automations.values())

    def get_thermostat_by_id(self, thermostat_id: str | int) -> TraneThermostat | None:
        """Look up a thermostat by id."""
        return self._thermostats.get(str(thermostat_id))

    def get_automation_by_id(self, automation_id: str | int) -> TraneAutomation | None:
        """Look up an automation by id."""
        return self._automations.get(str(automation_id))

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Restore persisted state and make sure a house is selected.

        Signs in only when the restored session is missing or expired.
        """
        await self.session_manager.initialize()
        self._initialized = True
        if self.session_manager.needs_authentication():
            await self.session_manager.authenticate()
        await self._discover_house()

    async def login(self) -> None:
        """Sign in, select the house and load its devices."""
        if not self._initialized:
            await self.session_manager.initialize()
            self._initialized = True
        await self.session_manager.authenticate()
        await self._discover_house()
        await self.update(force_update=True)

    async def logout(self) -> None:
        """End the session and forget all devices."""
        await self.session_manager.logout()
        self.clear_cache()

    async def close(self) -> None:
        """Cancel pending delayed refreshes and close the transport."""
        tasks = list(self._pending_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending_tasks.clear()
        await self.transport.close()

    def clear_cache(self) -> None:
        """Forget all devices and cached responses."""
        self._thermostats = {}
        self._automations = {}
        self._last_update = None
        self.transport.clear_etag_cache()

    async def _discover_house(self) -> None:
        home = await self.session_manager.get_session_info()
        self._house_id = home.house_id
        self._house_name = home.name

    async def _ensure_authenticated(self) -> None:
        if not self._initialized:
            await self.session_manager.initialize()
            self._initialized = True
        if self.session_manager.needs_authentication():
            await self.session_manager.authenticate()
        if self._house_id is None:
            await self._discover_house()

    async def _handle_session_expiry(self) -> None:
        await self.session_manager.handle_session_expired()
        try:
            await self.session_manager.authenticate()
            await self._discover_house()
        except TraneError as exc:
            self._thermostats = {}
            self._automations = {}
            msg = "Failed to refresh expired session"
            raise AuthenticationError(msg) from exc
        _LOGGER.info("Session refreshed after expiry")

    async def _with_session_recovery(self, func: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``func`` once, signing in again and retrying once if the session died."""
        await self._ensure_authenticated()
        try:
            return await func()
        except SESSION_EXPIRED_ERRORS as exc:
            _LOGGER.info("Session appears expired (%s), signing in again", exc)
            await self._handle_session_expiry()
        return await func()

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    async def _request(self, method: str, url: str, data: Any = None) -> Any:
        response = await self.transport.request(
            method,
            url,
            json_data=data,
            credentials=self.session_manager.credentials,
        )
        return response.data

    async def get(self, url: str) -> Any:
        """GET a vendor URL with the current session."""
        return await self._with_session_recovery(lambda: self._request("GET", url))

    async def post(self, url: str, data: Any = None) -> Any:
        """POST to a vendor URL with the current session."""
        return await self._with_session_recovery(lambda: self._request("POST", url, data))

    async def put(self, url: str, data: Any = None) -> Any:
        """PUT to a vendor URL with the current session."""
        return await self._with_session_recovery(lambda: self._request("PUT", url, data))

    # -------------------------------------------------------------------------
    # State refresh
    # -------------------------------------------------------------------------

    async def update(self, *, force_update: bool = False) -> bool:
        """Refresh the house tree.

        Args:
            force_update: Skip the ETag check and always download the house.

        Returns:
            True if devices were rebuilt, False if the house was unchanged.

        Raises:
            AuthenticationError: If the session cannot be (re-)established.
            ParseError: If the house document is malformed.
            TraneError: On transport failures.
        """
        return await self._with_session_recovery(lambda: self._update(force_update=force_update))

    async def _update(self, *, force_update: bool) -> bool:
        credentials = self.session_manager.credentials
        if force_update:
            response = await self.transport.request("GET", self.update_url, credentials=credentials)
            data = response.data
        else:
            etag_response = await self.transport.request_with_etag(self.update_url, credentials=credentials)
            if etag_response.from_cache:
                _LOGGER.debug("House %s unchanged", self._house_id)
                return False
            data = etag_response.data

        await self._process_house(data)
        return True

    async def _process_house(self, data: Any) -> None:
        if not isinstance(data, dict) or not data.get("success") or not isinstance(data.get("result"), dict):
            msg = "Invalid house data received"
            raise ParseError(msg, data=data)
        result: dict[str, Any] = data["result"]

        thermostats: dict[str, TraneThermostat] = {}
        automations: dict[str, TraneAutomation] = {}

        def add_thermostat(raw: Any) -> None:
            thermostat = TraneThermostat(self, normalize_thermostat(raw))
            thermostats[thermostat.thermostat_id] = thermostat

        def add_automation(raw: Any) -> None:
            automation = TraneAutomation(self, normalize_automation(raw))
            automations[automation.automation_id] = automation

        links = result.get("_links") or {}
        children = (links.get("child") or []) if isinstance(links, dict) else None
        devices = result.get("devices") or []
        automation_items = result.get("automations") or []
        if not all(isinstance(value, list) for value in (children, devices, automation_items)):
            msg = "Invalid house data received"
            raise ParseError(msg, data=data)

        for child in children:
            if not isinstance(child, dict):
                continue
            href = str(child.get("href") or "")
            child_type = child.get("type")
            try:
                # Collections carry their items inline and must not be fetched.
                if child_type == CONTENT_TYPE_COLLECTION:
                    collection = child.get("data") or {}
                    items = (collection.get("items") or []) if isinstance(collection, dict) else None
                    if not isinstance(items, list):
                        msg = f"Invalid collection data at {href}"
                        raise ParseError(msg, data=child)
                    for item in items:
                        try:
                            if "automation" in href:
                                add_automation(item)
                            elif is_thermostat_item(item):
                                add_thermostat(item)
                        except ParseError as err:
                            _LOGGER.warning("Skipping malformed item in %s: %s", href, err)
                elif child_type == "thermostat" or "xxl_thermostats" in href:
                    add_thermostat(await self._request("GET", href))
                elif child_type == "automation" or "automation" in href:
                    add_automation(await self._request("GET", href))
            except (ParseError, HttpClientError) as err:
                _LOGGER.warning("Skipping house child %s: %s", href, err)

        for device in devices:
            try:
                add_thermostat(device)
            except ParseError as err:
                _LOGGER.warning("Skipping malformed device: %s", err)

        for automation in automation_items:
            try:
                add_automation(automation)
            except ParseError as err:
                _LOGGER.warning("Skipping malformed automation: %s", err)

        self._thermostats = thermostats
        self._automations = automations
        self._last_update = datetime.now(UTC)
        _LOGGER.debug(
            "House %s refreshed: %d thermostats, %d automations",
            self._house_id,
            len(thermostats),
            len(automations),
        )

    async def delayed_update(self, delay: float | None = None) -> None:
        """Wait for the vendor to settle, then force a refresh.

        The wait runs as a tracked task that :meth:`close` cancels. A failed
        refresh is logged; the command that triggered it already succeeded.

        Args:
            delay: Seconds to wait. Defaults to ``settle_delay``.
        """
        wait = self.settle_delay if delay is None else delay
        task = asyncio.create_task(self._run_delayed_update(wait))
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            _LOGGER.debug("Delayed update cancelled")

    async def _run_delayed_update(self, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self.update(force_update=True)
        except TraneError as err:
            _LOGGER.warning("Delayed update failed: %s", err)
