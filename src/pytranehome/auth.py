"""Session management for the Trane Home API."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import UTC, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pytranehome.const import (
    APP_VERSION,
    BRAND_TRANE,
    DEFAULT_DEVICE_NAME,
    ENDPOINT_SESSION,
    ENDPOINT_SIGN_IN,
    SESSION_LIFETIME_SECONDS,
    STATE_DIR_NAME,
    STATE_FILE_NAME,
)
from pytranehome.exceptions import AuthenticationError, ConfigurationError, HttpRedirectError, TraneError
from pytranehome.models import Credentials, HomeInfo, SessionState
from pytranehome.normalizer import parse_session_homes, unwrap_result
from pytranehome.resilience import LoginRateLimiter


if TYPE_CHECKING:
    from collections.abc import Callable

    from pytranehome.transport import TraneTransport

_LOGGER = logging.getLogger(__name__)


class SessionStatus(Enum):
    """Lifecycle of a vendor session."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"
    LOGGED_OUT = "logged_out"


def default_state_file() -> Path:
    """Return ``~/.trane/auth-state.json``, or a path under the working directory without a home."""
    try:
        base = Path.home()
    except RuntimeError:
        base = Path.cwd()
    return base / STATE_DIR_NAME / STATE_FILE_NAME


class SessionManager:
    """Own the vendor session: identity, sign-in, expiry and house discovery.

    The device UUID identifies this installation to the vendor and is kept
    stable across restarts by persisting it, together with the current
    credentials and the sign-in counters, to a small JSON state file.
    Persistence is best effort: a state file that cannot be read or written
    is logged and never fails the operation in progress.

    Sign-in attempts are limited locally (see
    :class:`~pytranehome.resilience.LoginRateLimiter`) so a misconfigured
    password cannot lock the vendor account.

    Example:
        ```python
        async with TraneTransport() as transport:
            manager = SessionManager("user@example.com", "secret", transport=transport)
            await manager.initialize()
            if not manager.is_session_valid():
                await manager.authenticate()
            home = await manager.get_session_info()
        ```

    Attributes:
        username: Account login.
        house_id: Configured house id, or None to use the first house found.
        device_name: Name this installation registers under.
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        transport: TraneTransport,
        state_file: str | Path | None = None,
        house_id: int | None = None,
        device_name: str = DEFAULT_DEVICE_NAME,
        brand: str = BRAND_TRANE,
        rate_limiter: LoginRateLimiter | None = None,
        on_session_updated: Callable[[SessionManager], None] | None = None,
    ) -> None:
        """Initialize the session manager.

        Args:
            username: Account login.
            password: Account password.
            transport: Transport used for sign-in and session discovery.
            state_file: Where to persist session state. Defaults to
                ``~/.trane/auth-state.json``.
            house_id: House to select during discovery. Defaults to the first.
            device_name: Name this installation registers under.
            brand: Associated brand header value.
            rate_limiter: Local sign-in limiter. Defaults to 4 attempts per hour.
            on_session_updated: Optional callback invoked after each successful
                sign-in with this manager.

        Raises:
            ConfigurationError: If username or password is empty.
        """
        if not username:
            msg = "Username is required"
            raise ConfigurationError(msg, config_field="username")
        if not password:
            msg = "Password is required"
            raise ConfigurationError(msg, config_field="password")

        self.username = username
        self._password = password
        self.house_id = house_id
        self.device_name = device_name
        self._brand = brand
        self._transport = transport
        self._state_file = Path(state_file) if state_file is not None else default_state_file()
        self._rate_limiter = rate_limiter or LoginRateLimiter()
        self._on_session_updated = on_session_updated
        self._state = SessionState(device_uuid=str(uuid.uuid4()))
        self._status = SessionStatus.UNAUTHENTICATED
        self._auth_lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        """Get the session lifecycle status."""
        return self._status

    @property
    def state_file(self) -> Path:
        """Get the state file path."""
        return self._state_file

    @property
    def device_uuid(self) -> str:
        """Get the installation's device UUID."""
        return self._state.device_uuid

    @property
    def api_key(self) -> str | None:
        """Get the current API key."""
        return self._state.api_key

    @property
    def mobile_id(self) -> str | None:
        """Get the current mobile id."""
        return self._state.mobile_id

    @property
    def session_expiry(self) -> datetime | None:
        """Get the time the session expires."""
        return self._state.session_expiry

    @property
    def login_attempts(self) -> int:
        """Get the number of sign-in attempts in the current window."""
        return self._state.login_attempts

    @property
    def credentials(self) -> Credentials | None:
        """Get the credentials to attach to requests, or None without a session."""
        if not self._state.api_key or not self._state.mobile_id:
            return None
        return Credentials(
            api_key=self._state.api_key,
            mobile_id=self._state.mobile_id,
            brand=self._brand,
            app_version=APP_VERSION,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load persisted state, restoring a still-valid session.

        A missing, unreadable or malformed state file yields a fresh device
        UUID, which is persisted immediately.
        """
        try:
            self._state = await asyncio.to_thread(self._read_state)
        except FileNotFoundError:
            _LOGGER.debug("No state file at %s, starting with a new device identity", self._state_file)
            self._state = SessionState(device_uuid=str(uuid.uuid4()))
            await self._save_state()
            return
        except (OSError, ValueError) as err:
            _LOGGER.warning("Ignoring unusable state file %s: %s", self._state_file, err)
            self._state = SessionState(device_uuid=str(uuid.uuid4()))
            await self._save_state()
            return

        if self.is_session_valid():
            self._status = SessionStatus.AUTHENTICATED
            _LOGGER.debug("Restored session valid until %s", self._state.session_expiry)

    def is_session_valid(self) -> bool:
        """Return True if credentials are present and not yet expired."""
        return bool(
            self._state.api_key
            and self._state.mobile_id
            and self._state.session_expiry is not None
            and datetime.now(UTC) < self._state.session_expiry
        )

    def needs_authentication(self) -> bool:
        """Return True if a sign-in is required before making requests."""
        return not self.is_session_valid()

    async def authenticate(self) -> Credentials:
        """Sign in and start a new 24 hour session.

        Returns:
            The new credentials.

        Raises:
            RateLimitError: If the local attempt budget is exhausted. No network
                request is made.
            AuthenticationError: If the vendor rejects the credentials or the
                request fails.
        """
        async with self._auth_lock:
            self._rate_limiter.check(self._state)
            self._status = SessionStatus.AUTHENTICATING

            payload = {
                "login": self.username,
                "password": self._password,
                "device_uuid": self._state.device_uuid,
                "device_name": self.device_name,
                "app_version": APP_VERSION,
                "is_commercial": False,
            }

            try:
                response = await self._transport.request("POST", ENDPOINT_SIGN_IN, json_data=payload)
            except HttpRedirectError as exc:
                await self._record_failure()
                msg = "Invalid credentials"
                raise AuthenticationError(msg) from exc
            except TraneError as exc:
                await self._record_failure()
                msg = f"Login failed: {exc}"
                raise AuthenticationError(msg) from exc

            result = unwrap_result(response.data)
            api_key = result.get("api_key") if isinstance(result, dict) else None
            mobile_id = result.get("mobile_id") if isinstance(result, dict) else None
            if not api_key or mobile_id is None:
                await self._record_failure()
                msg = "Login failed: Invalid credentials"
                raise AuthenticationError(msg)

            now = datetime.now(UTC)
            self._state.api_key = str(api_key)
            self._state.mobile_id = str(mobile_id)
            self._state.session_expiry = now + timedelta(seconds=SESSION_LIFETIME_SECONDS)
            self._rate_limiter.record_success(self._state, now)
            self._status = SessionStatus.AUTHENTICATED
            await self._save_state()

        _LOGGER.info("Signed in as %s", self.username)
        if self._on_session_updated is not None:
            self._on_session_updated(self)

        credentials = self.credentials
        if credentials is None:
            msg = "Credentials missing after successful sign-in"
            raise AuthenticationError(msg)
        return credentials

    async def get_session_info(self) -> HomeInfo:
        """Discover the account's houses and select one.

        Signs in first if the session is not valid.

        Returns:
            The configured house, or the first house when none is configured.

        Raises:
            AuthenticationError: If no house is found, the configured house id
                is absent, or the discovery request fails.
        """
        if not self.is_session_valid():
            await self.authenticate()

        try:
            response = await self._transport.request(
                "POST", ENDPOINT_SESSION, json_data={}, credentials=self.credentials
            )
        except AuthenticationError:
            raise
        except TraneError as exc:
            msg = f"Session discovery failed: {exc}"
            raise AuthenticationError(msg) from exc

        homes = parse_session_homes(unwrap_result(response.data))
        if not homes:
            msg = "No homes found in account"
            raise AuthenticationError(msg)

        if self.house_id is None:
            home = homes[0]
        else:
            home = next((item for item in homes if item.house_id == self.house_id), None)
            if home is None:
                available = ", ".join(str(item.house_id) for item in homes)
                msg = f"House ID {self.house_id} not found. Available houses: {available}"
                raise AuthenticationError(msg)

        _LOGGER.debug("Using house %s (%s)", home.house_id, home.name)
        return home

    async def handle_session_expired(self) -> None:
        """Forget the dead session so the next call signs in again.

        The cleared credentials are persisted so a restart does not restore them.
        """
        _LOGGER.debug("Session expired, clearing credentials")
        self._clear_credentials()
        self._status = SessionStatus.EXPIRED
        await self._save_state()

    async def logout(self) -> None:
        """Clear credentials and persist the cleared state."""
        self._clear_credentials()
        self._status = SessionStatus.LOGGED_OUT
        await self._save_state()

    async def reset(self) -> None:
        """Discard everything, including the device identity, and persist."""
        self._state = SessionState(device_uuid=str(uuid.uuid4()))
        self._status = SessionStatus.UNAUTHENTICATED
        await self._save_state()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _clear_credentials(self) -> None:
        self._state.api_key = None
        self._state.mobile_id = None
        self._state.session_expiry = None

    async def _record_failure(self) -> None:
        self._rate_limiter.record_failure(self._state)
        self._status = SessionStatus.AUTHENTICATED if self.is_session_valid() else SessionStatus.UNAUTHENTICATED
        await self._save_state()

    def _read_state(self) -> SessionState:
        data: Any = json.loads(self._state_file.read_text(encoding="utf-8"))
        return SessionState.from_dict(data)

    def _write_state(self, data: dict[str, Any]) -> None:
        self._state_file.parent.mkdir(parents=True, exist_ok=True)
        self._state_file.write_text(json.dumps(data, indent=2), encoding="utf-8")

    async def _save_state(self) -> None:
        try:
            await asyncio.to_thread(self._write_state, self._state.to_dict())
        except (OSError, TypeError, ValueError) as err:
            _LOGGER.warning("Could not save session state to %s: %s", self._state_file, err)
