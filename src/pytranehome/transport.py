"""HTTP transport for the Trane Home mobile API.

This module owns the wire: URL resolution, default and credential headers,
status classification, retries with exponential backoff and the per-URL ETag
cache used for conditional GETs. It holds no authentication state of its own;
callers pass immutable :class:`~pytranehome.models.Credentials` per request.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from aiohttp import ClientError, ClientSession, ClientTimeout
from multidict import CIMultiDict

from pytranehome.const import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT,
    HEADER_ETAG,
    HEADER_IF_NONE_MATCH,
    USER_AGENT,
)
from pytranehome.exceptions import (
    ApiError,
    ParseError,
    TraneConnectionError,
    TraneTimeoutError,
    error_for_status,
)
from pytranehome.models import ETagCacheEntry, ETagResponse, HttpResponse
from pytranehome.resilience import ExponentialBackoff, retry_with_backoff


if TYPE_CHECKING:
    from types import TracebackType

    from aiohttp import ClientResponse

    from pytranehome.models import Credentials

_LOGGER = logging.getLogger(__name__)


class TraneTransport:
    """Low-level HTTP client for the Trane Home API.

    Example:
        ```python
        async with TraneTransport() as transport:
            response = await transport.request(
                "POST", "/mobile/accounts/sign_in", json_data={"login": "...", "password": "..."}
            )
            credentials = Credentials(response.data["result"]["api_key"], ...)
            house = await transport.request_with_etag("/mobile/houses/123", credentials=credentials)
            if not house.from_cache:
                process(house.data)
        ```

    Attributes:
        base_url: Base URL relative paths are resolved against.
    """

    def __init__(
        self,
        *,
        session: ClientSession | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        backoff: ExponentialBackoff | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager or on first request.
            base_url: Base URL for the API. Defaults to Trane Home production.
            timeout: Total timeout per request in seconds.
            backoff: Retry policy for transient failures.
        """
        self._session = session
        self._owns_session = session is None
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._backoff = backoff or ExponentialBackoff()
        self._etag_cache: dict[str, ETagCacheEntry] = {}

    @property
    def base_url(self) -> str:
        """Get the base URL."""
        return self._base_url

    @property
    def session(self) -> ClientSession | None:
        """Get the underlying aiohttp session, if any."""
        return self._session

    def set_session(self, session: ClientSession) -> None:
        """Use an externally managed aiohttp session."""
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> TraneTransport:
        """Enter the context manager, creating a session if needed."""
        self._ensure_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the session if owned."""
        await self.close()

    async def close(self) -> None:
        """Close the session if it was created by this transport."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _ensure_session(self) -> ClientSession:
        if self._session is None or (self._owns_session and self._session.closed):
            self._session = ClientSession()
            self._owns_session = True
        elif self._session.closed:
            msg = "Session is closed. Cannot make request."
            raise RuntimeError(msg)
        return self._session

    def resolve_url(self, url: str) -> str:
        """Return an absolute URL, resolving relative paths against the base URL."""
        if url.startswith(("http://", "https://")):
            return url
        if not url.startswith("/"):
            url = f"/{url}"
        return f"{self._base_url}{url}"

    async def request(
        self,
        method: str,
        url: str,
        *,
        json_data: Any = None,
        headers: dict[str, str] | None = None,
        credentials: Credentials | None = None,
    ) -> HttpResponse:
        """Perform a request, retrying network failures and server errors.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE).
            url: Absolute URL or path relative to the base URL.
            json_data: Optional JSON body.
            headers: Extra headers for this request.
            credentials: Authenticated identity to send, if any.

        Returns:
            Decoded response. A 304 is returned as-is with ``data`` None.

        Raises:
            UnauthorizedError: On 401 (never retried).
            HttpRedirectError: On other 3xx responses.
            HttpClientError: On other 4xx responses (never retried).
            HttpServerError: On 5xx once retries are exhausted.
            TraneConnectionError: On network failure once retries are exhausted.
            TraneTimeoutError: On timeout once retries are exhausted.
            ParseError: If a successful response body is not valid JSON.
        """
        resolved = self.resolve_url(url)
        request_headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if credentials is not None:
            request_headers.update(credentials.as_headers())
        if headers:
            request_headers.update(headers)

        async def send() -> HttpResponse:
            return await self._send(method, resolved, json_data, request_headers)

        return await retry_with_backoff(send, backoff=self._backoff)

    async def _send(
        self,
        method: str,
        url: str,
        json_data: Any,
        headers: dict[str, str],
    ) -> HttpResponse:
        session = self._ensure_session()
        _LOGGER.debug("%s %s", method, url)

        try:
            async with session.request(
                method,
                url,
                json=json_data,
                headers=headers,
                timeout=ClientTimeout(total=self._timeout),
                allow_redirects=False,
            ) as response:
                data = await self._read_body(response, url)
                status = response.status
                response_headers = CIMultiDict(response.headers)
        except TimeoutError as exc:
            msg = f"Request to {url} timed out after {self._timeout}s"
            raise TraneTimeoutError(msg, timeout=self._timeout) from exc
        except ClientError as exc:
            msg = f"Connection error for {url}: {exc}"
            raise TraneConnectionError(msg) from exc

        if status == HTTPStatus.NOT_MODIFIED or HTTPStatus.OK <= status < HTTPStatus.MULTIPLE_CHOICES:
            if method == "GET" and status == HTTPStatus.OK and (etag := response_headers.get(HEADER_ETAG)):
                self._etag_cache[url] = ETagCacheEntry(etag=etag, data=data)
            return HttpResponse(status=status, data=data, headers=response_headers)

        raise error_for_status(status, url, data)

    @staticmethod
    async def _read_body(response: ClientResponse, url: str) -> Any:
        text = await response.text()
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            if HTTPStatus.OK <= response.status < HTTPStatus.MULTIPLE_CHOICES:
                msg = f"Invalid JSON in response from {url}"
                raise ParseError(msg, data=text) from exc
            return text

    async def request_with_etag(self, url: str, *, credentials: Credentials | None = None) -> ETagResponse:
        """Conditional GET backed by the per-URL ETag cache.

        Args:
            url: Absolute URL or path relative to the base URL.
            credentials: Authenticated identity to send, if any.

        Returns:
            The fresh body (``from_cache`` False) or, on 304, the cached body
            (``from_cache`` True).

        Raises:
            ApiError: If the server answers 304 but nothing is cached.
        """
        resolved = self.resolve_url(url)
        entry = self._etag_cache.get(resolved)
        headers = {HEADER_IF_NONE_MATCH: entry.etag} if entry else None

        response = await self.request("GET", resolved, headers=headers, credentials=credentials)

        if response.status == HTTPStatus.NOT_MODIFIED:
            if entry is None:
                msg = f"Received 304 for {resolved} without a cached copy"
                raise ApiError(msg, status_code=response.status, url=resolved)
            _LOGGER.debug("Not modified: %s", resolved)
            return ETagResponse(status=response.status, data=entry.data, from_cache=True)

        return ETagResponse(status=response.status, data=response.data, from_cache=False)

    def get_cached_entry(self, url: str) -> ETagCacheEntry | None:
        """Return the cache entry for a URL, if any."""
        return self._etag_cache.get(self.resolve_url(url))

    def clear_etag_cache(self) -> None:
        """Drop every cached ETag."""
        self._etag_cache.clear()

    def remove_from_etag_cache(self, url: str) -> None:
        """Drop the cached ETag for a single URL."""
        self._etag_cache.pop(self.resolve_url(url), None)
