"""Custom exceptions for pytranehome library.

Every exception derives from :class:`TraneError` and carries a machine-readable
:class:`ErrorKind` plus a ``context`` dictionary with the structured details
(status code, offending field, device id, ...). Callers can branch on
``exc.kind`` instead of parsing messages.
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Any, ClassVar


class ErrorKind(Enum):
    """Closed set of failure categories."""

    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    SESSION_EXPIRED = "session_expired"
    UNAUTHORIZED = "unauthorized"
    VALIDATION = "validation"
    HTTP_REDIRECT = "http_redirect"
    HTTP_CLIENT = "http_client"
    HTTP_SERVER = "http_server"
    NETWORK = "network"
    TIMEOUT = "timeout"
    DEVICE_NOT_FOUND = "device_not_found"
    FEATURE_NOT_SUPPORTED = "feature_not_supported"
    CONFIGURATION = "configuration"
    PARSE = "parse"


RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.TIMEOUT, ErrorKind.HTTP_SERVER})


class TraneError(Exception):
    """Base exception for all Trane errors.

    Attributes:
        kind: Category of the failure.
        context: Structured details about the failure.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.NETWORK

    def __init__(self, message: str = "", *, context: dict[str, Any] | None = None) -> None:
        """Initialize TraneError.

        Args:
            message: Error message.
            context: Optional structured details about the failure.
        """
        super().__init__(message)
        self.context: dict[str, Any] = dict(context or {})

    @property
    def retryable(self) -> bool:
        """Return True if the failed operation may succeed when repeated."""
        return self.kind in RETRYABLE_KINDS


class AuthenticationError(TraneError):
    """Exception raised for authentication failures."""

    kind = ErrorKind.AUTHENTICATION


class RateLimitError(AuthenticationError):
    """Exception raised when the local login rate limit is exhausted.

    Attributes:
        retry_after: Number of seconds to wait before a login may be attempted.
    """

    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str = "", retry_after: int | None = None) -> None:
        """Initialize RateLimitError.

        Args:
            message: Error message.
            retry_after: Optional number of seconds to wait before retrying.
        """
        super().__init__(message, context={"retry_after": retry_after})
        self.retry_after = retry_after


class SessionExpiredError(AuthenticationError):
    """Exception raised when the vendor session is no longer valid."""

    kind = ErrorKind.SESSION_EXPIRED


class UnauthorizedError(AuthenticationError):
    """Exception raised for HTTP 401 responses."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed or session expired", url: str | None = None) -> None:
        """Initialize UnauthorizedError.

        Args:
            message: Error message.
            url: Optional URL of the rejected request.
        """
        super().__init__(message, context={"status_code": HTTPStatus.UNAUTHORIZED.value, "url": url})
        self.status_code = HTTPStatus.UNAUTHORIZED.value


class InvalidParameterError(TraneError):
    """Exception raised for invalid parameter values.

    Attributes:
        parameter_name: Optional name of the invalid parameter.
        value: Optional value that was invalid.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "",
        parameter_name: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize InvalidParameterError.

        Args:
            message: Error message.
            parameter_name: Optional name of the invalid parameter.
            value: Optional value that was invalid.
        """
        super().__init__(message, context={"parameter_name": parameter_name, "value": value})
        self.parameter_name = parameter_name
        self.value = value


class ApiError(TraneError):
    """Exception raised for unexpected HTTP status codes.

    Attributes:
        status_code: HTTP status returned by the vendor.
        response: Decoded response body, if any.
    """

    kind = ErrorKind.HTTP_CLIENT

    def __init__(
        self,
        message: str = "",
        status_code: int | None = None,
        response: Any = None,
        url: str | None = None,
    ) -> None:
        """Initialize ApiError.

        Args:
            message: Error message.
            status_code: HTTP status code.
            response: Decoded response body.
            url: URL of the failed request.
        """
        super().__init__(message, context={"status_code": status_code, "url": url})
        self.status_code = status_code
        self.response = response


class HttpRedirectError(ApiError):
    """Exception raised for 3xx responses (the vendor answers 302 to dead sessions)."""

    kind = ErrorKind.HTTP_REDIRECT


class HttpClientError(ApiError):
    """Exception raised for 4xx responses other than 401."""

    kind = ErrorKind.HTTP_CLIENT


class HttpServerError(ApiError):
    """Exception raised for 5xx responses."""

    kind = ErrorKind.HTTP_SERVER


class TraneConnectionError(TraneError):
    """Exception raised for connection failures."""

    kind = ErrorKind.NETWORK


class TraneTimeoutError(TraneConnectionError):
    """Exception raised when API requests timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str = "", timeout: float | None = None) -> None:
        """Initialize TraneTimeoutError.

        Args:
            message: Error message.
            timeout: Timeout in seconds that was exceeded.
        """
        super().__init__(message, context={"timeout": timeout})
        self.timeout = timeout


class DeviceNotFoundError(TraneError):
    """Exception raised when a device cannot be located or addressed.

    Attributes:
        device_id: Optional device ID associated with the error.
        device_type: Kind of device (thermostat, zone, automation).
    """

    kind = ErrorKind.DEVICE_NOT_FOUND

    def __init__(self, message: str = "", device_id: str | None = None, device_type: str = "device") -> None:
        """Initialize DeviceNotFoundError.

        Args:
            message: Error message.
            device_id: Optional device ID associated with the error.
            device_type: Kind of device.
        """
        super().__init__(message, context={"device_id": device_id, "device_type": device_type})
        self.device_id = device_id
        self.device_type = device_type


class FeatureNotSupportedError(TraneError):
    """Exception raised when a device lacks the capability a command needs."""

    kind = ErrorKind.FEATURE_NOT_SUPPORTED

    def __init__(self, feature: str, device_model: str | None = None) -> None:
        """Initialize FeatureNotSupportedError.

        Args:
            feature: Name of the missing capability.
            device_model: Model of the device, when known.
        """
        suffix = f" on {device_model}" if device_model else ""
        super().__init__(
            f"Feature '{feature}' is not supported{suffix}",
            context={"feature": feature, "device_model": device_model},
        )
        self.feature = feature
        self.device_model = device_model


class ConfigurationError(TraneError):
    """Exception raised for invalid client configuration."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str = "", config_field: str | None = None) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Error message.
            config_field: Name of the offending configuration option.
        """
        super().__init__(message, context={"config_field": config_field})
        self.config_field = config_field


class ParseError(TraneError):
    """Exception raised when a vendor payload cannot be interpreted."""

    kind = ErrorKind.PARSE

    def __init__(self, message: str = "", data: Any = None) -> None:
        """Initialize ParseError.

        Args:
            message: Error message.
            data: Payload that failed to parse.
        """
        super().__init__(message)
        self.data = data


def error_for_status(status: int, url: str, response: Any = None) -> TraneError:
    """Map an unsuccessful HTTP status to the matching exception.

    Args:
        status: HTTP status code (anything outside 2xx and 304).
        url: URL of the request.
        response: Decoded response body.

    Returns:
        Exception instance to raise.
    """
    if status == HTTPStatus.UNAUTHORIZED:
        return UnauthorizedError(url=url)

    msg = f"Request to {url} failed with status {status}"
    if status >= HTTPStatus.INTERNAL_SERVER_ERROR:
        return HttpServerError(msg, status_code=status, response=response, url=url)
    if status >= HTTPStatus.BAD_REQUEST:
        return HttpClientError(msg, status_code=status, response=response, url=url)
    return HttpRedirectError(msg, status_code=status, response=response, url=url)
