"""Public exceptions for WebOperations."""

from typing import Any


class WebOperationsError(Exception):
    """Base exception for all WebOperations errors."""


class ConfigError(WebOperationsError, ValueError):
    """Configuration error (malformed env vars, invalid config)."""


class InvalidURLError(WebOperationsError):
    """The target URL could not be formed."""

    def __init__(self, url: Any) -> None:
        super().__init__(f"Unable to form URL for {url}")
        self.url = url


class InvalidOptionError(WebOperationsError, ValueError):
    """A request method, auth scheme or content type is not supported."""


class BodyEncodingError(WebOperationsError):
    """Request parameters could not be serialized into a JSON body."""


class NoDataError(WebOperationsError):
    """The response carried no data."""

    def __init__(self, message: str = "No data") -> None:
        super().__init__(message)


class NoResponseError(WebOperationsError):
    """The transport did not produce an HTTP response."""

    def __init__(self, message: str = "Response Error") -> None:
        super().__init__(message)


class StatusCodeError(WebOperationsError):
    """Response status code fell outside the acceptable range."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnacceptableStatusCodeError(StatusCodeError):
    """Unacceptable status code and no error model was supplied."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Response Error Status code: {status_code}", status_code)


class ErrorModelResponseError(StatusCodeError):
    """Unacceptable status code with a body decoded into the error model."""

    def __init__(self, model: Any, status_code: int, message: str | None = None) -> None:
        super().__init__(message or f"Response Error Status code: {status_code}", status_code)
        self.model = model
        self.message = message


class ErrorBodyDecodeError(StatusCodeError):
    """Unacceptable status code and the body did not match the error model."""

    def __init__(self, status_code: int) -> None:
        super().__init__(
            f"Unable to parse error body, status code: {status_code}", status_code
        )
        self.model = None


class ResponseDecodeError(WebOperationsError):
    """Response body could not be decoded into the requested shape."""


class QueueNotFoundError(WebOperationsError, KeyError):
    """No custom queue is registered under the given name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Queue not found: {name}")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])
