"""Configuration for a WebOperations context."""

import os

from pydantic import BaseModel, Field, ValidationError

from weboperations.exceptions import ConfigError

DEFAULT_TIMEOUT = 30.0
DEFAULT_PING_INTERVAL = 5.0


class Config(BaseModel):
    """Settings for a `WebOperations` context.

    Fields:
        queue_name_prefix: Prefix used to name the operation queues.
        timeout: Default request timeout in seconds.
        base_url: Optional base URL for the shared HTTP client.
        headers: Extra default headers for the shared HTTP client.
        max_concurrent_operations: Concurrency bound of the concurrent queue
            (None uses the thread pool default).
        transport_workers: Worker threads for in-flight HTTP requests.
        ping_interval: WebSocket keep-alive interval in seconds.
        debug: Enable debug logging to stderr.
    """

    queue_name_prefix: str = ""
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    base_url: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    max_concurrent_operations: int | None = Field(default=None, ge=1)
    transport_workers: int | None = Field(default=None, ge=1)
    ping_interval: float = Field(default=DEFAULT_PING_INTERVAL, gt=0)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """Create a configuration from environment variables.

        Optional environment variables:
            WEBOPERATIONS_QUEUE_PREFIX: Prefix for operation queue names.
            WEBOPERATIONS_TIMEOUT_MS: Request timeout in milliseconds.
            WEBOPERATIONS_BASE_URL: Base URL for all requests.
            WEBOPERATIONS_MAX_CONCURRENT: Concurrency bound of the concurrent queue.
            WEBOPERATIONS_PING_INTERVAL_MS: WebSocket ping interval in milliseconds.
            WEBOPERATIONS_DEBUG: Set to "1" to enable debug logging.

        Raises:
            ConfigError: If a numeric variable is not a valid integer or is out
                of range.
        """
        timeout_ms = _int_env("WEBOPERATIONS_TIMEOUT_MS", int(DEFAULT_TIMEOUT * 1000))
        ping_ms = _int_env("WEBOPERATIONS_PING_INTERVAL_MS", int(DEFAULT_PING_INTERVAL * 1000))
        max_concurrent = (
            _int_env("WEBOPERATIONS_MAX_CONCURRENT", 0)
            if os.environ.get("WEBOPERATIONS_MAX_CONCURRENT")
            else None
        )

        try:
            return cls(
                queue_name_prefix=os.environ.get("WEBOPERATIONS_QUEUE_PREFIX", ""),
                timeout=timeout_ms / 1000,
                base_url=os.environ.get("WEBOPERATIONS_BASE_URL") or None,
                max_concurrent_operations=max_concurrent,
                ping_interval=ping_ms / 1000,
                debug=os.environ.get("WEBOPERATIONS_DEBUG", "") == "1",
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid environment configuration: {e}") from e


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
