"""Request options and result types shared across WebOperations."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

# =============================================================================
# Constants
# =============================================================================

DEFAULT_ACCEPTABLE_STATUS_CODES = range(200, 300)
NORMAL_CLOSURE = 1000
WEBSOCKET_SCHEMES: frozenset[str] = frozenset({"ws", "wss"})

# =============================================================================
# Request Options
# =============================================================================


class RequestMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"


class Auth(str, Enum):
    """Authorization scheme placed in front of the credential value."""

    BASIC = "Basic"
    BEARER = "Bearer"
    NONE = "none"


class ContentType(str, Enum):
    APPLICATION_JSON = "application/json"
    NONE = ""


class QueueTarget(Enum):
    """Built-in queues. Any other string selects a custom queue by name."""

    SEQUENTIAL = "seq"
    CONCURRENT = "multi"


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome delivered to completion callbacks.

    Exactly one of `value` or `error` is meaningful. A cancelled operation
    finishes with neither set.
    """

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T | None:
        """Return the value, or raise the error."""
        if self.error is not None:
            raise self.error
        return self.value


@runtime_checkable
class ErrorMessageProvider(Protocol):
    """Error models implementing this expose a human readable message."""

    def error_message(self) -> str | None: ...
