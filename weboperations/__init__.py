"""WebOperations for Python.

Queued operations, a JSON-over-HTTP request pipeline and WebSocket channels
on top of httpx and websockets.

Public API:
    WebOperations - Context object owning queues, HTTP client and sockets
    Config - Context settings
    BaseOperation - Base class for queued units of work
"""

from weboperations._version import __version__
from weboperations.client import WebOperations, get_web_operations
from weboperations.config import Config
from weboperations.dispatcher import Dispatcher
from weboperations.exceptions import (
    BodyEncodingError,
    ConfigError,
    ErrorBodyDecodeError,
    ErrorModelResponseError,
    InvalidOptionError,
    InvalidURLError,
    NoDataError,
    NoResponseError,
    QueueNotFoundError,
    ResponseDecodeError,
    StatusCodeError,
    UnacceptableStatusCodeError,
    WebOperationsError,
)
from weboperations.models import (
    Auth,
    ContentType,
    ErrorMessageProvider,
    QueueTarget,
    RequestMethod,
    Result,
)
from weboperations.operations import (
    BaseOperation,
    BasicGetOperation,
    FunctionOperation,
    OperationQueue,
    OperationState,
)
from weboperations.websocket import WebSocketManager

__all__ = [
    "__version__",
    "WebOperations",
    "get_web_operations",
    "Config",
    "Dispatcher",
    "WebSocketManager",
    "BaseOperation",
    "BasicGetOperation",
    "FunctionOperation",
    "OperationQueue",
    "OperationState",
    "Auth",
    "ContentType",
    "QueueTarget",
    "RequestMethod",
    "Result",
    "ErrorMessageProvider",
    "WebOperationsError",
    "ConfigError",
    "InvalidOptionError",
    "InvalidURLError",
    "BodyEncodingError",
    "NoDataError",
    "NoResponseError",
    "StatusCodeError",
    "UnacceptableStatusCodeError",
    "ErrorModelResponseError",
    "ErrorBodyDecodeError",
    "ResponseDecodeError",
    "QueueNotFoundError",
]
