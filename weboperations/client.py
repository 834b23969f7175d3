"""WebOperations context: queues, request pipeline and WebSocket channels.

Example usage:
    from weboperations import BasicGetOperation, Config, WebOperations

    with WebOperations(Config(queue_name_prefix="com.example")) as web:
        future = web.request_model("https://api.example.com/users/1", User)
        user = future.result()

        web.add_seq(BasicGetOperation(web, "https://api.example.com/status"),
                    completion=lambda result: print(result.value))
"""

import json
import sys
from collections.abc import Callable, Container, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from functools import lru_cache
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from weboperations._internal.callbacks import CallbackContext, Completion
from weboperations._internal.http import create_http_client
from weboperations._internal.redaction import redact_payload
from weboperations.config import Config
from weboperations.dispatcher import Dispatcher
from weboperations.exceptions import (
    BodyEncodingError,
    ErrorBodyDecodeError,
    ErrorModelResponseError,
    InvalidOptionError,
    InvalidURLError,
    NoDataError,
    NoResponseError,
    ResponseDecodeError,
    UnacceptableStatusCodeError,
    WebOperationsError,
)
from weboperations.models import (
    DEFAULT_ACCEPTABLE_STATUS_CODES,
    Auth,
    ContentType,
    ErrorMessageProvider,
    QueueTarget,
    RequestMethod,
    Result,
)
from weboperations.operations.base import BaseOperation
from weboperations.operations.queue import OperationQueue
from weboperations.websocket import WebSocketManager

T = TypeVar("T")

URLTypes = str | httpx.URL
Decoder = Callable[[bytes], Any]


@lru_cache(maxsize=128)
def _adapter(tp: Any) -> TypeAdapter[Any]:
    return TypeAdapter(tp)


class WebOperations:
    """Context object for queued operations and HTTP requests.

    Construct one at process start and pass it to the code that needs it.
    Every request method returns a `concurrent.futures.Future` and accepts an
    optional completion callback; both are resolved exactly once, on this
    context's callback thread, never on the caller's stack.

    Args:
        config: Context settings. Defaults to `Config()`.
        http_client: Optional pre-configured httpx.Client. A client created
            here is closed by `close()`; an injected one is not.
        callbacks: Optional shared callback context.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        http_client: httpx.Client | None = None,
        callbacks: CallbackContext | None = None,
    ) -> None:
        self.config = config or Config()
        self._debug = self.config.debug

        self._owns_http_client = http_client is None
        self.session = http_client or create_http_client(
            timeout=self.config.timeout,
            base_url=self.config.base_url,
            headers=self.config.headers,
        )

        self._owns_callbacks = callbacks is None
        self.callbacks = callbacks or CallbackContext(
            name=f"{self.config.queue_name_prefix}.callbacks", debug=self._debug
        )

        self._transport = ThreadPoolExecutor(
            max_workers=self.config.transport_workers,
            thread_name_prefix=f"{self.config.queue_name_prefix}.transport",
        )
        self.dispatcher = Dispatcher(
            self.callbacks,
            queue_name_prefix=self.config.queue_name_prefix,
            max_concurrent_operations=self.config.max_concurrent_operations,
            debug=self._debug,
        )
        self.sockets = WebSocketManager(
            self.callbacks,
            ping_interval=self.config.ping_interval,
            open_timeout=self.config.timeout,
            debug=self._debug,
        )

    def __enter__(self) -> "WebOperations":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self._debug:
            print(f"[weboperations] {message}", file=sys.stderr)

    def close(self) -> None:
        """Cancel queued work, close sockets, and release owned resources.

        Requests already handed to the transport still complete and deliver
        their results before this returns.
        """
        self.dispatcher.close()
        self.sockets.close_all()
        self._transport.shutdown(wait=True)
        if self._owns_callbacks:
            self.callbacks.shutdown(wait=True)
        if self._owns_http_client:
            self.session.close()

    # =========================================================================
    # Operation Services
    # =========================================================================

    @property
    def sequential_queue(self) -> OperationQueue:
        return self.dispatcher.sequential

    @property
    def concurrent_queue(self) -> OperationQueue:
        return self.dispatcher.concurrent

    def submit(
        self,
        operation: BaseOperation,
        target: QueueTarget | str = QueueTarget.SEQUENTIAL,
        completion: Completion | None = None,
    ) -> Future[Any]:
        """Run an operation on the sequential, concurrent, or a named custom queue."""
        return self.dispatcher.submit(operation, target, completion)

    def add_seq(self, operation: BaseOperation, completion: Completion | None = None) -> Future[Any]:
        return self.dispatcher.add_seq(operation, completion)

    def add_multi(self, operation: BaseOperation, completion: Completion | None = None) -> Future[Any]:
        return self.dispatcher.add_multi(operation, completion)

    def add_custom(
        self, operation: BaseOperation, name: str, completion: Completion | None = None
    ) -> Future[Any]:
        return self.dispatcher.submit(operation, name, completion)

    def register_queue(self, name: str, queue: OperationQueue | None = None) -> OperationQueue:
        """Install a custom queue under `name`, replacing (and cancelling) any previous one.

        When `queue` is omitted a concurrent queue is created.
        """
        if queue is None:
            queue = OperationQueue(
                f"{self.config.queue_name_prefix}.{name}", debug=self._debug
            )
        return self.dispatcher.register_queue(name, queue)

    def cancel_queue(self, name: str) -> None:
        self.dispatcher.cancel_queue(name)

    def suspend(self, is_suspended: bool) -> None:
        """Suspend or resume every queue."""
        self.dispatcher.suspend_all(is_suspended)

    def cancel_all(self) -> None:
        """Cancel every operation on every queue."""
        self.dispatcher.cancel_all()

    # =========================================================================
    # HTTP Base Requests
    # =========================================================================

    def request(
        self,
        url: URLTypes,
        *,
        method: RequestMethod = RequestMethod.GET,
        auth: Auth = Auth.NONE,
        auth_value: str | None = None,
        content_type: ContentType = ContentType.APPLICATION_JSON,
        parameters: Mapping[str, Any] | None = None,
        acceptable_status_codes: Container[int] = DEFAULT_ACCEPTABLE_STATUS_CODES,
        timeout: float | None = None,
        error_model: Any = None,
        completion: Completion | None = None,
    ) -> Future[bytes]:
        """Send a request and resolve with the raw response body.

        Args:
            url: Absolute URL, or a path relative to the configured base URL.
            method: HTTP verb.
            auth: Authorization scheme; combined with `auth_value` into the
                `Authorization` header when both are given.
            auth_value: Credential placed after the scheme.
            content_type: `APPLICATION_JSON` adds `Content-Type` and `Accept`.
            parameters: Mapping serialized as the JSON body when non-empty.
            acceptable_status_codes: Status codes treated as success.
            timeout: Per-request timeout in seconds (defaults to the config).
            error_model: Optional type the body of an unacceptable response
                is decoded into.
            completion: Optional callback receiving the `Result`.

        Returns:
            Future resolving to the body bytes, or failing with:
            InvalidURLError, InvalidOptionError, BodyEncodingError (nothing is sent),
            httpx.TransportError (network, DNS, timeout), NoResponseError,
            NoDataError, UnacceptableStatusCodeError, ErrorModelResponseError,
            or ErrorBodyDecodeError.
        """
        return self._submit(
            url,
            None,
            completion,
            method=method,
            auth=auth,
            auth_value=auth_value,
            content_type=content_type,
            parameters=parameters,
            acceptable_status_codes=acceptable_status_codes,
            timeout=timeout,
            error_model=error_model,
        )

    def request_json(
        self,
        url: URLTypes,
        *,
        shape: type | tuple[type, ...] | None = None,
        strict: bool = False,
        completion: Completion | None = None,
        **options: Any,
    ) -> Future[Any]:
        """Send a request and resolve with the body parsed as untyped JSON.

        The parsed value is checked against `shape` with `isinstance`. A value
        of another shape resolves to None rather than failing, unless
        `strict` is set, in which case it fails with ResponseDecodeError.

        Args:
            url: Target URL.
            shape: Expected Python type(s) of the parsed JSON (e.g. dict, list).
            strict: Fail instead of resolving to None on a shape mismatch.
            completion: Optional callback receiving the `Result`.
            **options: Any keyword accepted by `request()`.
        """

        def decode(data: bytes) -> Any:
            value = _parse_json(data)
            if shape is None or isinstance(value, shape):
                return value
            if strict:
                raise ResponseDecodeError(
                    f"Expected JSON of type {_type_name(shape)}, got {type(value).__name__}"
                )
            self._log_debug(f"JSON is {type(value).__name__}, not {_type_name(shape)}")
            return None

        return self._submit(url, decode, completion, **options)

    def request_model(
        self,
        url: URLTypes,
        model: type[T],
        *,
        completion: Completion | None = None,
        **options: Any,
    ) -> Future[T]:
        """Send a request and resolve with the body decoded into `model`.

        `model` is anything pydantic can validate against: a BaseModel
        subclass, a dataclass, or a typing construct such as `list[Item]`.

        Raises (through the future):
            ResponseDecodeError: If the body does not match `model`.
        """

        def decode(data: bytes) -> T:
            if not data:
                raise NoDataError()
            try:
                return _adapter(model).validate_json(data)
            except ValidationError as e:
                raise ResponseDecodeError(
                    f"Unable to decode {_type_name(model)}: {e.error_count()} validation error(s)"
                ) from e

        return self._submit(url, decode, completion, **options)

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _submit(
        self,
        url: URLTypes,
        decode: Decoder | None,
        completion: Completion | None,
        *,
        method: RequestMethod = RequestMethod.GET,
        auth: Auth = Auth.NONE,
        auth_value: str | None = None,
        content_type: ContentType = ContentType.APPLICATION_JSON,
        parameters: Mapping[str, Any] | None = None,
        acceptable_status_codes: Container[int] = DEFAULT_ACCEPTABLE_STATUS_CODES,
        timeout: float | None = None,
        error_model: Any = None,
    ) -> Future[Any]:
        future: Future[Any] = Future()

        try:
            request = self._build_request(
                url,
                method=method,
                auth=auth,
                auth_value=auth_value,
                content_type=content_type,
                parameters=parameters,
                timeout=timeout,
            )
        except WebOperationsError as e:
            self._log_debug(f"Request not sent: {e}")
            self.callbacks.deliver(future, Result(error=e), completion)
            return future

        def perform() -> None:
            try:
                data = self._send(request, acceptable_status_codes, error_model)
                value = decode(data) if decode is not None else data
            except Exception as e:
                self._log_debug(f"{request.method} {request.url} failed: {e!r}")
                self.callbacks.deliver(future, Result(error=e), completion)
            else:
                self.callbacks.deliver(future, Result(value=value), completion)

        try:
            self._transport.submit(perform)
        except RuntimeError as e:
            # Transport already shut down.
            self.callbacks.deliver(future, Result(error=e), completion)
        return future

    def _build_request(
        self,
        url: URLTypes,
        *,
        method: RequestMethod,
        auth: Auth,
        auth_value: str | None,
        content_type: ContentType,
        parameters: Mapping[str, Any] | None,
        timeout: float | None,
    ) -> httpx.Request:
        target = self._parse_url(url)
        try:
            method = RequestMethod(method)
            auth = Auth(auth)
            content_type = ContentType(content_type)
        except ValueError as e:
            raise InvalidOptionError(str(e)) from e

        headers: dict[str, str] = {}
        if auth_value is not None and auth is not Auth.NONE:
            headers["Authorization"] = f"{auth.value} {auth_value}"

        if content_type is ContentType.APPLICATION_JSON:
            headers["Content-Type"] = ContentType.APPLICATION_JSON.value
            headers["Accept"] = ContentType.APPLICATION_JSON.value

        body: bytes | None = None
        if parameters:
            try:
                body = json.dumps(dict(parameters), allow_nan=False).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise BodyEncodingError(f"Unable to encode request body: {e}") from e

        self._log_debug(
            f"{method.value} {target} "
            f"headers={redact_payload(headers)} parameters={redact_payload(parameters)}"
        )
        return self.session.build_request(
            method.value,
            target,
            headers=headers,
            content=body,
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )

    def _parse_url(self, url: URLTypes) -> httpx.URL:
        try:
            target = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise InvalidURLError(url) from e

        if target.scheme:
            if not target.host:
                raise InvalidURLError(url)
        elif not self.session.base_url.host:
            raise InvalidURLError(url)
        return target

    def _send(
        self,
        request: httpx.Request,
        acceptable_status_codes: Container[int],
        error_model: Any,
    ) -> bytes:
        # httpx.TransportError propagates unchanged.
        response = self.session.send(request)

        if not isinstance(response, httpx.Response):
            raise NoResponseError()

        try:
            data = response.content
        except httpx.ResponseNotRead as e:
            raise NoDataError() from e

        if response.status_code not in acceptable_status_codes:
            raise _status_error(response.status_code, data, error_model)

        self._log_debug(f"{request.method} {request.url} -> {response.status_code}")
        return data


def _status_error(status_code: int, data: bytes, error_model: Any) -> WebOperationsError:
    if error_model is None:
        return UnacceptableStatusCodeError(status_code)

    try:
        model = _adapter(error_model).validate_json(data)
    except ValidationError:
        return ErrorBodyDecodeError(status_code)

    message = model.error_message() if isinstance(model, ErrorMessageProvider) else None
    return ErrorModelResponseError(model, status_code, message)


def _parse_json(data: bytes) -> Any:
    if not data:
        raise NoDataError()
    try:
        return json.loads(data)
    except ValueError as e:
        raise ResponseDecodeError(f"Unable to decode JSON: {e}") from e


def _type_name(tp: Any) -> str:
    if isinstance(tp, tuple):
        return " | ".join(_type_name(t) for t in tp)
    return getattr(tp, "__name__", repr(tp))


def get_web_operations() -> WebOperations:
    """Get a WebOperations context configured from environment variables.

    Returns:
        A new WebOperations instance built from `Config.from_env()`.
    """
    return WebOperations(Config.from_env())
