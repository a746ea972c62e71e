"""Per-connection request/response state machine."""

import logging
import time
from enum import Enum
from typing import Callable, Optional, Protocol

from static_server.domain.correlation_id import (
    CorrelationLoggerAdapter,
    adopt_correlation_id,
    clear_correlation_id,
)
from static_server.domain.errors import (
    ConnectionClosedByPeer,
    IOWriteError,
    RequestParseError,
    ShutdownRequested,
    StaticServerError,
)
from static_server.domain.http_types import HttpRequest, HttpResponse, should_close
from static_server.handlers.file_handler import RequestHandler
from static_server.pipeline.io import write_response
from static_server.pipeline.request_parser import parse_request

CONNECTION_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.transport.connection"), {}
)


class ConnectionState(Enum):
    """Where a connection is in its request/response cycle."""

    AWAITING_REQUEST = "awaiting_request"
    DISPATCHING = "dispatching"
    WRITING = "writing"
    CLOSED = "closed"


class DuplexStream(Protocol):
    """Readable and writable byte stream owned by one connection."""

    def readline(self, limit: int = -1) -> bytes:
        ...

    def write(self, data: bytes) -> int:
        ...

    def flush(self) -> None:
        ...


class Connection:
    """Drives one client stream through parse, dispatch and write.

    ``step`` performs a single transition so the machine can be exercised
    with in-memory streams; ``run`` steps until the connection is closed.
    Shutdown is observed before each new request and while idle-waiting for
    one. A response that has started writing is always finished.
    """

    def __init__(
        self,
        stream: DuplexStream,
        handler: RequestHandler,
        should_stop: Callable[[], bool],
        client: str = "-",
    ) -> None:
        self.stream = stream
        self.handler = handler
        self.should_stop = should_stop
        self.client = client
        self.state = ConnectionState.AWAITING_REQUEST
        self.close_reason: Optional[str] = None
        self.requests_served = 0
        self._request: Optional[HttpRequest] = None
        self._response: Optional[HttpResponse] = None
        self._started_ns = 0

    def run(self) -> None:
        try:
            while self.state is not ConnectionState.CLOSED:
                self.step()
        finally:
            if self.state is not ConnectionState.CLOSED:
                self._close("error")
            clear_correlation_id()

    def step(self) -> ConnectionState:
        if self.state is ConnectionState.AWAITING_REQUEST:
            self._await_request()
        elif self.state is ConnectionState.DISPATCHING:
            self._dispatch()
        elif self.state is ConnectionState.WRITING:
            self._write()
        return self.state

    def _await_request(self) -> None:
        clear_correlation_id()
        if self.should_stop():
            self._close("shutdown")
            return
        try:
            request = parse_request(self.stream)
        except ConnectionClosedByPeer:
            self._close("peer_closed")
            return
        except ShutdownRequested:
            self._close("shutdown")
            return
        except RequestParseError as error:
            CONNECTION_LOGGER.warning(
                "Failed to parse request",
                extra={
                    "event": "parse_failed",
                    "client": self.client,
                    "error_type": type(error).__name__,
                    "error": str(error),
                },
            )
            self._close("parse_error")
            return
        except (TimeoutError, OSError) as error:
            CONNECTION_LOGGER.info(
                "Connection read failed",
                extra={
                    "event": "read_failed",
                    "client": self.client,
                    "error_type": type(error).__name__,
                },
            )
            self._close("read_error")
            return

        adopt_correlation_id(request.headers.get("X-Request-ID"))
        self._started_ns = time.monotonic_ns()
        self._request = request
        self.state = ConnectionState.DISPATCHING

    def _dispatch(self) -> None:
        assert self._request is not None
        try:
            self._response = self.handler.handle(self._request)
        except StaticServerError as error:
            CONNECTION_LOGGER.error(
                "Request handler failed",
                extra={
                    "event": "handler_failed",
                    "client": self.client,
                    "route": self._request.path,
                    "error_type": type(error).__name__,
                    "error": str(error),
                },
            )
            self._close("handler_error")
            return
        self.state = ConnectionState.WRITING

    def _write(self) -> None:
        request, response = self._request, self._response
        assert request is not None and response is not None
        keep_alive = not (response.close_connection or should_close(request.headers))
        response.close_connection = not keep_alive
        try:
            bytes_out = write_response(self.stream, response)
        except IOWriteError as error:
            CONNECTION_LOGGER.warning(
                "Failed to write response",
                extra={
                    "event": "write_failed",
                    "client": self.client,
                    "route": request.path,
                    "error": str(error),
                },
            )
            self._close("write_error")
            return

        self.requests_served += 1
        CONNECTION_LOGGER.info(
            "Request served",
            extra={
                "event": "request_complete",
                "client": self.client,
                "method": request.method.value,
                "route": request.path,
                "status_code": response.status.value,
                "bytes_out": bytes_out,
                "duration_ms": (time.monotonic_ns() - self._started_ns) // 1_000_000,
                "keep_alive": keep_alive,
            },
        )
        self._request = None
        self._response = None
        if keep_alive:
            self.state = ConnectionState.AWAITING_REQUEST
        else:
            self._close("client_close")

    def _close(self, reason: str) -> None:
        if self._response is not None and not self._response.sent:
            self._response.body.close()
        self._request = None
        self._response = None
        self.close_reason = reason
        self.state = ConnectionState.CLOSED
        if CONNECTION_LOGGER.logger.isEnabledFor(logging.DEBUG):
            CONNECTION_LOGGER.debug(
                "Connection closed",
                extra={
                    "event": "connection_closed",
                    "client": self.client,
                    "state": reason,
                },
            )
