"""HTTP response serialization onto a writable stream."""

import logging
from typing import Protocol

from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.errors import IOWriteError
from static_server.domain.http_types import HttpResponse

IO_LOGGER = CorrelationLoggerAdapter(logging.getLogger("static_server.io"), {})

HEADER_ENCODING = "iso-8859-1"


class ResponseStream(Protocol):
    """Writable side of a client connection."""

    def write(self, data: bytes) -> int:
        ...

    def flush(self) -> None:
        ...


def serialize_head(response: HttpResponse) -> bytes:
    """Render the status line and header block, including the blank line."""
    headers = dict(response.headers)
    if response.close_connection:
        headers["Connection"] = "close"
    lines = [response.status_line]
    lines.extend(f"{name}: {value}" for name, value in headers.items())
    return ("\r\n".join(lines) + "\r\n\r\n").encode(HEADER_ENCODING)


def _write_body(stream: ResponseStream, response: HttpResponse) -> int:
    expected = response.body.length
    written = 0
    for chunk in response.body.chunks():
        if expected is not None:
            chunk = chunk[: expected - written]
        if chunk:
            stream.write(chunk)
            written += len(chunk)
        if expected is not None and written >= expected:
            break
    if expected is not None and written < expected:
        raise IOWriteError(f"Body ended after {written} of {expected} bytes")
    return written


def write_response(stream: ResponseStream, response: HttpResponse) -> int:
    """Serialize the response onto the stream and flush it.

    Returns the number of body bytes written. Any failure of the underlying
    stream surfaces as ``IOWriteError``; the body source is released either way.
    """
    response.mark_sent()
    try:
        stream.write(serialize_head(response))
        bytes_out = _write_body(stream, response)
        stream.flush()
    except OSError as error:
        raise IOWriteError(f"{type(error).__name__}: {error}") from error
    finally:
        response.body.close()

    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Sent response",
            extra={
                "event": "response_sent",
                "status_code": response.status.value,
                "bytes_out": bytes_out,
            },
        )
    return bytes_out
