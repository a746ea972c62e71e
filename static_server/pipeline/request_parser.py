"""Incremental HTTP request parsing from a line-buffered byte stream."""

import logging
from typing import Protocol

from static_server.bootstrap.config import MAX_HEADER_COUNT, MAX_LINE_BYTES
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.errors import (
    ConnectionClosedByPeer,
    IncompleteRequest,
    MalformedHeaderLine,
    MalformedRequestLine,
    RequestParseError,
    UnsupportedMethod,
)
from static_server.domain.http_types import HeaderMap, HttpRequest, Method

PARSER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.pipeline.parser"), {}
)

HEADER_ENCODING = "iso-8859-1"
BLANK_LINES = (b"\r\n", b"\n")


class LineReader(Protocol):  # pylint: disable=too-few-public-methods
    """Source of raw lines, such as a socket reader or ``io.BytesIO``."""

    def readline(self, limit: int = -1) -> bytes:
        ...


def _read_line(
    stream: LineReader, max_line_bytes: int, error_type: type[RequestParseError]
) -> bytes:
    line = stream.readline(max_line_bytes + 1)
    if len(line) > max_line_bytes:
        raise error_type(f"Line exceeds {max_line_bytes} bytes")
    return line


def parse_request_line(line: str) -> tuple[Method, str]:
    """Split a request line into its method and raw path.

    Any protocol version token after the path is accepted without checking.
    """
    tokens = line.split()
    if not tokens:
        raise MalformedRequestLine("Missing method")
    method_token = tokens[0]
    try:
        method = Method(method_token)
    except ValueError as exc:
        raise UnsupportedMethod(method_token) from exc
    if len(tokens) < 2:
        raise MalformedRequestLine("Missing path")
    return method, tokens[1]


def parse_header_line(line: str) -> tuple[str, str]:
    """Split a header line on its first colon and trim the value."""
    name, separator, value = line.partition(":")
    if not separator or not name.strip():
        raise MalformedHeaderLine(f"Invalid header line: {line[:64]!r}")
    return name, value.strip()


def parse_request(
    stream: LineReader,
    max_line_bytes: int = MAX_LINE_BYTES,
    max_header_count: int = MAX_HEADER_COUNT,
) -> HttpRequest:
    """Read exactly one request head from the stream.

    Raises a ``RequestParseError`` subclass when the head is malformed or the
    stream ends before the blank line that closes the header block.
    """
    raw_request_line = _read_line(stream, max_line_bytes, MalformedRequestLine)
    if not raw_request_line:
        raise ConnectionClosedByPeer("Stream ended before a request line")
    method, path = parse_request_line(raw_request_line.decode(HEADER_ENCODING))

    header_lines: list[tuple[str, str]] = []
    while True:
        raw_line = _read_line(stream, max_line_bytes, MalformedHeaderLine)
        if not raw_line:
            raise IncompleteRequest("Stream ended before end of headers")
        if raw_line in BLANK_LINES:
            break
        if len(header_lines) >= max_header_count:
            raise MalformedHeaderLine(f"More than {max_header_count} header lines")
        line = raw_line.decode(HEADER_ENCODING).rstrip("\r\n")
        header_lines.append(parse_header_line(line))

    request = HttpRequest(method, path, HeaderMap(header_lines))
    if PARSER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        PARSER_LOGGER.debug(
            "Parsed request",
            extra={
                "event": "request_parsed",
                "method": method.value,
                "route": path,
            },
        )
    return request
