"""Unit tests covering HTTP request parsing behavior."""

import io

import pytest

from static_server.domain.errors import (
    ConnectionClosedByPeer,
    IncompleteRequest,
    MalformedHeaderLine,
    MalformedRequestLine,
    UnsupportedMethod,
)
from static_server.domain.http_types import HeaderMap, HttpRequest, Method
from static_server.pipeline.request_parser import (
    parse_header_line,
    parse_request,
    parse_request_line,
)


def test_parse_request_reads_line_and_headers():
    """A well-formed head yields method, raw path and trimmed headers."""

    stream = io.BytesIO(
        b"GET /foo HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Accept:   text/html  \r\n"
        b"\r\n"
    )
    request = parse_request(stream)
    assert request == HttpRequest(
        Method.GET,
        "/foo",
        HeaderMap([("Host", "localhost"), ("Accept", "text/html")]),
    )
    assert dict(request.headers) == {"Host": "localhost", "Accept": "text/html"}


def test_parse_request_without_headers():
    """An immediate blank line means no headers at all."""

    request = parse_request(io.BytesIO(b"GET /foo HTTP/1.1\r\n\r\n"))
    assert request.path == "/foo"
    assert len(request.headers) == 0


def test_parse_request_tolerates_missing_version_and_bare_newlines():
    """The protocol version is optional and LF-only lines are accepted."""

    request = parse_request(io.BytesIO(b"GET /plain\nHost: a\n\n"))
    assert request.path == "/plain"
    assert request.headers["Host"] == "a"


def test_parse_request_splits_header_on_first_colon():
    """Colons inside the value are preserved."""

    request = parse_request(io.BytesIO(b"GET / HTTP/1.1\r\nHost: example:8080\r\n\r\n"))
    assert request.headers["Host"] == "example:8080"


def test_repeated_header_keeps_last_value():
    """The last occurrence of a header wins, ignoring case."""

    request = parse_request(
        io.BytesIO(
            b"GET / HTTP/1.1\r\n"
            b"X-Token: first\r\n"
            b"x-token: second\r\n"
            b"\r\n"
        )
    )
    assert len(request.headers) == 1
    assert request.headers["X-Token"] == "second"
    assert list(request.headers) == ["x-token"]


def test_header_lookup_is_case_insensitive():
    """Connection and connection refer to the same header."""

    request = parse_request(io.BytesIO(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n"))
    assert request.headers["connection"] == "close"
    assert "CONNECTION" in request.headers
    assert request.headers.get("missing") is None


def test_parse_request_leaves_following_request_unread():
    """Only one request head is consumed from the stream."""

    stream = io.BytesIO(
        b"GET /one HTTP/1.1\r\n\r\n"
        b"GET /two HTTP/1.1\r\n\r\n"
    )
    assert parse_request(stream).path == "/one"
    assert parse_request(stream).path == "/two"


def test_unsupported_method_rejected_without_reading_headers():
    """Non-GET methods fail right after the request line."""

    stream = io.BytesIO(
        b"POST /upload HTTP/1.1\r\n"
        b"Content-Length: 3\r\n"
        b"\r\n"
    )
    with pytest.raises(UnsupportedMethod) as excinfo:
        parse_request(stream)
    assert excinfo.value.method == "POST"
    assert stream.read() == b"Content-Length: 3\r\n\r\n"


@pytest.mark.parametrize("line", ["GET", "", "   "])
def test_request_line_missing_tokens(line):
    """Missing method or path is a malformed request line."""

    with pytest.raises(MalformedRequestLine):
        parse_request_line(line)


def test_blank_request_line_is_malformed():
    """A stray blank line where a request line belongs is rejected."""

    with pytest.raises(MalformedRequestLine):
        parse_request(io.BytesIO(b"\r\nGET / HTTP/1.1\r\n\r\n"))


def test_header_without_colon_is_malformed():
    """Header lines need a name/value separator."""

    stream = io.BytesIO(b"GET / HTTP/1.1\r\nnot-a-header\r\n\r\n")
    with pytest.raises(MalformedHeaderLine):
        parse_request(stream)


def test_header_with_empty_name_is_malformed():
    """A leading colon leaves no header name."""

    with pytest.raises(MalformedHeaderLine):
        parse_header_line(": value")


def test_empty_stream_reports_peer_close():
    """EOF before any byte is a clean disconnect."""

    with pytest.raises(ConnectionClosedByPeer):
        parse_request(io.BytesIO(b""))


def test_stream_ending_inside_headers_is_incomplete():
    """A head without its terminating blank line is never returned."""

    with pytest.raises(IncompleteRequest) as excinfo:
        parse_request(io.BytesIO(b"GET / HTTP/1.1\r\nHost: x\r\n"))
    assert not isinstance(excinfo.value, ConnectionClosedByPeer)


def test_request_line_without_headers_or_terminator_is_incomplete():
    """A bare request line with no blank line is still incomplete."""

    with pytest.raises(IncompleteRequest):
        parse_request(io.BytesIO(b"GET /foo HTTP/1.1\r\n"))


def test_overlong_request_line_rejected():
    """Request lines beyond the limit are malformed."""

    stream = io.BytesIO(b"GET /" + b"a" * 100 + b" HTTP/1.1\r\n\r\n")
    with pytest.raises(MalformedRequestLine):
        parse_request(stream, max_line_bytes=64)


def test_overlong_header_line_rejected():
    """Header lines beyond the limit are malformed."""

    stream = io.BytesIO(b"GET / HTTP/1.1\r\nX-Long: " + b"b" * 100 + b"\r\n\r\n")
    with pytest.raises(MalformedHeaderLine):
        parse_request(stream, max_line_bytes=64)


def test_too_many_headers_rejected():
    """The header count is bounded."""

    headers = b"".join(f"X-{i}: v\r\n".encode() for i in range(5))
    stream = io.BytesIO(b"GET / HTTP/1.1\r\n" + headers + b"\r\n")
    with pytest.raises(MalformedHeaderLine):
        parse_request(stream, max_header_count=4)
