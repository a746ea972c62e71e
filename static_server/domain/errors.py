"""Exception hierarchy shared by the parser, resolver, writer and server loop."""


class StaticServerError(Exception):
    """Base class for all errors raised by the static file server."""


class RequestParseError(StaticServerError):
    """Raised when an inbound request cannot be parsed from the stream."""


class MalformedRequestLine(RequestParseError):
    """The request line is missing its method or path token."""


class UnsupportedMethod(RequestParseError):
    """The request method is not one the server accepts."""

    def __init__(self, method: str) -> None:
        super().__init__(f"Unsupported method: {method!r}")
        self.method = method


class MalformedHeaderLine(RequestParseError):
    """A header line has no name/value separator."""


class IncompleteRequest(RequestParseError):
    """The stream ended before the header block was terminated."""


class ConnectionClosedByPeer(IncompleteRequest):
    """The stream ended cleanly before any byte of a new request."""


class FileOpenError(StaticServerError):
    """A resolved file exists but could not be opened."""


class IOWriteError(StaticServerError):
    """Writing a response to the client stream failed."""


class ResponseAlreadySent(StaticServerError):
    """A response object was handed to the writer a second time."""


class BindError(StaticServerError):
    """The listening socket could not be bound."""


class ShutdownRequested(StaticServerError):
    """Raised by an idle reader once server shutdown has begun."""
