"""Shared HTTP type definitions to avoid circular imports."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import BinaryIO, Iterable, Iterator, Optional

from static_server.domain.errors import ResponseAlreadySent

CHUNK_SIZE = 65536

# Connections persist unless the client sends "Connection: close".
KEEP_ALIVE_BY_DEFAULT = True


class Method(str, Enum):
    """Request methods understood by the server."""

    GET = "GET"


class HeaderMap(Mapping):
    """Read-only header mapping with case-insensitive lookup.

    Names keep the spelling they arrived with. When a name repeats, the last
    value wins and replaces the earlier entry regardless of casing.
    """

    def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None:
        self._entries: dict[str, tuple[str, str]] = {}
        for name, value in items:
            self._entries[name.lower()] = (name, value)

    def __getitem__(self, name: str) -> str:
        return self._entries[name.lower()][1]

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"HeaderMap({dict(self.items())!r})"


@dataclass(frozen=True)
class HttpRequest:
    """Represents a parsed HTTP request."""

    method: Method
    path: str
    headers: HeaderMap


class BodySource(ABC):
    """Lazily read byte source with an optional known length."""

    length: Optional[int] = None

    @abstractmethod
    def chunks(self) -> Iterator[bytes]:
        """Yield the body in order; a source can only be drained once."""

    def close(self) -> None:
        """Release any resource held by the source."""


class InMemoryBody(BodySource):
    """Body backed by bytes already in memory."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.length = len(data)

    def chunks(self) -> Iterator[bytes]:
        if self.data:
            yield self.data


class FileBody(BodySource):
    """Body that streams an open file in fixed-size chunks."""

    def __init__(
        self, handle: BinaryIO, length: Optional[int], chunk_size: int = CHUNK_SIZE
    ) -> None:
        self.handle = handle
        self.length = length
        self.chunk_size = chunk_size

    def chunks(self) -> Iterator[bytes]:
        try:
            while True:
                chunk = self.handle.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.close()

    def close(self) -> None:
        self.handle.close()


@dataclass
class HttpResponse:
    """Represents an HTTP response to be sent to a client."""

    status: HTTPStatus
    headers: dict[str, str]
    body: BodySource
    close_connection: bool = False
    sent: bool = False

    @property
    def status_line(self) -> str:
        return f"HTTP/1.1 {self.status.value} {self.status.phrase}"

    def mark_sent(self) -> None:
        """Record that the response is being written, refusing reuse."""
        if self.sent:
            raise ResponseAlreadySent(self.status_line)
        self.sent = True


def should_close(headers: Mapping) -> bool:
    """Determine whether the connection should be closed after responding."""
    value = headers.get("Connection", "").strip().lower()
    if KEEP_ALIVE_BY_DEFAULT:
        return value == "close"
    return value != "keep-alive"
