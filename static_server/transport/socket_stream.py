"""Duplex buffered stream over a client socket."""

import socket
import time
from typing import Callable, Optional

from static_server.domain.errors import ShutdownRequested
from static_server.domain.http_types import CHUNK_SIZE

RECV_SIZE = 4096


def _recv_with_deadline(
    client_socket: socket.socket, deadline: float, poll_interval: float
) -> Optional[bytes]:
    """Receive once, waiting at most one poll interval and never past the deadline.

    Returns None when the poll interval elapses without data and raises
    ``TimeoutError`` once the deadline has passed.
    """
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise TimeoutError("Connection deadline exceeded")
    client_socket.settimeout(min(poll_interval, remaining))
    try:
        return client_socket.recv(RECV_SIZE)
    except socket.timeout:
        return None


class SocketStream:
    """Line-buffered reader and buffered writer sharing one client socket.

    The stream is idle between a flushed response and the first byte of the
    next request. Only while idle does a pending shutdown interrupt a read.
    """

    def __init__(
        self,
        client_socket: socket.socket,
        should_stop: Callable[[], bool],
        timeout: float,
        poll_interval: float,
    ) -> None:
        self._socket = client_socket
        self._should_stop = should_stop
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._read_buffer = bytearray()
        self._write_buffer = bytearray()
        self._eof = False
        self._idle = True

    def readline(self, limit: int = -1) -> bytes:
        """Return the next line including its terminator, or b"" at EOF.

        With a non-negative ``limit`` at most that many bytes are returned
        even if no newline has been seen yet.
        """
        deadline = time.monotonic() + self._timeout
        while True:
            newline = self._read_buffer.find(b"\n")
            if newline >= 0:
                end = newline + 1
            elif self._eof or 0 <= limit <= len(self._read_buffer):
                end = len(self._read_buffer)
            else:
                self._fill(deadline)
                continue
            if 0 <= limit < end:
                end = limit
            line = bytes(self._read_buffer[:end])
            del self._read_buffer[:end]
            if line:
                self._idle = False
            return line

    def _fill(self, deadline: float) -> None:
        while True:
            chunk = _recv_with_deadline(self._socket, deadline, self._poll_interval)
            if chunk is None:
                if self._idle and not self._read_buffer and self._should_stop():
                    raise ShutdownRequested("Shutdown began while awaiting a request")
                continue
            if chunk:
                self._read_buffer += chunk
            else:
                self._eof = True
            return

    def write(self, data: bytes) -> int:
        self._write_buffer += data
        if len(self._write_buffer) >= CHUNK_SIZE:
            self._send_buffered()
        return len(data)

    def flush(self) -> None:
        """Send everything buffered; the next read starts a new request."""
        self._send_buffered()
        self._idle = True

    def _send_buffered(self) -> None:
        if not self._write_buffer:
            return
        data, self._write_buffer = self._write_buffer, bytearray()
        self._socket.settimeout(self._timeout)
        self._socket.sendall(data)
