"""Shared fixtures for unit tests."""

import io
import logging

import pytest


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("static_server")
    old_propagate, old_level = logger.propagate, logger.level
    old_handlers = list(logger.handlers)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    yield
    for handler in logger.handlers:
        if handler not in old_handlers:
            handler.close()
    logger.handlers[:] = old_handlers
    logger.propagate = old_propagate
    logger.setLevel(old_level)


class FakeDuplexStream:
    """In-memory stand-in for a client socket stream."""

    def __init__(self, incoming: bytes = b"") -> None:
        self.incoming = io.BytesIO(incoming)
        self.outgoing = io.BytesIO()
        self.flushes = 0
        self.fail_writes = False

    def readline(self, limit: int = -1) -> bytes:
        return self.incoming.readline(limit)

    def write(self, data: bytes) -> int:
        if self.fail_writes:
            raise BrokenPipeError("peer went away")
        return self.outgoing.write(data)

    def flush(self) -> None:
        self.flushes += 1

    @property
    def written(self) -> bytes:
        return self.outgoing.getvalue()


@pytest.fixture()
def duplex_stream_factory():
    """Build in-memory duplex streams preloaded with request bytes."""
    return FakeDuplexStream
