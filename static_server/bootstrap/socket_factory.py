"""Listening socket creation."""

import logging
import socket

from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.errors import BindError

SOCKET_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.socket"), {}
)

ACCEPT_TIMEOUT = 0.5
LISTEN_BACKLOG = 128


def create_server_socket(
    host: str, port: int, accept_timeout: float = ACCEPT_TIMEOUT
) -> socket.socket:
    """Bind and listen on host:port, raising BindError when that fails."""
    try:
        server_socket = socket.create_server((host, port), backlog=LISTEN_BACKLOG)
    except OSError as error:
        SOCKET_LOGGER.critical(
            "Failed to bind listening socket",
            extra={
                "event": "bind_failed",
                "host": host,
                "port": port,
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        raise BindError(f"Cannot bind {host}:{port}: {error}") from error
    server_socket.settimeout(accept_timeout)
    return server_socket
