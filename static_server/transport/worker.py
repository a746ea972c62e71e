"""Worker thread logic for handling individual client connections."""

import logging
import socket
import threading
import time

from static_server.domain.correlation_id import (
    CorrelationLoggerAdapter,
    clear_correlation_id,
)
from static_server.transport.connection import Connection
from static_server.transport.context import WorkerContext
from static_server.transport.socket_stream import SocketStream

WORKER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.transport.worker"), {}
)

# Unread input left at close makes the kernel reset the connection, which can
# discard a response the client has not read yet.
DRAIN_SECONDS = 0.2
DRAIN_LIMIT = 65536


def _drain_input(client_socket: socket.socket) -> None:
    """Discard pending input for a bounded time and byte count."""
    deadline = time.monotonic() + DRAIN_SECONDS
    drained = 0
    while drained < DRAIN_LIMIT:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return
        try:
            client_socket.settimeout(remaining)
            chunk = client_socket.recv(4096)
        except OSError:
            return
        if not chunk:
            return
        drained += len(chunk)


def _close_socket(client_socket: socket.socket, client_addr_str: str) -> None:
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    else:
        _drain_input(client_socket)
    client_socket.close()
    if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        WORKER_LOGGER.debug(
            "Socket closed",
            extra={"event": "socket_closed", "client": client_addr_str},
        )


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Serve requests on a client socket until the connection is closed."""
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    lifecycle = context.lifecycle
    stream = SocketStream(
        client_socket,
        lifecycle.should_stop,
        timeout=context.config.socket_timeout,
        poll_interval=context.config.poll_interval,
    )
    connection = Connection(
        stream, context.handler, lifecycle.should_stop, client=client_addr_str
    )

    try:
        connection.run()
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
    finally:
        _close_socket(client_socket, client_addr_str)
        lifecycle.cleanup_worker(threading.current_thread())
        clear_correlation_id()
        if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            WORKER_LOGGER.debug(
                "Worker finished",
                extra={
                    "event": "worker_finished",
                    "client": client_addr_str,
                    "state": connection.close_reason,
                },
            )
