"""Main connection acceptance loop."""

import errno
import logging
import socket
import threading
from typing import Optional

from static_server.bootstrap.config import ServerConfig
from static_server.bootstrap.socket_factory import create_server_socket
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.handlers.file_handler import RequestHandler, StaticFileHandler
from static_server.lifecycle.state import ServerLifecycle
from static_server.transport.context import WorkerContext
from static_server.transport.worker import handle_client

ACCEPT_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.transport.accept"), {}
)

# The listener itself is unusable; retrying accept would spin.
FATAL_ACCEPT_ERRNOS = frozenset({errno.EBADF, errno.EINVAL, errno.ENOTSOCK})

# How long aborted workers get to unwind once their sockets are shut down.
ABORT_JOIN_SECONDS = 5.0


def _spawn_worker(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> threading.Thread:
    """Start a tracked worker thread for a freshly accepted client."""
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={
                "event": "client_accepted",
                "client": f"{client_address[0]}:{client_address[1]}",
            },
        )
    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, context),
        name=f"conn-{client_address[0]}:{client_address[1]}",
        daemon=False,
    )
    context.lifecycle.register_worker(thread, client_socket)
    try:
        thread.start()
    except RuntimeError:
        context.lifecycle.cleanup_worker(thread)
        client_socket.close()
        raise
    return thread


def serve(server_socket: socket.socket, context: WorkerContext) -> None:
    """Accept connections until shutdown, then wait for open connections.

    The listening socket must have a timeout so shutdown is noticed promptly.
    It is closed before waiting, so no connection is accepted once shutdown
    has begun.
    """
    lifecycle = context.lifecycle
    try:
        while not lifecycle.should_stop():
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as error:
                if lifecycle.should_stop():
                    break
                if error.errno in FATAL_ACCEPT_ERRNOS:
                    ACCEPT_LOGGER.critical(
                        "Listening socket failed",
                        extra={"event": "listener_failed", "error": str(error)},
                    )
                    raise
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={
                        "event": "accept_error",
                        "error_type": type(error).__name__,
                        "error": str(error),
                    },
                )
                continue

            if lifecycle.should_stop():
                client_socket.close()
                break

            try:
                _spawn_worker(client_socket, client_address, context)
            except RuntimeError as error:
                ACCEPT_LOGGER.error(
                    "Could not start connection worker",
                    extra={"event": "worker_spawn_failed", "error": str(error)},
                )
    finally:
        server_socket.close()
        grace = context.config.shutdown_grace_seconds
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "active_workers": lifecycle.active_worker_count(),
                "shutdown_grace_seconds": grace,
            },
        )
        if not lifecycle.wait_for_workers(grace):
            lifecycle.abort_workers()
            lifecycle.wait_for_workers(ABORT_JOIN_SECONDS)
        ACCEPT_LOGGER.info("Server shutdown complete", extra={"event": "server_stopped"})


def run_server(
    config: ServerConfig,
    lifecycle: ServerLifecycle,
    handler: Optional[RequestHandler] = None,
) -> None:
    """Bind the listening socket and serve until shutdown.

    Raises ``BindError`` before accepting anything when the address is taken.
    """
    server_socket = create_server_socket(config.host, config.port)
    host, port = server_socket.getsockname()[:2]
    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": host,
            "port": port,
            "root": str(config.root),
        },
    )
    context = WorkerContext(
        handler=handler or StaticFileHandler(config.root),
        lifecycle=lifecycle,
        config=config,
    )
    serve(server_socket, context)
