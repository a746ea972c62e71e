"""Server lifecycle state management."""

import logging
import socket
import threading
import time
from typing import Optional

from static_server.domain.correlation_id import CorrelationLoggerAdapter

LIFECYCLE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.lifecycle"), {}
)


class ServerLifecycle:
    """One-way shutdown signal plus tracking of live connection workers.

    A single instance is created at startup and handed to the accept loop and
    to every worker. Once ``begin_shutdown`` has been called it stays set.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._workers: dict[threading.Thread, Optional[socket.socket]] = {}

    def should_stop(self) -> bool:
        """Check whether shutdown has begun."""
        return self._stop_event.is_set()

    def begin_shutdown(self) -> None:
        """Broadcast shutdown to the accept loop and all connections."""
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        LIFECYCLE_LOGGER.info(
            "Beginning graceful shutdown",
            extra={"event": "shutdown_started", "active_workers": self.active_worker_count()},
        )

    def register_worker(
        self,
        thread: threading.Thread,
        client_socket: Optional[socket.socket] = None,
    ) -> None:
        """Register a worker thread and the client socket it serves."""
        with self._lock:
            self._workers[thread] = client_socket

    def cleanup_worker(self, thread: threading.Thread) -> None:
        """Remove a worker thread from tracking."""
        with self._lock:
            self._workers.pop(thread, None)

    def active_worker_count(self) -> int:
        """Return the number of currently tracked worker threads."""
        with self._lock:
            return len(self._workers)

    def wait_for_workers(self, timeout: Optional[float] = None) -> bool:
        """Wait for all worker threads to finish.

        ``None`` or a non-positive timeout waits without bound. Returns False
        when the bound expired with workers still running.
        """
        deadline = time.monotonic() + timeout if timeout and timeout > 0 else None
        while True:
            with self._lock:
                self._workers = {
                    worker: client_socket
                    for worker, client_socket in self._workers.items()
                    if worker.is_alive()
                }
                active_workers = list(self._workers)
            if not active_workers:
                return True
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    LIFECYCLE_LOGGER.warning(
                        "Shutdown timeout exceeded",
                        extra={
                            "event": "shutdown_timeout",
                            "remaining_workers": len(active_workers),
                        },
                    )
                    return False
            else:
                remaining = 0.1
            for worker in active_workers:
                worker.join(timeout=min(0.1, remaining))
                if deadline is not None and time.monotonic() >= deadline:
                    break

    def abort_workers(self) -> int:
        """Shut down the sockets of workers still running.

        Blocked reads and writes on those sockets return immediately, so
        their workers close and exit. Returns the number of sockets shut down.
        """
        with self._lock:
            sockets = [
                client_socket
                for worker, client_socket in self._workers.items()
                if client_socket is not None and worker.is_alive()
            ]
        aborted = 0
        for client_socket in sockets:
            try:
                client_socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                # Already closed by its worker.
                continue
            aborted += 1
        LIFECYCLE_LOGGER.warning(
            "Aborting connections still open after shutdown grace",
            extra={"event": "workers_aborted", "remaining_workers": aborted},
        )
        return aborted
