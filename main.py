"""Static HTTP/1.1 file server entry point."""

import logging
import signal
import sys
from typing import Optional

from static_server.bootstrap.config import ServerConfig, parse_cli_args
from static_server.bootstrap.logging_setup import configure_logging
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.errors import BindError
from static_server.lifecycle.state import ServerLifecycle
from static_server.transport.accept_loop import run_server

SERVER_LOGGER = CorrelationLoggerAdapter(logging.getLogger("static_server.server"), {})


def install_signal_handlers(lifecycle: ServerLifecycle) -> None:
    """Route SIGINT and SIGTERM to a graceful shutdown."""

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "signal_received", "signal": signal.Signals(signum).name},
        )
        lifecycle.begin_shutdown()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)


def main(argv: Optional[list[str]] = None) -> int:
    """Start the server and return the process exit code."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(
        args.log_level, args.log_destination, use_json=args.log_format == "json"
    )
    config = ServerConfig.from_args(args)
    if not config.root.is_dir():
        SERVER_LOGGER.critical(
            "Root is not a directory",
            extra={"event": "startup_failed", "root": str(config.root)},
        )
        return 2
    lifecycle = ServerLifecycle()
    install_signal_handlers(lifecycle)

    SERVER_LOGGER.info(
        "Starting static file server",
        extra={
            "event": "server_starting",
            "host": config.host,
            "port": config.port,
            "root": str(config.root),
            "log_destination": args.log_destination,
            "log_level": args.log_level,
            "socket_timeout": config.socket_timeout,
            "shutdown_grace_seconds": config.shutdown_grace_seconds,
        },
    )
    try:
        run_server(config, lifecycle)
    except BindError as error:
        SERVER_LOGGER.critical(
            "Server failed to start", extra={"event": "startup_failed", "error": str(error)}
        )
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
