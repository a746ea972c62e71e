"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value is not None else default


def _port(value: str) -> int:
    port = int(value)
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


DEFAULT_HOST = os.getenv("HTTP_SERVER_HOST", "0.0.0.0")
DEFAULT_PORT = _env_int("HTTP_SERVER_PORT", 8080)
DEFAULT_SOCKET_TIMEOUT = _env_float("HTTP_SERVER_SOCKET_TIMEOUT", 60.0)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_float("HTTP_SERVER_SHUTDOWN_GRACE_SECONDS", 30.0)
DEFAULT_POLL_INTERVAL = _env_float("HTTP_SERVER_POLL_INTERVAL", 0.5)
MAX_LINE_BYTES = _env_int("HTTP_SERVER_MAX_LINE_BYTES", 8192)
MAX_HEADER_COUNT = _env_int("HTTP_SERVER_MAX_HEADER_COUNT", 100)


@dataclass
class ServerConfig:
    """Listening address, document root and connection timing settings."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    root: Path = Path(".")
    socket_timeout: float = DEFAULT_SOCKET_TIMEOUT
    shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS
    poll_interval: float = DEFAULT_POLL_INTERVAL

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ServerConfig":
        return cls(
            host=args.host,
            port=args.port,
            root=Path(args.root),
            socket_timeout=args.socket_timeout,
            shutdown_grace_seconds=args.shutdown_grace_seconds,
        )


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(description="Serve static files over HTTP/1.1")
    parser.add_argument("-p", "--port", type=_port, default=DEFAULT_PORT)
    parser.add_argument(
        "-r",
        "--root",
        default=os.getcwd(),
        help="Directory to serve (default: current working directory)",
    )
    parser.add_argument("--host", default=DEFAULT_HOST)
    default_log_level = os.getenv("HTTP_SERVER_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("HTTP_SERVER_LOG_DESTINATION", "stdout")
    default_format = os.getenv("HTTP_SERVER_LOG_FORMAT", "json").lower()
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-format",
        default=default_format,
        choices=["json", "text"],
        type=str.lower,
    )
    parser.add_argument(
        "--socket-timeout",
        type=float,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Seconds a connection may sit idle or stall mid-request",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=float,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="How long shutdown waits for open connections (0 waits indefinitely)",
    )
    return parser.parse_args(argv)
