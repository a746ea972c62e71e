"""Context object shared across worker threads."""

from dataclasses import dataclass

from static_server.bootstrap.config import ServerConfig
from static_server.handlers.file_handler import RequestHandler
from static_server.lifecycle.state import ServerLifecycle


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads."""

    handler: RequestHandler
    lifecycle: ServerLifecycle
    config: ServerConfig
