"""Static file serving handlers."""

import logging
import urllib.parse
from pathlib import Path
from typing import Protocol, Union

from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.errors import FileOpenError
from static_server.domain.http_types import HttpRequest, HttpResponse
from static_server.domain.response_builders import from_file, not_found_response
from static_server.domain.sandbox import ForbiddenPath, resolve_sandbox_path

FILE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.handlers.file"), {}
)


class RequestHandler(Protocol):  # pylint: disable=too-few-public-methods
    """Anything that turns a parsed request into a response."""

    def handle(self, request: HttpRequest) -> HttpResponse:
        ...


def _target_path(request_path: str) -> str:
    """Drop query and fragment from a request target and percent-decode it."""
    return urllib.parse.unquote(urllib.parse.urlsplit(request_path).path)


def resolve(root: Union[str, Path], request_path: str) -> HttpResponse:
    """Map a request path onto a file under root and build its response."""
    target = _target_path(request_path)
    try:
        resolved_path = resolve_sandbox_path(root, target)
    except ForbiddenPath:
        FILE_LOGGER.warning(
            "Path rejected by sandbox",
            extra={"event": "forbidden_path", "route": request_path},
        )
        return not_found_response()

    try:
        is_regular_file = resolved_path.is_file()
    except OSError:
        is_regular_file = False
    if not is_regular_file:
        FILE_LOGGER.info(
            "File not found",
            extra={"event": "file_not_found", "route": request_path},
        )
        return not_found_response()

    try:
        handle = open(resolved_path, "rb")  # pylint: disable=consider-using-with
    except OSError as error:
        FILE_LOGGER.error(
            "Failed to open file",
            extra={
                "event": "file_open_failed",
                "path": resolved_path.as_posix(),
                "error_type": type(error).__name__,
            },
        )
        raise FileOpenError(resolved_path.as_posix()) from error

    try:
        response = from_file(resolved_path, handle)
    except OSError as error:
        handle.close()
        raise FileOpenError(resolved_path.as_posix()) from error

    if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
        FILE_LOGGER.debug(
            "File opened for streaming",
            extra={
                "event": "file_read_started",
                "path": resolved_path.as_posix(),
                "bytes_out": response.body.length,
            },
        )
    return response


class StaticFileHandler:
    """Serves files from a fixed root directory."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def handle(self, request: HttpRequest) -> HttpResponse:
        return resolve(self.root, request.path)
