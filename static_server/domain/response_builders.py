"""Pure HTTP response builders."""

import os
from http import HTTPStatus
from pathlib import Path
from typing import BinaryIO, Union

from static_server.domain.http_types import FileBody, HttpResponse, InMemoryBody
from static_server.domain.mime import mime_type

STATIC_DIRECTORY = Path(__file__).resolve().parent.parent / "static"
NOT_FOUND_PAGE = (STATIC_DIRECTORY / "404.html").read_bytes()


def from_fixed_content(
    status: HTTPStatus, content: Union[bytes, str], content_type: str
) -> HttpResponse:
    """Build a response whose body is already held in memory."""
    payload = content.encode() if isinstance(content, str) else bytes(content)
    headers = {
        "Content-Type": content_type,
        "Content-Length": str(len(payload)),
    }
    return HttpResponse(status, headers, InMemoryBody(payload))


def from_file(path: Union[str, Path], handle: BinaryIO) -> HttpResponse:
    """Build a 200 response that streams an already opened file."""
    size = os.fstat(handle.fileno()).st_size
    headers = {
        "Content-Type": mime_type(path),
        "Content-Length": str(size),
    }
    return HttpResponse(HTTPStatus.OK, headers, FileBody(handle, size))


def not_found_response() -> HttpResponse:
    """Return the bundled 404 page."""
    return from_fixed_content(HTTPStatus.NOT_FOUND, NOT_FOUND_PAGE, "text/html")
