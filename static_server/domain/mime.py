"""Content-type lookup keyed on file extension."""

from pathlib import PurePath
from typing import Union

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIME_TYPES = {
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "mjs": "text/javascript",
    "json": "application/json",
    "map": "application/json",
    "txt": "text/plain",
    "xml": "application/xml",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "wasm": "application/wasm",
    "woff": "font/woff",
    "woff2": "font/woff2",
}


def mime_type(path: Union[str, PurePath]) -> str:
    """Return the content type for a path, falling back to octet-stream."""
    extension = PurePath(path).suffix.lstrip(".").lower()
    return MIME_TYPES.get(extension, DEFAULT_CONTENT_TYPE)
