"""Filesystem sandbox utilities for safe path resolution."""

from pathlib import Path
from typing import Union


class ForbiddenPath(Exception):
    """Raised when a requested path escapes or cannot be resolved in the sandbox."""


def resolve_sandbox_path(directory: Union[str, Path], user_path: str) -> Path:
    """Resolve a user-supplied path inside the configured sandbox.

    Symlinks are followed before the containment check, so a link inside
    the sandbox that points elsewhere is rejected as well. A path that
    cannot be resolved at all, such as a symlink loop, is rejected too.
    """
    if "\x00" in user_path:
        raise ForbiddenPath("NUL byte in path")

    directory_root = Path(directory).resolve()
    relative_part = user_path.lstrip("/")

    try:
        target = (directory_root / relative_part).resolve()
    except (RuntimeError, OSError) as error:
        # Symlink loops raise RuntimeError before Python 3.13.
        raise ForbiddenPath(f"Unresolvable path: {error}") from error
    if not (target == directory_root or directory_root in target.parents):
        raise ForbiddenPath("Path escapes root")

    return target
