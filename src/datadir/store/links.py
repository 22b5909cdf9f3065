"""
Named references: symlinks from an object name to a blob hash.

Publishing is the only mutation of a name. A new link is created under
`{name}.tmp` and renamed onto `{name}` in one step.
"""

from __future__ import annotations

import os
from contextlib import suppress
from pathlib import Path

from datadir.exceptions import StorageError
from datadir.types import is_content_hash

TMP_SUFFIX = ".tmp"


def temp_link_path(link: Path) -> Path:
    return link.with_name(f"{link.name}{TMP_SUFFIX}")


def publish_link(link: Path, target: str) -> None:
    """Atomically point link at target.

    The link target is stored relative (just the hash), so the data
    directory can be moved as a whole.

    Raises:
        StorageError: If the link cannot be staged or renamed. The
            previous link, if any, is left untouched.
    """
    tmp = temp_link_path(link)
    try:
        # Left behind by an interrupted publish
        if tmp.is_symlink() or tmp.exists():
            tmp.unlink()
        os.symlink(target, tmp)
        os.replace(tmp, link)
    except OSError as e:
        with suppress(OSError):
            tmp.unlink(missing_ok=True)
        raise StorageError(
            "Failed to publish link",
            context={"path": str(link), "target": target, "error": str(e)},
        ) from e


def read_link_target(link: Path) -> str | None:
    """Get the content hash a link points at.

    Returns:
        The hash, or None if link is missing, not a symlink, or does not
        point at a content hash.
    """
    try:
        target = os.readlink(link)
    except OSError:
        return None

    name = Path(target).name
    if not is_content_hash(name):
        return None
    return name
