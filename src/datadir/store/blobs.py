"""
Content-addressed blob storage.

Blobs live at `{base}/{sha256}` next to their `{sha256}.meta` validator
sidecar. A blob is immutable once it appears under its hash path.
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from datadir.exceptions import MetadataError, StorageError
from datadir.logging import get_logger
from datadir.store.metadata import Metadata

logger = get_logger(__name__)

META_SUFFIX = ".meta"
PARTIAL_SUFFIX = ".partial"


def hash_content(content: bytes) -> str:
    """Compute the lowercase hex SHA-256 digest of content."""
    return hashlib.sha256(content).hexdigest()


class ContentStore:
    """Blob files keyed by the SHA-256 of their bytes.

    Nothing above this class needs to know how hashes map to paths.
    """

    def __init__(self, base: str | Path) -> None:
        self.base = Path(base)

    def blob_path(self, content_hash: str) -> Path:
        return self.base / content_hash

    def meta_path(self, content_hash: str) -> Path:
        return self.base / f"{content_hash}{META_SUFFIX}"

    def has_blob(self, content_hash: str) -> bool:
        return self.blob_path(content_hash).is_file()

    def _write_staged(self, dest: Path, data: bytes) -> None:
        """Write data under a private temporary name, then rename onto dest.

        Readers of dest see either the old file or the complete new one.
        """
        try:
            with NamedTemporaryFile(
                dir=self.base,
                prefix=f".{dest.name}.",
                suffix=PARTIAL_SUFFIX,
                delete=False,
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(data)
        except OSError as e:
            raise StorageError(
                "Failed to stage file",
                context={"path": str(dest), "error": str(e)},
            ) from e

        try:
            os.replace(tmp_path, dest)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(
                "Failed to move staged file into place",
                context={"path": str(dest), "error": str(e)},
            ) from e

    def put(self, content: bytes, metadata: Metadata) -> str:
        """Store content and its validator metadata.

        The blob is only written when its hash path is absent, so storing
        identical bytes twice is a no-op for the blob. The metadata sidecar
        is always rewritten to describe the latest response.

        Args:
            content: Raw response body.
            metadata: Validators of the response that produced content.

        Returns:
            The content hash.
        """
        content_hash = hash_content(content)
        blob_path = self.blob_path(content_hash)

        if blob_path.exists():
            logger.debug("Blob already stored", hash=content_hash[:12])
        else:
            self._write_staged(blob_path, content)
            logger.debug("Stored blob", hash=content_hash[:12], size=len(content))

        self._write_staged(self.meta_path(content_hash), metadata.to_bytes())
        return content_hash

    def read_metadata(self, content_hash: str) -> Metadata:
        """Load the validator sidecar for a blob.

        Raises:
            StorageError: If the sidecar cannot be read.
            MetadataError: If the sidecar is malformed.
        """
        path = self.meta_path(content_hash)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise StorageError(
                "Failed to read metadata",
                context={"path": str(path), "error": str(e)},
            ) from e

        try:
            return Metadata.from_bytes(data)
        except MetadataError as e:
            e.context.setdefault("path", str(path))
            raise
