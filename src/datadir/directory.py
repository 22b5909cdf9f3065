"""
Data directory: named, atomically published objects backed by a
content-addressed store.

A DataDir owns a filesystem location and the HTTP client used to fill it.
Each DataObject is a name inside that location. Fetching an object decides
(per FetchStrategy) whether to go to the network, performs a conditional
GET when validators are known, and on new content stores the blob and
retargets the object's symlink in a single rename.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import IO, Any

import httpx

from datadir.config import Settings, get_settings
from datadir.exceptions import (
    FetchError,
    MetadataError,
    ObjectNotFoundError,
    StorageError,
    UnexpectedStatusError,
)
from datadir.logging import get_logger, log_context
from datadir.store.blobs import META_SUFFIX, PARTIAL_SUFFIX, ContentStore
from datadir.store.links import TMP_SUFFIX, publish_link, read_link_target
from datadir.store.metadata import Metadata
from datadir.types import FetchOutcome, FetchStrategy, is_content_hash

logger = get_logger(__name__)

READ_MODES = ("r", "rb", "rt")
WRITE_MODES = ("w", "wb", "wt")


def build_client(settings: Settings) -> httpx.AsyncClient:
    """Create the HTTP client shared by all objects of a DataDir."""
    return httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT,
        follow_redirects=settings.FOLLOW_REDIRECTS,
        headers={"User-Agent": settings.HTTP_USER_AGENT},
    )


def validate_name(name: str) -> str:
    """Check that name can be used as an object name.

    Names are single path components that cannot be confused with the
    store's own files (hashes, sidecars, staging files).

    Raises:
        ValueError: If the name is not usable.
    """
    if not name or name in (".", ".."):
        raise ValueError(f"Invalid object name: {name!r}")
    if "/" in name or os.sep in name or "\0" in name:
        raise ValueError(f"Object name must be a single path component: {name!r}")
    if name.endswith((TMP_SUFFIX, META_SUFFIX, PARTIAL_SUFFIX)):
        raise ValueError(f"Object name uses a reserved suffix: {name!r}")
    if is_content_hash(name):
        raise ValueError(f"Object name must not be a content hash: {name!r}")
    return name


class DataDir:
    """A directory of named objects and the HTTP client that fetches them.

    Use DataDir.create() to make sure the directory exists. When the DataDir
    built its own client, close() (or `async with`) releases it.
    """

    def __init__(
        self,
        path: str | Path,
        client: httpx.AsyncClient,
        owns_client: bool = False,
    ) -> None:
        """Initialize without touching the filesystem.

        Args:
            path: Base directory of the store.
            client: HTTP client shared by all objects.
            owns_client: Whether close() should close the client.
        """
        self._path = Path(path)
        self.client = client
        self._owns_client = owns_client
        self.store = ContentStore(self._path)
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    async def create(
        cls,
        path: str | Path,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> DataDir:
        """Create the directory (and any missing parents) and return a handle.

        Calling this on an existing directory is not an error.

        Args:
            path: Base directory of the store.
            client: HTTP client to use. Built from settings when omitted.
            settings: Settings for the built client. Defaults to get_settings().

        Raises:
            StorageError: If the directory cannot be created.
        """
        path = Path(path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                "Failed to create data directory",
                context={"path": str(path), "error": str(e)},
            ) from e

        owns_client = client is None
        if client is None:
            client = build_client(settings or get_settings())

        logger.debug("Data directory ready", path=str(path))
        return cls(path, client, owns_client=owns_client)

    @property
    def path(self) -> Path:
        return self._path

    def join(self, name: str) -> Path:
        """Path of a file inside the directory."""
        return self._path / name

    def get_object(self, name: str) -> DataObject:
        """Get a handle for a named object. Does no I/O."""
        return DataObject(self, validate_name(name))

    def objects(self) -> list[str]:
        """Names of all published objects, sorted.

        Raises:
            StorageError: If the directory cannot be listed.
        """
        try:
            entries = list(self._path.iterdir())
        except OSError as e:
            raise StorageError(
                "Failed to list data directory",
                context={"path": str(self._path), "error": str(e)},
            ) from e

        names = []
        for entry in entries:
            try:
                validate_name(entry.name)
            except ValueError:
                continue
            if entry.is_symlink() and read_link_target(entry) is not None:
                names.append(entry.name)
        return sorted(names)

    async def download_and_open(
        self,
        name: str,
        url: str,
        strategy: FetchStrategy | str = FetchStrategy.IF_OUTDATED,
        mode: str = "rb",
    ) -> IO[Any]:
        """Fetch an object and open the result for reading."""
        obj = await self.get_object(name).fetch(url, strategy)
        return obj.open(mode)

    def lock_for(self, name: str) -> asyncio.Lock:
        """Per-name lock serializing fetches of the same object."""
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock

    async def close(self) -> None:
        """Close the HTTP client if this DataDir created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> DataDir:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"DataDir({str(self._path)!r})"


class DataObject:
    """A named reference to one blob in a DataDir.

    The object's path is a symlink whose target is the blob's hash. It is
    only ever replaced, never deleted, by fetch().
    """

    def __init__(self, data_dir: DataDir, name: str) -> None:
        self.data_dir = data_dir
        self.name = name
        self.last_outcome: FetchOutcome | None = None

    def path(self) -> Path:
        """The resolved path `{base}/{name}`. It may not exist yet."""
        return self.data_dir.join(self.name)

    def exists(self) -> bool:
        """True when the path resolves to a file."""
        return self.path().exists()

    def target(self) -> str | None:
        """Hash of the blob currently published under this name."""
        return read_link_target(self.path())

    def metadata(self) -> Metadata | None:
        """Validators of the currently published blob, if any.

        Raises:
            StorageError: If the sidecar cannot be read.
            MetadataError: If the sidecar is malformed.
        """
        target = self.target()
        if target is None:
            return None
        return self.data_dir.store.read_metadata(target)

    def open(self, mode: str = "rb", encoding: str | None = None) -> IO[Any]:
        """Open the object for reading.

        Raises:
            ObjectNotFoundError: If nothing has been fetched under this name.
            StorageError: On any other filesystem error.
        """
        if mode not in READ_MODES:
            raise ValueError(f"open() only supports read modes, got {mode!r}")
        if "b" not in mode and encoding is None:
            encoding = "utf-8"

        path = self.path()
        try:
            return open(path, mode, encoding=encoding)
        except FileNotFoundError as e:
            raise ObjectNotFoundError(
                "Object has not been fetched",
                context={"name": self.name, "path": str(path)},
            ) from e
        except OSError as e:
            raise StorageError(
                "Failed to open object",
                context={"path": str(path), "error": str(e)},
            ) from e

    def create(self, mode: str = "wb", encoding: str | None = None) -> IO[Any]:
        """Open the object for writing locally produced content.

        A published link is removed first so that writes never go through
        it into a shared, content-addressed blob.

        Raises:
            StorageError: If the file cannot be created.
        """
        if mode not in WRITE_MODES:
            raise ValueError(f"create() only supports write modes, got {mode!r}")
        if "b" not in mode and encoding is None:
            encoding = "utf-8"

        path = self.path()
        try:
            if path.is_symlink():
                path.unlink()
            return open(path, mode, encoding=encoding)
        except OSError as e:
            raise StorageError(
                "Failed to create object",
                context={"path": str(path), "error": str(e)},
            ) from e

    async def fetch(
        self,
        url: str,
        strategy: FetchStrategy | str = FetchStrategy.IF_OUTDATED,
    ) -> DataObject:
        """Bring the object up to date with url.

        Args:
            url: Canonical URL of the object's content.
            strategy: When to go to the network.

        Returns:
            This object, for chaining.

        Raises:
            FetchError: On transport errors or unexpected status codes.
            StorageError: If the blob or link cannot be written.
            HeaderEncodingError: If a validator header is not UTF-8.

        On any error the object's link is left as it was.
        """
        strategy = FetchStrategy(strategy)

        async with self.data_dir.lock_for(self.name):
            with log_context(obj=self.name, strategy=strategy.value):
                if strategy is FetchStrategy.IF_MISSING and self.exists():
                    logger.debug("Object present, skipping download")
                    outcome = FetchOutcome.SKIPPED
                elif strategy is FetchStrategy.IF_OUTDATED:
                    outcome = await self._download(url, self._load_validators())
                else:
                    outcome = await self._download(url, Metadata.empty())

        self.last_outcome = outcome
        return self

    def _load_validators(self) -> Metadata:
        """Validators for the current target, or none if unusable."""
        target = self.target()
        if target is None:
            logger.debug("No published target, fetching unconditionally")
            return Metadata.empty()

        try:
            return self.data_dir.store.read_metadata(target)
        except (StorageError, MetadataError) as e:
            logger.warning(
                "Ignoring unusable validator metadata",
                hash=target[:12],
                error=str(e),
            )
            return Metadata.empty()

    async def _download(self, url: str, validators: Metadata) -> FetchOutcome:
        headers = validators.request_headers()

        try:
            response = await self.data_dir.client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise FetchError(
                f"Failed to fetch {url}",
                context={"url": url, "error": str(e)},
            ) from e

        if response.status_code == httpx.codes.NOT_MODIFIED:
            logger.info("Not modified", url=url)
            return FetchOutcome.NOT_MODIFIED

        if response.status_code != httpx.codes.OK:
            raise UnexpectedStatusError(
                f"Unexpected status code: {response.status_code}",
                context={"url": url, "status_code": response.status_code},
            )

        metadata = Metadata.from_headers(response.headers)
        content = response.content
        content_hash = await asyncio.to_thread(self.data_dir.store.put, content, metadata)
        await asyncio.to_thread(publish_link, self.path(), content_hash)

        logger.info(
            "Published object",
            url=url,
            hash=content_hash[:12],
            size=len(content),
            conditional=bool(headers),
        )
        return FetchOutcome.UPDATED

    def __repr__(self) -> str:
        return f"DataObject({self.name!r}, dir={str(self.data_dir.path)!r})"
