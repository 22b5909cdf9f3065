"""
Validator metadata captured from HTTP responses.

Each blob `{hash}` has a sidecar `{hash}.meta` holding the Last-Modified and
ETag headers of the response whose body hashed to `{hash}`. The sidecar is
a flat JSON object; absent headers are stored as null.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import orjson

from datadir.exceptions import HeaderEncodingError, MetadataError

LAST_MODIFIED = "last-modified"
ETAG = "etag"


def _raw_header(headers: httpx.Headers, name: str) -> str | None:
    """Get the first value of a header, decoded as strict UTF-8."""
    for key, value in headers.raw:
        if key.lower() == name.encode("ascii"):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise HeaderEncodingError(
                    "Validator header is not valid UTF-8",
                    context={"header": name},
                ) from e
    return None


@dataclass(frozen=True)
class Metadata:
    """HTTP cache validators for one blob."""

    last_modified: str | None = None
    etag: str | None = None

    @classmethod
    def empty(cls) -> Metadata:
        """Metadata with no validators."""
        return cls()

    @property
    def is_empty(self) -> bool:
        """True when no validator is available."""
        return self.last_modified is None and self.etag is None

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> Metadata:
        """Capture validators from response headers.

        Raises:
            HeaderEncodingError: If a validator value is not valid UTF-8.
        """
        return cls(
            last_modified=_raw_header(headers, LAST_MODIFIED),
            etag=_raw_header(headers, ETAG),
        )

    def request_headers(self) -> dict[str, bytes]:
        """Conditional request headers, If-Modified-Since taking precedence.

        Values are sent as the UTF-8 bytes they were captured from.
        """
        if self.last_modified is not None:
            return {"If-Modified-Since": self.last_modified.encode("utf-8")}
        if self.etag is not None:
            return {"If-None-Match": self.etag.encode("utf-8")}
        return {}

    def to_dict(self) -> dict[str, str | None]:
        return {"last_modified": self.last_modified, "etag": self.etag}

    def to_bytes(self) -> bytes:
        """Serialize to the sidecar JSON form."""
        return orjson.dumps(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes) -> Metadata:
        """Parse the sidecar JSON form.

        Missing keys read as absent. Anything that is not an object of
        optional strings is rejected.

        Raises:
            MetadataError: If the data is malformed.
        """
        try:
            obj: Any = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            raise MetadataError("Malformed metadata JSON", context={"error": str(e)}) from e

        if not isinstance(obj, dict):
            raise MetadataError(
                "Metadata must be a JSON object",
                context={"type": type(obj).__name__},
            )

        values: dict[str, str | None] = {}
        for field in ("last_modified", "etag"):
            value = obj.get(field)
            if value is not None and not isinstance(value, str):
                raise MetadataError(
                    "Metadata field must be a string or null",
                    context={"field": field, "type": type(value).__name__},
                )
            values[field] = value

        return cls(**values)
