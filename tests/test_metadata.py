"""
Tests for validator metadata.
"""

from __future__ import annotations

import httpx
import orjson
import pytest

from datadir.exceptions import HeaderEncodingError, MetadataError
from datadir.store.metadata import Metadata


class TestMetadataFromHeaders:
    """Test capturing validators from responses."""

    def test_both_headers(self) -> None:
        """Test that Last-Modified and ETag are both captured."""
        headers = httpx.Headers({
            "Last-Modified": "Wed, 21 Oct 2015 07:28:00 GMT",
            "ETag": '"v1"',
        })

        md = Metadata.from_headers(headers)

        assert md.last_modified == "Wed, 21 Oct 2015 07:28:00 GMT"
        assert md.etag == '"v1"'

    def test_missing_header_is_none(self) -> None:
        """Test that an absent header yields None, not an empty string."""
        md = Metadata.from_headers(httpx.Headers({"ETag": '"v1"'}))

        assert md.last_modified is None
        assert md.etag == '"v1"'

    def test_header_lookup_is_case_insensitive(self) -> None:
        """Test that header names match regardless of case."""
        md = Metadata.from_headers(httpx.Headers([(b"etag", b'W/"abc"')]))
        assert md.etag == 'W/"abc"'

    def test_non_utf8_value_raises(self) -> None:
        """Test that undecodable validator values are rejected."""
        headers = httpx.Headers([(b"ETag", b"\xff\xfe")])

        with pytest.raises(HeaderEncodingError) as exc_info:
            Metadata.from_headers(headers)

        assert exc_info.value.context["header"] == "etag"


class TestMetadataSerialization:
    """Test the sidecar JSON form."""

    def test_round_trip(self) -> None:
        """Test that written metadata reads back unchanged."""
        md = Metadata(last_modified="X", etag="Y")
        assert Metadata.from_bytes(md.to_bytes()) == md

    def test_absent_fields_serialize_as_null(self) -> None:
        """Test that absent validators are written as JSON null."""
        data = orjson.loads(Metadata(etag='"v1"').to_bytes())
        assert data == {"last_modified": None, "etag": '"v1"'}

    def test_missing_keys_read_as_absent(self) -> None:
        """Test that a sidecar without keys loads as empty metadata."""
        assert Metadata.from_bytes(b"{}").is_empty

    @pytest.mark.parametrize(
        "data",
        [b"not json", b"[1, 2]", b'{"etag": 5}', b""],
    )
    def test_malformed_raises(self, data: bytes) -> None:
        """Test that malformed sidecars raise MetadataError."""
        with pytest.raises(MetadataError):
            Metadata.from_bytes(data)


class TestRequestHeaders:
    """Test conditional request headers."""

    def test_empty_sends_nothing(self) -> None:
        """Test that empty metadata produces no validators."""
        assert Metadata.empty().request_headers() == {}

    def test_last_modified_preferred(self) -> None:
        """Test that If-Modified-Since wins when both validators exist."""
        md = Metadata(last_modified="X", etag="Y")
        assert md.request_headers() == {"If-Modified-Since": b"X"}

    def test_etag_only(self) -> None:
        """Test that If-None-Match is used when only an ETag exists."""
        assert Metadata(etag='"v1"').request_headers() == {"If-None-Match": b'"v1"'}
