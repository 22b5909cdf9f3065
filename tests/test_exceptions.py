"""
Tests for the exception hierarchy.
"""

from __future__ import annotations

from datadir.exceptions import (
    DataDirError,
    FetchError,
    ObjectNotFoundError,
    StorageError,
    UnexpectedStatusError,
)


class TestDataDirError:
    """Test structured error context."""

    def test_str_without_context(self) -> None:
        """Test that a bare error renders its message."""
        assert str(DataDirError("boom")) == "boom"

    def test_str_with_context(self) -> None:
        """Test that context is appended to the message."""
        err = StorageError("Failed to publish link", context={"path": "data/a"})
        assert str(err) == "Failed to publish link (path='data/a')"

    def test_repr(self) -> None:
        """Test repr includes class, message and context."""
        err = ObjectNotFoundError("missing", context={"name": "a"})
        assert repr(err) == "ObjectNotFoundError('missing', context={'name': 'a'})"

    def test_unexpected_status_is_fetch_error(self) -> None:
        """Test that status errors can be caught as fetch errors."""
        err = UnexpectedStatusError(
            "Unexpected status code: 500",
            context={"url": "https://example.com", "status_code": 500},
        )

        assert isinstance(err, FetchError)
        assert isinstance(err, DataDirError)
        assert err.status_code == 500
