"""
Core types for the data directory cache.

- FetchStrategy: when a fetch goes to the network
- FetchOutcome: what a completed fetch did
- Helpers for recognizing content hashes
"""

from __future__ import annotations

import re
from enum import Enum

# Lowercase hex SHA-256 digest
CONTENT_HASH_RE = re.compile(r"[0-9a-f]{64}")


class FetchStrategy(str, Enum):
    """Decides whether a fetch needs a network round trip."""

    ALWAYS = "always"
    IF_MISSING = "if-missing"
    IF_OUTDATED = "if-outdated"


class FetchOutcome(str, Enum):
    """Result of a successful fetch."""

    SKIPPED = "skipped"
    NOT_MODIFIED = "not-modified"
    UPDATED = "updated"


def is_content_hash(value: str) -> bool:
    """Check whether a string is a lowercase hex SHA-256 digest."""
    return CONTENT_HASH_RE.fullmatch(value) is not None
