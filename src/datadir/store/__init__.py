"""
Storage layer for the data directory.

- blobs.py: content-addressed blob files with validator sidecars
- metadata.py: Last-Modified / ETag validators and their JSON form
- links.py: symlink-based named references with atomic publish
"""

from datadir.store.blobs import ContentStore, hash_content
from datadir.store.links import publish_link, read_link_target
from datadir.store.metadata import Metadata

__all__ = [
    "ContentStore",
    "Metadata",
    "hash_content",
    "publish_link",
    "read_link_target",
]
