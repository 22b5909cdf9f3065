"""
Local content-addressed cache for remote datasets fetched over HTTP.
"""

from datadir.directory import DataDir, DataObject
from datadir.store.metadata import Metadata
from datadir.types import FetchOutcome, FetchStrategy

__version__ = "0.3.0"

__all__ = [
    "DataDir",
    "DataObject",
    "FetchOutcome",
    "FetchStrategy",
    "Metadata",
    "__version__",
]
