"""S3 blob store - blob containers for snapshot repositories."""

from .config import BlobStoreConfig
from .core import (
    BlobIOError,
    BlobMetadata,
    BlobNotFoundError,
    BlobPath,
    BlobStoreError,
    BulkDeleteError,
    S3BlobContainer,
    S3BlobStore,
    number_of_multiparts,
)

__all__ = [
    "BlobStoreConfig",
    "S3BlobStore",
    "S3BlobContainer",
    "BlobPath",
    "BlobMetadata",
    "number_of_multiparts",
    "BlobStoreError",
    "BlobIOError",
    "BlobNotFoundError",
    "BulkDeleteError",
]

__version__ = "0.1.0"
