"""Blob store core functionality."""

from .blob_container import S3BlobContainer, partition_keys
from .blob_store import S3BlobStore
from .exceptions import (
    BackendError,
    BlobIOError,
    BlobNotFoundError,
    BlobStoreError,
    BulkDeleteError,
    ObjectNotFoundError,
)
from .models import BlobMetadata, BulkDeleteResult, PartPlan
from .parts import number_of_multiparts
from .path import BlobPath

__all__ = [
    "S3BlobStore",
    "S3BlobContainer",
    "BlobPath",
    "BlobMetadata",
    "PartPlan",
    "BulkDeleteResult",
    "number_of_multiparts",
    "partition_keys",
    "BlobStoreError",
    "BlobIOError",
    "BlobNotFoundError",
    "BulkDeleteError",
    "BackendError",
    "ObjectNotFoundError",
]
