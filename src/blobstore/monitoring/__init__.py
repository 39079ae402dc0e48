"""Monitoring and metrics for the blob store."""

from .metrics import (
    BULK_DELETE_FAILED_BATCHES,
    DELETED_KEYS,
    LISTING_PAGES,
    MULTIPART_ABORTS,
    UPLOAD_PART_SIZE,
    UPLOADED_BYTES,
    UPLOADS,
)

__all__ = [
    "UPLOADS",
    "UPLOADED_BYTES",
    "UPLOAD_PART_SIZE",
    "MULTIPART_ABORTS",
    "DELETED_KEYS",
    "BULK_DELETE_FAILED_BATCHES",
    "LISTING_PAGES",
]
