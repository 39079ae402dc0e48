"""Prometheus metrics for blob store operations."""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)

# Uploads
UPLOADS = Counter(
    "blobstore_uploads_total",
    "Blob uploads",
    ["method", "outcome"],
)
UPLOADED_BYTES = Counter(
    "blobstore_uploaded_bytes_total",
    "Bytes uploaded",
    ["method"],
)
UPLOAD_PART_SIZE = Histogram(
    "blobstore_upload_part_size_bytes",
    "Size of uploaded multipart parts",
    buckets=(
        5 * 1024**2,
        16 * 1024**2,
        64 * 1024**2,
        128 * 1024**2,
        512 * 1024**2,
        1024**3,
        5 * 1024**3,
    ),
)
MULTIPART_ABORTS = Counter(
    "blobstore_multipart_aborts_total",
    "Multipart uploads aborted after a failure",
    ["outcome"],
)

# Deletes
DELETED_KEYS = Counter(
    "blobstore_deleted_keys_total",
    "Keys submitted for deletion",
    ["method"],
)
BULK_DELETE_FAILED_BATCHES = Counter(
    "blobstore_bulk_delete_failed_batches_total",
    "Bulk delete batches that failed",
)

# Listing
LISTING_PAGES = Counter(
    "blobstore_listing_pages_total",
    "Listing pages fetched",
)

__all__ = [
    "UPLOADS",
    "UPLOADED_BYTES",
    "UPLOAD_PART_SIZE",
    "MULTIPART_ABORTS",
    "DELETED_KEYS",
    "BULK_DELETE_FAILED_BATCHES",
    "LISTING_PAGES",
    "CONTENT_TYPE_LATEST",
    "generate_latest",
]
