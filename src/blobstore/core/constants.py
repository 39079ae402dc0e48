"""
S3 limits and defaults used by the blob container.
"""

KB = 1024
MB = 1024 * KB
GB = 1024 * MB
TB = 1024 * GB

# Maximum number of keys accepted by a single DeleteObjects request
MAX_BULK_DELETES = 1000

# Multipart upload limits
MIN_PART_SIZE_USING_MULTIPART = 5 * MB
MAX_PART_SIZE_USING_MULTIPART = 5 * GB
MAX_FILE_SIZE_USING_MULTIPART = 5 * TB

# Single PUT limit
MAX_FILE_SIZE = 5 * GB

DEFAULT_BUFFER_SIZE = 100 * MB

# Part numbers must fit a signed 32-bit integer
MAX_PART_COUNT = 2**31 - 1

# Server-side encryption algorithm sent with uploads
SSE_ALGORITHM = "AES256"

SUPPORTED_STORAGE_CLASSES = frozenset(
    {
        "STANDARD",
        "REDUCED_REDUNDANCY",
        "STANDARD_IA",
        "ONEZONE_IA",
        "INTELLIGENT_TIERING",
    }
)
UNSUPPORTED_STORAGE_CLASSES = frozenset({"GLACIER", "DEEP_ARCHIVE"})

CANNED_ACLS = frozenset(
    {
        "private",
        "public-read",
        "public-read-write",
        "authenticated-read",
        "log-delivery-write",
        "bucket-owner-read",
        "bucket-owner-full-control",
    }
)
