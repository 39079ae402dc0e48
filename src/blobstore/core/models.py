"""
Blob store data models and request structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Tuple, Union


@dataclass(frozen=True)
class BlobMetadata:
    """
    Name and size of a stored blob.

    Attributes:
        name: Blob name relative to the container's key path
        length: Size of the blob in bytes
    """

    name: str
    length: int


@dataclass(frozen=True)
class PartPlan:
    """
    Decomposition of a total size into fixed-size parts.

    Attributes:
        part_count: Number of parts (always >= 1)
        last_part_size: Size of the trailing (or only) part
    """

    part_count: int
    last_part_size: int

    def total_size(self, part_size: int) -> int:
        """Total number of bytes covered by this plan."""
        return (self.part_count - 1) * part_size + self.last_part_size

    def part_size_for(self, part_number: int, part_size: int) -> int:
        """Size of the 1-based ``part_number`` under this plan."""
        if part_number < self.part_count:
            return part_size
        return self.last_part_size


@dataclass(frozen=True)
class CompletedPart:
    """An uploaded part as referenced by the complete request."""

    part_number: int
    etag: str


@dataclass(frozen=True)
class UploadPartResult:
    """Outcome of a single part upload: the part tag and bytes actually sent."""

    part: CompletedPart
    size: int


# Multipart session states. A session only lives for the duration of one
# upload call and moves NotStarted -> Active -> Closed.


@dataclass(frozen=True)
class SessionNotStarted:
    bucket: str
    key: str


@dataclass(frozen=True)
class SessionActive:
    bucket: str
    key: str
    upload_id: str
    parts: Tuple[CompletedPart, ...] = ()
    bytes_sent: int = 0

    def with_part(self, result: UploadPartResult) -> "SessionActive":
        expected = len(self.parts) + 1
        if result.part.part_number != expected:
            raise ValueError(
                f"Out of order part {result.part.part_number} (expected {expected})"
            )
        return SessionActive(
            bucket=self.bucket,
            key=self.key,
            upload_id=self.upload_id,
            parts=self.parts + (result.part,),
            bytes_sent=self.bytes_sent + result.size,
        )


@dataclass(frozen=True)
class SessionClosed:
    bucket: str
    key: str
    upload_id: str
    completed: bool


MultipartSession = Union[SessionNotStarted, SessionActive, SessionClosed]


@dataclass(frozen=True)
class PutObjectRequest:
    bucket: str
    key: str
    stream: BinaryIO
    length: int
    storage_class: Optional[str] = None
    canned_acl: Optional[str] = None
    server_side_encryption: bool = False


@dataclass(frozen=True)
class InitiateMultipartRequest:
    bucket: str
    key: str
    storage_class: Optional[str] = None
    canned_acl: Optional[str] = None
    server_side_encryption: bool = False


@dataclass(frozen=True)
class UploadPartRequest:
    """
    Upload of one contiguous slice of ``stream``.

    The backend client reads at most ``size`` bytes from the current stream
    position; the stream is never rewound.
    """

    bucket: str
    key: str
    upload_id: str
    part_number: int
    size: int
    is_last: bool
    stream: BinaryIO


@dataclass(frozen=True)
class ListingPage:
    """
    One page of a prefix listing.

    ``continuation_token`` is the explicit cursor for the next page and is
    only meaningful while ``truncated`` is set.
    """

    bucket: str
    prefix: str
    entries: Tuple[Tuple[str, int], ...]
    truncated: bool
    continuation_token: Optional[str] = None


@dataclass(frozen=True)
class DeleteBatch:
    """Backend keys submitted together in one bulk delete request."""

    index: int
    keys: Tuple[str, ...]


@dataclass(frozen=True)
class BatchFailure:
    batch: DeleteBatch
    error: BaseException


@dataclass
class BulkDeleteResult:
    """
    Aggregated outcome of a bulk delete.

    The first failed batch is the primary error; later failures are kept in
    order as secondary errors.
    """

    attempted: int = 0
    failures: list[BatchFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def primary(self) -> Optional[BatchFailure]:
        return self.failures[0] if self.failures else None

    @property
    def secondary(self) -> list[BatchFailure]:
        return self.failures[1:]

    def record_failure(self, batch: DeleteBatch, error: BaseException) -> None:
        self.failures.append(BatchFailure(batch=batch, error=error))

    def __repr__(self) -> str:
        return (
            f"BulkDeleteResult(batches={self.attempted}, "
            f"failed={len(self.failures)})"
        )
