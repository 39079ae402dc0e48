"""Error taxonomy for blob store operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from blobstore.core.models import BulkDeleteResult

__all__ = [
    "BlobStoreError",
    "BlobIOError",
    "BlobNotFoundError",
    "BulkDeleteError",
    "BackendError",
    "ObjectNotFoundError",
]


class BlobStoreError(Exception):
    """Base class for blob store failures."""


class BlobIOError(BlobStoreError, OSError):
    """
    I/O failure while talking to the backend, or a failed consistency check.

    Secondary errors that must not replace this one (e.g. a failed abort
    after a failed multipart upload) are kept in ``suppressed``.
    """

    def __init__(self, message: str, blob_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.blob_name = blob_name
        self.suppressed: List[BaseException] = []

    def add_suppressed(self, exc: BaseException) -> None:
        self.suppressed.append(exc)


class BlobNotFoundError(BlobStoreError, FileNotFoundError):
    """The requested blob does not exist."""

    def __init__(self, message: str, blob_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.blob_name = blob_name


class BulkDeleteError(BlobIOError):
    """One or more delete batches failed; see ``result`` for every failure."""

    def __init__(self, message: str, result: "BulkDeleteResult") -> None:
        super().__init__(message)
        self.result = result
        for failure in result.secondary:
            self.add_suppressed(failure.error)


class BackendError(BlobStoreError):
    """Transport or service failure reported by a backend client."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ObjectNotFoundError(BackendError):
    """Backend reported the object as absent (HTTP 404)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)
