"""Backend client protocol.

Capability set the blob container needs from an object storage backend.
Implementations raise ``BackendError`` for any transport or service failure
and ``ObjectNotFoundError`` when a read targets a missing key.
"""

from __future__ import annotations

from typing import BinaryIO, Protocol, Sequence

from blobstore.core.models import (
    CompletedPart,
    InitiateMultipartRequest,
    ListingPage,
    PutObjectRequest,
    UploadPartRequest,
    UploadPartResult,
)


class BackendClient(Protocol):
    def exists(self, bucket: str, key: str) -> bool:
        """Return True if ``key`` exists in ``bucket``."""
        ...

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        """Open the object content as a readable stream.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """
        ...

    def put_object(self, request: PutObjectRequest) -> None:
        """Store ``request.length`` bytes from ``request.stream`` in one request."""
        ...

    def initiate_multipart(self, request: InitiateMultipartRequest) -> str:
        """Start a multipart upload and return its upload id (may be empty)."""
        ...

    def upload_part(self, request: UploadPartRequest) -> UploadPartResult:
        """Upload the next slice of ``request.stream`` as one part."""
        ...

    def complete_multipart(
        self, bucket: str, key: str, upload_id: str, parts: Sequence[CompletedPart]
    ) -> None:
        """Combine the uploaded parts, in the given order, into the final object."""
        ...

    def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        """Discard a multipart upload and the parts uploaded so far."""
        ...

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete a single key; missing keys are not an error."""
        ...

    def bulk_delete(self, bucket: str, keys: Sequence[str], quiet: bool = True) -> None:
        """Delete up to 1000 keys in one request; missing keys are not an error."""
        ...

    def list_objects(self, bucket: str, prefix: str) -> ListingPage:
        """Fetch the first listing page for ``prefix``."""
        ...

    def list_next(self, page: ListingPage) -> ListingPage:
        """Fetch the page following ``page`` using its continuation token."""
        ...
