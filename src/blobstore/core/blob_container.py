"""
S3 blob container: reads, writes, lists and deletes blobs under one key path.
"""

from __future__ import annotations

import io
from types import MappingProxyType
from typing import TYPE_CHECKING, BinaryIO, Dict, List, Mapping, Optional, Sequence

from blobstore.core.constants import MAX_BULK_DELETES, MAX_PART_COUNT
from blobstore.core.exceptions import (
    BackendError,
    BlobIOError,
    BlobNotFoundError,
    BlobStoreError,
    BulkDeleteError,
    ObjectNotFoundError,
)
from blobstore.core.models import (
    BlobMetadata,
    BulkDeleteResult,
    DeleteBatch,
    InitiateMultipartRequest,
    MultipartSession,
    PutObjectRequest,
    SessionActive,
    SessionClosed,
    SessionNotStarted,
    UploadPartRequest,
)
from blobstore.core.parts import number_of_multiparts
from blobstore.core.path import BlobPath
from blobstore.monitoring.metrics import (
    BULK_DELETE_FAILED_BATCHES,
    DELETED_KEYS,
    LISTING_PAGES,
    MULTIPART_ABORTS,
    UPLOAD_PART_SIZE,
    UPLOADED_BYTES,
    UPLOADS,
)
from blobstore.utils.logging import get_logger

if TYPE_CHECKING:
    from blobstore.core.blob_store import S3BlobStore

logger = get_logger(__name__)


def partition_keys(keys: Sequence[str], batch_size: int = MAX_BULK_DELETES) -> List[DeleteBatch]:
    """Split ``keys`` into ordered batches of at most ``batch_size`` keys."""
    if batch_size <= 0:
        raise ValueError("Batch size must be greater than zero")
    return [
        DeleteBatch(index=i // batch_size, keys=tuple(keys[i : i + batch_size]))
        for i in range(0, len(keys), batch_size)
    ]


class S3BlobContainer:
    """
    Blobs stored under a fixed key path of an S3 bucket.

    Every operation acquires its own reference to the store's backend client
    and releases it before returning; no per-call state is kept on the
    container, so one container may be used from several threads.
    """

    def __init__(self, path: BlobPath, blob_store: "S3BlobStore") -> None:
        self._path = path
        self.blob_store = blob_store
        self._key_path = path.build_as_string()

    @property
    def path(self) -> BlobPath:
        return self._path

    @property
    def key_path(self) -> str:
        return self._key_path

    def build_key(self, blob_name: str) -> str:
        return self._key_path + blob_name

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def blob_exists(self, blob_name: str) -> bool:
        try:
            with self.blob_store.client_reference() as ref:
                return ref.client().exists(self.blob_store.bucket, self.build_key(blob_name))
        except Exception as exc:
            raise BlobStoreError(f"Failed to check if blob [{blob_name}] exists") from exc

    def read_blob(self, blob_name: str) -> BinaryIO:
        with self.blob_store.client_reference() as ref:
            try:
                return ref.client().get_object(self.blob_store.bucket, self.build_key(blob_name))
            except ObjectNotFoundError as exc:
                raise BlobNotFoundError(
                    f"Blob object [{blob_name}] not found: {exc}", blob_name
                ) from exc
            except BackendError as exc:
                raise BlobIOError(
                    f"Unable to read blob [{blob_name}]", blob_name
                ) from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write_blob(
        self,
        blob_name: str,
        stream: BinaryIO,
        blob_size: int,
        fail_if_already_exists: bool = False,
    ) -> None:
        """
        Store ``blob_size`` bytes read from ``stream`` under ``blob_name``.

        ``fail_if_already_exists`` is accepted for interface compatibility and
        ignored: S3 cannot enforce create-if-absent under its consistency model.
        """
        if fail_if_already_exists:
            logger.debug("fail_if_already_exists_ignored", blob=blob_name)
        key = self.build_key(blob_name)
        if blob_size <= self.blob_store.buffer_size_in_bytes:
            self.execute_single_upload(key, stream, blob_size)
        else:
            self.execute_multipart_upload(key, stream, blob_size)

    def write_blob_bytes(self, blob_name: str, data: bytes, fail_if_already_exists: bool = False) -> None:
        self.write_blob(blob_name, io.BytesIO(data), len(data), fail_if_already_exists)

    def execute_single_upload(self, key: str, stream: BinaryIO, blob_size: int) -> None:
        """Upload a blob using a single PUT request."""
        store = self.blob_store
        if blob_size > store.max_file_size:
            raise ValueError(
                f"Upload request size [{blob_size}] can't be larger than {store.max_file_size}"
            )
        if blob_size > store.buffer_size_in_bytes:
            raise ValueError(
                f"Upload request size [{blob_size}] can't be larger than buffer size"
            )

        request = PutObjectRequest(
            bucket=store.bucket,
            key=key,
            stream=stream,
            length=blob_size,
            storage_class=store.storage_class,
            canned_acl=store.canned_acl,
            server_side_encryption=store.server_side_encryption,
        )
        try:
            with store.client_reference() as ref:
                ref.client().put_object(request)
        except BackendError as exc:
            UPLOADS.labels(method="single", outcome="failure").inc()
            raise BlobIOError(
                f"Unable to upload object [{key}] using a single upload", key
            ) from exc

        UPLOADS.labels(method="single", outcome="success").inc()
        UPLOADED_BYTES.labels(method="single").inc(blob_size)
        logger.debug("single_upload_completed", bucket=store.bucket, key=key, size=blob_size)

    def execute_multipart_upload(self, key: str, stream: BinaryIO, blob_size: int) -> None:
        """
        Upload a blob using multipart upload requests.

        Parts are read sequentially from ``stream``. If anything fails after
        the upload was initiated, the upload is aborted on a separate client
        reference and the original error is raised.
        """
        store = self.blob_store
        if blob_size > store.max_multipart_size:
            raise ValueError(
                f"Multipart upload request size [{blob_size}] can't be larger than "
                f"{store.max_multipart_size}"
            )
        if blob_size < store.min_multipart_size:
            raise ValueError(
                f"Multipart upload request size [{blob_size}] can't be smaller than "
                f"{store.min_multipart_size}"
            )

        part_size = store.buffer_size_in_bytes
        plan = number_of_multiparts(blob_size, part_size)
        if plan.part_count > MAX_PART_COUNT:
            raise ValueError(
                "Too many multipart upload requests, maybe try a larger buffer size?"
            )
        assert plan.total_size(part_size) == blob_size, "blob size does not match multipart sizes"

        session: MultipartSession = SessionNotStarted(bucket=store.bucket, key=key)
        try:
            with store.client_reference() as ref:
                client = ref.client()
                session = self._initiate_multipart(client, session)
                logger.info(
                    "multipart_upload_started",
                    bucket=session.bucket,
                    key=key,
                    upload_id=session.upload_id,
                    parts=plan.part_count,
                    size=blob_size,
                )
                for part_number in range(1, plan.part_count + 1):
                    session = self._upload_part(
                        client,
                        session,
                        stream,
                        part_number=part_number,
                        size=plan.part_size_for(part_number, part_size),
                        is_last=part_number == plan.part_count,
                    )
                session = self._complete_multipart(client, session, blob_size)
        except BackendError as exc:
            error = BlobIOError(f"Unable to upload object [{key}] using multipart upload", key)
            self._abort_multipart(session, error)
            UPLOADS.labels(method="multipart", outcome="failure").inc()
            raise error from exc
        except BaseException as exc:
            self._abort_multipart(session, exc)
            UPLOADS.labels(method="multipart", outcome="failure").inc()
            raise

        UPLOADS.labels(method="multipart", outcome="success").inc()
        UPLOADED_BYTES.labels(method="multipart").inc(blob_size)
        logger.info(
            "multipart_upload_completed",
            bucket=session.bucket,
            key=key,
            upload_id=session.upload_id,
        )

    def _initiate_multipart(self, client, session: SessionNotStarted) -> SessionActive:
        store = self.blob_store
        upload_id = client.initiate_multipart(
            InitiateMultipartRequest(
                bucket=session.bucket,
                key=session.key,
                storage_class=store.storage_class,
                canned_acl=store.canned_acl,
                server_side_encryption=store.server_side_encryption,
            )
        )
        if not upload_id:
            raise BlobIOError(f"Failed to initialize multipart upload {session.key}", session.key)
        return SessionActive(bucket=session.bucket, key=session.key, upload_id=upload_id)

    def _upload_part(
        self,
        client,
        session: SessionActive,
        stream: BinaryIO,
        *,
        part_number: int,
        size: int,
        is_last: bool,
    ) -> SessionActive:
        result = client.upload_part(
            UploadPartRequest(
                bucket=session.bucket,
                key=session.key,
                upload_id=session.upload_id,
                part_number=part_number,
                size=size,
                is_last=is_last,
                stream=stream,
            )
        )
        UPLOAD_PART_SIZE.observe(result.size)
        return session.with_part(result)

    def _complete_multipart(
        self, client, session: SessionActive, blob_size: int
    ) -> SessionClosed:
        if session.bytes_sent != blob_size:
            raise BlobIOError(
                f"Failed to execute multipart upload for [{session.key}], expected "
                f"{blob_size} bytes sent but got {session.bytes_sent}",
                session.key,
            )
        client.complete_multipart(session.bucket, session.key, session.upload_id, session.parts)
        return SessionClosed(
            bucket=session.bucket,
            key=session.key,
            upload_id=session.upload_id,
            completed=True,
        )

    def _abort_multipart(self, session: MultipartSession, error: BaseException) -> None:
        """Abort an initiated upload; a failed abort is attached to ``error``."""
        if not isinstance(session, SessionActive):
            return

        try:
            with self.blob_store.client_reference() as ref:
                ref.client().abort_multipart(session.bucket, session.key, session.upload_id)
        except Exception as abort_exc:
            MULTIPART_ABORTS.labels(outcome="failure").inc()
            logger.warning(
                "multipart_upload_abort_failed",
                bucket=session.bucket,
                key=session.key,
                upload_id=session.upload_id,
                error=str(abort_exc),
            )
            if isinstance(error, BlobIOError):
                error.add_suppressed(abort_exc)
            else:
                error.add_note(
                    f"Failed to abort multipart upload {session.upload_id}: {abort_exc!r}"
                )
            return

        MULTIPART_ABORTS.labels(outcome="success").inc()
        logger.warning(
            "multipart_upload_aborted",
            bucket=session.bucket,
            key=session.key,
            upload_id=session.upload_id,
            parts_uploaded=len(session.parts),
            error=str(error),
        )

    # ------------------------------------------------------------------
    # Deletes
    # ------------------------------------------------------------------

    def delete_blob(self, blob_name: str) -> None:
        if not self.blob_exists(blob_name):
            raise BlobNotFoundError(f"Blob [{blob_name}] does not exist", blob_name)
        self.delete_blob_ignoring_if_not_exists(blob_name)

    def delete_blob_ignoring_if_not_exists(self, blob_name: str) -> None:
        # a non-versioned delete cannot tell whether the object existed
        try:
            with self.blob_store.client_reference() as ref:
                ref.client().delete_object(self.blob_store.bucket, self.build_key(blob_name))
        except BackendError as exc:
            raise BlobIOError(f"Exception when deleting blob [{blob_name}]", blob_name) from exc
        DELETED_KEYS.labels(method="single").inc()

    def delete_blobs_ignoring_if_not_exists(self, blob_names: Sequence[str]) -> None:
        """
        Delete many blobs, tolerating missing ones.

        Keys are sent in batches of at most 1000. Every batch is attempted
        even if an earlier one failed; failures are then raised together as
        a ``BulkDeleteError`` whose cause is the first failure.
        """
        blob_names = list(blob_names)
        if not blob_names:
            return

        batches = partition_keys([self.build_key(name) for name in blob_names])
        result = BulkDeleteResult()
        with self.blob_store.client_reference() as ref:
            client = ref.client()
            for batch in batches:
                result.attempted += 1
                try:
                    client.bulk_delete(self.blob_store.bucket, batch.keys, quiet=True)
                except BackendError as exc:
                    BULK_DELETE_FAILED_BATCHES.inc()
                    logger.warning(
                        "bulk_delete_batch_failed",
                        bucket=self.blob_store.bucket,
                        batch=batch.index,
                        keys=len(batch.keys),
                        error=str(exc),
                    )
                    result.record_failure(batch, exc)
                    continue
                DELETED_KEYS.labels(method="bulk").inc(len(batch.keys))

        if result.primary is not None:
            raise BulkDeleteError(
                f"Exception when deleting blobs {blob_names}", result
            ) from result.primary.error

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_blobs_by_prefix(self, blob_name_prefix: Optional[str]) -> Mapping[str, BlobMetadata]:
        """
        List blobs whose name starts with ``blob_name_prefix`` (all blobs if None).

        Pages are drained until the backend reports no truncation. Any failure
        discards what was collected so far.
        """
        prefix = self._key_path if blob_name_prefix is None else self.build_key(blob_name_prefix)
        blobs: Dict[str, BlobMetadata] = {}
        try:
            with self.blob_store.client_reference() as ref:
                client = ref.client()
                page = client.list_objects(self.blob_store.bucket, prefix)
                while True:
                    LISTING_PAGES.inc()
                    for key, size in page.entries:
                        name = key[len(self._key_path) :]
                        blobs[name] = BlobMetadata(name=name, length=size)
                    if not page.truncated:
                        break
                    page = client.list_next(page)
        except BackendError as exc:
            raise BlobIOError(
                f"Exception when listing blobs by prefix [{blob_name_prefix}]",
                blob_name_prefix,
            ) from exc
        return MappingProxyType(blobs)

    def list_blobs(self) -> Mapping[str, BlobMetadata]:
        return self.list_blobs_by_prefix(None)

    def __repr__(self) -> str:
        return f"S3BlobContainer(bucket={self.blob_store.bucket!r}, path={self._key_path!r})"
