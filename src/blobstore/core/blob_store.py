"""S3 blob store: configuration plus the shared backend client."""

from __future__ import annotations

from threading import Lock
from typing import TYPE_CHECKING, Any, Callable, Optional

from blobstore.client.reference import ClientReference
from blobstore.client.s3_client import S3BackendClient
from blobstore.core.blob_container import S3BlobContainer
from blobstore.core.path import BlobPath
from blobstore.utils.logging import get_logger

if TYPE_CHECKING:
    from blobstore.config.store_config import BlobStoreConfig

logger = get_logger(__name__)

ClientFactory = Callable[["BlobStoreConfig"], Any]


def _default_client_factory(config: "BlobStoreConfig") -> Any:
    return S3BackendClient.from_config(config)


class S3BlobStore:
    """
    Entry point for S3 blob containers.

    Holds the immutable store configuration and lazily creates one backend
    client shared by every container. Operations borrow the client through
    ``client_reference()``; ``close()`` drops the store's own reference.
    """

    def __init__(
        self,
        config: "BlobStoreConfig",
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config
        self._client_factory = client_factory or _default_client_factory
        self._reference: Optional[ClientReference] = None
        self._lock = Lock()
        self._closed = False

    @property
    def bucket(self) -> str:
        return self.config.bucket

    @property
    def buffer_size_in_bytes(self) -> int:
        return self.config.buffer_size

    @property
    def max_file_size(self) -> int:
        return self.config.max_file_size

    @property
    def max_multipart_size(self) -> int:
        return self.config.max_multipart_size

    @property
    def min_multipart_size(self) -> int:
        return self.config.min_multipart_size

    @property
    def storage_class(self) -> str:
        return self.config.storage_class

    @property
    def canned_acl(self) -> str:
        return self.config.canned_acl

    @property
    def server_side_encryption(self) -> bool:
        return self.config.server_side_encryption

    def base_path(self) -> BlobPath:
        return BlobPath.from_string(self.config.base_path)

    def blob_container(self, path: Optional[BlobPath] = None) -> S3BlobContainer:
        """Return a container for ``path`` (the store's base path if omitted)."""
        return S3BlobContainer(path if path is not None else self.base_path(), self)

    def client_reference(self) -> ClientReference:
        """Acquire a reference to the shared backend client; release it with ``with``."""
        with self._lock:
            if self._closed:
                raise RuntimeError("Blob store is closed")
            if self._reference is None or not self._reference.try_inc_ref():
                self._reference = ClientReference(self._client_factory(self.config))
                logger.debug(
                    "backend_client_created",
                    bucket=self.bucket,
                    endpoint=self.config.endpoint_url,
                )
                self._reference.inc_ref()
            return self._reference

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            reference, self._reference = self._reference, None
        if reference is not None:
            reference.dec_ref()

    def __enter__(self) -> "S3BlobStore":
        return self

    def __exit__(self, exc_type: Optional[type[BaseException]], exc: Optional[BaseException], tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"S3BlobStore(bucket={self.bucket!r}, base_path={self.config.base_path!r})"
