import io
import sys
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import boto3
import pytest
from moto import mock_aws

# Ensure src/ is on sys.path for local test runs without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from blobstore.config.store_config import BlobStoreConfig  # noqa: E402
from blobstore.core.blob_store import S3BlobStore  # noqa: E402
from blobstore.core.exceptions import BackendError, ObjectNotFoundError  # noqa: E402
from blobstore.core.models import (  # noqa: E402
    CompletedPart,
    InitiateMultipartRequest,
    ListingPage,
    PutObjectRequest,
    UploadPartRequest,
    UploadPartResult,
)
from blobstore.core.path import BlobPath  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line(
        "markers",
        "integration: tests that require external services or are slower (S3, etc.)",
    )
    config.addinivalue_line("markers", "s3: tests that interact with S3 or moto S3")


class RecordingBackend:
    """
    In-memory backend client that records every call.

    Failures are injected through ``fail_on``: a mapping from call name to
    the 1-based invocation numbers that should raise ``BackendError``.
    """

    def __init__(self, page_size: int = 1000) -> None:
        self.objects: Dict[str, Dict[str, bytes]] = defaultdict(dict)
        self.uploads: Dict[str, Dict[int, bytes]] = {}
        self.calls: List[tuple] = []
        self.counts: Dict[str, int] = defaultdict(int)
        self.fail_on: Dict[str, set] = defaultdict(set)
        self.page_size = page_size
        self.upload_id: Optional[str] = None
        self.short_read_part: Optional[int] = None
        self.closed = False
        self._next_upload = 0

    def _record(self, name: str, *args) -> None:
        self.counts[name] += 1
        self.calls.append((name, *args))
        if self.counts[name] in self.fail_on[name]:
            raise BackendError(f"{name} failed (call {self.counts[name]})", status_code=500)

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def exists(self, bucket: str, key: str) -> bool:
        self._record("exists", bucket, key)
        return key in self.objects[bucket]

    def get_object(self, bucket: str, key: str):
        self._record("get_object", bucket, key)
        if key not in self.objects[bucket]:
            raise ObjectNotFoundError(f"no such key {key}")
        return io.BytesIO(self.objects[bucket][key])

    def put_object(self, request: PutObjectRequest) -> None:
        self._record("put_object", request)
        self.objects[request.bucket][request.key] = request.stream.read(request.length)

    def initiate_multipart(self, request: InitiateMultipartRequest) -> str:
        self._record("initiate_multipart", request)
        if self.upload_id is not None:
            upload_id = self.upload_id
        else:
            self._next_upload += 1
            upload_id = f"upload-{self._next_upload}"
        if upload_id:
            self.uploads[upload_id] = {}
        return upload_id

    def upload_part(self, request: UploadPartRequest) -> UploadPartResult:
        self._record("upload_part", request.part_number, request.size, request.is_last)
        size = request.size
        if request.part_number == self.short_read_part:
            size -= 1
        data = request.stream.read(size)
        self.uploads[request.upload_id][request.part_number] = data
        return UploadPartResult(
            part=CompletedPart(part_number=request.part_number, etag=f"etag-{request.part_number}"),
            size=len(data),
        )

    def complete_multipart(
        self, bucket: str, key: str, upload_id: str, parts: Sequence[CompletedPart]
    ) -> None:
        self._record("complete_multipart", bucket, key, upload_id, tuple(parts))
        chunks = self.uploads.pop(upload_id)
        self.objects[bucket][key] = b"".join(chunks[p.part_number] for p in parts)

    def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        self._record("abort_multipart", bucket, key, upload_id)
        self.uploads.pop(upload_id, None)

    def delete_object(self, bucket: str, key: str) -> None:
        self._record("delete_object", bucket, key)
        self.objects[bucket].pop(key, None)

    def bulk_delete(self, bucket: str, keys: Sequence[str], quiet: bool = True) -> None:
        self._record("bulk_delete", bucket, tuple(keys), quiet)
        for key in keys:
            self.objects[bucket].pop(key, None)

    def list_objects(self, bucket: str, prefix: str) -> ListingPage:
        self._record("list_objects", bucket, prefix)
        return self._page(bucket, prefix, 0)

    def list_next(self, page: ListingPage) -> ListingPage:
        self._record("list_next", page.continuation_token)
        return self._page(page.bucket, page.prefix, int(page.continuation_token))

    def _page(self, bucket: str, prefix: str, start: int) -> ListingPage:
        keys = sorted(k for k in self.objects[bucket] if k.startswith(prefix))
        chunk = keys[start : start + self.page_size]
        end = start + len(chunk)
        return ListingPage(
            bucket=bucket,
            prefix=prefix,
            entries=tuple((k, len(self.objects[bucket][k])) for k in chunk),
            truncated=end < len(keys),
            continuation_token=str(end) if end < len(keys) else None,
        )

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def store_config() -> BlobStoreConfig:
    """Small sizes so multipart paths run on a few hundred bytes."""
    return BlobStoreConfig(
        bucket="test-bucket",
        buffer_size=100,
        max_file_size=1000,
        max_multipart_size=10_000,
        min_multipart_size=10,
    )


@pytest.fixture
def blob_store(store_config, backend):
    store = S3BlobStore(store_config, client_factory=lambda _cfg: backend)
    yield store
    store.close()


@pytest.fixture
def container(blob_store):
    return blob_store.blob_container(BlobPath.from_string("repo/indices"))


@pytest.fixture
def s3_client_mock():
    """Moto-backed S3 client with a test bucket."""
    with mock_aws():
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket="test-repo")
        yield s3
