"""Tests for single and multipart blob uploads."""

import io

import pytest

from blobstore.core.exceptions import BackendError, BlobIOError

pytestmark = pytest.mark.unit


def _payload(size: int) -> bytes:
    return bytes(i % 251 for i in range(size))


def test_small_blob_uses_single_upload(container, backend):
    data = _payload(100)

    container.write_blob("snap-1.dat", io.BytesIO(data), len(data))

    assert backend.call_names() == ["put_object"]
    request = backend.calls[0][1]
    assert request.bucket == "test-bucket"
    assert request.key == "repo/indices/snap-1.dat"
    assert request.length == 100
    assert request.storage_class == "STANDARD"
    assert request.canned_acl == "private"
    assert request.server_side_encryption is False
    assert backend.objects["test-bucket"]["repo/indices/snap-1.dat"] == data


def test_large_blob_uses_multipart_in_part_order(container, backend):
    data = _payload(250)

    container.write_blob("big.dat", io.BytesIO(data), len(data))

    assert backend.call_names() == [
        "initiate_multipart",
        "upload_part",
        "upload_part",
        "upload_part",
        "complete_multipart",
    ]
    part_calls = [c for c in backend.calls if c[0] == "upload_part"]
    assert [c[1:] for c in part_calls] == [
        (1, 100, False),
        (2, 100, False),
        (3, 50, True),
    ]
    complete = backend.calls[-1]
    assert [p.part_number for p in complete[4]] == [1, 2, 3]
    assert backend.objects["test-bucket"]["repo/indices/big.dat"] == data


def test_multipart_exact_multiple_of_part_size(container, backend):
    data = _payload(300)

    container.write_blob("even.dat", io.BytesIO(data), len(data))

    sizes = [c[2] for c in backend.calls if c[0] == "upload_part"]
    assert sizes == [100, 100, 100]
    assert backend.objects["test-bucket"]["repo/indices/even.dat"] == data


def test_multipart_request_carries_store_settings(store_config, backend):
    from blobstore.core.blob_store import S3BlobStore

    config = store_config.model_copy(
        update={
            "storage_class": "STANDARD_IA",
            "canned_acl": "bucket-owner-full-control",
            "server_side_encryption": True,
        }
    )
    with S3BlobStore(config, client_factory=lambda _cfg: backend) as store:
        store.blob_container().write_blob("x", io.BytesIO(_payload(150)), 150)

    initiate = backend.calls[0][1]
    assert initiate.storage_class == "STANDARD_IA"
    assert initiate.canned_acl == "bucket-owner-full-control"
    assert initiate.server_side_encryption is True


@pytest.mark.parametrize("failing_part", [1, 2, 3])
def test_part_failure_aborts_once_and_surfaces_original(container, backend, failing_part):
    backend.fail_on["upload_part"] = {failing_part}

    with pytest.raises(BlobIOError, match="using multipart upload") as excinfo:
        container.write_blob("big.dat", io.BytesIO(_payload(250)), 250)

    assert isinstance(excinfo.value.__cause__, BackendError)
    assert f"call {failing_part}" in str(excinfo.value.__cause__)
    aborts = [c for c in backend.calls if c[0] == "abort_multipart"]
    assert aborts == [("abort_multipart", "test-bucket", "repo/indices/big.dat", "upload-1")]
    assert "complete_multipart" not in backend.call_names()
    assert backend.uploads == {}


def test_complete_failure_aborts(container, backend):
    backend.fail_on["complete_multipart"] = {1}

    with pytest.raises(BlobIOError):
        container.write_blob("big.dat", io.BytesIO(_payload(250)), 250)

    assert backend.call_names()[-1] == "abort_multipart"
    assert "repo/indices/big.dat" not in backend.objects["test-bucket"]


def test_short_stream_fails_before_complete_and_aborts(container, backend):
    backend.short_read_part = 2

    with pytest.raises(BlobIOError, match="expected 250 bytes sent but got 249"):
        container.write_blob("big.dat", io.BytesIO(_payload(250)), 250)

    names = backend.call_names()
    assert "complete_multipart" not in names
    assert names.count("abort_multipart") == 1


def test_empty_upload_id_fails_without_abort(container, backend):
    backend.upload_id = ""

    with pytest.raises(BlobIOError, match="Failed to initialize multipart upload"):
        container.write_blob("big.dat", io.BytesIO(_payload(250)), 250)

    assert backend.call_names() == ["initiate_multipart"]


def test_initiate_failure_does_not_abort(container, backend):
    backend.fail_on["initiate_multipart"] = {1}

    with pytest.raises(BlobIOError):
        container.write_blob("big.dat", io.BytesIO(_payload(250)), 250)

    assert "abort_multipart" not in backend.call_names()


def test_abort_failure_does_not_mask_original(container, backend):
    backend.fail_on["upload_part"] = {2}
    backend.fail_on["abort_multipart"] = {1}

    with pytest.raises(BlobIOError, match="using multipart upload") as excinfo:
        container.write_blob("big.dat", io.BytesIO(_payload(250)), 250)

    assert "upload_part failed" in str(excinfo.value.__cause__)
    assert len(excinfo.value.suppressed) == 1
    assert "abort_multipart failed" in str(excinfo.value.suppressed[0])


def test_abort_uses_fresh_client_reference(blob_store, container, backend):
    acquired = []
    original = blob_store.client_reference

    def tracking_reference():
        ref = original()
        acquired.append(ref.ref_count)
        return ref

    blob_store.client_reference = tracking_reference
    backend.fail_on["upload_part"] = {1}

    with pytest.raises(BlobIOError):
        container.write_blob("big.dat", io.BytesIO(_payload(250)), 250)

    # one reference for the upload, a second one for the abort
    assert len(acquired) == 2
    assert acquired[1] == 2
    assert blob_store._reference.ref_count == 1


@pytest.mark.parametrize(
    "size, message",
    [
        (10_001, "can't be larger than"),
        (5, "can't be smaller than"),
    ],
)
def test_multipart_size_limits_fail_before_backend(container, backend, size, message):
    with pytest.raises(ValueError, match=message):
        container.execute_multipart_upload("repo/indices/x", io.BytesIO(b""), size)

    assert backend.calls == []


def test_single_upload_size_limits_fail_before_backend(container, backend):
    with pytest.raises(ValueError, match="larger than buffer size"):
        container.execute_single_upload("repo/indices/x", io.BytesIO(b""), 101)

    assert backend.calls == []


def test_too_many_parts_is_invalid_argument(store_config, backend, monkeypatch):
    from blobstore.core import blob_container
    from blobstore.core.blob_store import S3BlobStore

    monkeypatch.setattr(blob_container, "MAX_PART_COUNT", 2)
    store = S3BlobStore(store_config, client_factory=lambda _cfg: backend)

    with pytest.raises(ValueError, match="Too many multipart upload requests"):
        store.blob_container().write_blob("x", io.BytesIO(_payload(250)), 250)

    assert backend.calls == []


def test_single_upload_failure_is_io_error(container, backend):
    backend.fail_on["put_object"] = {1}

    with pytest.raises(BlobIOError, match="using a single upload") as excinfo:
        container.write_blob("a", io.BytesIO(b"abc"), 3)

    assert isinstance(excinfo.value, OSError)
    assert excinfo.value.blob_name == "repo/indices/a"


def test_fail_if_already_exists_is_ignored(container, backend):
    container.write_blob("a", io.BytesIO(b"one"), 3)
    container.write_blob("a", io.BytesIO(b"two"), 3, fail_if_already_exists=True)

    assert backend.objects["test-bucket"]["repo/indices/a"] == b"two"
    assert "exists" not in backend.call_names()


def test_client_reference_released_after_operations(blob_store, container, backend):
    container.write_blob("a", io.BytesIO(b"abc"), 3)
    backend.fail_on["upload_part"] = {1}
    with pytest.raises(BlobIOError):
        container.write_blob("b", io.BytesIO(_payload(250)), 250)

    assert blob_store._reference.ref_count == 1


def test_write_blob_bytes(container, backend):
    container.write_blob_bytes("small", b"abc")
    container.write_blob_bytes("large", _payload(150))

    assert backend.call_names()[0] == "put_object"
    assert "initiate_multipart" in backend.call_names()
    assert backend.objects["test-bucket"]["repo/indices/large"] == _payload(150)
