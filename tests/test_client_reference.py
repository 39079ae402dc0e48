"""Tests for ref-counted client handles and the blob store."""

from unittest.mock import Mock

import pytest

from blobstore.client.reference import ClientReference
from blobstore.config.store_config import BlobStoreConfig
from blobstore.core.blob_store import S3BlobStore
from blobstore.core.path import BlobPath

pytestmark = pytest.mark.unit


def test_reference_closes_client_on_last_release():
    client = Mock()
    ref = ClientReference(client)

    ref.inc_ref()
    assert ref.dec_ref() is False
    client.close.assert_not_called()

    assert ref.dec_ref() is True
    client.close.assert_called_once()
    assert ref.try_inc_ref() is False


def test_reference_context_manager_releases():
    ref = ClientReference(Mock())
    ref.inc_ref()

    with ref as acquired:
        assert acquired.ref_count == 2

    assert ref.ref_count == 1


def test_reference_over_release_fails():
    ref = ClientReference(Mock())
    ref.dec_ref()

    with pytest.raises(RuntimeError):
        ref.dec_ref()


def test_store_creates_client_once():
    factory = Mock(return_value=Mock())
    store = S3BlobStore(BlobStoreConfig(bucket="b"), client_factory=factory)

    with store.client_reference() as first:
        with store.client_reference() as second:
            assert first is second
            assert first.ref_count == 3

    factory.assert_called_once()


def test_store_close_closes_idle_client():
    client = Mock()
    store = S3BlobStore(BlobStoreConfig(bucket="b"), client_factory=lambda _cfg: client)
    with store.client_reference():
        pass

    store.close()

    client.close.assert_called_once()
    with pytest.raises(RuntimeError, match="closed"):
        store.client_reference()


def test_store_close_waits_for_borrowed_reference():
    client = Mock()
    store = S3BlobStore(BlobStoreConfig(bucket="b"), client_factory=lambda _cfg: client)

    with store.client_reference():
        store.close()
        client.close.assert_not_called()

    client.close.assert_called_once()


def test_store_default_container_uses_base_path():
    store = S3BlobStore(BlobStoreConfig(bucket="b", base_path="repo/x"), client_factory=Mock())

    assert store.blob_container().key_path == "repo/x/"
    assert store.blob_container(BlobPath.from_string("y")).build_key("z") == "y/z"
