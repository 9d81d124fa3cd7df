"""Tests for storage key derivation and object storage backends.

**Feature: tubely, Property 2: Storage Key Determinism**
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from hypothesis import given, settings, strategies as st

from tubely.core.errors import UploadFailedError
from tubely.core.storage import (
    LocalStorage,
    S3Storage,
    Storage,
    StorageConfig,
    derive_storage_key,
)
from tubely.modules.ingestion.orientation import Orientation

orientation_strategy = st.sampled_from([o.value for o in Orientation])
video_id_strategy = st.uuids().map(str)


def make_s3_storage(client: MagicMock) -> S3Storage:
    storage = S3Storage(StorageConfig(
        backend="s3",
        bucket="tubely-videos",
        region="us-east-1",
        cdn_domain="cdn.tubely.test",
    ))
    storage._client = client
    return storage


class TestStorageKeyDerivation:
    """Property tests for storage key derivation."""

    @given(orientation=orientation_strategy, video_id=video_id_strategy)
    @settings(max_examples=100)
    def test_key_is_deterministic(self, orientation: str, video_id: str) -> None:
        """**Feature: tubely, Property 2: Storage Key Determinism**

        For any (orientation, video_id), derivation SHALL always yield the same key.
        """
        assert derive_storage_key(orientation, video_id) == derive_storage_key(orientation, video_id)

    @given(orientation=orientation_strategy, video_id=video_id_strategy)
    @settings(max_examples=100)
    def test_key_layout(self, orientation: str, video_id: str) -> None:
        """**Feature: tubely, Property 2: Storage Key Determinism**"""
        key = derive_storage_key(orientation, video_id)

        prefix, filename = key.split("/")
        assert prefix == orientation
        assert filename == f"{video_id}.mp4"

    def test_known_key(self) -> None:
        assert derive_storage_key("landscape", "abc123") == "landscape/abc123.mp4"


class TestS3Storage:
    """Tests for the S3 backend with a mocked boto3 client."""

    def test_upload_puts_object_with_content_type(self, tmp_path: Path) -> None:
        source = tmp_path / "video.mp4"
        source.write_bytes(b"fast-start bytes")
        client = MagicMock()
        client.put_object.return_value = {"ETag": '"abc"'}
        storage = make_s3_storage(client)

        result = storage.upload(str(source), "landscape/v1.mp4", "video/mp4")

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "tubely-videos"
        assert kwargs["Key"] == "landscape/v1.mp4"
        assert kwargs["ContentType"] == "video/mp4"
        assert result.key == "landscape/v1.mp4"
        assert result.url == "https://cdn.tubely.test/landscape/v1.mp4"
        assert result.file_size == len(b"fast-start bytes")
        assert result.etag == "abc"

    def test_service_error_raises_upload_failed(self, tmp_path: Path) -> None:
        source = tmp_path / "video.mp4"
        source.write_bytes(b"data")
        client = MagicMock()
        client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        storage = make_s3_storage(client)

        with pytest.raises(UploadFailedError, match="AccessDenied"):
            storage.upload(str(source), "other/v1.mp4", "video/mp4")

    def test_transport_error_raises_upload_failed(self, tmp_path: Path) -> None:
        source = tmp_path / "video.mp4"
        source.write_bytes(b"data")
        client = MagicMock()
        client.put_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.test")
        storage = make_s3_storage(client)

        with pytest.raises(UploadFailedError):
            storage.upload(str(source), "other/v1.mp4", "video/mp4")

    def test_upload_is_not_retried(self, tmp_path: Path) -> None:
        source = tmp_path / "video.mp4"
        source.write_bytes(b"data")
        client = MagicMock()
        client.put_object.side_effect = ClientError(
            {"Error": {"Code": "InternalError", "Message": "boom"}}, "PutObject"
        )
        storage = make_s3_storage(client)

        with pytest.raises(UploadFailedError):
            storage.upload(str(source), "other/v1.mp4", "video/mp4")
        assert client.put_object.call_count == 1

    def test_missing_source_raises_upload_failed(self, tmp_path: Path) -> None:
        storage = make_s3_storage(MagicMock())

        with pytest.raises(UploadFailedError):
            storage.upload(str(tmp_path / "gone.mp4"), "other/v1.mp4", "video/mp4")


class TestLocalStorage:
    """Tests for the filesystem backend."""

    def test_upload_copies_file_under_key(self, tmp_path: Path) -> None:
        source = tmp_path / "in.mp4"
        source.write_bytes(b"abc")
        storage = LocalStorage(StorageConfig(
            backend="local",
            local_path=str(tmp_path / "bucket"),
            cdn_domain="cdn.tubely.test",
        ))

        result = storage.upload(str(source), "portrait/v2.mp4", "video/mp4")

        assert (tmp_path / "bucket" / "portrait" / "v2.mp4").read_bytes() == b"abc"
        assert result.url == "https://cdn.tubely.test/portrait/v2.mp4"

    def test_url_without_cdn_points_at_file(self, tmp_path: Path) -> None:
        storage = LocalStorage(StorageConfig(backend="local", local_path=str(tmp_path)))

        assert storage.get_url("other/v3.mp4").startswith("file://")

    def test_overwrite_same_key(self, tmp_path: Path) -> None:
        first = tmp_path / "a.mp4"
        second = tmp_path / "b.mp4"
        first.write_bytes(b"first")
        second.write_bytes(b"second")
        storage = LocalStorage(StorageConfig(backend="local", local_path=str(tmp_path / "bucket")))

        storage.upload(str(first), "landscape/v4.mp4", "video/mp4")
        storage.upload(str(second), "landscape/v4.mp4", "video/mp4")

        assert (tmp_path / "bucket" / "landscape" / "v4.mp4").read_bytes() == b"second"


class TestStorageFacade:
    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unsupported storage backend"):
            Storage(StorageConfig(backend="ftp"))

    def test_s3_backend_selected(self) -> None:
        storage = Storage(StorageConfig(backend="s3", bucket="b", cdn_domain="cdn.tubely.test"))

        assert storage.get_url("landscape/x.mp4") == "https://cdn.tubely.test/landscape/x.mp4"
