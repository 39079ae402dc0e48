"""S3-compatible backend client.

Implements ``BackendClient`` on top of a boto3 S3 client. Works with AWS S3,
MinIO and other S3-compatible services.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, BinaryIO, Dict, Optional, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from blobstore.core.constants import SSE_ALGORITHM
from blobstore.core.exceptions import BackendError, ObjectNotFoundError
from blobstore.core.models import (
    CompletedPart,
    InitiateMultipartRequest,
    ListingPage,
    PutObjectRequest,
    UploadPartRequest,
    UploadPartResult,
)

if TYPE_CHECKING:
    from blobstore.config.store_config import BlobStoreConfig

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def build_s3_client(config: "BlobStoreConfig") -> Any:
    """Create a boto3 S3 client from store configuration.

    Credentials are resolved by boto3's default provider chain.
    """
    botocore_config = Config(s3={"addressing_style": config.addressing_style})
    return boto3.client(
        "s3",
        endpoint_url=config.endpoint_url,
        region_name=config.region,
        config=botocore_config,
    )


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _status_code(exc: ClientError) -> Optional[int]:
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return int(status) if status is not None else None


def _translate(exc: Exception, action: str) -> BackendError:
    if isinstance(exc, ClientError):
        if _error_code(exc) in _NOT_FOUND_CODES or _status_code(exc) == 404:
            return ObjectNotFoundError(f"{action}: {exc}")
        return BackendError(f"{action}: {exc}", status_code=_status_code(exc))
    return BackendError(f"{action}: {exc}")


def _sse_params(enabled: bool) -> Dict[str, Any]:
    return {"ServerSideEncryption": SSE_ALGORITHM} if enabled else {}


def _object_params(
    storage_class: Optional[str], canned_acl: Optional[str], sse: bool
) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if storage_class:
        params["StorageClass"] = storage_class
    if canned_acl:
        params["ACL"] = canned_acl
    params.update(_sse_params(sse))
    return params


class S3BackendClient:
    """Backend client backed by boto3."""

    def __init__(self, s3_client: Any) -> None:
        self.s3 = s3_client

    @classmethod
    def from_config(cls, config: "BlobStoreConfig") -> "S3BackendClient":
        return cls(build_s3_client(config))

    def exists(self, bucket: str, key: str) -> bool:
        try:
            self.s3.head_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES or _status_code(exc) == 404:
                return False
            raise _translate(exc, "Failed to get object metadata") from exc
        except BotoCoreError as exc:
            raise _translate(exc, "Failed to get object metadata") from exc
        return True

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        try:
            response = self.s3.get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "Failed to get object") from exc
        return response["Body"]

    def put_object(self, request: PutObjectRequest) -> None:
        body = request.stream.read(request.length)
        if len(body) != request.length:
            raise BackendError(
                f"Stream ended after {len(body)} of {request.length} bytes"
            )
        try:
            self.s3.put_object(
                Bucket=request.bucket,
                Key=request.key,
                Body=body,
                ContentLength=request.length,
                **_object_params(
                    request.storage_class,
                    request.canned_acl,
                    request.server_side_encryption,
                ),
            )
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "Failed to put object") from exc

    def initiate_multipart(self, request: InitiateMultipartRequest) -> str:
        try:
            response = self.s3.create_multipart_upload(
                Bucket=request.bucket,
                Key=request.key,
                **_object_params(
                    request.storage_class,
                    request.canned_acl,
                    request.server_side_encryption,
                ),
            )
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "Failed to create multipart upload") from exc
        return str(response.get("UploadId") or "")

    def upload_part(self, request: UploadPartRequest) -> UploadPartResult:
        body = request.stream.read(request.size)
        try:
            response = self.s3.upload_part(
                Bucket=request.bucket,
                Key=request.key,
                UploadId=request.upload_id,
                PartNumber=request.part_number,
                Body=body,
                ContentLength=len(body),
            )
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, f"Failed to upload part {request.part_number}") from exc
        return UploadPartResult(
            part=CompletedPart(part_number=request.part_number, etag=response["ETag"]),
            size=len(body),
        )

    def complete_multipart(
        self, bucket: str, key: str, upload_id: str, parts: Sequence[CompletedPart]
    ) -> None:
        payload = {
            "Parts": [
                {"ETag": part.etag, "PartNumber": part.part_number} for part in parts
            ]
        }
        try:
            self.s3.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload=payload,
            )
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "Failed to complete multipart upload") from exc

    def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        try:
            self.s3.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "Failed to abort multipart upload") from exc

    def delete_object(self, bucket: str, key: str) -> None:
        try:
            self.s3.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "Failed to delete object") from exc

    def bulk_delete(self, bucket: str, keys: Sequence[str], quiet: bool = True) -> None:
        try:
            response = self.s3.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": quiet},
            )
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "Failed to delete objects") from exc

        errors = response.get("Errors") or []
        if errors:
            detail = ", ".join(
                f"{err.get('Key')} ({err.get('Code')})" for err in errors[:10]
            )
            raise BackendError(f"Failed to delete {len(errors)} objects: {detail}")

    def list_objects(self, bucket: str, prefix: str) -> ListingPage:
        return self._list_page(bucket, prefix, continuation_token=None)

    def list_next(self, page: ListingPage) -> ListingPage:
        if not page.truncated or not page.continuation_token:
            raise ValueError("Listing page has no continuation")
        return self._list_page(page.bucket, page.prefix, page.continuation_token)

    def _list_page(
        self, bucket: str, prefix: str, continuation_token: Optional[str]
    ) -> ListingPage:
        params: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        try:
            response = self.s3.list_objects_v2(**params)
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "Failed to list objects") from exc

        entries = tuple(
            (obj["Key"], int(obj.get("Size", 0))) for obj in response.get("Contents", [])
        )
        return ListingPage(
            bucket=bucket,
            prefix=prefix,
            entries=entries,
            truncated=bool(response.get("IsTruncated")),
            continuation_token=response.get("NextContinuationToken"),
        )

    def close(self) -> None:
        close = getattr(self.s3, "close", None)
        if callable(close):
            close()
