from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from blobstore.core.constants import (
    CANNED_ACLS,
    DEFAULT_BUFFER_SIZE,
    MAX_FILE_SIZE,
    MAX_FILE_SIZE_USING_MULTIPART,
    MIN_PART_SIZE_USING_MULTIPART,
    SUPPORTED_STORAGE_CLASSES,
    UNSUPPORTED_STORAGE_CLASSES,
)

_SIZE_RE = re.compile(r"^\s*(\d+)\s*([kmgt]?)b?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"": 1, "k": 1024, "m": 1024**2, "g": 1024**3, "t": 1024**4}


def parse_byte_size(value: Union[str, int]) -> int:
    """Parse ``"100mb"``, ``"5g"`` or a plain integer into a number of bytes."""
    if isinstance(value, int):
        return value
    match = _SIZE_RE.match(value)
    if not match:
        raise ValueError(f"Invalid byte size: {value!r}")
    number, unit = match.groups()
    return int(number) * _SIZE_UNITS[unit.lower()]


class BlobStoreConfig(BaseModel):
    """S3 blob store configuration."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., description="S3 bucket holding the repository")
    base_path: str = Field("", description="Key prefix for every container")
    endpoint_url: Optional[str] = Field(None, description="Custom S3 endpoint")
    region: Optional[str] = Field(None, description="S3 region")
    addressing_style: str = Field("path", description="path or virtual")
    buffer_size: int = Field(
        DEFAULT_BUFFER_SIZE,
        description="Single upload threshold and multipart part size (bytes)",
    )
    max_file_size: int = Field(
        MAX_FILE_SIZE, description="Largest blob sent with a single PUT"
    )
    max_multipart_size: int = Field(
        MAX_FILE_SIZE_USING_MULTIPART, description="Largest multipart blob"
    )
    min_multipart_size: int = Field(
        MIN_PART_SIZE_USING_MULTIPART, description="Smallest multipart blob"
    )
    storage_class: str = Field("STANDARD", description="S3 storage class")
    canned_acl: str = Field("private", description="S3 canned ACL")
    server_side_encryption: bool = Field(
        False, description="Request AES256 server-side encryption"
    )

    @field_validator("buffer_size", "max_file_size", "max_multipart_size", "min_multipart_size", mode="before")
    @classmethod
    def _parse_size(cls, value: Any) -> int:
        size = parse_byte_size(value)
        if size <= 0:
            raise ValueError("size must be positive")
        return size

    @field_validator("storage_class")
    @classmethod
    def _check_storage_class(cls, value: str) -> str:
        storage_class = (value or "STANDARD").strip().upper()
        if storage_class in UNSUPPORTED_STORAGE_CLASSES:
            raise ValueError(f"Storage class {storage_class} is not supported")
        if storage_class not in SUPPORTED_STORAGE_CLASSES:
            raise ValueError(f"Unknown storage class: {value}")
        return storage_class

    @field_validator("canned_acl")
    @classmethod
    def _check_canned_acl(cls, value: str) -> str:
        acl = (value or "private").strip().lower()
        if acl not in CANNED_ACLS:
            raise ValueError(f"Unknown canned ACL: {value}")
        return acl

    @field_validator("addressing_style")
    @classmethod
    def _check_addressing_style(cls, value: str) -> str:
        style = value.strip().lower()
        if style not in ("path", "virtual"):
            raise ValueError(f"Invalid addressing style: {value}")
        return style

    @field_validator("base_path")
    @classmethod
    def _normalize_base_path(cls, value: str) -> str:
        return (value or "").strip("/")

    @model_validator(mode="after")
    def _check_sizes(self) -> "BlobStoreConfig":
        if not self.min_multipart_size <= self.buffer_size <= self.max_file_size:
            raise ValueError(
                f"buffer_size {self.buffer_size} must be between "
                f"{self.min_multipart_size} and {self.max_file_size}"
            )
        return self

    @classmethod
    def from_env(cls) -> "BlobStoreConfig":
        bucket = os.getenv("BLOBSTORE_BUCKET")
        if not bucket:
            raise RuntimeError("BLOBSTORE_BUCKET must be set")

        values: dict[str, Any] = {
            "bucket": bucket,
            "base_path": os.getenv("BLOBSTORE_BASE_PATH", ""),
            "endpoint_url": os.getenv("BLOBSTORE_ENDPOINT_URL") or None,
            "region": os.getenv("BLOBSTORE_REGION") or None,
            "addressing_style": os.getenv("BLOBSTORE_ADDRESSING_STYLE", "path"),
            "storage_class": os.getenv("BLOBSTORE_STORAGE_CLASS", "STANDARD"),
            "canned_acl": os.getenv("BLOBSTORE_CANNED_ACL", "private"),
            "server_side_encryption": os.getenv(
                "BLOBSTORE_SERVER_SIDE_ENCRYPTION", "false"
            ).lower()
            == "true",
        }
        buffer_size = os.getenv("BLOBSTORE_BUFFER_SIZE")
        if buffer_size:
            values["buffer_size"] = buffer_size
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "BlobStoreConfig":
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {path}")
        return cls(**data)


__all__ = ["BlobStoreConfig", "parse_byte_size"]
