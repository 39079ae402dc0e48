"""Backend clients for object storage."""

from .backend import BackendClient
from .reference import ClientReference
from .s3_client import S3BackendClient, build_s3_client

__all__ = ["BackendClient", "ClientReference", "S3BackendClient", "build_s3_client"]
