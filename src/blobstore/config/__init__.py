"""
Blob store configuration.
"""

from .store_config import BlobStoreConfig, parse_byte_size

__all__ = ["BlobStoreConfig", "parse_byte_size"]
