"""Ref-counted handle to a shared backend client."""

from __future__ import annotations

from threading import Lock
from typing import Any, Optional

from blobstore.utils.logging import get_logger

logger = get_logger(__name__)


class ClientReference:
    """
    Scoped handle to a long-lived backend client.

    The owner holds the initial reference. Every operation acquires its own
    reference (``with store.client_reference() as ref``) and releases it on
    exit. The wrapped client is closed once the count drops to zero.
    """

    def __init__(self, client: Any) -> None:
        self._client = client
        self._refs = 1
        self._lock = Lock()

    @property
    def ref_count(self) -> int:
        with self._lock:
            return self._refs

    def client(self) -> Any:
        return self._client

    def try_inc_ref(self) -> bool:
        with self._lock:
            if self._refs <= 0:
                return False
            self._refs += 1
            return True

    def inc_ref(self) -> None:
        if not self.try_inc_ref():
            raise RuntimeError("Backend client reference is already closed")

    def dec_ref(self) -> bool:
        """Release one reference; returns True if this closed the client."""
        with self._lock:
            if self._refs <= 0:
                raise RuntimeError("Backend client reference released too many times")
            self._refs -= 1
            if self._refs > 0:
                return False
        self._close_client()
        return True

    def _close_client(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()
        logger.debug("backend_client_closed")

    def __enter__(self) -> "ClientReference":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Any,
    ) -> None:
        self.dec_ref()
