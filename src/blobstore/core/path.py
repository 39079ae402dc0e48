"""Hierarchical blob paths."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple


@dataclass(frozen=True)
class BlobPath:
    """
    Immutable list of path segments identifying a container.

    ``build_as_string()`` renders every segment followed by ``/`` so that the
    result can be concatenated directly with a blob name.
    """

    segments: Tuple[str, ...] = ()

    @classmethod
    def from_string(cls, path: str) -> "BlobPath":
        return cls(tuple(seg for seg in path.split("/") if seg))

    def add(self, segment: str) -> "BlobPath":
        if not segment or "/" in segment:
            raise ValueError(f"Invalid path segment: {segment!r}")
        return BlobPath(self.segments + (segment,))

    def parent(self) -> "BlobPath":
        return BlobPath(self.segments[:-1])

    def build_as_string(self) -> str:
        return "".join(f"{seg}/" for seg in self.segments)

    def __iter__(self) -> Iterator[str]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return "[" + "][".join(self.segments) + "]"
