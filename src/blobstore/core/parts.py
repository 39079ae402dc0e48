"""Multipart part planning."""

from __future__ import annotations

from blobstore.core.models import PartPlan


def number_of_multiparts(total_size: int, part_size: int) -> PartPlan:
    """
    Return the number of ``part_size`` parts needed to reach ``total_size``,
    along with the size of the last (or only) part.

    Args:
        total_size: Total number of bytes to upload
        part_size: Fixed size of every part but the last

    Returns:
        PartPlan with ``(part_count - 1) * part_size + last_part_size == total_size``

    Raises:
        ValueError: If part_size is not positive
    """
    if part_size <= 0:
        raise ValueError("Part size must be greater than zero")

    if total_size == 0 or total_size <= part_size:
        return PartPlan(part_count=1, last_part_size=total_size)

    parts, remaining = divmod(total_size, part_size)
    if remaining == 0:
        return PartPlan(part_count=parts, last_part_size=part_size)
    return PartPlan(part_count=parts + 1, last_part_size=remaining)
