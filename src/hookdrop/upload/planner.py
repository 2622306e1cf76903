import math
from typing import NamedTuple


class PartTask(NamedTuple):
    """A contiguous byte range ``[start, end)`` of a file, uploaded as one part."""

    part_number: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


def needs_multipart(size: int, threshold: int) -> bool:
    """Whether a file of the given size goes through a multipart upload instead of a single PUT."""
    return size >= threshold


def plan_parts(size: int, part_size: int) -> list[PartTask]:
    """
    Split ``size`` bytes into consecutive parts of ``part_size`` bytes; only the last part may be shorter.

    :param size: Total number of bytes, must be positive.
    :param part_size: Bytes per part, must be positive.
    :return: ``ceil(size / part_size)`` tasks numbered from 1.
    :raises ValueError: for non-positive sizes. Empty files use the single-PUT path.
    """
    if part_size <= 0:
        raise ValueError(f"Part size must be positive, got {part_size}")
    if size <= 0:
        raise ValueError(f"Cannot plan a multipart upload for {size} bytes")

    num_parts = math.ceil(size / part_size)
    return [
        PartTask(part_number=i + 1, start=i * part_size, end=min((i + 1) * part_size, size)) for i in range(num_parts)
    ]
