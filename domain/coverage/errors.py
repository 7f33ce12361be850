"""Coverage Bounded Context - Error Hierarchy.

Custom exceptions for coverage search operations.
"""

from __future__ import annotations


class CoverageError(Exception):
    """Base error for coverage operations."""


class InvalidResolution(CoverageError):
    """Requested grid resolution is outside the supported range.

    Attributes:
        resolution: The offending resolution
        minimum: Lowest supported resolution
        maximum: Highest supported resolution
    """

    def __init__(self, resolution: int, minimum: int, maximum: int) -> None:
        self.resolution = resolution
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Resolution {resolution} outside supported range [{minimum}, {maximum}]"
        )


class SearchCancelled(CoverageError):
    """The caller went away; no further rings were queried."""

    pass
