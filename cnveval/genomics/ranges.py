"""Half-open genomic range definitions and overlap utilities."""

from dataclasses import dataclass
import numpy as np


def normalize_chromosome(chromosome: str) -> str:
    """Strip a leading 'chr' prefix so 'chr1' and '1' compare equal."""
    chromosome = str(chromosome)
    if chromosome.startswith("chr"):
        return chromosome[3:]
    return chromosome


@dataclass(frozen=True)
class GenomicRange:
    """Half-open chromosome interval, inclusive of start, exclusive of end."""

    chromosome: str
    start: int
    end: int

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(
                f"Invalid range {self.chromosome}:{self.start}-{self.end}: start must be < end"
            )

    @property
    def length(self) -> int:
        """Return the length of the range."""
        return self.end - self.start

    def contains(self, position: float) -> bool:
        """Check if a position is within this range."""
        return self.start <= position < self.end

    def overlaps(self, other: "GenomicRange") -> bool:
        """Check if this range overlaps with another.

        The test is point containment: either end of ``other`` inside this
        range, or this range's end inside ``other``. Two consequences follow
        and are relied on by downstream counts:

        * ``[150, 200)`` does not overlap ``[100, 200)`` while the reverse
          call does, because neither start of the outer range nor the shared
          end is contained by the inner range.
        * ranges that only touch (``a.end == b.start``) overlap.
        """
        if self.chromosome != other.chromosome:
            return False
        return (
            self.contains(other.end) or
            self.contains(other.start) or
            other.contains(self.end)
        )

    def __str__(self) -> str:
        return f"{self.chromosome}:{self.start}-{self.end}"


def overlaps_mask(
    start: int,
    end: int,
    other_starts: np.ndarray,
    other_ends: np.ndarray
) -> np.ndarray:
    """Vectorized ``GenomicRange.overlaps`` of one range against many.

    All ranges are assumed to lie on the same chromosome.

    Args:
        start: Start of the fixed range.
        end: End of the fixed range.
        other_starts: Starts of the ranges to test.
        other_ends: Ends of the ranges to test.

    Returns:
        Boolean array, True where ``GenomicRange(start, end).overlaps(other)``.
    """
    other_starts = np.asarray(other_starts)
    other_ends = np.asarray(other_ends)

    contains_other_end = (other_ends >= start) & (other_ends < end)
    contains_other_start = (other_starts >= start) & (other_starts < end)
    other_contains_end = (other_starts <= end) & (end < other_ends)

    return contains_other_end | contains_other_start | other_contains_end
