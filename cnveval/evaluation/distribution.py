"""Distribution of CNV calls over fixed-width windows of the genome."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging
import numpy as np
import pandas as pd

from ..genomics.calls import CNVCall, TRUTH_KEY
from ..genomics.ranges import GenomicRange, normalize_chromosome, overlaps_mask
from ..genomics.reference import ReferenceGenome
from ..utils.formatting import human_size

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 10 * 1000 * 1000
DRILLDOWN_WINDOW_SIZE = 500 * 1000


@dataclass
class GenomeDistribution:
    """Per-caller counts of overlapping calls for each genome window."""

    window_size: int
    windows: List[GenomicRange]
    chromosome_starts: Dict[str, int]
    counts: Dict[str, List[int]]

    def window_label(self, index: int) -> str:
        """Label a window: the chromosome for its first window, else ``chr:start``."""
        window = self.windows[index]
        if window.start == 0:
            return window.chromosome
        return f"{window.chromosome}:{window.start}"

    def axis_label(self, label: str = "Genome Position") -> str:
        """Return the x axis label including the window size."""
        return f"{label} ({human_size(self.window_size)} bins)"

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame, one row per window and one column per caller."""
        df = pd.DataFrame({
            "chromosome": [w.chromosome for w in self.windows],
            "start": [w.start for w in self.windows],
            "end": [w.end for w in self.windows],
        })
        for caller, caller_counts in self.counts.items():
            df[caller] = caller_counts
        return df


class GenomeDistributionBinner:
    """Tile the genome into windows and count overlapping calls per caller."""

    def __init__(
        self,
        reference: ReferenceGenome,
        window_size: int = DEFAULT_WINDOW_SIZE
    ):
        """Initialize binner.

        Args:
            reference: Chromosome-length table of the genome build.
            window_size: Window width in bp.
        """
        if window_size <= 0:
            raise ValueError(f"Window size must be positive: {window_size}")
        self.reference = reference
        self.window_size = window_size

    def compute_windows(
        self,
        chromosomes: Optional[Iterable[str]] = None
    ) -> Tuple[List[GenomicRange], Dict[str, int]]:
        """Tile chromosomes, in reference order, into half-open windows.

        Args:
            chromosomes: Only tile these chromosomes (drill-down).

        Returns:
            The windows and the index of each chromosome's first window.
        """
        if chromosomes is None:
            table = self.reference.chromosomes
        else:
            chromosomes = list(chromosomes)
            table = self.reference.subset(chromosomes).chromosomes if chromosomes else ()

        windows: List[GenomicRange] = []
        starts: Dict[str, int] = {}
        for chromosome, length in table:
            starts[chromosome] = len(windows)
            pos = 0
            while pos < length:
                windows.append(GenomicRange(chromosome, pos, min(pos + self.window_size, length)))
                pos += self.window_size
        return windows, starts

    def count_overlaps(
        self,
        windows: Sequence[GenomicRange],
        calls: Sequence[CNVCall]
    ) -> List[int]:
        """Count, for each window, the calls overlapping it."""
        by_chromosome: Dict[str, List[CNVCall]] = {}
        for call in calls:
            by_chromosome.setdefault(call.range.chromosome, []).append(call)

        arrays = {
            chromosome: (
                np.array([c.start for c in chr_calls], dtype=np.int64),
                np.array([c.end for c in chr_calls], dtype=np.int64)
            )
            for chromosome, chr_calls in by_chromosome.items()
        }

        counts = []
        for window in windows:
            if window.chromosome not in arrays:
                counts.append(0)
                continue
            starts, ends = arrays[window.chromosome]
            counts.append(int(np.count_nonzero(
                overlaps_mask(window.start, window.end, starts, ends)
            )))
        return counts

    def compute(
        self,
        calls: Mapping[str, Sequence[CNVCall]],
        chromosomes: Optional[Iterable[str]] = None
    ) -> GenomeDistribution:
        """Count each caller's calls per genome window.

        Args:
            calls: Caller id -> calls. A ``truth`` entry is ignored.
            chromosomes: Restrict output to these chromosomes.

        Returns:
            Window counts for every caller.
        """
        if chromosomes is not None:
            chromosomes = [normalize_chromosome(c) for c in chromosomes]
        windows, starts = self.compute_windows(chromosomes)

        counts = {
            caller: self.count_overlaps(windows, caller_calls)
            for caller, caller_calls in calls.items()
            if caller != TRUTH_KEY
        }
        logger.info(
            f"Counted calls of {len(counts)} callers over {len(windows)} windows "
            f"of {human_size(self.window_size)}"
        )
        return GenomeDistribution(self.window_size, windows, starts, counts)
