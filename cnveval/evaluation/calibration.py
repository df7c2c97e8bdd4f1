"""Quality score calibration: empirical precision of calls binned by quality."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import logging
import pandas as pd

from ..genomics.calls import (
    CallDataset,
    CNVCall,
    MAX_RARE_CNV_FREQ,
    SimulationType,
    passes_chromosome_filter,
)
from ..utils.stats import max_value, min_value, round_half_up, safe_ratio

logger = logging.getLogger(__name__)

MIN_BIN_COUNT = 3


@dataclass
class QualityBin:
    """Quality bin with call counts.

    Bins are half-open ``[low, high)`` unless ``closed``, which marks the
    single ``[low, high]`` bin used when the quality span is too narrow to
    split.
    """

    low: float
    high: float
    count: int = 0
    truth: int = 0
    closed: bool = False

    def contains(self, quality: float) -> bool:
        """Check if a quality score falls in the bin."""
        if self.closed:
            return self.low <= quality <= self.high
        return self.low <= quality < self.high

    @property
    def precision(self) -> float:
        """Return the fraction of calls in the bin that are true positives."""
        return safe_ratio(self.truth, self.count)

    @property
    def midpoint(self) -> float:
        """Return the centre of the bin."""
        return (self.low + self.high) / 2

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "low": self.low,
            "high": self.high,
            "count": self.count,
            "truth": self.truth,
            "precision": self.precision,
            "closed": self.closed
        }


@dataclass
class CalibrationCurve:
    """Quality bins of one caller."""

    caller: str
    bins: List[QualityBin]

    def bin_edges(self) -> List[float]:
        """Return the edges of the bins, lows followed by the last high."""
        if not self.bins:
            return []
        return [b.low for b in self.bins] + [self.bins[-1].high]

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame, one row per bin."""
        return pd.DataFrame(
            [{"caller": self.caller, **b.to_dict()} for b in self.bins],
            columns=["caller", "low", "high", "count", "truth", "precision", "closed"]
        )


class QualityCalibrationBinner:
    """Adaptive binning of a caller's calls by quality score.

    The quality span is split into about five bins of a width rounded to
    0.5. Bins with too few calls are dropped. When only one bin survives,
    its calls are binned again, so resolution follows where the calls
    cluster.
    """

    def __init__(
        self,
        max_freq: float = MAX_RARE_CNV_FREQ,
        simulation_type: SimulationType = SimulationType.DOWNSAMPLE,
        min_bin_count: int = MIN_BIN_COUNT
    ):
        """Initialize binner.

        Args:
            max_freq: Calls with a higher population frequency are ignored.
            simulation_type: Selects chrX (replace) or non-chrX (downsample) calls.
            min_bin_count: Bins with fewer calls are dropped.
        """
        self.max_freq = max_freq
        self.simulation_type = SimulationType.parse(simulation_type)
        self.min_bin_count = min_bin_count

    def filter_calls(self, calls: Sequence[CNVCall]) -> List[CNVCall]:
        """Drop common calls and calls on the wrong chromosomes."""
        return [
            c for c in calls
            if c.spanning_freq <= self.max_freq and
            passes_chromosome_filter(c.chromosome, self.simulation_type)
        ]

    @staticmethod
    def bin_width(q_min: float, q_max: float) -> float:
        """Split the quality span five ways and round to the nearest 0.5."""
        bin_size = (q_max - q_min) / 5
        return round_half_up(10 * bin_size / 5) * 5 / 10

    @staticmethod
    def make_bins(q_min: float, q_max: float, width: float) -> List[QualityBin]:
        """Tile ``[q_min, q_max + width)`` with bins of the given width."""
        bins = []
        low = q_min
        bins_max = q_max + width
        while width > 0 and low < bins_max:
            bins.append(QualityBin(low, low + width))
            low += width
        return bins

    def calculate_bins(self, calls: Sequence[CNVCall]) -> List[QualityBin]:
        """Bin calls by quality.

        Args:
            calls: One caller's calls, unfiltered.

        Returns:
            Bins holding at least ``min_bin_count`` calls, in quality order.
        """
        return self._calculate(self.filter_calls(calls), parent=None, depth=0)

    def _calculate(
        self,
        calls: List[CNVCall],
        parent: Optional[QualityBin],
        depth: int
    ) -> List[QualityBin]:
        if not calls:
            return [parent] if parent else []

        q_min = min_value(calls, lambda c: c.quality)
        q_max = max_value(calls, lambda c: c.quality)
        width = self.bin_width(q_min, q_max)

        if width <= 0:
            if parent is not None:
                return [parent]
            if len(calls) < self.min_bin_count:
                return []
            return [QualityBin(
                q_min,
                q_max,
                count=len(calls),
                truth=sum(1 for c in calls if c.is_true_positive),
                closed=True
            )]

        bins = self.make_bins(q_min, q_max, width)
        for call in calls:
            for b in bins:
                if b.contains(call.quality):
                    b.count += 1
                    if call.is_true_positive:
                        b.truth += 1
                    break

        logger.debug(
            f"Quality {q_min}-{q_max}, bin size = {width}, {len(bins)} bins (depth {depth})"
        )

        candidates = [b for b in bins if b.count >= self.min_bin_count]
        if not candidates and parent is not None:
            return [parent]

        if len(candidates) == 1:
            survivor = candidates[0]
            subset = [c for c in calls if survivor.low <= c.quality <= survivor.high]
            if len(subset) == len(calls):
                return candidates
            logger.debug(
                f"Naive binning produced too few bins: exploding bin {survivor.low}-{survivor.high}"
            )
            return self._calculate(subset, survivor, depth + 1)

        return candidates

    def calibrate(self, caller: str, calls: Sequence[CNVCall]) -> CalibrationCurve:
        """Build the calibration curve of one caller."""
        bins = self.calculate_bins(calls)
        logger.info(f"Caller {caller} has {len(bins)} bins")
        return CalibrationCurve(caller, bins)

    def calibrate_all(self, dataset: CallDataset) -> Dict[str, CalibrationCurve]:
        """Build calibration curves for every caller in a dataset."""
        return {
            caller: self.calibrate(caller, calls)
            for caller, calls in dataset.items()
        }
