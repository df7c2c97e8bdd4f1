"""Sensitivity of each caller binned by a CNV attribute (size, targets, ...)."""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
import logging
import math
import pandas as pd

from ..exceptions import ConfigurationError
from ..genomics.calls import CallDataset, CNVCall, TruthRecord, attribute_getter
from ..utils.stats import identity, max_value
from .calibration import MIN_BIN_COUNT
from .matching import OverlapMatcher

logger = logging.getLogger(__name__)


@dataclass
class AttributeBin:
    """Truth CNVs whose attribute lies in ``[min, max)``."""

    index: int
    min: float
    max: float
    truth: List[TruthRecord] = field(default_factory=list)
    sensitivity: Dict[str, float] = field(default_factory=dict)

    def contains(self, value: float) -> bool:
        """Check if an attribute value falls in the bin."""
        return self.min <= value < self.max

    @property
    def midpoint(self) -> float:
        """Return the centre of the bin."""
        return (self.min + self.max) / 2


@dataclass(frozen=True)
class Dimension:
    """A CNV attribute to break sensitivity down by, with its bin edges."""

    attribute: str
    description: str
    edges: Tuple[float, ...]
    x_scale: Callable[[float], float] = identity


# Attribute distributions differ too much to bin automatically.
DEFAULT_DIMENSIONS = {
    "targets": Dimension(
        "targets",
        "Number of Target Regions",
        (0, 1, 2, 3, 4, 5, 10, 20, 50, 100, 500, 1000)
    ),
    "target_bp": Dimension(
        "target_bp",
        "Number of targeted Base Pairs",
        (0, 100, 500, 1000, 5000, 10000, 50000, 100000, 500000, 1000000, 10000000)
    ),
    "size": Dimension(
        "size",
        "Genomic Span of CNV (bp)",
        (0, 100, 500, 1000, 5000, 10000, 50000, 100000, 500000, 1000000, 10000000),
        x_scale=math.log10
    ),
}


@dataclass
class SensitivityResult:
    """Per-caller sensitivity over the populated bins of one attribute."""

    attribute: str
    bins: List[AttributeBin]
    curves: Dict[str, List[Tuple[float, float]]]

    @property
    def x_max(self) -> Optional[float]:
        """Return the upper edge of the last populated bin."""
        return max_value(self.bins, lambda b: b.max)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame, one row per caller and bin."""
        rows = []
        for b in self.bins:
            for caller, sens in b.sensitivity.items():
                rows.append({
                    "attribute": self.attribute,
                    "caller": caller,
                    "bin_min": b.min,
                    "bin_max": b.max,
                    "truth_cnvs": len(b.truth),
                    "sensitivity": sens
                })
        return pd.DataFrame(
            rows,
            columns=["attribute", "caller", "bin_min", "bin_max", "truth_cnvs", "sensitivity"]
        )


class DimensionalSensitivityBinner:
    """Fraction of truth CNVs detected per caller, per attribute bin."""

    def __init__(
        self,
        attribute: Union[str, Callable[[TruthRecord], float]],
        edges: Sequence[float],
        min_bin_count: int = MIN_BIN_COUNT,
        x_scale: Callable[[float], float] = identity
    ):
        """Initialize binner.

        Args:
            attribute: Attribute name or function giving the value to bin on.
            edges: Bin edges; consecutive pairs form ``[min, max)`` bins.
            min_bin_count: Bins with fewer truth CNVs are left out.
            x_scale: Transform applied to bin midpoints in the output.
        """
        if len(edges) < 2:
            raise ConfigurationError(
                f"At least two bin edges are required, got {list(edges)}"
            )
        self.attribute = attribute if isinstance(attribute, str) else getattr(
            attribute, "__name__", "value"
        )
        self.value_of = attribute_getter(attribute)
        self.edges = list(edges)
        self.min_bin_count = min_bin_count
        self.x_scale = x_scale
        self.matcher = OverlapMatcher(warn_unmatched=False)

    @classmethod
    def for_dimension(cls, dimension: Dimension, min_bin_count: int = MIN_BIN_COUNT):
        """Create a binner from a preset dimension."""
        return cls(dimension.attribute, dimension.edges, min_bin_count, dimension.x_scale)

    def init_bins(self) -> List[AttributeBin]:
        """Create empty bins from consecutive edges."""
        return [
            AttributeBin(i - 1, self.edges[i - 1], self.edges[i])
            for i in range(1, len(self.edges))
        ]

    def bin_truth(self, truth: Sequence[TruthRecord]) -> List[AttributeBin]:
        """Put each truth CNV in the first bin containing its attribute value."""
        bins = self.init_bins()
        dropped = 0
        for record in truth:
            value = self.value_of(record)
            for b in bins:
                if b.contains(value):
                    b.truth.append(record)
                    break
            else:
                dropped += 1
        if dropped:
            logger.info(f"{dropped} truth CNVs fall outside the {self.attribute} bins")
        return bins

    def bin_sensitivity(self, b: AttributeBin, calls: Sequence[CNVCall]) -> float:
        """Fraction of the bin's truth CNVs detected by a caller's calls."""
        if not b.truth:
            return 0.0
        context = self.matcher.count_detected(b.truth, calls)
        return context.detected_count / len(b.truth)

    def compute(self, dataset: CallDataset) -> SensitivityResult:
        """Compute sensitivity by bin for every caller.

        Raises:
            ConfigurationError: If the dataset has no truth set.
        """
        truth = dataset.require_truth("Sensitivity breakdown")
        bins = [b for b in self.bin_truth(truth) if len(b.truth) >= self.min_bin_count]

        curves = {}
        for caller, calls in dataset.items():
            tp_calls = [c for c in calls if c.is_true_positive]
            for b in bins:
                b.sensitivity[caller] = self.bin_sensitivity(b, tp_calls)
            curves[caller] = [(0, 0)] + [
                (self.x_scale(b.midpoint), b.sensitivity[caller]) for b in bins
            ]

        logger.info(f"{len(bins)} {self.attribute} bins with at least {self.min_bin_count} truth CNVs")
        return SensitivityResult(self.attribute, bins, curves)
