"""Cumulative true/false positive counts over calls ranked by quality."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import logging
import pandas as pd

from ..genomics.calls import (
    CallDataset,
    CallFilter,
    CNVCall,
    MAX_RARE_CNV_FREQ,
    SimulationType,
    SizeRange,
    TargetRange,
    TruthRecord,
)
from ..utils.stats import safe_ratio
from .matching import EvaluationContext, OverlapMatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ROCPoint:
    """Cumulative counts after including all calls down to ``quality``."""

    false_positives: int
    true_positives: int
    quality: float

    def sensitivity(self, truth_count: int) -> float:
        """Return the fraction of truth CNVs detected so far."""
        return safe_ratio(self.true_positives, truth_count)

    @property
    def precision(self) -> float:
        """Return the fraction of counted calls that are true positives."""
        return safe_ratio(self.true_positives, self.true_positives + self.false_positives)


@dataclass
class ROCCurve:
    """ROC step curve of one caller."""

    caller: str
    points: List[ROCPoint]
    truth_count: int
    unmatched: List[CNVCall] = field(default_factory=list)

    @property
    def final(self) -> Optional[ROCPoint]:
        """Return the last point, covering every call."""
        return self.points[-1] if self.points else None

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame, one row per call."""
        return pd.DataFrame(
            [
                {
                    "caller": self.caller,
                    "quality": p.quality,
                    "false_positives": p.false_positives,
                    "true_positives": p.true_positives,
                    "sensitivity": p.sensitivity(self.truth_count),
                    "precision": p.precision
                }
                for p in self.points
            ],
            columns=[
                "caller", "quality", "false_positives", "true_positives",
                "sensitivity", "precision"
            ]
        )


@dataclass
class ROCResult:
    """ROC curves of all callers, sharing one filtered truth set."""

    curves: Dict[str, ROCCurve]
    truth_count: int

    def to_dataframe(self) -> pd.DataFrame:
        """Concatenate all curves into one DataFrame."""
        frames = [curve.to_dataframe() for curve in self.curves.values()]
        if not frames:
            return pd.DataFrame()
        return pd.concat(frames, ignore_index=True)

    def summarize(self) -> Dict[str, Dict[str, Any]]:
        """Return final counts per caller."""
        summary = {}
        for caller, curve in self.curves.items():
            final = curve.final
            tp = final.true_positives if final else 0
            fp = final.false_positives if final else 0
            summary[caller] = {
                "calls": len(curve.points),
                "true_positives": tp,
                "false_positives": fp,
                "sensitivity": safe_ratio(tp, self.truth_count),
                "precision": safe_ratio(tp, tp + fp)
            }
        return summary


class ROCAccumulator:
    """Count true and false positives of each caller by descending quality."""

    def __init__(
        self,
        max_freq: float = MAX_RARE_CNV_FREQ,
        size_range: Optional[SizeRange] = None,
        target_range: Optional[TargetRange] = None,
        simulation_type: SimulationType = SimulationType.DOWNSAMPLE
    ):
        """Initialize accumulator.

        Args:
            max_freq: Non-truth calls at or above this population frequency
                are not counted as false positives.
            size_range: CNV size bounds in bp (exclusive).
            target_range: Target region count bounds (inclusive).
            simulation_type: Selects chrX (replace) or non-chrX (downsample) CNVs.
        """
        self.max_freq = max_freq
        self.call_filter = CallFilter(
            simulation_type=SimulationType.parse(simulation_type),
            size_range=size_range or SizeRange(),
            target_range=target_range or TargetRange()
        )
        self.matcher = OverlapMatcher()

    def filter_calls(self, calls: Sequence[CNVCall]) -> List[CNVCall]:
        """Filter calls and sort them by quality, highest first."""
        filtered = self.call_filter.apply(list(calls))
        return sorted(filtered, key=lambda c: c.quality, reverse=True)

    def filter_truth(self, truth: Sequence[TruthRecord]) -> List[TruthRecord]:
        """Restrict the truth set to the same size, target and chromosome bounds."""
        return self.call_filter.apply(list(truth))

    def accumulate(
        self,
        calls: Sequence[CNVCall],
        context: EvaluationContext
    ) -> List[ROCPoint]:
        """Walk quality-sorted calls keeping running TP and FP counts.

        Args:
            calls: Calls sorted by descending quality.
            context: Fresh detection state for this pass.

        Returns:
            One point per call.
        """
        tp_count = 0
        fp_count = 0
        points = []
        for call in calls:
            if call.is_true_positive:
                if self.matcher.detect(context, call):
                    tp_count += 1
            elif call.spanning_freq < self.max_freq:
                fp_count += 1
            points.append(ROCPoint(fp_count, tp_count, call.quality))
        return points

    def compute(self, dataset: CallDataset) -> ROCResult:
        """Compute ROC curves for every caller.

        Raises:
            ConfigurationError: If the dataset has no truth set.
        """
        truth = self.filter_truth(dataset.require_truth("ROC curve"))

        logger.info(
            f"There are {dataset.total_calls} raw cnv calls, filtering by "
            f"size {self.call_filter.size_range}, targets {self.call_filter.target_range}"
        )

        curves = {}
        for caller, calls in dataset.items():
            filtered = self.filter_calls(calls)
            context = EvaluationContext.from_truth(truth)
            points = self.accumulate(filtered, context)
            curves[caller] = ROCCurve(caller, points, len(truth), list(context.unmatched))
            logger.debug(f"{caller}: {len(filtered)} calls after filtering")

        return ROCResult(curves, len(truth))
