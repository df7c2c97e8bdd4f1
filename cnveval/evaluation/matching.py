"""Matching of caller calls to truth CNVs, counting each truth CNV once."""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence
import logging

from ..genomics.calls import CNVCall, TruthRecord

logger = logging.getLogger(__name__)


@dataclass
class TruthState:
    """Detection state of one truth CNV within an evaluation pass."""

    record: TruthRecord
    detected: bool = False


@dataclass
class EvaluationContext:
    """Detection state for one accounting pass.

    Contexts are built fresh for every pass and must not be shared between
    callers or reused across runs.
    """

    truth: List[TruthState]
    unmatched: List[CNVCall] = field(default_factory=list)

    @classmethod
    def from_truth(cls, records: Iterable[TruthRecord]) -> "EvaluationContext":
        """Create a context with every truth CNV undetected."""
        return cls([TruthState(record) for record in records])

    @property
    def detected_count(self) -> int:
        """Return the number of truth CNVs detected so far."""
        return sum(1 for state in self.truth if state.detected)

    @property
    def detected(self) -> List[TruthRecord]:
        """Return the detected truth CNVs, in truth order."""
        return [state.record for state in self.truth if state.detected]

    def __len__(self) -> int:
        return len(self.truth)


class OverlapMatcher:
    """Greedy first-match assignment of calls to truth CNVs.

    A true-positive call is assigned to the first truth CNV, in truth order,
    that overlaps it and has the same sample. This is not an optimal
    one-to-one assignment: when several truth CNVs qualify the result
    depends on truth order, and a call whose first candidate was already
    detected is not tried against later candidates.
    """

    def __init__(self, warn_unmatched: bool = True):
        """Initialize matcher.

        Args:
            warn_unmatched: Log a warning for true-positive calls matching no
                truth CNV. Disable when the truth set is deliberately partial.
        """
        self.warn_unmatched = warn_unmatched

    def find(self, context: EvaluationContext, call: CNVCall) -> Optional[TruthState]:
        """Return the first truth CNV matching a call, detected or not."""
        for state in context.truth:
            if state.record.sample == call.sample and state.record.range.overlaps(call.range):
                return state
        return None

    def detect(self, context: EvaluationContext, call: CNVCall) -> bool:
        """Try to detect a truth CNV with a call.

        Args:
            context: Detection state, updated in place.
            call: A call flagged as a true positive.

        Returns:
            True if the call detected a truth CNV not detected before.
        """
        state = self.find(context, call)
        if state is None:
            if self.warn_unmatched:
                logger.warning(
                    f"CNV marked as true but does not overlap truth set: "
                    f"{call.chromosome}:{call.start}-{call.end} ({call.sample})"
                )
            context.unmatched.append(call)
            return False

        if state.detected:
            return False

        state.detected = True
        return True

    def match(
        self,
        context: EvaluationContext,
        calls: Sequence[CNVCall]
    ) -> List[bool]:
        """Run detection for a sequence of calls, in order.

        Calls not flagged as true positives are never counted.

        Returns:
            Per call, whether it newly detected a truth CNV.
        """
        return [
            self.detect(context, call) if call.is_true_positive else False
            for call in calls
        ]

    def count_detected(
        self,
        truth: Iterable[TruthRecord],
        calls: Sequence[CNVCall]
    ) -> EvaluationContext:
        """Match calls against a fresh context built from ``truth``.

        Returns:
            The context after the pass.
        """
        context = EvaluationContext.from_truth(truth)
        self.match(context, calls)
        return context
