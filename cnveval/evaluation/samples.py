"""Counts of CNV calls per caller and sample."""

from typing import Dict, List, Mapping, Sequence
import re
import pandas as pd

from ..genomics.calls import CNVCall, TRUTH_KEY

_REPLICATE_SUFFIX = re.compile(r"-[^-]*$")


def normalize_sample(sample: str) -> str:
    """Strip a trailing ``-<suffix>`` (run or replicate id) from a sample id."""
    return _REPLICATE_SUFFIX.sub("", sample, count=1)


class SampleAggregator:
    """Count calls per caller and logical sample."""

    def calculate_counts(
        self,
        calls: Mapping[str, Sequence[CNVCall]]
    ) -> Dict[str, Dict[str, int]]:
        """Create caller -> sample -> number of calls.

        Samples differing only in their replicate suffix share one key.
        """
        counts: Dict[str, Dict[str, int]] = {}
        for caller, caller_calls in calls.items():
            if caller == TRUTH_KEY:
                continue
            sample_counts: Dict[str, int] = {}
            for call in caller_calls:
                sample = normalize_sample(call.sample)
                sample_counts[sample] = sample_counts.get(sample, 0) + 1
            counts[caller] = sample_counts
        return counts

    @staticmethod
    def samples(counts: Mapping[str, Mapping[str, int]]) -> List[str]:
        """Return the union of samples over callers, in first-seen order."""
        seen: Dict[str, bool] = {}
        for sample_counts in counts.values():
            for sample in sample_counts:
                seen.setdefault(sample, True)
        return list(seen)

    def to_dataframe(self, counts: Mapping[str, Mapping[str, int]]) -> pd.DataFrame:
        """Convert counts to a samples x callers DataFrame (0 where absent)."""
        samples = self.samples(counts)
        df = pd.DataFrame(
            {caller: [sample_counts.get(s, 0) for s in samples]
             for caller, sample_counts in counts.items()},
            index=pd.Index(samples, name="sample")
        )
        return df
