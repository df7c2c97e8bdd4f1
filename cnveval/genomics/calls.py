"""CNV call records, the truth set and the in-memory call dataset."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union
import logging
import math
import pandas as pd

from ..exceptions import ConfigurationError
from .ranges import GenomicRange, normalize_chromosome

logger = logging.getLogger(__name__)

# The frequency above which a CNV is not counted as a false positive, since it
# is likely a real CNV that is present in the population.
MAX_RARE_CNV_FREQ = 0.01

TRUTH_KEY = "truth"


class SimulationType(Enum):
    """How the truth CNVs were simulated.

    ``replace`` simulations put every CNV on chromosome X, so only chrX calls
    are evaluated. ``downsample`` simulations leave chrX out.
    """
    DOWNSAMPLE = "downsample"
    REPLACE = "replace"

    @classmethod
    def parse(cls, value: Union[str, "SimulationType"]) -> "SimulationType":
        """Convert a string to a simulation type."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown simulation type: {value}. Use 'downsample' or 'replace'."
            )


def is_x_chromosome(chromosome: str) -> bool:
    """Check if a chromosome name refers to chromosome X."""
    return chromosome in ("X", "chrX")


def passes_chromosome_filter(chromosome: str, simulation_type: SimulationType) -> bool:
    """Apply the chrX inclusion rule of a simulation type."""
    if simulation_type == SimulationType.REPLACE:
        return is_x_chromosome(chromosome)
    return not is_x_chromosome(chromosome)


def _required(record: Mapping[str, Any], name: str) -> Any:
    if name not in record or record[name] is None:
        raise ValueError(f"CNV record is missing required field: {name}")
    return record[name]


@dataclass(frozen=True)
class CNVCall:
    """A single CNV call made by a caller."""

    chromosome: str
    start: int
    end: int
    quality: float
    sample: str
    targets: int = 0
    target_bp: int = 0
    spanning_freq: float = 0.0
    is_true_positive: bool = False
    range: GenomicRange = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self,
            "range",
            GenomicRange(normalize_chromosome(self.chromosome), self.start, self.end)
        )

    @property
    def size(self) -> int:
        """Return CNV length in bp."""
        return self.end - self.start

    @property
    def is_chrx(self) -> bool:
        """Check if the call is on chromosome X."""
        return is_x_chromosome(self.chromosome)

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "CNVCall":
        """Create a call from a loader record (``chr``, ``targetBp``, ...)."""
        return cls(
            chromosome=str(_required(record, "chr")),
            start=int(_required(record, "start")),
            end=int(_required(record, "end")),
            quality=float(_required(record, "quality")),
            sample=str(_required(record, "sample")),
            targets=int(record.get("targets", 0) or 0),
            target_bp=int(record.get("targetBp", 0) or 0),
            spanning_freq=float(record.get("spanningFreq", 0.0) or 0.0),
            is_true_positive=bool(record.get("truth", False))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "chromosome": self.chromosome,
            "start": self.start,
            "end": self.end,
            "size": self.size,
            "quality": self.quality,
            "sample": self.sample,
            "targets": self.targets,
            "target_bp": self.target_bp,
            "spanning_freq": self.spanning_freq,
            "truth": self.is_true_positive
        }


@dataclass(frozen=True)
class TruthRecord:
    """A real CNV event from the truth set."""

    id: int
    chromosome: str
    start: int
    end: int
    sample: str
    targets: int = 0
    target_bp: int = 0
    range: GenomicRange = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self,
            "range",
            GenomicRange(normalize_chromosome(self.chromosome), self.start, self.end)
        )

    @property
    def size(self) -> int:
        """Return CNV length in bp."""
        return self.end - self.start

    @property
    def is_chrx(self) -> bool:
        """Check if the CNV is on chromosome X."""
        return is_x_chromosome(self.chromosome)

    @classmethod
    def from_dict(cls, record: Mapping[str, Any], record_id: int) -> "TruthRecord":
        """Create a truth record from a loader record."""
        return cls(
            id=record_id,
            chromosome=str(_required(record, "chr")),
            start=int(_required(record, "start")),
            end=int(_required(record, "end")),
            sample=str(_required(record, "sample")),
            targets=int(record.get("targets", 0) or 0),
            target_bp=int(record.get("targetBp", 0) or 0)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "chromosome": self.chromosome,
            "start": self.start,
            "end": self.end,
            "size": self.size,
            "sample": self.sample,
            "targets": self.targets,
            "target_bp": self.target_bp
        }


Record = Union[CNVCall, TruthRecord]

ATTRIBUTE_ALIASES = {
    "targetBp": "target_bp",
}

NUMERIC_ATTRIBUTES = ("start", "end", "size", "targets", "target_bp")


def attribute_getter(
    selector: Union[str, Callable[[Record], float]]
) -> Callable[[Record], float]:
    """Return a function reading a numeric attribute from a record.

    Args:
        selector: One of ``NUMERIC_ATTRIBUTES`` (``targetBp`` is accepted for
            ``target_bp``) or a function of the record.
    """
    if callable(selector):
        return selector
    name = ATTRIBUTE_ALIASES.get(selector, selector)
    if name not in NUMERIC_ATTRIBUTES:
        raise ConfigurationError(
            f"Unknown CNV attribute: {selector}. Use one of {list(NUMERIC_ATTRIBUTES)}"
        )
    return lambda record: getattr(record, name)


@dataclass(frozen=True)
class SizeRange:
    """CNV size bounds in bp, both ends exclusive."""

    min_size: float = 0
    max_size: float = math.inf

    def __post_init__(self):
        if self.min_size > self.max_size:
            raise ConfigurationError(
                f"Invalid size range: {self.min_size} > {self.max_size}"
            )

    @classmethod
    def from_log10(cls, low: float, high: float) -> "SizeRange":
        """Create a size range from log10 bounds, e.g. (0, 7) -> 1bp..10Mb."""
        return cls(10 ** low, 10 ** high)

    def contains(self, size: float) -> bool:
        """Check if a size lies strictly within the bounds."""
        return self.min_size < size < self.max_size


@dataclass(frozen=True)
class TargetRange:
    """Bounds on the number of targeted regions, both ends inclusive."""

    min_targets: float = 0
    max_targets: float = math.inf

    def __post_init__(self):
        if self.min_targets > self.max_targets:
            raise ConfigurationError(
                f"Invalid target range: {self.min_targets} > {self.max_targets}"
            )

    @classmethod
    def of(cls, low: Any, high: Any) -> "TargetRange":
        """Create a target range, reading "Infinity", None or a negative upper bound as unbounded."""
        if high is None or high == "Infinity" or float(high) < 0:
            high = math.inf
        return cls(float(low), float(high))

    def contains(self, targets: float) -> bool:
        """Check if a target count lies within the bounds."""
        return self.min_targets <= targets <= self.max_targets


@dataclass(frozen=True)
class CallFilter:
    """Size, target count and chromosome filter shared by calls and truth."""

    simulation_type: SimulationType = SimulationType.DOWNSAMPLE
    size_range: SizeRange = field(default_factory=SizeRange)
    target_range: TargetRange = field(default_factory=TargetRange)

    def accepts(self, record: Record) -> bool:
        """Check if a record passes the filter."""
        return (
            self.target_range.contains(record.targets) and
            self.size_range.contains(record.size) and
            passes_chromosome_filter(record.chromosome, self.simulation_type)
        )

    def apply(self, records: List[Record]) -> List[Record]:
        """Return the records passing the filter, in order."""
        return [r for r in records if self.accepts(r)]


class CallDataset:
    """Caller results and the truth set, read-only after construction."""

    def __init__(
        self,
        calls: Mapping[str, List[CNVCall]],
        truth: Optional[List[TruthRecord]] = None
    ):
        """Initialize dataset.

        Args:
            calls: Caller id -> calls, in caller insertion order. A ``truth``
                key is not allowed here; pass the truth set separately.
            truth: Truth set records, or None if no truth is available.
        """
        if TRUTH_KEY in calls:
            raise ValueError(f"'{TRUTH_KEY}' is reserved for the truth set")
        self._calls: Dict[str, Tuple[CNVCall, ...]] = {
            caller: tuple(caller_calls) for caller, caller_calls in calls.items()
        }
        self._truth: Optional[Tuple[TruthRecord, ...]] = (
            tuple(truth) if truth is not None else None
        )

    @classmethod
    def from_records(cls, records: Mapping[str, List[Mapping[str, Any]]]) -> "CallDataset":
        """Build a dataset from loader records keyed by caller, including ``truth``."""
        calls = {}
        truth = None
        for caller, caller_records in records.items():
            if caller == TRUTH_KEY:
                truth = [TruthRecord.from_dict(r, i) for i, r in enumerate(caller_records)]
            else:
                calls[caller] = [CNVCall.from_dict(r) for r in caller_records]

        dataset = cls(calls, truth)
        logger.info(
            f"Loaded {dataset.total_calls} calls from {len(calls)} callers, "
            f"{len(truth) if truth is not None else 0} truth CNVs"
        )
        return dataset

    @property
    def callers(self) -> List[str]:
        """Return caller ids (never ``truth``)."""
        return list(self._calls)

    @property
    def truth(self) -> List[TruthRecord]:
        """Return the truth set, empty if absent."""
        return list(self._truth or ())

    @property
    def has_truth(self) -> bool:
        """Check if a non-empty truth set is available."""
        return bool(self._truth)

    @property
    def total_calls(self) -> int:
        """Return the number of calls over all callers."""
        return sum(len(c) for c in self._calls.values())

    def require_truth(self, analysis: str) -> List[TruthRecord]:
        """Return the truth set, failing if it is missing or empty."""
        if not self._truth:
            raise ConfigurationError(
                f"{analysis} requires true positives specified in CNV calls as '{TRUTH_KEY}' property"
            )
        return list(self._truth)

    def calls(self, caller: str) -> List[CNVCall]:
        """Return a caller's calls in insertion order."""
        try:
            return list(self._calls[caller])
        except KeyError:
            raise KeyError(f"Unknown caller: {caller}")

    def items(self) -> Iterator[Tuple[str, List[CNVCall]]]:
        """Iterate over (caller, calls) pairs."""
        for caller, caller_calls in self._calls.items():
            yield caller, list(caller_calls)

    def as_mapping(self) -> Dict[str, List[CNVCall]]:
        """Return caller -> calls."""
        return dict(self.items())

    def rare_calls(self, max_freq: float = MAX_RARE_CNV_FREQ) -> Dict[str, List[CNVCall]]:
        """Return caller -> calls absent from the population (``spanning_freq < max_freq``)."""
        return {
            caller: [c for c in caller_calls if c.spanning_freq < max_freq]
            for caller, caller_calls in self.items()
        }

    def to_dataframe(self) -> pd.DataFrame:
        """Convert all calls (and truth) to one DataFrame with a ``caller`` column."""
        rows = [
            {"caller": caller, **call.to_dict()}
            for caller, caller_calls in self.items()
            for call in caller_calls
        ]
        rows.extend({"caller": TRUTH_KEY, **t.to_dict()} for t in self.truth)
        return pd.DataFrame(rows)

    def summarize(self) -> Dict[str, Any]:
        """Generate summary statistics per caller."""
        return {
            "callers": self.callers,
            "truth_cnvs": len(self.truth),
            "calls_per_caller": {c: len(calls) for c, calls in self.items()},
            "true_positive_calls": {
                c: sum(1 for call in calls if call.is_true_positive)
                for c, calls in self.items()
            }
        }
