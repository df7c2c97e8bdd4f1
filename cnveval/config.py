"""Evaluation configuration, loadable from YAML."""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional
import math
import yaml

from .exceptions import ConfigurationError
from .genomics.calls import MAX_RARE_CNV_FREQ, SimulationType, SizeRange, TargetRange
from .genomics.reference import ReferenceGenome, get_reference
from .evaluation.calibration import MIN_BIN_COUNT
from .evaluation.distribution import DEFAULT_WINDOW_SIZE, DRILLDOWN_WINDOW_SIZE
from .utils.debounce import DEFAULT_QUIET_PERIOD


def _parse_bound(value: Any) -> float:
    if value is None or str(value).lower() in ("inf", "infinity", ".inf"):
        return math.inf
    return float(value)


@dataclass
class EvaluationConfig:
    """Parameters shared by all analyses of one report."""

    max_rare_freq: float = MAX_RARE_CNV_FREQ
    simulation_type: SimulationType = SimulationType.DOWNSAMPLE
    min_bin_count: int = MIN_BIN_COUNT
    size_range: List[float] = field(default_factory=lambda: [0, 7])
    targets_range: List[float] = field(default_factory=lambda: [0, math.inf])
    window_size: int = DEFAULT_WINDOW_SIZE
    drilldown_window_size: int = DRILLDOWN_WINDOW_SIZE
    genome_build: str = "hg19"
    chrom_sizes: Optional[Path] = None
    debounce_seconds: float = DEFAULT_QUIET_PERIOD

    def __post_init__(self):
        self.simulation_type = SimulationType.parse(self.simulation_type)
        self.targets_range = [_parse_bound(v) for v in self.targets_range]
        if len(self.targets_range) == 2 and self.targets_range[1] < 0:
            # negative upper bound: no upper bound
            self.targets_range[1] = math.inf
        self.size_range = [float(v) for v in self.size_range]
        if self.chrom_sizes is not None:
            self.chrom_sizes = Path(self.chrom_sizes)

        if not 0 <= self.max_rare_freq <= 1:
            raise ConfigurationError(f"max_rare_freq must be in [0, 1]: {self.max_rare_freq}")
        if self.min_bin_count < 1:
            raise ConfigurationError(f"min_bin_count must be positive: {self.min_bin_count}")
        if len(self.size_range) != 2 or len(self.targets_range) != 2:
            raise ConfigurationError("size_range and targets_range need exactly two values")
        if self.window_size <= 0 or self.drilldown_window_size <= 0:
            raise ConfigurationError("Window sizes must be positive")
        if self.debounce_seconds < 0:
            raise ConfigurationError(f"debounce_seconds must be >= 0: {self.debounce_seconds}")

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> "EvaluationConfig":
        """Create a config from a dictionary, e.g. the ``evaluation`` section of a YAML file."""
        config = dict(config or {})
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**config)

    @classmethod
    def from_yaml(cls, path: Path) -> "EvaluationConfig":
        """Load the ``evaluation`` section of a YAML file."""
        with open(path) as f:
            config = yaml.safe_load(f) or {}
        return cls.from_dict(config.get("evaluation", {}))

    def size_filter(self) -> SizeRange:
        """Return the size range in bp (configured on a log10 scale)."""
        return SizeRange.from_log10(*self.size_range)

    def target_filter(self) -> TargetRange:
        """Return the target count range."""
        return TargetRange.of(*self.targets_range)

    def reference(self) -> ReferenceGenome:
        """Return the chromosome-length table to tile the genome with."""
        if self.chrom_sizes is not None:
            return ReferenceGenome.from_chrom_sizes(self.chrom_sizes, self.genome_build)
        try:
            return get_reference(self.genome_build)
        except ValueError as e:
            raise ConfigurationError(str(e))
