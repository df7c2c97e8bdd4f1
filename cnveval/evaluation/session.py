"""Interactive ROC recomputation driven by size and target-count stops."""

from typing import Callable, List, Optional, Tuple
import logging
import math

from ..genomics.calls import (
    CallDataset,
    MAX_RARE_CNV_FREQ,
    SimulationType,
    SizeRange,
    TargetRange,
)
from ..utils.debounce import DEFAULT_QUIET_PERIOD, DebouncedTrigger
from ..utils.formatting import human_size
from .roc import ROCAccumulator, ROCResult

logger = logging.getLogger(__name__)

# log10 bp, so stops 0..7 span 1bp to 10Mb
SIZE_STOPS = list(range(0, 8))
TARGET_STOPS = [1, 2, 3, 5, 10, 20, 50, math.inf]


def target_stop(index: int) -> float:
    """Return the target count at a stop index."""
    return TARGET_STOPS[index]


class ROCSession:
    """Holds the current size and target ranges and recomputes ROC curves.

    Changing a range schedules a recomputation after a quiet period; a
    further change within that period replaces the pending one.
    """

    def __init__(
        self,
        dataset: CallDataset,
        on_result: Optional[Callable[[ROCResult], None]] = None,
        max_freq: float = MAX_RARE_CNV_FREQ,
        simulation_type: SimulationType = SimulationType.DOWNSAMPLE,
        delay: float = DEFAULT_QUIET_PERIOD,
        timer_factory: Optional[Callable] = None
    ):
        self.dataset = dataset
        self.on_result = on_result
        self.max_freq = max_freq
        self.simulation_type = SimulationType.parse(simulation_type)
        self.size_stops: Tuple[int, int] = (SIZE_STOPS[0], SIZE_STOPS[-1])
        self.target_stops: Tuple[int, int] = (0, len(TARGET_STOPS) - 1)
        self.result: Optional[ROCResult] = None

        trigger_kwargs = {"timer_factory": timer_factory} if timer_factory else {}
        self.trigger = DebouncedTrigger(self.recompute, delay, **trigger_kwargs)

    @property
    def size_range(self) -> SizeRange:
        """Return the current size range in bp."""
        return SizeRange.from_log10(*self.size_stops)

    @property
    def target_range(self) -> TargetRange:
        """Return the current target count range."""
        return TargetRange(target_stop(self.target_stops[0]), target_stop(self.target_stops[1]))

    def labels(self) -> List[str]:
        """Return descriptions of the current ranges."""
        size = self.size_range
        low, high = (target_stop(i) for i in self.target_stops)
        return [
            f"CNV Size Range: {human_size(size.min_size)} - {human_size(size.max_size)}",
            f"No. of Target Regions: {low} - {'Infinity' if math.isinf(high) else high}"
        ]

    def set_size_stops(self, low: int, high: int) -> None:
        """Change the size range (log10 bp stops) and schedule a recomputation."""
        if not (SIZE_STOPS[0] <= low <= high <= SIZE_STOPS[-1]):
            raise ValueError(f"Invalid size stops: {low}, {high}")
        self.size_stops = (low, high)
        self.trigger.schedule()

    def set_target_stops(self, low: int, high: int) -> None:
        """Change the target range (indices into TARGET_STOPS) and schedule a recomputation."""
        if not (0 <= low <= high < len(TARGET_STOPS)):
            raise ValueError(f"Invalid target stops: {low}, {high}")
        self.target_stops = (low, high)
        self.trigger.schedule()

    def close(self) -> None:
        """Drop any pending recomputation."""
        self.trigger.cancel()

    def recompute(self) -> ROCResult:
        """Compute ROC curves for the current ranges now."""
        logger.info("; ".join(self.labels()))
        accumulator = ROCAccumulator(
            max_freq=self.max_freq,
            size_range=self.size_range,
            target_range=self.target_range,
            simulation_type=self.simulation_type
        )
        self.result = accumulator.compute(self.dataset)
        if self.on_result is not None:
            self.on_result(self.result)
        return self.result
