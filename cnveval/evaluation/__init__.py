"""Caller accuracy analyses over a CNV call dataset."""

from .matching import EvaluationContext, OverlapMatcher
from .calibration import QualityCalibrationBinner, QualityBin
from .roc import ROCAccumulator, ROCPoint
from .sensitivity import DimensionalSensitivityBinner, DEFAULT_DIMENSIONS
from .distribution import GenomeDistributionBinner
from .samples import SampleAggregator
from .session import ROCSession

__all__ = [
    "EvaluationContext", "OverlapMatcher", "QualityCalibrationBinner", "QualityBin",
    "ROCAccumulator", "ROCPoint", "DimensionalSensitivityBinner", "DEFAULT_DIMENSIONS",
    "GenomeDistributionBinner", "SampleAggregator", "ROCSession"
]
