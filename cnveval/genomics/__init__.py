"""Genomic ranges, CNV call records and loading."""

from .ranges import GenomicRange, normalize_chromosome
from .reference import ReferenceGenome, get_reference
from .calls import CNVCall, TruthRecord, CallDataset, SimulationType
from .loader import CallSetLoader

__all__ = [
    "GenomicRange", "normalize_chromosome", "ReferenceGenome", "get_reference",
    "CNVCall", "TruthRecord", "CallDataset", "SimulationType", "CallSetLoader"
]
