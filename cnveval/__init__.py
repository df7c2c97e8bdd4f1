"""Evaluation of CNV callers against a truth set."""

__version__ = "0.1.0"
