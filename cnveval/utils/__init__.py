"""Shared helpers."""

from .debounce import DebouncedTrigger
from .formatting import human_size

__all__ = ["DebouncedTrigger", "human_size"]
