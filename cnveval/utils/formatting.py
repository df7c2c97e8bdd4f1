"""Label formatting helpers."""

SIZE_UNITS = ["bp", "kb", "Mb", "Gb"]


def human_size(value: float) -> str:
    """Format a size in bp with a unit, e.g. 1500 -> '1.5kb', 10000000 -> '10Mb'."""
    for unit in SIZE_UNITS:
        if value < 1000:
            formatted = f"{value:.1f}"
            if formatted.endswith(".0"):
                formatted = formatted[:-2]
            return formatted + unit
        value = value / 1000
    return f"{value * 1000:.1f}{SIZE_UNITS[-1]}"


def format_fraction(value: float) -> str:
    """Format a fraction as a percentage with one decimal."""
    return f"{value * 100:.1f}%"
