"""Text rendering for barstat status lines."""

from barstat.models import BrightnessSample, UsageSample

PREFIXES = ["k", "M", "G", "T", "P"]

RED = "#FF7373"
ORANGE = "#FFA500"

BRIGHTNESS_SYMBOL = "\N{HIGH BRIGHTNESS SYMBOL}"


def human_readable(size_kib: int, sigfig: int) -> str:
    """
    Format a size in kiB with at least ``sigfig`` significant figures.

    The value is divided by 1024 until it drops below 1024 or the largest
    prefix (P) is reached. When the integral part already carries enough
    digits it is truncated, otherwise decimals are added.

    Args:
        size_kib: Size in kibibytes.
        sigfig: Minimum number of significant figures.

    Returns:
        A string such as ``"1.5Mi"`` or ``"789ki"``.
    """
    size = float(size_kib)
    p = 0
    while size >= 1024 and p < len(PREFIXES) - 1:
        size /= 1024
        p += 1

    # Anything past 1024 Pi still counts as four integral digits
    digits = min(len(str(int(size))), 4)

    if digits < sigfig:
        return f"{size:.{sigfig - digits}f}{PREFIXES[p]}i"
    return f"{int(size)}{PREFIXES[p]}i"


def threshold_color(percent: int, warning: int, critical: int) -> str | None:
    """Pick the markup color for a usage percentage; thresholds are strict."""
    if critical != 0 and percent > critical:
        return RED
    if warning != 0 and percent > warning:
        return ORANGE
    return None


def format_usage(
    label: str,
    sample: UsageSample,
    sigfig: int,
    warning: int,
    critical: int,
    show_percent: bool = False,
) -> str:
    """Render one memory usage line (without the trailing newline)."""
    percent = sample.percent
    color = threshold_color(percent, warning, critical)
    span = f"<span color='{color}'>" if color else "<span>"

    text = f"{human_readable(sample.used, sigfig)}/{human_readable(sample.total, sigfig)}"
    if show_percent:
        text += f" ({percent}%)"

    return f"{label}{span}{text}</span>"


def format_unavailable(label: str) -> str:
    """Render the memory line shown when the memory-info source failed."""
    return f"{label}<span>NA</span>"


def format_brightness(sample: BrightnessSample | None) -> str:
    """Render the brightness line; ``None`` or a zero maximum shows NA."""
    percent = sample.percent if sample is not None else None
    if percent is None:
        return f"{BRIGHTNESS_SYMBOL}: NA"
    return f"{BRIGHTNESS_SYMBOL}: {percent:02.0f}%"
