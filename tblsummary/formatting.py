"""Display formatters for p-values, percentages, and summary numbers."""
from __future__ import annotations

import math
from typing import Any


def _is_missing(x: Any) -> bool:
    if x is None:
        return True
    try:
        return math.isnan(float(x))
    except (TypeError, ValueError):
        return False


def style_pvalue(x: float | None, digits: int = 3) -> str:
    """Format a p-value for display in a summary table.

    Values below ``10 ** -digits`` are shown as ``"<0.001"`` (for the
    default ``digits=3``), values above ``1 - 10 ** -digits`` as
    ``">0.999"``, everything else with *digits* significant digits, so
    0.01234 becomes ``"0.0123"`` and 0.5 becomes ``"0.500"``.
    Missing values render as an empty string.
    """
    if _is_missing(x):
        return ""
    p = float(x)
    floor = 10 ** -digits
    if p < floor:
        return f"<{floor:.{digits}f}"
    if p > 1 - floor:
        return f">{1 - floor:.{digits}f}"
    # Round first so 0.09996 reads "0.100", not "0.1000".
    rounded = float(f"{p:.{digits - 1}e}")
    decimals = max(digits - 1 - math.floor(math.log10(rounded)), 0)
    return f"{rounded:.{decimals}f}"


def style_percent(x: float | None, digits: int = 0) -> str:
    """Format a proportion in [0, 1] as a percentage without the ``%`` sign."""
    if _is_missing(x):
        return ""
    pct = float(x) * 100
    if 0 < pct < 10 ** -digits:
        return f"<{10 ** -digits:.{digits}f}"
    return f"{pct:.{digits}f}"


def style_number(x: float | None, digits: int = 1) -> str:
    if _is_missing(x):
        return ""
    return f"{float(x):,.{digits}f}"
