"""Result container returned by every test procedure."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProcedureResult:
    """p-value and display label of one hypothesis test.

    ``p_value`` is ``None`` when the test could not produce a number.
    """

    p_value: float | None
    label: str | None
