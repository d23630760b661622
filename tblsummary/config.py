"""Process-wide defaults for table augmentation.

Options are read once at the start of each ``add_p`` call, or passed in
explicitly with ``options=``.  Change them at startup with
:func:`set_options`.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable

from tblsummary.errors import InvalidArgument
from tblsummary.formatting import style_pvalue


@dataclass(frozen=True)
class TableOptions:
    """Configurable defaults for p-value augmentation."""
    pvalue_fun: Callable[[Any], str] = field(default=style_pvalue)  # Formatter for the p_value column
    fisher_simulations: int = 2000  # Monte Carlo draws for Fisher's test beyond 2x2
    random_seed: int = 42  # Seed handed to every test procedure


_current = TableOptions()


def get_options() -> TableOptions:
    """Return the current process-wide options."""
    return _current


def set_options(**changes: Any) -> TableOptions:
    """Update the process-wide options and return the previous ones.

    Raises:
        InvalidArgument: If an unknown option name is given or
            ``pvalue_fun`` is not callable.
    """
    global _current
    known = set(TableOptions.__dataclass_fields__)
    unknown = sorted(set(changes) - known)
    if unknown:
        raise InvalidArgument(
            f"Unknown option(s) {unknown}. Available: {sorted(known)}"
        )
    if "pvalue_fun" in changes and not callable(changes["pvalue_fun"]):
        raise InvalidArgument("Option 'pvalue_fun' must be a function.")
    previous = _current
    _current = replace(_current, **changes)
    return previous


def reset_options() -> None:
    """Restore the built-in defaults."""
    global _current
    _current = TableOptions()
