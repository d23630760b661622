"""Choose a hypothesis test for each variable of a summary table.

Defaults by summary type:

- continuous, 2 groups      -> ``wilcox_test``
- continuous, 3+ groups     -> ``kruskal_test``
- categorical / dichotomous -> ``chisq_test_no_correct``, or
  ``fisher_test`` if any expected cell count is below 5
- any type, with a correlation ``group`` and a binary ``by``
                            -> ``gee_logistic``

Entries of a user test specification override the default per variable.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Sequence, Union

import pandas as pd
from scipy.stats.contingency import expected_freq

from tblsummary.errors import InvalidSpecification
from tblsummary.select import VariableSelector
from tblsummary.stats.procedures import crosstab_counts
from tblsummary.stats.registry import ProcedureRegistry, get_default_registry
from tblsummary.table.base import VariableMeta

logger = logging.getLogger(__name__)

TestChoice = Union[str, Callable[..., Any]]

_MIN_EXPECTED_COUNT = 5
_CLUSTERED_TEST = "gee_logistic"


def default_test(
    data: pd.DataFrame,
    variable: str,
    summary_type: str,
    by: str,
    group: str | None = None,
) -> str:
    """Select the default test for one variable from its type and the data."""
    n_levels = data[by].dropna().nunique()

    if group is not None:
        if n_levels == 2:
            return _CLUSTERED_TEST
        logger.warning(
            f"'{by}' has {n_levels} levels; the clustered test needs exactly 2. "
            f"Using the unclustered default for '{variable}'."
        )

    if summary_type == "continuous":
        return "wilcox_test" if n_levels == 2 else "kruskal_test"

    contingency = crosstab_counts(data, variable, by)
    if contingency.size == 0:
        return "fisher_test"
    expected = expected_freq(contingency.to_numpy())
    if (expected < _MIN_EXPECTED_COUNT).any():
        return "fisher_test"
    return "chisq_test_no_correct"


def parse_test_spec(
    test: Mapping[Any, TestChoice] | Sequence[tuple[Any, TestChoice]] | None,
    meta_data: Sequence[VariableMeta],
    registry: ProcedureRegistry,
) -> dict[str, TestChoice]:
    """Expand a test specification into one entry per variable.

    Keys may be a variable name, a list/tuple of names, or a
    :class:`VariableSelector`.  Later entries override earlier ones.

    Raises:
        InvalidSpecification: For unnamed entries, unknown variables, or
            test values that are neither registered names nor callables.
    """
    if test is None:
        return {}
    if isinstance(test, Mapping):
        entries = list(test.items())
    elif isinstance(test, (list, tuple)) and all(
        isinstance(e, tuple) and len(e) == 2 for e in test
    ):
        entries = list(test)
    else:
        raise InvalidSpecification(
            "'test' must be a dict or a list of (variable, test) pairs. "
            "For example, test={'age': 't_test', 'grade': 'fisher_test'}"
        )

    known = [m.variable for m in meta_data]
    resolved: dict[str, TestChoice] = {}
    for key, value in entries:
        if key is None or (isinstance(key, str) and key == ""):
            raise InvalidSpecification(
                "Each element in 'test' must be named. "
                "For example, test={'age': 't_test', 'grade': 'fisher_test'}"
            )
        if isinstance(key, VariableSelector):
            names = key.resolve(meta_data)
        elif isinstance(key, str):
            names = [key]
        elif isinstance(key, (list, tuple, set, frozenset)):
            names = list(key)
        else:
            raise InvalidSpecification(
                f"Unrecognised key {key!r} in 'test'. Use a variable name, a list "
                "of names, or a selector such as all_continuous()."
            )
        unknown = [n for n in names if n not in known]
        if unknown:
            raise InvalidSpecification(
                f"'test' names variable(s) {unknown} not in the table. Available: {known}"
            )
        if isinstance(value, str):
            if value not in registry:
                raise InvalidSpecification(
                    f"Unknown test '{value}' for {names}. "
                    f"Available tests: {registry.list_tests()}"
                )
        elif not callable(value):
            raise InvalidSpecification(
                f"Test for {names} must be a test name or a function, "
                f"got {type(value).__name__}."
            )
        for name in names:
            resolved[name] = value
    return resolved


def select_tests(
    meta_data: Sequence[VariableMeta],
    data: pd.DataFrame,
    by: str,
    test: Mapping[Any, TestChoice] | Sequence[tuple[Any, TestChoice]] | None = None,
    group: str | None = None,
    include: Sequence[str] | None = None,
    registry: ProcedureRegistry | None = None,
) -> dict[str, TestChoice]:
    """Map each included variable to the test that will be run on it.

    Parameters
    ----------
    meta_data:
        Variable metadata of the table; names in *test* are checked
        against it.
    data:
        Observation-level data the table was built from.
    by:
        Column defining the comparison groups.
    test:
        Optional user overrides; see :func:`parse_test_spec`.
    group:
        Optional correlation-group column for clustered data.
    include:
        Variables to select tests for; defaults to all of *meta_data*.
    registry:
        Procedures that string test names must resolve to.

    Returns
    -------
    dict
        Variable name to test identifier or custom test function, in
        metadata order.
    """
    registry = registry or get_default_registry()
    overrides = parse_test_spec(test, meta_data, registry)
    wanted = set(include) if include is not None else None
    n_by_levels = data[by].dropna().nunique()

    chosen: dict[str, TestChoice] = {}
    for meta in meta_data:
        if wanted is not None and meta.variable not in wanted:
            continue
        selected = overrides.get(meta.variable)
        if selected is None:
            selected = default_test(data, meta.variable, meta.summary_type, by, group)
        if selected == _CLUSTERED_TEST:
            if group is None:
                raise InvalidSpecification(
                    f"Test '{_CLUSTERED_TEST}' for '{meta.variable}' requires the 'group' argument."
                )
            if n_by_levels != 2:
                raise InvalidSpecification(
                    f"Test '{_CLUSTERED_TEST}' for '{meta.variable}' requires a binary "
                    f"'{by}'; found {n_by_levels} levels."
                )
        logger.debug(f"Selected test {selected!r} for '{meta.variable}'.")
        chosen[meta.variable] = selected
    return chosen
