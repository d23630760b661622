"""Add p-values comparing groups to a summary table."""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

import pandas as pd

from tblsummary.config import TableOptions, get_options
from tblsummary.errors import InvalidArgument
from tblsummary.select import Selection, everything, resolve_selection
from tblsummary.stats.executor import run_test
from tblsummary.stats.registry import ProcedureRegistry, get_default_registry
from tblsummary.stats.selection import TestChoice, select_tests
from tblsummary.table.base import TableStructure, TblSummary
from tblsummary.table.header import add_footnote, align_header, fill_labels, set_fmt_fun

logger = logging.getLogger(__name__)

PVALUE_COLUMN = "p_value"
FOOTNOTE_PREFIX = "Statistical tests performed: "


def add_p(
    x: TblSummary,
    test: Any = None,
    pvalue_fun: Callable[[Any], str] | None = None,
    group: str | None = None,
    include: Selection = None,
    exclude: Selection = None,
    options: TableOptions | None = None,
    registry: ProcedureRegistry | None = None,
) -> TblSummary:
    """Compare each variable across the ``by`` groups of a summary table.

    Parameters
    ----------
    x:
        Table built by :func:`tbl_summary` with a ``by`` variable.
    test:
        Tests to run instead of the defaults, e.g.
        ``{all_continuous(): "t_test", "grade": "fisher_test"}``.  Values are
        registered test names or custom test functions (see
        :func:`tblsummary.stats.executor.run_test`).
    pvalue_fun:
        Formatter for the p-value column; defaults to
        ``options.pvalue_fun``.
    group:
        Column identifying clusters of correlated observations.  Its row
        is removed from the table.
    include, exclude:
        Variables to test.  Excluded variables keep a missing p-value.
    options:
        Explicit options; defaults to the process-wide options.
    registry:
        Test procedures available by name.

    Returns
    -------
    TblSummary
        A new table; *x* is not modified.

    Raises:
        InvalidArgument: If *x* is not a summary table with a ``by``
            variable, *group* is unknown, *pvalue_fun* is not callable, or
            *include*/*exclude* name unknown variables.
        InvalidSpecification: If *test* is malformed.
        ContractViolation: If a custom test returns a malformed result.
    """
    if not isinstance(x, TblSummary):
        raise InvalidArgument(
            f"'x' must be a TblSummary created by tbl_summary(); got {type(x).__name__}."
        )
    options = options or get_options()
    registry = registry or get_default_registry()
    pvalue_fun = pvalue_fun if pvalue_fun is not None else options.pvalue_fun
    if not callable(pvalue_fun):
        raise InvalidArgument(
            "'pvalue_fun' is not a valid function. Pass a function object, for "
            "example pvalue_fun=lambda p: style_pvalue(p, digits=2)."
        )

    by = x.inputs.by
    if by is None:
        raise InvalidArgument(
            "Cannot add comparison when no 'by' variable in original tbl_summary() call."
        )
    data = x.inputs.data

    x = x.copy()
    if group is not None:
        if group not in x.variables or group not in data.columns:
            raise InvalidArgument(
                f"'{group}' is not a column name in the input data frame. "
                f"Available: {x.variables}"
            )
        x.table_body = x.table_body.loc[x.table_body["variable"] != group].reset_index(drop=True)
        x.meta_data = [m for m in x.meta_data if m.variable != group]

    included = resolve_selection(
        include if include is not None else everything(), x.meta_data, "include"
    )
    excluded = set(resolve_selection(exclude, x.meta_data, "exclude"))
    included = [v for v in included if v not in excluded]

    tests = select_tests(
        x.meta_data, data, by, test=test, group=group, include=included, registry=registry,
    )

    pvalues: dict[str, float | None] = {}
    labels: dict[str, str | None] = {}
    for meta in x.meta_data:
        if meta.variable not in tests:
            continue
        result = run_test(
            data, meta.variable, by, tests[meta.variable],
            group=group, summary_type=meta.summary_type,
            registry=registry, options=options,
        )
        pvalues[meta.variable] = result.p_value
        labels[meta.variable] = result.label

    x = merge_pvalues(x, pvalues, labels, test_by_variable=tests)
    x = refresh_header(x, pvalue_fun)
    x.call_list.append((
        "add_p",
        {"test": test, "group": group, "include": included, "pvalue_fun": pvalue_fun},
    ))
    logger.info(f"Added p-values for {len(tests)} of {len(x.meta_data)} variable(s).")
    return x


def merge_pvalues(
    x: TableStructure,
    pvalue_by_variable: Mapping[str, float | None],
    test_label_by_variable: Mapping[str, str | None],
    test_by_variable: Mapping[str, TestChoice] | None = None,
) -> TableStructure:
    """Fold p-values and test labels into the table.

    ``table_body`` gets a ``p_value`` column filled on label rows only,
    via a left join on ``(variable, row_type)``; existing values are
    overwritten.  Variables without a p-value are left missing.  When
    *test_by_variable* is given, ``stat_test`` is overwritten the same way.
    """
    x = x.copy()
    for meta in x.meta_data:
        p_value = pvalue_by_variable.get(meta.variable)
        meta.p_value = None if p_value is None or pd.isna(p_value) else float(p_value)
        meta.stat_test_lbl = test_label_by_variable.get(meta.variable)
        if test_by_variable is not None:
            meta.stat_test = _test_name(test_by_variable.get(meta.variable))

    pvalue_column = pd.DataFrame({
        "variable": [m.variable for m in x.meta_data],
        PVALUE_COLUMN: [m.p_value for m in x.meta_data],
        "row_type": ["label"] * len(x.meta_data),
    }, columns=["variable", PVALUE_COLUMN, "row_type"])
    pvalue_column[PVALUE_COLUMN] = pvalue_column[PVALUE_COLUMN].astype(float)

    body = x.table_body.drop(columns=[PVALUE_COLUMN], errors="ignore")
    x.table_body = body.merge(
        pvalue_column, on=["variable", "row_type"], how="left", validate="many_to_one",
    )
    return x


def _test_name(chosen: TestChoice | None) -> str | None:
    if chosen is None or isinstance(chosen, str):
        return chosen
    return getattr(chosen, "__name__", repr(chosen))


def refresh_header(x: TableStructure, pvalue_fun: Callable[[Any], str]) -> TableStructure:
    """Update header rules after the p-value column was added.

    Registers *pvalue_fun* for the column, appends a footnote naming the
    tests used, and labels the column ``**p-value**`` unless a label was
    already set.
    """
    x = x.copy()
    x.table_header = set_fmt_fun(align_header(x), **{PVALUE_COLUMN: pvalue_fun})

    used: list[str] = []
    for meta in x.meta_data:
        if meta.stat_test_lbl is not None and meta.stat_test_lbl not in used:
            used.append(meta.stat_test_lbl)
    if used:
        add_footnote(x.table_header, PVALUE_COLUMN, FOOTNOTE_PREFIX + "; ".join(used))

    return fill_labels(x, **{PVALUE_COLUMN: "**p-value**"})
