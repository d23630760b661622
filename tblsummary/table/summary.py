"""Descriptive summary tables ("Table 1") stratified by an optional group."""
from __future__ import annotations

import logging
from typing import Any, Iterable

import numpy as np
import pandas as pd

from tblsummary.errors import InvalidArgument
from tblsummary.formatting import style_number, style_percent
from tblsummary.table.base import (
    HIDDEN_COLUMNS,
    ColumnHeader,
    SummaryInputs,
    TblSummary,
    VariableMeta,
)

logger = logging.getLogger(__name__)

_SUMMARY_TYPES = {"continuous", "categorical", "dichotomous"}
_MISSING_MODES = {"ifany", "always", "no"}

# Numeric columns with fewer distinct values than this are summarised as
# categorical.
_MIN_CONTINUOUS_LEVELS = 10


def tbl_summary(
    data: pd.DataFrame,
    by: str | None = None,
    label: dict[str, str] | None = None,
    type: dict[str, str] | None = None,
    include: Iterable[str] | None = None,
    missing: str = "ifany",
    missing_text: str = "Unknown",
) -> TblSummary:
    """Summarise each variable of *data*, overall or split by *by*.

    Parameters
    ----------
    data:
        Observation-level data, one row per subject.
    by:
        Optional column whose levels become the table's comparison groups.
        Observations with a missing *by* value are dropped.
    label:
        Display label per variable; defaults to the column name.
    type:
        Summary type override per variable (``"continuous"``,
        ``"categorical"`` or ``"dichotomous"``).
    include:
        Columns to summarise; defaults to every column except *by*.
    missing:
        ``"ifany"`` adds a missing-count row when a variable has missing
        values, ``"always"`` always adds it, ``"no"`` never does.
    missing_text:
        Label of the missing-count row.

    Returns
    -------
    TblSummary
    """
    if not isinstance(data, pd.DataFrame):
        raise InvalidArgument("'data' must be a pandas DataFrame.")
    if by is not None and by not in data.columns:
        raise InvalidArgument(
            f"'by' column '{by}' not found. Available: {data.columns.tolist()}"
        )
    if missing not in _MISSING_MODES:
        raise InvalidArgument(
            f"Unknown missing mode '{missing}'. Supported: {sorted(_MISSING_MODES)}"
        )
    label = dict(label or {})
    type = dict(type or {})

    variables = list(include) if include is not None else list(data.columns)
    variables = [v for v in variables if v != by]
    for arg_name, names in (("include", variables), ("label", label), ("type", type)):
        unknown = [v for v in names if v not in data.columns]
        if unknown:
            raise InvalidArgument(
                f"'{arg_name}' names column(s) {unknown} not in the data. "
                f"Available: {data.columns.tolist()}"
            )

    working = data
    if by is not None:
        n_dropped = int(data[by].isna().sum())
        if n_dropped:
            logger.info(f"Dropping {n_dropped} observation(s) with missing '{by}'.")
            working = data.loc[data[by].notna()]
        levels = _sorted_levels(working[by])
        groups = [(f"stat_{i}", working.loc[working[by] == lvl]) for i, lvl in enumerate(levels, 1)]
    else:
        levels = []
        groups = [("stat_0", working)]
    stat_columns = [col for col, _ in groups]

    meta_data: list[VariableMeta] = []
    rows: list[dict[str, Any]] = []
    for var in variables:
        summary_type = _assign_summary_type(working[var], type.get(var), var)
        var_label = label.get(var, var)
        logger.debug(f"Summarising '{var}' as {summary_type}.")
        meta_data.append(
            VariableMeta(variable=var, summary_type=summary_type, var_label=var_label)
        )
        rows.extend(
            _variable_rows(working[var], var, var_label, summary_type, groups, missing, missing_text)
        )

    columns = list(HIDDEN_COLUMNS) + ["label"] + stat_columns
    table_body = pd.DataFrame(rows, columns=columns)

    stat_footnote = _statistics_footnote(meta_data)
    table_header = [ColumnHeader(column=c, hide=True) for c in HIDDEN_COLUMNS]
    table_header.append(ColumnHeader(column="label", label="**Characteristic**"))
    if by is None:
        table_header.append(
            ColumnHeader(column="stat_0", label=f"**N = {len(working)}**", footnote=stat_footnote)
        )
    else:
        for (col, group_df), lvl in zip(groups, levels):
            table_header.append(
                ColumnHeader(
                    column=col,
                    label=f"**{lvl}**, N = {len(group_df)}",
                    footnote=list(stat_footnote),
                )
            )

    return TblSummary(
        table_body=table_body,
        meta_data=meta_data,
        table_header=table_header,
        inputs=SummaryInputs(
            data=data, by=by, label=label, type=type,
            missing=missing, missing_text=missing_text,
        ),
        call_list=[("tbl_summary", {"by": by, "include": variables})],
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sorted_levels(series: pd.Series) -> list:
    """Observed levels of *series*, in category order when it has one."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(series.dropna().unique())
        return [c for c in series.cat.categories if c in present]
    values = series.dropna().unique().tolist()
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=str)


def _dichotomous_value(series: pd.Series) -> Any | None:
    """Return the level shown for a two-valued variable, or None if it is not one."""
    values = set(series.dropna().unique().tolist())
    if not values:
        return None
    if values <= {True, False}:
        # 0/1 numbers compare equal to False/True.
        return True
    if all(isinstance(v, str) for v in values):
        lowered = {v.lower(): v for v in values}
        if set(lowered) <= {"yes", "no"} and "yes" in lowered:
            return lowered["yes"]
    return None


def _assign_summary_type(series: pd.Series, override: str | None, var: str) -> str:
    if override is not None:
        if override not in _SUMMARY_TYPES:
            raise InvalidArgument(
                f"Unknown summary type '{override}' for '{var}'. "
                f"Supported: {sorted(_SUMMARY_TYPES)}"
            )
        if override == "continuous" and not pd.api.types.is_numeric_dtype(series):
            raise InvalidArgument(f"Variable '{var}' is not numeric and cannot be continuous.")
        return override

    if _dichotomous_value(series) is not None:
        return "dichotomous"
    if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
        if series.dropna().nunique() >= _MIN_CONTINUOUS_LEVELS:
            return "continuous"
    return "categorical"


def _format_continuous(values: pd.Series) -> str:
    values = values.dropna().astype(float)
    if len(values) == 0:
        return "NA"
    q1, median, q3 = np.percentile(values, [25, 50, 75])
    return f"{style_number(median)} ({style_number(q1)}, {style_number(q3)})"


def _format_count(n: int, total: int) -> str:
    pct = style_percent(n / total) if total > 0 else "NA"
    return f"{n} ({pct}%)"


def _variable_rows(
    series: pd.Series,
    var: str,
    var_label: str,
    summary_type: str,
    groups: list[tuple[str, pd.DataFrame]],
    missing: str,
    missing_text: str,
) -> list[dict[str, Any]]:
    def row(row_type: str, text: str) -> dict[str, Any]:
        return {"variable": var, "var_type": summary_type, "row_type": row_type, "label": text}

    label_row = row("label", var_label)
    rows = [label_row]

    if summary_type == "continuous":
        for col, group_df in groups:
            label_row[col] = _format_continuous(group_df[var])
    elif summary_type == "dichotomous":
        shown = _dichotomous_value(series)
        if shown is None:
            levels = _sorted_levels(series)
            shown = levels[-1] if levels else None
        for col, group_df in groups:
            values = group_df[var].dropna()
            label_row[col] = _format_count(int((values == shown).sum()), len(values))
    else:
        for level in _sorted_levels(series):
            level_row = row("level", str(level))
            for col, group_df in groups:
                values = group_df[var].dropna()
                level_row[col] = _format_count(int((values == level).sum()), len(values))
            rows.append(level_row)

    n_missing = int(series.isna().sum())
    if missing == "always" or (missing == "ifany" and n_missing > 0):
        missing_row = row("missing", missing_text)
        for col, group_df in groups:
            missing_row[col] = str(int(group_df[var].isna().sum()))
        rows.append(missing_row)

    return rows


def _statistics_footnote(meta_data: list[VariableMeta]) -> list[str]:
    presented = []
    if any(m.summary_type != "continuous" for m in meta_data):
        presented.append("n (%)")
    if any(m.summary_type == "continuous" for m in meta_data):
        presented.append("Median (Q1, Q3)")
    if not presented:
        return []
    return ["Statistics presented: " + "; ".join(presented)]
