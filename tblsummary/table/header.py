"""Header, footnote, and spanning-label rules for table columns."""
from __future__ import annotations

from typing import Any, Callable

from tblsummary.errors import InvalidArgument
from tblsummary.table.base import HIDDEN_COLUMNS, ColumnHeader, TableStructure


def align_header(x: TableStructure) -> list[ColumnHeader]:
    """Return a header with exactly one entry per ``table_body`` column.

    Existing entries are kept, in body column order; columns without an
    entry get defaults (bookkeeping columns hidden, label unset).
    """
    existing = {h.column: h for h in x.table_header}
    header: list[ColumnHeader] = []
    for column in x.table_body.columns:
        if column in existing:
            header.append(existing[column])
        else:
            header.append(ColumnHeader(column=column, hide=column in HIDDEN_COLUMNS))
    return header


def set_fmt_fun(
    header: list[ColumnHeader], **fmt_funs: Callable[[Any], str]
) -> list[ColumnHeader]:
    """Register formatting functions by column name."""
    for h in header:
        if h.column in fmt_funs:
            h.fmt_fun = fmt_funs[h.column]
    return header


def fill_labels(x: TableStructure, **labels: str) -> TableStructure:
    """Set header labels only for columns whose label is still unset."""
    x = x.copy()
    for h in x.table_header:
        if h.column in labels and h.label is None:
            h.label = labels[h.column]
    return x


def _check_columns(x: TableStructure, columns: list[str], arg_name: str) -> None:
    known = [h.column for h in x.table_header]
    unknown = [c for c in columns if c not in known]
    if unknown:
        raise InvalidArgument(
            f"'{arg_name}' refers to column(s) {unknown} not in the table. "
            f"Available: {known}"
        )


def modify_header(x: TableStructure, **labels: str) -> TableStructure:
    """Set column header labels, overwriting any existing label.

    ``{N}`` in a label is replaced with the number of observations.

    Raises:
        InvalidArgument: If a column does not exist.
    """
    _check_columns(x, list(labels), "modify_header")
    n = len(x.inputs.data)
    x = x.copy()
    for h in x.table_header:
        if h.column in labels:
            h.label = labels[h.column].replace("{N}", str(n))
    x.call_list.append(("modify_header", dict(labels)))
    return x


def modify_footnote(x: TableStructure, **footnotes: str | None) -> TableStructure:
    """Replace a column's footnotes. ``None`` clears them."""
    _check_columns(x, list(footnotes), "modify_footnote")
    x = x.copy()
    for h in x.table_header:
        if h.column in footnotes:
            text = footnotes[h.column]
            h.footnote = [] if text is None else [text]
    x.call_list.append(("modify_footnote", dict(footnotes)))
    return x


def modify_spanning_header(x: TableStructure, **spanning: str | None) -> TableStructure:
    """Place a label spanning the given columns. Adjacent columns with the
    same text are merged into one spanning cell when rendered."""
    _check_columns(x, list(spanning), "modify_spanning_header")
    x = x.copy()
    for h in x.table_header:
        if h.column in spanning:
            h.spanning_header = spanning[h.column]
    x.call_list.append(("modify_spanning_header", dict(spanning)))
    return x


def add_footnote(header: list[ColumnHeader], column: str, text: str) -> list[ColumnHeader]:
    """Append *text* to a column's footnotes unless it is already there."""
    for h in header:
        if h.column == column and text not in h.footnote:
            h.footnote.append(text)
    return header
