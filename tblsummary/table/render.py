"""Turn a table structure into display-ready text."""
from __future__ import annotations

import pandas as pd

from tblsummary.table.base import ColumnHeader, TableStructure


def _visible(x: TableStructure) -> list[ColumnHeader]:
    body_columns = set(x.table_body.columns)
    return [h for h in x.table_header if not h.hide and h.column in body_columns]


def _format_cell(value, header: ColumnHeader) -> str:
    # Formatters only ever see present values.
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if header.fmt_fun is not None:
        return header.fmt_fun(value)
    return str(value)


def as_dataframe(x: TableStructure, strip_bold: bool = True) -> pd.DataFrame:
    """Formatted cells of the visible columns, headed by their labels."""
    visible = _visible(x)
    out = pd.DataFrame(index=x.table_body.index)
    for h in visible:
        out[h.column] = [_format_cell(v, h) for v in x.table_body[h.column]]
    labels = [h.label if h.label is not None else h.column for h in visible]
    if strip_bold:
        labels = [lbl.replace("**", "") for lbl in labels]
    out.columns = labels
    return out.reset_index(drop=True)


def footnotes(x: TableStructure) -> list[str]:
    """Distinct footnotes of the visible columns, in column order."""
    notes: list[str] = []
    for h in _visible(x):
        for note in h.footnote:
            if note not in notes:
                notes.append(note)
    return notes


def as_markdown(x: TableStructure) -> str:
    visible = _visible(x)
    notes = footnotes(x)
    frame = as_dataframe(x, strip_bold=False)

    headers = []
    for h in visible:
        text = h.label if h.label is not None else h.column
        marks = ",".join(str(notes.index(n) + 1) for n in h.footnote if n in notes)
        headers.append(f"{text}<sup>{marks}</sup>" if marks else text)

    separator = "|" + "|".join(":---" if i == 0 else ":---:" for i in range(len(headers))) + "|"
    lines = []
    if any(h.spanning_header for h in visible):
        # Markdown has a single header row; column labels follow as the first body row.
        spans = []
        for h in visible:
            spanning = h.spanning_header or ""
            # Adjacent columns sharing a label show it once.
            if spans and spanning and spans[-1][0] == spanning:
                spans.append((spanning, ""))
            else:
                spans.append((spanning, spanning))
        lines.append("| " + " | ".join(text for _, text in spans) + " |")
        lines.append(separator)
        lines.append("| " + " | ".join(headers) + " |")
    else:
        lines.append("| " + " | ".join(headers) + " |")
        lines.append(separator)

    row_types = x.table_body["row_type"].tolist() if "row_type" in x.table_body else []
    for i, values in enumerate(frame.itertuples(index=False)):
        cells = list(values)
        if row_types and row_types[i] != "label" and cells:
            cells[0] = "&nbsp;&nbsp;&nbsp;&nbsp;" + cells[0]
        lines.append("| " + " | ".join(cells) + " |")

    for i, note in enumerate(notes, 1):
        lines.append("")
        lines.append(f"<sup>{i}</sup> {note}")
    return "\n".join(lines)
