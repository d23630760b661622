"""Core data model shared by every table-building step."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Literal

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

SummaryType = Literal["continuous", "categorical", "dichotomous"]
RowType = Literal["label", "level", "missing"]

# Bookkeeping columns of table_body that are never displayed.
HIDDEN_COLUMNS = ("variable", "var_type", "row_type")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class VariableMeta(BaseModel):
    """Per-variable metadata. Test fields stay ``None`` until ``add_p`` runs."""

    variable: str
    summary_type: SummaryType
    var_label: str
    stat_test: str | None = None
    p_value: float | None = None
    stat_test_lbl: str | None = None


class ColumnHeader(BaseModel):
    """Display rules for one column of ``table_body``.

    A ``label`` of ``None`` means the header has not been set yet; renderers
    fall back to the column name.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    column: str
    label: str | None = None
    hide: bool = False
    fmt_fun: Callable[[Any], str] | None = None
    footnote: list[str] = Field(default_factory=list)
    spanning_header: str | None = None


@dataclass
class SummaryInputs:
    """Record of the arguments a summary table was built from."""

    data: pd.DataFrame
    by: str | None = None
    label: dict[str, str] = field(default_factory=dict)
    type: dict[str, str] = field(default_factory=dict)
    missing: str = "ifany"
    missing_text: str = "Unknown"


# ---------------------------------------------------------------------------
# Table structures
# ---------------------------------------------------------------------------


@dataclass
class TableStructure:
    """A summary table prior to rendering.

    Every step that changes a table works on :meth:`copy` and returns the
    copy, so a structure handed to a step is never modified.
    """

    table_body: pd.DataFrame
    meta_data: list[VariableMeta]
    table_header: list[ColumnHeader]
    inputs: SummaryInputs
    call_list: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def copy(self) -> TableStructure:
        # inputs.data is shared; no step writes to it.
        return type(self)(
            table_body=self.table_body.copy(),
            meta_data=[m.model_copy(deep=True) for m in self.meta_data],
            table_header=[
                h.model_copy(update={"footnote": list(h.footnote)})
                for h in self.table_header
            ],
            inputs=self.inputs,
            call_list=list(self.call_list),
        )

    @property
    def variables(self) -> list[str]:
        return [m.variable for m in self.meta_data]

    def get_meta(self, variable: str) -> VariableMeta:
        """Return the metadata row for *variable*.

        Raises:
            KeyError: If the table has no such variable.
        """
        for meta in self.meta_data:
            if meta.variable == variable:
                return meta
        raise KeyError(
            f"Variable '{variable}' not found. Available: {self.variables}"
        )

    def get_header(self, column: str) -> ColumnHeader | None:
        for header in self.table_header:
            if header.column == column:
                return header
        return None

    def meta_frame(self) -> pd.DataFrame:
        """Variable metadata as a DataFrame, one row per variable."""
        return pd.DataFrame(
            [m.model_dump() for m in self.meta_data],
            columns=list(VariableMeta.model_fields),
        )


@dataclass
class TblSummary(TableStructure):
    """A descriptive summary table produced by :func:`tbl_summary`."""
