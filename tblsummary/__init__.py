"""
Publication-ready summary tables with group comparisons.

Build a descriptive table with :func:`tbl_summary`, add p-values with
:func:`add_p`, adjust headers and footnotes, then render with
:func:`as_markdown` or :func:`as_dataframe`.

Modules:
    - table: table structure, summary builder, header rules, rendering.
    - stats: test selection, built-in test procedures, execution.
    - add_p: p-value augmentation of summary tables.
    - config: process-wide defaults.
"""

__version__ = "0.1.0"

from tblsummary.add_p import add_p, merge_pvalues, refresh_header
from tblsummary.config import TableOptions, get_options, reset_options, set_options
from tblsummary.errors import (
    ContractViolation,
    InvalidArgument,
    InvalidSpecification,
    TableError,
    UndefinedResult,
)
from tblsummary.formatting import style_number, style_percent, style_pvalue
from tblsummary.select import all_categorical, all_continuous, all_dichotomous, everything
from tblsummary.stats import ProcedureRegistry, ProcedureResult, run_test, select_tests
from tblsummary.table import (
    TableStructure,
    TblSummary,
    as_dataframe,
    as_markdown,
    modify_footnote,
    modify_header,
    modify_spanning_header,
    tbl_summary,
)

__all__ = [
    # Building
    "tbl_summary",
    "add_p",
    "merge_pvalues",
    "refresh_header",
    # Headers
    "modify_header",
    "modify_footnote",
    "modify_spanning_header",
    # Rendering
    "as_dataframe",
    "as_markdown",
    # Tests
    "select_tests",
    "run_test",
    "ProcedureRegistry",
    "ProcedureResult",
    # Selectors
    "everything",
    "all_continuous",
    "all_categorical",
    "all_dichotomous",
    # Formatting and configuration
    "style_pvalue",
    "style_percent",
    "style_number",
    "TableOptions",
    "get_options",
    "set_options",
    "reset_options",
    # Data model and errors
    "TableStructure",
    "TblSummary",
    "TableError",
    "InvalidArgument",
    "InvalidSpecification",
    "ContractViolation",
    "UndefinedResult",
]
