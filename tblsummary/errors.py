"""Exception types raised while building and augmenting summary tables."""
from __future__ import annotations


class TableError(Exception):
    """Base class for all tblsummary errors."""


class InvalidArgument(TableError, ValueError):
    """An argument to a table operation is malformed or inconsistent with the table."""


class InvalidSpecification(TableError, ValueError):
    """A test specification has unnamed, unknown, or unresolvable entries."""


class ContractViolation(TableError, TypeError):
    """A custom test function returned something other than ``{p_value, label}``."""


class UndefinedResult(TableError, ArithmeticError):
    """A well-formed test could not produce a numeric answer for its input.

    Raised by test procedures on degenerate data and recovered by the
    executor as a missing p-value.
    """
