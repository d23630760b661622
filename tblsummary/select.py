"""Variable selectors for test specifications and include/exclude arguments."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Union

from tblsummary.errors import InvalidArgument
from tblsummary.table.base import VariableMeta


@dataclass(frozen=True)
class VariableSelector:
    """Select variables from table metadata by summary type.

    ``types=None`` selects every variable.
    """

    name: str
    types: tuple[str, ...] | None = None

    def resolve(self, meta_data: Sequence[VariableMeta]) -> list[str]:
        return [
            m.variable for m in meta_data
            if self.types is None or m.summary_type in self.types
        ]

    def __repr__(self) -> str:
        return f"{self.name}()"


def everything() -> VariableSelector:
    return VariableSelector("everything")


def all_continuous() -> VariableSelector:
    return VariableSelector("all_continuous", ("continuous",))


def all_categorical(dichotomous: bool = True) -> VariableSelector:
    """Select categorical variables, and dichotomous ones unless told otherwise."""
    types = ("categorical", "dichotomous") if dichotomous else ("categorical",)
    return VariableSelector("all_categorical", types)


def all_dichotomous() -> VariableSelector:
    return VariableSelector("all_dichotomous", ("dichotomous",))


Selection = Union[str, VariableSelector, Iterable[str], None]


def resolve_selection(
    selection: Selection,
    meta_data: Sequence[VariableMeta],
    arg_name: str,
) -> list[str]:
    """Turn a name, list of names, or selector into variable names.

    Names come back in metadata order without duplicates.

    Raises:
        InvalidArgument: If a named variable is not in *meta_data*.
    """
    if selection is None:
        return []
    known = [m.variable for m in meta_data]
    if isinstance(selection, VariableSelector):
        return selection.resolve(meta_data)
    names = [selection] if isinstance(selection, str) else list(selection)
    unknown = [n for n in names if n not in known]
    if unknown:
        raise InvalidArgument(
            f"'{arg_name}' names variable(s) {unknown} not in the table. "
            f"Available: {known}"
        )
    wanted = set(names)
    return [v for v in known if v in wanted]
