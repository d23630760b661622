"""Run a selected test on one variable and validate what it returns."""
from __future__ import annotations

import logging
import functools
import inspect
import math
import numbers
from collections.abc import Callable, Mapping
from typing import Any

import pandas as pd

from tblsummary.config import TableOptions, get_options
from tblsummary.errors import ContractViolation, UndefinedResult
from tblsummary.stats.registry import ProcedureRegistry, get_default_registry
from tblsummary.stats.result import ProcedureResult
from tblsummary.stats.selection import TestChoice

logger = logging.getLogger(__name__)

_RESULT_KEYS = {"p_value", "label"}


def run_test(
    data: pd.DataFrame,
    variable: str,
    by: str,
    test: TestChoice,
    group: str | None = None,
    summary_type: str | None = None,
    registry: ProcedureRegistry | None = None,
    options: TableOptions | None = None,
) -> ProcedureResult:
    """Compute the p-value comparing *variable* across the levels of *by*.

    Rows missing *variable*, *by* or *group* are dropped before the test
    runs.  Custom test functions are called either with the extra options
    as keywords, ``test(data, variable, by, group=..., summary_type=...,
    random_state=..., n_simulations=...)``, or, when their signature only
    takes four positional parameters, as ``test(data, variable, by,
    extra_options)`` with the same options in one dict.

    A test that raises, or that cannot produce a number, is logged and
    reported with ``p_value=None``; other variables are unaffected.

    Raises:
        ContractViolation: If the test cannot be called in either form, or
            if it returns anything other than a
            :class:`ProcedureResult` or a mapping with exactly the keys
            ``p_value`` (number in [0, 1] or NaN) and ``label`` (str).
    """
    registry = registry or get_default_registry()
    options = options or get_options()

    if callable(test):
        procedure = test
        name = getattr(test, "__name__", repr(test))
        fallback_label = None
    else:
        procedure = registry.get(test)
        name = test
        fallback_label = registry.label(test)

    columns = [variable, by] + ([group] if group is not None else [])
    working = data[columns].dropna()
    extra: dict[str, Any] = {
        "group": group,
        "summary_type": summary_type,
        "random_state": options.random_seed,
        "n_simulations": options.fisher_simulations,
    }

    call = _bind_call(procedure, name, variable, (working, variable, by), extra)
    try:
        raw = call()
    except ContractViolation:
        raise
    except UndefinedResult as exc:
        logger.warning(f"Test '{name}' gave no result for '{variable}': {exc}")
        return ProcedureResult(p_value=None, label=fallback_label)
    except Exception as exc:
        logger.warning(f"Test '{name}' failed for '{variable}': {exc}")
        return ProcedureResult(p_value=None, label=fallback_label)

    result = _validate_result(raw, variable, name)
    if result.p_value is None:
        logger.warning(f"Test '{name}' returned a missing p-value for '{variable}'.")
    return result


def _validate_result(raw: Any, variable: str, name: str) -> ProcedureResult:
    if isinstance(raw, ProcedureResult):
        p_value, label = raw.p_value, raw.label
    elif isinstance(raw, Mapping) and set(raw.keys()) == _RESULT_KEYS:
        p_value, label = raw["p_value"], raw["label"]
    else:
        shape = sorted(raw.keys()) if isinstance(raw, Mapping) else type(raw).__name__
        raise ContractViolation(
            f"Test '{name}' for variable '{variable}' must return "
            f"{{'p_value': float, 'label': str}}; got {shape}."
        )

    if not isinstance(label, str):
        raise ContractViolation(
            f"Test '{name}' for variable '{variable}' returned a non-string label "
            f"({type(label).__name__})."
        )
    if isinstance(p_value, bool) or not isinstance(p_value, numbers.Real):
        raise ContractViolation(
            f"Test '{name}' for variable '{variable}' returned a non-numeric p-value "
            f"({type(p_value).__name__})."
        )
    p_value = float(p_value)
    if math.isnan(p_value):
        return ProcedureResult(p_value=None, label=label)
    if not 0.0 <= p_value <= 1.0:
        raise ContractViolation(
            f"Test '{name}' for variable '{variable}' returned p-value {p_value} outside [0, 1]."
        )
    return ProcedureResult(p_value=p_value, label=label)


def _bind_call(
    procedure: Callable[..., Any],
    name: str,
    variable: str,
    args: tuple,
    extra: dict[str, Any],
) -> Callable[[], Any]:
    try:
        sig = inspect.signature(procedure)
    except (TypeError, ValueError):
        # Builtins and C callables without introspection get the keyword form.
        return functools.partial(procedure, *args, **extra)

    try:
        sig.bind(*args, **extra)
        return functools.partial(procedure, *args, **extra)
    except TypeError:
        pass
    try:
        sig.bind(*args, dict(extra))
        return functools.partial(procedure, *args, dict(extra))
    except TypeError:
        raise ContractViolation(
            f"Test '{name}' for variable '{variable}' must accept "
            f"(data, variable, by, **extra) or (data, variable, by, extra_options); "
            f"its signature is {name}{sig}."
        ) from None
