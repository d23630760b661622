"""Built-in hypothesis tests comparing a variable across the levels of ``by``.

Each procedure takes ``(data, variable, by, **extra)`` and returns a
:class:`ProcedureResult`.  ``data`` is expected to hold complete cases only;
rows with a missing value are dropped again here so the procedures can be
called directly.  Degenerate input raises :class:`UndefinedResult`.
"""
from __future__ import annotations

import math
from typing import Any

import numpy as np
import pandas as pd
from scipy import stats as sp_stats
from scipy.special import gammaln

from tblsummary.errors import UndefinedResult
from tblsummary.stats.result import ProcedureResult


# ---------------------------------------------------------------------------
# Input shaping
# ---------------------------------------------------------------------------


def _group_values(data: pd.DataFrame, variable: str, by: str) -> list[np.ndarray]:
    """Numeric values of *variable* per observed level of *by*."""
    working = data[[variable, by]].dropna()
    groups = [
        working.loc[working[by] == level, variable].astype(float).to_numpy()
        for level in pd.unique(working[by])
    ]
    groups = [g for g in groups if len(g) > 0]
    if len(groups) < 2:
        raise UndefinedResult(
            f"'{variable}' has {len(groups)} non-empty group(s) of '{by}'; need at least 2."
        )
    if np.ptp(np.concatenate(groups)) == 0:
        raise UndefinedResult(f"'{variable}' has zero variance in every group of '{by}'.")
    return groups


def _two_groups(groups: list[np.ndarray], test: str, variable: str) -> tuple[np.ndarray, np.ndarray]:
    if len(groups) != 2:
        raise UndefinedResult(
            f"{test} requires exactly 2 groups; '{variable}' has {len(groups)}."
        )
    return groups[0], groups[1]


def crosstab_counts(data: pd.DataFrame, variable: str, by: str) -> pd.DataFrame:
    """Counts of *variable* (rows) by *by* (columns) over complete cases.

    Levels that never occur are dropped.
    """
    working = data[[variable, by]].dropna()
    table = pd.crosstab(working[variable], working[by])
    return table.loc[table.sum(axis=1) > 0, table.sum(axis=0) > 0]


def _contingency(data: pd.DataFrame, variable: str, by: str) -> pd.DataFrame:
    table = crosstab_counts(data, variable, by)
    if table.shape[0] < 2 or table.shape[1] < 2:
        raise UndefinedResult(
            f"Contingency table of '{variable}' by '{by}' is {table.shape}; need at least 2x2."
        )
    return table


def _checked(p: Any, variable: str) -> float:
    p = float(p)
    if not math.isfinite(p):
        raise UndefinedResult(f"Test on '{variable}' produced a non-finite p-value.")
    return p


# ---------------------------------------------------------------------------
# Continuous variables
# ---------------------------------------------------------------------------


def t_test(data: pd.DataFrame, variable: str, by: str, **extra: Any) -> ProcedureResult:
    """Welch two-sample t-test (2 groups)."""
    a, b = _two_groups(_group_values(data, variable, by), "t-test", variable)
    _, p = sp_stats.ttest_ind(a, b, equal_var=False)
    return ProcedureResult(_checked(p, variable), "Welch Two Sample t-test")


def anova(data: pd.DataFrame, variable: str, by: str, **extra: Any) -> ProcedureResult:
    """One-way ANOVA."""
    _, p = sp_stats.f_oneway(*_group_values(data, variable, by))
    return ProcedureResult(_checked(p, variable), "One-way ANOVA")


def wilcox_test(data: pd.DataFrame, variable: str, by: str, **extra: Any) -> ProcedureResult:
    """Wilcoxon rank-sum (Mann-Whitney U) test, two-sided (2 groups)."""
    a, b = _two_groups(_group_values(data, variable, by), "Wilcoxon rank sum test", variable)
    _, p = sp_stats.mannwhitneyu(a, b, alternative="two-sided")
    return ProcedureResult(_checked(p, variable), "Wilcoxon rank sum test")


def kruskal_test(data: pd.DataFrame, variable: str, by: str, **extra: Any) -> ProcedureResult:
    """Kruskal-Wallis H test (any number of groups)."""
    _, p = sp_stats.kruskal(*_group_values(data, variable, by))
    return ProcedureResult(_checked(p, variable), "Kruskal-Wallis rank sum test")


# ---------------------------------------------------------------------------
# Categorical variables
# ---------------------------------------------------------------------------


def chisq_test(data: pd.DataFrame, variable: str, by: str, **extra: Any) -> ProcedureResult:
    """Chi-square test of independence with Yates' correction on 2x2 tables."""
    _, p, _, _ = sp_stats.chi2_contingency(_contingency(data, variable, by), correction=True)
    return ProcedureResult(_checked(p, variable), "Pearson's Chi-squared test")


def chisq_test_no_correct(data: pd.DataFrame, variable: str, by: str, **extra: Any) -> ProcedureResult:
    """Chi-square test of independence without continuity correction."""
    _, p, _, _ = sp_stats.chi2_contingency(_contingency(data, variable, by), correction=False)
    return ProcedureResult(_checked(p, variable), "Pearson's Chi-squared test")


def fisher_test(
    data: pd.DataFrame,
    variable: str,
    by: str,
    random_state: int | None = None,
    n_simulations: int = 2000,
    **extra: Any,
) -> ProcedureResult:
    """Fisher's exact test.

    Exact for 2x2 tables.  Larger tables use a Monte Carlo p-value drawn
    from *n_simulations* tables with the observed margins.
    """
    table = _contingency(data, variable, by).to_numpy()
    if table.shape == (2, 2):
        _, p = sp_stats.fisher_exact(table)
    else:
        p = _simulated_fisher(table, n_simulations, random_state)
    return ProcedureResult(_checked(p, variable), "Fisher's exact test")


def _simulated_fisher(table: np.ndarray, n_simulations: int, random_state: int | None) -> float:
    rng = np.random.default_rng(random_state)
    rows = np.repeat(np.arange(table.shape[0]), table.sum(axis=1))
    cols = np.repeat(np.arange(table.shape[1]), table.sum(axis=0))

    # With margins fixed, a table's probability ordering depends only on
    # the sum of log-factorials of its cells.
    observed = -gammaln(table + 1).sum()
    hits = 0
    for _ in range(n_simulations):
        simulated = np.zeros_like(table)
        np.add.at(simulated, (rows, rng.permutation(cols)), 1)
        if -gammaln(simulated + 1).sum() <= observed + 1e-7:
            hits += 1
    return (1 + hits) / (1 + n_simulations)


# ---------------------------------------------------------------------------
# Clustered data
# ---------------------------------------------------------------------------


def gee_logistic(
    data: pd.DataFrame,
    variable: str,
    by: str,
    group: str | None = None,
    summary_type: str | None = None,
    **extra: Any,
) -> ProcedureResult:
    """Logistic GEE of ``by`` on *variable* with exchangeable correlation within *group*.

    ``by`` must have exactly two levels; the second (sorted) level is the
    event.  The p-value is the joint Wald test of all *variable* terms.
    """
    import statsmodels.api as sm
    import statsmodels.formula.api as smf

    if group is None:
        raise UndefinedResult(f"GEE test for '{variable}' requires a 'group' column.")
    working = data[[variable, by, group]].dropna()
    levels = sorted(pd.unique(working[by]).tolist(), key=str)
    if len(levels) != 2:
        raise UndefinedResult(
            f"GEE test requires a binary '{by}'; found {len(levels)} level(s)."
        )

    frame = pd.DataFrame({
        "outcome": (working[by] == levels[1]).astype(int).to_numpy(),
        "x": working[variable].to_numpy(),
        "cluster": working[group].to_numpy(),
    })
    if summary_type == "continuous":
        frame["x"] = frame["x"].astype(float)
        formula = "outcome ~ x"
    else:
        formula = "outcome ~ C(x)"

    model = smf.gee(
        formula,
        groups="cluster",
        data=frame,
        family=sm.families.Binomial(),
        cov_struct=sm.cov_struct.Exchangeable(),
    )
    result = model.fit()

    terms = [name for name in result.params.index if name != "Intercept"]
    if not terms:
        raise UndefinedResult(f"'{variable}' contributed no model terms.")
    r_matrix = np.zeros((len(terms), len(result.params)))
    for i, name in enumerate(terms):
        r_matrix[i, result.params.index.get_loc(name)] = 1.0
    wald = result.wald_test(r_matrix, scalar=True)
    p = float(np.squeeze(wald.pvalue))
    return ProcedureResult(_checked(p, variable), "GEE logistic regression")


BUILTIN_TESTS: dict[str, tuple[Any, str]] = {
    "t_test": (t_test, "Welch Two Sample t-test"),
    "anova": (anova, "One-way ANOVA"),
    "wilcox_test": (wilcox_test, "Wilcoxon rank sum test"),
    "kruskal_test": (kruskal_test, "Kruskal-Wallis rank sum test"),
    "chisq_test": (chisq_test, "Pearson's Chi-squared test"),
    "chisq_test_no_correct": (chisq_test_no_correct, "Pearson's Chi-squared test"),
    "fisher_test": (fisher_test, "Fisher's exact test"),
    "gee_logistic": (gee_logistic, "GEE logistic regression"),
}
