"""
Pytest Configuration and Shared Fixtures

Seeded trial-style data and summary tables shared by the test suite.
"""

import numpy as np
import pandas as pd
import pytest

from tblsummary import reset_options, tbl_summary


@pytest.fixture(autouse=True)
def _default_options():
    """Every test starts and ends with the built-in options."""
    reset_options()
    yield
    reset_options()


@pytest.fixture(scope="session")
def trial():
    """200 subjects randomised to two arms.

    - ``age``, ``marker``: continuous (``age`` has 3 missing values)
    - ``stage``: 4-level categorical
    - ``grade``: 3-level categorical (50 / 100 / 50 subjects)
    - ``response``: common binary outcome
    - ``rare_event``: binary outcome seen in exactly 4 subjects
    - ``site``: 40 clusters of 5 subjects, crossing both arms
    """
    rng = np.random.default_rng(42)
    n = 200

    age = rng.normal(47, 14, n).round(0)
    age[[3, 17, 60]] = np.nan
    rare_event = np.zeros(n, dtype=int)
    rare_event[[5, 50, 120, 180]] = 1

    return pd.DataFrame({
        "trt": np.repeat(["Drug A", "Drug B"], n // 2),
        "age": age,
        "marker": rng.gamma(2.0, 0.5, n).round(2),
        "stage": rng.choice(["T1", "T2", "T3", "T4"], n),
        "grade": np.tile(["I", "II", "III", "II"], n // 4),
        "response": rng.binomial(1, 0.4, n),
        "rare_event": rare_event,
        "site": np.tile(np.arange(40), n // 40),
    })


@pytest.fixture(scope="session")
def small_table():
    """A 20-row dataset whose ``rare`` x ``arm`` table has expected counts of 1."""
    return pd.DataFrame({
        "arm": ["A"] * 10 + ["B"] * 10,
        "rare": ["yes", "no", "no", "no", "no", "no", "no", "no", "no", "no",
                 "yes", "no", "no", "no", "no", "no", "no", "no", "no", "no"],
        "score": [float(v) for v in range(20)],
    })


@pytest.fixture
def trial_by_trt(trial):
    return tbl_summary(
        trial[["trt", "age", "marker", "stage", "response", "rare_event"]], by="trt"
    )


@pytest.fixture
def trial_by_grade(trial):
    return tbl_summary(trial[["grade", "age", "marker", "rare_event"]], by="grade")
