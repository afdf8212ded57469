"""Statistical functions using scipy for significance testing."""

from collections.abc import Callable, Sequence

import numpy as np
from scipy import stats

from .models import ConfidenceInterval, ProportionSample, ZTestResult

# Normal approximation needs every expected cell count at or above this
MIN_EXPECTED_COUNT = 5


def two_proportion_z_test(a: ProportionSample, b: ProportionSample) -> ZTestResult:
    """Pooled two-proportion z-test with a two-tailed p-value.

    Args:
        a: Successes and total for the first cohort
        b: Successes and total for the second cohort

    Returns:
        ZTestResult; an empty cohort or zero pooled variance gives z=0, p=1.
    """
    pooled_total = a.total + b.total
    if a.total == 0 or b.total == 0:
        return ZTestResult(z=0.0, p=1.0, valid=False)

    pooled = (a.success + b.success) / pooled_total
    expected = [
        a.total * pooled,
        a.total * (1 - pooled),
        b.total * pooled,
        b.total * (1 - pooled),
    ]
    valid = all(x >= MIN_EXPECTED_COUNT for x in expected)

    se = np.sqrt(pooled * (1 - pooled) * (1 / a.total + 1 / b.total))
    if se == 0:
        return ZTestResult(z=0.0, p=1.0, valid=valid)

    z = (a.success / a.total - b.success / b.total) / se
    p = 2 * stats.norm.sf(abs(z))
    return ZTestResult(z=float(z), p=float(np.clip(p, 0.0, 1.0)), valid=valid)


def fishers_exact_two_sided(a: int, b: int, c: int, d: int) -> float:
    """Two-sided Fisher exact p-value for the table [[a, b], [c, d]].

    Rows are cohorts, columns are success / failure. Use when expected
    counts are too small for the z-test.
    """
    _, p = stats.fisher_exact([[a, b], [c, d]], alternative="two-sided")
    return float(np.clip(p, 0.0, 1.0))


def benjamini_hochberg(pvalues: Sequence[float]) -> list[float]:
    """Benjamini-Hochberg adjusted p-values, in the input order."""
    if len(pvalues) == 0:
        return []
    adjusted = stats.false_discovery_control(
        np.asarray(pvalues, dtype=float), method="bh"
    )
    return [float(p) for p in np.clip(adjusted, 0.0, 1.0)]


def is_significant(p: float, alpha: float = 0.05) -> bool:
    return p < alpha


# =============================================================================
# ROBUST SUMMARIES
# =============================================================================


def percentile(values: Sequence[float], q: float) -> float:
    """Linearly interpolated percentile, q in [0, 1]; 0 for empty input."""
    if len(values) == 0:
        return 0.0
    return float(np.percentile(np.asarray(values, dtype=float), q * 100))


def winsorize(values: Sequence[float], upper_pct: float = 0.99) -> list[float]:
    """Cap values above the given upper percentile (nearest-rank below)."""
    if len(values) == 0:
        return []
    ordered = np.sort(np.asarray(values, dtype=float))
    idx = min(len(ordered) - 1, max(0, int(np.floor(upper_pct * (len(ordered) - 1)))))
    cap = ordered[idx]
    return [float(min(v, cap)) for v in values]


def bootstrap_diff_ci(
    a: Sequence[float],
    b: Sequence[float],
    iterations: int = 1000,
    transform: Callable[[Sequence[float]], Sequence[float]] | None = None,
    seed: int | None = None,
) -> ConfidenceInterval:
    """95% bootstrap interval for mean(a) - mean(b).

    The interval "passes" when it does not contain zero.
    """
    if len(a) == 0 or len(b) == 0:
        return ConfidenceInterval(lo=0.0, hi=0.0, passed=False)

    arr_a = np.asarray(transform(a) if transform else a, dtype=float)
    arr_b = np.asarray(transform(b) if transform else b, dtype=float)
    rng = np.random.default_rng(seed)

    samples_a = rng.choice(arr_a, size=(iterations, len(arr_a)), replace=True)
    samples_b = rng.choice(arr_b, size=(iterations, len(arr_b)), replace=True)
    diffs = samples_a.mean(axis=1) - samples_b.mean(axis=1)

    lo = float(np.percentile(diffs, 2.5))
    hi = float(np.percentile(diffs, 97.5))
    return ConfidenceInterval(lo=lo, hi=hi, passed=not (lo <= 0 <= hi))
