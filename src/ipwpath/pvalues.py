"""Percentile intervals and p-values from a bootstrap replicate ensemble.

Both quantities are computed column by column over a ``(B, p)`` matrix
of replicate estimates, one column per estimand (ATE and each PSE).

Percentile confidence intervals
-------------------------------
The ``(1 − α)`` interval for an estimand is read straight off the
empirical distribution of its replicates:

    [ q(α/2), q(1 − α/2) ]

where q is the sample quantile with linear interpolation between
order statistics.  No bias correction or acceleration is applied.

Sign-based two-sided p-values
-----------------------------
For H₀: effect = 0 the p-value doubles the smaller tail mass of the
replicate distribution on either side of zero:

    p = 2 · min( #{θ*_b < 0} / B, #{θ*_b > 0} / B )

Replicates exactly equal to zero count toward neither tail.  A
replicate distribution lying entirely on one side of zero gives
p = 0; one split evenly gives p = 1.
"""

from __future__ import annotations

import numpy as np


def percentile_ci(
    replicates: np.ndarray,
    confidence_level: float = 0.95,
) -> np.ndarray:
    """Percentile bootstrap intervals, one per column.

    Args:
        replicates: Replicate estimates, shape ``(B,)`` or ``(B, p)``.
        confidence_level: Nominal coverage in ``(0, 1)``.

    Returns:
        ``(2,)`` array ``[lower, upper]`` for 1-D input, otherwise a
        ``(p, 2)`` array with one row per column of *replicates*.

    Raises:
        ValueError: If *confidence_level* is outside ``(0, 1)``.
    """
    if not 0.0 < confidence_level < 1.0:
        raise ValueError(
            f"confidence_level must lie strictly between 0 and 1, "
            f"got {confidence_level}."
        )
    alpha = 1.0 - confidence_level
    probs = [alpha / 2, 1.0 - alpha / 2]
    reps = np.asarray(replicates, dtype=float)
    # np.quantile puts the probabilities on axis 0: (2,) or (2, p).
    return np.quantile(reps, probs, axis=0).T


def bootstrap_p_values(replicates: np.ndarray) -> np.ndarray | float:
    """Two-sided bootstrap p-values for a zero effect.

    Args:
        replicates: Replicate estimates, shape ``(B,)`` or ``(B, p)``.

    Returns:
        A float for 1-D input, otherwise a ``(p,)`` array.
    """
    reps = np.asarray(replicates, dtype=float)
    below = np.mean(reps < 0, axis=0)
    above = np.mean(reps > 0, axis=0)
    p = 2.0 * np.minimum(below, above)
    if reps.ndim == 1:
        return float(p)
    return p


def ci_column_labels(confidence_level: float) -> list[str]:
    """Percent labels for the interval bounds, e.g. ``["2.5%", "97.5%"]``."""
    alpha = 1.0 - confidence_level
    return [
        f"{100 * alpha / 2:.10g}%",
        f"{100 * (1 - alpha / 2):.10g}%",
    ]


def format_p_value(
    p: float,
    precision: int = 3,
    p_value_threshold_one: float = 0.05,
    p_value_threshold_two: float = 0.01,
) -> str:
    """Format *p* with a significance marker: ``(**)``, ``(*)`` or ``(ns)``."""
    val = f"{np.round(p, precision):.{precision}f}"
    if p < p_value_threshold_two:
        return f"{val} (**)"
    elif p < p_value_threshold_one:
        return f"{val} (*)"
    return f"{val} (ns)"


__all__ = [
    "bootstrap_p_values",
    "ci_column_labels",
    "format_p_value",
    "percentile_ci",
]
