"""Two-model IPW estimator of multivariate natural effects.

For a binary exposure D, a set of mediators M and an outcome Y, the
natural effects decompose the total effect into the part that does
not run through M (natural direct effect) and the part that does
(natural indirect effect):

    ATE = E[Y(1, M(1))] − E[Y(0, M(0))]
    NDE = E[Y(1, M(0))] − E[Y(0, M(0))]
    NIE = E[Y(1, M(1))] − E[Y(1, M(0))]

Each of the three potential-outcome means is a weighted mean of the
observed outcome, with weights built from two propensity models for
the exposure:

* ``f(D | C)``, the *baseline* model, fitted without the mediators;
* ``s(D | C, M)``, the *augmented* model, which adds the mediators.

Weights
-------
With ``π(C) = P(D=1 | C)`` and ``π(C, M) = P(D=1 | C, M)``:

    w₁ = 1 / π(C)                              for D = 1  → E[Y(1, M(1))]
    w₂ = 1 / (1 − π(C))                        for D = 0  → E[Y(0, M(0))]
    w₃ = (1 − π(C, M)) / (π(C, M)·(1 − π(C)))  for D = 1  → E[Y(1, M(0))]

and zero elsewhere.  The odds ratio inside w₃ tilts the mediator
distribution of the exposed toward the one the unexposed would have.
Stabilisation multiplies each weight by the marginal probability of
the exposure value it targets.  Censoring bottom- and top-codes each
weight at chosen quantiles among the units that carry it.  Base
(e.g. sampling) weights, rescaled to mean one, multiply the result.

Reference:
    Huber, M. (2014). Identifying causal mechanisms (primarily) based
    on inverse probability weighting. *Journal of Applied
    Econometrics*, 29(6), 920–943.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning as SmConvergenceWarning,
)
from statsmodels.tools.sm_exceptions import (
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from ._results import NaturalEffects

logger = logging.getLogger(__name__)


def trim_quantiles(
    x: np.ndarray | pd.Series,
    low: float = 0.01,
    high: float = 0.99,
) -> np.ndarray:
    """Bottom- and top-code *x* at its *low* and *high* quantiles.

    Values below the ``low`` quantile are replaced by that quantile and
    values above the ``high`` quantile by that one.  Quantiles use
    linear interpolation between order statistics.

    Args:
        x: Values to censor.
        low: Lower quantile in ``[0, 1]``.
        high: Upper quantile in ``[0, 1]``.

    Returns:
        A new float array with the same shape as *x*.

    Raises:
        ValueError: If the quantiles are outside ``[0, 1]`` or
            ``low > high``.
    """
    _validate_censor_bounds(low, high)
    values = np.asarray(x, dtype=float)
    if values.size == 0:
        return values.copy()
    lower, upper = np.quantile(values, [low, high])
    return np.clip(values, lower, upper)


def _validate_censor_bounds(low: float, high: float) -> None:
    if not (0.0 <= low <= 1.0 and 0.0 <= high <= 1.0):
        raise ValueError(
            f"censor_low and censor_high must lie in [0, 1], got "
            f"censor_low={low}, censor_high={high}."
        )
    if low > high:
        raise ValueError(
            f"censor_low ({low}) must not exceed censor_high ({high})."
        )


def _fit_propensity(
    formula: str,
    df: pd.DataFrame,
    var_weights: np.ndarray | None,
) -> np.ndarray:
    """Fit a logit model for the exposure and return P(D=1) per row.

    Perfect separation and IRLS non-convergence raise ``RuntimeError``.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("error", PerfectSeparationWarning)
        warnings.simplefilter("error", SmConvergenceWarning)
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        try:
            fit = smf.glm(
                formula,
                data=df,
                family=sm.families.Binomial(),
                var_weights=var_weights,
            ).fit()
        except (
            PerfectSeparationError,
            PerfectSeparationWarning,
            SmConvergenceWarning,
        ) as exc:
            raise RuntimeError(
                f"The propensity model '{formula}' could not be estimated: "
                f"{exc}"
            ) from exc
    # Fitted values are labelled with the rows the fit used; rows that
    # patsy dropped for missing covariates come back as NaN.
    return fit.fittedvalues.reindex(df.index).to_numpy(dtype=float)


def estimate_natural_effects(
    data: pd.DataFrame,
    exposure: str,
    mediators: Sequence[str],
    outcome: str,
    formula_baseline: str,
    formula_augmented: str,
    base_weights: str | None = None,
    stabilize: bool = True,
    censor: bool = True,
    censor_low: float = 0.01,
    censor_high: float = 0.99,
) -> NaturalEffects:
    """Estimate the ATE, NDE and NIE for a set of mediators by IPW.

    Rows with a missing value in any involved column are dropped
    before estimation (complete-case analysis).

    Args:
        data: Input data.  Not modified.
        exposure: Name of the binary (0/1) exposure column.
        mediators: Names of the mediator columns jointly mediating the
            indirect effect.
        outcome: Name of the numeric outcome column.
        formula_baseline: Patsy formula for the exposure model without
            mediators, e.g. ``"D ~ C1 + C2"`` or ``"D ~ 1"``.
        formula_augmented: Patsy formula for the exposure model with
            the mediators, e.g. ``"D ~ M1 + M2 + C1 + C2"``.
        base_weights: Optional name of a base (sampling) weight column.
        stabilize: Multiply the IPW weights by the marginal exposure
            probabilities.
        censor: Bottom/top-code the IPW weights at the
            ``censor_low`` / ``censor_high`` quantiles.
        censor_low: Lower censoring quantile in ``[0, 1]``.
        censor_high: Upper censoring quantile in ``[0, 1]``.

    Returns:
        A :class:`~ipwpath._results.NaturalEffects` record.

    Raises:
        ValueError: If the exposure does not vary or the censoring
            quantiles are invalid.
        RuntimeError: If a propensity model cannot be estimated.
    """
    if censor:
        _validate_censor_bounds(censor_low, censor_high)

    required = [exposure, outcome, *mediators]
    if base_weights is not None:
        required.append(base_weights)
    df = data.reset_index(drop=True).dropna(subset=required)

    d = df[exposure].to_numpy(dtype=float)
    if np.unique(d).size < 2:
        raise ValueError(
            f"The exposure '{exposure}' takes a single value in the data "
            f"passed to the estimator; natural effects are not identified."
        )

    if base_weights is not None:
        bw = df[base_weights].to_numpy(dtype=float)
        bw = bw / bw.mean()
    else:
        bw = None

    logger.debug(
        "Fitting propensity models '%s' and '%s' on %d rows",
        formula_baseline,
        formula_augmented,
        len(df),
    )
    ps_c = _fit_propensity(formula_baseline, df, bw)
    ps_cm = _fit_propensity(formula_augmented, df, bw)

    keep = np.isfinite(ps_c) & np.isfinite(ps_cm)
    if not keep.all():
        d, ps_c, ps_cm = d[keep], ps_c[keep], ps_cm[keep]
        bw = bw[keep] if bw is not None else None
        if np.unique(d).size < 2:
            raise ValueError(
                f"The exposure '{exposure}' takes a single value among "
                f"complete cases; natural effects are not identified."
            )
    y = df[outcome].to_numpy(dtype=float)[keep]

    treated = d == 1
    control = ~treated

    w1 = np.where(treated, 1.0 / ps_c, 0.0)
    w2 = np.where(control, 1.0 / (1.0 - ps_c), 0.0)
    w3 = np.where(treated, (1.0 - ps_cm) / (ps_cm * (1.0 - ps_c)), 0.0)

    if stabilize:
        p_treated = np.average(d, weights=bw)
        w1 *= p_treated
        w2 *= 1.0 - p_treated
        w3 *= p_treated

    if censor:
        w1[treated] = trim_quantiles(w1[treated], censor_low, censor_high)
        w2[control] = trim_quantiles(w2[control], censor_low, censor_high)
        w3[treated] = trim_quantiles(w3[treated], censor_low, censor_high)

    if bw is not None:
        w1 *= bw
        w2 *= bw
        w3 *= bw

    mean_y1m1 = np.average(y, weights=w1)
    mean_y0m0 = np.average(y, weights=w2)
    mean_y1m0 = np.average(y, weights=w3)

    return NaturalEffects(
        ate=float(mean_y1m1 - mean_y0m0),
        nde=float(mean_y1m0 - mean_y0m0),
        nie=float(mean_y1m1 - mean_y1m0),
    )


__all__ = ["estimate_natural_effects", "trim_quantiles"]
