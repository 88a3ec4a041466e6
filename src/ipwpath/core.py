"""IPW estimation of path-specific effects with bootstrap inference.

:func:`ipwpath` is the public entry point.  It

1. validates the exposure and outcome columns (fail fast, before any
   model is fitted);
2. computes the point estimates with
   :func:`~ipwpath.decompose.decompose_paths` on the full data;
3. optionally runs a nonparametric bootstrap: B resamples of the rows
   with replacement, each re-decomposed independently, then
   percentile confidence intervals and sign-based p-values per
   estimand (see :mod:`ipwpath.pvalues`).

Replicates are embarrassingly parallel.  They are dispatched through
a :class:`~ipwpath.pools.WorkerPool`: a :class:`~ipwpath.pools.SerialPool`
by default, or a :class:`~ipwpath.pools.JoblibPool` when
``parallel=True`` and at least two workers are available.  The serial
and parallel modes use different random-number regimes (see
:mod:`ipwpath.resampling`), so the same ``random_state`` reproduces
results only within a mode.

Any failure of a natural-effect fit, on the full data or in any
replicate, aborts the whole call.  No partial replicate ensemble is
returned and nothing is retried.
"""

from __future__ import annotations

import functools
import logging
import warnings
from collections.abc import Sequence
from typing import Any

import numpy as np
import pandas as pd

from ._compat import DataFrameLike, _ensure_pandas_df, referenced_columns
from ._config import default_n_jobs
from ._results import PathEffectsResult
from .decompose import NaturalEffectsEstimator, decompose_paths
from .natural_effects import estimate_natural_effects
from .pools import JoblibPool, SerialPool, WorkerPool
from .pvalues import bootstrap_p_values, ci_column_labels, percentile_ci
from .resampling import PARALLEL, SERIAL, replicate_generators, resample

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Validation
# ------------------------------------------------------------------ #


def _is_numeric(series: pd.Series) -> bool:
    """Numeric dtype, excluding booleans."""
    return pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(
        series
    )


def _validate_inputs(
    data: pd.DataFrame,
    exposure: str,
    mediators: list[str],
    outcome: str,
    covariates: list[str],
    base_weights: str | None,
) -> None:
    """Check variable roles and the exposure / outcome columns.

    Raises:
        ValueError: On missing columns, no mediators, missing exposure
            values, or exposure values other than 0 and 1.
        TypeError: If the exposure or outcome is not numeric.
    """
    if not mediators:
        raise ValueError("At least one mediator must be specified.")

    referenced = referenced_columns(
        exposure, mediators, outcome, covariates, base_weights
    )
    missing = [c for c in referenced if c not in data.columns]
    if missing:
        raise ValueError(f"Columns not found in data: {missing}.")

    d = data[exposure]
    if not _is_numeric(d):
        raise TypeError(
            f"The exposure variable '{exposure}' must be numeric, "
            f"got dtype {d.dtype}."
        )
    if not _is_numeric(data[outcome]):
        raise TypeError(
            f"The outcome variable '{outcome}' must be numeric, "
            f"got dtype {data[outcome].dtype}."
        )
    if d.isna().any():
        raise ValueError(
            f"There is at least one observation with a missing value for "
            f"the exposure variable '{exposure}'."
        )
    if not d.isin([0, 1]).all():
        raise ValueError(
            f"The exposure variable '{exposure}' must consist only of the "
            f"values 0 or 1. There is at least one observation in the data "
            f"that does not meet this criterion."
        )


def _validate_bootstrap_args(n_bootstrap: int, confidence_level: float) -> None:
    if isinstance(n_bootstrap, bool) or not isinstance(n_bootstrap, (int, np.integer)):
        raise ValueError(
            f"n_bootstrap must be an integer, got {type(n_bootstrap).__name__}."
        )
    if n_bootstrap < 1:
        raise ValueError(f"n_bootstrap must be at least 1, got {n_bootstrap}.")
    if not 0.0 < confidence_level < 1.0:
        raise ValueError(
            f"confidence_level must lie strictly between 0 and 1, "
            f"got {confidence_level}."
        )


def _resolve_pool(
    parallel: bool,
    n_jobs: int | None,
    pool: WorkerPool | None,
) -> tuple[WorkerPool, str]:
    """Pick the worker pool and the random-number regime it implies."""
    if pool is not None:
        if not isinstance(pool, WorkerPool):
            raise TypeError(
                f"pool must provide map_independent(tasks), "
                f"got {type(pool).__name__}."
            )
        return pool, SERIAL if isinstance(pool, SerialPool) else PARALLEL

    n_jobs = default_n_jobs() if n_jobs is None else n_jobs
    if parallel and n_jobs < 2:
        warnings.warn(
            "A parallelized bootstrap was requested (parallel=True), but "
            f"n_jobs={n_jobs} leaves too few workers for parallelization. "
            "The bootstrap will proceed without parallelization.",
            UserWarning,
            stacklevel=3,
        )
    if parallel and n_jobs >= 2:
        return JoblibPool(n_jobs), PARALLEL
    return SerialPool(), SERIAL


# ------------------------------------------------------------------ #
# Bootstrap replicate
# ------------------------------------------------------------------ #


def _bootstrap_replicate(
    data: pd.DataFrame,
    rng: np.random.Generator,
    decompose_kwargs: dict[str, Any],
) -> np.ndarray:
    """Resample *data* once and return ``(ATE, PSE...)`` as an array."""
    boot_data = resample(data, rng)
    return decompose_paths(boot_data, **decompose_kwargs).as_row().to_numpy()


# ------------------------------------------------------------------ #
# Public entry point
# ------------------------------------------------------------------ #


def ipwpath(
    data: DataFrameLike,
    exposure: str,
    mediators: str | Sequence[str],
    outcome: str,
    covariates: Sequence[str] | None = None,
    base_weights: str | None = None,
    stabilize: bool = True,
    censor: bool = True,
    censor_low: float = 0.01,
    censor_high: float = 0.99,
    bootstrap: bool = False,
    n_bootstrap: int = 1000,
    confidence_level: float = 0.95,
    random_state: int | None = None,
    parallel: bool = False,
    n_jobs: int | None = None,
    *,
    pool: WorkerPool | None = None,
    estimator: NaturalEffectsEstimator = estimate_natural_effects,
) -> PathEffectsResult:
    """Estimate the total effect and path-specific effects by IPW.

    With K mediators in causal order the total effect (ATE) of the
    binary exposure on the outcome is split into K + 1 path-specific
    effects (PSEs) that sum to the ATE: ``"D->Y"``, one path per
    later mediator (``"D->M{k}->Y"`` / ``"D->M{k}~>Y"``) and
    ``"D->M1~>Y"``.  With a single mediator the natural effects are
    returned instead, labelled ``"NDE"`` and ``"NIE"``.

    Args:
        data: Input data.  Accepts pandas or Polars DataFrames.  Never
            modified.
        exposure: Name of the exposure column.  Must be numeric with
            values 0 or 1 and no missing values.
        mediators: Mediator column name(s) in causal order, from the
            first in the hypothesized sequence to the last.
        outcome: Name of the numeric outcome column.
        covariates: Covariates to include in the exposure models.
        base_weights: Name of a base (e.g. sampling) weight column.
        stabilize: Multiply the IPW weights by the marginal exposure
            probabilities.
        censor: Bottom/top-code the IPW weights at their
            ``censor_low`` / ``censor_high`` quantiles (before
            multiplying by the rescaled base weights).
        censor_low: Lower censoring quantile in ``[0, 1]``.
        censor_high: Upper censoring quantile in ``[0, 1]``.
        bootstrap: Run the nonparametric bootstrap and return
            confidence intervals, p-values and the replicates.
        n_bootstrap: Number of bootstrap replicates.
        confidence_level: Confidence level of the percentile intervals.
        random_state: Seed for bootstrap resampling.  Results are
            reproducible within an execution mode; serial and parallel
            runs with the same seed draw different resamples.
        parallel: Run replicates on a joblib worker pool.  Falls back
            to serial execution, with a warning, when fewer than two
            workers are available.
        n_jobs: Number of parallel workers.  Defaults to the number of
            CPU cores minus two, and at least one.
        pool: Custom worker pool overriding *parallel* / *n_jobs*.
            Replicates use per-replicate spawned streams unless it is
            a :class:`~ipwpath.pools.SerialPool`.
        estimator: Natural-effect estimator with the signature of
            :func:`~ipwpath.natural_effects.estimate_natural_effects`.

    Returns:
        A :class:`~ipwpath._results.PathEffectsResult`.  Bootstrap
        fields (``ci_ate``, ``ci_pse``, ``pvalue_ate``, ``pvalue_pse``,
        ``replicates``, ``boot_ate``, ``boot_pse``) are ``None`` unless
        *bootstrap* is ``True``.

    Raises:
        TypeError: If the exposure or outcome is not numeric.
        ValueError: On invalid variable roles, exposure values, or
            bootstrap arguments, and on estimator failures such as an
            exposure without variation in a resample.
        RuntimeError: If a parallel bootstrap cannot run on the
            configured joblib backend, or a propensity model cannot
            be estimated.
    """
    mediators = [mediators] if isinstance(mediators, str) else list(mediators)
    covariates = list(covariates) if covariates is not None else []
    df = _ensure_pandas_df(
        data,
        columns=referenced_columns(
            exposure, mediators, outcome, covariates, base_weights
        ),
        name="data",
    )

    _validate_inputs(df, exposure, mediators, outcome, covariates, base_weights)

    if bootstrap:
        _validate_bootstrap_args(n_bootstrap, confidence_level)
        if base_weights is not None:
            warnings.warn(
                "A bootstrap was requested, but the design includes base "
                "sampling weights. The bootstrap does not rescale sampling "
                "weights and does not account for stratification or "
                "clustering in the sample design. If the design requires "
                "weighting, the bootstrap confidence intervals and p-values "
                "may be invalid.",
                UserWarning,
                stacklevel=2,
            )
        worker_pool, mode = _resolve_pool(parallel, n_jobs, pool)

    decompose_kwargs: dict[str, Any] = {
        "exposure": exposure,
        "mediators": mediators,
        "outcome": outcome,
        "covariates": covariates or None,
        "base_weights": base_weights,
        "stabilize": stabilize,
        "censor": censor,
        "censor_low": censor_low,
        "censor_high": censor_high,
        "estimator": estimator,
    }

    point = decompose_paths(df, **decompose_kwargs)

    result_kwargs: dict[str, Any] = {
        "ate": point.ate,
        "pse": point.pse,
        "exposure": exposure,
        "mediators": mediators,
        "outcome": outcome,
        "covariates": covariates,
        "base_weights": base_weights,
        "n_observations": len(df),
    }

    if not bootstrap:
        return PathEffectsResult(**result_kwargs)

    logger.debug(
        "Running %d bootstrap replicates in %s mode on %r",
        n_bootstrap,
        mode,
        worker_pool,
    )
    generators = replicate_generators(n_bootstrap, random_state, mode)
    tasks = [
        functools.partial(_bootstrap_replicate, df, rng, decompose_kwargs)
        for rng in generators
    ]
    rows = worker_pool.map_independent(tasks)

    replicates = pd.DataFrame(
        np.vstack(rows),
        columns=["ATE", *point.pse.index],
    )
    values = replicates.to_numpy()

    ci = percentile_ci(values, confidence_level)
    pvals = bootstrap_p_values(values)

    return PathEffectsResult(
        **result_kwargs,
        n_bootstrap=n_bootstrap,
        confidence_level=confidence_level,
        execution_mode=mode,
        ci_ate=ci[0],
        ci_pse=pd.DataFrame(
            ci[1:],
            index=point.pse.index,
            columns=ci_column_labels(confidence_level),
        ),
        pvalue_ate=float(pvals[0]),
        pvalue_pse=pd.Series(pvals[1:], index=point.pse.index),
        replicates=replicates,
    )


__all__ = ["ipwpath"]
