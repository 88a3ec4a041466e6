"""Path decomposition of the total effect through ordered mediators.

With K mediators M1 → M2 → … → MK in causal order, the total effect of
the exposure D on the outcome Y splits into K + 1 path-specific
effects (PSEs):

    D->Y            the direct path, bypassing every mediator
    D->MK->Y        through the last mediator only
    D->M{k}~>Y      through Mk, possibly continuing via later mediators
    D->M1~>Y        through the first mediator (and anything after it)

Telescoping natural direct effects
----------------------------------
Let NDE_k be the natural direct effect with respect to the first k
mediators {M1, …, Mk}, i.e. the part of the effect that bypasses all
of them.  Walking k from K down to 1:

* NDE_K is the effect bypassing every mediator: the D->Y path.
* NDE_k − NDE_{k+1} adds back exactly the paths that enter the chain
  at M{k+1}, so it is the PSE through M{k+1}.
* NIE_1 is everything transmitted through M1.

Summing, the interior differences collapse and

    NDE_K + Σ_k (NDE_k − NDE_{k+1}) + NIE_1 = NDE_1 + NIE_1 = ATE_1,

so the K + 1 PSEs always add up to the ATE.

The walk is a fold over the nested mediator subsets, from largest to
smallest, threading the previous NDE forward as an accumulator.  Each
step is classified into one of four combination cases (see
:class:`CombinationCase`) that decide which entries it contributes.

With a single mediator there is nothing to telescope; the decomposer
returns the natural effects themselves, labelled ``"NDE"`` and
``"NIE"``.
"""

from __future__ import annotations

import enum
import keyword
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import pandas as pd

from ._results import NaturalEffects, PathDecomposition
from .natural_effects import estimate_natural_effects

logger = logging.getLogger(__name__)

NaturalEffectsEstimator = Callable[..., NaturalEffects]


# ------------------------------------------------------------------ #
# Labels and combination cases
# ------------------------------------------------------------------ #


class CombinationCase(enum.Enum):
    """How one fold step contributes to the PSE vector."""

    ONLY_ONE = "only_one"
    """K = 1: the natural effects are the output."""

    FIRST_OF_MANY = "first_of_many"
    """K ≥ 2, k = K: the direct path D->Y."""

    MIDDLE_OF_MANY = "middle_of_many"
    """K ≥ 2, 1 < k < K: one interior path."""

    LAST_OF_MANY = "last_of_many"
    """K ≥ 2, k = 1: the last interior path plus D->M1~>Y."""


def combination_case(k: int, n_mediators: int) -> CombinationCase:
    """Classify the fold step for the first *k* of *n_mediators*."""
    if not 1 <= k <= n_mediators:
        raise ValueError(f"k must lie in [1, {n_mediators}], got {k}.")
    if n_mediators == 1:
        return CombinationCase.ONLY_ONE
    if k == n_mediators:
        return CombinationCase.FIRST_OF_MANY
    if k == 1:
        return CombinationCase.LAST_OF_MANY
    return CombinationCase.MIDDLE_OF_MANY


def path_label(k: int, n_mediators: int) -> str:
    """Name the interior path contributed by the step for subset size *k*.

    The step for the first *k* mediators isolates the paths entering
    the chain at mediator ``k + 1``.  When that mediator is the last
    one the path is direct (``->``); otherwise it may continue through
    later mediators and is written with the wavy arrow (``~>``).

    Examples:
        >>> path_label(2, 3)
        'D->M3->Y'
        >>> path_label(1, 3)
        'D->M2~>Y'
    """
    arrow = "->" if k + 1 == n_mediators else "~>"
    return f"D->M{k + 1}{arrow}Y"


def _term(name: str) -> str:
    """Quote a column name for a patsy formula unless it is a plain identifier."""
    if name.isidentifier() and not keyword.iskeyword(name):
        return name
    return f"Q({name!r})"


def propensity_formulas(
    exposure: str,
    mediators: Sequence[str],
    covariates: Sequence[str] | None = None,
) -> tuple[str, str]:
    """Build the baseline and augmented exposure-model formulas.

    Returns:
        ``(baseline, augmented)`` where *baseline* regresses the
        exposure on the covariates (intercept only if none) and
        *augmented* adds *mediators* ahead of the covariates.
    """
    covariate_terms = [_term(c) for c in covariates or ()]
    baseline = " + ".join(covariate_terms) if covariate_terms else "1"
    augmented = " + ".join([_term(m) for m in mediators] + covariate_terms)
    lhs = _term(exposure)
    return f"{lhs} ~ {baseline}", f"{lhs} ~ {augmented}"


# ------------------------------------------------------------------ #
# Fold state
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class _FoldState:
    """Accumulator threaded through the reverse walk over subsets.

    ``entries`` holds ``(position, label, value)`` triples with
    1-based positions into the PSE vector of length ``K + 1``.
    """

    n_mediators: int
    entries: tuple[tuple[int, str, float], ...] = ()
    prev_nde: float | None = None
    ate: float | None = None

    def finish(self) -> PathDecomposition:
        ordered = sorted(self.entries)
        pse = pd.Series(
            [value for _, _, value in ordered],
            index=[label for _, label, _ in ordered],
            dtype=float,
        )
        assert self.ate is not None  # noqa: S101
        return PathDecomposition(ate=self.ate, pse=pse)


def _combine(state: _FoldState, k: int, est: NaturalEffects) -> _FoldState:
    """Fold one natural-effect estimate into the accumulator."""
    n_med = state.n_mediators
    case = combination_case(k, n_med)
    position = n_med - k + 1

    if case is CombinationCase.ONLY_ONE:
        return _FoldState(
            n_mediators=n_med,
            entries=((1, "NDE", est.nde), (2, "NIE", est.nie)),
            ate=est.ate,
        )

    if case is CombinationCase.FIRST_OF_MANY:
        return _FoldState(
            n_mediators=n_med,
            entries=((position, "D->Y", est.nde),),
            prev_nde=est.nde,
        )

    assert state.prev_nde is not None  # noqa: S101
    interior = (position, path_label(k, n_med), est.nde - state.prev_nde)

    if case is CombinationCase.MIDDLE_OF_MANY:
        return _FoldState(
            n_mediators=n_med,
            entries=state.entries + (interior,),
            prev_nde=est.nde,
        )

    # LAST_OF_MANY
    return _FoldState(
        n_mediators=n_med,
        entries=state.entries + (interior, (n_med + 1, "D->M1~>Y", est.nie)),
        prev_nde=est.nde,
        ate=est.ate,
    )


# ------------------------------------------------------------------ #
# Public entry point
# ------------------------------------------------------------------ #


def decompose_paths(
    data: pd.DataFrame,
    exposure: str,
    mediators: Sequence[str],
    outcome: str,
    covariates: Sequence[str] | None = None,
    base_weights: str | None = None,
    stabilize: bool = True,
    censor: bool = True,
    censor_low: float = 0.01,
    censor_high: float = 0.99,
    *,
    estimator: NaturalEffectsEstimator = estimate_natural_effects,
) -> PathDecomposition:
    """Estimate the ATE and the K + 1 path-specific effects.

    Calls *estimator* once for each nested subset ``mediators[:k]``,
    ``k = K, …, 1``, and combines the results into named PSEs.  No
    input validation happens here; :func:`~ipwpath.ipwpath` checks
    the exposure and outcome before calling.  Estimator failures
    propagate unchanged.

    Args:
        data: Input data.
        exposure: Binary exposure column.
        mediators: Mediator columns in causal order, earliest first.
        outcome: Outcome column.
        covariates: Covariates for both exposure models.
        base_weights: Optional base-weight column.
        stabilize: Stabilise the IPW weights.
        censor: Censor the IPW weights.
        censor_low: Lower censoring quantile.
        censor_high: Upper censoring quantile.
        estimator: Natural-effect estimator with the signature of
            :func:`~ipwpath.natural_effects.estimate_natural_effects`.

    Returns:
        A :class:`~ipwpath._results.PathDecomposition`.
    """
    mediators = list(mediators)
    state = _FoldState(n_mediators=len(mediators))

    for k in range(len(mediators), 0, -1):
        subset = mediators[:k]
        formula_baseline, formula_augmented = propensity_formulas(
            exposure, subset, covariates
        )
        est = estimator(
            data=data,
            exposure=exposure,
            mediators=subset,
            outcome=outcome,
            formula_baseline=formula_baseline,
            formula_augmented=formula_augmented,
            base_weights=base_weights,
            stabilize=stabilize,
            censor=censor,
            censor_low=censor_low,
            censor_high=censor_high,
        )
        logger.debug(
            "Subset %s: ATE=%.6g NDE=%.6g NIE=%.6g", subset, est.ate, est.nde, est.nie
        )
        state = _combine(state, k, est)

    return state.finish()


__all__ = [
    "CombinationCase",
    "combination_case",
    "decompose_paths",
    "path_label",
    "propensity_formulas",
]
