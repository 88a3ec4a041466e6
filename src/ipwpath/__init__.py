"""ipwpath — IPW estimation of path-specific causal effects.

Decomposes the total effect of a binary exposure on an outcome into
path-specific effects through an ordered chain of mediators, using
inverse probability weighting (IPW) with nested propensity-score
models, and quantifies uncertainty with a nonparametric percentile
bootstrap that can run serially or on a joblib worker pool.

Public API:
    .. autosummary::
        ipwpath
        decompose_paths
        path_label
        combination_case
        CombinationCase
        propensity_formulas
        estimate_natural_effects
        trim_quantiles
        percentile_ci
        bootstrap_p_values
        print_path_effects_table
        get_parallel_backend
        set_parallel_backend
        WorkerPool
        SerialPool
        JoblibPool
        NaturalEffects
        PathDecomposition
        PathEffectsResult
"""

from ._config import get_parallel_backend, set_parallel_backend
from ._results import NaturalEffects, PathDecomposition, PathEffectsResult
from .core import ipwpath
from .decompose import (
    CombinationCase,
    combination_case,
    decompose_paths,
    path_label,
    propensity_formulas,
)
from .display import print_path_effects_table
from .natural_effects import estimate_natural_effects, trim_quantiles
from .pools import JoblibPool, SerialPool, WorkerPool
from .pvalues import bootstrap_p_values, percentile_ci

__all__ = [
    "NaturalEffects",
    "PathDecomposition",
    "PathEffectsResult",
    "ipwpath",
    "decompose_paths",
    "path_label",
    "combination_case",
    "CombinationCase",
    "propensity_formulas",
    "estimate_natural_effects",
    "trim_quantiles",
    "percentile_ci",
    "bootstrap_p_values",
    "print_path_effects_table",
    "get_parallel_backend",
    "set_parallel_backend",
    "WorkerPool",
    "SerialPool",
    "JoblibPool",
]

__version__ = "0.1.0"
