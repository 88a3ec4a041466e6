"""Typed result objects for path-specific effect estimation.

Frozen dataclasses that provide:

* **Attribute access**: ``result.ate``, ``result.pse``, etc.
* **Dict-like access**: ``result["ate"]``, ``result.get("key")``,
  ``"key" in result`` for consumers that prefer bracket syntax.
* **Serialisation**: ``.to_dict()`` returns a plain ``dict[str, Any]``
  with all NumPy and pandas types converted to native Python.

Three result types mirror the three layers of the estimator:

* :class:`NaturalEffects`: ATE / NDE / NIE for one mediator subset.
* :class:`PathDecomposition`: ATE and the named PSE vector from one
  pass of the path decomposer.
* :class:`PathEffectsResult`: point estimates plus, when requested,
  the bootstrap intervals, p-values and replicate ensemble.

All types are frozen (immutable after construction) to communicate
that results are a snapshot of a completed estimation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

import numpy as np
import pandas as pd

# ------------------------------------------------------------------ #
# Serialisation helper
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy / pandas objects to Python-native types.

    Series become ``{label: value}`` dicts, DataFrames become
    ``{column: [values]}`` dicts, arrays become lists, and NumPy
    scalars become ``int`` / ``float`` so that :meth:`to_dict` returns
    a fully JSON-serialisable structure.
    """
    if isinstance(obj, pd.DataFrame):
        return {str(c): _numpy_to_python(obj[c].to_numpy()) for c in obj.columns}
    if isinstance(obj, pd.Series):
        return {str(k): _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, dict):
        return {k: _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        converted = [_numpy_to_python(item) for item in obj]
        return type(obj)(converted)
    return obj


# ------------------------------------------------------------------ #
# Dict-compatibility mixin
# ------------------------------------------------------------------ #


class _DictAccessMixin:
    """Dict-like access convenience for result dataclasses.

    Supports three access patterns:

    1. ``result["key"]``     raises ``KeyError`` on miss
    2. ``result.get(key, d)`` returns *d* on miss (default ``None``)
    3. ``"key" in result``   membership test
    """

    def __getitem__(self, key: str) -> Any:
        """Attribute lookup via bracket syntax."""
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key) from None

    def get(self, key: str, default: Any = None) -> Any:
        """Attribute lookup with a fallback default."""
        return getattr(self, key, default)

    def __contains__(self, key: object) -> bool:
        """Membership test: ``"key" in result``."""
        if not isinstance(key, str):
            return False
        return hasattr(self, key)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain, JSON-serialisable dictionary."""
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            result[f.name] = _numpy_to_python(getattr(self, f.name))
        return result


# ------------------------------------------------------------------ #
# NaturalEffects
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class NaturalEffects(_DictAccessMixin):
    """Natural effects of the exposure for one set of mediators."""

    ate: float
    """Total (average treatment) effect."""

    nde: float
    """Natural direct effect, not transmitted through the mediators."""

    nie: float
    """Natural indirect effect, transmitted jointly through the mediators."""


# ------------------------------------------------------------------ #
# PathDecomposition
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class PathDecomposition(_DictAccessMixin):
    """ATE and path-specific effects from one decomposer pass.

    ``pse`` has ``K + 1`` entries indexed by path name and sums to
    ``ate``.
    """

    ate: float
    pse: pd.Series

    def as_row(self) -> pd.Series:
        """Return ``(ATE, PSE...)`` as a single labelled row."""
        return pd.concat([pd.Series({"ATE": self.ate}), self.pse])


# ------------------------------------------------------------------ #
# PathEffectsResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class PathEffectsResult(_DictAccessMixin):
    """Result of :func:`~ipwpath.ipwpath`.

    Point estimates are always present.  Bootstrap fields are ``None``
    unless the bootstrap was requested.

    All fields are accessible both as attributes (``result.ate``) and
    via dict syntax (``result["ate"]``).
    """

    # ---- Point estimates -------------------------------------------
    ate: float
    """Estimated total effect of the exposure contrast (1 vs 0)."""

    pse: pd.Series
    """Path-specific effects, ``K + 1`` entries named by path."""

    # ---- Variable roles --------------------------------------------
    exposure: str
    mediators: list[str]
    outcome: str
    covariates: list[str]
    base_weights: str | None
    n_observations: int

    # ---- Bootstrap -------------------------------------------------
    n_bootstrap: int | None = None
    """Number of bootstrap replicates (``None`` without bootstrap)."""

    confidence_level: float | None = None
    """Nominal coverage of the percentile intervals."""

    execution_mode: str | None = None
    """``"serial"`` or ``"parallel"``: which random-number regime ran."""

    ci_ate: np.ndarray | None = None
    """Percentile interval ``[lower, upper]`` for the ATE."""

    ci_pse: pd.DataFrame | None = None
    """Percentile intervals, one row per path, lower/upper columns."""

    pvalue_ate: float | None = None
    """Two-sided bootstrap p-value for ATE = 0."""

    pvalue_pse: pd.Series | None = None
    """Two-sided bootstrap p-values for each PSE = 0."""

    replicates: pd.DataFrame | None = field(default=None, repr=False)
    """Replicate ensemble, ``B`` rows by ``["ATE", *pse.index]``."""

    @property
    def boot_ate(self) -> np.ndarray | None:
        """ATE estimates from all bootstrap replicates, length ``B``."""
        if self.replicates is None:
            return None
        return self.replicates["ATE"].to_numpy()

    @property
    def boot_pse(self) -> pd.DataFrame | None:
        """PSE estimates from all bootstrap replicates, ``B × (K + 1)``."""
        if self.replicates is None:
            return None
        return self.replicates.drop(columns="ATE")

    @property
    def bootstrapped(self) -> bool:
        return self.replicates is not None
