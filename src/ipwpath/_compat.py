"""Input boundary for pandas and optional Polars data.

Estimation runs on pandas (statsmodels formulas, row resampling with
``iloc``).  Polars frames are converted once, at the ``ipwpath`` call,
and only the columns the estimator actually uses are carried over: a
``LazyFrame`` is projected before it is collected, so wide inputs are
never materialised in full.

Polars is optional.  Without it, only pandas input is accepted.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, TypeAlias

import pandas as pd

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = pd.DataFrame | pl.DataFrame | pl.LazyFrame
else:
    DataFrameLike: TypeAlias = pd.DataFrame

try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def referenced_columns(
    exposure: str,
    mediators: Sequence[str],
    outcome: str,
    covariates: Sequence[str] = (),
    base_weights: str | None = None,
) -> list[str]:
    """Columns used by the estimator, deduplicated, in role order."""
    names = [exposure, *mediators, outcome, *covariates]
    if base_weights is not None:
        names.append(base_weights)
    return list(dict.fromkeys(names))


def _project_polars(obj, columns: Sequence[str] | None):
    # Unknown names are left out here; the caller reports them.
    if columns is None:
        return obj
    available = set(obj.collect_schema().names())
    return obj.select([c for c in columns if c in available])


def _ensure_pandas_df(
    obj: DataFrameLike,
    *,
    columns: Sequence[str] | None = None,
    name: str = "data",
) -> pd.DataFrame:
    """Return *obj* as a pandas DataFrame.

    pandas input is returned as-is, never copied or subset.  A Polars
    ``DataFrame`` or ``LazyFrame`` is restricted to *columns* (when
    given) before conversion; a ``LazyFrame`` is collected only after
    that projection.

    Raises:
        TypeError: If *obj* is not a recognised DataFrame type.
    """
    if isinstance(obj, pd.DataFrame):
        return obj

    if _HAS_POLARS:
        if isinstance(obj, pl.LazyFrame):
            return _project_polars(obj, columns).collect().to_pandas()
        if isinstance(obj, pl.DataFrame):
            return _project_polars(obj, columns).to_pandas()

    raise TypeError(
        f"'{name}' must be a pandas DataFrame"
        + (" or Polars DataFrame/LazyFrame" if _HAS_POLARS else "")
        + f", got {type(obj).__name__}."
    )
