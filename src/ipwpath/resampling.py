"""Nonparametric bootstrap resampling and random-number streams.

Each bootstrap replicate draws n row indices with replacement from the
n rows of the original data and re-runs the full path decomposition
on the resulting snapshot.

Two random-number regimes
-------------------------
**Serial**: one :class:`numpy.random.Generator` is seeded once with
``random_state`` and every replicate draws its indices from it, in
replicate order.  The draws of replicate b therefore depend on all
draws made before it, which is only reproducible when replicates run
one after another.

**Parallel**: ``numpy.random.SeedSequence(random_state)`` spawns one
independent child stream per replicate.  Replicate b always sees the
same stream regardless of which worker runs it or in which order, so
results are reproducible under any scheduling.

The two regimes are structurally different: for the same seed they
produce different resamples and hence different replicate values.
The contract of ``random_state`` is "reproducible within a given
execution mode"; across modes only the statistical properties of the
intervals agree.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

SERIAL = "serial"
PARALLEL = "parallel"


def bootstrap_indices(n_samples: int, rng: np.random.Generator) -> np.ndarray:
    """Draw *n_samples* row indices uniformly with replacement."""
    return rng.choice(n_samples, size=n_samples, replace=True)


def resample(data: pd.DataFrame, rng: np.random.Generator) -> pd.DataFrame:
    """Return a bootstrap snapshot of *data* with a fresh 0..n-1 index.

    Duplicated rows would otherwise share index labels, which breaks
    label-aligned operations downstream.
    """
    idx = bootstrap_indices(len(data), rng)
    return data.iloc[idx].reset_index(drop=True)


def replicate_generators(
    n_bootstrap: int,
    random_state: int | None,
    mode: str,
) -> list[np.random.Generator]:
    """One generator per replicate, following the *mode*'s regime.

    Args:
        n_bootstrap: Number of replicates B.
        random_state: Seed.  ``None`` draws fresh OS entropy.
        mode: ``"serial"`` returns the *same* generator B times, to be
            consumed in replicate order.  ``"parallel"`` returns B
            independent generators spawned from one seed sequence.

    Returns:
        A list of length *n_bootstrap*.

    Raises:
        ValueError: If *mode* is unknown.
    """
    if mode == SERIAL:
        rng = np.random.default_rng(random_state)
        return [rng] * n_bootstrap
    if mode == PARALLEL:
        children = np.random.SeedSequence(random_state).spawn(n_bootstrap)
        return [np.random.default_rng(child) for child in children]
    raise ValueError(f"mode must be '{SERIAL}' or '{PARALLEL}', got '{mode}'.")


__all__ = [
    "PARALLEL",
    "SERIAL",
    "bootstrap_indices",
    "replicate_generators",
    "resample",
]
