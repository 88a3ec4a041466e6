"""Parallel-execution configuration for the ipwpath package.

Controls which joblib backend runs a parallel bootstrap and how many
workers are used when the caller does not say.

Backend resolution order (first match wins):
    1. Programmatic override via :func:`set_parallel_backend`.
    2. The ``IPWPATH_PARALLEL_BACKEND`` environment variable.
    3. The default, ``"loky"`` (process-based workers).

Valid backend names are ``"loky"``, ``"threading"``,
``"multiprocessing"``, ``"dask"`` and ``"ray"`` (case-insensitive).
The last two must be registered with joblib by their own packages
before a parallel bootstrap can use them.

Examples:
    Use threads instead of processes from the shell::

        export IPWPATH_PARALLEL_BACKEND=threading

    Or programmatically::

        import ipwpath
        ipwpath.set_parallel_backend("threading")

    Re-enable the default resolution::

        ipwpath.set_parallel_backend("auto")
"""

from __future__ import annotations

import os

_DEFAULT_BACKEND = "loky"

_KNOWN_BACKENDS = {"loky", "threading", "multiprocessing", "dask", "ray"}
_VALID_BACKENDS = _KNOWN_BACKENDS | {"auto"}

# Sentinel indicating "no programmatic override has been set".
_backend_override: str | None = None


def get_parallel_backend() -> str:
    """Return the joblib backend name used for parallel bootstraps.

    Resolution order:
        1. Value set by :func:`set_parallel_backend` (unless ``"auto"``).
        2. ``IPWPATH_PARALLEL_BACKEND`` environment variable.
        3. ``"loky"``.

    Unrecognised environment values are ignored.

    Returns:
        One of the known joblib backend names.
    """
    # 1. Programmatic override
    if _backend_override is not None and _backend_override != "auto":
        return _backend_override

    # 2. Environment variable
    env = os.environ.get("IPWPATH_PARALLEL_BACKEND", "").strip().lower()
    if env in _KNOWN_BACKENDS:
        return env

    # 3. Default
    return _DEFAULT_BACKEND


def set_parallel_backend(name: str) -> None:
    """Override the joblib backend selection.

    Args:
        name: One of ``"loky"``, ``"threading"``,
            ``"multiprocessing"``, ``"dask"``, ``"ray"`` or ``"auto"``
            (case-insensitive).  ``"auto"`` restores the default
            resolution order.

    Raises:
        ValueError: If *name* is not a recognised backend.
    """
    global _backend_override
    normalised = name.strip().lower()
    if normalised not in _VALID_BACKENDS:
        raise ValueError(
            f"Unknown parallel backend '{name}'. "
            f"Choose from: {sorted(_VALID_BACKENDS)}"
        )
    _backend_override = normalised


def default_n_jobs() -> int:
    """Default worker count: all CPU cores but two, and at least one."""
    return max((os.cpu_count() or 1) - 2, 1)
