"""Worker pools for independent bootstrap replicates.

A pool is anything with a ``map_independent(tasks)`` method that runs
a sequence of zero-argument callables and returns their results in
task order.  Tasks share no state, so a pool is free to run them in
any order or concurrently.  The orchestrator programs against the
:class:`WorkerPool` protocol, never against a concurrency runtime.

Two implementations ship with the package:

* :class:`SerialPool` runs tasks one after another in the calling
  thread.  It is the fallback whenever parallelism is not requested
  or not possible.
* :class:`JoblibPool` fans tasks out with :class:`joblib.Parallel`
  on the configured backend (``"loky"`` processes by default; see
  :mod:`ipwpath._config`).

The first task to raise aborts the whole map; no partial results are
returned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from joblib import Parallel, delayed
from joblib.parallel import BACKENDS, EXTERNAL_BACKENDS

from ._config import get_parallel_backend

logger = logging.getLogger(__name__)

Task = Callable[[], Any]


@runtime_checkable
class WorkerPool(Protocol):
    """Interface every worker pool must implement."""

    def map_independent(self, tasks: Sequence[Task]) -> list[Any]:
        """Run *tasks* and return their results in task order."""
        ...


def _call(task: Task) -> Any:
    return task()


def _backend_available(name: str) -> bool:
    """Whether joblib can run *name*, registering lazy backends (dask) on demand."""
    if name in BACKENDS:
        return True
    register = EXTERNAL_BACKENDS.get(name)
    if register is None:
        return False
    try:
        register()
    except ImportError:
        return False
    return name in BACKENDS


class SerialPool:
    """Run tasks sequentially, in order, in the calling thread."""

    n_jobs = 1

    def map_independent(self, tasks: Sequence[Task]) -> list[Any]:
        return [task() for task in tasks]

    def __repr__(self) -> str:
        return "SerialPool()"


class JoblibPool:
    """Run tasks on a fixed-size joblib worker pool.

    Args:
        n_jobs: Number of workers, at least 1.
        backend: joblib backend name.  ``None`` resolves it via
            :func:`~ipwpath._config.get_parallel_backend`.

    Raises:
        ValueError: If *n_jobs* is below 1.
        RuntimeError: If the backend is not available in this
            environment (e.g. ``"dask"`` without a registered
            dask backend).
    """

    def __init__(self, n_jobs: int, backend: str | None = None) -> None:
        if n_jobs < 1:
            raise ValueError(f"n_jobs must be at least 1, got {n_jobs}.")
        self.n_jobs = n_jobs
        self.backend = backend if backend is not None else get_parallel_backend()
        if not _backend_available(self.backend):
            raise RuntimeError(
                f"A parallel bootstrap was requested, but the joblib backend "
                f"'{self.backend}' is not available in this environment. "
                f"Register it with joblib, choose another backend via "
                f"ipwpath.set_parallel_backend(), or run the bootstrap "
                f"with parallel=False."
            )

    def map_independent(self, tasks: Sequence[Task]) -> list[Any]:
        logger.debug(
            "Dispatching %d tasks to %d '%s' workers",
            len(tasks),
            self.n_jobs,
            self.backend,
        )
        return Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(_call)(task) for task in tasks
        )

    def __repr__(self) -> str:
        return f"JoblibPool(n_jobs={self.n_jobs}, backend={self.backend!r})"


__all__ = ["JoblibPool", "SerialPool", "WorkerPool"]
