"""Tests for the worker-pool abstraction."""

import functools

import pytest

from ipwpath.pools import JoblibPool, SerialPool, WorkerPool


def _square(x):
    return x * x


def _boom():
    raise ValueError("replicate failed")


class TestSerialPool:
    def test_results_in_task_order(self):
        tasks = [functools.partial(_square, i) for i in range(5)]
        assert SerialPool().map_independent(tasks) == [0, 1, 4, 9, 16]

    def test_runs_in_order(self):
        seen = []
        tasks = [functools.partial(seen.append, i) for i in range(4)]
        SerialPool().map_independent(tasks)
        assert seen == [0, 1, 2, 3]

    def test_failure_aborts(self):
        with pytest.raises(ValueError, match="replicate failed"):
            SerialPool().map_independent([functools.partial(_square, 2), _boom])

    def test_satisfies_protocol(self):
        assert isinstance(SerialPool(), WorkerPool)


class TestJoblibPool:
    def test_results_in_task_order(self):
        pool = JoblibPool(2, backend="threading")
        tasks = [functools.partial(_square, i) for i in range(10)]
        assert pool.map_independent(tasks) == [i * i for i in range(10)]

    def test_failure_aborts(self):
        pool = JoblibPool(2, backend="threading")
        with pytest.raises(ValueError, match="replicate failed"):
            pool.map_independent([functools.partial(_square, 2), _boom])

    def test_uses_configured_backend(self, monkeypatch):
        import ipwpath._config as _cfg

        monkeypatch.setattr(_cfg, "_backend_override", "threading")
        assert JoblibPool(2).backend == "threading"

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError, match="n_jobs"):
            JoblibPool(0, backend="threading")

    def test_unavailable_backend(self):
        with pytest.raises(RuntimeError, match="not available"):
            JoblibPool(2, backend="no_such_backend")

    def test_satisfies_protocol(self):
        assert isinstance(JoblibPool(2, backend="threading"), WorkerPool)
