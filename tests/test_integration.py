"""End-to-end checks on simulated data with known path-specific effects.

Data-generating process (no confounding):

    D  ~ Bernoulli(0.5)
    M1 = D + e1
    M2 = 0.5 D + 0.8 M1 + e2
    Y  = 1.0 D + 0.7 M1 + 1.2 M2 + e3

so the true effects are D->Y = 1.0, D->M2->Y = 0.6,
D->M1~>Y = 1.0 * (0.7 + 0.8 * 1.2) = 1.66 and ATE = 3.26.

The headline check runs on 1000 rows.  The remaining checks use 3000
rows so that the tolerances can be tighter than the sampling error of
the IPW estimator at n = 1000.
"""

import numpy as np
import pandas as pd
import pytest

from ipwpath import ipwpath

TRUE_PSE = {"D->Y": 1.0, "D->M2->Y": 0.6, "D->M1~>Y": 1.66}
TRUE_ATE = 3.26


def _simulate(n, seed=2024):
    rng = np.random.default_rng(seed)
    d = rng.binomial(1, 0.5, n)
    m1 = d + rng.standard_normal(n)
    m2 = 0.5 * d + 0.8 * m1 + rng.standard_normal(n)
    y = 1.0 * d + 0.7 * m1 + 1.2 * m2 + rng.normal(0.0, 0.5, n)
    return pd.DataFrame({"d": d, "m1": m1, "m2": m2, "y": y})


@pytest.fixture(scope="module")
def sim_data():
    return _simulate(3000)


class TestThousandRows:
    def test_recovers_path_specific_effects(self):
        res = ipwpath(_simulate(1000), "d", ["m1", "m2"], "y")
        assert list(res.pse.index) == list(TRUE_PSE)
        assert res.ate == pytest.approx(TRUE_ATE, abs=0.6)
        for name, truth in TRUE_PSE.items():
            assert res.pse[name] == pytest.approx(truth, abs=0.6)
        assert res.pse.sum() == pytest.approx(res.ate, abs=1e-10)


class TestRecovery:
    def test_recovers_path_specific_effects(self, sim_data):
        res = ipwpath(sim_data, "d", ["m1", "m2"], "y")
        assert res.ate == pytest.approx(TRUE_ATE, abs=0.35)
        for name, truth in TRUE_PSE.items():
            assert res.pse[name] == pytest.approx(truth, abs=0.35)

    def test_components_sum_to_total(self, sim_data):
        res = ipwpath(sim_data, "d", ["m1", "m2"], "y")
        assert res.pse.sum() == pytest.approx(res.ate, abs=1e-10)

    def test_single_mediator_natural_effects(self, sim_data):
        # M1 alone: everything through M1 is indirect.
        res = ipwpath(sim_data, "d", "m1", "y")
        assert res.pse["NDE"] == pytest.approx(1.6, abs=0.35)
        assert res.pse["NIE"] == pytest.approx(1.66, abs=0.35)

    def test_unstabilized_uncensored_close(self, sim_data):
        base = ipwpath(sim_data, "d", ["m1", "m2"], "y")
        raw = ipwpath(sim_data, "d", ["m1", "m2"], "y", stabilize=False, censor=False)
        assert raw.ate == pytest.approx(base.ate, abs=0.35)

    def test_irrelevant_covariate(self, sim_data):
        df = sim_data.copy()
        df["noise"] = np.random.default_rng(7).standard_normal(len(df))
        res = ipwpath(df, "d", ["m1", "m2"], "y", covariates=["noise"])
        assert res.ate == pytest.approx(TRUE_ATE, abs=0.35)


class TestBootstrapEndToEnd:
    def test_intervals_cover_estimates(self, sim_data):
        res = ipwpath(
            sim_data.iloc[:800], "d", ["m1", "m2"], "y",
            bootstrap=True, n_bootstrap=60, random_state=5,
        )
        assert res.ci_ate[0] < res.ate < res.ci_ate[1]
        assert (res.ci_pse.iloc[:, 0] < res.ci_pse.iloc[:, 1]).all()
        # Strong effects: no replicate crosses zero.
        assert res.pvalue_ate == 0.0
        assert res.pvalue_pse["D->M1~>Y"] == 0.0

    def test_parallel_threads(self, sim_data):
        from ipwpath.pools import JoblibPool

        res = ipwpath(
            sim_data.iloc[:500], "d", ["m1", "m2"], "y",
            bootstrap=True, n_bootstrap=20, random_state=5,
            pool=JoblibPool(2, backend="threading"),
        )
        assert res.execution_mode == "parallel"
        assert res.replicates.shape == (20, 4)
        np.testing.assert_allclose(
            res.boot_pse.sum(axis=1).to_numpy(), res.boot_ate, atol=1e-9
        )


class TestPolarsInput:
    def test_polars_frame_accepted(self, sim_data):
        pl = pytest.importorskip("polars")
        pytest.importorskip("pyarrow")
        pl_df = pl.from_pandas(sim_data)
        a = ipwpath(pl_df, "d", ["m1", "m2"], "y")
        b = ipwpath(sim_data, "d", ["m1", "m2"], "y")
        assert a.ate == pytest.approx(b.ate)
        pd.testing.assert_series_equal(a.pse, b.pse)
