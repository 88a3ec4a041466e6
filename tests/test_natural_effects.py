"""Tests for the IPW natural-effect estimator and weight trimming."""

import numpy as np
import pandas as pd
import pytest

from ipwpath.natural_effects import estimate_natural_effects, trim_quantiles


def _mediation_data(n=2000, seed=1, a=1.0, b=1.0, c=0.5):
    """D → M → Y with a direct D → Y effect ``c`` and indirect ``a·b``."""
    rng = np.random.default_rng(seed)
    x = rng.standard_normal(n)
    d = rng.binomial(1, 1 / (1 + np.exp(-0.5 * x)))
    m = a * d + 0.5 * x + rng.standard_normal(n)
    y = c * d + b * m + 0.5 * x + rng.standard_normal(n) * 0.5
    return pd.DataFrame({"d": d, "m": m, "y": y, "x": x})


def _estimate(df, **kwargs):
    return estimate_natural_effects(
        df,
        exposure="d",
        mediators=["m"],
        outcome="y",
        formula_baseline="d ~ x",
        formula_augmented="d ~ m + x",
        **kwargs,
    )


class TestTrimQuantiles:
    def test_extremes_are_capped(self):
        x = np.arange(101, dtype=float)
        out = trim_quantiles(x, 0.1, 0.9)
        assert out.min() == pytest.approx(10.0)
        assert out.max() == pytest.approx(90.0)

    def test_interior_values_untouched(self):
        x = np.arange(101, dtype=float)
        out = trim_quantiles(x, 0.1, 0.9)
        np.testing.assert_array_equal(out[10:91], x[10:91])

    def test_full_range_is_identity(self):
        x = np.random.default_rng(0).standard_normal(50)
        np.testing.assert_array_equal(trim_quantiles(x, 0.0, 1.0), x)

    def test_input_not_modified(self):
        x = np.arange(10, dtype=float)
        trim_quantiles(x, 0.2, 0.8)
        np.testing.assert_array_equal(x, np.arange(10, dtype=float))

    def test_accepts_series(self):
        out = trim_quantiles(pd.Series([1.0, 2.0, 3.0]), 0.0, 0.5)
        np.testing.assert_allclose(out, [1.0, 2.0, 2.0])

    @pytest.mark.parametrize("low,high", [(-0.1, 0.9), (0.1, 1.5), (0.9, 0.1)])
    def test_invalid_bounds(self, low, high):
        with pytest.raises(ValueError, match="censor"):
            trim_quantiles(np.arange(5.0), low, high)


class TestEstimateNaturalEffects:
    def test_decomposition_adds_up(self):
        est = _estimate(_mediation_data())
        assert est.nde + est.nie == pytest.approx(est.ate)

    def test_recovers_known_effects(self):
        est = _estimate(_mediation_data(n=5000, seed=7), censor=False)
        # Direct 0.5, indirect 1.0 * 1.0
        assert est.nde == pytest.approx(0.5, abs=0.2)
        assert est.nie == pytest.approx(1.0, abs=0.2)
        assert est.ate == pytest.approx(1.5, abs=0.2)

    def test_no_mediated_effect(self):
        est = _estimate(_mediation_data(n=5000, seed=11, a=0.0), censor=False)
        assert est.nie == pytest.approx(0.0, abs=0.15)

    def test_constant_base_weights_change_nothing(self):
        df = _mediation_data()
        df["w"] = 3.0
        plain = _estimate(df)
        weighted = _estimate(df, base_weights="w")
        assert weighted.ate == pytest.approx(plain.ate, rel=1e-6)
        assert weighted.nde == pytest.approx(plain.nde, rel=1e-6)

    def test_stabilization_leaves_weighted_means_unchanged(self):
        # Stabilizing multiplies each weight by a constant within its
        # exposure group, which cancels in a weighted mean.
        df = _mediation_data()
        a = _estimate(df, stabilize=True, censor=False)
        b = _estimate(df, stabilize=False, censor=False)
        assert a.ate == pytest.approx(b.ate, rel=1e-9)
        assert a.nie == pytest.approx(b.nie, rel=1e-9)

    def test_censoring_changes_estimates(self):
        df = _mediation_data()
        a = _estimate(df, censor=True, censor_low=0.1, censor_high=0.9)
        b = _estimate(df, censor=False)
        assert a.ate != pytest.approx(b.ate, rel=1e-9)

    def test_data_not_modified(self):
        df = _mediation_data(n=300)
        before = df.copy()
        _estimate(df)
        pd.testing.assert_frame_equal(df, before)

    def test_rows_with_missing_outcome_dropped(self):
        df = _mediation_data(n=500)
        full = _estimate(df.iloc[10:])
        df.loc[:9, "y"] = np.nan
        partial = _estimate(df)
        assert partial.ate == pytest.approx(full.ate, rel=1e-9)

    def test_constant_exposure_raises(self):
        df = _mediation_data(n=200)
        df["d"] = 1
        with pytest.raises(ValueError, match="single value"):
            _estimate(df)

    def test_invalid_censor_bounds(self):
        with pytest.raises(ValueError, match="censor_low"):
            _estimate(_mediation_data(n=200), censor_low=0.8, censor_high=0.2)

    def test_perfect_separation_raises(self):
        df = _mediation_data(n=200)
        df["m"] = df["d"] * 10.0 + np.linspace(0, 1, len(df))
        with pytest.raises(RuntimeError, match="could not be estimated"):
            _estimate(df)

    def test_multiple_mediators(self):
        rng = np.random.default_rng(5)
        n = 1000
        d = rng.binomial(1, 0.5, n)
        m1 = d + rng.standard_normal(n)
        m2 = 0.5 * m1 + rng.standard_normal(n)
        y = d + m1 + m2 + rng.standard_normal(n)
        df = pd.DataFrame({"d": d, "m1": m1, "m2": m2, "y": y})
        est = estimate_natural_effects(
            df,
            exposure="d",
            mediators=["m1", "m2"],
            outcome="y",
            formula_baseline="d ~ 1",
            formula_augmented="d ~ m1 + m2",
        )
        assert np.isfinite([est.ate, est.nde, est.nie]).all()
        assert est.nde + est.nie == pytest.approx(est.ate)
