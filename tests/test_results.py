"""推定結果クラスのテスト"""

from pathlib import Path

import numpy as np
import pytest

from bayesian_svar.estimation.diagnostics import ImportanceDiagnostics
from bayesian_svar.estimation.results import EstimationResult, compute_hpd


def _make_result(n_draws: int = 200, horizon: int = 3) -> EstimationResult:
    rng = np.random.default_rng(42)
    n, k, t = 2, 3, 10
    irf = rng.standard_normal((n_draws, n, n, horizon + 1))
    msfe = np.cumsum(irf**2, axis=3)
    return EstimationResult(
        A0=rng.standard_normal((n_draws, n, n)),
        A_plus=rng.standard_normal((n_draws, k, n)),
        B=rng.standard_normal((n_draws, k, n)),
        Sigma=np.tile(np.eye(n), (n_draws, 1, 1)),
        Q=np.tile(np.eye(n), (n_draws, 1, 1)),
        irf=irf,
        fevd=msfe / msfe.sum(axis=2, keepdims=True),
        shocks=rng.standard_normal((n_draws, t, n)),
        log_weights=np.zeros(n_draws),
        narrative_log_weights=np.full(n_draws, np.nan),
        pool_indices=np.arange(n_draws),
        stage1_indices=np.arange(n_draws),
        final_indices=np.arange(n_draws),
        diagnostics=ImportanceDiagnostics(attempts=400, accepted=n_draws),
        variable_names=["gdp", "rate"],
    )


class TestEstimationResult:
    """EstimationResult のテスト"""

    def test_dimensions(self) -> None:
        result = _make_result()
        assert result.n_draws == 200
        assert result.n_vars == 2
        assert result.horizon == 3

    def test_posterior_mean(self) -> None:
        result = _make_result()
        np.testing.assert_allclose(result.posterior_mean("irf"), result.irf.mean(axis=0))
        np.testing.assert_allclose(result.posterior_mean("Sigma"), np.eye(2))
        with pytest.raises(KeyError):
            result.posterior_mean("log_weights")

    def test_irf_quantiles(self) -> None:
        result = _make_result()
        bands = result.irf_quantiles((0.16, 0.5, 0.84))
        assert bands.shape == (3, 2, 2, 4)
        assert np.all(bands[0] <= bands[1])
        assert np.all(bands[1] <= bands[2])

    def test_irf_hpd(self) -> None:
        result = _make_result()
        lower, upper = result.irf_hpd(alpha=0.32)
        assert lower.shape == (2, 2, 4)
        assert np.all(lower < upper)

    def test_combined_log_weights_ignore_unevaluated(self) -> None:
        result = _make_result()
        np.testing.assert_array_equal(result.combined_log_weights, np.zeros(200))

    def test_summary_table(self) -> None:
        table = _make_result().summary_table()
        lines = table.split("\n")
        assert lines[0].startswith("| Response")
        assert "90% HPD Lower" in lines[0]
        # ヘッダー + 区切り + N*N 行
        assert len(lines) == 2 + 4
        assert "gdp<-e1" in table

    def test_to_npz(self, tmp_path: Path) -> None:
        result = _make_result()
        path = tmp_path / "draws.npz"
        result.to_npz(str(path))
        with np.load(path) as saved:
            np.testing.assert_array_equal(saved["irf"], result.irf)
            assert list(saved["variable_names"]) == ["gdp", "rate"]


class TestHPD:
    """compute_hpd のテスト"""

    def test_normal_interval(self) -> None:
        samples = np.random.default_rng(0).standard_normal(20_000)
        lower, upper = compute_hpd(samples, alpha=0.1)
        assert lower == pytest.approx(-1.645, abs=0.06)
        assert upper == pytest.approx(1.645, abs=0.06)

    def test_skewed_interval_is_shortest(self) -> None:
        samples = np.random.default_rng(1).exponential(size=10_000)
        lower, upper = compute_hpd(samples, alpha=0.1)
        assert lower < 0.01
        assert upper == pytest.approx(-np.log(0.1), abs=0.1)
