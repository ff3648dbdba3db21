"""データ読込・VAR行列構築・合成データ生成のテスト"""

from pathlib import Path

import numpy as np
import pytest

from bayesian_svar.core.exceptions import DataValidationError
from bayesian_svar.estimation.data_fetcher import SyntheticSVARGenerator, random_walk_example
from bayesian_svar.estimation.data_loader import VARData, build_var_matrices


class TestBuildVarMatrices:
    """build_var_matrices のテスト"""

    def test_layout_lags_first_constant_last(self) -> None:
        """X の行は [y_{t-1}, y_{t-2}, 1]"""
        data = np.arange(12, dtype=float).reshape(6, 2)
        Y, X = build_var_matrices(data, lags=2)

        assert Y.shape == (4, 2)
        assert X.shape == (4, 5)
        np.testing.assert_array_equal(Y, data[2:])
        np.testing.assert_array_equal(X[0], np.concatenate([data[1], data[0], [1.0]]))
        np.testing.assert_array_equal(X[:, -1], np.ones(4))

    def test_rejects_nan(self) -> None:
        data = np.ones((10, 2))
        data[3, 1] = np.nan
        with pytest.raises(DataValidationError):
            build_var_matrices(data, lags=1)

    def test_rejects_short_sample(self) -> None:
        with pytest.raises(DataValidationError):
            build_var_matrices(np.ones((2, 2)), lags=2)

    def test_rejects_zero_lags(self) -> None:
        with pytest.raises(DataValidationError):
            build_var_matrices(np.ones((10, 2)), lags=0)

    def test_rejects_1d_input(self) -> None:
        with pytest.raises(DataValidationError):
            build_var_matrices(np.ones(10), lags=1)


class TestVARData:
    """VARData のテスト"""

    def test_default_variable_names(self) -> None:
        data = VARData.from_array(np.ones((5, 3)), lags=1)
        assert data.variable_names == ["y0", "y1", "y2"]
        assert data.n_vars == 3
        assert data.n_regressors == 4
        assert data.n_periods == 4

    def test_to_sample_index(self) -> None:
        """観測パネルの行インデックスからラグ数を引く"""
        data = VARData.from_array(np.ones((10, 2)), lags=2)
        assert data.to_sample_index(2) == 0
        assert data.to_sample_index(9) == 7
        with pytest.raises(DataValidationError):
            data.to_sample_index(1)
        with pytest.raises(DataValidationError):
            data.to_sample_index(10)

    def test_csv_roundtrip_with_dates(self, tmp_path: Path) -> None:
        path = tmp_path / "panel.csv"
        path.write_text("date,gdp,rate\n2000Q1,1.0,2.0\n2000Q2,1.5,2.5\n2000Q3,2.0,3.0\n", encoding="utf-8")

        data = VARData.from_csv(path, lags=1)
        assert data.variable_names == ["gdp", "rate"]
        assert data.dates == ["2000Q1", "2000Q2", "2000Q3"]
        np.testing.assert_allclose(data.data[2], [2.0, 3.0])

        out = tmp_path / "out.csv"
        data.to_csv(out)
        reloaded = VARData.from_csv(out, lags=1)
        np.testing.assert_allclose(reloaded.data, data.data)
        assert reloaded.dates == data.dates

    def test_csv_non_numeric(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.csv"
        path.write_text("a,b\n1.0,x\n2.0,3.0\n", encoding="utf-8")
        with pytest.raises(DataValidationError):
            VARData.from_csv(path, lags=1)

    def test_csv_column_mismatch(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.csv"
        path.write_text("a,b\n1.0\n2.0,3.0\n", encoding="utf-8")
        with pytest.raises(DataValidationError):
            VARData.from_csv(path, lags=1)


class TestSyntheticSVARGenerator:
    """SyntheticSVARGenerator のテスト"""

    def test_random_walk_example(self) -> None:
        """A0 = [[-1, 1], [1, 0]] の同時点応答と誘導形"""
        structural, B = random_walk_example()
        A0_inv = np.linalg.inv(structural.A0)
        np.testing.assert_allclose(A0_inv.T, [[0.0, 1.0], [1.0, 1.0]])
        np.testing.assert_allclose(A0_inv.T @ A0_inv, [[1.0, 1.0], [1.0, 2.0]])
        np.testing.assert_allclose(structural.A_plus @ A0_inv, B)

    def test_simulate_shape_and_reproducibility(self) -> None:
        structural, _ = random_walk_example()
        gen = SyntheticSVARGenerator()
        a = gen.simulate(structural, n_periods=50, rng=np.random.default_rng(42))
        b = gen.simulate(structural, n_periods=50, rng=np.random.default_rng(42))

        assert a.data.shape == (50, 2)
        assert a.lags == 1
        np.testing.assert_array_equal(a.data, b.data)

    def test_recovered_shocks_are_standard_normal(self) -> None:
        """真のパラメータで復元した構造ショックは概ね N(0, I)"""
        structural, _ = random_walk_example()
        data = SyntheticSVARGenerator().simulate(structural, n_periods=2000, rng=np.random.default_rng(7))
        shocks = data.Y @ structural.A0 - data.X @ structural.A_plus

        np.testing.assert_allclose(shocks.mean(axis=0), 0.0, atol=0.1)
        np.testing.assert_allclose(np.cov(shocks.T), np.eye(2), atol=0.1)
