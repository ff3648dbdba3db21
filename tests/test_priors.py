"""NIW事前分布のテスト"""

import numpy as np
import pytest

from bayesian_svar.core.exceptions import NumericalError, ValidationError
from bayesian_svar.estimation.priors import PriorSpec


class TestPriorSpec:
    """PriorSpec のテスト"""

    def test_diffuse_shapes(self) -> None:
        prior = PriorSpec.diffuse(n_vars=3, n_regressors=7)
        assert prior.B_mean.shape == (7, 3)
        assert prior.V.shape == (7, 7)
        assert prior.S.shape == (3, 3)
        assert prior.nu == pytest.approx(5.0)
        prior.validate_positive_definite()

    def test_shape_mismatch(self) -> None:
        with pytest.raises(ValidationError):
            PriorSpec(B_mean=np.zeros((3, 2)), V=np.eye(4), S=np.eye(2), nu=4.0)

    def test_degrees_of_freedom(self) -> None:
        """ν̲ は N-1 より大きい必要がある"""
        with pytest.raises(ValidationError):
            PriorSpec(B_mean=np.zeros((3, 2)), V=np.eye(3), S=np.eye(2), nu=1.0)

    def test_validate_positive_definite(self) -> None:
        prior = PriorSpec(B_mean=np.zeros((3, 2)), V=np.eye(3), S=-np.eye(2), nu=4.0)
        with pytest.raises(NumericalError):
            prior.validate_positive_definite()


class TestMinnesotaPrior:
    """Minnesota型事前分布のテスト"""

    def test_structure(self) -> None:
        rng = np.random.default_rng(42)
        data = np.cumsum(rng.standard_normal((120, 2)), axis=0)
        prior = PriorSpec.minnesota(data, lags=2, lambda0=0.2, lambda1=1.0, lambda3=10.0)

        # K = 2 * 2 + 1
        assert prior.B_mean.shape == (5, 2)
        np.testing.assert_allclose(prior.B_mean[:2, :2], np.eye(2))
        np.testing.assert_allclose(prior.B_mean[2:, :], 0.0)

        variances = np.diag(prior.V)
        # 第2ラグは第1ラグより事前分散が小さい
        assert np.all(variances[2:4] < variances[:2])
        assert variances[-1] == pytest.approx(0.2**2 * 10.0**2)
        prior.validate_positive_definite()

    def test_own_lag_mean(self) -> None:
        rng = np.random.default_rng(0)
        data = rng.standard_normal((80, 3))
        prior = PriorSpec.minnesota(data, lags=1, own_lag_mean=0.0)
        np.testing.assert_allclose(prior.B_mean, 0.0)
