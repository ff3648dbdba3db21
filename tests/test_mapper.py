"""構造形・誘導形写像と線形代数ユーティリティのテスト"""

import numpy as np
import pytest

from bayesian_svar.core.exceptions import NumericalError, SingularMatrixError
from bayesian_svar.core.linalg import (
    checked_inverse,
    log_abs_det,
    null_space_basis,
    upper_cholesky,
    vech,
)
from bayesian_svar.core.mapper import ReducedFormDraw, StructuralDraw, StructuralMapper
from bayesian_svar.core.parameter_mapping import StructuralParameterMapping


def _random_reduced(rng: np.random.Generator, n: int = 3, k: int = 7) -> ReducedFormDraw:
    A = rng.standard_normal((n, n))
    sigma = A @ A.T + n * np.eye(n)
    return ReducedFormDraw(B=rng.standard_normal((k, n)), Sigma=sigma)


def _random_orthogonal(rng: np.random.Generator, n: int = 3) -> np.ndarray:
    q, r = np.linalg.qr(rng.standard_normal((n, n)))
    return q * np.sign(np.diag(r))


class TestStructuralMapper:
    """StructuralMapper のテスト"""

    def test_round_trip(self) -> None:
        """(B, Σ, Q) → (A0, A+) → (B, Σ, Q) が 1e-8 以内で一致する"""
        rng = np.random.default_rng(42)
        mapper = StructuralMapper()
        for _ in range(20):
            reduced = _random_reduced(rng)
            Q = _random_orthogonal(rng)
            structural = mapper.forward(reduced, Q)
            back, Q_back = mapper.inverse(structural)

            np.testing.assert_allclose(back.B, reduced.B, atol=1e-8)
            np.testing.assert_allclose(back.Sigma, reduced.Sigma, atol=1e-8)
            np.testing.assert_allclose(Q_back, Q, atol=1e-8)

    def test_h_is_upper_cholesky(self) -> None:
        rng = np.random.default_rng(0)
        sigma = _random_reduced(rng).Sigma
        h = StructuralMapper.h(sigma)
        np.testing.assert_allclose(h, np.triu(h))
        np.testing.assert_allclose(h.T @ h, sigma, atol=1e-10)

    def test_sigma_identity(self) -> None:
        """Σ = (A0 A0')^{-1}"""
        rng = np.random.default_rng(1)
        reduced = _random_reduced(rng)
        structural = StructuralMapper().forward(reduced, _random_orthogonal(rng))
        np.testing.assert_allclose(
            np.linalg.inv(structural.A0 @ structural.A0.T), reduced.Sigma, atol=1e-8
        )

    def test_inverse_rejects_singular(self) -> None:
        structural = StructuralDraw(A0=np.ones((2, 2)), A_plus=np.zeros((3, 2)))
        with pytest.raises(SingularMatrixError):
            StructuralMapper().inverse(structural)

    def test_lag_matrix(self) -> None:
        A_plus = np.arange(10, dtype=float).reshape(5, 2)
        structural = StructuralDraw(A0=np.eye(2), A_plus=A_plus)
        assert structural.n_lags == 2
        np.testing.assert_array_equal(structural.lag_matrix(2), A_plus[2:4])


class TestParameterMapping:
    """x ベクトルとのマッピングのテスト"""

    def test_vector_round_trip(self) -> None:
        rng = np.random.default_rng(3)
        mapping = StructuralParameterMapping(n_vars=2, n_regressors=5)
        structural = StructuralDraw(A0=rng.standard_normal((2, 2)), A_plus=rng.standard_normal((5, 2)))
        x = mapping.to_vector(structural)

        assert x.shape == (mapping.n_params,)
        assert mapping.n_params == 14
        back = mapping.from_vector(x)
        np.testing.assert_array_equal(back.A0, structural.A0)
        np.testing.assert_array_equal(back.A_plus, structural.A_plus)

    def test_column_major_order(self) -> None:
        mapping = StructuralParameterMapping(n_vars=2, n_regressors=3)
        structural = StructuralDraw(A0=np.array([[1.0, 3.0], [2.0, 4.0]]), A_plus=np.zeros((3, 2)))
        np.testing.assert_array_equal(mapping.to_vector(structural)[:4], [1.0, 2.0, 3.0, 4.0])


class TestLinalg:
    """線形代数ユーティリティのテスト"""

    def test_vech_column_order(self) -> None:
        matrix = np.array([[1.0, 2.0, 3.0], [2.0, 4.0, 5.0], [3.0, 5.0, 6.0]])
        np.testing.assert_array_equal(vech(matrix), [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])

    def test_upper_cholesky_failure(self) -> None:
        with pytest.raises(NumericalError):
            upper_cholesky(-np.eye(2), name="S")

    def test_checked_inverse(self) -> None:
        np.testing.assert_allclose(checked_inverse(2.0 * np.eye(2)), 0.5 * np.eye(2))
        with pytest.raises(SingularMatrixError):
            checked_inverse(np.array([[1.0, 1.0], [1.0, 1.0]]))

    def test_null_space_basis(self) -> None:
        matrix = np.array([[1.0, 0.0, 0.0]])
        basis = null_space_basis(matrix)
        assert basis.shape == (3, 2)
        np.testing.assert_allclose(matrix @ basis, 0.0, atol=1e-12)
        np.testing.assert_allclose(basis.T @ basis, np.eye(2), atol=1e-12)

    def test_null_space_of_empty(self) -> None:
        np.testing.assert_array_equal(null_space_basis(np.zeros((0, 3)), n_cols=3), np.eye(3))

    def test_log_abs_det(self) -> None:
        assert log_abs_det(np.diag([2.0, -3.0])) == pytest.approx(np.log(6.0))
        with pytest.raises(SingularMatrixError):
            log_abs_det(np.zeros((2, 2)))
