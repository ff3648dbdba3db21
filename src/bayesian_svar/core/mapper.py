"""構造形と誘導形の間の写像

構造VAR:
    y_t' A0 = x_t' A+ + ε_t',    ε_t ~ N(0, I)

誘導形:
    y_t' = x_t' B + u_t',        u_t ~ N(0, Σ)

直交行列 Q を介した全単射:
    A0 = h(Σ)^{-1} Q,  A+ = B h(Σ)^{-1} Q
    B = A+ A0^{-1},    Σ = (A0 A0')^{-1},  Q = h(Σ) A0

h は上三角Cholesky分解 (h(Σ)' h(Σ) = Σ)。
"""

from dataclasses import dataclass

import numpy as np
import scipy.linalg

from bayesian_svar.core.linalg import checked_inverse, symmetrize, upper_cholesky


@dataclass(frozen=True)
class ReducedFormDraw:
    """誘導形パラメータの1ドロー

    Attributes:
        B: 係数行列 (K, N)
        Sigma: 誤差共分散行列 (N, N)、対称正定値
    """

    B: np.ndarray
    Sigma: np.ndarray


@dataclass(frozen=True)
class StructuralDraw:
    """構造パラメータの1ドロー

    Attributes:
        A0: 同時点係数行列 (N, N)、可逆
        A_plus: ラグ・定数項係数行列 (K, N)
    """

    A0: np.ndarray
    A_plus: np.ndarray

    @property
    def n_vars(self) -> int:
        return self.A0.shape[0]

    @property
    def n_lags(self) -> int:
        """A+ の行数 K = N p + 1 から p を返す"""
        return (self.A_plus.shape[0] - 1) // self.n_vars

    def lag_matrix(self, lag: int) -> np.ndarray:
        """ラグ l (1始まり) の係数ブロック A_l (N, N)"""
        n = self.n_vars
        return self.A_plus[(lag - 1) * n : lag * n, :]


class StructuralMapper:
    """(B, Σ, Q) と (A0, A+) の相互変換"""

    @staticmethod
    def h(sigma: np.ndarray) -> np.ndarray:
        """Σ の上三角Cholesky因子"""
        return upper_cholesky(sigma, name="Σ")

    def forward(
        self, reduced: ReducedFormDraw, Q: np.ndarray
    ) -> StructuralDraw:
        """(B, Σ, Q) → (A0, A+)"""
        h_sigma = self.h(reduced.Sigma)
        # h^{-1} Q を三角行列ソルブで計算
        A0 = scipy.linalg.solve_triangular(h_sigma, Q, lower=False)
        A_plus = reduced.B @ A0
        return StructuralDraw(A0=A0, A_plus=A_plus)

    def inverse(self, structural: StructuralDraw) -> tuple[ReducedFormDraw, np.ndarray]:
        """(A0, A+) → ((B, Σ), Q)

        Raises:
            SingularMatrixError: A0 が数値的に特異な場合
        """
        A0_inv = checked_inverse(structural.A0, name="A0")
        B = structural.A_plus @ A0_inv
        Sigma = symmetrize(A0_inv.T @ A0_inv)
        Q = self.h(Sigma) @ structural.A0
        return ReducedFormDraw(B=B, Sigma=Sigma), Q
