"""構造パラメータのベクトル化と重み計算用の写像

x = [vec(A0); vec(A+)]（列優先）と StructuralDraw の双方向変換、
および体積要素の計算に使う2つの写像を提供する。

- ReducedFormMap: x ↦ (vec B, vech Σ, vec Q)
- ZeroRestrictionMap: x ↦ ゼロ制約が課された同時点応答 (A0^{-1})'_{ij} の並び
"""

import numpy as np

from bayesian_svar.core.linalg import vech
from bayesian_svar.core.mapper import StructuralDraw, StructuralMapper


class StructuralParameterMapping:
    """x ベクトルと StructuralDraw の双方向マッピング"""

    def __init__(self, n_vars: int, n_regressors: int) -> None:
        self.n_vars = n_vars
        self.n_regressors = n_regressors

    @property
    def n_params(self) -> int:
        """x の次元 N^2 + N K"""
        return self.n_vars * (self.n_vars + self.n_regressors)

    def to_vector(self, structural: StructuralDraw) -> np.ndarray:
        return np.concatenate(
            [structural.A0.ravel(order="F"), structural.A_plus.ravel(order="F")]
        )

    def from_vector(self, x: np.ndarray) -> StructuralDraw:
        n, k = self.n_vars, self.n_regressors
        A0 = x[: n * n].reshape((n, n), order="F")
        A_plus = x[n * n :].reshape((k, n), order="F")
        return StructuralDraw(A0=A0, A_plus=A_plus)


class ReducedFormMap:
    """x ↦ (vec B, vech Σ, vec Q)

    A0 を動かすと Σ と Q が、A+ を動かすと B のみが変化する。
    """

    def __init__(self, mapping: StructuralParameterMapping, mapper: StructuralMapper | None = None) -> None:
        self._mapping = mapping
        self._mapper = mapper or StructuralMapper()

    def __call__(self, x: np.ndarray) -> np.ndarray:
        reduced, Q = self._mapper.inverse(self._mapping.from_vector(x))
        return np.concatenate([reduced.B.ravel(order="F"), vech(reduced.Sigma), Q.ravel(order="F")])


class ZeroRestrictionMap:
    """x ↦ ゼロ制約対象の同時点応答

    同時点応答は L0 = (A0^{-1})'。制約 (i, j) は L0[i, j] = A0^{-1}[j, i]。
    並びはショック j の昇順、その中で変数 i の昇順。
    """

    def __init__(self, mapping: StructuralParameterMapping, zero_irf: np.ndarray) -> None:
        self._mapping = mapping
        # (変数 i, ショック j) の組を列優先順に並べる
        cols, rows = np.nonzero(zero_irf.T)
        self._pairs = list(zip(rows.tolist(), cols.tolist(), strict=True))

    @property
    def n_restrictions(self) -> int:
        return len(self._pairs)

    def __call__(self, x: np.ndarray) -> np.ndarray:
        A0 = self._mapping.from_vector(x).A0
        A0_inv = np.linalg.inv(A0)
        return np.array([A0_inv[j, i] for i, j in self._pairs])

    def analytic_jacobian(self, x: np.ndarray) -> np.ndarray:
        """d(A0^{-1}) = -A0^{-1} dA0 A0^{-1} による解析的ヤコビアン"""
        n = self._mapping.n_vars
        A0_inv = np.linalg.inv(self._mapping.from_vector(x).A0)
        jac = np.zeros((self.n_restrictions, self._mapping.n_params))
        for r, (i, j) in enumerate(self._pairs):
            # ∂A0^{-1}[j, i] / ∂A0[a, b] = -A0^{-1}[j, a] A0^{-1}[b, i]
            block = -np.outer(A0_inv[j, :], A0_inv[:, i])
            jac[r, : n * n] = block.ravel(order="F")
        return jac
