"""ゼロ制約付き直交行列サンプラー

Q を列ごとに構築する。列 j の制約行列は

    R_j = [ Z_j F ; Q_{j-1}' ]

F = h(Σ)' は A0 = h(Σ)^{-1} のときの同時点インパルス応答、Z_j はショック j に
ゼロ制約が課された行の選択。R_j の零空間の正規直交基底 N_j を求め、

    q_j = N_j N_j' x / ||N_j' x||,   x ~ N(0, I)

とする。ゼロ制約は構成的に厳密に満たされ、Q'Q = I も構成的に成り立つ。
"""

import numpy as np

from bayesian_svar.core.exceptions import InfeasibleRestriction
from bayesian_svar.core.linalg import null_space_basis
from bayesian_svar.core.mapper import ReducedFormDraw, StructuralMapper
from bayesian_svar.identification.restrictions import RestrictionSet


class RestrictedOrthogonalSampler:
    """ゼロ制約を満たす直交行列 Q をドローする"""

    def __init__(self, restrictions: RestrictionSet, mapper: StructuralMapper | None = None) -> None:
        self._restrictions = restrictions
        self._mapper = mapper or StructuralMapper()
        self._zero_rows = [restrictions.zero_rows(j) for j in range(restrictions.n_vars)]

    def draw(self, reduced: ReducedFormDraw, rng: np.random.Generator) -> np.ndarray:
        """Q をドローする

        Args:
            reduced: 誘導形ドロー（h(Σ) の計算に使用）
            rng: このドロー専用の乱数生成器

        Returns:
            (N, N) 直交行列

        Raises:
            InfeasibleRestriction: 零空間が空の場合（このドローは破棄される）
        """
        n = self._restrictions.n_vars
        F = self._mapper.h(reduced.Sigma).T
        Q = np.zeros((n, n))

        for j in range(n):
            constraint = np.vstack([F[self._zero_rows[j], :], Q[:, :j].T])
            basis = null_space_basis(constraint, n_cols=n)
            if basis.shape[1] == 0:
                msg = f"ショック {j} の制約行列の零空間が空です"
                raise InfeasibleRestriction(msg)

            x = rng.standard_normal(n)
            coords = basis.T @ x
            norm = np.linalg.norm(coords)
            if norm == 0.0:
                msg = f"ショック {j} の射影ベクトルがゼロです"
                raise InfeasibleRestriction(msg)
            Q[:, j] = basis @ coords / norm

        return Q
