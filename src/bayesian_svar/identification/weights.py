"""符号制約フィルタと重点サンプリング重み

ゼロ制約付きで生成した (A0, A+) は目標分布（NIW事前分布から誘導される
構造形の事後分布）に対して提案分布がずれているため、以下の対数重みで補正する:

    log w = -(2N + K + 1) log|det A0| - ½ log det(D_N' D_N)
    D_N   = D_{f_h} · null(D_Z)

D_{f_h} は x = vec(A0, A+) から (vec B, vech Σ, vec Q) への写像のヤコビアン、
D_Z はゼロ制約写像のヤコビアン。ヤコビアンの求め方は JacobianStrategy で差し替える。
"""

from dataclasses import dataclass

import numpy as np

from bayesian_svar.core.exceptions import NumericalError
from bayesian_svar.core.irf import impulse_responses
from bayesian_svar.core.jacobian import AnalyticFirst, JacobianStrategy
from bayesian_svar.core.linalg import log_abs_det, null_space_basis
from bayesian_svar.core.mapper import ReducedFormDraw, StructuralDraw, StructuralMapper
from bayesian_svar.core.parameter_mapping import (
    ReducedFormMap,
    StructuralParameterMapping,
    ZeroRestrictionMap,
)
from bayesian_svar.identification.restrictions import RestrictionKind, RestrictionSet


@dataclass(frozen=True)
class WeightedDraw:
    """符号制約を通過し重みが付いた構造ドロー

    Attributes:
        structural: 構造パラメータ
        reduced: 対応する誘導形パラメータ
        Q: 直交行列
        log_weight: 対数重点重み
    """

    structural: StructuralDraw
    reduced: ReducedFormDraw
    Q: np.ndarray
    log_weight: float


class SignFilterAndWeighter:
    """符号制約の判定と対数重みの計算"""

    def __init__(
        self,
        restrictions: RestrictionSet,
        n_regressors: int,
        strategy: JacobianStrategy | None = None,
        mapper: StructuralMapper | None = None,
    ) -> None:
        self._restrictions = restrictions
        self._n_regressors = n_regressors
        self._strategy = strategy or AnalyticFirst()
        self._mapper = mapper or StructuralMapper()

        n = restrictions.n_vars
        self._mapping = StructuralParameterMapping(n, n_regressors)
        self._reduced_map = ReducedFormMap(self._mapping, self._mapper)
        self._zero_map = ZeroRestrictionMap(self._mapping, restrictions.zero_irf)
        kinds = restrictions.kinds
        self._has_zero = RestrictionKind.ZERO in kinds
        self._has_sign = RestrictionKind.SIGN in kinds
        self._sign_horizon = restrictions.max_sign_horizon
        self._sign = restrictions.sign_irf[:, :, : self._sign_horizon + 1]

    @property
    def sign_horizon(self) -> int:
        """符号判定に必要な最大ホライズン（制約なしの場合は -1）"""
        return self._sign_horizon

    def satisfies_signs(self, irf: np.ndarray) -> bool:
        """IRFが全符号制約を厳密に満たすかを判定する

        Args:
            irf: IRFキューブ (N, N, H+1)、H は sign_horizon 以上

        Returns:
            非ゼロの制約セル (i, j, h) すべてで sign * irf > 0 なら True
        """
        if not self._has_sign:
            return True
        mask = self._sign != 0
        values = self._sign * irf[:, :, : self._sign_horizon + 1]
        return bool(np.all(values[mask] > 0))

    def normalization_signs(self, irf: np.ndarray) -> np.ndarray:
        """各ショックの符号を正規化する反転ベクトルを返す

        ショック j に課された最初の符号制約セル（ホライズン順、変数順）が
        逆符号のとき列 j を反転する。符号制約のないショックは反転しない。
        列の反転はゼロ制約と重みを変えない。

        Returns:
            (N,) の ±1 ベクトル
        """
        n = self._restrictions.n_vars
        flips = np.ones(n)
        if not self._has_sign:
            return flips
        for j in range(n):
            cells = np.argwhere(self._sign[:, j, :].T != 0)
            if cells.size == 0:
                continue
            h, i = cells[0]
            if self._sign[i, j, h] * irf[i, j, h] < 0:
                flips[j] = -1.0
        return flips

    def log_weight(self, structural: StructuralDraw) -> float:
        """対数重点重みを計算する

        Raises:
            SingularMatrixError: A0 または D_N'D_N が特異な場合
            NumericalError: 体積要素が有限でない場合
        """
        n = self._restrictions.n_vars
        k = self._n_regressors
        x = self._mapping.to_vector(structural)

        d_fh = self._strategy.jacobian(self._reduced_map, x)
        if self._has_zero:
            d_z = self._strategy.jacobian(self._zero_map, x)
            basis = null_space_basis(d_z)
        else:
            basis = np.eye(self._mapping.n_params)

        d_n = d_fh @ basis
        gram = d_n.T @ d_n
        if not np.all(np.isfinite(gram)):
            msg = "体積要素のヤコビアンに非有限値が含まれます"
            raise NumericalError(msg)

        log_volume = 0.5 * log_abs_det(gram)
        log_det_a0 = log_abs_det(structural.A0)
        weight = -(2 * n + k + 1) * log_det_a0 - log_volume
        if not np.isfinite(weight):
            msg = f"対数重みが有限ではありません: {weight}"
            raise NumericalError(msg)
        return float(weight)

    def evaluate(
        self,
        reduced: ReducedFormDraw,
        Q: np.ndarray,
        normalize: bool = True,
    ) -> WeightedDraw | None:
        """1候補ドローを符号判定し、通過すれば重みを付ける

        Args:
            reduced: 誘導形ドロー
            Q: ゼロ制約を満たす直交行列
            normalize: 判定前に列の符号を正規化するか

        Returns:
            通過した場合は WeightedDraw、符号制約違反の場合は None
        """
        structural = self._mapper.forward(reduced, Q)
        irf = impulse_responses(structural, max(self._sign_horizon, 0))

        if normalize:
            flips = self.normalization_signs(irf)
            if np.any(flips < 0):
                Q = Q * flips
                structural = StructuralDraw(A0=structural.A0 * flips, A_plus=structural.A_plus * flips)
                irf = irf * flips[np.newaxis, :, np.newaxis]

        if not self.satisfies_signs(irf):
            return None

        return WeightedDraw(
            structural=structural,
            reduced=reduced,
            Q=Q,
            log_weight=self.log_weight(structural),
        )
