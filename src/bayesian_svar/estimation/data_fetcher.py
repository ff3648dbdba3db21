"""合成データ生成モジュール

構造VARからシミュレーションして合成観測データを生成する。
テスト・検証に使用する。
"""

import numpy as np

from bayesian_svar.core.mapper import StructuralDraw
from bayesian_svar.estimation.data_loader import VARData


class SyntheticSVARGenerator:
    """合成データ生成（テスト・検証用）

    構造VAR y_t' A0 = x_t' A+ + ε_t' をシミュレートする。
    """

    def simulate(
        self,
        structural: StructuralDraw,
        n_periods: int = 200,
        rng: np.random.Generator | None = None,
        burn_in: int = 0,
        initial: np.ndarray | None = None,
        variable_names: list[str] | None = None,
    ) -> VARData:
        """構造VARから観測パネルを生成する

        1. 誘導形 B = A+ A0^{-1} と衝撃行列 (A0^{-1})' を計算
        2. 構造ショック ε_t ~ N(0, I) を生成
        3. y_t = B' x_t + (A0^{-1})' ε_t を再帰的に計算
        4. バーンイン期間を除いて VARData として返す

        Args:
            structural: 真の構造パラメータ
            n_periods: 返す観測期間数（初期ラグを含む）
            rng: 乱数生成器。Noneの場合はデフォルトを使用。
            burn_in: 破棄する初期期間数
            initial: 初期ラグ値 (p, N)。Noneの場合はゼロ。
            variable_names: 変数名

        Returns:
            合成観測データ（ラグ次数は構造パラメータのもの）
        """
        if rng is None:
            rng = np.random.default_rng()

        n = structural.n_vars
        p = structural.n_lags
        A0_inv = np.linalg.inv(structural.A0)
        B = structural.A_plus @ A0_inv
        impact = A0_inv.T

        total = n_periods + burn_in
        path = np.zeros((total + p, n))
        if initial is not None:
            path[:p] = initial

        shocks = rng.standard_normal((total, n))
        for t in range(p, total + p):
            x_t = np.concatenate([path[t - lag] for lag in range(1, p + 1)] + [np.ones(1)])
            path[t] = x_t @ B + impact @ shocks[t - p]

        data = path[p + burn_in :] if burn_in > 0 else path[p:]
        return VARData.from_array(data, lags=p, variable_names=variable_names)


def random_walk_example() -> tuple[StructuralDraw, np.ndarray]:
    """2変数ランダムウォークの検証用構造パラメータ

    A0 = [[-1, 1], [1, 0]] のとき Σ = (A0 A0')^{-1} = [[1, 1], [1, 2]]、
    (A0^{-1})' = [[0, 1], [1, 1]]。誘導形係数は B = [I; 0]。

    Returns:
        (構造パラメータ, 真の誘導形係数 B) のタプル
    """
    A0 = np.array([[-1.0, 1.0], [1.0, 0.0]])
    B = np.vstack([np.eye(2), np.zeros((1, 2))])
    return StructuralDraw(A0=A0, A_plus=B @ A0), B
