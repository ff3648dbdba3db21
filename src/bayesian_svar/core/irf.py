"""インパルス応答・予測誤差分散分解・ヒストリカル分解

構造ドローから決定的に計算される変換を提供する。

インパルス応答の再帰:
    Θ_0 = (A0^{-1})'
    Θ_h = Σ_{l=1}^{min(h,p)} (A_l A0^{-1})' Θ_{h-l}

Θ_h[i, j] は変数 i のショック j に対するホライズン h の応答。
"""

import numpy as np

from bayesian_svar.core.linalg import checked_inverse
from bayesian_svar.core.mapper import StructuralDraw


def impulse_responses(structural: StructuralDraw, horizon: int) -> np.ndarray:
    """構造ドローのインパルス応答を計算する

    Args:
        structural: 構造パラメータ
        horizon: 最大ホライズン H

    Returns:
        IRFキューブ (N, N, H+1)
    """
    if horizon < 0:
        msg = f"horizon は0以上である必要があります: {horizon}"
        raise ValueError(msg)

    n = structural.n_vars
    p = structural.n_lags
    A0_inv = checked_inverse(structural.A0, name="A0")

    # 誘導形ラグ係数の転置 (A_l A0^{-1})'
    phi = [(structural.lag_matrix(lag) @ A0_inv).T for lag in range(1, p + 1)]

    irf = np.zeros((n, n, horizon + 1))
    irf[:, :, 0] = A0_inv.T
    for h in range(1, horizon + 1):
        acc = np.zeros((n, n))
        for lag in range(1, min(h, p) + 1):
            acc += phi[lag - 1] @ irf[:, :, h - lag]
        irf[:, :, h] = acc
    return irf


def forecast_error_variance_decomposition(irf: np.ndarray, horizon: int | None = None) -> np.ndarray:
    """予測誤差分散分解を計算する

    MSFE_ij(h) = Σ_{l=0}^{h-1} Θ_{ij,l}^2
    FEVD_ij(h) = MSFE_ij(h) / Σ_n MSFE_in(h)

    Args:
        irf: IRFキューブ (N, N, H+1)
        horizon: 分解する最大ホライズン。Noneの場合は H+1。

    Returns:
        FEVDキューブ (N, N, horizon)。[i, j, h-1] がホライズン h のシェア。
        各 (i, h) について j 方向の和は1。
    """
    n_steps = irf.shape[2] if horizon is None else horizon
    if n_steps < 1 or n_steps > irf.shape[2]:
        msg = f"horizon は 1..{irf.shape[2]} の範囲である必要があります: {n_steps}"
        raise ValueError(msg)

    msfe = np.cumsum(irf[:, :, :n_steps] ** 2, axis=2)
    total = msfe.sum(axis=1, keepdims=True)
    return msfe / total


def historical_shocks(
    structural: StructuralDraw, Y: np.ndarray, X: np.ndarray
) -> np.ndarray:
    """構造ショックの系列 ε_t' = y_t' A0 - x_t' A+ を計算する

    Returns:
        (T, N) 構造ショック
    """
    return Y @ structural.A0 - X @ structural.A_plus


def historical_decomposition(
    irf: np.ndarray,
    shocks: np.ndarray,
    variable: int,
    start: int,
    end: int,
) -> np.ndarray:
    """期間 [start, end] における各ショックの寄与を計算する

    変数 i の end 時点の値と start-1 時点での予測値との差を、
    期間内の構造ショックの寄与に分解する:

        H_{i,j} = Σ_{s=start}^{end} Θ_{end-s}[i, j] ε_{s, j}

    Args:
        irf: IRFキューブ (N, N, H+1)、H >= end - start
        shocks: 構造ショック (T, N) または (M, T, N) のシミュレーション束
        variable: 変数インデックス i
        start: 開始期間（shocks の時間インデックス）
        end: 終了期間（含む）

    Returns:
        各ショックの寄与 (N,) または (M, N)
    """
    length = end - start + 1
    if length > irf.shape[2]:
        msg = f"IRFのホライズンが期間長 {length} に対して不足しています"
        raise ValueError(msg)

    # 重み行列: s = start..end に対して Θ_{end-s}[i, :]
    weights = irf[variable, :, :length][:, ::-1].T  # (length, N)
    window = shocks[..., start : end + 1, :]
    return np.einsum("sn,...sn->...n", weights, window)
