"""線形代数ユーティリティ

Cholesky分解・零空間基底・半ベクトル化など、サンプラー全体で共有する小さな関数群。
"""

import numpy as np
import scipy.linalg

from bayesian_svar.core.constants import NUMERICAL_CONSTANTS
from bayesian_svar.core.exceptions import NumericalError, SingularMatrixError


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """行列を対称化する"""
    return 0.5 * (matrix + matrix.T)


def upper_cholesky(matrix: np.ndarray, name: str = "matrix") -> np.ndarray:
    """上三角Cholesky因子 U (U'U = matrix) を返す

    Args:
        matrix: 対称正定値行列
        name: エラーメッセージ用の行列名

    Returns:
        上三角行列 U

    Raises:
        NumericalError: 数値的に正定値でない場合
    """
    try:
        return scipy.linalg.cholesky(matrix, lower=False)
    except (np.linalg.LinAlgError, ValueError) as e:
        msg = f"{name} が数値的に正定値ではありません"
        raise NumericalError(msg) from e


def spd_inverse(matrix: np.ndarray, name: str = "matrix") -> np.ndarray:
    """Cholesky分解経由で対称正定値行列の逆行列を計算する"""
    try:
        factor = scipy.linalg.cho_factor(matrix, lower=False)
    except (np.linalg.LinAlgError, ValueError) as e:
        msg = f"{name} が数値的に正定値ではありません"
        raise NumericalError(msg) from e
    inverse = scipy.linalg.cho_solve(factor, np.eye(matrix.shape[0]))
    return symmetrize(inverse)


def checked_inverse(matrix: np.ndarray, name: str = "A0") -> np.ndarray:
    """条件数を確認してから逆行列を計算する

    Raises:
        SingularMatrixError: 条件数が上限を超える場合
    """
    cond = np.linalg.cond(matrix)
    if not np.isfinite(cond) or cond > NUMERICAL_CONSTANTS.max_condition_number:
        msg = f"{name} が数値的に特異です（条件数 {cond:.3e}）"
        raise SingularMatrixError(msg)
    return np.linalg.inv(matrix)


def null_space_basis(matrix: np.ndarray, n_cols: int | None = None) -> np.ndarray:
    """行列の零空間の正規直交基底を返す

    SVDに基づく。行数0の行列に対しては単位行列を返す。

    Args:
        matrix: (r, n) 制約行列
        n_cols: matrix が空の場合の列数

    Returns:
        (n, d) 正規直交基底。d = n - rank(matrix)
    """
    if matrix.size == 0:
        n = matrix.shape[1] if n_cols is None else n_cols
        return np.eye(n)
    return scipy.linalg.null_space(matrix, rcond=NUMERICAL_CONSTANTS.null_space_rcond)


def vech(matrix: np.ndarray) -> np.ndarray:
    """対称行列の下三角部分を列順にベクトル化する"""
    n = matrix.shape[0]
    rows, cols = np.tril_indices(n)
    # 列優先順に並べ替え
    order = np.lexsort((rows, cols))
    return matrix[rows[order], cols[order]]


def log_abs_det(matrix: np.ndarray) -> float:
    """log|det(matrix)| を計算する

    Raises:
        SingularMatrixError: 行列式が0の場合
    """
    sign, logdet = np.linalg.slogdet(matrix)
    if sign == 0 or not np.isfinite(logdet):
        msg = "行列式が0のため対数行列式を計算できません"
        raise SingularMatrixError(msg)
    return float(logdet)
