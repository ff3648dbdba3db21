"""共役NIW事後分布と誘導形サンプラー

事後超パラメータ:
    V̄^{-1} = V̲^{-1} + X'X
    B̄      = V̄ (X'Y + V̲^{-1} B̲)
    S̄      = S̲ + Y'Y + B̲' V̲^{-1} B̲ - B̄' V̄^{-1} B̄
    ν̄      = ν̲ + T
"""

import logging
from dataclasses import dataclass

import numpy as np
import scipy.linalg

from bayesian_svar.core.exceptions import ValidationError
from bayesian_svar.core.linalg import spd_inverse, symmetrize, upper_cholesky
from bayesian_svar.core.mapper import ReducedFormDraw
from bayesian_svar.estimation.priors import PriorSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PosteriorHyper:
    """NIW事後分布の超パラメータ（推定中は読み取り専用）

    Attributes:
        B_mean: B̄ (K, N)
        V: V̄ (K, K)
        S: S̄ (N, N)
        nu: ν̄
        V_chol: chol(V̄) の上三角因子
        S_inv_chol: chol(S̄^{-1}) の下三角因子（Bartlett分解用）
    """

    B_mean: np.ndarray
    V: np.ndarray
    S: np.ndarray
    nu: float
    V_chol: np.ndarray
    S_inv_chol: np.ndarray

    @property
    def n_vars(self) -> int:
        return self.B_mean.shape[1]

    @property
    def n_regressors(self) -> int:
        return self.B_mean.shape[0]


def compute_posterior(Y: np.ndarray, X: np.ndarray, prior: PriorSpec) -> PosteriorHyper:
    """事後超パラメータを計算する

    Args:
        Y: 被説明変数 (T, N)
        X: 説明変数 (T, K)
        prior: NIW事前分布

    Returns:
        PosteriorHyper

    Raises:
        ValidationError: 次元が一致しない場合
        NumericalError: V̲, S̲, V̄^{-1}, S̄ が数値的に正定値でない場合
    """
    t, n = Y.shape
    if X.shape[0] != t:
        msg = f"Y と X の行数が一致しません: {t} != {X.shape[0]}"
        raise ValidationError(msg)
    if prior.B_mean.shape != (X.shape[1], n):
        msg = f"事前平均 B̲ の形状 {prior.B_mean.shape} が ({X.shape[1]}, {n}) ではありません"
        raise ValidationError(msg)
    prior.validate_positive_definite()

    V_prior_inv = spd_inverse(prior.V, name="V̲")
    V_post_inv = symmetrize(V_prior_inv + X.T @ X)
    V_post = spd_inverse(V_post_inv, name="V̄^{-1}")

    B_post = V_post @ (X.T @ Y + V_prior_inv @ prior.B_mean)
    S_post = symmetrize(
        prior.S
        + Y.T @ Y
        + prior.B_mean.T @ V_prior_inv @ prior.B_mean
        - B_post.T @ V_post_inv @ B_post
    )
    nu_post = prior.nu + t

    V_chol = upper_cholesky(V_post, name="V̄")
    S_inv = spd_inverse(S_post, name="S̄")
    S_inv_chol = upper_cholesky(S_inv, name="S̄^{-1}").T

    logger.info("事後超パラメータを計算: T=%d, N=%d, K=%d, ν̄=%.1f", t, n, X.shape[1], nu_post)

    return PosteriorHyper(
        B_mean=B_post,
        V=V_post,
        S=S_post,
        nu=float(nu_post),
        V_chol=V_chol,
        S_inv_chol=S_inv_chol,
    )


class ReducedFormSampler:
    """NIW事後分布から (B, Σ) をドローする

    Σ ~ IW(S̄, ν̄) はBartlett分解で W ~ Wishart(S̄^{-1}, ν̄) を生成し Σ = W^{-1} とする。
    B | Σ ~ MN(B̄, V̄, Σ) は B̄ + chol(V̄)' Z chol(Σ) で生成する。
    """

    def __init__(self, posterior: PosteriorHyper) -> None:
        self._posterior = posterior

    @property
    def posterior(self) -> PosteriorHyper:
        return self._posterior

    def draw_sigma(self, rng: np.random.Generator) -> np.ndarray:
        """Σ を逆Wishart分布からドローする"""
        post = self._posterior
        n = post.n_vars

        # Bartlett分解: W = (L A)(L A)'
        A = np.tril(rng.standard_normal((n, n)), k=-1)
        A[np.diag_indices(n)] = np.sqrt(rng.chisquare(post.nu - np.arange(n)))
        C = post.S_inv_chol @ A

        # Σ = W^{-1} = C^{-T} C^{-1}
        C_inv = scipy.linalg.solve_triangular(C, np.eye(n), lower=True)
        return symmetrize(C_inv.T @ C_inv)

    def draw(self, rng: np.random.Generator) -> ReducedFormDraw:
        """(B, Σ) を1組ドローする

        Args:
            rng: このドロー専用の乱数生成器

        Returns:
            ReducedFormDraw
        """
        post = self._posterior
        sigma = self.draw_sigma(rng)
        sigma_chol = upper_cholesky(sigma, name="Σ")
        Z = rng.standard_normal((post.n_regressors, post.n_vars))
        B = post.B_mean + post.V_chol.T @ Z @ sigma_chol
        return ReducedFormDraw(B=B, Sigma=sigma)
