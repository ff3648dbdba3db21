"""Normal-Inverse-Wishart 事前分布

誘導形パラメータ (B, Σ) の共役事前分布:
    Σ ~ IW(S̲, ν̲)
    vec(B) | Σ ~ N(vec(B̲), Σ ⊗ V̲)
"""

from dataclasses import dataclass

import numpy as np

from bayesian_svar.core.exceptions import ValidationError
from bayesian_svar.core.linalg import upper_cholesky
from bayesian_svar.estimation.data_loader import build_var_matrices


@dataclass(frozen=True)
class PriorSpec:
    """NIW事前分布の超パラメータ

    Attributes:
        B_mean: 係数の事前平均 B̲ (K, N)
        V: 係数の事前共分散 V̲ (K, K)、対称正定値
        S: 尺度行列 S̲ (N, N)、対称正定値
        nu: 自由度 ν̲ (> N - 1)
    """

    B_mean: np.ndarray
    V: np.ndarray
    S: np.ndarray
    nu: float

    def __post_init__(self) -> None:
        k, n = self.B_mean.shape
        if self.V.shape != (k, k):
            msg = f"V̲ の形状が ({k}, {k}) ではありません: {self.V.shape}"
            raise ValidationError(msg)
        if self.S.shape != (n, n):
            msg = f"S̲ の形状が ({n}, {n}) ではありません: {self.S.shape}"
            raise ValidationError(msg)
        if not self.nu > n - 1:
            msg = f"自由度 ν̲={self.nu} は N-1={n - 1} より大きい必要があります"
            raise ValidationError(msg)

    @property
    def n_vars(self) -> int:
        return self.B_mean.shape[1]

    @property
    def n_regressors(self) -> int:
        return self.B_mean.shape[0]

    def validate_positive_definite(self) -> None:
        """V̲ と S̲ の正定値性をCholesky分解で確認する

        Raises:
            NumericalError: 正定値でない場合
        """
        upper_cholesky(self.V, name="V̲")
        upper_cholesky(self.S, name="S̲")

    @classmethod
    def diffuse(
        cls,
        n_vars: int,
        n_regressors: int,
        coefficient_variance: float = 100.0,
        scale: float = 1.0,
    ) -> "PriorSpec":
        """弱情報事前分布を返す

        B̲ = 0, V̲ = coefficient_variance * I, S̲ = scale * I, ν̲ = N + 2
        """
        return cls(
            B_mean=np.zeros((n_regressors, n_vars)),
            V=coefficient_variance * np.eye(n_regressors),
            S=scale * np.eye(n_vars),
            nu=float(n_vars + 2),
        )

    @classmethod
    def minnesota(
        cls,
        data: np.ndarray,
        lags: int,
        lambda0: float = 0.1,
        lambda1: float = 0.1,
        lambda3: float = 10.0,
        own_lag_mean: float = 1.0,
    ) -> "PriorSpec":
        """Minnesota型のNIW事前分布を構築する

        1. 各変数の自己ラグのみのAR(p)残差分散から S̲ を対角で設定
        2. 事前平均は第1ラグの自己係数のみ own_lag_mean、他は0
        3. 事前分散はラグ l について λ0^2 / (l^{2λ1} s_i)、定数項は λ0^2 λ3^2

        Args:
            data: 観測パネル (T_full, N)
            lags: ラグ次数 p
            lambda0: 全体のタイトネス
            lambda1: ラグ減衰
            lambda3: 定数項のタイトネス
            own_lag_mean: 自己第1ラグの事前平均（1.0でランダムウォーク）

        Returns:
            PriorSpec インスタンス
        """
        Y, X = build_var_matrices(data, lags)
        t, n = Y.shape
        k = X.shape[1]

        # 自己ラグのみの回帰残差で尺度を決める
        residual_var = np.zeros(n)
        for i in range(n):
            Xi = X[:, i : n * lags : n]
            beta_i = np.linalg.lstsq(Xi, Y[:, i], rcond=None)[0]
            e = Y[:, i] - Xi @ beta_i
            residual_var[i] = float(e @ e) / t

        B_mean = np.zeros((k, n))
        B_mean[:n, :n] = own_lag_mean * np.eye(n)

        lag_decay = np.array([1.0 / (lag ** (2 * lambda1)) for lag in range(1, lags + 1)])
        precision_scale = 1.0 / residual_var
        variances = (lambda0**2) * np.append(np.kron(lag_decay, precision_scale), lambda3**2)

        return cls(
            B_mean=B_mean,
            V=np.diag(variances),
            S=np.diag(residual_var),
            nu=float(n + 2),
        )
