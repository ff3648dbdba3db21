"""重点重みによる多項リサンプリング"""

import numpy as np

from bayesian_svar.core.exceptions import NumericalError


class Resampler:
    """対数重みに比例した復元抽出"""

    @staticmethod
    def normalized_weights(log_weights: np.ndarray) -> np.ndarray:
        """exp(lw - max lw) を正規化した確率ベクトルを返す

        -inf の重みは確率0として扱う。

        Raises:
            NumericalError: 有限な重みが1つもない場合
        """
        log_weights = np.asarray(log_weights, dtype=float)
        finite = np.isfinite(log_weights)
        if not np.any(finite):
            msg = "有限な重みが存在しないためリサンプリングできません"
            raise NumericalError(msg)
        if np.any(np.isposinf(log_weights)) or np.any(np.isnan(log_weights)):
            msg = "重みに +inf または NaN が含まれています"
            raise NumericalError(msg)

        shifted = np.where(finite, log_weights - log_weights[finite].max(), -np.inf)
        weights = np.exp(shifted)
        return weights / weights.sum()

    def resample(
        self,
        log_weights: np.ndarray,
        size: int,
        rng: np.random.Generator,
    ) -> np.ndarray:
        """重みに比例してインデックスを復元抽出する

        Args:
            log_weights: 対数重み (n,)
            size: 抽出数
            rng: 乱数生成器

        Returns:
            (size,) のインデックス配列
        """
        probabilities = self.normalized_weights(log_weights)
        return rng.choice(probabilities.size, size=size, replace=True, p=probabilities)
