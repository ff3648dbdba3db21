"""重点サンプリングの診断

受容率、棄却理由の内訳、Kishの有効サンプルサイズ、最大正規化重みを集計する。
"""

from dataclasses import dataclass, field

import numpy as np

from bayesian_svar.estimation.resampling import Resampler


@dataclass
class ImportanceDiagnostics:
    """重点サンプリングの診断結果

    Attributes:
        attempts: 実行した候補ドローの試行数
        accepted: 符号・ゼロ制約を通過したドロー数
        rejections: 棄却理由ごとの件数
        ess: ゼロ・符号重みのKish有効サンプルサイズ
        max_weight: 最大正規化重み
        narrative_evaluated: ナラティブ判定を行ったユニークドロー数
        narrative_survivors: 実データで制約を満たしたユニークドロー数
        narrative_ess: ナラティブ重みのKish有効サンプルサイズ
        low_confidence: 成功数0となったプールインデックス
    """

    attempts: int
    accepted: int
    rejections: dict[str, int] = field(default_factory=dict)
    ess: float = 0.0
    max_weight: float = 0.0
    narrative_evaluated: int = 0
    narrative_survivors: int = 0
    narrative_ess: float = 0.0
    low_confidence: list[int] = field(default_factory=list)

    @property
    def acceptance_rate(self) -> float:
        return self.accepted / self.attempts if self.attempts > 0 else 0.0

    @property
    def narrative_survival_rate(self) -> float:
        if self.narrative_evaluated == 0:
            return 0.0
        return self.narrative_survivors / self.narrative_evaluated


def compute_kish_ess(log_weights: np.ndarray) -> float:
    """Kishの有効サンプルサイズ (Σw)^2 / Σw^2 を計算する

    Args:
        log_weights: 対数重み (n,)

    Returns:
        1 から n の間の有効サンプルサイズ
    """
    w = Resampler.normalized_weights(log_weights)
    return float(1.0 / np.sum(w**2))


def summarize_weights(log_weights: np.ndarray) -> tuple[float, float]:
    """(ESS, 最大正規化重み) を返す"""
    w = Resampler.normalized_weights(log_weights)
    return float(1.0 / np.sum(w**2)), float(w.max())

