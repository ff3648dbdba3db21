"""数値定数の定義

マジックナンバーを排除し、用途が分かる名前を付ける
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class NumericalConstants:
    """数値計算の定数"""

    finite_difference_step: float = 1e-6  # 中心差分の相対ステップ
    null_space_rcond: float = 1e-10  # 零空間判定の相対特異値閾値
    max_condition_number: float = 1e12  # A0 を可逆とみなす条件数の上限
    narrative_epsilon: float = 1e-15  # ナラティブ重みのゼロ除算回避


@dataclass(frozen=True)
class SamplingDefaults:
    """サンプリングの既定値"""

    n_keep: int = 1000
    n_posterior: int = 1000
    max_attempts: int = 100_000
    horizon: int = 20
    narrative_draws: int = 10_000
    batch_size: int = 256
    low_acceptance_warning: float = 0.01  # これ未満の受容率で警告


# デフォルトインスタンス
NUMERICAL_CONSTANTS = NumericalConstants()
SAMPLING_DEFAULTS = SamplingDefaults()
