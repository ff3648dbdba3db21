"""ナラティブ制約の判定と重み

ナラティブ制約は特定期間の構造ショック（またはその歴史的寄与）の符号・大きさに
関する制約である。各ドローについて

1. 実データから復元した構造ショックが制約を満たすかを判定し、満たさないドローを棄却
2. 満たすドローについて、標準正規ショックの M 本のシミュレーションで
   制約が満たされる確率を推定し、重み M / (成功数 + ε) を付ける

重みは対数で扱う。成功数が0の場合は例外ではなく低信頼フラグを立てる。
"""

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

import numpy as np

from bayesian_svar.core.constants import NUMERICAL_CONSTANTS
from bayesian_svar.core.exceptions import DataValidationError
from bayesian_svar.core.irf import historical_decomposition, historical_shocks, impulse_responses
from bayesian_svar.core.mapper import StructuralDraw
from bayesian_svar.identification.restrictions import (
    NarrativeKind,
    NarrativeRestriction,
)

if TYPE_CHECKING:
    from bayesian_svar.estimation.data_loader import VARData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NarrativeOutcome:
    """1ドローに対するナラティブ評価結果

    Attributes:
        satisfied: 実データのショックが全制約を満たすか
        log_weight: 対数ナラティブ重み（棄却時は -inf）
        successes: シミュレーションで全制約を満たした本数
        low_confidence: 成功数が0で重みが ε に支配されているか
    """

    satisfied: bool
    log_weight: float
    successes: int
    low_confidence: bool


def restriction_holds(
    restriction: NarrativeRestriction,
    irf: np.ndarray,
    shocks: np.ndarray,
    offset: int = 0,
) -> np.ndarray | bool:
    """ナラティブ制約が成り立つかを判定する

    Args:
        restriction: 判定する制約（期間は shocks の時間インデックス + offset）
        irf: IRFキューブ (N, N, H+1)
        shocks: 構造ショック (T, N) または (M, T, N)
        offset: 制約の期間から差し引く時間オフセット

    Returns:
        shocks が2次元ならスカラー、3次元なら (M,) の真偽値
    """
    start = restriction.period_start - offset
    end = restriction.end - offset
    j = restriction.shock_index
    sign = restriction.required_sign

    if restriction.kind is NarrativeKind.SHOCK_SIGN:
        return np.all(sign * shocks[..., start : end + 1, j] > 0, axis=-1)

    contributions = historical_decomposition(irf, shocks, restriction.data_column, start, end)
    own = contributions[..., j]
    signed = sign * own > 0
    magnitude = np.abs(contributions)

    match restriction.kind:
        case NarrativeKind.CONTRIBUTION_SIGN:
            return signed
        case NarrativeKind.MOST_IMPORTANT:
            return signed & (np.abs(own) >= magnitude.max(axis=-1))
        case NarrativeKind.OVERWHELMING:
            others = magnitude.sum(axis=-1) - np.abs(own)
            return signed & (np.abs(own) > others)
        case _:
            msg = f"未対応のナラティブ制約: {restriction.kind}"
            raise ValueError(msg)


class NarrativeWeighter:
    """ナラティブ制約による棄却と重み付け

    制約の期間は観測パネルの行インデックスで指定され、ラグ数 p を差し引いて
    サンプル期間のインデックスに変換される。
    """

    def __init__(
        self,
        restrictions: tuple[NarrativeRestriction, ...],
        data: "VARData",
        n_draws: int = 10_000,
        epsilon: float = NUMERICAL_CONSTANTS.narrative_epsilon,
    ) -> None:
        """
        Args:
            restrictions: ナラティブ制約（観測パネルの行インデックス）
            data: 推定データ（期間インデックスの変換に使う）
            n_draws: シミュレーション本数 M
            epsilon: ゼロ除算回避の微小量

        Raises:
            DataValidationError: 制約の期間がサンプル外の場合
        """
        if n_draws < 1:
            msg = f"narrative_draws は1以上である必要があります: {n_draws}"
            raise DataValidationError(msg)

        self._restrictions = tuple(
            replace(
                r,
                period_start=data.to_sample_index(r.period_start),
                period_end=data.to_sample_index(r.end),
            )
            for r in restrictions
        )
        self.n_draws = n_draws
        self.epsilon = epsilon
        if self._restrictions:
            self._window_start = min(r.period_start for r in self._restrictions)
            self._window_end = max(r.end for r in self._restrictions)
        else:
            self._window_start = self._window_end = 0
        self._irf_horizon = max((r.length - 1 for r in self._restrictions), default=0)

    @property
    def active(self) -> bool:
        return bool(self._restrictions)

    @property
    def window(self) -> tuple[int, int]:
        """全制約を覆う期間（サンプル期間のインデックス、両端含む）"""
        return self._window_start, self._window_end

    def check(self, structural: StructuralDraw, Y: np.ndarray, X: np.ndarray) -> bool:
        """実データのショックで全制約が成り立つかを判定する"""
        shocks = historical_shocks(structural, Y, X)
        irf = impulse_responses(structural, self._irf_horizon)
        return all(bool(restriction_holds(r, irf, shocks)) for r in self._restrictions)

    def simulate_successes(self, structural: StructuralDraw, rng: np.random.Generator) -> int:
        """標準正規ショックのシミュレーションで全制約を満たす本数を数える"""
        n = structural.n_vars
        length = self._window_end - self._window_start + 1
        irf = impulse_responses(structural, self._irf_horizon)
        paths = rng.standard_normal((self.n_draws, length, n))

        holds = np.ones(self.n_draws, dtype=bool)
        for r in self._restrictions:
            holds &= restriction_holds(r, irf, paths, offset=self._window_start)
        return int(holds.sum())

    def evaluate(
        self,
        structural: StructuralDraw,
        Y: np.ndarray,
        X: np.ndarray,
        rng: np.random.Generator,
    ) -> NarrativeOutcome:
        """1ドローを判定し、通過すれば対数重みを計算する

        Args:
            structural: 構造ドロー
            Y: 被説明変数 (T, N)
            X: 説明変数 (T, K)
            rng: このドロー専用の乱数生成器

        Returns:
            NarrativeOutcome
        """
        if not self.active:
            return NarrativeOutcome(satisfied=True, log_weight=0.0, successes=self.n_draws, low_confidence=False)

        if not self.check(structural, Y, X):
            return NarrativeOutcome(satisfied=False, log_weight=-np.inf, successes=0, low_confidence=False)

        successes = self.simulate_successes(structural, rng)
        log_weight = float(np.log(self.n_draws) - np.log(successes + self.epsilon))
        if successes == 0:
            logger.debug("ナラティブ制約のシミュレーション成功数が0です")
        return NarrativeOutcome(
            satisfied=True,
            log_weight=log_weight,
            successes=successes,
            low_confidence=successes == 0,
        )
