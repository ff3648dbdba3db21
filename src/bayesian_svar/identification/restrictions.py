"""識別制約の定義とバリデーション

- ゼロ制約: zero_irf (N, N)。(i, j) = 1 で変数 i のショック j への同時点応答を0に固定
- 符号制約: sign_irf (N, N, H)。値は {-1, 0, +1}、0 は制約なし
- ナラティブ制約: 特定期間の構造ショック（またはその寄与）の符号

制約の種類は `RestrictionKind` で表し、重み計算パイプラインはこれを一様に参照する。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from bayesian_svar.core.exceptions import InfeasibleRestriction, RestrictionValidationError


def _as_float_array(value: Any, name: str) -> np.ndarray:
    """制約配列を float の ndarray に変換する

    Raises:
        RestrictionValidationError: 数値でない要素や不揃いな入れ子リストの場合
    """
    try:
        return np.asarray(value, dtype=float)
    except (TypeError, ValueError) as e:
        msg = f"{name} は数値の矩形配列である必要があります"
        raise RestrictionValidationError(msg) from e


class RestrictionKind(Enum):
    """制約の種類"""

    ZERO = "zero"
    SIGN = "sign"
    NARRATIVE = "narrative"


class NarrativeKind(Enum):
    """ナラティブ制約の種類

    SHOCK_SIGN: 期間内の構造ショック ε_{j,t} がすべて指定符号
    CONTRIBUTION_SIGN: 期間内のショック j の変数 i への寄与が指定符号
    MOST_IMPORTANT: 寄与が指定符号かつ絶対値が全ショック中最大
    OVERWHELMING: 寄与が指定符号かつ絶対値が他ショックの絶対寄与の合計を上回る
    """

    SHOCK_SIGN = "shock_sign"
    CONTRIBUTION_SIGN = "contribution_sign"
    MOST_IMPORTANT = "most_important"
    OVERWHELMING = "overwhelming"

    @property
    def needs_data_column(self) -> bool:
        return self is not NarrativeKind.SHOCK_SIGN


@dataclass(frozen=True)
class NarrativeRestriction:
    """ナラティブ制約

    Attributes:
        shock_index: ショック j
        required_sign: 要求符号 (+1 または -1)
        kind: 制約の種類
        period_start: 開始期間（観測パネルの行インデックス）
        period_end: 終了期間（含む）
        data_column: 寄与を評価する変数 i（寄与系の制約で必須）
    """

    shock_index: int
    required_sign: int
    kind: NarrativeKind = NarrativeKind.SHOCK_SIGN
    period_start: int = 0
    period_end: int | None = None
    data_column: int | None = None

    @property
    def end(self) -> int:
        return self.period_start if self.period_end is None else self.period_end

    @property
    def length(self) -> int:
        return self.end - self.period_start + 1

    def validate(self, n_vars: int) -> None:
        """制約の整合性を確認する

        Raises:
            RestrictionValidationError: 不正な指定の場合
        """
        if not 0 <= self.shock_index < n_vars:
            msg = f"ナラティブ制約のショック番号 {self.shock_index} が範囲外です"
            raise RestrictionValidationError(msg)
        if self.required_sign not in (-1, 1):
            msg = f"ナラティブ制約の符号は +1 または -1: {self.required_sign}"
            raise RestrictionValidationError(msg)
        if self.end < self.period_start:
            msg = f"ナラティブ制約の期間が逆転しています: {self.period_start} > {self.end}"
            raise RestrictionValidationError(msg)
        if self.kind.needs_data_column:
            if self.data_column is None or not 0 <= self.data_column < n_vars:
                msg = f"{self.kind.value} 制約には有効な data_column が必要です"
                raise RestrictionValidationError(msg)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "NarrativeRestriction":
        """JSON辞書から構築する"""
        if not isinstance(raw, dict):
            msg = f"ナラティブ制約はオブジェクトで指定してください: {raw!r}"
            raise RestrictionValidationError(msg)
        try:
            return cls(
                shock_index=int(raw["shock_index"]),
                required_sign=int(raw["required_sign"]),
                kind=NarrativeKind(raw.get("kind", NarrativeKind.SHOCK_SIGN.value)),
                period_start=int(raw["period_start"]),
                period_end=None if raw.get("period_end") is None else int(raw["period_end"]),
                data_column=None if raw.get("data_column") is None else int(raw["data_column"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            msg = f"ナラティブ制約の指定が不正です: {raw}"
            raise RestrictionValidationError(msg) from e


@dataclass(frozen=True)
class RestrictionSet:
    """識別制約の集合

    Attributes:
        n_vars: 変数数 N
        zero_irf: (N, N) 0/1 行列
        sign_irf: (N, N, H) 符号配列
        narrative: ナラティブ制約のリスト
    """

    n_vars: int
    zero_irf: np.ndarray
    sign_irf: np.ndarray
    narrative: tuple[NarrativeRestriction, ...] = field(default_factory=tuple)

    @classmethod
    def build(
        cls,
        n_vars: int,
        zero_irf: Any = None,
        sign_irf: Any = None,
        narrative: list[NarrativeRestriction] | None = None,
    ) -> "RestrictionSet":
        """配列（またはリスト）から制約集合を構築し、検証する

        sign_irf に2次元配列を渡した場合はホライズン0のみの制約とみなす。
        """
        zero = np.zeros((n_vars, n_vars)) if zero_irf is None else _as_float_array(zero_irf, "zero_irf")
        sign = np.zeros((n_vars, n_vars, 1)) if sign_irf is None else _as_float_array(sign_irf, "sign_irf")
        if sign.ndim == 2:
            sign = sign[:, :, np.newaxis]
        restrictions = cls(
            n_vars=n_vars,
            zero_irf=zero,
            sign_irf=sign,
            narrative=tuple(narrative or ()),
        )
        restrictions.validate()
        return restrictions

    @classmethod
    def from_dict(cls, n_vars: int, raw: dict[str, Any]) -> "RestrictionSet":
        """JSON辞書 {"zero_irf", "sign_irf", "sign_narrative"} から構築する"""
        entries = raw.get("sign_narrative") or []
        if not isinstance(entries, list):
            msg = f"sign_narrative はリストで指定してください: {entries!r}"
            raise RestrictionValidationError(msg)
        narrative = [NarrativeRestriction.from_dict(r) for r in entries]
        return cls.build(
            n_vars,
            zero_irf=raw.get("zero_irf"),
            sign_irf=raw.get("sign_irf"),
            narrative=narrative,
        )

    @property
    def kinds(self) -> frozenset[RestrictionKind]:
        """含まれる制約の種類"""
        kinds = set()
        if np.any(self.zero_irf):
            kinds.add(RestrictionKind.ZERO)
        if np.any(self.sign_irf):
            kinds.add(RestrictionKind.SIGN)
        if self.narrative:
            kinds.add(RestrictionKind.NARRATIVE)
        return frozenset(kinds)

    @property
    def max_sign_horizon(self) -> int:
        """符号制約が課された最大ホライズン（制約なしの場合は -1）"""
        horizons = np.nonzero(np.any(self.sign_irf != 0, axis=(0, 1)))[0]
        return int(horizons.max()) if horizons.size else -1

    @property
    def n_zero_restrictions(self) -> int:
        return int(self.zero_irf.sum())

    def zero_rows(self, shock: int) -> np.ndarray:
        """ショック j にゼロ制約が課された変数インデックス"""
        return np.nonzero(self.zero_irf[:, shock])[0]

    def validate(self) -> None:
        """制約の形状・値・整合性を確認する

        Raises:
            RestrictionValidationError: 形状・値が不正、またはゼロと符号が矛盾する場合
            InfeasibleRestriction: ショック j のゼロ制約数が N - j を超える場合
        """
        n = self.n_vars
        if self.zero_irf.shape != (n, n):
            msg = f"zero_irf の形状が ({n}, {n}) ではありません: {self.zero_irf.shape}"
            raise RestrictionValidationError(msg)
        if not np.all(np.isin(self.zero_irf, (0.0, 1.0))):
            msg = "zero_irf の値は 0 または 1 である必要があります"
            raise RestrictionValidationError(msg)
        if self.sign_irf.ndim != 3 or self.sign_irf.shape[:2] != (n, n):
            msg = f"sign_irf の形状が ({n}, {n}, H) ではありません: {self.sign_irf.shape}"
            raise RestrictionValidationError(msg)
        if not np.all(np.isin(self.sign_irf, (-1.0, 0.0, 1.0))):
            msg = "sign_irf の値は -1, 0, +1 のいずれかである必要があります"
            raise RestrictionValidationError(msg)

        conflict = (self.zero_irf == 1) & (self.sign_irf[:, :, 0] != 0)
        if np.any(conflict):
            i, j = np.argwhere(conflict)[0]
            msg = f"変数 {i}・ショック {j} のホライズン0にゼロ制約と符号制約が同時に課されています"
            raise RestrictionValidationError(msg)

        # 列 j の零空間次元 N - z_j - j が1以上であること
        for j in range(n):
            z_j = int(self.zero_irf[:, j].sum())
            if z_j > n - 1 - j:
                msg = (
                    f"ショック {j} のゼロ制約数 {z_j} が上限 {n - 1 - j} を超えています"
                    "（ゼロ制約の多いショックを先に並べてください）"
                )
                raise InfeasibleRestriction(msg)

        for restriction in self.narrative:
            restriction.validate(n)
