"""微分可能写像とヤコビアン計算戦略

重み計算はヤコビアンの求め方に依存しない。写像は `DifferentiableMap`
プロトコルを満たし、ヤコビアンは `JacobianStrategy` が計算する。

- CentralDifference: 中心差分による数値微分
- AnalyticFirst: 写像が解析的ヤコビアンを持つ場合はそれを使い、なければ中心差分
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

import numpy as np

from bayesian_svar.core.constants import NUMERICAL_CONSTANTS


@runtime_checkable
class DifferentiableMap(Protocol):
    """R^n → R^m の写像"""

    def __call__(self, x: np.ndarray) -> np.ndarray: ...


@runtime_checkable
class AnalyticMap(DifferentiableMap, Protocol):
    """解析的ヤコビアンを持つ写像"""

    def analytic_jacobian(self, x: np.ndarray) -> np.ndarray: ...


class JacobianStrategy(Protocol):
    """ヤコビアン計算戦略"""

    def jacobian(self, fn: Callable[[np.ndarray], np.ndarray], x: np.ndarray) -> np.ndarray: ...


class CentralDifference:
    """中心差分によるヤコビアン

    ステップ幅は step * max(1, |x_i|)。
    """

    def __init__(self, step: float = NUMERICAL_CONSTANTS.finite_difference_step) -> None:
        self.step = step

    def jacobian(self, fn: Callable[[np.ndarray], np.ndarray], x: np.ndarray) -> np.ndarray:
        """(m, n) ヤコビアンを返す"""
        x = np.asarray(x, dtype=float)
        n = x.size
        columns = []
        for i in range(n):
            h = self.step * max(1.0, abs(x[i]))
            e = np.zeros(n)
            e[i] = h
            columns.append((np.asarray(fn(x + e)) - np.asarray(fn(x - e))) / (2.0 * h))
        return np.column_stack(columns)


class AnalyticFirst:
    """解析的ヤコビアンを優先する戦略"""

    def __init__(self, fallback: JacobianStrategy | None = None) -> None:
        self.fallback = fallback or CentralDifference()

    def jacobian(self, fn: Callable[[np.ndarray], np.ndarray], x: np.ndarray) -> np.ndarray:
        if isinstance(fn, AnalyticMap):
            return fn.analytic_jacobian(x)
        return self.fallback.jacobian(fn, x)


def make_strategy(name: str) -> JacobianStrategy:
    """名前からヤコビアン戦略を生成する

    Args:
        name: "central" または "analytic"
    """
    match name:
        case "central":
            return CentralDifference()
        case "analytic":
            return AnalyticFirst()
        case _:
            msg = f"不明なヤコビアン戦略: {name}（'central' または 'analytic'）"
            raise ValueError(msg)
