"""推定結果

リサンプリング後の構造ドロー・誘導形ドロー・IRF/FEVD・構造ショックの束と、
事後分布のサマリーを提供する。
"""

from dataclasses import dataclass

import numpy as np

from bayesian_svar.estimation.diagnostics import ImportanceDiagnostics


@dataclass
class PosteriorSummary:
    """単一要素の事後分布サマリー

    Attributes:
        name: 要素名
        mean: 事後平均
        median: 事後中央値
        std: 事後標準偏差
        hpd_lower: HPD下限
        hpd_upper: HPD上限
    """

    name: str
    mean: float
    median: float
    std: float
    hpd_lower: float
    hpd_upper: float


@dataclass
class EstimationResult:
    """推定結果

    先頭軸はすべて最終ドロー (S,)。

    Attributes:
        A0: 同時点係数 (S, N, N)
        A_plus: ラグ・定数項係数 (S, K, N)
        B: 誘導形係数 (S, K, N)
        Sigma: 誤差共分散 (S, N, N)
        Q: 直交行列 (S, N, N)
        irf: インパルス応答 (S, N, N, H+1)
        fevd: 予測誤差分散分解 (S, N, N, H+1)
        shocks: 構造ショック (S, T, N)
        log_weights: プール全体のゼロ・符号対数重み (Nkeep,)
        narrative_log_weights: プール全体のナラティブ対数重み (Nkeep,)。
            未評価は NaN、実データで棄却されたものは -inf
        pool_indices: 各最終ドローのプールインデックス (S,)
        stage1_indices: 第1段リサンプリングで選ばれたプールインデックス (S,)
        final_indices: 最終リサンプリングで選ばれた第1段の位置 (S,)
        diagnostics: 重点サンプリング診断
        variable_names: 変数名
    """

    A0: np.ndarray
    A_plus: np.ndarray
    B: np.ndarray
    Sigma: np.ndarray
    Q: np.ndarray
    irf: np.ndarray
    fevd: np.ndarray
    shocks: np.ndarray
    log_weights: np.ndarray
    narrative_log_weights: np.ndarray
    pool_indices: np.ndarray
    stage1_indices: np.ndarray
    final_indices: np.ndarray
    diagnostics: ImportanceDiagnostics
    variable_names: list[str]

    _STACKS = ("A0", "A_plus", "B", "Sigma", "Q", "irf", "fevd", "shocks")

    @property
    def n_draws(self) -> int:
        return self.A0.shape[0]

    @property
    def n_vars(self) -> int:
        return self.A0.shape[1]

    @property
    def horizon(self) -> int:
        return self.irf.shape[3] - 1

    @property
    def combined_log_weights(self) -> np.ndarray:
        """最終ドローごとの log w_signzero + log w_narrative

        重みの積による結合は未検証の仮定として扱う。
        """
        lw = self.log_weights[self.pool_indices]
        nw = self.narrative_log_weights[self.pool_indices]
        return lw + np.where(np.isnan(nw), 0.0, nw)

    def posterior_mean(self, name: str) -> np.ndarray:
        """指定した束の事後平均

        Args:
            name: "A0", "A_plus", "B", "Sigma", "Q", "irf", "fevd", "shocks" のいずれか

        Raises:
            KeyError: 名前が不正な場合
        """
        if name not in self._STACKS:
            msg = f"'{name}' は結果に含まれません（{', '.join(self._STACKS)}）"
            raise KeyError(msg)
        stack: np.ndarray = getattr(self, name)
        return stack.mean(axis=0)

    def irf_quantiles(self, quantiles: tuple[float, ...] = (0.16, 0.5, 0.84)) -> np.ndarray:
        """IRFの分位点

        Returns:
            (len(quantiles), N, N, H+1)
        """
        return np.quantile(self.irf, quantiles, axis=0)

    def irf_hpd(self, alpha: float = 0.32) -> tuple[np.ndarray, np.ndarray]:
        """IRFの各セルについてHPD区間を計算する

        Returns:
            (lower, upper) 各 (N, N, H+1)
        """
        flat = self.irf.reshape(self.n_draws, -1)
        bounds = np.array([compute_hpd(flat[:, c], alpha) for c in range(flat.shape[1])])
        shape = self.irf.shape[1:]
        return bounds[:, 0].reshape(shape), bounds[:, 1].reshape(shape)

    def impact_summaries(self, alpha: float = 0.1) -> list[PosteriorSummary]:
        """同時点応答 (A0^{-1})' の各要素のサマリー"""
        summaries = []
        for i, var in enumerate(self.variable_names):
            for j in range(self.n_vars):
                samples = self.irf[:, i, j, 0]
                lower, upper = compute_hpd(samples, alpha)
                summaries.append(
                    PosteriorSummary(
                        name=f"{var}<-e{j}",
                        mean=float(samples.mean()),
                        median=float(np.median(samples)),
                        std=float(samples.std()),
                        hpd_lower=lower,
                        hpd_upper=upper,
                    )
                )
        return summaries

    def summary_table(self, alpha: float = 0.1) -> str:
        """同時点応答のマークダウン形式サマリーテーブルを生成する

        Returns:
            マークダウンテーブル文字列
        """
        level = int(round((1.0 - alpha) * 100))
        header = (
            f"| Response | Post. Mean | Post. Median | Post. Std "
            f"| {level}% HPD Lower | {level}% HPD Upper |"
        )
        separator = "|----------|-----------|-------------|----------|--------------|--------------|"

        rows = [header, separator]
        for s in self.impact_summaries(alpha):
            row = (
                f"| {s.name:8s} "
                f"| {s.mean:9.4f} "
                f"| {s.median:11.4f} "
                f"| {s.std:8.4f} "
                f"| {s.hpd_lower:12.4f} "
                f"| {s.hpd_upper:12.4f} |"
            )
            rows.append(row)

        return "\n".join(rows)

    def to_npz(self, path: str) -> None:
        """全ての束と重みを npz 形式で保存する"""
        np.savez(
            path,
            **{name: getattr(self, name) for name in self._STACKS},
            log_weights=self.log_weights,
            narrative_log_weights=self.narrative_log_weights,
            pool_indices=self.pool_indices,
            stage1_indices=self.stage1_indices,
            final_indices=self.final_indices,
            variable_names=np.array(self.variable_names),
        )


def compute_hpd(samples: np.ndarray, alpha: float = 0.1) -> tuple[float, float]:
    """Highest Posterior Density (HPD) 区間を計算する

    (1-alpha)*100% の確率質量を含む最短の区間を求める。

    Args:
        samples: 1次元の事後サンプル配列
        alpha: 有意水準 (0.1 で 90% HPD)

    Returns:
        (lower, upper) HPD区間の下限と上限
    """
    sorted_samples = np.sort(samples)
    n = len(sorted_samples)
    interval_size = min(max(int(np.ceil((1.0 - alpha) * n)), 2), n)

    widths = sorted_samples[interval_size - 1 :] - sorted_samples[: n - interval_size + 1]
    best_idx = int(np.argmin(widths))

    return float(sorted_samples[best_idx]), float(sorted_samples[best_idx + interval_size - 1])
