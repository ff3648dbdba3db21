"""ゼロ・符号・ナラティブ制約付きSVARの重点サンプラー

1. NIW事後分布から (B, Σ) をドロー
2. ゼロ制約を満たす Q をドローし (A0, A+) に写像
3. 符号制約で棄却し、通過したドローに対数重みを付けてアリーナに格納
4. Nkeep 個集まるまで繰り返す（試行上限あり）
5. 重みに比例して S 個にリサンプリング
6. ナラティブ制約がある場合は棄却・重み付けし、再度 S 個にリサンプリング
7. 最終ドローについて IRF / FEVD / 構造ショックを計算

各試行 i の乱数は default_rng([seed, stream, i]) で独立に決まるため、
逐次実行と並列実行の結果は一致する。
"""

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
from joblib import Parallel, delayed

from bayesian_svar.core.constants import NUMERICAL_CONSTANTS, SAMPLING_DEFAULTS
from bayesian_svar.core.exceptions import (
    ConvergenceError,
    InfeasibleRestriction,
    NumericalError,
    SingularMatrixError,
    ValidationError,
)
from bayesian_svar.core.irf import (
    forecast_error_variance_decomposition,
    historical_shocks,
    impulse_responses,
)
from bayesian_svar.core.jacobian import make_strategy
from bayesian_svar.core.mapper import StructuralDraw
from bayesian_svar.estimation.data_loader import VARData
from bayesian_svar.estimation.diagnostics import ImportanceDiagnostics, summarize_weights
from bayesian_svar.estimation.posterior import (
    PosteriorHyper,
    ReducedFormSampler,
    compute_posterior,
)
from bayesian_svar.estimation.priors import PriorSpec
from bayesian_svar.estimation.resampling import Resampler
from bayesian_svar.estimation.results import EstimationResult
from bayesian_svar.identification.narrative import NarrativeOutcome, NarrativeWeighter
from bayesian_svar.identification.orthogonal import RestrictedOrthogonalSampler
from bayesian_svar.identification.restrictions import RestrictionKind, RestrictionSet
from bayesian_svar.identification.weights import SignFilterAndWeighter, WeightedDraw

logger = logging.getLogger(__name__)

# 乱数ストリーム
ATTEMPT_STREAM = 0
STAGE1_STREAM = 1
NARRATIVE_STREAM = 2
FINAL_STREAM = 3

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class SamplerConfig:
    """サンプラー設定"""

    n_keep: int = SAMPLING_DEFAULTS.n_keep
    n_posterior: int = SAMPLING_DEFAULTS.n_posterior
    max_attempts: int = SAMPLING_DEFAULTS.max_attempts
    seed: int = 0
    horizon: int = SAMPLING_DEFAULTS.horizon
    n_workers: int = 1
    executor: str = "thread"
    batch_size: int = SAMPLING_DEFAULTS.batch_size
    narrative_draws: int = SAMPLING_DEFAULTS.narrative_draws
    narrative_epsilon: float = NUMERICAL_CONSTANTS.narrative_epsilon
    normalize_signs: bool = True
    jacobian: str = "analytic"
    low_acceptance_warning: float = SAMPLING_DEFAULTS.low_acceptance_warning

    def validate(self) -> None:
        """設定値を確認する

        Raises:
            ValidationError: 不正な値の場合
        """
        for name in ("n_keep", "n_posterior", "max_attempts", "batch_size", "narrative_draws", "n_workers"):
            if getattr(self, name) < 1:
                msg = f"{name} は1以上である必要があります: {getattr(self, name)}"
                raise ValidationError(msg)
        if self.horizon < 0:
            msg = f"horizon は0以上である必要があります: {self.horizon}"
            raise ValidationError(msg)
        if self.seed < 0:
            msg = f"seed は0以上である必要があります: {self.seed}"
            raise ValidationError(msg)
        if self.executor not in ("thread", "process"):
            msg = f"executor は 'thread' または 'process': {self.executor}"
            raise ValidationError(msg)
        if self.jacobian not in ("central", "analytic"):
            msg = f"jacobian は 'central' または 'analytic': {self.jacobian}"
            raise ValidationError(msg)


@dataclass(frozen=True)
class AttemptResult:
    """1候補ドローの結果（reason が None なら受容）"""

    index: int
    draw: WeightedDraw | None
    reason: str | None


class AttemptEvaluator:
    """試行インデックスから候補ドローを生成・評価する

    プロセス間で受け渡せるよう、状態は事後超パラメータと制約のみ。
    """

    def __init__(
        self,
        posterior: PosteriorHyper,
        restrictions: RestrictionSet,
        seed: int,
        jacobian: str = "analytic",
        normalize_signs: bool = True,
    ) -> None:
        self._reduced_sampler = ReducedFormSampler(posterior)
        self._orthogonal = RestrictedOrthogonalSampler(restrictions)
        self._weighter = SignFilterAndWeighter(
            restrictions,
            n_regressors=posterior.n_regressors,
            strategy=make_strategy(jacobian),
        )
        self._seed = seed
        self._normalize = normalize_signs

    def __call__(self, index: int) -> AttemptResult:
        rng = np.random.default_rng([self._seed, ATTEMPT_STREAM, index])
        try:
            reduced = self._reduced_sampler.draw(rng)
            Q = self._orthogonal.draw(reduced, rng)
            weighted = self._weighter.evaluate(reduced, Q, normalize=self._normalize)
        except InfeasibleRestriction:
            return AttemptResult(index=index, draw=None, reason="infeasible")
        except SingularMatrixError:
            return AttemptResult(index=index, draw=None, reason="singular")
        except NumericalError:
            return AttemptResult(index=index, draw=None, reason="numerical")

        if weighted is None:
            return AttemptResult(index=index, draw=None, reason="sign")
        return AttemptResult(index=index, draw=weighted, reason=None)


class NarrativeEvaluator:
    """プールインデックスごとにナラティブ判定と重み計算を行う"""

    def __init__(
        self,
        weighter: NarrativeWeighter,
        A0: np.ndarray,
        A_plus: np.ndarray,
        Y: np.ndarray,
        X: np.ndarray,
        seed: int,
    ) -> None:
        self._weighter = weighter
        self._A0 = A0
        self._A_plus = A_plus
        self._Y = Y
        self._X = X
        self._seed = seed

    def __call__(self, pool_index: int) -> NarrativeOutcome:
        rng = np.random.default_rng([self._seed, NARRATIVE_STREAM, pool_index])
        structural = StructuralDraw(A0=self._A0[pool_index], A_plus=self._A_plus[pool_index])
        try:
            return self._weighter.evaluate(structural, self._Y, self._X, rng)
        except NumericalError:
            return NarrativeOutcome(satisfied=False, log_weight=-np.inf, successes=0, low_confidence=False)


@dataclass
class DrawArena:
    """受容ドローを格納する事前確保領域"""

    A0: np.ndarray
    A_plus: np.ndarray
    B: np.ndarray
    Sigma: np.ndarray
    Q: np.ndarray
    log_weights: np.ndarray
    cursor: int = 0

    @classmethod
    def allocate(cls, capacity: int, n_vars: int, n_regressors: int) -> "DrawArena":
        return cls(
            A0=np.zeros((capacity, n_vars, n_vars)),
            A_plus=np.zeros((capacity, n_regressors, n_vars)),
            B=np.zeros((capacity, n_regressors, n_vars)),
            Sigma=np.zeros((capacity, n_vars, n_vars)),
            Q=np.zeros((capacity, n_vars, n_vars)),
            log_weights=np.zeros(capacity),
        )

    @property
    def capacity(self) -> int:
        return self.log_weights.size

    @property
    def full(self) -> bool:
        return self.cursor >= self.capacity

    def store(self, draw: WeightedDraw) -> None:
        c = self.cursor
        self.A0[c] = draw.structural.A0
        self.A_plus[c] = draw.structural.A_plus
        self.B[c] = draw.reduced.B
        self.Sigma[c] = draw.reduced.Sigma
        self.Q[c] = draw.Q
        self.log_weights[c] = draw.log_weight
        self.cursor += 1


class SVARSampler:
    """ゼロ・符号・ナラティブ制約付きSVARの事後サンプラー"""

    def __init__(
        self,
        data: VARData,
        restrictions: RestrictionSet,
        prior: PriorSpec | None = None,
        config: SamplerConfig | None = None,
    ) -> None:
        """
        Args:
            data: 推定データ
            restrictions: 識別制約
            prior: NIW事前分布。Noneの場合は弱情報事前分布。
            config: サンプラー設定

        Raises:
            ValidationError: 設定・制約・データが不正な場合
            InfeasibleRestriction: ゼロ制約数が過剰な場合
            NumericalError: 事後超パラメータが計算できない場合
        """
        self._config = config or SamplerConfig()
        self._config.validate()
        if restrictions.n_vars != data.n_vars:
            msg = f"制約の変数数 {restrictions.n_vars} がデータの変数数 {data.n_vars} と一致しません"
            raise ValidationError(msg)
        restrictions.validate()

        self._data = data
        self._restrictions = restrictions
        self._prior = prior or PriorSpec.diffuse(data.n_vars, data.n_regressors)
        self._narrative = NarrativeWeighter(
            restrictions.narrative,
            data,
            n_draws=self._config.narrative_draws,
            epsilon=self._config.narrative_epsilon,
        )
        self._posterior = compute_posterior(data.Y, data.X, self._prior)
        self._resampler = Resampler()

    @property
    def posterior(self) -> PosteriorHyper:
        return self._posterior

    @property
    def config(self) -> SamplerConfig:
        return self._config

    def _make_parallel(self) -> Parallel:
        """joblib のワーカープールを生成する（n_workers=1 は逐次実行）

        結果は入力順に返るため、ワーカー数によらず同じドロー列になる。
        """
        cfg = self._config
        return Parallel(n_jobs=cfg.n_workers, prefer=f"{cfg.executor}s")

    def collect(
        self,
        parallel: Parallel | None = None,
        progress: ProgressCallback | None = None,
    ) -> tuple[DrawArena, ImportanceDiagnostics]:
        """Nkeep 個の受容ドローを集める

        Raises:
            ConvergenceError: 試行上限までに Nkeep 個集まらない場合
        """
        cfg = self._config
        if parallel is None:
            parallel = Parallel(n_jobs=1)
        evaluator = AttemptEvaluator(
            self._posterior,
            self._restrictions,
            seed=cfg.seed,
            jacobian=cfg.jacobian,
            normalize_signs=cfg.normalize_signs,
        )
        arena = DrawArena.allocate(cfg.n_keep, self._data.n_vars, self._data.n_regressors)
        rejections: Counter[str] = Counter()
        attempts = 0

        while not arena.full and attempts < cfg.max_attempts:
            batch = range(attempts, min(attempts + cfg.batch_size, cfg.max_attempts))
            for result in parallel(delayed(evaluator)(i) for i in batch):
                attempts += 1
                if result.draw is None:
                    rejections[result.reason or "unknown"] += 1
                    continue
                arena.store(result.draw)
                if arena.full:
                    break
            if progress is not None:
                progress(arena.cursor, attempts)

        diagnostics = ImportanceDiagnostics(
            attempts=attempts,
            accepted=arena.cursor,
            rejections=dict(rejections),
        )
        logger.info(
            "ゼロ・符号制約: 受容 %d / 試行 %d (受容率 %.4f)",
            arena.cursor,
            attempts,
            diagnostics.acceptance_rate,
        )

        if not arena.full:
            msg = (
                f"試行上限 {cfg.max_attempts} に達しましたが受容ドローは "
                f"{arena.cursor} / {cfg.n_keep} でした（受容率 {diagnostics.acceptance_rate:.4f}）"
            )
            raise ConvergenceError(msg, attempts=attempts, accepted=arena.cursor)
        if diagnostics.acceptance_rate < cfg.low_acceptance_warning:
            logger.warning(
                "受容率 %.4f が警告閾値 %.4f を下回っています",
                diagnostics.acceptance_rate,
                cfg.low_acceptance_warning,
            )

        diagnostics.ess, diagnostics.max_weight = summarize_weights(arena.log_weights)
        logger.info("ゼロ・符号重みの有効サンプルサイズ: %.1f", diagnostics.ess)
        return arena, diagnostics

    def apply_narrative(
        self,
        arena: DrawArena,
        stage1: np.ndarray,
        diagnostics: ImportanceDiagnostics,
        parallel: Parallel | None = None,
    ) -> tuple[np.ndarray, np.ndarray]:
        """第1段で選ばれたドローにナラティブ制約を適用し、最終リサンプリングを行う

        Args:
            arena: 受容ドロー
            stage1: 第1段リサンプリングのプールインデックス (S,)
            diagnostics: 更新する診断

        Returns:
            (narrative_log_weights (Nkeep,), final_positions (S,))

        Raises:
            ConvergenceError: 実データでナラティブ制約を満たすドローがない場合
        """
        cfg = self._config
        if parallel is None:
            parallel = Parallel(n_jobs=1)
        narrative_log_weights = np.full(arena.capacity, np.nan)
        unique = np.unique(stage1)
        evaluator = NarrativeEvaluator(
            self._narrative,
            arena.A0,
            arena.A_plus,
            self._data.Y,
            self._data.X,
            seed=cfg.seed,
        )

        outcomes = parallel(delayed(evaluator)(i) for i in unique.tolist())
        low_confidence = []
        for pool_index, outcome in zip(unique, outcomes, strict=True):
            narrative_log_weights[pool_index] = outcome.log_weight
            if outcome.low_confidence:
                low_confidence.append(int(pool_index))

        stage1_log_weights = narrative_log_weights[stage1]
        survivors = np.isfinite(stage1_log_weights)
        diagnostics.narrative_evaluated = unique.size
        diagnostics.narrative_survivors = int(np.isfinite(narrative_log_weights[unique]).sum())
        diagnostics.low_confidence = low_confidence
        logger.info(
            "ナラティブ制約: 生存 %d / %d (生存率 %.4f)",
            diagnostics.narrative_survivors,
            diagnostics.narrative_evaluated,
            diagnostics.narrative_survival_rate,
        )
        if low_confidence:
            logger.warning(
                "%d 個のドローでナラティブ制約のシミュレーション成功数が0でした（低信頼）",
                len(low_confidence),
            )

        if not np.any(survivors):
            msg = "実データでナラティブ制約を満たすドローがありません"
            raise ConvergenceError(msg, attempts=diagnostics.attempts, accepted=0)

        diagnostics.narrative_ess, _ = summarize_weights(stage1_log_weights)
        rng = np.random.default_rng([cfg.seed, FINAL_STREAM, 0])
        final_positions = self._resampler.resample(stage1_log_weights, cfg.n_posterior, rng)
        return narrative_log_weights, final_positions

    def run(self, progress: ProgressCallback | None = None) -> EstimationResult:
        """サンプリングを実行する

        Args:
            progress: (受容数, 試行数) を受け取るコールバック

        Returns:
            EstimationResult
        """
        cfg = self._config
        with self._make_parallel() as parallel:
            arena, diagnostics = self.collect(parallel, progress)

            rng = np.random.default_rng([cfg.seed, STAGE1_STREAM, 0])
            stage1 = self._resampler.resample(arena.log_weights, cfg.n_posterior, rng)

            if RestrictionKind.NARRATIVE in self._restrictions.kinds:
                narrative_log_weights, final_positions = self.apply_narrative(arena, stage1, diagnostics, parallel)
            else:
                narrative_log_weights = np.zeros(arena.capacity)
                final_positions = np.arange(cfg.n_posterior)

        pool_indices = stage1[final_positions]
        return self._build_result(arena, diagnostics, narrative_log_weights, stage1, final_positions, pool_indices)

    def _build_result(
        self,
        arena: DrawArena,
        diagnostics: ImportanceDiagnostics,
        narrative_log_weights: np.ndarray,
        stage1: np.ndarray,
        final_positions: np.ndarray,
        pool_indices: np.ndarray,
    ) -> EstimationResult:
        horizon = self._config.horizon
        irfs, fevds, shocks = [], [], []
        for idx in pool_indices:
            structural = StructuralDraw(A0=arena.A0[idx], A_plus=arena.A_plus[idx])
            irf = impulse_responses(structural, horizon)
            irfs.append(irf)
            fevds.append(forecast_error_variance_decomposition(irf))
            shocks.append(historical_shocks(structural, self._data.Y, self._data.X))

        return EstimationResult(
            A0=arena.A0[pool_indices],
            A_plus=arena.A_plus[pool_indices],
            B=arena.B[pool_indices],
            Sigma=arena.Sigma[pool_indices],
            Q=arena.Q[pool_indices],
            irf=np.stack(irfs),
            fevd=np.stack(fevds),
            shocks=np.stack(shocks),
            log_weights=arena.log_weights.copy(),
            narrative_log_weights=narrative_log_weights,
            pool_indices=pool_indices,
            stage1_indices=stage1,
            final_indices=final_positions,
            diagnostics=diagnostics,
            variable_names=list(self._data.variable_names),
        )


def estimate(
    data: VARData,
    restrictions: RestrictionSet,
    prior: PriorSpec | None = None,
    config: SamplerConfig | None = None,
    progress: ProgressCallback | None = None,
) -> EstimationResult:
    """SVARSampler を構築して実行する"""
    return SVARSampler(data, restrictions, prior=prior, config=config).run(progress)
