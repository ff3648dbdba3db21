"""ベイズ推定モジュール

NIW事後分布、重点サンプリング、リサンプリング、推定結果の集約を提供する。
"""

from bayesian_svar.estimation.data_fetcher import SyntheticSVARGenerator, random_walk_example
from bayesian_svar.estimation.data_loader import VARData, build_var_matrices
from bayesian_svar.estimation.diagnostics import ImportanceDiagnostics, compute_kish_ess
from bayesian_svar.estimation.posterior import (
    PosteriorHyper,
    ReducedFormSampler,
    compute_posterior,
)
from bayesian_svar.estimation.priors import PriorSpec
from bayesian_svar.estimation.resampling import Resampler
from bayesian_svar.estimation.results import EstimationResult, compute_hpd
from bayesian_svar.estimation.sampler import SamplerConfig, SVARSampler, estimate

__all__ = [
    "EstimationResult",
    "ImportanceDiagnostics",
    "PosteriorHyper",
    "PriorSpec",
    "ReducedFormSampler",
    "Resampler",
    "SVARSampler",
    "SamplerConfig",
    "SyntheticSVARGenerator",
    "VARData",
    "build_var_matrices",
    "compute_hpd",
    "compute_kish_ess",
    "compute_posterior",
    "estimate",
    "random_walk_example",
]
