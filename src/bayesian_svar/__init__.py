"""Bayesian SVAR - ゼロ・符号・ナラティブ制約付きベイズ構造VAR"""

from importlib.metadata import PackageNotFoundError, version


def _resolve_version() -> str:
    """配布メタデータからバージョンを解決する。"""
    try:
        return version("bsvar")
    except PackageNotFoundError:
        # インストール前のローカル実行時フォールバック
        return "0+unknown"


__version__ = _resolve_version()

from bayesian_svar.core.mapper import ReducedFormDraw, StructuralDraw, StructuralMapper
from bayesian_svar.estimation.data_loader import VARData
from bayesian_svar.estimation.priors import PriorSpec
from bayesian_svar.estimation.results import EstimationResult
from bayesian_svar.estimation.sampler import SamplerConfig, SVARSampler, estimate
from bayesian_svar.identification.restrictions import (
    NarrativeKind,
    NarrativeRestriction,
    RestrictionSet,
)

__all__ = [
    "EstimationResult",
    "NarrativeKind",
    "NarrativeRestriction",
    "PriorSpec",
    "ReducedFormDraw",
    "RestrictionSet",
    "SVARSampler",
    "SamplerConfig",
    "StructuralDraw",
    "StructuralMapper",
    "VARData",
    "estimate",
]
