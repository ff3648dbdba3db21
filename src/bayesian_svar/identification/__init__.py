"""識別モジュール

ゼロ制約付き直交行列のサンプリング、符号制約と重点重み、ナラティブ制約を提供する。
"""

from bayesian_svar.identification.narrative import NarrativeOutcome, NarrativeWeighter
from bayesian_svar.identification.orthogonal import RestrictedOrthogonalSampler
from bayesian_svar.identification.restrictions import (
    NarrativeKind,
    NarrativeRestriction,
    RestrictionKind,
    RestrictionSet,
)
from bayesian_svar.identification.weights import SignFilterAndWeighter, WeightedDraw

__all__ = [
    "NarrativeKind",
    "NarrativeOutcome",
    "NarrativeRestriction",
    "NarrativeWeighter",
    "RestrictedOrthogonalSampler",
    "RestrictionKind",
    "RestrictionSet",
    "SignFilterAndWeighter",
    "WeightedDraw",
]
