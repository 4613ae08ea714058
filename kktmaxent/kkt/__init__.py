"""
KKT module: unknown-vector nodes and the entropy KKT system.
"""

from kktmaxent.kkt.nodes import (
    NodeKind,
    JointProbability,
    NormalizationMultiplier,
    MarginalConsistency,
)
from kktmaxent.kkt.model import MULT, EntropyKKTModel

__all__ = [
    "NodeKind",
    "JointProbability",
    "NormalizationMultiplier",
    "MarginalConsistency",
    "MULT",
    "EntropyKKTModel",
]
