"""
Model module: constraint value types and the validated constraint set.
"""

from kktmaxent.model.constraints import (
    VarAndValue,
    UnaryExclusion,
    PairwiseExclusion,
    EntropyConstraint,
    ConstraintSet,
)

__all__ = [
    "VarAndValue",
    "UnaryExclusion",
    "PairwiseExclusion",
    "EntropyConstraint",
    "ConstraintSet",
]
