"""
kktmaxent/kkt/nodes.py

Node types of the flat KKT unknown vector.

Every position of the unknown vector is described by exactly one node:
- JointProbability: primal probability of one joint outcome of a pair
- NormalizationMultiplier: dual variable for "the pair's outcomes sum to 1"
- MarginalConsistency: dual variable for "two partner-derived marginals agree"

Nodes reference each other by integer index into the same node list.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Tuple, Union

from kktmaxent.model.constraints import VarAndValue


class NodeKind(Enum):
    """Kind of a position in the unknown vector."""
    JOINT = 1          # Primal probability
    NORMALIZATION = 2  # Sum-to-one multiplier
    CONSISTENCY = 3    # Marginal-agreement multiplier


@dataclass(frozen=True)
class JointProbability:
    """
    Probability of the joint outcome (first, second) of a required pair.

    Attributes:
        first: Lower-indexed variable and its value
        second: Higher-indexed variable and its value
        normalizers: Multiplier indices this node contributes to positively
        negated: Consistency multiplier indices this node contributes to negatively
    """
    first: VarAndValue
    second: VarAndValue
    normalizers: FrozenSet[int]
    negated: FrozenSet[int]

    kind = NodeKind.JOINT

    def half(self, var: int) -> VarAndValue:
        """The half of this outcome belonging to var."""
        if self.first.var == var:
            return self.first
        if self.second.var == var:
            return self.second
        raise KeyError(f"Variable {var} not in joint ({self.first.var}, {self.second.var})")

    def other(self, var: int) -> VarAndValue:
        """The half of this outcome not belonging to var."""
        return self.second if self.first.var == var else self.first


@dataclass(frozen=True)
class NormalizationMultiplier:
    """Multiplier for sum(x[members]) == 1."""
    members: Tuple[int, ...]

    kind = NodeKind.NORMALIZATION

    @property
    def positive(self) -> Tuple[int, ...]:
        return self.members

    @property
    def negative(self) -> Tuple[int, ...]:
        return ()

    @property
    def target(self) -> float:
        return 1.0


@dataclass(frozen=True)
class MarginalConsistency:
    """Multiplier for sum(x[positive]) == sum(x[negative])."""
    positive: Tuple[int, ...]
    negative: Tuple[int, ...]

    kind = NodeKind.CONSISTENCY

    @property
    def target(self) -> float:
        return 0.0


Multiplier = Union[NormalizationMultiplier, MarginalConsistency]
Node = Union[JointProbability, NormalizationMultiplier, MarginalConsistency]
