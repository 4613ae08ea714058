"""
kktmaxent/model/constraints.py

Constraint model for the maximum-entropy problem.

A problem consists of:
- variable_count variables, each with domain {0, ..., k-1}
- UnaryExclusion constraints: a variable never takes a given value
- PairwiseExclusion constraints: two variables never take equal values
  (and their joint distribution is tracked explicitly)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Set, Tuple, Union

from kktmaxent.errors import InvalidConstraintError


@dataclass(frozen=True)
class VarAndValue:
    """A (variable, value) pair, both zero-based."""
    var: int
    value: int

    @staticmethod
    def enumerate(var_start: int, var_end: int, k: int) -> Iterator["VarAndValue"]:
        """Iterate every (var, value) with var in [var_start, var_end) and value in [0, k)."""
        for var in range(var_start, var_end):
            for value in range(k):
                yield VarAndValue(var, value)


@dataclass(frozen=True)
class UnaryExclusion:
    """Variable ``target.var`` may never take value ``target.value``."""
    target: VarAndValue


@dataclass(frozen=True)
class PairwiseExclusion:
    """Variables ``first`` and ``second`` may never take equal values."""
    first: int
    second: int

    def __post_init__(self):
        # Canonical ascending order so (a, b) and (b, a) compare equal
        if self.first > self.second:
            first, second = self.second, self.first
            object.__setattr__(self, 'first', first)
            object.__setattr__(self, 'second', second)

    @property
    def pair(self) -> Tuple[int, int]:
        return (self.first, self.second)


EntropyConstraint = Union[UnaryExclusion, PairwiseExclusion]


class ConstraintSet:
    """
    Validated, de-duplicated set of exclusion constraints.

    Iteration order is the first-seen order of the input, which fixes the
    order in which required joints are discovered.
    """

    def __init__(self, variable_count: int, k: int, constraints: Iterable[EntropyConstraint] = ()):
        if variable_count < 0:
            raise InvalidConstraintError(f"variable_count must be non-negative, got {variable_count}")
        if k < 1:
            raise InvalidConstraintError(f"k must be at least 1, got {k}")

        self.variable_count = variable_count
        self.k = k
        self._constraints: Dict[EntropyConstraint, None] = {}
        self._unary: Set[VarAndValue] = set()
        self._pairs: Set[Tuple[int, int]] = set()

        for contra in constraints:
            self._add(contra)

    def _add(self, contra: EntropyConstraint) -> None:
        if isinstance(contra, UnaryExclusion):
            self._check_var(contra.target.var)
            if not 0 <= contra.target.value < self.k:
                raise InvalidConstraintError(
                    f"value {contra.target.value} out of range for k={self.k}"
                )
            self._unary.add(contra.target)
        elif isinstance(contra, PairwiseExclusion):
            self._check_var(contra.first)
            self._check_var(contra.second)
            if contra.first == contra.second:
                raise InvalidConstraintError(
                    f"PairwiseExclusion needs two distinct variables, got ({contra.first}, {contra.second})"
                )
            self._pairs.add(contra.pair)
        else:
            raise InvalidConstraintError(f"Unknown constraint type: {contra!r}")
        self._constraints.setdefault(contra, None)

    def _check_var(self, var: int) -> None:
        if not 0 <= var < self.variable_count:
            raise InvalidConstraintError(
                f"variable {var} out of range for variable_count={self.variable_count}"
            )

    def __iter__(self) -> Iterator[EntropyConstraint]:
        return iter(self._constraints)

    def __len__(self) -> int:
        return len(self._constraints)

    def __contains__(self, contra: object) -> bool:
        return contra in self._constraints

    def required_joints(self) -> List[Tuple[int, int]]:
        """Variable pairs whose joint distribution must be tracked, in discovery order."""
        return [c.pair for c in self._constraints if isinstance(c, PairwiseExclusion)]

    def constrained_variables(self) -> List[int]:
        """Variables appearing in at least one required joint, ascending."""
        return sorted({v for pair in self._pairs for v in pair})

    def partners(self, var: int) -> List[int]:
        """Variables sharing a PairwiseExclusion with var, in discovery order."""
        out = []
        for a, b in self.required_joints():
            if a == var:
                out.append(b)
            elif b == var:
                out.append(a)
        return out

    def is_value_excluded(self, var: int, value: int) -> bool:
        """True if a UnaryExclusion removes value from var."""
        return VarAndValue(var, value) in self._unary

    def allowed_values(self, var: int) -> List[int]:
        """Values of var not removed by a UnaryExclusion."""
        return [value for value in range(self.k) if not self.is_value_excluded(var, value)]

    def is_excluded(self, var_a: int, val_a: int, var_b: int, val_b: int) -> bool:
        """
        True if the joint assignment (var_a=val_a, var_b=val_b) violates a constraint.

        Args:
            var_a, val_a: First half of the assignment
            var_b, val_b: Second half of the assignment

        Returns:
            Whether any PairwiseExclusion or UnaryExclusion forbids it
        """
        if val_a == val_b and (min(var_a, var_b), max(var_a, var_b)) in self._pairs:
            return True
        return self.is_value_excluded(var_a, val_a) or self.is_value_excluded(var_b, val_b)

    def __repr__(self) -> str:
        return (
            f"ConstraintSet(variables={self.variable_count}, k={self.k}, "
            f"unary={len(self._unary)}, pairwise={len(self._pairs)})"
        )
