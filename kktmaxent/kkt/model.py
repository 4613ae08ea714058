"""
kktmaxent/kkt/model.py

KKT system of the constrained maximum-entropy problem.

Maximize  H(p) = -sum p ln p  over the joint outcomes of every required pair,
subject to
    sum of a pair's outcomes = 1                       (NormalizationMultiplier)
    marginal of (var, value) via partner I
        = marginal of (var, value) via partner J       (MarginalConsistency)

Stationarity of the Lagrangian gives, for a joint node i,
    MULT * (ln p_i + 1) + sum(lambda over normalizers) - sum(lambda over negated) = 0
and the multiplier rows restate the linear constraints. The unknown vector is
[joint probabilities..., normalization multipliers..., consistency multipliers...].

Variables in no required pair are independent of the rest and receive the
uniform distribution over their allowed values without entering the solve.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Set, Tuple

import numpy as np

from kktmaxent.errors import InfeasibleConstraintsError
from kktmaxent.kkt.nodes import (
    JointProbability,
    MarginalConsistency,
    Multiplier,
    Node,
    NodeKind,
    NormalizationMultiplier,
)
from kktmaxent.model.constraints import ConstraintSet, VarAndValue

logger = logging.getLogger(__name__)

# Coefficient of the entropy term in the Lagrangian
MULT = 1.0

# (given (var, value), free partner variable) -> joint node indices
GroupKey = Tuple[VarAndValue, int]


def _prune_unsupported(constraints: ConstraintSet) -> Dict[int, Set[int]]:
    """
    Allowed values of every constrained variable after support propagation.

    A value of variable a is unsupported when some partner b has no allowed
    value different from it: every joint outcome through that pair is
    excluded, so its marginal through b is forced to 0 and it must be 0
    through every other partner as well.
    """
    allowed = {v: set(constraints.allowed_values(v)) for v in constraints.constrained_variables()}
    pairs = constraints.required_joints()

    changed = True
    while changed:
        changed = False
        for a, b in pairs:
            for x, y in ((a, b), (b, a)):
                dead = {val for val in allowed[x] if not (allowed[y] - {val})}
                if dead:
                    logger.debug("Variable %d: values %s have no support through %d", x, sorted(dead), y)
                    allowed[x] -= dead
                    changed = True

    for var, values in allowed.items():
        if not values:
            raise InfeasibleConstraintsError(f"Variable {var} has no value consistent with its constraints")
    return allowed


class EntropyKKTModel:
    """
    Unknown-vector graph and KKT residual/Jacobian for a constraint set.

    Attributes:
        constraints: The validated constraint set
        nodes: Node list; position i describes unknown i
        joint_count: Number of JointProbability nodes (they occupy 0..joint_count-1)
        required_joints: Pairs with explicit joints, in discovery order
        fixed_marginals: Uniform marginals of variables outside every pair
    """

    def __init__(
        self,
        constraints: ConstraintSet,
        *,
        initial_value: float = 0.5,
        boundary_fraction: float = 0.99,
    ):
        self.constraints = constraints
        self.initial_value = initial_value
        self.boundary_fraction = boundary_fraction

        self.required_joints: List[Tuple[int, int]] = constraints.required_joints()
        self.nodes: List[Node] = []
        self.joint_count = 0
        self.fixed_marginals: Dict[VarAndValue, float] = {}

        self._build()
        self._incidence = self._build_incidence()
        self._targets = np.array(
            [node.target for node in self.nodes[self.joint_count:]], dtype=np.float64
        )

    @property
    def size(self) -> int:
        """Length of the unknown vector."""
        return len(self.nodes)

    def _build(self) -> None:
        """Allocate joints first, then multipliers, then freeze the back-links."""
        k = self.constraints.k
        allowed = _prune_unsupported(self.constraints)

        outcomes: List[Tuple[VarAndValue, VarAndValue]] = []
        pair_members: List[List[int]] = []
        groups: Dict[GroupKey, List[int]] = {}

        for n1, n2 in self.required_joints:
            members = []
            for k1 in range(k):
                for k2 in range(k):
                    if self.constraints.is_excluded(n1, k1, n2, k2):
                        continue
                    if k1 not in allowed[n1] or k2 not in allowed[n2]:
                        continue
                    var1 = VarAndValue(n1, k1)
                    var2 = VarAndValue(n2, k2)
                    pos = len(outcomes)
                    groups.setdefault((var1, n2), []).append(pos)
                    groups.setdefault((var2, n1), []).append(pos)
                    members.append(pos)
                    outcomes.append((var1, var2))
            if not members:
                raise InfeasibleConstraintsError(
                    f"Pair ({n1}, {n2}) has no joint outcome satisfying the constraints"
                )
            pair_members.append(members)

        self.joint_count = len(outcomes)
        positive_links: List[List[int]] = [[] for _ in outcomes]
        negative_links: List[List[int]] = [[] for _ in outcomes]
        multipliers: List[Multiplier] = []

        for members in pair_members:
            index = self.joint_count + len(multipliers)
            for i in members:
                positive_links[i].append(index)
            multipliers.append(NormalizationMultiplier(tuple(members)))

        for var in self.constraints.constrained_variables():
            partners = sorted(set(self.constraints.partners(var)))
            for value in range(k):
                given = VarAndValue(var, value)
                to_eq = [groups[(given, p)] for p in partners if (given, p) in groups]
                if len(to_eq) < 2:
                    continue
                for i1, group_pos in enumerate(to_eq):
                    for i2, group_neg in enumerate(to_eq):
                        if i1 == i2:
                            continue
                        index = self.joint_count + len(multipliers)
                        for i in group_pos:
                            positive_links[i].append(index)
                        for i in group_neg:
                            negative_links[i].append(index)
                        multipliers.append(MarginalConsistency(tuple(group_pos), tuple(group_neg)))

        self.nodes = [
            JointProbability(first, second, frozenset(pos), frozenset(neg))
            for (first, second), pos, neg in zip(outcomes, positive_links, negative_links)
        ]
        self.nodes.extend(multipliers)

        for var in range(self.constraints.variable_count):
            if var in allowed:
                continue
            values = self.constraints.allowed_values(var)
            if not values:
                raise InfeasibleConstraintsError(f"Variable {var} has every value excluded")
            prob = 1.0 / len(values)
            for value in values:
                self.fixed_marginals[VarAndValue(var, value)] = prob

        logger.debug(
            "KKT model: %d joints, %d multipliers, %d fixed variables",
            self.joint_count,
            len(multipliers),
            self.constraints.variable_count - len(allowed),
        )

    def _build_incidence(self) -> np.ndarray:
        """
        Signed joint x multiplier incidence matrix B.

        B[i, j] = +1 if joint i is a positive member of multiplier j,
        -1 if a negative member, else 0.
        """
        multipliers = self.nodes[self.joint_count:]
        b = np.zeros((self.joint_count, len(multipliers)), dtype=np.float64)
        for j, node in enumerate(multipliers):
            b[list(node.positive), j] = 1.0
            if node.negative:
                b[list(node.negative), j] = -1.0
        return b

    def initial_point(self) -> np.ndarray:
        """Fixed starting point: every primal and dual unknown at initial_value."""
        return np.full(self.size, self.initial_value, dtype=np.float64)

    def residual(self, x: np.ndarray) -> np.ndarray:
        """
        KKT residual F(x).

        Args:
            x: Unknown vector of length size

        Returns:
            Residual vector of length size
        """
        p = x[:self.joint_count]
        lam = x[self.joint_count:]
        out = np.empty_like(x, dtype=np.float64)
        with np.errstate(divide="ignore", invalid="ignore"):
            out[:self.joint_count] = MULT * (np.log(p) + 1.0) + self._incidence @ lam
        out[self.joint_count:] = self._incidence.T @ p - self._targets
        return out

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        """
        KKT Jacobian J(x).

        Only the joint x joint diagonal (MULT / p_i) depends on x; the
        joint x multiplier blocks are the signed incidence matrix and its
        transpose; the multiplier x multiplier block is zero.
        """
        n = self.size
        jc = self.joint_count
        jac = np.zeros((n, n), dtype=np.float64)
        with np.errstate(divide="ignore"):
            jac[np.arange(jc), np.arange(jc)] = MULT / x[:jc]
        jac[:jc, jc:] = self._incidence
        jac[jc:, :jc] = self._incidence.T
        return jac

    def max_step(self, x: np.ndarray, delta: np.ndarray) -> float:
        """
        Largest fraction of the step x - delta keeping every joint probability positive.

        Returns 1.0 when the full step is admissible, otherwise
        boundary_fraction times the distance to the boundary.
        """
        p = x[:self.joint_count]
        dp = delta[:self.joint_count]
        blocked = (dp > 0) & (p - dp <= 0)
        if not np.any(blocked):
            return 1.0
        return float(self.boundary_fraction * np.min(p[blocked] / dp[blocked]))

    def joints(self) -> List[Tuple[int, JointProbability]]:
        """(index, node) for every JointProbability node."""
        return [(i, node) for i, node in enumerate(self.nodes) if node.kind is NodeKind.JOINT]

    def __repr__(self) -> str:
        return (
            f"EntropyKKTModel(joints={self.joint_count}, "
            f"multipliers={self.size - self.joint_count})"
        )
