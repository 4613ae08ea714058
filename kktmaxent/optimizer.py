"""
kktmaxent/optimizer.py

Entropy optimizer: builds the KKT model, runs Newton, and reduces the
solved vector to a per-(variable, value) marginal table.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

import numpy as np

from kktmaxent.errors import InvalidConstraintError
from kktmaxent.kkt.model import EntropyKKTModel
from kktmaxent.model.constraints import ConstraintSet, EntropyConstraint, VarAndValue
from kktmaxent.numerics.newton import newton_solve

logger = logging.getLogger(__name__)

JointKey = Tuple[VarAndValue, VarAndValue]


@dataclass(frozen=True)
class SolverConfig:
    """Configuration for the Newton solve."""

    # Convergence
    tolerance: float = 1e-2
    max_iterations: int = 200
    rate: float = 1.0

    # Linear solves
    regularization: float = 1e-3
    min_rcond: float = 1e-12
    svd_cutoff: float = 1e-10
    refinement_steps: int = 2

    # Start point and positivity safeguard
    initial_value: float = 0.5
    boundary_fraction: float = 0.99

    def __post_init__(self):
        if not self.tolerance > 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if not self.rate > 0:
            raise ValueError(f"rate must be positive, got {self.rate}")
        if self.refinement_steps < 0:
            raise ValueError(f"refinement_steps must be non-negative, got {self.refinement_steps}")
        if not self.initial_value > 0:
            raise ValueError(f"initial_value must be positive, got {self.initial_value}")
        if not 0 < self.boundary_fraction < 1:
            raise ValueError(f"boundary_fraction must be in (0, 1), got {self.boundary_fraction}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SolverConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown solver options: {sorted(unknown)}")
        return cls(**dict(data))


@dataclass
class OptimizationResult:
    """
    Maximum-entropy marginals.

    Attributes:
        distribution: (var, value) -> probability; absent keys have probability 0
        variable_count: Number of variables
        k: Domain size
        joints: Solved joint probabilities of the required pairs
        iterations: Newton steps taken
        residual_norm: Final KKT residual norm
    """
    distribution: Dict[VarAndValue, float]
    variable_count: int
    k: int
    joints: Dict[JointKey, float] = field(default_factory=dict)
    iterations: int = 0
    residual_norm: float = 0.0

    def var_prob(self, var: int, value: int) -> float:
        """Pr[var = value]."""
        return self.distribution.get(VarAndValue(var, value), 0.0)

    def marginal(self, var: int) -> np.ndarray:
        """Marginal distribution of var as a length-k vector."""
        return np.array([self.var_prob(var, value) for value in range(self.k)], dtype=np.float64)

    def joint_prob(self, var_a: int, val_a: int, var_b: int, val_b: int) -> float:
        """Pr[var_a = val_a, var_b = val_b] for a pair tracked by a PairwiseExclusion."""
        a = VarAndValue(var_a, val_a)
        b = VarAndValue(var_b, val_b)
        key = (a, b) if var_a < var_b else (b, a)
        return self.joints.get(key, 0.0)

    def items(self) -> Iterator[Tuple[VarAndValue, float]]:
        """Every (var, value) with its probability, in variable then value order."""
        for vv in VarAndValue.enumerate(0, self.variable_count, self.k):
            yield vv, self.var_prob(vv.var, vv.value)

    def entropy(self) -> float:
        """Sum over variables of the Shannon entropy (bits) of their marginals."""
        return -sum(p * math.log2(p) for p in self.distribution.values() if p > 0.0)


def entropy(result: OptimizationResult) -> float:
    """-sum p log2 p over all entries with p > 0."""
    return result.entropy()


def as_constraint_set(
    constraints: Union[ConstraintSet, Iterable[EntropyConstraint]],
    variable_count: int,
    k: int,
) -> ConstraintSet:
    """Validate constraints into a ConstraintSet sized (variable_count, k)."""
    if isinstance(constraints, ConstraintSet):
        if constraints.variable_count != variable_count or constraints.k != k:
            raise InvalidConstraintError(
                f"ConstraintSet was built for ({constraints.variable_count}, {constraints.k}), "
                f"not ({variable_count}, {k})"
            )
        return constraints
    return ConstraintSet(variable_count, k, constraints)


class EntropyOptimizer:
    """
    Maximum-entropy optimizer over variable_count variables with domain size k.

    Example:
        >>> contras = [
        ...     UnaryExclusion(VarAndValue(0, 4)),
        ...     UnaryExclusion(VarAndValue(1, 1)),
        ...     PairwiseExclusion(0, 1),
        ...     PairwiseExclusion(1, 2),
        ... ]
        >>> best = EntropyOptimizer(3, 25, contras).optimize()
        >>> best.var_prob(0, 4)
        0.0
    """

    def __init__(
        self,
        variable_count: int,
        k: int,
        constraints: Union[ConstraintSet, Iterable[EntropyConstraint]] = (),
        config: Optional[SolverConfig] = None,
    ):
        self.constraints = as_constraint_set(constraints, variable_count, k)
        self.config = config or SolverConfig()

    @property
    def variable_count(self) -> int:
        return self.constraints.variable_count

    @property
    def k(self) -> int:
        return self.constraints.k

    def build_model(self) -> EntropyKKTModel:
        """Build the KKT model for this problem."""
        return EntropyKKTModel(
            self.constraints,
            initial_value=self.config.initial_value,
            boundary_fraction=self.config.boundary_fraction,
        )

    def optimize(self) -> OptimizationResult:
        """
        Solve the KKT system and reduce it to marginals.

        Returns:
            OptimizationResult with marginals, pair joints and diagnostics

        Raises:
            InfeasibleConstraintsError: If a pair or variable has no valid outcome
            SingularSystemError: If a Newton step cannot be solved
            ConvergenceError: If Newton does not converge within max_iterations
        """
        cfg = self.config
        model = self.build_model()
        logger.info(
            "Optimizing %d variables, k=%d, %d constraints (%r)",
            self.variable_count, self.k, len(self.constraints), model,
        )

        solved = newton_solve(
            model,
            model.initial_point(),
            tolerance=cfg.tolerance,
            max_iterations=cfg.max_iterations,
            rate=cfg.rate,
            regularization=cfg.regularization,
            min_rcond=cfg.min_rcond,
            svd_cutoff=cfg.svd_cutoff,
            refinement_steps=cfg.refinement_steps,
        )
        logger.info(
            "Converged in %d iterations, residual norm %.3e", solved.iterations, solved.residual_norm
        )

        distribution, joints = self._reduce(model, solved.x)
        return OptimizationResult(
            distribution=distribution,
            variable_count=self.variable_count,
            k=self.k,
            joints=joints,
            iterations=solved.iterations,
            residual_norm=solved.residual_norm,
        )

    def _reduce(
        self, model: EntropyKKTModel, x: np.ndarray
    ) -> Tuple[Dict[VarAndValue, float], Dict[JointKey, float]]:
        """
        Marginals from the solved vector.

        Each pair's joint block is rescaled to sum to 1, which removes the
        normalization residual the convergence tolerance allows. A
        constrained variable's marginal is then summed over its joints with
        the first partner it was paired with; consistency multipliers make
        every partner agree.
        """
        distribution: Dict[VarAndValue, float] = dict(model.fixed_marginals)
        first_partner = {
            var: self.constraints.partners(var)[0]
            for var in self.constraints.constrained_variables()
        }
        for var in first_partner:
            for value in range(self.k):
                distribution[VarAndValue(var, value)] = 0.0

        totals: Dict[Tuple[int, int], float] = {}
        for i, node in model.joints():
            pair = (node.first.var, node.second.var)
            totals[pair] = totals.get(pair, 0.0) + float(x[i])
        if totals:
            logger.debug(
                "Largest pair normalization error before rescaling: %.3e",
                max(abs(t - 1.0) for t in totals.values()),
            )

        joints: Dict[JointKey, float] = {}
        for i, node in model.joints():
            prob = float(x[i]) / totals[(node.first.var, node.second.var)]
            joints[(node.first, node.second)] = prob
            for var in (node.first.var, node.second.var):
                if first_partner[var] == node.other(var).var:
                    distribution[node.half(var)] += prob

        return distribution, joints


def optimize(
    constraints: Union[ConstraintSet, Iterable[EntropyConstraint]],
    variable_count: int,
    k: int,
    config: Optional[SolverConfig] = None,
) -> OptimizationResult:
    """
    Maximum-entropy marginals for a constraint set.

    Args:
        constraints: Exclusion constraints (duplicates are ignored)
        variable_count: Number of variables
        k: Domain size shared by all variables
        config: Optional solver configuration

    Returns:
        OptimizationResult
    """
    return EntropyOptimizer(variable_count, k, constraints, config).optimize()
