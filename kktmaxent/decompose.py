"""
kktmaxent/decompose.py

Decomposition of a problem into independent sub-problems.

Variables linked (directly or transitively) by PairwiseExclusion
constraints form connected components of the constraint graph. Components
are probabilistically independent, so each is solved on its own with
variables renumbered densely, and the marginals are mapped back to global
indices. The total entropy is the sum of the sub-problem entropies.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

import networkx as nx

from kktmaxent.model.constraints import (
    ConstraintSet,
    EntropyConstraint,
    PairwiseExclusion,
    UnaryExclusion,
    VarAndValue,
)
from kktmaxent.optimizer import OptimizationResult, SolverConfig, as_constraint_set, optimize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubProblem:
    """
    One connected component of the constraint graph.

    Attributes:
        variable_map: Local variable index -> global variable index
        k: Domain size
        constraints: Constraints rewritten to local variable indices
    """
    variable_map: Tuple[int, ...]
    k: int
    constraints: Tuple[EntropyConstraint, ...]

    @property
    def variable_count(self) -> int:
        return len(self.variable_map)

    def solve(self, config: Optional[SolverConfig] = None) -> OptimizationResult:
        """Solve this component in local indices."""
        return optimize(self.constraints, self.variable_count, self.k, config)

    def to_global(self, local: OptimizationResult) -> Tuple[Dict[VarAndValue, float], Dict]:
        """Marginals and joints of a local result, keyed by global indices."""
        distribution = {
            VarAndValue(self.variable_map[vv.var], vv.value): p
            for vv, p in local.distribution.items()
        }
        joints = {}
        for (a, b), p in local.joints.items():
            ga = VarAndValue(self.variable_map[a.var], a.value)
            gb = VarAndValue(self.variable_map[b.var], b.value)
            joints[(ga, gb) if ga.var < gb.var else (gb, ga)] = p
        return distribution, joints


def constraint_graph(constraints: ConstraintSet) -> nx.Graph:
    """
    Graph with one node per variable and one edge per PairwiseExclusion.

    Args:
        constraints: Validated constraint set

    Returns:
        NetworkX graph over range(variable_count)
    """
    g = nx.Graph()
    g.add_nodes_from(range(constraints.variable_count))
    g.add_edges_from(constraints.required_joints())
    return g


def decompose(constraints: ConstraintSet) -> List[SubProblem]:
    """
    Split a constraint set into independent sub-problems.

    Components are ordered by their smallest variable; local variable
    indices follow ascending global order. Every sub-problem keeps the full
    domain size k: merging unmentioned values into one bucket would change
    both its entropy and which outcomes count as equal under a
    PairwiseExclusion.
    """
    g = constraint_graph(constraints)
    components = sorted((sorted(c) for c in nx.connected_components(g)), key=lambda c: c[0])

    subproblems = []
    for comp in components:
        local = {var: i for i, var in enumerate(comp)}
        contras: List[EntropyConstraint] = []
        for contra in constraints:
            if isinstance(contra, PairwiseExclusion):
                if contra.first in local:
                    contras.append(PairwiseExclusion(local[contra.first], local[contra.second]))
            elif isinstance(contra, UnaryExclusion):
                if contra.target.var in local:
                    contras.append(UnaryExclusion(VarAndValue(local[contra.target.var], contra.target.value)))
        subproblems.append(SubProblem(tuple(comp), constraints.k, tuple(contras)))

    logger.debug("Decomposed %d variables into %d components", constraints.variable_count, len(subproblems))
    return subproblems


def solve_decomposed(
    constraints: Union[ConstraintSet, Iterable[EntropyConstraint]],
    variable_count: int,
    k: int,
    config: Optional[SolverConfig] = None,
) -> OptimizationResult:
    """
    Solve every component independently and merge the results.

    Args:
        constraints: Exclusion constraints
        variable_count: Number of variables
        k: Domain size
        config: Optional solver configuration, shared by all components

    Returns:
        Global OptimizationResult; iterations is the maximum over components
        and residual_norm the norm of the stacked component residuals
    """
    cset = as_constraint_set(constraints, variable_count, k)

    distribution: Dict[VarAndValue, float] = {}
    joints: Dict = {}
    iterations = 0
    residual_sq = 0.0
    for sub in decompose(cset):
        local = sub.solve(config)
        sub_dist, sub_joints = sub.to_global(local)
        distribution.update(sub_dist)
        joints.update(sub_joints)
        iterations = max(iterations, local.iterations)
        residual_sq += local.residual_norm ** 2

    return OptimizationResult(
        distribution=distribution,
        variable_count=variable_count,
        k=k,
        joints=joints,
        iterations=iterations,
        residual_norm=math.sqrt(residual_sq),
    )
