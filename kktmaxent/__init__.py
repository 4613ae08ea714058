"""
kktmaxent: maximum-entropy distributions under exclusion constraints

Solves the maximum-entropy problem over discrete variables subject to
"variable never takes value" and "two variables never take equal values"
constraints by Newton iteration on a hand-derived KKT system.

Key components:
- model: Constraint value types and the validated constraint set
- numerics: Regularized linear solves and the Newton driver
- kkt: Unknown-vector nodes and the entropy KKT residual/Jacobian
- optimizer: Solver configuration, optimizer and results
- decompose: Split into independent connected components
- report: Text and JSON presentation of results
"""

__version__ = "1.0.0"
__author__ = "kktmaxent developers"

from kktmaxent.errors import (
    MaxEntError,
    InvalidConstraintError,
    InfeasibleConstraintsError,
    NumericalError,
    SingularSystemError,
    ConvergenceError,
)
from kktmaxent.model.constraints import (
    VarAndValue,
    UnaryExclusion,
    PairwiseExclusion,
    ConstraintSet,
)
from kktmaxent.kkt.model import EntropyKKTModel
from kktmaxent.optimizer import (
    SolverConfig,
    OptimizationResult,
    EntropyOptimizer,
    optimize,
    entropy,
)
from kktmaxent.decompose import SubProblem, decompose, solve_decomposed
from kktmaxent.report import format_result, result_to_dict, save_result_to_json

__all__ = [
    # Errors
    "MaxEntError",
    "InvalidConstraintError",
    "InfeasibleConstraintsError",
    "NumericalError",
    "SingularSystemError",
    "ConvergenceError",
    # Constraints
    "VarAndValue",
    "UnaryExclusion",
    "PairwiseExclusion",
    "ConstraintSet",
    # Solver
    "EntropyKKTModel",
    "SolverConfig",
    "OptimizationResult",
    "EntropyOptimizer",
    "optimize",
    "entropy",
    # Decomposition
    "SubProblem",
    "decompose",
    "solve_decomposed",
    # Presentation
    "format_result",
    "result_to_dict",
    "save_result_to_json",
]
