"""
kktmaxent/errors.py

Exception hierarchy for the maximum-entropy solver.

- InvalidConstraintError: indices or sizes outside the declared ranges
- InfeasibleConstraintsError: a pair or variable is left with no valid outcome
- SingularSystemError: the Newton linear system could not be solved
- ConvergenceError: the Newton loop hit its iteration cap
"""

from __future__ import annotations


class MaxEntError(Exception):
    """Base class for every error raised by kktmaxent."""


class InvalidConstraintError(MaxEntError, ValueError):
    """A constraint or problem size references an out-of-range index."""


class InfeasibleConstraintsError(MaxEntError, ValueError):
    """The constraint set leaves a pair or a variable without any outcome."""


class NumericalError(MaxEntError, RuntimeError):
    """The numerical solve failed."""


class SingularSystemError(NumericalError):
    """Both the direct and the least-squares solve failed, or produced non-finite values."""


class ConvergenceError(NumericalError):
    """
    The Newton iteration did not reach the tolerance within the iteration cap.

    Attributes:
        iterations: Number of Newton steps taken
        residual_norm: Residual norm at the last iterate
    """

    def __init__(self, message: str, iterations: int, residual_norm: float):
        super().__init__(message)
        self.iterations = iterations
        self.residual_norm = residual_norm
