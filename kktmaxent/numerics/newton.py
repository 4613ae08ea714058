"""
kktmaxent/numerics/newton.py

Generic Newton-Raphson driver.

Any object implementing the NewtonSystem protocol (residual, Jacobian and
a step bound) can be driven to a root of its residual.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from kktmaxent.errors import ConvergenceError, SingularSystemError
from kktmaxent.numerics.linear import solve_linear

logger = logging.getLogger(__name__)


class NewtonSystem(Protocol):
    """Protocol for systems F(x) = 0 solvable by Newton's method."""

    def residual(self, x: np.ndarray) -> np.ndarray: ...
    def jacobian(self, x: np.ndarray) -> np.ndarray: ...
    def max_step(self, x: np.ndarray, delta: np.ndarray) -> float: ...


@dataclass
class NewtonResult:
    """
    Result of a Newton solve.

    Attributes:
        x: Final iterate
        iterations: Number of Newton steps taken
        residual_norm: Euclidean norm of the residual at x
    """
    x: np.ndarray
    iterations: int
    residual_norm: float


def newton_solve(
    system: NewtonSystem,
    start: np.ndarray,
    *,
    tolerance: float = 1e-2,
    max_iterations: int = 200,
    rate: float = 1.0,
    regularization: float = 1e-3,
    min_rcond: float = 1e-12,
    svd_cutoff: float = 1e-10,
    refinement_steps: int = 2,
) -> NewtonResult:
    """
    Iterate x <- x - rate * alpha * J(x)^-1 F(x) until ||F(x)|| < tolerance.

    alpha is system.max_step(x, rate * delta), 1.0 whenever the scaled step is
    admissible.

    Args:
        system: System providing residual, jacobian and max_step
        start: Starting point (not modified)
        tolerance: Convergence threshold on the residual norm
        max_iterations: Maximum number of Newton steps
        rate: Step scale
        regularization, min_rcond, svd_cutoff, refinement_steps: Passed to solve_linear

    Returns:
        NewtonResult with the converged iterate

    Raises:
        ConvergenceError: If max_iterations steps do not reach the tolerance
        SingularSystemError: If the residual becomes non-finite or a step cannot be solved
    """
    x = np.array(start, dtype=np.float64, copy=True)
    last_norm = np.inf

    for it in range(max_iterations + 1):
        f = system.residual(x)
        norm = float(np.linalg.norm(f))
        logger.debug("Newton iteration %d: residual norm %.6e", it, norm)

        if not np.isfinite(norm):
            raise SingularSystemError(f"Residual became non-finite at iteration {it}")
        if norm < tolerance:
            return NewtonResult(x=x, iterations=it, residual_norm=norm)
        if it == max_iterations:
            break
        if norm > last_norm:
            logger.warning(
                "Residual norm increased at iteration %d: %.6e -> %.6e", it, last_norm, norm
            )
        last_norm = norm

        delta = solve_linear(
            system.jacobian(x),
            f,
            regularization=regularization,
            min_rcond=min_rcond,
            svd_cutoff=svd_cutoff,
            refinement_steps=refinement_steps,
        )
        step = rate * delta
        alpha = system.max_step(x, step)
        if alpha < 1.0:
            logger.debug("Step damped to %.3e to stay in the domain", alpha)
        x = x - alpha * step

    raise ConvergenceError(
        f"Newton iteration did not converge in {max_iterations} steps "
        f"(residual norm {norm:.3e}, tolerance {tolerance:.1e})",
        iterations=max_iterations,
        residual_norm=norm,
    )
