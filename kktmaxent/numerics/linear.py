"""
kktmaxent/numerics/linear.py

Linear system solver for Newton steps.

The KKT Jacobian is frequently singular (duplicated marginal-consistency
rows, dependent normalization rows), so the solve is done in two stages:

1. Add a small constant to every entry of the matrix and attempt an LU
   solve. The attempt is rejected if LAPACK reports an exactly singular
   factor or the reciprocal condition number is below ``min_rcond``.
   An accepted solution is refined against the unregularized matrix with
   the same factors, so the step solves the original system.
2. Otherwise solve the unregularized system in the minimum-norm
   least-squares sense through an SVD with a relative cutoff.
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional

import numpy as np
from scipy import linalg
from scipy.linalg import LinAlgError, LinAlgWarning
from scipy.linalg.lapack import get_lapack_funcs

from kktmaxent.errors import SingularSystemError

logger = logging.getLogger(__name__)


def _direct_solve(
    a: np.ndarray,
    b: np.ndarray,
    regularization: float,
    min_rcond: float,
    refinement_steps: int,
) -> Optional[np.ndarray]:
    """
    LU solve of (a + regularization) x = b, refined towards a x = b.

    Each refinement pass solves for the residual of the unregularized
    system with the same factors and is kept only if it reduces that
    residual.

    Returns:
        Solution vector, or None if the regularized matrix is (numerically) singular
    """
    m = a + regularization
    with warnings.catch_warnings():
        warnings.simplefilter("error", LinAlgWarning)
        try:
            lu, piv = linalg.lu_factor(m, check_finite=False)
        except (LinAlgError, LinAlgWarning):
            return None

    gecon, = get_lapack_funcs(("gecon",), (lu,))
    rcond, info = gecon(lu, np.linalg.norm(m, 1), norm="1")
    if info != 0 or not rcond >= min_rcond:
        logger.debug("direct solve rejected: rcond=%.3e", rcond)
        return None

    x = linalg.lu_solve((lu, piv), b, check_finite=False)
    if not np.all(np.isfinite(x)):
        return None

    r = b - a @ x
    r_norm = np.linalg.norm(r)
    for _ in range(refinement_steps):
        if r_norm == 0.0:
            break
        candidate = x + linalg.lu_solve((lu, piv), r, check_finite=False)
        cand_r = b - a @ candidate
        cand_norm = np.linalg.norm(cand_r)
        if not cand_norm < r_norm:
            break
        x, r, r_norm = candidate, cand_r, cand_norm
    return x


def _least_squares_solve(a: np.ndarray, b: np.ndarray, svd_cutoff: float) -> Optional[np.ndarray]:
    """Minimum-norm least-squares solve of a x = b, or None on failure."""
    try:
        x, _, rank, _ = linalg.lstsq(a, b, cond=svd_cutoff, lapack_driver="gelsd", check_finite=False)
    except LinAlgError as exc:
        logger.debug("least-squares solve failed: %s", exc)
        return None
    logger.debug("least-squares solve: rank %d of %d", rank, a.shape[0])
    if not np.all(np.isfinite(x)):
        return None
    return x


def solve_linear(
    a: np.ndarray,
    b: np.ndarray,
    *,
    regularization: float = 1e-3,
    min_rcond: float = 1e-12,
    svd_cutoff: float = 1e-10,
    refinement_steps: int = 2,
) -> np.ndarray:
    """
    Solve the square system a x = b.

    Args:
        a: Square matrix (n, n)
        b: Right-hand side (n,)
        regularization: Constant added to every entry of a before the LU solve
        min_rcond: Smallest accepted reciprocal condition number for the LU solve
        svd_cutoff: Relative singular-value cutoff for the least-squares fallback
        refinement_steps: Iterative-refinement passes of the LU solution against a

    Returns:
        Solution vector x of shape (n,)

    Raises:
        ValueError: If the shapes do not describe a square system
        SingularSystemError: If both solves fail or the inputs are not finite
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise ValueError(f"solve_linear: matrix must be square, got shape {a.shape}")
    if b.shape != (a.shape[0],):
        raise ValueError(f"solve_linear: rhs shape {b.shape} does not match matrix {a.shape}")

    n = a.shape[0]
    if n == 0:
        return np.zeros(0, dtype=np.float64)

    if not (np.all(np.isfinite(a)) and np.all(np.isfinite(b))):
        raise SingularSystemError("Linear system has non-finite entries")

    x = _direct_solve(a, b, regularization, min_rcond, refinement_steps)
    if x is not None:
        return x

    logger.debug("Regularized LU solve failed for n=%d; falling back to SVD least squares", n)
    x = _least_squares_solve(a, b, svd_cutoff)
    if x is None:
        raise SingularSystemError(f"Both LU and least-squares solves failed for an {n}x{n} system")
    return x
