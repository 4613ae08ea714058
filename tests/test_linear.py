"""
Tests for the linear system solver.
"""

import numpy as np
import pytest

from kktmaxent.errors import SingularSystemError
from kktmaxent.numerics.linear import solve_linear


class TestDirectSolve:
    def test_regularized_solution(self):
        a = np.diag([2.0, 4.0])
        b = np.array([2.0, 4.0])

        x = solve_linear(a, b, refinement_steps=0)

        # Without refinement this solves the regularized system
        assert np.allclose((a + 1e-3) @ x, b)
        assert np.allclose(x, [1.0, 1.0], atol=1e-2)

    def test_refinement_recovers_unregularized_solution(self):
        a = np.diag([2.0, 4.0])
        b = np.array([2.0, 4.0])

        plain = solve_linear(a, b, refinement_steps=0)
        refined = solve_linear(a, b)

        assert np.linalg.norm(a @ refined - b) < np.linalg.norm(a @ plain - b)
        assert np.allclose(refined, [1.0, 1.0], atol=1e-8)

    def test_refinement_on_coupled_system(self):
        a = np.array([[2.0, 0.0, 1.0], [0.0, 2.0, 1.0], [1.0, 1.0, 0.0]])
        b = np.array([0.3, -0.1, 0.2])

        x = solve_linear(a, b)

        assert np.allclose(a @ x, b, atol=1e-8)

    def test_without_regularization(self):
        a = np.array([[3.0, 1.0], [1.0, 2.0]])
        b = np.array([9.0, 8.0])

        x = solve_linear(a, b, regularization=0.0)

        assert np.allclose(x, [2.0, 3.0])

    def test_empty_system(self):
        x = solve_linear(np.zeros((0, 0)), np.zeros(0))
        assert x.shape == (0,)


class TestFallback:
    def test_exactly_singular_uses_least_squares(self):
        a = np.ones((2, 2))
        b = np.array([2.0, 2.0])

        x = solve_linear(a, b)

        # Minimum-norm solution of the unregularized system
        assert np.allclose(x, [1.0, 1.0])

    def test_nearly_singular_uses_least_squares(self):
        a = np.array([[1.0, 1.0], [1.0, 1.0 + 1e-15]])
        b = np.array([2.0, 2.0])

        x = solve_linear(a, b)

        assert np.allclose(x, [1.0, 1.0])

    def test_consistent_rank_deficient_system(self):
        # Duplicated constraint rows, as produced by ordered consistency pairs
        a = np.array([
            [2.0, 0.0, 1.0, -1.0],
            [0.0, 2.0, -1.0, 1.0],
            [1.0, -1.0, 0.0, 0.0],
            [-1.0, 1.0, 0.0, 0.0],
        ])
        b = np.array([1.0, 1.0, 0.0, 0.0])

        x = solve_linear(a, b)

        assert np.allclose(a @ x, b)
        assert np.allclose(x[:2], [0.5, 0.5])


class TestErrors:
    def test_non_finite_raises(self):
        a = np.array([[1.0, np.nan], [0.0, 1.0]])
        with pytest.raises(SingularSystemError):
            solve_linear(a, np.ones(2))

    def test_non_square_raises(self):
        with pytest.raises(ValueError):
            solve_linear(np.ones((2, 3)), np.ones(2))

    def test_rhs_mismatch_raises(self):
        with pytest.raises(ValueError):
            solve_linear(np.eye(2), np.ones(3))
