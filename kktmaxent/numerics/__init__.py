"""
Numerics module: linear solves and the Newton driver.
"""

from kktmaxent.numerics.linear import solve_linear
from kktmaxent.numerics.newton import NewtonSystem, NewtonResult, newton_solve

__all__ = ["solve_linear", "NewtonSystem", "NewtonResult", "newton_solve"]
