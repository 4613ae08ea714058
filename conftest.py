"""
Shared fixtures for the kktmaxent test suite.
"""

import pytest

from kktmaxent.optimizer import SolverConfig


@pytest.fixture
def tight_config():
    """Exact Newton steps and a tolerance well below the checked precision."""
    return SolverConfig(tolerance=1e-10, regularization=0.0)
