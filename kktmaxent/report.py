"""
kktmaxent/report.py

Presentation of optimization results.

Only the public queries of OptimizationResult are used.
"""

from __future__ import annotations

import json
from typing import Any, Dict

from kktmaxent.optimizer import OptimizationResult


def format_result(result: OptimizationResult) -> str:
    """
    Render a result as one tab-indented ``Pr[var=value] = prob`` line per
    (var, value), wrapped in braces.
    """
    lines = ["{"]
    for vv, prob in result.items():
        lines.append(f"\tPr[{vv.var}={vv.value}] = {prob}")
    lines.append("}")
    return "\n".join(lines) + "\n"


def result_to_dict(result: OptimizationResult) -> Dict[str, Any]:
    """JSON-serializable summary: marginals per variable, entropy and diagnostics."""
    return {
        "variables": result.variable_count,
        "k": result.k,
        "marginals": {
            str(var): result.marginal(var).tolist() for var in range(result.variable_count)
        },
        "entropy": result.entropy(),
        "iterations": result.iterations,
        "residual_norm": result.residual_norm,
    }


def save_result_to_json(filepath: str, result: OptimizationResult) -> None:
    """Save a result summary to a JSON file."""
    with open(filepath, 'w') as f:
        json.dump(result_to_dict(result), f, indent=2)
