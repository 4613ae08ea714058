#!/usr/bin/env python3
"""
kktmaxent: maximum-entropy distributions under exclusion constraints

Usage:
    # Solve from JSON file
    python main.py solve --input problem.json --output result.json

    # Solve from command line
    python main.py solve --variables 3 --k 25 --exclude 0=4 --exclude 1=1 --pair 0,1 --pair 1,2

    # Run the sample problem
    python main.py demo

    # Show versions
    python main.py info
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

# Handle imports whether running as package or directly
try:
    from kktmaxent import (
        ConstraintSet,
        MaxEntError,
        PairwiseExclusion,
        SolverConfig,
        UnaryExclusion,
        VarAndValue,
        format_result,
        optimize,
        save_result_to_json,
        solve_decomposed,
        __version__,
    )
except ImportError:
    sys.path.insert(0, str(Path(__file__).parent))
    from kktmaxent import (
        ConstraintSet,
        MaxEntError,
        PairwiseExclusion,
        SolverConfig,
        UnaryExclusion,
        VarAndValue,
        format_result,
        optimize,
        save_result_to_json,
        solve_decomposed,
        __version__,
    )


def load_problem_from_json(filepath: str) -> Tuple[ConstraintSet, Dict[str, Any]]:
    """
    Load a problem from a JSON file.

    Expected format:
    {
        "variables": 3,
        "k": 25,
        "unary": [[0, 4], [1, 1]],
        "pairwise": [[0, 1], [1, 2]],
        "solver": {"tolerance": 0.01}
    }

    Returns:
        (constraint set, solver options)
    """
    with open(filepath, 'r') as f:
        data = json.load(f)

    contras = [UnaryExclusion(VarAndValue(int(var), int(value))) for var, value in data.get("unary", [])]
    contras += [PairwiseExclusion(int(a), int(b)) for a, b in data.get("pairwise", [])]
    cset = ConstraintSet(int(data["variables"]), int(data["k"]), contras)
    return cset, dict(data.get("solver", {}))


def parse_exclusion(spec: str) -> UnaryExclusion:
    """Parse a unary exclusion: 'VAR=VALUE'"""
    var, value = spec.split('=')
    return UnaryExclusion(VarAndValue(int(var.strip()), int(value.strip())))


def parse_pair(spec: str) -> PairwiseExclusion:
    """Parse a pairwise exclusion: 'A,B'"""
    a, b = spec.split(',')
    return PairwiseExclusion(int(a.strip()), int(b.strip()))


def sample_constraints() -> ConstraintSet:
    """The sample problem: 3 variables, k = 25."""
    contras = [
        UnaryExclusion(VarAndValue(0, 4)),
        UnaryExclusion(VarAndValue(1, 1)),
        PairwiseExclusion(0, 1),
        PairwiseExclusion(1, 2),
    ]
    return ConstraintSet(3, 25, contras)


def build_config(options: Dict[str, Any], args) -> SolverConfig:
    """Merge solver options from the problem file with command-line overrides."""
    options = dict(options)
    if getattr(args, "tolerance", None) is not None:
        options["tolerance"] = args.tolerance
    if getattr(args, "max_iterations", None) is not None:
        options["max_iterations"] = args.max_iterations
    return SolverConfig.from_dict(options)


def run(cset: ConstraintSet, config: SolverConfig, decompose: bool = False):
    """Solve a constraint set, optionally component by component."""
    if decompose:
        return solve_decomposed(cset, cset.variable_count, cset.k, config)
    return optimize(cset, cset.variable_count, cset.k, config)


def cmd_solve(args):
    """Execute the solve command."""
    try:
        if args.input:
            print(f"Loading problem from: {args.input}")
            cset, options = load_problem_from_json(args.input)
        elif args.variables is not None and args.k is not None:
            contras: List = [parse_exclusion(s) for s in args.exclude]
            contras += [parse_pair(s) for s in args.pair]
            cset, options = ConstraintSet(args.variables, args.k, contras), {}
        else:
            print("Error: Must specify either --input FILE or both --variables and --k")
            return 1
        config = build_config(options, args)
    except (OSError, KeyError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    print(f"\nProblem specification:")
    print(f"  Variables: {cset.variable_count}")
    print(f"  Domain size k: {cset.k}")
    print(f"  Constraints: {len(cset)}")
    for contra in cset:
        print(f"    {contra}")

    try:
        result = run(cset, config, decompose=args.decompose)
    except MaxEntError as e:
        print(f"Error: {e}")
        return 1

    print(f"\nResults ({result.iterations} iterations, residual norm {result.residual_norm:.3e}):")
    print(format_result(result))
    print(f"Entropy: {result.entropy():.10f} bits")

    if args.output:
        save_result_to_json(args.output, result)
        print(f"\nResults saved to: {args.output}")

    return 0


def cmd_demo(args):
    """Execute the demo command."""
    print("=" * 60)
    print("Demo: 3 variables, k = 25")
    print("  x0 != 4, x1 != 1, x0 != x1, x1 != x2")
    print("=" * 60)

    try:
        result = run(sample_constraints(), build_config({}, args))
    except MaxEntError as e:
        print(f"Error: {e}")
        return 1

    print(format_result(result))
    print(result.entropy())
    return 0


def cmd_info(args):
    """Display system information."""
    print(f"kktmaxent v{__version__}")
    print("Maximum-entropy distributions under exclusion constraints")
    print()
    print("Constraint kinds:")
    print("  unary    - VAR=VALUE: the variable never takes the value")
    print("  pairwise - A,B: the two variables never take equal values")
    print()
    print("Python:", sys.version.split()[0])
    print("NumPy:", np.__version__)

    try:
        import scipy
        print("SciPy:", scipy.__version__)
    except ImportError:
        print("SciPy: not installed")

    try:
        import networkx
        print("NetworkX:", networkx.__version__)
    except ImportError:
        print("NetworkX: not installed")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kktmaxent",
        description="kktmaxent: maximum-entropy distributions under exclusion constraints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Solve from JSON file
  kktmaxent solve --input problem.json --output result.json

  # Solve with command-line specification
  kktmaxent solve --variables 2 --k 2 --pair 0,1

  # Run the sample problem
  kktmaxent demo
"""
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"kktmaxent {__version__}"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Solve command
    solve_parser = subparsers.add_parser("solve", help="Solve a maximum-entropy problem")
    solve_parser.add_argument("--input", "-i", type=str, help="Input JSON file")
    solve_parser.add_argument("--output", "-o", type=str, help="Output JSON file")
    solve_parser.add_argument("--variables", "-n", type=int, help="Number of variables")
    solve_parser.add_argument("--k", "-k", type=int, help="Domain size")
    solve_parser.add_argument(
        "--exclude", "-x",
        action="append",
        default=[],
        metavar="VAR=VALUE",
        help="Unary exclusion (repeatable)"
    )
    solve_parser.add_argument(
        "--pair", "-p",
        action="append",
        default=[],
        metavar="A,B",
        help="Pairwise exclusion (repeatable)"
    )
    solve_parser.add_argument(
        "--decompose", "-d",
        action="store_true",
        help="Solve connected components independently"
    )
    solve_parser.add_argument("--tolerance", type=float, help="Residual norm tolerance")
    solve_parser.add_argument("--max-iterations", type=int, help="Newton iteration cap")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run the sample problem")
    demo_parser.add_argument("--tolerance", type=float, help="Residual norm tolerance")
    demo_parser.add_argument("--max-iterations", type=int, help="Newton iteration cap")

    # Info command
    subparsers.add_parser("info", help="Show system information")

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)s | %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "solve":
        return cmd_solve(args)
    elif args.command == "demo":
        return cmd_demo(args)
    elif args.command == "info":
        return cmd_info(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
