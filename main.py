#!/usr/bin/env python3
"""
HybridFG: exact elimination for hybrid factor graphs

Command-line driver for the switching-system demonstrations.

Usage:
    # Batch elimination of a K-step switching system
    python main.py demo --example switching --steps 4

    # Incremental elimination, one step at a time
    python main.py demo --example incremental --steps 4

    # Trace each elimination step
    python main.py demo --example switching --trace

    # Run tests
    python main.py test
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List

import numpy as np

# Handle imports whether running as package or directly
try:
    from hybridfg import (
        HybridFactorGraph,
        Ordering,
        X,
        __version__,
        eliminate_partial_sequential,
        hybrid_map_estimate,
        incremental_update,
        key_name,
        mode_marginals,
    )
except ImportError:
    sys.path.insert(0, str(Path(__file__).parent))
    from hybridfg import (
        HybridFactorGraph,
        Ordering,
        X,
        __version__,
        eliminate_partial_sequential,
        hybrid_map_estimate,
        incremental_update,
        key_name,
        mode_marginals,
    )
from hybridfg.discrete.assignment import cartesian_product, format_assignment
from hybridfg.discrete.factor import describe_table
from hybridfg.linear.jacobian import stack_augmented
from hybridfg.models.switching import Switching
from hybridfg.utils.logging import get_logger, log_level, setup_logging

logger = get_logger("hybridfg.main")


def brute_force_mode_posterior(graph: HybridFactorGraph) -> Dict[tuple, float]:
    """
    P(m) ∝ Π discrete(m) · ∫ exp(−E_m(x)) dx, the Gaussian integral done in
    closed form from the stacked system of each branch.
    """
    linear = HybridFactorGraph(list(graph.gaussian_graph) + list(graph.hybrid_graph))
    select = linear.sum()
    modes = graph.discrete_keys()
    weights = {}
    for a in cartesian_product(modes):
        branch = select(a)
        order = branch.keys()
        Ab, _ = stack_augmented(list(branch), order)
        A = Ab[:, :-1]
        _, logdet = np.linalg.slogdet(A.T @ A)
        e_star = branch.error(branch.optimize())
        log_w = -e_star + 0.5 * A.shape[1] * np.log(2.0 * np.pi) - 0.5 * logdet
        for f in graph.discrete_graph:
            log_w += np.log(f(a))
        weights[tuple(a[dk.key] for dk in modes)] = log_w
    top = max(weights.values())
    total = sum(np.exp(w - top) for w in weights.values())
    return {k: float(np.exp(w - top) / total) for k, w in weights.items()}


def print_marginals(marginals: Dict[int, np.ndarray]) -> None:
    print("\nMode marginals:")
    for k, p in sorted(marginals.items()):
        print(f"  P({key_name(k)}) = [" + ", ".join(f"{v:.4f}" for v in p) + "]")


def demo_switching(steps: int = 3) -> bool:
    """Demo: batch elimination of a switching system."""
    print("=" * 60)
    print(f"Demo: {steps}-step switching system (batch)")
    print("=" * 60)

    switching = Switching(steps)
    graph = switching.linearized_factor_graph
    print(f"\n{graph!r}")

    ordering = Ordering([X(k) for k in range(1, steps + 1)])
    bayes_net, remaining = eliminate_partial_sequential(graph, ordering)
    print("\nHybrid Bayes net:")
    for c in bayes_net:
        print(f"  {c!r}")
    print("\nRemaining factors:")
    for f in remaining:
        print(f"  {f!r}")
        for line in describe_table(f):
            print(f"    {line}")

    marginals = mode_marginals(remaining)
    print_marginals(marginals)

    modes, estimate = hybrid_map_estimate(bayes_net, remaining)
    print(f"\nMAP modes: {format_assignment(modes)}")
    print(f"Continuous estimate (delta from linearization point): {estimate!r}")

    brute = brute_force_mode_posterior(graph)
    mode_keys = graph.discrete_keys()
    match = True
    for k, p in marginals.items():
        axis = [dk.key for dk in mode_keys].index(k)
        expected = np.zeros_like(p)
        for values, prob in brute.items():
            expected[values[axis]] += prob
        match = match and bool(np.allclose(p, expected, atol=1e-9))
    print(f"\nVerification (brute-force Gaussian integrals): match = {match}")
    return match


def demo_incremental(steps: int = 3) -> bool:
    """Demo: one incremental update per time step, compared with batch."""
    print("=" * 60)
    print(f"Demo: {steps}-step switching system (incremental)")
    print("=" * 60)

    switching = Switching(steps)
    linearized = switching.linearized_factor_graph
    measurements = [f for f in linearized.gaussian_graph]
    prior, measurements = measurements[0], measurements[1:]
    mixtures = list(linearized.hybrid_graph)

    state = None
    for k in range(1, steps + 1):
        new_factors: List = [measurements[k - 1]]
        if k == 1:
            new_factors.insert(0, prior)
            ordering = [X(1)]
        else:
            new_factors.insert(0, mixtures[k - 2])
            ordering = [X(k - 1), X(k)]
        state = incremental_update(state, new_factors, ordering)
        print(f"\nStep {k}: ordering {Ordering(ordering)!r}")
        for c in state.bayes_net:
            print(f"  {c!r}")

    residual = list(state.residual_graph) + list(linearized.discrete_graph)
    marginals = mode_marginals(residual)
    print_marginals(marginals)

    batch_net, batch_remaining = eliminate_partial_sequential(
        linearized, [X(k) for k in range(1, steps + 1)]
    )
    batch = mode_marginals(batch_remaining)
    match = all(np.allclose(marginals[k], batch[k], atol=1e-9) for k in batch)
    last_match = state.bayes_net.at(len(state.bayes_net) - 1).equals(batch_net.at(len(batch_net) - 1))
    print(f"\nVerification (batch marginals): match = {match}")
    print(f"Verification (last conditional equals batch): match = {last_match}")
    return match and last_match


def cmd_demo(args):
    """Execute the demo command."""
    demos = {
        "switching": demo_switching,
        "incremental": demo_incremental,
    }

    if args.trace:
        with log_level("DEBUG"):
            return _run_demos(demos, args)
    return _run_demos(demos, args)


def _run_demos(demos, args):
    if args.example == "all":
        results = []
        for name, func in demos.items():
            try:
                passed = func(args.steps)
                results.append((name, passed))
            except Exception as e:
                logger.exception("demo %s failed", name)
                print(f"Error in {name}: {e}")
                results.append((name, False))
            print()

        print("=" * 60)
        print("Summary")
        print("=" * 60)
        all_passed = True
        for name, passed in results:
            status = "✓ PASS" if passed else "✗ FAIL"
            print(f"  {name}: {status}")
            if not passed:
                all_passed = False

        return 0 if all_passed else 1

    try:
        passed = demos[args.example](args.steps)
        return 0 if passed else 1
    except Exception as e:
        logger.exception("demo %s failed", args.example)
        print(f"Error: {e}")
        return 1


def cmd_test(args):
    """Execute the test command."""
    import subprocess

    test_dir = Path(__file__).parent / "tests"
    if not test_dir.exists():
        print(f"Test directory not found: {test_dir}")
        return 1

    cmd = [sys.executable, "-m", "pytest", str(test_dir)]
    if args.verbose:
        cmd.append("-v")
    if args.coverage:
        cmd.extend(["--cov=hybridfg", "--cov-report=term-missing"])

    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, cwd=Path(__file__).parent)
    return result.returncode


def cmd_info(args):
    """Display system information."""
    print(f"HybridFG v{__version__}")
    print("Exact elimination for hybrid (discrete + continuous) factor graphs")
    print()
    print("Factor kinds:")
    print("  nonlinear - prior, between and custom measurement factors")
    print("  gaussian  - whitened Jacobian factors")
    print("  discrete  - decision-tree factors and conditionals")
    print("  hybrid    - mode-selected mixtures of the above")
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


def main():
    parser = argparse.ArgumentParser(
        prog="hybridfg",
        description="HybridFG: exact elimination for hybrid factor graphs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run demos
  hybridfg demo --example switching --steps 4
  hybridfg demo --example all

  # Run tests
  hybridfg test -v

  # Show info
  hybridfg info
"""
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"HybridFG {__version__}"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Logging level (default: WARNING)"
    )
    parser.add_argument("--log-file", type=str, default=None, help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run demonstration examples")
    demo_parser.add_argument(
        "--example", "-e",
        choices=["switching", "incremental", "all"],
        default="all",
        help="Which example to run (default: all)"
    )
    demo_parser.add_argument(
        "--steps", "-k",
        type=int,
        default=3,
        help="Number of time steps K (default: 3)"
    )
    demo_parser.add_argument(
        "--trace",
        action="store_true",
        help="Log every elimination step at DEBUG while the demos run"
    )

    # Test command
    test_parser = subparsers.add_parser("test", help="Run test suite")
    test_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    test_parser.add_argument("--coverage", "-c", action="store_true", help="With coverage")

    # Info command
    subparsers.add_parser("info", help="Show system information")

    args = parser.parse_args()
    setup_logging(args.log_level, args.log_file)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "demo":
        if args.steps < 2:
            parser.error("--steps must be at least 2")
        return cmd_demo(args)
    elif args.command == "test":
        return cmd_test(args)
    elif args.command == "info":
        return cmd_info(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
