#!/usr/bin/env python3
"""
fieldtrace command-line interface.

Usage:
    python -m fieldtrace --version    # Show version
    python -m fieldtrace --demo       # Trace a few lines in a dipole field
    python -m fieldtrace --info       # Show system and JAX information
"""

import argparse
import sys


def run_demo(n_seeds: int = 8, stepper_type: str = "rkf45", n_workers: int = 1) -> int:
    """Trace field lines of a point dipole and print a summary."""
    from . import (
        FieldLine,
        FieldLineSet,
        RKFStepperFactory,
        StepperConfig,
        dipole_field,
        line_seeds,
    )

    sampler = dipole_field(moment=(0.0, 0.0, 1.0), bounds_min=(-2.0, -2.0, -2.0), bounds_max=(2.0, 2.0, 2.0))
    factory = RKFStepperFactory(stepper_type, StepperConfig(dense_step_size=0.05))
    seeds = line_seeds((0.3, 0.0, 0.2), (1.0, 0.0, 0.2), n_seeds)

    line_set = FieldLineSet.trace(
        sampler,
        factory,
        seeds,
        field_line_initializer=lambda: FieldLine(max_points=2000),
        n_workers=n_workers,
        verbose=True,
    )

    for i, line in enumerate(line_set):
        print(f"  line {i}: {line.number_of_points} points, "
              f"length {line.length:.3f}, stopped by {line.stopping_cause.value}")
    return 0


def print_info() -> int:
    from .utils.config import get_config

    info = get_config().get_system_info()
    print(f"CPUs: {info['cpu_count']}")
    print(f"System memory: {info['system_memory_gb']:.1f} GB")
    print(f"JAX available: {info['jax_available']} (version {info['jax_version']})")
    for key, value in info["current_config"].items():
        print(f"  {key}: {value}")
    return 0


def main(argv=None) -> int:
    """Command-line interface for fieldtrace."""
    from . import __version__

    parser = argparse.ArgumentParser(
        prog='fieldtrace',
        description='fieldtrace - adaptive field line tracing',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fieldtrace --demo                     # Trace dipole field lines
  python -m fieldtrace --demo --stepper rkf23     # Use the 3(2) pair
  python -m fieldtrace --demo --workers 4         # Trace on 4 threads
"""
    )

    parser.add_argument('--version', action='version', version=f'fieldtrace {__version__}')
    parser.add_argument('--demo', action='store_true', help='Trace a few dipole field lines')
    parser.add_argument('--info', action='store_true', help='Show system information')
    parser.add_argument('--seeds', type=int, default=8, help='Number of seed points for the demo')
    parser.add_argument('--stepper', choices=['rkf23', 'rkf45'], default='rkf45', help='Runge-Kutta pair')
    parser.add_argument('--workers', type=int, default=1, help='Worker threads for the demo')

    args = parser.parse_args(argv)

    if args.info:
        return print_info()
    if args.demo:
        print("=" * 60)
        print("FIELD LINE TRACING DEMO")
        print("=" * 60)
        return run_demo(args.seeds, args.stepper, args.workers)

    parser.print_help()
    return 0


if __name__ == '__main__':
    sys.exit(main())
