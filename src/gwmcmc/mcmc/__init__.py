"""
MCMC Subpackage - Core ensemble sampling implementation.

This package contains the core ensemble sampling logic:
- backend: sample() entry point
- compile: Cycle kernel compilation
- config: Configuration and ensemble initialization
- diagnostics: Acceptance statistics
- progress: Run narration (ProgressReporter)
- sampling: Single-walker Metropolis step and per-cycle update schemes
- scheduler: Move schedule and the host cycle loop
- types: Core data structures (EnsembleState, RunParams, CycleHistory, results)
- utils: Miscellaneous utilities
"""

# Import types first (registers the EnsembleState pytree)
from .types import EnsembleState, RunParams, CycleHistory, SampleResult, RunCancelled

# Import main entry point
from .backend import sample

# Import commonly used functions
from .config import (
    configure_sampler,
    initialize_ensemble,
    build_initial_covariance,
    clamp_walk_sample_size,
)
from .diagnostics import acceptance_per_cycle, print_acceptance_summary
from .progress import ProgressReporter
from .scheduler import select_move, build_move_schedule, run_cycles
from .compile import compile_cycle_kernels

__all__ = [
    # Main entry point
    'sample',
    # Types
    'EnsembleState',
    'RunParams',
    'CycleHistory',
    'SampleResult',
    'RunCancelled',
    # Config
    'configure_sampler',
    'initialize_ensemble',
    'build_initial_covariance',
    'clamp_walk_sample_size',
    # Diagnostics
    'acceptance_per_cycle',
    'print_acceptance_summary',
    # Progress
    'ProgressReporter',
    # Scheduler
    'select_move',
    'build_move_schedule',
    'run_cycles',
    # Compile
    'compile_cycle_kernels',
]
