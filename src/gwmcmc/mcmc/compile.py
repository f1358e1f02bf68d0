"""
Cycle Kernel Compilation.

This module handles JAX compilation of the per-cycle kernels:
- build_proposal_fn: Bind a move's static settings to its proposal function
- build_cycle_kernel: Jitted (key, state) -> state function for one move type
- compile_cycle_kernels: AOT-compile a kernel for every move the run uses

A kernel performs one full cycle (every walker updated once) with one move
type and one update scheme; the scheduler picks which kernel to call each
cycle. Kernels close over the log posterior, so they are compiled per run.
"""

import time
from functools import partial
from typing import Any, Dict, Iterable, Tuple

import jax

from ..proposals import stretch_proposal, walk_proposal
from ..settings import MoveType, UpdateScheme
from .sampling import partitioned_cycle, sequential_cycle
from .types import EnsembleState, RunParams

import logging
logger = logging.getLogger('gwmcmc')


# Map from UpdateScheme to cycle function
CYCLE_REGISTRY = {
    UpdateScheme.SEQUENTIAL: sequential_cycle,
    UpdateScheme.PARTITIONED: partitioned_cycle,
}


def build_proposal_fn(move_type: MoveType, run_params: RunParams):
    """
    Bind the static settings of a move to its proposal function.

    Returns:
        proposal_fn(key, current, complement) -> (proposal, log_hastings_ratio, new_key)
    """
    if move_type == MoveType.STRETCH:
        return partial(stretch_proposal, scale=run_params.STRETCH_SCALE)
    if move_type == MoveType.WALK:
        return partial(walk_proposal, sample_size=run_params.WALK_SAMPLE_SIZE)
    raise ValueError(f"Unknown move type: {move_type}")


def build_cycle_kernel(move_type: MoveType, run_params: RunParams, log_post_fn):
    """
    Build the jitted one-cycle kernel for a move type.

    Args:
        move_type: MoveType applied to every walker in the cycle
        run_params: RunParams with move settings and update scheme
        log_post_fn: Log posterior of a single position (auxiliary args bound)

    Returns:
        Jitted function kernel(key, state) -> state
    """
    cycle_fn = CYCLE_REGISTRY[run_params.UPDATE_SCHEME]
    proposal_fn = build_proposal_fn(move_type, run_params)

    def cycle_kernel(key, state):
        return cycle_fn(key, state, proposal_fn, log_post_fn)

    return jax.jit(cycle_kernel)


def compile_cycle_kernels(
    move_types: Iterable[MoveType],
    run_params: RunParams,
    log_post_fn,
    master_key,
    initial_state: EnsembleState,
) -> Tuple[Dict[MoveType, Any], float]:
    """
    AOT-compile a cycle kernel for every move type the run uses.

    Args:
        move_types: Move types that appear in the run's schedule
        run_params: RunParams with move settings and update scheme
        log_post_fn: Log posterior of a single position (auxiliary args bound)
        master_key: Example key for tracing
        initial_state: Example ensemble state for tracing

    Returns:
        Tuple of (kernels dict keyed by MoveType, compile_time)
    """
    kernels = {}
    compile_start = time.perf_counter()

    for move_type in sorted(set(move_types)):
        move_type = MoveType(move_type)
        kernel_jit = build_cycle_kernel(move_type, run_params, log_post_fn)
        kernels[move_type] = kernel_jit.lower(master_key, initial_state).compile()
        logger.info(f"Compiled {move_type.name.lower()} move kernel ({run_params.UPDATE_SCHEME} updates)")

    compile_time = time.perf_counter() - compile_start
    logger.info(f"Kernel compilation done ({compile_time:.4f}s)")
    return kernels, compile_time
