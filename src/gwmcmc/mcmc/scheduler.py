"""
Cycle Scheduling.

Drives a run one cycle at a time on the host:
- select_move: Move type for a given 1-based cycle number
- build_move_schedule: Move type for every cycle of a run
- run_cycles: Apply the compiled kernels, record snapshots and check them

Each cycle's random key is derived from the master key and the cycle
number, so a run is reproducible from its seed regardless of how the host
loop is interrupted or inspected.
"""

from typing import Any, Dict, Optional, Tuple

import jax
import jax.random as random
import numpy as np

from ..error_handling import RuntimeNonFiniteError
from ..settings import MoveType
from .types import CycleHistory, EnsembleState, RunParams

import logging
logger = logging.getLogger('gwmcmc')


def select_move(cycle: int, walk_rate: int) -> MoveType:
    """
    Move type for a 1-based cycle number.

    Every walk_rate-th cycle uses the walk move; all others use the stretch
    move. walk_rate = 0 disables the walk move.
    """
    if walk_rate > 0 and cycle % walk_rate == 0:
        return MoveType.WALK
    return MoveType.STRETCH


def build_move_schedule(total_cycles: int, walk_rate: int) -> np.ndarray:
    """
    Move type of every cycle in a run.

    Returns:
        (total_cycles,) int array; entry i is the move for cycle i+1
    """
    return np.array(
        [int(select_move(cycle, walk_rate)) for cycle in range(1, total_cycles + 1)],
        dtype=np.int32,
    )


def moves_in_run(total_cycles: int, walk_rate: int):
    """Distinct move types a run will use, in MoveType order."""
    schedule = build_move_schedule(total_cycles, walk_rate)
    return [MoveType(m) for m in np.unique(schedule)]


def check_finite(cycle: int, log_probs: np.ndarray, positions: Optional[np.ndarray] = None) -> None:
    """
    Abort the run if any cached log posterior is not finite.

    Raises:
        RuntimeNonFiniteError: With the cycle number and offending walkers
    """
    bad = np.flatnonzero(~np.isfinite(log_probs))
    if bad.size == 0:
        return

    logger.error(f"Non-finite log posterior after cycle {cycle} for {bad.size} walker(s):")
    for j in bad[:10]:
        if positions is not None:
            logger.error(f"  walker {j}: theta={positions[j]}, log posterior={log_probs[j]}")
        else:
            logger.error(f"  walker {j}: log posterior={log_probs[j]}")
    raise RuntimeNonFiniteError(cycle, bad.tolist(), log_probs[bad].tolist())


def run_cycles(
    kernels: Dict[MoveType, Any],
    initial_state: EnsembleState,
    master_key,
    run_params: RunParams,
    reporter,
    cancel_event=None,
) -> Tuple[CycleHistory, bool]:
    """
    Run every burn-in and production cycle.

    Args:
        kernels: Compiled kernel per MoveType, kernel(key, state) -> state
        initial_state: Seeded ensemble
        master_key: JAX key; cycle i uses fold_in(master_key, i)
        run_params: RunParams with cycle counts and walk rate
        reporter: Progress reporter (see mcmc.progress.ProgressReporter)
        cancel_event: Optional object with is_set(); checked between cycles

    Returns:
        (history, cancelled): snapshots of the completed cycles, and whether
        the run stopped on its cancellation signal

    Raises:
        RuntimeNonFiniteError: If a cached log posterior becomes non-finite
    """
    total_cycles = run_params.TOTAL_CYCLES
    schedule = build_move_schedule(total_cycles, run_params.WALK_RATE)

    dtype = np.asarray(jax.device_get(initial_state.log_probs)).dtype
    history = CycleHistory.allocate(total_cycles, run_params.N_WALKERS, run_params.N_DIM, dtype=dtype)

    state = initial_state
    for cycle in range(1, total_cycles + 1):
        if cancel_event is not None and cancel_event.is_set():
            reporter.on_cancel(history.completed)
            return history.truncated(), True

        move = MoveType(int(schedule[cycle - 1]))
        cycle_key = random.fold_in(master_key, cycle)
        state = kernels[move](cycle_key, state)

        host_state = jax.device_get(state)
        log_probs = np.asarray(host_state.log_probs)
        check_finite(cycle, log_probs, np.asarray(host_state.positions))

        history.record(host_state, move)
        reporter.on_cycle(cycle, move, host_state.accepted)

    return history, False
