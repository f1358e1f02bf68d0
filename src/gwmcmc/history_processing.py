"""
History processing utilities for ensemble MCMC output.

This module turns the per-cycle snapshots recorded by the scheduler into the
returned sample arrays:
- Dropping the burn-in cycles
- Thinning the production cycles
- Merging the walker dimension (walker-major order)
- Computing acceptance statistics and advisories
"""

from typing import Any, Dict, Optional

import numpy as np

from .error_handling import diagnose_sampler_issues
from .mcmc.diagnostics import acceptance_per_cycle, move_acceptance
from .mcmc.types import CycleHistory, RunParams, SampleResult
from .settings import METHOD_NAME

import logging
logger = logging.getLogger('gwmcmc')


def discard_burnin(history: CycleHistory, burn_cycles: int) -> CycleHistory:
    """
    Drop the first burn_cycles snapshots.

    Args:
        history: Snapshots of every completed cycle
        burn_cycles: Number of leading cycles to drop

    Returns:
        CycleHistory of the production cycles
    """
    n_kept = history.completed - burn_cycles
    if n_kept < 0:
        raise ValueError(
            f"History has {history.completed} cycles, fewer than the {burn_cycles} burn-in cycles"
        )
    logger.debug(f"Burn-in filter: dropped {burn_cycles} cycles, kept {n_kept}")
    return CycleHistory(
        positions=history.positions[burn_cycles:history.completed],
        accepted=history.accepted[burn_cycles:history.completed],
        log_probs=history.log_probs[burn_cycles:history.completed],
        moves=history.moves[burn_cycles:history.completed],
        completed=n_kept,
    )


def thin_history(history: CycleHistory, thin: Optional[int]) -> CycleHistory:
    """
    Keep every thin-th cycle: cycles thin, 2*thin, ..., floor(n/thin)*thin
    (1-based). thin of None or 1 keeps everything.
    """
    if thin is None or thin == 1:
        return history
    n_kept = history.completed // thin
    stop = n_kept * thin
    return CycleHistory(
        positions=history.positions[thin - 1:stop:thin],
        accepted=history.accepted[thin - 1:stop:thin],
        log_probs=history.log_probs[thin - 1:stop:thin],
        moves=history.moves[thin - 1:stop:thin],
        completed=n_kept,
    )


def merge_walkers(positions: np.ndarray) -> np.ndarray:
    """
    Flatten (n_cycles, n_walkers, n_dim) to (n_walkers * n_cycles, n_dim).

    Rows w*n_cycles .. (w+1)*n_cycles - 1 hold walker w's cycles in order.
    """
    n_cycles, n_walkers, n_dim = positions.shape
    return positions.transpose(1, 0, 2).reshape(n_walkers * n_cycles, n_dim)


def flatten_log_probs(log_probs: np.ndarray) -> np.ndarray:
    """Flatten (n_cycles, n_walkers) in the same walker-major order as merge_walkers."""
    return np.ascontiguousarray(log_probs.T).reshape(-1)


def assemble_output(
    history: CycleHistory,
    run_params: RunParams,
    func: str = '',
    mcmc_config: Optional[Dict[str, Any]] = None,
    diagnostics: Optional[Dict[str, Any]] = None,
) -> SampleResult:
    """
    Build the SampleResult of a completed run.

    A low overall acceptance rate is not an error; it adds an advisory to
    diagnostics['warnings'].

    Args:
        history: Snapshots of every cycle, burn-in included
        run_params: RunParams with burn-in, thinning and merge settings
        func: Name of the sampled log posterior
        mcmc_config: Serializable config to attach to the result
        diagnostics: Run diagnostics to extend (timings, seed, ...)

    Returns:
        SampleResult
    """
    kept = discard_burnin(history, run_params.BURN_CYCLES)
    kept = thin_history(kept, run_params.THIN)

    accepted = kept.accepted
    per_cycle = acceptance_per_cycle(accepted)
    acceptance_rate = float(np.mean(accepted)) if accepted.size else float('nan')

    log_probs = flatten_log_probs(kept.log_probs)
    if run_params.MERGE_WALKERS:
        positions = merge_walkers(kept.positions)
    else:
        positions = kept.positions

    diagnostics = diagnose_sampler_issues(accepted, log_probs, acceptance_rate, diagnostics or {})
    diagnostics['acceptance_rate'] = acceptance_rate
    diagnostics['move_acceptance'] = move_acceptance(accepted, kept.moves)

    return SampleResult(
        positions=positions,
        log_probs=log_probs,
        accepted=accepted,
        acceptance_rate=acceptance_rate,
        acceptance_per_cycle=per_cycle,
        method=METHOD_NAME,
        func=func,
        n_walkers=run_params.N_WALKERS,
        n_cycles=kept.completed,
        diagnostics=diagnostics,
        mcmc_config=dict(mcmc_config or {}),
    )

