"""
Ensemble Diagnostics.

Acceptance statistics for ensemble runs:
- acceptance_per_cycle: Mean accept flag of each cycle
- phase_acceptance: Overall acceptance rate of burn-in and production
- move_acceptance: Acceptance rate per move type
- print_acceptance_summary: Log acceptance rate statistics
"""

from typing import Dict

import numpy as np

from ..settings import MoveType

import logging
logger = logging.getLogger('gwmcmc')


def acceptance_per_cycle(accepted: np.ndarray) -> np.ndarray:
    """
    Mean accept flag of each cycle.

    Args:
        accepted: Accept flags (n_cycles, n_walkers)

    Returns:
        (n_cycles,) acceptance rates
    """
    accepted = np.asarray(accepted, dtype=float)
    if accepted.shape[0] == 0:
        return np.zeros(0)
    return np.mean(accepted, axis=1)


def phase_acceptance(accepted: np.ndarray, burn_cycles: int) -> Dict[str, float]:
    """Overall acceptance rate of the burn-in and production cycles."""
    accepted = np.asarray(accepted, dtype=float)
    burn, keep = accepted[:burn_cycles], accepted[burn_cycles:]
    return {
        'burn_in': float(np.mean(burn)) if burn.size else float('nan'),
        'production': float(np.mean(keep)) if keep.size else float('nan'),
    }


def move_acceptance(accepted: np.ndarray, moves: np.ndarray) -> Dict[str, float]:
    """Acceptance rate per move type over the given cycles."""
    accepted = np.asarray(accepted, dtype=float)
    moves = np.asarray(moves)
    rates = {}
    for move in MoveType:
        mask = moves == int(move)
        if np.any(mask):
            rates[move.name.lower()] = float(np.mean(accepted[mask]))
    return rates


def print_acceptance_summary(accepted: np.ndarray, move_rates: Dict[str, float]) -> None:
    """
    Log summary statistics for the acceptance rates of a run.

    Args:
        accepted: Accept flags of the retained cycles (n_cycles, n_walkers)
        move_rates: Acceptance rate per move type (see move_acceptance)
    """
    accepted = np.asarray(accepted, dtype=float)
    if accepted.size == 0:
        return

    per_walker = np.mean(accepted, axis=0)
    logger.info(f"\n--- Acceptance Rates ({accepted.shape[1]} walkers) ---")
    logger.info(f"  Mean: {np.mean(per_walker):.1%}  Median: {np.median(per_walker):.1%}  "
                f"Min: {np.min(per_walker):.1%}  Max: {np.max(per_walker):.1%}")

    for name, rate in move_rates.items():
        logger.info(f"  {name} move: {rate:.1%}")
