"""
Ensemble Sampler Data Structures and Type Definitions.

This module contains the core data structures used by the sampler:
- EnsembleState: Current position, accept flag and cached log posterior of every walker
- RunParams: Immutable run parameters for JAX static arguments
- CycleHistory: Host-side per-cycle snapshots of the ensemble
- SampleResult: Final assembled output of a completed run
- RunCancelled: Partial output of a run stopped between cycles
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import jax
import jax.numpy as jnp
import numpy as np


@dataclass(frozen=True)
class EnsembleState:
    """
    State of all N walkers at the end of a cycle.

    Registered as a JAX pytree so it can be carried through jitted cycle
    kernels. Row j of every array belongs to walker j.

    accepted holds 1.0 where the walker's last proposal was accepted and 0.0
    where it was rejected; it is NaN before the first update.
    """
    positions: jnp.ndarray   # (n_walkers, n_dim)
    accepted: jnp.ndarray    # (n_walkers,)
    log_probs: jnp.ndarray   # (n_walkers,) - cached log posterior at positions

    @property
    def n_walkers(self) -> int:
        return self.positions.shape[0]

    @property
    def n_dim(self) -> int:
        return self.positions.shape[1]


def _ensemble_state_flatten(state):
    """Flatten EnsembleState for JAX pytree."""
    return (state.positions, state.accepted, state.log_probs), None


def _ensemble_state_unflatten(aux_data, children):
    """Unflatten EnsembleState from JAX pytree."""
    positions, accepted, log_probs = children
    return EnsembleState(positions=positions, accepted=accepted, log_probs=log_probs)


# Register EnsembleState as a JAX pytree
jax.tree_util.register_pytree_node(
    EnsembleState,
    _ensemble_state_flatten,
    _ensemble_state_unflatten
)


@dataclass(frozen=True)
class RunParams:
    """
    Immutable run parameters for JAX static argument compatibility.

    All cycle counts are derived from the requested sample counts at configuration
    time; nothing here changes during a run.
    """
    N_WALKERS: int
    N_DIM: int
    KEEP_CYCLES: int
    BURN_CYCLES: int
    STRETCH_SCALE: float
    WALK_RATE: int
    WALK_SAMPLE_SIZE: int
    THIN: Optional[int] = None
    MERGE_WALKERS: bool = True
    UPDATE_SCHEME: str = 'sequential'
    PROGRESS_INTERVAL: int = 5
    VERBOSITY: int = 1

    @property
    def TOTAL_CYCLES(self) -> int:
        return self.KEEP_CYCLES + self.BURN_CYCLES


@dataclass
class CycleHistory:
    """
    Per-cycle snapshots of the ensemble, kept on the host.

    Arrays are preallocated for the whole run; only the first `completed`
    rows hold data. moves[i] is the MoveType used for cycle i+1.
    """
    positions: np.ndarray    # (n_cycles, n_walkers, n_dim)
    accepted: np.ndarray     # (n_cycles, n_walkers)
    log_probs: np.ndarray    # (n_cycles, n_walkers)
    moves: np.ndarray        # (n_cycles,)
    completed: int = 0

    @classmethod
    def allocate(cls, n_cycles: int, n_walkers: int, n_dim: int, dtype=np.float64) -> 'CycleHistory':
        return cls(
            positions=np.full((n_cycles, n_walkers, n_dim), np.nan, dtype=dtype),
            accepted=np.full((n_cycles, n_walkers), np.nan, dtype=dtype),
            log_probs=np.full((n_cycles, n_walkers), np.nan, dtype=dtype),
            moves=np.full(n_cycles, -1, dtype=np.int32),
        )

    def record(self, state: EnsembleState, move: int) -> None:
        """Store a host copy of the ensemble as the next cycle's snapshot."""
        i = self.completed
        self.positions[i] = np.asarray(state.positions)
        self.accepted[i] = np.asarray(state.accepted)
        self.log_probs[i] = np.asarray(state.log_probs)
        self.moves[i] = int(move)
        self.completed = i + 1

    def truncated(self) -> 'CycleHistory':
        """Return a copy holding only the completed cycles."""
        n = self.completed
        return CycleHistory(
            positions=self.positions[:n].copy(),
            accepted=self.accepted[:n].copy(),
            log_probs=self.log_probs[:n].copy(),
            moves=self.moves[:n].copy(),
            completed=n,
        )


@dataclass(frozen=True)
class SampleResult:
    """
    Output of a completed run.

    positions is (n_cycles, n_walkers, n_dim) or, when walkers are merged,
    (n_walkers * n_cycles, n_dim) in walker-major order: rows
    w*n_cycles .. (w+1)*n_cycles - 1 are walker w's retained cycles.
    log_probs is always the flat vector in that same order.
    """
    positions: np.ndarray
    log_probs: np.ndarray
    accepted: np.ndarray                # (n_cycles, n_walkers)
    acceptance_rate: float
    acceptance_per_cycle: np.ndarray    # (n_cycles,)
    method: str
    func: str
    n_walkers: int
    n_cycles: int
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    mcmc_config: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_samples(self) -> int:
        return self.n_walkers * self.n_cycles


@dataclass(frozen=True)
class RunCancelled:
    """
    Output of a run stopped by its cancellation signal between cycles.

    history holds every cycle that completed, burn-in included; nothing has
    been trimmed, thinned or merged.
    """
    history: CycleHistory
    completed_cycles: int
    total_cycles: int
    burn_cycles: int
    func: str
    mcmc_config: Dict[str, Any] = field(default_factory=dict)
