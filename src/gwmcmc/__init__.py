"""
gwmcmc - Goodman & Weare Ensemble MCMC Sampling Package

Public API:
    Sampling:
        sample - Run the ensemble sampler on a log posterior
        SampleResult - Output of a completed run
        RunCancelled - Partial output of a run stopped by its cancel_event

    Settings:
        MoveType - IntEnum for ensemble moves (STRETCH, WALK)
        Verbosity - IntEnum for narration levels (SILENT, NORMAL, VERBOSE)
        UpdateScheme - Walker update order ('sequential', 'partitioned')

    Progress:
        ProgressReporter - Default run narration through the 'gwmcmc' logger

    Errors:
        GWMCMCError - Base class
        ConfigurationError - Invalid options
        InitializationError - Non-finite log posterior at a seeded walker
        RuntimeNonFiniteError - Non-finite log posterior during a run

    Output Processing:
        discard_burnin, thin_history, merge_walkers, flatten_log_probs

Example:
    import jax.numpy as jnp
    import gwmcmc

    def log_post(theta):
        return -0.5 * jnp.sum(theta ** 2)

    result = gwmcmc.sample(log_post, theta0=jnp.ones(3), n_samples=10000,
                           n_walkers=50, burn_in=2000, rng_seed=1)
    result.positions.shape   # (10000, 3)
"""
# CRITICAL: Import jax_config FIRST to set environment variables before JAX loads
from . import jax_config  # noqa: F401

# Import mcmc subpackage to register EnsembleState pytree
from . import mcmc as _mcmc  # noqa: F401

from .settings import MoveType, Verbosity, UpdateScheme
from .error_handling import (
    GWMCMCError,
    ConfigurationError,
    InitializationError,
    RuntimeNonFiniteError,
)
from .mcmc.types import EnsembleState, SampleResult, RunCancelled, CycleHistory
from .mcmc.progress import ProgressReporter
from .history_processing import (
    assemble_output,
    discard_burnin,
    thin_history,
    merge_walkers,
    flatten_log_probs,
)

# Main entry point
from .mcmc import sample
