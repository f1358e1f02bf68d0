"""
Pytest configuration and shared fixtures for gwmcmc tests.
"""

import pytest
import numpy as np
import jax
import jax.numpy as jnp

import gwmcmc  # noqa: F401  (sets JAX environment before first use)
from gwmcmc import test_posteriors
from gwmcmc.mcmc.types import EnsembleState, RunParams

jax.config.update("jax_enable_x64", True)


@pytest.fixture
def rng_seed():
    """Default RNG seed for reproducible tests."""
    return 42


@pytest.fixture
def gaussian_3d():
    """Correlated 3-D Gaussian target: (mean, cov, precision)."""
    return test_posteriors.correlated_gaussian_3d()


@pytest.fixture
def quick_run_kwargs(rng_seed):
    """Small, silent sampler run for tests that only check shapes and flow."""
    return {
        'n_samples': 400,
        'n_walkers': 20,
        'burn_in': 100,
        'verbosity': 0,
        'rng_seed': rng_seed,
    }


@pytest.fixture
def small_run_params():
    """RunParams for a 10-walker, 2-D ensemble with 2 burn-in and 10 production cycles."""
    return RunParams(
        N_WALKERS=10,
        N_DIM=2,
        KEEP_CYCLES=10,
        BURN_CYCLES=2,
        STRETCH_SCALE=2.0,
        WALK_RATE=0,
        WALK_SAMPLE_SIZE=3,
        VERBOSITY=0,
    )


@pytest.fixture
def spread_ensemble():
    """Factory for an EnsembleState of standard-normal walkers."""
    def _make(n_walkers=10, n_dim=2, seed=0):
        rng = np.random.default_rng(seed)
        positions = jnp.asarray(rng.standard_normal((n_walkers, n_dim)))
        log_probs = jax.vmap(test_posteriors.standard_normal_log_posterior)(positions)
        accepted = jnp.full(n_walkers, jnp.nan)
        return EnsembleState(positions=positions, accepted=accepted, log_probs=log_probs)
    return _make


class CountingKernel:
    """
    Host-side stand-in for a compiled cycle kernel.

    Returns a fixed numpy ensemble each call, with every walker's log
    posterior replaced by NaN on call number nan_on_call (1-based).
    """

    def __init__(self, n_walkers, n_dim, nan_on_call=None, nan_walkers=(0,)):
        self.n_walkers = n_walkers
        self.n_dim = n_dim
        self.nan_on_call = nan_on_call
        self.nan_walkers = list(nan_walkers)
        self.calls = 0

    def __call__(self, key, state):
        self.calls += 1
        positions = np.full((self.n_walkers, self.n_dim), float(self.calls))
        log_probs = np.full(self.n_walkers, -1.0)
        if self.nan_on_call is not None and self.calls == self.nan_on_call:
            log_probs[self.nan_walkers] = np.nan
        accepted = np.ones(self.n_walkers)
        return EnsembleState(positions=positions, accepted=accepted, log_probs=log_probs)


class SilentReporter:
    """Reporter that records hook calls instead of logging."""

    def __init__(self):
        self.cycles = []
        self.advisories = []
        self.cancelled_at = None
        self.started = False
        self.finished = False

    def on_start(self, run_params, dtype=None):
        self.started = True

    def on_cycle(self, cycle, move, accepted):
        self.cycles.append((cycle, int(move)))

    def on_cancel(self, completed_cycles):
        self.cancelled_at = completed_cycles

    def on_finish(self, wall_time, acceptance_rate):
        self.finished = True

    def on_advisory(self, message):
        self.advisories.append(message)


@pytest.fixture
def counting_kernel():
    """The CountingKernel class, for building stub kernels."""
    return CountingKernel


@pytest.fixture
def silent_reporter():
    """A fresh SilentReporter."""
    return SilentReporter()
