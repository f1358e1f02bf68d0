"""
Sampler Configuration and Initialization.

This module handles setting up and validating a sampler run:
- configure_sampler: Main configuration entry point
- clamp_walk_sample_size: Bring the walk move sample size into range
- build_initial_covariance: Covariance used to scatter the walkers at start
- initialize_ensemble: Seed the walkers and evaluate their log posterior
- gen_rng_keys: Generate JAX random keys

Configuration is split into two parts:
- user_config: Serializable config returned with the results
- run_params: Frozen RunParams used as a static argument by the kernels

All config keys use lowercase with underscores (e.g., 'n_walkers', 'burn_in').
"""

import math
from typing import Any, Dict, Optional, Tuple

import jax
import jax.numpy as jnp
import jax.random as random
import numpy as np

from ..error_handling import InitializationError, validate_sampler_config
from ..settings import (
    DEFAULT_INIT_SCALE,
    INIT_VARIANCE_FLOOR,
    UpdateScheme,
)
from .types import EnsembleState, RunParams
from .utils import clean_config

import logging
logger = logging.getLogger('gwmcmc')


def gen_rng_keys(rng_seed: int) -> Tuple[Any, Any]:
    """Generate JAX random keys from seed.

    Returns:
        (master_key, init_key): Tuple of JAX PRNGKeys
    """
    mkey = jax.random.PRNGKey(rng_seed)
    master_key, init_key = random.split(mkey, 2)
    return master_key, init_key


def clamp_walk_sample_size(sample_size: Optional[float], n_dim: int, n_available: int) -> int:
    """
    Bring the walk move complementary sample size S into range.

    S defaults to n_dim + 1. Values <= n_dim are raised to n_dim + 1 and
    values above the number of walkers available to draw from are lowered to
    that number (the second rule wins when both apply).

    Args:
        sample_size: Requested S, or None for the default
        n_dim: Number of dimensions M
        n_available: Walkers available as complement (N - 1 for the
            sequential scheme, the smaller half for the partitioned one)

    Returns:
        S as a Python int
    """
    if sample_size is None:
        sample_size = n_dim + 1
    if sample_size != int(sample_size):
        logger.warning(f"walk_sample_size ({sample_size}) is not an integer; truncating")
    size = int(sample_size)
    if size <= n_dim:
        size = n_dim + 1
    if size > n_available:
        size = n_available
    return size


def configure_sampler(
    mcmc_config: Dict[str, Any],
    log_posterior,
    theta0,
) -> Tuple[Dict[str, Any], RunParams]:
    """
    Validate the sampler options and derive the run parameters.

    Args:
        mcmc_config: Options dict with keys like 'n_samples', 'n_walkers', etc.
        log_posterior: Caller-supplied log posterior function
        theta0: Start vector

    Returns:
        user_config: Clean config dict with user values + derived ints
        run_params: Frozen RunParams for the kernels and scheduler

    Raises:
        ConfigurationError: If any option is invalid
    """
    mcmc_config = clean_config(mcmc_config)
    validate_sampler_config(mcmc_config, log_posterior, theta0)

    n_dim = int(np.asarray(theta0).size)
    n_walkers = int(mcmc_config['n_walkers'])
    update_scheme = mcmc_config['update_scheme']

    # Cycle counts (as plain Python ints)
    keep_cycles = math.ceil(mcmc_config['n_samples'] / n_walkers)
    burn_cycles = math.ceil(mcmc_config['burn_in'] / n_walkers)

    if n_walkers < 2 * (n_dim + 1):
        logger.warning(
            f"n_walkers ({n_walkers}) is below the recommended 2*(M+1) = {2 * (n_dim + 1)}"
        )

    if update_scheme == UpdateScheme.PARTITIONED:
        n_available = n_walkers // 2
    else:
        n_available = n_walkers - 1
    walk_sample_size = clamp_walk_sample_size(mcmc_config['walk_sample_size'], n_dim, n_available)
    if mcmc_config['walk_rate'] > 0 and walk_sample_size <= n_dim:
        logger.warning(
            f"Walk move complementary sample has only {walk_sample_size} walkers for {n_dim} "
            f"dimensions; its proposals cannot span the full parameter space"
        )

    rng_seed = mcmc_config['rng_seed']
    if rng_seed is None:
        rng_seed = int(np.random.SeedSequence().entropy % (2 ** 31))

    user_config = {
        'n_samples': int(mcmc_config['n_samples']),
        'n_walkers': n_walkers,
        'burn_in': int(mcmc_config['burn_in']),
        'progress_interval': int(mcmc_config['progress_interval']),
        'verbosity': int(mcmc_config['verbosity']),
        'thin': mcmc_config['thin'],
        'stretch_scale': float(mcmc_config['stretch_scale']),
        'walk_rate': int(mcmc_config['walk_rate']),
        'merge_walkers': bool(mcmc_config['merge_walkers']),
        'update_scheme': update_scheme,
        'rng_seed': rng_seed,
        'use_double': bool(mcmc_config['use_double']),
        # Derived values
        'n_dim': n_dim,
        'keep_cycles': keep_cycles,
        'burn_cycles': burn_cycles,
        'total_cycles': keep_cycles + burn_cycles,
        'walk_sample_size': walk_sample_size,
    }

    run_params = RunParams(
        N_WALKERS=n_walkers,
        N_DIM=n_dim,
        KEEP_CYCLES=keep_cycles,
        BURN_CYCLES=burn_cycles,
        STRETCH_SCALE=float(mcmc_config['stretch_scale']),
        WALK_RATE=int(mcmc_config['walk_rate']),
        WALK_SAMPLE_SIZE=walk_sample_size,
        THIN=mcmc_config['thin'],
        MERGE_WALKERS=bool(mcmc_config['merge_walkers']),
        UPDATE_SCHEME=update_scheme,
        PROGRESS_INTERVAL=int(mcmc_config['progress_interval']),
        VERBOSITY=int(mcmc_config['verbosity']),
    )

    return user_config, run_params


def configure_precision(use_double: bool):
    """Configure JAX precision and return the float dtype to use."""
    if use_double:
        jax.config.update("jax_enable_x64", True)
        return jnp.float64
    jax.config.update("jax_enable_x64", False)
    return jnp.float32


def build_initial_covariance(
    theta0,
    init_scale=None,
    init_cov=None,
    floor: float = INIT_VARIANCE_FLOOR,
) -> np.ndarray:
    """
    Covariance of the multivariate normal used to scatter the walkers.

    If init_cov is given it is used as is. Otherwise the covariance is
    diagonal with variances init_scale * theta0**2, floored at `floor` so a
    start coordinate of exactly zero still gets some spread.

    Args:
        theta0: Start vector (n_dim,)
        init_scale: Per-dimension variance scale factors (default 1e-4)
        init_cov: Explicit (n_dim, n_dim) covariance; takes precedence
        floor: Minimum variance on the diagonal

    Returns:
        (n_dim, n_dim) covariance matrix
    """
    if init_cov is not None:
        return np.asarray(init_cov, dtype=float)

    theta0 = np.asarray(theta0, dtype=float)
    if init_scale is None:
        init_scale = np.full(theta0.size, DEFAULT_INIT_SCALE)
    variances = np.asarray(init_scale, dtype=float) * theta0 ** 2
    variances = np.maximum(variances, floor)
    return np.diag(variances)


def initialize_ensemble(
    log_post_fn,
    theta0,
    cov,
    n_walkers: int,
    init_key,
    dtype=jnp.float64,
) -> EnsembleState:
    """
    Seed the walkers around theta0 and evaluate their log posterior.

    Args:
        log_post_fn: Log posterior of a single position (auxiliary args bound)
        theta0: Start vector (n_dim,)
        cov: Covariance of the start scatter (n_dim, n_dim)
        n_walkers: Ensemble size
        init_key: JAX random key
        dtype: Float dtype of the ensemble arrays

    Returns:
        EnsembleState with accept flags set to NaN (no update yet)

    Raises:
        InitializationError: If any walker's initial log posterior is not finite
    """
    mean = jnp.asarray(theta0, dtype=dtype)
    positions = random.multivariate_normal(
        init_key, mean, jnp.asarray(cov, dtype=dtype), shape=(n_walkers,),
        dtype=dtype, method='eigh'
    )

    log_probs = jax.jit(jax.vmap(log_post_fn))(positions).astype(dtype)

    host_log_probs = np.asarray(jax.device_get(log_probs))
    bad = np.flatnonzero(~np.isfinite(host_log_probs))
    if bad.size > 0:
        host_positions = np.asarray(jax.device_get(positions))
        logger.error(f"Non-finite start values for {bad.size} of {n_walkers} walkers:")
        for j in bad[:10]:
            logger.error(f"  walker {j}: theta={host_positions[j]}, log posterior={host_log_probs[j]}")
        raise InitializationError(
            f"Non-finite start values for target density at {bad.size} of {n_walkers} walkers "
            f"(first: walker {bad[0]}, log posterior={host_log_probs[bad[0]]}). "
            f"Adjust theta0, init_scale or init_cov."
        )

    accepted = jnp.full(n_walkers, jnp.nan, dtype=dtype)
    return EnsembleState(positions=positions, accepted=accepted, log_probs=log_probs)

