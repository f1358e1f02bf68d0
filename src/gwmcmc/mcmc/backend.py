"""
Ensemble MCMC Backend - sample() entry point.

sample() runs one complete Goodman & Weare ensemble sampler run:

1. Validate and configure the run (ConfigurationError on bad options)
2. Seed the walker ensemble around theta0 (InitializationError if any
   walker starts at a non-finite log posterior)
3. Compile a cycle kernel for each move type the run uses
4. Run burn-in and production cycles (RuntimeNonFiniteError if a cached
   log posterior becomes non-finite)
5. Drop burn-in, thin, merge walkers and return a SampleResult

A run stopped by its cancellation signal returns RunCancelled with the
cycles completed so far.
"""

import time
from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, Optional, Sequence, Union

import jax
import jax.numpy as jnp

from ..error_handling import print_diagnostics
from ..history_processing import assemble_output
from ..settings import MoveType, Verbosity
from .compile import compile_cycle_kernels
from .config import (
    build_initial_covariance,
    configure_precision,
    configure_sampler,
    gen_rng_keys,
    initialize_ensemble,
)
from .diagnostics import print_acceptance_summary
from .progress import ProgressReporter
from .scheduler import moves_in_run, run_cycles
from .types import RunCancelled, SampleResult

import logging
logger = logging.getLogger('gwmcmc')


def _bind_log_posterior(log_posterior: Callable, args: Sequence, kwargs: Dict[str, Any]) -> Callable:
    """Bind the auxiliary context so the kernels see a function of theta alone."""
    def log_post_fn(theta):
        return jnp.reshape(log_posterior(theta, *args, **kwargs), ())
    return log_post_fn


def _posterior_name(log_posterior) -> str:
    if isinstance(log_posterior, partial):
        return _posterior_name(log_posterior.func)
    return getattr(log_posterior, '__name__', type(log_posterior).__name__)


def sample(
    log_posterior: Callable,
    theta0,
    n_samples: int = 10000,
    n_walkers: int = 100,
    burn_in: int = 2000,
    progress_interval: int = 5,
    verbosity: int = Verbosity.NORMAL,
    thin: Optional[int] = None,
    init_scale=None,
    init_cov=None,
    walk_rate: int = 0,
    stretch_scale: float = 2.0,
    walk_sample_size: Optional[int] = None,
    merge_walkers: bool = True,
    update_scheme: str = 'sequential',
    rng_seed: Optional[int] = None,
    use_double: bool = True,
    reporter=None,
    cancel_event=None,
    args: Sequence = (),
    kwargs: Optional[Dict[str, Any]] = None,
) -> Union[SampleResult, RunCancelled]:
    """
    Sample from a log posterior with the Goodman & Weare ensemble sampler.

    Args:
        log_posterior: log_posterior(theta, *args, **kwargs) -> scalar. Must be
            traceable by jax.jit and jax.vmap. May return -inf (the proposal is
            rejected); NaN aborts the run.
        theta0: Start vector of length n_dim
        n_samples: Number of production samples (rounded up to whole cycles)
        n_walkers: Ensemble size; must exceed n_dim
        burn_in: Number of burn-in samples (rounded up to whole cycles)
        progress_interval: Cycles between progress lines
        verbosity: 0 silent, 1 progress, 2 verbose
        thin: Keep every thin-th production cycle
        init_scale: Per-dimension scale of the start variances
            (variance = init_scale * theta0**2)
        init_cov: Explicit start covariance; overrides init_scale
        walk_rate: 0 disables the walk move; else every walk_rate-th cycle
            uses it
        stretch_scale: Stretch move parameter a (> 1)
        walk_sample_size: Walk move complementary sample size S
        merge_walkers: Return positions as (n_walkers * n_cycles, n_dim)
        update_scheme: 'sequential' or 'partitioned'
        rng_seed: Integer seed; None draws one (recorded in the result)
        use_double: Run in 64-bit precision
        reporter: Progress reporter; defaults to ProgressReporter
        cancel_event: Object with is_set(), checked between cycles
        args: Positional auxiliary arguments for log_posterior
        kwargs: Keyword auxiliary arguments for log_posterior

    Returns:
        SampleResult, or RunCancelled if cancel_event was set during the run

    Raises:
        ConfigurationError: Invalid options (before any sampling work)
        InitializationError: Non-finite log posterior at a seeded walker
        RuntimeNonFiniteError: Non-finite log posterior during a cycle
    """
    mcmc_config = {
        'n_samples': n_samples,
        'n_walkers': n_walkers,
        'burn_in': burn_in,
        'progress_interval': progress_interval,
        'verbosity': verbosity,
        'thin': thin,
        'init_scale': init_scale,
        'init_cov': init_cov,
        'walk_rate': walk_rate,
        'stretch_scale': stretch_scale,
        'walk_sample_size': walk_sample_size,
        'merge_walkers': merge_walkers,
        'update_scheme': update_scheme,
        'rng_seed': rng_seed,
        'use_double': use_double,
    }

    # --- 1. CONFIGURE ---
    user_config, run_params = configure_sampler(mcmc_config, log_posterior, theta0)
    if reporter is None:
        reporter = ProgressReporter(run_params.VERBOSITY, run_params.PROGRESS_INTERVAL)

    func = _posterior_name(log_posterior)
    start_time = time.perf_counter()
    if run_params.VERBOSITY >= Verbosity.NORMAL:
        logger.info(f"Starting sampling for {func} at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info(f"JAX backend: {jax.default_backend()}")

    dtype = configure_precision(user_config['use_double'])
    master_key, init_key = gen_rng_keys(user_config['rng_seed'])
    log_post_fn = _bind_log_posterior(log_posterior, tuple(args), dict(kwargs or {}))

    # --- 2. INITIALIZE ENSEMBLE ---
    cov = build_initial_covariance(theta0, init_scale=init_scale, init_cov=init_cov)
    initial_state = initialize_ensemble(
        log_post_fn, theta0, cov, run_params.N_WALKERS, init_key, dtype=dtype
    )

    # --- 3. COMPILE KERNELS ---
    move_types = moves_in_run(run_params.TOTAL_CYCLES, run_params.WALK_RATE)
    kernels, compile_time = compile_cycle_kernels(
        move_types, run_params, log_post_fn, master_key, initial_state
    )

    # --- 4. RUN CYCLES ---
    reporter.on_start(run_params, dtype)
    history, cancelled = run_cycles(
        kernels, initial_state, master_key, run_params, reporter, cancel_event=cancel_event
    )

    if cancelled:
        return RunCancelled(
            history=history,
            completed_cycles=history.completed,
            total_cycles=run_params.TOTAL_CYCLES,
            burn_cycles=run_params.BURN_CYCLES,
            func=func,
            mcmc_config=user_config,
        )

    # --- 5. ASSEMBLE OUTPUT ---
    wall_time = time.perf_counter() - start_time
    diagnostics = {
        'wall_time': wall_time,
        'compile_time': compile_time,
        'rng_seed': user_config['rng_seed'],
        'total_cycles': run_params.TOTAL_CYCLES,
        'burn_cycles': run_params.BURN_CYCLES,
        'keep_cycles': run_params.KEEP_CYCLES,
        'walk_cycles': int((history.moves == int(MoveType.WALK)).sum()),
    }
    result = assemble_output(
        history, run_params, func=func, mcmc_config=user_config, diagnostics=diagnostics
    )

    if run_params.VERBOSITY >= Verbosity.VERBOSE:
        print_acceptance_summary(result.accepted, result.diagnostics['move_acceptance'])
    print_diagnostics(result.diagnostics, run_params.VERBOSITY, reporter=reporter)
    reporter.on_finish(wall_time, result.acceptance_rate)

    return result
