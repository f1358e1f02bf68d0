"""
Error Handling and Validation Utilities for the Ensemble Sampler

This module provides the exception hierarchy, configuration validation and
post-run diagnostic tools for gwmcmc.

Exceptions:
    ConfigurationError - invalid options, raised before any sampling work
    InitializationError - non-finite log posterior at a seeded walker
    RuntimeNonFiniteError - non-finite cached log posterior after a cycle
"""

import math
from numbers import Integral, Real
from typing import Any, Callable, Dict, Optional, Sequence

import numpy as np

from .settings import (
    LOW_ACCEPTANCE_THRESHOLD,
    MIN_KEEP_CYCLES,
    UpdateScheme,
    Verbosity,
)

import logging
logger = logging.getLogger('gwmcmc')


class GWMCMCError(Exception):
    """Base class for all gwmcmc errors."""


class ConfigurationError(GWMCMCError, ValueError):
    """Sampler options are invalid; raised before any sampling work."""


class InitializationError(GWMCMCError, RuntimeError):
    """One or more seeded walkers has a non-finite log posterior."""


class RuntimeNonFiniteError(GWMCMCError, RuntimeError):
    """
    A cached log posterior became non-finite during a cycle.

    The ensemble cannot be repaired without breaking detailed balance, so the
    whole run is abandoned.

    Attributes:
        cycle: 1-based cycle number at which the check failed
        walkers: Indices of the walkers holding non-finite values
    """

    def __init__(self, cycle: int, walkers: Sequence[int], values: Sequence[float]):
        self.cycle = cycle
        self.walkers = list(walkers)
        self.values = list(values)
        super().__init__(
            f"Non-finite log posterior after cycle {cycle} "
            f"for walker(s) {self.walkers}: {self.values}"
        )


def _is_integer(value: Any) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


def validate_sampler_config(
    config: Dict[str, Any],
    log_posterior: Optional[Callable],
    theta0: Any,
) -> None:
    """
    Validates that sampler configuration is sensible.

    Every problem found is collected and reported together.

    Args:
        config: Cleaned configuration dictionary (see mcmc.utils.clean_config)
        log_posterior: Caller-supplied log posterior function
        theta0: Start vector

    Raises:
        ConfigurationError: If configuration is invalid
    """
    errors = []

    if log_posterior is None:
        errors.append("Must specify the log posterior function")
    elif not callable(log_posterior):
        errors.append(f"log_posterior must be callable, got {type(log_posterior).__name__}")

    n_dim = None
    if theta0 is None:
        errors.append("Must specify the theta0 start position")
    else:
        start = np.asarray(theta0, dtype=float)
        if start.ndim != 1:
            errors.append(f"theta0 must be a 1-D vector, got shape {start.shape}")
        elif start.size == 0:
            errors.append("theta0 must contain at least one value")
        else:
            n_dim = start.size
            if not np.all(np.isfinite(start)):
                errors.append("theta0 must be finite everywhere")

    # Ensemble size and sample counts
    n_walkers = config['n_walkers']
    n_samples = config['n_samples']
    burn_in = config['burn_in']

    if not _is_integer(n_walkers) or n_walkers < 2:
        errors.append(f"n_walkers must be an integer >= 2, got {n_walkers}")
        n_walkers = None
    elif n_dim is not None and n_walkers <= n_dim:
        errors.append(
            f"n_walkers ({n_walkers}) must exceed the number of dimensions ({n_dim}); "
            f"increase the number of walkers"
        )

    keep_cycles = None
    if not _is_integer(n_samples) or n_samples < 1:
        errors.append(f"n_samples must be a positive integer, got {n_samples}")
    elif n_walkers is not None:
        keep_cycles = math.ceil(n_samples / n_walkers)
        if keep_cycles < MIN_KEEP_CYCLES:
            errors.append(
                f"n_samples ({n_samples}) gives only {keep_cycles} production cycles "
                f"with {n_walkers} walkers; at least {MIN_KEEP_CYCLES} are needed, "
                f"make n_samples larger"
            )

    if not _is_integer(burn_in) or burn_in < 0:
        errors.append(f"burn_in must be an integer >= 0, got {burn_in}")

    # Start dispersion
    init_scale = config['init_scale']
    if init_scale is not None:
        scale = np.atleast_1d(np.asarray(init_scale, dtype=float))
        if n_dim is not None and scale.size != n_dim:
            errors.append(f"init_scale has wrong length: expected {n_dim}, got {scale.size}")
        if np.any(~(scale > 0)):
            errors.append("init_scale should be > 0 everywhere")

    init_cov = config['init_cov']
    if init_cov is not None:
        cov = np.asarray(init_cov, dtype=float)
        if n_dim is not None and cov.shape != (n_dim, n_dim):
            errors.append(f"init_cov must have shape ({n_dim}, {n_dim}), got {cov.shape}")
        elif not np.all(np.isfinite(cov)):
            errors.append("init_cov must be finite everywhere")

    # Moves
    stretch_scale = config['stretch_scale']
    if not isinstance(stretch_scale, Real) or not stretch_scale > 1:
        errors.append(f"stretch_scale should be > 1, got {stretch_scale}")

    walk_rate = config['walk_rate']
    if not _is_integer(walk_rate) or walk_rate < 0:
        errors.append(f"walk_rate must be an integer >= 0, got {walk_rate}")

    walk_sample_size = config['walk_sample_size']
    if walk_sample_size is not None and (
            not isinstance(walk_sample_size, Real) or not math.isfinite(walk_sample_size)):
        errors.append(f"walk_sample_size must be a number, got {walk_sample_size}")

    # Output
    thin = config['thin']
    if thin is not None:
        if not _is_integer(thin) or thin < 1:
            errors.append(f"thin must be an integer >= 1, got {thin}")
        elif keep_cycles is not None and thin > keep_cycles:
            errors.append(
                f"thin ({thin}) exceeds the number of production cycles ({keep_cycles}); "
                f"no samples would be kept"
            )

    progress_interval = config['progress_interval']
    if not _is_integer(progress_interval) or progress_interval < 1:
        errors.append(f"progress_interval must be an integer >= 1, got {progress_interval}")

    if config['verbosity'] not in set(int(v) for v in Verbosity):
        errors.append(f"verbosity must be one of {[int(v) for v in Verbosity]}, got {config['verbosity']}")

    if config['update_scheme'] not in UpdateScheme.ALL:
        errors.append(f"update_scheme must be one of {UpdateScheme.ALL}, got {config['update_scheme']!r}")

    if errors:
        raise ConfigurationError("Invalid sampler configuration:\n  " + "\n  ".join(errors))


def low_acceptance_advisory(acceptance_rate: float) -> str:
    """Advisory text for a run whose acceptance rate is below the threshold."""
    return (
        f"Low acceptance rate ({acceptance_rate:.3f}). Consider the following suggestions:\n"
        f"    1. Increase the number of walkers: n_walkers.\n"
        f"    2. Lower the jump scale parameter: stretch_scale.\n"
        f"    3. Adjust the start position: theta0.\n"
        f"    4. Increase the variances of the start point randomisation: "
        f"init_scale or init_cov."
    )


def diagnose_sampler_issues(
    accepted: np.ndarray,
    log_probs: np.ndarray,
    acceptance_rate: float,
    diagnostics: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Analyzes retained sampler output to identify common issues.

    Args:
        accepted: Accept flags of the retained cycles (n_cycles, n_walkers)
        log_probs: Log posterior of the retained samples (any shape)
        acceptance_rate: Overall acceptance rate of the retained cycles
        diagnostics: Existing diagnostics dict to extend

    Returns:
        diagnostics: Dictionary with issues, warnings, and info
    """
    diagnostics = diagnostics | {
        'issues': [],
        'warnings': [],
        'info': []
    }

    if not np.all(np.isfinite(log_probs)):
        diagnostics['issues'].append(
            "Log posterior contains NaN or Inf values - sampler became unstable"
        )

    if acceptance_rate < LOW_ACCEPTANCE_THRESHOLD:
        diagnostics['warnings'].append(low_acceptance_advisory(acceptance_rate))

    # Walkers that never moved during production
    stuck_walkers = int(np.sum(np.nansum(accepted, axis=0) == 0))
    if stuck_walkers > 0:
        diagnostics['warnings'].append(
            f"{stuck_walkers} walker(s) never accepted a move after burn-in"
        )

    diagnostics['info'].append(f"Retained cycles: {accepted.shape[0]}")
    diagnostics['info'].append(f"Number of walkers: {accepted.shape[1]}")
    diagnostics['info'].append(f"Total samples: {accepted.size}")
    diagnostics['info'].append(f"Final acceptance rate: {acceptance_rate:.4f}")

    return diagnostics


def print_diagnostics(diagnostics: Dict[str, Any], verbosity: int = Verbosity.NORMAL, reporter=None) -> None:
    """
    Log diagnostics from diagnose_sampler_issues, gated by verbosity.

    Warnings go to reporter.on_advisory when a reporter is given.
    """
    if verbosity <= Verbosity.SILENT:
        return

    if diagnostics['issues']:
        logger.error("[ERROR] ISSUES:")
        for issue in diagnostics['issues']:
            logger.error(f"  - {issue}")

    for warning in diagnostics['warnings']:
        if reporter is not None:
            reporter.on_advisory(warning)
        else:
            logger.warning(f"[WARN] {warning}")

    if diagnostics['info'] and verbosity >= Verbosity.VERBOSE:
        logger.info("[INFO] INFO:")
        for info in diagnostics['info']:
            logger.info(f"  - {info}")

    if not diagnostics['issues'] and not diagnostics['warnings']:
        logger.info("[OK] No issues detected")
