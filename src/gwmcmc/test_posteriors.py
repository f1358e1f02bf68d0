"""
Test Posteriors - Targets with Known Moments or Known Failure Modes

This module contains simple log densities used for testing the sampler.
The Gaussian targets have analytical means and covariances, allowing us to
verify sampler correctness; the others exercise the error paths.

DO NOT import this module in production sampling code.
These models are for testing/validation only.

Every function has the signature log_posterior(theta, *args, **kwargs) and
is traceable by jax.jit / jax.vmap.
"""

import jax.numpy as jnp
import numpy as np


# ============================================================================
# GAUSSIAN TARGETS
# ============================================================================

def standard_normal_log_posterior(theta):
    """Independent standard normal in every dimension (unnormalised)."""
    return -0.5 * jnp.sum(theta ** 2)


def gaussian_log_posterior(theta, mean, precision):
    """
    Multivariate normal with given mean and precision (inverse covariance).

    Passed as auxiliary arguments: sample(gaussian_log_posterior, theta0,
    args=(mean, precision)).
    """
    diff = theta - mean
    return -0.5 * diff @ precision @ diff


def correlated_gaussian_3d():
    """
    Mean and covariance of a correlated 3-D Gaussian target.

    Returns:
        (mean, cov, precision) numpy arrays
    """
    mean = np.array([1.0, -2.0, 0.5])
    cov = np.array([
        [1.0, 0.6, 0.2],
        [0.6, 2.0, -0.4],
        [0.2, -0.4, 0.5],
    ])
    return mean, cov, np.linalg.inv(cov)


# ============================================================================
# BOUNDED AND PATHOLOGICAL TARGETS
# ============================================================================

def uniform_box_log_posterior(theta, lower=-1.0, upper=1.0):
    """Uniform on the box [lower, upper]^M; -inf outside."""
    inside = jnp.all((theta >= lower) & (theta <= upper))
    return jnp.where(inside, 0.0, -jnp.inf)


def always_neg_inf_log_posterior(theta):
    """Zero density everywhere; no walker can be initialised."""
    return -jnp.inf * jnp.ones(()) + 0.0 * jnp.sum(theta)


def nan_outside_radius_log_posterior(theta, radius=3.0):
    """Standard normal inside the given radius; NaN outside it."""
    r2 = jnp.sum(theta ** 2)
    return jnp.where(r2 <= radius ** 2, -0.5 * r2, jnp.nan)
