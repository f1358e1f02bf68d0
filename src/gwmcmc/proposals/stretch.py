"""
Stretch Move Proposal for Ensemble Sampling

Affine-invariant "stretch move" of Goodman & Weare (2010), eqn 7:

    X' = X_k + z (X_j - X_k) = (1 - z) X_k + z X_j

where X_j is the walker being updated, X_k a complementary walker chosen
uniformly at random, and z a stretch factor drawn from

    g(z) ∝ 1/sqrt(z)   for z in [1/a, a]     (eqn 9)

which is sampled exactly as z = (1 + (a - 1) u)^2 / a with u ~ U(0, 1).

Hastings ratio: (M - 1) log z, where M is the number of dimensions. This is the
only correction needed for the proposal to satisfy detailed balance.

Settings used:
    scale - the stretch parameter a (> 1, default 2.0). Larger values make
            bigger, less often accepted jumps.
"""

import jax.numpy as jnp
import jax.random as random

from .common import draw_uniform_index


def sample_stretch_factor(key, scale, dtype=None):
    """
    Draw z from g(z) ∝ 1/sqrt(z) on [1/scale, scale].

    Args:
        key: JAX random key
        scale: Stretch parameter a > 1
        dtype: Float dtype of the draw

    Returns:
        Scalar stretch factor z
    """
    if dtype is None:
        dtype = jnp.result_type(float)
    u = random.uniform(key, shape=(), dtype=dtype)
    return (1.0 + (scale - 1.0) * u) ** 2 / scale


def stretch_proposal(key, current, complement, scale):
    """
    Stretch move proposal for one walker.

    Args:
        key: JAX random key
        current: Position of the walker being updated (n_dim,)
        complement: Positions the complementary walker is drawn from (n_complement, n_dim)
        scale: Stretch parameter a

    Returns:
        proposal: Proposed position (n_dim,)
        log_hastings_ratio: (n_dim - 1) * log(z)
        new_key: Updated random key
    """
    n_dim = current.shape[0]
    new_key, pick_key, z_key = random.split(key, 3)

    k = draw_uniform_index(pick_key, complement.shape[0])
    z = sample_stretch_factor(z_key, scale, dtype=current.dtype)

    proposal = (1.0 - z) * complement[k] + z * current
    log_hastings_ratio = (n_dim - 1) * jnp.log(z)

    return proposal, log_hastings_ratio, new_key
