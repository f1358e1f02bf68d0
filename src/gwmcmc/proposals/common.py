"""
Common utilities for ensemble proposals.

Functions:
    complement_indices: Indices of every walker except one
    draw_uniform_index: Pick one row of a complement uniformly
"""

import jax.numpy as jnp
import jax.random as random


def complement_indices(j, n_walkers):
    """
    Indices of all walkers except walker j, in increasing order.

    Works with a traced j inside fori_loop: the shape (n_walkers - 1,) is
    static, only the values depend on j.

    Args:
        j: Index of the walker being updated (may be traced)
        n_walkers: Ensemble size (static)

    Returns:
        (n_walkers - 1,) int array
    """
    others = jnp.arange(n_walkers - 1)
    return others + (others >= j)


def draw_uniform_index(key, n):
    """Uniform integer in [0, n)."""
    return random.randint(key, shape=(), minval=0, maxval=n)
