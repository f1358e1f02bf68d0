"""
Walk Move Proposal for Ensemble Sampling

The "walk move" of Goodman & Weare (2010), eqn 11. For walker X_j a
complementary sample of S distinct walkers {X_k} is drawn (without
replacement) from the rest of the ensemble. With their mean <X> and
deviations d_k = X_k - <X>, the step is

    W = (1 / sqrt(S)) * sum_k w_k d_k,    w_k ~ N(0, 1)

and the proposal is X' = X_j + W. The 1/sqrt(S) factor makes the covariance of
W equal to the sample covariance of the complementary walkers.

Hastings ratio: 0 (the step distribution does not depend on X_j, so the
proposal is symmetric).

Settings used:
    sample_size - S, the complementary sample size. Must satisfy
                  M < S <= n_complement; see mcmc.config.clamp_walk_sample_size.
"""

import jax.numpy as jnp
import jax.random as random


def walk_proposal(key, current, complement, sample_size):
    """
    Walk move proposal for one walker.

    Args:
        key: JAX random key
        current: Position of the walker being updated (n_dim,)
        complement: Positions the complementary sample is drawn from (n_complement, n_dim)
        sample_size: S, number of complementary walkers (static)

    Returns:
        proposal: Proposed position (n_dim,)
        log_hastings_ratio: 0.0 (symmetric proposal)
        new_key: Updated random key
    """
    new_key, pick_key, weight_key = random.split(key, 3)

    chosen = random.choice(pick_key, complement.shape[0], shape=(sample_size,), replace=False)
    subset = complement[chosen]

    deviations = subset - jnp.mean(subset, axis=0)
    weights = random.normal(weight_key, shape=(sample_size,), dtype=current.dtype)
    step = (weights @ deviations) / jnp.sqrt(sample_size)

    proposal = current + step
    log_hastings_ratio = jnp.zeros((), dtype=current.dtype)

    return proposal, log_hastings_ratio, new_key
