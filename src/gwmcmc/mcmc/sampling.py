"""
Ensemble Sampling Functions.

Core sampling functions for the ensemble sampler:
- metropolis_walker_step: Propose and accept/reject for a single walker
- sequential_cycle: Update every walker in index order, in place
- partitioned_cycle: Update two halves of the ensemble against each other

Both cycle functions take the same arguments and return a new EnsembleState,
so the scheduler can treat them interchangeably.
"""

import jax
import jax.numpy as jnp
import jax.random as random
from functools import partial

from ..proposals.common import complement_indices
from .types import EnsembleState


def metropolis_walker_step(key, current, lp_current, complement, proposal_fn, log_post_fn):
    """
    Perform one Metropolis-Hastings update of a single walker.

    The cached log posterior of the current position is reused, never
    recomputed. The test log(u) < log_ratio is the log-space form of
    u <= exp(log_ratio): it cannot overflow, always accepts when the ratio is
    +inf and always rejects a -inf proposal.

    A NaN log posterior at the proposal is accepted into the cache so the
    scheduler's finiteness check aborts the run instead of silently
    rejecting it.

    Args:
        key: JAX random key
        current: Current position of the walker (n_dim,)
        lp_current: Cached log posterior at current
        complement: Positions available to the proposal (n_complement, n_dim)
        proposal_fn: proposal_fn(key, current, complement) -> (proposal, log_hastings_ratio, key)
        log_post_fn: Log posterior of a single position

    Returns:
        next_position, next_lp, accepted (bool)
    """
    proposal, log_hastings_ratio, key = proposal_fn(key, current, complement)
    lp_proposed = log_post_fn(proposal).astype(lp_current.dtype)

    log_ratio = log_hastings_ratio + lp_proposed - lp_current

    _, accept_key = random.split(key)
    log_uniform = jnp.log(random.uniform(accept_key, shape=(), dtype=lp_current.dtype))

    accept = (log_uniform < log_ratio) | jnp.isnan(lp_proposed)
    next_position = jnp.where(accept, proposal, current)
    next_lp = jnp.where(accept, lp_proposed, lp_current)

    return next_position, next_lp, accept


def sequential_cycle(key, state: EnsembleState, proposal_fn, log_post_fn) -> EnsembleState:
    """
    Update every walker once, in index order, writing each result back
    before the next walker is processed.

    The complement of walker j is every other walker as it stands at that
    moment, so walkers before j contribute their already-updated positions.
    Changing this order changes the sequence of accept/reject outcomes (not
    the stationary distribution).

    Args:
        key: JAX random key for this cycle
        state: Ensemble at the start of the cycle
        proposal_fn: Proposal with settings bound (see proposals/)
        log_post_fn: Log posterior of a single position

    Returns:
        Ensemble at the end of the cycle
    """
    n_walkers = state.positions.shape[0]
    walker_keys = random.split(key, n_walkers)

    def walker_body(j, carry):
        positions, accepted, log_probs = carry
        complement = positions[complement_indices(j, n_walkers)]

        new_position, new_lp, accept = metropolis_walker_step(
            walker_keys[j], positions[j], log_probs[j], complement,
            proposal_fn, log_post_fn
        )

        positions = positions.at[j].set(new_position)
        accepted = accepted.at[j].set(accept.astype(accepted.dtype))
        log_probs = log_probs.at[j].set(new_lp)
        return positions, accepted, log_probs

    positions, accepted, log_probs = jax.lax.fori_loop(
        0, n_walkers, walker_body,
        (state.positions, state.accepted, state.log_probs)
    )
    return EnsembleState(positions=positions, accepted=accepted, log_probs=log_probs)


def _update_group(key, positions, log_probs, complement, proposal_fn, log_post_fn):
    """Update a group of walkers in parallel against a fixed complement."""
    keys = random.split(key, positions.shape[0])
    step = partial(metropolis_walker_step, proposal_fn=proposal_fn, log_post_fn=log_post_fn)
    return jax.vmap(step, in_axes=(0, 0, 0, None))(keys, positions, log_probs, complement)


def partitioned_cycle(key, state: EnsembleState, proposal_fn, log_post_fn) -> EnsembleState:
    """
    Update the ensemble as two halves (Goodman & Weare's split scheme).

    Walkers [0, N//2) are updated simultaneously using the positions of
    [N//2, N) at the start of the cycle as their complement; then [N//2, N)
    are updated using the freshly updated first half. No walker reads a
    walker of its own half within a cycle.

    Args:
        key: JAX random key for this cycle
        state: Ensemble at the start of the cycle
        proposal_fn: Proposal with settings bound (see proposals/)
        log_post_fn: Log posterior of a single position

    Returns:
        Ensemble at the end of the cycle
    """
    n_walkers = state.positions.shape[0]
    half = n_walkers // 2
    key_a, key_b = random.split(key)

    positions_a, positions_b = state.positions[:half], state.positions[half:]
    lp_a, lp_b = state.log_probs[:half], state.log_probs[half:]

    positions_a, lp_a, accept_a = _update_group(
        key_a, positions_a, lp_a, positions_b, proposal_fn, log_post_fn
    )
    positions_b, lp_b, accept_b = _update_group(
        key_b, positions_b, lp_b, positions_a, proposal_fn, log_post_fn
    )

    accepted = jnp.concatenate([accept_a, accept_b]).astype(state.accepted.dtype)
    return EnsembleState(
        positions=jnp.concatenate([positions_a, positions_b], axis=0),
        accepted=accepted,
        log_probs=jnp.concatenate([lp_a, lp_b]),
    )
