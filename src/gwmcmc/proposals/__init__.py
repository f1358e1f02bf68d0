"""
Ensemble Proposals

This package implements the two Goodman & Weare (2010) ensemble moves.

To add a new move:
1. Add enum value to MoveType in settings.py
2. Create new file in proposals/ directory with proposal function
3. Add it to the kernel builder in mcmc/compile.py
4. Export from this __init__.py

Each proposal function computes its own log Hastings ratio; the acceptance
step in mcmc/sampling.py adds the change in log posterior.

All proposal functions share one contract:
    proposal_fn(key, current, complement, <static setting>) -> (proposal, log_hastings_ratio, new_key)

current is the position of the walker being updated and complement holds the
positions of the walkers it may draw on. Which walkers make up the complement
(all others, or the opposite half of the ensemble) is decided by the cycle
update scheme, not by the proposal.
"""

from .stretch import stretch_proposal, sample_stretch_factor
from .walk import walk_proposal
from .common import complement_indices

__all__ = [
    'stretch_proposal',
    'sample_stretch_factor',
    'walk_proposal',
    'complement_indices',
]
