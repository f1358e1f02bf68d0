"""
Sampler settings.

This module defines the enums that select behaviour at run time and the
canonical defaults for every option accepted by gwmcmc.sample().

MoveType values are plain integers so the scheduler can record the move used
for each cycle in a numpy array. Verbosity is an IntEnum so callers may pass
plain 0/1/2.

To add a new option:
1. Add its default to SAMPLER_DEFAULTS
2. Validate it in error_handling.validate_sampler_config
3. Carry it into RunParams in mcmc.config.configure_sampler
"""

from enum import IntEnum


class MoveType(IntEnum):
    """
    Ensemble update move used for one cycle.

    STRETCH is the default affine-invariant stretch move; WALK replaces it on
    every walk_rate-th cycle when walk_rate > 0.
    """
    STRETCH = 0
    WALK = 1


class Verbosity(IntEnum):
    """Progress narration levels."""
    SILENT = 0
    NORMAL = 1
    VERBOSE = 2


class UpdateScheme:
    """
    Order in which walkers are updated within a cycle.

    SEQUENTIAL: walkers are updated one at a time in index order and each
        update is visible to the walkers that follow in the same cycle.
    PARTITIONED: the ensemble is split into two halves; each half is updated
        in parallel against the other half's current positions.
    """
    SEQUENTIAL = 'sequential'
    PARTITIONED = 'partitioned'

    ALL = (SEQUENTIAL, PARTITIONED)


METHOD_NAME = 'gwmcmc'

# Floor on the diagonal of the initial covariance so a start coordinate of
# exactly zero still gets a non-degenerate spread
INIT_VARIANCE_FLOOR = 1e-13
DEFAULT_INIT_SCALE = 1e-4

# Fewer production cycles than this cannot give meaningful output
MIN_KEEP_CYCLES = 10

# Below this overall acceptance rate the run is flagged with an advisory
LOW_ACCEPTANCE_THRESHOLD = 0.05

# Default values for every sample() option (all lowercase)
SAMPLER_DEFAULTS = {
    'n_samples': 10000,
    'n_walkers': 100,
    'burn_in': 2000,
    'progress_interval': 5,
    'verbosity': Verbosity.NORMAL,
    'thin': None,
    'init_scale': None,
    'init_cov': None,
    'walk_rate': 0,
    'stretch_scale': 2.0,
    'walk_sample_size': None,
    'merge_walkers': True,
    'update_scheme': UpdateScheme.SEQUENTIAL,
    'rng_seed': None,
    'use_double': True,
}
