"""
Run Progress Reporting.

ProgressReporter narrates a run through the 'gwmcmc' logger. The scheduler
calls its hooks; what gets logged depends on the verbosity level:

    SILENT   nothing
    NORMAL   periodic progress lines, end of burn-in, final summary
    VERBOSE  NORMAL plus ensemble dimensions and per-cycle move acceptance

Any object with the same hook methods can be passed to gwmcmc.sample() as
`reporter` instead.
"""

from datetime import timedelta

import numpy as np

from ..settings import MoveType, Verbosity

import logging
logger = logging.getLogger('gwmcmc')


class ProgressReporter:
    """
    Default progress reporter.

    Keeps running acceptance totals for the current phase (burn-in or
    production) so each progress line shows the rate since the phase began.
    """

    def __init__(self, verbosity: int = Verbosity.NORMAL, interval: int = 5):
        self.verbosity = Verbosity(verbosity)
        self.interval = interval
        self.total_cycles = 0
        self.burn_cycles = 0
        self._phase_accepted = 0.0
        self._phase_updates = 0

    def on_start(self, run_params, dtype=None):
        """Called once before the first cycle."""
        self.total_cycles = run_params.TOTAL_CYCLES
        self.burn_cycles = run_params.BURN_CYCLES
        self._phase_accepted = 0.0
        self._phase_updates = 0

        if self.verbosity >= Verbosity.NORMAL:
            logger.info("\n--- ENSEMBLE MCMC RUN ---")
        if self.verbosity >= Verbosity.VERBOSE:
            logger.info(f"  Walkers: {run_params.N_WALKERS}  Dimensions: {run_params.N_DIM}")
            logger.info(f"  Ensemble array: ({run_params.N_WALKERS}, {run_params.N_DIM})"
                        f"{f'  dtype: {np.dtype(dtype).name}' if dtype is not None else ''}")
            logger.info(f"  History array: ({run_params.TOTAL_CYCLES}, {run_params.N_WALKERS}, "
                        f"{run_params.N_DIM})")
            logger.info(f"  Cycles: {run_params.BURN_CYCLES} burn-in + "
                        f"{run_params.KEEP_CYCLES} production = {run_params.TOTAL_CYCLES}")
            logger.info(f"  Update scheme: {run_params.UPDATE_SCHEME}  "
                        f"stretch_scale: {run_params.STRETCH_SCALE}  walk_rate: {run_params.WALK_RATE}  "
                        f"walk_sample_size: {run_params.WALK_SAMPLE_SIZE}")

    def on_cycle(self, cycle: int, move: int, accepted: np.ndarray):
        """
        Called after each completed cycle.

        Args:
            cycle: 1-based cycle number
            move: MoveType used for the cycle
            accepted: Accept flags of every walker for the cycle (n_walkers,)
        """
        accepted = np.asarray(accepted, dtype=float)
        self._phase_accepted += float(np.sum(accepted))
        self._phase_updates += accepted.size

        if self.verbosity >= Verbosity.VERBOSE:
            logger.info(f"  Cycle {cycle}: {MoveType(move).name.lower()} move "
                        f"acceptance {np.mean(accepted):.3f}")

        in_burnin = cycle <= self.burn_cycles
        if self.verbosity >= Verbosity.NORMAL and (cycle % self.interval == 0 or cycle == self.total_cycles):
            phase = "burn-in" if in_burnin else "production"
            pct = 100.0 * cycle / self.total_cycles if self.total_cycles else 100.0
            logger.info(f"  Cycle {cycle}/{self.total_cycles} ({pct:.0f}%, {phase}): "
                        f"acceptance rate {self.phase_acceptance_rate:.3f}")

        if cycle == self.burn_cycles:
            if self.verbosity >= Verbosity.NORMAL:
                logger.info(f"Finished burn-in ({self.burn_cycles} cycles)")
            self._phase_accepted = 0.0
            self._phase_updates = 0

    def on_cancel(self, completed_cycles: int):
        """Called when the run stops on its cancellation signal."""
        if self.verbosity >= Verbosity.NORMAL:
            logger.info(f"Run cancelled after {completed_cycles}/{self.total_cycles} cycles")

    def on_finish(self, wall_time: float, acceptance_rate: float):
        """Called once after output assembly."""
        if self.verbosity >= Verbosity.NORMAL:
            logger.info("\n--- Ensemble MCMC Run Summary ---")
            logger.info(f"  Total Wall Time: {timedelta(seconds=int(wall_time))} ({wall_time:.2f}s)")
            logger.info(f"  Final acceptance rate: {acceptance_rate:.4f}")

    def on_advisory(self, message: str):
        """Called for non-fatal advisories such as a low acceptance rate."""
        if self.verbosity >= Verbosity.NORMAL:
            logger.warning(message)

    @property
    def phase_acceptance_rate(self) -> float:
        """Acceptance rate since the start of the current phase."""
        if self._phase_updates == 0:
            return float('nan')
        return self._phase_accepted / self._phase_updates
