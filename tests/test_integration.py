"""
Integration Tests for the Ensemble Sampler

Runs gwmcmc.sample() end to end against targets with known moments and
against targets that trigger each error path.
Run with: pytest tests/test_integration.py -v
"""

import threading

import numpy as np
import jax.numpy as jnp
import pytest

import gwmcmc
from gwmcmc import (
    ConfigurationError,
    InitializationError,
    RunCancelled,
    RuntimeNonFiniteError,
    SampleResult,
    test_posteriors,
)
from gwmcmc.mcmc.config import configure_precision


# ============================================================================
# OUTPUT SHAPES AND CONTENTS
# ============================================================================

class TestCorrelatedGaussian3D:
    """The reference scenario: 3-D correlated Gaussian, 10000 samples."""

    @pytest.fixture
    def result(self, gaussian_3d, rng_seed):
        mean, cov, precision = gaussian_3d
        return gwmcmc.sample(
            test_posteriors.gaussian_log_posterior,
            theta0=mean + 0.5,
            n_samples=10000,
            n_walkers=50,
            burn_in=5000,
            verbosity=0,
            rng_seed=rng_seed,
            args=(jnp.asarray(mean), jnp.asarray(precision)),
        )

    def test_shapes(self, result):
        assert isinstance(result, SampleResult)
        assert result.positions.shape == (10000, 3)
        assert result.log_probs.shape == (10000,)
        assert result.accepted.shape == (200, 50)
        assert result.acceptance_per_cycle.shape == (200,)

    def test_values_finite(self, result):
        assert np.all(np.isfinite(result.positions))
        assert np.all(np.isfinite(result.log_probs))

    def test_acceptance_rate_in_range(self, result):
        assert 0.0 < result.acceptance_rate < 1.0

    def test_log_probs_match_positions(self, result, gaussian_3d):
        """Element i of log_probs is the log posterior at row i of positions."""
        mean, _, precision = gaussian_3d
        diff = result.positions - mean
        expected = -0.5 * np.einsum('ij,jk,ik->i', diff, precision, diff)
        np.testing.assert_allclose(result.log_probs, expected, rtol=1e-8, atol=1e-10)

    def test_metadata(self, result, rng_seed):
        assert result.method == 'gwmcmc'
        assert result.func == 'gaussian_log_posterior'
        assert result.mcmc_config['rng_seed'] == rng_seed
        assert result.diagnostics['keep_cycles'] == 200
        assert result.diagnostics['burn_cycles'] == 100
        assert result.diagnostics['walk_cycles'] == 0
        assert result.diagnostics['wall_time'] > 0.0


class TestConvergence:
    """Empirical moments approach the target's."""

    @pytest.mark.slow
    @pytest.mark.parametrize("update_scheme,walk_rate", [
        ('sequential', 0),
        ('partitioned', 0),
        ('sequential', 4),
    ])
    def test_gaussian_moments(self, gaussian_3d, update_scheme, walk_rate):
        mean, cov, precision = gaussian_3d
        result = gwmcmc.sample(
            test_posteriors.gaussian_log_posterior,
            theta0=np.zeros(3),
            init_scale=np.ones(3),
            init_cov=np.eye(3),
            n_samples=60000,
            n_walkers=40,
            burn_in=20000,
            verbosity=0,
            update_scheme=update_scheme,
            walk_rate=walk_rate,
            rng_seed=3,
            args=(jnp.asarray(mean), jnp.asarray(precision)),
        )
        np.testing.assert_allclose(result.positions.mean(axis=0), mean, atol=0.15)
        np.testing.assert_allclose(np.cov(result.positions, rowvar=False), cov, atol=0.2)

    def test_uniform_box_stays_inside(self, quick_run_kwargs):
        """-inf outside the support is an ordinary rejection."""
        result = gwmcmc.sample(
            test_posteriors.uniform_box_log_posterior,
            theta0=np.array([0.1, -0.1]),
            **quick_run_kwargs,
        )
        assert np.all(np.abs(result.positions) <= 1.0)
        assert np.all(result.log_probs == 0.0)


# ============================================================================
# OPTIONS
# ============================================================================

class TestSampleOptions:
    """Output options and reproducibility."""

    def test_same_seed_same_output(self, quick_run_kwargs):
        run = lambda: gwmcmc.sample(
            test_posteriors.standard_normal_log_posterior, np.ones(2), **quick_run_kwargs
        )
        first, second = run(), run()
        np.testing.assert_array_equal(first.positions, second.positions)
        np.testing.assert_array_equal(first.log_probs, second.log_probs)

    def test_different_seed_different_output(self, quick_run_kwargs):
        first = gwmcmc.sample(
            test_posteriors.standard_normal_log_posterior, np.ones(2), **quick_run_kwargs
        )
        quick_run_kwargs['rng_seed'] += 1
        second = gwmcmc.sample(
            test_posteriors.standard_normal_log_posterior, np.ones(2), **quick_run_kwargs
        )
        assert not np.array_equal(first.positions, second.positions)

    def test_unmerged_shape(self, quick_run_kwargs):
        result = gwmcmc.sample(
            test_posteriors.standard_normal_log_posterior, np.ones(2),
            merge_walkers=False, **quick_run_kwargs
        )
        assert result.positions.shape == (20, 20, 2)
        assert result.log_probs.shape == (400,)

    def test_thinning(self, quick_run_kwargs):
        result = gwmcmc.sample(
            test_posteriors.standard_normal_log_posterior, np.ones(2),
            thin=5, **quick_run_kwargs
        )
        assert result.n_cycles == 4
        assert result.positions.shape == (80, 2)

    def test_walk_moves_counted(self, quick_run_kwargs):
        """25 total cycles with walk_rate=5 use the walk move 5 times."""
        result = gwmcmc.sample(
            test_posteriors.standard_normal_log_posterior, np.ones(2),
            walk_rate=5, **quick_run_kwargs
        )
        assert result.diagnostics['walk_cycles'] == 5
        assert 'walk' in result.diagnostics['move_acceptance']

    def test_auxiliary_arguments_forwarded(self, quick_run_kwargs):
        """args and kwargs reach the posterior unchanged."""
        result = gwmcmc.sample(
            test_posteriors.uniform_box_log_posterior, np.array([10.0, 10.0]),
            args=(9.0,), kwargs={'upper': 11.0}, init_scale=[1e-4, 1e-4],
            **quick_run_kwargs
        )
        assert np.all((result.positions >= 9.0) & (result.positions <= 11.0))

    def test_single_precision(self, quick_run_kwargs):
        try:
            result = gwmcmc.sample(
                test_posteriors.standard_normal_log_posterior, np.ones(2),
                use_double=False, **quick_run_kwargs
            )
        finally:
            configure_precision(True)
        assert result.positions.dtype == np.float32
        assert result.log_probs.dtype == np.float32

    def test_seed_recorded_when_drawn(self, quick_run_kwargs):
        quick_run_kwargs['rng_seed'] = None
        result = gwmcmc.sample(
            test_posteriors.standard_normal_log_posterior, np.ones(2), **quick_run_kwargs
        )
        assert isinstance(result.diagnostics['rng_seed'], int)
        assert result.diagnostics['rng_seed'] == result.mcmc_config['rng_seed']

    def test_custom_reporter_receives_cycles(self, quick_run_kwargs, silent_reporter):
        gwmcmc.sample(
            test_posteriors.standard_normal_log_posterior, np.ones(2),
            reporter=silent_reporter, **quick_run_kwargs
        )
        assert silent_reporter.started
        assert silent_reporter.finished
        assert len(silent_reporter.cycles) == 25

    def test_progress_logged(self, quick_run_kwargs, caplog):
        quick_run_kwargs['verbosity'] = 1
        with caplog.at_level('INFO', logger='gwmcmc'):
            gwmcmc.sample(
                test_posteriors.standard_normal_log_posterior, np.ones(2), **quick_run_kwargs
            )
        assert "Finished burn-in" in caplog.text
        assert "Final acceptance rate" in caplog.text


# ============================================================================
# ERROR PATHS
# ============================================================================

class TestErrorPaths:
    """Each failure class is raised before or during the run as appropriate."""

    def test_configuration_error_before_work(self, quick_run_kwargs):
        calls = []

        def spy(theta):
            calls.append(1)
            return -0.5 * jnp.sum(theta ** 2)

        quick_run_kwargs['n_walkers'] = 2
        with pytest.raises(ConfigurationError):
            gwmcmc.sample(spy, np.ones(2), **quick_run_kwargs)
        assert calls == []

    def test_all_neg_inf_start(self, quick_run_kwargs):
        with pytest.raises(InitializationError):
            gwmcmc.sample(test_posteriors.always_neg_inf_log_posterior, np.ones(2), **quick_run_kwargs)

    def test_nan_during_run(self, quick_run_kwargs):
        """Walkers drifting into the NaN region abort the run."""
        quick_run_kwargs['n_samples'] = 2000
        with pytest.raises(RuntimeNonFiniteError) as excinfo:
            gwmcmc.sample(
                test_posteriors.nan_outside_radius_log_posterior, np.zeros(2),
                init_cov=0.01 * np.eye(2), kwargs={'radius': 1.0}, **quick_run_kwargs
            )
        assert excinfo.value.cycle >= 1
        assert len(excinfo.value.walkers) >= 1
        assert all(np.isnan(v) for v in excinfo.value.values)


class TestCancellation:
    """A run stopped between cycles returns its partial history."""

    def test_cancelled_run(self, quick_run_kwargs):
        event = threading.Event()

        class StopAfterFour(gwmcmc.ProgressReporter):
            def on_cycle(self, cycle, move, accepted):
                super().on_cycle(cycle, move, accepted)
                if cycle == 4:
                    event.set()

        result = gwmcmc.sample(
            test_posteriors.standard_normal_log_posterior, np.ones(2),
            cancel_event=event, reporter=StopAfterFour(0, 5), **quick_run_kwargs
        )
        assert isinstance(result, RunCancelled)
        assert result.completed_cycles == 4
        assert result.history.positions.shape == (4, 20, 2)
        assert result.total_cycles == 25
        assert result.func == 'standard_normal_log_posterior'
