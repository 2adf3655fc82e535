"""Tests for simulation parameters and config loading."""

import dataclasses

import pytest

from knockoffsim.config import DEFAULT_FDR_TARGETS, SimulationConfig, load_config


class TestSimulationConfig:

    def test_defaults(self):
        config = SimulationConfig()

        assert (config.n_samples, config.n_vars, config.rho, config.k) == (500, 1000, 0.4, 50)
        assert config.nsims == 10
        assert config.fdr_targets == DEFAULT_FDR_TARGETS
        assert config.lasso_repeats == 1
        assert config.on_fit_error == 'abort'

    def test_is_frozen(self):
        config = SimulationConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.nsims = 5

    def test_fdr_targets_become_tuple(self):
        config = SimulationConfig(fdr_targets=[0.1, 0.2])
        assert config.fdr_targets == (0.1, 0.2)

    @pytest.mark.parametrize("kwargs", [
        {'n_samples': 0},
        {'n_vars': -1},
        {'k': 11, 'n_vars': 10},
        {'k': -1},
        {'nsims': 0},
        {'fdr_targets': ()},
        {'fdr_targets': (0.0, 0.1)},
        {'fdr_targets': (0.1, 1.5)},
        {'lasso_repeats': 3, 'nsims': 10},
        {'knockoff_method': 'fixed'},
        {'offset': 2},
        {'on_fit_error': 'ignore'},
        {'signal_amplitude': 0.0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            SimulationConfig(**kwargs)

    def test_lasso_repeats_nsims(self):
        config = SimulationConfig(nsims=4, lasso_repeats=4)
        assert config.lasso_repeats == 4

    def test_rho_is_not_validated_here(self):
        # Checked by the covariance factorization instead
        config = SimulationConfig(rho=1.5)
        assert config.rho == 1.5


class TestLoadConfig:

    def test_no_file(self):
        assert load_config() == SimulationConfig()

    def test_yaml_file_with_overrides(self, tmp_path):
        path = tmp_path / 'sim.yaml'
        path.write_text("n_samples: 100\nn_vars: 200\nk: 5\nfdr_targets: [0.05, 0.1]\n")

        config = load_config(str(path), k=8, nsims=None)

        assert config.n_samples == 100
        assert config.n_vars == 200
        assert config.k == 8
        assert config.nsims == 10
        assert config.fdr_targets == (0.05, 0.1)

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text("")
        assert load_config(str(path)) == SimulationConfig()

    def test_unknown_key(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("n_samples: 100\nlambda: 0.5\n")

        with pytest.raises(ValueError, match="Unknown config keys"):
            load_config(str(path))
