"""Tests for synthetic data generation."""

import numpy as np
import pytest

from knockoffsim import SimulationConfig
from knockoffsim.data import DataGenerator, make_toeplitz_cov, toeplitz_factor
from knockoffsim.errors import DataGenerationError


class TestToeplitz:

    def test_covariance_entries(self):
        Sigma = make_toeplitz_cov(4, 0.5)

        assert Sigma.shape == (4, 4)
        assert np.allclose(np.diag(Sigma), 1.0)
        assert Sigma[0, 1] == pytest.approx(0.5)
        assert Sigma[0, 3] == pytest.approx(0.125)
        assert np.allclose(Sigma, Sigma.T)

    def test_rho_zero_is_identity(self):
        assert np.allclose(make_toeplitz_cov(5, 0.0), np.eye(5))

    def test_factor_reconstructs_covariance(self):
        L = toeplitz_factor(20, 0.4)

        assert np.allclose(L, np.tril(L))
        assert np.allclose(L @ L.T, make_toeplitz_cov(20, 0.4))
        assert not L.flags.writeable

    @pytest.mark.parametrize("rho", [1.0, 1.5, -0.2])
    def test_invalid_rho(self, rho):
        with pytest.raises(DataGenerationError, match="rho"):
            toeplitz_factor(10, rho)


class TestDataGenerator:

    @pytest.fixture
    def generator(self):
        config = SimulationConfig(n_samples=40, n_vars=60, rho=0.3, k=6, nsims=1)
        return DataGenerator(config)

    def test_shapes_and_support(self, generator):
        dataset = generator.generate(seed=1)

        assert dataset.design_matrix.shape == (40, 60)
        assert dataset.response.shape == (40,)
        assert dataset.k == 6
        assert all(0 <= i < 60 for i in dataset.true_support)
        assert set(np.flatnonzero(dataset.coefficients)) == set(dataset.true_support)

    def test_same_seed_same_draw(self, generator):
        a = generator.generate(seed=3)
        b = generator.generate(seed=3)

        assert np.array_equal(a.design_matrix, b.design_matrix)
        assert np.array_equal(a.response, b.response)
        assert a.true_support == b.true_support

    def test_different_seeds_differ(self, generator):
        a = generator.generate(seed=3)
        b = generator.generate(seed=4)
        assert not np.array_equal(a.design_matrix, b.design_matrix)

    def test_arrays_are_read_only(self, generator):
        dataset = generator.generate(seed=0)

        with pytest.raises(ValueError):
            dataset.design_matrix[0, 0] = 1.0
        with pytest.raises(ValueError):
            dataset.response[0] = 1.0

    def test_factor_is_shared(self, generator):
        factor = generator.factor
        generator.generate(seed=0)
        generator.generate(seed=1)
        assert generator.factor is factor

    def test_noiseless_response(self):
        config = SimulationConfig(n_samples=20, n_vars=30, rho=0.2, k=4, nsims=1, noise_std=0.0)
        dataset = DataGenerator(config).generate(seed=5)

        assert np.allclose(dataset.response, dataset.design_matrix @ dataset.coefficients)

    def test_signal_amplitude(self):
        config = SimulationConfig(n_samples=20, n_vars=30, k=5, nsims=1, signal_amplitude=2.0)
        dataset = DataGenerator(config).generate(seed=2)

        nonzero = dataset.coefficients[list(dataset.true_support)]
        assert np.allclose(np.abs(nonzero), 2.0)

    def test_zero_k(self):
        config = SimulationConfig(n_samples=20, n_vars=30, k=0, nsims=1)
        dataset = DataGenerator(config).generate(seed=2)

        assert dataset.true_support == frozenset()
        assert not np.any(dataset.coefficients)

    def test_empirical_correlation(self):
        config = SimulationConfig(n_samples=20000, n_vars=5, rho=0.6, k=1, nsims=1)
        X = DataGenerator(config).generate(seed=0).design_matrix

        corr = np.corrcoef(X, rowvar=False)
        assert corr[0, 1] == pytest.approx(0.6, abs=0.03)
        assert corr[0, 2] == pytest.approx(0.36, abs=0.03)

    def test_bad_rho_fails_at_construction(self):
        with pytest.raises(DataGenerationError):
            DataGenerator(SimulationConfig(n_vars=10, k=2, rho=1.0))
