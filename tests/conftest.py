"""Shared fixtures and deterministic selector stubs."""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from knockoffsim import SimulationConfig, SyntheticDataset, DataGenerator
from knockoffsim.errors import FitError
from knockoffsim.knockoffs import KnockoffSelection, LassoSelection


def make_dataset(n_samples=30, n_vars=50, support=range(10), seed=0):
    """Small dataset with a hand-picked true support."""
    rng = np.random.default_rng(seed)
    beta = np.zeros(n_vars)
    beta[list(support)] = 1.0
    X = rng.standard_normal((n_samples, n_vars))
    y = X @ beta
    return SyntheticDataset(
        design_matrix=X,
        response=y,
        coefficients=beta,
        true_support=frozenset(support),
    )


class FixedGenerator:
    """Returns the same dataset for every seed."""

    def __init__(self, dataset):
        self.dataset = dataset
        self.covariance = np.eye(dataset.design_matrix.shape[1])
        self.seeds = []

    def generate(self, seed=None):
        self.seeds.append(seed)
        return self.dataset


class RecordingGenerator:
    """Wraps a real DataGenerator and remembers the last draw."""

    def __init__(self, config):
        self._generator = DataGenerator(config)
        self.covariance = self._generator.covariance
        self.last = None

    def generate(self, seed=None):
        self.last = self._generator.generate(seed)
        return self.last


class OracleSelector:
    """Selects the true support of the generator's last draw, plus ``extra``."""

    def __init__(self, generator, extra=()):
        self.generator = generator
        self.extra = frozenset(extra)
        self.lasso_calls = 0
        self.knockoff_calls = 0

    def _support(self):
        dataset = getattr(self.generator, 'last', None) or self.generator.dataset
        return frozenset(dataset.true_support) | self.extra

    def select_lasso(self, X, y, seed=None):
        self.lasso_calls += 1
        return LassoSelection(selected=self._support(), alpha=0.1)

    def select_knockoff(self, X, y, fdr_targets, Sigma=None, seed=None):
        self.knockoff_calls += 1
        fdr_targets = tuple(fdr_targets)
        support = self._support()
        return KnockoffSelection(
            fdr_targets=fdr_targets,
            selected=tuple(support for _ in fdr_targets),
            thresholds=tuple(1.0 for _ in fdr_targets),
        )


class ScriptedSelector:
    """
    Replays predefined knockoff selections, one list of sets per call.

    ``lasso_sets`` is consumed the same way for Lasso calls. Calls whose
    index is in ``fail_on`` (knockoff) or ``lasso_fail_on`` raise FitError.
    """

    def __init__(self, knockoff_sets, lasso_sets=None, fail_on=(), lasso_fail_on=()):
        self.knockoff_sets = list(knockoff_sets)
        self.lasso_sets = list(lasso_sets or [])
        self.fail_on = set(fail_on)
        self.lasso_fail_on = set(lasso_fail_on)
        self.calls = 0
        self.lasso_calls = 0

    def select_lasso(self, X, y, seed=None):
        call = self.lasso_calls
        self.lasso_calls += 1
        if call in self.lasso_fail_on:
            raise FitError(f"scripted Lasso failure on call {call}")
        selected = self.lasso_sets[call] if self.lasso_sets else frozenset()
        return LassoSelection(selected=frozenset(selected), alpha=0.05)

    def select_knockoff(self, X, y, fdr_targets, Sigma=None, seed=None):
        call = self.calls
        self.calls += 1
        if call in self.fail_on:
            raise FitError(f"scripted failure on call {call}")
        sets = self.knockoff_sets[call]
        return KnockoffSelection(
            fdr_targets=tuple(fdr_targets),
            selected=tuple(frozenset(s) for s in sets),
            thresholds=tuple(1.0 for _ in sets),
        )


@pytest.fixture
def small_config():
    return SimulationConfig(n_samples=30, n_vars=50, rho=0.0, k=10, nsims=3,
                            fdr_targets=(0.05, 0.1, 0.2), seed=7)


@pytest.fixture
def fixed_dataset():
    return make_dataset()
