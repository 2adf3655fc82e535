"""
Synthetic sparse linear-model data with Toeplitz-correlated predictors.

    X ~ N(0, Sigma),  Sigma_ij = rho^|i-j|
    y = X beta + eps, eps ~ N(0, noise_std^2)

beta has exactly k non-zero entries at randomly chosen positions (the true
support). The Cholesky factor of Sigma is computed once per generator and
shared read-only by every draw.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

import numpy as np
from numpy.typing import NDArray
from scipy import linalg

from .config import SimulationConfig
from .errors import DataGenerationError

logger = logging.getLogger(__name__)


def make_toeplitz_cov(p: int, rho: float) -> NDArray:
    """
    Construct the Toeplitz covariance matrix Sigma with Sigma_jk = rho^|j-k|.

    Parameters
    ----------
    p : int
        Dimension of the covariance matrix.
    rho : float
        Correlation decay parameter.

    Returns
    -------
    Sigma : ndarray of shape (p, p)
    """
    return linalg.toeplitz(rho ** np.arange(p))


def toeplitz_factor(p: int, rho: float) -> NDArray:
    """
    Lower-triangular Cholesky factor L of the Toeplitz covariance (Sigma = L L^T).

    Raises
    ------
    DataGenerationError
        If rho is outside [0, 1) or the factorization fails.
    """
    if not 0 <= rho < 1:
        raise DataGenerationError(f"rho must lie in [0, 1), got {rho}")

    Sigma = make_toeplitz_cov(p, rho)
    try:
        L = linalg.cholesky(Sigma, lower=True)
    except linalg.LinAlgError as e:
        raise DataGenerationError(
            f"Cholesky factorization failed for p={p}, rho={rho}: {e}") from e

    L.setflags(write=False)
    return L


@dataclass(frozen=True)
class SyntheticDataset:
    """One simulated draw. Arrays are read-only."""
    design_matrix: NDArray
    response: NDArray
    coefficients: NDArray
    true_support: FrozenSet[int]

    @property
    def k(self) -> int:
        return len(self.true_support)


class DataGenerator:
    """
    Draws SyntheticDatasets for a fixed SimulationConfig.

    The covariance factor is computed in ``__init__`` so that a bad ``rho``
    aborts the run before any simulation starts.
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        logger.info(f"Pre-computing Toeplitz factor for p={config.n_vars}, rho={config.rho}")
        self.factor = toeplitz_factor(config.n_vars, config.rho)
        self.covariance = make_toeplitz_cov(config.n_vars, config.rho)
        self.covariance.setflags(write=False)

    def draw_coefficients(self, rng: np.random.Generator) -> NDArray:
        """Sparse coefficient vector with k non-zeros at uniformly chosen positions."""
        cfg = self.config
        beta = np.zeros(cfg.n_vars)
        if cfg.k == 0:
            return beta

        support = rng.choice(cfg.n_vars, size=cfg.k, replace=False)
        if cfg.signal_amplitude is None:
            values = rng.standard_normal(cfg.k)
            # A draw of exactly 0 would silently shrink the support
            values[values == 0] = np.finfo(float).eps
        else:
            values = cfg.signal_amplitude * rng.choice([-1.0, 1.0], size=cfg.k)
        beta[support] = values
        return beta

    def generate(self, seed: Optional[int] = None) -> SyntheticDataset:
        """Draw a dataset; the same seed always reproduces the same draw."""
        cfg = self.config
        rng = np.random.default_rng(seed)

        beta = self.draw_coefficients(rng)
        X = rng.standard_normal((cfg.n_samples, cfg.n_vars)) @ self.factor.T
        y = X @ beta + cfg.noise_std * rng.standard_normal(cfg.n_samples)

        for arr in (X, y, beta):
            arr.setflags(write=False)

        return SyntheticDataset(
            design_matrix=X,
            response=y,
            coefficients=beta,
            true_support=frozenset(int(i) for i in np.flatnonzero(beta)),
        )
