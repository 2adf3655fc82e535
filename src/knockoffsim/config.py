"""
Simulation parameters.

A ``SimulationConfig`` is built once at startup, either directly or from a
YAML file via :func:`load_config`, and is never mutated afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

DEFAULT_FDR_TARGETS: Tuple[float, ...] = (0.01, 0.05, 0.10, 0.25, 0.50)
KNOCKOFF_METHODS = ('mvr', 'sdp', 'equicorrelated', 'maxent')
ON_FIT_ERROR = ('abort', 'skip')


@dataclass(frozen=True)
class SimulationConfig:
    """
    Parameters of a Lasso vs. knockoff Monte Carlo study.

    Parameters
    ----------
    n_samples : int
        Rows of the design matrix.
    n_vars : int
        Columns of the design matrix (typically much larger than n_samples).
    rho : float
        Toeplitz correlation decay, corr(X_i, X_j) = rho^|i-j|. Must lie in [0, 1).
    k : int
        Number of non-zero true coefficients.
    nsims : int
        Number of Monte Carlo repetitions.
    fdr_targets : tuple of float
        Ordered knockoff target FDR levels, each in (0, 1].
    lasso_repeats : int
        1 to evaluate Lasso on the first draw only, nsims to average it over
        every draw like the knockoff filter.
    cv_folds : int
        Folds used by the cross-validated Lasso.
    knockoff_method : str
        Knockoff construction passed to knockpy ('mvr', 'sdp', 'equicorrelated', 'maxent').
    fstat : str
        knockpy feature statistic (e.g. 'lasso', 'lsm', 'ols').
    offset : int
        0 for the original knockoff threshold, 1 for knockoff+.
    nominal_fdr : float
        Target used as the reference point when comparing the two methods.
    noise_std : float
        Standard deviation of the response noise.
    signal_amplitude : float or None
        None draws non-zero coefficients from N(0, 1); a float uses that
        magnitude with random signs.
    resample_data : bool
        If False every iteration regenerates the same draw, so only the
        knockoff randomness varies between repetitions.
    known_covariance : bool
        Hand the true Toeplitz covariance to the knockoff sampler instead of a
        Ledoit-Wolf estimate.
    seed : int
        Base random seed.
    n_jobs : int
        Worker processes for the simulation loop. 1 runs sequentially.
    on_fit_error : str
        'abort' (default) re-raises a FitError; 'skip' drops the iteration and
        records it.
    """
    n_samples: int = 500
    n_vars: int = 1000
    rho: float = 0.4
    k: int = 50
    nsims: int = 10
    fdr_targets: Tuple[float, ...] = DEFAULT_FDR_TARGETS
    lasso_repeats: int = 1
    cv_folds: int = 10
    knockoff_method: str = 'mvr'
    fstat: str = 'lasso'
    offset: int = 1
    nominal_fdr: float = 0.10
    noise_std: float = 1.0
    signal_amplitude: Optional[float] = None
    resample_data: bool = True
    known_covariance: bool = False
    seed: int = 2022
    n_jobs: int = 1
    on_fit_error: str = 'abort'

    def __post_init__(self) -> None:
        # Lists from YAML/argparse become tuples so the config stays hashable
        object.__setattr__(self, 'fdr_targets', tuple(float(t) for t in self.fdr_targets))

        if self.n_samples <= 0:
            raise ValueError(f"n_samples must be positive, got {self.n_samples}")
        if self.n_vars <= 0:
            raise ValueError(f"n_vars must be positive, got {self.n_vars}")
        if not 0 <= self.k <= self.n_vars:
            raise ValueError(f"k must be in [0, n_vars={self.n_vars}], got {self.k}")
        if self.nsims < 1:
            raise ValueError(f"nsims must be at least 1, got {self.nsims}")
        if len(self.fdr_targets) == 0:
            raise ValueError("fdr_targets must not be empty")
        for target in self.fdr_targets:
            if not 0 < target <= 1:
                raise ValueError(f"fdr_targets must lie in (0, 1], got {target}")
        if self.lasso_repeats not in (1, self.nsims):
            raise ValueError(
                f"lasso_repeats must be 1 or nsims={self.nsims}, got {self.lasso_repeats}")
        if self.cv_folds < 2:
            raise ValueError(f"cv_folds must be at least 2, got {self.cv_folds}")
        if self.knockoff_method not in KNOCKOFF_METHODS:
            raise ValueError(
                f"Unknown knockoff_method: {self.knockoff_method}. Use one of {KNOCKOFF_METHODS}")
        if self.offset not in (0, 1):
            raise ValueError(f"offset must be 0 or 1, got {self.offset}")
        if not 0 < self.nominal_fdr <= 1:
            raise ValueError(f"nominal_fdr must lie in (0, 1], got {self.nominal_fdr}")
        if self.noise_std < 0:
            raise ValueError(f"noise_std must be non-negative, got {self.noise_std}")
        if self.signal_amplitude is not None and self.signal_amplitude == 0:
            raise ValueError("signal_amplitude must be non-zero or None")
        if self.on_fit_error not in ON_FIT_ERROR:
            raise ValueError(
                f"Unknown on_fit_error: {self.on_fit_error}. Use one of {ON_FIT_ERROR}")


def load_config(path: Optional[str] = None, **overrides) -> SimulationConfig:
    """
    Build a SimulationConfig from an optional YAML file plus keyword overrides.

    Keyword overrides set to None are ignored, so argparse namespaces can be
    passed through unchanged.
    """
    params = {}
    if path is not None:
        with open(path) as f:
            params = yaml.safe_load(f) or {}
        logger.info(f"Loaded config from {path}")

    known = {f.name for f in fields(SimulationConfig)}
    unknown = set(params) - known
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    params.update({k: v for k, v in overrides.items() if v is not None})
    return SimulationConfig(**params)


def show_params(config: SimulationConfig) -> None:
    """Log the parameter table."""
    logger.info("Simulation parameters:")
    for f in fields(config):
        logger.info(f"  {f.name:18s}: {getattr(config, f.name)}")
