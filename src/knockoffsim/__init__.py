"""
knockoffsim: Monte Carlo evaluation of knockoff and Lasso variable selection.

Simulates sparse linear models with Toeplitz-correlated predictors and
measures power and empirical FDR of a cross-validated Lasso and of the
model-X knockoff filter across a sweep of target FDR levels.

Main Classes
------------
SimulationConfig : Immutable simulation parameters
DataGenerator : Synthetic design, coefficients and response
Knockoffs : Lasso and knockoff selection adapter
SimulationRunner : Repeated fitting and scoring
KnockoffAccumulator : Per-threshold power/FDR averaging

Quick Start
-----------
>>> from knockoffsim import SimulationConfig, SimulationRunner, compare_methods
>>> config = SimulationConfig(n_samples=200, n_vars=100, k=10, nsims=5)
>>> results = SimulationRunner(config).run()
>>> verdict = compare_methods(results.curve, results.lasso, nominal_fdr=0.10)
>>> verdict.power_verdict, verdict.fdr_controlled
"""

from .config import SimulationConfig, load_config, show_params, DEFAULT_FDR_TARGETS
from .errors import SimulationError, DataGenerationError, FitError, AlignmentError
from .data import SyntheticDataset, DataGenerator, make_toeplitz_cov, toeplitz_factor
from .knockoffs import Knockoffs, KnockoffSelection, LassoSelection
from .score import OutcomeStats, score_selection
from .aggregate import KnockoffAccumulator, KnockoffCurve, LassoSummary, summarize_lasso
from .simulation import (IterationResult, SimulationResults, SimulationRunner, run_iteration,
                         lasso_iteration)
from .compare import ComparisonVerdict, compare_methods, reference_index, log_verdict

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "SimulationConfig",
    "load_config",
    "show_params",
    "DEFAULT_FDR_TARGETS",
    # Errors
    "SimulationError",
    "DataGenerationError",
    "FitError",
    "AlignmentError",
    # Data generation
    "SyntheticDataset",
    "DataGenerator",
    "make_toeplitz_cov",
    "toeplitz_factor",
    # Selection
    "Knockoffs",
    "KnockoffSelection",
    "LassoSelection",
    # Scoring and aggregation
    "OutcomeStats",
    "score_selection",
    "KnockoffAccumulator",
    "KnockoffCurve",
    "LassoSummary",
    "summarize_lasso",
    # Simulation
    "IterationResult",
    "SimulationResults",
    "SimulationRunner",
    "run_iteration",
    "lasso_iteration",
    # Comparison
    "ComparisonVerdict",
    "compare_methods",
    "reference_index",
    "log_verdict",
]
