"""
Monte Carlo comparison of the cross-validated Lasso and the knockoff filter.

Each of the ``nsims`` iterations draws its own dataset, runs the selectors and
scores every knockoff threshold against the true support. Iterations never
share state: workers return immutable IterationResults and a single reducer
folds them, in iteration order, into the accumulator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

from .aggregate import KnockoffAccumulator, KnockoffCurve, LassoSummary, summarize_lasso
from .config import SimulationConfig
from .data import DataGenerator
from .errors import AlignmentError, FitError
from .knockoffs import Knockoffs, KnockoffSelection, LassoSelection
from .score import OutcomeStats, score_selection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IterationResult:
    """Everything one simulation iteration produced."""
    sim: int
    true_support: FrozenSet[int]
    knockoff: KnockoffSelection
    knockoff_stats: Tuple[OutcomeStats, ...]
    lasso: Optional[LassoSelection] = None
    lasso_stats: Optional[OutcomeStats] = None


@dataclass(frozen=True)
class SkippedIteration:
    sim: int
    reason: str


@dataclass
class SimulationResults:
    """
    Per-run results of a simulation plus the finalized averages.

    Passed into :meth:`SimulationRunner.run` (or created by it) and returned
    to the caller; nothing is kept in module state.
    """
    fdr_targets: Tuple[float, ...] = ()
    iterations: List[IterationResult] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    curve: Optional[KnockoffCurve] = None
    lasso: Optional[LassoSummary] = None

    def __len__(self):
        return len(self.iterations)

    @property
    def n_skipped(self) -> int:
        return len(self.skipped)

    def to_frame(self) -> pd.DataFrame:
        """
        Long table with one row per (sim, method, fdr_target).

        Lasso rows carry ``fdr_target = NaN``.
        """
        rows = []
        for it in self.iterations:
            for j, stats in enumerate(it.knockoff_stats):
                rows.append({'sim': it.sim, 'method': 'knockoff',
                             'fdr_target': it.knockoff.fdr_targets[j], **stats.as_dict()})
            if it.lasso_stats is not None:
                rows.append({'sim': it.sim, 'method': 'lasso',
                             'fdr_target': np.nan, **it.lasso_stats.as_dict()})

        columns = ['sim', 'method', 'fdr_target', 'n_selected', 'tp', 'fp', 'fn', 'power', 'fdr']
        return pd.DataFrame(rows, columns=columns)


def iteration_seeds(config: SimulationConfig, sim: int) -> Tuple[int, int]:
    """Data and selector seeds for iteration ``sim``.

    The data seed is constant when ``resample_data`` is off, so every
    iteration regenerates the same draw. The selector seed always varies.
    """
    data_seed = config.seed + sim if config.resample_data else config.seed
    selector_seed = int(np.random.SeedSequence([config.seed, sim]).generate_state(1)[0])
    return data_seed, selector_seed


def _lasso_on_draw(selector, dataset, seed) -> Tuple[LassoSelection, OutcomeStats]:
    lasso = selector.select_lasso(dataset.design_matrix, dataset.response, seed=seed)
    return lasso, score_selection(lasso.selected, dataset.true_support, dataset.k)


def lasso_iteration(sim: int, config: SimulationConfig, generator: DataGenerator,
                    selector) -> Tuple[LassoSelection, OutcomeStats]:
    """Evaluate only the Lasso baseline on iteration ``sim``'s draw."""
    data_seed, selector_seed = iteration_seeds(config, sim)
    dataset = generator.generate(data_seed)
    try:
        return _lasso_on_draw(selector, dataset, selector_seed)
    except FitError as e:
        raise FitError(str(e), iteration=sim) from e


def run_iteration(sim: int, config: SimulationConfig, generator: DataGenerator,
                  selector, run_lasso: bool) -> IterationResult:
    """
    Run one simulation iteration.

    Parameters
    ----------
    sim : int
        Iteration index, used for seeding and error context.
    config : SimulationConfig
    generator : DataGenerator
        Holds the shared, read-only covariance factor.
    selector : Knockoffs
        Anything with ``select_lasso`` and ``select_knockoff``.
    run_lasso : bool
        Whether the Lasso baseline is evaluated on this iteration's draw.

    Raises
    ------
    FitError, AlignmentError
        With ``iteration`` set to ``sim``.
    """
    data_seed, selector_seed = iteration_seeds(config, sim)
    dataset = generator.generate(data_seed)
    X, y, k = dataset.design_matrix, dataset.response, dataset.k

    lasso = lasso_stats = None
    try:
        if run_lasso:
            lasso, lasso_stats = _lasso_on_draw(selector, dataset, selector_seed)

        Sigma = generator.covariance if config.known_covariance else None
        knockoff = selector.select_knockoff(X, y, config.fdr_targets, Sigma=Sigma,
                                            seed=selector_seed)
    except AlignmentError as e:
        raise AlignmentError(str(e), iteration=sim) from e
    except FitError as e:
        raise FitError(str(e), iteration=sim) from e

    if tuple(knockoff.fdr_targets) != tuple(config.fdr_targets):
        raise AlignmentError(
            f"Knockoff selection targets {knockoff.fdr_targets} do not match "
            f"configured targets {config.fdr_targets}", iteration=sim)

    knockoff_stats = tuple(
        score_selection(selected, dataset.true_support, k) for selected in knockoff.selected
    )
    logger.debug(f"Iteration {sim}: knockoff sizes {[s.n_selected for s in knockoff_stats]}"
                 + (f", lasso size {lasso_stats.n_selected}" if lasso_stats else ""))

    return IterationResult(
        sim=sim,
        true_support=dataset.true_support,
        knockoff=knockoff,
        knockoff_stats=knockoff_stats,
        lasso=lasso,
        lasso_stats=lasso_stats,
    )


def _guarded_iteration(sim, config, generator, selector, run_lasso, skip_on_error):
    """run_iteration, turning a FitError into a SkippedIteration in skip mode.

    AlignmentError is never skipped.
    """
    try:
        return run_iteration(sim, config, generator, selector, run_lasso)
    except AlignmentError:
        raise
    except FitError as e:
        if not skip_on_error:
            raise
        return SkippedIteration(sim=sim, reason=str(e))


class SimulationRunner:
    """
    Drives ``config.nsims`` independent iterations and reduces their results.

    Parameters
    ----------
    config : SimulationConfig
    selector : Knockoffs, optional
        Selection adapter. Built from the config if omitted.
    generator : DataGenerator, optional
        Built from the config if omitted; a bad ``rho`` raises
        DataGenerationError here, before any iteration runs.
    verbose : bool
        Show a progress bar for sequential runs.
    """

    def __init__(self, config: SimulationConfig, selector=None,
                 generator: Optional[DataGenerator] = None, verbose: bool = True):
        self.config = config
        self.selector = selector if selector is not None else Knockoffs.from_config(config)
        self.generator = generator if generator is not None else DataGenerator(config)
        self.verbose = verbose

    def runs_lasso(self, sim: int) -> bool:
        return self.config.lasso_repeats == self.config.nsims or sim == 0

    def _outcomes(self) -> Iterable[Union[IterationResult, SkippedIteration]]:
        cfg = self.config
        skip = cfg.on_fit_error == 'skip'

        if cfg.n_jobs == 1:
            for sim in tqdm(range(cfg.nsims), desc="Simulations", disable=not self.verbose):
                yield _guarded_iteration(sim, cfg, self.generator, self.selector,
                                         self.runs_lasso(sim), skip)
        else:
            logger.info(f"Running {cfg.nsims} simulations with {cfg.n_jobs} parallel jobs")
            outcomes = Parallel(n_jobs=cfg.n_jobs, backend="loky", batch_size="auto")(
                delayed(_guarded_iteration)(
                    sim, cfg, self.generator, self.selector, self.runs_lasso(sim), skip
                )
                for sim in range(cfg.nsims)
            )
            yield from sorted(outcomes, key=lambda outcome: outcome.sim)

    def _lasso_on_first_contributing(self, results: SimulationResults
                                     ) -> Optional[IterationResult]:
        """
        Evaluate the single Lasso baseline on the first iteration that contributed.

        Iteration 0 normally carries the baseline; in skip mode it may have
        been dropped. The updated IterationResult replaces the stored one.
        """
        for i, it in enumerate(results.iterations):
            try:
                lasso, lasso_stats = lasso_iteration(it.sim, self.config, self.generator,
                                                     self.selector)
            except FitError as e:
                if self.config.on_fit_error != 'skip':
                    raise
                logger.warning(f"Lasso baseline failed on iteration {it.sim}: {e}")
                continue

            logger.info(f"Iteration 0 was skipped; Lasso baseline uses iteration {it.sim}")
            results.iterations[i] = replace(it, lasso=lasso, lasso_stats=lasso_stats)
            return results.iterations[i]
        return None

    def run(self, results: Optional[SimulationResults] = None) -> SimulationResults:
        """
        Run all iterations and finalize the averages.

        Parameters
        ----------
        results : SimulationResults, optional
            Empty collection to fill. A new one is created if omitted.

        Returns
        -------
        SimulationResults
            Per-run results, the knockoff curve and the Lasso summary.
        """
        cfg = self.config
        if results is None:
            results = SimulationResults()
        if len(results.iterations) or results.skipped:
            raise ValueError("SimulationResults passed to run() must be empty")
        results.fdr_targets = cfg.fdr_targets

        logger.info(f"Starting {cfg.nsims} simulations: n={cfg.n_samples}, p={cfg.n_vars}, "
                    f"rho={cfg.rho}, k={cfg.k}, lasso_repeats={cfg.lasso_repeats}")

        accumulator = KnockoffAccumulator(cfg.fdr_targets)
        lasso_stats, lasso_alphas = [], []

        for outcome in self._outcomes():
            if isinstance(outcome, SkippedIteration):
                logger.warning(f"Skipping iteration {outcome.sim}: {outcome.reason}")
                results.skipped.append(outcome.sim)
                continue

            accumulator.add(outcome.knockoff_stats, iteration=outcome.sim)
            if outcome.lasso_stats is not None:
                lasso_stats.append(outcome.lasso_stats)
                lasso_alphas.append(outcome.lasso.alpha)
            results.iterations.append(outcome)

        if results.skipped:
            logger.warning(f"{len(results.skipped)} of {cfg.nsims} iterations skipped; "
                           f"averages use {cfg.nsims - len(results.skipped)} runs")

        results.curve = accumulator.finalize(expected_runs=cfg.nsims - len(results.skipped))

        if not lasso_stats:
            fallback = self._lasso_on_first_contributing(results)
            if fallback is not None:
                lasso_stats.append(fallback.lasso_stats)
                lasso_alphas.append(fallback.lasso.alpha)
        results.lasso = summarize_lasso(lasso_stats, lasso_alphas)

        for j in range(len(results.curve.fdr_targets)):
            point = results.curve.at(j)
            logger.info(f"  Target FDR = {point['fdr_target']:.2f}: empirical FDR = "
                        f"{point['fdr']:.4f}, power = {point['power']:.4f}")
        logger.info(f"  Lasso: power = {results.lasso.power:.4f}, "
                    f"FDR = {results.lasso.fdr:.4f}, selected = {results.lasso.mean_selected:.1f}")

        return results
