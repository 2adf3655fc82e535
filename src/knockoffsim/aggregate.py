"""
Reduction of per-run outcome statistics into averaged curves.

The accumulator only ever sums; averages are produced by ``finalize`` once
every expected run has contributed, and reading them does not change the
accumulated state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import AlignmentError, SimulationError
from .score import OutcomeStats


@dataclass(frozen=True)
class KnockoffCurve:
    """Per-threshold averages across runs, index-aligned with ``fdr_targets``."""
    fdr_targets: Tuple[float, ...]
    power: Tuple[float, ...]
    fdr: Tuple[float, ...]
    mean_selected: Tuple[float, ...]
    n_runs: int

    def at(self, j: int) -> Dict[str, float]:
        return {
            'fdr_target': self.fdr_targets[j],
            'power': self.power[j],
            'fdr': self.fdr[j],
            'mean_selected': self.mean_selected[j],
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'fdr_target': self.fdr_targets,
            'power': self.power,
            'fdr': self.fdr,
            'mean_selected': self.mean_selected,
        })

    def as_dict(self) -> dict:
        return {
            'fdr_targets': list(self.fdr_targets),
            'power': list(self.power),
            'fdr': list(self.fdr),
            'mean_selected': list(self.mean_selected),
            'n_runs': self.n_runs,
        }


class KnockoffAccumulator:
    """
    Running per-threshold sums of power, FDR and selection size.

    Parameters
    ----------
    fdr_targets : sequence of float
        Target FDR levels; every contribution must carry one OutcomeStats per
        target, in the same order.
    """

    def __init__(self, fdr_targets: Sequence[float]):
        self.fdr_targets = tuple(fdr_targets)
        n_targets = len(self.fdr_targets)
        self._power_sum = np.zeros(n_targets)
        self._fdr_sum = np.zeros(n_targets)
        self._selected_sum = np.zeros(n_targets)
        self.runs_contributed = 0

    def add(self, per_threshold: Sequence[OutcomeStats], iteration=None) -> None:
        """Fold one run's per-threshold statistics into the sums."""
        if len(per_threshold) != len(self.fdr_targets):
            raise AlignmentError(
                f"Expected {len(self.fdr_targets)} per-threshold stats, got {len(per_threshold)}",
                iteration=iteration)

        for j, stats in enumerate(per_threshold):
            self._power_sum[j] += stats.power
            self._fdr_sum[j] += stats.fdr
            self._selected_sum[j] += stats.n_selected
        self.runs_contributed += 1

    def finalize(self, expected_runs: int) -> KnockoffCurve:
        """
        Divide the sums by the number of runs.

        Raises
        ------
        RuntimeError
            If fewer or more runs contributed than ``expected_runs``; partial
            averages would understate power and FDR.
        SimulationError
            If no run contributed at all.
        """
        if self.runs_contributed != expected_runs:
            raise RuntimeError(
                f"finalize() called after {self.runs_contributed} of {expected_runs} runs")
        if expected_runs == 0:
            raise SimulationError("No simulation run contributed to the knockoff averages")

        return KnockoffCurve(
            fdr_targets=self.fdr_targets,
            power=tuple(float(v) for v in self._power_sum / expected_runs),
            fdr=tuple(float(v) for v in self._fdr_sum / expected_runs),
            mean_selected=tuple(float(v) for v in self._selected_sum / expected_runs),
            n_runs=expected_runs,
        )


@dataclass(frozen=True)
class LassoSummary:
    """Lasso baseline statistics: a single run or the mean over several."""
    power: float
    fdr: float
    mean_selected: float
    tp: float
    fp: float
    fn: float
    mean_alpha: float
    n_runs: int

    def as_dict(self) -> dict:
        return {
            'power': self.power,
            'fdr': self.fdr,
            'mean_selected': self.mean_selected,
            'tp': self.tp,
            'fp': self.fp,
            'fn': self.fn,
            'mean_alpha': self.mean_alpha,
            'n_runs': self.n_runs,
        }


def summarize_lasso(stats: Sequence[OutcomeStats], alphas: Sequence[float]) -> LassoSummary:
    """Average Lasso outcome statistics; with one run this is that run's stats."""
    if len(stats) == 0:
        raise SimulationError("No Lasso run contributed to the baseline")
    if len(stats) != len(alphas):
        raise ValueError(f"Got {len(stats)} Lasso stats but {len(alphas)} alphas")

    return LassoSummary(
        power=float(np.mean([s.power for s in stats])),
        fdr=float(np.mean([s.fdr for s in stats])),
        mean_selected=float(np.mean([s.n_selected for s in stats])),
        tp=float(np.mean([s.tp for s in stats])),
        fp=float(np.mean([s.fp for s in stats])),
        fn=float(np.mean([s.fn for s in stats])),
        mean_alpha=float(np.mean(alphas)),
        n_runs=len(stats),
    )
