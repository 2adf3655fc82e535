"""Knockoff vs. Lasso verdict at a reference target FDR."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Optional, Sequence

import numpy as np

from .aggregate import KnockoffCurve, LassoSummary

logger = logging.getLogger(__name__)


def reference_index(fdr_targets: Sequence[float], nominal_fdr: float) -> int:
    """Index of the target FDR closest to ``nominal_fdr`` (first one on ties)."""
    if len(fdr_targets) == 0:
        raise ValueError("fdr_targets must not be empty")
    return int(np.argmin(np.abs(np.asarray(fdr_targets, dtype=float) - nominal_fdr)))


@dataclass(frozen=True)
class ComparisonVerdict:
    """
    Outcome of comparing the knockoff curve with the Lasso baseline.

    ``power_verdict`` is 'knockoff' when the knockoff filter has higher power
    and the relative improvement is defined, 'undefined' when it is higher but
    Lasso power is 0, and 'lasso' otherwise.
    """
    reference_index: int
    reference_target: float
    nominal_fdr: float
    knockoff_power: float
    knockoff_fdr: float
    knockoff_mean_selected: float
    lasso_power: float
    lasso_fdr: float
    lasso_mean_selected: float
    power_verdict: str
    power_improvement_pct: Optional[float]
    fdr_controlled: bool

    @property
    def knockoff_more_powerful(self) -> bool:
        return self.power_verdict in ('knockoff', 'undefined')

    def as_dict(self) -> dict:
        return asdict(self)


def compare_methods(curve: KnockoffCurve, lasso: LassoSummary, nominal_fdr: float = 0.10,
                    ref_index: Optional[int] = None) -> ComparisonVerdict:
    """
    Compare knockoff averages at a reference threshold against the Lasso baseline.

    Args:
        curve: Finalized per-threshold knockoff averages.
        lasso: Lasso baseline (single run or averaged).
        nominal_fdr: FDR level the knockoff filter is judged against.
        ref_index: Threshold index to compare at; defaults to the target
            nearest ``nominal_fdr``.

    Returns:
        ComparisonVerdict
    """
    if ref_index is None:
        ref_index = reference_index(curve.fdr_targets, nominal_fdr)
    if not 0 <= ref_index < len(curve.fdr_targets):
        raise IndexError(f"ref_index {ref_index} out of range for {len(curve.fdr_targets)} targets")

    ko_power = curve.power[ref_index]
    ko_fdr = curve.fdr[ref_index]

    improvement = None
    if ko_power > lasso.power:
        if lasso.power == 0:
            power_verdict = 'undefined'
        else:
            power_verdict = 'knockoff'
            improvement = (ko_power - lasso.power) / lasso.power * 100
    else:
        power_verdict = 'lasso'

    return ComparisonVerdict(
        reference_index=ref_index,
        reference_target=curve.fdr_targets[ref_index],
        nominal_fdr=nominal_fdr,
        knockoff_power=ko_power,
        knockoff_fdr=ko_fdr,
        knockoff_mean_selected=curve.mean_selected[ref_index],
        lasso_power=lasso.power,
        lasso_fdr=lasso.fdr,
        lasso_mean_selected=lasso.mean_selected,
        power_verdict=power_verdict,
        power_improvement_pct=improvement,
        fdr_controlled=bool(ko_fdr <= nominal_fdr),
    )


def log_verdict(verdict: ComparisonVerdict) -> None:
    logger.info(f"Comparison at target FDR = {verdict.reference_target:.2f}:")
    logger.info(f"  Lasso:     power = {verdict.lasso_power:.4f}, FDR = {verdict.lasso_fdr:.4f}, "
                f"selected = {verdict.lasso_mean_selected:.1f}")
    logger.info(f"  Knockoffs: power = {verdict.knockoff_power:.4f}, FDR = {verdict.knockoff_fdr:.4f}, "
                f"selected = {verdict.knockoff_mean_selected:.1f}")

    if verdict.power_verdict == 'knockoff':
        logger.info(f"  Knockoffs more powerful by {verdict.power_improvement_pct:.2f}%")
    elif verdict.power_verdict == 'undefined':
        logger.info("  Knockoffs more powerful; improvement undefined (Lasso power is 0)")
    else:
        logger.info("  Lasso more powerful")

    if verdict.fdr_controlled:
        logger.info(f"  Knockoff FDR controlled at {verdict.nominal_fdr:.2f}")
    else:
        logger.warning(f"  Knockoff FDR {verdict.knockoff_fdr:.4f} exceeds target {verdict.nominal_fdr:.2f}")
