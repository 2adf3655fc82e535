from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterable


@dataclass(frozen=True)
class OutcomeStats:
    """Confusion counts of one selected set against the true support."""
    tp: int
    fp: int
    fn: int
    k: int

    @property
    def n_selected(self) -> int:
        return self.tp + self.fp

    @property
    def power(self) -> float:
        """TP / k, defined as 0 when there are no true signals."""
        if self.k == 0:
            return 0.0
        return self.tp / self.k

    @property
    def fdr(self) -> float:
        """FP / |selected|, defined as 0 when nothing is selected."""
        return self.fp / max(self.n_selected, 1)

    def as_dict(self) -> dict:
        return {
            'n_selected': self.n_selected,
            'tp': self.tp,
            'fp': self.fp,
            'fn': self.fn,
            'power': self.power,
            'fdr': self.fdr,
        }


def score_selection(selected: Iterable[int], true_support: AbstractSet[int],
                    k: int) -> OutcomeStats:
    """
    Score a selected index set against the true support.

    Args:
        selected: Indices chosen by a selector.
        true_support: Indices of the non-zero true coefficients.
        k: Number of true signals; must equal len(true_support).

    Returns:
        OutcomeStats with tp + fn == k and tp + fp == len(selected).
    """
    selected = set(int(i) for i in selected)
    true_support = set(true_support)
    if len(true_support) != k:
        raise ValueError(f"k={k} does not match the true support size {len(true_support)}")

    return OutcomeStats(
        tp=len(selected & true_support),
        fp=len(selected - true_support),
        fn=len(true_support - selected),
        k=k,
    )
