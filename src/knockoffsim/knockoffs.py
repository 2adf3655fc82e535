import logging
import warnings
from dataclasses import dataclass
from typing import FrozenSet, Sequence, Tuple

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LassoCV
from sklearn.model_selection import KFold
from sklearn.preprocessing import StandardScaler

from .config import SimulationConfig
from .errors import AlignmentError, FitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LassoSelection:
    """Variables with non-zero coefficients at the cross-validated lambda."""
    selected: FrozenSet[int]
    alpha: float

    def __len__(self):
        return len(self.selected)


@dataclass(frozen=True)
class KnockoffSelection:
    """
    Knockoff selections keyed by target FDR.

    ``selected[j]`` is always the set chosen at ``fdr_targets[j]``; the two
    tuples are built together and a length mismatch raises AlignmentError.
    """
    fdr_targets: Tuple[float, ...]
    selected: Tuple[FrozenSet[int], ...]
    thresholds: Tuple[float, ...]

    def __post_init__(self):
        if not len(self.selected) == len(self.fdr_targets) == len(self.thresholds):
            raise AlignmentError(
                f"Got {len(self.selected)} selected sets and {len(self.thresholds)} "
                f"thresholds for {len(self.fdr_targets)} FDR targets")

    def __len__(self):
        return len(self.fdr_targets)

    def __getitem__(self, j: int) -> FrozenSet[int]:
        return self.selected[j]


class Knockoffs():
    """
    Uniform wrapper around the two external selectors.

    Both return index sets into the columns of X: a single set for the
    cross-validated Lasso, one set per target FDR for the knockoff filter.
    """

    def __init__(self, cv_folds=10, method='mvr', fstat='lasso', offset=1,
                 max_iter=10000, scale=True):
        self.cv_folds = cv_folds
        self.method = method
        self.fstat = fstat
        self.offset = offset
        self.max_iter = max_iter
        self.scale = scale

    @classmethod
    def from_config(cls, config: SimulationConfig) -> 'Knockoffs':
        return cls(cv_folds=config.cv_folds, method=config.knockoff_method,
                   fstat=config.fstat, offset=config.offset)

    @staticmethod
    def scale_features(X):
        """Center each column and scale it to unit variance."""
        return StandardScaler().fit_transform(np.asarray(X, dtype=np.float64))

    def select_lasso(self, X, y, seed=None) -> LassoSelection:
        """
        Run k-fold cross-validation for lambda, refit on the full data and
        return the support of the fitted coefficients.

        Parameters
        ----------
        X : np.ndarray
            Design matrix (n_samples, n_vars).
        y : np.ndarray
            Response vector (n_samples,).
        seed : int, optional
            Seeds the fold shuffling, making the selection deterministic.

        Returns
        -------
        LassoSelection

        Raises
        ------
        FitError
            If the solver raises or the final fit hits max_iter.
        """
        X = self.scale_features(X) if self.scale else np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64).flatten()

        cv = self.cv_folds
        if seed is not None:
            cv = KFold(n_splits=self.cv_folds, shuffle=True, random_state=seed)

        model = LassoCV(cv=cv, max_iter=self.max_iter)
        try:
            with warnings.catch_warnings():
                # Path fits far from the optimum may stop early; only the refit matters
                warnings.simplefilter('ignore', ConvergenceWarning)
                model.fit(X, y)
        except Exception as e:
            raise FitError(f"LassoCV failed: {type(e).__name__}: {e}") from e

        if model.n_iter_ >= self.max_iter:
            raise FitError(
                f"Lasso did not converge at alpha={model.alpha_:.4g} "
                f"within max_iter={self.max_iter}")

        selected = frozenset(int(i) for i in np.flatnonzero(model.coef_))
        logger.debug(f"Lasso selected {len(selected)} variables at alpha={model.alpha_:.4g}")
        return LassoSelection(selected=selected, alpha=float(model.alpha_))

    @staticmethod
    def knockoff_threshold(W, fdr, offset=1):
        """Compute the knockoff threshold for one target FDR.

        Parameters
        ----------
        W : np.ndarray
            Knockoff W statistics.
        fdr : float
            Target false discovery rate.
        offset : int
            0 for original knockoff (more power, controls modified FDR),
            1 for knockoff+ (conservative, controls FDR).

        Returns
        -------
        float
            Threshold value, or np.inf if no threshold satisfies FDR.
        """
        # Candidates are the non-zero |W| in ascending order, so a feature
        # with W == 0 is never selected
        W = np.asarray(W)
        candidates = np.unique(np.abs(W[W != 0]))

        threshold = np.inf
        for t in candidates:
            numerator = offset + np.sum(W <= -t)
            denominator = max(1, np.sum(W >= t))
            if numerator / denominator <= fdr:
                threshold = t
                break
        return threshold

    def knockoff_statistics(self, X, y, Sigma=None, seed=None):
        """Sample model-X knockoffs with knockpy and return the W statistics.

        knockpy draws from numpy's global RNG; ``seed`` reseeds it for this
        call only and the caller's state is restored afterwards.
        """
        from knockpy import KnockoffFilter

        state = np.random.get_state()
        try:
            if seed is not None:
                np.random.seed(seed)

            kfilter = KnockoffFilter(
                ksampler='gaussian',
                fstat=self.fstat,
                knockoff_kwargs={'method': self.method}
            )
            shrinkage = None if Sigma is not None else 'ledoitwolf'
            kfilter.forward(X=X, y=y, Sigma=Sigma, fdr=0.1, shrinkage=shrinkage)
        finally:
            np.random.set_state(state)
        return np.asarray(kfilter.W, dtype=np.float64).flatten()

    def select_knockoff(self, X, y, fdr_targets: Sequence[float], Sigma=None,
                        seed=None) -> KnockoffSelection:
        """
        Run the knockoff filter once and threshold its W statistics at every
        target FDR.

        Parameters
        ----------
        X : np.ndarray
            Design matrix (n_samples, n_vars).
        y : np.ndarray
            Response vector (n_samples,).
        fdr_targets : sequence of float
            Target FDR levels; the order is preserved in the result.
        Sigma : np.ndarray, optional
            Known covariance of X. Estimated with Ledoit-Wolf shrinkage if None.
        seed : int, optional
            Seeds the knockoff sampler for this call.

        Returns
        -------
        KnockoffSelection

        Raises
        ------
        FitError
            If knockpy fails or returns a W vector of the wrong length.
        """
        # Dataset arrays are read-only; knockpy gets writable copies
        X = np.array(X, dtype=np.float64)
        y = np.array(y, dtype=np.float64).flatten()
        if Sigma is not None:
            Sigma = np.array(Sigma, dtype=np.float64)
        fdr_targets = tuple(float(t) for t in fdr_targets)

        try:
            W = self.knockoff_statistics(X, y, Sigma=Sigma, seed=seed)
        except Exception as e:
            raise FitError(f"knockpy knockoff filter failed ({self.method}, {self.fstat}): "
                           f"{type(e).__name__}: {e}") from e

        if W.shape[0] != X.shape[1]:
            raise FitError(f"Expected {X.shape[1]} W statistics, got {W.shape[0]}")

        thresholds = tuple(
            float(self.knockoff_threshold(W, fdr=fdr, offset=self.offset)) for fdr in fdr_targets
        )
        selected = tuple(
            frozenset(int(i) for i in np.flatnonzero(W >= t)) if t < np.inf else frozenset()
            for t in thresholds
        )
        logger.debug(f"Knockoff selection sizes: {[len(s) for s in selected]}")

        return KnockoffSelection(fdr_targets=fdr_targets, selected=selected, thresholds=thresholds)
