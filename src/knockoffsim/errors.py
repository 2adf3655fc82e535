"""Exceptions raised by the simulation harness."""

from typing import Optional


class SimulationError(Exception):
    """Base class for fatal simulation errors.

    Carries the iteration and threshold index (when known) so a failure can be
    reproduced from the message alone.
    """

    def __init__(self, message: str, iteration: Optional[int] = None,
                 threshold_index: Optional[int] = None):
        self.iteration = iteration
        self.threshold_index = threshold_index
        context = []
        if iteration is not None:
            context.append(f"iteration={iteration}")
        if threshold_index is not None:
            context.append(f"threshold_index={threshold_index}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class DataGenerationError(SimulationError):
    """Covariance factorization failed; aborts the run before any iteration."""


class FitError(SimulationError):
    """An external selector did not converge or returned malformed output."""


class AlignmentError(SimulationError):
    """Knockoff selections are not index-aligned with the FDR targets."""
