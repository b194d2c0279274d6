#########################################################################################
##
##                     MULTI-DATASET BATCH FITTING AND AGGREGATION
##                                    (batch.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from ..errors import ConfigurationError, FitFailure
from .results import FitOutcome, FitResult


__all__ = ["BatchAggregator", "BatchSummary"]

logger = logging.getLogger(__name__)


# BATCH SUMMARY =========================================================================

@dataclass(frozen=True, eq=False)
class BatchSummary:
    """Per-dataset outcomes plus statistics over the successful fits.

    Parameters
    ----------
    outcomes : tuple[FitOutcome, ...]
        One tagged outcome per dataset, in input order.
    mean_params, std_params : np.ndarray
        Element-wise mean / sample standard deviation of the fitted parameter
        vectors; empty when nothing succeeded.
    mean_ssr : float
        Mean SSR over the successes; ``inf`` when nothing succeeded.
    n_successful, n_total : int
        Success and dataset counts.
    """

    outcomes: tuple[FitOutcome, ...]
    mean_params: np.ndarray
    std_params: np.ndarray
    mean_ssr: float
    n_successful: int
    n_total: int


    @property
    def n_failed(self) -> int:
        return self.n_total - self.n_successful


    @property
    def successes(self) -> list[FitResult]:
        return [o.result for o in self.outcomes if o.ok]


    @property
    def failures(self) -> dict[str, FitFailure]:
        return {o.label: o.error for o in self.outcomes if not o.ok}


    @property
    def fits(self) -> dict[str, FitResult]:
        """Successful results keyed by dataset label, in input order."""
        return {o.label: o.result for o in self.outcomes if o.ok}


    def __repr__(self) -> str:
        return (
            f"BatchSummary({self.n_successful}/{self.n_total} successful, "
            f"mean_ssr={self.mean_ssr:.4g}, mean_params={self.mean_params})"
        )


# AGGREGATOR ============================================================================

class BatchAggregator:
    """Fit many datasets one after another, isolating per-dataset failures.

    Parameters
    ----------
    fitter : callable
        ``fitter(data, label) -> FitOutcome``. Must report failures through
        the outcome rather than by raising.

    Example
    -------
    .. code-block:: python

        engine = FitEngine(config)
        agg = BatchAggregator(lambda d, lbl: engine.try_single_fit(spec, d, label=lbl))
        summary = agg.run([(t1, y1), (t2, y2), (t3, y3)])
        summary.mean_params, summary.n_successful
    """

    def __init__(self, fitter: Callable[[object, str], FitOutcome]):
        self.fitter = fitter


    def run(self, datasets: Sequence, names: Sequence[str] | None = None) -> BatchSummary:
        """Attempt one fit per dataset and aggregate the successes."""
        names = _batch_labels(datasets, names)

        outcomes = []
        for data, label in zip(datasets, names):
            outcome = self.fitter(data, label)
            if not outcome.ok:
                logger.warning("Dataset '%s' failed and is excluded from statistics", label)
            outcomes.append(outcome)

        summary = self.aggregate(outcomes)
        logger.info(
            "Batch finished: %d of %d fits successful", summary.n_successful, summary.n_total
        )
        return summary


    @staticmethod
    def aggregate(outcomes: Sequence[FitOutcome]) -> BatchSummary:
        """Compute statistics over the successful outcomes.

        The first success fixes the expected parameter-vector length; later
        successes of a different length are converted into failures.
        """
        checked: list[FitOutcome] = []
        n_params = None
        for outcome in outcomes:
            if outcome.ok:
                size = outcome.result.params.size
                if n_params is None:
                    n_params = size
                elif size != n_params:
                    cause = ConfigurationError(
                        f"Parameter vector length {size} differs from {n_params}"
                    )
                    logger.warning("Dataset '%s': %s", outcome.label, cause)
                    outcome = FitOutcome(outcome.label, error=FitFailure(outcome.label, cause))
            checked.append(outcome)

        good = [o.result for o in checked if o.ok]
        if not good:
            return BatchSummary(
                outcomes=tuple(checked),
                mean_params=np.array([], dtype=float),
                std_params=np.array([], dtype=float),
                mean_ssr=np.inf,
                n_successful=0,
                n_total=len(checked),
            )

        params = np.vstack([r.params for r in good])
        std = params.std(axis=0, ddof=1) if len(good) > 1 else np.zeros(params.shape[1])

        return BatchSummary(
            outcomes=tuple(checked),
            mean_params=params.mean(axis=0),
            std_params=std,
            mean_ssr=float(np.mean([r.ssr for r in good])),
            n_successful=len(good),
            n_total=len(checked),
        )


# HELPERS ===============================================================================

def _batch_labels(datasets: Sequence, names: Sequence[str] | None) -> list[str]:
    """Resolve unique dataset labels; defaults to ``dataset1 .. datasetN``."""
    if names is None:
        names = [f"dataset{i}" for i in range(1, len(datasets) + 1)]
    names = [str(n) for n in names]

    if len(names) != len(datasets):
        raise ConfigurationError(
            f"Got {len(names)} names for {len(datasets)} datasets"
        )
    if len(set(names)) != len(names):
        raise ConfigurationError(f"Dataset labels must be unique, got {names}")
    return names
