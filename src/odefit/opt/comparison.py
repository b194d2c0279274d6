#########################################################################################
##
##                      MODEL / DATASET COMPARISON ORCHESTRATION
##                                 (comparison.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Mapping, Sequence

import pandas as pd

from ..errors import ConfigurationError, FitFailure
from .. import reporting
from .batch import BatchAggregator, BatchSummary
from .config import FitConfig
from .dataset import Dataset
from .fit_engine import FitEngine
from .model_spec import ModelSpec
from .results import FitResult


__all__ = [
    "ComparisonResult",
    "select_best",
    "compare_models",
    "compare_datasets",
    "compare_models_dict",
    "fit_datasets",
    "fit_three_datasets",
]

logger = logging.getLogger(__name__)


# COMPARISON RESULT =====================================================================

@dataclass(eq=False)
class ComparisonResult:
    """Fits of one comparison keyed by unit label.

    Parameters
    ----------
    fits : dict[str, FitResult]
        Successful fits in report order.
    best : str, optional
        Label of the minimum-BIC fit (first one on ties); ``None`` for
        cross-dataset comparisons or when nothing succeeded.
    failures : dict[str, FitFailure]
        Units that did not produce a result.
    label_column : str
        ``"Model"`` or ``"Dataset"``; names the first summary column.

    Notes
    -----
    Behaves as a read-only mapping ``label -> FitResult``.
    """

    fits: dict[str, FitResult]
    best: str | None = None
    failures: dict[str, FitFailure] = field(default_factory=dict)
    label_column: str = "Model"


    def __getitem__(self, label: str) -> FitResult:
        return self.fits[label]


    def __iter__(self) -> Iterator[str]:
        return iter(self.fits)


    def __len__(self) -> int:
        return len(self.fits)


    def __contains__(self, label) -> bool:
        return label in self.fits


    def items(self):
        return self.fits.items()


    @property
    def best_fit(self) -> FitResult | None:
        return self.fits[self.best] if self.best is not None else None


    def summary_table(self) -> pd.DataFrame:
        """``[label_column, Params, BIC, SSR]`` rows in report order."""
        return reporting.summary_frame(self.fits.values(), self.label_column)


    def predictions_table(self) -> pd.DataFrame:
        """``Model, Time, Prediction`` rows, one per trajectory sample per fit."""
        return reporting.predictions_frame(self.fits.values())


    def write_csv(self, output_csv: str | Path, *, predictions: bool = False) -> None:
        """Write the summary (and optionally the predictions) table."""
        reporting.write_summary_csv(self.summary_table(), output_csv)
        if predictions:
            reporting.write_predictions_csv(self.predictions_table(), output_csv)


def select_best(fits: Mapping[str, FitResult]) -> str | None:
    """Label of the minimum-BIC fit; the earliest wins ties."""
    best = None
    for label, fit in fits.items():
        if best is None or fit.bic < fits[best].bic:
            best = label
    return best


# HELPERS ===============================================================================

def _engine(engine: FitEngine | None, config: FitConfig | None) -> FitEngine:
    if engine is not None and config is not None:
        raise ConfigurationError("Pass either engine or config, not both")
    return engine if engine is not None else FitEngine(config)


def _validate(spec: ModelSpec, label: str) -> None:
    """Fail fast on a malformed spec before any fitting work starts."""
    if not isinstance(spec, ModelSpec):
        raise ConfigurationError(f"'{label}': expected ModelSpec, got {type(spec).__name__}")
    spec.free_bounds(spec.mask())


def _finish(result: ComparisonResult, show_stats: bool, output_csv, predictions: bool) -> ComparisonResult:
    if show_stats:
        reporting.print_comparison(result)
    if output_csv is not None:
        result.write_csv(output_csv, predictions=predictions)
    return result


# MODEL VS MODEL ========================================================================

def compare_models(
    data,
    name1: str,
    spec1: ModelSpec,
    name2: str,
    spec2: ModelSpec,
    *,
    engine: FitEngine | None = None,
    config: FitConfig | None = None,
    show_stats: bool = False,
    output_csv: str | Path | None = None,
) -> ComparisonResult:
    """Fit two models to the same dataset and pick the lower-BIC one.

    A tie goes to the first model. Failures are raised, not isolated.

    Raises
    ------
    ConfigurationError
        Malformed specs or data.
    FitFailure
        Either fit did not produce a result.
    """
    if name1 == name2:
        raise ConfigurationError(f"Model labels must differ, got '{name1}' twice")
    _validate(spec1, name1)
    _validate(spec2, name2)
    eng = _engine(engine, config)
    dataset = Dataset.coerce(data)

    fits = {
        name: eng.run_single_fit(spec, dataset, label=name)
        for name, spec in ((name1, spec1), (name2, spec2))
    }
    result = ComparisonResult(fits, best=select_best(fits), label_column="Model")
    logger.info("Model comparison: best is '%s'", result.best)
    return _finish(result, show_stats, output_csv, predictions=False)


# DATASET VS DATASET ====================================================================

def compare_datasets(
    data1,
    name1: str,
    spec1: ModelSpec,
    data2,
    name2: str,
    spec2: ModelSpec | None = None,
    *,
    engine: FitEngine | None = None,
    config: FitConfig | None = None,
    show_stats: bool = False,
    output_csv: str | Path | None = None,
) -> ComparisonResult:
    """Fit one (or two) models independently to two datasets.

    ``spec2`` defaults to ``spec1``. BIC values of different datasets are not
    comparable, so ``best`` is always ``None``.
    """
    spec2 = spec2 if spec2 is not None else spec1
    if name1 == name2:
        raise ConfigurationError(f"Dataset labels must differ, got '{name1}' twice")
    _validate(spec1, name1)
    _validate(spec2, name2)
    eng = _engine(engine, config)

    units = (
        (name1, spec1, Dataset.coerce(data1, name=name1)),
        (name2, spec2, Dataset.coerce(data2, name=name2)),
    )
    fits = {name: eng.run_single_fit(spec, d, label=name) for name, spec, d in units}
    result = ComparisonResult(fits, best=None, label_column="Dataset")
    return _finish(result, show_stats, output_csv, predictions=False)


# NAMED COLLECTION ======================================================================

def compare_models_dict(
    data,
    specs: Mapping[str, ModelSpec],
    *,
    default_solver=None,
    engine: FitEngine | None = None,
    config: FitConfig | None = None,
    show_stats: bool = False,
    output_csv: str | Path | None = None,
) -> ComparisonResult:
    """Fit every model of a label -> spec mapping to one dataset.

    Entries are fitted and reported in sorted label order regardless of the
    mapping's own order. A failing entry is recorded in
    ``result.failures`` and does not stop the others. Each spec's ``solver``
    overrides *default_solver*, which in turn overrides the config solver.

    When *output_csv* is given, the summary is written there and the
    predictions to the derived ``*_predictions.csv`` file.
    """
    if not specs:
        raise ConfigurationError("compare_models_dict needs at least one model spec")
    labels = sorted(specs, key=str)
    for label in labels:
        _validate(specs[label], label)
    eng = _engine(engine, config)
    dataset = Dataset.coerce(data)

    fits: dict[str, FitResult] = {}
    failures: dict[str, FitFailure] = {}
    for label in labels:
        outcome = eng.try_single_fit(
            specs[label], dataset, label=str(label), default_solver=default_solver
        )
        if outcome.ok:
            fits[outcome.label] = outcome.result
        else:
            failures[outcome.label] = outcome.error

    result = ComparisonResult(
        fits, best=select_best(fits), failures=failures, label_column="Model"
    )
    logger.info(
        "Compared %d models (%d failed); best is '%s'", len(labels), len(failures), result.best
    )
    if show_stats:
        print("\nBIC Summary:")
        print(result.summary_table()[["Model", "BIC"]].to_string(index=False))
    return _finish(result, show_stats, output_csv, predictions=True)


# N DATASETS, ONE MODEL =================================================================

def fit_datasets(
    datasets: Sequence,
    spec: ModelSpec,
    *,
    names: Sequence[str] | None = None,
    engine: FitEngine | None = None,
    config: FitConfig | None = None,
    show_stats: bool = False,
    output_csv: str | Path | None = None,
) -> tuple[ComparisonResult, BatchSummary]:
    """Fit the same spec to N datasets with identical guess and bounds.

    Returns
    -------
    comparison : ComparisonResult
        Per-dataset fits and failures (``best`` is ``None``).
    summary : BatchSummary
        Cross-dataset statistics over the successful fits.
    """
    _validate(spec, "spec")
    eng = _engine(engine, config)

    aggregator = BatchAggregator(
        lambda data, label: eng.try_single_fit(spec, data, label=label)
    )
    summary = aggregator.run(list(datasets), names)

    result = ComparisonResult(
        summary.fits, best=None, failures=summary.failures, label_column="Dataset"
    )
    _finish(result, show_stats, output_csv, predictions=False)
    return result, summary


def fit_three_datasets(
    data1, name1: str,
    data2, name2: str,
    data3, name3: str,
    spec: ModelSpec,
    **kwargs,
) -> tuple[ComparisonResult, BatchSummary]:
    """Three-dataset form of :func:`fit_datasets`."""
    return fit_datasets([data1, data2, data3], spec, names=[name1, name2, name3], **kwargs)
