#########################################################################################
##
##                     CONSOLE, CSV AND PLOT REPORTING OF FIT RESULTS
##                                  (reporting.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from .opt.comparison import ComparisonResult
    from .opt.results import FitResult


__all__ = [
    "format_params",
    "print_fit_stats",
    "print_comparison",
    "summary_frame",
    "predictions_frame",
    "predictions_path",
    "write_summary_csv",
    "write_predictions_csv",
    "plot_comparison",
]

logger = logging.getLogger(__name__)


# FORMATTING ============================================================================

def format_params(params) -> str:
    """Stringify a parameter vector as ``[p1, p2, ...]``."""
    return "[" + ", ".join(f"{float(p):.10g}" for p in np.asarray(params).reshape(-1)) + "]"


def print_fit_stats(result: "FitResult") -> None:
    """Print fitted parameters, SSR and BIC of one unit."""
    print(f"→ Optimized params: {format_params(result.params)}")
    print(f"→ SSR: {result.ssr:.6g}")
    print(f"→ BIC: {result.bic:.6g}")


def print_comparison(comparison: "ComparisonResult") -> None:
    """Print one block per unit plus the BIC table."""
    print("=" * 60)
    for label, fit in comparison.items():
        print(f"=== {label} ===")
        print(f"Params: {format_params(fit.params)}, BIC: {fit.bic:.6g}, SSR: {fit.ssr:.6g}")
    for label, failure in comparison.failures.items():
        print(f"=== {label} ===")
        print(f"FAILED: {failure.cause}")

    if comparison.best is not None:
        print(f"\nBest ({comparison.label_column.lower()}): {comparison.best}")
    print("=" * 60)


# TABLES ================================================================================

def summary_frame(fits: Iterable["FitResult"], label_column: str = "Model") -> pd.DataFrame:
    """One row per fit with columns ``[label_column, Params, BIC, SSR]``."""
    rows = [
        {
            label_column: fit.label,
            "Params": format_params(fit.params),
            "BIC": fit.bic,
            "SSR": fit.ssr,
        }
        for fit in fits
    ]
    return pd.DataFrame(rows, columns=[label_column, "Params", "BIC", "SSR"])


def predictions_frame(fits: Iterable["FitResult"]) -> pd.DataFrame:
    """One row per trajectory sample per fit with columns ``Model, Time, Prediction``."""
    frames = [
        pd.DataFrame({
            "Model": fit.label,
            "Time": fit.trajectory.t,
            "Prediction": fit.trajectory.observable,
        })
        for fit in fits
    ]
    if not frames:
        return pd.DataFrame(columns=["Model", "Time", "Prediction"])
    return pd.concat(frames, ignore_index=True)


# CSV OUTPUT ============================================================================

def predictions_path(output_csv: str | Path) -> Path:
    """Derive the predictions file name: ``x.csv`` -> ``x_predictions.csv``."""
    path = Path(output_csv)
    name = re.sub(r"\.csv$", "_predictions.csv", path.name)
    if name == path.name:
        name = f"{path.name}_predictions.csv"
    return path.with_name(name)


def write_summary_csv(frame: pd.DataFrame, output_csv: str | Path) -> Path:
    path = Path(output_csv)
    frame.to_csv(path, index=False)
    logger.info("Results saved to %s", path)
    return path


def write_predictions_csv(frame: pd.DataFrame, output_csv: str | Path) -> Path:
    """Write *frame* next to the summary file *output_csv*."""
    path = predictions_path(output_csv)
    frame.to_csv(path, index=False)
    logger.info("Predictions saved to %s", path)
    return path


# PLOTTING ==============================================================================

def plot_comparison(comparison: "ComparisonResult", datasets, *, title: str | None = None):
    """Overlay observations and every predicted trajectory on one axis.

    Parameters
    ----------
    comparison : ComparisonResult
        Fits to draw.
    datasets : Dataset or mapping of label to Dataset
        A single dataset shared by all fits, or one dataset per label.

    Returns
    -------
    fig : matplotlib.figure.Figure
    ax : matplotlib.axes.Axes
    """
    import matplotlib.pyplot as plt  # lazy import

    fig, ax = plt.subplots(figsize=(8, 5))

    if hasattr(datasets, "x"):
        ax.plot(datasets.x, datasets.y, "o", ms=5, alpha=0.6, label=datasets.name)
    else:
        for label, data in datasets.items():
            ax.plot(data.x, data.y, "o", ms=5, alpha=0.6, label=f"{label} data")

    for label, fit in comparison.items():
        style = "-" if label == comparison.best else "--"
        ax.plot(fit.trajectory.t, fit.trajectory.observable, style, lw=2,
                label=f"{label} (BIC={fit.bic:.4g})")

    ax.set_title(title or "Fit comparison")
    ax.set_xlabel("Time")
    ax.set_ylabel("Output")
    ax.grid(True, alpha=0.3)
    ax.legend()
    return fig, ax
