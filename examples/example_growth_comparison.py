#########################################################################################
##
##               odefit example: which growth law explains the data?
##
##  Data:    Noisy logistic growth (r = 0.45, K = 120)
##  Fit:     Exponential, logistic, Gompertz and monomolecular models
##
##  Every model is fitted with global search plus refinement and the
##  candidates are ranked by BIC. The logistic law should win.
##
#########################################################################################

# IMPORTS ===============================================================================

import logging

import numpy as np
import matplotlib.pyplot as plt

from odefit.models import (
    exponential_growth,
    gompertz_growth,
    logistic_growth,
    monomolecular_growth,
)
from odefit.opt import Dataset, FitConfig, ModelSpec, compare_models, compare_models_dict
from odefit.reporting import plot_comparison


# MODEL DEFINITIONS =====================================================================

specs = {
    "exponential":   ModelSpec(exponential_growth, [0.1], bounds=[(0.0, 2.0)]),
    "logistic":      ModelSpec(logistic_growth, [0.1, 50.0], bounds=[(0.0, 2.0), (1.0, 500.0)]),
    "gompertz":      ModelSpec(gompertz_growth, [0.1, 50.0], bounds=[(0.0, 2.0), (1.0, 500.0)]),
    "monomolecular": ModelSpec(monomolecular_growth, [0.1, 50.0], bounds=[(0.0, 2.0), (1.0, 500.0)]),
}

config = FitConfig(max_time=60.0, max_iterations=300, seed=42)


# Run Example ===========================================================================

if __name__ == '__main__':

    logging.basicConfig(level=logging.INFO)

    # Synthetic measurements with 2% multiplicative noise
    rng = np.random.default_rng(0)
    t = np.linspace(0.0, 20.0, 25)
    y = 120.0 / (1.0 + (120.0 / 4.0 - 1.0) * np.exp(-0.45 * t))
    y = y * (1.0 + 0.02 * rng.standard_normal(t.size))

    data = Dataset(t, y, name="culture A", unit="h")

    # Head-to-head between the two obvious candidates
    compare_models(
        data,
        "exponential", specs["exponential"],
        "logistic", specs["logistic"],
        config=config,
        show_stats=True,
    )

    # Full ranking, with summary and prediction tables written to disk
    result = compare_models_dict(
        data, specs, config=config, show_stats=True, output_csv="all_models_comparison.csv"
    )

    # Carrying capacity known from the experiment design: pin K and refit
    pinned = ModelSpec(logistic_growth, [0.1], bounds=[(0.0, 2.0)], fixed_params={2: 120.0})
    compare_models(
        data, "logistic", specs["logistic"], "logistic (K fixed)", pinned,
        config=config, show_stats=True,
    )

    fig, ax = plot_comparison(result, data, title="Growth law comparison")
    ax.set_xlabel("Time [h]")
    plt.show()
