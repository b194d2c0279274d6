#########################################################################################
##
##               odefit example: one model, several replicate experiments
##
##  Data:    Three Gompertz-shaped replicates, the second one truncated
##  Fit:     Same Gompertz spec on every replicate, then mean / std of params
##
##  A replicate that cannot be fitted is reported and excluded from the
##  statistics; the other fits are unaffected.
##
#########################################################################################

# IMPORTS ===============================================================================

import numpy as np
import matplotlib.pyplot as plt

from odefit.models import gompertz_growth
from odefit.opt import Dataset, FitConfig, ModelSpec, compare_datasets, fit_three_datasets
from odefit.reporting import plot_comparison


# MODEL DEFINITION ======================================================================

spec = ModelSpec(gompertz_growth, [0.2, 80.0], bounds=[(0.0, 2.0), (1.0, 400.0)])

config = FitConfig(max_time=40.0, max_iterations=200, seed=7)


def gompertz(t, r, K, y0):
    return K * np.exp(np.log(y0 / K) * np.exp(-r * t))


# Run Example ===========================================================================

if __name__ == '__main__':

    rng = np.random.default_rng(1)
    t = np.linspace(0.0, 15.0, 20)

    replicates = []
    for r, K in [(0.35, 100.0), (0.40, 95.0), (0.38, 105.0)]:
        y = gompertz(t, r, K, 5.0) * (1.0 + 0.02 * rng.standard_normal(t.size))
        replicates.append((t, y))

    # Drop the last sample of y in replicate 2: x and y no longer line up
    t2, y2 = replicates[1]
    replicates[1] = (t2, y2[:-1])

    result, summary = fit_three_datasets(
        replicates[0], "rep1",
        replicates[1], "rep2",
        replicates[2], "rep3",
        spec,
        config=config,
        show_stats=True,
        output_csv="three_datasets_comparison.csv",
    )

    print(f"\nSuccessful fits: {summary.n_successful}/{summary.n_total}")
    print(f"Mean params: {summary.mean_params}")
    print(f"Std  params: {summary.std_params}")
    print(f"Mean SSR:    {summary.mean_ssr:.4g}")

    # Two replicates side by side
    pair = compare_datasets(
        replicates[0], "rep1", spec, replicates[2], "rep3", config=config, show_stats=True
    )

    fig, ax = plot_comparison(
        pair,
        {"rep1": Dataset(*replicates[0], name="rep1"), "rep3": Dataset(*replicates[2], name="rep3")},
        title="Replicates 1 and 3",
    )
    plt.show()
