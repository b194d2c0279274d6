#########################################################################################
##
##                         INFORMATION-CRITERION MODEL SCORING
##                                   (scoring.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from .config import FitConfig
from .integrator import integrate


__all__ = ["ModelScorer", "score", "bic_from_ssr"]

# ln of the smallest normal float; stands in for ln(0) so a perfect fit scores
# finitely and still below every imperfect one
_LOG_TINY = float(np.log(np.finfo(float).tiny))


# HELPERS ===============================================================================

def bic_from_ssr(ssr: float, n: int, k: int) -> float:
    """Gaussian-likelihood BIC ``n * ln(ssr / n) + k * ln(n)``.

    ``ssr / n`` below the smallest normal float (including ``ssr == 0``) uses
    the :data:`_LOG_TINY` sentinel in place of the log.
    """
    if n < 1:
        raise ValueError(f"BIC needs at least one sample, got n={n}")
    ratio = ssr / n
    log_term = _LOG_TINY if ratio < np.finfo(float).tiny else float(np.log(ratio))
    return n * log_term + k * float(np.log(n))


# SCORER ================================================================================

class ModelScorer:
    """Compute ``(bic, ssr)`` of a fitted model at the observed samples.

    Parameters
    ----------
    config : FitConfig, optional
        Supplies the scoring tolerances and default solver.
    """

    def __init__(self, config: FitConfig | None = None):
        self.config = config if config is not None else FitConfig()


    def score(
        self,
        model: Callable,
        x: Sequence[float],
        y: Sequence[float],
        params: Sequence[float],
        *,
        solver: str | None = None,
    ) -> tuple[float, float]:
        """Re-integrate *model* at *params* on the samples *x* and score it.

        The initial state is ``[y[0]]`` at ``x[0]``; ``k`` is ``len(params)``.

        Raises
        ------
        IntegrationFailure
            If the model cannot be integrated at *params*.
        """
        x_arr = np.asarray(x, dtype=float)
        y_arr = np.asarray(y, dtype=float)
        p = np.asarray(params, dtype=float).reshape(-1)

        _, states = integrate(
            model,
            y_arr[:1],
            (float(x_arr[0]), float(x_arr[-1])),
            p,
            x_arr,
            rtol=self.config.score_rtol,
            atol=self.config.score_atol,
            method=solver or self.config.solver,
        )
        resid = y_arr - states[:, 0]
        ssr = float(np.dot(resid, resid))
        return bic_from_ssr(ssr, x_arr.size, p.size), ssr


def score(model, x, y, params, *, config: FitConfig | None = None, solver: str | None = None):
    """Functional shortcut for :meth:`ModelScorer.score`."""
    return ModelScorer(config).score(model, x, y, params, solver=solver)
