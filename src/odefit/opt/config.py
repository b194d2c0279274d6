#########################################################################################
##
##                           FITTING PIPELINE CONFIGURATION
##                                    (config.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

from dataclasses import dataclass, replace

from ..errors import ConfigurationError
from .integrator import check_solver


__all__ = ["FitConfig", "DEFAULT_SOLVER"]

DEFAULT_SOLVER = "LSODA"

_STRATEGIES = {
    "best1bin", "best1exp", "rand1bin", "rand1exp", "rand2bin", "rand2exp",
    "randtobest1bin", "randtobest1exp", "currenttobest1bin", "currenttobest1exp",
    "best2bin", "best2exp",
}


# CONFIGURATION =========================================================================

@dataclass(frozen=True)
class FitConfig:
    """Tunables of the search-then-refine fitting pipeline.

    Parameters
    ----------
    solver : str
        Default ``scipy.integrate.solve_ivp`` method; a
        :class:`~odefit.opt.ModelSpec` may override it per model.
    search_rtol, search_atol : float
        Integrator tolerances inside the loss evaluated during the search.
    refine_rtol, refine_atol : float
        Tolerances of the dense re-integration with the winning parameters.
    score_rtol, score_atol : float
        Tolerances used by :class:`~odefit.opt.ModelScorer`.
    max_time : float
        Wall-clock budget of the global search in seconds.
    max_iterations : int
        Maximum number of differential-evolution generations.
    popsize : int
        Population size multiplier of differential evolution.
    strategy : str
        Differential-evolution mutation strategy.
    polish : bool
        Refine the best population member with L-BFGS-B inside the bounds.
    seed : int, optional
        Optimizer random seed. ``None`` makes results reproducible only up to
        optimizer stochasticity.
    n_dense : int
        Number of evenly spaced samples of the predicted trajectory.
    penalty : float
        Finite loss assigned to candidates whose integration fails.
    unbounded_span : float
        Search width substituted for an infinite bound, scaled by
        ``max(1, |initial guess|)``.
    """

    solver: str = DEFAULT_SOLVER
    search_rtol: float = 1e-6
    search_atol: float = 1e-8
    refine_rtol: float = 1e-10
    refine_atol: float = 1e-12
    score_rtol: float = 1e-12
    score_atol: float = 1e-12
    max_time: float = 100.0
    max_iterations: int = 1000
    popsize: int = 15
    strategy: str = "rand1bin"
    polish: bool = True
    seed: int | None = None
    n_dense: int = 1000
    penalty: float = 1e20
    unbounded_span: float = 1e3


    def __post_init__(self) -> None:
        for name in (
            "search_rtol", "search_atol", "refine_rtol", "refine_atol",
            "score_rtol", "score_atol", "max_time", "penalty", "unbounded_span",
        ):
            value = getattr(self, name)
            if not value > 0:
                raise ConfigurationError(f"FitConfig.{name} must be positive, got {value}")

        for name in ("max_iterations", "popsize"):
            if int(getattr(self, name)) < 1:
                raise ConfigurationError(
                    f"FitConfig.{name} must be at least 1, got {getattr(self, name)}"
                )

        if self.n_dense < 2:
            raise ConfigurationError(f"FitConfig.n_dense must be at least 2, got {self.n_dense}")

        if self.strategy not in _STRATEGIES:
            raise ConfigurationError(f"Unknown differential-evolution strategy '{self.strategy}'")

        check_solver(self.solver)


    def with_options(self, **changes) -> "FitConfig":
        """Return a copy with *changes* applied (validated again)."""
        return replace(self, **changes)
