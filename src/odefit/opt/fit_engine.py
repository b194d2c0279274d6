#########################################################################################
##
##                   GLOBAL-SEARCH-THEN-REFINE ODE FITTING ENGINE
##                                 (fit_engine.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

import logging
import time
import warnings
from typing import Callable, Sequence

import numpy as np
import scipy.optimize as sci_opt

from ..errors import ConfigurationError, FitFailure, IntegrationFailure
from ..reporting import print_fit_stats
from .config import FitConfig
from .dataset import Dataset
from .integrator import check_solver, integrate
from .model_spec import ModelSpec
from .parameter_mask import ModelAdapter, ParameterMask
from .results import FitOutcome, FitResult, Trajectory
from .scoring import ModelScorer


__all__ = ["FitEngine"]

logger = logging.getLogger(__name__)


# SEARCH BUDGET =========================================================================

class _SearchBudget:
    """Differential-evolution callback enforcing the wall-clock budget.

    Returning ``True`` asks SciPy to stop and keep the best member so far.
    """

    def __init__(self, max_time: float):
        self.max_time = float(max_time)
        self.start = time.monotonic()
        self.generations = 0
        self.expired = False


    def __call__(self, xk, convergence=None) -> bool:
        self.generations += 1
        if time.monotonic() - self.start >= self.max_time:
            self.expired = True
            return True
        return False


# FIT ENGINE ============================================================================

class FitEngine:
    """Fit ODE models to observed data by global search followed by refinement.

    The search minimises an L2 loss between the integrated state component 0
    and the observations with ``scipy.optimize.differential_evolution``; the
    winning parameters are then re-integrated densely to obtain a smooth
    predicted trajectory.

    Parameters
    ----------
    config : FitConfig, optional
        Budgets, tolerances, solver and seed of the pipeline.
    scorer : ModelScorer, optional
        Scorer applied after each fit; built from *config* by default.

    Notes
    -----
    Results are deterministic only when ``config.seed`` is set. Without a seed
    repeated fits agree up to optimizer stochasticity.

    Example
    -------
    .. code-block:: python

        engine = FitEngine(FitConfig(max_time=10.0, seed=1))
        spec = ModelSpec(logistic_growth, [0.1, 100.0], bounds=[(0, 2), (1, 500)])
        result = engine.run_single_fit(spec, (t, y), label="logistic")
        result.params, result.bic, result.ssr
    """

    def __init__(self, config: FitConfig | None = None, scorer: ModelScorer | None = None):
        self.config = config if config is not None else FitConfig()
        self.scorer = scorer if scorer is not None else ModelScorer(self.config)


    # LOSS ------------------------------------------------------------------------------

    def loss_function(
        self,
        model: Callable,
        x: np.ndarray,
        y: np.ndarray,
        time_span: tuple[float, float],
        solver,
    ) -> Callable[[np.ndarray], float]:
        """Build the search loss ``sum((u_0(x) - y)^2)`` for *model*.

        Candidates whose integration fails score ``config.penalty`` so the
        search can continue.
        """
        u0 = y[:1].copy()
        penalty = float(self.config.penalty)
        rtol, atol = self.config.search_rtol, self.config.search_atol

        def loss(p: np.ndarray) -> float:
            try:
                _, states = integrate(
                    model, u0, time_span, p, x, rtol=rtol, atol=atol, method=solver
                )
            except IntegrationFailure:
                return penalty
            resid = states[:, 0] - y
            value = float(np.dot(resid, resid))
            return value if np.isfinite(value) else penalty

        return loss


    # SEARCH SPACE ----------------------------------------------------------------------

    def _search_space(
        self,
        guess: np.ndarray,
        bounds: Sequence[tuple[float, float]],
    ) -> tuple[ParameterMask, list[tuple[float, float]]]:
        """Pin degenerate bounds and make every remaining bound finite.

        Returns a mask over the free parameters whose fixed entries are the
        degenerate pairs, and the finite search interval of each searched one.
        """
        span = float(self.config.unbounded_span)
        pinned: dict[int, float] = {}
        search: list[tuple[float, float]] = []

        for k, ((lo, hi), g) in enumerate(zip(bounds, guess), start=1):
            if lo == hi:
                pinned[k] = lo
                continue
            width = span * max(1.0, abs(float(g)))
            s_lo = lo if np.isfinite(lo) else min(float(g), hi if np.isfinite(hi) else float(g)) - width
            s_hi = hi if np.isfinite(hi) else max(float(g), s_lo) + width
            search.append((float(s_lo), float(s_hi)))

        if pinned:
            logger.debug("Pinned degenerate bounds at free positions %s", sorted(pinned))
        return ParameterMask(len(guess), pinned), search


    def _warm_up(self, model, u0, time_span, guess, x, solver) -> None:
        """Integrate once at the initial guess to fail fast on broken dynamics."""
        try:
            integrate(
                model, u0, time_span, guess, x,
                rtol=self.config.search_rtol, atol=self.config.search_atol, method=solver,
            )
        except IntegrationFailure as exc:
            logger.debug("Warm-up integration at initial guess failed: %s", exc)
        except (TypeError, IndexError, KeyError) as exc:
            raise ConfigurationError(
                f"Model dynamics cannot be evaluated at the initial guess: "
                f"{type(exc).__name__}: {exc}"
            ) from exc


    # OPTIMIZATION ENGINE ---------------------------------------------------------------

    def fit(
        self,
        model: Callable,
        x: Sequence[float],
        y: Sequence[float],
        initial_guess: Sequence[float],
        bounds: Sequence[tuple[float, float]],
        time_span: tuple[float, float] | None = None,
        *,
        solver=None,
    ) -> tuple[np.ndarray, Trajectory]:
        """Search for the best parameters of *model* and predict densely with them.

        Parameters
        ----------
        model : callable
            Dynamics ``model(u, p, t)`` over the searched parameters.
        x, y : array_like
            Observed samples; ``x`` strictly increasing.
        initial_guess : array_like
            Sizes the search and seeds the warm-up integration.
        bounds : sequence of (low, high)
            One pair per parameter; ``high`` (or ``low``) may be infinite.
        time_span : (float, float), optional
            Integration interval; defaults to ``(x[0], x[-1])``.
        solver : str, optional
            Integrator method; defaults to ``config.solver``.

        Returns
        -------
        best_params : np.ndarray
        trajectory : Trajectory
            Prediction at ``config.n_dense`` evenly spaced points.

        Raises
        ------
        ConfigurationError
            Malformed data, bounds or guess (raised before any search work).
        IntegrationFailure
            If the dense re-integration at the winning parameters fails.
        """
        data = Dataset(x, y, name="fit")
        x_arr, y_arr = data.x, data.y
        guess = np.asarray(initial_guess, dtype=float).reshape(-1)
        solver = solver if solver is not None else self.config.solver
        check_solver(solver)

        if time_span is None:
            time_span = data.time_span
        t0, t1 = float(time_span[0]), float(time_span[1])
        if not (t0 <= x_arr[0] and x_arr[-1] <= t1 and t0 < t1):
            raise ConfigurationError(
                f"time_span {time_span} does not cover the samples [{x_arr[0]}, {x_arr[-1]}]"
            )

        bounds = [(float(lo), float(hi)) for lo, hi in bounds]
        if len(bounds) != guess.size:
            raise ConfigurationError(
                f"Expected {guess.size} bound pairs, got {len(bounds)}"
            )
        if guess.size == 0:
            raise ConfigurationError("No free parameters to fit")

        lower = np.array([lo for lo, _ in bounds])
        upper = np.array([hi for _, hi in bounds])
        if np.any(np.isnan(lower)) or np.any(np.isnan(upper)) or np.any(lower > upper):
            raise ConfigurationError(f"Invalid bounds {bounds}")

        outside = (guess < lower) | (guess > upper)
        if np.all(lower == upper) and np.any(outside):
            raise ConfigurationError(
                "All bounds are degenerate and the initial guess lies outside them"
            )
        if np.any(outside):
            warnings.warn(
                f"Initial guess {guess} outside bounds at positions "
                f"{np.flatnonzero(outside).tolist()}; clipping for warm-up",
                UserWarning,
                stacklevel=2,
            )

        u0 = y_arr[:1].copy()
        self._warm_up(model, u0, (t0, t1), np.clip(guess, lower, upper), x_arr, solver)

        pin_mask, search_bounds = self._search_space(guess, bounds)
        loss = self.loss_function(model, x_arr, y_arr, (t0, t1), solver)

        if pin_mask.n_free == 0:
            best = pin_mask.expand([])
        else:
            budget = _SearchBudget(self.config.max_time)

            def objective(xs: np.ndarray) -> float:
                return loss(pin_mask.expand(xs))

            res = sci_opt.differential_evolution(
                objective,
                bounds=search_bounds,
                strategy=self.config.strategy,
                maxiter=int(self.config.max_iterations),
                popsize=int(self.config.popsize),
                polish=bool(self.config.polish),
                seed=self.config.seed,
                callback=budget,
            )
            if budget.expired:
                logger.debug(
                    "Search time budget of %.3gs expired after %d generations",
                    self.config.max_time, budget.generations,
                )
            best = pin_mask.expand(res.x)

        best = np.clip(best, lower, upper)

        t_dense = np.linspace(t0, t1, int(self.config.n_dense))
        t_pred, states = integrate(
            model, u0, (t0, t1), best, t_dense,
            rtol=self.config.refine_rtol, atol=self.config.refine_atol, method=solver,
        )
        return best, Trajectory(t_pred, states)


    # UNIT FITS -------------------------------------------------------------------------

    def run_single_fit(
        self,
        spec: ModelSpec,
        data,
        *,
        label: str | None = None,
        default_solver=None,
        show_stats: bool = False,
    ) -> FitResult:
        """Fit *spec* to *data* and score it.

        Parameters
        ----------
        spec : ModelSpec
            Model, guess, bounds, pinned parameters and optional solver.
        data : Dataset or (x, y)
            Observations.
        label : str, optional
            Unit label; defaults to ``spec.name`` or the dataset name.
        default_solver : str, optional
            Used when ``spec.solver`` is unset; falls back to ``config.solver``.
        show_stats : bool
            Print parameters, SSR and BIC once the unit has completed.

        Raises
        ------
        ConfigurationError
            Malformed spec or data.
        FitFailure
            The search or the final integrations did not produce a result.
        """
        if label is None:
            label = spec.name or getattr(data, "name", None) or "model"
        dataset = Dataset.coerce(data, name=label)

        mask = spec.mask()
        bounds = spec.free_bounds(mask)
        adapter = ModelAdapter(spec.model, mask)
        solver = spec.solver or default_solver or self.config.solver

        logger.info("Fitting '%s' (%d free, %d fixed parameters)", label, mask.n_free, mask.n_fixed)
        try:
            params, trajectory = self.fit(
                adapter, dataset.x, dataset.y, spec.guess(), bounds, solver=solver
            )
            bic, ssr = self.scorer.score(adapter, dataset.x, dataset.y, params, solver=solver)
        except ConfigurationError:
            raise
        except (IntegrationFailure, ArithmeticError, ValueError, RuntimeError) as exc:
            raise FitFailure(label, exc) from exc

        result = FitResult(
            params=params, bic=bic, ssr=ssr, trajectory=trajectory, label=label, mask=mask
        )
        logger.info("Fitted '%s': BIC=%.6g, SSR=%.6g", label, bic, ssr)
        if show_stats:
            print_fit_stats(result)
        return result


    def try_single_fit(self, spec: ModelSpec, data, *, label: str, **kwargs) -> FitOutcome:
        """Like :meth:`run_single_fit` but return a tagged :class:`FitOutcome`.

        Dataset problems and fit failures are captured in the outcome instead
        of being raised.
        """
        try:
            result = self.run_single_fit(spec, data, label=label, **kwargs)
        except FitFailure as exc:
            failure = exc
        except ConfigurationError as exc:
            failure = FitFailure(label, exc)
        else:
            return FitOutcome(label, result=result)

        logger.warning("Fit '%s' failed: %s", label, failure.cause)
        return FitOutcome(label, error=failure)
