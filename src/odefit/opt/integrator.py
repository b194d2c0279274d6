#########################################################################################
##
##                          ODE INTEGRATION SERVICE (SciPy)
##                                 (integrator.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np
from scipy.integrate import solve_ivp

from ..errors import ConfigurationError, IntegrationFailure


__all__ = ["integrate", "check_solver", "SOLVERS"]

SOLVERS = ("RK23", "RK45", "DOP853", "Radau", "BDF", "LSODA")


# INTEGRATION ===========================================================================

def integrate(
    model: Callable,
    u0: Sequence[float],
    t_span: tuple[float, float],
    params: Sequence[float],
    t_eval: Sequence[float],
    *,
    rtol: float,
    atol: float,
    method: str,
) -> tuple[np.ndarray, np.ndarray]:
    """Integrate ``du/dt = model(u, params, t)`` and sample it at *t_eval*.

    Parameters
    ----------
    model : callable
        Dynamics ``model(u, p, t)``.
    u0 : array_like
        Initial state.
    t_span : (float, float)
        Integration interval.
    params : array_like
        Parameter vector passed unchanged to *model*.
    t_eval : array_like
        Sample points inside *t_span*.
    rtol, atol : float
        Solver tolerances.
    method : str
        Any ``scipy.integrate.solve_ivp`` method name.

    Returns
    -------
    t : np.ndarray
        Sample times, shape ``(n,)``.
    states : np.ndarray
        States at the sample times, shape ``(n, n_states)``.

    Raises
    ------
    IntegrationFailure
        If the solver stops early, returns fewer samples than requested,
        produces non-finite states, or the dynamics raise an arithmetic or
        domain error.
    ConfigurationError
        If the dynamics return a derivative of the wrong size. Errors raised
        by a :class:`~odefit.opt.ModelAdapter` propagate unchanged.
    """
    p = np.asarray(params, dtype=float)
    t_eval = np.asarray(t_eval, dtype=float)
    y0 = np.asarray(u0, dtype=float).reshape(-1)

    def rhs(t, u):
        du = np.asarray(model(u, p, t), dtype=float).reshape(-1)
        if du.size != y0.size:
            raise ConfigurationError(
                f"Dynamics returned {du.size} derivatives for {y0.size} states"
            )
        return du

    try:
        with np.errstate(all="ignore"):
            sol = solve_ivp(
                rhs,
                t_span,
                y0,
                method=method,
                t_eval=t_eval,
                rtol=rtol,
                atol=atol,
            )
    except ConfigurationError:
        raise
    except (ArithmeticError, ValueError) as exc:
        raise IntegrationFailure(f"Dynamics raised {type(exc).__name__}: {exc}") from exc

    if not sol.success:
        raise IntegrationFailure(f"Solver '{method}' failed: {sol.message}")

    if sol.y.shape[1] != t_eval.size:
        raise IntegrationFailure(
            f"Solver '{method}' returned {sol.y.shape[1]} of {t_eval.size} samples"
        )

    states = sol.y.T
    if not np.all(np.isfinite(states)):
        raise IntegrationFailure(f"Solver '{method}' produced non-finite states")

    return sol.t, states


def check_solver(method) -> None:
    """Raise :class:`ConfigurationError` for an unknown integrator name.

    ``scipy.integrate.OdeSolver`` subclasses are accepted as-is.
    """
    if isinstance(method, str):
        if method not in SOLVERS:
            raise ConfigurationError(
                f"Unknown solver '{method}'; expected one of {', '.join(SOLVERS)}"
            )
    elif not isinstance(method, type):
        raise ConfigurationError(f"Solver must be a method name or OdeSolver class, got {method!r}")
