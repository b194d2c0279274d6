#########################################################################################
##
##                              FIT RESULT CONTAINERS
##                                   (results.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ..errors import FitFailure
from .parameter_mask import ParameterMask


__all__ = ["Trajectory", "FitResult", "FitOutcome"]


def _frozen(arr) -> np.ndarray:
    out = np.array(arr, dtype=float)
    out.setflags(write=False)
    return out


# TRAJECTORY ============================================================================

@dataclass(frozen=True, eq=False)
class Trajectory:
    """Densely sampled model prediction.

    Parameters
    ----------
    t : array_like
        Sample times, shape ``(n,)``.
    states : array_like
        States at the sample times, shape ``(n, n_states)``. The fitted
        observable is state component 0.

    Notes
    -----
    Iterating yields ``(time, state)`` pairs in time order.
    """

    t: np.ndarray
    states: np.ndarray


    def __post_init__(self) -> None:
        t = _frozen(self.t).reshape(-1)
        states = np.array(self.states, dtype=float)
        if states.ndim == 1:
            states = states.reshape(-1, 1)
        if states.shape[0] != t.size:
            raise ValueError(
                f"Trajectory states have {states.shape[0]} rows for {t.size} times"
            )
        states.setflags(write=False)
        object.__setattr__(self, "t", t)
        object.__setattr__(self, "states", states)


    @property
    def observable(self) -> np.ndarray:
        """Fitted state component (component 0) at every sample time."""
        return self.states[:, 0]


    def __len__(self) -> int:
        return self.t.size


    def __iter__(self):
        return zip(self.t, self.states)


# FIT RESULT ============================================================================

@dataclass(frozen=True, eq=False)
class FitResult:
    """Outcome of one successful fit.

    Parameters
    ----------
    params : np.ndarray
        Best-fit free-parameter vector.
    bic : float
        Bayesian information criterion at ``params``.
    ssr : float
        Sum of squared residuals at the observed samples.
    trajectory : Trajectory
        Dense prediction over the observed time span.
    label : str
        Model or dataset label of the unit.
    mask : ParameterMask, optional
        Free/fixed split used for the fit; enables :attr:`full_params`.
    """

    params: np.ndarray
    bic: float
    ssr: float
    trajectory: Trajectory
    label: str = ""
    mask: ParameterMask | None = field(default=None, repr=False)


    def __post_init__(self) -> None:
        object.__setattr__(self, "params", _frozen(self.params).reshape(-1))
        object.__setattr__(self, "bic", float(self.bic))
        object.__setattr__(self, "ssr", float(self.ssr))


    @property
    def full_params(self) -> np.ndarray:
        """Full parameter vector with pinned values re-inserted."""
        if self.mask is None:
            return self.params.copy()
        return self.mask.expand(self.params)


    def __repr__(self) -> str:
        return (
            f"FitResult({self.label!r}, bic={self.bic:.6g}, ssr={self.ssr:.6g}, "
            f"params={np.array2string(self.params, precision=6)})"
        )


# TAGGED OUTCOME ========================================================================

@dataclass(frozen=True)
class FitOutcome:
    """Tagged success/failure of a single fit unit.

    Exactly one of ``result`` and ``error`` is set.
    """

    label: str
    result: FitResult | None = None
    error: FitFailure | None = None


    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("FitOutcome requires exactly one of result or error")


    @property
    def ok(self) -> bool:
        return self.result is not None


    def unwrap(self) -> FitResult:
        """Return the result or raise the recorded :class:`FitFailure`."""
        if self.error is not None:
            raise self.error
        return self.result
