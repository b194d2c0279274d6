#########################################################################################
##
##                                 ERROR HIERARCHY
##                                   (errors.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations


__all__ = [
    "OdeFitError",
    "ConfigurationError",
    "IntegrationFailure",
    "FitFailure",
]


# EXCEPTIONS ============================================================================

class OdeFitError(Exception):
    """Base class for all errors raised by odefit."""


class ConfigurationError(OdeFitError, ValueError):
    """Malformed inputs detected before any integration or optimization work.

    Raised for out-of-range fixed-parameter indices, bounds whose length does
    not match the parameter count, inverted bounds, mismatched ``x``/``y``
    lengths and invalid :class:`~odefit.opt.FitConfig` values.
    """


class IntegrationFailure(OdeFitError, RuntimeError):
    """The ODE solver diverged, stopped early or produced non-finite states."""


class FitFailure(OdeFitError, RuntimeError):
    """A single fit unit did not produce a usable result.

    Parameters
    ----------
    label : str
        Model or dataset label of the failed unit.
    cause : BaseException, optional
        Underlying error (integration failure, optimizer exception, ...).
    """

    def __init__(self, label: str, cause: BaseException | None = None):
        self.label = label
        self.cause = cause
        detail = f": {type(cause).__name__}: {cause}" if cause is not None else ""
        super().__init__(f"Fit '{label}' failed{detail}")
