#########################################################################################
##
##                          GROWTH-CURVE DYNAMICS LIBRARY
##                                   (models.py)
##
#########################################################################################

"""Right-hand sides ``f(u, p, t) -> du/dt`` for common single-state growth laws.

All functions take the state ``u`` (array of length 1), the full parameter
vector ``p`` and the time ``t``, and return the derivative as an array.
"""

# IMPORTS ===============================================================================

import numpy as np


__all__ = [
    "exponential_growth",
    "logistic_growth",
    "gompertz_growth",
    "monomolecular_growth",
    "richards_growth",
]


# MODELS ================================================================================

def exponential_growth(u, p, t):
    """``du/dt = r u`` with ``p = [r]``; linear in ``log u``."""
    r = p[0]
    return np.array([r * u[0]])


def logistic_growth(u, p, t):
    """``du/dt = r u (1 - u / K)`` with ``p = [r, K]``."""
    r, K = p[0], p[1]
    return np.array([r * u[0] * (1.0 - u[0] / K)])


def gompertz_growth(u, p, t):
    """``du/dt = r u ln(K / u)`` with ``p = [r, K]``."""
    r, K = p[0], p[1]
    return np.array([r * u[0] * np.log(K / u[0])])


def monomolecular_growth(u, p, t):
    """``du/dt = r (K - u)`` with ``p = [r, K]``."""
    r, K = p[0], p[1]
    return np.array([r * (K - u[0])])


def richards_growth(u, p, t):
    """``du/dt = r u (1 - (u / K)^nu)`` with ``p = [r, K, nu]``."""
    r, K, nu = p[0], p[1], p[2]
    return np.array([r * u[0] * (1.0 - (u[0] / K) ** nu)])
