#########################################################################################
##
##                       FREE / FIXED PARAMETER BOOKKEEPING
##                               (parameter_mask.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

from typing import Callable, Mapping, Sequence

import numpy as np

from ..errors import ConfigurationError


__all__ = ["ParameterMask", "ModelAdapter"]


# PARAMETER MASK ========================================================================

class ParameterMask:
    """Split of a full parameter vector into free (fitted) and fixed (pinned) parts.

    Parameters
    ----------
    n_total : int
        Number of parameters the underlying dynamics function expects.
    fixed : mapping of int to float, optional
        Pinned values keyed by **1-based** parameter index in ``[1, n_total]``.

    Raises
    ------
    ConfigurationError
        If ``n_total`` is negative or any fixed index is outside ``[1, n_total]``.

    Notes
    -----
    ``expand`` is a right-inverse of ``reduce`` on the free positions: for any
    full vector ``v``, ``expand(reduce(v))`` equals ``v`` at every free index
    and the pinned value at every fixed index.

    Example
    -------
    .. code-block:: python

        mask = ParameterMask(3, {2: 100.0})
        mask.free_indices            # (1, 3)
        mask.reduce([0.5, 7.0, 2.0]) # array([0.5, 2. ])
        mask.expand([0.5, 2.0])      # array([  0.5, 100. ,   2. ])
    """

    def __init__(self, n_total: int, fixed: Mapping[int, float] | None = None):
        n_total = int(n_total)
        if n_total < 0:
            raise ConfigurationError(f"n_total must be non-negative, got {n_total}")

        fixed = dict(fixed) if fixed else {}
        bad = sorted(i for i in fixed if not (1 <= int(i) <= n_total))
        if bad:
            raise ConfigurationError(
                f"Fixed parameter indices {bad} outside valid range [1, {n_total}]"
            )

        self.n_total = n_total
        self.fixed = {int(i): float(v) for i, v in fixed.items()}
        self.free_indices = tuple(
            i for i in range(1, n_total + 1) if i not in self.fixed
        )

        # 0-based positions and the pinned template reused by every expand()
        self._free_pos = np.array([i - 1 for i in self.free_indices], dtype=int)
        self._template = np.zeros(n_total, dtype=float)
        for i, v in self.fixed.items():
            self._template[i - 1] = v


    @property
    def n_free(self) -> int:
        """Number of free parameters."""
        return len(self.free_indices)


    @property
    def n_fixed(self) -> int:
        """Number of pinned parameters."""
        return len(self.fixed)


    def reduce(self, full: Sequence) -> list:
        """Select the entries of a full-length sequence at the free indices.

        Works for numeric vectors and for sequences of bound pairs alike.
        """
        if len(full) != self.n_total:
            raise ConfigurationError(
                f"Expected sequence of length {self.n_total}, got {len(full)}"
            )
        return [full[i - 1] for i in self.free_indices]


    def expand(self, free: Sequence[float]) -> np.ndarray:
        """Rebuild the full parameter vector from a free-parameter vector."""
        free_arr = np.asarray(free, dtype=float).reshape(-1)
        if free_arr.size != self.n_free:
            raise ConfigurationError(
                f"Expected {self.n_free} free parameters, got {free_arr.size}"
            )
        full = self._template.copy()
        full[self._free_pos] = free_arr
        return full


    def __repr__(self) -> str:
        return (
            f"ParameterMask(n_total={self.n_total}, "
            f"free={list(self.free_indices)}, fixed={self.fixed})"
        )


# MODEL ADAPTER =========================================================================

class ModelAdapter:
    """Expose a full-parameter dynamics function as a free-parameter one.

    Parameters
    ----------
    func : callable
        Dynamics ``func(u, p_full, t) -> du/dt``.
    mask : ParameterMask
        Free/fixed split applied on every call.
    """

    __slots__ = ("func", "mask")

    def __init__(self, func: Callable, mask: ParameterMask):
        if not callable(func):
            raise ConfigurationError(f"Model dynamics must be callable, got {func!r}")
        self.func = func
        self.mask = mask


    def __call__(self, u, p_free, t):
        return self.func(u, self.mask.expand(p_free), t)


    def __repr__(self) -> str:
        name = getattr(self.func, "__name__", type(self.func).__name__)
        return f"ModelAdapter({name}, {self.mask!r})"
