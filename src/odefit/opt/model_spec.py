#########################################################################################
##
##                              MODEL SPECIFICATION RECORD
##                                  (model_spec.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence

import numpy as np

from ..errors import ConfigurationError
from .parameter_mask import ModelAdapter, ParameterMask


__all__ = ["ModelSpec"]


# MODEL SPEC ============================================================================

@dataclass(frozen=True)
class ModelSpec:
    """Everything needed to fit one model: dynamics, guess, bounds, pins, solver.

    Parameters
    ----------
    model : callable
        Dynamics ``model(u, p, t) -> du/dt`` taking the FULL parameter vector.
    initial_guess : sequence of float
        Guess for the free parameters. The model has
        ``len(initial_guess) + len(fixed_params)`` parameters in total.
    bounds : sequence of (low, high), optional
        One pair per free parameter, or one per full parameter (then reduced
        to the free positions). Defaults to ``(0, inf)`` everywhere.
    fixed_params : mapping of int to float, optional
        Pinned values keyed by 1-based index into the full parameter vector.
    solver : str, optional
        Integrator override; ``None`` falls back to ``FitConfig.solver``.
    name : str, optional
        Display label; orchestration APIs usually supply their own.
    """

    model: Callable
    initial_guess: Sequence[float]
    bounds: Sequence[tuple[float, float]] | None = None
    fixed_params: Mapping[int, float] | None = None
    solver: str | None = None
    name: str | None = field(default=None, compare=False)


    def __post_init__(self) -> None:
        if not callable(self.model):
            raise ConfigurationError(f"ModelSpec.model must be callable, got {self.model!r}")
        guess = np.asarray(self.initial_guess, dtype=float).reshape(-1)
        if not np.all(np.isfinite(guess)):
            raise ConfigurationError("ModelSpec.initial_guess must be finite")
        object.__setattr__(self, "initial_guess", tuple(guess.tolist()))


    @property
    def n_free(self) -> int:
        return len(self.initial_guess)


    @property
    def n_total(self) -> int:
        return self.n_free + (len(self.fixed_params) if self.fixed_params else 0)


    def mask(self) -> ParameterMask:
        """Build the free/fixed split; fails fast on malformed indices."""
        return ParameterMask(self.n_total, self.fixed_params)


    def adapter(self) -> ModelAdapter:
        """Dynamics taking only the free parameters."""
        return ModelAdapter(self.model, self.mask())


    def guess(self) -> np.ndarray:
        return np.asarray(self.initial_guess, dtype=float)


    def free_bounds(self, mask: ParameterMask | None = None) -> list[tuple[float, float]]:
        """Validated ``(low, high)`` pairs, one per free parameter."""
        mask = mask if mask is not None else self.mask()

        if self.bounds is None:
            return [(0.0, np.inf)] * mask.n_free

        pairs = list(self.bounds)
        if len(pairs) == mask.n_total and mask.n_fixed:
            pairs = mask.reduce(pairs)
        elif len(pairs) != mask.n_free:
            raise ConfigurationError(
                f"Expected {mask.n_free} bound pairs (or {mask.n_total} before "
                f"removing fixed parameters), got {len(pairs)}"
            )

        out = []
        for k, pair in enumerate(pairs):
            try:
                lo, hi = (float(v) for v in pair)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Bound {k} is not a (low, high) pair: {pair!r}") from exc
            if np.isnan(lo) or np.isnan(hi) or lo > hi:
                raise ConfigurationError(f"Bound {k}: invalid interval ({lo}, {hi})")
            out.append((lo, hi))
        return out
