#########################################################################################
##
##                              OBSERVED DATASET CONTAINER
##                                    (dataset.py)
##
#########################################################################################

# IMPORTS ===============================================================================

from __future__ import annotations

import numpy as np

from ..errors import ConfigurationError


# CLASS =================================================================================

class Dataset:

    """Observed time series ``(x, y)`` used as a fitting target.

    Stores the independent-variable samples and the paired observations of
    the fitted state component. The sample grid is required to be strictly
    increasing and both arrays must be finite.

    Parameters
    ----------
    x : array_like
        Independent-variable samples of shape (n,), n >= 2.
    y : array_like
        Observations of shape (n,).
    name : str, optional
        Dataset label used in comparison tables and plots.
    unit : str, optional
        Unit of ``x`` used for plotting.

    Raises
    ------
    ConfigurationError
        If the arrays are not 1D, differ in length, hold fewer than two
        samples, are not numeric, contain non-finite values or ``x`` is not
        strictly increasing.
    """

    def __init__(self, x, y, name: str = "dataset", unit: str = "s"):
        try:
            x_arr = np.asarray(x, dtype=float)
            y_arr = np.asarray(y, dtype=float)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"Dataset '{name}' requires numeric x and y: {exc}"
            ) from exc

        if x_arr.ndim != 1 or y_arr.ndim != 1:
            raise ConfigurationError(
                f"Dataset '{name}' requires 1D x and y, "
                f"got shapes {x_arr.shape} and {y_arr.shape}"
            )
        if x_arr.size != y_arr.size:
            raise ConfigurationError(
                f"Dataset '{name}' requires x and y with same length "
                f"({x_arr.size} != {y_arr.size})"
            )
        if x_arr.size < 2:
            raise ConfigurationError(f"Dataset '{name}' requires at least 2 samples")
        if not (np.all(np.isfinite(x_arr)) and np.all(np.isfinite(y_arr))):
            raise ConfigurationError(f"Dataset '{name}' contains non-finite values")
        if not np.all(np.diff(x_arr) > 0):
            raise ConfigurationError(f"Dataset '{name}' requires strictly increasing x")

        self.x = x_arr
        self.y = y_arr
        self.name = str(name)
        self.unit = unit


    @classmethod
    def coerce(cls, data, name: str = "dataset") -> "Dataset":
        """Return *data* as a :class:`Dataset`, accepting an ``(x, y)`` pair."""
        if isinstance(data, cls):
            return data
        try:
            x, y = data
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"Dataset '{name}' must be a Dataset or an (x, y) pair"
            ) from exc
        return cls(x, y, name=name)


    def __repr__(self) -> str:
        return f"Dataset(name={self.name!r}, n={self.length}, span={self.time_span})"


    @property
    def length(self) -> int:
        """Number of samples."""
        return self.x.size


    @property
    def duration(self) -> float:
        """Covered span in units of ``x``."""
        return float(self.x[-1] - self.x[0])


    @property
    def time_span(self) -> tuple[float, float]:
        """Integration interval ``(x[0], x[-1])``."""
        return float(self.x[0]), float(self.x[-1])


    @property
    def initial_state(self) -> np.ndarray:
        """Single-state initial condition ``[y[0]]``."""
        return self.y[:1].copy()


    def plot(self, *, marker: str = "o", markersize: float = 6.0, alpha: float = 0.6):
        """Plot the observations.

        Returns
        -------
        fig : matplotlib.figure.Figure
        ax : matplotlib.axes.Axes
        """
        import matplotlib.pyplot as plt  # lazy import

        fig, ax = plt.subplots(figsize=(8, 4))
        ax.plot(self.x, self.y, marker, ms=markersize, alpha=alpha, label=self.name)
        ax.set_xlabel(f"Time ({self.unit})")
        ax.set_ylabel("Observation")
        ax.set_title(f"Dataset: {self.name}")
        ax.legend()
        ax.grid(True)
        fig.tight_layout()
        return fig, ax
