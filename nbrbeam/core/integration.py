"""
Double integration of curvature along a single span.

Rotation and deflection are obtained with the cumulative trapezoid rule,
both starting at zero on the first station, and the deflection line is
then corrected by the linear ramp through its end value so that both span
ends have zero deflection.
"""

import logging
from typing import Dict, List, Sequence, Tuple

import numpy as np
from scipy.integrate import cumulative_trapezoid

logger = logging.getLogger(__name__)


class CurvatureIntegrator:
    """
    Curvature → rotation → deflection for one continuous span.

    A span never contains a repeated station: a repeated station marks a
    support, and crossing it would mix the boundary conditions of two
    spans. Use ``integrate_spans`` for multi-span series.

    Example:
        >>> x = np.linspace(0, 600, 7)
        >>> result = CurvatureIntegrator().integrate(x, np.full(7, 1e-5))
        >>> float(result['f'][0]), float(result['f'][-1])
        (0.0, 0.0)
    """

    @staticmethod
    def _validate(x: np.ndarray, kappa: np.ndarray):
        if x.shape != kappa.shape:
            raise ValueError(
                f"Stations and curvatures must have the same length ({x.size} != {kappa.size})"
            )
        if not (np.all(np.isfinite(x)) and np.all(np.isfinite(kappa))):
            raise ValueError("Stations and curvatures must be finite")
        steps = np.diff(x)
        if np.any(steps < 0):
            raise ValueError("Stations must be in ascending order")
        if np.any(steps == 0):
            raise ValueError(
                "Repeated station inside a span (support crossed); integrate each span separately"
            )

    def integrate(self, x: Sequence[float], kappa: Sequence[float]) -> Dict[str, np.ndarray]:
        """
        Integrate a curvature series twice.

        Args:
            x: Stations, strictly ascending
            kappa: Curvature at each station (1 / unit of x)

        Returns:
            Dictionary of arrays 'x', 'theta' and 'f'; all empty when fewer
            than two stations are given
        """
        x = np.asarray(x, dtype=float)
        kappa = np.asarray(kappa, dtype=float)

        if x.size < 2:
            empty = np.array([], dtype=float)
            return {'x': empty, 'theta': empty, 'f': empty}

        self._validate(x, kappa)

        theta = cumulative_trapezoid(kappa, x, initial=0)
        f = cumulative_trapezoid(theta, x, initial=0)

        # f(x0) = f(x_end) = 0
        x0, x_end = x[0], x[-1]
        f_end = f[-1]
        f = f - f_end * ((x - x0) / (x_end - x0))

        return {'x': x, 'theta': theta, 'f': f}

    @staticmethod
    def span_indices(x: Sequence[float], start: float, end: float) -> np.ndarray:
        """
        Indices of the stations belonging to the span [start, end].

        At a repeated support station the span ending there keeps the first
        occurrence and the span starting there keeps the second.
        """
        x = np.asarray(x, dtype=float)
        idx = np.flatnonzero((x >= start) & (x <= end))
        at_start = idx[x[idx] == start]
        if at_start.size > 1:
            idx = idx[idx != at_start[0]]
        at_end = idx[x[idx] == end]
        if at_end.size > 1:
            idx = idx[idx != at_end[-1]]
        return idx

    def integrate_spans(
        self,
        x: Sequence[float],
        kappa: Sequence[float],
        spans: Sequence[Tuple[float, float]]
    ) -> List[Dict[str, np.ndarray]]:
        """
        One independent integration per span.

        Args:
            x: Stations along the whole beam (supports may repeat)
            kappa: Curvature at each station
            spans: (start, end) pairs in the units of x

        Returns:
            One result per span, in span order
        """
        x = np.asarray(x, dtype=float)
        kappa = np.asarray(kappa, dtype=float)
        if x.shape != kappa.shape:
            raise ValueError(
                f"Stations and curvatures must have the same length ({x.size} != {kappa.size})"
            )

        results = []
        for start, end in spans:
            idx = self.span_indices(x, start, end)
            logger.debug("Span [%g, %g]: %d stations", start, end, idx.size)
            results.append(self.integrate(x[idx], kappa[idx]))
        return results
