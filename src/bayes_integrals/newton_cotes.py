"""Newton-Cotes rules on an evenly spaced grid.

The rectangle rule is the workhorse of the tutorial: chop the support into
cells of width ``step``, evaluate the density in the middle of each cell and
add up the rectangles. The closed trapezoid and Simpson rules reuse the same
grid, just evaluated at the cell boundaries instead.
"""

import logging
import math
from collections.abc import Callable

import numpy as np
from scipy import integrate

Density = Callable[[np.ndarray], np.ndarray]

# tolerance when deciding whether (upper - lower) / step is a whole number
_CELL_RTOL = 1e-9


def _validate_bounds(lower: float, upper: float, step: float) -> None:
    if not (math.isfinite(lower) and math.isfinite(upper)):
        raise ValueError(f"Bounds must be finite. Got [{lower}, {upper}].")
    if not upper > lower:
        raise ValueError(f"upper must exceed lower. Got [{lower}, {upper}].")
    if not (math.isfinite(step) and step > 0):
        raise ValueError(f"step must be a positive number. Got {step}.")


def num_cells(lower: float, upper: float, step: float) -> int:
    """Number of ``step`` wide cells needed to cover ``[lower, upper]``."""
    _validate_bounds(lower, upper, step)
    ratio = (upper - lower) / step
    nearest = round(ratio)
    if nearest > 0 and math.isclose(ratio, nearest, rel_tol=_CELL_RTOL):
        return int(nearest)
    return math.ceil(ratio)


def grid_points(
    lower: float, upper: float, step: float, midpoints: bool = True
) -> np.ndarray:
    """Cell midpoints, or cell boundaries when ``midpoints`` is False."""
    n = num_cells(lower, upper, step)
    if midpoints:
        return lower + step * (np.arange(n) + 0.5)
    return lower + step * np.arange(n + 1)


def _evaluate(fn: Density, x: np.ndarray) -> np.ndarray:
    return np.asarray(fn(x), dtype=np.float64)


def rectangle_rule(fn: Density, lower: float, upper: float, step: float) -> float:
    x = grid_points(lower, upper, step, midpoints=True)
    estimate = float(np.sum(_evaluate(fn, x)) * step)
    logging.info(f"rectangle rule with {x.size} cells of width {step}: {estimate}")
    return estimate


def trapezoid_rule(fn: Density, lower: float, upper: float, step: float) -> float:
    x = grid_points(lower, upper, step, midpoints=False)
    estimate = float(integrate.trapezoid(_evaluate(fn, x), dx=step))
    logging.info(f"trapezoid rule with {x.size} nodes of spacing {step}: {estimate}")
    return estimate


def simpson_rule(fn: Density, lower: float, upper: float, step: float) -> float:
    x = grid_points(lower, upper, step, midpoints=False)
    estimate = float(integrate.simpson(_evaluate(fn, x), dx=step))
    logging.info(f"simpson rule with {x.size} nodes of spacing {step}: {estimate}")
    return estimate
