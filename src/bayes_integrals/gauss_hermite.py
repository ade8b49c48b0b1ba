"""Gauss-Hermite quadrature under a matched Gaussian.

Any integral can be written as an expectation under a normal reference
:math:`\\phi(x | \\mu, \\sigma)`,

.. math:

    \\int f(x) dx = E_{\\phi}\\left[\\frac{f(X)}{\\phi(X | \\mu, \\sigma)}\\right]
        \\approx \\sum_{i=1}^{k} w_i e^{t_i^2} \\sqrt{2} \\sigma f(\\mu + \\sqrt{2} \\sigma t_i),

where :math:`(t_i, w_i)` are the physicists' Gauss-Hermite nodes and weights.
The rule is exact when :math:`f / \\phi` is a polynomial of degree below
:math:`2k`, so the reference is best matched to :math:`f`, typically with the
mode and scale of a Laplace approximation.

Nodes cover the whole real line. ``f`` has to return zero, not fail, outside
its natural domain.
"""

import logging
import math
from collections.abc import Callable

import jax.numpy as jnp
import numpy as np

from .hermgauss import hermgauss
from .laplace import LaplaceApproximation

Integrand = Callable[[np.ndarray], np.ndarray]


def _nodes(num_points: int, loc: float, scale: float):
    if not (math.isfinite(loc) and math.isfinite(scale) and scale > 0):
        raise ValueError(
            f"Reference normal needs a finite loc and positive scale. "
            f"Got loc={loc}, scale={scale}."
        )
    t, w = hermgauss(num_points)
    return t, w, loc + math.sqrt(2.0) * scale * t


def _evaluate(fn: Integrand, x: np.ndarray) -> np.ndarray:
    values = np.asarray(fn(x), dtype=np.float64)
    if not np.all(np.isfinite(values)):
        logging.warning(
            f"Integrand returned non-finite values at {np.sum(~np.isfinite(values))} "
            "quadrature nodes."
        )
    return values


def gauss_hermite_expectation(
    fn: Integrand, num_points: int, loc: float = 0.0, scale: float = 1.0
) -> float:
    """Expectation of ``fn(X)`` for :math:`X \\sim N(loc, scale^2)`."""
    _, w, x = _nodes(num_points, loc, scale)
    return float(np.dot(w, _evaluate(fn, x)) / math.sqrt(math.pi))


def gauss_hermite(
    fn: Integrand, num_points: int, loc: float = 0.0, scale: float = 1.0
) -> float:
    """Integral of ``fn`` over the real line."""
    t, w, x = _nodes(num_points, loc, scale)
    # w_i * exp(t_i^2) over- and underflows separately for large k
    log_weights = np.log(w) + t**2 + math.log(math.sqrt(2.0) * scale)
    estimate = float(np.dot(np.exp(log_weights), _evaluate(fn, x)))
    logging.info(f"gauss-hermite with {num_points} points: {estimate}")
    return estimate


def gauss_hermite_from_laplace(
    fn: Integrand, approx: LaplaceApproximation, num_points: int
) -> float:
    """Integral of ``fn`` with nodes placed by a Laplace approximation.

    For a log-normal approximation the integral is taken over
    :math:`\\theta = \\log x`, where the approximation is normal.
    """
    if approx.log_scale:

        def integrand(theta):
            theta = jnp.asarray(theta, dtype=jnp.float64)
            return fn(jnp.exp(theta)) * jnp.exp(theta)

        return gauss_hermite(integrand, num_points, approx.mode, approx.scale)

    return gauss_hermite(fn, num_points, approx.mode, approx.scale)
