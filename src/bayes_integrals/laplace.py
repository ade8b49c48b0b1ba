"""Laplace approximation of an unnormalized density.

Around its mode :math:`\\mu` a smooth log density is well described by its
second order Taylor expansion,

.. math:

    \\log f(x) \\approx \\log f(\\mu) - \\frac{(x - \\mu)^2}{2 \\sigma^2},
    \\quad \\sigma = (-\\partial_x^2 \\log f(\\mu))^{-1/2},

so :math:`f` is approximated by a normal density rescaled to match the peak
height :math:`f(\\mu)`. The rescaling constant
:math:`f(\\mu) \\sqrt{2 \\pi} \\sigma` is the estimate of the integral.

For positive variables the same construction on :math:`\\theta = \\log x`
yields a log-normal approximation. In that case the caller passes the log
density of :math:`\\theta` (Jacobian included) and search bounds on the log
scale.

The approximation only exists when the log density is strictly concave at
the mode. Anything else raises :class:`LaplaceDomainError`.
"""

import logging
import math
from collections.abc import Callable
from typing import NamedTuple

import jax
import jax.numpy as jnp
import numpy as np
import tensorflow_probability.substrates.jax as tfp
from jax import Array
from scipy import optimize

from .target import PoissonGamma
from .utils import to_float64

tfd = tfp.distributions

LogDensity = Callable[[Array], Array]

_HALF_LOG_2PI = 0.5 * math.log(2.0 * math.pi)

# largest Newton step from the mode, in units of the fitted scale
_STATIONARY_TOL = 1e-3


class LaplaceDomainError(ValueError):
    """The log density is not strictly concave at the located mode."""

    pass


class LaplaceApproximation(NamedTuple):
    """A normal (or log-normal) approximation matched at the mode.

    Attributes:
    -----------
    mode: float
        Location of the maximum. On the log scale when ``log_scale`` is set.

    scale: float
        Standard deviation :math:`(-\\text{curvature})^{-1/2}` of the matched
        normal, again on the log scale when ``log_scale`` is set.

    log_height: float
        Log density evaluated at the mode.

    log_scale: bool
        Whether the approximation was built for :math:`\\log x`, i.e. whether
        it is a log-normal in ``x``.
    """

    mode: float
    scale: float
    log_height: float
    log_scale: bool = False

    @property
    def log_normalizer(self) -> float:
        return self.log_height + _HALF_LOG_2PI + math.log(self.scale)

    @property
    def normalizer(self) -> float:
        """Peak matching constant, the approximation of the integral."""
        return math.exp(self.log_normalizer)

    def distribution(self) -> tfd.Distribution:
        loc, scale = to_float64((self.mode, self.scale))
        if self.log_scale:
            return tfd.LogNormal(loc=loc, scale=scale)
        return tfd.Normal(loc=loc, scale=scale)

    def density(self, x) -> Array:
        """The rescaled approximation of the unnormalized density."""
        x = jnp.asarray(x, dtype=jnp.float64)
        dist = self.distribution()
        if self.log_scale:
            # log-normal prob is undefined for non-positive x
            safe_x = jnp.where(x > 0, x, 1.0)
            return jnp.where(x > 0, self.normalizer * dist.prob(safe_x), 0.0)
        return self.normalizer * dist.prob(x)

    def quantile(self, q) -> Array:
        q = jnp.asarray(q, dtype=jnp.float64)
        if jnp.any((q < 0) | (q > 1)):
            raise ValueError(f"Quantile levels must lie in [0, 1]. Got {q}.")
        return self.distribution().quantile(q)

    def interval(self, level: float = 0.95) -> tuple[float, float]:
        """Central interval holding ``level`` of the approximating mass."""
        if not 0 < level < 1:
            raise ValueError(f"level must lie in (0, 1). Got {level}.")
        tail = 0.5 * (1.0 - level)
        lo, hi = self.quantile(jnp.array([tail, 1.0 - tail]))
        return float(lo), float(hi)


def find_mode(
    log_density: LogDensity,
    lower: float,
    upper: float,
    xatol: float = 1e-10,
) -> float:
    """Maximize ``log_density`` on the bounded interval ``[lower, upper]``."""
    if not (math.isfinite(lower) and math.isfinite(upper)):
        raise ValueError(f"Bounds must be finite. Got [{lower}, {upper}].")
    if not upper > lower:
        raise ValueError(f"upper must exceed lower. Got [{lower}, {upper}].")

    def objective(x: float) -> float:
        value = float(log_density(x))
        # nan would derail the bracketing, treat it as outside the support
        return math.inf if math.isnan(value) else -value

    res = optimize.minimize_scalar(
        objective, bounds=(lower, upper), method="bounded", options={"xatol": xatol}
    )
    if not res.success:
        raise RuntimeError(f"Mode search failed: {res.message}")

    return float(res.x)


def slope(
    log_density: LogDensity,
    x: float,
    method: str = "autodiff",
    step: float = 1e-4,
) -> float:
    """First derivative of ``log_density`` at ``x``."""
    x = float(x)
    match method:
        case "autodiff":
            first = jax.grad(lambda t: jnp.squeeze(log_density(t)))
            return float(first(jnp.asarray(x, dtype=jnp.float64)))
        case "finite_difference":
            if not step > 0:
                raise ValueError(f"step must be positive. Got {step}.")
            hi, lo = float(log_density(x + step)), float(log_density(x - step))
            return (hi - lo) / (2.0 * step)
        case _:
            raise ValueError(f"Unknown curvature method: {method}")


def curvature(
    log_density: LogDensity,
    x: float,
    method: str = "autodiff",
    step: float = 1e-4,
) -> float:
    """Second derivative of ``log_density`` at ``x``."""
    x = float(x)
    match method:
        case "autodiff":
            second = jax.grad(jax.grad(lambda t: jnp.squeeze(log_density(t))))
            return float(second(jnp.asarray(x, dtype=jnp.float64)))
        case "finite_difference":
            if not step > 0:
                raise ValueError(f"step must be positive. Got {step}.")
            values = np.array([float(log_density(x + d)) for d in (-step, 0.0, step)])
            return float((values[0] - 2.0 * values[1] + values[2]) / step**2)
        case _:
            raise ValueError(f"Unknown curvature method: {method}")


def laplace(
    log_density: LogDensity,
    lower: float,
    upper: float,
    method: str = "autodiff",
    log_scale: bool = False,
) -> LaplaceApproximation:
    mode = find_mode(log_density, lower, upper)
    log_height = float(log_density(mode))
    curv = curvature(log_density, mode, method=method)

    if not math.isfinite(log_height):
        raise LaplaceDomainError(
            f"Log density is not finite at the located mode {mode}: {log_height}."
        )
    if not (math.isfinite(curv) and curv < 0):
        raise LaplaceDomainError(
            f"Log density is not concave at the located mode {mode}: "
            f"curvature is {curv}. No Laplace approximation exists."
        )

    # a maximum outside [lower, upper] pins the search to a bound
    grad = slope(log_density, mode, method=method)
    if not abs(grad) / math.sqrt(-curv) < _STATIONARY_TOL:
        raise LaplaceDomainError(
            f"Located point {mode} is not a stationary point of the log density "
            f"in [{lower}, {upper}]: slope is {grad}. Widen the search bounds."
        )

    approx = LaplaceApproximation(
        mode=mode,
        scale=(-curv) ** -0.5,
        log_height=log_height,
        log_scale=log_scale,
    )
    logging.info(
        f"laplace approximation at mode {approx.mode:.6f} with scale "
        f"{approx.scale:.6f}: {approx.normalizer}"
    )
    return approx


def laplace_poisson_gamma(
    target: PoissonGamma,
    log_scale: bool = False,
    method: str = "autodiff",
    lower: float | None = None,
    upper: float | None = None,
) -> LaplaceApproximation:
    """Laplace approximation for the Poisson-Gamma integrand.

    Without explicit bounds the search covers the bulk of the Gamma prior,
    which always contains the posterior mode
    :math:`(y + a - 1) / (1 + b)` when it is positive.
    """
    prior_mean = target.shape / target.rate
    prior_sd = math.sqrt(target.shape) / target.rate
    hi = max(prior_mean + 10.0 * prior_sd, target.count + target.shape + 10.0)

    if log_scale:
        lower = math.log(1e-8) if lower is None else lower
        upper = math.log(hi) if upper is None else upper
        return laplace(
            target.log_density_log_scale, lower, upper, method, log_scale=True
        )

    lower = 0.0 if lower is None else lower
    upper = hi if upper is None else upper
    return laplace(target.log_density, lower, upper, method)
