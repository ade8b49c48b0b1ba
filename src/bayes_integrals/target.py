"""target

The running example: the marginal probability of observing ``count`` events
when the Poisson intensity has a Gamma prior,

.. math:

    p(y) = \\int_0^{\\infty} \\mathrm{Poisson}(y | \\lambda)
        \\mathrm{Gamma}(\\lambda | a, b) d\\lambda.

The integrand is the unnormalized density handed to every approximation in
this package. The integral itself is known in closed form, it is the
negative binomial mass at ``y`` with ``a`` failures and success probability
:math:`1 / (1 + b)`, which makes the example useful as ground truth.
"""

from typing import NamedTuple

import jax.numpy as jnp
import tensorflow_probability.substrates.jax as tfp
from jax import Array

from .utils import to_float64

tfd = tfp.distributions


class PoissonGamma(NamedTuple):
    count: int = 0
    shape: float = 4.0
    rate: float = 1.0

    @classmethod
    def new(cls, count: int = 0, shape: float = 4.0, rate: float = 1.0):
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValueError(f"count must be a non-negative integer, got {count!r}")
        if not shape > 0:
            raise ValueError(f"shape must be positive, got {shape!r}")
        if not rate > 0:
            raise ValueError(f"rate must be positive, got {rate!r}")
        return cls(count=count, shape=float(shape), rate=float(rate))

    def prior(self) -> tfd.Gamma:
        shape, rate = to_float64((self.shape, self.rate))
        return tfd.Gamma(concentration=shape, rate=rate)

    def likelihood(self, lam) -> Array:
        """Poisson mass of ``count`` at intensity ``lam``, zero for lam <= 0."""
        lam = jnp.asarray(lam, dtype=jnp.float64)
        positive = lam > 0
        # the double where keeps gradients finite at masked entries
        safe_lam = jnp.where(positive, lam, 1.0)
        lp = tfd.Poisson(rate=safe_lam).log_prob(to_float64(self.count))
        return jnp.where(positive, jnp.exp(lp), 0.0)

    def log_density(self, lam) -> Array:
        lam = jnp.asarray(lam, dtype=jnp.float64)
        positive = lam > 0
        safe_lam = jnp.where(positive, lam, 1.0)
        lp = tfd.Poisson(rate=safe_lam).log_prob(to_float64(self.count))
        lp = lp + self.prior().log_prob(safe_lam)
        return jnp.where(positive, lp, -jnp.inf)

    def density(self, lam) -> Array:
        return jnp.exp(self.log_density(lam))

    def log_density_log_scale(self, theta) -> Array:
        """Log density of theta = log(lambda), including the Jacobian."""
        theta = jnp.asarray(theta, dtype=jnp.float64)
        return self.log_density(jnp.exp(theta)) + theta

    def density_log_scale(self, theta) -> Array:
        return jnp.exp(self.log_density_log_scale(theta))

    def marginal(self) -> tfd.NegativeBinomial:
        shape, probs = to_float64((self.shape, 1.0 / (1.0 + self.rate)))
        return tfd.NegativeBinomial(total_count=shape, probs=probs)

    def exact(self) -> float:
        return float(self.marginal().prob(to_float64(self.count)))
