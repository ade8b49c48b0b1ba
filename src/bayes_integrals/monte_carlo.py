"""Plain Monte Carlo estimates of expectations.

Writing the integral as an expectation under a distribution we can sample
from,

.. math:

    \\int g(x) p(x) dx \\approx \\frac{1}{N} \\sum_{i=1}^{N} g(x_i),
    \\quad x_i \\sim p,

gives an unbiased estimate whose standard error shrinks like
:math:`1 / \\sqrt{N}`. For the Poisson-Gamma example ``p`` is the Gamma prior
and ``g`` the Poisson likelihood. When ``p`` itself cannot be sampled this
estimator does not apply.
"""

import logging
import math
from collections.abc import Callable
from typing import NamedTuple

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array

Seed = int | Array


class MonteCarloEstimate(NamedTuple):
    estimate: float
    std_error: float
    num_samples: int


def _as_key(seed: Seed) -> Array:
    if isinstance(seed, (int, np.integer)):
        return jax.random.PRNGKey(int(seed))
    return seed


def _draw(distribution, key: Array, n: int) -> Array:
    # tfp distributions and plain (key, n) -> samples callables both work
    if hasattr(distribution, "sample"):
        return distribution.sample(n, seed=key)
    return distribution(key, n)


def monte_carlo(
    fn: Callable[[Array], Array],
    distribution,
    num_samples: int,
    seed: Seed = 0,
    batch_size: int | None = None,
) -> MonteCarloEstimate:
    """Average ``fn`` over independent draws from ``distribution``.

    ``batch_size`` bounds the number of samples held in memory at once. The
    batched estimate uses a different split of the random key than the
    unbatched one, so the two agree statistically but not bit for bit.
    """
    if isinstance(num_samples, bool) or int(num_samples) != num_samples:
        raise ValueError(f"num_samples must be an integer, got {num_samples!r}")
    num_samples = int(num_samples)
    if num_samples < 1:
        raise ValueError(f"num_samples must be at least 1, got {num_samples}")
    if batch_size is not None and batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")

    key = _as_key(seed)

    if batch_size is None or batch_size >= num_samples:
        values = jnp.asarray(fn(_draw(distribution, key, num_samples)))
        mean = float(jnp.mean(values))
        if num_samples > 1:
            std = float(jnp.std(values, ddof=1))
        else:
            std = math.nan
    else:
        total, total_sq, remaining = 0.0, 0.0, num_samples
        while remaining > 0:
            key, subkey = jax.random.split(key)
            n = min(batch_size, remaining)
            values = jnp.asarray(fn(_draw(distribution, subkey, n)))
            total += float(jnp.sum(values))
            total_sq += float(jnp.sum(values**2))
            remaining -= n

        mean = total / num_samples
        var = (total_sq - num_samples * mean**2) / (num_samples - 1)
        std = math.sqrt(max(var, 0.0))

    result = MonteCarloEstimate(
        estimate=mean,
        std_error=std / math.sqrt(num_samples),
        num_samples=num_samples,
    )
    logging.info(
        f"monte carlo with {num_samples} samples: {result.estimate} "
        f"(se {result.std_error:.3g})"
    )
    return result
