import logging
from collections.abc import Callable, Iterable
from typing import NamedTuple

import jax
import numpy as np
from tqdm import tqdm

from .config_parser import ParsedRunConfig
from .gauss_hermite import gauss_hermite, gauss_hermite_from_laplace
from .laplace import LaplaceApproximation, LaplaceDomainError, laplace_poisson_gamma
from .monte_carlo import MonteCarloEstimate, monte_carlo
from .newton_cotes import rectangle_rule
from .target import PoissonGamma


def rectangle_sweep(
    fn: Callable, lower: float, upper: float, steps: Iterable[float]
) -> np.ndarray:
    return np.array([rectangle_rule(fn, lower, upper, step) for step in steps])


def monte_carlo_sweep(
    fn: Callable,
    distribution,
    sample_sizes: Iterable[int],
    num_repeats: int = 20,
    seed: int = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """Mean and spread of repeated Monte Carlo estimates per sample size.

    Every (sample size, repeat) pair gets its own key folded in from ``seed``.
    """
    sample_sizes = list(sample_sizes)
    if num_repeats < 2:
        raise ValueError(f"num_repeats must be at least 2, got {num_repeats}")

    base_key = jax.random.PRNGKey(seed)
    means = np.zeros(len(sample_sizes))
    stds = np.zeros(len(sample_sizes))
    for i, n in enumerate(tqdm(sample_sizes, desc="monte carlo sweep")):
        size_key = jax.random.fold_in(base_key, i)
        estimates = [
            monte_carlo(fn, distribution, n, jax.random.fold_in(size_key, r)).estimate
            for r in range(num_repeats)
        ]
        means[i] = np.mean(estimates)
        stds[i] = np.std(estimates, ddof=1)

    return means, stds


def gauss_hermite_sweep(
    fn: Callable, loc: float, scale: float, max_points: int = 50
) -> np.ndarray:
    """Estimates for k = 1, ..., max_points quadrature points."""
    if max_points < 1:
        raise ValueError(f"max_points must be at least 1, got {max_points}")
    return np.array(
        [
            gauss_hermite(fn, k, loc, scale)
            for k in tqdm(range(1, max_points + 1), desc="gauss-hermite sweep")
        ]
    )


def gauss_hermite_laplace_sweep(
    fn: Callable, approx: LaplaceApproximation, max_points: int = 50
) -> np.ndarray:
    """Like `gauss_hermite_sweep` with nodes placed by a Laplace approximation."""
    if max_points < 1:
        raise ValueError(f"max_points must be at least 1, got {max_points}")
    return np.array(
        [
            gauss_hermite_from_laplace(fn, approx, k)
            for k in tqdm(range(1, max_points + 1), desc="gauss-hermite sweep")
        ]
    )


class ApproximationSummary(NamedTuple):
    exact: float
    rectangle: float
    monte_carlo: MonteCarloEstimate
    laplace_normal: LaplaceApproximation | None
    laplace_lognormal: LaplaceApproximation | None
    gauss_hermite: float | None
    quadrature_reference: LaplaceApproximation | None = None

    def estimates(self) -> dict[str, float]:
        estimates = {
            "exact": self.exact,
            "rectangle": self.rectangle,
            "monte_carlo": self.monte_carlo.estimate,
        }
        if self.laplace_normal is not None:
            estimates["laplace_normal"] = self.laplace_normal.normalizer
        if self.laplace_lognormal is not None:
            estimates["laplace_lognormal"] = self.laplace_lognormal.normalizer
        if self.gauss_hermite is not None:
            estimates["gauss_hermite"] = self.gauss_hermite
        return estimates

    def errors(self) -> dict[str, float]:
        return {
            name: abs(value - self.exact)
            for name, value in self.estimates().items()
            if name != "exact"
        }


def _try_laplace(
    target: PoissonGamma, log_scale: bool, config: ParsedRunConfig
) -> LaplaceApproximation | None:
    settings = config.methods.laplace
    try:
        return laplace_poisson_gamma(
            target,
            log_scale=log_scale,
            method=settings.method,
            lower=settings.lower if not log_scale else None,
            upper=settings.upper if not log_scale else None,
        )
    except LaplaceDomainError as e:
        logging.error(f"Laplace approximation unavailable: {e}")
        return None


def summarize(target: PoissonGamma, config: ParsedRunConfig) -> ApproximationSummary:
    """Run every approximation configured for ``target``."""
    methods = config.methods
    rect = methods.rectangle
    mc = methods.monte_carlo

    laplace_normal = _try_laplace(target, False, config)
    laplace_lognormal = _try_laplace(target, True, config)

    gh_reference = laplace_lognormal if methods.laplace.log_scale else laplace_normal
    gh = None
    if gh_reference is not None:
        gh = gauss_hermite_from_laplace(
            target.density, gh_reference, methods.gauss_hermite.num_points
        )

    return ApproximationSummary(
        exact=target.exact(),
        rectangle=rectangle_rule(target.density, rect.lower, rect.upper, rect.step),
        monte_carlo=monte_carlo(
            target.likelihood,
            target.prior(),
            mc.num_samples,
            seed=mc.seed,
            batch_size=mc.batch_size,
        ),
        laplace_normal=laplace_normal,
        laplace_lognormal=laplace_lognormal,
        gauss_hermite=gh,
        quadrature_reference=gh_reference,
    )
