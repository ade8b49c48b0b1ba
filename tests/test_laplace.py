import jax.numpy as jnp
import numpy as np
import pytest
from scipy import integrate, stats

from bayes_integrals.laplace import (
    LaplaceApproximation,
    LaplaceDomainError,
    curvature,
    find_mode,
    laplace,
    laplace_poisson_gamma,
    slope,
)
from bayes_integrals.target import PoissonGamma


@pytest.fixture
def target() -> PoissonGamma:
    return PoissonGamma.new(count=0, shape=4.0, rate=1.0)


def test_find_mode(target):
    # log density is 3 log(lam) - 2 lam + const
    assert np.isclose(find_mode(target.log_density, 0.0, 20.0), 1.5, atol=1e-6)


@pytest.mark.parametrize("method", ["autodiff", "finite_difference"])
def test_curvature(target, method):
    assert np.isclose(
        curvature(target.log_density, 1.5, method=method), -3 / 1.5**2, rtol=1e-5
    )


def test_curvature_unknown_method(target):
    with pytest.raises(ValueError):
        curvature(target.log_density, 1.5, method="symbolic")


def test_normal_laplace(target):
    approx = laplace_poisson_gamma(target)
    assert isinstance(approx, LaplaceApproximation)
    assert not approx.log_scale
    assert np.isclose(approx.mode, 1.5, atol=1e-6)
    assert np.isclose(approx.scale, np.sqrt(0.75), rtol=1e-5)

    expect = float(target.density(1.5)) * np.sqrt(2 * np.pi) * np.sqrt(0.75)
    assert np.isclose(approx.normalizer, expect, rtol=1e-5)
    assert abs(approx.normalizer - target.exact()) < 0.005


def test_lognormal_laplace(target):
    approx = laplace_poisson_gamma(target, log_scale=True)
    assert approx.log_scale
    # on theta = log(lam): 4 theta - 2 exp(theta) + const
    assert np.isclose(approx.mode, np.log(2.0), atol=1e-6)
    assert np.isclose(approx.scale, 0.5, rtol=1e-5)
    assert abs(approx.normalizer - target.exact()) < 0.005


def test_rescaled_density_matches_peak(target):
    approx = laplace_poisson_gamma(target)
    assert np.isclose(approx.density(approx.mode), target.density(approx.mode))


def test_unscaled_distribution_has_unit_mass(target):
    for log_scale in (False, True):
        approx = laplace_poisson_gamma(target, log_scale=log_scale)
        x = np.linspace(1e-6, 40.0, 400_001)
        mass = integrate.trapezoid(np.asarray(approx.distribution().prob(x)), x)
        if not log_scale:
            mass += float(approx.distribution().cdf(0.0))
        assert np.isclose(mass, 1.0, atol=1e-4)


def test_quantiles_and_intervals(target):
    approx = laplace_poisson_gamma(target)
    lo, hi = approx.interval(0.95)
    z = stats.norm.ppf(0.975)
    assert np.isclose(lo, approx.mode - z * approx.scale)
    assert np.isclose(hi, approx.mode + z * approx.scale)
    assert np.isclose(approx.quantile(0.5), approx.mode)

    approx = laplace_poisson_gamma(target, log_scale=True)
    lo, hi = approx.interval(0.9)
    assert 0 < lo < np.exp(approx.mode) < hi

    with pytest.raises(ValueError):
        approx.interval(1.5)
    with pytest.raises(ValueError):
        approx.quantile(-0.1)


def test_lognormal_density_is_zero_for_nonpositive(target):
    approx = laplace_poisson_gamma(target, log_scale=True)
    assert np.all(np.asarray(approx.density(np.array([-1.0, 0.0]))) == 0.0)


@pytest.mark.parametrize("method", ["autodiff", "finite_difference"])
def test_convex_log_density_raises(method):
    with pytest.raises(LaplaceDomainError):
        laplace(lambda x: x**2, -1.0, 2.0, method=method)


def test_flat_log_density_raises():
    with pytest.raises(LaplaceDomainError):
        laplace(lambda x: 0.0 * x + 1.0, -1.0, 1.0)


def test_domain_error_is_value_error():
    assert issubclass(LaplaceDomainError, ValueError)


def test_gaussian_log_density_is_exact():
    mu, sigma = 0.3, 1.7

    def log_density(x):
        return jnp.log(5.0) - 0.5 * ((x - mu) / sigma) ** 2

    approx = laplace(log_density, -10.0, 10.0)
    assert np.isclose(approx.mode, mu, atol=1e-6)
    assert np.isclose(approx.scale, sigma, rtol=1e-6)
    assert np.isclose(approx.normalizer, 5.0 * np.sqrt(2 * np.pi) * sigma, rtol=1e-6)


@pytest.mark.parametrize("lower, upper", [(1.0, 1.0), (2.0, 1.0), (0.0, np.inf)])
def test_invalid_bounds(target, lower, upper):
    with pytest.raises(ValueError):
        find_mode(target.log_density, lower, upper)


@pytest.mark.parametrize("method", ["autodiff", "finite_difference"])
def test_maximum_outside_bounds_raises(method):
    # concave, but the search is pinned to the upper bound
    with pytest.raises(LaplaceDomainError):
        laplace(lambda x: -((x - 5.0) ** 2), 0.0, 1.0, method=method)


def test_narrow_poisson_gamma_bounds_raise(target):
    with pytest.raises(LaplaceDomainError):
        laplace_poisson_gamma(target, lower=0.0, upper=1.0)


@pytest.mark.parametrize("method", ["autodiff", "finite_difference"])
def test_slope(target, method):
    # d/dlam of 3 log(lam) - 2 lam
    assert np.isclose(slope(target.log_density, 1.0, method=method), 1.0, rtol=1e-6)
    assert np.isclose(slope(target.log_density, 1.5, method=method), 0.0, atol=1e-6)
