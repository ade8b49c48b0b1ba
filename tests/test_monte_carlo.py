import jax
import numpy as np
import pytest

from bayes_integrals.monte_carlo import MonteCarloEstimate, monte_carlo
from bayes_integrals.target import PoissonGamma


@pytest.fixture
def target() -> PoissonGamma:
    return PoissonGamma.new(count=0, shape=4.0, rate=1.0)


def test_estimate_within_standard_errors(target):
    result = monte_carlo(target.likelihood, target.prior(), 1_000_000, seed=1)
    assert isinstance(result, MonteCarloEstimate)
    assert result.num_samples == 1_000_000
    assert abs(result.estimate - target.exact()) < 4 * result.std_error
    # var of exp(-lam) under Gamma(4, 1) is (1/3)^4 - (1/2)^8
    assert np.isclose(result.std_error, np.sqrt(3**-4 - 2**-8) / 1e3, rtol=0.05)


def test_batched_estimate(target):
    result = monte_carlo(
        target.likelihood, target.prior(), 2_000_000, seed=3, batch_size=300_000
    )
    assert result.num_samples == 2_000_000
    assert abs(result.estimate - target.exact()) < 4 * result.std_error
    assert np.isclose(result.std_error, np.sqrt(3**-4 - 2**-8) / np.sqrt(2e6), rtol=0.05)


def test_fixed_seed_reproduces(target):
    a = monte_carlo(target.likelihood, target.prior(), 10_000, seed=42)
    b = monte_carlo(target.likelihood, target.prior(), 10_000, seed=42)
    c = monte_carlo(target.likelihood, target.prior(), 10_000, seed=43)
    assert a == b
    assert a.estimate != c.estimate


def test_accepts_prng_key_and_sampler_callable(target):
    key = jax.random.PRNGKey(7)

    def sampler(key, n):
        return jax.random.gamma(key, 4.0, shape=(n,))

    a = monte_carlo(target.likelihood, sampler, 200_000, seed=key)
    assert abs(a.estimate - target.exact()) < 5 * a.std_error


def test_standard_error_shrinks_like_sqrt_n(target):
    prior = target.prior()

    def spread(n):
        estimates = [
            monte_carlo(target.likelihood, prior, n, seed=s).estimate for s in range(30)
        ]
        return np.std(estimates, ddof=1)

    ratio = spread(1_000) / spread(100_000)
    assert 5.0 < ratio < 20.0

    se_small = monte_carlo(target.likelihood, prior, 1_000, seed=0).std_error
    se_large = monte_carlo(target.likelihood, prior, 100_000, seed=0).std_error
    assert np.isclose(se_small / se_large, 10.0, rtol=0.2)


def test_single_sample_has_no_standard_error(target):
    result = monte_carlo(target.likelihood, target.prior(), 1, seed=0)
    assert np.isnan(result.std_error)


@pytest.mark.parametrize("num_samples", [0, -5, 2.5])
def test_invalid_sample_sizes(target, num_samples):
    with pytest.raises(ValueError):
        monte_carlo(target.likelihood, target.prior(), num_samples)


def test_invalid_batch_size(target):
    with pytest.raises(ValueError):
        monte_carlo(target.likelihood, target.prior(), 100, batch_size=0)
