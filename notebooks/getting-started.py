# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#       jupytext_version: 1.17.1
#   kernelspec:
#     display_name: .venv
#     language: python
#     name: python3
# ---

# %% [markdown]
# # Approximating intractable integrals

# %% [markdown]
# ## Summary
#
# Bayesian statistics is full of integrals without closed forms: marginal
# likelihoods, posterior normalizing constants, predictive distributions. The
# `bayes_integrals` package collects the classic ways of approximating a
# one-dimensional integral of an unnormalized density and compares them on an
# example where the answer is known.
#
# The example is a Poisson count $y$ whose intensity has a Gamma prior,
# $$
#     p(y) = \int_0^\infty \mathrm{Poisson}(y | \lambda)\,
#         \mathrm{Gamma}(\lambda | a, b)\, d\lambda .
# $$
# Gamma and Poisson are conjugate, so $p(y)$ is a negative binomial mass. With
# $y = 0$, $a = 4$ and $b = 1$ the integral is $0.5^4 = 0.0625$.
#
# The approximations covered are
#
# 1. Newton-Cotes rules, chiefly the rectangle rule.
#
# 2. Plain Monte Carlo, averaging the likelihood over prior draws.
#
# 3. The Laplace approximation, with a normal or a log-normal shape.
#
# 4. Gauss-Hermite quadrature centred on the Laplace approximation.

# %%
# automatic reload
# %load_ext autoreload
# %autoreload 2

# %%
import matplotlib.pyplot as plt
import numpy as np
from bayes_integrals import (
    PoissonGamma,
    gauss_hermite_from_laplace,
    laplace_poisson_gamma,
    monte_carlo,
    rectangle_rule,
)
from bayes_integrals import plotting, studies

# %%
target = PoissonGamma.new(count=0, shape=4.0, rate=1.0)
exact = target.exact()
exact

# %% [markdown]
# ## Rectangles
#
# The integrand is negligible beyond $\lambda = 12$. Splitting $[0, 12]$ into
# cells of width $0.5$ and adding up rectangles already gets within $10^{-4}$
# of the exact value.

# %%
rectangle_rule(target.density, 0.0, 12.0, 0.5)

# %%
fig = plotting.plot_rectangle_rule(target, 0.0, 12.0, 0.5)
plt.show()

# %%
steps = np.array([2.0, 1.0, 0.5, 0.25, 0.1])
np.abs(studies.rectangle_sweep(target.density, 0.0, 12.0, steps) - exact)

# %% [markdown]
# ## Monte Carlo
#
# Reading the integral as $E_{\lambda \sim \mathrm{Gamma}(a, b)}[
# \mathrm{Poisson}(y | \lambda)]$ suggests drawing from the prior and
# averaging the likelihood. The catch is that we need to be able to sample the
# distribution we integrate against, which for a posterior is usually the very
# thing we do not have.

# %%
mc = monte_carlo(target.likelihood, target.prior(), 10_000_000, seed=0, batch_size=1_000_000)
mc

# %%
sizes = [100, 1_000, 10_000, 100_000]
means, stds = studies.monte_carlo_sweep(target.likelihood, target.prior(), sizes)
fig = plotting.plot_monte_carlo_convergence(sizes, means, stds, exact)
plt.show()

# %% [markdown]
# ## Laplace
#
# Match a normal to the curvature of the log density at its mode and rescale
# it to the height of the integrand there. Since $\lambda > 0$, the same idea
# on $\log \lambda$ gives a log-normal that respects the support.

# %%
normal = laplace_poisson_gamma(target)
lognormal = laplace_poisson_gamma(target, log_scale=True)
normal.normalizer, lognormal.normalizer

# %%
fig = plotting.plot_laplace(target, [normal, lognormal], upper=8.0)
plt.show()

# %%
# the approximation also answers interval questions about lambda
lognormal.interval(0.95)

# %% [markdown]
# ## Gauss-Hermite
#
# Gauss-Hermite quadrature is exact when the integrand divided by a Gaussian
# is a low degree polynomial. Placing the Gaussian at the Laplace
# approximation and adding nodes refines the Laplace estimate, which is the
# one point rule. Nodes with $\lambda \le 0$ contribute nothing, and the
# estimates wobble around the exact value rather than converge monotonically.

# %%
gauss_hermite_from_laplace(target.density, normal, 10)

# %%
estimates = studies.gauss_hermite_laplace_sweep(target.density, normal, 50)
fig = plotting.plot_gauss_hermite_convergence(estimates, exact)
plt.show()
