import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure

from .laplace import LaplaceApproximation
from .newton_cotes import grid_points
from .target import PoissonGamma


def plot_rectangle_rule(
    target: PoissonGamma, lower: float, upper: float, step: float, desc: str = ""
) -> Figure:
    x_fine = np.linspace(lower, upper, 500)
    x_mid = grid_points(lower, upper, step, midpoints=True)
    heights = np.asarray(target.density(x_mid))

    fig, ax = plt.subplots(figsize=(6, 4))
    ax.bar(x_mid, heights, width=step, alpha=0.4, edgecolor="k", label="rectangles")
    ax.plot(x_fine, np.asarray(target.density(x_fine)), "k-", label="integrand")
    ax.set_xlabel(r"$\lambda$")
    ax.set_ylabel("unnormalized density")
    ax.set_title(f"estimate = {np.sum(heights) * step:.5f}, exact = {target.exact():.5f}")
    ax.legend()
    fig.suptitle(desc)
    fig.tight_layout()

    return fig


def plot_monte_carlo(
    target: PoissonGamma, samples: np.ndarray, desc: str = ""
) -> Figure:
    samples = np.asarray(samples)
    values = np.asarray(target.likelihood(samples))

    fig, axs = plt.subplots(1, 2, figsize=(10, 4))
    axs[0].hist(samples, bins=60, density=True, alpha=0.5, label="draws")
    x = np.linspace(0.0, np.quantile(samples, 0.999), 300)
    axs[0].plot(x, np.asarray(target.prior().prob(x)), "k-", label="Gamma prior")
    axs[0].set_xlabel(r"$\lambda$")
    axs[0].legend()

    axs[1].hist(values, bins=60, alpha=0.5)
    axs[1].axvline(values.mean(), color="C3", label=f"mean = {values.mean():.5f}")
    axs[1].axvline(target.exact(), color="k", ls="--", label="exact")
    axs[1].set_xlabel(rf"Poisson({target.count} | $\lambda$)")
    axs[1].legend()

    fig.suptitle(desc)
    fig.tight_layout()

    return fig


def plot_laplace(
    target: PoissonGamma,
    approximations: list[LaplaceApproximation],
    upper: float,
    desc: str = "",
) -> Figure:
    x = np.linspace(1e-6, upper, 500)

    fig, ax = plt.subplots(figsize=(6, 4))
    ax.plot(x, np.asarray(target.density(x)), "k-", lw=2, label="integrand")
    for approx in approximations:
        label = "log-normal" if approx.log_scale else "normal"
        ax.plot(
            x,
            np.asarray(approx.density(x)),
            "--",
            label=f"{label} Laplace ({approx.normalizer:.5f})",
        )
    ax.set_xlabel(r"$\lambda$")
    ax.set_ylabel("unnormalized density")
    ax.set_title(f"exact = {target.exact():.5f}")
    ax.legend()
    fig.suptitle(desc)
    fig.tight_layout()

    return fig


def plot_gauss_hermite_convergence(
    estimates: np.ndarray, exact: float, desc: str = ""
) -> Figure:
    k = np.arange(1, len(estimates) + 1)

    fig, ax = plt.subplots(figsize=(6, 4))
    ax.plot(k, estimates, "o-", ms=3, label="Gauss-Hermite")
    ax.axhline(exact, color="k", ls="--", label="exact")
    ax.set_xlabel("number of quadrature points")
    ax.set_ylabel("estimate")
    ax.legend()
    fig.suptitle(desc)
    fig.tight_layout()

    return fig


def plot_monte_carlo_convergence(
    sample_sizes: np.ndarray,
    means: np.ndarray,
    stds: np.ndarray,
    exact: float,
    desc: str = "",
) -> Figure:
    sample_sizes = np.asarray(sample_sizes)

    fig, axs = plt.subplots(1, 2, figsize=(10, 4))
    axs[0].errorbar(sample_sizes, means, yerr=2 * stds, fmt="o-", capsize=3)
    axs[0].axhline(exact, color="k", ls="--", label="exact")
    axs[0].set_xscale("log")
    axs[0].set_xlabel("number of samples")
    axs[0].set_ylabel("estimate")
    axs[0].legend()

    # reference line anchored at the first sample size
    axs[1].loglog(sample_sizes, stds, "o-", label="observed")
    axs[1].loglog(
        sample_sizes,
        stds[0] * np.sqrt(sample_sizes[0] / sample_sizes),
        "k--",
        label=r"$\propto 1/\sqrt{N}$",
    )
    axs[1].set_xlabel("number of samples")
    axs[1].set_ylabel("sd of estimate")
    axs[1].legend()

    fig.suptitle(desc)
    fig.tight_layout()

    return fig
