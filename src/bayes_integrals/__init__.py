import jax

# estimates are compared at the 1e-4 level and below, keep everything in float64
jax.config.update("jax_enable_x64", True)

from .gauss_hermite import (  # noqa: E402
    gauss_hermite,
    gauss_hermite_expectation,
    gauss_hermite_from_laplace,
)
from .laplace import (  # noqa: E402
    LaplaceApproximation,
    LaplaceDomainError,
    curvature,
    find_mode,
    laplace,
    laplace_poisson_gamma,
    slope,
)
from .monte_carlo import MonteCarloEstimate, monte_carlo  # noqa: E402
from .newton_cotes import rectangle_rule, simpson_rule, trapezoid_rule  # noqa: E402
from .target import PoissonGamma  # noqa: E402

__version__ = "0.1.0"

__all__ = [
    "LaplaceApproximation",
    "LaplaceDomainError",
    "MonteCarloEstimate",
    "PoissonGamma",
    "curvature",
    "find_mode",
    "gauss_hermite",
    "gauss_hermite_expectation",
    "gauss_hermite_from_laplace",
    "laplace",
    "laplace_poisson_gamma",
    "monte_carlo",
    "rectangle_rule",
    "simpson_rule",
    "slope",
    "trapezoid_rule",
]
