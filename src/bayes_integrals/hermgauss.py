"""hermgauss

Nodes and weights for Gauss-Hermite quadrature. For a function :math:`f(x)`
supported on the real line, Gauss-Hermite quadrature estimates integrals of
the form

.. math:

    I(f) = \\int_{-\\infty}^{+\\infty} e^{-x^2} f(x) dx

by a finite weighted sum

.. math:

   I(f) \\approx \\sum_{i=1}^{N} w_i f(x_i)

Notes:
- Scaling of data:  The locations `x` and `w` are given on an
  unnormalized scale, and require a change of variables to be useful.
  For a random variable :math:`y \\sim N(\\mu, \\sigma^2)`, the appropriate
  change of variables is :math:`y = \\sqrt{2} \\sigma x + \\mu`. More
  details are available at [1].

- Normalizing results:  The weights are unnormalized. Recalling that
  :math:`\\int e^{-x^2} dx = \\sqrt{\\pi}`, dividing the weights by
  :math:`\\sqrt{\\pi}` turns the sum into an expectation under a Gaussian
  measure.

References:
[1] https://en.wikipedia.org/wiki/Gauss%E2%80%93Hermite_quadrature
"""

import numpy as np

GaussHermiteLocsAndValues = tuple[np.ndarray, np.ndarray]


def hermgauss(num_pts: int) -> GaussHermiteLocsAndValues:
    if isinstance(num_pts, bool) or int(num_pts) != num_pts or num_pts < 1:
        raise ValueError(f"num_pts must be a positive integer, got {num_pts!r}")
    locs, vals = np.polynomial.hermite.hermgauss(int(num_pts))
    return locs.astype(np.float64), vals.astype(np.float64)
