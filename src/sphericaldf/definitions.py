"""
definitions.py
--------------
Purpose:   Tunable constants, error classes and core quadrature utilities for the spherical isotropic DF package.
Status:    Stable Version

This file contains the numerical constants shared by all models (interpolation accuracy, Gauss-Legendre orders,
root-finder tolerance), the exception and warning classes raised by the package, and the integration helpers
used throughout.
"""

######################################################################
############################## IMPORTS ###############################
######################################################################
import warnings
from functools import lru_cache

import numpy as np
from numpy.polynomial.legendre import leggauss
from scipy.integrate import quad, solve_ivp, IntegrationWarning


######################################################################
############################# CONSTANTS ##############################
######################################################################
# required tolerance for the root-finder
EPSROOT = 1e-6

# tolerance on the 2nd derivative of a function of phase volume for grid generation
ACCURACY_INTERP = np.finfo(float).eps ** (1 / 3)

# fixed order of Gauss-Legendre quadrature on each segment of the grid
GLORDER = 8  # default value for all segments, or, alternatively, two values:
GLORDER1 = 6  # for shorter segments
GLORDER2 = 10  # for longer segments

# the choice between short and long segments is determined by the segment length in log(h)
GLDELTA = 0.7  # ln(2)

# lower limit on the value of density or DF to be considered seriously
# (takes into account roundoff errors in converting the values to/from log-scaled ones)
MIN_VALUE_ROUNDOFF = 0.9999999999999e-100

# number of nodes in the grid in log[h(E)/h(Phi)] for position-dependent quantities
NPOINTS_Y = 100


######################################################################
########################## ERROR CLASSES #############################
######################################################################
class ModelError(Exception):
    """Base class for all errors raised while constructing or querying a model."""


class InvalidDF(ModelError, ValueError):
    """The distribution function is negative or not finite where it must be positive."""


class DivergentMass(ModelError):
    """The asymptotic slopes of f(h) imply an infinite total mass."""


class InconsistentPotentialDF(ModelError):
    """The phase volume and the DF have incompatible asymptotic behaviour."""


class ZeroOrNegativeMass(ModelError):
    """The DF integrates to a non-positive total mass."""


class InvalidArgument(ModelError, ValueError):
    """Malformed input passed to a query or to a profile routine."""


class NumericalWarning(UserWarning):
    """A recoverable numerical problem that was handled by a fallback."""


class SamplingWarning(NumericalWarning):
    """Velocity sampling could not bracket the root and returned zero."""


######################################################################
######################## FUNCTION DEFINITIONS ########################
######################################################################
# Return a python float for 0-dimensional results and the array otherwise
def scalar_or_array(x):
    if np.ndim(x) == 0:
        return float(x)
    else:
        return x


@lru_cache(maxsize=None)
def gauss_legendre(order):
    r"""
    Nodes and weights of the Gauss-Legendre rule of a given order on the interval [0, 1].

    Parameters
    ----------
    order : int
        Number of nodes.

    Returns
    -------
    nodes, weights : ndarray
        Arrays of length `order`; the weights sum to 1.
    """
    nodes, weights = leggauss(order)
    nodes = 0.5 * (nodes + 1)
    weights = 0.5 * weights
    nodes.setflags(write=False)
    weights.setflags(write=False)
    return nodes, weights


# Numerical derivative
def central_derivative(f, x, dx):
    r"""
    Compute the numerical derivative of a function $f$ at point $x$ using the central difference formula.

    Parameters
    ----------
    f : callable
        Function to differentiate.
    x : float or ndarray
        Point at which to evaluate the derivative.
    dx : float or ndarray
        Step size for the finite difference.

    Returns
    -------
    float or ndarray
        Approximate value of $f'(x)$.

    Notes
    -----
    Uses the formula:

        f'(x) \approx [f(x + dx) - f(x - dx)] / (2 dx)
    """
    return (f(x + dx) - f(x - dx)) / (2 * dx)


# Use custom integration function throughout
def integrate(func, xmin, xmax, atol=1e-12, rtol=1e-10, args=()):
    """
    Integrate a scalar function with adaptive quadrature.

    If `quad` reports that it did not reach the requested accuracy, the integral is recomputed
    by solving the equivalent ODE with `solve_ivp` (a bit slower).
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", IntegrationWarning)
            output = quad(func, xmin, xmax, args=tuple(args), limit=100, epsabs=atol, epsrel=rtol)[0]

    except IntegrationWarning:

        RHS = lambda t, y: func(t, *args)
        sol = solve_ivp(RHS, [xmin, xmax], [0], atol=atol, rtol=rtol)
        output = sol.y[0][-1]

    return output
