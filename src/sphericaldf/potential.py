"""
potential.py
------------
Purpose:   Spherical gravitational potentials and orbit-scale utilities (turning-point radius, circular orbits).
Status:    Stable Version

This file contains a closed set of analytic spherical potentials, a composite potential and a wrapper around
user-supplied callables, all sharing the same narrow interface: Phi(r), dPhi/dr and (where known) the density.
Units are such that G = 1.
"""

######################################################################
############################## IMPORTS ###############################
######################################################################
import numpy as np
from scipy.optimize import brentq

from .definitions import central_derivative, scalar_or_array, InvalidArgument


######################################################################
######################### CLASS DEFINITIONS ##########################
######################################################################
class SphericalPotential:
    """
    Base class for spherical potentials.

    Subclasses implement `value(r)`; `deriv(r)` and `density(r)` fall back to finite differences
    of the potential and to the Poisson equation, respectively.
    """

    def __call__(self, r):
        return scalar_or_array(self.value(np.asarray(r, dtype=float)))

    def value(self, r):
        raise NotImplementedError

    def deriv(self, r):
        r = np.asarray(r, dtype=float)
        dr = 1e-5 * np.maximum(r, 1e-10)
        return scalar_or_array(central_derivative(self.value, r, dr))

    def density(self, r):
        # rho = (Phi'' + 2 Phi' / r) / (4 pi)
        r = np.asarray(r, dtype=float)
        dr = 1e-4 * r
        d2 = central_derivative(lambda x: np.asarray(self.deriv(x)), r, dr)
        return scalar_or_array((d2 + 2 * np.asarray(self.deriv(r)) / r) / (4 * np.pi))


class Plummer(SphericalPotential):

    def __init__(self, mass=1.0, scale_radius=1.0):
        self.mass = mass
        self.scale_radius = scale_radius

    def value(self, r):
        return -self.mass / np.sqrt(r**2 + self.scale_radius**2)

    def deriv(self, r):
        r = np.asarray(r, dtype=float)
        return scalar_or_array(self.mass * r / (r**2 + self.scale_radius**2) ** 1.5)

    def density(self, r):
        r = np.asarray(r, dtype=float)
        b = self.scale_radius
        return scalar_or_array(3 * self.mass / (4 * np.pi * b**3) * (1 + (r / b) ** 2) ** -2.5)


class Hernquist(SphericalPotential):

    def __init__(self, mass=1.0, scale_radius=1.0):
        self.mass = mass
        self.scale_radius = scale_radius

    def value(self, r):
        return -self.mass / (r + self.scale_radius)

    def deriv(self, r):
        r = np.asarray(r, dtype=float)
        return scalar_or_array(self.mass / (r + self.scale_radius) ** 2)

    def density(self, r):
        r = np.asarray(r, dtype=float)
        a = self.scale_radius
        with np.errstate(divide="ignore"):
            return scalar_or_array(self.mass * a / (2 * np.pi * r * (r + a) ** 3))


class NFW(SphericalPotential):
    """NFW potential normalized so that `mass` = 4 pi rho_s r_s^3."""

    def __init__(self, mass=1.0, scale_radius=1.0):
        self.mass = mass
        self.scale_radius = scale_radius

    def value(self, r):
        x = r / self.scale_radius
        with np.errstate(divide="ignore", invalid="ignore"):
            out = -self.mass * np.log1p(x) / r
        return np.where(x > 1e-8, out, -self.mass / self.scale_radius * (1 - 0.5 * x))

    def deriv(self, r):
        r = np.asarray(r, dtype=float)
        a = self.scale_radius
        with np.errstate(divide="ignore", invalid="ignore"):
            out = self.mass * (np.log1p(r / a) / r - 1 / (r + a)) / r
        return scalar_or_array(np.where(r > 1e-8 * a, out, 0.5 * self.mass / a**2))

    def density(self, r):
        x = np.asarray(r, dtype=float) / self.scale_radius
        with np.errstate(divide="ignore"):
            return scalar_or_array(self.mass / (4 * np.pi * self.scale_radius**3) / (x * (1 + x) ** 2))


class Isochrone(SphericalPotential):

    def __init__(self, mass=1.0, scale_radius=1.0):
        self.mass = mass
        self.scale_radius = scale_radius

    def value(self, r):
        b = self.scale_radius
        return -self.mass / (b + np.sqrt(b**2 + r**2))

    def deriv(self, r):
        r = np.asarray(r, dtype=float)
        b = self.scale_radius
        s = np.sqrt(b**2 + r**2)
        return scalar_or_array(self.mass * r / (s * (b + s) ** 2))

    def density(self, r):
        r = np.asarray(r, dtype=float)
        b = self.scale_radius
        s = np.sqrt(b**2 + r**2)
        return scalar_or_array(self.mass * (3 * (b + s) * s**2 - r**2 * (b + 3 * s)) / (4 * np.pi * (b + s) ** 3 * s**3))


class Kepler(SphericalPotential):
    """Potential of a central point mass."""

    def __init__(self, mass=1.0):
        self.mass = mass

    def value(self, r):
        with np.errstate(divide="ignore"):
            return -self.mass / r

    def deriv(self, r):
        r = np.asarray(r, dtype=float)
        with np.errstate(divide="ignore"):
            return scalar_or_array(self.mass / r**2)

    def density(self, r):
        return scalar_or_array(np.zeros_like(np.asarray(r, dtype=float)))


class Composite(SphericalPotential):
    """Sum of several spherical potentials."""

    def __init__(self, *components):
        if len(components) == 0:
            raise InvalidArgument("Composite potential needs at least one component")
        self.components = list(components)

    def value(self, r):
        return np.sum([np.asarray(c(r)) for c in self.components], axis=0)

    def deriv(self, r):
        return scalar_or_array(np.sum([np.asarray(c.deriv(r)) for c in self.components], axis=0))

    def density(self, r):
        return scalar_or_array(np.sum([np.asarray(c.density(r)) for c in self.components], axis=0))


class PotentialFromFunction(SphericalPotential):
    """
    Wrap a user-supplied callable Phi(r).

    Optional callables for dPhi/dr and for the density may be provided; otherwise they are computed numerically.
    The functions must accept numpy arrays unless `vectorized=False`.
    """

    def __init__(self, func, deriv=None, density=None, vectorized=True):
        self.func = func if vectorized else np.vectorize(func, otypes=[float])
        self.deriv_func = None
        self.density_func = None
        if deriv is not None:
            self.deriv_func = deriv if vectorized else np.vectorize(deriv, otypes=[float])
        if density is not None:
            self.density_func = density if vectorized else np.vectorize(density, otypes=[float])

    def value(self, r):
        return np.asarray(self.func(r), dtype=float)

    def deriv(self, r):
        if self.deriv_func is None:
            return super().deriv(r)
        return scalar_or_array(np.asarray(self.deriv_func(np.asarray(r, dtype=float)), dtype=float))

    def density(self, r):
        if self.density_func is None:
            return super().density(r)
        return scalar_or_array(np.asarray(self.density_func(np.asarray(r, dtype=float)), dtype=float))


######################################################################
######################## FUNCTION DEFINITIONS ########################
######################################################################
# Find the root of an increasing function of log(r), expanding the bracket as needed
def _find_log_radius(func, max_iter=200):

    logr_min, logr_max = -1.0, 1.0

    num_iter = 0
    while func(logr_min) > 0:
        logr_min -= 2
        num_iter += 1
        if num_iter > max_iter:
            return -np.inf

    num_iter = 0
    while func(logr_max) < 0:
        logr_max += 2
        num_iter += 1
        if num_iter > max_iter:
            return np.inf

    return brentq(func, logr_min, logr_max, xtol=1e-14, rtol=1e-13)


def R_max(pot, E):
    r"""
    Radius at which the potential equals the given energy, $\Phi(r_{max}) = E$.

    Parameters
    ----------
    pot : SphericalPotential
        The potential.
    E : float or array-like
        Energy (or potential value).

    Returns
    -------
    float or ndarray
        The turning-point radius; 0 for $E \le \Phi(0)$ and infinity for $E \ge 0$.
    """
    if np.ndim(E) > 0:
        return np.array([R_max(pot, Ei) for Ei in np.asarray(E, dtype=float)])

    if E <= pot(0):
        return 0.0
    if E >= 0:
        return np.inf

    return float(np.exp(_find_log_radius(lambda logr: pot(np.exp(logr)) - E)))


def R_circ(pot, E):
    r"""
    Radius of the circular orbit with energy E, i.e. the root of $\Phi(r) + r \Phi'(r) / 2 = E$.
    """
    if np.ndim(E) > 0:
        return np.array([R_circ(pot, Ei) for Ei in np.asarray(E, dtype=float)])

    if E <= pot(0):
        return 0.0
    if E >= 0:
        return np.inf

    def f(logr):
        r = np.exp(logr)
        return pot(r) + 0.5 * r * pot.deriv(r) - E

    return float(np.exp(_find_log_radius(f)))


def v_circ(pot, r):
    """Circular velocity at radius r."""
    r = np.asarray(r, dtype=float)
    return scalar_or_array(np.sqrt(r * np.asarray(pot.deriv(r))))


def inner_slope(pot, r=1e-5):
    r"""
    Asymptotic behaviour of the potential at small radii, $\Phi(r) \approx \Phi(0) + coef\, r^{slope}$.

    Returns
    -------
    slope, coef : float
        For a potential that diverges at the origin $\Phi(0)$ is replaced by zero, so that
        a central point mass gives slope = -1 and coef = -M.
    """
    Phi0 = pot(0)
    if not np.isfinite(Phi0):
        Phi0 = 0.0
    dif = pot(r) - Phi0
    slope = r * pot.deriv(r) / dif
    coef = dif / r**slope
    return float(slope), float(coef)
