"""
distribution.py
---------------
Purpose:   Isotropic distribution functions expressed in terms of phase volume, f(h).
Status:    Stable Version

This file contains the narrow DF interface used by the spherical models (value and, optionally, the
derivative df/dh), a few analytic distribution functions, and a wrapper for user-supplied callables.
"""

######################################################################
############################## IMPORTS ###############################
######################################################################
import numpy as np

from .definitions import scalar_or_array, InvalidArgument


######################################################################
######################### CLASS DEFINITIONS ##########################
######################################################################
class DistributionFunction:
    """
    Base class for isotropic DFs f(h).

    `num_derivs` announces whether `eval_deriv(h)` returning (f, df/dh) is available.
    """

    num_derivs = 0

    def __call__(self, h):
        return self.value(h)

    def value(self, h):
        raise NotImplementedError

    def eval_deriv(self, h):
        raise NotImplementedError("%s does not provide derivatives" % type(self).__name__)


class PlummerDF(DistributionFunction):
    r"""
    Isotropic DF of the self-consistent Plummer sphere,

        f(E) = 24 \sqrt{2} / (7 \pi^3) b^2 / M^4 (-E)^{7/2}.

    The energy is obtained from the phase volume of the Plummer potential with the same parameters.
    """

    num_derivs = 1

    def __init__(self, phasevol, mass=1.0, scale_radius=1.0):
        if mass <= 0 or scale_radius <= 0:
            raise InvalidArgument("PlummerDF: mass and scale radius must be positive")
        self.phasevol = phasevol
        self.mass = mass
        self.scale_radius = scale_radius
        self.norm = 24 * np.sqrt(2) / (7 * np.pi**3) * scale_radius**2 / mass**4

    def value(self, h):
        E = np.asarray(self.phasevol.E(h))
        return scalar_or_array(self.norm * np.maximum(-E, 0) ** 3.5)

    def eval_deriv(self, h):
        E, g, _ = self.phasevol.E_deriv(h)
        mE = np.maximum(-np.asarray(E), 0)
        with np.errstate(divide="ignore", invalid="ignore"):
            dfdh = np.where(mE > 0, -3.5 * self.norm * mE**2.5 / g, 0.0)
        return scalar_or_array(self.norm * mE**3.5), scalar_or_array(dfdh)


class HernquistDF(DistributionFunction):
    r"""
    Isotropic DF of the self-consistent Hernquist (1990) model,

        f(E) = M / (8 \sqrt{2} \pi^3 a^3 v_g^3) (1-q^2)^{-5/2}
               [3 \arcsin q + q (1-q^2)^{1/2} (1-2q^2) (8q^4 - 8q^2 - 3)],

    with $q = \sqrt{-E a / M}$ and $v_g = \sqrt{M / a}$.
    """

    def __init__(self, phasevol, mass=1.0, scale_radius=1.0):
        if mass <= 0 or scale_radius <= 0:
            raise InvalidArgument("HernquistDF: mass and scale radius must be positive")
        self.phasevol = phasevol
        self.mass = mass
        self.scale_radius = scale_radius

    def value(self, h):
        E = np.asarray(self.phasevol.E(h))
        M, a = self.mass, self.scale_radius
        vg = np.sqrt(M / a)
        q2 = np.clip(-E * a / M, 0, 1)
        q = np.sqrt(q2)
        with np.errstate(divide="ignore", invalid="ignore"):
            bracket = 3 * np.arcsin(q) + q * np.sqrt(1 - q2) * (1 - 2 * q2) * (8 * q2**2 - 8 * q2 - 3)
            # leading terms cancel at small q
            series = q**5 * (128 / 5 - 192 / 7 * q2 + 16 / 3 * q2**2 + 8 / 11 * q2**3 + 3 / 13 * q2**4)
            bracket = np.where(q < 0.1, series, bracket)
            f = M / (8 * np.sqrt(2) * np.pi**3 * a**3 * vg**3) * (1 - q2) ** -2.5 * bracket
        return scalar_or_array(np.where(q2 > 0, f, 0.0))


class PowerLawDF(DistributionFunction):
    """f(h) = norm * h^slope"""

    num_derivs = 1

    def __init__(self, norm=1.0, slope=-1.5):
        self.norm = norm
        self.slope = slope

    def value(self, h):
        return scalar_or_array(self.norm * np.asarray(h, dtype=float) ** self.slope)

    def eval_deriv(self, h):
        h = np.asarray(h, dtype=float)
        f = self.norm * h**self.slope
        return scalar_or_array(f), scalar_or_array(self.slope * f / h)


class UserDF(DistributionFunction):
    """
    Wrap a user-supplied callable f(h), optionally with its derivative df/dh.

    The functions must accept numpy arrays unless `vectorized=False`.
    """

    def __init__(self, func, deriv=None, vectorized=True):
        self.func = func if vectorized else np.vectorize(func, otypes=[float])
        self.deriv = None
        if deriv is not None:
            self.deriv = deriv if vectorized else np.vectorize(deriv, otypes=[float])
            self.num_derivs = 1

    def value(self, h):
        return scalar_or_array(np.asarray(self.func(np.asarray(h, dtype=float)), dtype=float))

    def eval_deriv(self, h):
        if self.deriv is None:
            return super().eval_deriv(h)
        h = np.asarray(h, dtype=float)
        return (
            scalar_or_array(np.asarray(self.func(h), dtype=float)),
            scalar_or_array(np.asarray(self.deriv(h), dtype=float)),
        )
