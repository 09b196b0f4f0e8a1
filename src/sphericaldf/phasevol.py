"""
phasevol.py
-----------
Purpose:   Phase volume h(E) of a spherical potential and its inverse E(h).
Status:    Stable Version

This file contains the PhaseVolume class, a bijective monotonic map between energy and the volume of phase
space enclosed by the energy surface, used as the independent variable of isotropic distribution functions.
"""

######################################################################
############################## IMPORTS ###############################
######################################################################
import numpy as np
from scipy.interpolate import CubicSpline

from .definitions import integrate, scalar_or_array, InvalidArgument
from .splines import HermiteSpline


######################################################################
######################### CLASS DEFINITIONS ##########################
######################################################################
class PhaseVolume:
    r"""
    Phase volume of a spherical potential.

    Parameters
    ----------
    pot : callable
        Spherical potential Phi(r), monotonically increasing and negative, with Phi(r) -> 0 as r -> infinity.
    gridr : array-like, optional
        Radial grid used to tabulate h(E) (default: 481 log-spaced points between 1e-6 and 1e6).
    verbose : bool, optional
        Print a summary of the tabulated range.

    Notes
    -----
    The phase volume and its derivative g(E) = dh/dE (the density of states) are

        h(E) = 16 pi^2 / 3 \int_0^{r_{max}(E)} r^2 [2 (E - \Phi(r))]^{3/2} dr,
        g(E) = 16 pi^2     \int_0^{r_{max}(E)} r^2 [2 (E - \Phi(r))]^{1/2} dr.

    ln h is interpolated as a function of the scaled energy $\xi = \ln(1/\Phi(0) - 1/E)$, which maps
    $(\Phi(0), 0)$ onto the entire real line and makes both asymptotic regimes linear; the inverse
    mapping $\xi(\ln h)$ is interpolated separately. Both are extrapolated linearly.
    """

    def __init__(self, pot, gridr=None, verbose=False):

        self.Phi0 = float(pot(0))
        if not (self.Phi0 < 0):
            raise InvalidArgument("PhaseVolume: Phi(0)=%g must be negative" % self.Phi0)
        self.invPhi0 = 1 / self.Phi0 if np.isfinite(self.Phi0) else 0.0

        if gridr is None:
            gridr = np.geomspace(1e-6, 1e6, 481)

        # keep only nodes where the potential is distinguishable from its neighbours
        gridr_ok, gridE = [], []
        prev = self.Phi0
        for r in np.asarray(gridr, dtype=float):
            Phi = float(pot(r))
            if not (np.isfinite(Phi) and Phi < 0):
                continue
            if np.isfinite(prev) and Phi <= prev + (1e-8 if prev == self.Phi0 else 1e-12) * abs(prev):
                continue
            gridr_ok.append(r)
            gridE.append(Phi)
            prev = Phi

        if len(gridE) < 4:
            raise InvalidArgument("PhaseVolume: potential is not monotonically increasing on the radial grid")

        gridh = np.zeros(len(gridE))
        gridg = np.zeros(len(gridE))
        for i, (rmax, E) in enumerate(zip(gridr_ok, gridE)):
            gridh[i], gridg[i] = self._integrals(pot, rmax, E)

        if not (np.all(gridh > 0) and np.all(gridg > 0) and np.all(np.diff(gridh) > 0)):
            raise InvalidArgument("PhaseVolume: could not tabulate a monotonic h(E)")

        gridE = np.array(gridE)
        gridxi = self._xi(gridE)
        gridL = np.log(gridh)
        dL = gridg / gridh * np.exp(gridxi) * gridE**2
        d2L = CubicSpline(gridxi, dL)(gridxi, 1)

        self.spl_L = HermiteSpline(gridxi, [gridL, dL, d2L])
        self.spl_xi = HermiteSpline(gridL, [gridxi, 1 / dL, -d2L / dL**3])

        if verbose:
            print(
                "PhaseVolume: tabulated %d nodes, E in [%g, %g], h in [%g, %g]"
                % (len(gridE), gridE[0], gridE[-1], gridh[0], gridh[-1])
            )

    @staticmethod
    def _integrals(pot, rmax, E):

        # substitution r = rmax * s, s = 1 - (1-t)^2 removes the sqrt singularity at r=rmax
        def integrand(t, power):
            s = 1 - (1 - t) ** 2
            if s <= 0:
                return 0.0
            dif = max(E - float(pot(rmax * s)), 0.0)
            return s**2 * (2 * dif) ** power * 2 * (1 - t)

        h = 16 * np.pi**2 / 3 * rmax**3 * integrate(integrand, 0, 1, args=[1.5])
        g = 16 * np.pi**2 * rmax**3 * integrate(integrand, 0, 1, args=[0.5])
        return h, g

    def _xi(self, E):
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.log(self.invPhi0 - 1 / E)

    def _E(self, xi):
        return 1 / (self.invPhi0 - np.exp(xi))

    def _eval(self, logh):

        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            xi = self.spl_xi(logh)
            xi_L = self.spl_xi(logh, 1)
            xi_LL = self.spl_xi(logh, 2)
            h = np.exp(logh)
            E = self._E(xi)

            L1 = 1 / xi_L
            L2 = -xi_LL / xi_L**3
            E_xi = np.exp(xi) * E**2
            E_xixi = E_xi * (1 + 2 * np.exp(xi) * E)
            xi_E = 1 / E_xi
            xi_EE = -E_xixi / E_xi**3
            L_E = L1 * xi_E
            L_EE = L2 * xi_E**2 + L1 * xi_EE

            g = h * L_E
            dgdh = (L_E**2 + L_EE) / L_E

        return xi, E, g, dgdh

    def __call__(self, E):
        return self.h(E)

    def h(self, E):
        """Phase volume h(E); 0 for E <= Phi(0) and infinity for E >= 0."""
        return self.h_deriv(E)[0]

    def h_deriv(self, E):
        """Phase volume and its derivative g = dh/dE."""
        E = np.asarray(E, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            xi = self._xi(E)
            h = np.exp(self.spl_L(xi))
            g = h * self.spl_L(xi, 1) / (np.exp(xi) * E**2)
        inside = (E > self.Phi0) & (E < 0)
        h = np.where(inside, h, np.where(E >= 0, np.inf, 0.0))
        g = np.where(inside, g, np.where(E >= 0, np.inf, 0.0))
        return scalar_or_array(h), scalar_or_array(g)

    def E(self, h):
        """Energy corresponding to the phase volume h."""
        return self.E_deriv(h)[0]

    def E_deriv(self, h):
        """Energy E(h), the density of states g = dh/dE, and its derivative dg/dh."""
        h = np.asarray(h, dtype=float)
        with np.errstate(divide="ignore"):
            logh = np.log(h)
        xi, E, g, dgdh = self._eval(logh)
        E = np.where(h > 0, E, self.Phi0)
        return scalar_or_array(E), scalar_or_array(g), scalar_or_array(dgdh)

    def deltaE(self, logh1, logh0):
        r"""
        Difference E(h1) - E(h0) computed without cancellation errors, and g(h1).

        Notes
        -----
        With $E = 1 / (1/\Phi(0) - e^\xi)$ one has $E_1 - E_0 = E_1 E_0 e^{\xi_0} (e^{\xi_1-\xi_0} - 1)$.
        """
        logh1 = np.asarray(logh1, dtype=float)
        logh0 = np.asarray(logh0, dtype=float)
        xi1, E1, g1, _ = self._eval(logh1)
        xi0 = self.spl_xi(logh0)
        E0 = self._E(xi0)
        dE = E1 * E0 * np.exp(xi0) * np.expm1(xi1 - xi0)
        return scalar_or_array(dE), scalar_or_array(g1)
