"""
spherical.py
------------
Purpose:   Spherical isotropic models defined by a distribution function f(h) in a given potential.
Status:    Stable Version

This file contains the SphericalIsotropicModel class, which tabulates four energy-weighted integrals of the DF
and provides the interpolated DF, cumulative mass and energy; the SphericalIsotropicModelLocal class, which
adds position-dependent velocity diffusion coefficients, density, velocity dispersion and velocity sampling;
and a routine for drawing an N-body realization of the model.
"""

######################################################################
############################## IMPORTS ###############################
######################################################################
import warnings

import numpy as np
import pandas as pd
import dill
from scipy.interpolate import RectBivariateSpline, interp1d
from scipy.special import gammaln, hyp2f1

from .definitions import (
    ACCURACY_INTERP,
    EPSROOT,
    GLDELTA,
    GLORDER,
    GLORDER1,
    GLORDER2,
    MIN_VALUE_ROUNDOFF,
    NPOINTS_Y,
    DivergentMass,
    InconsistentPotentialDF,
    InvalidArgument,
    InvalidDF,
    NumericalWarning,
    SamplingWarning,
    ZeroOrNegativeMass,
    gauss_legendre,
    scalar_or_array,
)
from .distribution import DistributionFunction
from .potential import R_max
from .splines import LogLogSpline, create_interpolation_grid, create_nonuniform_grid, log_log_scaled


######################################################################
######################## FUNCTION DEFINITIONS ########################
######################################################################
# Grid in log(h) covering the range where the DF varies considerably, or the log of a user-supplied grid
def create_grid_logh(df, gridh=None, accuracy=ACCURACY_INTERP):

    if gridh is None:
        return create_interpolation_grid(log_log_scaled(df), accuracy)

    gridh = np.asarray(gridh, dtype=float)
    if gridh.ndim != 1 or len(gridh) < 2 or np.any(gridh <= 0) or np.any(np.diff(gridh) <= 0):
        raise InvalidArgument("grid in h must be positive and monotonically increasing")
    return np.log(gridh)


# Asymptotic power-law slopes of f(h) at the first and the last node of the grid
def df_slopes(df, gridh, gridF):

    with np.errstate(divide="ignore", invalid="ignore"):
        if getattr(df, "num_derivs", 0) >= 1:
            _, der = df.eval_deriv(gridh[[0, -1]])
            der = np.asarray(der, dtype=float)
            inner = der[0] / gridF[0] * gridh[0]
            outer = der[1] / gridF[-1] * gridh[-1]
        else:
            inner = np.log(gridF[1] / gridF[0]) / np.log(gridh[1] / gridh[0])
            outer = np.log(gridF[-1] / gridF[-2]) / np.log(gridh[-1] / gridh[-2])

    return float(inner), float(outer)


def evaluate_df(df, h):
    f = np.array(df(h), dtype=float)
    if not np.all(f >= 0):
        bad = np.argmax(~(f >= 0))
        raise InvalidDF("f(%g)=%g" % (np.ravel(h)[bad], np.ravel(f)[bad]))
    return f


######################################################################
######################### CLASS DEFINITIONS ##########################
######################################################################
class SphericalIsotropicModel(DistributionFunction):
    r"""
    Spherical isotropic model specified by a DF f(h) and a phase volume h(E).

    Parameters
    ----------
    phasevol : PhaseVolume
        Mapping between energy and phase volume in the given potential.
    df : DistributionFunction or callable
        The distribution function f(h); its derivative is used for asymptotic slopes if `num_derivs >= 1`.
    gridh : array-like, optional
        Grid in h for the interpolating splines; by default constructed from the DF itself.
    accuracy : float, optional
        Tolerance on the second derivative of log f(log h) for the automatic grid (default: ACCURACY_INTERP).
    gl_delta : float, optional
        Segments of the grid longer than this (in log h) use a higher-order quadrature (default: GLDELTA).
    logfile : str, optional
        If given, the construction grid is written to this file as a tab-separated table.
    verbose : bool, optional
        Print a summary after construction.

    Notes
    -----
    The following integrals are tabulated and interpolated with log-log splines in h:

        I0(h)      = \int_E^0 f(E') dE'               = \int_h^\infty f(h') / g(h') dh'
        FG(h)      = \int_{\Phi(0)}^E f(E') g(E') dE'  = \int_0^h f(h') dh'              [mass]
        FH(h)      = \int_{\Phi(0)}^E f(E') h(E') dE'  = \int_0^h f(h') h' / g(h') dh'   [2/3 kinetic energy]
        FE(h)      = -\int_{\Phi(0)}^E f(E') g(E') E' dE'                               [-total energy]

    The integrals over the grid segments use Gauss-Legendre quadrature in log h; the contributions
    below the first and above the last node are computed analytically from the power-law asymptotics
    of f(h) and h(E).
    """

    num_derivs = 1

    def __init__(
        self,
        phasevol,
        df,
        gridh=None,
        accuracy=ACCURACY_INTERP,
        gl_delta=GLDELTA,
        logfile=None,
        verbose=False,
    ):

        self.phasevol = phasevol

        # 1. grid in log(h)
        gridLogH = create_grid_logh(df, gridh, accuracy)
        npoints = len(gridLogH)
        if npoints < 2:
            raise InvalidArgument("SphericalIsotropicModel: grid in h must have at least 2 nodes")

        # 2. values of f, g, E at grid nodes
        gridH = np.exp(gridLogH)
        gridF = evaluate_df(df, gridH)
        gridE, gridG, _ = self.phasevol.E_deriv(gridH)
        gridE = np.asarray(gridE, dtype=float)
        gridG = np.asarray(gridG, dtype=float)

        # 3a. asymptotic behaviour of f(h) ~ h^slope at both ends
        innerFslope, outerFslope = df_slopes(df, gridH, gridF)
        if gridF[0] <= MIN_VALUE_ROUNDOFF:
            gridF[0] = innerFslope = 0.0
        elif not (innerFslope > -1):
            raise DivergentMass(
                "f(h) rises too rapidly as h-->0: f(h=%g)=%g; f(h=%g)=%g => f ~ h^%g"
                % (gridH[0], gridF[0], gridH[1], gridF[1], innerFslope)
            )
        if gridF[-1] <= MIN_VALUE_ROUNDOFF:
            gridF[-1] = outerFslope = 0.0
        elif not (outerFslope < -1):
            raise DivergentMass(
                "f(h) falls off too slowly as h-->infinity: f(h=%g)=%g; f(h=%g)=%g => f ~ h^%g"
                % (gridH[-1], gridF[-1], gridH[-2], gridF[-2], outerFslope)
            )

        # 3b. asymptotic behaviour of E(h): -E ~ h^outerEslope at large h, E-Phi0 ~ h^innerEslope at small h
        Phi0 = self.phasevol.Phi0
        innerE, outerE = gridE[0], gridE[-1]
        if not (Phi0 < innerE < outerE < 0):
            raise InconsistentPotentialDF(
                "weird behaviour of potential: Phi(0)=%g, innerE=%g, outerE=%g" % (Phi0, innerE, outerE)
            )
        if np.isfinite(Phi0):
            innerE -= Phi0
        innerEslope = gridH[0] / gridG[0] / innerE
        outerEslope = gridH[-1] / gridG[-1] / outerE
        outerRatio = outerFslope / outerEslope
        if not (outerEslope < 0):
            raise InconsistentPotentialDF("weird behaviour of E(h) at infinity: E ~ h^%g" % outerEslope)
        if not (innerEslope + innerFslope > -1):
            raise InconsistentPotentialDF(
                "E ~ h^%g, f ~ h^%g at origin: their product grows faster than h^-1, total energy is infinite"
                % (innerEslope, innerFslope)
            )

        # 4a. integrals over interior segments
        gridFint = np.zeros(npoints)
        gridFGint = np.zeros(npoints)
        gridFHint = np.zeros(npoints)
        gridFEint = np.zeros(npoints)

        dlogh = np.diff(gridLogH)
        for order in (GLORDER1, GLORDER2):
            seg = np.where((dlogh < gl_delta) == (order == GLORDER1))[0]
            if len(seg) == 0:
                continue
            glnodes, glweights = gauss_legendre(order)
            logh = gridLogH[seg, None] + dlogh[seg, None] * glnodes
            weight = glweights * dlogh[seg, None]
            h = np.exp(logh)
            E, g, _ = self.phasevol.E_deriv(h)
            integrand = evaluate_df(df, h) * h * weight
            gridFint[seg] += np.sum(integrand / g, axis=1)
            gridFGint[seg + 1] += np.sum(integrand, axis=1)
            gridFHint[seg + 1] += np.sum(integrand / g * h, axis=1)
            gridFEint[seg + 1] -= np.sum(integrand * E, axis=1)

        # 4b. \int f dE from outside in; the segment from h_max to infinity is a power law
        gridFint[-1] = -gridF[-1] * outerE / (1 + outerRatio)
        gridFint = np.cumsum(gridFint[::-1])[::-1]

        # 4c. the remaining integrals from inside out, starting from the power-law segment 0..h_min
        gridFGint[0] = gridF[0] * gridH[0] / (1 + innerFslope)
        gridFHint[0] = gridF[0] * gridH[0] ** 2 / gridG[0] / (1 + innerEslope + innerFslope)
        if innerEslope >= 0:
            gridFEint[0] = gridF[0] * gridH[0] * -Phi0 / (1 + innerFslope)
        else:
            gridFEint[0] = gridF[0] * gridH[0] * -innerE / (1 + innerFslope + innerEslope)

        gridFGint = np.cumsum(gridFGint)
        gridFHint = np.cumsum(gridFHint)
        gridFEint = np.cumsum(gridFEint)

        gridFGint[-1] -= gridF[-1] * gridH[-1] / (1 + outerFslope)
        gridFHint[-1] -= gridF[-1] * gridH[-1] ** 2 / gridG[-1] / (1 + outerEslope + outerFslope)
        gridFEint[-1] += gridF[-1] * gridH[-1] * outerE / (1 + outerEslope + outerFslope)

        self.total_mass = float(gridFGint[-1])
        if not (self.total_mass > 0):
            raise ZeroOrNegativeMass("f(h) is nowhere positive")

        # value of h separating two regimes of computing f(h) from the splines
        self.htransition = gridH[0]
        for i in range(1, npoints - 1):
            if not (gridFGint[i + 1] < self.total_mass * 0.999):
                break
            self.htransition = gridH[i]

        # 5. derivatives of the integrals for quintic splines
        gridFder = -gridF / gridG
        gridFGder = gridF.copy()
        gridFHder = gridF * gridH / gridG
        gridFEder = -gridF * gridE
        valid = (
            (gridFder <= 0)
            & (gridFGder >= 0)
            & (gridFHder >= 0)
            & (gridFEder >= 0)
            & np.isfinite(gridFint + gridFGint + gridFHint + gridFEint)
        )
        if not np.all(valid):
            raise InconsistentPotentialDF("cannot construct valid interpolators")

        # FG, FH, FE tend to a finite limit as h-->inf and are extrapolated as constants
        gridFGder[-1] = gridFHder[-1] = gridFEder[-1] = 0.0

        self.grid_logh = gridLogH
        self.grid = {
            "h": gridH,
            "g": gridG,
            "E": gridE,
            "f": gridF,
            "I0": gridFint,
            "FG": gridFGint,
            "FH": gridFHint,
            "FE": gridFEint,
        }
        self.slopes = {
            "innerF": innerFslope,
            "outerF": outerFslope,
            "innerE": innerEslope,
            "outerE": outerEslope,
        }

        if logfile is not None:
            self.table().to_csv(logfile, sep="\t", index=False, float_format="%.14g")

        self.intf = LogLogSpline(gridH, gridFint, gridFder)
        self.intfg = LogLogSpline(gridH, gridFGint, gridFGder)
        self.intfh = LogLogSpline(gridH, gridFHint, gridFHder)
        self.intfE = LogLogSpline(gridH, gridFEint, gridFEder)

        if verbose:
            print(
                "SphericalIsotropicModel: %d grid nodes in h=[%g, %g], total mass=%g, f ~ h^%g (inner), h^%g (outer)"
                % (npoints, gridH[0], gridH[-1], self.total_mass, innerFslope, outerFslope)
            )

    def value(self, h):
        return self.eval_deriv(h)[0]

    def eval_deriv(self, h):
        """Interpolated DF f(h) and its derivative df/dh."""
        h = np.asarray(h, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            # f(h) = d[ \int_0^h f(h') dh' ] / dh
            _, der_fg, der2_fg = self.intfg.eval_deriv(h)
            # at large h the cumulative mass saturates, so use f(h) = -g(h) d[ \int_h^\infty f/g dh' ] / dh
            _, der, der2 = self.intf.eval_deriv(h)
            _, g, dgdh = self.phasevol.E_deriv(h)
            low = h < self.htransition
            f = np.where(low, der_fg, -np.asarray(der) * g)
            dfdh = np.where(low, der2_fg, -np.asarray(der2) * g - np.asarray(der) * dgdh)
        return scalar_or_array(f), scalar_or_array(dfdh)

    def I0(self, h):
        r"""$I_0(h) = \int_{E(h)}^0 f(E') dE'$"""
        return self.intf(h)

    def cumul_mass(self, h=np.inf):
        """Mass of particles with phase volume below h (total mass by default)."""
        h = np.asarray(h, dtype=float)
        mass = np.clip(self.intfg(h), 0, self.total_mass)
        return scalar_or_array(np.where(np.isinf(h), self.total_mass, mass))

    def cumul_Ekin(self, h):
        """Kinetic energy of particles with phase volume below h."""
        return scalar_or_array(1.5 * np.asarray(self.intfh(h)))

    def cumul_Etotal(self, h):
        """Total energy of particles with phase volume below h."""
        return scalar_or_array(-np.asarray(self.intfE(h)))

    def table(self):
        """The construction grid and the tabulated integrals as a DataFrame."""
        return pd.DataFrame(
            {
                "h": self.grid["h"],
                "g": self.grid["g"],
                "E": self.grid["E"],
                "f(E)": self.grid["f"],
                "int_E^0 f dE": self.grid["I0"],
                "int_Phi0^E f g": self.grid["FG"],
                "int_Phi0^E f h": self.grid["FH"],
                "int_Phi0^E f g E": -self.grid["FE"],
            }
        )

    def save(self, filename):
        with open(filename, "wb") as f:
            dill.dump(self, f, protocol=dill.HIGHEST_PROTOCOL)


class SphericalIsotropicModelLocal(SphericalIsotropicModel):
    r"""
    Spherical isotropic model with position-dependent quantities.

    In addition to the integrals of the base class, tabulates the ratios $J_1/J_0$ and $J_3/J_0$ of

        J_n(\Phi, E) = \int_\Phi^E f(E') [(E' - \Phi) / (E - \Phi)]^{n/2} dE'

    on a 2d grid in X = log h(Phi) and Y = log[h(E) / h(Phi)], which provide the local velocity diffusion
    coefficients, the density and velocity dispersion as functions of Phi, and the velocity distribution
    used for sampling. Accepts the same parameters as SphericalIsotropicModel; if `logfile` is given,
    the 2d grid (see `table_local`) is appended to it after a blank line.
    """

    def __init__(
        self,
        phasevol,
        df,
        gridh=None,
        accuracy=ACCURACY_INTERP,
        gl_delta=GLDELTA,
        logfile=None,
        verbose=False,
    ):

        super().__init__(phasevol, df, gridh, accuracy, gl_delta, logfile, verbose)

        # drop trailing nodes where f(h) is negligible
        gridLogH = self.grid_logh
        gridF = evaluate_df(df, np.exp(gridLogH))
        npoints = len(gridLogH)
        while npoints > 0 and gridF[npoints - 1] <= MIN_VALUE_ROUNDOFF:
            npoints -= 1
        if npoints < 4:
            raise ZeroOrNegativeMass("f(h) is positive on fewer than 4 grid nodes")
        gridLogH = gridLogH[:npoints]

        logHrange = gridLogH[-1] - gridLogH[0]
        gridY = create_nonuniform_grid(NPOINTS_Y, min(0.1, logHrange / NPOINTS_Y), logHrange)

        # asymptotic behaviour of f(h) and g(h) at the outer end of the reduced grid
        outerH = np.exp(gridLogH[-1])
        outerE, outerG, _ = self.phasevol.E_deriv(outerH)
        outerFslope = df_slopes(df, np.exp(gridLogH[-2:]), gridF[npoints - 2 : npoints])[1]
        if not (outerFslope < -1):
            raise DivergentMass("f(h) falls off too slowly as h-->infinity: f ~ h^%g" % outerFslope)
        outerEslope = outerH / outerG / outerE
        outerRatio = outerFslope / outerEslope
        if not (outerRatio > 0):
            raise InconsistentPotentialDF(
                "weird asymptotic behaviour of phase volume: h(E=%g)=%g; dh/dE=%g => outerEslope=%g, outerFslope=%g"
                % (outerE, outerH, outerG, outerEslope, outerFslope)
            )

        # limiting values of J1/J0 and J3/J0 as Phi-->0 and E/Phi-->0
        outerJ1 = 0.5 * np.sqrt(np.pi) * np.exp(gammaln(2 + outerRatio) - gammaln(2.5 + outerRatio))
        outerJ3 = outerJ1 * 1.5 / (2.5 + outerRatio)

        # quadrature points in Y for all segments; the first one uses the substitution Y = Y1 (3-2s) s^2
        glnodes, glweights = gauss_legendre(GLORDER)
        Y1 = gridY[1]
        pointsY = [Y1 * (3 - 2 * glnodes) * glnodes**2]
        weightsY = [glweights * 6 * glnodes * (1 - glnodes) * Y1]
        for j in range(2, NPOINTS_Y):
            dY = gridY[j] - gridY[j - 1]
            pointsY.append(gridY[j - 1] + dY * glnodes)
            weightsY.append(glweights * dY)
        pointsY = np.array(pointsY)
        weightsY = np.array(weightsY)

        gridJ1 = np.empty((npoints, NPOINTS_Y))
        gridJ3 = np.empty((npoints, NPOINTS_Y))
        gridJ1[:, 0] = np.log(2.0 / 3)
        gridJ3[:, 0] = np.log(2.0 / 5)
        num_invalid = 0

        for i in range(npoints):

            X = gridLogH[i]
            logh = X + pointsY
            dE, g = self.phasevol.deltaE(logh, X)
            dE = np.maximum(dE, 0)
            base = evaluate_df(df, np.exp(logh)) * np.exp(logh) / g * weightsY

            # integrals without the factor (E-Phi)^{-n/2}, accumulated along Y
            J0acc = np.cumsum(np.sum(base, axis=1))
            J1acc = np.cumsum(np.sum(base * np.sqrt(dE), axis=1))
            J3acc = np.cumsum(np.sum(base * dE**1.5, axis=1))

            if i == npoints - 1:
                # last row: analytic limit for Phi-->0 and arbitrary E/Phi
                EoverPhi = np.exp(gridY[1:] * outerEslope)
                oneMinusJ0overI0 = EoverPhi ** (1 + outerRatio)
                Fval1 = hyp2f1(-0.5, 1 + outerRatio, 2 + outerRatio, EoverPhi)
                Fval3 = hyp2f1(-1.5, 1 + outerRatio, 2 + outerRatio, EoverPhi)
                I0 = self.I0(outerH)
                sqPhi = np.sqrt(-outerE)
                ok = np.isfinite(Fval1 + Fval3)
                if not np.all(ok):
                    warnings.warn(
                        "SphericalIsotropicModelLocal: can't compute asymptotic value at %d nodes" % np.sum(~ok),
                        NumericalWarning,
                    )
                J0acc = np.where(ok, I0 * (1 - oneMinusJ0overI0), J0acc)
                J1acc = np.where(ok, I0 * (outerJ1 - oneMinusJ0overI0 * Fval1) * sqPhi, J1acc)
                J3acc = np.where(ok, I0 * (outerJ3 - oneMinusJ0overI0 * Fval3) * sqPhi**3, J3acc)

            dv = np.sqrt(np.asarray(self.phasevol.deltaE(X + gridY[1:], X)[0]))
            with np.errstate(divide="ignore", invalid="ignore"):
                J1overJ0 = J1acc / J0acc / dv
                J3overJ0 = J3acc / J0acc / dv**3
            invalid = ~((J1overJ0 > 0) & (J3overJ0 > 0) & np.isfinite(J1overJ0 + J3overJ0))
            num_invalid += np.sum(invalid)
            gridJ1[i, 1:] = np.log(np.where(invalid, 2.0 / 3, J1overJ0))
            gridJ3[i, 1:] = np.log(np.where(invalid, 2.0 / 5, J3overJ0))

        if num_invalid > 0:
            warnings.warn(
                "SphericalIsotropicModelLocal: %d invalid values of J1/J0, J3/J0 replaced by 2/3, 2/5"
                % num_invalid,
                NumericalWarning,
            )

        self.grid_logh_local = gridLogH
        self.grid_Y = gridY
        self.grid_J1 = gridJ1
        self.grid_J3 = gridJ3
        self.intJ1 = RectBivariateSpline(gridLogH, gridY, gridJ1)
        self.intJ3 = RectBivariateSpline(gridLogH, gridY, gridJ3)

        if logfile is not None:
            with open(logfile, "a") as strm:
                strm.write("\n")
                self.table_local().to_csv(strm, sep="\t", index=False, float_format="%.14g")

        if verbose:
            print(
                "SphericalIsotropicModelLocal: %dx%d grid in log h(Phi)=[%g, %g], log[h(E)/h(Phi)]=[0, %g]"
                % (npoints, NPOINTS_Y, gridLogH[0], gridLogH[-1], gridY[-1])
            )

    def table_local(self):
        """The 2d grid of J1/J0 and J3/J0 in X = log h(Phi), Y = log[h(E)/h(Phi)] as a DataFrame."""
        X, Y = np.meshgrid(self.grid_logh_local, self.grid_Y, indexing="ij")
        return pd.DataFrame(
            {
                "X": X.ravel(),
                "Y": Y.ravel(),
                "Phi": np.asarray(self.phasevol.E(np.exp(X))).ravel(),
                "E": np.asarray(self.phasevol.E(np.exp(X + Y))).ravel(),
                "J1/J0": np.exp(self.grid_J1).ravel(),
                "J3/J0": np.exp(self.grid_J3).ravel(),
            }
        )

    # Restrict log h(Phi) and log[h(E)/h(Phi)] to the range covered by the 2d grid
    def _clamp_X(self, loghPhi):
        return np.clip(loghPhi, self.grid_logh_local[0], self.grid_logh_local[-1])

    def _clamp_Y(self, Y):
        return np.clip(Y, 0, self.grid_Y[-1])

    def _check_Phi(self, Phi):
        Phi = np.asarray(Phi, dtype=float)
        if not np.all(Phi < 0):
            raise InvalidArgument("SphericalIsotropicModelLocal: invalid value of Phi")
        return Phi

    def eval_local(self, Phi, E):
        r"""
        Local drift and diffusion coefficients in velocity for a particle at potential Phi with energy E.

        Parameters
        ----------
        Phi : float or array-like
            Potential at the particle's position (must be negative).
        E : float or array-like
            Energy of the particle, E >= Phi.

        Returns
        -------
        dvpar, dv2par, dv2per : float or ndarray
            $\langle \Delta v_\parallel \rangle$, $\langle \Delta v^2_\parallel \rangle$ and
            $\langle \Delta v^2_\perp \rangle$, without the Coulomb logarithm.
        """
        Phi, E = np.broadcast_arrays(np.asarray(Phi, dtype=float), np.asarray(E, dtype=float))
        hPhi = np.asarray(self.phasevol(Phi))
        hE = np.asarray(self.phasevol(E))
        if not np.all((Phi < 0) & (hE >= hPhi)):
            raise InvalidArgument("SphericalIsotropicModelLocal: incompatible values of E and Phi")

        I0 = np.asarray(self.I0(hE))
        J0 = np.maximum(np.asarray(self.I0(hPhi)) - I0, 0)
        with np.errstate(divide="ignore", invalid="ignore"):
            X = self._clamp_X(np.log(hPhi))
            Y = self._clamp_Y(np.log(hE / hPhi))
        J1 = np.exp(self.intJ1.ev(X, Y)) * J0
        J3 = np.exp(self.intJ3.ev(X, Y)) * J0

        # the coefficients were computed for E=0 and need to be rescaled for unbound particles
        with np.errstate(invalid="ignore"):
            corr = np.where(E >= 0, 1 / np.sqrt(np.maximum(1 - E / Phi, 1)), 1.0)
        J1 = J1 * corr
        J3 = J3 * corr**3

        mult = 32 * np.pi**2 / 3 * self.total_mass
        dvpar = -mult * J1 * 3
        dv2par = mult * (I0 + J3)
        dv2per = mult * (I0 * 2 + J1 * 3 - J3)
        return scalar_or_array(dvpar), scalar_or_array(dv2par), scalar_or_array(dv2per)

    def sample_velocity(self, Phi, rng, size=None):
        """
        Draw velocity magnitudes from the DF at the given potential.

        Parameters
        ----------
        Phi : float or array-like
            Potential (must be negative).
        rng : numpy.random.Generator
            Source of random numbers.
        size : int or tuple, optional
            Output shape when drawing several velocities at the same Phi.

        Returns
        -------
        float or ndarray
            Speeds |v|; if the root cannot be bracketed for some draws, 0 is returned for them with a warning.
        """
        Phi = self._check_Phi(Phi)
        if size is not None:
            Phi = np.broadcast_to(Phi, size)

        hPhi = np.asarray(self.phasevol(Phi))
        X = self._clamp_X(np.log(hPhi))
        Ymax = self.grid_Y[-1]
        I0plusJ0 = np.asarray(self.I0(hPhi))
        maxJ1 = np.exp(self.intJ1.ev(X, np.full_like(X, Ymax))) * I0plusJ0
        target = rng.random(Phi.shape) * maxJ1 * np.sqrt(-Phi)

        # cumulative distribution in Y minus the target value; increasing in Y
        def cdf_minus_target(Y):
            hE = np.exp(Y + X)
            E = np.asarray(self.phasevol.E(hE))
            J0 = I0plusJ0 - np.asarray(self.I0(hE))
            J1 = np.exp(self.intJ1.ev(X, Y)) * J0
            return J1 * np.sqrt(np.maximum(E - Phi, 0)) - target

        lo = np.zeros(Phi.shape)
        hi = np.full(Phi.shape, Ymax)
        bracketed = (cdf_minus_target(lo) <= 0) & (cdf_minus_target(hi) >= 0)

        for _ in range(200):
            if np.all(hi - lo <= EPSROOT * np.maximum(0.5 * (hi + lo), EPSROOT)):
                break
            mid = 0.5 * (lo + hi)
            above = cdf_minus_target(mid) > 0
            hi = np.where(above, mid, hi)
            lo = np.where(above, lo, mid)

        E = np.asarray(self.phasevol.E(np.exp(0.5 * (lo + hi) + X)))
        v = np.where(bracketed, np.sqrt(2 * np.maximum(E - Phi, 0)), 0.0)

        num_failed = np.sum(~bracketed)
        if num_failed > 0:
            warnings.warn(
                "SphericalIsotropicModelLocal: could not sample velocity for %d point(s), returning 0" % num_failed,
                SamplingWarning,
            )
        return scalar_or_array(v)

    def density(self, Phi):
        """Density as a function of the potential."""
        Phi = self._check_Phi(Phi)
        hPhi = np.asarray(self.phasevol(Phi))
        X = self._clamp_X(np.log(hPhi))
        J1overJ0 = np.exp(self.intJ1.ev(X, np.full_like(X, self.grid_Y[-1])))
        return scalar_or_array(4 * np.pi * np.sqrt(2) * np.sqrt(-Phi) * J1overJ0 * np.asarray(self.I0(hPhi)))

    def vel_disp(self, Phi):
        """One-dimensional velocity dispersion as a function of the potential."""
        Phi = self._check_Phi(Phi)
        X = self._clamp_X(np.log(np.asarray(self.phasevol(Phi))))
        Ymax = np.full_like(X, self.grid_Y[-1])
        J3overJ1 = np.exp(self.intJ3.ev(X, Ymax) - self.intJ1.ev(X, Ymax))
        return scalar_or_array(np.sqrt(-2.0 / 3 * Phi * J3overJ1))


######################################################################
########################## N-BODY SAMPLING ###########################
######################################################################
def sample_pos_vel(model, pot, n, rng):
    """
    Draw an N-body realization of a spherical isotropic model.

    Parameters
    ----------
    model : SphericalIsotropicModelLocal
        The model, providing density(Phi) and sample_velocity(Phi).
    pot : SphericalPotential
        The potential in which the model was constructed.
    n : int
        Number of particles.
    rng : numpy.random.Generator
        Source of random numbers.

    Returns
    -------
    posvel : ndarray, shape (n, 6)
        Cartesian positions and velocities (x, y, z, vx, vy, vz).
    masses : ndarray, shape (n,)
        Particle masses, each equal to total_mass / n.
    """
    if n < 1:
        raise InvalidArgument("sample_pos_vel: number of particles must be positive")

    # radial grid spanning the energy range of the model
    gridPhi = np.asarray(model.phasevol.E(np.exp(model.grid_logh_local)))
    gridr = np.asarray(R_max(pot, gridPhi), dtype=float)
    gridr = gridr[np.isfinite(gridr) & (gridr > 0)]
    gridr = np.unique(gridr)
    if len(gridr) < 2:
        raise InvalidArgument("sample_pos_vel: cannot construct a radial grid for the model")

    # enclosed mass by Gauss-Legendre quadrature over each radial segment, starting from r=0
    glnodes, glweights = gauss_legendre(GLORDER)
    edges = np.concatenate(([0.0], gridr))
    dr = np.diff(edges)
    rk = edges[:-1, None] + dr[:, None] * glnodes
    dens = np.asarray(model.density(np.asarray(pot(rk))))
    Mcumul = np.cumsum(4 * np.pi * np.sum(glweights * rk**2 * dens, axis=1) * dr)
    cdf = np.concatenate(([0.0], Mcumul / Mcumul[-1]))
    keep = np.concatenate(([True], np.diff(cdf) > 0))
    r = interp1d(cdf[keep], edges[keep])(rng.random(n) * cdf[keep][-1])

    v = np.asarray(model.sample_velocity(np.asarray(pot(r)), rng))

    posdir = isotropic_unit_vectors(n, rng)
    veldir = isotropic_unit_vectors(n, rng)
    posvel = np.hstack([posdir * r[:, None], veldir * v[:, None]])
    masses = np.full(n, model.total_mass / n)
    return posvel, masses


# Random unit vectors uniformly distributed on the sphere
def isotropic_unit_vectors(n, rng):
    costh = rng.uniform(-1, 1, n)
    phi = rng.uniform(0, 2 * np.pi, n)
    sinth = np.sqrt(1 - costh**2)
    return np.column_stack([sinth * np.cos(phi), sinth * np.sin(phi), costh])
