"""
tools.py
--------
Purpose:   Profile computations and output utilities for spherical isotropic models.
Status:    Stable Version

This file contains routines computing the density, velocity dispersion and their projections from a DF,
writing a text table describing a spherical isotropic model, a timing decorator and a loader for saved models.
"""

######################################################################
############################## IMPORTS ###############################
######################################################################
import numpy as np
import pandas as pd
import dill
import time
from functools import wraps

from .definitions import ACCURACY_INTERP, GLORDER, MIN_VALUE_ROUNDOFF, InvalidArgument, gauss_legendre
from .diffusion import dif_coef_losscone
from .potential import R_max, R_circ, v_circ, inner_slope
from .splines import LogLogSpline, create_interpolation_grid, log_log_scaled


######################################################################
######################### FUNCTION WRAPPERS ##########################
######################################################################
ENABLE_TIMING = False  # Set to True to print the run time of decorated functions


def timed(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not ENABLE_TIMING:
            return func(*args, **kwargs)

        start = time.time()
        result = func(*args, **kwargs)
        end = time.time()

        filename = func.__code__.co_filename
        print(f"{func.__name__} (in {filename}) took {end - start:.3f} seconds.")
        return result

    return wrapper


######################################################################
######################## FUNCTION DEFINITIONS ########################
######################################################################
# Load a pickled model object
def load(filename):
    with open(filename, "rb") as f:
        return dill.load(f)


@timed
def compute_density(df, phasevol, gridPhi, veldisp=False):
    r"""
    Compute the density (and optionally the velocity dispersion) generated by a DF at given potential values.

    Parameters
    ----------
    df : callable
        Distribution function f(h).
    phasevol : PhaseVolume
        Phase volume of the potential.
    gridPhi : array-like
        Monotonically increasing negative values of the potential.
    veldisp : bool, optional
        Also return the one-dimensional velocity dispersion (default: False).

    Returns
    -------
    rho : ndarray
        Density at each value of Phi.
    sigma : ndarray
        Velocity dispersion at each value of Phi (only if `veldisp` is True).

    Notes
    -----
    The density is $\rho(\Phi) = 4 \pi \sqrt{2} \int_\Phi^0 f(E) \sqrt{E - \Phi} dE$. The integral is split
    into segments between consecutive grid values (the last one extending to zero), each integrated
    with a fixed-order Gauss-Legendre rule in y, where $E = \Phi_i + y^2 (\Phi_{i+1} - \Phi_i)$.
    """
    gridPhi = np.asarray(gridPhi, dtype=float)
    deltaPhi = np.append(gridPhi[1:], 0.0) - gridPhi
    if not np.all(deltaPhi > 0):
        raise InvalidArgument("compute_density: grid in Phi must be monotonically increasing")

    glnodes, glweights = gauss_legendre(GLORDER)
    Phi = gridPhi[:, None] + glnodes**2 * deltaPhi[:, None]
    weight = glweights * 2 * glnodes * deltaPhi[:, None] * np.asarray(df(phasevol(Phi))) * (4 * np.pi * np.sqrt(2))

    npoints = len(gridPhi)
    rho = np.zeros(npoints)
    sigma2 = np.zeros(npoints)
    for j in range(npoints):
        # contributions of all segments above Phi[j]
        dif = np.maximum(Phi[j:] - gridPhi[j], 0)
        val = np.sqrt(dif) * weight[j:]
        rho[j] = np.sum(val)
        sigma2[j] = np.sum(val * dif)

    if veldisp:
        return rho, np.sqrt(2.0 / 3 * sigma2 / rho)
    return rho


@timed
def compute_projected_density(dens, vel_disp, gridR):
    r"""
    Compute the surface density and line-of-sight velocity dispersion from spherical profiles.

    Parameters
    ----------
    dens : callable
        Density profile rho(r).
    vel_disp : callable
        One-dimensional velocity dispersion profile sigma(r).
    gridR : array-like
        Monotonically increasing positive projected radii.

    Returns
    -------
    Sigma, sigma_los : ndarray
        Surface density and line-of-sight velocity dispersion at each R.

    Notes
    -----
    $\Sigma(R) = 2 \int_R^\infty \rho(r) r / \sqrt{r^2 - R^2} dr$; each segment uses $r = R_i + y^2 \Delta R$
    and the last one, extending to infinity, uses $r = R_{last} / (1 - y^2)$.
    """
    gridR = np.asarray(gridR, dtype=float)
    if gridR.ndim != 1 or len(gridR) == 0:
        raise InvalidArgument("compute_projected_density: grid in R must be a non-empty 1d array")
    npoints = len(gridR)
    deltaR = np.append(gridR[1:] - gridR[:-1], gridR[-1])
    if not (np.all(deltaR > 0) and gridR[0] > 0):
        raise InvalidArgument("compute_projected_density: grid in R must be monotonically increasing")

    glnodes, glweights = gauss_legendre(GLORDER)
    y = glnodes[None, :]
    last = np.arange(npoints)[:, None] == npoints - 1
    r = np.where(last, gridR[:, None] / (1 - y**2), gridR[:, None] + y**2 * deltaR[:, None])
    jac = np.where(last, 2 * y / (1 - y**2) ** 2, 2 * y)
    weight = glweights * jac * deltaR[:, None] * np.asarray(dens(r)) * 2 * r
    velsq = np.asarray(vel_disp(r)) ** 2

    Sigma = np.zeros(npoints)
    sigma2 = np.zeros(npoints)
    for j in range(npoints):
        val = weight[j:] / np.sqrt(r[j:] ** 2 - gridR[j] ** 2)
        Sigma[j] = np.sum(val)
        sigma2[j] = np.sum(val * velsq[j:])

    return Sigma, np.sqrt(sigma2 / Sigma)


@timed
def write_spherical_isotropic_model(filename, model, pot, gridh=None, header=""):
    """
    Write a tab-separated text table with various quantities describing a spherical isotropic model.

    Parameters
    ----------
    filename : str
        Output file name.
    model : SphericalIsotropicModel
        The model.
    pot : SphericalPotential
        The potential in which the model was constructed.
    gridh : array-like, optional
        Grid in phase volume; by default constructed from the model's DF.
    header : str, optional
        Comment line written at the top of the file.

    Returns
    -------
    pandas.DataFrame
        The table written to the file.
    """
    if gridh is None:
        gridH = np.exp(create_interpolation_grid(log_log_scaled(model), ACCURACY_INTERP))
    else:
        gridH = np.asarray(gridh, dtype=float)
        if gridH.ndim != 1 or len(gridH) < 2:
            raise InvalidArgument("write_spherical_isotropic_model: gridh is too small")

    # corresponding grid in E and r, skipping closely spaced potential values dominated by roundoff errors
    Phi0 = pot(0)
    gridE, gridG = model.phasevol.E_deriv(gridH)[:2]
    keep = np.zeros(len(gridH), dtype=bool)
    prev = Phi0
    for i, E in enumerate(gridE):
        if E > prev * (1 - MIN_VALUE_ROUNDOFF):
            keep[i] = True
            prev = E
    gridH, gridE, gridG = gridH[keep], gridE[keep], gridG[keep]
    gridR = R_max(pot, gridE)

    # density and velocity dispersion from the DF
    gridRho, gridVelDisp = compute_density(model, model.phasevol, gridE, veldisp=True)
    bad = ~np.isfinite(gridRho + gridVelDisp) | (gridRho <= MIN_VALUE_ROUNDOFF)
    gridRho[bad] = MIN_VALUE_ROUNDOFF
    gridVelDisp[bad] = MIN_VALUE_ROUNDOFF

    density = LogLogSpline(gridR, gridRho)
    veldisp = LogLogSpline(gridR, gridVelDisp)
    gridSigma, gridVelDispProj = compute_projected_density(density, veldisp, gridR)

    # central point mass, if the potential behaves as -M/r at small radii
    slope, coef = inner_slope(pot)
    Mbh = -coef if abs(slope + 1) < 1e-3 else 0

    # enclosed mass by integrating the density over each radial segment
    glnodes, glweights = gauss_legendre(GLORDER)
    rprev = np.append(0.0, gridR[:-1])
    rk = rprev[:, None] + glnodes * (gridR - rprev)[:, None]
    Mcumul = np.cumsum(4 * np.pi * (gridR - rprev) * np.sum(glweights * rk**2 * np.asarray(density(rk)), axis=1))

    f, dfdh = model.eval_deriv(gridH)
    mult = 16 * np.pi**2 * model.cumul_mass()
    intfg = np.asarray(model.cumul_mass(gridH))
    intfh = np.asarray(model.cumul_Ekin(gridH)) * (2.0 / 3)
    intf = np.asarray(model.I0(gridH))
    DeltaE2 = mult * (intf * gridH + intfh) / gridG * 2
    FluxM = -mult * ((intf * gridH + intfh) * gridG * dfdh + intfg * f)
    FluxE = gridE * FluxM - mult * (-(intf * gridH + intfh) * f + intfg * intf)
    rcirc = R_circ(pot, gridE)
    Lcirc = rcirc * v_circ(pot, rcirc)
    Tradial = gridG / (4 * np.pi**2 * Lcirc**2)

    table = pd.DataFrame(
        {
            "r": gridR,
            "M(r)": Mcumul,
            "E=Phi(r)": gridE,
            "rho(r)": gridRho,
            "f(E)": f,
            "M(E)": intfg,
            "h(E)": gridH,
            "Trad(E)": Tradial,
            "rcirc(E)": rcirc,
            "Lcirc(E)": Lcirc,
            "VelDispersion": gridVelDisp,
            "VelDispProj": gridVelDispProj,
            "SurfaceDensity": gridSigma,
            "DeltaE^2": DeltaE2,
            "MassFlux": FluxM,
            "EnergyFlux": FluxE,
        }
    )
    if Mbh > 0:
        table["D_RR/R(0)"] = dif_coef_losscone(model, pot, gridE)

    with open(filename, "w") as strm:
        if header:
            strm.write("#" + header + "\n")
        strm.write("#" + "\t".join(table.columns) + "\n")
        if Mbh > 0:
            strm.write("#0        Mbh = %.14g\t-INFINITY\n" % Mbh)
        else:
            strm.write("#0      \t0       \t%.14g\n" % Phi0)
        table.to_csv(strm, sep="\t", header=False, index=False, float_format="%.14g")

    return table
