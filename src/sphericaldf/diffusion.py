"""
diffusion.py
------------
Purpose:   Orbit-averaged diffusion coefficients of a spherical isotropic model.
Status:    Stable Version

This file contains routines computing the drift and diffusion coefficients in energy, and the orbit-averaged
loss-cone (angular momentum) diffusion coefficient, for a test star in a SphericalIsotropicModel.
All coefficients are given without the Coulomb logarithm.
"""

######################################################################
############################## IMPORTS ###############################
######################################################################
import numpy as np

from .definitions import GLORDER, gauss_legendre, scalar_or_array
from .potential import R_max


######################################################################
######################## FUNCTION DEFINITIONS ########################
######################################################################
def dif_coef_energy(model, E):
    r"""
    Orbit-averaged drift and diffusion coefficients in energy.

    Parameters
    ----------
    model : SphericalIsotropicModel
        The model providing the integrals of the DF.
    E : float or array-like
        Energy.

    Returns
    -------
    DeltaE, DeltaE2 : float or ndarray
        $\langle \Delta E \rangle$ and $\langle \Delta E^2 \rangle$.

    Notes
    -----
    With $I_F = I_0(h)$, $I_{FG} = \int_0^h f dh'$ (cumulative mass) and $I_{FH} = \int_0^h f h'/g dh'$:

        <\Delta E>   = 16 pi^2 M (I_F - I_{FG} / g),
        <\Delta E^2> = 32 pi^2 M (I_F h + I_{FH}) / g.
    """
    h, g = model.phasevol.h_deriv(E)
    h = np.asarray(h)
    g = np.asarray(g)
    totalMass = model.cumul_mass()
    IF = np.asarray(model.I0(h))
    IFG = np.asarray(model.cumul_mass(h))
    IFH = np.asarray(model.cumul_Ekin(h)) * (2.0 / 3)
    DeltaE = 16 * np.pi**2 * totalMass * (IF - IFG / g)
    DeltaE2 = 32 * np.pi**2 * totalMass * (IF * h + IFH) / g
    return scalar_or_array(DeltaE), scalar_or_array(DeltaE2)


def dif_coef_losscone(model, pot, E):
    r"""
    Orbit-averaged diffusion coefficient in angular momentum near the loss cone, D_RR / R at R-->0.

    Parameters
    ----------
    model : SphericalIsotropicModel
        The model providing the DF and its integrals.
    pot : SphericalPotential
        The potential in which the model was constructed.
    E : float or array-like
        Energy.

    Returns
    -------
    float or ndarray

    Notes
    -----
    The orbit-averaged coefficient

        D = [8 pi^2 / g(E)] \int_0^{r_{max}(E)} dr r^2 / v(E,r) <\Delta v_\perp^2>,
        <\Delta v_\perp^2> = 16 pi^2 M [4/3 I_0(E) + 2 J_{1/2}(E,r) - 2/3 J_{3/2}(E,r)],

    splits into the term with $I_0$, which is integrated over radius analytically using
    $\int_0^{r_{max}} r^2 / v dr = (dg/dE) / (16 pi^2)$, and the remaining double integral,
    computed with a fixed-order Gauss-Legendre rule in r / r_max and (E'-Phi) / (E-Phi).
    """
    if np.ndim(E) > 0:
        return np.array([dif_coef_losscone(model, pot, Ei) for Ei in np.asarray(E, dtype=float)])

    h = model.phasevol(E)
    rmax = R_max(pot, E)
    _, g, dgdh = model.phasevol.E_deriv(h)

    result = 2.0 / 3 * dgdh * model.I0(h)

    glnodes, glweights = gauss_legendre(GLORDER)
    r = glnodes * rmax
    Phi = np.asarray(pot(r))
    w = 8 * np.pi**2 * rmax / g * r**2 * glweights

    # inner integral over E' at all radial nodes at once
    Ep = E * glnodes[None, :] + Phi[:, None] * (1 - glnodes[None, :])
    fEp = np.asarray(model.value(model.phasevol(Ep)))
    vp = np.sqrt(2 * (Ep - Phi[:, None]))
    result += np.sum(glweights[None, :] * w[:, None] * fEp * vp * (1 - glnodes[None, :] / 3))

    return float(result * 16 * np.pi**2 * model.cumul_mass())
