from . import potential
from . import distribution
from .phasevol import PhaseVolume
from .spherical import SphericalIsotropicModel, SphericalIsotropicModelLocal
from .definitions import InvalidArgument
from .tools import timed

# Generate potential, DF and model objects from inputs

POTENTIAL_TYPES = {
    "Plummer": potential.Plummer,
    "Hernquist": potential.Hernquist,
    "NFW": potential.NFW,
    "Isochrone": potential.Isochrone,
}

DF_TYPES = {
    "Plummer": distribution.PlummerDF,
    "Hernquist": distribution.HernquistDF,
}


# Spherical potential of a given type
def create_potential(type="Plummer", mass=1.0, scaleRadius=1.0):

    if type == "Kepler":
        return potential.Kepler(mass)

    elif type in POTENTIAL_TYPES:
        return POTENTIAL_TYPES[type](mass, scaleRadius)

    else:
        raise InvalidArgument("Unknown potential type=%s." % type)


# Distribution function of a given type
def create_df(type="Plummer", phasevol=None, mass=1.0, scaleRadius=1.0, norm=1.0, slope=-1.5, func=None):

    if type in DF_TYPES:
        if phasevol is None:
            raise InvalidArgument("DF type=%s needs the phase volume of its potential." % type)
        return DF_TYPES[type](phasevol, mass, scaleRadius)

    elif type == "PowerLaw":
        return distribution.PowerLawDF(norm, slope)

    elif type == "User":
        if not callable(func):
            raise InvalidArgument("DF type=User needs a callable func.")
        return distribution.UserDF(func)

    else:
        raise InvalidArgument("Unknown DF type=%s." % type)


# Spherical isotropic model in a given potential
@timed
def spherical_model(pot, df=None, local=False, **kwargs):

    phasevol = PhaseVolume(pot, verbose=kwargs.get("verbose", False))

    # Analytic DF of the self-consistent model
    if df is None:
        for name, cls in POTENTIAL_TYPES.items():
            if name in DF_TYPES and isinstance(pot, cls):
                df = create_df(name, phasevol, mass=pot.mass, scaleRadius=pot.scale_radius)
                break
        else:
            raise InvalidArgument("No default DF for potential %s; provide df." % type(pot).__name__)

    elif not isinstance(df, distribution.DistributionFunction):
        df = distribution.UserDF(df)

    if local:
        return SphericalIsotropicModelLocal(phasevol, df, **kwargs)
    else:
        return SphericalIsotropicModel(phasevol, df, **kwargs)