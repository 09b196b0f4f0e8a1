import numpy as np
import pytest

from sphericaldf.potential import Plummer, Hernquist, Kepler
from sphericaldf.phasevol import PhaseVolume
from sphericaldf.distribution import PlummerDF, HernquistDF
from sphericaldf.spherical import SphericalIsotropicModel, SphericalIsotropicModelLocal


@pytest.fixture(scope="session")
def plummer_pot():
    return Plummer(mass=1.0, scale_radius=1.0)


@pytest.fixture(scope="session")
def plummer_pv(plummer_pot):
    return PhaseVolume(plummer_pot)


@pytest.fixture(scope="session")
def plummer_df(plummer_pv):
    return PlummerDF(plummer_pv, mass=1.0, scale_radius=1.0)


@pytest.fixture(scope="session")
def plummer_model(plummer_pv, plummer_df):
    return SphericalIsotropicModel(plummer_pv, plummer_df)


@pytest.fixture(scope="session")
def plummer_local(plummer_pv, plummer_df):
    return SphericalIsotropicModelLocal(plummer_pv, plummer_df)


@pytest.fixture(scope="session")
def hernquist_pot():
    return Hernquist(mass=1.0, scale_radius=1.0)


@pytest.fixture(scope="session")
def hernquist_pv(hernquist_pot):
    return PhaseVolume(hernquist_pot)


@pytest.fixture(scope="session")
def hernquist_local(hernquist_pv):
    return SphericalIsotropicModelLocal(hernquist_pv, HernquistDF(hernquist_pv, mass=1.0, scale_radius=1.0))


@pytest.fixture(scope="session")
def kepler_pv():
    return PhaseVolume(Kepler(mass=1.0))


@pytest.fixture
def rng():
    return np.random.default_rng(12345)
