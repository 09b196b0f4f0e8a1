import numpy as np
import pytest

from sphericaldf import gen
from sphericaldf.definitions import InvalidArgument
from sphericaldf.distribution import HernquistDF, PowerLawDF, UserDF
from sphericaldf.potential import NFW, Kepler, Plummer
from sphericaldf.spherical import SphericalIsotropicModel, SphericalIsotropicModelLocal


def test_create_potential():
    pot = gen.create_potential("Plummer", mass=2.0, scaleRadius=3.0)
    assert isinstance(pot, Plummer)
    assert pot(0) == pytest.approx(-2.0 / 3.0)
    assert isinstance(gen.create_potential("NFW"), NFW)
    assert isinstance(gen.create_potential("Kepler", mass=0.5), Kepler)
    with pytest.raises(InvalidArgument):
        gen.create_potential("Jaffe")


def test_create_df(hernquist_pv):
    assert isinstance(gen.create_df("Hernquist", hernquist_pv), HernquistDF)
    df = gen.create_df("PowerLaw", norm=2.0, slope=-0.5)
    assert isinstance(df, PowerLawDF)
    assert df(4.0) == pytest.approx(1.0)
    assert isinstance(gen.create_df("User", func=lambda h: 1 / (1 + h) ** 3), UserDF)

    with pytest.raises(InvalidArgument):
        gen.create_df("Hernquist")
    with pytest.raises(InvalidArgument):
        gen.create_df("User")
    with pytest.raises(InvalidArgument):
        gen.create_df("King")


def test_spherical_model_default_df(plummer_model):
    model = gen.spherical_model(gen.create_potential("Plummer"))
    assert isinstance(model, SphericalIsotropicModel)
    assert not isinstance(model, SphericalIsotropicModelLocal)
    assert model.total_mass == pytest.approx(plummer_model.total_mass, rel=1e-10)


def test_spherical_model_callable_df():
    pot = gen.create_potential("Hernquist")
    model = gen.spherical_model(pot, df=lambda h: h**-0.5 / (1 + h) ** 2, local=True)
    assert isinstance(model, SphericalIsotropicModelLocal)
    assert model.total_mass > 0
    assert np.isfinite(model.density(pot(1.0)))


def test_spherical_model_no_default_df():
    with pytest.raises(InvalidArgument, match="No default DF"):
        gen.spherical_model(gen.create_potential("NFW"))
