import numpy as np
import pytest
from numpy.testing import assert_allclose

from sphericaldf.definitions import InvalidArgument
from sphericaldf.potential import (
    Composite,
    Hernquist,
    Isochrone,
    Kepler,
    NFW,
    Plummer,
    PotentialFromFunction,
    R_circ,
    R_max,
    inner_slope,
    v_circ,
)


@pytest.mark.parametrize("cls", [Plummer, Hernquist, NFW, Isochrone])
def test_density_from_poisson(cls):
    pot = cls(mass=1.0, scale_radius=2.0)
    numerical = PotentialFromFunction(pot)
    r = np.geomspace(0.1, 10, 7)
    assert_allclose(numerical.deriv(r), pot.deriv(r), rtol=1e-6)
    assert_allclose(numerical.density(r), pot.density(r), rtol=1e-4)


def test_radii(plummer_pot):
    assert R_max(plummer_pot, -0.5) == pytest.approx(np.sqrt(3))
    assert R_max(plummer_pot, -1.5) == 0
    assert R_max(plummer_pot, 0.0) == np.inf
    assert_allclose(R_max(plummer_pot, [-0.5, -0.5]), [np.sqrt(3)] * 2)

    E = np.array([-0.8, -0.3, -0.01])
    rc = R_circ(plummer_pot, E)
    assert_allclose(plummer_pot(rc) + 0.5 * v_circ(plummer_pot, rc) ** 2, E, rtol=1e-10)

    # Keplerian circular speed
    kepler = Kepler(mass=2.0)
    assert v_circ(kepler, 4.0) == pytest.approx(np.sqrt(0.5))


def test_inner_slope():
    slope, coef = inner_slope(Plummer())
    assert slope == pytest.approx(2.0, rel=1e-3)
    assert coef == pytest.approx(0.5, rel=1e-2)

    slope, coef = inner_slope(Composite(Plummer(), Kepler(0.1)))
    assert slope == pytest.approx(-1.0, abs=1e-3)
    assert coef == pytest.approx(-0.1, rel=0.02)


def test_composite():
    pot = Composite(Hernquist(), Kepler(0.5))
    r = np.array([0.5, 1.0, 2.0])
    assert_allclose(pot(r), -1 / (1 + r) - 0.5 / r)
    assert_allclose(pot.density(r), Hernquist().density(r))
    with pytest.raises(InvalidArgument):
        Composite()


def test_non_vectorized_function():
    pot = PotentialFromFunction(lambda r: -1.0 / np.sqrt(1 + r * r), vectorized=False)
    r = np.array([0.5, 1.0])
    assert_allclose(pot(r), Plummer()(r))
