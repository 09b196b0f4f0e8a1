import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy.integrate import quad

from sphericaldf.definitions import InvalidArgument
from sphericaldf.phasevol import PhaseVolume
from sphericaldf.potential import PotentialFromFunction, R_max


def kepler_h(E, M=1.0):
    return 2 * np.sqrt(2) * np.pi**3 / 3 * M**3 * (-E) ** -1.5


def test_kepler_closed_form(kepler_pv):
    E = -np.geomspace(1e-3, 1e3, 25)
    h, g = kepler_pv.h_deriv(E)
    assert_allclose(h, kepler_h(E), rtol=1e-7)
    assert_allclose(g, 1.5 * kepler_h(E) / (-E), rtol=1e-6)
    assert kepler_pv.Phi0 == -np.inf


def test_plummer_direct_integral(plummer_pot, plummer_pv):
    E = -0.5
    rmax = R_max(plummer_pot, E)
    assert_allclose(rmax, np.sqrt(3), rtol=1e-10)
    integral = quad(lambda r: r**2 * (2 * (E - plummer_pot(r))) ** 1.5, 0, rmax)[0]
    assert_allclose(plummer_pv(E), 16 * np.pi**2 / 3 * integral, rtol=1e-6)


def test_round_trip(plummer_pv):
    E = np.linspace(-0.999, -0.001, 50)
    h = plummer_pv.h(E)
    assert np.all(np.diff(h) > 0)
    assert_allclose(plummer_pv.E(h), E, rtol=1e-7)


def test_derivatives_consistent(plummer_pv):
    E = np.linspace(-0.9, -0.05, 20)
    h, g = plummer_pv.h_deriv(E)
    E2, g2, dgdh = plummer_pv.E_deriv(h)
    assert_allclose(g2, g, rtol=1e-6)

    # dg/dh from finite differences of g(h)
    eps = 1e-4
    gp = plummer_pv.E_deriv(h * (1 + eps))[1]
    gm = plummer_pv.E_deriv(h * (1 - eps))[1]
    assert_allclose(dgdh, (gp - gm) / (2 * eps * h), rtol=1e-4)


def test_limits(plummer_pv, kepler_pv):
    assert plummer_pv(-1.5) == 0
    assert plummer_pv(-1.0) == 0
    assert plummer_pv(0.0) == np.inf
    assert plummer_pv(0.3) == np.inf
    assert plummer_pv.E(0.0) == plummer_pv.Phi0
    assert kepler_pv.E(0.0) == -np.inf
    assert kepler_pv.E(np.inf) == 0


def test_delta_e(plummer_pv):
    logh0 = np.log(plummer_pv(np.array([-0.9, -0.5, -0.1])))
    for dlogh in (1e-8, 1e-3, 1.0):
        dE, g1 = plummer_pv.deltaE(logh0 + dlogh, logh0)
        E1 = plummer_pv.E(np.exp(logh0 + dlogh))
        E0 = plummer_pv.E(np.exp(logh0))
        assert np.all(dE > 0)
        assert_allclose(dE, E1 - E0, rtol=1e-5 if dlogh < 1e-6 else 1e-9)
        assert_allclose(g1, plummer_pv.E_deriv(np.exp(logh0 + dlogh))[1], rtol=1e-12)


def test_invalid_potential():
    with pytest.raises(InvalidArgument):
        PhaseVolume(PotentialFromFunction(lambda r: np.ones_like(r)))
