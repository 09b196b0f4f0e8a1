import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose

from sphericaldf import spherical
from sphericaldf.definitions import (
    DivergentMass,
    InconsistentPotentialDF,
    InvalidArgument,
    InvalidDF,
    NumericalWarning,
    SamplingWarning,
    ZeroOrNegativeMass,
)
from sphericaldf.distribution import UserDF
from sphericaldf.spherical import SphericalIsotropicModel, SphericalIsotropicModelLocal, sample_pos_vel
from sphericaldf.tools import load


def plummer_sigma(r):
    return np.sqrt(1 / (6 * np.sqrt(1 + r**2)))


def test_total_mass(plummer_model):
    assert plummer_model.total_mass == pytest.approx(1.0, rel=1e-4)
    assert plummer_model.cumul_mass() == plummer_model.total_mass
    assert plummer_model.cumul_mass(np.inf) == plummer_model.total_mass


def test_cumulative_mass_monotonic(plummer_model):
    h = np.geomspace(1e-12, 1e12, 300)
    m = plummer_model.cumul_mass(h)
    assert np.all(m >= 0)
    assert np.all(np.diff(m) >= -1e-10)
    assert m[-1] == pytest.approx(plummer_model.total_mass, rel=1e-6)


def test_energies(plummer_model):
    # virial theorem for the Plummer sphere: K = 3 pi / 64, sum of particle energies K + 2W = -3K
    Ekin = plummer_model.cumul_Ekin(np.inf)
    assert Ekin == pytest.approx(3 * np.pi / 64, rel=1e-4)
    assert plummer_model.cumul_Etotal(np.inf) == pytest.approx(-3 * Ekin, rel=1e-4)


def test_interpolated_df(plummer_model, plummer_df):
    h = np.geomspace(1e-6, 1e6, 50)
    f, _ = plummer_model.eval_deriv(h)
    assert_allclose(f, plummer_df(h), rtol=1e-4)
    assert_allclose(plummer_model(h), f, rtol=1e-14)

    h = np.geomspace(1e-1, 1e3, 20)
    _, dfdh = plummer_model.eval_deriv(h)
    assert_allclose(dfdh, plummer_df.eval_deriv(h)[1], rtol=1e-2)


def test_derivative_consistency(plummer_model):
    h = np.geomspace(1e-3, 1e3, 13)
    eps = 1e-5
    _, dfdh = plummer_model.eval_deriv(h)
    fd = (plummer_model(h * (1 + eps)) - plummer_model(h * (1 - eps))) / (2 * eps * h)
    assert_allclose(dfdh, fd, rtol=1e-3)


def test_table_and_logfile(plummer_pv, plummer_df, plummer_model, tmp_path):
    table = plummer_model.table()
    assert len(table) == len(plummer_model.grid_logh)
    assert list(table.columns)[:4] == ["h", "g", "E", "f(E)"]
    assert np.all(np.diff(table["int_Phi0^E f g"]) >= 0)

    logfile = tmp_path / "model.log"
    SphericalIsotropicModel(plummer_pv, plummer_df, gridh=table["h"].values, logfile=str(logfile))
    lines = logfile.read_text().splitlines()
    assert len(lines) == len(table) + 1
    assert len(lines[1].split("\t")) == 8


def test_save_load(plummer_model, tmp_path):
    filename = str(tmp_path / "model.pkl")
    plummer_model.save(filename)
    loaded = load(filename)
    h = np.geomspace(1e-2, 1e2, 5)
    assert_allclose(loaded(h), plummer_model(h), rtol=1e-15)
    assert loaded.total_mass == plummer_model.total_mass


def test_divergent_mass(plummer_pv):
    with pytest.raises(DivergentMass):
        SphericalIsotropicModel(plummer_pv, UserDF(lambda h: h**-0.5))
    with pytest.raises(DivergentMass):
        SphericalIsotropicModel(plummer_pv, UserDF(lambda h: h**-1.5))


def test_invalid_df(plummer_pv):
    with pytest.raises(InvalidDF):
        SphericalIsotropicModel(plummer_pv, UserDF(lambda h: 1 - h), gridh=[0.1, 1.0, 10.0])
    with pytest.raises(InvalidArgument):
        SphericalIsotropicModel(plummer_pv, UserDF(lambda h: h**-2), gridh=[1.0, 0.5, 2.0])


def test_non_vectorized_user_df(plummer_pv, plummer_df, plummer_model):
    df = UserDF(lambda h: float(plummer_df(h)), vectorized=False)
    model = SphericalIsotropicModel(plummer_pv, df, gridh=plummer_model.grid["h"])
    assert model.total_mass == pytest.approx(plummer_model.total_mass, rel=1e-6)


def test_local_limits(plummer_local):
    X = plummer_local.grid_logh_local
    J1 = np.exp(plummer_local.intJ1.ev(X, np.zeros_like(X)))
    J3 = np.exp(plummer_local.intJ3.ev(X, np.zeros_like(X)))
    assert_allclose(J1, 2.0 / 3, rtol=1e-8)
    assert_allclose(J3, 2.0 / 5, rtol=1e-8)

    # at E=Phi only the I0 term contributes
    Phi = -0.5
    dvpar, dv2par, dv2per = plummer_local.eval_local(Phi, Phi)
    mult = 32 * np.pi**2 / 3 * plummer_local.total_mass
    I0 = plummer_local.I0(plummer_local.phasevol(Phi))
    assert dvpar == pytest.approx(0.0, abs=1e-14)
    assert dv2par == pytest.approx(mult * I0, rel=1e-10)
    assert dv2per == pytest.approx(2 * mult * I0, rel=1e-10)


def test_eval_local(plummer_local):
    Phi = np.array([-0.8, -0.5, -0.2])
    E = Phi * 0.5
    dvpar, dv2par, dv2per = plummer_local.eval_local(Phi, E)
    assert dvpar.shape == (3,)
    assert np.all(dvpar < 0)
    assert np.all(dv2par > 0)
    assert np.all(dv2per > 0)

    # unbound particles
    dvpar_u, _, _ = plummer_local.eval_local(-0.5, 0.1)
    assert np.isfinite(dvpar_u) and dvpar_u < 0

    with pytest.raises(InvalidArgument):
        plummer_local.eval_local(-0.5, -0.6)
    with pytest.raises(InvalidArgument):
        plummer_local.eval_local(0.1, 0.2)


def test_density_plummer(plummer_pot, plummer_local):
    r = np.geomspace(0.05, 20, 15)
    Phi = plummer_pot(r)
    assert_allclose(plummer_local.density(Phi), plummer_pot.density(r), rtol=1e-3)
    assert_allclose(plummer_local.vel_disp(Phi), plummer_sigma(r), rtol=1e-3)


def test_density_hernquist(hernquist_pot, hernquist_local):
    r = np.geomspace(0.05, 20, 15)
    assert_allclose(hernquist_local.density(hernquist_pot(r)), hernquist_pot.density(r), rtol=1e-3)


@pytest.mark.parametrize("Phi", [-0.9, -0.5, -0.05])
def test_sample_velocity(plummer_local, rng, Phi):
    N = 100000
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", SamplingWarning)
        v = plummer_local.sample_velocity(Phi, rng, size=N)
    assert v.shape == (N,)
    assert np.all(v >= 0)
    assert np.all(v < np.sqrt(-2 * Phi))
    assert np.mean(v**2) == pytest.approx(3 * plummer_local.vel_disp(Phi) ** 2, rel=5 / np.sqrt(N))

    single = plummer_local.sample_velocity(Phi, rng)
    assert isinstance(single, float)

    with pytest.raises(InvalidArgument):
        plummer_local.sample_velocity(0.0, rng)


class SaturatedGenerator:
    """Random numbers above the unit interval, so that no draw can be bracketed."""

    def random(self, size):
        return np.full(size, 2.0)


def test_sample_velocity_unbracketed(plummer_local):
    with pytest.warns(SamplingWarning):
        v = plummer_local.sample_velocity(-0.5, SaturatedGenerator(), size=5)
    assert_allclose(v, 0.0)


def test_sample_pos_vel(plummer_pot, plummer_local, rng):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", SamplingWarning)
        posvel, masses = sample_pos_vel(plummer_local, plummer_pot, 5000, rng)
    assert posvel.shape == (5000, 6)
    assert masses.sum() == pytest.approx(plummer_local.total_mass)
    r = np.linalg.norm(posvel[:, :3], axis=1)
    assert np.median(r) == pytest.approx(1 / np.sqrt(2 ** (2 / 3) - 1), rel=0.1)
    v2 = np.sum(posvel[:, 3:] ** 2, axis=1)
    assert np.all(v2 <= -2 * plummer_pot(r) * (1 + 1e-6))


def test_zero_mass(plummer_pv):
    with pytest.raises(ZeroOrNegativeMass):
        SphericalIsotropicModel(plummer_pv, UserDF(lambda h: np.zeros_like(h)), gridh=np.geomspace(1e-2, 1e2, 9))


def test_infinite_energy(kepler_pv):
    # E ~ h^-2/3 around a point mass, so f ~ h^-1/2 gives a divergent total energy
    with pytest.raises(InconsistentPotentialDF):
        SphericalIsotropicModel(kepler_pv, UserDF(lambda h: h**-0.5 / (1 + h) ** 2))


def test_truncated_df_cumulative_mass(plummer_pv):
    df = UserDF(lambda h: np.where(h < 10, (1 + h) ** -2.0, 0.0))
    model = SphericalIsotropicModel(plummer_pv, df, gridh=np.geomspace(1e-3, 1e3, 30))
    m = model.cumul_mass(np.geomspace(1e-3, 1e4, 2000))
    assert np.all(m <= model.total_mass)
    assert np.all(np.diff(m) >= -1e-8 * model.total_mass)
    assert m[-1] == pytest.approx(model.total_mass, rel=1e-14)


def test_asymptotic_row_fallback(monkeypatch, plummer_pot, plummer_pv, plummer_df, plummer_local):
    monkeypatch.setattr(spherical, "hyp2f1", lambda a, b, c, z: np.full_like(z, np.nan))
    with pytest.warns(NumericalWarning):
        model = SphericalIsotropicModelLocal(plummer_pv, plummer_df, gridh=plummer_local.grid["h"])
    assert np.all(np.isfinite(model.grid_J1[-1]))
    assert np.all(np.isfinite(model.grid_J3[-1]))
    r = np.geomspace(0.05, 5, 10)
    assert_allclose(model.density(plummer_pot(r)), plummer_pot.density(r), rtol=1e-3)


def test_local_logfile(plummer_pv, plummer_df, plummer_local, tmp_path):
    logfile = tmp_path / "model_local.log"
    model = SphericalIsotropicModelLocal(plummer_pv, plummer_df, gridh=plummer_local.grid["h"], logfile=str(logfile))
    lines = logfile.read_text().splitlines()
    n = len(model.grid_logh)
    assert lines[n + 1] == ""
    assert lines[n + 2].split("\t") == ["X", "Y", "Phi", "E", "J1/J0", "J3/J0"]
    assert len(lines) == n + 3 + len(model.grid_logh_local) * len(model.grid_Y)

    table = model.table_local()
    assert_allclose(table["J1/J0"][table["Y"] == 0], 2.0 / 3)
    assert np.all(table["E"] >= table["Phi"])
