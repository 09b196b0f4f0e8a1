import numpy as np
import pytest
from numpy.testing import assert_allclose

from sphericaldf.definitions import InvalidArgument
from sphericaldf.splines import (
    HermiteSpline,
    LogLogSpline,
    create_interpolation_grid,
    create_nonuniform_grid,
    log_log_scaled,
)


def test_loglog_spline_power_law():
    x = np.geomspace(1e-2, 1e2, 9)
    spl = LogLogSpline(x, 3 * x**-2, -6 * x**-3)
    xx = np.geomspace(1e-4, 1e4, 37)
    val, der, der2 = spl.eval_deriv(xx)
    assert_allclose(val, 3 * xx**-2, rtol=1e-12)
    assert_allclose(der, -6 * xx**-3, rtol=1e-12)
    assert_allclose(der2, 18 * xx**-4, rtol=1e-10)


def test_loglog_spline_without_derivatives():
    x = np.geomspace(1, 100, 6)
    spl = LogLogSpline(x, 2 * x**1.5)
    assert_allclose(spl(np.array([1.5, 7.0, 1000.0])), 2 * np.array([1.5, 7.0, 1000.0]) ** 1.5, rtol=1e-12)
    with pytest.raises(InvalidArgument):
        LogLogSpline(x, x - 2)


def test_loglog_spline_with_zeros():
    # linear interpolation in the scaled variable on segments touching zero values
    x = np.array([1.0, 2.0, 4.0, 8.0])
    y = np.array([0.0, 1.0, 2.0, 3.0])
    spl = LogLogSpline(x, y, np.array([1.0, 0.5, 0.25, 0.125]) / np.log(2))
    assert spl(1.0) == pytest.approx(0.0, abs=1e-14)
    assert_allclose(spl(x), y, atol=1e-14)
    assert spl(np.sqrt(2)) == pytest.approx(0.5, rel=1e-10)


def test_hermite_linear_extrapolation():
    x = np.array([0.0, 1.0, 2.0])
    spl = HermiteSpline(x, [x**2, 2 * x])
    assert_allclose(spl(np.array([0.5, 1.5])), [0.25, 2.25], rtol=1e-12)
    assert spl(3.0) == pytest.approx(4 + 4 * 1.0)
    assert spl(-1.0) == pytest.approx(0.0)
    assert spl(3.0, 1) == pytest.approx(4.0)
    assert spl(3.0, 2) == 0
    assert spl(np.inf) == np.inf


def test_nonuniform_grid():
    grid = create_nonuniform_grid(100, 0.1, 50.0)
    assert len(grid) == 100
    assert grid[0] == 0
    assert grid[1] == pytest.approx(0.1, rel=1e-10)
    assert grid[-1] == 50.0
    steps = np.diff(grid)
    assert np.all(np.diff(steps) > 0)

    uniform = create_nonuniform_grid(11, 1.0, 5.0)
    assert_allclose(uniform, np.linspace(0, 5, 11))

    with pytest.raises(InvalidArgument):
        create_nonuniform_grid(10, 2.0, 1.0)


def test_interpolation_grid():
    # log of f(h) = 1 / (1 + h)^2, linear at both ends
    fnc = log_log_scaled(lambda h: (1 + h) ** -2.0)
    grid = create_interpolation_grid(fnc)
    assert 0.0 in grid
    assert np.all(np.diff(grid) > 0)
    assert grid[0] < -5 and grid[-1] > 5
    assert np.all(np.diff(grid) <= 0.5 + 1e-12)

    with pytest.raises(InvalidArgument):
        create_interpolation_grid(log_log_scaled(lambda h: np.log(h)))


def test_loglog_spline_flat_tail():
    # cumulative function that saturates beyond x=4; no overshoot above the saturated value
    x = np.array([1.0, 2.0, 4.0, 8.0, 16.0, 32.0])
    y = np.array([0.5, 0.8, 1.0, 1.0, 1.0, 1.0])
    dydx = np.array([0.4, 0.2, 0.0, 0.0, 0.0, 0.0])
    spl = LogLogSpline(x, y, dydx)
    xx = np.geomspace(4.0, 32.0, 200)
    assert_allclose(spl(xx), 1.0, rtol=1e-14)
