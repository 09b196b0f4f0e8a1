"""
splines.py
----------
Purpose:   One-dimensional interpolation primitives and grid builders used by the spherical models.
Status:    Stable Version

This file contains the Hermite spline with linear extrapolation, the log-log scaled spline that preserves
power-law asymptotics, and routines for constructing interpolation grids in log(h).
"""

######################################################################
############################## IMPORTS ###############################
######################################################################
import numpy as np
from scipy.interpolate import BPoly, CubicSpline
from scipy.optimize import brentq

from .definitions import ACCURACY_INTERP, MIN_VALUE_ROUNDOFF, InvalidArgument, scalar_or_array


######################################################################
######################### CLASS DEFINITIONS ##########################
######################################################################
class HermiteSpline:
    """
    Piecewise polynomial interpolating values and derivatives at grid nodes.

    `derivs` is a list [y, dy/dx] (cubic) or [y, dy/dx, d2y/dx2] (quintic).
    Beyond the end nodes the function is extrapolated linearly using the end-point derivatives.
    """

    def __init__(self, x, derivs):
        self.x = np.asarray(x, dtype=float)
        if len(self.x) < 2 or np.any(np.diff(self.x) <= 0):
            raise InvalidArgument("HermiteSpline: grid must have at least 2 nodes and be monotonically increasing")
        yi = np.stack([np.asarray(d, dtype=float) for d in derivs], axis=-1)
        self.poly = BPoly.from_derivatives(self.x, yi)
        self.y_ends = yi[[0, -1], 0]
        self.d_ends = yi[[0, -1], 1]

    def __call__(self, x, nu=0):
        x = np.asarray(x, dtype=float)
        xc = np.clip(x, self.x[0], self.x[-1])
        out = self.poly(xc, nu)
        dx = x - xc
        if nu == 0:
            with np.errstate(invalid="ignore"):
                ext_lo = np.where((dx == 0) | (self.d_ends[0] == 0), 0.0, self.d_ends[0] * dx)
                ext_hi = np.where((dx == 0) | (self.d_ends[1] == 0), 0.0, self.d_ends[1] * dx)
            out = out + np.where(dx < 0, ext_lo, np.where(dx > 0, ext_hi, 0.0))
        elif nu == 1:
            out = np.where(dx < 0, self.d_ends[0], np.where(dx > 0, self.d_ends[1], out))
        else:
            out = np.where(dx != 0, 0.0, out)
        return out


class LogLogSpline:
    r"""
    Interpolator of a non-negative function y(x), x>0, constructed in log-log scaled coordinates.

    Parameters
    ----------
    x : array-like
        Ascending grid of positive values.
    y : array-like
        Function values at grid nodes.
    dydx : array-like, optional
        Derivatives dy/dx at grid nodes. If provided, the spline is quintic with second derivatives
        estimated from a cubic spline through the first derivatives; otherwise a cubic spline in
        log-log coordinates is used (all values must then be positive).

    Notes
    -----
    On segments where y is non-positive at either end, the interpolation is carried out in
    linearly scaled values (still as a function of log x). Extrapolation beyond the grid is linear
    in the scaled coordinates, i.e. a power law for log-scaled end segments:

        y(x) = y_0 (x/x_0)^{s_0},   s_0 = x_0 y'_0 / y_0
    """

    def __init__(self, x, y, dydx=None):
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        if len(x) < 2 or len(y) != len(x) or np.any(x <= 0) or np.any(np.diff(x) <= 0):
            raise InvalidArgument("LogLogSpline: x must be a positive ascending grid of the same size as y")
        self.xmin, self.xmax = x[0], x[-1]
        self.u = np.log(x)

        if dydx is None:
            if not np.all(y > 0):
                raise InvalidArgument("LogLogSpline: values must be positive when derivatives are not provided")
            L = np.log(y)
            spl = CubicSpline(self.u, L)
            self.logscaled = np.ones(len(x) - 1, dtype=bool)
            self.log_spline = HermiteSpline(self.u, [L, spl(self.u, 1), spl(self.u, 2)])
            self.lin_spline = None

        else:
            dydx = np.asarray(dydx, dtype=float)
            positive = y > 0
            self.logscaled = positive[:-1] & positive[1:]

            if np.any(self.logscaled):
                L = np.log(np.where(positive, y, 1.0))
                dL = np.where(positive, dydx * x / np.where(positive, y, 1.0), 0.0)
                self.log_spline = HermiteSpline(self.u, [L, dL, self._second_deriv(dL)])
            else:
                self.log_spline = None

            if not np.all(self.logscaled):
                dY = dydx * x
                self.lin_spline = HermiteSpline(self.u, [y, dY, self._second_deriv(dY)])
            else:
                self.lin_spline = None

    def _second_deriv(self, d1):
        if len(self.u) < 3:
            d2 = np.full_like(d1, (d1[-1] - d1[0]) / (self.u[-1] - self.u[0]))
        else:
            d2 = CubicSpline(self.u, d1)(self.u, 1)
        # nodes with zero slope (e.g. beyond a truncation of the DF) keep zero curvature
        return np.where(d1 == 0, 0.0, d2)

    def __call__(self, x):
        return self.eval_deriv(x)[0]

    def eval_deriv(self, x):
        """Return the value, the first and the second derivative with respect to x."""
        x = np.asarray(x, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            u = np.log(x)
            seg = np.clip(np.searchsorted(self.u, u, side="right") - 1, 0, len(self.u) - 2)
            use_log = self.logscaled[seg]

            val = np.zeros_like(u)
            der = np.zeros_like(u)
            der2 = np.zeros_like(u)

            if self.log_spline is not None:
                L, L1, L2 = self.log_spline(u), self.log_spline(u, 1), self.log_spline(u, 2)
                v = np.exp(L)
                val = np.where(use_log, v, val)
                der = np.where(use_log, v * L1 / x, der)
                der2 = np.where(use_log, v * (L2 + L1**2 - L1) / x**2, der2)

            if self.lin_spline is not None:
                Y, Y1, Y2 = self.lin_spline(u), self.lin_spline(u, 1), self.lin_spline(u, 2)
                val = np.where(use_log, val, Y)
                der = np.where(use_log, der, Y1 / x)
                der2 = np.where(use_log, der2, (Y2 - Y1) / x**2)

        return scalar_or_array(val), scalar_or_array(der), scalar_or_array(der2)


######################################################################
######################## FUNCTION DEFINITIONS ########################
######################################################################
# Log-scaled representation of a function of a positive argument: x -> log(f(exp(x)))
def log_log_scaled(func):

    def scaled(x):
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.log(func(np.exp(x)))

    return scaled


def create_interpolation_grid(fnc, eps=ACCURACY_INTERP, xmax=100.0, delta=1e-3, min_step=1e-2, max_step=0.5):
    r"""
    Construct a grid in x suitable for interpolating a smooth function y(x), typically y = log f, x = log h.

    Parameters
    ----------
    fnc : callable
        The (log-scaled) function; may return -inf or NaN where the original function is zero or undefined.
    eps : float, optional
        Tolerance on the second derivative (default: ACCURACY_INTERP).
    xmax : float, optional
        Largest absolute value of x to explore (default: 100, i.e. h from 1e-43 to 1e43).
    delta : float, optional
        Step of the finite-difference estimate of the second derivative.
    min_step, max_step : float, optional
        Bounds on the grid spacing.

    Returns
    -------
    ndarray
        Ascending grid of x values.

    Notes
    -----
    Starting from x = 0, the grid is extended in both directions with a step
    $\Delta x = (\epsilon / |y''|)^{1/4}$ (clipped to [min_step, max_step]), and the scan stops once
    the function becomes linear, i.e. $|y''| < \epsilon$ on three consecutive nodes, or once it
    becomes zero or non-finite.
    """
    y0 = fnc(0.0)
    if not np.isfinite(y0):
        raise InvalidArgument("create_interpolation_grid: function is not finite at x=0")

    ymin = np.log(MIN_VALUE_ROUNDOFF)

    def curvature(x):
        return abs(fnc(x + delta) - 2 * fnc(x) + fnc(x - delta)) / delta**2

    grid = [0.0]

    for direction in (1, -1):

        x = 0.0
        num_linear = 0

        while abs(x) < xmax:

            d2 = curvature(x)
            if not np.isfinite(d2):
                break

            if d2 < eps:
                num_linear += 1
                if num_linear >= 3:
                    break
            else:
                num_linear = 0

            step = np.clip((eps / max(d2, eps)) ** 0.25, min_step, max_step)
            x_new = x + direction * step
            y_new = fnc(x_new)
            if not np.isfinite(y_new):
                break

            grid.append(x_new)
            x = x_new

            if y_new < ymin:
                break

    return np.array(sorted(grid))


def create_nonuniform_grid(nnodes, xmin, xmax):
    r"""
    Grid with `nnodes` nodes, x_0 = 0, x_1 = xmin and x_{n-1} = xmax, with exponentially growing spacing.

    Notes
    -----
    The nodes are $x_k = x_{min} (e^{Bk} - 1) / (e^B - 1)$; if $x_{max}/x_{min} \le n-1$, the grid is uniform.
    """
    if nnodes < 3 or not (0 < xmin < xmax):
        raise InvalidArgument("create_nonuniform_grid: need nnodes>=3 and 0<xmin<xmax")

    ratio = xmax / xmin
    k = np.arange(nnodes)

    if ratio <= nnodes - 1:
        return np.linspace(0, xmax, nnodes)

    # log(e^y - 1) without overflow
    logexpm1 = lambda y: y + np.log(-np.expm1(-y))
    f = lambda B: logexpm1(B * (nnodes - 1)) - logexpm1(B) - np.log(ratio)
    B = brentq(f, 1e-12, np.log(ratio) + 1)
    grid = xmin * np.expm1(B * k) / np.expm1(B)
    grid[-1] = xmax
    return grid
