r"""Analytic kernels for integrating against exponential decay.

For a decay constant :math:`\lambda \ge 0` and a step :math:`\Delta t > 0`
the kernels are the moments

.. math::

    k_m(\lambda, \Delta t) = \int_0^{\Delta t} u^m e^{-\lambda u} \, du,
    \qquad E(\lambda, \Delta t) = e^{-\lambda \Delta t}

evaluated through the dimensionless moments :math:`g_m(x) = \int_0^1 v^m
e^{-xv} dv` with :math:`x = \lambda \Delta t`, so that :math:`k_m =
\Delta t^{m+1} g_m(x)`. A power series is used for small :math:`x` and the
closed form otherwise, which keeps both limits free of cancellation and
overflow.

"""

import numpy as np
from scipy.special import exprel

__all__ = ["E", "k0", "k1", "k2", "forward_moments"]

# Below this value of lambda*dt the moments are summed as a power series
_SERIES_THRESHOLD = 1.0
_SERIES_TERMS = 25


def _moment(m, x):
    """Dimensionless moment g_m(x) for m = 0, 1, 2

    Parameters
    ----------
    m : int
        Order of the moment
    x : float or numpy.ndarray
        Product of decay constant and time step

    Returns
    -------
    float or numpy.ndarray

    """
    x = np.asarray(x, dtype=float)
    if m == 0:
        return exprel(-x)[()]

    small = np.abs(x) < _SERIES_THRESHOLD

    # g_m(x) = sum_j (-x)^j / (j! (m + j + 1))
    xs = np.where(small, x, 0.0)
    term = np.ones_like(xs)
    series = term / (m + 1)
    for j in range(1, _SERIES_TERMS):
        term = term * (-xs) / j
        series = series + term / (m + j + 1)

    # closed forms in powers of 1/x so that no product overflows
    xl = np.where(small, 1.0, x)
    ex = np.exp(-xl)
    r = 1.0 / xl
    if m == 1:
        closed = r*r - ex*(r + r*r)
    elif m == 2:
        closed = 2.0*r*r*r - ex*(r + 2.0*r*r + 2.0*r*r*r)
    else:
        raise ValueError(f'Moment of order {m} is not supported')

    return np.where(small, series, closed)[()]


def E(lam, dt):
    """Decay factor over one step, exp(-lam*dt)"""
    return np.exp(-np.multiply(lam, dt))[()]


def k0(lam, dt):
    """Zeroth moment of exp(-lam*u) over [0, dt]"""
    return dt * _moment(0, np.multiply(lam, dt))


def k1(lam, dt):
    """First moment of exp(-lam*u) over [0, dt]"""
    return dt**2 * _moment(1, np.multiply(lam, dt))


def k2(lam, dt):
    """Second moment of exp(-lam*u) over [0, dt]"""
    return dt**3 * _moment(2, np.multiply(lam, dt))


def forward_moments(lam, dt):
    r"""Moments of a quantity decaying towards the end of the step.

    Returns :math:`F_m = \int_0^{\Delta t} s^m e^{-\lambda(\Delta t - s)} ds`
    for m = 0, 1, 2, i.e. the weight with which a source proportional to
    :math:`s^m` at time :math:`t_{n-1} + s` contributes at :math:`t_n`. With
    :math:`u = \Delta t - s` these are :math:`F_0 = k_0`, :math:`F_1 = \Delta
    t k_0 - k_1` and :math:`F_2 = \Delta t^2 k_0 - 2 \Delta t k_1 + k_2`.

    Parameters
    ----------
    lam : float or numpy.ndarray
        Decay constant in [1/s]
    dt : float
        Time step in [s]

    Returns
    -------
    tuple of float or numpy.ndarray
        F0, F1 and F2

    """
    x = np.multiply(lam, dt)
    g0 = _moment(0, x)
    g1 = _moment(1, x)
    g2 = _moment(2, x)
    return (dt * g0,
            dt**2 * (g0 - g1),
            dt**3 * (g0 - 2.0*g1 + g2))
