"""Tests for kernels.py

Compares the analytic moments against numerical quadrature and checks the
limits of small and large decay.
"""

import numpy as np
import pytest
from pytest import approx
from scipy.integrate import quad

from epke import kernels


@pytest.mark.parametrize("lam", [0.0, 1e-6, 0.0124, 0.5, 3.01, 40.0, 900.0])
@pytest.mark.parametrize("dt", [1e-3, 0.1, 1.0])
def test_against_quadrature(lam, dt):
    for m, func in enumerate((kernels.k0, kernels.k1, kernels.k2)):
        ref, _ = quad(lambda u: u**m * np.exp(-lam*u), 0.0, dt,
                      epsabs=0.0, epsrel=1e-12)
        assert func(lam, dt) == approx(ref, rel=1e-9)
    assert kernels.E(lam, dt) == approx(np.exp(-lam*dt))


@pytest.mark.parametrize("lam", [0.0124, 2.0, 50.0])
def test_forward_moments(lam):
    dt = 0.3
    f = kernels.forward_moments(lam, dt)
    for m in range(3):
        ref, _ = quad(lambda s: s**m * np.exp(-lam*(dt - s)), 0.0, dt,
                      epsabs=0.0, epsrel=1e-12)
        assert f[m] == approx(ref, rel=1e-9)


def test_series_closed_form_agree():
    """Both branches agree on either side of the switch"""
    dt = 1.0
    below = np.nextafter(kernels._SERIES_THRESHOLD, 0.0)
    above = kernels._SERIES_THRESHOLD
    for func in (kernels.k1, kernels.k2):
        assert func(below, dt) == approx(func(above, dt), rel=1e-12)


def test_zero_decay_limit():
    dt = 0.25
    assert kernels.k0(0.0, dt) == approx(dt)
    assert kernels.k1(0.0, dt) == approx(dt**2 / 2)
    assert kernels.k2(0.0, dt) == approx(dt**3 / 3)
    assert kernels.E(0.0, dt) == 1.0

    # no cancellation for vanishing decay
    lam = 1e-12
    assert kernels.k2(lam, dt) == approx(dt**3 / 3, rel=1e-10)
    assert kernels.k1(lam, dt) == approx(dt**2 / 2, rel=1e-10)


def test_large_decay():
    """Moments decay smoothly to zero without overflow"""
    dt = 1.0
    lam = np.array([1e3, 1e5, 1e8])
    with np.errstate(over='raise'):
        k0 = kernels.k0(lam, dt)
        k1 = kernels.k1(lam, dt)
        k2 = kernels.k2(lam, dt)
        f = kernels.forward_moments(lam, dt)
    assert np.all(np.isfinite(k2))
    assert k0 == approx(1.0 / lam)
    assert k1 == approx(1.0 / lam**2)
    assert k2 == approx(2.0 / lam**3)
    assert np.all(np.diff(k0) < 0.0)
    assert f[0] == approx(1.0 / lam)


@pytest.mark.parametrize("lam", [1e155, 1e200, 1e300])
def test_extreme_decay(lam):
    """Products of x and exp(-x) never turn into 0*inf"""
    with np.errstate(over='raise', invalid='raise'):
        values = [kernels.k0(lam, 1.0), kernels.k1(lam, 1.0),
                  kernels.k2(lam, 1.0)]
        values.extend(kernels.forward_moments(lam, 1.0))
    assert np.all(np.isfinite(values))
    assert np.all(np.asarray(values) >= 0.0)
    assert kernels.k0(lam, 1.0) == approx(1.0 / lam)
    assert kernels.forward_moments(lam, 1.0)[1] == approx(1.0 / lam)


def test_array_input():
    lam = np.array([0.0, 0.1, 10.0])
    dt = 0.5
    values = kernels.k1(lam, dt)
    assert values.shape == (3,)
    for i, x in enumerate(lam):
        assert values[i] == approx(kernels.k1(x, dt))
