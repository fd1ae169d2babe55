"""Exponential point-kinetics (EPKE) time integrator.

The precursor equations are integrated analytically over each step against
a quadratic interpolant of the delayed source, which leaves a scalar
equation for the power at the end of the step. With reactivity feedback
that equation is quadratic in the power.
"""

import math

import numpy as np

import epke
import epke.checkvalue as cv
from epke import kernels
from epke.exceptions import (ConfigurationError, DegenerateRootError,
                             InvalidCoefficientError,
                             NumericalPreconditionError)
from epke.output import SolverOutput
from epke.parameters import Parameters

__all__ = ["Solver"]


def _read_only(array):
    view = array.view()
    view.flags.writeable = False
    return view


class Solver:
    """Solver to propagate the power and precursor concentrations in time.

    Parameters
    ----------
    params : epke.Parameters
        Kinetics parameters on the time grid to solve
    precomputed : epke.SolverOutput, optional
        History already known at the leading time points. Only the remaining
        points are computed. Defaults to a critical steady state at the first
        time point.
    acceptance_test : bool, optional
        Whether to check each exponential transformation against a linear
        extrapolation and recompute the step without it when the
        extrapolation is closer. Defaults to
        ``epke.config['transformation_acceptance_test']``.

    Attributes
    ----------
    params : epke.Parameters
        Kinetics parameters
    precomputed : epke.SolverOutput
        History the solver was seeded with
    acceptance_test : bool
        Whether the transformation acceptance test is enabled
    power : numpy.ndarray
        Power amplitude at each time point (read-only)
    rho : numpy.ndarray
        Reactivity including feedback at each time point (read-only)
    concentrations : numpy.ndarray
        Precursor concentrations indexed by (group, time point) (read-only)
    normalized_power : numpy.ndarray
        Power normalization times power for the filled time points
    num_filled : int
        Number of leading time points with a known solution
    is_solved : bool
        Whether every time point has been filled
    num_rejected : int
        Number of steps recomputed because the transformation was rejected
    output : epke.SolverOutput
        History of the filled time points

    """

    def __init__(self, params, precomputed=None, *, acceptance_test=None):
        cv.check_type('parameters', params, Parameters)
        if precomputed is None:
            precomputed = SolverOutput.steady_state(params)
        cv.check_type('precomputed output', precomputed, SolverOutput)

        n_steps = params.num_time_steps
        n_prec = params.num_precursors
        if precomputed.num_precursors != n_prec:
            raise ConfigurationError(
                f'Precomputed output has {precomputed.num_precursors} '
                f'precursor groups but the parameters have {n_prec}')
        if precomputed.num_time_steps > n_steps:
            raise ConfigurationError(
                f'Precomputed output has {precomputed.num_time_steps} time '
                f'points but the parameters only have {n_steps}')

        self._params = params
        self._precomputed = precomputed
        self.acceptance_test = acceptance_test

        # output member variables
        self._power = np.zeros(n_steps)
        self._rho = np.zeros(n_steps)
        self._concentrations = np.zeros((n_prec, n_steps))

        # time-dependent local variables (rewritten every time step)
        self._omega = np.zeros(n_prec)
        self._zeta_hat = np.zeros(n_prec)

        # set the initial power, reactivity and concentration histories
        m = precomputed.num_time_steps
        self._power[:m] = precomputed.power
        self._rho[:m] = precomputed.rho
        self._concentrations[:, :m] = precomputed.concentrations
        self._num_filled = m
        self._num_rejected = 0

    def __repr__(self):
        return (f"<{type(self).__name__}: {self.num_filled}/"
                f"{self.params.num_time_steps} time points filled>")

    @property
    def params(self):
        return self._params

    @property
    def precomputed(self):
        return self._precomputed

    @property
    def acceptance_test(self):
        return self._acceptance_test

    @acceptance_test.setter
    def acceptance_test(self, acceptance_test):
        if acceptance_test is None:
            acceptance_test = epke.config['transformation_acceptance_test']
        cv.check_type('acceptance test', acceptance_test, bool)
        self._acceptance_test = acceptance_test

    @property
    def power(self):
        return _read_only(self._power)

    @property
    def rho(self):
        return _read_only(self._rho)

    @property
    def concentrations(self):
        return _read_only(self._concentrations)

    @property
    def normalized_power(self):
        m = self._num_filled
        return self.params.pow_norm[:m] * self._power[:m]

    @property
    def num_filled(self):
        return self._num_filled

    @property
    def is_solved(self):
        return self._num_filled == self.params.num_time_steps

    @property
    def num_rejected(self):
        return self._num_rejected

    @property
    def output(self):
        m = self._num_filled
        return SolverOutput(self._power[:m], self._rho[:m],
                            self._concentrations[:, :m])

    def _compute_dt(self, n):
        return self.params.time[n] - self.params.time[n - 1]

    def _compute_gamma(self, n):
        return 1.0 if n < 2 else self._compute_dt(n - 1) / self._compute_dt(n)

    def _compute_alpha(self, n):
        """Growth rate of the power over the last accepted step"""
        if n < 2:
            return 0.0
        p_prev, p_prev_prev = self._power[n - 1], self._power[n - 2]
        if p_prev <= 0.0 or p_prev_prev <= 0.0:
            raise NumericalPreconditionError(
                f'Cannot estimate the power growth rate at time index {n} from '
                f'non-positive powers {p_prev_prev} and {p_prev}', n)
        return math.log(p_prev / p_prev_prev) / self._compute_dt(n - 1)

    def _compute_omega(self, n, moments, gamma):
        params = self.params
        dt = self._compute_dt(n)
        _, f1, f2 = moments
        return (params.gen_time[0] / params.gen_time[n] *
                params.delayed_fractions[:, n] *
                (f2 + gamma * dt * f1) / ((1 + gamma) * dt * dt))

    def _compute_zeta_hat(self, n, moments, decay, gamma):
        params = self.params
        dt = self._compute_dt(n)
        f0, f1, f2 = moments

        # the point before the previous one is replaced by the previous one
        # on the first step
        p = n - 2 if n >= 2 else n - 1
        beta = params.delayed_fractions
        gen_time = params.gen_time

        return (decay * self._concentrations[:, n - 1] +
                gen_time[0] * self._power[n - 1] * beta[:, n - 1] /
                gen_time[n - 1] *
                (f0 - (f2 + (gamma - 1) * dt * f1) / (gamma * dt * dt)) +
                gen_time[0] * self._power[p] * beta[:, p] / gen_time[p] *
                (f2 - dt * f1) / ((1 + gamma) * gamma * dt * dt))

    def _compute_a1b1(self, n, gamma):
        """Linear dependence of the reactivity on the power at step n

        Returns
        -------
        a1 : float
            Sensitivity of the reactivity to the power at step n
        b1 : float
            Reactivity contributed by the history

        """
        params = self.params
        lh = params.lambda_h[n]
        dt = self._compute_dt(n)
        f0, f1, f2 = kernels.forward_moments(lh, dt)
        decay = kernels.E(lh, dt)

        p = n - 2 if n >= 2 else n - 1
        h_prev = params.pow_norm[n - 1] * self._power[n - 1]
        h_prev_prev = params.pow_norm[p] * self._power[p]

        gamma_d = params.gamma_d
        a1 = (gamma_d * params.pow_norm[n] *
              (f2 + f1 * gamma * dt) / ((1 + gamma) * dt * dt))
        b1 = (params.rho_imp[n] +
              decay * (self._rho[n - 1] - params.rho_imp[n - 1]) -
              self._power[0] * gamma_d * params.eta * f0 +
              gamma_d * (h_prev * (f0 - (f2 + (gamma - 1) * dt * f1) /
                                   (gamma * dt * dt)) +
                         h_prev_prev * (f2 - f1 * dt) /
                         ((1 + gamma) * gamma * dt * dt)))
        return a1, b1

    def _compute_power(self, n, alpha, gamma):
        """Evaluate the power at step n, refreshing omega and zeta hat"""
        params = self.params
        dt = self._compute_dt(n)
        lam = params.decay_constants[:, n]
        moments = kernels.forward_moments(lam, dt)
        decay = kernels.E(lam, dt)

        self._omega[:] = self._compute_omega(n, moments, gamma)
        self._zeta_hat[:] = self._compute_zeta_hat(n, moments, decay, gamma)

        # accumulate the weighted sums
        tau = np.dot(lam, self._omega)
        s_hat_d = np.dot(lam, self._zeta_hat)
        s_d_prev = np.dot(params.decay_constants[:, n - 1],
                          self._concentrations[:, n - 1])

        a1b1 = self._compute_a1b1(n, gamma)
        a, b, c = self._compute_abc(n, alpha, a1b1, tau, s_hat_d, s_d_prev)
        return self._solve_quadratic(n, a, b, c)

    def _compute_abc(self, n, alpha, a1b1, tau, s_hat_d, s_d_prev):
        params = self.params
        dt = self._compute_dt(n)
        theta = params.theta
        gen_time = params.gen_time
        beta_eff = params.beta_eff
        a1, b1 = a1b1

        a = theta * dt * a1 / gen_time[n]
        b = theta * dt * (((b1 - beta_eff[n]) / gen_time[n] - alpha) +
                          tau / gen_time[0]) - 1
        c = (theta * dt / gen_time[0] * s_hat_d +
             math.exp(alpha * dt) *
             ((1 - theta) * dt *
              (((self._rho[n - 1] - beta_eff[n - 1]) / gen_time[n - 1] -
                alpha) * self._power[n - 1] + s_d_prev / gen_time[0]) +
              self._power[n - 1]))
        return a, b, c

    @staticmethod
    def _solve_quadratic(n, a, b, c):
        if a < 0:
            discriminant = b * b - 4 * a * c
            if discriminant < 0:
                raise DegenerateRootError(
                    f'Power update at time index {n} has no real root '
                    f'(a={a}, b={b}, c={c})', n)
            sqrt_disc = math.sqrt(discriminant)
            if b < 0:
                # same root, without cancellation between -b and sqrt_disc
                power = 2 * c / (sqrt_disc - b)
            else:
                power = (-b - sqrt_disc) / (2 * a)
        elif a == 0:
            if b == 0:
                raise DegenerateRootError(
                    f'Power update at time index {n} is degenerate '
                    f'(a=b=0, c={c})', n)
            power = -c / b
        else:
            raise InvalidCoefficientError(
                f'Power update at time index {n} has a positive leading '
                f'coefficient a={a}; the feedback coefficient must not be '
                'positive', n)

        if not math.isfinite(power):
            raise NumericalPreconditionError(
                f'Power update at time index {n} is not finite', n)
        return power

    def accept_transformation(self, n, alpha, gamma):
        """Whether the exponential transformation at step n is acceptable

        The transformation is accepted when the power predicted by
        exponential growth at rate `alpha` is at least as close to the
        computed power as a linear extrapolation of the last two points.

        Parameters
        ----------
        n : int
            Time index of a computed step
        alpha : float
            Transformation parameter used for the step
        gamma : float
            Ratio of the previous to the current step size

        Returns
        -------
        bool

        """
        power = self._power
        p_prev_prev = power[n - 1] if n < 2 else power[n - 2]

        lhs = abs(power[n] - math.exp(alpha * self._compute_dt(n)) * power[n - 1])
        rhs = abs(power[n] - power[n - 1] - (power[n - 1] - p_prev_prev) / gamma)
        return lhs <= rhs

    def solve(self, output=None):
        """Fill every remaining time point.

        Time points are computed in increasing order starting at the first
        point not covered by the precomputed history. Points that are already
        filled are never recomputed, so calling this method on a solved
        solver returns the existing solution.

        Parameters
        ----------
        output : bool, optional
            Whether to print a progress line for each time step. Defaults to
            ``epke.config['verbose']``.

        Returns
        -------
        epke.SolverOutput
            History over the complete time grid

        """
        if output is None:
            output = epke.config['verbose']
        params = self.params

        for n in range(self._num_filled, params.num_time_steps):
            gamma = self._compute_gamma(n)

            # compute the transformation parameter
            alpha = self._compute_alpha(n)

            # evaluate the power at this time step
            self._power[n] = self._compute_power(n, alpha, gamma)

            # test whether we accept or reject the transformation parameter
            if (self.acceptance_test and alpha != 0.0 and
                    not self.accept_transformation(n, alpha, gamma)):
                alpha = 0.0
                self._power[n] = self._compute_power(n, alpha, gamma)
                self._num_rejected += 1

            # update the precursor concentrations
            self._concentrations[:, n] = self._power[n] * self._omega + \
                self._zeta_hat

            a1, b1 = self._compute_a1b1(n, gamma)
            self._rho[n] = a1 * self._power[n] + b1
            self._num_filled = n + 1

            if output:
                print(f'[epke] t={params.time[n]:1.6f} s, '
                      f'P={params.pow_norm[n] * self._power[n]:1.6e}, '
                      f'rho={self._rho[n] * 1.e5:+1.3f} pcm')

        return self.output

    def _restore(self, output, num_rejected=0):
        """Adopt a solution computed elsewhere for this solver's inputs"""
        m = output.num_time_steps
        if m < self._num_filled or m > self.params.num_time_steps:
            raise ValueError(
                f'Unable to restore {m} time points into a solver with '
                f'{self._num_filled} of {self.params.num_time_steps} filled')
        self._power[:m] = output.power
        self._rho[:m] = output.rho
        self._concentrations[:, :m] = output.concentrations
        self._num_filled = m
        self._num_rejected = num_rejected

    def to_xml_element(self):
        """Return XML representation of the solution

        Returns
        -------
        element : lxml.etree._Element
            ``<epke_output>`` element with time, normalized power, reactivity
            and concentrations of the filled time points

        """
        return self.output.to_xml_element(self.params.time, self.params.pow_norm)

    def export_to_xml(self, path='epke_output.xml'):
        """Write the solution to an XML file

        Parameters
        ----------
        path : PathLike
            Path to file to write. Defaults to 'epke_output.xml'.

        """
        self.output.export_to_xml(path, self.params.time, self.params.pow_norm)

    def export_to_hdf5(self, path='epke_output.h5'):
        """Write the solution to an HDF5 file

        Parameters
        ----------
        path : PathLike
            Path to file to write. Defaults to 'epke_output.h5'.

        """
        self.output.export_to_hdf5(path, self.params.time)
