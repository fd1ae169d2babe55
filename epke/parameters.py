"""Kinetics parameters on a time grid.

A :class:`Parameters` instance holds every constant the EPKE integrator needs
at each point of a time grid. Instances are immutable; re-gridding and
slicing produce new instances.
"""

from numbers import Integral, Real

import lxml.etree as ET
import numpy as np

from epke.checkvalue import (check_type, check_length,
                             check_greater_than, check_less_than, PathLike)
from epke.exceptions import ConfigurationError, NonMonotonicTimeGridError
from epke._xml import get_elem_vector, get_scalar, format_vector

__all__ = ["Parameters"]


def _frozen(array):
    array = np.array(array, dtype=float)
    array.flags.writeable = False
    return array


def _per_step(name, value, n):
    """Broadcast a scalar or length-n sequence to a read-only array"""
    array = np.asarray(value, dtype=float)
    if array.ndim == 0 or array.shape == (1,):
        return _frozen(np.full(n, array.reshape(-1)[0]))
    if array.shape != (n,):
        raise ConfigurationError(
            f'"{name}" has shape {array.shape} but the time grid has {n} '
            'points')
    return _frozen(array)


def _per_group(name, value, n):
    """Broadcast per-group values to a read-only (groups, n) array"""
    array = np.asarray(value, dtype=float)
    if array.ndim == 0:
        array = array.reshape(1, 1)
    elif array.ndim == 1:
        array = array[:, np.newaxis]
    if array.ndim != 2 or array.shape[1] not in (1, n):
        raise ConfigurationError(
            f'"{name}" has shape {np.shape(value)}; expected (groups,) or '
            f'(groups, {n})')
    return _frozen(np.broadcast_to(array, (array.shape[0], n)))


class Parameters:
    """Point-kinetics parameters on a time grid

    Per-step quantities may be given as a scalar, which is applied at every
    point of the grid.

    Parameters
    ----------
    time : Iterable of float
        Strictly increasing time grid in [s] with at least two points
    decay_constants : Iterable of float or numpy.ndarray
        Precursor decay constants in [1/s], either one value per group or an
        array of shape (groups, time points)
    delayed_fractions : Iterable of float or numpy.ndarray
        Delayed neutron fractions, same shape rules as `decay_constants`
    gen_time : float or Iterable of float
        Prompt neutron generation time in [s]
    pow_norm : float or Iterable of float, optional
        Power normalization factor applied to the amplitude on output
    rho_imp : float or Iterable of float, optional
        Imposed (external) reactivity
    lambda_h : float or Iterable of float, optional
        Decay constant of the feedback reactivity in [1/s]
    beta_eff : float or Iterable of float, optional
        Total effective delayed fraction. Defaults to the sum over groups of
        `delayed_fractions`.
    theta : float, optional
        Implicit weighting of the power equation; 1 is fully implicit and 0
        fully explicit
    gamma_d : float, optional
        Feedback coefficient multiplying the normalized power. Negative
        values give negative feedback.
    eta : float, optional
        Normalization of the initial power in the feedback source

    Attributes
    ----------
    time : numpy.ndarray
        Time grid in [s]
    decay_constants : numpy.ndarray
        Decay constants indexed by (group, time index)
    delayed_fractions : numpy.ndarray
        Delayed fractions indexed by (group, time index)
    gen_time : numpy.ndarray
        Generation time at each time point
    pow_norm : numpy.ndarray
        Power normalization at each time point
    rho_imp : numpy.ndarray
        Imposed reactivity at each time point
    lambda_h : numpy.ndarray
        Feedback decay constant at each time point
    beta_eff : numpy.ndarray
        Effective delayed fraction at each time point
    theta : float
        Implicit weighting
    gamma_d : float
        Feedback coefficient
    eta : float
        Feedback normalization
    num_time_steps : int
        Number of time points
    num_precursors : int
        Number of delayed neutron precursor groups

    """

    def __init__(self, time, decay_constants, delayed_fractions, gen_time,
                 pow_norm=1.0, rho_imp=0.0, lambda_h=0.0, beta_eff=None,
                 theta=1.0, gamma_d=0.0, eta=1.0):
        time = np.asarray(time, dtype=float)
        if time.ndim != 1:
            raise ConfigurationError('Time grid must be one-dimensional')
        check_length('time', time, 2)
        _check_time_grid('time', time)
        n = time.size

        self._time = _frozen(time)
        self._decay_constants = _per_group('decay_constants', decay_constants, n)
        self._delayed_fractions = _per_group(
            'delayed_fractions', delayed_fractions, n)
        if self._decay_constants.shape != self._delayed_fractions.shape:
            raise ConfigurationError(
                f'{self._decay_constants.shape[0]} decay constant groups given '
                f'but {self._delayed_fractions.shape[0]} delayed fraction groups')
        check_greater_than('decay_constants', self._decay_constants, 0.0, True)

        self._gen_time = _per_step('gen_time', gen_time, n)
        check_greater_than('gen_time', self._gen_time, 0.0)
        self._pow_norm = _per_step('pow_norm', pow_norm, n)
        self._rho_imp = _per_step('rho_imp', rho_imp, n)
        self._lambda_h = _per_step('lambda_h', lambda_h, n)
        check_greater_than('lambda_h', self._lambda_h, 0.0, True)
        if beta_eff is None:
            beta_eff = self._delayed_fractions.sum(axis=0)
        self._beta_eff = _per_step('beta_eff', beta_eff, n)

        check_type('theta', theta, Real)
        check_greater_than('theta', theta, 0.0, True)
        check_less_than('theta', theta, 1.0, True)
        check_type('gamma_d', gamma_d, Real)
        check_type('eta', eta, Real)
        self._theta = float(theta)
        self._gamma_d = float(gamma_d)
        self._eta = float(eta)

    def __repr__(self):
        return (f"<Parameters: {self.num_time_steps} time points on "
                f"[{self.time[0]}, {self.time[-1]}] s, "
                f"{self.num_precursors} precursor groups>")

    def __eq__(self, other):
        if not isinstance(other, type(self)):
            return NotImplemented
        for key, value in self.__dict__.items():
            if not np.array_equal(value, other.__dict__.get(key)):
                return False
        return True

    __hash__ = None

    @property
    def time(self):
        return self._time

    @property
    def decay_constants(self):
        return self._decay_constants

    @property
    def delayed_fractions(self):
        return self._delayed_fractions

    @property
    def gen_time(self):
        return self._gen_time

    @property
    def pow_norm(self):
        return self._pow_norm

    @property
    def rho_imp(self):
        return self._rho_imp

    @property
    def lambda_h(self):
        return self._lambda_h

    @property
    def beta_eff(self):
        return self._beta_eff

    @property
    def theta(self):
        return self._theta

    @property
    def gamma_d(self):
        return self._gamma_d

    @property
    def eta(self):
        return self._eta

    @property
    def num_time_steps(self):
        return self._time.size

    @property
    def num_precursors(self):
        return self._decay_constants.shape[0]

    def get_num_time_steps(self):
        return self.num_time_steps

    def get_num_precursors(self):
        return self.num_precursors

    def _replace(self, **arrays):
        """Build a new instance with the same scalars and the given arrays"""
        return type(self)(theta=self.theta, gamma_d=self.gamma_d,
                          eta=self.eta, **arrays)

    def interpolate(self, new_time):
        """Resample every per-step quantity onto a new time grid.

        Values are linearly interpolated between the points of the current
        grid. Scalar quantities are copied.

        Parameters
        ----------
        new_time : Iterable of float
            Strictly increasing time grid lying within the current one

        Returns
        -------
        epke.Parameters
            Parameters on `new_time`

        """
        new_time = np.asarray(new_time, dtype=float)
        check_length('new_time', new_time, 2)
        _check_time_grid('new_time', new_time)
        t0, t1 = self.time[0], self.time[-1]
        tol = 1e-12 * max(abs(t0), abs(t1), t1 - t0)
        if new_time[0] < t0 - tol or new_time[-1] > t1 + tol:
            raise ValueError(
                f'Unable to interpolate onto [{new_time[0]}, {new_time[-1]}] '
                f'since parameters are only defined on [{t0}, {t1}]')

        def interp(values):
            return np.interp(new_time, self.time, values)

        return self._replace(
            time=new_time,
            decay_constants=np.array([interp(x) for x in self.decay_constants]),
            delayed_fractions=np.array(
                [interp(x) for x in self.delayed_fractions]),
            gen_time=interp(self.gen_time),
            pow_norm=interp(self.pow_norm),
            rho_imp=interp(self.rho_imp),
            lambda_h=interp(self.lambda_h),
            beta_eff=interp(self.beta_eff),
        )

    def slice(self, start, stop):
        """Narrow the parameters to the time indices start..stop-1

        Parameters
        ----------
        start : int
            First time index kept
        stop : int
            One past the last time index kept

        Returns
        -------
        epke.Parameters

        """
        check_type('start', start, Integral)
        check_type('stop', stop, Integral)
        if not (0 <= start and stop <= self.num_time_steps
                and stop - start >= 2):
            raise ValueError(
                f'Unable to slice [{start}, {stop}) from parameters with '
                f'{self.num_time_steps} time points; at least two points must '
                'remain')
        s = np.s_[start:stop]
        return self._replace(
            time=self.time[s],
            decay_constants=self.decay_constants[:, s],
            delayed_fractions=self.delayed_fractions[:, s],
            gen_time=self.gen_time[s],
            pow_norm=self.pow_norm[s],
            rho_imp=self.rho_imp[s],
            lambda_h=self.lambda_h[s],
            beta_eff=self.beta_eff[s],
        )

    @classmethod
    def from_xml_element(cls, elem):
        """Generate parameters from an ``<epke_input>`` element

        Parameters
        ----------
        elem : lxml.etree._Element
            XML element

        Returns
        -------
        epke.Parameters

        """
        time = get_elem_vector(elem, 'time')

        precursors = sorted(elem.findall('precursor'),
                            key=lambda e: int(e.get('k', 0)))
        if not precursors:
            raise ConfigurationError(
                f'<{elem.tag}> must contain at least one <precursor>')
        decay_constants = []
        delayed_fractions = []
        for prec_elem in precursors:
            decay_constants.append(_on_grid(
                'decay_constant', get_elem_vector(prec_elem, 'decay_constant'),
                time.size))
            delayed_fractions.append(_on_grid(
                'delayed_fraction',
                get_elem_vector(prec_elem, 'delayed_fraction'), time.size))

        try:
            return cls(
                time,
                np.array(decay_constants),
                np.array(delayed_fractions),
                get_elem_vector(elem, 'gen_time'),
                pow_norm=_optional_vector(elem, 'pow_norm', 1.0),
                rho_imp=_optional_vector(elem, 'rho_imp', 0.0),
                lambda_h=_optional_vector(elem, 'lambda_h', 0.0),
                beta_eff=get_elem_vector(elem, 'beta_eff', required=False),
                theta=get_scalar(elem, 'theta', 1.0),
                gamma_d=get_scalar(elem, 'gamma_d', 0.0),
                eta=get_scalar(elem, 'eta', 1.0),
            )
        except (ValueError, TypeError) as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f'Invalid <{elem.tag}>: {e}') from e

    @classmethod
    def from_xml(cls, path: PathLike):
        """Read parameters from an XML file

        The root element may be ``<epke_input>`` or a ``<parareal>`` element
        containing one.

        Parameters
        ----------
        path : PathLike
            Path to the XML file

        Returns
        -------
        epke.Parameters

        """
        root = ET.parse(str(path)).getroot()
        if root.tag != 'epke_input':
            elem = root.find('epke_input')
            if elem is None:
                raise ConfigurationError(
                    f'{path} does not contain an <epke_input> element')
            root = elem
        return cls.from_xml_element(root)

    def to_xml_element(self):
        """Return XML representation of the parameters

        Returns
        -------
        element : lxml.etree._Element
            XML element containing the parameters

        """
        element = ET.Element('epke_input')
        element.set('theta', repr(self.theta))
        element.set('gamma_d', repr(self.gamma_d))
        element.set('eta', repr(self.eta))
        for name in ('time', 'gen_time', 'pow_norm', 'rho_imp', 'lambda_h',
                     'beta_eff'):
            sub = ET.SubElement(element, name)
            sub.text = format_vector(getattr(self, name), 17)
        for k in range(self.num_precursors):
            prec_elem = ET.SubElement(element, 'precursor')
            prec_elem.set('k', str(k))
            ET.SubElement(prec_elem, 'decay_constant').text = format_vector(
                self.decay_constants[k], 17)
            ET.SubElement(prec_elem, 'delayed_fraction').text = format_vector(
                self.delayed_fractions[k], 17)
        return element


def _on_grid(name, values, n):
    if values.size == 1:
        return np.full(n, values[0])
    if values.size != n:
        raise ConfigurationError(
            f'<{name}> has {values.size} values but the time grid has {n} '
            'points')
    return values


def _optional_vector(elem, name, default):
    value = get_elem_vector(elem, name, required=False)
    return default if value is None else value


def _check_time_grid(name, time):
    steps = np.diff(time)
    bad = np.flatnonzero(~(steps > 0.0))
    if bad.size:
        n = int(bad[0]) + 1
        raise NonMonotonicTimeGridError(
            f'"{name}" must be strictly increasing but the step ending at '
            f'index {n} is {steps[n - 1]}', n)
