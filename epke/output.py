"""The output module.

Contains the history of power, reactivity and precursor concentrations
produced by a solver. The same class serves as the precomputed prefix that
seeds a solver so that a simulation does not have to begin at t=0.
"""

from numbers import Integral

import h5py
import lxml.etree as ET
import numpy as np

from epke.checkvalue import (check_type, check_greater_than, check_less_than,
                             check_filetype_version, PathLike)
from epke.exceptions import ConfigurationError
from epke._xml import get_elem_vector, format_vector

VERSION_OUTPUT = (1, 0)

__all__ = ["SolverOutput"]


class SolverOutput:
    """Power, reactivity and precursor histories on a time grid

    Parameters
    ----------
    power : Iterable of float
        Power amplitude at each time point
    rho : Iterable of float
        Reactivity, including feedback, at each time point
    concentrations : Iterable of Iterable of float
        Precursor concentrations indexed by (group, time point)

    Attributes
    ----------
    power : numpy.ndarray
        Power amplitude at each time point
    rho : numpy.ndarray
        Reactivity at each time point
    concentrations : numpy.ndarray
        Precursor concentrations indexed by (group, time point)
    num_time_steps : int
        Number of time points held
    num_precursors : int
        Number of precursor groups

    """

    def __init__(self, power, rho, concentrations):
        power = np.array(power, dtype=float).reshape(-1)
        rho = np.array(rho, dtype=float).reshape(-1)
        concentrations = np.array(concentrations, dtype=float)
        if concentrations.ndim == 1:
            concentrations = concentrations[np.newaxis, :]
        if rho.shape != power.shape:
            raise ConfigurationError(
                f'{rho.size} reactivity values given for {power.size} power '
                'values')
        if concentrations.ndim != 2 or concentrations.shape[1] != power.size:
            raise ConfigurationError(
                f'Concentrations of shape {concentrations.shape} do not match '
                f'{power.size} power values')
        if power.size < 1:
            raise ConfigurationError('Output must hold at least one time point')

        for array in (power, rho, concentrations):
            array.flags.writeable = False
        self._power = power
        self._rho = rho
        self._concentrations = concentrations

    def __repr__(self):
        return (f"<SolverOutput: {self.num_time_steps} time points, "
                f"{self.num_precursors} precursor groups>")

    def __len__(self):
        return self.num_time_steps

    @property
    def power(self):
        return self._power

    @property
    def rho(self):
        return self._rho

    @property
    def concentrations(self):
        return self._concentrations

    @property
    def num_time_steps(self):
        return self._power.size

    @property
    def num_precursors(self):
        return self._concentrations.shape[0]

    def get_num_time_steps(self):
        return self.num_time_steps

    def get_power(self, n):
        return self._power[n]

    def get_rho(self, n):
        return self._rho[n]

    def get_concentration(self, k, n):
        return self._concentrations[k, n]

    def create_precomputed(self, coarse_index):
        """Restrict the history to the time points before `coarse_index`

        Parameters
        ----------
        coarse_index : int
            Number of leading time points kept

        Returns
        -------
        epke.SolverOutput
            History of the first `coarse_index` time points

        """
        check_type('coarse index', coarse_index, Integral)
        check_greater_than('coarse index', coarse_index, 1, True)
        check_less_than('coarse index', coarse_index, self.num_time_steps, True)
        return type(self)(self._power[:coarse_index],
                          self._rho[:coarse_index],
                          self._concentrations[:, :coarse_index])

    @classmethod
    def steady_state(cls, params, power=1.0):
        """History holding a critical steady state at the first time point

        The precursor concentrations are in equilibrium with `power`, which
        requires a positive decay constant in every group.

        Parameters
        ----------
        params : epke.Parameters
            Parameters supplying the data at the first time point
        power : float, optional
            Initial power amplitude

        Returns
        -------
        epke.SolverOutput

        """
        decay = params.decay_constants[:, 0]
        if np.any(decay <= 0.0):
            raise ConfigurationError(
                'A steady state requires positive decay constants in every '
                'precursor group')
        conc = params.delayed_fractions[:, 0] * power / decay
        return cls([power], [params.rho_imp[0]], conc[:, np.newaxis])

    @classmethod
    def from_xml_element(cls, elem):
        """Generate a history from an ``<epke_output>`` element

        Parameters
        ----------
        elem : lxml.etree._Element
            XML element

        Returns
        -------
        epke.SolverOutput

        """
        power = get_elem_vector(elem, 'power')
        if elem.find('power').get('normalized') == 'true':
            pow_norm = get_elem_vector(elem, 'pow_norm')
            if pow_norm.size not in (1, power.size):
                raise ConfigurationError(
                    f'<pow_norm> has {pow_norm.size} values for '
                    f'{power.size} power values')
            power = power / pow_norm

        conc_node = elem.find('concentrations')
        if conc_node is None:
            raise ConfigurationError(
                f'<{elem.tag}> is missing required element <concentrations>')
        conc_elems = sorted(conc_node.findall('concentration'),
                            key=lambda e: int(e.get('k', 0)))
        if not conc_elems:
            raise ConfigurationError(
                '<concentrations> must contain at least one <concentration>')
        concentrations = []
        for conc_elem in conc_elems:
            values = np.array([float(x) for x in (conc_elem.text or '').split()])
            if values.size != power.size:
                raise ConfigurationError(
                    f'<concentration k="{conc_elem.get("k")}"> has '
                    f'{values.size} values for {power.size} power values')
            concentrations.append(values)

        return cls(power, get_elem_vector(elem, 'rho'), concentrations)

    @classmethod
    def from_xml(cls, path: PathLike):
        """Read a history from an XML file

        The root element may be ``<epke_output>`` or a ``<parareal>`` element
        containing one.

        Parameters
        ----------
        path : PathLike
            Path to the XML file

        Returns
        -------
        epke.SolverOutput

        """
        root = ET.parse(str(path)).getroot()
        if root.tag != 'epke_output':
            elem = root.find('epke_output')
            if elem is None:
                raise ConfigurationError(
                    f'{path} does not contain an <epke_output> element')
            root = elem
        return cls.from_xml_element(root)

    def to_xml_element(self, time=None, pow_norm=None):
        """Return XML representation of the history

        Times are written with 6 significant digits, everything else with
        12.

        Parameters
        ----------
        time : Iterable of float, optional
            Time points to write alongside the history
        pow_norm : Iterable of float, optional
            Power normalization. When given, the normalized power is written
            and the power element is marked accordingly.

        Returns
        -------
        element : lxml.etree._Element
            XML element containing the history

        """
        element = ET.Element('epke_output')
        if time is not None:
            time = np.asarray(time)[:self.num_time_steps]
            ET.SubElement(element, 'time').text = format_vector(time, 6)

        power_elem = ET.SubElement(element, 'power')
        if pow_norm is not None:
            pow_norm = np.asarray(pow_norm)[:self.num_time_steps]
            power_elem.text = format_vector(pow_norm * self.power, 12)
            power_elem.set('normalized', 'true')
            ET.SubElement(element, 'pow_norm').text = format_vector(pow_norm, 17)
        else:
            power_elem.text = format_vector(self.power, 12)

        ET.SubElement(element, 'rho').text = format_vector(self.rho, 12)

        concs_elem = ET.SubElement(element, 'concentrations')
        for k, values in enumerate(self.concentrations):
            conc_elem = ET.SubElement(concs_elem, 'concentration')
            conc_elem.set('k', str(k))
            conc_elem.text = format_vector(values, 12)
        return element

    def export_to_xml(self, path: PathLike = 'epke_output.xml', time=None,
                      pow_norm=None):
        """Write the history to an XML file

        Parameters
        ----------
        path : PathLike
            Path to file to write. Defaults to 'epke_output.xml'.
        time : Iterable of float, optional
            Time points to write alongside the history
        pow_norm : Iterable of float, optional
            Power normalization applied to the written power

        """
        tree = ET.ElementTree(self.to_xml_element(time, pow_norm))
        tree.write(str(path), xml_declaration=True, encoding='utf-8',
                   pretty_print=True)

    def export_to_hdf5(self, path: PathLike, time=None):
        """Write the history to an HDF5 file

        Parameters
        ----------
        path : PathLike
            Path to file to write
        time : Iterable of float, optional
            Time points to store alongside the history

        """
        with h5py.File(str(path), 'w') as f:
            f.attrs['filetype'] = np.bytes_('epke_output')
            f.attrs['version'] = VERSION_OUTPUT
            f.attrs['num_precursors'] = self.num_precursors
            f.create_dataset('power', data=self.power)
            f.create_dataset('rho', data=self.rho)
            f.create_dataset('concentrations', data=self.concentrations)
            if time is not None:
                f.create_dataset(
                    'time', data=np.asarray(time)[:self.num_time_steps])

    @classmethod
    def from_hdf5(cls, path: PathLike):
        """Load a history written by :meth:`export_to_hdf5`

        Parameters
        ----------
        path : PathLike
            Path to the HDF5 file

        Returns
        -------
        epke.SolverOutput

        """
        with h5py.File(str(path), 'r') as f:
            check_filetype_version(f, 'epke_output', VERSION_OUTPUT[0])
            return cls(f['power'][()], f['rho'][()], f['concentrations'][()])
