import os
import typing  # required to prevent typing.Union namespace overwriting Union

import numpy as np

# Type for arguments that accept file paths
PathLike = typing.Union[str, os.PathLike]


def _describe(value):
    if isinstance(value, np.ndarray) and value.size > 6:
        return f'array of shape {value.shape}'
    return f'"{value}"'


def check_type(name, value, expected_type, *, none_ok=False):
    """Ensure that an object is of an expected type.

    Parameters
    ----------
    name : str
        Description of value being checked
    value : object
        Object to check type of
    expected_type : type or tuple of type
        type to check object against
    none_ok : bool, optional
        Whether None is allowed as a value

    """
    if none_ok and value is None:
        return

    if not isinstance(value, expected_type):
        if isinstance(expected_type, tuple):
            names = ', '.join(t.__name__ for t in expected_type)
            msg = (f'Unable to set "{name}" to {_describe(value)} which is not '
                   f'one of the following types: "{names}"')
        else:
            msg = (f'Unable to set "{name}" to {_describe(value)} which is not '
                   f'of type "{expected_type.__name__}"')
        raise TypeError(msg)


def check_length(name, value, length_min):
    """Ensure that a sized object has at least a given length.

    Parameters
    ----------
    name : str
        Description of value being checked
    value : collections.abc.Sized
        Object to check length of
    length_min : int
        Minimum length of object

    """
    if len(value) < length_min:
        msg = (f'Unable to set "{name}" to {_describe(value)} since it must be '
               f'at least of length "{length_min}"')
        raise ValueError(msg)


def check_less_than(name, value, maximum, equality=False):
    """Ensure that a value, or every element of an array, is below a bound.

    Parameters
    ----------
    name : str
        Description of the value being checked
    value : float or numpy.ndarray
        Value to check
    maximum : float
        Maximum value to check against
    equality : bool, optional
        Whether equality is allowed. Defaults to False.

    """
    if equality:
        if np.any(value > maximum):
            msg = (f'Unable to set "{name}" to {_describe(value)} since it is '
                   f'greater than "{maximum}"')
            raise ValueError(msg)
    else:
        if np.any(value >= maximum):
            msg = (f'Unable to set "{name}" to {_describe(value)} since it is '
                   f'greater than or equal to "{maximum}"')
            raise ValueError(msg)


def check_greater_than(name, value, minimum, equality=False):
    """Ensure that a value, or every element of an array, is above a bound.

    Parameters
    ----------
    name : str
        Description of the value being checked
    value : float or numpy.ndarray
        Value to check
    minimum : float
        Minimum value to check against
    equality : bool, optional
        Whether equality is allowed. Defaults to False.

    """
    if equality:
        if np.any(value < minimum):
            msg = (f'Unable to set "{name}" to {_describe(value)} since it is '
                   f'less than "{minimum}"')
            raise ValueError(msg)
    else:
        if np.any(value <= minimum):
            msg = (f'Unable to set "{name}" to {_describe(value)} since it is '
                   f'less than or equal to "{minimum}"')
            raise ValueError(msg)


def check_filetype_version(obj, expected_type, expected_version):
    """Check filetype and version of an HDF5 file.

    Parameters
    ----------
    obj : h5py.File
        HDF5 file to check
    expected_type : str
        Expected file type, e.g. 'epke_output'
    expected_version : int
        Expected major version number.

    """
    try:
        this_filetype = obj.attrs['filetype']
        if isinstance(this_filetype, bytes):
            this_filetype = this_filetype.decode()
        this_version = obj.attrs['version']

        # Check filetype
        if this_filetype != expected_type:
            raise IOError(f'{obj.filename} is not a {expected_type} file.')

        # Check version
        if this_version[0] != expected_version:
            raise IOError('{} file has a version of {} which is not '
                          'consistent with the version expected by epke, {}'
                          .format(this_filetype,
                                  '.'.join(str(v) for v in this_version),
                                  expected_version))
    except KeyError:
        raise IOError(f'Could not read {obj.filename} file. This most likely '
                      'means the file was not produced by epke.')
