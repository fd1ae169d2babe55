import numpy as np

from .exceptions import ConfigurationError


def get_text(elem, name, default=None):
    """Retrieve text of an attribute or subelement.

    Parameters
    ----------
    elem : lxml.etree._Element
        Element from which to search
    name : str
        Name of attribute/subelement
    default : object
        A default value to return if no matching attribute/subelement exists

    Returns
    -------
    str
        Text of attribute or subelement

    """
    if name in elem.attrib:
        return elem.get(name, default)
    else:
        child = elem.find(name)
        return child.text if child is not None else default


def get_elem_vector(elem, name, required=True):
    """Get a whitespace-separated vector of floats from a subelement

    Parameters
    ----------
    elem : lxml.etree._Element
        XML element that should contain the vector
    name : str
        Name of the subelement (or attribute) to obtain the vector from
    required : bool
        Whether a missing subelement is an error

    Returns
    -------
    numpy.ndarray or None
        Data read from the subelement

    """
    text = get_text(elem, name)
    if text is None or not text.strip():
        if required:
            raise ConfigurationError(
                f'<{elem.tag}> is missing required element <{name}>')
        return None
    try:
        return np.array([float(x) for x in text.split()])
    except ValueError as e:
        raise ConfigurationError(
            f'Could not parse <{name}> in <{elem.tag}>: {e}') from e


def get_scalar(elem, name, default=None):
    """Get a float from an attribute or subelement

    Parameters
    ----------
    elem : lxml.etree._Element
        Element from which to search
    name : str
        Name of attribute/subelement
    default : float or None
        Value returned when nothing is found. If None, a missing value is an
        error.

    Returns
    -------
    float

    """
    text = get_text(elem, name)
    if text is None:
        if default is None:
            raise ConfigurationError(
                f'<{elem.tag}> is missing required value "{name}"')
        return default
    try:
        return float(text)
    except ValueError as e:
        raise ConfigurationError(
            f'Could not parse "{name}" in <{elem.tag}>: {e}') from e


def format_vector(values, precision):
    """Space-separated text with a given number of significant digits

    Parameters
    ----------
    values : Iterable of float
        Values to format
    precision : int
        Number of significant digits

    Returns
    -------
    str

    """
    return ' '.join(f'{x:.{precision}g}' for x in values)
