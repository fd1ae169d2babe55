"""Module for handling global configuration in epke.

This module exports a single object, `config`, that controls defaults used
by the solvers. It acts like a dictionary but only accepts known keys with
values of the right type.

Examples
--------
>>> import epke
>>> epke.config['transformation_acceptance_test'] = True
>>> print(epke.config)
{'transformation_acceptance_test': True, 'verbose': False, 'num_processes': None}

"""
from collections.abc import MutableMapping
from contextlib import contextmanager
import os
from typing import Any, Dict, Iterator

__all__ = ["config"]


class _Config(MutableMapping):
    """A configuration dictionary for epke with validated keys.

    Attributes
    ----------
    transformation_acceptance_test : bool
        Default for :attr:`epke.Solver.acceptance_test`. When True, each step
        checks whether the exponential transformation improved on a linear
        extrapolation and recomputes the step without it otherwise.
    verbose : bool
        Whether solvers print a progress line for every time step.
    num_processes : int or None
        Number of worker processes used to solve sibling fine solvers. None
        lets :mod:`multiprocessing` decide. Also set from the
        EPKE_NUM_PROCESSES environment variable.

    """
    _DEFAULTS: Dict[str, Any] = {
        'transformation_acceptance_test': False,
        'verbose': False,
        'num_processes': None,
    }

    def __init__(self, data: dict = ()):
        self._mapping: Dict[str, Any] = dict(self._DEFAULTS)
        self.update(data)

    def __getitem__(self, key: str) -> Any:
        return self._mapping[key]

    def __delitem__(self, key: str):
        """Reset a configuration key to its default value."""
        if key not in self._DEFAULTS:
            raise KeyError(key)
        self._mapping[key] = self._DEFAULTS[key]

    def __setitem__(self, key: str, value: Any):
        if key in ('transformation_acceptance_test', 'verbose'):
            if not isinstance(value, bool):
                raise TypeError(f"'{key}' must be a boolean.")
        elif key == 'num_processes':
            if value is not None:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise TypeError("'num_processes' must be an integer or None.")
                if value < 1:
                    raise ValueError("'num_processes' must be positive.")
        else:
            raise KeyError(
                f"Unrecognized config key: {key}. Acceptable keys are: "
                f"{', '.join(repr(k) for k in self._DEFAULTS)}."
            )
        self._mapping[key] = value

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:
        return repr(self._mapping)

    @contextmanager
    def patch(self, key: str, value: Any):
        """Context manager to temporarily change a configuration value.

        After the `with` block, the configuration is restored to its original
        state.

        Parameters
        ----------
        key : str
            The key of the configuration value to change.
        value
            The new temporary value.

        Examples
        --------
        >>> with epke.config.patch('verbose', True):
        ...     solver.solve()

        """
        previous_value = self[key]
        self[key] = value
        try:
            yield
        finally:
            self[key] = previous_value


def _default_config(**kwargs) -> _Config:
    """Create a configuration initialized from environment variables.

    EPKE_NUM_PROCESSES, when set, seeds the 'num_processes' key.

    Returns
    -------
    _Config
        A new configuration object.

    """
    config = _Config(kwargs)
    if 'EPKE_NUM_PROCESSES' in os.environ and 'num_processes' not in kwargs:
        config['num_processes'] = int(os.environ['EPKE_NUM_PROCESSES'])
    return config


config = _default_config()
