class EPKEError(Exception):
    """Root exception class for epke."""


class ConfigurationError(EPKEError, ValueError):
    """Input data is malformed, missing or inconsistent."""


class NumericalPreconditionError(EPKEError):
    """A time step cannot be taken with the given data.

    Parameters
    ----------
    message : str
        Description of the failure
    index : int, optional
        Time index at which the failure was detected

    """

    def __init__(self, message, index=None):
        super().__init__(message)
        self.index = index

    def __reduce__(self):
        return (type(self), (self.args[0], self.index))


class InvalidCoefficientError(NumericalPreconditionError):
    """Leading coefficient of the power update is positive."""


class NonMonotonicTimeGridError(NumericalPreconditionError):
    """Time grid has a zero or negative step."""


class DegenerateRootError(NumericalPreconditionError):
    """Power update has no real root or is not solvable."""
