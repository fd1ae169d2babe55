import importlib.metadata
from epke.exceptions import *
from epke.parameters import *
from epke.output import *
from epke.solver import *
from epke.parareal import *
from .config import *

from . import kernels, pool


__version__ = importlib.metadata.version("epke")
